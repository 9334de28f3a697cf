"""Reconciliation API version negotiation.

Services advertise their supported versions in the manifest, and in
practice those strings are messy: ``"0.1"``, ``"0.2-alpha"``, ``"v0.2.0"``.
Each one is coerced into a strict three-component semantic version before
the highest one accepted by this client is picked.
"""

import logging
import re

from semver import Version

from authority.config import CLIENT_VERSION_RANGE, DEFAULT_RECONC_VERSION
from authority.errors import NoCompatibleVersion

logger = logging.getLogger("authority")

_LOOSE_PREFIX = re.compile(r"^[=v\s]+")


def normalize_version(version: str) -> str:
    """Coerce a loosely written version into strict semver form.

    Examples:
        "0.3"        → "0.3.0"
        "0.2-alpha"  → "0.2.0-alpha"
        "v0.1.0"     → "0.1.0"
        "latest"     → "latest" (unchanged, ignored during negotiation)
    """
    candidate = _LOOSE_PREFIX.sub("", version.strip())
    if Version.is_valid(candidate):
        return candidate

    padded = f"{candidate}.0"
    if Version.is_valid(padded):
        return padded

    core, sep, prerelease = candidate.partition("-")
    if sep:
        padded = f"{core}.0-{prerelease}"
        if Version.is_valid(padded):
            return padded

    return version


def negotiate_version(
    versions: list[str] | None, supported: str = CLIENT_VERSION_RANGE
) -> str:
    """Pick the highest advertised version that satisfies *supported*.

    Returns the default version when the manifest advertises none.
    """
    if not versions:
        return DEFAULT_RECONC_VERSION

    candidates: list[Version] = []
    for raw in versions:
        if not isinstance(raw, str):
            continue
        normalized = normalize_version(raw)
        if not Version.is_valid(normalized):
            logger.debug("Ignoring unparseable version '%s'", raw)
            continue
        version = Version.parse(normalized)
        if version.match(supported):
            candidates.append(version)

    if not candidates:
        raise NoCompatibleVersion(
            f"No advertised version in {versions!r} satisfies '{supported}'"
        )
    return str(max(candidates))
