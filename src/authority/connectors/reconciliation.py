"""Connector for services implementing the W3C Reconciliation API."""

import enum
import logging
from typing import Any
from urllib.parse import quote

import httpx

from authority.config import REQUEST_TIMEOUT
from authority.connectors.base import (
    BaseConnector,
    ResultRecord,
    ResultSet,
    add_prefix,
    strip_prefix,
)
from authority.connectors.protocol import ReconciliationProtocol, protocol_for
from authority.connectors.versions import negotiate_version
from authority.display import Container
from authority.errors import (
    AuthorityError,
    ConnectorNotReady,
    MalformedResponse,
    ManifestUnavailable,
    NotFound,
)

logger = logging.getLogger("authority")

NO_PREVIEW_MESSAGE = "no 'preview' endpoint in reconciliation service's manifest"


class ManifestState(enum.Enum):
    CONSTRUCTED = "constructed"
    PENDING = "pending"
    READY = "ready"
    FAILED = "failed"


class ReconciliationConnector(BaseConnector):
    """Connector for one reconciliation endpoint.

    The service manifest is fetched when the connector is built. Until it
    has been loaded and a protocol version negotiated, ``query``, ``info``
    and ``get_record`` raise. A failed load is final; the error is kept and
    raised again on every call.
    """

    def __init__(
        self,
        endpoint: str,
        register: str,
        prefix: str | None = None,
        process_lang: str | None = None,
        accept_lang: str | None = None,
        load: bool = True,
    ) -> None:
        super().__init__(register, prefix)
        self._endpoint = endpoint
        self._process_lang = process_lang
        self._accept_lang = accept_lang
        self._state = ManifestState.CONSTRUCTED
        self._manifest: dict[str, Any] = {}
        self._protocol: ReconciliationProtocol | None = None
        self._failure: AuthorityError | None = None
        if load:
            self.load_manifest()

    @property
    def name(self) -> str:
        return f"reconciliation:{self._endpoint}"

    @property
    def endpoint(self) -> str:
        return self._endpoint

    @property
    def state(self) -> ManifestState:
        return self._state

    @property
    def version(self) -> str | None:
        return self._protocol.version if self._protocol else None

    @property
    def manifest(self) -> dict[str, Any]:
        return self._manifest

    def load_manifest(self) -> None:
        """Fetch the service manifest and negotiate the protocol version."""
        if self._state in (ManifestState.READY, ManifestState.FAILED):
            return
        self._state = ManifestState.PENDING

        try:
            resp = httpx.get(self._endpoint, timeout=REQUEST_TIMEOUT)
            resp.raise_for_status()
            manifest = resp.json()
            if not isinstance(manifest, dict):
                raise ValueError("manifest is not a JSON object")
        except (httpx.HTTPError, ValueError) as e:
            self._fail(ManifestUnavailable(f"Manifest of {self._endpoint} unavailable: {e}"))
            return

        versions = manifest.get("versions")
        try:
            version = negotiate_version(versions if isinstance(versions, list) else None)
        except AuthorityError as e:
            self._fail(e)
            return

        self._manifest = manifest
        self._protocol = protocol_for(version)
        self._state = ManifestState.READY
        logger.debug(
            "Reconciliation connector for register '%s' at <%s> (v%s)",
            self._register, self._endpoint, version,
        )
        if self._process_lang or self._accept_lang:
            logger.debug(
                "Using process_lang %s and accept_lang %s",
                self._process_lang, self._accept_lang,
            )

    def _fail(self, error: AuthorityError) -> None:
        logger.error("%s", error)
        self._failure = error
        self._state = ManifestState.FAILED

    def _require_ready(self) -> ReconciliationProtocol:
        if self._state is ManifestState.READY and self._protocol is not None:
            return self._protocol
        if self._failure is not None:
            raise type(self._failure)(str(self._failure)) from self._failure
        raise ConnectorNotReady(f"Manifest of {self._endpoint} has not been loaded")

    def _template(self, name: str) -> str | None:
        entry = self._manifest.get(name)
        if isinstance(entry, dict) and entry.get("url"):
            return str(entry["url"])
        return None

    def query(self, key: str) -> ResultSet:
        """Run a single reconciliation query."""
        protocol = self._require_ready()
        request = protocol.build_query(key, self._process_lang, self._accept_lang)

        resp = httpx.post(
            self._endpoint,
            headers=request.headers,
            content=request.content,
            timeout=REQUEST_TIMEOUT,
        )
        resp.raise_for_status()
        try:
            data = resp.json()
        except ValueError as e:
            raise MalformedResponse(f"Reply of {self._endpoint} is not JSON: {e}") from e
        result = protocol.parse_response(
            data, self._register, self._prefix, self._template("view")
        )

        logger.debug(
            "Reconciliation query '%s' at <%s> returned %d results",
            key, self._endpoint, result.total_items,
        )
        return result

    def info(self, key: str, container: Container) -> dict[str, Any]:
        """Render the service's preview of *key* into *container*."""
        if not key:
            return {}
        self._require_ready()

        preview = self._template("preview")
        if not preview:
            container.render(NO_PREVIEW_MESSAGE)
            return {}

        raw_id = strip_prefix(key, self._prefix)
        url = preview.replace("{{id}}", quote(raw_id, safe=""))
        logger.debug("Retrieve info from %s ...", url)

        resp = httpx.get(url, timeout=REQUEST_TIMEOUT, follow_redirects=True)
        resp.raise_for_status()
        container.render(resp.text)
        return {"id": add_prefix(raw_id, self._prefix)}

    def get_record(self, key: str) -> ResultRecord:
        """Look up a record by id by running a query for the raw id.

        The first candidate of that query is returned as is.
        """
        self._require_ready()
        view = self._template("view")
        if not view:
            raise NotFound(f"No 'view' endpoint in manifest of {self._endpoint}")

        raw_id = strip_prefix(key, self._prefix)
        logger.debug("Retrieve record for %s (%s)", raw_id, view.replace("{{id}}", raw_id))

        result = self.query(raw_id)
        if not result.items:
            raise NotFound(f"No record for {key} at {self._endpoint}")
        return result.items[0]
