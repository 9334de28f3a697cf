"""Project-wide configuration: paths, protocol constants, connector settings."""

import tomllib
from dataclasses import dataclass, field
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent

LOG_FILE = PROJECT_ROOT / "authority.log"
DEFAULT_CONFIG_FILE = Path("authority.toml")

# Timeout for API requests (seconds)
REQUEST_TIMEOUT = 30.0

# Reconciliation API versions understood by this client
CLIENT_VERSION_RANGE = "<0.3.1"
DEFAULT_RECONC_VERSION = "0.1.0"
DRAFT_RECONC_VERSION = "0.3.0-alpha"

METAGRID_SEARCH_URL = "https://api.metagrid.ch/search"


@dataclass
class AuthorityConfig:
    """Settings for one connector, read once when the connector is built."""

    connector: str
    register: str = ""
    endpoint: str = ""
    prefix: str | None = None
    editable: bool = False
    debug: bool = False
    process_lang: str | None = None
    accept_lang: str | None = None
    connectors: list["AuthorityConfig"] = field(default_factory=list)


def _from_table(table: dict, parent: AuthorityConfig | None = None) -> AuthorityConfig:
    """Build an AuthorityConfig from a TOML table; children inherit the register.

    Only the root table's ``debug`` flag is used; it sets the logging level.
    """
    try:
        connector = table["connector"]
    except KeyError:
        raise ValueError("connector table without a 'connector' type") from None

    config = AuthorityConfig(
        connector=connector,
        register=table.get("register", parent.register if parent else ""),
        endpoint=table.get("endpoint", "").rstrip("/"),
        prefix=table.get("prefix") or None,
        editable=bool(table.get("edit", False)),
        debug=bool(table.get("debug", False)),
        process_lang=table.get("process_lang"),
        accept_lang=table.get("accept_lang"),
    )
    config.connectors = [_from_table(child, config) for child in table.get("connectors", [])]
    return config


def parse_config(data: dict) -> AuthorityConfig:
    """Turn a parsed TOML document into the root AuthorityConfig."""
    table = data.get("authority")
    if not isinstance(table, dict):
        raise ValueError("configuration has no [authority] table")
    return _from_table(table)


def load_config(path: Path = DEFAULT_CONFIG_FILE) -> AuthorityConfig:
    """Read a TOML connector configuration file."""
    with open(path, "rb") as f:
        data = tomllib.load(f)
    return parse_config(data)
