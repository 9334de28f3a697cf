"""Abstract base class and result types shared by all authority connectors."""

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from typing import Any

from authority.display import Container


@dataclass(frozen=True)
class ResultRecord:
    """A single normalized match returned by a connector."""

    register: str
    id: str
    label: str
    type: list[dict] | str | None = None
    details: str = ""
    score: float | None = None
    link: str = ""
    provider: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class ResultSet:
    """Items produced by one query together with the reported total."""

    total_items: int
    items: list[ResultRecord] = field(default_factory=list)


def add_prefix(raw_id: str, prefix: str | None) -> str:
    """Return the externally visible id, e.g. ``gnd-118540238``."""
    return f"{prefix}-{raw_id}" if prefix else raw_id


def strip_prefix(key: str, prefix: str | None) -> str:
    """Recover the raw id from a prefixed key. Unprefixed keys pass through."""
    if prefix and key.startswith(f"{prefix}-"):
        return key[len(prefix) + 1:]
    return key


class BaseConnector(ABC):
    """Interface that every authority connector must implement."""

    def __init__(self, register: str, prefix: str | None = None) -> None:
        self._register = register
        self._prefix = prefix

    @property
    def register(self) -> str:
        return self._register

    @property
    def prefix(self) -> str | None:
        return self._prefix

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable name of the connector."""

    @abstractmethod
    def query(self, key: str) -> ResultSet:
        """Search the source for *key* and return the normalized matches."""

    @abstractmethod
    def info(self, key: str, container: Container) -> dict[str, Any]:
        """Render a preview of *key* into *container* and describe the entry."""

    @abstractmethod
    def get_record(self, key: str) -> ResultRecord:
        """Fetch the record for a single (possibly prefixed) id."""
