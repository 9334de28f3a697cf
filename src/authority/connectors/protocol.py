"""Request encoding and response parsing for each Reconciliation API revision.

One protocol object is chosen when the service version is negotiated and
kept for the connector's lifetime. Adding a revision means adding a class
here and an entry in ``protocol_for``.
"""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlencode

from authority.config import DRAFT_RECONC_VERSION
from authority.connectors.base import ResultRecord, ResultSet, add_prefix
from authority.errors import MalformedResponse

PROVIDER = "Reconciliation"


@dataclass
class QueryRequest:
    """Transport-ready description of a reconciliation query."""

    content: str
    headers: dict[str, str] = field(default_factory=dict)
    method: str = "POST"


def _details(item: dict) -> str:
    """Description if present, else the comma-joined type names."""
    if item.get("description"):
        return str(item["description"])
    types = item.get("type")
    if isinstance(types, list):
        return ", ".join(str(t.get("name", "")) for t in types if isinstance(t, dict))
    return ""


def _link(raw_id: str, view_url: str | None) -> str:
    return view_url.replace("{{id}}", raw_id) if view_url else raw_id


def _candidates(items: Any, path: str) -> list[dict]:
    if not isinstance(items, list):
        raise MalformedResponse(f"expected a result list at {path}")
    return items


class ReconciliationProtocol(ABC):
    """Codec and normalizer pair for one protocol revision."""

    def __init__(self, version: str) -> None:
        self.version = version

    @abstractmethod
    def build_query(
        self,
        key: str,
        process_lang: str | None = None,
        accept_lang: str | None = None,
    ) -> QueryRequest:
        """Encode a single query."""

    @abstractmethod
    def results(self, data: Any) -> list[dict]:
        """Extract the raw candidate list from a decoded response."""

    @abstractmethod
    def build_record(
        self, item: dict, register: str, prefix: str | None, view_url: str | None
    ) -> ResultRecord:
        """Turn one raw candidate into a ResultRecord."""

    def parse_response(
        self,
        data: Any,
        register: str,
        prefix: str | None = None,
        view_url: str | None = None,
    ) -> ResultSet:
        items = []
        for item in self.results(data):
            try:
                items.append(self.build_record(item, register, prefix, view_url))
            except (KeyError, TypeError, AttributeError) as e:
                raise MalformedResponse(f"unusable candidate {item!r}") from e
        return ResultSet(total_items=len(items), items=items)


class LegacyProtocol(ReconciliationProtocol):
    """Form-encoded ``queries={"q0": ...}`` batches (API 0.1 and 0.2)."""

    def build_query(self, key, process_lang=None, accept_lang=None):
        batch = {"q0": {"query": key}}
        return QueryRequest(
            content=urlencode({"queries": json.dumps(batch)}),
            headers={
                "Accept": "application/json",
                "Content-Type": "application/x-www-form-urlencoded",
            },
        )

    def results(self, data):
        try:
            items = data["q0"]["result"]
        except (KeyError, TypeError) as e:
            raise MalformedResponse(f"missing q0.result in v{self.version} response") from e
        return _candidates(items, "q0.result")

    def build_record(self, item, register, prefix, view_url):
        raw_id = str(item["id"])
        return ResultRecord(
            register=register,
            id=add_prefix(raw_id, prefix),
            label=item.get("name", ""),
            type=item.get("type"),
            details=_details(item),
            link=_link(raw_id, view_url),
            provider=PROVIDER,
        )


class DraftProtocol(ReconciliationProtocol):
    """JSON ``{"queries": [...]}`` batches of the 0.3 draft."""

    def __init__(self, version: str = DRAFT_RECONC_VERSION) -> None:
        super().__init__(version)

    def build_query(self, key, process_lang=None, accept_lang=None):
        query: dict[str, str] = {"query": key}
        if process_lang:
            query["lang"] = process_lang
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        if accept_lang:
            headers["Accept-Language"] = accept_lang
        return QueryRequest(content=json.dumps({"queries": [query]}), headers=headers)

    def results(self, data):
        # Services implementing this draft answer with a bare list of batches
        try:
            items = data[0]["result"]
        except (KeyError, IndexError, TypeError) as e:
            raise MalformedResponse(f"missing [0].result in v{self.version} response") from e
        return _candidates(items, "[0].result")

    def build_record(self, item, register, prefix, view_url):
        raw_id = str(item["id"])
        types = item.get("type")
        first_type = types[0].get("name") if isinstance(types, list) and types else None
        return ResultRecord(
            register=register,
            id=add_prefix(raw_id, prefix),
            label=item.get("name", ""),
            type=first_type,
            details=_details(item),
            score=item.get("score"),
            link=_link(raw_id, view_url),
            provider=PROVIDER,
        )


def protocol_for(version: str) -> ReconciliationProtocol:
    """Select the protocol variant for a negotiated version string."""
    if version == DRAFT_RECONC_VERSION:
        return DraftProtocol()
    return LegacyProtocol(version)
