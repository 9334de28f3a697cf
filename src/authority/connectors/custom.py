"""Local register connector backed by zero or more remote authorities."""

import logging
from typing import Any
from urllib.parse import quote

import httpx

from authority.config import REQUEST_TIMEOUT
from authority.connectors.base import BaseConnector, ResultRecord, ResultSet
from authority.display import Container
from authority.errors import (
    MalformedResponse,
    NoRecordFound,
    NotFound,
    UpstreamRejected,
)

logger = logging.getLogger("authority")

LOCAL_PROVIDER = "local"


class CustomConnector(BaseConnector):
    """Queries the local register first, then each remote connector in order.

    Local entries always win over remote ones with the same id. Remote
    connectors are not deduplicated against each other. A chosen remote
    record can be copied into the local register with ``select``.
    """

    def __init__(
        self,
        endpoint: str,
        register: str,
        connectors: list[BaseConnector] | None = None,
        editable: bool = False,
    ) -> None:
        super().__init__(register)
        self._endpoint = endpoint.rstrip("/")
        self._connectors = list(connectors or [])
        self._editable = editable
        logger.debug(
            "Custom connector endpoint: %s; using authorities: %s",
            self._endpoint, [c.name for c in self._connectors],
        )

    @property
    def name(self) -> str:
        return self._register

    @property
    def connectors(self) -> tuple[BaseConnector, ...]:
        return tuple(self._connectors)

    @property
    def editable(self) -> bool:
        return self._editable

    def _register_url(self, item_id: str | None = None) -> str:
        url = f"{self._endpoint}/api/register/{self._register}"
        if item_id is not None:
            url = f"{url}/{quote(item_id, safe='')}"
        return url

    def query(self, key: str) -> ResultSet:
        """Merge local matches with the matches of every remote connector.

        ``total_items`` adds up what each source reported, including remote
        hits that were dropped because a local entry has the same id.
        """
        resp = httpx.get(
            self._register_url(), params={"query": key}, timeout=REQUEST_TIMEOUT
        )
        resp.raise_for_status()
        try:
            data = resp.json()
            if not isinstance(data, list):
                raise TypeError("search result is not a list")
            items = [
                ResultRecord(
                    register=self._register,
                    id=str(entry["id"]),
                    label=entry.get("label", ""),
                    details=entry.get("details") or "",
                    link=entry.get("link") or "",
                    provider=LOCAL_PROVIDER,
                )
                for entry in data
            ]
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise MalformedResponse(f"Unusable local register search for '{key}': {e}") from e

        local_ids = {item.id for item in items}
        total_items = len(items)

        # A failing remote source only drops its own results
        for connector in self._connectors:
            try:
                remote = connector.query(key)
            except Exception as e:
                logger.warning("Query '%s' failed at %s: %s", key, connector.name, e)
                continue
            items.extend(r for r in remote.items if r.id not in local_ids)
            total_items += remote.total_items

        return ResultSet(total_items=total_items, items=items)

    def info(self, key: str, container: Container) -> dict[str, Any]:
        """Show the local entry, or the first remote connector that knows *key*."""
        if not key:
            return {}

        logger.debug("Retrieve info for %s from local register ...", key)
        resp = httpx.get(self._register_url(key), timeout=REQUEST_TIMEOUT)
        if resp.status_code != 404:
            resp.raise_for_status()
            try:
                entry = resp.json()
            except ValueError as e:
                raise MalformedResponse(f"Local entry {key} is not JSON: {e}") from e
            if not isinstance(entry, dict):
                raise MalformedResponse(f"Local entry {key} is not a JSON object")
            container.render(entry.get("details") or "")
            return {
                "id": entry.get("id"),
                "strings": entry.get("strings", []),
                "editable": self._editable,
            }

        logger.debug("No local copy for %s", key)
        for connector in self._connectors:
            try:
                descriptor = connector.info(key, container)
            except Exception as e:
                logger.debug("No info found at connector %s: %s", connector.name, e)
                continue
            if descriptor:
                logger.debug("Found info at connector %s: %s", connector.name, descriptor)
                return descriptor

        raise NotFound(f"No entry for {key} in register '{self._register}'")

    def get_record(self, key: str) -> ResultRecord:
        """Return the record from the first remote connector that has one."""
        for connector in self._connectors:
            logger.debug("Get %s record for %s ...", connector.name, key)
            try:
                return connector.get_record(key)
            except Exception as e:
                logger.debug("No record for %s at %s: %s", key, connector.name, e)

        raise NoRecordFound(key)

    def select(self, item: ResultRecord) -> Any:
        """Copy the remote record for *item* into the local register."""
        entry = self.get_record(item.id)

        logger.debug("Posting entry for %s to local register ...", item.id)
        resp = httpx.post(
            self._register_url(item.id),
            json=entry.to_dict(),
            timeout=REQUEST_TIMEOUT,
        )
        if not resp.is_success:
            raise UpstreamRejected(resp.status_code)
        return resp.json()
