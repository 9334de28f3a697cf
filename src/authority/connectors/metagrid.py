"""Metagrid search API connector (persons from Swiss historical databases)."""

import logging
import re
from typing import Any

import httpx

from authority.config import METAGRID_SEARCH_URL, REQUEST_TIMEOUT
from authority.connectors.base import BaseConnector, ResultRecord, ResultSet
from authority.display import Container
from authority.errors import MalformedResponse, NotFound

logger = logging.getLogger("authority")


class MetagridConnector(BaseConnector):
    """Connector for api.metagrid.ch. Ids are ``{provider-slug}-{identifier}``."""

    def __init__(self, register: str, search_url: str = METAGRID_SEARCH_URL) -> None:
        super().__init__(register)
        self._search_url = search_url

    @property
    def name(self) -> str:
        return self._register

    def query(self, key: str) -> ResultSet:
        """Search Metagrid resources. Punctuation is dropped from the query."""
        query = re.sub(r"[^\w\s]+", "", key)
        resp = httpx.get(
            self._search_url,
            params={"query": query},
            timeout=REQUEST_TIMEOUT,
        )
        resp.raise_for_status()

        try:
            data = resp.json()
            items = [self._to_record(item) for item in data.get("resources", [])]
            total = data.get("meta", {}).get("total", len(items))
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise MalformedResponse(f"Unusable metagrid search reply for '{query}': {e}") from e

        logger.debug("Search '%s' on metagrid returned %d resources", query, len(items))
        return ResultSet(total_items=total, items=items)

    def info(self, key: str, container: Container) -> dict[str, Any]:
        """Render a short HTML card for a Metagrid resource."""
        if not key:
            return {}
        item = self._lookup(key)

        try:
            meta = item.get("metadata", {})
            name = _full_name(meta)
            card = (
                f'<h3 class="label">'
                f'<a href="https://{item["link"]["uri"]}" target="_blank">{name}</a>'
                f"</h3>"
                f"<p>{_life_dates(meta)}</p>"
            )
            descriptor = {
                "id": f'{item["provider"]["slug"]}-{item["identifier"]}',
                "strings": [name],
            }
        except (KeyError, TypeError, AttributeError) as e:
            raise MalformedResponse(f"Unusable metagrid resource for {key}: {e}") from e

        container.render(card)
        return descriptor

    def get_record(self, key: str) -> ResultRecord:
        item = self._lookup(key)
        try:
            return self._to_record(item)
        except (KeyError, TypeError, AttributeError) as e:
            raise MalformedResponse(f"Unusable metagrid resource for {key}: {e}") from e

    def _lookup(self, key: str) -> dict:
        """Fetch the single resource identified by a ``slug-identifier`` key."""
        slug, identifier = _split_key(key)
        resp = httpx.get(
            self._search_url,
            params={"slug": slug, "query": identifier},
            timeout=REQUEST_TIMEOUT,
        )
        resp.raise_for_status()
        try:
            resources = resp.json().get("resources", [])
        except (ValueError, AttributeError) as e:
            raise MalformedResponse(f"Unusable metagrid reply for {key}: {e}") from e
        if not resources:
            raise NotFound(f"No metagrid resource for {key}")
        return resources[0]

    def _to_record(self, item: dict) -> ResultRecord:
        slug = item["provider"]["slug"]
        meta = item.get("metadata", {})
        return ResultRecord(
            register=self._register,
            id=f'{slug}-{item["identifier"]}',
            label=_full_name(meta),
            details=_life_dates(meta),
            link=item.get("link", {}).get("uri", ""),
            provider=slug,
        )


def _split_key(key: str) -> tuple[str, str]:
    """Split ``hls-123`` into ``("hls", "123")`` on the first hyphen."""
    slug, sep, identifier = key.partition("-")
    if not sep:
        raise NotFound(f"'{key}' is not a metagrid id")
    return slug, identifier


def _full_name(meta: dict) -> str:
    return f'{meta.get("first_name", "")} {meta.get("last_name", "")}'.strip()


def _life_dates(meta: dict) -> str:
    return f'{meta.get("birth_date", "")} - {meta.get("death_date", "")}'
