"""Airtable-backed user directory over the REST API (async httpx)."""

import logging
from collections.abc import Mapping, Sequence
from typing import Any
from urllib.parse import quote as url_quote

import httpx

from paywall.config import Settings
from paywall.directory.base import UserDirectory
from paywall.directory.fields import Predicate, Sort
from paywall.directory.models import UserRecord, encode_fields
from paywall.errors import DirectoryError, ServerMisconfigured

logger = logging.getLogger(__name__)

PAGE_SIZE = 100  # Airtable maximum


class AirtableDirectory(UserDirectory):
    """User directory stored in one Airtable table."""

    def __init__(
        self,
        api_key: str,
        base_id: str,
        table_name: str = "Users",
        *,
        api_url: str = "https://api.airtable.com/v0",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._configured = bool(api_key and base_id)
        self._table_path = url_quote(table_name, safe="")
        self._client = httpx.AsyncClient(
            base_url=f"{api_url.rstrip('/')}/{base_id}/",
            headers={"Authorization": f"Bearer {api_key}"},
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "AirtableDirectory":
        return cls(
            settings.airtable_api_key,
            settings.airtable_base_id,
            settings.airtable_table_name,
            api_url=settings.airtable_api_url,
            timeout=settings.http_timeout_seconds,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str = "", **kwargs: Any) -> dict[str, Any]:
        if not self._configured:
            raise ServerMisconfigured("AIRTABLE_API_KEY / AIRTABLE_BASE_ID are not set")

        url = self._table_path + (f"/{path}" if path else "")
        try:
            response = await self._client.request(method, url, **kwargs)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                "Airtable %s %s failed with status %s",
                method,
                url,
                e.response.status_code,
            )
            raise DirectoryError(
                f"User directory returned status {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            logger.error("Airtable %s %s failed: %s", method, url, e)
            raise DirectoryError() from e
        except ValueError as e:
            logger.error("Airtable %s %s returned a non-JSON body", method, url)
            raise DirectoryError("User directory returned an unreadable response") from e

    @staticmethod
    def _list_params(
        where: Predicate | None,
        sort: Sequence[Sort],
        max_records: int | None,
    ) -> dict[str, Any]:
        params: dict[str, Any] = {"pageSize": PAGE_SIZE}
        if where is not None:
            params["filterByFormula"] = where.to_formula()
        if max_records is not None:
            params["maxRecords"] = max_records
            params["pageSize"] = min(PAGE_SIZE, max_records)
        for i, s in enumerate(sort):
            params[f"sort[{i}][field]"] = str(s.field)
            params[f"sort[{i}][direction]"] = "desc" if s.descending else "asc"
        return params

    async def list_records(
        self,
        where: Predicate | None = None,
        sort: Sequence[Sort] = (),
        max_records: int | None = None,
    ) -> list[UserRecord]:
        params = self._list_params(where, sort, max_records)
        records: list[UserRecord] = []
        while True:
            page = await self._request("GET", params=params)
            records.extend(UserRecord.from_airtable(r) for r in page.get("records", []))
            offset = page.get("offset")
            if not offset or (max_records is not None and len(records) >= max_records):
                break
            params = {**params, "offset": offset}
        return records

    async def find_one(self, where: Predicate) -> UserRecord | None:
        records = await self.list_records(where, max_records=1)
        return records[0] if records else None

    async def create(self, fields: Mapping[str, Any]) -> UserRecord:
        record = await self._request("POST", json={"fields": encode_fields(fields)})
        logger.info("Created directory record %s", record["id"])
        return UserRecord.from_airtable(record)

    async def update(self, record_id: str, fields: Mapping[str, Any]) -> UserRecord:
        record = await self._request(
            "PATCH", url_quote(record_id, safe=""), json={"fields": encode_fields(fields)}
        )
        return UserRecord.from_airtable(record)

    async def delete(self, record_id: str) -> None:
        await self._request("DELETE", url_quote(record_id, safe=""))
        logger.info("Deleted directory record %s", record_id)
