"""Record store boundary used by the fuzzy search pipeline."""

import logging
from typing import Any, Protocol

from src.core import db_client
from src.core.config import constants


logger = logging.getLogger(__name__)


class RecordStore(Protocol):
    """Storage collaborator contract.

    Implementations execute the caller's filtered scan and re-query it restricted to
    an explicit set of ids. Neither call needs to preserve any particular order for
    the id-restricted query; the search service imposes rank order itself.
    """

    async def list_records(
        self,
        *,
        collection: str,
        filter_query: str = "",
        sort: str = "",
        fields: list[str] | None = None,
        record_ids: list[str] | None = None,
    ) -> list[dict[str, Any]]:
        """Return every record matching the filter (and ids, when given)."""
        ...

    async def get_column_names(self, *, collection: str) -> list[str]:
        """Return the ordered attribute names of a collection."""
        ...


class SQLiteRecordStore:
    """RecordStore backed by the aiosqlite client."""

    def __init__(self, db_path: str | None = None, page_size: int = constants.SCAN_PAGE_SIZE):
        self._db_path = db_path
        self._page_size = page_size

    async def list_records(
        self,
        *,
        collection: str,
        filter_query: str = "",
        sort: str = "",
        fields: list[str] | None = None,
        record_ids: list[str] | None = None,
    ) -> list[dict[str, Any]]:
        """Scan all pages of the filtered set, chunking large id restrictions."""
        if record_ids is None:
            return await self._scan(collection=collection, filter_query=filter_query, sort=sort, fields=fields)

        records: list[dict[str, Any]] = []
        chunk_size = constants.ID_FETCH_CHUNK_SIZE
        for start in range(0, len(record_ids), chunk_size):
            records.extend(
                await self._scan(
                    collection=collection,
                    filter_query=filter_query,
                    sort=sort,
                    fields=fields,
                    record_ids=record_ids[start : start + chunk_size],
                )
            )
        return records

    async def _scan(
        self,
        *,
        collection: str,
        filter_query: str,
        sort: str,
        fields: list[str] | None,
        record_ids: list[str] | None = None,
    ) -> list[dict[str, Any]]:
        records: list[dict[str, Any]] = []
        page = 1
        while True:
            batch = await db_client.list_records(
                collection=collection,
                page=page,
                per_page=self._page_size,
                filter_query=filter_query,
                sort=sort,
                fields=fields,
                record_ids=record_ids,
                db_path=self._db_path,
            )
            records.extend(batch)
            if len(batch) < self._page_size:
                break
            page += 1

        logger.debug("Scanned records", extra={"collection": collection, "count": len(records)})
        return records

    async def get_column_names(self, *, collection: str) -> list[str]:
        return await db_client.get_table_columns(collection=collection, db_path=self._db_path)
