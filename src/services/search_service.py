"""Fuzzy search service: ranks a caller's filtered record set against a search term."""

import contextlib
import logging
from typing import Any

from pydantic import ValidationError

from src.core.config import constants, settings
from src.core.diagnostics import Diagnostics, LoggingDiagnostics, NullDiagnostics
from src.core.errors import InvalidSearchRequestError, classify_search_error
from src.core.fuzzy_match import (
    generate_permutations,
    match_candidates,
    normalize_term,
    order_records,
    rank_record_ids,
    reduce_best_scores,
)
from src.core.logging import span
from src.core.phonetic import PhoneticKey, soundex
from src.core.record_store import RecordStore, SQLiteRecordStore
from src.core.schema import get_model_columns
from src.domain.search import BaseQuery, SearchPlan, SearchRequest


logger = logging.getLogger(__name__)


def _projection(record_columns: list[str], search_columns: list[str]) -> list[str]:
    """Columns fetched during the base scan: id, the schema columns, then the search columns."""
    fields = [constants.ID_FIELD]
    for column in [*record_columns, *search_columns]:
        if column not in fields:
            fields.append(column)
    return fields


def _parse_base_query(base_query: BaseQuery | dict[str, Any]) -> BaseQuery:
    try:
        return BaseQuery.model_validate(base_query)
    except ValidationError as e:
        msg = f"Invalid base query: {e}"
        raise InvalidSearchRequestError(msg) from e


def _build_request(term: str, columns: list[str] | None, debug: bool) -> SearchRequest:
    """Validate the search columns for a non-empty normalized term."""
    try:
        if columns is None:
            return SearchRequest(term=term, debug=debug)
        return SearchRequest(term=term, columns=columns, debug=debug)
    except ValidationError as e:
        msg = f"Invalid search request: {e}"
        raise InvalidSearchRequestError(msg) from e


class FuzzySearchService:
    """Runs the fuzzy search pipeline against a record store.

    The search never raises: malformed input and collaborator failures degrade to an
    empty result. An empty search term returns the base filtered set unchanged.
    """

    def __init__(
        self,
        store: RecordStore | None = None,
        diagnostics: Diagnostics | None = None,
        phonetic_key: PhoneticKey = soundex,
    ):
        self._store = store or SQLiteRecordStore()
        self._diagnostics = diagnostics or NullDiagnostics()
        self._phonetic_key = phonetic_key

    async def search(
        self,
        base_query: BaseQuery | dict[str, Any],
        term: str,
        columns: list[str] | None = None,
        *,
        debug: bool = False,
    ) -> list[dict[str, Any]]:
        """Fuzzy search the base query's records, best matches first.

        Args:
            base_query: The caller's collection, filter and base ordering
            term: Free-text search term
            columns: Columns to search; the first one breaks ranking ties
            debug: Report the search plan and failures to diagnostics

        Returns:
            Ranked full records, the unmodified base set for an empty term, or an
            empty list when nothing matched or the search failed
        """
        debug_enabled = debug or settings.fuzzy_debug_logging
        plan: SearchPlan | None = None

        with span("search_service.search"):
            try:
                base_query = _parse_base_query(base_query)
                if not isinstance(term, str):
                    msg = f"Search term must be a string, got {type(term).__name__}"
                    raise InvalidSearchRequestError(msg)

                # An empty term passes the base set through before columns are looked at
                normalized = normalize_term(term)
                if not normalized:
                    return await self._store.list_records(
                        collection=base_query.collection,
                        filter_query=base_query.filter_query,
                        sort=base_query.sort,
                    )

                request = _build_request(normalized, columns, debug_enabled)

                permutations = generate_permutations(request.term)
                record_columns = await get_model_columns(store=self._store, collection=base_query.collection)

                plan = SearchPlan(
                    collection=base_query.collection,
                    filter_query=base_query.filter_query,
                    term=request.term,
                    permutations=sorted(permutations),
                    columns=request.columns,
                    record_columns=record_columns,
                )
                if request.debug:
                    self._record_plan(plan)

                candidates = await self._store.list_records(
                    collection=base_query.collection,
                    filter_query=base_query.filter_query,
                    sort=base_query.sort,
                    fields=_projection(record_columns, request.columns),
                )

                matches = match_candidates(
                    candidates,
                    request.term,
                    permutations,
                    request.columns,
                    phonetic_key=self._phonetic_key,
                )
                best = reduce_best_scores(matches)
                if not best:
                    logger.info(
                        "Fuzzy search found no matches",
                        extra={"collection": base_query.collection, "term": request.term},
                    )
                    return []

                ranked_ids = rank_record_ids(best, candidates, request.columns[0])

                records = await self._store.list_records(
                    collection=base_query.collection,
                    filter_query=base_query.filter_query,
                    record_ids=ranked_ids,
                )
                results = order_records(records, ranked_ids)

                logger.info(
                    "Fuzzy search completed",
                    extra={
                        "collection": base_query.collection,
                        "term": request.term,
                        "candidate_count": len(candidates),
                        "match_count": len(results),
                    },
                )
                return results
            except Exception as e:
                logger.error(
                    "fuzzy_search_failed",
                    extra={
                        "collection": getattr(base_query, "collection", None),
                        "error": str(e),
                        "error_category": classify_search_error(e).value,
                    },
                )
                if debug_enabled:
                    self._record_failure(e, plan)
                return []

    def _record_plan(self, plan: SearchPlan) -> None:
        with contextlib.suppress(Exception):
            self._diagnostics.record_plan(plan)

    def _record_failure(self, error: Exception, plan: SearchPlan | None) -> None:
        with contextlib.suppress(Exception):
            self._diagnostics.record_failure(error, plan)


async def fuzzy_search(
    base_query: BaseQuery | dict[str, Any],
    term: str,
    columns: list[str] | None = None,
    debug: bool = False,
) -> list[dict[str, Any]]:
    """Fuzzy search the configured SQLite database, logging diagnostics when debug is set."""
    service = FuzzySearchService(store=SQLiteRecordStore(), diagnostics=LoggingDiagnostics())
    return await service.search(base_query, term, columns, debug=debug)
