"""Collection schema discovery with a minimal fallback column set."""

import logging

from src.core.config import constants
from src.core.record_store import RecordStore


logger = logging.getLogger(__name__)


async def get_model_columns(*, store: RecordStore, collection: str) -> list[str]:
    """Get the ordered column names of a collection.

    Falls back to the id and timestamp columns when the schema cannot be read or is
    empty, so matched records can still be identified and re-emitted.

    Args:
        store: Record store that knows the collection layout
        collection: Name of the collection

    Returns:
        List of column names
    """
    try:
        columns = await store.get_column_names(collection=collection)
    except Exception as e:
        logger.warning(
            "Schema lookup failed, using fallback columns",
            extra={"collection": collection, "error": str(e)},
        )
        return list(constants.FALLBACK_COLUMNS)

    if not columns:
        logger.warning("Schema lookup returned no columns, using fallback columns", extra={"collection": collection})
        return list(constants.FALLBACK_COLUMNS)

    return list(columns)
