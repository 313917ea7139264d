"""Async SQLite access for record collections: filtered scans, id lookups and seeding."""

import asyncio
import json
import logging
import re
import threading
from datetime import datetime
from pathlib import Path
from typing import Any

import aiosqlite

from src.core.config import constants, settings


logger = logging.getLogger(__name__)

SqlParam = str | int | float | bool | None

_IDENTIFIER_PATTERN = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")
_COMPARISON_PATTERN = re.compile(r"""^(\w+)\s*(!=|>=|<=|=|>|<|~)\s*(['"])([^'"]*)\3$""")
_SORT_PATTERN = re.compile(r"^([A-Za-z_][A-Za-z0-9_]*)\s*(ASC|DESC)?$", re.IGNORECASE)

_SQL_OPERATORS = {"=": "=", "!=": "!=", ">": ">", "<": "<", ">=": ">=", "<=": "<="}


class DatabaseError(Exception):
    """Raised when a database operation fails."""


class RecordNotFoundError(DatabaseError):
    """Raised when a record cannot be found by ID."""


def _validate_collection_name(collection: str) -> None:
    """Validate that a collection name contains only alphanumeric characters and underscores."""
    if not _IDENTIFIER_PATTERN.match(collection):
        msg = f"Invalid collection name: {collection}. Only alphanumeric characters and underscores are allowed."
        raise ValueError(msg)


def validate_field_name(field: str) -> None:
    """Validate that a field name is a plain SQL identifier."""
    if not isinstance(field, str) or not _IDENTIFIER_PATTERN.match(field):
        msg = f"Invalid field name: {field}. Only alphanumeric characters and underscores are allowed."
        raise ValueError(msg)


def get_db_path(db_path: str | None = None) -> Path:
    """Get the resolved SQLite database file path."""
    return Path(db_path or settings.sqlite_db_path).resolve()


def _row_to_record(columns: list[str], row: tuple) -> dict[str, Any]:
    """Build a record dict, exposing the integer primary key as a string."""
    record = dict(zip(columns, row, strict=True))
    if isinstance(record.get(constants.ID_FIELD), int):
        record[constants.ID_FIELD] = str(record[constants.ID_FIELD])
    return record


def _bind_record_id(record_id: str) -> str | int:
    """Bind numeric string ids as integers so they hit INTEGER primary keys."""
    return int(record_id) if record_id.isdigit() else record_id


# Filter compilation


def _coerce_literal(raw: str) -> SqlParam:
    """Turn a quoted filter literal into the value SQLite compares against."""
    if raw.isdigit():
        return int(raw)
    if raw.replace(".", "", 1).isdigit():
        return float(raw)
    if raw.lower() in ("true", "false"):
        return raw.lower() == "true"
    return raw


def _like_pattern(raw: str) -> str:
    """Substring LIKE pattern with wildcard characters escaped."""
    escaped = raw.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _compile_comparison(expression: str) -> tuple[str, SqlParam]:
    match = _COMPARISON_PATTERN.match(expression)
    if not match:
        msg = f"Invalid filter syntax: {expression}"
        raise ValueError(msg)

    field, op, _quote, raw = match.groups()
    if op == "~":
        return f"{field} LIKE ? ESCAPE '\\'", _like_pattern(raw)
    return f"{field} {_SQL_OPERATORS[op]} ?", _coerce_literal(raw)


def _split_top_level(expression: str, separator: str) -> list[str]:
    """Split on a separator occurring outside parentheses."""
    parts = []
    depth = 0
    start = 0
    index = 0
    while index < len(expression):
        char = expression[index]
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        elif depth == 0 and expression.startswith(separator, index):
            parts.append(expression[start:index].strip())
            index += len(separator)
            start = index
            continue
        index += 1
    parts.append(expression[start:].strip())
    return [part for part in parts if part]


def parse_filter(filter_query: str) -> tuple[str, list[SqlParam]]:
    """Compile a filter expression into a SQL condition and its parameters.

    Comparisons are joined with ``&&``; a parenthesized group joins comparisons
    with ``||``. Values are always quoted, for example::

        category = "computers" && (name ~ "pro" || stock > "0")

    ``~`` is a case-insensitive substring test. Anything else raises ValueError.
    """
    if not filter_query:
        return "", []

    conditions: list[str] = []
    params: list[SqlParam] = []

    for term in _split_top_level(filter_query, "&&"):
        if term.startswith("(") and term.endswith(")"):
            alternatives = [_compile_comparison(part) for part in _split_top_level(term[1:-1], "||")]
            if not alternatives:
                msg = f"Invalid filter syntax: {term}"
                raise ValueError(msg)
            conditions.append(f"({' OR '.join(condition for condition, _ in alternatives)})")
            params.extend(param for _, param in alternatives)
        else:
            condition, param = _compile_comparison(term)
            conditions.append(condition)
            params.append(param)

    return " AND ".join(conditions), params


def _build_where_clause(filter_query: str, record_ids: list[str] | None) -> tuple[str, list[SqlParam]]:
    """Combine the caller's filter with an optional id restriction."""
    conditions = []
    params: list[SqlParam] = []

    if filter_query:
        filter_clause, filter_params = parse_filter(filter_query)
        conditions.append(f"({filter_clause})")
        params.extend(filter_params)

    if record_ids is not None:
        placeholders = ", ".join("?" for _ in record_ids)
        conditions.append(f"{constants.ID_FIELD} IN ({placeholders})")
        params.extend(_bind_record_id(record_id) for record_id in record_ids)

    if not conditions:
        return "", params
    return f"WHERE {' AND '.join(conditions)}", params


def _order_by(sort: str) -> str:
    """Translate ``-field`` or ``field [ASC|DESC]`` into an ORDER BY clause.

    Ascending id is always the last key so LIMIT/OFFSET pages stay stable over ties.
    """
    stripped = sort.strip()
    field, direction = constants.ID_FIELD, "ASC"
    if stripped.startswith("-") and _IDENTIFIER_PATTERN.match(stripped[1:]):
        field, direction = stripped[1:], "DESC"
    elif match := _SORT_PATTERN.match(stripped):
        field, direction = match.group(1), (match.group(2) or "ASC").upper()
    elif stripped:
        logger.warning("Invalid sort parameter, using default", extra={"sort": sort})

    if field == constants.ID_FIELD:
        return f"{field} {direction}"
    return f"{field} {direction}, {constants.ID_FIELD} ASC"


# Connections are cached per (thread, event loop, database file)

_db_connections: dict[tuple[int, int, str], aiosqlite.Connection] = {}
_db_lock = asyncio.Lock()


def _connection_key(db_path: str | None) -> tuple[int, int, str]:
    return (threading.get_ident(), id(asyncio.get_running_loop()), str(get_db_path(db_path)))


async def get_connection(*, db_path: str | None = None) -> aiosqlite.Connection:
    """Get or create the cached connection for the current thread, loop, and db path."""
    key = _connection_key(db_path)
    conn = _db_connections.get(key)
    if conn is not None:
        return conn

    async with _db_lock:
        if key in _db_connections:
            return _db_connections[key]

        path = Path(key[2])
        path.parent.mkdir(parents=True, exist_ok=True)

        conn = await aiosqlite.connect(str(path))
        await conn.execute("PRAGMA journal_mode = WAL")
        _db_connections[key] = conn

        logger.info("Opened SQLite connection", extra={"db_path": key[2], "thread_id": key[0], "loop_id": key[1]})
        return conn


async def close_connection(*, db_path: str | None = None) -> None:
    """Close the cached connection for the current thread, loop, and db path, if any."""
    key = _connection_key(db_path)
    if key not in _db_connections:
        return

    try:
        async with _db_lock:
            conn = _db_connections.pop(key, None)
            if conn is not None:
                await conn.close()
                logger.info("Closed SQLite connection", extra={"db_path": key[2]})
    except Exception as e:
        logger.warning("Error closing SQLite connection", extra={"db_path": key[2], "error": str(e)})


async def create_record(*, collection: str, data: dict[str, Any], db_path: str | None = None) -> dict[str, Any]:
    """Insert a new record and return it as stored, id included."""
    try:
        _validate_collection_name(collection)
        for field in data:
            validate_field_name(field)
        conn = await get_connection(db_path=db_path)

        columns = list(data)
        values = [
            value.isoformat()
            if isinstance(value, datetime)
            else json.dumps(value)
            if isinstance(value, dict | list)
            else value
            for value in data.values()
        ]

        query = f"INSERT INTO {collection} ({', '.join(columns)}) VALUES ({', '.join('?' for _ in columns)})"  # noqa: S608 - identifiers are validated
        cursor = await conn.execute(query, values)
        await conn.commit()

        record = await get_record(collection=collection, record_id=str(cursor.lastrowid), db_path=db_path)
        logger.info("Created record", extra={"collection": collection, "record_id": record[constants.ID_FIELD]})
        return record
    except DatabaseError:
        raise
    except Exception as e:
        logger.error("create_record_failed", extra={"collection": collection, "error": str(e)})
        msg = f"Failed to create record in {collection}: {e}"
        raise DatabaseError(msg) from e


async def get_record(*, collection: str, record_id: str, db_path: str | None = None) -> dict[str, Any]:
    """Fetch a single record by ID, raising RecordNotFoundError if not found."""
    try:
        _validate_collection_name(collection)
        conn = await get_connection(db_path=db_path)

        query = f"SELECT * FROM {collection} WHERE {constants.ID_FIELD} = ?"  # noqa: S608 - collection is validated
        cursor = await conn.execute(query, (_bind_record_id(record_id),))
        row = await cursor.fetchone()
    except Exception as e:
        logger.error("get_record_failed", extra={"collection": collection, "record_id": record_id, "error": str(e)})
        msg = f"Failed to get record from {collection}: {e}"
        raise DatabaseError(msg) from e

    if row is None:
        msg = f"Record not found in {collection}: {record_id}"
        raise RecordNotFoundError(msg)
    return _row_to_record([description[0] for description in cursor.description], row)


async def list_records(
    *,
    collection: str,
    page: int = 1,
    per_page: int = 50,
    filter_query: str = "",
    sort: str = "",
    fields: list[str] | None = None,
    record_ids: list[str] | None = None,
    db_path: str | None = None,
) -> list[dict[str, Any]]:
    """List one page of records.

    Args:
        collection: Table to read
        page: 1-based page number
        per_page: Page size
        filter_query: Filter expression understood by parse_filter
        sort: ``-field`` or ``field [ASC|DESC]``; defaults to ascending id
        fields: Columns to project; all columns when omitted
        record_ids: Restrict the result to these ids, on top of the filter
        db_path: Database file; defaults to settings.sqlite_db_path

    Raises:
        DatabaseError: On invalid identifiers, bad filter syntax or SQLite errors
    """
    try:
        _validate_collection_name(collection)
        for field in fields or []:
            validate_field_name(field)
        conn = await get_connection(db_path=db_path)

        where_clause, params = _build_where_clause(filter_query, record_ids)
        select_clause = ", ".join(fields) if fields else "*"

        query = f"SELECT {select_clause} FROM {collection} {where_clause} ORDER BY {_order_by(sort)} LIMIT ? OFFSET ?"  # noqa: S608 - identifiers are validated
        cursor = await conn.execute(query, [*params, per_page, (page - 1) * per_page])
        rows = await cursor.fetchall()

        columns = [description[0] for description in cursor.description]
        records = [_row_to_record(columns, row) for row in rows]

        logger.debug("Listed records", extra={"collection": collection, "page": page, "count": len(records)})
        return records
    except Exception as e:
        logger.error("list_records_failed", extra={"collection": collection, "error": str(e)})
        msg = f"Failed to list records from {collection}: {e}"
        raise DatabaseError(msg) from e


async def get_table_columns(*, collection: str, db_path: str | None = None) -> list[str]:
    """Return the ordered column names of a table (empty if the table does not exist)."""
    try:
        _validate_collection_name(collection)
        conn = await get_connection(db_path=db_path)

        cursor = await conn.execute(f"PRAGMA table_info({collection})")
        rows = await cursor.fetchall()
    except Exception as e:
        logger.error("get_table_columns_failed", extra={"collection": collection, "error": str(e)})
        msg = f"Failed to read columns of {collection}: {e}"
        raise DatabaseError(msg) from e

    # (cid, name, type, notnull, dflt_value, pk)
    return [row[1] for row in rows]
