"""SQLite document store wrapper with CRUD operations."""

import asyncio
import json
import logging
import re
import threading
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any

import aiosqlite

from src.core.config import settings


logger = logging.getLogger(__name__)


class DatabaseError(RuntimeError):
    """Storage operation failed."""


class RecordNotFoundError(KeyError):
    """No record with the requested id exists."""


def _validate_collection_name(collection: str) -> None:
    """Validate that a collection name contains only alphanumeric characters and underscores."""
    if not re.match(r"^[a-zA-Z_][a-zA-Z0-9_]*$", collection):
        msg = f"Invalid collection name: {collection}. Only alphanumeric characters and underscores are allowed."
        raise ValueError(msg)


def sanitize_param(value: str | int | float | bool | None) -> str:
    """Escape a value for safe embedding in filter queries via json.dumps."""
    return json.dumps(str(value), ensure_ascii=False)[1:-1]


def _convert_record_ids(record: dict[str, Any]) -> dict[str, Any]:
    """Convert integer ID and foreign key fields to strings for Pydantic compatibility."""
    converted = record.copy()
    for key, value in converted.items():
        if isinstance(value, int) and not isinstance(value, bool) and (key == "id" or key.endswith("_id")):
            converted[key] = str(value)
    return converted


def _row_to_record(cursor: aiosqlite.Cursor, row: tuple[Any, ...]) -> dict[str, Any]:
    columns = [description[0] for description in cursor.description]
    return _convert_record_ids(dict(zip(columns, row, strict=True)))


def _to_db_value(value: Any) -> Any:
    """Serialize a Python value into something sqlite can bind."""
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict | list):
        return json.dumps(value)
    return value


def get_db_path(db_path: str | None = None) -> Path:
    """Get the resolved SQLite database file path."""
    path_str = db_path or settings.sqlite_db_path
    return Path(path_str).resolve()


def is_record_id(value: str) -> bool:
    """True for ids sqlite could have assigned: ASCII digits only."""
    return value.isascii() and value.isdigit()


def _parse_value(value: str) -> str | int | float | bool | None:
    """Parse a string value to the appropriate Python type for SQLite."""
    if is_record_id(value):
        return int(value)
    if is_record_id(value.replace(".", "", 1)):
        return float(value)

    if value.lower() == "true":
        return True
    if value.lower() == "false":
        return False

    return value


FilterValue = str | int | float | bool | None

_SQL_OPERATORS = frozenset({"=", "!=", ">", "<", ">=", "<="})

_COMPARISON = re.compile(r"""\s*(\w+)\s*(!=|>=|<=|=|>|<)\s*(['"])((?:\\.|(?!\3).)*)\3\s*""", re.DOTALL)

_ESCAPES = {"b": "\b", "f": "\f", "n": "\n", "r": "\r", "t": "\t"}


def _unescape(raw: str) -> str:
    """Undo the backslash escaping applied by ``sanitize_param``."""

    def replace(match: re.Match[str]) -> str:
        escape = match.group(1)
        if escape.startswith("u"):
            return chr(int(escape[1:], 16))
        return _ESCAPES.get(escape, escape)

    return re.sub(r"\\(u[0-9a-fA-F]{4}|.)", replace, raw)


def _get_sql_operator(op: str) -> str:
    """Map filter operator to SQL operator."""
    if op not in _SQL_OPERATORS:
        msg = f"Unsupported operator: {op}"
        raise ValueError(msg)
    return op


def parse_comparisons(filter_query: str) -> list[tuple[str, str, FilterValue]]:
    """Split ``a = "x" && b >= "y"`` into ``(field, operator, value)`` triples.

    Quoted values may contain escaped quotes and ``&&``.
    """
    comparisons: list[tuple[str, str, FilterValue]] = []
    pos = 0
    while True:
        match = _COMPARISON.match(filter_query, pos)
        if not match:
            msg = f"Invalid filter syntax: {filter_query}"
            raise ValueError(msg)

        field, op, _, raw_value = match.groups()
        comparisons.append((field, _get_sql_operator(op), _parse_value(_unescape(raw_value))))

        pos = match.end()
        if pos == len(filter_query):
            return comparisons
        if not filter_query.startswith("&&", pos):
            msg = f"Invalid filter syntax: {filter_query}"
            raise ValueError(msg)
        pos += 2


def parse_filter(filter_query: str) -> tuple[str, list[FilterValue]]:
    """Parse filter syntax into a SQL WHERE clause and parameter list."""
    if not filter_query:
        return "", []

    comparisons = parse_comparisons(filter_query)
    conditions = [f"{field} {op} ?" for field, op, _ in comparisons]
    params = [value for _, _, value in comparisons]
    return " AND ".join(conditions), params


def _safe_sort(sort: str) -> str:
    """Only allow ``column [ASC|DESC]`` in ORDER BY."""
    if sort and re.match(r"^[A-Za-z_][A-Za-z0-9_]*\s*(ASC|DESC)?$", sort.strip(), re.IGNORECASE):
        return sort.strip()
    if sort:
        logger.warning("Invalid sort parameter, using default", extra={"sort": sort})
    return "id ASC"


_db_connections: dict[tuple[int, int, str], aiosqlite.Connection] = {}
_db_lock = asyncio.Lock()


async def get_connection(*, db_path: str | None = None) -> aiosqlite.Connection:
    """Get or create a cached connection for the current thread, loop, and db path."""
    thread_id = threading.get_ident()
    loop_id = id(asyncio.get_running_loop())
    path = get_db_path(db_path)
    cache_key = (thread_id, loop_id, str(path))

    if cache_key in _db_connections:
        return _db_connections[cache_key]

    async with _db_lock:
        # Double-check after acquiring lock
        if cache_key in _db_connections:
            return _db_connections[cache_key]

        path.parent.mkdir(parents=True, exist_ok=True)

        conn = await aiosqlite.connect(str(path))
        await conn.execute("PRAGMA foreign_keys = ON")
        await conn.execute("PRAGMA journal_mode = WAL")

        _db_connections[cache_key] = conn

        logger.info(
            "Created new SQLite connection",
            extra={"db_path": str(path), "thread_id": thread_id, "loop_id": loop_id},
        )
        return conn


async def close_connection(*, db_path: str | None = None) -> None:
    """Close the cached SQLite connection for the current thread, loop, and db path."""
    thread_id = threading.get_ident()
    loop_id = id(asyncio.get_running_loop())
    path = get_db_path(db_path)
    cache_key = (thread_id, loop_id, str(path))

    async with _db_lock:
        conn = _db_connections.pop(cache_key, None)
        if conn is None:
            return
        await conn.close()
        logger.info("Closed SQLite connection", extra={"db_path": str(path)})


async def init_db(*, db_path: str | None = None) -> None:
    """Initialize the database schema by delegating to schema.init_db()."""
    from src.core import schema

    await schema.init_db(db_path=db_path)


async def _insert(conn: aiosqlite.Connection, collection: str, data: dict[str, Any]) -> int:
    columns = list(data.keys())
    columns_str = ", ".join(columns)
    placeholders_str = ", ".join("?" for _ in columns)
    values = [_to_db_value(data[key]) for key in columns]

    query = f"INSERT INTO {collection} ({columns_str}) VALUES ({placeholders_str})"  # noqa: S608 - collection is validated
    cursor = await conn.execute(query, values)
    return cursor.lastrowid


async def create_record(*, collection: str, data: dict[str, Any]) -> dict[str, Any]:
    """Insert a new record and return it with its assigned id."""
    try:
        _validate_collection_name(collection)
        conn = await get_connection()

        record_id = await _insert(conn, collection, data)
        await conn.commit()

        result = await get_record(collection=collection, record_id=str(record_id))

        logger.info("Created record", extra={"collection": collection, "record_id": record_id})
        return result
    except Exception as e:
        logger.error("create_record_failed", extra={"collection": collection, "error": str(e)})
        msg = f"Failed to create record in {collection}: {e}"
        raise DatabaseError(msg) from e


async def create_records(*, collection: str, records: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Insert many records in one transaction and return the stored records.

    Either every row is committed or none is.
    """
    if not records:
        return []

    try:
        _validate_collection_name(collection)
        conn = await get_connection()

        record_ids = []
        try:
            for data in records:
                record_ids.append(await _insert(conn, collection, data))
            await conn.commit()
        except Exception:
            await conn.rollback()
            raise

        placeholders = ", ".join("?" for _ in record_ids)
        query = f"SELECT * FROM {collection} WHERE id IN ({placeholders}) ORDER BY id ASC"  # noqa: S608 - collection is validated
        cursor = await conn.execute(query, record_ids)
        rows = await cursor.fetchall()
        created = [_row_to_record(cursor, row) for row in rows]

        logger.info("Created records", extra={"collection": collection, "count": len(created)})
        return created
    except Exception as e:
        logger.error("create_records_failed", extra={"collection": collection, "error": str(e)})
        msg = f"Failed to create records in {collection}: {e}"
        raise DatabaseError(msg) from e


async def get_record(*, collection: str, record_id: str) -> dict[str, Any]:
    """Fetch a single record by ID, raising RecordNotFoundError if not found."""
    try:
        _validate_collection_name(collection)
        conn = await get_connection()

        query = f"SELECT * FROM {collection} WHERE id = ?"  # noqa: S608 - collection is validated
        cursor = await conn.execute(query, (_parse_value(record_id),))
        row = await cursor.fetchone()

        if row is None:
            msg = f"Record not found in {collection}: {record_id}"
            raise RecordNotFoundError(msg)

        logger.debug("Retrieved record", extra={"collection": collection, "record_id": record_id})
        return _row_to_record(cursor, row)
    except RecordNotFoundError:
        raise
    except Exception as e:
        logger.error("get_record_failed", extra={"collection": collection, "record_id": record_id, "error": str(e)})
        msg = f"Failed to get record from {collection}: {e}"
        raise DatabaseError(msg) from e


async def update_record(*, collection: str, record_id: str, data: dict[str, Any]) -> dict[str, Any]:
    """Update a record by ID and return the updated record. Stamps ``updated_at``."""
    if not data:
        msg = "Empty update payload"
        raise ValueError(msg)

    data = {**data, "updated_at": datetime.now(UTC)}

    try:
        _validate_collection_name(collection)
        conn = await get_connection()

        set_clause = ", ".join(f"{key} = ?" for key in data)
        values = [_to_db_value(val) for val in data.values()]
        values.append(_parse_value(record_id))

        query = f"UPDATE {collection} SET {set_clause} WHERE id = ?"  # noqa: S608 - collection is validated
        cursor = await conn.execute(query, values)
        await conn.commit()

        if cursor.rowcount == 0:
            msg = f"Record not found in {collection}: {record_id}"
            raise RecordNotFoundError(msg)

        logger.info("Updated record", extra={"collection": collection, "record_id": record_id})
        return await get_record(collection=collection, record_id=record_id)
    except RecordNotFoundError:
        raise
    except Exception as e:
        logger.error("update_record_failed", extra={"collection": collection, "record_id": record_id, "error": str(e)})
        msg = f"Failed to update record in {collection}: {e}"
        raise DatabaseError(msg) from e


async def get_full_list(
    *,
    collection: str,
    filter_query: str = "",
    sort: str = "",
) -> list[dict[str, Any]]:
    """List every record matching the filter, without pagination."""
    try:
        _validate_collection_name(collection)
        conn = await get_connection()

        where_clause, params = parse_filter(filter_query)
        if where_clause:
            where_clause = f"WHERE {where_clause}"

        query = f"SELECT * FROM {collection} {where_clause} ORDER BY {_safe_sort(sort)}"  # noqa: S608 - collection is validated
        cursor = await conn.execute(query, params)
        rows = await cursor.fetchall()
        records = [_row_to_record(cursor, row) for row in rows]

        logger.debug("Listed records", extra={"collection": collection, "count": len(records)})
        return records
    except Exception as e:
        logger.error("get_full_list_failed", extra={"collection": collection, "error": str(e)})
        msg = f"Failed to list records from {collection}: {e}"
        raise DatabaseError(msg) from e


async def get_first_record(*, collection: str, filter_query: str) -> dict[str, Any] | None:
    """Return the first record matching the filter, or None."""
    try:
        _validate_collection_name(collection)
        conn = await get_connection()

        where_clause, params = parse_filter(filter_query)

        if where_clause:
            query = f"SELECT * FROM {collection} WHERE {where_clause} LIMIT 1"  # noqa: S608 - collection is validated
        else:
            query = f"SELECT * FROM {collection} LIMIT 1"  # noqa: S608 - collection is validated

        cursor = await conn.execute(query, params)
        row = await cursor.fetchone()

        if row is None:
            return None

        return _row_to_record(cursor, row)
    except Exception as e:
        logger.error(
            "get_first_record_failed", extra={"collection": collection, "filter_query": filter_query, "error": str(e)}
        )
        msg = f"Failed to get first record from {collection}: {e}"
        raise DatabaseError(msg) from e
