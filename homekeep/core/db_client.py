"""Async SQLite access for tasks and occurrences.

Records are plain dicts. Integer keys come back as strings so they validate
into the string ``id`` / ``*_id`` fields of the domain models.
"""

import asyncio
import logging
import re
import threading
from datetime import date, datetime
from pathlib import Path
from typing import Any

import aiosqlite

from homekeep.core.config import constants, settings
from homekeep.core.errors import DuplicateRecordError, StaleRecordError


logger = logging.getLogger(__name__)

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_FILTER_COMPARISON = re.compile(r"""(\w+)\s*(!=|>=|<=|=|>|<)\s*(['"])([^'"]*)\3""")
_SORT_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*\s*(ASC|DESC)?$", re.IGNORECASE)
_NOW_SQL = "strftime('%Y-%m-%dT%H:%M:%fZ', 'now')"


def _check_collection(collection: str) -> None:
    if not _IDENTIFIER.match(collection):
        msg = f"Invalid collection name: {collection!r}"
        raise ValueError(msg)


def sanitize_param(value: str | int | bool | None) -> str:
    """Strip quote characters so a value can be embedded in a filter expression."""
    return re.sub(r"['\"\\]", "", str(value))


def _stringify_keys(record: dict[str, Any]) -> dict[str, Any]:
    return {
        key: str(value) if isinstance(value, int) and (key == "id" or key.endswith("_id")) else value
        for key, value in record.items()
    }


def _row_to_record(cursor: aiosqlite.Cursor, row: tuple) -> dict[str, Any]:
    columns = [column[0] for column in cursor.description]
    return _stringify_keys(dict(zip(columns, row, strict=True)))


def _to_db_value(value: Any) -> Any:
    if isinstance(value, datetime | date):
        return value.isoformat()
    return value


def _storage_error(action: str, collection: str, error: Exception, **context: object) -> RuntimeError:
    logger.error(f"{action}_failed", extra={"collection": collection, "error": str(error), **context})
    if isinstance(error, aiosqlite.IntegrityError) and "UNIQUE" in str(error):
        return DuplicateRecordError(f"{action} on {collection} failed: {error}")
    if isinstance(error, aiosqlite.OperationalError) and "no such table" in str(error):
        return RuntimeError(f"Collection {collection!r} is missing; run init_db() first")
    return RuntimeError(f"{action} on {collection} failed: {error}")


def get_db_path(db_path: str | None = None) -> Path:
    """Absolute path of the database file (``settings.sqlite_db_path`` by default)."""
    return Path(db_path or settings.sqlite_db_path).resolve()


def _parse_value(value: str) -> str | int:
    return int(value) if value.isdigit() else value


def _row_id(collection: str, record_id: str) -> int:
    if not str(record_id).isdigit():
        msg = f"No {collection} record with id {record_id}"
        raise KeyError(msg)
    return int(record_id)


def parse_filter(filter_query: str) -> tuple[str, list[str | int]]:
    """Parse ``field = "value" && other != "value"`` into a WHERE clause and parameters.

    Raises:
        ValueError: If any condition is not ``field <op> "literal"``
    """
    if not filter_query:
        return "", []

    conditions = []
    params: list[str | int] = []

    for raw_part in filter_query.split("&&"):
        match = _FILTER_COMPARISON.fullmatch(raw_part.strip())
        if not match:
            msg = f"Invalid filter syntax: {raw_part.strip()}"
            raise ValueError(msg)

        field, op, _, literal = match.groups()
        conditions.append(f"{field} {op} ?")
        params.append(_parse_value(literal))

    return " AND ".join(conditions), params


def _order_by(sort: str) -> str:
    if not sort:
        return "id ASC"
    if not _SORT_PATTERN.match(sort.strip()):
        logger.warning("Ignoring invalid sort", extra={"sort": sort})
        return "id ASC"
    return f"{sort.strip()}, id ASC"


# One connection per (thread, event loop, file)
_connections: dict[tuple[int, int, str], aiosqlite.Connection] = {}
_connections_lock = asyncio.Lock()


def _connection_key(db_path: str | None) -> tuple[int, int, str]:
    return (threading.get_ident(), id(asyncio.get_running_loop()), str(get_db_path(db_path)))


async def get_connection(*, db_path: str | None = None) -> aiosqlite.Connection:
    """Return the cached connection for this thread, loop and file, opening it on first use."""
    key = _connection_key(db_path)
    if key in _connections:
        return _connections[key]

    async with _connections_lock:
        if key in _connections:
            return _connections[key]

        path = Path(key[2])
        path.parent.mkdir(parents=True, exist_ok=True)

        conn = await aiosqlite.connect(str(path))
        await conn.execute("PRAGMA foreign_keys = ON")
        await conn.execute("PRAGMA journal_mode = WAL")
        await conn.execute("PRAGMA busy_timeout = 5000")
        _connections[key] = conn

        logger.info("Opened SQLite connection", extra={"db_path": str(path)})
        return conn


async def close_connection(*, db_path: str | None = None) -> None:
    """Close the cached connection for this thread, loop and file, if any."""
    key = _connection_key(db_path)

    async with _connections_lock:
        conn = _connections.pop(key, None)
        if conn is None:
            return
        try:
            await conn.close()
        except Exception as e:
            logger.warning("Error closing SQLite connection", extra={"db_path": key[2], "error": str(e)})
        else:
            logger.info("Closed SQLite connection", extra={"db_path": key[2]})


async def create_record(*, collection: str, data: dict[str, Any]) -> dict[str, Any]:
    """Insert ``data`` and return the stored row, defaults included.

    Raises:
        RuntimeError: On any database error, constraint violations included
    """
    try:
        _check_collection(collection)
        conn = await get_connection()

        columns = ", ".join(data)
        placeholders = ", ".join("?" for _ in data)
        query = f"INSERT INTO {collection} ({columns}) VALUES ({placeholders})"  # noqa: S608 - collection is validated
        cursor = await conn.execute(query, [_to_db_value(value) for value in data.values()])
        await conn.commit()

        record = await get_record(collection=collection, record_id=str(cursor.lastrowid))
        logger.debug("Inserted row", extra={"collection": collection, "record_id": record["id"]})
        return record
    except Exception as e:
        raise _storage_error("create_record", collection, e) from e


async def create_records(*, collection: str, rows: list[dict[str, Any]]) -> int:
    """Insert ``rows`` (all with the same keys) in a single transaction.

    Either every row is stored or none is.

    Returns:
        Number of rows inserted

    Raises:
        RuntimeError: On any database error; nothing is committed
    """
    if not rows:
        return 0

    try:
        _check_collection(collection)
        conn = await get_connection()

        columns = list(rows[0])
        column_sql = ", ".join(columns)
        placeholders = ", ".join("?" for _ in columns)
        query = f"INSERT INTO {collection} ({column_sql}) VALUES ({placeholders})"  # noqa: S608 - collection is validated
        try:
            await conn.executemany(query, [[_to_db_value(row[column]) for column in columns] for row in rows])
        except Exception:
            await conn.rollback()
            raise
        await conn.commit()

        logger.debug("Inserted rows", extra={"collection": collection, "count": len(rows)})
        return len(rows)
    except Exception as e:
        raise _storage_error("create_records", collection, e, count=len(rows)) from e


async def get_record(*, collection: str, record_id: str) -> dict[str, Any]:
    """Fetch one row by id.

    Raises:
        KeyError: If no row has that id
        RuntimeError: On any other database error
    """
    try:
        _check_collection(collection)
        conn = await get_connection()

        query = f"SELECT * FROM {collection} WHERE id = ?"  # noqa: S608 - collection is validated
        async with conn.execute(query, (_row_id(collection, record_id),)) as cursor:
            row = await cursor.fetchone()
            if row is None:
                msg = f"No {collection} record with id {record_id}"
                raise KeyError(msg)
            return _row_to_record(cursor, row)
    except KeyError:
        raise
    except Exception as e:
        raise _storage_error("get_record", collection, e, record_id=record_id) from e


async def update_record(
    *,
    collection: str,
    record_id: str,
    data: dict[str, Any],
    expected: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Apply ``data`` to one row, bump its ``updated`` stamp and return the row.

    With ``expected``, the write only happens while each of those columns still
    holds the given value, checked in the same statement.

    Raises:
        ValueError: If ``data`` is empty
        KeyError: If no row has that id
        StaleRecordError: If the row exists but no longer matches ``expected``
        RuntimeError: On any other database error
    """
    if not data:
        msg = "Empty update payload"
        raise ValueError(msg)

    try:
        _check_collection(collection)
        conn = await get_connection()

        assignments = ", ".join(f"{key} = ?" for key in data)
        guards = "".join(f" AND {key} = ?" for key in expected or {})
        query = f"UPDATE {collection} SET {assignments}, updated = {_NOW_SQL} WHERE id = ?{guards}"  # noqa: S608 - collection is validated
        params = [
            *(_to_db_value(value) for value in data.values()),
            _row_id(collection, record_id),
            *(_to_db_value(value) for value in (expected or {}).values()),
        ]
        cursor = await conn.execute(query, params)
        await conn.commit()

        if cursor.rowcount == 0:
            if expected:
                # Missing rows still surface as KeyError
                await get_record(collection=collection, record_id=record_id)
                raise StaleRecordError(collection, record_id, expected)
            msg = f"No {collection} record with id {record_id}"
            raise KeyError(msg)

        logger.debug("Updated row", extra={"collection": collection, "record_id": record_id, "fields": list(data)})
        return await get_record(collection=collection, record_id=record_id)
    except (KeyError, StaleRecordError):
        raise
    except Exception as e:
        raise _storage_error("update_record", collection, e, record_id=record_id) from e


async def list_records(
    *,
    collection: str,
    page: int = 1,
    per_page: int = 50,
    filter_query: str = "",
    sort: str = "",
) -> list[dict[str, Any]]:
    """Return one page of rows matching ``filter_query``, ordered by ``sort`` then id.

    Raises:
        RuntimeError: On a malformed filter or any database error
    """
    try:
        _check_collection(collection)
        conn = await get_connection()

        where, params = parse_filter(filter_query)
        where_sql = f"WHERE {where}" if where else ""
        query = f"SELECT * FROM {collection} {where_sql} ORDER BY {_order_by(sort)} LIMIT ? OFFSET ?"  # noqa: S608 - collection is validated

        async with conn.execute(query, [*params, per_page, (page - 1) * per_page]) as cursor:
            rows = await cursor.fetchall()
            return [_row_to_record(cursor, row) for row in rows]
    except Exception as e:
        raise _storage_error("list_records", collection, e) from e


async def list_all_records(*, collection: str, filter_query: str = "", sort: str = "") -> list[dict[str, Any]]:
    """Walk every page of ``list_records`` and return the concatenated result."""
    per_page = constants.DEFAULT_PER_PAGE_LIMIT
    page = 1
    records: list[dict[str, Any]] = []

    while True:
        batch = await list_records(
            collection=collection,
            page=page,
            per_page=per_page,
            filter_query=filter_query,
            sort=sort,
        )
        records.extend(batch)
        if len(batch) < per_page:
            return records
        page += 1


async def get_first_record(*, collection: str, filter_query: str) -> dict[str, Any] | None:
    """Return the first record matching the filter, or None."""
    records = await list_records(collection=collection, filter_query=filter_query, per_page=1)
    return records[0] if records else None
