"""SQLite schema definitions and initialization."""

import logging

from homekeep.core.db_client import get_connection


logger = logging.getLogger(__name__)

_TIMESTAMP_DEFAULT = "(strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))"

COLLECTIONS: dict[str, dict[str, list[str] | str]] = {
    "tasks": {
        "table": f"""
            CREATE TABLE IF NOT EXISTS tasks (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                title TEXT NOT NULL DEFAULT '',
                frequency TEXT NOT NULL,
                estimated_minutes INTEGER CHECK (estimated_minutes IS NULL OR estimated_minutes > 0),
                preferred_weekday INTEGER CHECK (
                    preferred_weekday IS NULL OR (preferred_weekday >= 0 AND preferred_weekday <= 6)
                ),
                room TEXT,
                created TEXT NOT NULL DEFAULT {_TIMESTAMP_DEFAULT},
                updated TEXT NOT NULL DEFAULT {_TIMESTAMP_DEFAULT}
            )
        """,
        "indexes": [],
    },
    "occurrences": {
        "table": f"""
            CREATE TABLE IF NOT EXISTS occurrences (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                task_id INTEGER NOT NULL REFERENCES tasks (id) ON DELETE CASCADE,
                due_date TEXT NOT NULL,
                status TEXT NOT NULL DEFAULT 'pending' CHECK (status IN ('pending', 'completed', 'skipped')),
                completed_at TEXT,
                created TEXT NOT NULL DEFAULT {_TIMESTAMP_DEFAULT},
                updated TEXT NOT NULL DEFAULT {_TIMESTAMP_DEFAULT}
            )
        """,
        "indexes": [
            "CREATE INDEX IF NOT EXISTS idx_occurrence_task ON occurrences (task_id)",
            "CREATE INDEX IF NOT EXISTS idx_occurrence_status_due ON occurrences (status, due_date)",
            # Idempotency key for rescheduling: one pending occurrence per task and date
            "CREATE UNIQUE INDEX IF NOT EXISTS idx_occurrence_pending_due "
            "ON occurrences (task_id, due_date) WHERE status = 'pending'",
        ],
    },
}


async def init_db(*, db_path: str | None = None) -> None:
    """Create all tables and indexes if they do not exist yet."""
    conn = await get_connection(db_path=db_path)

    for name, definition in COLLECTIONS.items():
        await conn.execute(str(definition["table"]))
        for index in definition["indexes"]:
            await conn.execute(index)
        logger.info("Ensured collection", extra={"collection": name})

    await conn.commit()
