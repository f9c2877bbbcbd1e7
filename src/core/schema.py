"""SQLite schema management (code-first approach)."""

import logging

from src.core import db_client


logger = logging.getLogger(__name__)


_TIMESTAMP_DEFAULT = "(strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))"


TABLE_SCHEMAS: dict[str, str] = {
    "users": f"""CREATE TABLE IF NOT EXISTS users (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created_at TEXT NOT NULL DEFAULT {_TIMESTAMP_DEFAULT},
        updated_at TEXT NOT NULL DEFAULT {_TIMESTAMP_DEFAULT},
        email TEXT NOT NULL UNIQUE,
        name TEXT NOT NULL,
        password_hash TEXT NOT NULL,
        theme TEXT NOT NULL DEFAULT 'light' CHECK (theme IN ('light', 'dark')),
        email_verified INTEGER NOT NULL DEFAULT 0,
        verification_token TEXT,
        verification_expires TEXT
    )""",
    "tasks": f"""CREATE TABLE IF NOT EXISTS tasks (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created_at TEXT NOT NULL DEFAULT {_TIMESTAMP_DEFAULT},
        updated_at TEXT NOT NULL DEFAULT {_TIMESTAMP_DEFAULT},
        owner_id INTEGER NOT NULL REFERENCES users(id),
        title TEXT NOT NULL,
        description TEXT,
        start_time TEXT NOT NULL,
        end_time TEXT NOT NULL,
        priority TEXT NOT NULL DEFAULT 'medium'
            CHECK (priority IN ('low', 'medium', 'high', 'none')),
        is_completed INTEGER NOT NULL DEFAULT 0,
        is_deleted INTEGER NOT NULL DEFAULT 0
    )""",
}

INDEXES: list[str] = [
    "CREATE INDEX IF NOT EXISTS idx_users_verification_token ON users (verification_token)",
    "CREATE INDEX IF NOT EXISTS idx_tasks_owner_id ON tasks (owner_id)",
    "CREATE INDEX IF NOT EXISTS idx_tasks_end_time ON tasks (end_time)",
]


async def init_db(*, db_path: str | None = None) -> None:
    """Create all tables and indexes if they do not exist yet."""
    conn = await db_client.get_connection(db_path=db_path)

    for table_name, ddl in TABLE_SCHEMAS.items():
        await conn.execute(ddl)
        logger.debug("Ensured table", extra={"table": table_name})

    for index_sql in INDEXES:
        await conn.execute(index_sql)

    await conn.commit()
    logger.info("Database schema initialized", extra={"tables": list(TABLE_SCHEMAS)})
