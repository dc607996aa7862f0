from collections.abc import Iterable

from psycopg import sql

from qa_portal.database.connection import get_connection
from qa_portal.logging.logger import Log
from qa_portal.records.kinds import RECORD_KINDS, RecordKind

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS {table} (
    id BIGSERIAL PRIMARY KEY,
    title VARCHAR(255) NOT NULL,
    {date_column} VARCHAR(32) NOT NULL,
    file_name VARCHAR(255) NOT NULL,
    file_mimetype VARCHAR(100) NOT NULL,
    file_path VARCHAR(255),
    file_data BYTEA,
    status SMALLINT NOT NULL DEFAULT 2,
    uploaded_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
)
"""

_CREATE_INDEX = """
CREATE INDEX IF NOT EXISTS {index}
ON {table} (status, uploaded_at DESC)
"""


def init_schema(kinds: Iterable[RecordKind] = RECORD_KINDS.values()) -> None:
    """Create the record tables and their status index if they are missing."""
    with get_connection() as conn:
        for kind in kinds:
            table = sql.Identifier(kind.table)
            conn.execute(
                sql.SQL(_CREATE_TABLE).format(
                    table=table, date_column=sql.Identifier(kind.date_column)
                )
            )
            conn.execute(
                sql.SQL(_CREATE_INDEX).format(
                    index=sql.Identifier(f"idx_{kind.table}_status_uploaded_at"),
                    table=table,
                )
            )
            Log.info(f"Table {kind.table} initialized")
        conn.commit()


def ping() -> bool:
    """Return True when the database answers a trivial query."""
    try:
        with get_connection() as conn:
            conn.execute("SELECT 1")
    except Exception as exc:
        Log.warning(f"Database health check failed: {exc}")
        return False
    return True
