import os
from collections.abc import Generator
from typing import Any

import psycopg
import pytest
from psycopg import sql

from qa_portal.config.settings import Settings
from qa_portal.database.connection import close_pool, get_connection, init_pool
from qa_portal.database.schema import init_schema
from qa_portal.records.kinds import RECORD_KINDS


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "qa_portal_test")
    return Settings()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def integration_pool(test_settings: Settings) -> Generator[None, None, None]:
    try:
        init_pool(test_settings)
        init_schema()
    except Exception as e:
        close_pool()
        pytest.skip(f"PostgreSQL test DB not available: {e}. Set DB_* env to run.")
    try:
        yield
    finally:
        close_pool()


@pytest.fixture
def db_conn(integration_pool: None) -> Generator[psycopg.Connection[Any], None, None]:
    with get_connection() as conn:
        yield conn


@pytest.fixture
def integration_cleanup(
    integration_pool: None,
) -> Generator[list[tuple[str, int]], None, None]:
    cleanup: list[tuple[str, int]] = []
    yield cleanup
    if not cleanup:
        return
    with get_connection() as conn:
        with conn.cursor() as cur:
            for table, row_id in cleanup:
                cur.execute(
                    sql.SQL("DELETE FROM {} WHERE id = %s").format(sql.Identifier(table)),
                    (row_id,),
                )
        conn.commit()


@pytest.fixture
def clean_tables(integration_pool: None) -> Generator[None, None, None]:
    """Empty every record table around a test that lists whole tables."""

    def truncate() -> None:
        with get_connection() as conn:
            for kind in RECORD_KINDS.values():
                conn.execute(
                    sql.SQL("TRUNCATE {}").format(sql.Identifier(kind.table))
                )
            conn.commit()

    truncate()
    yield
    truncate()
