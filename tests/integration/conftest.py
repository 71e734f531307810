import os
import uuid
from collections.abc import Generator
from datetime import datetime, timezone
from typing import Any

import psycopg
import pytest
from psycopg.types.json import Jsonb

from submission_docs.config.settings import Settings
from submission_docs.database.connection import close_pool, get_connection, init_pool

_CREATE_SUBMISSIONS = """
CREATE TABLE IF NOT EXISTS submissions (
    id text PRIMARY KEY,
    full_name text,
    firm_name text,
    gst_number text,
    sales_rep_number text,
    contact_number text,
    checklist jsonb NOT NULL DEFAULT '{}'::jsonb,
    verified boolean NOT NULL DEFAULT false,
    created_at timestamptz
)
"""


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "submissions_test")
    return Settings()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def integration_pool(test_settings: Settings) -> Generator[None, None, None]:
    try:
        init_pool(test_settings)
        with get_connection() as conn:
            conn.execute(_CREATE_SUBMISSIONS)
            conn.commit()
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
def integration_cleanup(integration_pool: None) -> Generator[list[str], None, None]:
    cleanup: list[str] = []
    yield cleanup
    if not cleanup:
        return
    with get_connection() as conn:
        with conn.cursor() as cur:
            cur.execute("DELETE FROM submissions WHERE id = ANY(%s)", (cleanup,))
        conn.commit()


@pytest.fixture
def seed_submission(
    db_conn: psycopg.Connection[Any],
    integration_cleanup: list[str],
):  # type: ignore[no-untyped-def]
    """Factory inserting one submissions row; returns its generated id."""

    def _seed(**values: Any) -> str:
        submission_id = f"it-{uuid.uuid4().hex[:12]}"
        row = {
            "full_name": "Asha Rao",
            "firm_name": "Rao Traders",
            "gst_number": "29ABCDE1234F1Z5",
            "sales_rep_number": "9000000001",
            "contact_number": "9800000002",
            "checklist": {"cheque": True, "letterhead": False},
            "verified": True,
            "created_at": datetime(2024, 3, 5, 14, 7, 9, tzinfo=timezone.utc),
        }
        row.update(values)
        with db_conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO submissions
                (id, full_name, firm_name, gst_number, sales_rep_number,
                 contact_number, checklist, verified, created_at)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
                """,
                (
                    submission_id,
                    row["full_name"],
                    row["firm_name"],
                    row["gst_number"],
                    row["sales_rep_number"],
                    row["contact_number"],
                    Jsonb(row["checklist"]),
                    row["verified"],
                    row["created_at"],
                ),
            )
        db_conn.commit()
        integration_cleanup.append(submission_id)
        return submission_id

    return _seed
