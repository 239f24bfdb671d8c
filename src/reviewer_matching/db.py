import logging
import os
from contextlib import contextmanager
from pathlib import Path

import psycopg2
from psycopg2.extras import RealDictCursor

SCHEMA = "reviewer_matching"

logger = logging.getLogger(__name__)


def get_database_url() -> str:
    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        raise RuntimeError("DATABASE_URL is not set. Provide a production database URL.")
    return database_url


@contextmanager
def db_cursor():
    conn = psycopg2.connect(get_database_url(), cursor_factory=RealDictCursor)
    try:
        with conn.cursor() as cursor:
            yield cursor
        conn.commit()
    except Exception:
        conn.rollback()
        logger.debug("Transaction rolled back", exc_info=True)
        raise
    finally:
        conn.close()


def advisory_lock(cursor, key: str) -> None:
    """Serialize writers on ``key`` until the surrounding transaction ends."""
    cursor.execute("SELECT pg_advisory_xact_lock(hashtext(%s))", (key,))


def load_sql(path: Path) -> str:
    return path.read_text(encoding="utf-8")
