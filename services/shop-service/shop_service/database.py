from __future__ import annotations

import logging
import os
import sqlite3
import time

import psycopg
from psycopg import errors as pg_errors
from psycopg.rows import dict_row

logger = logging.getLogger(__name__)

USERS_TABLE_DDL = """
CREATE TABLE IF NOT EXISTS users (
    id {id_column},
    username TEXT NOT NULL UNIQUE,
    email TEXT NOT NULL UNIQUE,
    password_hash TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
)
"""

_ID_COLUMN = {
    "postgres": "SERIAL PRIMARY KEY",
    "sqlite": "INTEGER PRIMARY KEY AUTOINCREMENT",
}


def database_url() -> str:
    """DATABASE_URL wins; otherwise the URL is assembled from the DB_* variables."""
    url = os.environ.get("DATABASE_URL")
    if url:
        return url
    return "postgresql://{user}:{password}@{host}:{port}/{name}".format(
        user=os.environ.get("DB_USER", "shop"),
        password=os.environ.get("DB_PASSWORD", "shop"),
        host=os.environ.get("DB_HOST", "shop-db"),
        port=os.environ.get("DB_PORT", "5432"),
        name=os.environ.get("DB_NAME", "shop_service"),
    )


def get_connection():
    """Open a users-store connection, retrying while the database starts up."""
    url = database_url()
    attempts = max(int(os.environ.get("DB_CONNECT_MAX_RETRIES", "30")), 1)
    delay = float(os.environ.get("DB_CONNECT_RETRY_DELAY", "2"))
    attempt = 1
    while True:
        try:
            if url.startswith("sqlite:///"):
                conn = sqlite3.connect(url[len("sqlite:///"):], check_same_thread=False)
                conn.row_factory = sqlite3.Row
                return conn
            return psycopg.connect(url, autocommit=True, row_factory=dict_row)
        except (sqlite3.Error, psycopg.Error) as exc:
            if attempt >= attempts:
                raise
            logger.warning("Database not reachable (attempt %d/%d): %s", attempt, attempts, exc)
            attempt += 1
            time.sleep(delay)


def apply_schema(conn) -> None:
    dialect = "sqlite" if isinstance(conn, sqlite3.Connection) else "postgres"
    conn.execute(USERS_TABLE_DDL.format(id_column=_ID_COLUMN[dialect]))
    conn.commit()


def init_db() -> None:
    conn = get_connection()
    try:
        apply_schema(conn)
    finally:
        conn.close()


def is_unique_violation(exc: Exception) -> bool:
    if isinstance(exc, sqlite3.IntegrityError):
        return "UNIQUE" in str(exc).upper()
    return isinstance(exc, pg_errors.UniqueViolation)
