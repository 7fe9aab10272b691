"""
Lobby Signal Database Connection Pool

Thread-safe PostgreSQL pooling for the worker layer. The scoring and privacy
core never does I/O; only lobby_worker.repository borrows connections.

Usage:
    from lobby_common.db import get_connection

    with get_connection() as conn:
        with conn.cursor() as cur:
            cur.execute("SELECT 1")
            result = cur.fetchone()
    # Connection is back in the pool here
"""

from __future__ import annotations

import atexit
import logging
import threading
from contextlib import contextmanager
from typing import Generator, TYPE_CHECKING

from psycopg2.pool import ThreadedConnectionPool

from .config import get_db_settings

if TYPE_CHECKING:
    from psycopg2.extensions import connection

logger = logging.getLogger(__name__)

_pool: ThreadedConnectionPool | None = None
_pool_lock = threading.Lock()


def _create_pool() -> ThreadedConnectionPool:
    settings = get_db_settings()
    logger.info(
        f"[LOBBY-DB] Opening pool min={settings.db_pool_min} max={settings.db_pool_max}"
    )
    return ThreadedConnectionPool(
        minconn=settings.db_pool_min,
        maxconn=settings.db_pool_max,
        dsn=settings.connection_url,
    )


def get_pool() -> ThreadedConnectionPool:
    """Return the process-wide pool, creating it on first use."""
    global _pool
    if _pool is None:
        with _pool_lock:
            if _pool is None:
                _pool = _create_pool()
    return _pool


@contextmanager
def get_connection() -> Generator[connection, None, None]:
    """
    Borrow a pooled connection for the duration of a with-block.

    Callers commit their own writes. Any exception rolls the transaction back
    and is re-raised; a connection the server closed is discarded instead of
    being returned to the pool.
    """
    pool = get_pool()
    conn = pool.getconn()
    try:
        yield conn
    except Exception:
        if not conn.closed:
            conn.rollback()
        raise
    finally:
        pool.putconn(conn, close=bool(conn.closed))


def close_pool() -> None:
    """Close every pooled connection. Runs automatically at interpreter exit."""
    global _pool
    with _pool_lock:
        if _pool is not None:
            logger.info("[LOBBY-DB] Closing pool")
            _pool.closeall()
            _pool = None


atexit.register(close_pool)
