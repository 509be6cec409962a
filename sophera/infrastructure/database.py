"""Centralized database access for Sophera

Sophera keeps all patient records in ONE SQLite database (sophera/data/sophera.db
by default, SOPHERA_DB_PATH to override). Every repository goes through
get_db_connection() / db_transaction().

Provides:
- Thread-safe connection pool (WAL, foreign keys, Row factory)
- Retry decorator for transient "database is locked" errors
- Schema init/validation entry points
- Pool health metrics and WAL checkpointing for /health/db
"""

from __future__ import annotations

import atexit
import os
import random
import sqlite3
import time
from collections.abc import Callable, Generator
from contextlib import contextmanager
from functools import lru_cache, wraps
from pathlib import Path
from queue import Empty, Full, Queue
from threading import Lock
from typing import Any, TypeVar

from sophera.config import (
    DB_CONNECT_TIMEOUT,
    DB_POOL_SIZE,
    DB_POOL_TIMEOUT,
    DB_RETRY_BASE_DELAY,
    DB_RETRY_JITTER,
    DB_RETRY_MAX,
    DB_RETRY_MAX_DELAY,
    DB_TEMP_CONN_MAX,
)
from sophera.observability.logging import get_logger
from sophera.observability.telemetry import counter, log_event

F = TypeVar("F", bound=Callable[..., Any])

DB_PATH = Path(__file__).parent.parent / "data" / "sophera.db"

logger = get_logger(__name__)


def retry_on_db_lock(
    max_retries: int = DB_RETRY_MAX,
    base_delay: float = DB_RETRY_BASE_DELAY,
    max_delay: float = DB_RETRY_MAX_DELAY,
) -> Callable[[F], F]:
    """
    Retry a database operation on SQLITE_BUSY / "database is locked" errors.

    Uses exponential backoff with jitter. Any other OperationalError is
    re-raised immediately.

    Usage:
        @retry_on_db_lock()
        def save_entry():
            with db_transaction() as conn:
                conn.execute("INSERT INTO ...")

    Side Effects:
        - Sleeps between attempts
        - Logs a warning per retry and an error when retries are exhausted
    """

    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            last_error: sqlite3.OperationalError | None = None

            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)

                except sqlite3.OperationalError as e:
                    last_error = e

                    message = str(e).lower()
                    if "locked" not in message and "busy" not in message:
                        raise

                    if attempt >= max_retries:
                        logger.error(
                            "Database lock retry exhausted after %d attempts: %s",
                            max_retries,
                            e,
                        )
                        counter("database.lock_retry_exhausted")
                        raise

                    delay = min(base_delay * (2**attempt), max_delay)
                    sleep_time = delay + random.uniform(0, delay * DB_RETRY_JITTER)

                    logger.warning(
                        "Database locked (attempt %d/%d), retrying in %.2fs: %s",
                        attempt + 1,
                        max_retries,
                        sleep_time,
                        e,
                    )
                    time.sleep(sleep_time)

            raise last_error  # type: ignore[misc]

        return wrapper  # type: ignore[return-value]

    return decorator


class DatabaseConnectionPool:
    """
    Thread-safe connection pool for SQLite

    Keeps pool_size connections open. When the pool is drained it hands out
    temporary connections up to DB_TEMP_CONN_MAX, then fails loudly, since that
    only happens when connections leak.
    """

    def __init__(self, db_path: Path, pool_size: int = DB_POOL_SIZE) -> None:
        self.db_path = db_path
        self.pool_size = pool_size
        self.pool: Queue[sqlite3.Connection] = Queue(maxsize=pool_size)
        self.lock = Lock()
        self.closed = False
        self.temp_conn_count = 0
        self.temp_conn_max = DB_TEMP_CONN_MAX
        self._initialize_pool()

        atexit.register(self.close_all)

    def _create_connection(self) -> sqlite3.Connection:
        """
        Open a connection with Sophera's SQLite settings.

        Raises:
            RuntimeError: If the quick integrity check fails
        """
        conn = sqlite3.connect(
            str(self.db_path),
            timeout=DB_CONNECT_TIMEOUT,
            check_same_thread=False,
        )

        try:
            result = conn.execute("PRAGMA quick_check(1)").fetchone()
            if result[0] != "ok":
                conn.close()
                logger.critical("Database corruption detected: %s", result[0])
                counter("database.corruption_detected")
                raise RuntimeError(f"Database corruption detected: {result[0]}")
        except sqlite3.DatabaseError as e:
            conn.close()
            logger.critical("Database corruption or error during integrity check: %s", e)
            counter("database.corruption_detected")
            raise RuntimeError(f"Database corruption detected: {e}") from e

        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA synchronous=NORMAL")
        conn.execute("PRAGMA foreign_keys=ON")
        conn.row_factory = sqlite3.Row

        return conn

    def _initialize_pool(self) -> None:
        for _ in range(self.pool_size):
            try:
                self.pool.put(self._create_connection())
            except Exception as e:
                logger.warning("Failed to create pooled connection: %s", e)

    def get_connection(self) -> sqlite3.Connection:
        """
        Get a connection from the pool (or a temporary one if the pool is drained).

        Raises:
            RuntimeError: If the pool is closed or the temporary connection limit is hit
        """
        if self.closed:
            raise RuntimeError("Connection pool has been closed")

        try:
            return self.pool.get(block=True, timeout=DB_POOL_TIMEOUT)
        except Empty:
            with self.lock:
                if self.temp_conn_count >= self.temp_conn_max:
                    logger.critical(
                        "Temporary connection limit reached: %d/%d (pool_size=%d)",
                        self.temp_conn_count,
                        self.temp_conn_max,
                        self.pool_size,
                    )
                    raise RuntimeError(
                        "Database connection pool exhausted and temporary connection "
                        f"limit reached (pool_size={self.pool_size}, "
                        f"temp_conn_max={self.temp_conn_max})"
                    ) from None

                self.temp_conn_count += 1
                temp_count = self.temp_conn_count

            logger.error(
                "Connection pool exhausted (pool_size=%d). Creating temporary connection %d/%d.",
                self.pool_size,
                temp_count,
                self.temp_conn_max,
            )
            log_event(
                "database.pool_exhausted",
                pool_size=self.pool_size,
                temp_conn_count=temp_count,
            )

            conn = self._create_connection()
            conn._is_temporary = True  # type: ignore[attr-defined]
            return conn

    def return_connection(self, conn: sqlite3.Connection) -> None:
        """Put a pooled connection back; close temporary ones."""
        is_temp = getattr(conn, "_is_temporary", False)

        if self.closed or is_temp:
            conn.close()
            if is_temp:
                with self.lock:
                    self.temp_conn_count -= 1
                logger.debug("Closed temporary connection (remaining: %d)", self.temp_conn_count)
            return

        try:
            self.pool.put_nowait(conn)
        except Full:
            logger.warning("Failed to return connection to pool (pool full), closing")
            conn.close()

    def close_all(self) -> None:
        """Close every pooled connection and refuse further checkouts."""
        self.closed = True
        while not self.pool.empty():
            try:
                self.pool.get_nowait().close()
            except Empty:
                break


@lru_cache(maxsize=1)
def get_pool() -> DatabaseConnectionPool:
    """
    Get or create the global connection pool (lru_cache singleton).

    Side Effects:
        - Opens DB_POOL_SIZE connections on first call
        - Registers an atexit cleanup handler
    """
    return DatabaseConnectionPool(get_db_path(), pool_size=DB_POOL_SIZE)


def reset_pool() -> None:
    """Close the global pool so the next call reopens it against get_db_path()."""
    if get_pool.cache_info().currsize:
        get_pool().close_all()
    get_pool.cache_clear()


def get_db_path() -> Path:
    """
    Database path: SOPHERA_DB_PATH when set, otherwise sophera/data/sophera.db.
    """
    if env_path := os.getenv("SOPHERA_DB_PATH"):
        return Path(env_path)

    return DB_PATH


@contextmanager
def get_db_connection() -> Generator[sqlite3.Connection, None, None]:
    """
    Borrow a pooled connection for the duration of the block.

    Usage:
        with get_db_connection() as conn:
            rows = conn.execute("SELECT * FROM treatments").fetchall()

    Raises:
        FileNotFoundError: If the database has not been initialized
    """
    db_path = get_db_path()

    if not db_path.exists():
        raise FileNotFoundError(f"Database not found: {db_path}\nRun init_database() first")

    pool = get_pool()
    if pool.db_path != db_path:
        # SOPHERA_DB_PATH changed since the pool was built
        reset_pool()
        pool = get_pool()

    conn = pool.get_connection()
    try:
        yield conn
    finally:
        pool.return_connection(conn)


@contextmanager
def db_transaction() -> Generator[sqlite3.Connection, None, None]:
    """
    Transaction scope: commits on success, rolls back on any exception.

    Usage:
        with db_transaction() as conn:
            conn.execute("DELETE FROM canvas_edges WHERE tab_id = ?", (tab_id,))
            conn.execute("DELETE FROM canvas_nodes WHERE tab_id = ?", (tab_id,))
    """
    with get_db_connection() as conn:
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise


def validate_schema() -> bool:
    """
    Validate the database has every expected table and column.

    Raises:
        ValueError: If tables or columns are missing
    """
    from sophera.infrastructure.database_schema import validate_schema as _validate_schema

    with get_db_connection() as conn:
        return _validate_schema(conn)


def get_pool_stats() -> dict[str, Any]:
    """Connection pool health metrics."""
    pool = get_pool()
    available = pool.pool.qsize()
    in_use = pool.pool_size - available
    usage_percent = (in_use / pool.pool_size) * 100 if pool.pool_size > 0 else 0

    return {
        "pool_size": pool.pool_size,
        "available": available,
        "in_use": in_use,
        "temporary_connections": pool.temp_conn_count,
        "usage_percent": round(usage_percent, 1),
        "closed": pool.closed,
    }


def checkpoint_wal() -> dict[str, Any]:
    """
    Merge the WAL file into the main database and truncate it.

    Side Effects:
        - Blocks writers briefly while the checkpoint runs
        - Logs checkpoint statistics
    """
    db_path = get_db_path()
    wal_path = db_path.with_suffix(db_path.suffix + "-wal")
    wal_size_before = wal_path.stat().st_size if wal_path.exists() else 0

    with get_db_connection() as conn:
        result = conn.execute("PRAGMA wal_checkpoint(TRUNCATE)").fetchone()
        busy, log_pages, checkpointed_pages = result if result else (0, 0, 0)

    wal_size_after = wal_path.stat().st_size if wal_path.exists() else 0

    stats = {
        "wal_size_before_bytes": wal_size_before,
        "wal_size_after_bytes": wal_size_after,
        "bytes_freed": wal_size_before - wal_size_after,
        "checkpointed_pages": checkpointed_pages,
        "log_pages": log_pages,
        "busy": bool(busy),
    }

    logger.info(
        "WAL checkpoint completed: freed %d bytes (%d pages)",
        stats["bytes_freed"],
        checkpointed_pages,
    )
    return stats


def init_database() -> None:
    """
    Create the schema if needed (idempotent) and seed shared hope snippets.

    Side Effects:
        - Creates the data directory and database file if missing
        - Creates tables and indexes
    """
    from sophera.infrastructure.database_schema import init_database as _init_database

    _init_database(get_db_path())
