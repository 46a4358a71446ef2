"""
db/connection.py
----------------
Manages the PostgreSQL connection pool.

A `Database` owns one psycopg2 ThreadedConnectionPool and is handed to
every repository at construction time. The pool is safe to share between
threads; nothing else in the package holds mutable state.
"""

import time
from typing import Optional

import psycopg2
from psycopg2 import extensions, extras, pool

from config import DBConfig
from db.errors import DatabaseConnectionError, StoreError
from utils.logger import get_logger

logger = get_logger(__name__)


class TimedConnection(extensions.connection):
    """A psycopg2 connection that remembers when it was opened."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.born = time.monotonic()


class Database:
    """
    Handle to a pooled set of connections to the tracker database.

    Usage:
        with Database.connect(DBConfig.from_env()) as db:
            repo = ProjectRepository(db)
    """

    def __init__(self, config: Optional[DBConfig] = None, interruptible: bool = True):
        self.config = config or DBConfig.from_env()
        self.interruptible = interruptible
        self._pool: Optional[pool.ThreadedConnectionPool] = None

    @classmethod
    def connect(cls, config: Optional[DBConfig] = None, interruptible: bool = True) -> "Database":
        """Build a handle and open it. Raises DatabaseConnectionError on failure."""
        db = cls(config, interruptible=interruptible)
        db.open()
        return db

    @property
    def closed(self) -> bool:
        return self._pool is None

    def open(self) -> None:
        """
        Open the pool and verify the server answers within `ping_timeout`.

        Raises:
            DatabaseConnectionError: If the server is unreachable or the
                liveness check fails. No connections are left open.
        """
        if self._pool is not None:
            return
        cfg = self.config
        if self.interruptible:
            # Ctrl+C now sends a cancel request for the running statement.
            extensions.set_wait_callback(extras.wait_select)
        min_conn = max(0, min(cfg.max_idle_conns, cfg.max_open_conns))
        try:
            self._pool = pool.ThreadedConnectionPool(
                min_conn, cfg.max_open_conns, cfg.dsn(), connection_factory=TimedConnection
            )
        except psycopg2.Error as e:
            logger.error(f"Failed to open database pool ({cfg.safe_dsn()}): {e}")
            raise DatabaseConnectionError(f"failed to open database: {e}") from e

        try:
            self.ping()
        except StoreError as e:
            logger.error(f"Database ping failed ({cfg.safe_dsn()}): {e}")
            self.close()
            raise DatabaseConnectionError(f"failed to ping database: {e}") from e
        logger.info(f"Connected to PostgreSQL ({cfg.safe_dsn()})")

    def ping(self) -> None:
        """Run `SELECT 1` bounded by the configured ping timeout."""
        timeout_ms = int(self.config.ping_timeout * 1000)
        conn = self.get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute("SET LOCAL statement_timeout = %s;", (timeout_ms,))
                cur.execute("SELECT 1;")
                cur.fetchone()
            conn.rollback()
        except psycopg2.Error as e:
            raise StoreError(f"ping: {e}") from e
        finally:
            self.release_connection(conn)

    def get_connection(self):
        """
        Borrow a connection from the pool.

        Raises:
            DatabaseConnectionError: If the handle is closed.
            StoreError: If the pool is exhausted or a new connection fails.
        """
        if self._pool is None:
            raise DatabaseConnectionError("database is not open")
        try:
            conn = self._pool.getconn()
        except (pool.PoolError, psycopg2.Error) as e:
            logger.error(f"Failed to borrow a connection: {e}")
            raise StoreError(f"get connection: {e}") from e
        return conn

    def release_connection(self, conn) -> None:
        """
        Return a connection to the pool, retiring it once it has outlived
        `conn_max_lifetime` (counted from when it was opened).

        A connection released after `close()` is closed outright.
        """
        p = self._pool
        if p is None:
            conn.close()
            return
        born = getattr(conn, "born", None)
        expired = born is not None and time.monotonic() - born >= self.config.conn_max_lifetime
        if expired:
            logger.debug("Retiring pooled connection past its max lifetime.")
        try:
            p.putconn(conn, close=expired)
        except pool.PoolError as e:
            # closeall() ran between the snapshot above and putconn()
            logger.debug(f"Pool gone while returning a connection: {e}")
            conn.close()

    def close(self) -> None:
        """Close all connections in the pool. Safe to call more than once."""
        p, self._pool = self._pool, None
        if p is None:
            return
        p.closeall()
        logger.info("Database connection pool closed.")

    def __enter__(self) -> "Database":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
