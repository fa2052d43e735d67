"""
ConnectionPool - PostgreSQL connection pool manager using psycopg2.pool.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Generator, Mapping, Optional

import psycopg2
import psycopg2.pool

from idgate.utils.logging import get_logger

logger = get_logger(__name__)


class ConnectionPoolError(Exception):
    """Raised when connection pool operations fail."""
    pass


class ConnectionPool:
    """
    Thread-safe PostgreSQL connection pool.

    Uses psycopg2's ThreadedConnectionPool so that concurrent requests each
    get their own connection (and therefore their own transaction).

    Example:
        >>> pool = ConnectionPool(pg_config, min_conn=1, max_conn=10)
        >>> with pool.get_connection() as conn:
        ...     with conn.cursor() as cur:
        ...         cur.execute("SELECT 1")
        >>> pool.close()
    """

    def __init__(
        self,
        pg_config: Mapping[str, Any],
        *,
        min_conn: int = 1,
        max_conn: int = 10,
    ):
        """
        Initialize connection pool.

        Args:
            pg_config: PostgreSQL connection parameters (host, port, user, password, database)
            min_conn: Minimum connections to keep open
            max_conn: Maximum connections allowed
        """
        if not pg_config:
            raise ValueError("pg_config must be provided")
        self._pg_config: Dict[str, Any] = dict(pg_config)
        self._min_conn = min_conn
        self._max_conn = max_conn
        self._pool: Optional[psycopg2.pool.ThreadedConnectionPool] = None
        self._closed = False

        self._initialize_pool()

    def _initialize_pool(self) -> None:
        try:
            self._pool = psycopg2.pool.ThreadedConnectionPool(
                minconn=self._min_conn,
                maxconn=self._max_conn,
                **self._pg_config,
            )
            logger.info(
                f"Connection pool initialized: min={self._min_conn}, max={self._max_conn}"
            )
        except psycopg2.Error as e:
            logger.error(f"Failed to initialize connection pool: {e}")
            raise ConnectionPoolError(f"Failed to initialize pool: {e}") from e

    @contextmanager
    def get_connection(self) -> Generator[psycopg2.extensions.connection, None, None]:
        """
        Get a connection from the pool.

        The connection is rolled back on any psycopg2 error and always
        returned to the pool.

        Raises:
            ConnectionPoolError: If the pool is closed or exhausted
        """
        if self._closed or self._pool is None:
            raise ConnectionPoolError("Connection pool is closed")

        conn = None
        try:
            conn = self._pool.getconn()
            yield conn
        except psycopg2.pool.PoolError as e:
            logger.error(f"Pool error: {e}")
            raise ConnectionPoolError(f"Connection pool exhausted: {e}") from e
        except psycopg2.Error as e:
            logger.error(f"Database error: {e}")
            if conn:
                conn.rollback()
            raise
        finally:
            if conn is not None and self._pool is not None:
                try:
                    self._pool.putconn(conn)
                except psycopg2.pool.PoolError as e:
                    logger.warning(f"Error returning connection to pool: {e}")

    def close(self) -> None:
        """Close all connections in the pool."""
        if self._pool is not None and not self._closed:
            self._pool.closeall()
            self._closed = True
            logger.info("Connection pool closed")

    def __enter__(self) -> "ConnectionPool":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
