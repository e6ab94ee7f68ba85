"""
Database access for the profile source table and the flattened projection.

One pooled set of connections serves store writes and source reads; LISTEN
sessions get their own autocommit connection so a long-lived listener never
holds a pool slot.
"""
import os
import time
from contextlib import contextmanager
from typing import Iterator

import psycopg
from psycopg import OperationalError
from psycopg.conninfo import make_conninfo
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from profile_sync.observability.logger import get_logger

logger = get_logger(__name__)

APPLICATION_NAME = "profile-sync"


class DatabaseConnectionPool:
    """
    psycopg3 pool for the profile database.

    Settings fall back to DB_HOST, DB_PORT, DB_NAME, DB_USER and DB_PASSWORD.
    Rows come back as dictionaries.
    """

    def __init__(
        self,
        host: str | None = None,
        port: int | None = None,
        database: str | None = None,
        user: str | None = None,
        password: str | None = None,
        min_size: int = 1,
        max_size: int = 10,
        timeout: float = 30.0,
        application_name: str = APPLICATION_NAME,
    ) -> None:
        """
        Args:
            host: Database host
            port: Database port
            database: Database holding public_profiles and flattened_profiles
            user: Database user
            password: Database password (required, here or in DB_PASSWORD)
            min_size: Connections kept open
            max_size: Upper bound on pooled connections
            timeout: Seconds to wait for a connection
            application_name: Reported in pg_stat_activity
        """
        self.host = host or os.getenv("DB_HOST", "localhost")
        self.port = port or int(os.getenv("DB_PORT", "5432"))
        self.database = database or os.getenv("DB_NAME", "profiles")
        self.user = user or os.getenv("DB_USER", "profile_sync")
        password = password or os.getenv("DB_PASSWORD")
        if not password:
            raise ValueError(
                "Database password must be provided. "
                "Set DB_PASSWORD environment variable or pass to constructor."
            )

        self.min_size = min_size
        self.max_size = max_size
        self.timeout = timeout
        self.application_name = application_name
        self.conninfo = self._conninfo(password, application_name)

        self._pool: ConnectionPool | None = None

    def _conninfo(self, password: str, application_name: str) -> str:
        return make_conninfo(
            host=self.host,
            port=self.port,
            dbname=self.database,
            user=self.user,
            password=password,
            connect_timeout=int(self.timeout),
            application_name=application_name,
        )

    def open(self, max_retries: int = 3, retry_delay: float = 2.0) -> None:
        """
        Open the pool, waiting for min_size connections.

        The database may still be starting (compose, testcontainers), so each
        failed attempt is retried after retry_delay seconds.

        Raises:
            OperationalError: If every attempt fails
        """
        if self._pool is not None:
            return

        for attempt in range(1, max_retries + 1):
            pool = ConnectionPool(
                conninfo=self.conninfo,
                min_size=self.min_size,
                max_size=self.max_size,
                timeout=self.timeout,
                kwargs={"row_factory": dict_row},
                open=False,
            )
            try:
                pool.open(wait=True, timeout=self.timeout)
            except OperationalError as e:
                pool.close()
                if attempt == max_retries:
                    raise OperationalError(
                        f"Failed to connect to database after {max_retries} attempts: {e}"
                    ) from e
                logger.warning(
                    f"Database not reachable (attempt {attempt}/{max_retries}), retrying",
                    extra={"host": self.host, "database": self.database},
                )
                time.sleep(retry_delay)
            else:
                self._pool = pool
                logger.debug(f"Connection pool open on {self.host}:{self.port}/{self.database}")
                return

    def close(self) -> None:
        if self._pool is not None:
            self._pool.close()
            self._pool = None

    @contextmanager
    def get_connection(self) -> Iterator[psycopg.Connection]:
        """Borrow a pooled connection; it is committed on clean exit."""
        if self._pool is None:
            raise RuntimeError("Connection pool is not open. Call open() first.")

        with self._pool.connection() as conn:
            yield conn

    @contextmanager
    def transaction(self) -> Iterator[psycopg.Cursor]:
        """Yield a cursor whose statements commit together or not at all."""
        with self.get_connection() as conn:
            with conn.transaction():
                with conn.cursor() as cur:
                    yield cur

    def connect_autocommit(self, purpose: str = "listener") -> psycopg.Connection:
        """Open a dedicated autocommit connection outside the pool (for LISTEN)."""
        return psycopg.connect(
            self.conninfo,
            autocommit=True,
            row_factory=dict_row,
            application_name=f"{self.application_name}-{purpose}",
        )

    def execute_query(self, query: str, params: tuple | dict | None = None) -> list[dict]:
        """Run a SELECT and return every row."""
        with self.get_connection() as conn:
            return conn.execute(query, params).fetchall()

    def execute_command(self, command: str, params: tuple | dict | None = None) -> int:
        """Run one INSERT/UPDATE/DELETE in its own transaction; return the rowcount."""
        with self.transaction() as cur:
            cur.execute(command, params)
            return cur.rowcount

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
