"""Minimal connection pool over published credentials.

Statements use PostgreSQL's own ``$1``-style placeholders; values are sent
to the server separately from the statement text.

Example::

    pool = Pool.from_yaml("target/pgsql-config.yml")
    pool.start(1)
    rows = pool.exec("INSERT INTO book (title) VALUES ($1) RETURNING id", ["Elegant Objects"])
    book_id = rows[0]["id"]
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from psycopg import RawCursor
from psycopg.conninfo import make_conninfo
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from .errors import PoolError
from .models import PublishedCredentials
from .services.publisher import CredentialPublisher

logger = logging.getLogger("pgtk")


class Pool:
    """Fixed-size pool; each ``exec`` borrows one connection exclusively."""

    def __init__(
        self,
        host: str = "localhost",
        port: int = 5432,
        dbname: str = "",
        user: str = "",
        password: str = "",
    ):
        self.host = host
        self.port = port
        self.dbname = dbname
        self.user = user
        self.password = password
        self._pool: Optional[ConnectionPool] = None

    @classmethod
    def from_credentials(cls, credentials: PublishedCredentials) -> "Pool":
        return cls(
            host=credentials.host,
            port=credentials.port,
            dbname=credentials.dbname,
            user=credentials.user,
            password=credentials.password,
        )

    @classmethod
    def from_yaml(cls, path: str) -> "Pool":
        return cls.from_credentials(CredentialPublisher(logger=logger).read(path))

    @property
    def conninfo(self) -> str:
        return make_conninfo(
            host=self.host,
            port=self.port,
            dbname=self.dbname,
            user=self.user,
            password=self.password,
        )

    @property
    def started(self) -> bool:
        return self._pool is not None

    def start(self, size: int = 1) -> "Pool":
        if size < 1:
            raise PoolError(f"Pool size must be positive, got {size}.")
        if self._pool is not None:
            raise PoolError("Pool is already started.")

        pool = ConnectionPool(
            self.conninfo,
            min_size=size,
            max_size=size,
            kwargs={
                "autocommit": True,
                "row_factory": dict_row,
                "cursor_factory": RawCursor,
            },
            open=False,
        )
        pool.open(wait=True)
        self._pool = pool
        logger.info("Opened %s connection(s) to %s:%s/%s", size, self.host, self.port, self.dbname)
        return self

    def exec(self, statement: str, params: Sequence[Any] = ()) -> List[Dict[str, Any]]:
        if self._pool is None:
            raise PoolError("Pool is not started, call start() first.")

        args = list(params) if params else None
        logger.debug("Executing: %s", statement)
        with self._pool.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(statement, args)
                if cur.description is None:
                    return []
                return list(cur.fetchall())

    def stop(self):
        if self._pool is None:
            return
        self._pool.close()
        self._pool = None
        logger.debug("Closed pool for %s:%s/%s", self.host, self.port, self.dbname)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop()
        return False
