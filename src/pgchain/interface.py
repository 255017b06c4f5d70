from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, List, Optional

from psycopg import AsyncConnection
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from pgchain.config import PoolConfig
from pgchain.convert import convert_sql_params
from pgchain.statement import Result, Statement, StatementLike

logger = logging.getLogger(__name__)


class PostgresPool:
    """Interface for connecting to a Postgres database

    The underlying pool is created closed and opened on first use, so an
    instance may be built before the event loop is running. Connections
    run in autocommit mode; transactions are controlled explicitly with
    BEGIN/COMMIT/ROLLBACK.
    """

    def __init__(self, config: PoolConfig) -> None:
        self.config = config
        self._pool = AsyncConnectionPool(
            config.conninfo,
            min_size=config.min_size,
            max_size=config.max_size,
            max_idle=config.max_idle,
            kwargs={"autocommit": True},
            open=False,
        )
        self._opened = False
        self._lock: Optional[asyncio.Lock] = None

    def __str__(self) -> str:
        return (
            f"<{self.__class__.__name__} {self.config.user}@"
            f"{self.config.host}:{self.config.port}/{self.config.database}>"
        )

    @property
    def is_open(self) -> bool:
        return self._opened

    async def open(self) -> None:
        """Open connections to the pool"""
        if self._lock is None:
            self._lock = asyncio.Lock()
        async with self._lock:
            if not self._opened:
                await self._pool.open()
                self._opened = True
                logger.debug("Opened %s", self)

    async def close(self) -> None:
        """Close connections to the pool"""
        if self._opened:
            await self._pool.close()
            self._opened = False
            logger.debug("Closed %s", self)

    @asynccontextmanager
    async def connection(
        self, timeout: Optional[float] = None
    ) -> AsyncIterator[AsyncConnection]:
        """Obtain a dedicated connection to the database

        The connection goes back to the pool when the context exits, whether
        or not an exception was raised.

        Args:
            timeout (float, optional): Time before an error is raised on
                failure to obtain a connection. Defaults to `None`.

        Yields:
            AsyncConnection: A database connection
        """
        if not self._opened:
            await self.open()
        async with self._pool.connection(timeout=timeout) as conn:
            yield conn

    async def query(self, statement: StatementLike) -> Result:
        """Run one statement on a connection of its own"""
        statement = Statement.coerce(statement)
        async with self.connection() as conn:
            return await run_statement(conn, statement)


async def run_statement(conn: Any, statement: Statement) -> Result:
    """Execute a statement on the given connection and collect its rows

    Raises:
        psycopg.Error: If the database rejects the statement
    """
    query, values = convert_sql_params(statement.text, statement.values)
    return await run_query(conn, query, values)


async def run_query(
    conn: Any, query: str, values: Optional[List[Any]] = None
) -> Result:
    """Execute text that is already in the driver's paramstyle"""
    logger.debug("Executing %s with %d value(s)", query, len(values or ()))
    cursor = await conn.execute(query, values)
    rows = []
    if cursor.description is not None:
        cursor.row_factory = dict_row
        rows = await cursor.fetchall()
    return Result(rows, cursor.rowcount, cursor.statusmessage)
