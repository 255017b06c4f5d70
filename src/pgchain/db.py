from __future__ import annotations

import logging
from typing import Any, List, Optional, Sequence, Union

from pgchain.builder import build_insert, build_update
from pgchain.config import PoolConfig
from pgchain.exception import PgChainError
from pgchain.executor import TransactionExecutor, execute_statement
from pgchain.interface import PostgresPool
from pgchain.placeholder import PlaceholderResolver
from pgchain.statement import Result, StatementLike

logger = logging.getLogger(__name__)


class Db:
    """Main entryway for running statements against a Postgres pool

    A `Db` owns one connection pool built from one `PoolConfig`. Create it
    directly with an explicit configuration, or go through the process-wide
    factory (`configure`, `get_instance`, `reset`) which resolves the
    configuration from the environment.

    Example:

    ```python
    async def run():
        db = Db(user="app", password="secret", database="shop")
        result = await db.execute("SELECT 1 + 1 AS sum")
        print(result.rows[0]["sum"])

        await db.execute(
            [
                "INSERT INTO orders (customer_id) VALUES (7) RETURNING id",
                "UPDATE customers SET last_order = #id# WHERE id = 7",
            ]
        )
        await db.close()
    ```
    """

    _singleton: Optional[Db] = None

    build_insert = staticmethod(build_insert)
    build_update = staticmethod(build_update)

    def __init__(
        self,
        config: Optional[PoolConfig] = None,
        *,
        resolver: Optional[PlaceholderResolver] = None,
        **overrides: Any,
    ) -> None:
        """Initializer for Db instance

        Args:
            config (PoolConfig, optional): Pool settings. When omitted, they
                are resolved from the environment and `overrides`.
                Defaults to `None`.
            resolver (PlaceholderResolver, optional): Strategy used to fill
                `#key#` placeholders in transactions. Defaults to `None`,
                which uses the regex based resolver.

        Raises:
            PgChainError: If both a config and overrides are passed
            ConfigurationError: If the settings are incomplete
        """
        if config is not None and overrides:
            raise PgChainError("Conflict with config and overrides")
        if config is None:
            config = PoolConfig.resolve(**overrides)
        self.config = config
        self.pool = PostgresPool(config)
        self.transaction_executor = TransactionExecutor(self.pool, resolver)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.pool}>"

    async def __aenter__(self) -> Db:
        await self.open()
        return self

    async def __aexit__(self, *args) -> None:
        await self.close()

    @classmethod
    def configure(cls, extend: bool = False, **overrides: Any) -> Db:
        """Build the process-wide instance

        Args:
            extend (bool, optional): Layer the configuration of the current
                process-wide instance under `overrides`. Defaults to `False`.

        Raises:
            ConfigurationError: If user, password or database are missing
        """
        base = cls._singleton.config if extend and cls._singleton else None
        cls._singleton = cls(PoolConfig.resolve(base=base, **overrides))
        logger.debug("Configured %s", cls._singleton)
        return cls._singleton

    @classmethod
    def reset(cls) -> None:
        """Forget the process-wide instance. Its pool is not closed."""
        cls._singleton = None

    @classmethod
    def get_instance(cls, **overrides: Any) -> Db:
        """Fetch the process-wide instance, configuring it from the
        environment the first time. With overrides, a separate instance is
        returned and the process-wide one is left alone."""
        if overrides:
            return cls(**overrides)
        if cls._singleton is None:
            cls.configure()
        return cls._singleton  # type: ignore

    async def open(self) -> None:
        await self.pool.open()

    async def close(self) -> None:
        await self.pool.close()

    async def execute(
        self, statement: Union[StatementLike, Sequence[StatementLike]]
    ) -> Union[Result, List[Result]]:
        """Run a statement, or a list of statements as a transaction

        Args:
            statement: Query text, a `Statement`, a mapping with `text` and
                `values`, or a list or tuple of those

        Raises:
            StatementError: If a single statement is rejected
            TransactionError: If a transaction was rolled back
        """
        if isinstance(statement, (list, tuple)):
            return await self.run_transaction(statement)
        return await execute_statement(self.pool, statement)

    async def run_transaction(
        self, statements: Sequence[StatementLike]
    ) -> List[Result]:
        return await self.transaction_executor.run(statements)
