from __future__ import annotations

import logging
from typing import Any, List, Optional, Sequence

import psycopg

from pgchain.convert import convert_sql_params
from pgchain.exception import StatementError, TransactionError
from pgchain.interface import PostgresPool, run_query
from pgchain.placeholder import PlaceholderResolver, RegexPlaceholderResolver
from pgchain.statement import Result, Statement, StatementLike

logger = logging.getLogger(__name__)


def statement_error(
    error: psycopg.Error, statement: Statement, index: Optional[int] = None
) -> StatementError:
    return StatementError(
        str(error).strip() or error.__class__.__name__,
        statement=statement,
        index=index,
        sqlstate=getattr(error, "sqlstate", None),
    )


async def execute_statement(
    pool: PostgresPool, statement: StatementLike
) -> Result:
    """Run a single statement outside of any transaction

    Raises:
        StatementError: If the database rejects the statement
    """
    statement = Statement.coerce(statement)
    try:
        return await pool.query(statement)
    except psycopg.Error as e:
        raise statement_error(e, statement) from e


class TransactionExecutor:
    """Run an ordered sequence of statements inside one transaction

    Statements run one after the other on a single connection. Once a
    statement has run, `#key#` placeholders in the statement that follows
    are resolved from the results gathered so far. If any statement fails,
    the transaction is rolled back and nothing is returned.

    Example:

    ```python
    executor = TransactionExecutor(pool)
    insert, update = await executor.run(
        [
            "INSERT INTO authors (name) VALUES ('Ann') RETURNING id",
            "UPDATE books SET author_id = #id# WHERE author_id IS NULL",
        ]
    )
    ```
    """

    def __init__(
        self,
        pool: PostgresPool,
        resolver: Optional[PlaceholderResolver] = None,
    ) -> None:
        self.pool = pool
        self.resolver = resolver or RegexPlaceholderResolver()

    async def run(self, statements: Sequence[StatementLike]) -> List[Result]:
        """Execute the statements and commit

        The given statements are copied before placeholders are resolved, so
        the caller's objects keep their original text. `$n` markers are
        converted before any placeholder is resolved, so values inserted
        from earlier results are never read as markers.

        Returns:
            List[Result]: One result per statement, in execution order

        Raises:
            TransactionError: If a statement was rejected by the database.
                The error is raised after the rollback and is chained from
                the `StatementError` of the failing statement.
        """
        pending = [Statement.coerce(statement) for statement in statements]
        queries = [
            convert_sql_params(statement.text, statement.values)
            for statement in pending
        ]
        results: List[Result] = []

        async with self.pool.connection() as conn:
            try:
                try:
                    await conn.execute("BEGIN")
                except psycopg.Error as e:
                    raise statement_error(e, Statement("BEGIN")) from e
                logger.debug(
                    "BEGIN transaction of %d statements", len(pending)
                )

                for index, (query, values) in enumerate(queries):
                    try:
                        result = await run_query(conn, query, values)
                    except psycopg.Error as e:
                        raise statement_error(e, pending[index], index) from e
                    results.append(result)

                    if index + 1 < len(queries):
                        following, following_values = queries[index + 1]
                        queries[index + 1] = (
                            self.resolver.resolve(
                                following,
                                results,
                                bound=following_values is not None,
                            ),
                            following_values,
                        )

                try:
                    await conn.execute("COMMIT")
                except psycopg.Error as e:
                    raise statement_error(e, Statement("COMMIT")) from e
                logger.debug("COMMIT")
            except StatementError as e:
                await self._rollback(conn, e)
                raise TransactionError.from_statement_error(e) from e
            except Exception as e:
                await self._rollback(conn, e)
                raise

        return results

    async def _rollback(self, conn: Any, error: Exception) -> None:
        logger.warning(
            "Unable to complete transaction, rolling back: %s", error
        )
        try:
            await conn.execute("ROLLBACK")
        except Exception:
            logger.exception("Rollback failed")
