from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from pgchain.statement import Statement


class PgChainError(Exception):
    ...


class ConfigurationError(PgChainError):
    """Raised when the pool cannot be configured from the given settings"""

    pass


class StatementError(PgChainError):
    """The database rejected a statement"""

    def __init__(
        self,
        message: str,
        statement: Optional[Statement] = None,
        index: Optional[int] = None,
        sqlstate: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.statement = statement
        self.index = index
        self.sqlstate = sqlstate


class TransactionError(StatementError):
    """Raised after a transaction has been rolled back because one of its
    statements failed"""

    @classmethod
    def from_statement_error(cls, error: StatementError) -> TransactionError:
        return cls(
            f"Transaction rolled back: {error}",
            statement=error.statement,
            index=error.index,
            sqlstate=error.sqlstate,
        )
