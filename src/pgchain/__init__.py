from importlib.metadata import version

from .builder import (
    ExplicitCondition,
    SimpleCondition,
    build_insert,
    build_update,
    resolve_condition,
)
from .casing import to_camel_case, to_snake_case
from .config import PoolConfig
from .db import Db
from .exception import (
    ConfigurationError,
    PgChainError,
    StatementError,
    TransactionError,
)
from .executor import TransactionExecutor
from .interface import PostgresPool
from .placeholder import PlaceholderResolver, RegexPlaceholderResolver
from .statement import MISSING, Result, Statement

__version__ = version("pgchain")

__all__ = (
    "build_insert",
    "build_update",
    "resolve_condition",
    "to_camel_case",
    "to_snake_case",
    "ConfigurationError",
    "Db",
    "ExplicitCondition",
    "MISSING",
    "PgChainError",
    "PlaceholderResolver",
    "PoolConfig",
    "PostgresPool",
    "RegexPlaceholderResolver",
    "Result",
    "SimpleCondition",
    "Statement",
    "StatementError",
    "TransactionError",
    "TransactionExecutor",
)
