from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Sequence, Tuple, Union

from pgchain.casing import to_snake_case
from pgchain.exception import PgChainError
from pgchain.statement import MISSING, Statement

logger = logging.getLogger(__name__)

OPERATOR_KEY = "_op"
LOGICAL_OPERATOR_KEY = "_lop"
CONTROL_KEYS = (OPERATOR_KEY, LOGICAL_OPERATOR_KEY)


@dataclass(frozen=True)
class SimpleCondition:
    """Equality check joined with AND"""

    field: str
    value: Any

    operator = "="
    logical_operator = "AND"


@dataclass(frozen=True)
class ExplicitCondition:
    field: str
    value: Any
    operator: str = "="
    logical_operator: str = "AND"


Condition = Union[SimpleCondition, ExplicitCondition]
ConditionLike = Union[Condition, Mapping[str, Any]]
CONDITION_TYPES = (SimpleCondition, ExplicitCondition)


def resolve_condition(obj: ConditionLike) -> Condition:
    """Normalize a condition into one of the `Condition` variants

    Besides the variants themselves, two mapping forms are accepted:

    - structured: `{"field": "id", "value": 5, "operator": ">"}`, where
      `operator` and `logical_operator` may also be written `_op` and `_lop`
    - shorthand: `{"id": 5}`, optionally with `_op` and `_lop` control keys.
      The column is the first key that does not start with an underscore.
      If every key does, the first key that is not a control key is used.

    Raises:
        PgChainError: If no column can be found in the mapping
    """
    if isinstance(obj, CONDITION_TYPES):
        return obj
    if not isinstance(obj, Mapping):
        raise PgChainError(f"Cannot use {obj!r} as a condition")

    operator = obj.get("operator", obj.get(OPERATOR_KEY))
    logical_operator = obj.get(
        "logical_operator", obj.get(LOGICAL_OPERATOR_KEY)
    )

    if "field" in obj:
        field, value = obj["field"], obj.get("value")
    else:
        field = _shorthand_field(obj)
        value = obj[field]

    if operator is None and logical_operator is None:
        return SimpleCondition(field, value)
    return ExplicitCondition(
        field,
        value,
        operator=operator or "=",
        logical_operator=logical_operator or "AND",
    )


def _shorthand_field(obj: Mapping[str, Any]) -> str:
    keys = list(obj.keys())
    for key in keys:
        if not key.startswith("_"):
            return key
    candidates = [key for key in keys if key not in CONTROL_KEYS]
    if not candidates:
        raise PgChainError(f"Condition {dict(obj)!r} does not name a column")
    if len(candidates) > 1:
        logger.warning(
            'Query condition objects should have "field" and "value" '
            "properties, using %s",
            candidates[0],
        )
    return candidates[0]


def _columns(fields: Optional[Mapping[str, Any]]) -> Tuple[List[str], List]:
    columns: List[str] = []
    values: List[Any] = []
    for key, value in (fields or {}).items():
        if value is MISSING:
            continue
        columns.append(to_snake_case(key))
        values.append(value)
    return columns, values


def build_insert(
    table: str, fields: Optional[Mapping[str, Any]] = None
) -> Optional[Statement]:
    """Build a parameterized INSERT statement

    Keys are converted to snake_case column names in insertion order. Fields
    whose value is `MISSING` are left out.

    Example:

    ```python
    build_insert("users", {"firstName": "lit", "lastName": "lib"})
    # INSERT INTO users (first_name, last_name) VALUES ($1, $2)
    ```

    Args:
        table (str): Table to insert into
        fields (Mapping[str, Any], optional): Column values keyed by
            camelCase or snake_case name. Defaults to `None`.

    Returns:
        Optional[Statement]: The statement, or `None` when no field is left
            to insert
    """
    columns, values = _columns(fields)
    if not values:
        return None
    markers = ", ".join(
        f"${position}" for position in range(1, len(values) + 1)
    )
    text = f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({markers})"
    return Statement(text, values)


def build_update(
    table: str,
    fields: Optional[Mapping[str, Any]] = None,
    condition: Optional[Union[ConditionLike, Sequence[ConditionLike]]] = None,
) -> Optional[Statement]:
    """Build a parameterized UPDATE statement

    Example:

    ```python
    build_update(
        "users",
        {"firstName": "lit"},
        [{"id": 54}, ExplicitCondition("age", 30, ">", "OR")],
    )
    # UPDATE users SET first_name = $1 WHERE id = $2 OR age > $3
    ```

    Args:
        table (str): Table to update
        fields (Mapping[str, Any], optional): Values for the SET clause.
            Defaults to `None`.
        condition (optional): One condition or a sequence of conditions for
            the WHERE clause. The logical operator of the first one is not
            used. Defaults to `None`, which updates every row.

    Returns:
        Optional[Statement]: The statement, or `None` when no field is left
            to set
    """
    columns, values = _columns(fields)
    if not values:
        return None

    assignments = ", ".join(
        f"{column} = ${position}"
        for position, column in enumerate(columns, start=1)
    )
    text = f"UPDATE {table} SET {assignments}"

    if condition:
        conditions = (
            [condition]
            if isinstance(condition, (Mapping, *CONDITION_TYPES))
            else list(condition)
        )
        clauses = []
        for index, item in enumerate(conditions):
            resolved = resolve_condition(item)
            values.append(resolved.value)
            clause = (
                f"{to_snake_case(resolved.field)} {resolved.operator} "
                f"${len(values)}"
            )
            if index:
                clause = f"{resolved.logical_operator} {clause}"
            clauses.append(clause)
        text += f" WHERE {' '.join(clauses)}"

    return Statement(text, values)
