from __future__ import annotations

from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Union

from pgchain.exception import PgChainError


class _Missing:
    __slots__ = ()

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()
"""Field value that the statement builders leave out entirely. Unlike
`None`, which binds SQL NULL."""

Row = Dict[str, Any]
StatementLike = Union["Statement", str, Mapping[str, Any]]


class Statement:
    __slots__ = ("text", "values")
    text: str
    values: List[Any]

    def __init__(self, text: str, values: Optional[Sequence[Any]] = None):
        self.text = text
        self.values = list(values) if values else []

    def __str__(self) -> str:
        return (
            f"<{self.__class__.__name__} text={self.text[:24]}... "
            f"values={len(self.values)}>"
        )

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(text={self.text!r}, "
            f"values={self.values!r})"
        )

    def __eq__(self, other: object) -> bool:
        return (
            isinstance(other, Statement)
            and self.text == other.text
            and self.values == other.values
        )

    def copy(self) -> Statement:
        return Statement(self.text, self.values)

    @classmethod
    def coerce(cls, obj: StatementLike) -> Statement:
        """Turn any accepted statement form into a fresh `Statement`

        Accepts a `Statement`, raw query text, or a mapping with a `text`
        key and an optional `values` key. A copy is always returned so the
        caller's object is never rewritten.

        Raises:
            PgChainError: If the object cannot be used as a statement
        """
        if isinstance(obj, Statement):
            return obj.copy()
        if isinstance(obj, str):
            return cls(obj)
        if isinstance(obj, Mapping) and "text" in obj:
            return cls(obj["text"], obj.get("values"))
        if obj is None:
            raise PgChainError(
                "Cannot execute an empty statement. Builders return None "
                "when there are no fields to write"
            )
        raise PgChainError(f"Cannot execute {obj!r} as a statement")


class Result:
    """The output of one executed statement"""

    __slots__ = ("rows", "rowcount", "status")

    def __init__(
        self,
        rows: Optional[List[Row]] = None,
        rowcount: int = -1,
        status: Optional[str] = None,
    ) -> None:
        self.rows: List[Row] = rows or []
        self.rowcount = rowcount
        self.status = status

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(status={self.status!r}, "
            f"rowcount={self.rowcount}, rows={len(self.rows)})"
        )

    def __iter__(self) -> Iterator[Row]:
        return iter(self.rows)

    def __len__(self) -> int:
        return len(self.rows)

    @property
    def last_row(self) -> Optional[Row]:
        return self.rows[-1] if self.rows else None
