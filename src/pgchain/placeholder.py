"""
Resolution of `#key#` placeholders between the statements of a transaction.

A statement may reference a column of a row returned by an earlier statement
in the same transaction:

    INSERT INTO authors (name) VALUES ('Ann') RETURNING id
    UPDATE books SET author_id = #id# WHERE title = 'Untitled'

The placeholder is replaced by a SQL literal right before the statement
runs. The default resolver works on the raw text and knows nothing about
SQL quoting, so a `#key#` token inside a string literal is replaced as well
when it is surrounded by non-word characters.
"""

from __future__ import annotations

import logging
import math
import re
from abc import ABC, abstractmethod
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Optional, Sequence

from pgchain.statement import Result

logger = logging.getLogger(__name__)

PLACEHOLDER = re.compile(r"(\W)#(.+?)#(?!\w)")

_NOT_FOUND = object()


class PlaceholderResolver(ABC):
    @abstractmethod
    def resolve(
        self, text: str, results: Sequence[Result], bound: bool = False
    ) -> str:
        """Return the statement text with every placeholder replaced using
        the results of the statements that already ran

        `text` is already in the driver's paramstyle. When `bound` is true
        the statement is sent with parameters, so any `%` in an inserted
        literal must be doubled.
        """


class RegexPlaceholderResolver(PlaceholderResolver):
    def resolve(
        self, text: str, results: Sequence[Result], bound: bool = False
    ) -> str:
        def substitute(match: "re.Match[str]") -> str:
            key = match.group(2).lower()
            literal = self.render(self.lookup(key, results))
            logger.debug("Resolved placeholder #%s# to %s", key, literal)
            if bound:
                literal = literal.replace("%", "%%")
            return f"{match.group(1)}{literal}"

        return PLACEHOLDER.sub(substitute, text)

    @staticmethod
    def lookup(key: str, results: Sequence[Result]) -> Any:
        """Find the value of `key` in the last row of the most recent result
        that has it. A column holding NULL counts as found."""
        for result in reversed(results):
            row = result.last_row
            if row is None:
                continue
            value = row.get(key, _NOT_FOUND)
            if value is not _NOT_FOUND:
                return value
        return None

    @staticmethod
    def render(value: Any) -> str:
        if value is None:
            return "null"
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (int, float, Decimal)):
            return _special_number(value) or str(value)
        if isinstance(value, (datetime, date, time)):
            value = value.isoformat()
        return quote(str(value))


def _special_number(value: Any) -> Optional[str]:
    if isinstance(value, float) and not math.isfinite(value):
        is_nan = math.isnan(value)
    elif isinstance(value, Decimal) and not value.is_finite():
        is_nan = value.is_nan()
    else:
        return None
    if is_nan:
        return "'NaN'"
    return "'-Infinity'" if value < 0 else "'Infinity'"


def quote(value: str) -> str:
    escaped = value.replace("'", "''")
    return f"'{escaped}'"
