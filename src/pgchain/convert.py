import re
from typing import Any, List, Optional, Sequence, Tuple

from pgchain.exception import PgChainError

DOLLAR_POSITIONAL = re.compile(r"(\$(\d+))")


def convert_sql_params(
    query: str,
    values: Optional[Sequence[Any]] = None,
    positional_sub: str = r"%s",
) -> Tuple[str, Optional[List[Any]]]:
    """Rewrite `$n` markers into the driver's positional paramstyle

    The returned values follow the order in which the markers appear in the
    text, so markers may be repeated or used out of order. Literal `%` signs
    are escaped because the driver treats them as format characters once
    parameters are passed.

    Returns:
        Tuple[str, Optional[List[Any]]]: The converted text and the values
            to bind, or the untouched text and `None` if there are no values
    """
    if not values:
        return query, None

    ordered: List[Any] = []

    def substitute(match: "re.Match[str]") -> str:
        position = int(match.group(2))
        if not 0 < position <= len(values):
            raise PgChainError(
                f"Parameter ${position} has no value, "
                f"{len(values)} value(s) were given"
            )
        ordered.append(values[position - 1])
        return positional_sub

    query = DOLLAR_POSITIONAL.sub(substitute, query.replace("%", "%%"))
    return query, ordered
