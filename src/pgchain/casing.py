import re
from typing import Any

UPPER = re.compile(r"([A-Z])")
UNDERSCORED = re.compile(r"_([a-zA-Z0-9])")


def to_snake_case(value: Any) -> Any:
    """Convert camelCase identifiers to snake_case

    Strings are converted directly. Dicts have their keys converted, and any
    nested dict or list values are converted recursively. Other values are
    returned unchanged.

    Example:

    ```python
    to_snake_case("firstName")  # "first_name"
    to_snake_case({"userId": 1, "tags": [{"tagName": "x"}]})
    # {"user_id": 1, "tags": [{"tag_name": "x"}]}
    ```
    """
    return _change_case(value, to_snake=True)


def to_camel_case(value: Any) -> Any:
    """Convert snake_case identifiers to camelCase. The inverse of
    `to_snake_case`."""
    return _change_case(value, to_snake=False)


def _change_case(value: Any, to_snake: bool) -> Any:
    if not value:
        return value
    if isinstance(value, str):
        if to_snake:
            return UPPER.sub(lambda m: f"_{m.group(1).lower()}", value)
        return UNDERSCORED.sub(lambda m: m.group(1).upper(), value)
    if isinstance(value, dict):
        return {
            _change_case(key, to_snake): (
                _change_case(item, to_snake)
                if isinstance(item, (dict, list, tuple))
                else item
            )
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        converted = [
            (
                _change_case(item, to_snake)
                if isinstance(item, (dict, list, tuple))
                else item
            )
            for item in value
        ]
        return tuple(converted) if isinstance(value, tuple) else converted
    return value
