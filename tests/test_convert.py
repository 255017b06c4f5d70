import pytest

from pgchain.convert import convert_sql_params
from pgchain.exception import PgChainError


def test_converts_sql_params():
    sql = """
        SELECT *
        FROM sometable
        WHERE name = $1
        LIMIT $2
    """
    expected = """
        SELECT *
        FROM sometable
        WHERE name = %s
        LIMIT %s
    """
    converted, values = convert_sql_params(sql, ["foo", 10])

    assert converted == expected
    assert values == ["foo", 10]


def test_orders_values_by_marker():
    converted, values = convert_sql_params(
        "SELECT * FROM t WHERE a = $2 OR b = $1 OR c = $2", ["one", "two"]
    )
    assert converted == "SELECT * FROM t WHERE a = %s OR b = %s OR c = %s"
    assert values == ["two", "one", "two"]


def test_escapes_percent_when_binding():
    converted, _ = convert_sql_params(
        "SELECT * FROM t WHERE name LIKE 'a%' AND id = $1", [1]
    )
    assert converted == "SELECT * FROM t WHERE name LIKE 'a%%' AND id = %s"


def test_leaves_text_without_values_untouched():
    sql = "SELECT * FROM t WHERE name LIKE 'a%'"
    assert convert_sql_params(sql) == (sql, None)
    assert convert_sql_params(sql, []) == (sql, None)


def test_dollar_quoting_is_not_a_marker():
    converted, values = convert_sql_params("SELECT $$a$$, $1", [5])
    assert converted == "SELECT $$a$$, %s"
    assert values == [5]


def test_marker_without_value():
    with pytest.raises(PgChainError, match=r"Parameter \$3 has no value"):
        convert_sql_params("SELECT $1, $3", [1, 2])
