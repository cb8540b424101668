"""Unit tests for engines.sql.parser.parse_parameters."""

from condsql.engines.sql import parse_parameters
from condsql.engines.sql.parser import iter_conditions


def test_iter_conditions_includes_nested() -> None:
    t = "{% if a %}{% if b > 1 %}x{% endif %}{% endif %}"
    assert list(iter_conditions(t)) == [(0, "a "), (10, "b > 1 ")]


def test_parameters_from_conditions_and_substitutions() -> None:
    t = "SELECT * FROM t\n{% if $active && region == 'EU' %}\nWHERE r = $region\n{% endif %}"
    assert parse_parameters(t) == ["active", "region"]


def test_nested_and_else_branches() -> None:
    t = "{% if a %}{% if b %}1{% else %}{% if c %}2{% endif %}{% endif %}{% endif %}"
    assert parse_parameters(t) == ["a", "b", "c"]


def test_invalid_condition_contributes_nothing() -> None:
    assert parse_parameters("{% if a === %}x{% endif %} $b") == ["b"]


def test_string_literal_in_condition_ignored() -> None:
    assert parse_parameters("{% if name == '$x' %}y{% endif %}") == ["name"]


def test_bind_placeholders_ignored() -> None:
    assert parse_parameters("SELECT 1 WHERE id = :id") == []
