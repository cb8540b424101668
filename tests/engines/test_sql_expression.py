"""Unit tests for engines.sql.expression (closed condition grammar)."""

import sys
from decimal import Decimal

import pytest

from condsql.engines.sql import expression
from condsql.engines.sql.expression import (
    Evaluated,
    ExpressionEvaluationError,
    ExpressionSyntaxError,
    Failed,
    Token,
    compile_expression,
    evaluate,
    tokenize,
    try_evaluate,
)


# int() refuses very long digit strings only where the interpreter enforces a limit.
needs_int_digit_limit = pytest.mark.skipif(
    not hasattr(sys, "get_int_max_str_digits"), reason="no int digit limit"
)


def value_of(source: str, env: dict | None = None):
    return compile_expression(source).evaluate(env or {})


class TestTokenize:
    def test_tokens(self):
        assert tokenize("$a >= 1.5") == [
            Token("name", "a", 0),
            Token("op", ">=", 3),
            Token("number", 1.5, 6),
            Token("eof", None, 9),
        ]

    def test_keywords_case_insensitive(self):
        kinds = [(t.kind, t.value) for t in tokenize("TRUE Or null")]
        assert kinds == [("keyword", "true"), ("keyword", "or"), ("keyword", "null"), ("eof", None)]

    def test_dollar_keyword_is_variable(self):
        assert tokenize("$true")[0] == Token("name", "true", 0)

    def test_string_escapes(self):
        assert tokenize(r"'it\'s\n'")[0].value == "it's\n"

    def test_rejects_unknown_character(self):
        with pytest.raises(ExpressionSyntaxError):
            tokenize("a.b")

    @needs_int_digit_limit
    def test_rejects_oversized_integer(self):
        with pytest.raises(ExpressionSyntaxError):
            tokenize("9" * 5000)


class TestLiteralsAndVariables:
    def test_literals(self):
        assert value_of("42") == 42
        assert value_of("4.5") == 4.5
        assert value_of('"x"') == "x"
        assert value_of("true") is True
        assert value_of("False") is False
        assert value_of("null") is None

    def test_variable_lookup(self):
        assert value_of("count", {"count": 3}) == 3
        assert value_of("$count", {"count": 3}) == 3

    def test_unbound_is_null(self):
        assert value_of("missing") is None
        assert evaluate("missing", {}) is False
        assert evaluate("!missing", {}) is True

    def test_names(self):
        assert compile_expression("$a && b || a").names == frozenset({"a", "b"})

    def test_decimal_truthiness(self):
        assert evaluate("n", {"n": Decimal("0")}) is False
        assert evaluate("n", {"n": Decimal("0.5")}) is True

    def test_empty_containers_are_falsy(self):
        for empty in ([], (), {}, set()):
            assert evaluate("v", {"v": empty}) is False
        assert evaluate("v", {"v": [0]}) is True
        assert evaluate("v", {"v": {"k": None}}) is True


class TestOperators:
    def test_precedence(self):
        assert value_of("1 + 2 * 3") == 7
        assert value_of("(1 + 2) * 3") == 9
        assert value_of("1 + 2 * 3 == 7 && 2 > 1") is True

    def test_unary(self):
        assert value_of("-3 + 1") == -2
        assert value_of("!0") is True
        assert value_of("!!'x'") is True

    def test_division(self):
        assert value_of("10 / 5") == 2
        assert isinstance(value_of("10 / 5"), int)
        assert value_of("10 / 4") == 2.5

    def test_modulo_sign_follows_dividend(self):
        assert value_of("7 % 3") == 1
        assert value_of("-7 % 3") == -1

    def test_numeric_string_arithmetic(self):
        assert value_of("n + 1", {"n": "41"}) == 42

    def test_logical_short_circuit(self):
        assert value_of("false && 1 / 0") is False
        assert value_of("true || 1 / 0") is True
        assert value_of("1 && 2") is True

    def test_keyword_logical(self):
        assert value_of("a and b", {"a": 1, "b": 0}) is False
        assert value_of("a or b", {"a": 0, "b": 1}) is True

    def test_ternary(self):
        assert value_of("x ? 'yes' : 'no'", {"x": 1}) == "yes"
        assert value_of("x ? 'yes' : 'no'") == "no"

    def test_ternary_right_associative(self):
        assert value_of("true ? false ? 1 : 2 : 3") == 2
        assert value_of("false ? 1 : true ? 2 : 3") == 2

    def test_ternary_does_not_evaluate_other_arm(self):
        assert value_of("true ? 1 : 1 / 0") == 1


class TestComparison:
    def test_loose_equality(self):
        assert value_of("null == 0") is True
        assert value_of("null == false") is True
        assert value_of("'1' == 1") is True
        assert value_of("1.0 == 1") is True
        assert value_of("'abc' == 0") is False
        assert value_of("'a' != 'b'") is True
        assert value_of("1 <> 2") is True

    def test_unbound_equals_null(self):
        assert value_of("x == null") is True

    def test_ordering(self):
        assert value_of("'b' > 'a'") is True
        assert value_of("n >= 10", {"n": "12"}) is True
        assert value_of("x > 0") is False
        assert value_of("!(x > 0)") is True

    def test_incomparable(self):
        with pytest.raises(ExpressionEvaluationError):
            value_of("'abc' > 1")

    def test_decimal_operands(self):
        assert value_of("n > 1", {"n": Decimal("5")}) is True
        assert value_of("n == 5", {"n": Decimal("5")}) is True
        assert value_of("n == '5.0'", {"n": Decimal("5")}) is True
        assert value_of("n + 1", {"n": Decimal("1.5")}) == Decimal("2.5")

    def test_decimal_mixed_with_float_fails(self):
        with pytest.raises(ExpressionEvaluationError):
            value_of("n + 0.5", {"n": Decimal("1")})

    @needs_int_digit_limit
    def test_oversized_numeric_string_is_plain_string(self):
        long_digits = "1" * 5000
        assert value_of("s == 0", {"s": long_digits}) is False
        with pytest.raises(ExpressionEvaluationError):
            value_of("s > 0", {"s": long_digits})


class TestTryEvaluate:
    def test_evaluated(self):
        assert try_evaluate("a == 1", {"a": 1}) == Evaluated(True)
        assert try_evaluate("a == 1", {"a": 2}) == Evaluated(False)

    @pytest.mark.parametrize(
        "condition",
        [
            "",
            "   ",
            "a ==",
            "a === b",
            "foo()",
            "import os",
            "a.b",
            "(1",
            "1 ? 2",
            "__import__('os').system('ls')",
        ],
    )
    def test_syntax_failure(self, condition):
        outcome = try_evaluate(condition, {})
        assert isinstance(outcome, Failed)
        assert evaluate(condition, {}) is False

    def test_runtime_failure(self):
        assert isinstance(try_evaluate("1 / 0", {}), Failed)
        assert isinstance(try_evaluate("5 % x", {}), Failed)
        assert evaluate("1 / 0", {}) is False

    def test_deeply_nested(self):
        source = "(" * 5000 + "1" + ")" * 5000
        assert isinstance(try_evaluate(source, {}), Failed)


class TestCompileCache:
    def test_cached(self):
        expression.clear_cache()
        assert compile_expression("a && b") is compile_expression("a && b")

    def test_cache_disabled(self, monkeypatch):
        monkeypatch.setattr(expression.settings, "EXPRESSION_CACHE_SIZE", 0)
        assert compile_expression("a || b") is not compile_expression("a || b")

    def test_bounded(self, monkeypatch):
        monkeypatch.setattr(expression.settings, "EXPRESSION_CACHE_SIZE", 2)
        expression.clear_cache()
        first = compile_expression("x1")
        compile_expression("x2")
        compile_expression("x3")
        assert compile_expression("x1") is not first

    def test_syntax_error_raises(self):
        with pytest.raises(ExpressionSyntaxError):
            compile_expression("a &&")
