"""
Closed expression language for directive conditions.

Conditions are tokenized and parsed by a small recursive-descent parser into
a tree of nodes, then evaluated against a variable mapping. There are no
calls, attribute lookups, subscripts or assignments, so a condition can only
read variables and combine literals.

Supported:

- literals: ``12``, ``1.5``, ``'text'``, ``"text"``, ``true``, ``false``, ``null``
- variables: ``name`` or ``$name`` (unbound -> ``null``)
- ``!x``, ``-x``, ``+x``
- ``* / %``, ``+ -``
- ``< <= > >=``, ``== != <>`` (loose equality)
- ``&&`` / ``and``, ``||`` / ``or`` (short-circuit)
- ``test ? a : b`` and parentheses

Parsed trees are cached (LRU keyed by source text); results never are.
"""

import logging
import numbers
import re
import threading
from collections import OrderedDict
from collections.abc import Mapping
from typing import Any, NamedTuple

from condsql.core.config import settings
from condsql.engines.sql.environment import normalize_name

_log = logging.getLogger(__name__)


class ExpressionError(ValueError):
    """Base class for condition parse/evaluation errors."""

    pass


class ExpressionSyntaxError(ExpressionError):
    """Raised when a condition is not valid in the expression grammar."""

    pass


class ExpressionEvaluationError(ExpressionError):
    """Raised when a well-formed condition cannot be evaluated (e.g. ``1 / 0``)."""

    pass


# ---------------------------------------------------------------------------
# Tokenizer
# ---------------------------------------------------------------------------


class Token(NamedTuple):
    kind: str  # number | string | name | keyword | op | eof
    value: Any
    pos: int


_TOKEN_RE = re.compile(
    r"""
    (?P<ws>\s+)
  | (?P<number>\d+\.\d*|\.\d+|\d+)
  | (?P<string>'(?:[^'\\]|\\.)*'|"(?:[^"\\]|\\.)*")
  | (?P<name>\$?[A-Za-z_][A-Za-z0-9_]*)
  | (?P<op>&&|\|\||==|!=|<>|<=|>=|[-+*/%<>!?:()])
    """,
    re.VERBOSE | re.DOTALL,
)

_KEYWORDS = {"true", "false", "null", "and", "or"}

_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "0": "\0"}


def _unquote(literal: str) -> str:
    out: list[str] = []
    chars = iter(literal[1:-1])
    for ch in chars:
        if ch == "\\":
            nxt = next(chars, "\\")
            out.append(_ESCAPES.get(nxt, nxt))
        else:
            out.append(ch)
    return "".join(out)


def tokenize(source: str) -> list[Token]:
    """Split *source* into tokens, ending with an ``eof`` token.

    Raises ExpressionSyntaxError on any character outside the grammar.
    """
    tokens: list[Token] = []
    pos = 0
    length = len(source)
    while pos < length:
        m = _TOKEN_RE.match(source, pos)
        if m is None:
            raise ExpressionSyntaxError(
                f"Unexpected character {source[pos]!r} at position {pos}"
            )
        kind = m.lastgroup
        text = m.group()
        if kind == "number":
            try:
                value: Any = float(text) if "." in text else int(text)
            except (OverflowError, ValueError) as e:
                raise ExpressionSyntaxError(f"Invalid number at position {pos}: {e}") from e
            tokens.append(Token("number", value, pos))
        elif kind == "string":
            tokens.append(Token("string", _unquote(text), pos))
        elif kind == "name":
            if not text.startswith("$") and text.lower() in _KEYWORDS:
                tokens.append(Token("keyword", text.lower(), pos))
            else:
                tokens.append(Token("name", normalize_name(text), pos))
        elif kind == "op":
            tokens.append(Token("op", text, pos))
        pos = m.end()
    tokens.append(Token("eof", None, length))
    return tokens


# ---------------------------------------------------------------------------
# Value semantics
# ---------------------------------------------------------------------------


def truthy(value: Any) -> bool:
    """``null``, ``false``, zero, ``''`` and empty lists, tuples, sets or dicts are
    falsy; all else is truthy."""
    if value is None:
        return False
    if isinstance(value, (bool, numbers.Number, str)):
        return bool(value)
    if isinstance(value, (list, tuple, set, frozenset, Mapping)):
        return len(value) > 0
    return True


def _is_number(value: Any) -> bool:
    return isinstance(value, numbers.Number) and not isinstance(value, bool)


_NUMERIC_RE = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def _parse_number(s: str) -> int | float | None:
    s = s.strip()
    if not _NUMERIC_RE.fullmatch(s):
        return None
    try:
        if s.lstrip("+-").isdigit():
            return int(s)
        return float(s)
    except (OverflowError, ValueError):
        # Too many digits for int(); treat as a plain string.
        return None


def _to_number(value: Any) -> Any:
    if value is None:
        return 0
    if isinstance(value, bool):
        return int(value)
    if _is_number(value):
        return value
    if isinstance(value, str):
        x = _parse_number(value)
        if x is not None:
            return x
    raise ExpressionEvaluationError(f"Not a number: {value!r}")


def loose_equals(left: Any, right: Any) -> bool:
    """``null``/boolean against anything compares truthiness; numbers and
    numeric strings compare numerically; everything else compares as-is."""
    if left is None or right is None or isinstance(left, bool) or isinstance(right, bool):
        return truthy(left) == truthy(right)
    if _is_number(left) and isinstance(right, str):
        x = _parse_number(right)
        return x == left if x is not None else str(left) == right
    if isinstance(left, str) and _is_number(right):
        x = _parse_number(left)
        return x == right if x is not None else left == str(right)
    return left == right


def _ordering_operands(left: Any, right: Any) -> tuple[Any, Any]:
    if isinstance(left, bool) or isinstance(right, bool):
        return truthy(left), truthy(right)
    if left is None:
        left = "" if isinstance(right, str) else 0
    if right is None:
        right = "" if isinstance(left, str) else 0
    if isinstance(left, str) and isinstance(right, str):
        return left, right
    return _to_number(left), _to_number(right)


def _compare(op: str, left: Any, right: Any) -> bool:
    a, b = _ordering_operands(left, right)
    try:
        if op == "<":
            return a < b
        if op == "<=":
            return a <= b
        if op == ">":
            return a > b
        return a >= b
    except (ArithmeticError, TypeError) as e:
        raise ExpressionEvaluationError(f"Cannot compare {left!r} {op} {right!r}") from e


def _arith(op: str, left: Any, right: Any) -> Any:
    a, b = _to_number(left), _to_number(right)
    if op == "+":
        return a + b
    if op == "-":
        return a - b
    if op == "*":
        return a * b
    if op == "/":
        if b == 0:
            raise ExpressionEvaluationError("Division by zero")
        if isinstance(a, int) and isinstance(b, int) and a % b == 0:
            return a // b
        return a / b
    # "%": integer remainder, sign follows the dividend
    ia, ib = int(a), int(b)
    if ib == 0:
        raise ExpressionEvaluationError("Modulo by zero")
    r = abs(ia) % abs(ib)
    return -r if ia < 0 else r


# ---------------------------------------------------------------------------
# Tree nodes
# ---------------------------------------------------------------------------


class _Node:
    __slots__ = ()

    def evaluate(self, env: Mapping[str, Any]) -> Any:  # pragma: no cover - abstract
        raise NotImplementedError


class _Literal(_Node):
    __slots__ = ("value",)

    def __init__(self, value: Any) -> None:
        self.value = value

    def evaluate(self, env: Mapping[str, Any]) -> Any:
        return self.value


class _Variable(_Node):
    __slots__ = ("name",)

    def __init__(self, name: str) -> None:
        self.name = name

    def evaluate(self, env: Mapping[str, Any]) -> Any:
        return env.get(self.name)


class _Unary(_Node):
    __slots__ = ("op", "operand")

    def __init__(self, op: str, operand: _Node) -> None:
        self.op = op
        self.operand = operand

    def evaluate(self, env: Mapping[str, Any]) -> Any:
        value = self.operand.evaluate(env)
        if self.op == "!":
            return not truthy(value)
        if self.op == "-":
            return -_to_number(value)
        return _to_number(value)


class _Binary(_Node):
    __slots__ = ("op", "left", "right")

    def __init__(self, op: str, left: _Node, right: _Node) -> None:
        self.op = op
        self.left = left
        self.right = right

    def evaluate(self, env: Mapping[str, Any]) -> Any:
        op = self.op
        if op == "&&":
            return truthy(self.left.evaluate(env)) and truthy(self.right.evaluate(env))
        if op == "||":
            return truthy(self.left.evaluate(env)) or truthy(self.right.evaluate(env))
        left = self.left.evaluate(env)
        right = self.right.evaluate(env)
        if op == "==":
            return loose_equals(left, right)
        if op in ("!=", "<>"):
            return not loose_equals(left, right)
        if op in ("<", "<=", ">", ">="):
            return _compare(op, left, right)
        try:
            return _arith(op, left, right)
        except (ArithmeticError, TypeError, ValueError) as e:
            raise ExpressionEvaluationError(f"Invalid operands for {op!r}: {e}") from e


class _Conditional(_Node):
    __slots__ = ("test", "then", "otherwise")

    def __init__(self, test: _Node, then: _Node, otherwise: _Node) -> None:
        self.test = test
        self.then = then
        self.otherwise = otherwise

    def evaluate(self, env: Mapping[str, Any]) -> Any:
        if truthy(self.test.evaluate(env)):
            return self.then.evaluate(env)
        return self.otherwise.evaluate(env)


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------

_KEYWORD_OPS = {"and": "&&", "or": "||"}

# Binary levels, lowest precedence first.
_BINARY_LEVELS: list[frozenset[str]] = [
    frozenset({"||"}),
    frozenset({"&&"}),
    frozenset({"==", "!=", "<>"}),
    frozenset({"<", "<=", ">", ">="}),
    frozenset({"+", "-"}),
    frozenset({"*", "/", "%"}),
]

_LITERAL_KEYWORDS = {"true": True, "false": False, "null": None}


class _Parser:
    def __init__(self, tokens: list[Token]) -> None:
        self._tokens = tokens
        self._i = 0

    def _peek(self) -> Token:
        return self._tokens[self._i]

    def _advance(self) -> Token:
        tok = self._tokens[self._i]
        self._i += 1
        return tok

    def _peek_op(self) -> str | None:
        tok = self._peek()
        if tok.kind == "op":
            return tok.value
        if tok.kind == "keyword":
            return _KEYWORD_OPS.get(tok.value)
        return None

    def _expect(self, op: str) -> None:
        tok = self._advance()
        if tok.kind != "op" or tok.value != op:
            raise ExpressionSyntaxError(f"Expected {op!r} at position {tok.pos}")

    def parse(self) -> _Node:
        node = self._ternary()
        tok = self._peek()
        if tok.kind != "eof":
            raise ExpressionSyntaxError(
                f"Unexpected {tok.value!r} at position {tok.pos}"
            )
        return node

    def _ternary(self) -> _Node:
        test = self._binary(0)
        if self._peek_op() != "?":
            return test
        self._advance()
        then = self._ternary()
        self._expect(":")
        otherwise = self._ternary()
        return _Conditional(test, then, otherwise)

    def _binary(self, level: int) -> _Node:
        if level == len(_BINARY_LEVELS):
            return self._unary()
        ops = _BINARY_LEVELS[level]
        node = self._binary(level + 1)
        while (op := self._peek_op()) in ops:
            self._advance()
            node = _Binary(op, node, self._binary(level + 1))
        return node

    def _unary(self) -> _Node:
        op = self._peek_op()
        if op in ("!", "-", "+"):
            self._advance()
            return _Unary(op, self._unary())
        return self._primary()

    def _primary(self) -> _Node:
        tok = self._advance()
        if tok.kind in ("number", "string"):
            return _Literal(tok.value)
        if tok.kind == "name":
            return _Variable(tok.value)
        if tok.kind == "keyword" and tok.value in _LITERAL_KEYWORDS:
            return _Literal(_LITERAL_KEYWORDS[tok.value])
        if tok.kind == "op" and tok.value == "(":
            node = self._ternary()
            self._expect(")")
            return node
        if tok.kind == "eof":
            raise ExpressionSyntaxError("Unexpected end of expression")
        raise ExpressionSyntaxError(f"Unexpected {tok.value!r} at position {tok.pos}")


class CompiledExpression:
    """A parsed condition; ``names`` lists the variables it reads."""

    __slots__ = ("source", "names", "_root")

    def __init__(self, source: str, names: frozenset[str], root: _Node) -> None:
        self.source = source
        self.names = names
        self._root = root

    def evaluate(self, env: Mapping[str, Any]) -> Any:
        """Evaluate against *env* (normalized names). Raises ExpressionEvaluationError."""
        return self._root.evaluate(env)

    def __repr__(self) -> str:
        return f"CompiledExpression({self.source!r})"


def _compile(source: str) -> CompiledExpression:
    tokens = tokenize(source)
    if tokens[0].kind == "eof":
        raise ExpressionSyntaxError("Empty expression")
    try:
        root = _Parser(tokens).parse()
    except RecursionError as e:
        raise ExpressionSyntaxError("Expression is nested too deeply") from e
    names = frozenset(t.value for t in tokens if t.kind == "name")
    return CompiledExpression(source, names, root)


_compiled_cache: OrderedDict[str, CompiledExpression] = OrderedDict()
_cache_lock = threading.Lock()


def compile_expression(source: str) -> CompiledExpression:
    """Parse *source*, using the LRU cache. Raises ExpressionSyntaxError."""
    max_size = settings.EXPRESSION_CACHE_SIZE
    if max_size <= 0:
        return _compile(source)
    with _cache_lock:
        compiled = _compiled_cache.get(source)
        if compiled is not None:
            _compiled_cache.move_to_end(source)
            return compiled
    compiled = _compile(source)
    with _cache_lock:
        _compiled_cache[source] = compiled
        while len(_compiled_cache) > max_size:
            _compiled_cache.popitem(last=False)
    return compiled


def clear_cache() -> None:
    """Drop every cached parsed expression."""
    with _cache_lock:
        _compiled_cache.clear()


# ---------------------------------------------------------------------------
# Outcome API
# ---------------------------------------------------------------------------


class Evaluated(NamedTuple):
    value: bool


class Failed(NamedTuple):
    reason: str


def try_evaluate(condition: str, env: Mapping[str, Any]) -> Evaluated | Failed:
    """Evaluate *condition* to a boolean outcome without raising."""
    try:
        return Evaluated(truthy(compile_expression(condition).evaluate(env)))
    except ExpressionError as e:
        return Failed(str(e))
    except RecursionError:
        return Failed("Expression is nested too deeply")


def evaluate(condition: str, env: Mapping[str, Any]) -> bool:
    """Truth value of *condition*; a condition that fails is ``False``."""
    outcome = try_evaluate(condition, env)
    if isinstance(outcome, Failed):
        _log.debug("Condition %r failed: %s", condition, outcome.reason)
        return False
    return outcome.value
