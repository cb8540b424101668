"""
Static checks for conditional SQL templates.

Rendering silently degrades on malformed templates (unmatched ``if`` becomes
literal text, a bad condition counts as false). This module reports those
cases up front so template authors can fix them.

Usage::

    warnings = check_template_safety(template_content)
    # [{"kind": "unterminated_if", "line": 3, "message": "..."}]
"""

from typing import Any

from condsql.engines.sql.expression import ExpressionError, compile_expression
from condsql.engines.sql.scanner import ELSE_TAG, ENDIF_TAG, IF_TAG, NOT_FOUND, TAG_CLOSE


def _offsets(template: str, token: str) -> list[int]:
    out: list[int] = []
    pos = template.find(token)
    while pos != NOT_FOUND:
        out.append(pos)
        pos = template.find(token, pos + 1)
    return out


def _line_of(template: str, offset: int) -> int:
    return template.count("\n", 0, offset) + 1


def _condition_problem(template: str, offset: int) -> str | None:
    end = template.find(TAG_CLOSE, offset + 1)
    if end == NOT_FOUND:
        return "'{% if' tag is never closed with '%}'."
    condition = template[offset + len(IF_TAG) : end]
    try:
        compile_expression(condition)
    except ExpressionError as e:
        return f"Condition {condition.strip()!r} is invalid ({e}); it will always be false."
    return None


def check_template_safety(template: str) -> list[dict[str, Any]]:
    """Return warnings for directive problems in *template*, in document order.

    Each warning is a dict with ``kind``, ``line`` and ``message`` keys.
    An empty list means no issues were detected.
    """
    events = sorted(
        [(o, "if") for o in _offsets(template, IF_TAG)]
        + [(o, "else") for o in _offsets(template, ELSE_TAG)]
        + [(o, "endif") for o in _offsets(template, ENDIF_TAG)]
    )
    warnings: list[dict[str, Any]] = []

    def warn(kind: str, offset: int, message: str) -> None:
        warnings.append({"kind": kind, "line": _line_of(template, offset), "message": message})

    # Each open entry: [offset of "{% if", whether its else was seen]
    open_ifs: list[list[Any]] = []
    for offset, kind in events:
        if kind == "if":
            problem = _condition_problem(template, offset)
            if problem:
                warn("invalid_condition", offset, problem)
            open_ifs.append([offset, False])
        elif kind == "else":
            if not open_ifs:
                warn("orphan_else", offset, "'{% else %}' outside any '{% if %}' is kept as literal text.")
            elif open_ifs[-1][1]:
                warn(
                    "duplicate_else",
                    offset,
                    "Second '{% else %}' for the same '{% if %}' is kept inside the else branch.",
                )
            else:
                open_ifs[-1][1] = True
        elif open_ifs:
            open_ifs.pop()
        else:
            warn("orphan_endif", offset, "'{% endif %}' without a matching '{% if %}' is kept as literal text.")

    for offset, _seen_else in open_ifs:
        warn(
            "unterminated_if",
            offset,
            "'{% if %}' has no matching '{% endif %}'; text from here on is rendered as-is once reached.",
        )

    warnings.sort(key=lambda w: w["line"])
    return warnings
