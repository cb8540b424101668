"""
SQL literal formatting for ``$name`` substitution in ``render_sql``.

Every formatter returns ``SqlSafe`` so that a value formatted once is never
quoted a second time. ``sql_literal`` picks a formatter from the Python type
of the value; wrap trusted identifiers in ``sql_raw`` to insert them as-is.
"""

import json
from datetime import date, datetime
from typing import Any

_QUOTE_ESCAPE = str.maketrans({"'": "''"})

_NULL = "NULL"
_EMPTY_IN = "(SELECT 1 WHERE 1=0)"


class SqlSafe(str):
    """A string that is already valid SQL text and must not be escaped again."""


def _quoted(s: str) -> SqlSafe:
    return SqlSafe("'" + s.translate(_QUOTE_ESCAPE) + "'")


def sql_string(value: Any) -> SqlSafe:
    """``'text'`` with embedded quotes doubled; None -> NULL."""
    if value is None:
        return SqlSafe(_NULL)
    return _quoted(str(value))


def sql_int(value: Any) -> SqlSafe:
    """Integer literal; None or non-integers -> NULL."""
    try:
        return SqlSafe(_NULL if value is None else str(int(value)))
    except (TypeError, ValueError):
        return SqlSafe(_NULL)


def sql_float(value: Any) -> SqlSafe:
    try:
        return SqlSafe(_NULL if value is None else str(float(value)))
    except (TypeError, ValueError):
        return SqlSafe(_NULL)


def sql_bool(value: Any) -> SqlSafe:
    if value is None:
        return SqlSafe(_NULL)
    return SqlSafe("TRUE" if value else "FALSE")


def sql_date(value: Any) -> SqlSafe:
    """``'YYYY-MM-DD'`` from a date, datetime or ISO-like string; else NULL."""
    if isinstance(value, datetime):
        value = value.date()
    if isinstance(value, date):
        return _quoted(value.isoformat())
    if isinstance(value, str) and len(value) >= 10 and value[4] == "-" and value[7] == "-":
        return _quoted(value[:10])
    return SqlSafe(_NULL)


def sql_datetime(value: Any) -> SqlSafe:
    """ISO timestamp literal; a plain date becomes midnight; strings pass quoted."""
    if isinstance(value, str):
        return _quoted(value)
    if isinstance(value, datetime):
        return _quoted(value.isoformat())
    if isinstance(value, date):
        return _quoted(datetime.combine(value, datetime.min.time()).isoformat())
    return SqlSafe(_NULL)


def _scalar(v: Any) -> str:
    if v is None:
        return _NULL
    if isinstance(v, bool):
        return "TRUE" if v else "FALSE"
    if isinstance(v, (int, float)):
        return str(v)
    return _quoted(str(v))


def in_list(value: Any) -> SqlSafe:
    """``(1, 'a', NULL)`` for an IN clause; empty/None -> a subquery matching nothing."""
    if value is None or isinstance(value, (str, bytes)):
        items = [] if value is None else [value]
    else:
        try:
            items = list(value)
        except TypeError:
            items = [value]
    if not items:
        return SqlSafe(_EMPTY_IN)
    return SqlSafe("(" + ", ".join(_scalar(v) for v in items) + ")")


def _escape_like(s: str) -> str:
    return s.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def sql_like(value: Any) -> SqlSafe:
    """Quoted LIKE operand with ``%``/``_`` escaped (exact match)."""
    if value is None:
        return SqlSafe(_NULL)
    return _quoted(_escape_like(str(value)))


def sql_like_start(value: Any) -> SqlSafe:
    """Prefix match: ``'value%'``."""
    if value is None:
        return SqlSafe(_NULL)
    return _quoted(_escape_like(str(value)) + "%")


def sql_like_end(value: Any) -> SqlSafe:
    """Suffix match: ``'%value'``."""
    if value is None:
        return SqlSafe(_NULL)
    return _quoted("%" + _escape_like(str(value)))


def sql_json(value: Any) -> SqlSafe:
    if value is None:
        return SqlSafe(_NULL)
    try:
        return _quoted(json.dumps(value, default=str))
    except (TypeError, ValueError):
        return SqlSafe(_NULL)


def sql_raw(value: Any) -> SqlSafe:
    """Insert *value* verbatim. Only for trusted text such as table names."""
    if value is None:
        return SqlSafe(_NULL)
    return SqlSafe(str(value))


def sql_literal(value: Any) -> str:
    """
    Format any value as a SQL literal:

    * ``SqlSafe`` -> unchanged
    * ``None`` -> ``NULL``; ``bool`` -> ``TRUE``/``FALSE``; numbers -> digits
    * ``list``/``tuple``/``set`` -> ``in_list``; ``dict`` -> ``sql_json``
    * ``datetime`` -> ``sql_datetime``; ``date`` -> ``sql_date``
    * anything else -> ``sql_string``
    """
    if isinstance(value, SqlSafe):
        return str(value)
    if isinstance(value, (list, tuple, set, frozenset)):
        return in_list(value)
    if isinstance(value, dict):
        return sql_json(value)
    if isinstance(value, datetime):
        return sql_datetime(value)
    if isinstance(value, date):
        return sql_date(value)
    return _scalar(value)
