"""
Parse variable names from a conditional SQL template.

Names come from every ``{% if ... %}`` condition (nested or not, since any
of them may be reached depending on the values) and from ``$name``
substitution points in the text outside the tags.
"""

import re
from collections.abc import Iterator

from condsql.engines.sql.expression import ExpressionError, compile_expression
from condsql.engines.sql.scanner import IF_TAG, NOT_FOUND, TAG_CLOSE, find_tag

SUBSTITUTION_RE = re.compile(r"\$([A-Za-z_][A-Za-z0-9_]*)")


def iter_conditions(template: str) -> Iterator[tuple[int, str]]:
    """Yield ``(offset, condition)`` for each ``{% if`` tag that has a closing ``%}``."""
    pos = find_tag(template, IF_TAG)
    while pos != NOT_FOUND:
        end = find_tag(template, TAG_CLOSE, pos + 1)
        if end == NOT_FOUND:
            return
        yield pos, template[pos + len(IF_TAG) : end]
        pos = find_tag(template, IF_TAG, pos + 1)


def parse_parameters(template: str) -> list[str]:
    """
    Sorted variable names (without ``$``) that *template* can read.

    Conditions that do not parse contribute nothing.
    """
    names: set[str] = set()
    outside: list[str] = []
    last = 0
    for offset, condition in iter_conditions(template):
        try:
            names.update(compile_expression(condition).names)
        except ExpressionError:
            pass
        tag_end = offset + len(IF_TAG) + len(condition) + len(TAG_CLOSE)
        outside.append(template[last:offset])
        last = max(last, tag_end)
    outside.append(template[last:])
    for chunk in outside:
        names.update(SUBSTITUTION_RE.findall(chunk))
    return sorted(names)
