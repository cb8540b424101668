"""
Decompose a document around its first (leftmost) top-level directive.

    before {% if <condition> %} valid {% else %} invalid {% endif %} after

With ``trim_prefix`` (the default), the character right before the ``if`` tag
and right before a top-level ``else`` tag is dropped as well, so that a
directive written on its own line takes its leading newline with it.
"""

from typing import NamedTuple

from condsql.engines.sql.scanner import (
    ELSE_TAG,
    ENDIF_TAG,
    IF_TAG,
    NOT_FOUND,
    TAG_CLOSE,
    find_else,
    find_span,
    find_tag,
)


class Block(NamedTuple):
    before: str
    condition: str
    valid: str
    invalid: str
    after: str


def _cut_before(text: str, offset: int, trim_prefix: bool) -> str:
    if trim_prefix:
        return text[: max(offset - 1, 0)]
    return text[:offset]


def extract_block(text: str, *, trim_prefix: bool = True) -> Block | None:
    """
    Split *text* around its first directive, or return ``None`` when there is
    nothing left to render (no ``{% if ``, or the first one is unmatched or
    has no closing ``%}`` before its ``endif``).
    """
    span = find_span(text)
    if span is None:
        return None

    cond_start = span.open_offset + len(IF_TAG)
    cond_end = find_tag(text, TAG_CLOSE, span.open_offset + 1)
    if cond_end == NOT_FOUND or cond_end + len(TAG_CLOSE) > span.close_offset:
        return None

    body = text[cond_end + len(TAG_CLOSE) : span.close_offset]
    else_offset = find_else(body)
    if else_offset == NOT_FOUND:
        valid, invalid = body, ""
    else:
        valid = _cut_before(body, else_offset, trim_prefix)
        invalid = body[else_offset + len(ELSE_TAG) :]

    return Block(
        before=_cut_before(text, span.open_offset, trim_prefix),
        condition=text[cond_start:cond_end],
        valid=valid,
        invalid=invalid,
        after=text[span.close_offset + len(ENDIF_TAG) :],
    )
