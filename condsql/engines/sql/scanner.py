"""
Lexical scanning for ``{% if %}`` / ``{% else %}`` / ``{% endif %}`` directives.

No parse tree is built: every lookup is a plain substring search and nesting
is resolved by comparing the offsets of the next opener and the next closer.
Offsets are only valid for the exact text they were computed on.

There is no escaping: a literal ``{% if `` inside data is a directive.
"""

from typing import NamedTuple

IF_TAG = "{% if "
ELSE_TAG = "{% else %}"
ENDIF_TAG = "{% endif %}"
TAG_CLOSE = "%}"

NOT_FOUND = -1


class DirectiveSpan(NamedTuple):
    open_offset: int   # start of "{% if "
    close_offset: int  # start of the matching "{% endif %}"


def find_tag(text: str, token: str, start: int = 0) -> int:
    """Offset of the next literal *token* at or after *start*, or ``-1``."""
    return text.find(token, start)


def match_endif(text: str, if_offset: int) -> int:
    """
    Offset of the ``{% endif %}`` closing the ``{% if `` at *if_offset*.

    Single forward pass with a depth counter: whichever of the next opener /
    next closer comes first decides the step. Returns ``-1`` if the nesting
    never returns to the opening level.
    """
    depth = 0
    pos = if_offset + 1
    while True:
        next_endif = find_tag(text, ENDIF_TAG, pos)
        if next_endif == NOT_FOUND:
            return NOT_FOUND
        next_if = find_tag(text, IF_TAG, pos)
        if next_if != NOT_FOUND and next_if < next_endif:
            depth += 1
            pos = next_if + 1
            continue
        if depth == 0:
            return next_endif
        depth -= 1
        pos = next_endif + 1


def find_span(text: str, start: int = 0) -> DirectiveSpan | None:
    """Span of the first ``{% if `` at or after *start* and its ``endif``.

    ``None`` when there is no opener, or when the first opener is unmatched.
    """
    open_offset = find_tag(text, IF_TAG, start)
    if open_offset == NOT_FOUND:
        return None
    close_offset = match_endif(text, open_offset)
    if close_offset == NOT_FOUND:
        return None
    return DirectiveSpan(open_offset, close_offset)


def find_else(region: str, start: int = 0) -> int:
    """
    Offset of the ``{% else %}`` at the outermost level of *region*, or ``-1``.

    *region* is the body of one directive (between the ``if`` tag and its
    ``endif``). An ``else`` preceded by a nested ``if`` is skipped together
    with that nested directive, up to its own ``endif``.
    """
    while True:
        else_offset = find_tag(region, ELSE_TAG, start)
        if else_offset == NOT_FOUND:
            return NOT_FOUND
        nested_if = find_tag(region, IF_TAG, start)
        if nested_if == NOT_FOUND or nested_if > else_offset:
            return else_offset
        nested_end = match_endif(region, nested_if)
        if nested_end == NOT_FOUND:
            return NOT_FOUND
        start = nested_end + 1
