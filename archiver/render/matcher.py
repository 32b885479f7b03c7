"""Pair a closing token with its opening token in a flat token stream."""

from __future__ import annotations

from typing import Optional, Sequence

from markdown_it.token import Token


def match_open(
    tokens: Sequence[Token],
    close_index: int,
    *,
    open_type: str = "link_open",
    close_type: str = "link_close",
) -> Optional[Token]:
    """Return the opening token that balances ``tokens[close_index]``.

    Scans backward from ``close_index - 1`` with a nesting level starting at 1.
    Every *close_type* token passed on the way raises the level (a nested
    construct), every *open_type* token lowers it; the open token that brings
    the level to zero is the match.  The nearest preceding open token is not
    necessarily the right one.

    Returns ``None`` when the stream is unbalanced or *close_index* is out of
    range.  Callers treat that as "render the default" rather than an error.
    """
    if close_index < 0 or close_index >= len(tokens):
        return None

    level = 1
    for i in range(close_index - 1, -1, -1):
        token = tokens[i]
        if token.type == close_type:
            level += 1
        elif token.type == open_type:
            level -= 1
            if level == 0:
                return token
    return None
