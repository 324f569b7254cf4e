"""
Tool-call parser.

Finds the tool call, if any, in a block of free-form model output. The
surface syntax is:

    ※name
    ※name(arg1, "arg 2", 3.5)

- the marker character (``※`` by default) is immediately followed by the
  tool name (ASCII letters, digits, underscore);
- an optional argument list follows immediately, opened by ``(`` or ``（``
  and closed by ``)`` or ``）``;
- arguments are separated by ``,`` or ``，``; each is trimmed and empty ones
  are dropped;
- an argument starting with a quote (``"``, ``'``, ``“``, ``‘``) runs to its
  closing quote, so separators and brackets inside it are literal. The
  quotes themselves are kept; stripping them is the validator's job.

Only one call per reply is honoured. A reply with two calls is rejected as a
whole rather than running the first and dropping the rest.
"""

from __future__ import annotations

import string
from dataclasses import dataclass, field

from toolrelay.tools.errors import MalformedArgumentListError, MultipleInvocationsError

WORD_CHARS = frozenset(string.ascii_letters + string.digits + "_")
OPEN_BRACKETS = frozenset("(（")
CLOSE_BRACKETS = frozenset(")）")
SEPARATORS = frozenset(",，")
QUOTE_PAIRS = {'"': '"', "'": "'", "“": "”", "‘": "’"}


@dataclass(frozen=True)
class Invocation:
    """A parsed tool call: the tool name and its raw, still-quoted arguments."""

    tool_name: str
    raw_args: list[str] = field(default_factory=list)


def _scan_arguments(text: str, pos: int) -> tuple[list[str], int]:
    """
    Scan an argument list starting just after its opening bracket.

    Returns:
        The trimmed, non-empty raw arguments and the index just past the
        closing bracket.

    Raises:
        MalformedArgumentListError: On an unterminated quote or a missing
            closing bracket
    """
    start = pos
    args: list[str] = []
    current: list[str] = []
    at_arg_start = True

    while pos < len(text):
        char = text[pos]

        if at_arg_start and char.isspace():
            pos += 1
            continue

        if at_arg_start and char in QUOTE_PAIRS:
            closing = text.find(QUOTE_PAIRS[char], pos + 1)
            if closing == -1:
                raise MalformedArgumentListError(
                    f"Unterminated quoted argument in tool call: {text[pos:pos + 20]!r}"
                )
            current.append(text[pos:closing + 1])
            pos = closing + 1
            at_arg_start = False
            continue

        at_arg_start = False
        if char in SEPARATORS:
            args.append("".join(current))
            current = []
            at_arg_start = True
        elif char in CLOSE_BRACKETS:
            args.append("".join(current))
            return [a.strip() for a in args if a.strip()], pos + 1
        else:
            current.append(char)
        pos += 1

    raise MalformedArgumentListError(
        f"Argument list is missing its closing bracket: {text[start - 1:start + 20]!r}"
    )


def find_invocations(text: str, prefix: str) -> list[Invocation]:
    """
    Every tool call in ``text``, in order of appearance.

    A marker not followed by a word character is ordinary text.
    """
    invocations: list[Invocation] = []
    pos = 0
    while (marker := text.find(prefix, pos)) != -1:
        name_end = marker + len(prefix)
        while name_end < len(text) and text[name_end] in WORD_CHARS:
            name_end += 1

        name = text[marker + len(prefix):name_end]
        if not name:
            pos = marker + len(prefix)
            continue

        raw_args: list[str] = []
        pos = name_end
        if pos < len(text) and text[pos] in OPEN_BRACKETS:
            raw_args, pos = _scan_arguments(text, pos + 1)
        invocations.append(Invocation(tool_name=name, raw_args=raw_args))
    return invocations


def parse_invocation(text: str, prefix: str) -> Invocation | None:
    """
    The single tool call in ``text``, or None when the text has no call.

    Raises:
        MultipleInvocationsError: If the text contains more than one call
        MalformedArgumentListError: If the argument list is not well formed
    """
    invocations = find_invocations(text, prefix)
    if not invocations:
        return None
    if len(invocations) > 1:
        raise MultipleInvocationsError(len(invocations))
    return invocations[0]
