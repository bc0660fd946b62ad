"""String-aware JSON scanning and best-effort repair of model output.

Everything here is driven by one small state machine (``ScanState``) so that
braces, brackets and quotes inside string values are never mistaken for
structure.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass, field

from tribal_knowledge.extraction.models import ScanState

_OPENERS = {"{": "}", "[": "]"}

# How far past a quote the repair pass looks to decide whether it ends a string
LOOKAHEAD_CHARS = 50

_CONTENT_AFTER_QUOTE = re.compile(r"^\s*[a-zA-Z0-9]")
_END_OF_VALUE_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"^,\s*\""),  # comma then the next key or array item
    re.compile(r"^,\s*[}\]]"),  # trailing comma before a closer
    re.compile(r"^[}\]]"),  # closer
    re.compile(r"^:"),  # end of an object key
]


def next_state(state: ScanState, char: str) -> ScanState:
    """Transition function of the scanner.

    Backslashes only escape inside strings; outside a string they are
    treated as ordinary characters.
    """
    if state is ScanState.ESCAPED:
        return ScanState.IN_STRING
    if state is ScanState.IN_STRING:
        if char == "\\":
            return ScanState.ESCAPED
        if char == '"':
            return ScanState.NORMAL
        return ScanState.IN_STRING
    if char == '"':
        return ScanState.IN_STRING
    return ScanState.NORMAL


def find_object_end(text: str, start: int) -> int | None:
    """Return the index just past the object opened at ``text[start]``.

    Only braces seen in ``NORMAL`` state count towards depth. Returns
    ``None`` when the text ends before depth returns to zero.
    """
    state = ScanState.NORMAL
    depth = 0
    for i in range(start, len(text)):
        char = text[i]
        if state is ScanState.NORMAL:
            if char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    return i + 1
        state = next_state(state, char)
    return None


@dataclass
class ScanSummary:
    """Where a truncated fragment left off."""

    state: ScanState = ScanState.NORMAL
    open_stack: list[str] = field(default_factory=list)
    # (index, open_stack snapshot) for every structural comma
    commas: list[tuple[int, list[str]]] = field(default_factory=list)


def scan(text: str) -> ScanSummary:
    """Walk *text* and record the unclosed containers and member separators."""
    summary = ScanSummary()
    for i, char in enumerate(text):
        if summary.state is ScanState.NORMAL:
            if char in _OPENERS:
                summary.open_stack.append(char)
            elif char in "}]" and summary.open_stack:
                summary.open_stack.pop()
            elif char == "," and summary.open_stack:
                summary.commas.append((i, list(summary.open_stack)))
        summary.state = next_state(summary.state, char)
    return summary


def closers_for(open_stack: list[str]) -> str:
    """Closing characters for every unclosed container, innermost first."""
    return "".join(_OPENERS[c] for c in reversed(open_stack))


def truncation_candidates(fragment: str) -> Iterator[str]:
    """Yield repaired versions of a fragment that was cut off mid-object.

    The first candidate keeps as much as possible: an unterminated string is
    closed where it was cut, a dangling ``,`` or ``:`` is dropped, and every
    open container is closed. The following candidates cut back to each
    earlier member separator in turn, discarding the partial member after it.
    """
    summary = scan(fragment)

    text = fragment
    if summary.state is ScanState.ESCAPED:
        text = text[:-1]
    if summary.state is not ScanState.NORMAL:
        text += '"'
    text = text.rstrip().rstrip(",:").rstrip()
    yield text + closers_for(summary.open_stack)

    for index, stack in reversed(summary.commas):
        yield fragment[:index].rstrip() + closers_for(stack)


def _closes_string(text: str, pos: int) -> bool:
    """Heuristic: does the quote just before *pos* terminate its string?

    A quote ends a string when what follows looks like JSON structure (a
    separator, a closer, a key colon, or nothing) and does not start with a
    letter or digit. This is a best-effort guess and can misread a value
    that legitimately contains a quoted word followed by a comma.
    """
    lookahead = text[pos : pos + LOOKAHEAD_CHARS]
    if _CONTENT_AFTER_QUOTE.match(lookahead):
        return False
    trimmed = lookahead.strip()
    if not trimmed:
        return True
    return any(p.match(trimmed) for p in _END_OF_VALUE_PATTERNS)


def repair_unescaped_quotes(text: str) -> str:
    """Escape quotes that appear as content inside string values.

    Models sometimes write ``"he said "hello" to me"``. Every quote met while
    already inside a string is either kept as the terminator or emitted as
    ``\\"``, according to :func:`_closes_string`.
    """
    out: list[str] = []
    state = ScanState.NORMAL
    for i, char in enumerate(text):
        if state is ScanState.IN_STRING and char == '"':
            if _closes_string(text, i + 1):
                out.append(char)
                state = ScanState.NORMAL
            else:
                out.append('\\"')
            continue
        out.append(char)
        state = next_state(state, char)
    return "".join(out)
