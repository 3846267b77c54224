"""Case-insensitive glob patterns used to validate hosts and origins."""

from __future__ import annotations

import logging
import re
from collections import deque
from typing import Iterator, Optional

logger = logging.getLogger(__name__)


class _GlobError(ValueError):
    """Raised when a glob pattern cannot be compiled."""


def _translate_class(it: Iterator[str]) -> str:
    negated = False
    char = next(it, None)
    if char in ("!", "^"):
        negated = True
        char = next(it, None)

    body: list[str] = []
    while True:
        if char is None:
            raise _GlobError("unclosed character class")
        if char == "]" and body:
            break
        body.append(char)
        char = next(it, None)

    items: list[str] = []
    queue = deque(body)
    while queue:
        start = queue.popleft()
        if len(queue) >= 2 and queue[0] == "-":
            queue.popleft()
            end = queue.popleft()
            if end < start:
                raise _GlobError(f"invalid range {start}-{end}")
            items.append(f"{re.escape(start)}-{re.escape(end)}")
        else:
            items.append(re.escape(start))
    return "[" + ("^" if negated else "") + "".join(items) + "]"


def _translate(pattern: str) -> str:
    parts: list[str] = []
    in_alternation = False
    it = iter(pattern)
    for char in it:
        if char == "\\":
            escaped = next(it, None)
            if escaped is None:
                raise _GlobError("dangling escape")
            parts.append(re.escape(escaped))
        elif char == "*":
            if not parts or parts[-1] != ".*":
                parts.append(".*")
        elif char == "?":
            parts.append(".")
        elif char == "[":
            parts.append(_translate_class(it))
        elif char == "{":
            if in_alternation:
                raise _GlobError("nested alternation")
            in_alternation = True
            parts.append("(?:")
        elif char == "," and in_alternation:
            parts.append("|")
        elif char == "}" and in_alternation:
            in_alternation = False
            parts.append(")")
        else:
            parts.append(re.escape(char))
    if in_alternation:
        raise _GlobError("unclosed alternation")
    return "".join(parts)


class Matcher:
    """A glob pattern matched case-insensitively.

    Patterns that are not valid globs fall back to a case-insensitive
    comparison with the pattern text itself.
    """

    __slots__ = ("pattern", "_regex")

    def __init__(self, pattern: str) -> None:
        self.pattern = pattern
        self._regex: Optional[re.Pattern[str]]
        try:
            self._regex = re.compile(_translate(pattern), re.IGNORECASE | re.DOTALL)
        except (_GlobError, re.error) as exc:
            logger.warning("Invalid glob pattern for %s: %s", pattern, exc)
            self._regex = None

    def matches(self, other: object) -> bool:
        """Return True if the given string matches the pattern."""
        text = str(other)
        if self._regex is not None:
            return self._regex.fullmatch(text) is not None
        return self.pattern.lower() == text.lower()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Matcher):
            return NotImplemented
        return self.pattern == other.pattern

    def __hash__(self) -> int:
        return hash(self.pattern)

    def __repr__(self) -> str:
        return f"{self.pattern!r} ({self._regex is not None})"