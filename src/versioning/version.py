"""Comparable version values parsed from dotted/dashed version strings."""

from __future__ import annotations

import re
from functools import total_ordering
from typing import List, Tuple

_SEPARATORS = re.compile(r"[^0-9A-Za-z]+")

# Sort key per token: numeric tokens rank above textual ones at the same position
_Token = Tuple[int, int, str]
_ZERO: _Token = (1, 0, "")


def _tokenize(text: str) -> List[_Token]:
    tokens: List[_Token] = []
    for part in _SEPARATORS.split(text or ""):
        if not part:
            continue
        if part.isdigit():
            tokens.append((1, int(part), ""))
        else:
            tokens.append((0, 0, part.lower()))
    return tokens


@total_ordering
class Version:
    """A version string split into numeric and textual tokens.

    Parsing never fails. Tokens compare pairwise: numbers by value, text
    case-insensitively, and a number always beats text (so ``1.0`` is newer
    than ``1.0-beta``). The shorter sequence is padded with zeros, which makes
    ``1.0`` and ``1.0.0`` equal.
    """

    __slots__ = ("text", "_tokens")

    def __init__(self, text: str):
        self.text = text
        self._tokens = _tokenize(text)

    @classmethod
    def parse(cls, text: str) -> "Version":
        return cls(text)

    @staticmethod
    def compare(a: "Version", b: "Version") -> int:
        """Return -1, 0 or 1 as ``a`` is older than, equal to, or newer than ``b``."""
        length = max(len(a._tokens), len(b._tokens))
        for i in range(length):
            left = a._tokens[i] if i < len(a._tokens) else _ZERO
            right = b._tokens[i] if i < len(b._tokens) else _ZERO
            if left != right:
                return -1 if left < right else 1
        return 0

    def _normalized(self) -> Tuple[_Token, ...]:
        tokens = list(self._tokens)
        while tokens and tokens[-1] == _ZERO:
            tokens.pop()
        return tuple(tokens)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return Version.compare(self, other) == 0

    def __lt__(self, other: "Version") -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return Version.compare(self, other) < 0

    def __hash__(self) -> int:
        return hash(self._normalized())

    def __str__(self) -> str:
        return self.text

    def __repr__(self) -> str:
        return f"Version({self.text!r})"
