"""Classification of buffered remote output against candidate patterns.

Matching runs over the whole accumulated buffer rather than line by line, so
a pattern may span several reads. The earliest match in the buffer wins. When
two patterns match at the same position, error and transient-fault patterns
win over expected ones so that a server complaint is never taken as progress;
remaining ties go to the pattern listed first.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Sequence, Tuple

from horizons_spk.models.outcome import AbortReason


class PatternKind(str, Enum):
    """What a pattern means when it matches."""

    EXPECTED = "expected"
    ERROR_SIGNAL = "error_signal"
    TRANSIENT_FAULT = "transient_fault"


@dataclass(frozen=True)
class Pattern:
    """A literal or regular expression the remote side may produce."""

    name: str
    expression: str
    kind: PatternKind = PatternKind.EXPECTED
    literal: bool = False
    reason: Optional[AbortReason] = None
    detail: Optional[str] = None
    flags: int = 0
    _regex: "re.Pattern[str]" = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.kind == PatternKind.ERROR_SIGNAL and self.reason is None:
            raise ValueError(f"Error pattern '{self.name}' needs an abort reason")
        source = re.escape(self.expression) if self.literal else self.expression
        object.__setattr__(self, "_regex", re.compile(source, self.flags))

    def search(self, text: str) -> Optional["re.Match[str]"]:
        return self._regex.search(text)

    @classmethod
    def expected(cls, name: str, expression: str, **kwargs) -> "Pattern":
        return cls(name, expression, PatternKind.EXPECTED, **kwargs)

    @classmethod
    def error(
        cls, name: str, expression: str, reason: AbortReason, detail: Optional[str] = None, **kwargs
    ) -> "Pattern":
        return cls(name, expression, PatternKind.ERROR_SIGNAL, reason=reason, detail=detail, **kwargs)

    @classmethod
    def transient(cls, name: str, expression: str, **kwargs) -> "Pattern":
        return cls(name, expression, PatternKind.TRANSIENT_FAULT, **kwargs)


@dataclass(frozen=True)
class PatternMatch:
    """A pattern hit inside the buffer."""

    pattern: Pattern
    start: int
    end: int
    text: str
    groups: Tuple[Optional[str], ...]
    line: str

    @property
    def kind(self) -> PatternKind:
        return self.pattern.kind


def _surrounding_lines(buffer: str, start: int, end: int) -> str:
    """Return the full line(s) of the buffer that contain ``buffer[start:end]``."""
    line_start = buffer.rfind("\n", 0, start) + 1
    line_end = buffer.find("\n", end)
    if line_end == -1:
        line_end = len(buffer)
    return buffer[line_start:line_end].strip()


def find_match(buffer: str, patterns: Sequence[Pattern]) -> Optional[PatternMatch]:
    """Return the highest-precedence match of ``patterns`` in ``buffer``.

    Returns ``None`` while nothing matches, in which case the caller keeps
    buffering until more output arrives or its deadline passes.
    """
    best = None
    best_key = None
    for index, pattern in enumerate(patterns):
        match = pattern.search(buffer)
        if match is None:
            continue
        rank = 1 if pattern.kind == PatternKind.EXPECTED else 0
        key = (match.start(), rank, index)
        if best_key is None or key < best_key:
            best, best_key = (pattern, match), key

    if best is None:
        return None

    pattern, match = best
    return PatternMatch(
        pattern=pattern,
        start=match.start(),
        end=match.end(),
        text=match.group(0),
        groups=match.groups(),
        line=_surrounding_lines(buffer, match.start(), match.end()),
    )
