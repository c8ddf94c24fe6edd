"""Static dialogue configuration and the per-run capture context."""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, Mapping, Optional, Tuple

from horizons_spk.dialogue.errors import MalformedCaptureError, TemplateError
from horizons_spk.dialogue.patterns import Pattern, PatternKind

logger = logging.getLogger(__name__)

NUMERIC_CAPTURE_PATTERN = re.compile(r"\s*(\d+)\s*")


@dataclass(frozen=True)
class Stage:
    """One send/expect step of a dialogue.

    ``send`` is rendered and written on entry, then the stage waits for one of
    ``patterns``. A stage without patterns is a pure send and advances at once.
    Groups of the matching expected pattern are bound in order to ``captures``.
    """

    name: str
    patterns: Tuple[Pattern, ...] = ()
    send: Optional[str] = None
    deadline: Optional[float] = None
    captures: Tuple[str, ...] = ()
    numeric: Tuple[str, ...] = ()
    when: Optional[Callable[[Mapping[str, Any]], bool]] = None
    derive: Optional[Callable[[Mapping[str, Any], Mapping[str, Any]], Dict[str, Any]]] = None
    fallback: Optional[str] = None
    fallback_ack: Optional[Pattern] = None

    def __post_init__(self) -> None:
        unknown = set(self.numeric) - set(self.captures)
        if unknown:
            raise ValueError(f"Stage '{self.name}' narrows unknown captures: {sorted(unknown)}")
        has_transient = any(p.kind == PatternKind.TRANSIENT_FAULT for p in self.patterns)
        if self.fallback is not None and not has_transient:
            raise ValueError(f"Stage '{self.name}' has a fallback but no transient pattern")

    def applies(self, inputs: Mapping[str, Any]) -> bool:
        return self.when is None or bool(self.when(inputs))


@dataclass(frozen=True)
class StageTable:
    """Ordered stages of one dialogue type."""

    name: str
    stages: Tuple[Stage, ...]
    cancel_token: Optional[str] = None
    seed: Optional[Callable[[Mapping[str, Any]], Dict[str, Any]]] = None

    def __iter__(self) -> Iterator[Stage]:
        return iter(self.stages)

    def __len__(self) -> int:
        return len(self.stages)


@dataclass
class DialogueContext:
    """Write-once values captured during one dialogue run."""

    values: Dict[str, Any] = field(default_factory=dict)

    def bind(self, name: str, value: Any) -> None:
        if name in self.values:
            logger.warning(
                f"Ignoring rebind of capture '{name}' ({value!r}); keeping {self.values[name]!r}"
            )
            return
        self.values[name] = value

    def update(self, values: Mapping[str, Any]) -> None:
        for name, value in values.items():
            self.bind(name, value)

    def __getitem__(self, name: str) -> Any:
        return self.values[name]

    def as_dict(self) -> Dict[str, Any]:
        return dict(self.values)


def narrow_numeric(name: str, value: Optional[str]) -> int:
    """Narrow a captured token to an integer identifier."""
    match = NUMERIC_CAPTURE_PATTERN.fullmatch(value or "")
    if not match:
        raise MalformedCaptureError(name, value)
    return int(match.group(1))


def render(template: str, inputs: Mapping[str, Any], context: DialogueContext) -> str:
    """Fill an outbound template from caller inputs and earlier captures."""
    values = dict(inputs)
    values.update(context.values)
    try:
        return template.format_map(values)
    except (KeyError, IndexError) as e:
        raise TemplateError(f"Template {template!r} references missing value {e}") from e
