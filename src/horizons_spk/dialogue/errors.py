"""Exceptions raised while driving a dialogue."""

from typing import Optional


class DialogueError(Exception):
    """Base exception for dialogue failures."""


class StageTimeoutError(DialogueError, TimeoutError):
    """Raised when no watched pattern appears before a stage deadline."""

    def __init__(self, deadline: float, buffered: str = ""):
        super().__init__(f"No expected output within {deadline:g} seconds")
        self.deadline = deadline
        self.buffered = buffered


class SessionClosedError(DialogueError):
    """Raised when the remote stream ends while a stage is still waiting."""

    def __init__(self, buffered: str = ""):
        super().__init__("Remote session closed before the expected output arrived")
        self.buffered = buffered


class MalformedCaptureError(DialogueError):
    """Raised when a captured value does not narrow to the expected shape."""

    def __init__(self, name: str, value: Optional[str], expected: str = "an integer identifier"):
        super().__init__(f"Captured {name}={value!r} is not {expected}")
        self.name = name
        self.value = value


class TemplateError(DialogueError):
    """Raised when an outbound template references an unknown value."""
