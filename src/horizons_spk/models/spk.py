"""Caller-supplied inputs for an SPK request."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator


class SpkFormat(str, Enum):
    """Output format offered by the Horizons SPK generator."""

    TEXT = "text"
    LEGACY = "legacy"
    MODERN = "modern"
    BINARY = "binary"

    @property
    def code(self) -> str:
        """Token sent at the Horizons format prompt."""
        return _FORMAT_CODES[self]

    @property
    def suffix(self) -> str:
        """Canonical local filename suffix."""
        return ".xsp" if self is SpkFormat.TEXT else ".bsp"

    @property
    def transfer_type(self) -> str:
        """FTP transfer type used to fetch this format."""
        return "ascii" if self is SpkFormat.TEXT else "binary"


_FORMAT_CODES = {
    SpkFormat.TEXT: "X",
    SpkFormat.LEGACY: "1",
    SpkFormat.MODERN: "21",
    SpkFormat.BINARY: "B",
}


class SpkRequest(BaseModel):
    """Everything the two dialogues need from the caller.

    Only the contact address is checked locally. Dates and elements are passed
    through verbatim and rejected, if at all, by the remote side.
    """

    model_config = ConfigDict(frozen=True)

    object_name: str
    start: str
    stop: str
    email: str
    elements: str
    spk_format: SpkFormat = SpkFormat.BINARY
    output: Optional[str] = None

    @field_validator("email")
    @classmethod
    def _check_email(cls, value: str) -> str:
        if value.find("@") < 1:
            raise ValueError(f"'{value}' is not a usable e-mail address")
        return value

    @field_validator("output")
    @classmethod
    def _check_output(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            return None
        return value

    def dialogue_inputs(self) -> dict:
        """Flatten the request into the template inputs of the Horizons dialogue."""
        return {
            "object_name": self.object_name,
            "start": self.start,
            "stop": self.stop,
            "email": self.email,
            "elements": self.elements,
            "format_code": self.spk_format.code,
            "format_suffix": self.spk_format.suffix,
            "output": self.output,
        }
