"""Terminal result of a dialogue run."""

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class OutcomeStatus(str, Enum):
    """Terminal state of a dialogue."""

    COMPLETED = "completed"
    ABORTED = "aborted"


class AbortReason(str, Enum):
    """Classified reason for an aborted dialogue."""

    CONNECTION_ERROR = "connection_error"
    STAGE_TIMEOUT = "stage_timeout"
    SERVER_REPORTED_INPUT_ERROR = "server_reported_input_error"
    INVALID_DATE = "invalid_date"
    SPAN_TOO_LARGE = "span_too_large"
    SPAN_TOO_SHORT = "span_too_short"
    MALFORMED_CAPTURE = "malformed_capture"
    RETRIEVAL_AUTH_FAILED = "retrieval_auth_failed"
    REMOTE_FILE_NOT_FOUND = "remote_file_not_found"
    TRANSIENT_FAULT_EXHAUSTED = "transient_fault_exhausted"
    ARTIFACT_MISSING = "artifact_missing"


class Outcome(BaseModel):
    """Result of one dialogue run, consumed by the orchestrating caller."""

    status: OutcomeStatus
    context: Dict[str, Any] = Field(default_factory=dict)
    reason: Optional[AbortReason] = None
    detail: Optional[str] = None
    stage_index: Optional[int] = None
    stage_name: Optional[str] = None
    diagnostic_text: str = ""

    @classmethod
    def completed(cls, context: Dict[str, Any]) -> "Outcome":
        return cls(status=OutcomeStatus.COMPLETED, context=dict(context))

    @classmethod
    def aborted(
        cls,
        reason: AbortReason,
        diagnostic_text: str = "",
        detail: Optional[str] = None,
        stage_index: Optional[int] = None,
        stage_name: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> "Outcome":
        return cls(
            status=OutcomeStatus.ABORTED,
            reason=reason,
            diagnostic_text=diagnostic_text,
            detail=detail,
            stage_index=stage_index,
            stage_name=stage_name,
            context=dict(context or {}),
        )

    @property
    def ok(self) -> bool:
        return self.status == OutcomeStatus.COMPLETED
