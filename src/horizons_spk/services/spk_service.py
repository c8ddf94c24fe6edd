"""SPK service with the request and retrieval workflow functions."""

import logging
from pathlib import Path
from typing import Callable, Optional

from horizons_spk.constants import (
    FTP_COMMAND,
    FTP_HOST,
    HORIZONS_HOST,
    HORIZONS_PORT,
    TELNET_COMMAND,
)
from horizons_spk.dialogue.engine import DialogueEngine
from horizons_spk.dialogues.horizons import HORIZONS_DIALOGUE
from horizons_spk.dialogues.retrieval import RETRIEVAL_DIALOGUE, retrieval_inputs
from horizons_spk.models.outcome import AbortReason, Outcome
from horizons_spk.models.spk import SpkRequest
from horizons_spk.session.base import SessionClient
from horizons_spk.session.tmux import ftp_session, horizons_session

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], SessionClient]

FAILURE_MESSAGES = {
    AbortReason.CONNECTION_ERROR: (
        "Could not reach {endpoint}. Check the network connection and that the host name "
        "resolves, then try again."
    ),
    AbortReason.STAGE_TIMEOUT: (
        "{endpoint} stopped responding during the '{stage}' step. The service may be busy "
        "or the dialogue may have changed; try again later."
    ),
    AbortReason.SERVER_REPORTED_INPUT_ERROR: (
        "Horizons rejected the submitted input. Check the osculating element string; the "
        "server said: {diagnostic}"
    ),
    AbortReason.INVALID_DATE: (
        "Horizons could not use the {detail} date. Dates must be calendar dates between "
        "1900 and 2100, optionally with a time of day. The server said: {diagnostic}"
    ),
    AbortReason.SPAN_TOO_LARGE: (
        "The requested time span is larger than Horizons allows for a single SPK file. "
        "Request a shorter span. The server said: {diagnostic}"
    ),
    AbortReason.SPAN_TOO_SHORT: (
        "The requested time span is too short. The stop date must be at least 32 days after "
        "the start date. The server said: {diagnostic}"
    ),
    AbortReason.MALFORMED_CAPTURE: (
        "Horizons announced a value in an unexpected form during the '{stage}' step, so the "
        "output file could not be named. The server said: {diagnostic}"
    ),
    AbortReason.RETRIEVAL_AUTH_FAILED: (
        "The FTP server refused the anonymous login. This usually means the e-mail address "
        "was rejected; check it and try again. The server said: {diagnostic}"
    ),
    AbortReason.REMOTE_FILE_NOT_FOUND: (
        "The generated file was not found on the FTP server. It may have been removed "
        "already; request it again. The server said: {diagnostic}"
    ),
    AbortReason.TRANSIENT_FAULT_EXHAUSTED: (
        "The FTP data connection failed in both active and passive mode. A firewall may be "
        "blocking FTP data connections. The client said: {diagnostic}"
    ),
    AbortReason.ARTIFACT_MISSING: (
        "The transfer finished but no data arrived in the local file {detail}. Check the "
        "free space and permissions of the current directory."
    ),
}


class SpkError(Exception):
    """Raised when either dialogue ends without producing the SPK file."""

    def __init__(self, outcome: Outcome, endpoint: str):
        self.outcome = outcome
        self.endpoint = endpoint
        super().__init__(describe_failure(outcome, endpoint))


def describe_failure(outcome: Outcome, endpoint: str) -> str:
    """Single-paragraph explanation of an aborted outcome for the user."""
    template = FAILURE_MESSAGES.get(outcome.reason, "The {endpoint} dialogue failed: {diagnostic}")
    return template.format(
        endpoint=endpoint,
        stage=outcome.stage_name or "connect",
        detail=outcome.detail or "",
        diagnostic=outcome.diagnostic_text or "(no output)",
    )


def _default_horizons_session() -> SessionClient:
    return horizons_session(HORIZONS_HOST, HORIZONS_PORT, TELNET_COMMAND)


def _default_ftp_session() -> SessionClient:
    return ftp_session(FTP_HOST, FTP_COMMAND)


def request_spk(
    request: SpkRequest, session_factory: Optional[SessionFactory] = None
) -> Outcome:
    """Run the Horizons dialogue and return its outcome."""
    session = (session_factory or _default_horizons_session)()
    logger.info(f"Requesting SPK for '{request.object_name}' ({request.start} to {request.stop})")
    return DialogueEngine(session).run(HORIZONS_DIALOGUE, request.dialogue_inputs())


def retrieve_spk(
    request: SpkRequest,
    remote_filename: str,
    local_filename: str,
    session_factory: Optional[SessionFactory] = None,
) -> Outcome:
    """Run the FTP dialogue that copies ``remote_filename`` to ``local_filename``.

    A local file created by a failed transfer is removed; a completed transfer
    that left no data behind is reported as ``ARTIFACT_MISSING``.
    """
    local_path = Path(local_filename)
    existed_before = local_path.exists()

    session = (session_factory or _default_ftp_session)()
    inputs = retrieval_inputs(
        request.email, request.spk_format.transfer_type, remote_filename, local_filename
    )
    outcome = DialogueEngine(session).run(RETRIEVAL_DIALOGUE, inputs)

    if outcome.ok and local_path.exists() and local_path.stat().st_size > 0:
        return outcome

    if not existed_before and local_path.exists():
        logger.warning(f"Removing partial download {local_path}")
        local_path.unlink()

    if outcome.ok:
        return Outcome.aborted(
            AbortReason.ARTIFACT_MISSING,
            detail=str(local_path),
            stage_name="fetch",
            context=outcome.context,
        )
    return outcome


def fetch_spk(
    request: SpkRequest,
    horizons_factory: Optional[SessionFactory] = None,
    ftp_factory: Optional[SessionFactory] = None,
) -> Path:
    """Generate the SPK file on Horizons and download it; return the local path."""
    try:
        requested = request_spk(request, horizons_factory)
        if not requested.ok:
            raise SpkError(requested, "Horizons")

        remote_filename = requested.context["remote_filename"]
        local_filename = requested.context["local_filename"]
        logger.info(f"Horizons published {remote_filename}; fetching as {local_filename}")

        retrieved = retrieve_spk(request, remote_filename, local_filename, ftp_factory)
        if not retrieved.ok:
            raise SpkError(retrieved, "the FTP server")

        local_path = Path(local_filename)
        logger.info(f"Retrieved {local_path} ({local_path.stat().st_size} bytes)")
        return local_path

    except Exception as e:
        logger.error(f"Failed to fetch SPK for '{request.object_name}': {e}")
        raise
