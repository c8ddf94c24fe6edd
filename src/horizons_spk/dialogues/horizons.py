"""Stage table for requesting a small-body SPK file from Horizons.

The conversation submits the caller's osculating elements as a user-defined
object, asks for an SPK file over the caller's date span and learns the name
under which the server publishes the result.

Inputs: ``object_name``, ``start``, ``stop``, ``email``, ``elements``,
``format_code``, ``format_suffix`` and an optional ``output`` override.
Completed context: ``remote_filename``, ``local_filename``, ``format_suffix``
and, unless ``output`` was given, the numeric ``spk_id``.
"""

from typing import Any, Dict, Mapping

from horizons_spk.constants import (
    COMMIT_TOKEN,
    CONFIRM_TOKEN,
    CONNECT_TIMEOUT,
    DECLINE_TOKEN,
    FRAME_TOKEN,
    GENERATE_TIMEOUT,
    GENERATE_TOKEN,
    HORIZONS_CANCEL_TOKEN,
    MODE_TOKEN,
    PAGE_OFF_TOKEN,
    PROMPT_TIMEOUT,
)
from horizons_spk.dialogue.patterns import Pattern
from horizons_spk.dialogue.stage import Stage, StageTable
from horizons_spk.models.outcome import AbortReason

# Prompts
HORIZONS_PROMPT = Pattern.expected("horizons_prompt", "Horizons> ", literal=True)
ELEMENTS_PROMPT = Pattern.expected("elements_prompt", r"[Ee]nter\b[^\n]*elements[^\n]*:")
FRAME_PROMPT = Pattern.expected("frame_prompt", r"[Rr]eference frame[^\n]*:")
NAME_PROMPT = Pattern.expected("name_prompt", r"[Ee]nter object name[^\n]*:")
ACTION_PROMPT = Pattern.expected("action_prompt", r"Select \.\.\.[^\n]*:")
SPK_ID_ANNOUNCEMENT = Pattern.expected("spk_id", r"Assigned SPK object ID:[ \t]*(\S+)")
ADDRESS_PROMPT = Pattern.expected("address_prompt", r"e-mail address[^\n]*:")
CONFIRM_PROMPT = Pattern.expected("confirm_prompt", r"[Cc]onfirm[^\n]*:")
FORMAT_PROMPT = Pattern.expected("format_prompt", r"SPK file format[^\n]*:")
START_PROMPT = Pattern.expected("start_prompt", r"Starting (?:TDB|CT)[^\n]*:")
STOP_PROMPT = Pattern.expected("stop_prompt", r"Ending[ \t]+(?:TDB|CT)[^\n]*:")
MORE_OBJECTS_PROMPT = Pattern.expected("more_objects_prompt", r"[Aa]dd more objects[^\n]*:")
FILENAME_ANNOUNCEMENT = Pattern.expected("remote_filename", r"File name[ \t]*:[ \t]*(\S+)")

# Server-reported faults
UNKNOWN_HOST = Pattern.error(
    "unknown_host",
    r"[Uu]nknown host|[Nn]ame or service not known|[Cc]onnection refused|"
    r"[Cc]ould not resolve",
    AbortReason.CONNECTION_ERROR,
)
INPUT_ERROR = Pattern.error(
    "input_error",
    r"(?:ERROR|[Ee]rror|Cannot|cannot|Invalid|invalid)\b[^\n]*",
    AbortReason.SERVER_REPORTED_INPUT_ERROR,
)
START_REJECTED = Pattern.error(
    "start_rejected",
    r"Cannot (?:interpret|use) date[^\n]*|[Tt]ry again[^\n]*",
    AbortReason.INVALID_DATE,
    detail="start",
)
STOP_REJECTED = Pattern.error(
    "stop_rejected",
    r"Cannot (?:interpret|use) date[^\n]*|[Tt]ry again[^\n]*",
    AbortReason.INVALID_DATE,
    detail="stop",
)
SPAN_TOO_LARGE = Pattern.error(
    "span_too_large", r"[Ss]pan too large[^\n]*", AbortReason.SPAN_TOO_LARGE
)
SPAN_TOO_SHORT = Pattern.error(
    "span_too_short",
    r"[Ss]pan too small[^\n]*|[Ss]pan too short[^\n]*",
    AbortReason.SPAN_TOO_SHORT,
)


def _caller_named_output(inputs: Mapping[str, Any]) -> bool:
    return bool(inputs.get("output"))


def _seed(inputs: Mapping[str, Any]) -> Dict[str, Any]:
    seeded = {"format_suffix": inputs["format_suffix"]}
    if _caller_named_output(inputs):
        seeded["local_filename"] = inputs["output"]
    return seeded


def _default_local_filename(inputs: Mapping[str, Any], context: Mapping[str, Any]) -> Dict[str, Any]:
    return {"local_filename": f"{context['spk_id']}{context['format_suffix']}"}


HORIZONS_DIALOGUE = StageTable(
    name="horizons",
    cancel_token=HORIZONS_CANCEL_TOKEN,
    seed=_seed,
    stages=(
        Stage("greeting", (UNKNOWN_HOST, HORIZONS_PROMPT), deadline=CONNECT_TIMEOUT),
        Stage("page_off", (HORIZONS_PROMPT,), send=PAGE_OFF_TOKEN, deadline=PROMPT_TIMEOUT),
        Stage("mode", (HORIZONS_PROMPT,), send=MODE_TOKEN, deadline=PROMPT_TIMEOUT),
        Stage("commit", (ELEMENTS_PROMPT,), send=COMMIT_TOKEN, deadline=PROMPT_TIMEOUT),
        Stage(
            "elements",
            (INPUT_ERROR, FRAME_PROMPT),
            send="{elements}",
            deadline=PROMPT_TIMEOUT,
        ),
        Stage("frame", (NAME_PROMPT,), send=FRAME_TOKEN, deadline=PROMPT_TIMEOUT),
        Stage("object_name", (ACTION_PROMPT,), send="{object_name}", deadline=PROMPT_TIMEOUT),
        Stage("generate", send=GENERATE_TOKEN),
        Stage(
            "spk_id",
            (SPK_ID_ANNOUNCEMENT,),
            deadline=GENERATE_TIMEOUT,
            captures=("spk_id",),
            numeric=("spk_id",),
            when=lambda inputs: not _caller_named_output(inputs),
            derive=_default_local_filename,
        ),
        Stage("address_prompt", (ADDRESS_PROMPT,), deadline=GENERATE_TIMEOUT),
        Stage("address", (CONFIRM_PROMPT,), send="{email}", deadline=PROMPT_TIMEOUT),
        Stage("confirm_address", (FORMAT_PROMPT,), send=CONFIRM_TOKEN, deadline=PROMPT_TIMEOUT),
        Stage("format", (START_PROMPT,), send="{format_code}", deadline=PROMPT_TIMEOUT),
        Stage(
            "start",
            (START_REJECTED, STOP_PROMPT),
            send="{start}",
            deadline=PROMPT_TIMEOUT,
        ),
        # Generation runs once the span is accepted, so there is no deadline here
        Stage(
            "stop",
            (SPAN_TOO_LARGE, STOP_REJECTED, SPAN_TOO_SHORT, MORE_OBJECTS_PROMPT),
            send="{stop}",
            deadline=None,
        ),
        Stage(
            "decline",
            (FILENAME_ANNOUNCEMENT,),
            send=DECLINE_TOKEN,
            deadline=GENERATE_TIMEOUT,
            captures=("remote_filename",),
        ),
    ),
)
