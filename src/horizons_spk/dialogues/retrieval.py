"""Stage table for fetching a published SPK file over anonymous FTP.

Inputs: ``credential`` (the escaped contact address), ``transfer_type``,
``directory``, ``remote_filename`` and ``local_filename``.

The fetch stage is the only stage allowed to retry: when the client cannot
build a data connection the passive setting is toggled (normally from active
to passive) and the identical ``get`` is issued exactly once more.
"""

import re
from typing import Any, Dict

from horizons_spk.constants import (
    CONNECT_TIMEOUT,
    FTP_DIRECTORY,
    FTP_QUIT_TOKEN,
    FTP_USER,
    PASSIVE_TOKEN,
    PROMPT_TIMEOUT,
    TRANSFER_TIMEOUT,
)
from horizons_spk.dialogue.patterns import Pattern
from horizons_spk.dialogue.stage import Stage, StageTable
from horizons_spk.models.outcome import AbortReason

# Characters the ftp client's command parser treats specially
FTP_SPECIAL_CHARS = re.compile(r'([\\"\s])')

FTP_PROMPT = Pattern.expected("ftp_prompt", "ftp> ", literal=True)
# A toggle may report "off" when the client already defaulted to passive; the
# retry then runs in the other mode, which is still the one allowed fallback
PASSIVE_ACK = Pattern.expected(
    "passive_ack", r"Passive mode:?[ \t]*(?:on|off)[^\n]*\n(?:[^\n]*\n)*?ftp> "
)

HOST_UNREACHABLE = Pattern.error(
    "host_unreachable",
    r"[Uu]nknown host[^\n]*|[Nn]ame or service not known[^\n]*|"
    r"[Cc]onnection refused[^\n]*|[Nn]ot connected[^\n]*",
    AbortReason.CONNECTION_ERROR,
)
LOGIN_FAILED = Pattern.error(
    "login_failed",
    r"[Ll]ogin failed[^\n]*|^530[ -][^\n]*",
    AbortReason.RETRIEVAL_AUTH_FAILED,
    flags=re.MULTILINE,
)
NO_SUCH_FILE = Pattern.error(
    "no_such_file",
    r"[Nn]o such file[^\n]*|^550[ -][^\n]*",
    AbortReason.REMOTE_FILE_NOT_FOUND,
    flags=re.MULTILINE,
)
DATA_CONNECTION_FAILED = Pattern.transient(
    "data_connection_failed",
    r"[Cc]an't build data connection[^\n]*|^425[ -][^\n]*",
    flags=re.MULTILINE,
)


def escape_ftp_argument(value: str) -> str:
    """Backslash-escape characters the ftp command parser would interpret."""
    return FTP_SPECIAL_CHARS.sub(r"\\\1", value)


def retrieval_inputs(
    email: str, transfer_type: str, remote_filename: str, local_filename: str
) -> Dict[str, Any]:
    """Assemble the template inputs of the retrieval dialogue."""
    return {
        "user": FTP_USER,
        "credential": escape_ftp_argument(email),
        "transfer_type": transfer_type,
        "directory": FTP_DIRECTORY,
        "remote_filename": escape_ftp_argument(remote_filename),
        "local_filename": escape_ftp_argument(local_filename),
    }


RETRIEVAL_DIALOGUE = StageTable(
    name="retrieval",
    cancel_token=FTP_QUIT_TOKEN,
    stages=(
        Stage("connect", (HOST_UNREACHABLE, FTP_PROMPT), deadline=CONNECT_TIMEOUT),
        Stage(
            "login",
            (LOGIN_FAILED, FTP_PROMPT),
            send="user {user} {credential}",
            deadline=PROMPT_TIMEOUT,
        ),
        Stage("transfer_type", (FTP_PROMPT,), send="{transfer_type}", deadline=PROMPT_TIMEOUT),
        Stage("directory", (FTP_PROMPT,), send="cd {directory}", deadline=PROMPT_TIMEOUT),
        Stage(
            "fetch",
            (NO_SUCH_FILE, DATA_CONNECTION_FAILED, FTP_PROMPT),
            send="get {remote_filename} {local_filename}",
            deadline=TRANSFER_TIMEOUT,
            fallback=PASSIVE_TOKEN,
            fallback_ack=PASSIVE_ACK,
        ),
    ),
)
