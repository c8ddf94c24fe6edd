"""Helpers for handling raw terminal output."""

import re
import uuid
from typing import Tuple

from horizons_spk.constants import SESSION_PREFIX

# Regex patterns for control sequences emitted by terminal programs
ANSI_CODE_PATTERN = r"\x1b\[[0-?]*[ -/]*[@-~]"
OSC_PATTERN = r"\x1b\][^\x07]*(?:\x07|\x1b\\)"

# A control sequence cut off at the end of a read: a bare ESC, a CSI still
# missing its final byte, or an OSC still missing its terminator
INCOMPLETE_ESCAPE_PATTERN = re.compile(r"\x1b(?:\[[0-?]*[ -/]*|\](?:[^\x07\x1b]|\x1b(?!\\))*)?\Z")

# Longer tails are not escape sequences worth waiting for
MAX_PENDING_ESCAPE_CHARS = 256


def clean_terminal_output(output: str) -> str:
    """Strip control sequences and normalize line endings for parsing."""
    output = re.sub(OSC_PATTERN, "", output)
    output = re.sub(ANSI_CODE_PATTERN, "", output)
    return output.replace("\r\n", "\n").replace("\r", "\n")


def tail_excerpt(text: str, max_lines: int = 8, max_chars_per_line: int = 160) -> str:
    """Build a compact single-line tail excerpt for logs and diagnostics."""
    lines = [line.rstrip() for line in text.splitlines() if line.strip()]
    if not lines:
        return ""

    clipped_lines = []
    for line in lines[-max_lines:]:
        if len(line) > max_chars_per_line:
            clipped_lines.append(f"{line[:max_chars_per_line]}...")
        else:
            clipped_lines.append(line)

    return " | ".join(clipped_lines)


def generate_session_name(label: str) -> str:
    """Generate a unique tmux session name for one dialogue run."""
    return f"{SESSION_PREFIX}{label}-{uuid.uuid4().hex[:8]}"


def split_incomplete_escape(output: str) -> Tuple[str, str]:
    """Split ``output`` into text safe to clean now and an unfinished trailing escape."""
    match = INCOMPLETE_ESCAPE_PATTERN.search(output)
    if match is None or len(output) - match.start() > MAX_PENDING_ESCAPE_CHARS:
        return output, ""
    return output[: match.start()], output[match.start() :]
