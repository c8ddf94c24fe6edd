"""Constants for the Horizons SPK fetcher.

This module defines the configuration constants used throughout the package,
including remote endpoints, dialogue tokens, per-stage deadlines and local
directory paths.

Endpoints and deadlines can be overridden through ``HSPK_*`` environment
variables; malformed override values fall back to the defaults below.
"""

import os
from pathlib import Path


def _get_float_env(name: str, default: float) -> float:
    """Parse float env var with safe fallback."""
    try:
        return float(os.getenv(name, str(default)))
    except (TypeError, ValueError):
        return default


def _get_int_env(name: str, default: int) -> int:
    """Parse int env var with safe fallback."""
    try:
        return int(os.getenv(name, str(default)))
    except (TypeError, ValueError):
        return default


# =============================================================================
# Remote Endpoints
# =============================================================================
# Interactive Horizons session (telnet line protocol)
HORIZONS_HOST = os.getenv("HSPK_HORIZONS_HOST", "horizons.jpl.nasa.gov")
HORIZONS_PORT = _get_int_env("HSPK_HORIZONS_PORT", 6775)

# Anonymous FTP area where generated SPK files are published
FTP_HOST = os.getenv("HSPK_FTP_HOST", "ssd.jpl.nasa.gov")
FTP_DIRECTORY = os.getenv("HSPK_FTP_DIRECTORY", "pub/ssd")
FTP_USER = "anonymous"

# Programs spawned inside tmux to reach the endpoints
TELNET_COMMAND = os.getenv("HSPK_TELNET_COMMAND", "telnet")
FTP_COMMAND = os.getenv("HSPK_FTP_COMMAND", "ftp -n")

# =============================================================================
# Horizons Dialogue Tokens
# =============================================================================
PAGE_OFF_TOKEN = "PAGE"
MODE_TOKEN = "##2"
COMMIT_TOKEN = ";"
FRAME_TOKEN = "ECLIP"
GENERATE_TOKEN = "S"
CONFIRM_TOKEN = "yes"
DECLINE_TOKEN = "NO"
HORIZONS_CANCEL_TOKEN = "x"

# =============================================================================
# Retrieval Dialogue Tokens
# =============================================================================
# Most ftp clients toggle passive mode with a bare "passive"; tnftp also takes
# "passive on"
PASSIVE_TOKEN = os.getenv("HSPK_PASSIVE_COMMAND", "passive")
FTP_QUIT_TOKEN = "quit"

# =============================================================================
# Deadlines (seconds)
# =============================================================================
# Time allowed to reach the remote greeting after spawning the client
CONNECT_TIMEOUT = _get_float_env("HSPK_CONNECT_TIMEOUT", 30.0)

# Time allowed for an ordinary prompt to follow our reply
PROMPT_TIMEOUT = _get_float_env("HSPK_PROMPT_TIMEOUT", 15.0)

# SPK generation and file transfer can legitimately take longer
GENERATE_TIMEOUT = _get_float_env("HSPK_GENERATE_TIMEOUT", 60.0)
TRANSFER_TIMEOUT = _get_float_env("HSPK_TRANSFER_TIMEOUT", 120.0)

# =============================================================================
# Session Configuration
# =============================================================================
# All tmux sessions spawned by this package are prefixed to distinguish them
# from user sessions
SESSION_PREFIX = "hspk-"

# Seconds between reads of the pane log while waiting for output
POLL_INTERVAL = _get_float_env("HSPK_POLL_INTERVAL", 0.2)

# Lines of received text kept in diagnostics for timeouts and closed streams
DIAGNOSTIC_TAIL_LINES = 8

# =============================================================================
# Application Directory Structure
# =============================================================================
HSPK_HOME_DIR = Path(os.getenv("HSPK_HOME", str(Path.home() / ".horizons-spk")))
LOG_DIR = HSPK_HOME_DIR / "logs"
SESSION_LOG_DIR = LOG_DIR / "sessions"  # Per-session pane output mirrored by pipe-pane
