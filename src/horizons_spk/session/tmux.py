"""Session over an interactive client program running in a detached tmux window."""

import codecs
import logging
import os
import shlex
import time
from pathlib import Path
from typing import BinaryIO, Optional, Sequence

from libtmux.exc import LibTmuxException, ObjectDoesNotExist

from horizons_spk.clients.tmux import tmux_client
from horizons_spk.constants import POLL_INTERVAL, SESSION_LOG_DIR
from horizons_spk.dialogue.errors import SessionClosedError
from horizons_spk.session.base import SessionClient
from horizons_spk.utils.terminal import (
    clean_terminal_output,
    generate_session_name,
    split_incomplete_escape,
)

logger = logging.getLogger(__name__)

WINDOW_NAME = "dialogue"


class TmuxSession(SessionClient):
    """Spawn ``argv`` in tmux and talk to it through the pane.

    Pane output is mirrored to a log file with ``pipe-pane`` and read back
    incrementally. The program is started with ``exec`` so the tmux session
    disappears when it exits, which is how end of stream is detected.
    """

    def __init__(
        self,
        argv: Sequence[str],
        label: str,
        poll_interval: float = POLL_INTERVAL,
        log_dir: Path = SESSION_LOG_DIR,
        working_directory: Optional[str] = None,
    ):
        super().__init__(label)
        self.argv = list(argv)
        self.poll_interval = poll_interval
        self.log_dir = Path(log_dir)
        self.working_directory = working_directory or os.getcwd()
        self.session_name: Optional[str] = None
        self.log_path: Optional[Path] = None
        self._log: Optional[BinaryIO] = None
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._pending = ""

    def _open(self) -> None:
        self.session_name = generate_session_name(self.label)
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.log_path = self.log_dir / f"{self.session_name}.log"
        self.log_path.touch()

        try:
            tmux_client.create_session(self.session_name, WINDOW_NAME, self.working_directory)
            tmux_client.pipe_pane(self.session_name, WINDOW_NAME, str(self.log_path))
            self._log = open(self.log_path, "rb")
            tmux_client.send_keys(self.session_name, WINDOW_NAME, f"exec {shlex.join(self.argv)}")
        except Exception as e:
            logger.error(f"Failed to spawn {shlex.join(self.argv)} in tmux: {e}")
            try:
                self._shutdown()
            except Exception as cleanup_error:
                logger.debug(f"Cleanup after failed spawn also failed: {cleanup_error}")
            raise ConnectionError(f"Could not start {self.argv[0]}: {e}") from e

        logger.info(f"Spawned '{shlex.join(self.argv)}' in tmux session {self.session_name}")

    def _write_line(self, text: str) -> None:
        try:
            tmux_client.send_keys(self.session_name, WINDOW_NAME, text)
        except (LibTmuxException, ObjectDoesNotExist, ValueError) as e:
            # The program exited after the last read, taking the pane with it
            logger.warning(f"Cannot write to {self.label} session {self.session_name}: {e}")
            self._eof = True
            raise SessionClosedError(self._buffer) from e

    def _drain(self, final: bool = False) -> str:
        data = self._log.read() if self._log is not None else b""
        text = self._pending + self._decoder.decode(data, final=final)
        if final:
            self._pending = ""
        else:
            # Hold back a control sequence split across reads until it completes
            text, self._pending = split_incomplete_escape(text)
        if not text:
            return ""
        return clean_terminal_output(text)

    def _read(self, timeout: Optional[float]) -> Optional[str]:
        expires_at = None if timeout is None else time.monotonic() + timeout
        while True:
            chunk = self._drain()
            if chunk:
                return chunk

            if not tmux_client.session_exists(self.session_name):
                # Output written just before the pane died is still in the file
                return self._drain(final=True) or None

            if expires_at is None:
                time.sleep(self.poll_interval)
                continue
            remaining = expires_at - time.monotonic()
            if remaining <= 0:
                return ""
            time.sleep(min(self.poll_interval, remaining))

    def _shutdown(self) -> None:
        if self.session_name is not None:
            try:
                tmux_client.stop_pipe_pane(self.session_name, WINDOW_NAME)
            except Exception as e:
                logger.debug(f"Pipe-pane already gone for {self.session_name}: {e}")
            tmux_client.kill_session(self.session_name)
        if self._log is not None:
            self._log.close()
            self._log = None


def horizons_session(host: str, port: int, telnet_command: str) -> TmuxSession:
    """Session running the telnet client against the Horizons line interface."""
    return TmuxSession([*shlex.split(telnet_command), host, str(port)], label="horizons")


def ftp_session(host: str, ftp_command: str) -> TmuxSession:
    """Session running the ftp client with auto-login disabled."""
    return TmuxSession([*shlex.split(ftp_command), host], label="ftp")
