"""Thin wrapper around libtmux for the few operations sessions need."""

import logging
import shlex
from typing import Optional

import libtmux

logger = logging.getLogger(__name__)


class TmuxClient:
    """Lazily connected handle on the default tmux server."""

    def __init__(self) -> None:
        self._server: Optional[libtmux.Server] = None

    @property
    def server(self) -> libtmux.Server:
        if self._server is None:
            self._server = libtmux.Server()
        return self._server

    def session_exists(self, session_name: str) -> bool:
        return self.server.has_session(session_name)

    def create_session(
        self, session_name: str, window_name: str, working_directory: Optional[str] = None
    ) -> None:
        """Create a detached session whose first window runs the default shell."""
        self.server.new_session(
            session_name=session_name,
            window_name=window_name,
            start_directory=working_directory,
            attach=False,
        )
        logger.debug(f"Created tmux session {session_name}")

    def _active_pane(self, session_name: str, window_name: str) -> libtmux.Pane:
        session = self.server.sessions.get(session_name=session_name)
        window = session.windows.get(window_name=window_name)
        pane = window.active_pane
        if pane is None:
            raise ValueError(f"No active pane in {session_name}:{window_name}")
        return pane

    def send_keys(self, session_name: str, window_name: str, keys: str) -> None:
        """Type ``keys`` literally into the pane and press Enter."""
        pane = self._active_pane(session_name, window_name)
        pane.send_keys(keys, enter=True, suppress_history=False, literal=True)

    def pipe_pane(self, session_name: str, window_name: str, file_path: str) -> None:
        """Mirror everything the pane prints into ``file_path``."""
        pane = self._active_pane(session_name, window_name)
        pane.cmd("pipe-pane", "-o", f"cat >> {shlex.quote(file_path)}")

    def stop_pipe_pane(self, session_name: str, window_name: str) -> None:
        pane = self._active_pane(session_name, window_name)
        pane.cmd("pipe-pane")

    def kill_session(self, session_name: str) -> None:
        session = self.server.sessions.get(session_name=session_name, default=None)
        if session is not None:
            session.kill()
            logger.debug(f"Killed tmux session {session_name}")


tmux_client = TmuxClient()
