"""Shared fixtures: a scripted in-memory session and transcript loading."""

import time
from pathlib import Path
from typing import Callable, List, Optional

import pytest

from horizons_spk.session.base import SessionClient

FIXTURES_DIR = Path(__file__).parent / "fixtures"

# Transcript files separate the chunk released by each send with this line
CHUNK_SEPARATOR = "@@@\n"


class ScriptedSession(SessionClient):
    """Session that replays canned output.

    The first chunk is available as soon as the session connects; every line
    sent releases the next chunk. All sent lines are recorded in ``sent``.
    """

    def __init__(
        self,
        chunks: List[str],
        label: str = "scripted",
        fail_connect: bool = False,
        on_send: Optional[Callable[[str], None]] = None,
    ):
        super().__init__(label)
        self._pending = list(chunks)
        self._queue: List[str] = []
        self.sent: List[str] = []
        self.fail_connect = fail_connect
        self.on_send = on_send
        self.shutdown_calls = 0

    def _release(self) -> None:
        if self._pending:
            self._queue.append(self._pending.pop(0))

    def _open(self) -> None:
        if self.fail_connect:
            raise OSError("Name or service not known")
        self._release()

    def _write_line(self, text: str) -> None:
        self.sent.append(text)
        if self.on_send is not None:
            self.on_send(text)
        self._release()

    def _read(self, timeout: Optional[float]) -> Optional[str]:
        if self._queue:
            return self._queue.pop(0)
        if timeout is None:
            return None
        time.sleep(min(timeout, 0.01))
        return ""

    def _shutdown(self) -> None:
        self.shutdown_calls += 1


def load_transcript(filename: str) -> List[str]:
    with open(FIXTURES_DIR / filename, "r") as f:
        return f.read().split(CHUNK_SEPARATOR)


@pytest.fixture
def scripted_session():
    return ScriptedSession


@pytest.fixture
def transcript():
    return load_transcript
