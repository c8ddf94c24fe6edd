"""Base class for remote text sessions driven by a dialogue."""

import logging
import time
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from horizons_spk.dialogue.errors import SessionClosedError, StageTimeoutError
from horizons_spk.dialogue.patterns import Pattern, PatternMatch, find_match

logger = logging.getLogger(__name__)


class SessionClient(ABC):
    """One bidirectional text stream to a remote endpoint.

    Subclasses supply the transport primitives; buffering, pattern matching
    and deadlines live here. Received text is buffered until a match consumes
    it, so no stage ever sees output that a previous stage already matched.
    """

    def __init__(self, label: str):
        self.label = label
        self._buffer = ""
        self._received: List[str] = []
        self._connected = False
        self._closed = False
        self._eof = False

    @abstractmethod
    def _open(self) -> None:
        """Open the underlying transport."""
        pass

    @abstractmethod
    def _write_line(self, text: str) -> None:
        """Write ``text`` followed by a line terminator."""
        pass

    @abstractmethod
    def _read(self, timeout: Optional[float]) -> Optional[str]:
        """Return newly received text, ``""`` if none arrived in time, ``None`` at end of stream."""
        pass

    @abstractmethod
    def _shutdown(self) -> None:
        """Release the underlying transport."""
        pass

    @property
    def transcript(self) -> str:
        """All text received so far."""
        return "".join(self._received)

    @property
    def closed(self) -> bool:
        return self._closed

    def connect(self) -> "SessionClient":
        """Open the session, raising ``ConnectionError`` if the endpoint is unreachable."""
        try:
            self._open()
        except ConnectionError:
            raise
        except OSError as e:
            raise ConnectionError(f"Failed to open {self.label} session: {e}") from e
        self._connected = True
        logger.info(f"Opened {self.label} session")
        return self

    def send(self, text: str) -> None:
        if self._closed or not self._connected:
            raise SessionClosedError(self._buffer)
        logger.debug(f"[{self.label}] >>> {text}")
        self._write_line(text)

    def await_match(
        self, patterns: Sequence[Pattern], deadline: Optional[float]
    ) -> PatternMatch:
        """Block until one of ``patterns`` matches buffered output.

        ``deadline`` is measured from the call; ``None`` waits indefinitely.
        """
        expires_at = None if deadline is None else time.monotonic() + deadline
        while True:
            hit = find_match(self._buffer, patterns)
            if hit is not None:
                self._buffer = self._buffer[hit.end :]
                logger.debug(f"[{self.label}] <<< {hit.pattern.name}: {hit.line}")
                return hit

            if self._eof:
                raise SessionClosedError(self._buffer)

            remaining = None
            if expires_at is not None:
                remaining = expires_at - time.monotonic()
                if remaining <= 0:
                    raise StageTimeoutError(deadline, self._buffer)

            chunk = self._read(remaining)
            if chunk is None:
                self._eof = True
            elif chunk:
                self._buffer += chunk
                self._received.append(chunk)

    def close(self, farewell: Optional[str] = None) -> None:
        """Best-effort graceful shutdown; safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        try:
            if farewell is not None and self._connected and not self._eof:
                logger.debug(f"[{self.label}] >>> {farewell}")
                self._write_line(farewell)
        except Exception as e:
            logger.warning(f"Failed to send farewell to {self.label} session: {e}")
        finally:
            try:
                self._shutdown()
            except Exception as e:
                logger.warning(f"Failed to shut down {self.label} session: {e}")
        logger.info(f"Closed {self.label} session")
