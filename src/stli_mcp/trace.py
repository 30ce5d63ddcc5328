"""Observers for the raw lines exchanged with the STLI server."""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


class ProtocolTracer:
    """Receives every line sent to and received from the server.

    The base class ignores everything; subclass it and override the hooks.
    """

    def on_sent(self, line: str) -> None:
        pass

    def on_received(self, line: str) -> None:
        pass


NullTracer = ProtocolTracer


class LoggingTracer(ProtocolTracer):
    """Logs the protocol conversation, one record per line."""

    def __init__(self, log: logging.Logger | None = None, level: int = logging.DEBUG) -> None:
        self._log = log or logger
        self._level = level

    def on_sent(self, line: str) -> None:
        self._log.log(self._level, ">>> %s", line)

    def on_received(self, line: str) -> None:
        self._log.log(self._level, "<<< %s", line)


class RecordingTracer(ProtocolTracer):
    """Keeps the conversation in memory as ``(direction, line)`` pairs."""

    def __init__(self) -> None:
        self.lines: list[tuple[str, str]] = []

    def on_sent(self, line: str) -> None:
        self.lines.append((">>>", line))

    def on_received(self, line: str) -> None:
        self.lines.append(("<<<", line))
