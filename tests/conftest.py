"""Shared fixtures: a scripted line transport standing in for the server."""

from __future__ import annotations

import pytest

from stli_mcp.connection import StliConnection
from stli_mcp.transport.base import LineTransport, TransportError


class ScriptedTransport(LineTransport):
    """Replays canned server lines and records everything written."""

    def __init__(self, replies: list[str] | None = None) -> None:
        self.replies = list(replies or [])
        self.written: list[str] = []
        self.reads = 0
        self.connected = False
        self.connect_calls = 0
        self.close_calls = 0

    def connect(self) -> bool:
        self.connect_calls += 1
        self.connected = True
        return True

    def is_connected(self) -> bool:
        return self.connected

    def write(self, line: str) -> int:
        if not self.connected:
            raise TransportError("Not connected")
        self.written.append(line)
        return len(line)

    def read(self) -> str:
        if not self.replies:
            raise TransportError("No more replies")
        self.reads += 1
        return self.replies.pop(0)

    def close(self) -> bool:
        self.close_calls += 1
        self.connected = False
        return True


INIT_OK = 'error_ind SUCCESS STLI Version "2"'


@pytest.fixture
def transport() -> ScriptedTransport:
    return ScriptedTransport()


@pytest.fixture
def negotiated(transport: ScriptedTransport) -> StliConnection:
    """A connection that already completed version negotiation."""
    transport.replies.append(INIT_OK)
    conn = StliConnection(transport)
    conn.connect()
    transport.written.clear()
    transport.reads = 0
    return conn
