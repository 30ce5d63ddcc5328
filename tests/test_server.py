"""Tests for the MCP tool layer."""

from __future__ import annotations

import sys
from unittest.mock import MagicMock, patch

import pytest

from stli_mcp.connection import SessionState, StliConnection
from stli_mcp.models.telephony import Address, Call, Terminal
from stli_mcp.protocol.errors import ProtocolError

from conftest import INIT_OK, ScriptedTransport


def _get_server_module():
    """Import server module with FastMCP mocked to avoid init issues."""
    mock_fastmcp_cls = MagicMock()
    mock_fastmcp_instance = MagicMock()
    # Make the @mcp.tool() decorator a no-op that returns the function unchanged
    mock_fastmcp_instance.tool.return_value = lambda fn: fn
    mock_fastmcp_cls.return_value = mock_fastmcp_instance

    with patch("mcp.server.fastmcp.FastMCP", mock_fastmcp_cls):
        # Remove cached server module so it re-imports with our mock
        sys.modules.pop("stli_mcp.server", None)
        import stli_mcp.server as server_mod

    server_mod._terminals.clear()
    server_mod._connection = None
    return server_mod


def _negotiated_connection(*replies: str) -> StliConnection:
    transport = ScriptedTransport([INIT_OK, *replies])
    conn = StliConnection(transport)
    conn.connect()
    return conn


def test_tools_require_session():
    """Terminal and call tools raise until connected."""
    server = _get_server_module()
    with pytest.raises(RuntimeError):
        server.get_terminal("201")
    with pytest.raises(RuntimeError):
        server.make_call("201", "202")


def test_get_terminal_is_cached():
    """Terminals are created once per number."""
    server = _get_server_module()
    conn = _negotiated_connection()
    server._connection = conn

    result = server.get_terminal("201")

    assert result == {"number": "201", "address": "201", "observed": False}
    assert server._terminals["201"] is server._get_terminal(conn, "201")


def test_observe_then_call():
    """An observed terminal's call consumes the notification lines."""
    server = _get_server_module()
    server._connection = _negotiated_connection(
        "error_ind SUCCESS MonitorStart",
        "error_ind SUCCESS MakeCall",
        "Initiated 1 makeCall 201 202",
        "DeviceInformation 1 0 (Standard)",
    )

    observed = server.observe_terminal("201", True)
    assert observed["success"] is True
    assert observed["observed"] is True

    call = server.make_call("201", "202")
    assert call == {"origin": "201", "destination": "202", "observed": True}
    assert server._connection.transport.replies == []


def test_observe_failure_reported():
    """A refused MonitorStart is reported, not raised."""
    server = _get_server_module()
    server._connection = _negotiated_connection("error_ind FAILURE MonitorStart")

    result = server.observe_terminal("201", True)

    assert result["success"] is False
    assert result["observed"] is False


def test_make_call_uses_provider():
    """make_call delegates to the provider's create_call."""
    server = _get_server_module()
    mock_conn = MagicMock()
    mock_conn.create_call.return_value = Call(Address("201"), Address("202"))

    with patch.object(server, "_get_connection", return_value=mock_conn):
        result = server.make_call("201", "202")

    assert result["destination"] == "202"
    mock_conn.create_call.assert_called_once()


def test_make_call_rejects_blank_numbers():
    """Blank numbers are refused before any I/O."""
    server = _get_server_module()
    assert "error" in server.make_call("201", " ")


def test_release_terminal():
    """Released terminals leave the cache."""
    server = _get_server_module()
    server._connection = _negotiated_connection()
    server.get_terminal("201")

    assert server.release_terminal("201") == {"released": True, "number": "201"}
    assert "201" not in server._terminals
    assert server.release_terminal("201")["released"] is False


def test_connect_invalid_port():
    """Out-of-range ports are refused."""
    server = _get_server_module()
    assert "error" in server.connect("localhost", 0)


def test_connect_opens_session():
    """A successful handshake stores the session."""
    server = _get_server_module()
    transport = ScriptedTransport([INIT_OK])

    with patch.object(server, "SocketConnection", return_value=transport):
        result = server.connect("localhost", 7001)

    assert result["connected"] is True
    assert result["response"] == INIT_OK
    assert server._connection.state is SessionState.NEGOTIATED


def test_connect_failure_closes_transport():
    """A failed handshake closes the transport."""
    server = _get_server_module()
    transport = ScriptedTransport(['error_ind FAILURE STLI Version "2"'])

    with patch.object(server, "SocketConnection", return_value=transport):
        with pytest.raises(ProtocolError):
            server.connect("localhost", 7001)

    assert transport.close_calls == 1
    assert server._connection is None


def test_disconnect_says_bye():
    """Disconnect sends BYE and forgets the session."""
    server = _get_server_module()
    conn = _negotiated_connection("error_ind SUCCESS BYE")
    server._connection = conn

    assert server.disconnect() == {"disconnected": True}
    assert conn.state is SessionState.CLOSED
    assert conn.transport.written[-1] == "BYE\n"
    assert server._connection is None
    assert server.get_session()["state"] == "unconnected"


def test_failed_call_ends_session():
    """After a protocol error the transport is closed and the session dropped."""
    server = _get_server_module()
    conn = _negotiated_connection(
        "error_ind SUCCESS MakeCall",
        "Initiated 1 makeCall 201",
    )
    server._connection = conn
    server._terminals["201"] = Terminal(Address("201"), observed=True)

    with pytest.raises(ProtocolError):
        server.make_call("201", "202")

    assert conn.transport.close_calls == 1
    assert server._connection is None
    assert server._terminals == {}
    with pytest.raises(RuntimeError):
        server.make_call("201", "202")
