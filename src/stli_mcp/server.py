"""MCP server entry point for the STLI client.

Exposes session, terminal and call operations of an STLI server as tools
via the Model Context Protocol using the official Python MCP SDK with
stdio transport.
"""

from __future__ import annotations

import logging
from typing import Any

from mcp.server.fastmcp import FastMCP

from .connection import SessionState, StliConnection
from .models.telephony import Address, Terminal
from .protocol.errors import ProtocolError
from .protocol.commands import STLI_VERSION_2
from .trace import LoggingTracer
from .transport.socket_connection import SocketConnection

logger = logging.getLogger(__name__)

mcp = FastMCP(
    "stli",
    instructions="MCP server for STLI (Simple Telephony Interface) CTI servers",
)

# Global connection state
_connection: StliConnection | None = None
_terminals: dict[str, Terminal] = {}


def _get_connection() -> StliConnection:
    """Get the negotiated STLI session, raising if there is none."""
    if _connection is None or _connection.state is not SessionState.NEGOTIATED:
        raise RuntimeError(
            "No STLI session. Use the 'connect' tool first."
        )
    return _connection


def _drop_session(conn: StliConnection) -> None:
    """Close the transport of a session whose stream is out of step."""
    global _connection
    try:
        conn.transport.close()
    finally:
        if _connection is conn:
            _connection = None
        _terminals.clear()


def _get_terminal(conn: StliConnection, number: str) -> Terminal:
    """Return the cached terminal for ``number``, creating it on first use."""
    terminal = _terminals.get(number)
    if terminal is None:
        terminal = conn.get_terminal(Address(number))
        _terminals[number] = terminal
    return terminal


# ─── SESSION TOOLS ────────────────────────────────────────────────────

@mcp.tool()
def connect(host: str, port: int, version: int = STLI_VERSION_2) -> dict[str, Any]:
    """Open an STLI session with a CTI server.

    Connects over TCP and negotiates the protocol version.

    Args:
        host: STLI server host name or IP address.
        port: STLI server TCP port.
        version: Protocol version to request (default 2).
    """
    global _connection
    if _connection is not None and _connection.state is SessionState.NEGOTIATED:
        return {
            "connected": True,
            "message": "Already connected",
            "version": _connection.version,
        }
    if not 0 < port < 65536:
        return {"error": "Port must be 1-65535"}
    if version < 1:
        return {"error": "Version must be a positive integer"}

    conn = StliConnection(
        SocketConnection(host, port),
        version=version,
        tracer=LoggingTracer(),
    )
    try:
        response = conn.connect()
    except Exception:
        conn.transport.close()
        raise

    _connection = conn
    _terminals.clear()

    result: dict[str, Any] = {
        "connected": True,
        "version": conn.version,
        "response": response,
    }
    if conn.init_response and conn.init_response.features:
        result["features"] = conn.init_response.features
    return result


@mcp.tool()
def disconnect() -> dict[str, bool]:
    """End the STLI session and close the connection."""
    global _connection
    if _connection is None:
        return {"disconnected": True}
    try:
        if _connection.state is SessionState.NEGOTIATED:
            _connection.close()
        else:
            _connection.transport.close()
    finally:
        _connection = None
        _terminals.clear()
    return {"disconnected": True}


@mcp.tool()
def get_session() -> dict[str, Any]:
    """Report the state of the current STLI session."""
    if _connection is None:
        return {"state": SessionState.UNCONNECTED.value, "terminals": []}
    return {
        "state": _connection.state.value,
        "version": _connection.version,
        "terminals": [t.to_dict() for t in _terminals.values()],
    }


# ─── TERMINAL TOOLS ───────────────────────────────────────────────────

@mcp.tool()
def get_terminal(number: str) -> dict[str, Any]:
    """Look up the terminal attached to a phone number.

    Args:
        number: Extension or phone number of the terminal.
    """
    if not number.strip():
        return {"error": "Number must not be empty"}
    conn = _get_connection()
    return _get_terminal(conn, number).to_dict()


@mcp.tool()
def observe_terminal(number: str, enable: bool = True) -> dict[str, Any]:
    """Start or stop monitoring a terminal.

    While a terminal is observed, the server reports call progress for it.

    Args:
        number: Extension or phone number of the terminal.
        enable: True to start monitoring, False to stop.
    """
    if not number.strip():
        return {"error": "Number must not be empty"}
    conn = _get_connection()
    terminal = _get_terminal(conn, number)
    success = conn.observe_terminal(terminal, enable)
    result = terminal.to_dict()
    result["success"] = success
    return result


@mcp.tool()
def release_terminal(number: str) -> dict[str, Any]:
    """Release a terminal previously looked up.

    Args:
        number: Extension or phone number of the terminal.
    """
    conn = _get_connection()
    terminal = _terminals.pop(number, None)
    if terminal is None:
        return {"released": False, "error": f"Unknown terminal {number}"}
    return {"released": conn.release_terminal(terminal), "number": number}


# ─── CALL TOOLS ───────────────────────────────────────────────────────

@mcp.tool()
def make_call(number: str, destination: str) -> dict[str, Any]:
    """Place a call from a terminal to a destination number.

    A protocol error ends the session; use the 'connect' tool again
    afterwards.

    Args:
        number: Extension or phone number of the originating terminal.
        destination: Number to dial.
    """
    if not number.strip() or not destination.strip():
        return {"error": "Number and destination must not be empty"}
    conn = _get_connection()
    terminal = _get_terminal(conn, number)
    try:
        call = conn.create_call(terminal, Address(destination))
    except ProtocolError:
        # The server may still send lines for this call
        logger.warning("Dropping STLI session after failed call from %s", number)
        _drop_session(conn)
        raise
    result = call.to_dict()
    result["observed"] = terminal.observed
    return result


# ─── ENTRY POINT ─────────────────────────────────────────────────────

def main():
    """Run the MCP server with stdio transport."""
    logging.basicConfig(level=logging.INFO)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
