"""TCP connection to an STLI server.

The server speaks plain text, one message per ``\\n``-terminated line.
"""

from __future__ import annotations

import logging
import socket

from .base import LineTransport, TransportError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0  # seconds, applies to connect and to each read
ENCODING = "latin-1"
MAX_LINE = 8192  # bytes per line, terminator included


class SocketConnection(LineTransport):
    """Manages the TCP connection to the STLI server.

    Usage::

        conn = SocketConnection("cti.example.com", 7001)
        conn.connect()
        conn.write("STLI;Version=2\\n")
        response = conn.read()
        conn.close()
    """

    def __init__(
        self,
        host: str,
        port: int,
        timeout: float | None = DEFAULT_TIMEOUT,
        encoding: str = ENCODING,
        max_line: int = MAX_LINE,
    ) -> None:
        self._host = host
        self._port = port
        self._timeout = timeout
        self._encoding = encoding
        self._max_line = max_line
        self._sock: socket.socket | None = None
        self._reader = None
        self._connected = False

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def peer(self) -> str:
        return f"{self._host}:{self._port}"

    def is_connected(self) -> bool:
        return self._connected

    def connect(self) -> bool:
        """Open the TCP connection.

        Returns:
            ``True`` once connected. Calling it again while connected is a
            no-op.

        Raises:
            TransportError: If the server cannot be reached.
        """
        if self._connected:
            return True

        try:
            sock = socket.create_connection((self._host, self._port), self._timeout)
        except OSError as e:
            raise TransportError(
                f"Could not connect to STLI server {self.peer}: {e}"
            ) from e

        self._sock = sock
        self._reader = sock.makefile("rb")
        self._connected = True
        logger.info("Connected to %s", self.peer)
        return True

    def close(self) -> bool:
        """Close the TCP connection."""
        if not self._connected:
            return True

        try:
            self._reader.close()
            self._sock.close()
        except OSError as e:
            logger.warning("Error closing connection to %s: %s", self.peer, e)
        finally:
            self._sock = None
            self._reader = None
            self._connected = False
            logger.info("Disconnected from %s", self.peer)
        return True

    def write(self, line: str) -> int:
        """Send a line to the server.

        Args:
            line: Text including its trailing terminator.

        Returns:
            Number of bytes written.

        Raises:
            TransportError: If not connected, the line cannot be encoded
                or the send fails.
        """
        if not self._connected:
            raise TransportError("Not connected to STLI server")

        try:
            data = line.encode(self._encoding)
        except UnicodeEncodeError as e:
            raise TransportError(
                f"Cannot encode {line.rstrip()!r} as {self._encoding}: {e}"
            ) from e
        try:
            self._sock.sendall(data)
        except OSError as e:
            raise TransportError(f"Write to {self.peer} failed: {e}") from e
        return len(data)

    def read(self) -> str:
        """Read one line from the server.

        Returns:
            The line with its ``\\r\\n`` / ``\\n`` terminator stripped.

        Raises:
            TransportError: If not connected, the read times out, the line
                exceeds the maximum length or the server closed the
                connection.
        """
        if not self._connected:
            raise TransportError("Not connected to STLI server")

        try:
            data = self._reader.readline(self._max_line)
        except OSError as e:
            raise TransportError(f"Read from {self.peer} failed: {e}") from e

        if not data:
            raise TransportError(f"Connection closed by {self.peer}")
        if len(data) >= self._max_line and not data.endswith(b"\n"):
            raise TransportError(
                f"Line from {self.peer} exceeds {self._max_line} bytes"
            )
        return data.decode(self._encoding).rstrip("\r\n")
