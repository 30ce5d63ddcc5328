"""STLI connection engine.

STLI ("Simple Telephony Interface") is the line protocol spoken by the
ilink TeamCall server. A session looks like::

    C: STLI;Version=2
    S: error_ind SUCCESS STLI Version "2"
    C: MonitorStart 201
    S: error_ind SUCCESS MonitorStart
    C: MakeCall 201 0221123456
    S: error_ind SUCCESS MakeCall
    S: Initiated 17 makeCall 201 0221123456
    S: DeviceInformation 17 0 (Standard)
    C: BYE
    S: error_ind SUCCESS BYE

The two notification lines after ``MakeCall`` are only sent while the
originating terminal is observed.
"""

from __future__ import annotations

import logging
from enum import Enum

from .models.telephony import Address, Call, Terminal
from .protocol.commands import (
    LINE_TERMINATOR,
    STLI_VERSION_2,
    Response,
    build_bye,
    build_init,
    build_make_call,
    build_monitor_start,
    build_monitor_stop,
)
from .protocol.errors import ProtocolError, StateError
from .protocol.parser import (
    InitResponse,
    expect,
    parse_call_initiated,
    parse_device_information,
    parse_init_response,
)
from .provider import TelephonyProvider
from .trace import NullTracer, ProtocolTracer
from .transport.base import LineTransport

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    """Session lifecycle; only ever advances in declaration order."""

    UNCONNECTED = "unconnected"
    NEGOTIATED = "negotiated"
    CLOSED = "closed"


class StliConnection(TelephonyProvider):
    """STLI implementation of :class:`TelephonyProvider`.

    Usage::

        conn = StliConnection(SocketConnection(host, port))
        conn.connect()
        terminal = conn.get_terminal(Address("201"))
        call = conn.create_call(terminal, Address("0221123456"))
        conn.close()

    The connection owns its transport. Operations are strictly sequential:
    each writes at most one command and reads its reply (plus notification
    lines where the protocol sends them) before returning. After any
    :class:`ProtocolError` the stream may be out of step with the server
    and the session should be closed.
    """

    def __init__(
        self,
        transport: LineTransport,
        version: int = STLI_VERSION_2,
        tracer: ProtocolTracer | None = None,
    ) -> None:
        self._transport = transport
        self._version = version
        self._tracer = tracer or NullTracer()
        self._state = SessionState.UNCONNECTED
        self._init_response: InitResponse | None = None

    @property
    def version(self) -> int:
        return self._version

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def transport(self) -> LineTransport:
        return self._transport

    @property
    def init_response(self) -> InitResponse | None:
        """Parsed init acknowledgement, once negotiated."""
        return self._init_response

    def set_version(self, version: int) -> None:
        """Set the protocol version to request. Only allowed before connecting.

        Raises:
            StateError: If the session was already negotiated or closed.
            ValueError: If ``version`` is not a positive integer.
        """
        if self._state is not SessionState.UNCONNECTED:
            raise StateError("Cannot change version after connecting")
        if isinstance(version, bool) or not isinstance(version, int) or version < 1:
            raise ValueError(f"Protocol version must be a positive integer, got {version!r}")
        self._version = version

    # ─── LOW-LEVEL I/O ────────────────────────────────────────────────

    def _write(self, line: str) -> None:
        self._transport.write(line + LINE_TERMINATOR)
        self._tracer.on_sent(line)

    def _read(self) -> str:
        line = self._transport.read().rstrip()
        self._tracer.on_received(line)
        return line

    def _command(self, line: str) -> str:
        """Send one command line and return the immediate reply."""
        self._write(line)
        return self._read()

    def _require_negotiated(self, operation: str) -> None:
        if self._state is not SessionState.NEGOTIATED:
            raise StateError(
                f"Cannot {operation} in state '{self._state.value}', "
                f"session must be negotiated"
            )

    # ─── LIFECYCLE ────────────────────────────────────────────────────

    def connect(self) -> str:
        """Connect the transport and negotiate the protocol version.

        Returns:
            The server's raw init acknowledgement.

        Raises:
            StateError: If this connection was already negotiated or closed.
            ProtocolError: If the acknowledgement cannot be parsed or does
                not report success.
        """
        if self._state is not SessionState.UNCONNECTED:
            raise StateError(f"Cannot connect in state '{self._state.value}'")

        self._transport.connect()
        line = self._command(build_init(self._version))

        response = parse_init_response(line)
        if response is None:
            raise ProtocolError(f"Cannot parse connect response <{line}>", actual=line)
        if not response.success:
            raise ProtocolError(f"Response indicates failure <{line}>", actual=line)

        if response.version is not None and response.version != self._version:
            logger.warning(
                "Requested STLI version %d, server acknowledged %d",
                self._version,
                response.version,
            )

        self._init_response = response
        self._state = SessionState.NEGOTIATED
        logger.info("STLI session negotiated (version %d)", self._version)
        return line

    def close(self) -> object:
        """Say BYE and close the transport.

        Returns:
            Whatever the transport's ``close()`` returns.

        Raises:
            StateError: If the session is not negotiated.
            ProtocolError: If the server does not acknowledge BYE; the
                transport is left open in that case.
        """
        self._require_negotiated("close")
        expect(Response.BYE, self._command(build_bye()))

        result = self._transport.close()
        self._state = SessionState.CLOSED
        logger.info("STLI session closed")
        return result

    # ─── CALLS & TERMINALS ────────────────────────────────────────────

    def create_call(self, terminal: Terminal, destination: Address) -> Call:
        """Originate a call from ``terminal`` to ``destination``.

        When the terminal is observed, the server follows the MakeCall
        acknowledgement with an ``Initiated`` and a ``DeviceInformation``
        notification, which are consumed here in that order.

        Raises:
            StateError: If the session is not negotiated.
            ProtocolError: If the acknowledgement or either notification
                does not validate.
        """
        self._require_negotiated("create call")
        expect(
            Response.MAKE_CALL,
            self._command(build_make_call(terminal.attached_number, destination.number)),
        )

        if terminal.observed:
            initiated = parse_call_initiated(self._read())
            device = parse_device_information(self._read())
            logger.debug(
                "Call %d initiated %s -> %s (device %d: %s)",
                initiated.sequence,
                initiated.calling,
                initiated.called,
                device.code,
                device.description,
            )

        return Call(origin=terminal.address, destination=destination)

    def get_terminal(self, address: Address) -> Terminal:
        """Wrap ``address`` in an unobserved terminal. No server traffic."""
        return Terminal(address=address)

    def observe_terminal(self, terminal: Terminal, enable: bool) -> bool:
        """Start (``enable=True``) or stop monitoring ``terminal``.

        A protocol mismatch is reported as ``False`` instead of raising,
        and the terminal's ``observed`` flag is left unchanged.

        Raises:
            StateError: If the session is not negotiated.
        """
        self._require_negotiated("observe terminal")
        if enable:
            command = build_monitor_start(terminal.attached_number)
            expected = Response.MONITOR_START
        else:
            command = build_monitor_stop(terminal.attached_number)
            expected = Response.MONITOR_STOP

        try:
            expect(expected, self._command(command))
        except ProtocolError as e:
            logger.warning("Observing %s failed: %s", terminal.attached_number, e)
            return False

        terminal.observed = bool(enable)
        return True

    def release_terminal(self, terminal: Terminal) -> bool:
        """Release ``terminal``. STLI has no release command; always succeeds."""
        return True
