"""Exception hierarchy for the STLI client."""

from __future__ import annotations


class TelephonyError(Exception):
    """Base class for errors raised by a telephony provider."""


class StateError(TelephonyError):
    """An operation was invoked in a session state that forbids it."""


class ProtocolError(TelephonyError):
    """A received line failed validation.

    Attributes:
        expected: The constant or template the line was checked against,
            or ``None`` when the line matched no recognised shape.
        actual: The raw line as received.
    """

    def __init__(
        self,
        message: str,
        expected: str | None = None,
        actual: str | None = None,
    ) -> None:
        super().__init__(message)
        self.expected = expected
        self.actual = actual
