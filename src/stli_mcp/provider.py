"""Abstract telephony provider interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from .models.telephony import Address, Call, Terminal


class TelephonyProvider(ABC):
    """Abstract base class for CTI backends.

    Implementations handle the specifics of negotiating a session,
    originating calls and observing terminals for their protocol.
    """

    @abstractmethod
    def connect(self) -> object:
        """Open the session with the telephony server.

        Raises:
            TelephonyError: If the server rejects the session.
        """
        ...

    @abstractmethod
    def close(self) -> object:
        """End the session and release the underlying transport."""
        ...

    @abstractmethod
    def create_call(self, terminal: Terminal, destination: Address) -> Call:
        """Place a call from ``terminal`` to ``destination``.

        Raises:
            TelephonyError: If the server does not confirm the call.
        """
        ...

    @abstractmethod
    def get_terminal(self, address: Address) -> Terminal:
        ...

    @abstractmethod
    def observe_terminal(self, terminal: Terminal, enable: bool) -> bool:
        """Start or stop observing ``terminal``.

        Returns:
            True if the server acknowledged the change.
        """
        ...

    @abstractmethod
    def release_terminal(self, terminal: Terminal) -> bool:
        ...
