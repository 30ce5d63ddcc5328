"""Transport contract required by the STLI connection engine."""

from __future__ import annotations

from abc import ABC, abstractmethod


class TransportError(ConnectionError):
    """Raised when the underlying byte stream fails."""


class LineTransport(ABC):
    """An ordered, reliable stream of newline-terminated text lines."""

    @abstractmethod
    def connect(self) -> object:
        """Open the stream."""
        ...

    @abstractmethod
    def is_connected(self) -> bool:
        ...

    @abstractmethod
    def write(self, line: str) -> int:
        """Write ``line``, which already carries its terminator."""
        ...

    @abstractmethod
    def read(self) -> str:
        """Block until a full line is available and return it without terminator."""
        ...

    @abstractmethod
    def close(self) -> object:
        """Close the stream."""
        ...
