"""Address, terminal and call models."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Address:
    """A dialable number."""

    number: str

    def __post_init__(self) -> None:
        if not isinstance(self.number, str) or not self.number.strip():
            raise ValueError(f"Address number must be a non-empty string, got {self.number!r}")

    def __str__(self) -> str:
        return self.number

    def to_dict(self) -> dict:
        return {"number": self.number}


@dataclass
class Terminal:
    """A phone device attached to an address.

    ``observed`` mirrors whether the server is currently monitoring the
    terminal. Only the provider changes it, after the server acknowledged
    a MonitorStart or MonitorStop.
    """

    address: Address
    observed: bool = False
    attached_number: str = field(default="")

    def __post_init__(self) -> None:
        if not self.attached_number:
            self.attached_number = self.address.number

    def to_dict(self) -> dict:
        return {
            "number": self.attached_number,
            "address": self.address.number,
            "observed": self.observed,
        }


@dataclass(frozen=True)
class Call:
    """A call created from an originating address to a destination."""

    origin: Address
    destination: Address

    def to_dict(self) -> dict:
        return {
            "origin": self.origin.number,
            "destination": self.destination.number,
        }
