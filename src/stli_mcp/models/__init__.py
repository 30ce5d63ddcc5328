"""Telephony value objects exchanged with callers."""

from .telephony import Address, Terminal, Call
