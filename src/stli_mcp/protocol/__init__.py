"""Protocol layer: command templates, formatting, response validation and errors."""

from .commands import Command, Response, STLI_VERSION_2, format_command
from .errors import TelephonyError, StateError, ProtocolError
from .parser import expect, expectf, scan, parse_init_response
