"""STLI command templates, response constants and command builders.

Every STLI exchange is a single text line. Commands are rendered from
``printf``-style templates; the engine appends :data:`LINE_TERMINATOR`
before writing them to the transport.
"""

from __future__ import annotations

import re
from enum import Enum

LINE_TERMINATOR = "\n"

# Supported protocol versions
STLI_VERSION_2 = 2


class Command(str, Enum):
    """Host-to-server command templates."""

    INIT = "STLI;Version=%d"
    BYE = "BYE"
    MONITOR_START = "MonitorStart %s"
    MONITOR_STOP = "MonitorStop %s"
    MAKE_CALL = "MakeCall %s %s"


class Response(str, Enum):
    """Server acknowledgements and notification templates."""

    INIT = 'error_ind SUCCESS STLI Version "%d"'
    BYE = "error_ind SUCCESS BYE"
    MONITOR_START = "error_ind SUCCESS MonitorStart"
    MONITOR_STOP = "error_ind SUCCESS MonitorStop"
    MAKE_CALL = "error_ind SUCCESS MakeCall"
    CALL_INITIATED = "Initiated %d makeCall %s %s"
    DEVICE_INFORMATION = "DeviceInformation %d %d (%s)"


_PLACEHOLDER = re.compile(r"%[ds]")


def format_command(template: str, *args: object) -> str:
    """Render a command template into a single protocol line.

    Args:
        template: A template containing ``%s`` / ``%d`` placeholders.
        *args: One positional argument per placeholder.

    Returns:
        The rendered line, without a line terminator.

    Raises:
        ValueError: On an argument count or type mismatch, on a blank or
            whitespace-containing string argument, or if the rendered line
            would span more than one line.
    """
    if isinstance(template, Enum):
        template = template.value
    expected = len(_PLACEHOLDER.findall(template))
    if len(args) != expected:
        raise ValueError(
            f"Template {template!r} takes {expected} argument(s), got {len(args)}"
        )
    for arg in args:
        # Fields are space-separated on the wire
        if isinstance(arg, str) and (not arg or any(c.isspace() for c in arg)):
            raise ValueError(f"Invalid command argument {arg!r}")

    try:
        line = template % args
    except TypeError as e:
        raise ValueError(f"Cannot render {template!r} with {args!r}: {e}") from e

    if "\r" in line or "\n" in line:
        raise ValueError(f"Command must be a single line, got {line!r}")
    return line


def build_init(version: int = STLI_VERSION_2) -> str:
    """Build the session initialisation command."""
    if isinstance(version, bool) or not isinstance(version, int) or version < 1:
        raise ValueError(f"Protocol version must be a positive integer, got {version!r}")
    return format_command(Command.INIT, version)


def build_bye() -> str:
    """Build the session termination command."""
    return format_command(Command.BYE)


def build_monitor_start(number: str) -> str:
    """Build a MonitorStart command for a terminal's attached number."""
    return format_command(Command.MONITOR_START, number)


def build_monitor_stop(number: str) -> str:
    """Build a MonitorStop command for a terminal's attached number."""
    return format_command(Command.MONITOR_STOP, number)


def build_make_call(number: str, destination: str) -> str:
    """Build a MakeCall command.

    Args:
        number: Attached number of the originating terminal.
        destination: Number to dial.
    """
    return format_command(Command.MAKE_CALL, number, destination)
