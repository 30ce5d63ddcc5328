"""Response validation and parsing for STLI server lines."""

from __future__ import annotations

import re
import string
from dataclasses import dataclass, field
from functools import lru_cache

from .commands import Response
from .errors import ProtocolError

# Two shapes of the init acknowledgement, tried in this order:
#
#   error_ind SUCCESS STLI Version "2"
#   error_ind SUCCESS STLI;Version=2;DeviceInformation=Standard
INIT_QUOTED_PATTERN = re.compile(
    r'^error_ind (?P<status>\S+) STLI (?P<info>Version "(?P<version>\d+)")$'
)
INIT_FEATURES_PATTERN = re.compile(
    r"^error_ind (?P<status>\S+) STLI;(?P<info>[^\r\n]+)$"
)
INIT_PATTERNS = (INIT_QUOTED_PATTERN, INIT_FEATURES_PATTERN)

STATUS_SUCCESS = "SUCCESS"


@dataclass
class InitResponse:
    """Parsed reply to the ``STLI;Version=`` command."""

    status: str
    info: str
    raw: str
    version: int | None = None
    features: dict[str, str] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return self.status == STATUS_SUCCESS


@dataclass(frozen=True)
class CallInitiated:
    """``Initiated`` notification emitted for an observed terminal."""

    sequence: int
    calling: str
    called: str


@dataclass(frozen=True)
class DeviceInformation:
    """``DeviceInformation`` notification following ``Initiated``."""

    sequence: int
    code: int
    description: str


@dataclass(frozen=True)
class _Token:
    kind: str  # "literal", "space" or "conversion"
    value: str


@lru_cache(maxsize=32)
def _tokenize(template: str) -> tuple[_Token, ...]:
    """Split a scan template into literal, whitespace and conversion tokens."""
    tokens: list[_Token] = []
    i = 0
    while i < len(template):
        ch = template[i]
        if ch == "%":
            if i + 1 >= len(template):
                raise ValueError(f"Dangling '%' in template {template!r}")
            conv = template[i + 1]
            if conv == "%":
                tokens.append(_Token("literal", "%"))
            elif conv in "dsc":
                tokens.append(_Token("conversion", conv))
            else:
                raise ValueError(f"Unsupported conversion '%{conv}' in {template!r}")
            i += 2
        elif ch.isspace():
            while i < len(template) and template[i].isspace():
                i += 1
            tokens.append(_Token("space", " "))
        else:
            tokens.append(_Token("literal", ch))
            i += 1
    return tuple(tokens)


def scan(template: str, line: str) -> tuple | None:
    """Extract positional fields from ``line`` according to ``template``.

    Supports ``scanf``-like conversions:

    - ``%d``: optionally signed decimal integer (leading whitespace skipped)
    - ``%s``: run of non-whitespace characters; when a literal immediately
      follows it in the template, the run extends up to that literal,
      spaces included, so ``(%s)`` captures the text between the
      parentheses
    - ``%c``: exactly one character
    - ``%%``: a literal percent sign

    Whitespace in the template matches any amount of whitespace, including
    none. A literal that fails to match ends the scan; the scan still
    succeeds if every conversion captured by then. Text after the last
    template token is ignored.

    Returns:
        A tuple of captured values in template order, or ``None`` if any
        conversion fails to capture.
    """
    if isinstance(template, Response):
        template = template.value
    tokens = _tokenize(template)
    conversions = sum(1 for token in tokens if token.kind == "conversion")
    values: list[int | str] = []
    pos = 0
    end = len(line)

    for index, token in enumerate(tokens):
        if token.kind == "space":
            while pos < end and line[pos].isspace():
                pos += 1
        elif token.kind == "literal":
            if pos >= end or line[pos] != token.value:
                break
            pos += 1
        elif token.value == "c":
            if pos >= end:
                return None
            values.append(line[pos])
            pos += 1
        else:
            while pos < end and line[pos].isspace():
                pos += 1
            start = pos
            if token.value == "d":
                if pos < end and line[pos] in "+-":
                    pos += 1
                digits_start = pos
                while pos < end and line[pos] in string.digits:
                    pos += 1
                if pos == digits_start:
                    return None
                values.append(int(line[start:pos]))
            else:
                stop = _next_literal(tokens, index)
                if stop is None:
                    while pos < end and not line[pos].isspace():
                        pos += 1
                else:
                    while pos < end and line[pos] != stop:
                        pos += 1
                value = line[start:pos].rstrip()
                if not value:
                    return None
                values.append(value)

    if len(values) != conversions:
        return None
    return tuple(values)


def _next_literal(tokens: tuple[_Token, ...], index: int) -> str | None:
    if index + 1 < len(tokens) and tokens[index + 1].kind == "literal":
        return tokens[index + 1].value
    return None


def expect(expected: str, line: str) -> str:
    """Require ``line`` to equal ``expected`` exactly.

    Returns:
        The line, unchanged.

    Raises:
        ProtocolError: On any difference.
    """
    if isinstance(expected, Response):
        expected = expected.value
    if line != expected:
        raise ProtocolError(
            f'Protocol error: expecting "{expected}", have "{line}"',
            expected=expected,
            actual=line,
        )
    return line


def expectf(template: str, line: str) -> tuple:
    """Require ``line`` to match the scan ``template`` in every position.

    Returns:
        The captured values.

    Raises:
        ProtocolError: If any position fails to capture.
    """
    if isinstance(template, Response):
        template = template.value
    values = scan(template, line)
    if values is None:
        raise ProtocolError(
            f'Protocol error: expecting "{template}", have "{line}"',
            expected=template,
            actual=line,
        )
    return values


def parse_init_response(line: str) -> InitResponse | None:
    """Parse the init acknowledgement.

    Returns:
        An ``InitResponse`` if the line has one of the recognised shapes,
        or ``None`` otherwise. The status is not checked here.
    """
    for pattern in INIT_PATTERNS:
        match = pattern.match(line)
        if match is None:
            continue

        info = match.group("info")
        if pattern is INIT_QUOTED_PATTERN:
            version = int(match.group("version"))
            features = {"Version": str(version)}
        else:
            features = _parse_features(info)
            raw_version = features.get("Version", "")
            version = int(raw_version) if raw_version.isdigit() else None

        return InitResponse(
            status=match.group("status"),
            info=info,
            raw=line,
            version=version,
            features=features,
        )
    return None


def _parse_features(info: str) -> dict[str, str]:
    """Split ``Version=2;DeviceInformation=Standard`` into a dict."""
    features: dict[str, str] = {}
    for item in info.split(";"):
        if not item:
            continue
        key, _, value = item.partition("=")
        features[key] = value
    return features


def parse_call_initiated(line: str) -> CallInitiated:
    """Validate and parse an ``Initiated ... makeCall`` notification."""
    sequence, calling, called = expectf(Response.CALL_INITIATED, line)
    return CallInitiated(sequence=sequence, calling=calling, called=called)


def parse_device_information(line: str) -> DeviceInformation:
    """Validate and parse a ``DeviceInformation`` notification."""
    sequence, code, description = expectf(Response.DEVICE_INFORMATION, line)
    return DeviceInformation(sequence=sequence, code=code, description=description)
