"""
Sub-parsers for structured step arguments (identifiers, network addresses,
encodings, documents and similar values that have a fixed textual format).
"""

import base64
import binascii
import csv
import ipaddress
import json
import re
import uuid
from pathlib import Path
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Pattern, Union
from urllib.parse import urlparse

from ...core.exceptions import InvalidFormatError

EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+\-]+@[a-zA-Z0-9.\-]+\.[a-zA-Z]{2,}$')
HEX_PATTERN = re.compile(r'^[+-]?(?:0[xX])?[0-9a-fA-F]+$')
SEMVER_PATTERN = re.compile(
    r'^v?(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)'
    r'(?:-([0-9A-Za-z\-]+(?:\.[0-9A-Za-z\-]+)*))?'
    r'(?:\+([0-9A-Za-z\-]+(?:\.[0-9A-Za-z\-]+)*))?$'
)
PHONE_PATTERN = re.compile(r'^\+?[\d\s\-().]+$')
PERCENT_PATTERN = re.compile(r'^([+-]?(?:\d+(?:\.\d*)?|\.\d+))\s*%$')
BIGINT_PATTERN = re.compile(r'^[+-]?\d+$')
REGEX_LITERAL = re.compile(r'^/(.*)/([imsx]*)$', re.DOTALL)

REGEX_FLAGS = {
    'i': re.IGNORECASE,
    'm': re.MULTILINE,
    's': re.DOTALL,
    'x': re.VERBOSE,
}


class SemanticVersion(NamedTuple):
    major: int
    minor: int
    patch: int
    prerelease: Optional[str] = None
    build: Optional[str] = None

    def __str__(self) -> str:
        version = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            version += f"-{self.prerelease}"
        if self.build:
            version += f"+{self.build}"
        return version


def parse_uuid(text: str) -> uuid.UUID:
    try:
        return uuid.UUID(text.strip())
    except ValueError as e:
        raise InvalidFormatError('uuid', text, str(e)) from e


def parse_ip(text: str) -> Union[ipaddress.IPv4Address, ipaddress.IPv6Address]:
    try:
        return ipaddress.ip_address(text.strip())
    except ValueError as e:
        raise InvalidFormatError('ip', text, 'not an IPv4 or IPv6 address') from e


def parse_hex(text: str) -> int:
    """Hexadecimal integer, with or without a 0x prefix"""
    value = text.strip()
    if not HEX_PATTERN.match(value):
        raise InvalidFormatError('hex', text, 'expected hexadecimal digits')
    return int(value, 16)


def parse_semver(text: str) -> SemanticVersion:
    match = SEMVER_PATTERN.match(text.strip())
    if not match:
        raise InvalidFormatError('semver', text, 'expected MAJOR.MINOR.PATCH[-prerelease][+build]')
    major, minor, patch, prerelease, build = match.groups()
    return SemanticVersion(int(major), int(minor), int(patch), prerelease, build)


def parse_base64(text: str) -> bytes:
    try:
        return base64.b64decode(text.strip(), validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidFormatError('base64', text, str(e)) from e


def parse_url(text: str) -> str:
    """Absolute URL with a scheme and a host"""
    value = text.strip()
    parsed = urlparse(value)
    if not parsed.scheme or not parsed.netloc:
        raise InvalidFormatError('url', text, 'expected an absolute URL such as https://example.com')
    return value


def parse_email(text: str) -> str:
    value = text.strip()
    if not EMAIL_PATTERN.match(value):
        raise InvalidFormatError('email', text, 'not a valid email address')
    return value


def parse_csv(text: str) -> List[str]:
    """Single line of comma separated values, items stripped"""
    if not text.strip():
        return []
    try:
        rows = list(csv.reader([text], skipinitialspace=True))
    except csv.Error as e:
        raise InvalidFormatError('csv', text, str(e)) from e
    return [item.strip() for item in rows[0]] if rows else []


def parse_json(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise InvalidFormatError('json', text, str(e)) from e


def parse_path(text: str) -> Path:
    value = text.strip()
    if not value or '\x00' in value:
        raise InvalidFormatError('path', text, 'empty path or NUL byte')
    return Path(value).expanduser()


def parse_phone(text: str) -> str:
    """Phone number as written; needs 7 to 15 digits"""
    value = text.strip()
    digits = sum(c.isdigit() for c in value)
    if not PHONE_PATTERN.match(value) or not 7 <= digits <= 15:
        raise InvalidFormatError('phone', text, 'expected 7 to 15 digits with optional +, spaces, dashes or parentheses')
    return value


def parse_percent(text: str) -> float:
    """Percentage as written: "15%" is 15.0"""
    match = PERCENT_PATTERN.match(text.strip())
    if not match:
        raise InvalidFormatError('percent', text, 'expected a number followed by %')
    return float(match.group(1))


def parse_bigint(text: str) -> int:
    value = text.strip().replace('_', '')
    if not BIGINT_PATTERN.match(value):
        raise InvalidFormatError('bigint', text, 'expected an integer')
    return int(value)


def parse_regex(text: str) -> Pattern:
    """Regular expression, either bare or as a /pattern/flags literal"""
    source, flags = text, 0
    if match := REGEX_LITERAL.match(text.strip()):
        source = match.group(1)
        for flag in match.group(2):
            flags |= REGEX_FLAGS[flag]
    try:
        return re.compile(source, flags)
    except re.error as e:
        raise InvalidFormatError('regex', text, str(e)) from e


FORMAT_PARSERS: Dict[str, Callable[[str], Any]] = {
    'uuid': parse_uuid,
    'ip': parse_ip,
    'hex': parse_hex,
    'semver': parse_semver,
    'base64': parse_base64,
    'url': parse_url,
    'email': parse_email,
    'csv': parse_csv,
    'json': parse_json,
    'path': parse_path,
    'phone': parse_phone,
    'percent': parse_percent,
    'bigint': parse_bigint,
    'regex': parse_regex,
}
