"""
Conversion of captured step text into typed handler arguments.

Every parameter of a step handler has a kind. Kinds come from, in order:
an explicit ``param_types`` declaration, the handler's type annotations,
the ``{kind}`` placeholders of the pattern, or default to ``string``.
"""

import datetime
import ipaddress
import logging
import re
import types
import typing
import uuid
from dataclasses import dataclass
from enum import Enum
from pathlib import PurePath
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..core.exceptions import (
    CoercionError, InvalidBooleanLiteralError, InvalidEnumValueError, UnknownParameterTypeError
)
from .custom_types import CustomType, CustomTypeRegistry
from .utils.datetime_parser import DateTimeParser
from .utils.formats import FORMAT_PARSERS, SemanticVersion

logger = logging.getLogger(__name__)

BOOL_VALUES = {
    'true': True, 'false': False,
    'yes': True, 'no': False,
    'on': True, 'off': False,
    'enabled': True, 'disabled': False,
    '1': True, '0': False,
    't': True, 'f': False,
}

INTEGER_RANGES = {
    'int': (None, None),
    'int8': (-2 ** 7, 2 ** 7 - 1),
    'int16': (-2 ** 15, 2 ** 15 - 1),
    'int32': (-2 ** 31, 2 ** 31 - 1),
    'int64': (-2 ** 63, 2 ** 63 - 1),
    'uint': (0, None),
    'uint8': (0, 2 ** 8 - 1),
    'uint16': (0, 2 ** 16 - 1),
    'uint32': (0, 2 ** 32 - 1),
    'uint64': (0, 2 ** 64 - 1),
}
FLOAT_KINDS = {'float', 'float32', 'float64'}
TEXT_KINDS = {'string', 'word', 'any', ''}
TEMPORAL_KINDS = {'time', 'date', 'datetime', 'timezone', 'duration'}

INTEGER_LITERAL = re.compile(r'^[+-]?\d+$')

_TZ = r'(?:Z|UTC|[+-]\d{2}:?\d{2}|[A-Za-z_]+/[A-Za-z_]+(?:/[A-Za-z_]+)?)'
_CLOCK = (r'(?:\d{1,2}:\d{2}(?::\d{2}(?:\.\d+)?)?(?:\s*[AaPp]\.?[Mm]\.?)?'
          r'|\d{1,2}\s*[AaPp]\.?[Mm]\.?)')
_TIME = _CLOCK + r'(?:\s*' + _TZ + r')?'
_MONTH = r'[A-Za-z]{3,9}\.?'
_DATE = (r'(?:\d{4}[-/]\d{1,2}[-/]\d{1,2}'
         r'|\d{1,2}[-/.]\d{1,2}[-/.]\d{2,4}'
         r'|\d{1,2}\s+' + _MONTH + r',?\s+\d{4}'
         r'|' + _MONTH + r'\s+\d{1,2},?\s+\d{4})')

# Regex bodies substituted for {kind} placeholders; the registry wraps each in one capture group
PARAMETER_PATTERNS: Dict[str, str] = {
    'int': r'-?\d+',
    'int8': r'-?\d+',
    'int16': r'-?\d+',
    'int32': r'-?\d+',
    'int64': r'-?\d+',
    'uint': r'\d+',
    'uint8': r'\d+',
    'uint16': r'\d+',
    'uint32': r'\d+',
    'uint64': r'\d+',
    'float': r'-?\d*\.?\d+',
    'float32': r'-?\d*\.?\d+',
    'float64': r'-?\d*\.?\d+',
    'word': r'\w+',
    'string': r'[^"]*',
    'quoted': r'"[^"]*"|\'[^\']*\'',
    'any': r'.*',
    '': r'.*',
    'bool': r'(?i:true|false|yes|no|on|off|enabled|disabled|1|0|t|f)',
    'timezone': _TZ,
    'time': _TIME,
    'date': _DATE,
    'datetime': _DATE + r'(?:T|\s+)' + _TIME,
    'duration': r'[+-]?(?:(?:\d+(?:\.\d*)?|\.\d+)(?:ns|us|µs|μs|ms|s|m|h))+',
    'email': r'[a-zA-Z0-9._%+\-]+@[a-zA-Z0-9.\-]+\.[a-zA-Z]{2,}',
    'url': r'https?://[^\s]+',
    'uuid': r'[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}',
    'ip': r'(?:\d{1,3}\.){3}\d{1,3}|[0-9a-fA-F]*:[0-9a-fA-F:.]+',
    'hex': r'(?:0[xX])?[0-9a-fA-F]+',
    'semver': r'v?\d+\.\d+\.\d+(?:-[0-9A-Za-z.\-]+)?(?:\+[0-9A-Za-z.\-]+)?',
    'base64': r'[A-Za-z0-9+/]+={0,2}',
    'csv': r'[^\s,]+(?:\s*,\s*[^\s,]+)*',
    'json': r'[\[{].*[\]}]',
    'path': r'\S+',
    'phone': r'\+?[\d(][\d\s\-().]{5,}\d',
    'percent': r'-?\d*\.?\d+\s*%',
    'bigint': r'-?\d+',
    'regex': r'/.+/[imsx]*',
}

# Placeholders whose capture group sits inside literal delimiters
PATTERN_DELIMITERS: Dict[str, Tuple[str, str]] = {
    'string': ('"', '"'),
}

BUILTIN_KINDS = frozenset(PARAMETER_PATTERNS)

# bool before int and datetime before date: both are subclasses
ANNOTATION_KINDS = [
    (bool, 'bool'),
    (int, 'int'),
    (float, 'float'),
    (str, 'string'),
    (datetime.datetime, 'datetime'),
    (datetime.date, 'date'),
    (datetime.time, 'time'),
    (datetime.timedelta, 'duration'),
    (datetime.tzinfo, 'timezone'),
    (uuid.UUID, 'uuid'),
    (ipaddress.IPv4Address, 'ip'),
    (ipaddress.IPv6Address, 'ip'),
    (bytes, 'base64'),
    (PurePath, 'path'),
    (re.Pattern, 'regex'),
    (SemanticVersion, 'semver'),
    (list, 'csv'),
    (dict, 'json'),
]


@dataclass(frozen=True)
class ParamType:
    """Kind of a single handler parameter, plus the Python type it was declared with"""
    kind: str
    python_type: Optional[type] = None

    def __str__(self) -> str:
        return self.kind or 'any'


def kind_for_annotation(annotation: Any, custom_types: CustomTypeRegistry) -> Optional[str]:
    """
    Map a handler annotation onto a kind.

    Enum annotations are registered as custom types on first use.
    Returns None for annotations with no corresponding kind.
    """
    if annotation is None or annotation is typing.Any:
        return None

    origin = typing.get_origin(annotation)
    if origin is typing.Union or origin is getattr(types, 'UnionType', None):
        args = [a for a in typing.get_args(annotation) if a is not type(None)]
        kinds = {kind_for_annotation(a, custom_types) for a in args}
        return kinds.pop() if len(kinds) == 1 else None
    if origin is not None:
        annotation = origin

    if not isinstance(annotation, type):
        return None

    if issubclass(annotation, Enum):
        custom_type = custom_types.find_enum(annotation) or custom_types.register_enum(annotation)
        return custom_type.name

    for python_type, kind in ANNOTATION_KINDS:
        if issubclass(annotation, python_type):
            return kind
    return None


def is_known_kind(kind: str, custom_types: CustomTypeRegistry) -> bool:
    return kind in BUILTIN_KINDS or kind in custom_types


class ArgumentCoercer:
    """
    Converts captured strings into handler arguments.

    Stateless apart from the (frozen) custom type registry, so every scenario
    can use its own instance.
    """

    def __init__(self, custom_types: Optional[CustomTypeRegistry] = None):
        self.custom_types = custom_types if custom_types is not None else CustomTypeRegistry()

    def coerce_all(self, captured: Sequence[Optional[str]], param_types: Sequence[ParamType]) -> List[Any]:
        """Coerce every captured group; groups without a declared type stay strings"""
        values = []
        for index, text in enumerate(captured):
            param_type = param_types[index] if index < len(param_types) else ParamType('string')
            values.append(self.coerce(text, param_type))
        return values

    def coerce(self, text: Optional[str], param_type: ParamType) -> Any:
        """
        Coerce one captured string.

        Args:
            text: Captured text; None for a group that did not participate
            param_type: Target kind

        Raises:
            CoercionError: if the text is not valid for the kind
        """
        if text is None:
            return None

        kind = param_type.kind
        if kind in BUILTIN_KINDS:
            return self._coerce_builtin(text, kind, param_type.python_type)

        custom_type = self.custom_types.get(kind)
        if custom_type is None:
            raise UnknownParameterTypeError(kind)
        return self._coerce_custom(text, custom_type)

    def _coerce_builtin(self, text: str, kind: str, python_type: Optional[type]) -> Any:
        if kind in TEXT_KINDS:
            return text
        if kind == 'quoted':
            return _strip_quotes(text)
        if kind == 'bool':
            return parse_bool(text)
        if kind in INTEGER_RANGES:
            return parse_integer(text, kind)
        if kind in FLOAT_KINDS:
            return parse_float(text, kind)
        if kind in TEMPORAL_KINDS:
            return self._coerce_temporal(text, kind, python_type)
        return FORMAT_PARSERS[kind](text)

    def _coerce_temporal(self, text: str, kind: str, python_type: Optional[type]) -> Any:
        if kind == 'timezone':
            return DateTimeParser.parse_timezone(text)
        if kind == 'duration':
            return DateTimeParser.parse_duration(text)
        if kind == 'time':
            value = DateTimeParser.parse_time(text)
            return value.timetz() if python_type is datetime.time else value
        if kind == 'date':
            value = DateTimeParser.parse_date(text)
            return value.date() if python_type is datetime.date else value
        return DateTimeParser.parse_datetime(text)

    def _coerce_custom(self, text: str, custom_type: CustomType) -> Any:
        canonical = custom_type.lookup(text.strip())
        if canonical is None:
            allowed = sorted(set(custom_type.values.values()))
            raise InvalidEnumValueError(custom_type.name, text, allowed)

        value = self._coerce_builtin(canonical, custom_type.underlying, None)
        if custom_type.enum_class is not None:
            return custom_type.enum_class(value)
        return value


def parse_bool(text: str) -> bool:
    """Boolean synonyms: true/false, yes/no, on/off, enabled/disabled, 1/0, t/f"""
    try:
        return BOOL_VALUES[text.strip().lower()]
    except KeyError:
        raise InvalidBooleanLiteralError(text) from None


def parse_integer(text: str, kind: str = 'int') -> int:
    value = text.strip()
    if not INTEGER_LITERAL.match(value):
        raise CoercionError(kind, text, 'not an integer')

    number = int(value)
    low, high = INTEGER_RANGES[kind]
    if low is not None and number < low:
        raise CoercionError(kind, text, f'below minimum {low}')
    if high is not None and number > high:
        raise CoercionError(kind, text, f'above maximum {high}')
    return number


def parse_float(text: str, kind: str = 'float') -> float:
    try:
        return float(text.strip())
    except ValueError:
        raise CoercionError(kind, text, 'not a number') from None


def _strip_quotes(text: str) -> str:
    if len(text) >= 2 and text[0] == text[-1] and text[0] in ('"', "'"):
        return text[1:-1]
    return text
