"""
User-registered enumerated parameter types.

A custom type maps symbolic names and literal values, both matched
case-insensitively, onto a canonical value that is then coerced into the
type's underlying primitive kind::

    registry.register_custom_type("priority", "int", {"low": "1", "medium": "2", "high": "3"})

    # "HIGH", "High", "high" and "3" all coerce to 3
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Type

from ..core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

UNDERLYING_KINDS = {
    'string', 'bool', 'int', 'int8', 'int16', 'int32', 'int64',
    'uint', 'uint8', 'uint16', 'uint32', 'uint64', 'float', 'float32', 'float64',
}


@dataclass(frozen=True)
class CustomType:
    """A registered custom type. Immutable once created."""
    name: str
    underlying: str
    values: Mapping[str, str] = field(default_factory=dict)
    enum_class: Optional[Type[Enum]] = None

    def lookup(self, text: str) -> Optional[str]:
        """Canonical value for a name or literal value, None when unknown"""
        return self.values.get(text.lower())

    @property
    def allowed(self) -> List[str]:
        return sorted(self.values)

    @property
    def usable(self) -> bool:
        return bool(self.values)

    def regex(self) -> str:
        """Case-insensitive alternation over every accepted spelling, longest first"""
        keys = sorted(self.values, key=lambda key: (-len(key), key))
        return '(?i:' + '|'.join(re.escape(key) for key in keys) + ')'


class CustomTypeRegistry:
    """
    Registry of custom types, keyed by lowercased type name.

    Populated during the registration phase and frozen before execution.
    """

    def __init__(self):
        self._types: Dict[str, CustomType] = {}
        self._frozen = False

    def register_custom_type(self, name: str, underlying: str, values: Mapping[str, str]) -> CustomType:
        """
        Register a custom type.

        Args:
            name: Placeholder name used as {name} in step patterns
            underlying: Primitive kind the canonical values are coerced into
            values: Mapping of symbolic name to literal value

        Returns:
            The registered type
        """
        self._check_mutable()
        if not name or not re.fullmatch(r'\w+', name):
            raise ConfigurationError(f"Invalid custom type name: {name!r}")
        if underlying not in UNDERLYING_KINDS:
            raise ConfigurationError(
                f"Custom type '{name}' has unsupported underlying kind '{underlying}'"
            )

        table = {}
        for symbol, value in values.items():
            canonical = str(value)
            table[str(symbol).lower()] = canonical
            table[canonical.lower()] = canonical

        custom_type = CustomType(name=name, underlying=underlying, values=MappingProxyType(table))
        return self._store(custom_type)

    def register_enum(self, enum_class: Type[Enum], name: Optional[str] = None) -> CustomType:
        """
        Register an Enum subclass as a custom type.

        Member names and member values are accepted; coercion yields the member.
        """
        self._check_mutable()
        members = list(enum_class)
        name = name or enum_class.__name__

        table = {}
        for member in members:
            canonical = str(member.value)
            table[member.name.lower()] = canonical
            table[canonical.lower()] = canonical

        custom_type = CustomType(
            name=name,
            underlying=_underlying_kind(members),
            values=MappingProxyType(table),
            enum_class=enum_class,
        )
        return self._store(custom_type)

    def get(self, name: str) -> Optional[CustomType]:
        return self._types.get(name.lower())

    def find_enum(self, enum_class: Type[Enum]) -> Optional[CustomType]:
        for custom_type in self._types.values():
            if custom_type.enum_class is enum_class:
                return custom_type
        return None

    def __contains__(self, name: str) -> bool:
        return name.lower() in self._types

    def __len__(self) -> int:
        return len(self._types)

    def names(self) -> List[str]:
        return sorted(t.name for t in self._types.values())

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def _store(self, custom_type: CustomType) -> CustomType:
        from .coercion import BUILTIN_KINDS

        key = custom_type.name.lower()
        if key in BUILTIN_KINDS:
            raise ConfigurationError(
                f"Custom type '{custom_type.name}' clashes with the builtin parameter kind '{key}'"
            )
        if key in self._types:
            logger.warning(f"Custom type '{custom_type.name}' redefined")
        if not custom_type.usable:
            logger.warning(f"Custom type '{custom_type.name}' has no values and cannot be used in a pattern")

        self._types[key] = custom_type
        logger.debug(f"Registered custom type: {custom_type.name} ({custom_type.underlying})")
        return custom_type

    def _check_mutable(self) -> None:
        if self._frozen:
            raise ConfigurationError("Custom types cannot be registered once execution has started")


def _underlying_kind(members: List[Enum]) -> str:
    values = [member.value for member in members]
    if values and all(isinstance(v, bool) for v in values):
        return 'bool'
    if values and all(isinstance(v, int) and not isinstance(v, bool) for v in values):
        return 'int'
    if values and all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in values):
        return 'float'
    return 'string'
