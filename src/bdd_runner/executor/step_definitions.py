import re
import inspect
import typing
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Pattern, Sequence, Tuple, Union
from dataclasses import dataclass
import logging

from ..core.exceptions import (
    AmbiguousStepError, ConfigurationError, DuplicatePatternError, InvalidPatternError,
    NoMatchingDefinitionError, StepFailure, UnknownParameterTypeError
)
from .coercion import (
    PARAMETER_PATTERNS, PATTERN_DELIMITERS, TEXT_KINDS, ParamType, is_known_kind, kind_for_annotation
)
from .custom_types import CustomTypeRegistry
from .hooks import HookSet
from .utils.invoke import invoke

logger = logging.getLogger(__name__)

# {name} placeholders; quantifiers such as {2} or {1,3} and escaped \{ are left alone
PLACEHOLDER_PATTERN = re.compile(r'(?<!\\)\{([A-Za-z_]\w*)?\}')
GROUP_PREFIX = '__placeholder_'

ParamDeclaration = Union[str, type, ParamType]


@dataclass(frozen=True)
class StepDefinition:
    """A registered step: compiled pattern, handler and one parameter type per capture group"""
    source: str
    pattern: Pattern
    function: Callable
    param_types: Tuple[ParamType, ...] = ()
    keyword: str = 'step'
    description: str = ""

    @property
    def name(self) -> str:
        return _handler_name(self.function)

    async def execute(self, context: Any, args: Sequence[Any]) -> Any:
        """
        Call the handler with the context followed by the coerced arguments.

        A handler that returns an exception instance fails the same way as one that raises it.
        """
        result = await invoke(self.function, context, *args)
        if isinstance(result, BaseException):
            raise StepFailure(str(result) or type(result).__name__) from result
        return result


@dataclass(frozen=True)
class StepMatch:
    """Result of matching step text against the registry"""
    definition: StepDefinition
    text: str
    captured: Tuple[Optional[str], ...]
    offsets: Tuple[Tuple[int, int], ...]


class StepDefinitionRegistry:
    """
    Registry for step definitions.

    Patterns are regular expressions that may contain {kind} placeholders;
    each placeholder expands to one capture group. Matching ignores the
    Gherkin keyword: a step matches on its text alone.
    """

    def __init__(self, custom_types: Optional[CustomTypeRegistry] = None):
        self.custom_types = custom_types if custom_types is not None else CustomTypeRegistry()
        self._definitions: List[StepDefinition] = []
        self._frozen = False

    @property
    def definitions(self) -> Tuple[StepDefinition, ...]:
        return tuple(self._definitions)

    def register(self, pattern: Union[str, Pattern], function: Callable,
                 param_types: Optional[Sequence[ParamDeclaration]] = None,
                 keyword: str = 'step', description: str = "") -> StepDefinition:
        """
        Add a step definition to the registry.

        Args:
            pattern: Regular expression, optionally with {kind} placeholders
            function: Handler called as ``function(context, *args)``
            param_types: Explicit kind per capture group; overrides annotations
            keyword: Informational keyword (given, when, then or step)
            description: Free text shown by listings

        Raises:
            DuplicatePatternError: if the identical pattern is already registered
            InvalidPatternError: if the expanded pattern does not compile
            UnknownParameterTypeError: if a placeholder names no known kind
        """
        self._check_mutable()
        flags = 0
        if isinstance(pattern, re.Pattern):
            flags = pattern.flags
            pattern = pattern.pattern

        for existing in self._definitions:
            if existing.source == pattern:
                raise DuplicatePatternError(pattern, existing.name, _handler_name(function))

        expanded, placeholder_groups = self._expand_placeholders(pattern)
        try:
            compiled = re.compile(expanded, flags)
        except re.error as e:
            raise InvalidPatternError(pattern, str(e)) from e

        placeholder_kinds = {
            compiled.groupindex[group_name]: kind for group_name, kind in placeholder_groups.items()
        }
        types = self._resolve_param_types(pattern, compiled.groups, function, param_types, placeholder_kinds)

        definition = StepDefinition(
            source=pattern,
            pattern=compiled,
            function=function,
            param_types=types,
            keyword=keyword.lower(),
            description=description,
        )
        self._definitions.append(definition)
        logger.debug(f"Registered step: {keyword} {pattern} -> {definition.name}")
        return definition

    def given(self, pattern: Union[str, Pattern], description: str = "",
              param_types: Optional[Sequence[ParamDeclaration]] = None):
        """Decorator for Given steps"""

        def decorator(func):
            self.register(pattern, func, param_types, 'given', description)
            return func

        return decorator

    def when(self, pattern: Union[str, Pattern], description: str = "",
             param_types: Optional[Sequence[ParamDeclaration]] = None):
        """Decorator for When steps"""

        def decorator(func):
            self.register(pattern, func, param_types, 'when', description)
            return func

        return decorator

    def then(self, pattern: Union[str, Pattern], description: str = "",
             param_types: Optional[Sequence[ParamDeclaration]] = None):
        """Decorator for Then steps"""

        def decorator(func):
            self.register(pattern, func, param_types, 'then', description)
            return func

        return decorator

    def step(self, pattern: Union[str, Pattern], description: str = "",
             param_types: Optional[Sequence[ParamDeclaration]] = None):
        """Decorator for steps usable after any keyword"""

        def decorator(func):
            self.register(pattern, func, param_types, 'step', description)
            return func

        return decorator

    def match(self, text: str) -> StepMatch:
        """
        Find the single definition matching the step text.

        Raises:
            NoMatchingDefinitionError: if nothing matches
            AmbiguousStepError: if more than one definition matches
        """
        matches = []
        for definition in self._definitions:
            found = definition.pattern.search(text)
            if found:
                matches.append((definition, found))

        if not matches:
            logger.debug(f"No step definition found for: {text}")
            raise NoMatchingDefinitionError(text)
        if len(matches) > 1:
            raise AmbiguousStepError(text, [definition.source for definition, _ in matches])

        definition, found = matches[0]
        return StepMatch(
            definition=definition,
            text=text,
            captured=found.groups(),
            offsets=_byte_offsets(text, [found.span(index) for index in range(1, definition.pattern.groups + 1)]),
        )

    def clone(self) -> "StepDefinitionRegistry":
        """Independent registry sharing the (immutable) definitions and custom types"""
        clone = StepDefinitionRegistry(self.custom_types)
        clone._definitions = list(self._definitions)
        clone._frozen = self._frozen
        return clone

    def freeze(self) -> None:
        """Reject further registration; called when execution starts"""
        self._frozen = True
        self.custom_types.freeze()

    def list_definitions(self) -> List[Dict[str, str]]:
        """List all registered step definitions"""
        return [
            {
                'keyword': defn.keyword,
                'pattern': defn.source,
                'description': defn.description,
                'function': defn.name,
                'params': ', '.join(str(t) for t in defn.param_types),
            }
            for defn in self._definitions
        ]

    def __len__(self) -> int:
        return len(self._definitions)

    def register_from_module(self, module) -> List[HookSet]:
        """
        Register everything a steps module declares.

        Picks up functions marked with the module-level given/when/then/step
        decorators and Enum subclasses defined in the module. HookSet
        instances are returned for the caller to install.
        """
        hooks = []
        members = inspect.getmembers(module)

        for name, obj in members:
            if inspect.isclass(obj) and issubclass(obj, Enum) and obj.__module__ == module.__name__ \
                    and list(obj) and self.custom_types.find_enum(obj) is None:
                self.custom_types.register_enum(obj)

        for name, obj in members:
            if isinstance(obj, HookSet):
                hooks.append(obj)
            for step_info in getattr(obj, '_step_definitions', None) or []:
                self.register(
                    step_info['pattern'],
                    obj,
                    step_info.get('param_types'),
                    step_info['keyword'],
                    step_info.get('description', ''),
                )

        logger.info(f"Loaded steps from {module.__name__}: {len(self)} definitions, {len(hooks)} hook sets")
        return hooks

    def _expand_placeholders(self, pattern: str) -> Tuple[str, Dict[str, str]]:
        groups: Dict[str, str] = {}

        def replace(match):
            kind = (match.group(1) or '').lower()
            if kind not in PARAMETER_PATTERNS:
                custom_type = self.custom_types.get(kind)
                if custom_type is None:
                    raise UnknownParameterTypeError(kind)
                if not custom_type.usable:
                    raise UnknownParameterTypeError(kind, f"custom type '{custom_type.name}' has no values")
                body = custom_type.regex()
                kind = custom_type.name
            else:
                body = PARAMETER_PATTERNS[kind]

            group_name = f"{GROUP_PREFIX}{len(groups)}"
            groups[group_name] = kind
            opening, closing = PATTERN_DELIMITERS.get(kind, ('', ''))
            return f"{opening}(?P<{group_name}>{body}){closing}"

        return PLACEHOLDER_PATTERN.sub(replace, pattern), groups

    def _resolve_param_types(self, pattern: str, group_count: int, function: Callable,
                             declared: Optional[Sequence[ParamDeclaration]],
                             placeholder_kinds: Dict[int, str]) -> Tuple[ParamType, ...]:
        if declared is not None:
            if len(declared) != group_count:
                raise InvalidPatternError(
                    pattern, f"{group_count} capture groups but {len(declared)} parameter types declared"
                )
            return tuple(self._declared_type(pattern, declaration) for declaration in declared)

        annotations = _parameter_annotations(function)
        types = []
        for index in range(group_count):
            annotation = annotations[index] if index < len(annotations) else None
            python_type = annotation if isinstance(annotation, type) else None
            placeholder = placeholder_kinds.get(index + 1)
            # a typed placeholder fixes the kind; annotations only refine text captures
            if placeholder is not None and placeholder not in TEXT_KINDS:
                types.append(ParamType(placeholder, python_type))
                continue

            kind = kind_for_annotation(annotation, self.custom_types) if annotation is not None else None
            types.append(ParamType(kind or placeholder or 'string', python_type if kind else None))
        return tuple(types)

    def _declared_type(self, pattern: str, declaration: ParamDeclaration) -> ParamType:
        if isinstance(declaration, ParamType):
            kind, python_type = declaration.kind, declaration.python_type
        elif isinstance(declaration, str):
            kind, python_type = declaration, None
        else:
            kind, python_type = kind_for_annotation(declaration, self.custom_types), declaration
            if kind is None:
                raise InvalidPatternError(pattern, f"no parameter kind for type {declaration!r}")

        if not is_known_kind(kind, self.custom_types):
            raise UnknownParameterTypeError(kind)
        return ParamType(kind, python_type if isinstance(python_type, type) else None)

    def _check_mutable(self) -> None:
        if self._frozen:
            raise ConfigurationError("Step definitions cannot be registered once execution has started")


def _handler_name(function: Callable) -> str:
    module = getattr(function, '__module__', None)
    name = getattr(function, '__qualname__', None) or getattr(function, '__name__', repr(function))
    return f"{module}.{name}" if module else name


def _byte_offsets(text: str, spans: List[Tuple[int, int]]) -> Tuple[Tuple[int, int], ...]:
    """UTF-8 byte offsets for character spans; groups that did not participate stay (-1, -1)"""
    def to_bytes(index: int) -> int:
        return len(text[:index].encode('utf-8'))

    return tuple((start, end) if start < 0 else (to_bytes(start), to_bytes(end)) for start, end in spans)


def _parameter_annotations(function: Callable) -> List[Any]:
    """Annotations of the handler's parameters after the context argument"""
    try:
        signature = inspect.signature(function)
    except (TypeError, ValueError):
        return []

    try:
        hints = typing.get_type_hints(function)
    except (NameError, TypeError):
        hints = {}

    annotations = []
    parameters = [p for p in signature.parameters.values()
                  if p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD)]
    for parameter in parameters[1:]:
        annotation = hints.get(parameter.name, parameter.annotation)
        annotations.append(None if annotation is inspect.Parameter.empty else annotation)
    return annotations


def _mark(keyword: str, pattern: Union[str, Pattern], description: str,
          param_types: Optional[Sequence[ParamDeclaration]]):
    def decorator(func):
        marks = list(getattr(func, '_step_definitions', None) or [])
        marks.append({
            'keyword': keyword,
            'pattern': pattern,
            'description': description,
            'param_types': param_types,
        })
        func._step_definitions = marks
        return func

    return decorator


# Utility decorators for marking functions as step definitions
def given(pattern: Union[str, Pattern], description: str = "",
          param_types: Optional[Sequence[ParamDeclaration]] = None):
    """Mark function as a Given step"""
    return _mark('given', pattern, description, param_types)


def when(pattern: Union[str, Pattern], description: str = "",
         param_types: Optional[Sequence[ParamDeclaration]] = None):
    """Mark function as a When step"""
    return _mark('when', pattern, description, param_types)


def then(pattern: Union[str, Pattern], description: str = "",
         param_types: Optional[Sequence[ParamDeclaration]] = None):
    """Mark function as a Then step"""
    return _mark('then', pattern, description, param_types)


def step(pattern: Union[str, Pattern], description: str = "",
         param_types: Optional[Sequence[ParamDeclaration]] = None):
    """Mark function as a step usable after any keyword"""
    return _mark('step', pattern, description, param_types)
