from typing import Iterable, Optional


class BDDRunnerError(Exception):
    """Base exception for BDD Runner"""
    pass


class ConfigurationError(BDDRunnerError):
    """Configuration-related errors. Abort the whole run before execution."""
    pass


class InvalidPatternError(ConfigurationError):
    """Step pattern does not compile"""

    def __init__(self, pattern: str, reason: str):
        self.pattern = pattern
        self.reason = reason
        super().__init__(f"Invalid step pattern {pattern!r}: {reason}")


class DuplicatePatternError(ConfigurationError):
    """An identical step pattern is already registered"""

    def __init__(self, pattern: str, existing_handler: str, new_handler: str):
        self.pattern = pattern
        self.existing_handler = existing_handler
        self.new_handler = new_handler
        super().__init__(
            f"Duplicate step pattern {pattern!r}: already registered by "
            f"'{existing_handler}', cannot register '{new_handler}'"
        )


class UnknownParameterTypeError(ConfigurationError):
    """A {placeholder} names neither a built-in kind nor a usable custom type"""

    def __init__(self, name: str, reason: str = "not a built-in kind or registered custom type"):
        self.name = name
        super().__init__(f"Unknown parameter type {{{name}}} in step pattern: {reason}")


class NoMatchingDefinitionError(ConfigurationError):
    """No step definition matches the step text"""

    def __init__(self, text: str):
        self.text = text
        super().__init__(f"No step definition found for: {text}")


class AmbiguousStepError(ConfigurationError):
    """More than one step definition matches the step text"""

    def __init__(self, text: str, patterns: Iterable[str]):
        self.text = text
        self.patterns = list(patterns)
        listed = ", ".join(repr(p) for p in self.patterns)
        super().__init__(f"Ambiguous step {text!r} matches {len(self.patterns)} definitions: {listed}")


class UnresolvedStepError(ConfigurationError):
    """A step of a selected scenario has no definition"""

    def __init__(self, text: str, feature: str, scenario: str, file: Optional[str] = None,
                 cause: Optional[Exception] = None):
        self.text = text
        self.feature = feature
        self.scenario = scenario
        self.file = file
        self.cause = cause
        location = f" ({file})" if file else ""
        detail = f": {cause}" if isinstance(cause, AmbiguousStepError) else ""
        super().__init__(
            f"Unresolved step {text!r} in scenario '{scenario}' of feature '{feature}'{location}{detail}"
        )


class InvalidTagExpressionError(ConfigurationError):
    """Tag expression could not be parsed"""

    def __init__(self, expression: str, reason: str):
        self.expression = expression
        self.reason = reason
        super().__init__(f"Invalid tag expression {expression!r}: {reason}")


class HookError(BDDRunnerError):
    """A run-level hook raised"""
    pass


class CoercionError(BDDRunnerError):
    """Captured text could not be converted to the declared parameter kind"""

    def __init__(self, kind: str, value: str, reason: str = ""):
        self.kind = kind
        self.value = value
        self.reason = reason
        message = f"cannot convert {value!r} to {kind}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class InvalidBooleanLiteralError(CoercionError):
    """Boolean text outside the accepted synonym set"""

    def __init__(self, value: str):
        super().__init__("bool", value, "expected one of true/false, yes/no, on/off, "
                                        "enabled/disabled, 1/0, t/f")


class InvalidEnumValueError(CoercionError):
    """Value not present in a custom type's value table"""

    def __init__(self, type_name: str, value: str, allowed: Iterable[str] = ()):
        self.type_name = type_name
        self.allowed = sorted(set(allowed))
        super().__init__(type_name, value, f"allowed: {', '.join(self.allowed)}")


class InvalidFormatError(CoercionError):
    """Structured or temporal text failed its sub-parser"""
    pass


class StepFailure(BDDRunnerError):
    """A step handler raised or returned an error"""
    pass


class ReportGenerationError(BDDRunnerError):
    """Report could not be written after the run"""
    pass
