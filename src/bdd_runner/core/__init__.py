from .base import (
    RunnerModule,
    ModuleStatus,
    ModuleInfo,
)
from .config import ConfigManager
from .exceptions import (
    BDDRunnerError,
    ConfigurationError,
    InvalidPatternError,
    DuplicatePatternError,
    UnknownParameterTypeError,
    NoMatchingDefinitionError,
    AmbiguousStepError,
    UnresolvedStepError,
    InvalidTagExpressionError,
    HookError,
    CoercionError,
    InvalidBooleanLiteralError,
    InvalidEnumValueError,
    InvalidFormatError,
    StepFailure,
    ReportGenerationError,
)

__all__ = [
    # Base classes
    "RunnerModule",
    "ModuleStatus",
    "ModuleInfo",

    # Configuration
    "ConfigManager",

    # Exceptions
    "BDDRunnerError",
    "ConfigurationError",
    "InvalidPatternError",
    "DuplicatePatternError",
    "UnknownParameterTypeError",
    "NoMatchingDefinitionError",
    "AmbiguousStepError",
    "UnresolvedStepError",
    "InvalidTagExpressionError",
    "HookError",
    "CoercionError",
    "InvalidBooleanLiteralError",
    "InvalidEnumValueError",
    "InvalidFormatError",
    "StepFailure",
    "ReportGenerationError",
]
