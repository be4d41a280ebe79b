"""
BDD Runner - execute Gherkin feature files against Python step definitions
"""

__version__ = "0.1.0"
__author__ = "BDD Runner Contributors"

from .core import ConfigManager, ModuleInfo, RunnerModule
from .executor import (
    ExecutorConfig,
    FeatureExecutor,
    HookSet,
    StepContext,
    StepDefinitionRegistry,
    given,
    step,
    then,
    when,
)

__all__ = [
    "ConfigManager",
    "ModuleInfo",
    "RunnerModule",
    "ExecutorConfig",
    "FeatureExecutor",
    "HookSet",
    "StepContext",
    "StepDefinitionRegistry",
    "given",
    "when",
    "then",
    "step",
]
