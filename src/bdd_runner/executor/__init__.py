from .executor import FeatureExecutor, ExecutorConfig
from .step_definitions import StepDefinitionRegistry, StepDefinition, given, when, then, step
from .custom_types import CustomType, CustomTypeRegistry
from .coercion import ArgumentCoercer
from .hooks import HookSet, HookPoint, ScenarioInfo, StepInfo
from .step_context import StepContext
from .report_collector import ReportCollector
from .results import RunResult, ScenarioResult, StepResult, StepStatus

__all__ = [
    'FeatureExecutor',
    'ExecutorConfig',
    'StepDefinitionRegistry',
    'StepDefinition',
    'CustomType',
    'CustomTypeRegistry',
    'ArgumentCoercer',
    'HookSet',
    'HookPoint',
    'ScenarioInfo',
    'StepInfo',
    'StepContext',
    'ReportCollector',
    'RunResult',
    'ScenarioResult',
    'StepResult',
    'StepStatus',
    'given',
    'when',
    'then',
    'step',
]

# Module metadata
__version__ = '0.1.0'
__description__ = 'Feature Executor - run Gherkin scenarios against Python step definitions'
