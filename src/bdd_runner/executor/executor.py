import asyncio
import time
from typing import Callable, Dict, Iterable, List, Any, Mapping, Optional, Sequence, Union
from pathlib import Path
from datetime import datetime
import logging
from dataclasses import dataclass, field, fields

from ..bdd.expander import ScenarioOutlineExpander, plan_feature
from ..bdd.model import Feature, PlannedScenario, Step
from ..bdd.parser import FeatureFileParser
from ..bdd.tags import filter_scenarios
from ..core.base import ModuleInfo, ModuleStatus, RunnerModule
from ..core.exceptions import (
    AmbiguousStepError, HookError, NoMatchingDefinitionError, ReportGenerationError, UnresolvedStepError
)
from .coercion import ArgumentCoercer
from .custom_types import CustomType, CustomTypeRegistry
from .hooks import HookExecutor, HookSet, ScenarioInfo, StepInfo
from .report_collector import ReportCollector
from .results import ResolvedStep, RunResult, RunSummary, ScenarioExecution, ScenarioState, StepStatus, error_message
from .step_context import StepContext
from .step_definitions import StepDefinition, StepDefinitionRegistry

logger = logging.getLogger(__name__)

# SystemExit from user code fails the step instead of stopping the event loop; KeyboardInterrupt still propagates
USER_CODE_ERRORS = (Exception, SystemExit)


@dataclass
class ExecutorConfig:
    """Configuration for the feature executor"""
    parallel_workers: int = 4
    fail_fast: bool = False
    tags: Optional[str] = None
    disable_hooks: bool = False
    disable_log: bool = False
    disable_reporter: bool = False
    report_formats: List[str] = field(default_factory=lambda: ["json"])
    output_dir: str = "test-results"

    @classmethod
    def from_dict(cls, values: Mapping[str, Any]) -> "ExecutorConfig":
        """Build a config from a mapping, ignoring keys that are not config fields"""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in values.items() if k in known and v is not None})

    @classmethod
    def merge(cls, *configs: Optional[Union["ExecutorConfig", Mapping[str, Any]]]) -> "ExecutorConfig":
        """
        Combine several configs into one.

        Boolean flags are OR-ed. A mapping sets every key it holds with a value
        other than None; an ExecutorConfig sets only the values that differ from
        the defaults. Later configs replace what earlier ones set.
        """
        defaults = cls()
        merged = cls()
        known = [f.name for f in fields(cls)]
        for config in configs:
            if config is None:
                continue
            if isinstance(config, ExecutorConfig):
                values = {name: getattr(config, name) for name in known
                          if getattr(config, name) != getattr(defaults, name)}
            else:
                values = {name: config[name] for name in known if config.get(name) is not None}

            for name, value in values.items():
                if isinstance(getattr(defaults, name), bool):
                    setattr(merged, name, getattr(merged, name) or bool(value))
                else:
                    setattr(merged, name, value)
        return merged


class FeatureExecutor(RunnerModule):
    """
    Runs parsed features against registered step definitions.

    A run goes through these phases:
    - planning: outlines expanded, effective tags computed, tag filter applied
    - resolution: every step of every selected scenario matched to exactly one
      definition; any miss aborts the run before anything executes
    - execution: scenarios run concurrently, steps within a scenario in order
    - aggregation: once every scenario has finished, results are summarized
      and reports written
    """

    def __init__(self, config: Optional[Union[Dict, ExecutorConfig]] = None,
                 step_registry: Optional[StepDefinitionRegistry] = None):
        if isinstance(config, dict):
            self.config = ExecutorConfig.from_dict(config)
        else:
            self.config = config or ExecutorConfig()

        self.step_registry = step_registry if step_registry is not None else StepDefinitionRegistry()
        self.hooks: List[HookSet] = []
        super().__init__()

    def _initialize(self) -> None:
        self.feature_parser = FeatureFileParser()
        self.expander = ScenarioOutlineExpander()
        self.report_collector = None
        if not self.config.disable_reporter:
            self.report_collector = ReportCollector(self.config.output_dir)
        self.status = ModuleStatus.READY

    @property
    def custom_types(self) -> CustomTypeRegistry:
        return self.step_registry.custom_types

    # Registration

    def register_step(self, pattern: str, function: Callable, param_types: Optional[Sequence] = None,
                      keyword: str = 'step', description: str = "") -> StepDefinition:
        return self.step_registry.register(pattern, function, param_types, keyword, description)

    def register_custom_type(self, name: str, underlying: str, values: Mapping[str, str]) -> CustomType:
        return self.custom_types.register_custom_type(name, underlying, values)

    def register_enum(self, enum_class: type, name: Optional[str] = None) -> CustomType:
        return self.custom_types.register_enum(enum_class, name)

    def add_hooks(self, *hook_sets: HookSet) -> None:
        self.hooks.extend(hook_set for hook_set in hook_sets if hook_set is not None)

    def register_from_module(self, module) -> None:
        """Register the step definitions, custom types and hooks declared in a module"""
        self.add_hooks(*self.step_registry.register_from_module(module))

    def given(self, pattern: str, description: str = "", param_types: Optional[Sequence] = None):
        return self.step_registry.given(pattern, description, param_types)

    def when(self, pattern: str, description: str = "", param_types: Optional[Sequence] = None):
        return self.step_registry.when(pattern, description, param_types)

    def then(self, pattern: str, description: str = "", param_types: Optional[Sequence] = None):
        return self.step_registry.then(pattern, description, param_types)

    def step(self, pattern: str, description: str = "", param_types: Optional[Sequence] = None):
        return self.step_registry.step(pattern, description, param_types)

    def list_all_steps(self) -> List[Dict[str, str]]:
        return self.step_registry.list_definitions()

    # Running

    def run(self, features: Iterable[Feature]) -> RunResult:
        """Run features to completion (blocking)"""
        return asyncio.run(self.run_async(features))

    async def run_async(self, features: Iterable[Feature]) -> RunResult:
        """
        Run features.

        Raises:
            ConfigurationError: for invalid tag expressions or unresolved steps;
                nothing is executed in that case
            HookError: if a before_all hook fails (after_all hooks still run)
        """
        features = list(features)
        planned = [p for feature in features for p in plan_feature(feature, self.expander)]
        selected = filter_scenarios(planned, self.config.tags)

        self.step_registry.freeze()
        executions = self._resolve(selected)
        logger.info(f"Running {len(executions)} scenarios from {len(features)} features "
                    f"with {self.config.parallel_workers} workers")

        hooks = HookExecutor(self.hooks, enabled=not self.config.disable_hooks)
        result = RunResult(started_at=datetime.now())
        started = time.perf_counter()
        self.status = ModuleStatus.RUNNING

        before_all_error = None
        try:
            try:
                await hooks.before_all()
            except Exception as e:
                before_all_error = e
                logger.error(f"before_all hook failed: {error_message(e)}")
            else:
                await self._execute_all(executions, hooks)
        finally:
            try:
                await hooks.after_all()
            except Exception as e:
                logger.error(f"after_all hook failed: {error_message(e)}")
                result.errors.append(f"after_all hook failed: {error_message(e)}")
            self.status = ModuleStatus.READY

        if before_all_error is not None:
            self.status = ModuleStatus.ERROR
            raise HookError(f"before_all hook failed: {error_message(before_all_error)}") from before_all_error

        result.duration = time.perf_counter() - started
        self._aggregate(executions, result)
        self._write_reports(result)

        summary = result.summary
        logger.info(f"Run finished in {result.duration:.2f}s: {summary.scenarios_passed} passed, "
                    f"{summary.scenarios_failed} failed, {summary.scenarios_skipped} skipped")
        return result

    def _resolve(self, selected: List[PlannedScenario]) -> List[ScenarioExecution]:
        """Bind every step of every selected scenario to its definition"""
        executions = []
        for planned in selected:
            registry = self.step_registry.clone()
            execution = ScenarioExecution(planned=planned)

            if planned.feature_background:
                execution.feature_bg_steps = self._resolve_steps(registry, planned, planned.feature_background.steps)
            if planned.rule_background:
                execution.rule_bg_steps = self._resolve_steps(registry, planned, planned.rule_background.steps)
            execution.scenario_steps = self._resolve_steps(registry, planned, planned.scenario.steps)

            execution.state = ScenarioState.RESOLVED
            executions.append(execution)
        return executions

    def _resolve_steps(self, registry: StepDefinitionRegistry, planned: PlannedScenario,
                       steps: List[Step]) -> List[ResolvedStep]:
        resolved = []
        for step in steps:
            try:
                match = registry.match(step.text)
            except (NoMatchingDefinitionError, AmbiguousStepError) as e:
                raise UnresolvedStepError(step.text, planned.feature.name, planned.name,
                                          planned.feature.file, cause=e) from e
            resolved.append(ResolvedStep(
                step=step,
                definition=match.definition,
                captured=match.captured,
                match_offsets=match.offsets,
            ))
        return resolved

    async def _execute_all(self, executions: List[ScenarioExecution], hooks: HookExecutor) -> None:
        """Run every scenario and wait for all of them"""
        semaphore = asyncio.Semaphore(max(1, self.config.parallel_workers))
        stop = asyncio.Event()

        async def run_one(execution: ScenarioExecution):
            async with semaphore:
                if self.config.fail_fast and stop.is_set():
                    execution.skip()
                    return
                await self._execute_scenario(execution, hooks)
                if self.config.fail_fast and execution.state == ScenarioState.FAILED:
                    stop.set()

        outcomes = await asyncio.gather(*(run_one(e) for e in executions), return_exceptions=True)

        for execution, outcome in zip(executions, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(f"Scenario '{execution.planned.name}' crashed: {error_message(outcome)}")
                if execution.state in (ScenarioState.RESOLVED, ScenarioState.RUNNING):
                    execution.finish(outcome, execution.duration)

    async def _execute_scenario(self, execution: ScenarioExecution, hooks: HookExecutor) -> None:
        """Execute a single scenario: feature background, rule background, then its own steps"""
        planned = execution.planned
        scenario = ScenarioInfo.from_planned(planned)
        context = StepContext.for_scenario(scenario, disable_log=self.config.disable_log)
        coercer = ArgumentCoercer(self.custom_types)

        execution.state = ScenarioState.RUNNING
        execution.started_at = datetime.now()
        started = time.perf_counter()
        logger.debug(f"Starting scenario: {planned.name}")

        error = None
        try:
            await hooks.before_scenario(scenario)
        except USER_CODE_ERRORS as e:
            logger.warning(f"before_scenario hook failed for '{planned.name}': {error_message(e)}")
            error = e

        if error is None:
            for group in execution.step_groups:
                error = await self._execute_steps(group, context, coercer, hooks, scenario)
                if error is not None:
                    break

        if error is not None:
            for resolved in execution.all_steps:
                if resolved.status == StepStatus.PENDING:
                    resolved.mark_skipped()

        try:
            await hooks.after_scenario(scenario, error)
        except USER_CODE_ERRORS as e:
            logger.warning(f"after_scenario hook failed for '{planned.name}': {error_message(e)}")
            if error is None:
                error = e

        execution.finish(error, time.perf_counter() - started)
        if error is not None:
            logger.info(f"Scenario failed: {planned.name}: {execution.error}")
        else:
            logger.info(f"Scenario passed: {planned.name}")

    async def _execute_steps(self, steps: List[ResolvedStep], context: StepContext,
                             coercer: ArgumentCoercer, hooks: HookExecutor,
                             scenario: ScenarioInfo) -> Optional[BaseException]:
        """Run steps in order; return the first failure"""
        for resolved in steps:
            error = await self._execute_step(resolved, context, coercer, hooks, scenario)
            if error is not None:
                return error
        return None

    async def _execute_step(self, resolved: ResolvedStep, context: StepContext, coercer: ArgumentCoercer,
                            hooks: HookExecutor, scenario: ScenarioInfo) -> Optional[BaseException]:
        """Execute a single step; every failure is caught here and recorded on the step"""
        step_info = StepInfo.from_step(resolved.step, scenario)
        resolved.started_at = datetime.now()
        started = time.perf_counter()
        context.current_step = resolved.step

        error = None
        try:
            await hooks.before_step(step_info)
            resolved.args = coercer.coerce_all(resolved.captured, resolved.definition.param_types)
            await resolved.definition.execute(context, resolved.args)
        except USER_CODE_ERRORS as e:
            error = e

        try:
            await hooks.after_step(step_info, error)
        except USER_CODE_ERRORS as e:
            if error is None:
                error = e

        duration = time.perf_counter() - started
        if error is None:
            resolved.mark_passed(duration)
        else:
            resolved.mark_failed(error, duration)
            logger.warning(f"Step failed: {resolved.keyword} {resolved.text}: {resolved.error}")
        return error

    def _aggregate(self, executions: List[ScenarioExecution], result: RunResult) -> None:
        summary = RunSummary()
        for execution in executions:
            scenario_result = execution.to_result()
            result.scenarios.append(scenario_result)
            summary.add(scenario_result)
        result.summary = summary

    def _write_reports(self, result: RunResult) -> None:
        if self.report_collector is None:
            return

        for report_format in self.config.report_formats:
            try:
                result.reports.append(self.report_collector.generate_report(result, report_format))
            except ReportGenerationError as e:
                logger.error(str(e))
                result.errors.append(str(e))

    # File-based entry points

    def execute_feature(self, feature_path: Union[str, Path]) -> RunResult:
        """Execute a single feature file"""
        feature = self.feature_parser.parse_file(feature_path)
        return self.run([feature] if feature else [])

    def execute_directory(self, feature_dir: Union[str, Path]) -> RunResult:
        """Execute all feature files in a directory"""
        feature_dir = Path(feature_dir)
        if not feature_dir.is_dir():
            raise FileNotFoundError(f"Feature directory not found: {feature_dir}")
        return self.run(self.feature_parser.load([feature_dir]))

    def execute_paths(self, paths: Iterable[Union[str, Path]]) -> RunResult:
        """Execute every feature file found under the given files and directories"""
        return self.run(self.feature_parser.load(paths))

    def execute(self, input_data: Dict[str, Any]) -> RunResult:
        """
        Execute feature files

        Args:
            input_data: Dict with 'feature_path' or 'feature_dir'

        Returns:
            Run result
        """
        feature_path = input_data.get('feature_path')
        if feature_path:
            return self.execute_feature(feature_path)
        return self.execute_directory(input_data.get('feature_dir', 'features/'))

    def validate(self) -> bool:
        """Validate executor configuration"""
        if self.config.parallel_workers < 1:
            logger.error(f"parallel_workers must be at least 1, got {self.config.parallel_workers}")
            return False

        unsupported = [f for f in self.config.report_formats if f not in ReportCollector.FORMATS]
        if unsupported:
            logger.error(f"Unsupported report formats: {', '.join(unsupported)}")
            return False

        return True

    @staticmethod
    def get_info() -> ModuleInfo:
        """Get module information"""
        return ModuleInfo(
            name='Feature Executor',
            version='0.1.0',
            description='Runs Gherkin features against registered step definitions',
            capabilities=[
                'Scenario Outline expansion',
                'Tag expression filtering',
                'Typed step parameters',
                'Lifecycle hooks',
                'Concurrent scenarios',
                'JSON and JUnit reports',
            ],
        )
