"""
Execution state and results.

ResolvedStep and ScenarioExecution are mutable and owned by a single scenario
task while it runs. ScenarioResult, StepResult, RunSummary and RunResult are
built after every scenario has finished and are not modified afterwards.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from ..bdd.model import PlannedScenario, Step
from .step_definitions import StepDefinition


class StepStatus(Enum):
    PENDING = "pending"
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


class ScenarioState(Enum):
    NOT_RESOLVED = "not_resolved"
    RESOLVED = "resolved"
    RUNNING = "running"
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


def error_message(error: BaseException) -> str:
    return str(error) or type(error).__name__


@dataclass
class ResolvedStep:
    """A step bound to its definition, with the text captured for each group"""
    step: Step
    definition: StepDefinition
    captured: Tuple[Optional[str], ...] = ()
    match_offsets: Tuple[Tuple[int, int], ...] = ()
    args: List[Any] = field(default_factory=list)
    status: StepStatus = StepStatus.PENDING
    error: Optional[str] = None
    exception: Optional[BaseException] = None
    duration: float = 0.0
    started_at: Optional[datetime] = None

    @property
    def keyword(self) -> str:
        return self.step.keyword

    @property
    def text(self) -> str:
        return self.step.text

    def mark_passed(self, duration: float):
        self.status = StepStatus.PASSED
        self.duration = duration

    def mark_failed(self, error: BaseException, duration: float):
        self.status = StepStatus.FAILED
        self.exception = error
        self.error = error_message(error)
        self.duration = duration

    def mark_skipped(self):
        self.status = StepStatus.SKIPPED

    def to_result(self) -> "StepResult":
        return StepResult(
            keyword=self.keyword,
            text=self.text,
            status=self.status,
            error=self.error,
            duration=self.duration,
            started_at=self.started_at,
            match_offsets=self.match_offsets,
        )


@dataclass
class ScenarioExecution:
    """Working state of one concrete scenario: its three step groups, run in order"""
    planned: PlannedScenario
    feature_bg_steps: List[ResolvedStep] = field(default_factory=list)
    rule_bg_steps: List[ResolvedStep] = field(default_factory=list)
    scenario_steps: List[ResolvedStep] = field(default_factory=list)
    state: ScenarioState = ScenarioState.NOT_RESOLVED
    started_at: Optional[datetime] = None
    duration: float = 0.0
    error: Optional[str] = None
    exception: Optional[BaseException] = None

    @property
    def step_groups(self) -> List[List[ResolvedStep]]:
        return [self.feature_bg_steps, self.rule_bg_steps, self.scenario_steps]

    @property
    def all_steps(self) -> List[ResolvedStep]:
        return self.feature_bg_steps + self.rule_bg_steps + self.scenario_steps

    @property
    def passed(self) -> bool:
        return self.state == ScenarioState.PASSED

    def finish(self, error: Optional[BaseException], duration: float):
        self.duration = duration
        if error is None:
            self.state = ScenarioState.PASSED
        else:
            self.state = ScenarioState.FAILED
            self.exception = error
            self.error = error_message(error)

    def skip(self):
        """Record the scenario as never started"""
        self.state = ScenarioState.SKIPPED
        for resolved in self.all_steps:
            resolved.mark_skipped()

    def to_result(self) -> "ScenarioResult":
        planned = self.planned
        return ScenarioResult(
            feature_name=planned.feature.name,
            rule_name=planned.rule.name if planned.rule else None,
            name=planned.name,
            tags=list(planned.tags),
            status=self.state.value,
            error=self.error,
            duration=self.duration,
            started_at=self.started_at,
            feature_bg_steps=[s.to_result() for s in self.feature_bg_steps],
            rule_bg_steps=[s.to_result() for s in self.rule_bg_steps],
            steps=[s.to_result() for s in self.scenario_steps],
            file=planned.feature.file,
        )


@dataclass(frozen=True)
class StepResult:
    keyword: str
    text: str
    status: StepStatus
    error: Optional[str] = None
    duration: float = 0.0
    started_at: Optional[datetime] = None
    match_offsets: Tuple[Tuple[int, int], ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'keyword': self.keyword,
            'text': self.text,
            'status': self.status.value,
            'error': self.error,
            'duration': self.duration,
            'started_at': self.started_at.isoformat() if self.started_at else None,
            'match_offsets': [list(pair) for pair in self.match_offsets],
        }


@dataclass(frozen=True)
class ScenarioResult:
    feature_name: str
    rule_name: Optional[str]
    name: str
    tags: List[str]
    status: str
    error: Optional[str] = None
    duration: float = 0.0
    started_at: Optional[datetime] = None
    feature_bg_steps: List[StepResult] = field(default_factory=list)
    rule_bg_steps: List[StepResult] = field(default_factory=list)
    steps: List[StepResult] = field(default_factory=list)
    file: Optional[str] = None

    @property
    def passed(self) -> bool:
        return self.status == ScenarioState.PASSED.value

    @property
    def all_steps(self) -> List[StepResult]:
        return self.feature_bg_steps + self.rule_bg_steps + self.steps

    def to_dict(self) -> Dict[str, Any]:
        return {
            'feature': self.feature_name,
            'rule': self.rule_name,
            'name': self.name,
            'tags': list(self.tags),
            'status': self.status,
            'passed': self.passed,
            'error': self.error,
            'duration': self.duration,
            'started_at': self.started_at.isoformat() if self.started_at else None,
            'file': self.file,
            'feature_background_steps': [s.to_dict() for s in self.feature_bg_steps],
            'rule_background_steps': [s.to_dict() for s in self.rule_bg_steps],
            'steps': [s.to_dict() for s in self.steps],
        }


@dataclass
class RunSummary:
    scenarios_total: int = 0
    scenarios_passed: int = 0
    scenarios_failed: int = 0
    scenarios_skipped: int = 0
    steps_total: int = 0
    steps_passed: int = 0
    steps_failed: int = 0
    steps_skipped: int = 0

    def add(self, scenario: ScenarioResult):
        """Merge one scenario's counters"""
        self.scenarios_total += 1
        if scenario.status == ScenarioState.PASSED.value:
            self.scenarios_passed += 1
        elif scenario.status == ScenarioState.SKIPPED.value:
            self.scenarios_skipped += 1
        else:
            self.scenarios_failed += 1

        for step in scenario.all_steps:
            self.steps_total += 1
            if step.status == StepStatus.PASSED:
                self.steps_passed += 1
            elif step.status == StepStatus.FAILED:
                self.steps_failed += 1
            elif step.status == StepStatus.SKIPPED:
                self.steps_skipped += 1

    def to_dict(self) -> Dict[str, int]:
        return {
            'scenarios': {
                'total': self.scenarios_total,
                'passed': self.scenarios_passed,
                'failed': self.scenarios_failed,
                'skipped': self.scenarios_skipped,
            },
            'steps': {
                'total': self.steps_total,
                'passed': self.steps_passed,
                'failed': self.steps_failed,
                'skipped': self.steps_skipped,
            },
        }


@dataclass
class RunResult:
    """Everything a run produced, in plan order"""
    scenarios: List[ScenarioResult] = field(default_factory=list)
    summary: RunSummary = field(default_factory=RunSummary)
    duration: float = 0.0
    started_at: Optional[datetime] = None
    errors: List[str] = field(default_factory=list)
    reports: List[str] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return self.summary.scenarios_failed == 0 and not self.errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            'passed': self.passed,
            'started_at': self.started_at.isoformat() if self.started_at else None,
            'duration': self.duration,
            'summary': self.summary.to_dict(),
            'errors': list(self.errors),
            'scenarios': [s.to_dict() for s in self.scenarios],
        }
