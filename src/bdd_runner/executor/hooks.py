"""
Lifecycle hooks.

A HookSet bundles optional callbacks for the six hook points. Hook sets run
in ascending ``order``; sets with the same order keep registration order.
Callbacks may be plain functions or coroutine functions.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterable, List, Optional, Tuple

from ..bdd.model import PlannedScenario, Step
from .utils.invoke import invoke

logger = logging.getLogger(__name__)


class HookPoint(Enum):
    BEFORE_ALL = "before_all"
    AFTER_ALL = "after_all"
    BEFORE_SCENARIO = "before_scenario"
    AFTER_SCENARIO = "after_scenario"
    BEFORE_STEP = "before_step"
    AFTER_STEP = "after_step"


@dataclass(frozen=True)
class ScenarioInfo:
    """What scenario hooks see of the scenario being run"""
    name: str
    feature: str
    rule: Optional[str] = None
    tags: Tuple[str, ...] = ()
    keyword: str = "Scenario"
    description: str = ""
    line: int = 0
    file: Optional[str] = None

    @classmethod
    def from_planned(cls, planned: PlannedScenario) -> "ScenarioInfo":
        return cls(
            name=planned.name,
            feature=planned.feature.name,
            rule=planned.rule.name if planned.rule else None,
            tags=tuple(planned.tags),
            keyword=planned.scenario.keyword,
            description=planned.scenario.description,
            line=planned.scenario.line,
            file=planned.feature.file,
        )


@dataclass(frozen=True)
class StepInfo:
    """What step hooks see of the step being run"""
    keyword: str
    text: str
    line: int = 0
    scenario: Optional[ScenarioInfo] = None

    @classmethod
    def from_step(cls, step: Step, scenario: Optional[ScenarioInfo] = None) -> "StepInfo":
        return cls(keyword=step.keyword, text=step.text, line=step.line, scenario=scenario)


@dataclass
class HookSet:
    """
    One set of lifecycle callbacks.

    Signatures:
        before_all()
        after_all()
        before_scenario(scenario: ScenarioInfo)
        after_scenario(scenario: ScenarioInfo, error: Optional[BaseException])
        before_step(step: StepInfo)
        after_step(step: StepInfo, error: Optional[BaseException])
    """
    order: int = 0
    before_all: Optional[Callable[[], Any]] = None
    after_all: Optional[Callable[[], Any]] = None
    before_scenario: Optional[Callable[[ScenarioInfo], Any]] = None
    after_scenario: Optional[Callable[[ScenarioInfo, Optional[BaseException]], Any]] = None
    before_step: Optional[Callable[[StepInfo], Any]] = None
    after_step: Optional[Callable[[StepInfo, Optional[BaseException]], Any]] = None

    def callback(self, point: HookPoint) -> Optional[Callable]:
        return getattr(self, point.value)


class HookExecutor:
    """Runs the registered hook sets for each hook point"""

    def __init__(self, hook_sets: Iterable[Optional[HookSet]] = (), enabled: bool = True):
        self.enabled = enabled
        # sorted() is stable, so equal orders keep registration order
        self.hook_sets: List[HookSet] = sorted(
            (hook_set for hook_set in hook_sets if hook_set is not None),
            key=lambda hook_set: hook_set.order,
        )

    async def run(self, point: HookPoint, *args) -> None:
        """
        Call every callback registered for the hook point.

        Stops at the first callback that raises and propagates its exception.
        """
        if not self.enabled:
            return

        for hook_set in self.hook_sets:
            callback = hook_set.callback(point)
            if callback is None:
                continue
            logger.debug(f"Running {point.value} hook (order {hook_set.order})")
            await invoke(callback, *args)

    async def before_all(self) -> None:
        await self.run(HookPoint.BEFORE_ALL)

    async def after_all(self) -> None:
        await self.run(HookPoint.AFTER_ALL)

    async def before_scenario(self, scenario: ScenarioInfo) -> None:
        await self.run(HookPoint.BEFORE_SCENARIO, scenario)

    async def after_scenario(self, scenario: ScenarioInfo, error: Optional[BaseException]) -> None:
        await self.run(HookPoint.AFTER_SCENARIO, scenario, error)

    async def before_step(self, step: StepInfo) -> None:
        await self.run(HookPoint.BEFORE_STEP, step)

    async def after_step(self, step: StepInfo, error: Optional[BaseException]) -> None:
        await self.run(HookPoint.AFTER_STEP, step, error)
