import asyncio
from unittest.mock import Mock

import pytest
from bdd_runner.bdd.model import Feature, PlannedScenario, Rule, Scenario, Step
from bdd_runner.executor.hooks import HookExecutor, HookPoint, HookSet, ScenarioInfo, StepInfo


class TestHookExecutor:
    """Test hook ordering and failure propagation"""

    def test_runs_in_ascending_order(self):
        calls = []
        hook_sets = [
            HookSet(order=2, before_all=lambda: calls.append("second")),
            HookSet(order=1, before_all=lambda: calls.append("first")),
            HookSet(order=2, before_all=lambda: calls.append("third")),
        ]

        asyncio.run(HookExecutor(hook_sets).before_all())

        assert calls == ["first", "second", "third"]

    def test_async_callbacks_are_awaited(self):
        seen = []

        async def before_scenario(scenario):
            await asyncio.sleep(0)
            seen.append(scenario.name)

        scenario = ScenarioInfo(name="Checkout", feature="Shop")
        asyncio.run(HookExecutor([HookSet(before_scenario=before_scenario)]).before_scenario(scenario))

        assert seen == ["Checkout"]

    def test_stops_at_first_failure(self):
        later = Mock()

        def failing(step):
            raise RuntimeError("hook broke")

        hooks = HookExecutor([HookSet(order=0, before_step=failing), HookSet(order=1, before_step=later)])

        with pytest.raises(RuntimeError, match="hook broke"):
            asyncio.run(hooks.before_step(StepInfo(keyword="Given", text="x")))
        later.assert_not_called()

    def test_after_hooks_receive_error(self):
        after_step = Mock()
        error = ValueError("step failed")
        step = StepInfo(keyword="Then", text="it works")

        asyncio.run(HookExecutor([HookSet(after_step=after_step)]).after_step(step, error))

        after_step.assert_called_once_with(step, error)

    def test_disabled(self):
        before_all = Mock()

        asyncio.run(HookExecutor([HookSet(before_all=before_all)], enabled=False).run(HookPoint.BEFORE_ALL))

        before_all.assert_not_called()

    def test_missing_callbacks_are_skipped(self):
        asyncio.run(HookExecutor([HookSet(), None]).after_all())


class TestHookInfo:
    """Test the views passed to hooks"""

    def test_scenario_info_from_planned(self):
        feature = Feature(name="Shop", file="shop.feature")
        rule = Rule(name="Discounts")
        scenario = Scenario(name="Apply code", keyword="Scenario", line=12)
        planned = PlannedScenario(feature, scenario, rule=rule, tags=["@shop", "@smoke"])

        info = ScenarioInfo.from_planned(planned)

        assert info.name == "Apply code"
        assert info.feature == "Shop"
        assert info.rule == "Discounts"
        assert info.tags == ("@shop", "@smoke")
        assert info.line == 12
        assert info.file == "shop.feature"

    def test_step_info_from_step(self):
        scenario = ScenarioInfo(name="s", feature="f")
        info = StepInfo.from_step(Step("Given", "a cart", line=4), scenario)

        assert (info.keyword, info.text, info.line) == ("Given", "a cart", 4)
        assert info.scenario is scenario
