import logging

import pytest
from bdd_runner.bdd.model import DataTable, Step
from bdd_runner.executor.hooks import ScenarioInfo
from bdd_runner.executor.step_context import STEP_LOGGER_NAME, StepContext


@pytest.fixture
def context():
    return StepContext.for_scenario(ScenarioInfo(name="Checkout", feature="Shop"))


class TestStepContext:
    """Test the per-scenario step context"""

    def test_data_store(self, context):
        context.store_data("user", "alice")

        assert context.get_data("user") == "alice"
        assert context.get_data("missing", "default") == "default"
        assert context.has_data("user")
        assert not context.has_data("missing")
        assert context.must_get("user") == "alice"

    def test_must_get_missing_key(self, context):
        context.store_data("user", "alice")

        with pytest.raises(AssertionError, match="'token'"):
            context.must_get("token")

    def test_table_and_doc_string_follow_current_step(self, context):
        assert context.table is None
        assert context.table_rows() == []

        context.current_step = Step("Given", "users", table=DataTable([["name"], ["bob"]]), doc_string="notes")

        assert context.table_rows() == [{"name": "bob"}]
        assert context.doc_string == "notes"

    def test_assertions_pass(self, context):
        context.assert_equal(1, 1)
        context.assert_not_equal(1, 2)
        context.assert_true([1])
        context.assert_false("")
        context.assert_none(None)
        context.assert_not_none(0)
        context.assert_in("a", "abc")
        context.assert_length([1, 2], 2)
        error = context.assert_raises(KeyError, {}.__getitem__, "x")
        assert isinstance(error, KeyError)

    @pytest.mark.parametrize("call", [
        lambda c: c.assert_equal(1, 2),
        lambda c: c.assert_not_equal(1, 1),
        lambda c: c.assert_true(0),
        lambda c: c.assert_false(1),
        lambda c: c.assert_none(1),
        lambda c: c.assert_not_none(None),
        lambda c: c.assert_in("z", "abc"),
        lambda c: c.assert_length([], 1),
        lambda c: c.assert_raises(KeyError, lambda: None),
        lambda c: c.fail("explicit"),
    ])
    def test_assertions_fail(self, context, call):
        with pytest.raises(AssertionError):
            call(context)

    def test_custom_assertion_message(self, context):
        with pytest.raises(AssertionError, match="totals differ"):
            context.assert_equal(3, 4, "totals differ")

    def test_logger_prefixes_scenario_name(self, context, caplog):
        with caplog.at_level(logging.INFO, logger=STEP_LOGGER_NAME):
            context.logger.info("adding items")

        assert "[Checkout] adding items" in caplog.messages

    def test_disabled_logger_is_silent(self, caplog):
        quiet = StepContext.for_scenario(ScenarioInfo(name="Quiet", feature="Shop"), disable_log=True)

        with caplog.at_level(logging.DEBUG):
            quiet.logger.error("should not appear")

        assert "should not appear" not in caplog.text
