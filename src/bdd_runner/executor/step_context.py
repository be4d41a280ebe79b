from typing import Any, Dict, Iterable, List, Optional, Sized
from dataclasses import dataclass, field
import logging

from ..bdd.model import DataTable, Step
from .hooks import ScenarioInfo

STEP_LOGGER_NAME = "bdd_runner.steps"

_silent_logger = logging.getLogger(f"{STEP_LOGGER_NAME}.silent")
_silent_logger.addHandler(logging.NullHandler())
_silent_logger.propagate = False
_silent_logger.disabled = True


class ScenarioLogger(logging.LoggerAdapter):
    """Prefixes step log records with the scenario name"""

    def process(self, msg, kwargs):
        return f"[{self.extra['scenario']}] {msg}", kwargs


def scenario_logger(scenario_name: str, disabled: bool = False) -> logging.LoggerAdapter:
    base = _silent_logger if disabled else logging.getLogger(STEP_LOGGER_NAME)
    return ScenarioLogger(base, {"scenario": scenario_name})


@dataclass
class StepContext:
    """
    Runtime context passed as the first argument to every step handler.

    One context is created per scenario and shared by all of its steps
    (feature background, rule background and scenario steps), so values
    stored by one step are visible to the next.
    """
    scenario: ScenarioInfo
    logger: logging.LoggerAdapter
    test_data: Dict[str, Any] = field(default_factory=dict)
    current_step: Optional[Step] = None

    @classmethod
    def for_scenario(cls, scenario: ScenarioInfo, disable_log: bool = False) -> "StepContext":
        return cls(scenario=scenario, logger=scenario_logger(scenario.name, disable_log))

    @property
    def table(self) -> Optional[DataTable]:
        """Data table attached to the current step"""
        return self.current_step.table if self.current_step else None

    @property
    def doc_string(self) -> Optional[str]:
        """Doc string attached to the current step"""
        return self.current_step.doc_string if self.current_step else None

    def store_data(self, key: str, value: Any):
        """Store data for use in later steps"""
        self.test_data[key] = value

    def get_data(self, key: str, default: Any = None) -> Any:
        """Retrieve stored data"""
        return self.test_data.get(key, default)

    def must_get(self, key: str) -> Any:
        """Retrieve stored data, failing the step when the key was never stored"""
        if key not in self.test_data:
            raise AssertionError(f"No value stored under '{key}' (stored: {', '.join(sorted(self.test_data)) or 'none'})")
        return self.test_data[key]

    def has_data(self, key: str) -> bool:
        return key in self.test_data

    def assert_equal(self, actual: Any, expected: Any, message: str = ""):
        if actual != expected:
            self.fail(message or f"expected {expected!r}, got {actual!r}")

    def assert_not_equal(self, actual: Any, unexpected: Any, message: str = ""):
        if actual == unexpected:
            self.fail(message or f"expected a value other than {unexpected!r}")

    def assert_true(self, value: Any, message: str = ""):
        if not value:
            self.fail(message or f"expected a true value, got {value!r}")

    def assert_false(self, value: Any, message: str = ""):
        if value:
            self.fail(message or f"expected a false value, got {value!r}")

    def assert_none(self, value: Any, message: str = ""):
        if value is not None:
            self.fail(message or f"expected None, got {value!r}")

    def assert_not_none(self, value: Any, message: str = ""):
        if value is None:
            self.fail(message or "expected a value, got None")

    def assert_in(self, member: Any, container: Iterable, message: str = ""):
        if member not in container:
            self.fail(message or f"{member!r} not found in {container!r}")

    def assert_length(self, value: Sized, length: int, message: str = ""):
        if len(value) != length:
            self.fail(message or f"expected length {length}, got {len(value)}")

    def assert_raises(self, exception_type: type, function, *args, **kwargs) -> BaseException:
        try:
            function(*args, **kwargs)
        except exception_type as e:
            return e
        self.fail(f"expected {exception_type.__name__} to be raised")

    def fail(self, message: str):
        """Fail the current step"""
        raise AssertionError(message)

    def table_rows(self) -> List[Dict[str, str]]:
        """Rows of the current step's data table keyed by header"""
        return self.table.as_dicts() if self.table else []
