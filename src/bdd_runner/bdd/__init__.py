from .model import (
    Background,
    DataTable,
    Examples,
    Feature,
    PlannedScenario,
    Rule,
    Scenario,
    Step,
)
from .parser import FeatureFileParser
from .expander import ScenarioOutlineExpander, plan_feature
from .tags import TagExpression, filter_scenarios

__all__ = [
    "Background",
    "DataTable",
    "Examples",
    "Feature",
    "PlannedScenario",
    "Rule",
    "Scenario",
    "Step",
    "FeatureFileParser",
    "ScenarioOutlineExpander",
    "plan_feature",
    "TagExpression",
    "filter_scenarios",
]
