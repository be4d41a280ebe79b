from typing import Dict, List, Optional
import copy
import logging
import re

from .model import Examples, Feature, PlannedScenario, Rule, Scenario, Step

logger = logging.getLogger(__name__)

PLACEHOLDER_PATTERN = re.compile(r"<([^<>]+)>")


class ScenarioOutlineExpander:
    """
    Expands Scenario Outlines into concrete scenarios:
    - one scenario per Examples data row
    - <placeholder> substitution in step text, data tables and doc strings
    - scenario tags merged with the Examples block tags
    """

    def expand(self, scenario: Scenario) -> List[Scenario]:
        """
        Expand a scenario into concrete scenarios.

        Args:
            scenario: Scenario, possibly carrying Examples blocks

        Returns:
            The scenario itself when it has no Examples, otherwise one
            independent copy per Examples row
        """
        if not scenario.examples:
            return [scenario]

        scenarios = []
        for examples in scenario.examples:
            for row_index, row in enumerate(examples.rows):
                values = dict(zip(examples.header, row))
                scenarios.append(self._expand_row(scenario, examples, row_index, values))

        logger.debug(f"Expanded outline '{scenario.name}' into {len(scenarios)} scenarios")
        return scenarios

    def _expand_row(self, outline: Scenario, examples: Examples, row_index: int,
                    values: Dict[str, str]) -> Scenario:
        """Build the concrete scenario for a single Examples row"""
        steps = [self._substitute_step(step, values) for step in outline.steps]

        return Scenario(
            name=self._expanded_name(outline.name, examples.name, row_index),
            steps=steps,
            tags=_merge_tags(outline.tags, examples.tags),
            examples=[],
            keyword=outline.keyword,
            description=outline.description,
            line=outline.line,
        )

    def _substitute_step(self, step: Step, values: Dict[str, str]) -> Step:
        expanded = copy.deepcopy(step)
        expanded.text = substitute(step.text, values)

        if expanded.table is not None:
            expanded.table.rows = [
                [substitute(cell, values) for cell in row]
                for row in expanded.table.rows
            ]

        if expanded.doc_string is not None:
            expanded.doc_string = substitute(expanded.doc_string, values)

        return expanded

    @staticmethod
    def _expanded_name(name: str, examples_name: str, row_index: int) -> str:
        if examples_name:
            return f"{name} -- {examples_name} (#{row_index + 1})"
        return f"{name} (#{row_index + 1})"


def substitute(text: str, values: Dict[str, str]) -> str:
    """Replace every <name> whose name is a known column; others are left as written"""
    def replace(match):
        key = match.group(1)
        return values[key] if key in values else match.group(0)

    return PLACEHOLDER_PATTERN.sub(replace, text)


def plan_feature(feature: Feature, expander: Optional[ScenarioOutlineExpander] = None) -> List[PlannedScenario]:
    """
    Flatten a feature into concrete scenarios, expanding outlines and
    computing each scenario's effective tag set (feature + rule + scenario + examples).
    """
    expander = expander or ScenarioOutlineExpander()
    planned = []

    for child in feature.children:
        if isinstance(child, Rule):
            planned.extend(_plan_scenarios(feature, child, child.scenarios, expander))
        else:
            planned.extend(_plan_scenarios(feature, None, [child], expander))

    return planned


def _plan_scenarios(feature: Feature, rule: Optional[Rule], scenarios: List[Scenario],
                    expander: ScenarioOutlineExpander) -> List[PlannedScenario]:
    inherited = _merge_tags(feature.tags, rule.tags if rule else [])
    planned = []
    for scenario in scenarios:
        for concrete in expander.expand(scenario):
            planned.append(PlannedScenario(
                feature=feature,
                scenario=concrete,
                rule=rule,
                tags=_merge_tags(inherited, concrete.tags),
            ))
    return planned


def _merge_tags(*groups: List[str]) -> List[str]:
    merged = []
    for group in groups:
        for tag in group:
            if tag not in merged:
                merged.append(tag)
    return merged
