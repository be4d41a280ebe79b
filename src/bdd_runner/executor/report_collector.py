import json
from pathlib import Path
from datetime import datetime
from typing import Dict, List, Any
import logging
from jinja2 import Template, TemplateError

from ..core.exceptions import ReportGenerationError
from .results import RunResult, ScenarioResult

logger = logging.getLogger(__name__)

JUNIT_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<testsuites name="BDD Runner Results" time="{{ '%.3f'|format(duration) }}" tests="{{ total }}" failures="{{ failures }}" skipped="{{ skipped }}">
{%- for suite in suites %}
    <testsuite name="{{ suite.name }}" tests="{{ suite.scenarios|length }}" failures="{{ suite.failures }}" skipped="{{ suite.skipped }}" time="{{ '%.3f'|format(suite.duration) }}">
    {%- for scenario in suite.scenarios %}
        <testcase classname="{{ suite.name|replace(' ', '_') }}" name="{{ scenario.name }}" time="{{ '%.3f'|format(scenario.duration) }}">
        {%- if scenario.status == 'failed' %}
            <failure message="{{ scenario.error|default('Scenario failed', true) }}">
            {%- for step in scenario.all_steps %}
            {%- if step.status.value == 'failed' %}
{{ step.keyword }} {{ step.text }}
Error: {{ step.error }}
            {%- endif %}
            {%- endfor %}
            </failure>
        {%- elif scenario.status == 'skipped' %}
            <skipped/>
        {%- endif %}
        </testcase>
    {%- endfor %}
    </testsuite>
{%- endfor %}
</testsuites>
"""


class ReportCollector:
    """Writes run reports once every scenario has finished"""

    FORMATS = ("json", "junit")

    def __init__(self, output_dir: str = "test-results"):
        self.output_dir = Path(output_dir)

    def generate_report(self, result: RunResult, format: str = "json") -> str:
        """
        Generate a report in the specified format

        Args:
            result: Completed run
            format: Report format (json, junit)

        Returns:
            Path to generated report

        Raises:
            ReportGenerationError: if the format is unknown or the report cannot be written
        """
        timestamp = (result.started_at or datetime.now()).strftime('%Y%m%d_%H%M%S')

        try:
            if format == "json":
                return self._generate_json_report(result, timestamp)
            elif format == "junit":
                return self._generate_junit_report(result, timestamp)
        except (OSError, TypeError, ValueError, TemplateError) as e:
            raise ReportGenerationError(f"Cannot write {format} report to {self.output_dir}: {e}") from e

        raise ReportGenerationError(f"Unsupported report format: {format}")

    def _generate_json_report(self, result: RunResult, timestamp: str) -> str:
        """Generate JSON report"""
        report_path = self._prepare_path(f"report_{timestamp}.json")

        with open(report_path, 'w', encoding='utf-8') as f:
            json.dump(result.to_dict(), f, indent=2)

        logger.info(f"JSON report generated: {report_path}")
        return str(report_path)

    def _generate_junit_report(self, result: RunResult, timestamp: str) -> str:
        """Generate JUnit XML report, one testsuite per feature"""
        suites = self._group_by_feature(result.scenarios)

        template = Template(JUNIT_TEMPLATE, autoescape=True)
        junit_content = template.render(
            duration=result.duration,
            total=result.summary.scenarios_total,
            failures=result.summary.scenarios_failed,
            skipped=result.summary.scenarios_skipped,
            suites=suites,
        )

        report_path = self._prepare_path(f"report_{timestamp}.xml")
        with open(report_path, 'w', encoding='utf-8') as f:
            f.write(junit_content)

        logger.info(f"JUnit report generated: {report_path}")
        return str(report_path)

    def _group_by_feature(self, scenarios: List[ScenarioResult]) -> List[Dict[str, Any]]:
        suites: Dict[str, Dict[str, Any]] = {}
        for scenario in scenarios:
            suite = suites.setdefault(scenario.feature_name, {
                'name': scenario.feature_name,
                'scenarios': [],
                'failures': 0,
                'skipped': 0,
                'duration': 0.0,
            })
            suite['scenarios'].append(scenario)
            suite['duration'] += scenario.duration
            if scenario.status == 'failed':
                suite['failures'] += 1
            elif scenario.status == 'skipped':
                suite['skipped'] += 1
        return list(suites.values())

    def _prepare_path(self, filename: str) -> Path:
        """Report path in the output directory; never one an earlier report already uses"""
        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / filename
        counter = 1
        while path.exists():
            path = self.output_dir / f"{Path(filename).stem}_{counter}{Path(filename).suffix}"
            counter += 1
        return path

