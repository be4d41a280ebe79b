import json
import xml.etree.ElementTree as ET
from dataclasses import replace
from datetime import datetime

import pytest
from bdd_runner.core.exceptions import ReportGenerationError
from bdd_runner.executor.report_collector import ReportCollector
from bdd_runner.executor.results import RunResult, RunSummary, ScenarioResult, StepResult, StepStatus


@pytest.fixture
def run_result():
    scenarios = [
        ScenarioResult(
            feature_name="Shop & Cart",
            rule_name=None,
            name="Add <one> item",
            tags=["@smoke"],
            status="passed",
            duration=0.5,
            steps=[StepResult("Given", "an empty cart", StepStatus.PASSED, duration=0.2)],
        ),
        ScenarioResult(
            feature_name="Shop & Cart",
            rule_name="Discounts",
            name="Apply code",
            tags=[],
            status="failed",
            error='expected "10", got "12"',
            duration=0.25,
            steps=[
                StepResult("When", "I apply code X", StepStatus.FAILED, error='expected "10", got "12"'),
                StepResult("Then", "the total is 10", StepStatus.SKIPPED),
            ],
        ),
        ScenarioResult(feature_name="Search", rule_name=None, name="Find", tags=[], status="skipped"),
    ]
    summary = RunSummary()
    for scenario in scenarios:
        summary.add(scenario)
    return RunResult(scenarios=scenarios, summary=summary, duration=1.25,
                     started_at=datetime(2024, 1, 15, 9, 30))


class TestReportCollector:
    """Test report generation"""

    def test_json_report(self, tmp_path, run_result):
        path = ReportCollector(str(tmp_path / "reports")).generate_report(run_result, "json")

        assert path.endswith("report_20240115_093000.json")
        with open(path) as f:
            data = json.load(f)

        assert data["passed"] is False
        assert data["summary"]["scenarios"] == {"total": 3, "passed": 1, "failed": 1, "skipped": 1}
        assert data["summary"]["steps"] == {"total": 3, "passed": 1, "failed": 1, "skipped": 1}
        assert data["scenarios"][1]["rule"] == "Discounts"
        assert data["scenarios"][1]["steps"][0]["status"] == "failed"

    def test_junit_report(self, tmp_path, run_result):
        path = ReportCollector(str(tmp_path)).generate_report(run_result, "junit")

        root = ET.parse(path).getroot()
        assert root.tag == "testsuites"
        assert root.get("tests") == "3"
        assert root.get("failures") == "1"

        suites = root.findall("testsuite")
        assert [s.get("name") for s in suites] == ["Shop & Cart", "Search"]
        cases = suites[0].findall("testcase")
        assert cases[0].get("name") == "Add <one> item"
        failure = cases[1].find("failure")
        assert failure.get("message") == 'expected "10", got "12"'
        assert "I apply code X" in failure.text
        assert suites[1].find("testcase/skipped") is not None

    def test_runs_started_in_the_same_second_keep_separate_reports(self, tmp_path, run_result):
        collector = ReportCollector(str(tmp_path))

        first = collector.generate_report(run_result, "junit")
        second = collector.generate_report(run_result, "junit")

        assert first != second
        assert second.endswith("report_20240115_093000_1.xml")
        assert len(list(tmp_path.glob("*.xml"))) == 2

    def test_junit_escapes_markup_in_names(self, tmp_path, run_result):
        run_result.scenarios[0] = replace(run_result.scenarios[0], name="<script> & \"quotes\"")

        path = ReportCollector(str(tmp_path)).generate_report(run_result, "junit")

        case = ET.parse(path).getroot().find("testsuite/testcase")
        assert case.get("name") == "<script> & \"quotes\""

    def test_unknown_format(self, tmp_path, run_result):
        with pytest.raises(ReportGenerationError, match="Unsupported report format"):
            ReportCollector(str(tmp_path)).generate_report(run_result, "html")

    def test_unwritable_directory(self, tmp_path, run_result):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("")

        with pytest.raises(ReportGenerationError):
            ReportCollector(str(blocker)).generate_report(run_result, "json")


class TestRunSummary:
    """Test counters merged after the run"""

    def test_counts(self, run_result):
        summary = run_result.summary

        assert (summary.scenarios_total, summary.scenarios_passed,
                summary.scenarios_failed, summary.scenarios_skipped) == (3, 1, 1, 1)
        assert (summary.steps_total, summary.steps_passed,
                summary.steps_failed, summary.steps_skipped) == (3, 1, 1, 1)

    def test_run_errors_fail_the_run(self):
        result = RunResult()
        assert result.passed

        result.errors.append("after_all hook failed: boom")
        assert not result.passed
