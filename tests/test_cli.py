import pytest
from click.testing import CliRunner
from bdd_runner import __version__
from bdd_runner.cli import cli

FEATURE = """@cart
Feature: Cart
  Scenario: Add items
    Given I have 2 items
    When I add 3 items
    Then I have 5 items

  @wip
  Scenario: Remove items
    Given I have 2 items
    When I remove 5 items
    Then I have 0 items
"""

STEPS = '''
from bdd_runner import given, when, then


@given(r"^I have {int} items$")
def have(context, count):
    if context.has_data("count"):
        context.assert_equal(context.get_data("count"), count)
    else:
        context.store_data("count", count)


@when(r"^I add {int} items$")
def add(context, count):
    context.store_data("count", context.must_get("count") + count)


@when(r"^I remove {int} items$")
def remove(context, count):
    if count > context.must_get("count"):
        raise ValueError("not enough items")
    context.store_data("count", context.must_get("count") - count)
'''


@pytest.fixture
def project(tmp_path):
    (tmp_path / "features").mkdir()
    (tmp_path / "features" / "cart.feature").write_text(FEATURE)
    (tmp_path / "cart_steps.py").write_text(STEPS)
    return tmp_path


def invoke(project, *args):
    runner = CliRunner()
    return runner.invoke(cli, ["--config", str(project / "none.yaml"), *args])


class TestCLI:
    """Test the command line interface"""

    def test_version(self, project):
        result = invoke(project, "version")

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_run_passing_selection(self, project):
        result = invoke(project, "run", str(project / "features"),
                        "--steps", str(project / "cart_steps.py"),
                        "--tags", "not @wip", "--no-report")

        assert result.exit_code == 0, result.output
        assert "1 total, 1 passed, 0 failed" in result.output

    def test_run_with_failure(self, project):
        result = invoke(project, "run", str(project / "features"),
                        "--steps", str(project / "cart_steps.py"), "--no-report")

        assert result.exit_code == 1
        assert "Failed Scenarios:" in result.output
        assert "not enough items" in result.output

    def test_run_writes_reports(self, project):
        output_dir = project / "out"
        result = invoke(project, "run", str(project / "features"),
                        "--steps", str(project / "cart_steps.py"), "-t", "@cart and not @wip",
                        "-r", "json", "-r", "junit", "-o", str(output_dir))

        assert result.exit_code == 0, result.output
        assert list(output_dir.glob("*.json"))
        assert list(output_dir.glob("*.xml"))

    def test_run_unresolved_step(self, project):
        (project / "features" / "extra.feature").write_text(
            "Feature: Extra\n  Scenario: Unknown\n    Given something undefined\n"
        )

        result = invoke(project, "run", str(project / "features"),
                        "--steps", str(project / "cart_steps.py"), "--no-report")

        assert result.exit_code == 1
        assert "something undefined" in result.output

    def test_run_invalid_workers(self, project):
        result = invoke(project, "run", str(project / "features"),
                        "--steps", str(project / "cart_steps.py"), "--workers", "0", "--no-report")

        assert result.exit_code == 1

    def test_steps_listing(self, project):
        result = invoke(project, "steps", "--steps", str(project / "cart_steps.py"))

        assert result.exit_code == 0, result.output
        assert "GIVEN Steps:" in result.output
        assert "^I remove {int} items$" in result.output

    def test_preview(self, project):
        result = invoke(project, "preview", str(project / "features"), "--tags", "@wip")

        assert result.exit_code == 0, result.output
        assert "Remove items" in result.output
        assert "Add items" not in result.output
        assert "Total scenarios: 1" in result.output

    def test_flags_override_config_file(self, project):
        config_path = project / "bdd-runner.yaml"
        config_path.write_text(
            "executor:\n  parallel_workers: 8\n"
            f"reporter:\n  formats: [junit]\n  output_dir: {project / 'file-out'}\n"
        )
        cli_out = project / "test-results"

        result = CliRunner().invoke(cli, [
            "--config", str(config_path), "run", str(project / "features"),
            "--steps", str(project / "cart_steps.py"), "-t", "not @wip",
            "-p", "4", "-r", "json", "-o", str(cli_out),
        ])

        assert result.exit_code == 0, result.output
        assert list(cli_out.glob("*.json"))
        assert not list(cli_out.glob("*.xml"))
        assert not (project / "file-out").exists()
