import importlib
import importlib.util
import logging
import sys
from pathlib import Path
from typing import List

import click

from . import __version__
from .bdd.expander import plan_feature
from .bdd.parser import FeatureFileParser
from .bdd.tags import filter_scenarios
from .core import BDDRunnerError, ConfigManager, ConfigurationError
from .executor import ExecutorConfig, FeatureExecutor, ReportCollector
from .executor.results import RunResult


@click.group()
@click.option('--config', '-c', type=click.Path(), help='Configuration file path')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.pass_context
def cli(ctx, config, verbose):
    """BDD Runner - execute Gherkin features against Python step definitions"""
    config_manager = ConfigManager(Path(config) if config else None)

    level = logging.DEBUG if verbose else getattr(
        logging, str(config_manager.get('general.log_level', 'INFO')).upper(), logging.INFO
    )
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    ctx.obj = config_manager


@cli.command()
def version():
    """Show version information"""
    click.echo(f"BDD Runner v{__version__}")


@cli.command()
@click.argument('paths', nargs=-1, type=click.Path(exists=True))
@click.option('-s', '--steps', 'steps_modules', multiple=True, required=True,
              help='Steps module name or .py file (repeatable)')
@click.option('-t', '--tags', help='Tag expression, e.g. "@smoke and not @slow"')
@click.option('--fail-fast', is_flag=True, help='Skip scenarios not yet started after the first failure')
@click.option('-p', '--workers', type=int, help='Number of scenarios run concurrently')
@click.option('--no-hooks', is_flag=True, help='Do not run lifecycle hooks')
@click.option('--disable-log', is_flag=True, help='Silence step context loggers')
@click.option('--no-report', is_flag=True, help='Do not write report files')
@click.option('-r', '--report', 'report_formats', multiple=True,
              type=click.Choice(ReportCollector.FORMATS), help='Report format (repeatable)')
@click.option('-o', '--output-dir', type=click.Path(), help='Report directory')
@click.pass_obj
def run(config_manager, paths, steps_modules, tags, fail_fast, workers, no_hooks,
        disable_log, no_report, report_formats, output_dir):
    """
    Execute feature files

    Examples:
        bdd-runner run features/ -s steps
        bdd-runner run login.feature -s tests/steps.py -t "@smoke and not @slow"
        bdd-runner run features/ -s steps --fail-fast -p 8 -r json -r junit
    """
    overrides = {
        'tags': tags,
        'fail_fast': fail_fast,
        'parallel_workers': workers,
        'disable_hooks': no_hooks,
        'disable_log': disable_log,
        'disable_reporter': no_report,
        'report_formats': list(report_formats) or None,
        'output_dir': output_dir,
    }
    executor_config = ExecutorConfig.merge(config_manager.get_executor_config(), overrides)

    try:
        executor = FeatureExecutor(executor_config)
        if not executor.validate():
            raise ConfigurationError("Invalid executor configuration")

        for module in _load_step_modules(steps_modules):
            executor.register_from_module(module)

        result = executor.execute_paths(paths or ['features/'])

    except (BDDRunnerError, FileNotFoundError, ImportError) as e:
        click.echo(f"Error executing features: {e}", err=True)
        raise SystemExit(1)

    _print_summary(result)
    raise SystemExit(0 if result.passed else 1)


@cli.command()
@click.option('-s', '--steps', 'steps_modules', multiple=True, required=True,
              help='Steps module name or .py file (repeatable)')
def steps(steps_modules):
    """List all available step definitions"""
    executor = FeatureExecutor({'disable_reporter': True})
    try:
        for module in _load_step_modules(steps_modules):
            executor.register_from_module(module)
    except (BDDRunnerError, ImportError) as e:
        click.echo(f"Error loading steps: {e}", err=True)
        raise SystemExit(1)

    definitions = executor.list_all_steps()
    click.echo("Available Step Definitions:")
    click.echo("=" * 60)

    grouped = {}
    for defn in definitions:
        grouped.setdefault(defn['keyword'].upper(), []).append(defn)

    for keyword in ['GIVEN', 'WHEN', 'THEN', 'STEP']:
        if keyword in grouped:
            click.echo(f"\n{keyword} Steps:")
            click.echo("-" * 40)
            for defn in grouped[keyword]:
                click.echo(f"  {defn['pattern']}  -> {defn['function']}")
                if defn['params']:
                    click.echo(f"    params: {defn['params']}")
                if defn.get('description'):
                    click.echo(f"    {defn['description']}")

    custom_types = executor.custom_types.names()
    if custom_types:
        click.echo(f"\nCustom types: {', '.join(custom_types)}")


@cli.command()
@click.argument('paths', nargs=-1, type=click.Path(exists=True))
@click.option('-t', '--tags', help='Tag expression used to select scenarios')
def preview(paths, tags):
    """Preview the concrete scenarios a run would execute"""
    try:
        features = FeatureFileParser().load(paths or ['features/'])
        total = 0
        for feature in features:
            planned = filter_scenarios(plan_feature(feature), tags)
            if not planned:
                continue

            click.echo(f"Feature: {feature.name}")
            for scenario in planned:
                rule = f" [Rule: {scenario.rule.name}]" if scenario.rule else ""
                click.echo(f"  {scenario.scenario.keyword}: {scenario.name}{rule}")
                if scenario.tags:
                    click.echo(f"    Tags: {' '.join(scenario.tags)}")
                for background in (scenario.feature_background, scenario.rule_background):
                    for step in background.steps if background else []:
                        click.echo(f"    ({step.keyword.strip()} {step.text})")
                for step in scenario.scenario.steps:
                    click.echo(f"    {step.keyword.strip()} {step.text}")
            total += len(planned)

        click.echo(f"\nTotal scenarios: {total}")

    except (BDDRunnerError, FileNotFoundError) as e:
        click.echo(f"Error parsing feature files: {e}", err=True)
        raise SystemExit(1)


def _load_step_modules(names) -> List:
    """Import steps modules given as dotted names or paths to .py files"""
    modules = []
    for name in names:
        if name.endswith('.py'):
            path = Path(name).resolve()
            if not path.exists():
                raise ImportError(f"Steps file not found: {path}")
            spec = importlib.util.spec_from_file_location(path.stem, path)
            module = importlib.util.module_from_spec(spec)
            sys.modules[path.stem] = module
            spec.loader.exec_module(module)
        else:
            if str(Path.cwd()) not in sys.path:
                sys.path.insert(0, str(Path.cwd()))
            module = importlib.import_module(name)
        modules.append(module)
    return modules


def _print_summary(result: RunResult):
    summary = result.summary
    click.echo("\nTest Execution Summary:")
    click.echo(f"  Scenarios: {summary.scenarios_total} total, {summary.scenarios_passed} passed, "
               f"{summary.scenarios_failed} failed, {summary.scenarios_skipped} skipped")
    click.echo(f"  Steps: {summary.steps_total} total, {summary.steps_passed} passed, "
               f"{summary.steps_failed} failed, {summary.steps_skipped} skipped")
    click.echo(f"  Duration: {result.duration:.2f}s")

    failed = [s for s in result.scenarios if s.status == 'failed']
    if failed:
        click.echo("\nFailed Scenarios:")
        for scenario in failed:
            click.echo(f"  - {scenario.feature_name}: {scenario.name}")
            if scenario.error:
                click.echo(f"    Error: {scenario.error}")

    for error in result.errors:
        click.echo(f"\nError: {error}", err=True)

    for report in result.reports:
        click.echo(f"\nDetailed report: {report}")


def main():
    """Main entry point"""
    cli()


if __name__ == "__main__":
    main()
