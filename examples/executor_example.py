import importlib.util
import json
from pathlib import Path

from bdd_runner import ExecutorConfig, FeatureExecutor, HookSet

HERE = Path(__file__).parent


def load_steps():
    spec = importlib.util.spec_from_file_location("order_steps", HERE / "orders" / "order_steps.py")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def main():
    """Example of using the Feature Executor programmatically"""

    # Configure the executor
    config = ExecutorConfig(
        parallel_workers=4,
        tags="not @wip",
        report_formats=["json", "junit"],
        output_dir=str(HERE / "test-results"),
    )

    # Create executor instance and load step definitions
    executor = FeatureExecutor(config)
    executor.register_from_module(load_steps())

    # Extra hooks can be added next to the ones the steps module declares
    executor.add_hooks(HookSet(order=10, after_all=lambda: print("all scenarios finished")))

    # Ad-hoc step definitions
    @executor.then(r'^the order belongs to {email}$')
    def order_customer(context, email):
        context.assert_equal(context.must_get("order")["customer"], email)

    print("Available steps:")
    for definition in executor.list_all_steps():
        print(f"  {definition['keyword']:>5}  {definition['pattern']}")

    # Execute all features in a directory
    result = executor.execute_directory(HERE / "orders")

    summary = result.summary
    print("\nExecution Summary:")
    print(f"  Scenarios: {summary.scenarios_total}")
    print(f"  Passed: {summary.scenarios_passed}")
    print(f"  Failed: {summary.scenarios_failed}")
    print(f"  Skipped: {summary.scenarios_skipped}")

    for scenario in result.scenarios:
        print(f"\n  {scenario.name}: {scenario.status}")
        if scenario.error:
            print(f"  Error: {scenario.error}")

    print(f"\nReports: {json.dumps(result.reports, indent=2)}")


if __name__ == "__main__":
    main()
