import os
import yaml
import json
from pathlib import Path
from typing import Any, Dict, Optional

from .exceptions import ConfigurationError

ENV_VAR = "BDD_RUNNER_CONFIG"

SEARCH_PATHS = (
    Path("bdd-runner.yaml"),
    Path(".bdd-runner") / "config.yaml",
)

DEFAULTS: Dict[str, Dict[str, Any]] = {
    "general": {
        "log_level": "INFO",
    },
    "executor": {
        "parallel_workers": 4,
        "fail_fast": False,
        "tags": None,
        "disable_hooks": False,
        "disable_log": False,
    },
    "reporter": {
        "disabled": False,
        "formats": ["json"],
        "output_dir": "test-results",
    },
}

YAML_SUFFIXES = ('.yaml', '.yml')


class ConfigManager:
    """Layered runner configuration.

    Values come from ``DEFAULTS`` overlaid section by section with a YAML or
    JSON file. The file is looked up from ``$BDD_RUNNER_CONFIG``, then the
    working directory, then ``~/.bdd-runner/config.yaml``. A missing file
    leaves the defaults in place.
    """

    def __init__(self, config_path: Optional[Path] = None):
        self.config_path = Path(config_path) if config_path else self._locate()
        self._config = self._load_config()

    @staticmethod
    def _locate() -> Path:
        from_env = os.getenv(ENV_VAR)
        if from_env:
            return Path(from_env)

        home_config = Path.home() / ".bdd-runner" / "config.yaml"
        candidates = [Path.cwd() / p for p in SEARCH_PATHS] + [home_config]
        return next((c for c in candidates if c.exists()), home_config)

    def _read_file(self) -> Any:
        suffix = self.config_path.suffix
        if suffix not in YAML_SUFFIXES and suffix != '.json':
            raise ConfigurationError(f"Unsupported config format: {suffix}")

        with open(self.config_path, 'r') as f:
            return yaml.safe_load(f) if suffix in YAML_SUFFIXES else json.load(f)

    def _load_config(self) -> Dict[str, Any]:
        config = {section: dict(values) for section, values in DEFAULTS.items()}
        if not self.config_path.exists():
            return config

        loaded = self._read_file()
        if loaded is None:
            return config
        if not isinstance(loaded, dict):
            raise ConfigurationError(f"Config file {self.config_path} must contain a mapping")

        for section, values in loaded.items():
            base = config.get(section)
            if isinstance(base, dict) and isinstance(values, dict):
                base.update(values)
            else:
                config[section] = values
        return config

    def get(self, key: str, default: Any = None) -> Any:
        """Look up a dotted key such as ``executor.parallel_workers``"""
        node: Any = self._config
        for part in key.split('.'):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def set(self, key: str, value: Any) -> None:
        *parents, leaf = key.split('.')
        node = self._config
        for part in parents:
            node = node.setdefault(part, {})
        node[leaf] = value

    def save(self) -> None:
        """Write the current values back to ``config_path``"""
        self.config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(self.config_path, 'w') as f:
            if self.config_path.suffix == '.json':
                json.dump(self._config, f, indent=2)
            else:
                yaml.safe_dump(self._config, f, default_flow_style=False)

    def get_section(self, section: str) -> Dict[str, Any]:
        return self.get(section, {})

    def get_executor_config(self) -> Dict[str, Any]:
        """Flatten the executor and reporter sections into ExecutorConfig keyword arguments"""
        executor = dict(self.get_section("executor"))
        reporter = self.get_section("reporter")

        executor["disable_reporter"] = bool(reporter.get("disabled", False))
        executor["report_formats"] = list(reporter.get("formats") or [])
        executor["output_dir"] = reporter.get("output_dir", "test-results")
        return executor
