"""Configuration loader for odoostack tool options."""

import os
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import yaml

from odoostack.constants import CONFIG_FILE
from odoostack.errors import StackError
from odoostack.models import ToolOptions


class ConfigLoader:
    """Loads the optional `.odoostack.yml` file holding tool defaults."""

    CONVERTERS: Dict[str, Callable[[Any], Any]] = {
        "verbose": bool,
        "log_file": str,
        "readiness_timeout": float,
        "readiness_interval": float,
        "status_cache_seconds": float,
        "command_timeout": float,
        "test_http_port": int,
        "web_probe": bool,
    }

    def resolve_path(self, project_dir: str, config_path: Optional[str]) -> Optional[str]:
        if config_path:
            return config_path
        default_path = os.path.join(project_dir, CONFIG_FILE)
        if os.path.exists(default_path):
            return default_path
        return None

    def load(self, config_path: Optional[str]) -> Dict[str, Any]:
        if not config_path:
            return {}

        path = Path(config_path)
        if not path.exists():
            raise StackError(f"Config file not found: {config_path}")

        try:
            parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (yaml.YAMLError, OSError) as exc:
            raise StackError(f"Invalid config file '{config_path}': {exc}") from exc

        if parsed is None:
            return {}
        if not isinstance(parsed, dict):
            raise StackError("Config file must contain a YAML mapping at the root.")

        unknown = sorted(set(parsed.keys()) - set(self.CONVERTERS))
        if unknown:
            raise StackError(f"Unknown configuration keys: {', '.join(unknown)}")

        return parsed

    def build_options(self, values: Dict[str, Any], **overrides: Any) -> ToolOptions:
        """Merges file values with CLI overrides; a None override keeps the file value."""
        merged = dict(values)
        merged.update({key: value for key, value in overrides.items() if value is not None})

        options: Dict[str, Any] = {}
        for key, value in merged.items():
            if value is None:
                continue
            try:
                options[key] = self.CONVERTERS[key](value)
            except (TypeError, ValueError) as exc:
                raise StackError(f"Invalid value for '{key}': {value!r}") from exc

        for key in ("readiness_timeout", "readiness_interval", "status_cache_seconds"):
            if options.get(key, 0) < 0:
                raise StackError(f"'{key}' must not be negative.")
        if options.get("readiness_interval", 1) <= 0:
            raise StackError("'readiness_interval' must be greater than zero.")

        return ToolOptions(**options)
