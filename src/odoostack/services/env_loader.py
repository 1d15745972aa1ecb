"""Loader for the deployment `.env` file."""

import os
from typing import Dict

from odoostack.errors import StackError
from odoostack.errors_catalog import actionable_error
from odoostack.models import DeploymentConfig

ENV_TEMPLATE = """# Odoo version to use
ODOO_VERSION=18

# APT packages you want to install in the custom image
# Separated by spaces
APT_PACKAGES=

# Python pip packages you want to install
# Separated by spaces
PIP_PACKAGES=

# Port to access Odoo (default 8069)
ODOO_PORT=8069

# Database configuration
POSTGRES_USER=odoo
POSTGRES_PASSWORD=odoo
POSTGRES_DB=postgres
"""


class EnvLoader:
    """Parses `KEY=VALUE` files into a DeploymentConfig."""

    KNOWN_KEYS = (
        "ODOO_VERSION",
        "ODOO_PORT",
        "APT_PACKAGES",
        "PIP_PACKAGES",
        "POSTGRES_USER",
        "POSTGRES_PASSWORD",
        "POSTGRES_DB",
    )

    def __init__(self, logger):
        self.logger = logger

    def write_template(self, env_path: str) -> bool:
        """Writes the default `.env` unless one exists. Returns True when written."""
        if os.path.exists(env_path):
            return False

        with open(env_path, "w", encoding="utf-8", newline="\n") as file_obj:
            file_obj.write(ENV_TEMPLATE)
        self.logger.debug("Wrote default environment file: %s", env_path)
        return True

    def parse(self, text: str, source: str = ".env") -> Dict[str, str]:
        values: Dict[str, str] = {}
        for line_number, raw_line in enumerate(text.splitlines(), start=1):
            line = raw_line.strip()
            if not line or line.startswith("#"):
                continue
            if line.startswith("export "):
                line = line[len("export ") :].lstrip()

            key, separator, value = line.partition("=")
            key = key.strip()
            if not separator or not key:
                raise StackError(
                    actionable_error("invalid_env_line", line=str(line_number), path=source)
                )
            values[key] = self._unquote(value.strip())
        return values

    def load(self, env_path: str) -> DeploymentConfig:
        defaults = DeploymentConfig()
        if not os.path.exists(env_path):
            return defaults

        try:
            with open(env_path, "r", encoding="utf-8") as file_obj:
                text = file_obj.read()
        except OSError as exc:
            raise StackError(f"Could not read environment file '{env_path}': {exc}") from exc

        values = self.parse(text, source=env_path)

        unknown = sorted(set(values) - set(self.KNOWN_KEYS))
        if unknown:
            self.logger.debug("Ignoring unknown .env keys: %s", ", ".join(unknown))

        return DeploymentConfig(
            odoo_version=values.get("ODOO_VERSION") or defaults.odoo_version,
            odoo_port=self._parse_port(values.get("ODOO_PORT"), defaults.odoo_port),
            apt_packages=tuple((values.get("APT_PACKAGES") or "").split()),
            pip_packages=tuple((values.get("PIP_PACKAGES") or "").split()),
            postgres_user=values.get("POSTGRES_USER") or defaults.postgres_user,
            postgres_password=values.get("POSTGRES_PASSWORD") or defaults.postgres_password,
            postgres_db=values.get("POSTGRES_DB") or defaults.postgres_db,
        )

    @staticmethod
    def _unquote(value: str) -> str:
        if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
            return value[1:-1]
        return value

    @staticmethod
    def _parse_port(raw_value, default: int) -> int:
        if not raw_value:
            return default
        try:
            port = int(raw_value)
        except ValueError:
            port = 0
        if not 1 <= port <= 65535:
            raise StackError(actionable_error("invalid_port", value=raw_value))
        return port
