"""Generates the `.env`, Dockerfile and compose definition of a deployment."""

import os
from typing import Any, Dict, List

import yaml

from odoostack.constants import (
    CONTAINER_ADDONS_PATH,
    DB_SERVICE,
    DOCKERFILE,
    ODOO_HTTP_PORT,
    ODOO_SERVICE,
    POSTGRES_IMAGE,
)
from odoostack.errors import StackError
from odoostack.models import DeploymentConfig, ProjectPaths


class ConfigMaterializer:
    """Creates missing deployment artifacts; never overwrites unless forced."""

    def __init__(self, paths: ProjectPaths, env_loader, permission_service, logger, console):
        self.paths = paths
        self.env_loader = env_loader
        self.permission_service = permission_service
        self.logger = logger
        self.console = console

    def ensure_config(self, force_dockerfile: bool = False) -> DeploymentConfig:
        if self.env_loader.write_template(self.paths.env_file):
            self.console.print("[green]✓ .env file created with default values[/green]")

        config = self.env_loader.load(self.paths.env_file)
        self.ensure_dockerfile(config, force=force_dockerfile)
        self.ensure_compose_file(config)
        self.permission_service.initialize_addons_dir(self.paths.addons_dir)
        return config

    def ensure_dockerfile(self, config: DeploymentConfig, force: bool = False) -> bool:
        if os.path.exists(self.paths.dockerfile) and not force:
            return False

        self.console.print(f"[blue]ℹ Generating Dockerfile for Odoo {config.odoo_version}...[/blue]")
        self._write(self.paths.dockerfile, self.build_dockerfile(config))
        self.console.print(f"[green]✓ Dockerfile generated for Odoo {config.odoo_version}[/green]")

        if config.apt_packages:
            self.console.print(f"[cyan]💡 APT packages: {' '.join(config.apt_packages)}[/cyan]")
        if config.pip_packages:
            self.console.print(
                f"[cyan]💡 Python packages: {' '.join(config.pip_packages)} "
                "(installed with --break-system-packages)[/cyan]"
            )
        return True

    def ensure_compose_file(self, config: DeploymentConfig) -> bool:
        if os.path.exists(self.paths.compose_file):
            return False

        self._write(self.paths.compose_file, self.build_compose(config))
        self.console.print("[green]✓ compose.yaml created with custom configuration[/green]")
        return True

    def build_dockerfile(self, config: DeploymentConfig) -> str:
        lines: List[str] = [
            f"FROM odoo:{config.odoo_version}",
            "",
            "USER root",
            "",
            "# Install additional APT packages",
        ]
        if config.apt_packages:
            lines.append("RUN apt-get update && apt-get install -y \\")
            lines.extend(f"    {package} \\" for package in config.apt_packages)
            lines.append("    && apt-get clean && rm -rf /var/lib/apt/lists/*")
        else:
            lines.append("# No additional APT packages configured")

        lines.extend(
            [
                "",
                "USER odoo",
                "",
                "# Install additional Python packages (bypasses PEP 668)",
            ]
        )
        pip_install = "RUN pip3 install --no-cache-dir --break-system-packages"
        packages = config.pip_packages
        if len(packages) == 1:
            lines.append(f"{pip_install} {packages[0]}")
        elif packages:
            lines.append(f"{pip_install} \\")
            lines.extend(f"    {package} \\" for package in packages[:-1])
            lines.append(f"    {packages[-1]}")
        else:
            lines.append("# No additional Python packages configured")

        return "\n".join(lines) + "\n"

    def build_compose_definition(self, config: DeploymentConfig) -> Dict[str, Any]:
        user = config.postgres_user
        password = config.postgres_password
        return {
            "services": {
                DB_SERVICE: {
                    "image": POSTGRES_IMAGE,
                    "restart": "always",
                    "environment": {
                        "POSTGRES_USER": user,
                        "POSTGRES_PASSWORD": password,
                        "POSTGRES_DB": config.postgres_db,
                    },
                    "volumes": ["db_data:/var/lib/postgresql/data"],
                    "healthcheck": {
                        "test": ["CMD-SHELL", f"pg_isready -U {user}"],
                        "interval": "10s",
                        "timeout": "5s",
                        "retries": 5,
                    },
                },
                ODOO_SERVICE: {
                    "build": {"context": ".", "dockerfile": DOCKERFILE},
                    "depends_on": {DB_SERVICE: {"condition": "service_healthy"}},
                    "ports": [f"{config.odoo_port}:{ODOO_HTTP_PORT}"],
                    "environment": [
                        f"HOST={DB_SERVICE}",
                        f"USER={user}",
                        f"PASSWORD={password}",
                    ],
                    "volumes": [
                        "odoo_data:/var/lib/odoo",
                        f"./extra-addons:{CONTAINER_ADDONS_PATH}:rw",
                    ],
                    "restart": "unless-stopped",
                },
            },
            "volumes": {"db_data": None, "odoo_data": None},
        }

    def build_compose(self, config: DeploymentConfig) -> str:
        return yaml.safe_dump(
            self.build_compose_definition(config),
            sort_keys=False,
            default_flow_style=False,
        )

    def _write(self, path: str, content: str):
        try:
            with open(path, "w", encoding="utf-8", newline="\n") as file_obj:
                file_obj.write(content)
        except OSError as exc:
            raise StackError(f"Could not write '{path}': {exc}") from exc
        self.logger.debug("Wrote %s", path)
