"""Shared domain models for odoostack."""

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from .constants import (
    ADDONS_DIR,
    COMPOSE_FILE,
    DOCKERFILE,
    ENV_FILE,
    QUERY_TIMEOUT,
    READINESS_INTERVAL,
    READINESS_TIMEOUT,
    STATUS_CACHE_SECONDS,
    TEST_HTTP_PORT,
)


class StackState(str, Enum):
    NOT_CREATED = "not_created"
    STOPPED = "stopped"
    RUNNING = "running"


class SELinuxMode(str, Enum):
    ENFORCING = "Enforcing"
    PERMISSIVE = "Permissive"
    DISABLED = "Disabled"


@dataclass(frozen=True)
class DeploymentConfig:
    """Values read from the project `.env` file."""

    odoo_version: str = "18"
    odoo_port: int = 8069
    apt_packages: Tuple[str, ...] = ()
    pip_packages: Tuple[str, ...] = ()
    postgres_user: str = "odoo"
    postgres_password: str = "odoo"
    postgres_db: str = "postgres"


@dataclass(frozen=True)
class ProjectPaths:
    """Locations of the files managed inside one deployment directory."""

    root: str

    @property
    def env_file(self) -> str:
        return os.path.join(self.root, ENV_FILE)

    @property
    def dockerfile(self) -> str:
        return os.path.join(self.root, DOCKERFILE)

    @property
    def compose_file(self) -> str:
        return os.path.join(self.root, COMPOSE_FILE)

    @property
    def addons_dir(self) -> str:
        return os.path.join(self.root, ADDONS_DIR)

    @property
    def project_name(self) -> str:
        return os.path.basename(os.path.normpath(self.root))


@dataclass(frozen=True)
class ToolOptions:
    """Runtime knobs for the tool itself, resolved from CLI flags and YAML config."""

    verbose: bool = False
    log_file: Optional[str] = None
    readiness_timeout: float = READINESS_TIMEOUT
    readiness_interval: float = READINESS_INTERVAL
    status_cache_seconds: float = STATUS_CACHE_SECONDS
    command_timeout: float = QUERY_TIMEOUT
    test_http_port: int = TEST_HTTP_PORT
    web_probe: bool = True


@dataclass(frozen=True)
class ServiceStatus:
    """One record of `docker compose ps --format json`."""

    name: str
    service: str
    state: str
    health: str = ""

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "ServiceStatus":
        return cls(
            name=str(record.get("Name") or ""),
            service=str(record.get("Service") or ""),
            state=str(record.get("State") or "").lower(),
            health=str(record.get("Health") or "").lower(),
        )

    @property
    def is_running(self) -> bool:
        return self.state == "running"

    def matches(self, service_name: str) -> bool:
        if self.service:
            return self.service == service_name
        return self.name.endswith(service_name)


@dataclass(frozen=True)
class ReadinessResult:
    ready: bool
    elapsed: float
    pending: Tuple[str, ...] = ()


@dataclass
class PermissionReport:
    path: str
    permissions_applied: bool
    selinux_mode: SELinuxMode
    selinux_labeled: bool = False
    modules: List[str] = field(default_factory=list)
