"""Docker runtime services for odoostack."""

import json
import shutil
import subprocess
import time
from typing import Callable, Iterable, List, Optional, Sequence

from odoostack.constants import DB_SERVICE, ODOO_SERVICE
from odoostack.errors import DependencyError, StackError
from odoostack.errors_catalog import actionable_error
from odoostack.models import ReadinessResult, ServiceStatus, StackState

EXPECTED_SERVICES = (ODOO_SERVICE, DB_SERVICE)


class DockerRuntimeService:
    """Manages Docker Compose detection and readiness polling."""

    def __init__(
        self,
        logger,
        console,
        subprocess_module=subprocess,
        which: Callable[[str], Optional[str]] = shutil.which,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.logger = logger
        self.console = console
        self.subprocess = subprocess_module
        self.which = which
        self.clock = clock
        self.sleep = sleep

    def get_docker_compose_cmd(self) -> List[str]:
        # state queries rely on `ps --format json`, which only the v2 plugin supports
        try:
            self.subprocess.run(["docker", "compose", "version"], check=True, capture_output=True)
        except (self.subprocess.CalledProcessError, FileNotFoundError):
            raise DependencyError(actionable_error("compose_missing"))
        return ["docker", "compose"]

    def check_daemon(self):
        result = self.subprocess.run(["docker", "info"], capture_output=True, text=True)
        if result.returncode == 0:
            return

        stderr = (result.stderr or "").strip()
        if "permission denied" in stderr.lower():
            raise DependencyError(actionable_error("docker_access_denied"))
        detail = stderr.splitlines()[-1] if stderr else f"exit code {result.returncode}"
        raise DependencyError(actionable_error("daemon_unreachable", detail=detail))

    def check_dependencies(self) -> List[str]:
        """Validates docker, compose and daemon access. Returns the compose command."""
        if self.which("docker") is None:
            raise DependencyError(actionable_error("docker_missing"))

        compose_cmd = self.get_docker_compose_cmd()
        self.check_daemon()
        self.logger.debug("Using compose command: %s", " ".join(compose_cmd))
        return compose_cmd

    def wait_for_services(
        self,
        state_reader: "StackStateReader",
        services: Sequence[str] = EXPECTED_SERVICES,
        timeout: float = 60.0,
        interval: float = 2.0,
    ) -> ReadinessResult:
        self.console.print("[yellow]Waiting for services to be running...[/yellow]")
        started = self.clock()
        deadline = started + timeout

        while True:
            statuses = state_reader.service_statuses(refresh=True)
            pending = tuple(
                name
                for name in services
                if not any(status.matches(name) and status.is_running for status in statuses)
            )
            now = self.clock()
            if not pending:
                return ReadinessResult(ready=True, elapsed=now - started)
            if now >= deadline:
                return ReadinessResult(ready=False, elapsed=now - started, pending=pending)

            self.logger.debug("Still waiting for: %s", ", ".join(pending))
            self.sleep(min(interval, deadline - now))


class StackStateReader:
    """Reduces `docker compose ps` output to a StackState, caching briefly."""

    def __init__(
        self,
        compose_base: List[str],
        run_cmd: Callable,
        logger,
        cache_seconds: float = 2.0,
        timeout: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.compose_base = compose_base
        self.run_cmd = run_cmd
        self.logger = logger
        self.cache_seconds = cache_seconds
        self.timeout = timeout
        self.clock = clock
        self._cached: Optional[List[ServiceStatus]] = None
        self._cached_at = 0.0

    @staticmethod
    def parse_ps_output(stdout: str) -> List[ServiceStatus]:
        """Decodes a JSON array (older Compose) or JSON lines (Compose 2.21+)."""
        text = (stdout or "").strip()
        if not text:
            return []

        try:
            records = [json.loads(text)]
        except json.JSONDecodeError:
            records = [json.loads(line) for line in text.splitlines() if line.strip()]

        statuses = []
        for record in records:
            items = record if isinstance(record, list) else [record]
            for item in items:
                if not isinstance(item, dict):
                    raise ValueError(f"Unexpected compose ps record: {item!r}")
                statuses.append(ServiceStatus.from_record(item))
        return statuses

    @staticmethod
    def reduce(
        statuses: Iterable[ServiceStatus], services: Sequence[str] = EXPECTED_SERVICES
    ) -> StackState:
        statuses = list(statuses)
        matched = {name: [s for s in statuses if s.matches(name)] for name in services}

        if all(any(s.is_running for s in matched[name]) for name in services):
            return StackState.RUNNING
        if any(matched[name] for name in services):
            return StackState.STOPPED
        return StackState.NOT_CREATED

    def invalidate(self):
        self._cached = None

    def service_statuses(self, refresh: bool = False) -> List[ServiceStatus]:
        now = self.clock()
        if (
            not refresh
            and self._cached is not None
            and now - self._cached_at < self.cache_seconds
        ):
            return self._cached

        self._cached = self._query()
        self._cached_at = now
        return self._cached

    def get_status(self) -> StackState:
        return self.reduce(self.service_statuses())

    def _query(self) -> List[ServiceStatus]:
        cmd = self.compose_base + ["ps", "--all", "--format", "json"]
        try:
            result = self.run_cmd(cmd, check=False, capture_output=True, timeout=self.timeout)
        except StackError as exc:
            self.logger.debug("Stack status query failed: %s", exc)
            return []

        if result.returncode != 0:
            return []

        try:
            return self.parse_ps_output(result.stdout)
        except ValueError as exc:
            self.logger.debug("Could not decode compose ps output: %s", exc)
            return []
