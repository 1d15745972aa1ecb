import logging
import os
import subprocess
from typing import Callable, List, Optional

import requests
from rich.console import Console

from .constants import CLEAN_CONFIRMATION, DB_SERVICE, ODOO_SERVICE
from .errors import StackError
from .errors_catalog import actionable_error
from .models import (
    DeploymentConfig,
    ProjectPaths,
    ReadinessResult,
    SELinuxMode,
    ServiceStatus,
    StackState,
    ToolOptions,
)
from .registry import COMMANDS, menu_commands, resolve_menu_choice
from .services.command_runner import CommandRunner
from .services.docker_runtime import DockerRuntimeService, StackStateReader
from .services.env_loader import EnvLoader
from .services.filesystem import FileSystemService
from .services.materializer import ConfigMaterializer
from .services.permissions import PermissionService
from .services.selinux import SELinuxService
from .services.test_runner import ModuleTestService
from .services.web_probe import WebProbeService

console = Console()
logger = logging.getLogger("odoostack")


class OdooStackManager:
    """Lifecycle operations for the Odoo stack of one project directory."""

    def __init__(
        self,
        project_dir: Optional[str] = None,
        options: Optional[ToolOptions] = None,
        input_func: Optional[Callable[[str], str]] = None,
    ):
        self.paths = ProjectPaths(root=os.path.abspath(project_dir or os.getcwd()))
        self.options = options or ToolOptions()
        self.input = input_func or console.input
        self.config: Optional[DeploymentConfig] = None

        self.command_runner = CommandRunner(logger=logger, cwd=self.paths.root)
        self.filesystem_service = FileSystemService(logger=logger, console=console)
        self.selinux_service = SELinuxService(
            logger=logger,
            run_cmd=self._run_cmd,
            which=self._which,
        )
        self.permission_service = PermissionService(
            logger=logger,
            console=console,
            filesystem_service=self.filesystem_service,
            selinux_service=self.selinux_service,
            run_cmd=self._run_cmd,
            which=self._which,
        )
        self.env_loader = EnvLoader(logger=logger)
        self.materializer = ConfigMaterializer(
            paths=self.paths,
            env_loader=self.env_loader,
            permission_service=self.permission_service,
            logger=logger,
            console=console,
        )
        self.docker_runtime_service = DockerRuntimeService(
            logger=logger,
            console=console,
            subprocess_module=subprocess,
        )
        self.web_probe_service = WebProbeService(logger=logger, requests_module=requests)

        self.compose_cmd = self._check_dependencies()
        self.state_reader = StackStateReader(
            compose_base=self.compose_base,
            run_cmd=self._run_cmd,
            logger=logger,
            cache_seconds=self.options.status_cache_seconds,
            timeout=self.options.command_timeout,
        )
        self.test_service = ModuleTestService(
            logger=logger,
            console=console,
            compose_base=self.compose_base,
            run_cmd=self._run_cmd,
        )

    @property
    def compose_base(self) -> List[str]:
        return self.compose_cmd + ["-f", self.paths.compose_file]

    def _check_dependencies(self) -> List[str]:
        return self.docker_runtime_service.check_dependencies()

    def _run_cmd(
        self,
        cmd: List[str],
        check: bool = True,
        capture_output: bool = False,
        timeout: Optional[float] = None,
    ) -> subprocess.CompletedProcess:
        return self.command_runner.run(
            cmd, check=check, capture_output=capture_output, timeout=timeout
        )

    def _which(self, program: str) -> bool:
        return self.command_runner.which(program)

    def prepare(self) -> DeploymentConfig:
        """Materializes missing project files and loads the deployment config."""
        logger.debug("Setting up project in %s", self.paths.root)
        self.config = self.materializer.ensure_config()
        return self.config

    def reload_config(self) -> DeploymentConfig:
        self.config = self.env_loader.load(self.paths.env_file)
        return self.config

    def _require_config(self) -> DeploymentConfig:
        if self.config is None:
            return self.prepare()
        return self.config

    def _require_running(self, action: str) -> bool:
        if self.state_reader.get_status() == StackState.RUNNING:
            return True

        message = actionable_error("stack_not_running", action=action)
        console.print(f"[bold red]Error:[/bold red] {message}")
        self._print_permission_hint()
        return False

    def _print_banner(self):
        console.print(f"[bold cyan]🐋 ODOO DOCKER MANAGER - {self.paths.project_name}[/bold cyan]\n")

    def _pause(self):
        self.input("\n[yellow]Press ENTER to continue...[/yellow]")

    def _print_permission_hint(self):
        console.print(
            "[yellow]⚠ If there are permission issues, run `odoostack fix-permissions`[/yellow]"
        )

    def _lifecycle(self, action: str, args: List[str]) -> bool:
        try:
            self._run_cmd(self.compose_base + args)
        except StackError as exc:
            logger.debug("Compose %s failed: %s", action, exc)
            message = actionable_error("lifecycle_failed", action=action)
            console.print(f"[bold red]Error:[/bold red] {message}")
            return False
        finally:
            self.state_reader.invalidate()
        return True

    def _report_web_access(self, config: DeploymentConfig):
        url = self.web_probe_service.web_url(config.odoo_port)
        console.print(f"[cyan]💡 Web access: {url}[/cyan]")
        if not self.options.web_probe:
            return
        if self.web_probe_service.probe(config.odoo_port, config.odoo_version):
            console.print("[green]✓ Odoo web interface is responding[/green]")
        else:
            console.print(
                "[cyan]💡 Odoo web interface is not responding yet; "
                "it may still be initializing[/cyan]"
            )

    def wait_until_ready(self) -> ReadinessResult:
        return self.docker_runtime_service.wait_for_services(
            self.state_reader,
            timeout=self.options.readiness_timeout,
            interval=self.options.readiness_interval,
        )

    def _await_running(self, success_message: str) -> bool:
        readiness = self.wait_until_ready()
        if not readiness.ready:
            console.print(
                f"[red]✗ Services not running after {readiness.elapsed:.0f}s: "
                f"{', '.join(readiness.pending)}[/red]"
            )
            logger.warning("Readiness timed out; pending: %s", ", ".join(readiness.pending))
            self._print_permission_hint()
            return False

        console.print(f"[green]✓ {success_message}[/green]")
        logger.info("Services running after %.1fs", readiness.elapsed)
        return True

    def start(self) -> bool:
        config = self._require_config()
        console.print("[blue]ℹ Starting Odoo services...[/blue]")
        logger.info("Starting Odoo services")

        if not self._lifecycle("start", ["up", "-d", "--build"]):
            return False
        if not self._await_running("Odoo started successfully"):
            return False

        self._report_web_access(config)
        if os.path.isdir(self.paths.addons_dir):
            console.print("[cyan]💡 To use extra modules: Apps > Update Apps List[/cyan]")
        console.print(
            "[cyan]💡 If you have permission issues, run `odoostack fix-permissions`[/cyan]"
        )
        return True

    def stop(self) -> bool:
        console.print("[blue]ℹ Stopping Odoo services...[/blue]")
        logger.info("Stopping Odoo services")

        if not self._lifecycle("stop", ["down"]):
            return False
        console.print("[green]✓ Odoo stopped successfully[/green]")
        return True

    def restart(self) -> bool:
        config = self._require_config()
        console.print("[blue]ℹ Restarting Odoo services...[/blue]")
        logger.info("Restarting Odoo services")

        if not self._lifecycle("restart", ["restart"]):
            return False
        console.print("[green]✓ Odoo restarted successfully[/green]")
        self._report_web_access(config)
        return True

    def rebuild(self) -> bool:
        console.print("[blue]ℹ Rebuilding Odoo image...[/blue]")
        logger.info("Rebuilding Odoo image")
        config = self.reload_config()
        self.materializer.ensure_dockerfile(config, force=True)

        if not self._lifecycle("rebuild", ["up", "-d", "--build", "--force-recreate"]):
            return False
        if not self._await_running("Image rebuilt and Odoo started successfully"):
            return False

        self._report_web_access(config)
        return True

    def clean(self, confirmation: Optional[str] = None) -> bool:
        console.print("[yellow]⚠ WARNING: This operation will delete ALL Odoo data[/yellow]")
        console.print("[red]✗ This action is IRREVERSIBLE and cannot be undone[/red]\n")

        if confirmation is None:
            confirmation = self.input(
                f"[yellow]Type '{CLEAN_CONFIRMATION}' to proceed: [/yellow]"
            )

        if confirmation != CLEAN_CONFIRMATION:
            console.print("[cyan]💡 Operation cancelled by user[/cyan]")
            logger.info("Clean cancelled")
            return False

        console.print("[blue]ℹ Deleting data and volumes...[/blue]")
        logger.info("Removing containers and volumes")
        if not self._lifecycle("clean", ["down", "-v"]):
            return False
        console.print("[green]✓ Data deleted successfully[/green]")
        return True

    def logs(self) -> bool:
        console.print("[cyan]💡 Showing Odoo logs in real time (Ctrl+C to exit)[/cyan]\n")
        try:
            self._run_cmd(self.compose_base + ["logs", "-f", ODOO_SERVICE], check=False)
        except KeyboardInterrupt:
            console.print("\n[dim]Log streaming stopped.[/dim]")
        return True

    def shell(self, database: Optional[str] = None) -> bool:
        if not self._require_running("open an Odoo shell"):
            return False
        config = self._require_config()
        console.print("[blue]ℹ Opening Odoo shell...[/blue]")

        cmd = self.compose_base + [
            "exec",
            ODOO_SERVICE,
            "odoo",
            "shell",
            "--db_host",
            DB_SERVICE,
            "--db_user",
            config.postgres_user,
            "--db_password",
            config.postgres_password,
        ]
        if database:
            cmd += ["-d", database]

        result = self._run_cmd(cmd, check=False)
        return result.returncode == 0

    def run_tests(self, modules: Optional[List[str]] = None) -> bool:
        if not self._require_running("run module tests"):
            return False
        config = self._require_config()
        modules = self.test_service.resolve_modules(modules, self.paths.addons_dir)
        return self.test_service.run_tests(config, modules, http_port=self.options.test_http_port)

    def fix_permissions(self):
        return self.permission_service.fix_permissions(self.paths.addons_dir)

    @staticmethod
    def _service_label(statuses: List[ServiceStatus], service: str) -> str:
        matched = [status for status in statuses if status.matches(service)]
        if any(status.is_running for status in matched):
            return "🟢 Running"
        if matched:
            return "🔴 Stopped"
        return "⚪ Not created"

    def _count_modules(self) -> int:
        if not os.path.isdir(self.paths.addons_dir):
            return 0
        try:
            return len(self.filesystem_service.list_module_dirs(self.paths.addons_dir))
        except StackError as exc:
            logger.debug("Could not count modules: %s", exc)
            return 0

    def show_status(self) -> StackState:
        config = self._require_config()
        statuses = self.state_reader.service_statuses()
        state = self.state_reader.reduce(statuses)

        console.print("[bold]📊 System Status:[/bold]")
        console.print(f"  Odoo {config.odoo_version}: {self._service_label(statuses, ODOO_SERVICE)}")
        console.print(f"  PostgreSQL: {self._service_label(statuses, DB_SERVICE)}")
        if self._which("getenforce"):
            selinux_mode = self.selinux_service.get_mode()
            icon = "⚠️" if selinux_mode == SELinuxMode.ENFORCING else "ℹ️"
            console.print(f"  SELinux: {icon} {selinux_mode.value}")
        console.print("")

        if state == StackState.RUNNING:
            console.print("[green]✓ Complete stack running[/green]")
            console.print(f"[cyan]💡 Web access: {self.web_probe_service.web_url(config.odoo_port)}[/cyan]")
        elif state == StackState.STOPPED:
            console.print("[yellow]⚠ Stack stopped - use 'Start' option[/yellow]")
        else:
            console.print("[cyan]💡 Stack not created yet[/cyan]")

        module_count = self._count_modules()
        if module_count:
            console.print(f"[cyan]💡 Extra modules available: {module_count}[/cyan]")

        if config.apt_packages or config.pip_packages:
            console.print("\n[cyan]💡 Custom configuration:[/cyan]")
            if config.apt_packages:
                console.print(f"  APT: {' '.join(config.apt_packages)}")
            if config.pip_packages:
                console.print(
                    f"  PIP: {' '.join(config.pip_packages)} (with --break-system-packages)"
                )
        console.print("")
        return state

    def show_help(self):
        config = self._require_config()
        console.print("[bold]📖 Help - Odoo Docker Manager[/bold]\n")

        console.print("[bold]Available commands:[/bold]")
        for command in COMMANDS:
            console.print(f"  odoostack {command.name:<16} - {command.help}")
        console.print(f"  odoostack {'':<16} - Start interactive menu\n")

        console.print("[bold]Custom configuration (.env):[/bold]")
        console.print(f"[cyan]💡 File: {self.paths.env_file}[/cyan]")
        console.print(f"[cyan]💡 Current version: Odoo {config.odoo_version}[/cyan]")
        console.print(f"[cyan]💡 Port: {config.odoo_port}[/cyan]")
        if config.apt_packages:
            console.print(f"[cyan]💡 APT packages: {' '.join(config.apt_packages)}[/cyan]")
        if config.pip_packages:
            console.print(
                f"[cyan]💡 Python packages: {' '.join(config.pip_packages)} "
                "(with --break-system-packages)[/cyan]"
            )
        console.print("")

        console.print("[bold]Extra modules management:[/bold]")
        console.print(f"[cyan]💡 Move modules to directory: {self.paths.addons_dir}[/cyan]")
        console.print("[cyan]💡 In Odoo: Apps > Update Apps List[/cyan]\n")

        console.print("[bold]Troubleshooting (SELinux/Permissions):[/bold]")
        console.print("[yellow]⚠ If you have permission errors:[/yellow]")
        console.print("[cyan]💡 Run: odoostack fix-permissions[/cyan]\n")

        console.print("[bold]Additional information:[/bold]")
        console.print("[cyan]💡 Database: PostgreSQL 15[/cyan]")
        console.print(f"[cyan]💡 DB User: {config.postgres_user} / {config.postgres_password}[/cyan]")
        console.print("[cyan]💡 After modifying .env, use 'rebuild' to apply changes[/cyan]")
        console.print("[cyan]💡 SELinux relabeling is applied automatically on Fedora/RHEL/CentOS[/cyan]")

    def interactive_menu(self):
        try:
            while True:
                console.clear()
                self._print_banner()
                state = self.show_status()
                commands = menu_commands(state)

                console.print("[bold]Available options:[/bold]")
                for index, command in enumerate(commands, start=1):
                    console.print(f"{index}) {command.icon} {command.label}")
                exit_choice = str(len(commands) + 1)
                console.print(f"{exit_choice}) 🚪 Exit\n")

                choice = self.input("[cyan]Select an option: [/cyan]").strip()
                if choice == exit_choice:
                    console.print("\n[green]Goodbye![/green]")
                    return

                command = resolve_menu_choice(choice, commands)
                if command is None:
                    console.print("[red]✗ Invalid option, please try again[/red]")
                    self._pause()
                    continue

                console.clear()
                self._print_banner()
                try:
                    command.handler(self)
                except (StackError, OSError) as exc:
                    console.print(f"[bold red]Error:[/bold red] {exc}")
                    logger.debug("Menu action %s failed: %s", command.name, exc)
                if command.pause:
                    self._pause()
        except (KeyboardInterrupt, EOFError):
            console.print("\n[green]Goodbye![/green]")
