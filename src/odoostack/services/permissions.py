"""Mode and SELinux normalization of the extra-addons directory."""

from typing import Callable, Tuple

from odoostack.constants import ADDONS_MODE
from odoostack.errors import StackError
from odoostack.models import PermissionReport, SELinuxMode


class PermissionService:
    """Makes the bind-mounted addons directory usable by the container's odoo user.

    The policy is a recursive ``chmod 777``; ownership is left untouched.
    """

    def __init__(
        self,
        logger,
        console,
        filesystem_service,
        selinux_service,
        run_cmd: Callable,
        which: Callable[[str], bool],
    ):
        self.logger = logger
        self.console = console
        self.filesystem_service = filesystem_service
        self.selinux_service = selinux_service
        self.run_cmd = run_cmd
        self.which = which

    def manual_chmod_command(self, path: str) -> str:
        return f"sudo chmod -R {ADDONS_MODE:o} {path}"

    def apply_mode(self, path: str) -> bool:
        failed = self.filesystem_service.set_tree_permissions(path, ADDONS_MODE)
        if not failed:
            return True

        self.logger.debug("chmod failed for %s path(s) under %s, using sudo", len(failed), path)
        if not self.which("sudo"):
            return False

        try:
            result = self.run_cmd(["sudo", "chmod", "-R", f"{ADDONS_MODE:o}", path], check=False)
        except StackError as exc:
            self.logger.debug("sudo chmod failed: %s", exc)
            return False
        return result.returncode == 0

    def apply_selinux(self, path: str) -> Tuple[SELinuxMode, bool]:
        mode = self.selinux_service.get_mode()

        if mode == SELinuxMode.ENFORCING:
            self.console.print("[yellow]⚠ SELinux detected in Enforcing mode[/yellow]")
            self.console.print("[blue]ℹ Applying SELinux context for Docker...[/blue]")
            labeled = self.selinux_service.relabel(path)
            if labeled:
                self.console.print("[green]✓ SELinux context applied correctly[/green]")
            else:
                manual = " ".join(self.selinux_service.relabel_command(path))
                self.console.print("[yellow]⚠ Could not apply SELinux context automatically[/yellow]")
                self.console.print(f"[cyan]💡 Run manually: {manual}[/cyan]")
            if self.selinux_service.enable_container_policy():
                self.console.print("[green]✓ SELinux policy for containers enabled[/green]")
            return mode, labeled

        if mode == SELinuxMode.PERMISSIVE:
            self.console.print("[cyan]💡 SELinux in Permissive mode - should not cause problems[/cyan]")
        return mode, False

    def initialize_addons_dir(self, path: str) -> bool:
        """Creates the addons directory and prepares it. No-op when it already exists."""
        if not self.filesystem_service.ensure_dir(path):
            return False

        if self.apply_mode(path):
            self.console.print("[green]✓ extra-addons directory created[/green]")
        else:
            self.console.print(
                "[yellow]⚠ extra-addons created but permissions could not be applied. "
                "Run `odoostack fix-permissions`.[/yellow]"
            )
        self.apply_selinux(path)
        return True

    def fix_permissions(self, path: str) -> PermissionReport:
        self.console.print("[blue]ℹ Applying 777 permissions to extra-addons...[/blue]")
        self.logger.info("Fixing permissions on %s", path)

        if self.filesystem_service.ensure_dir(path):
            self.console.print("[green]✓ extra-addons directory created[/green]")

        applied = self.apply_mode(path)
        if applied:
            self.console.print("[green]✓ 777 permissions applied recursively to extra-addons[/green]")
        else:
            self.console.print("[red]✗ Could not apply permissions[/red]")
            self.console.print(f"[cyan]💡 Run manually: {self.manual_chmod_command(path)}[/cyan]")

        selinux_mode, labeled = self.apply_selinux(path)
        if selinux_mode == SELinuxMode.DISABLED:
            self.console.print("[cyan]💡 SELinux disabled[/cyan]")

        modules = self.filesystem_service.list_module_dirs(path)
        if modules:
            self.console.print(f"[cyan]💡 Modules found: {len(modules)}[/cyan]")
            for module in modules:
                self.console.print(f"  - {module}")
        else:
            self.console.print("[cyan]💡 No modules in extra-addons[/cyan]")

        return PermissionReport(
            path=path,
            permissions_applied=applied,
            selinux_mode=selinux_mode,
            selinux_labeled=labeled,
            modules=modules,
        )
