"""SELinux detection and relabeling for bind-mounted directories."""

from typing import Callable

from odoostack.constants import SELINUX_CONTAINER_BOOLEAN, SELINUX_FILE_CONTEXT
from odoostack.errors import StackError
from odoostack.models import SELinuxMode


class SELinuxService:
    """Queries `getenforce` and applies container file contexts with sudo."""

    def __init__(self, logger, run_cmd: Callable, which: Callable[[str], bool]):
        self.logger = logger
        self.run_cmd = run_cmd
        self.which = which

    def get_mode(self) -> SELinuxMode:
        if not self.which("getenforce"):
            return SELinuxMode.DISABLED

        try:
            result = self.run_cmd(["getenforce"], check=False, capture_output=True)
        except StackError as exc:
            self.logger.debug("SELinux query failed: %s", exc)
            return SELinuxMode.DISABLED

        if result.returncode != 0:
            return SELinuxMode.DISABLED

        value = (result.stdout or "").strip().lower()
        if value == "enforcing":
            return SELinuxMode.ENFORCING
        if value == "permissive":
            return SELinuxMode.PERMISSIVE
        return SELinuxMode.DISABLED

    def relabel_command(self, path: str):
        return ["sudo", "chcon", "-Rt", SELINUX_FILE_CONTEXT, path]

    def relabel(self, path: str) -> bool:
        return self._best_effort(self.relabel_command(path))

    def enable_container_policy(self) -> bool:
        return self._best_effort(["sudo", "setsebool", "-P", SELINUX_CONTAINER_BOOLEAN, "on"])

    def _best_effort(self, cmd) -> bool:
        try:
            result = self.run_cmd(cmd, check=False, capture_output=True)
        except StackError as exc:
            self.logger.debug("SELinux command failed: %s", exc)
            return False
        return result.returncode == 0
