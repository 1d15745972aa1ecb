import os
import subprocess
import sys

import pytest

from odoostack.errors import StackError
from odoostack.models import SELinuxMode
from odoostack.services.filesystem import FileSystemService
from odoostack.services.permissions import PermissionService
from odoostack.services.selinux import SELinuxService


class DummyLogger:
    def debug(self, *_args, **_kwargs):
        return None

    def info(self, *_args, **_kwargs):
        return None


class RecordingConsole:
    def __init__(self):
        self.lines = []

    def print(self, *args, **_kwargs):
        self.lines.append(" ".join(str(arg) for arg in args))

    @property
    def text(self):
        return "\n".join(self.lines)


class FakeCommands:
    """Answers getenforce/sudo invocations and records every command."""

    def __init__(self, selinux="Disabled", failing=()):
        self.selinux = selinux
        self.failing = set(failing)
        self.calls = []

    def __call__(self, cmd, check=True, capture_output=False, timeout=None):
        self.calls.append(cmd)
        returncode = 1 if any(word in cmd for word in self.failing) else 0
        stdout = f"{self.selinux}\n" if cmd == ["getenforce"] else ""
        return subprocess.CompletedProcess(cmd, returncode, stdout=stdout, stderr="")


class StubFilesystem(FileSystemService):
    def __init__(self, failing_paths=()):
        super().__init__(logger=DummyLogger(), console=RecordingConsole())
        self.failing_paths = failing_paths

    def set_tree_permissions(self, root, mode):
        return list(self.failing_paths)


def _service(commands, filesystem=None, installed=("getenforce", "sudo"), console=None):
    which = lambda name: name in installed  # noqa: E731
    selinux = SELinuxService(logger=DummyLogger(), run_cmd=commands, which=which)
    return PermissionService(
        logger=DummyLogger(),
        console=console or RecordingConsole(),
        filesystem_service=filesystem or FileSystemService(DummyLogger(), RecordingConsole()),
        selinux_service=selinux,
        run_cmd=commands,
        which=which,
    )


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX modes only")
def test_fix_permissions_creates_dir_and_lists_modules(tmp_path):
    addons = tmp_path / "extra-addons"
    commands = FakeCommands()
    service = _service(commands, installed=())

    report = service.fix_permissions(str(addons))

    assert addons.is_dir()
    assert report.permissions_applied is True
    assert report.selinux_mode == SELinuxMode.DISABLED
    assert report.modules == []
    assert os.stat(addons).st_mode & 0o777 == 0o777
    assert commands.calls == []


def test_fix_permissions_reports_module_names(tmp_path):
    addons = tmp_path / "extra-addons"
    (addons / "sale_extra").mkdir(parents=True)
    (addons / "hr_custom").mkdir()
    (addons / "README.md").write_text("docs", encoding="utf-8")
    (addons / ".git").mkdir()
    console = RecordingConsole()

    report = _service(FakeCommands(), installed=(), console=console).fix_permissions(str(addons))

    assert report.modules == ["hr_custom", "sale_extra"]
    assert "Modules found: 2" in console.text


def test_mode_falls_back_to_sudo_chmod(tmp_path):
    commands = FakeCommands()
    service = _service(commands, filesystem=StubFilesystem(failing_paths=[str(tmp_path)]))

    assert service.apply_mode(str(tmp_path)) is True
    assert ["sudo", "chmod", "-R", "777", str(tmp_path)] in commands.calls


def test_mode_failure_prints_manual_remedy(tmp_path):
    commands = FakeCommands(failing=("chmod",))
    console = RecordingConsole()
    service = _service(
        commands,
        filesystem=StubFilesystem(failing_paths=[str(tmp_path)]),
        console=console,
    )

    report = service.fix_permissions(str(tmp_path))

    assert report.permissions_applied is False
    assert f"sudo chmod -R 777 {tmp_path}" in console.text


def test_enforcing_selinux_relabels_directory(tmp_path):
    commands = FakeCommands(selinux="Enforcing")

    report = _service(commands).fix_permissions(str(tmp_path))

    assert report.selinux_mode == SELinuxMode.ENFORCING
    assert report.selinux_labeled is True
    assert ["sudo", "chcon", "-Rt", "svirt_sandbox_file_t", str(tmp_path)] in commands.calls
    assert ["sudo", "setsebool", "-P", "container_manage_cgroup", "on"] in commands.calls


def test_failed_relabel_is_not_fatal(tmp_path):
    commands = FakeCommands(selinux="Enforcing", failing=("chcon", "setsebool"))
    console = RecordingConsole()

    report = _service(commands, console=console).fix_permissions(str(tmp_path))

    assert report.selinux_labeled is False
    assert "Could not apply SELinux context automatically" in console.text


def test_permissive_selinux_takes_no_action(tmp_path):
    commands = FakeCommands(selinux="Permissive")

    report = _service(commands).fix_permissions(str(tmp_path))

    assert report.selinux_mode == SELinuxMode.PERMISSIVE
    assert not any("chcon" in cmd for cmd in commands.calls)


def test_missing_getenforce_means_disabled():
    commands = FakeCommands(selinux="Enforcing")
    selinux = SELinuxService(logger=DummyLogger(), run_cmd=commands, which=lambda _name: False)

    assert selinux.get_mode() == SELinuxMode.DISABLED
    assert commands.calls == []


def test_initialize_addons_dir_only_acts_on_creation(tmp_path):
    addons = tmp_path / "extra-addons"
    commands = FakeCommands(selinux="Enforcing")
    service = _service(commands)

    assert service.initialize_addons_dir(str(addons)) is True
    assert any("chcon" in cmd for cmd in commands.calls)

    commands.calls.clear()
    assert service.initialize_addons_dir(str(addons)) is False
    assert commands.calls == []


def test_listing_failure_raises_stack_error(tmp_path):
    filesystem = FileSystemService(DummyLogger(), RecordingConsole())

    with pytest.raises(StackError, match="Could not list modules"):
        filesystem.list_module_dirs(str(tmp_path / "missing"))
