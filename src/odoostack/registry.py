"""Command registry shared by the CLI subcommands and the interactive menu."""

from dataclasses import dataclass
from typing import Callable, FrozenSet, List, Optional, Sequence, Tuple

import click

from .models import StackState
from .services.test_runner import parse_module_list

RUNNING = frozenset({StackState.RUNNING})
IDLE = frozenset({StackState.STOPPED, StackState.NOT_CREATED})
ALWAYS = RUNNING | IDLE


@dataclass(frozen=True)
class Command:
    """One lifecycle action; `menu_states` lists the states in which the menu offers it."""

    name: str
    label: str
    icon: str
    help: str
    handler: Callable[..., object]
    menu_states: FrozenSet[StackState] = frozenset()
    pause: bool = True
    params: Tuple[click.Parameter, ...] = ()


def _run_tests(manager, modules: Sequence[str] = ()):
    return manager.run_tests(parse_module_list(modules))


def _clean(manager, confirm: Optional[str] = None):
    return manager.clean(confirmation=confirm)


def _shell(manager, database: Optional[str] = None):
    return manager.shell(database=database)


COMMANDS: Tuple[Command, ...] = (
    Command(
        "start",
        "Start services",
        "🚀",
        "Start Odoo services",
        lambda manager: manager.start(),
        menu_states=IDLE,
    ),
    Command(
        "stop",
        "Stop services",
        "🛑",
        "Stop Odoo services",
        lambda manager: manager.stop(),
        menu_states=RUNNING,
    ),
    Command(
        "restart",
        "Restart services",
        "🔄",
        "Restart Odoo services",
        lambda manager: manager.restart(),
        menu_states=RUNNING,
    ),
    Command(
        "rebuild",
        "Rebuild image",
        "🔨",
        "Regenerate the Dockerfile and rebuild the custom image",
        lambda manager: manager.rebuild(),
        menu_states=ALWAYS,
    ),
    Command(
        "logs",
        "View real-time logs",
        "📋",
        "Show real-time Odoo logs",
        lambda manager: manager.logs(),
        menu_states=RUNNING,
        pause=False,
    ),
    Command(
        "fix-permissions",
        "Fix permissions (SELinux/Docker)",
        "🔧",
        "Fix extra-addons permission and SELinux issues",
        lambda manager: manager.fix_permissions(),
        menu_states=ALWAYS,
    ),
    Command(
        "clean",
        "Clean all data",
        "🗑️",
        "Delete containers and ALL data volumes",
        _clean,
        menu_states=IDLE,
        params=(
            click.Option(
                ["--confirm"],
                default=None,
                help="Pass CONFIRM to skip the interactive confirmation.",
            ),
        ),
    ),
    Command(
        "help",
        "Show help",
        "📖",
        "Show help and the current configuration",
        lambda manager: manager.show_help(),
        menu_states=ALWAYS,
    ),
    Command(
        "shell",
        "Open Odoo shell",
        "🐚",
        "Open an Odoo shell inside the running container",
        _shell,
        menu_states=RUNNING,
        params=(click.Option(["-d", "--database"], default=None, help="Database to open."),),
    ),
    Command(
        "test",
        "Run module tests",
        "🧪",
        "Run module tests on a scratch database (MODULES: comma separated)",
        _run_tests,
        menu_states=RUNNING,
        params=(click.Argument(["modules"], nargs=-1),),
    ),
    Command(
        "status",
        "Show status",
        "📊",
        "Show stack status",
        lambda manager: manager.show_status(),
    ),
    Command(
        "menu",
        "Interactive menu",
        "🐋",
        "Start the interactive menu",
        lambda manager: manager.interactive_menu(),
        pause=False,
    ),
)

_COMMANDS_BY_NAME = {command.name: command for command in COMMANDS}


def get_command(name: str) -> Command:
    return _COMMANDS_BY_NAME[name]


def menu_commands(state: StackState) -> List[Command]:
    return [command for command in COMMANDS if state in command.menu_states]


def resolve_menu_choice(choice: str, commands: Sequence[Command]) -> Optional[Command]:
    """Maps a 1-based menu number to its command; None for anything else."""
    choice = (choice or "").strip()
    if not choice.isdigit():
        return None
    index = int(choice)
    if 1 <= index <= len(commands):
        return commands[index - 1]
    return None
