import logging
import os

import click
from rich.logging import RichHandler

from .core import OdooStackManager, console
from .errors import AddonsListingError, DependencyError, StackError
from .registry import COMMANDS, Command, get_command
from .services.config_loader import ConfigLoader

logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(rich_tracebacks=True, show_level=False, show_path=False)],
)

# The only failures that end the process with exit code 1.
FATAL_ERRORS = (DependencyError, AddonsListingError)


def _configure_logging(verbose: bool, log_file):
    logger = logging.getLogger("odoostack")
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(logging.INFO)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
        file_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
        logger.addHandler(file_handler)


def _report_error(exc: StackError):
    if isinstance(exc, FATAL_ERRORS):
        raise click.ClickException(str(exc)) from exc
    console.print(f"[bold red]Error:[/bold red] {exc}")


def _dispatch(manager, command: Command, params):
    try:
        command.handler(manager, **params)
    except StackError as exc:
        _report_error(exc)


@click.group(invoke_without_command=True)
@click.option(
    "--project-dir",
    required=False,
    type=click.Path(file_okay=False),
    help="Deployment directory holding .env, Dockerfile and compose.yaml (default: cwd).",
)
@click.option(
    "--config",
    required=False,
    type=click.Path(),
    help="Path to a YAML options file. Defaults to .odoostack.yml in the project dir.",
)
@click.option("--verbose", is_flag=True, default=None, help="Enable verbose logging")
@click.option("--log-file", type=click.Path(), help="Path to log file")
@click.pass_context
def main(ctx, project_dir, config, verbose, log_file):
    """Deploy and operate an Odoo + PostgreSQL stack with Docker Compose."""
    project_dir = os.path.abspath(project_dir or os.getcwd())

    try:
        config_loader = ConfigLoader()
        config_values = config_loader.load(config_loader.resolve_path(project_dir, config))
        options = config_loader.build_options(
            config_values,
            verbose=verbose,
            log_file=log_file,
        )
    except StackError as exc:
        raise click.UsageError(str(exc)) from exc

    _configure_logging(options.verbose, options.log_file)

    try:
        os.makedirs(project_dir, exist_ok=True)
        manager = OdooStackManager(project_dir=project_dir, options=options)
    except (StackError, OSError) as exc:
        raise click.ClickException(str(exc)) from exc

    try:
        manager.prepare()
    except StackError as exc:
        _report_error(exc)
        ctx.exit(0)

    ctx.obj = manager
    if ctx.invoked_subcommand is None:
        _dispatch(manager, get_command("menu"), {})


def _build_subcommand(command: Command) -> click.Command:
    @click.pass_obj
    def callback(manager, **params):
        _dispatch(manager, command, params)

    return click.Command(
        name=command.name,
        callback=callback,
        params=list(command.params),
        help=command.help,
    )


for _command in COMMANDS:
    main.add_command(_build_subcommand(_command))


if __name__ == "__main__":
    main()
