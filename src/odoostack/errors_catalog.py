"""Actionable error catalog for odoostack."""

from typing import Dict

_ERROR_MESSAGES: Dict[str, Dict[str, str]] = {
    "docker_missing": {
        "what": "Docker is not installed.",
        "next": "Install it from https://docs.docker.com/get-docker/ and try again.",
    },
    "compose_missing": {
        "what": "Docker Compose is not available.",
        "next": "Install the Docker Compose v2 plugin (`docker compose`).",
    },
    "daemon_unreachable": {
        "what": "The Docker daemon is not reachable: {detail}",
        "next": "Start the Docker service (e.g. `sudo systemctl start docker`) and retry.",
    },
    "docker_access_denied": {
        "what": "Permission denied while talking to the Docker daemon.",
        "next": "Add your user to the `docker` group (`sudo usermod -aG docker $USER`) "
        "and log in again.",
    },
    "invalid_env_line": {
        "what": "Invalid line {line} in {path}: expected KEY=VALUE.",
        "next": "Fix or comment out the line with `#`.",
    },
    "invalid_port": {
        "what": "ODOO_PORT must be a port number between 1 and 65535, got `{value}`.",
        "next": "Edit ODOO_PORT in .env.",
    },
    "lifecycle_failed": {
        "what": "Could not {action} the Odoo stack.",
        "next": "If this is a permission issue, run `odoostack fix-permissions`.",
    },
    "stack_not_running": {
        "what": "The stack must be running to {action}.",
        "next": "Run `odoostack start` first.",
    },
    "addons_listing_failed": {
        "what": "Could not list modules in {path}: {detail}",
        "next": "Check the directory permissions or run the command with sudo.",
    },
    "createdb_failed": {
        "what": "Could not create the scratch database {database}.",
        "next": "If this is a permission issue, run `odoostack fix-permissions`.",
    },
    "no_test_modules": {
        "what": "No modules to test were given and none were found in {path}.",
        "next": "Pass module names, e.g. `odoostack test my_module,other_module`.",
    },
}


def actionable_error(code: str, **kwargs: str) -> str:
    if code not in _ERROR_MESSAGES:
        raise KeyError(f"Unknown error catalog key: {code}")

    template = _ERROR_MESSAGES[code]
    what = template["what"].format(**kwargs)
    next_step = template["next"].format(**kwargs)
    return f"{what} Suggested action: {next_step}"
