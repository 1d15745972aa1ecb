import os

import pytest
import yaml

from odoostack.errors import StackError
from odoostack.models import DeploymentConfig, ProjectPaths
from odoostack.services.env_loader import EnvLoader
from odoostack.services.materializer import ConfigMaterializer


class DummyLogger:
    def debug(self, *_args, **_kwargs):
        return None


class DummyConsole:
    def print(self, *_args, **_kwargs):
        return None


class RecordingPermissions:
    def __init__(self):
        self.calls = []

    def initialize_addons_dir(self, path):
        self.calls.append(path)
        if os.path.isdir(path):
            return False
        os.makedirs(path)
        return True


def _materializer(tmp_path, permissions=None):
    return ConfigMaterializer(
        paths=ProjectPaths(root=str(tmp_path)),
        env_loader=EnvLoader(DummyLogger()),
        permission_service=permissions or RecordingPermissions(),
        logger=DummyLogger(),
        console=DummyConsole(),
    )


def _snapshot(tmp_path):
    return {
        name: (tmp_path / name).read_bytes() for name in (".env", "Dockerfile", "compose.yaml")
    }


def test_ensure_config_creates_all_artifacts(tmp_path):
    permissions = RecordingPermissions()
    config = _materializer(tmp_path, permissions).ensure_config()

    assert config == DeploymentConfig()
    assert (tmp_path / ".env").exists()
    assert (tmp_path / "Dockerfile").exists()
    assert (tmp_path / "compose.yaml").exists()
    assert (tmp_path / "extra-addons").is_dir()
    assert permissions.calls == [str(tmp_path / "extra-addons")]


def test_ensure_config_is_idempotent(tmp_path):
    materializer = _materializer(tmp_path)
    materializer.ensure_config()
    first = _snapshot(tmp_path)
    first_mtimes = {name: (tmp_path / name).stat().st_mtime_ns for name in first}

    materializer.ensure_config()

    assert _snapshot(tmp_path) == first
    assert {name: (tmp_path / name).stat().st_mtime_ns for name in first} == first_mtimes


def test_manual_edits_are_preserved_unless_forced(tmp_path):
    materializer = _materializer(tmp_path)
    materializer.ensure_config()
    (tmp_path / "Dockerfile").write_text("FROM odoo:custom\n", encoding="utf-8")
    (tmp_path / "compose.yaml").write_text("services: {}\n", encoding="utf-8")

    config = materializer.ensure_config()
    assert (tmp_path / "Dockerfile").read_text(encoding="utf-8") == "FROM odoo:custom\n"
    assert (tmp_path / "compose.yaml").read_text(encoding="utf-8") == "services: {}\n"

    materializer.ensure_dockerfile(config, force=True)
    assert (tmp_path / "Dockerfile").read_text(encoding="utf-8").startswith("FROM odoo:18\n")
    assert (tmp_path / "compose.yaml").read_text(encoding="utf-8") == "services: {}\n"


def test_dockerfile_lists_apt_packages_in_input_order(tmp_path):
    config = DeploymentConfig(odoo_version="17.0", apt_packages=("git", "curl"))

    content = _materializer(tmp_path).build_dockerfile(config)
    lines = content.splitlines()

    assert lines[0] == "FROM odoo:17.0"
    install = lines.index("RUN apt-get update && apt-get install -y \\")
    assert lines[install + 1] == "    git \\"
    assert lines[install + 2] == "    curl \\"
    assert lines[install + 3] == "    && apt-get clean && rm -rf /var/lib/apt/lists/*"
    assert lines.index("USER root") < install < lines.index("USER odoo")
    assert "# No additional Python packages configured" in lines


def test_dockerfile_pip_install_formats(tmp_path):
    materializer = _materializer(tmp_path)

    single = materializer.build_dockerfile(DeploymentConfig(pip_packages=("pandas",)))
    assert "RUN pip3 install --no-cache-dir --break-system-packages pandas\n" in single
    assert "# No additional APT packages configured" in single

    several = materializer.build_dockerfile(
        DeploymentConfig(pip_packages=("pandas", "xlrd", "zeep"))
    ).splitlines()
    start = several.index("RUN pip3 install --no-cache-dir --break-system-packages \\")
    assert several[start + 1 : start + 4] == ["    pandas \\", "    xlrd \\", "    zeep"]
    assert several.index("USER odoo") < start


def test_compose_declares_db_and_odoo_services(tmp_path):
    config = DeploymentConfig(
        odoo_port=9069, postgres_user="admin", postgres_password="p@ss: word", postgres_db="main"
    )

    compose = yaml.safe_load(_materializer(tmp_path).build_compose(config))

    db = compose["services"]["db"]
    assert db["image"] == "postgres:15"
    assert db["environment"] == {
        "POSTGRES_USER": "admin",
        "POSTGRES_PASSWORD": "p@ss: word",
        "POSTGRES_DB": "main",
    }
    assert db["healthcheck"]["test"] == ["CMD-SHELL", "pg_isready -U admin"]
    assert "db_data:/var/lib/postgresql/data" in db["volumes"]

    odoo = compose["services"]["odoo"]
    assert odoo["build"] == {"context": ".", "dockerfile": "Dockerfile"}
    assert odoo["depends_on"] == {"db": {"condition": "service_healthy"}}
    assert odoo["ports"] == ["9069:8069"]
    assert "./extra-addons:/mnt/extra-addons:rw" in odoo["volumes"]
    assert "odoo_data:/var/lib/odoo" in odoo["volumes"]
    assert "PASSWORD=p@ss: word" in odoo["environment"]

    assert set(compose["volumes"]) == {"db_data", "odoo_data"}


def test_write_failure_is_reported_as_stack_error(tmp_path):
    (tmp_path / "Dockerfile").mkdir()

    with pytest.raises(StackError, match="Could not write"):
        _materializer(tmp_path).ensure_dockerfile(DeploymentConfig(), force=True)
