"""Shared constants for odoostack."""

ENV_FILE = ".env"
DOCKERFILE = "Dockerfile"
COMPOSE_FILE = "compose.yaml"
ADDONS_DIR = "extra-addons"
CONFIG_FILE = ".odoostack.yml"

ODOO_SERVICE = "odoo"
DB_SERVICE = "db"
POSTGRES_IMAGE = "postgres:15"
ODOO_HTTP_PORT = 8069
CONTAINER_ADDONS_PATH = "/mnt/extra-addons"

# extra-addons is made world-writable; the odoo user inside the image is 101:101
ADDONS_MODE = 0o777

SELINUX_FILE_CONTEXT = "svirt_sandbox_file_t"
SELINUX_CONTAINER_BOOLEAN = "container_manage_cgroup"

READINESS_TIMEOUT = 60.0
READINESS_INTERVAL = 2.0
STATUS_CACHE_SECONDS = 2.0
QUERY_TIMEOUT = 30.0
TEST_HTTP_PORT = 8079

CLEAN_CONFIRMATION = "CONFIRM"
MANIFEST_FILES = ("__manifest__.py", "__openerp__.py")
