"""HTTP reachability probe for the Odoo web interface."""

import requests
from packaging import version
from packaging.version import InvalidVersion


class WebProbeService:
    """Checks that Odoo answers HTTP on the published port."""

    HEALTH_PATH = "/web/health"
    LEGACY_PATH = "/web/login"
    HEALTH_SINCE_MAJOR = 16

    def __init__(self, logger, requests_module=requests, timeout: float = 5.0):
        self.logger = logger
        self.requests = requests_module
        self.timeout = timeout

    def probe_path(self, odoo_version: str) -> str:
        try:
            parsed = version.parse(odoo_version)
        except InvalidVersion:
            # tags such as "latest" track the newest release
            return self.HEALTH_PATH
        if parsed.major >= self.HEALTH_SINCE_MAJOR:
            return self.HEALTH_PATH
        return self.LEGACY_PATH

    def web_url(self, port: int, host: str = "localhost") -> str:
        return f"http://{host}:{port}"

    def probe(self, port: int, odoo_version: str, host: str = "localhost") -> bool:
        url = f"{self.web_url(port, host)}{self.probe_path(odoo_version)}"
        try:
            response = self.requests.get(url, timeout=self.timeout, allow_redirects=True)
        except requests.RequestException as exc:
            self.logger.debug("Web probe failed for %s: %s", url, exc)
            return False

        try:
            response.raise_for_status()
        except requests.RequestException as exc:
            self.logger.debug("Web probe got an error response from %s: %s", url, exc)
            return False
        finally:
            response.close()
        return True
