"""Filesystem helpers for odoostack."""

import logging
import os
import sys
from typing import List

from rich.console import Console

from odoostack.errors import AddonsListingError
from odoostack.errors_catalog import actionable_error


class FileSystemService:
    """Encapsulates extra-addons directory side effects."""

    def __init__(self, logger: logging.Logger, console: Console):
        self.logger = logger
        self.console = console

    def ensure_dir(self, path: str) -> bool:
        """Creates the directory when missing. Returns True when it was created."""
        if os.path.isdir(path):
            return False
        os.makedirs(path, exist_ok=True)
        self.logger.debug("Created directory: %s", path)
        return True

    def set_permissions(self, path: str, mode: int) -> bool:
        if sys.platform == "win32":
            return True

        try:
            os.chmod(path, mode)
        except OSError as exc:
            self.logger.debug("Could not set permissions on %s: %s", path, exc)
            return False
        return True

    def set_tree_permissions(self, root: str, mode: int) -> List[str]:
        """Applies `mode` to root and everything below it. Returns the paths that failed."""
        if sys.platform == "win32" or not os.path.exists(root):
            return []

        failed = []
        if not self.set_permissions(root, mode):
            failed.append(root)
        for current_root, dirs, files in os.walk(root):
            for name in dirs + files:
                path = os.path.join(current_root, name)
                if not self.set_permissions(path, mode):
                    failed.append(path)
        return failed

    def list_module_dirs(self, root: str) -> List[str]:
        try:
            entries = os.listdir(root)
        except OSError as exc:
            raise AddonsListingError(
                actionable_error("addons_listing_failed", path=root, detail=str(exc))
            ) from exc

        return sorted(
            entry
            for entry in entries
            if not entry.startswith(".") and os.path.isdir(os.path.join(root, entry))
        )
