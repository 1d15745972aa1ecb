"""
odoostack - Docker Compose deployment manager for Odoo
"""

__version__ = "0.3.0"

from .core import OdooStackManager
from .errors import StackError

__all__ = ["OdooStackManager", "StackError"]
