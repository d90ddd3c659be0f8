"""
Dockwatch core infrastructure: settings and logging.
"""

from .config import DockwatchSettings, get_settings, reset_settings
from .logging import get_logger

__all__ = [
    "DockwatchSettings",
    "get_logger",
    "get_settings",
    "reset_settings",
]
