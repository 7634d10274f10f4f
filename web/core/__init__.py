"""
Core functionality: configuration and repository construction.
"""

from .config import Settings, get_settings, reset_settings
from .repository import build_backend, build_repository, get_repository, close_repository

__all__ = [
    "Settings",
    "get_settings",
    "reset_settings",
    "build_backend",
    "build_repository",
    "get_repository",
    "close_repository",
]
