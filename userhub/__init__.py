"""REST API for users persisted by an external data service."""

from __future__ import annotations

from typing import Any

from .config import Settings, load_settings
from .models import CreateUserDto, UpdateUserDto, User
from .proxy import DataServiceProxy


def create_app(*args: Any, **kwargs: Any):
    """Factory function that returns the user API application."""

    from .api import create_app as _create_app

    return _create_app(*args, **kwargs)


__all__ = [
    "CreateUserDto",
    "DataServiceProxy",
    "Settings",
    "UpdateUserDto",
    "User",
    "create_app",
    "load_settings",
]
