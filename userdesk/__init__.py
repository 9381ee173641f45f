"""Dashboard and console for managing users held by an external directory."""

from __future__ import annotations

from typing import Any

from .client import (
    AuthorizationError,
    DirectoryError,
    NetworkError,
    RequestError,
    UserDirectoryClient,
    ValidationError,
)
from .identity import DEFAULT_IDENTITY, resolve_identity


def create_app(*args: Any, **kwargs: Any):
    """Factory function that returns the dashboard web application."""

    from .web import create_app as _create_app

    return _create_app(*args, **kwargs)


__all__ = [
    "AuthorizationError",
    "DEFAULT_IDENTITY",
    "DirectoryError",
    "NetworkError",
    "RequestError",
    "UserDirectoryClient",
    "ValidationError",
    "create_app",
    "resolve_identity",
]
