"""Configuration for the userdesk dashboard and console."""
from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Dict, Mapping, Optional

import yaml

DEFAULT_API_BASE_URL = "http://localhost:3000/users"


def _env_flag(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _parse_flag(value: object, default: bool) -> bool:
    if isinstance(value, str):
        return _env_flag(value, default)
    if value is None:
        return default
    return bool(value)


def _parse_float(name: str, value: object) -> float:
    try:
        parsed = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid value for {name}: {value!r}") from exc
    if parsed <= 0:
        raise ValueError(f"{name} must be positive")
    return parsed


def _parse_int(name: str, value: object) -> int:
    try:
        parsed = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid value for {name}: {value!r}") from exc
    if parsed <= 0:
        raise ValueError(f"{name} must be positive")
    return parsed


@dataclass(frozen=True)
class Settings:
    """Runtime settings for talking to the user directory."""

    api_base_url: str = DEFAULT_API_BASE_URL
    manager_id: str = "5"
    request_timeout: float = 10.0
    verify_tls: bool = True
    session_secret: Optional[str] = None
    session_ttl_minutes: int = 480

    @staticmethod
    def from_dict(data: Mapping[str, object]) -> "Settings":
        """Create :class:`Settings` from the parsed YAML document."""
        directory = data.get("directory") or {}
        dashboard = data.get("dashboard") or {}
        if not isinstance(directory, dict) or not isinstance(dashboard, dict):
            raise ValueError("The 'directory' and 'dashboard' sections must be mappings")

        defaults = Settings()
        secret = dashboard.get("session_secret")
        return Settings(
            api_base_url=str(directory.get("api_url", defaults.api_base_url)).strip(),
            manager_id=str(directory.get("manager_id", defaults.manager_id)).strip(),
            request_timeout=_parse_float(
                "request_timeout", directory.get("request_timeout", defaults.request_timeout)
            ),
            verify_tls=_parse_flag(directory.get("verify_tls"), defaults.verify_tls),
            session_secret=str(secret) if secret is not None else None,
            session_ttl_minutes=_parse_int(
                "session_ttl_minutes",
                dashboard.get("session_ttl_minutes", defaults.session_ttl_minutes),
            ),
        )

    def with_env(self, environ: Mapping[str, str]) -> "Settings":
        """Return a copy with ``USERDESK_*`` environment overrides applied."""
        overrides: Dict[str, object] = {}
        if environ.get("USERDESK_API_URL"):
            overrides["api_base_url"] = environ["USERDESK_API_URL"].strip()
        if environ.get("USERDESK_MANAGER_ID"):
            overrides["manager_id"] = environ["USERDESK_MANAGER_ID"].strip()
        if environ.get("USERDESK_REQUEST_TIMEOUT"):
            overrides["request_timeout"] = _parse_float(
                "USERDESK_REQUEST_TIMEOUT", environ["USERDESK_REQUEST_TIMEOUT"]
            )
        if "USERDESK_VERIFY_TLS" in environ:
            overrides["verify_tls"] = _env_flag(environ["USERDESK_VERIFY_TLS"], True)
        if environ.get("USERDESK_SESSION_SECRET"):
            overrides["session_secret"] = environ["USERDESK_SESSION_SECRET"]
        return replace(self, **overrides)


def resolve_config_path(env_value: Optional[str]) -> Path:
    """Resolve the path to the configuration file."""
    if env_value:
        return Path(env_value).expanduser().resolve(strict=False)
    return (Path(__file__).resolve().parent.parent / "config" / "userdesk.yaml").resolve(strict=False)


def load_settings(
    config_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Load settings from the YAML file (if present) and the environment."""
    if environ is None:
        environ = os.environ
    if config_path is None:
        config_path = resolve_config_path(environ.get("USERDESK_CONFIG"))

    settings = Settings()
    if config_path.exists():
        with config_path.open("r", encoding="utf-8") as handle:
            raw = yaml.safe_load(handle) or {}
        if not isinstance(raw, dict):
            raise ValueError(f"Configuration file {config_path} must contain a mapping")
        settings = Settings.from_dict(raw)

    return settings.with_env(environ)


__all__ = ["DEFAULT_API_BASE_URL", "Settings", "load_settings", "resolve_config_path"]
