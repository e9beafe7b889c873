from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]

_TRUTHY = ("1", "true", "yes", "on")
_FALSY = ("0", "false", "no", "off")


def _getenv(name: str, default: str) -> str:
    # Centralize env access so type casting and required vars live in one place
    return os.environ.get(name, default).strip()


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.lower()
    if value in _TRUTHY:
        return True
    if value in _FALSY:
        return False
    raise ValueError(f"{name} must be true|false (got {raw!r})")


def _normalize_base_url(url: str) -> str:
    return url.rstrip("/")


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    local_base_url: str
    server_base_url: str | None
    users_api_timeout_seconds: float
    toast_duration_ms: int

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"

    @property
    def users_api_base_url(self) -> str:
        """Upstream users API root for the current deployment mode.

        Development talks to a locally running API; every other mode
        talks to the deployed one.
        """
        if self.is_dev:
            return self.local_base_url
        if not self.server_base_url:
            raise ValueError(
                f"SERVER_BASE_URL must be set when APP_ENV={self.app_env}"
            )
        return self.server_base_url


def load_settings() -> Settings:
    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()
    log_json_raw = _getenv("LOG_JSON", "false")
    port_raw = _getenv("PORT", "8000")
    timeout_raw = _getenv("USERS_API_TIMEOUT_SECONDS", "10")
    toast_raw = _getenv("TOAST_DURATION_MS", "3000")

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    log_json = _parse_bool("LOG_JSON", log_json_raw)

    try:
        port = int(port_raw)
    except ValueError:
        raise ValueError(f"PORT must be an integer (got {port_raw!r})") from None

    try:
        timeout = float(timeout_raw)
    except ValueError:
        raise ValueError(
            f"USERS_API_TIMEOUT_SECONDS must be a number (got {timeout_raw!r})"
        ) from None
    if timeout <= 0:
        raise ValueError(
            f"USERS_API_TIMEOUT_SECONDS must be positive (got {timeout_raw!r})"
        )

    try:
        toast_duration_ms = int(toast_raw)
    except ValueError:
        raise ValueError(
            f"TOAST_DURATION_MS must be an integer (got {toast_raw!r})"
        ) from None
    if toast_duration_ms <= 0:
        raise ValueError(f"TOAST_DURATION_MS must be positive (got {toast_raw!r})")

    local_base_url = _normalize_base_url(
        _getenv("LOCAL_BASE_URL", "http://localhost:5000")
    )
    server_base_url = _normalize_base_url(_getenv("SERVER_BASE_URL", "")) or None

    if app_env_raw != "dev" and server_base_url is None:
        raise ValueError(f"SERVER_BASE_URL must be set when APP_ENV={app_env_raw}")

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=log_json,
        port=port,
        local_base_url=local_base_url,
        server_base_url=server_base_url,
        users_api_timeout_seconds=timeout,
        toast_duration_ms=toast_duration_ms,
    )


# Module-level singleton so imports are cheap
SETTINGS = load_settings()
