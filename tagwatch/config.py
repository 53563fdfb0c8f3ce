"""Configuration loading from environment variables."""

from __future__ import annotations

import os

from tagwatch.models.config import (
    AccountsConfig,
    APIConfig,
    CacheConfig,
    LogConfig,
    MonitorConfig,
    NotificationConfig,
    RegistryConfig,
    TagWatchConfig,
)

_CACHE_BACKENDS = {"memory", "sqlite"}


def _env(key: str, default: str = "") -> str:
    return os.environ.get(f"TAGWATCH_{key}", default)


def _env_bool(key: str, default: bool = False) -> bool:
    val = _env(key, str(default).lower())
    return val.lower() in ("true", "1", "yes")


def _env_int(key: str, default: int, min_val: int | None = None, max_val: int | None = None) -> int:
    val = int(_env(key, str(default)))
    if min_val is not None:
        val = max(val, min_val)
    if max_val is not None:
        val = min(val, max_val)
    return val


def _validate_log_level(value: str) -> str:
    valid = {"debug", "info", "warning", "error"}
    if value.lower() not in valid:
        raise ValueError(f"Invalid log level: {value}. Must be one of {valid}")
    return value.lower()


def _validate_cache_backend(value: str) -> str:
    if value.lower() not in _CACHE_BACKENDS:
        raise ValueError(f"Invalid cache backend: {value}. Must be one of {_CACHE_BACKENDS}")
    return value.lower()


def load_config() -> TagWatchConfig:
    """Load configuration from TAGWATCH_* environment variables."""
    return TagWatchConfig(
        monitor=MonitorConfig(
            poll_interval_seconds=_env_int("POLL_INTERVAL_SECONDS", 60, min_val=10, max_val=3600),
            account_concurrency=_env_int("MONITOR_ACCOUNT_CONCURRENCY", 4, min_val=1, max_val=32),
            image_concurrency=_env_int("MONITOR_IMAGE_CONCURRENCY", 16, min_val=1, max_val=128),
        ),
        accounts=AccountsConfig(
            file=_env("ACCOUNTS_FILE", "accounts.json"),
        ),
        registry=RegistryConfig(
            timeout_seconds=_env_int("REGISTRY_TIMEOUT", 15, min_val=1, max_val=120),
        ),
        cache=CacheConfig(
            backend=_validate_cache_backend(_env("CACHE_BACKEND", "memory")),
            path=_env("CACHE_PATH", "tagwatch.db"),
        ),
        notifications=NotificationConfig(
            webhook_secret_ref=_env("NOTIFICATIONS_WEBHOOK_SECRET_REF", ""),
        ),
        api=APIConfig(
            enabled=_env_bool("API_ENABLED", True),
            port=_env_int("API_PORT", 8080, min_val=1024, max_val=65535),
        ),
        log=LogConfig(
            level=_validate_log_level(_env("LOG_LEVEL", "info")),
        ),
    )
