"""Configuration data structures."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class MonitorConfig:
    """Poll driver and reconciler configuration."""

    poll_interval_seconds: int = 60
    account_concurrency: int = 4
    image_concurrency: int = 16


@dataclass
class AccountsConfig:
    """Registry account source configuration."""

    file: str = "accounts.json"


@dataclass
class RegistryConfig:
    """Registry HTTP client configuration."""

    timeout_seconds: int = 15


@dataclass
class CacheConfig:
    """Snapshot cache configuration."""

    backend: str = "memory"
    path: str = "tagwatch.db"


@dataclass
class NotificationConfig:
    """Event emitter configuration."""

    webhook_secret_ref: str = ""


@dataclass
class APIConfig:
    """REST API configuration."""

    enabled: bool = True
    port: int = 8080


@dataclass
class LogConfig:
    """Logging configuration."""

    level: str = "info"


@dataclass
class TagWatchConfig:
    """Top-level TagWatch configuration."""

    monitor: MonitorConfig = field(default_factory=MonitorConfig)
    accounts: AccountsConfig = field(default_factory=AccountsConfig)
    registry: RegistryConfig = field(default_factory=RegistryConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    notifications: NotificationConfig = field(default_factory=NotificationConfig)
    api: APIConfig = field(default_factory=APIConfig)
    log: LogConfig = field(default_factory=LogConfig)
