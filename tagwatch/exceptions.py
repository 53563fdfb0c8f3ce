"""Exception hierarchy for TagWatch.

Every error raised by TagWatch code derives from ``TagWatchError`` so the
poll driver can contain failures at the account boundary without catching
unrelated programming errors by name.
"""

from __future__ import annotations


class TagWatchError(Exception):
    """Base class for all TagWatch errors."""


class ConfigError(TagWatchError):
    """Raised when service configuration is invalid."""


class AccountConfigError(ConfigError):
    """Raised when the registry account definitions cannot be loaded."""


class RegistryError(TagWatchError):
    """Raised when a registry cannot be listed for an account."""

    def __init__(self, account: str, message: str) -> None:
        super().__init__(f"[{account}] {message}")
        self.account = account


class CacheError(TagWatchError):
    """Raised when the snapshot cache cannot be read or written."""


class EmitError(TagWatchError):
    """Raised when a change event could not be delivered downstream."""
