"""Registry account sources for TagWatch."""

from tagwatch.accounts.source import (
    AccountSource,
    FileAccountSource,
    ListerFactory,
    StaticAccountSource,
    parse_accounts,
)

__all__ = [
    "AccountSource",
    "FileAccountSource",
    "ListerFactory",
    "StaticAccountSource",
    "parse_accounts",
]
