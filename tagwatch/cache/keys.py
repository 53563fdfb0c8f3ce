"""Image key derivation.

An image key identifies one (account, registry, repository, tag) tuple in
the snapshot cache and de-duplicates observations within a poll cycle.

Layout::

    tagwatch:images:<account>:<registry>:<repository>:<tag>

Each component is percent-encoded with no safe characters, so ``:`` and
``%`` never appear unescaped inside a component and the encoding is
reversible.  Keys are therefore equal exactly when all four components are
equal.
"""

from __future__ import annotations

from urllib.parse import quote, unquote

KEY_PREFIX = "tagwatch:images:"
_SEP = ":"
_FIELDS = 4


def _encode(part: str) -> str:
    return quote(part, safe="", errors="surrogatepass")


def _decode(part: str) -> str:
    return unquote(part, errors="surrogatepass")


def make_key(account: str, registry: str, repository: str, tag: str) -> str:
    """Return the cache key for a tagged image."""
    return KEY_PREFIX + _SEP.join(_encode(p) for p in (account, registry, repository, tag))


def account_prefix(account: str) -> str:
    """Return the prefix shared by every key belonging to *account*."""
    return KEY_PREFIX + _encode(account) + _SEP


def parse_key(key: str) -> tuple[str, str, str, str]:
    """Split a key produced by make_key back into its components.

    Raises:
        ValueError: if *key* was not produced by make_key.
    """
    if not key.startswith(KEY_PREFIX):
        raise ValueError(f"Not an image key: {key!r}")
    parts = key[len(KEY_PREFIX) :].split(_SEP)
    if len(parts) != _FIELDS:
        raise ValueError(f"Image key must have {_FIELDS} components: {key!r}")
    account, registry, repository, tag = (_decode(p) for p in parts)
    return account, registry, repository, tag
