"""REST API layer for TagWatch.

Exposes:
    create_app -- FastAPI application factory.
    build_app  -- Alias for create_app (used by tagwatch.app bootstrap).
"""

from tagwatch.api.app import create_app

build_app = create_app

__all__ = ["build_app", "create_app"]
