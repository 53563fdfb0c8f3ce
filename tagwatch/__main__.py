"""Entry point for `python -m tagwatch`.

Usage:
    python -m tagwatch
    uv run python -m tagwatch
"""

from __future__ import annotations

import asyncio

from tagwatch.app import main

asyncio.run(main())
