"""TagWatch command-line interface.

Exposes:
    cli -- Click group entry point (registered as ``tagwatch`` script).
"""

from tagwatch.cli.main import cli

__all__ = ["cli"]
