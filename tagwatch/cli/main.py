"""``tagwatch`` command-line interface."""

from __future__ import annotations

import asyncio
import json

import click

from tagwatch.cache.keys import make_key
from tagwatch.models.config import TagWatchConfig
from tagwatch.models.results import PollResult


@click.group()
@click.version_option(package_name="tagwatch")
def cli() -> None:
    """Container registry tag change monitor."""


@cli.command()
def run() -> None:
    """Run the polling service until SIGTERM/SIGINT."""
    from tagwatch.app import main

    asyncio.run(main())


@cli.command()
@click.option("--pretty/--compact", default=True, help="Indent the JSON summary.")
def poll(pretty: bool) -> None:
    """Run a single poll cycle and print its summary as JSON.

    Exits with status 1 when any account failed to poll.
    """
    from tagwatch.config import load_config
    from tagwatch.observability.logging import setup_logging

    config = load_config()
    setup_logging(config.log.level)
    result = asyncio.run(_poll_once(config))
    click.echo(json.dumps(result.to_dict(), indent=2 if pretty else None))
    if result.failed_accounts:
        raise SystemExit(1)


async def _poll_once(config: TagWatchConfig) -> PollResult:
    from tagwatch.app import build_monitor

    monitor, cache, emitter, accounts = build_monitor(config)
    try:
        return await monitor.poll_once()
    finally:
        await accounts.close()
        if emitter is not None:
            await emitter.close()
        await cache.close()


@cli.command()
@click.argument("account")
@click.argument("registry")
@click.argument("repository")
@click.argument("tag")
def key(account: str, registry: str, repository: str, tag: str) -> None:
    """Print the snapshot cache key for an image tag."""
    click.echo(make_key(account, registry, repository, tag))
