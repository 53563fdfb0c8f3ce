"""Shared fixtures for TagWatch integration tests.

Wires the production components together (file account source, Registry v2
lister, SQLite snapshot cache, webhook emitter, monitor) with every HTTP
call answered by in-process fakes, so full poll cycles run without touching
a real registry or event consumer.
"""

from __future__ import annotations

import json
from collections.abc import AsyncIterator
from dataclasses import dataclass
from pathlib import Path

import httpx
import pytest

from tagwatch.accounts.source import FileAccountSource
from tagwatch.cache.sqlite import SqliteSnapshotCache
from tagwatch.models.images import RegistryAccount
from tagwatch.monitor.driver import TagMonitor
from tagwatch.notifications.webhook import WebhookEventEmitter
from tagwatch.registry.docker_v2 import DockerRegistryV2Lister

WEBHOOK_URL = "https://echo.example.com/webhooks/docker"

# ---------------------------------------------------------------------------
# Fake registries
# ---------------------------------------------------------------------------


class RegistryFarm:
    """Serves the Registry v2 API for several hosts.

    ``images[host][repository][tag]`` holds the digest a tag currently
    points at.  Hosts in ``down`` answer every request with 503; tags in
    ``broken_manifests`` (``host/repo:tag``) fail their manifest request.
    """

    def __init__(self) -> None:
        self.images: dict[str, dict[str, dict[str, str]]] = {}
        self.down: set[str] = set()
        self.broken_manifests: set[str] = set()

    def push(self, host: str, repository: str, tag: str, digest: str) -> None:
        self.images.setdefault(host, {}).setdefault(repository, {})[tag] = digest

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        host = request.url.netloc.decode()
        if host in self.down:
            return httpx.Response(503)
        repos = self.images.get(host, {})
        path = request.url.path
        if path == "/v2/_catalog":
            return httpx.Response(200, json={"repositories": sorted(repos)})
        if path.endswith("/tags/list"):
            repo = path[len("/v2/") : -len("/tags/list")]
            if repo not in repos:
                return httpx.Response(404)
            return httpx.Response(200, json={"name": repo, "tags": sorted(repos[repo])})
        if "/manifests/" in path:
            repo, tag = path[len("/v2/") :].split("/manifests/")
            if f"{host}/{repo}:{tag}" in self.broken_manifests or tag not in repos.get(repo, {}):
                return httpx.Response(500)
            return httpx.Response(200, headers={"Docker-Content-Digest": repos[repo][tag]})
        return httpx.Response(404)


class WebhookSink:
    """Collects webhook payloads; can be told to reject deliveries."""

    def __init__(self) -> None:
        self.payloads: list[dict[str, object]] = []
        self.reject = False

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        if self.reject:
            return httpx.Response(502)
        self.payloads.append(json.loads(request.content))
        return httpx.Response(200)

    def contents(self) -> list[dict[str, object]]:
        return [p["content"] for p in self.payloads]  # type: ignore[misc]


# ---------------------------------------------------------------------------
# Stack
# ---------------------------------------------------------------------------


@dataclass
class Stack:
    monitor: TagMonitor
    cache: SqliteSnapshotCache
    accounts: FileAccountSource
    emitter: WebhookEventEmitter
    farm: RegistryFarm
    sink: WebhookSink
    accounts_file: Path
    cache_file: Path

    def write_accounts(self, accounts: list[dict[str, object]]) -> None:
        self.accounts_file.write_text(json.dumps({"accounts": accounts}), encoding="utf-8")

    async def close(self) -> None:
        await self.accounts.close()
        await self.emitter.close()
        await self.cache.close()


def build_stack(tmp_path: Path, farm: RegistryFarm, sink: WebhookSink) -> Stack:
    accounts_file = tmp_path / "accounts.json"
    if not accounts_file.exists():
        accounts_file.write_text(json.dumps({"accounts": []}), encoding="utf-8")
    cache_file = tmp_path / "snapshots.db"

    def _lister_factory(account: RegistryAccount) -> DockerRegistryV2Lister:
        return DockerRegistryV2Lister(account, transport=farm.transport())

    accounts = FileAccountSource(accounts_file, lister_factory=_lister_factory)
    cache = SqliteSnapshotCache(cache_file)
    emitter = WebhookEventEmitter(WEBHOOK_URL, transport=sink.transport())
    monitor = TagMonitor(accounts, cache, emitter, account_concurrency=2, image_concurrency=4)
    return Stack(
        monitor=monitor,
        cache=cache,
        accounts=accounts,
        emitter=emitter,
        farm=farm,
        sink=sink,
        accounts_file=accounts_file,
        cache_file=cache_file,
    )


@pytest.fixture
def farm() -> RegistryFarm:
    return RegistryFarm()


@pytest.fixture
def sink() -> WebhookSink:
    return WebhookSink()


@pytest.fixture
async def stack(tmp_path: Path, farm: RegistryFarm, sink: WebhookSink) -> AsyncIterator[Stack]:
    s = build_stack(tmp_path, farm, sink)
    yield s
    await s.close()
