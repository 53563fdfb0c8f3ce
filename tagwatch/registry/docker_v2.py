"""Docker Registry HTTP API v2 lister.

Repositories come from the account's explicit list or from
``GET /v2/_catalog``; tags from ``GET /v2/<name>/tags/list``.  Both endpoints
are paginated through RFC 5988 ``Link: <...>; rel="next"`` headers.

When the account tracks digests, each tag's manifest digest is read with
``HEAD /v2/<name>/manifests/<tag>`` from the ``Docker-Content-Digest``
response header.  Manifest failures yield ``digest=None`` for that image
rather than failing the account.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from typing import Any

import httpx
import structlog

from tagwatch.concurrency import run_all
from tagwatch.exceptions import RegistryError
from tagwatch.models.images import RegistryAccount, TaggedImage
from tagwatch.registry.base import RegistryLister

_log = structlog.get_logger(component="registry.docker_v2")

_PAGE_SIZE = 100
_DIGEST_HEADER = "Docker-Content-Digest"
_MANIFEST_ACCEPT = ", ".join(
    [
        "application/vnd.docker.distribution.manifest.list.v2+json",
        "application/vnd.oci.image.index.v1+json",
        "application/vnd.docker.distribution.manifest.v2+json",
        "application/vnd.oci.image.manifest.v1+json",
    ]
)


class DockerRegistryV2Lister(RegistryLister):
    """Lists tags and digests of one registry account.

    Args:
        account:         Account whose ``address`` is the registry base URL.
        timeout:         HTTP timeout in seconds. Defaults to 15.
        max_concurrency: Parallel tag/manifest requests. Defaults to 8.
        transport:       Optional httpx transport (tests use MockTransport).
    """

    def __init__(
        self,
        account: RegistryAccount,
        timeout: float = 15.0,
        max_concurrency: int = 8,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=account.address,
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )
        self._semaphore = asyncio.Semaphore(max_concurrency)

    async def list_images(self, account: RegistryAccount) -> list[TaggedImage]:
        repositories = list(account.repositories) or await self._catalog(account)
        per_repo = await run_all(self._images_for_repository(account, repo) for repo in repositories)
        return [image for images in per_repo for image in images]

    async def close(self) -> None:
        await self._client.aclose()

    async def _images_for_repository(self, account: RegistryAccount, repository: str) -> list[TaggedImage]:
        tags = await self._tags(account, repository)
        if account.track_digests:
            digests: list[str | None] = await run_all(self._digest(account, repository, tag) for tag in tags)
        else:
            digests = [None] * len(tags)
        return [
            TaggedImage(
                account=account.name,
                registry=account.registry,
                repository=repository,
                tag=tag,
                digest=digest,
            )
            for tag, digest in zip(tags, digests, strict=True)
        ]

    async def _catalog(self, account: RegistryAccount) -> list[str]:
        repositories: list[str] = []
        async for page in self._paginate(account, "/v2/_catalog", {"n": _PAGE_SIZE}):
            repositories.extend(page.get("repositories") or [])
        _log.debug("catalog_listed", account=account.name, repositories=len(repositories))
        return repositories

    async def _tags(self, account: RegistryAccount, repository: str) -> list[str]:
        tags: list[str] = []
        async for page in self._paginate(account, f"/v2/{repository}/tags/list", {"n": _PAGE_SIZE}):
            # The registry reports tags: null for a repository with no tags.
            tags.extend(page.get("tags") or [])
        return tags

    async def _paginate(
        self,
        account: RegistryAccount,
        url: str,
        params: dict[str, Any] | None,
    ) -> AsyncIterator[dict[str, Any]]:
        next_url: str | None = url
        while next_url is not None:
            async with self._semaphore:
                try:
                    response = await self._client.get(next_url, params=params)
                except httpx.HTTPError as exc:
                    raise RegistryError(account.name, f"GET {next_url} failed: {exc}") from exc
            if not response.is_success:
                raise RegistryError(
                    account.name,
                    f"GET {next_url} returned HTTP {response.status_code}",
                )
            try:
                body = response.json()
            except ValueError as exc:
                raise RegistryError(account.name, f"GET {next_url} returned malformed JSON") from exc
            if not isinstance(body, dict):
                raise RegistryError(account.name, f"GET {next_url} returned unexpected payload")
            yield body
            # The next link already carries the pagination query.
            next_url = response.links.get("next", {}).get("url")
            params = None

    async def _digest(self, account: RegistryAccount, repository: str, tag: str) -> str | None:
        url = f"/v2/{repository}/manifests/{tag}"
        async with self._semaphore:
            try:
                response = await self._client.head(url, headers={"Accept": _MANIFEST_ACCEPT})
            except httpx.HTTPError as exc:
                _log.warning(
                    "manifest_fetch_failed",
                    account=account.name,
                    image=f"{repository}:{tag}",
                    error=str(exc),
                )
                return None
        if not response.is_success:
            _log.warning(
                "manifest_fetch_failed",
                account=account.name,
                image=f"{repository}:{tag}",
                status_code=response.status_code,
            )
            return None
        return response.headers.get(_DIGEST_HEADER)
