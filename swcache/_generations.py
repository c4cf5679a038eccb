from __future__ import annotations

import logging
import typing as tp

import anyio

from swcache._config import CacheOptions
from swcache._exceptions import NetworkError, ProvisioningError, StorageError
from swcache._models import Request, Response
from swcache._storages._base import AsyncBaseGeneration, AsyncBaseStorage
from swcache._strategies import Fetcher
from swcache._utils import partition, resolve_url

logger = logging.getLogger("swcache.generations")

__all__ = ("GenerationManager",)


class GenerationManager:
    """
    Owns the named cache generations of one version.

    Args:
        storage: Storage holding every generation.
        options: Naming and pinned-asset configuration. Defaults to CacheOptions().
    """

    def __init__(self, storage: AsyncBaseStorage, options: CacheOptions | None = None) -> None:
        self.storage = storage
        self.options = options if options is not None else CacheOptions()

    async def open_static(self) -> AsyncBaseGeneration:
        return await self.storage.open(self.options.static_cache_name)

    async def open_dynamic(self) -> AsyncBaseGeneration:
        return await self.storage.open(self.options.dynamic_cache_name)

    async def install(self, fetcher: Fetcher, assets: tp.Optional[tp.Sequence[str]] = None) -> AsyncBaseGeneration:
        """
        Pin ``assets`` (default: ``options.static_assets``) into the static generation.

        Every asset is fetched before anything is stored, so either all of
        them are stored or none is.

        Raises:
            ProvisioningError: If any asset fails to fetch, answers with a
                non-2xx status, or can not be stored.
        """
        asset_urls = list(assets if assets is not None else self.options.static_assets)
        requests = [Request(method="GET", url=resolve_url(url, self.options.base_url)) for url in asset_urls]

        generation = await self.open_static()
        logger.debug(f"Caching {len(requests)} static assets into {generation.name!r}")

        responses: tp.Dict[int, Response] = {}
        failures: tp.List[tp.Tuple[str, Exception]] = []
        errors: tp.List[Exception] = []

        async def fetch_asset(index: int, request: Request) -> None:
            try:
                response = await fetcher(request)
            except NetworkError as exc:
                failures.append((request.url, exc))
                return
            except Exception as exc:
                # Raised as is after the group, not wrapped in an exception group.
                errors.append(exc)
                task_group.cancel_scope.cancel()
                return
            if not response.ok:
                failures.append((request.url, ProvisioningError(f"Unexpected status {response.status_code}")))
                return
            responses[index] = response

        async with anyio.create_task_group() as task_group:
            for index, request in enumerate(requests):
                task_group.start_soon(fetch_asset, index, request)

        if errors:
            raise errors[0]

        if failures:
            url, cause = failures[0]
            raise ProvisioningError(f"Could not fetch pinned asset {url}: {cause}") from cause

        stored: tp.List[Request] = []
        try:
            for index, request in enumerate(requests):
                await generation.put(request, responses[index])
                stored.append(request)
        except StorageError as exc:
            await self._rollback(generation, stored)
            raise ProvisioningError(f"Could not store pinned assets in {generation.name!r}") from exc

        return generation

    async def _rollback(self, generation: AsyncBaseGeneration, requests: tp.List[Request]) -> None:
        logger.debug(f"Removing {len(requests)} partially stored assets from {generation.name!r}")
        for request in requests:
            try:
                await generation.delete(request)
            except StorageError as exc:
                logger.warning(f"Could not remove {request.url} from {generation.name!r}: {exc}")

    async def activate(self) -> tp.List[str]:
        """
        Delete every generation that is not part of the current version.

        Returns:
            The names of the deleted generations.
        """
        known_names = self.options.known_cache_names
        stale_names, _ = partition(await self.storage.keys(), lambda name: name not in known_names)
        for name in stale_names:
            logger.debug(f"Deleting old cache: {name}")
            await self.storage.delete(name)
        return stale_names
