from __future__ import annotations

import abc
import logging
import typing as tp

from anyio.abc import TaskGroup

from swcache._exceptions import NetworkError, StorageError
from swcache._models import Entry, Request, Response, generate_offline_response
from swcache._routing import StrategyLabel
from swcache._storages._base import AsyncBaseGeneration

logger = logging.getLogger("swcache.strategies")

__all__ = (
    "Fetcher",
    "BaseStrategy",
    "CacheFirst",
    "NetworkFirst",
    "StaleWhileRevalidate",
)

Fetcher = tp.Callable[[Request], tp.Awaitable[Response]]
"""Sends a request over the network. Raises ``NetworkError`` when the transport fails."""


class BaseStrategy(abc.ABC):
    label: tp.ClassVar[StrategyLabel]

    def __init__(self, fetcher: Fetcher) -> None:
        self.fetcher = fetcher

    @abc.abstractmethod
    async def run(self, request: Request, generation: AsyncBaseGeneration) -> tp.Optional[Response]:
        raise NotImplementedError()

    async def _store(self, generation: AsyncBaseGeneration, request: Request, response: Response) -> bool:
        """
        Store ``response`` when it may be stored. Store failures are logged, never raised.
        """
        if not response.ok:
            logger.debug(f"Not storing response with status {response.status_code} for {request.url}")
            return False
        if request.method.upper() != "GET":
            logger.debug(f"Not storing response to a {request.method} request")
            return False
        try:
            await generation.put(request, response)
        except StorageError as exc:
            logger.warning(f"Could not store {request.url} in {generation.name!r}: {exc}")
            return False
        logger.debug(f"Stored {request.url} in {generation.name!r}")
        return True

    def _from_cache(self, entry: Entry) -> Response:
        return entry.response.with_metadata(
            swcache_from_cache=True,
            swcache_strategy=self.label.value,
            swcache_stored=False,
            swcache_created_at=entry.created_at,
        )

    def _from_network(self, response: Response, stored: bool) -> Response:
        return response.with_metadata(
            swcache_from_cache=False,
            swcache_strategy=self.label.value,
            swcache_stored=stored,
        )

    def _offline(self) -> Response:
        return generate_offline_response({"swcache_strategy": self.label.value})


class CacheFirst(BaseStrategy):
    """
    Serve from the generation when possible; the network is only used on a miss.
    """

    label = StrategyLabel.CACHE_FIRST

    async def run(self, request: Request, generation: AsyncBaseGeneration) -> Response:
        entry = await generation.match_entry(request)
        if entry is not None:
            logger.debug(f"Cache hit for {request.url}")
            return self._from_cache(entry)

        logger.debug(f"Cache miss for {request.url}, fetching from network")
        try:
            response = await self.fetcher(request)
        except NetworkError as exc:
            logger.warning(f"Cache first failed for {request.url}: {exc}")
            return self._offline()

        stored = await self._store(generation, request, response)
        return self._from_network(response, stored)


class NetworkFirst(BaseStrategy):
    """
    Always try the network once; fall back to the generation when it fails.
    """

    label = StrategyLabel.NETWORK_FIRST

    async def run(self, request: Request, generation: AsyncBaseGeneration) -> Response:
        try:
            response = await self.fetcher(request)
        except NetworkError as exc:
            logger.warning(f"Network first falling back to cache for {request.url}: {exc}")
            entry = await generation.match_entry(request)
            if entry is None:
                return self._offline()
            return self._from_cache(entry)

        stored = await self._store(generation, request, response)
        return self._from_network(response, stored)


class StaleWhileRevalidate(BaseStrategy):
    """
    Serve the stored snapshot immediately and refresh it in the background.

    Background refreshes are started in ``task_group`` and never awaited by
    ``run``. Their result only matters for the next request: a successful
    response is stored, a network failure is dropped.

    On a miss the caller waits for the network. If that fails too, ``run``
    returns None unless ``offline_on_miss`` is set, in which case the
    offline response is returned.
    """

    label = StrategyLabel.STALE_WHILE_REVALIDATE

    def __init__(self, fetcher: Fetcher, task_group: TaskGroup, offline_on_miss: bool = False) -> None:
        super().__init__(fetcher)
        self._task_group = task_group
        self._offline_on_miss = offline_on_miss

    async def run(self, request: Request, generation: AsyncBaseGeneration) -> tp.Optional[Response]:
        entry = await generation.match_entry(request)
        if entry is not None:
            logger.debug(f"Serving stale {request.url}, revalidating in background")
            self._task_group.start_soon(self._background_revalidate, request, generation, entry.response)
            return self._from_cache(entry)

        logger.debug(f"Cache miss for {request.url}, waiting for network")
        response = await self._revalidate(request, generation, None)
        if response is None and self._offline_on_miss:
            return self._offline()
        return response

    async def _revalidate(
        self,
        request: Request,
        generation: AsyncBaseGeneration,
        fallback: tp.Optional[Response],
    ) -> tp.Optional[Response]:
        try:
            response = await self.fetcher(request)
        except NetworkError as exc:
            logger.warning(f"Stale while revalidate network failed for {request.url}: {exc}")
            return fallback

        stored = await self._store(generation, request, response)
        return self._from_network(response, stored)

    async def _background_revalidate(
        self,
        request: Request,
        generation: AsyncBaseGeneration,
        fallback: Response,
    ) -> None:
        try:
            await self._revalidate(request, generation, fallback)
        except Exception:
            # A failed refresh must not tear down the task group serving other requests.
            logger.exception(f"Background revalidation of {request.url} failed")
