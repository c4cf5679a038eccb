from __future__ import annotations

import logging
import types
import typing as tp

import anyio
from anyio.abc import TaskGroup

from swcache._config import CacheOptions
from swcache._exceptions import NetworkError, StorageError
from swcache._models import Request, Response, generate_offline_response
from swcache._routing import DEFAULT_STRATEGY, StrategyLabel, classify
from swcache._storages._base import AsyncBaseStorage
from swcache._storages._sqlite import AsyncSqliteStorage
from swcache._strategies import BaseStrategy, CacheFirst, Fetcher, NetworkFirst, StaleWhileRevalidate
from swcache._utils import url_scheme

if tp.TYPE_CHECKING:  # pragma: no cover
    from typing_extensions import Self

logger = logging.getLogger("swcache.router")

__all__ = ("AsyncCacheRouter",)


class AsyncCacheRouter:
    """
    Entry point of the caching engine: picks a strategy for each request and runs it
    against the dynamic generation.

    The router must be used as an async context manager. It owns the task group
    that background revalidations run in; leaving the context waits for them.

    Args:
        fetcher: Callable that sends requests over the network.
        storage: Storage backend for cache generations. Defaults to AsyncSqliteStorage.
        options: Engine configuration. Defaults to CacheOptions().
    """

    def __init__(
        self,
        fetcher: Fetcher,
        storage: AsyncBaseStorage | None = None,
        options: CacheOptions | None = None,
    ) -> None:
        self.fetcher = fetcher
        self.storage = storage if storage is not None else AsyncSqliteStorage()
        self.options = options if options is not None else CacheOptions()
        self._task_group: TaskGroup | None = None
        self._strategies: tp.Dict[StrategyLabel, BaseStrategy] = {}

    async def handle_request(self, request: Request) -> tp.Optional[Response]:
        """
        Answer ``request`` from the cache, the network, or with the offline response.

        Returns None only when stale-while-revalidate had nothing cached, the
        network failed, and ``options.offline_on_revalidate_miss`` is off.
        """
        if url_scheme(request.url) in self.options.ignored_schemes:
            logger.debug(f"Not intercepting {request.url}")
            return await self._bypass(request)

        label = classify(request.url, self.options.pattern_table)
        logger.debug(f"Handling {request.method} {request.url} with {label.value}")

        try:
            generation = await self.storage.open(self.options.dynamic_cache_name)
            return await self._strategy_for(label).run(request, generation)
        except StorageError as exc:
            logger.warning(f"Cache unavailable while handling {request.url}: {exc}")
            return generate_offline_response({"swcache_strategy": label.value})

    def _strategy_for(self, label: StrategyLabel) -> BaseStrategy:
        if not self._strategies:
            raise RuntimeError(f"`{type(self).__name__}` must be used as an async context manager")
        return self._strategies.get(label, self._strategies[DEFAULT_STRATEGY])

    async def _bypass(self, request: Request) -> Response:
        try:
            return await self.fetcher(request)
        except NetworkError as exc:
            logger.warning(f"Network failed for uncached request {request.url}: {exc}")
            return generate_offline_response()

    async def __aenter__(self) -> Self:
        task_group = anyio.create_task_group()
        await task_group.__aenter__()
        self._task_group = task_group
        self._strategies = {
            StrategyLabel.CACHE_FIRST: CacheFirst(self.fetcher),
            StrategyLabel.NETWORK_FIRST: NetworkFirst(self.fetcher),
            StrategyLabel.STALE_WHILE_REVALIDATE: StaleWhileRevalidate(
                self.fetcher,
                task_group,
                offline_on_miss=self.options.offline_on_revalidate_miss,
            ),
        }
        return self

    async def __aexit__(
        self,
        exc_type: tp.Optional[tp.Type[BaseException]] = None,
        exc_value: tp.Optional[BaseException] = None,
        traceback: tp.Optional[types.TracebackType] = None,
    ) -> tp.Optional[bool]:
        assert self._task_group is not None
        task_group, self._task_group = self._task_group, None
        self._strategies = {}
        return await task_group.__aexit__(exc_type, exc_value, traceback)
