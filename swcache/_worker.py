from __future__ import annotations

import logging
import types
import typing as tp

from swcache._config import CacheOptions
from swcache._generations import GenerationManager
from swcache._models import Request, Response
from swcache._router import AsyncCacheRouter
from swcache._storages._base import AsyncBaseStorage
from swcache._storages._sqlite import AsyncSqliteStorage
from swcache._strategies import Fetcher
from swcache._synchronization import AsyncLock

if tp.TYPE_CHECKING:  # pragma: no cover
    from typing_extensions import Self

logger = logging.getLogger("swcache.worker")

__all__ = ("AsyncCacheWorker",)


class AsyncCacheWorker:
    """
    Ties the lifecycle of one cache version together.

    ``install`` pins the static assets, ``activate`` removes generations of
    other versions, and ``handle_request`` serves traffic. Requests wait
    until both lifecycle steps completed once; if install fails, the error
    propagates and the next request tries again.

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
        self.generations = GenerationManager(self.storage, self.options)
        self.router = AsyncCacheRouter(self.fetcher, self.storage, self.options)
        self._ready = False
        self._ready_lock = AsyncLock()

    @property
    def ready(self) -> bool:
        return self._ready

    async def install(self) -> None:
        logger.debug("Installing")
        await self.generations.install(self.fetcher)

    async def activate(self) -> tp.List[str]:
        logger.debug("Activating")
        return await self.generations.activate()

    async def ensure_ready(self) -> None:
        async with self._ready_lock:
            if self._ready:
                return
            await self.install()
            await self.activate()
            self._ready = True

    async def handle_request(self, request: Request) -> tp.Optional[Response]:
        await self.ensure_ready()
        return await self.router.handle_request(request)

    async def aclose(self) -> None:
        await self.storage.aclose()

    async def __aenter__(self) -> Self:
        await self.router.__aenter__()
        return self

    async def __aexit__(
        self,
        exc_type: tp.Optional[tp.Type[BaseException]] = None,
        exc_value: tp.Optional[BaseException] = None,
        traceback: tp.Optional[types.TracebackType] = None,
    ) -> None:
        try:
            await self.router.__aexit__(exc_type, exc_value, traceback)
        finally:
            await self.aclose()
