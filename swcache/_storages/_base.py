from __future__ import annotations

import abc
import logging
import typing as tp
from dataclasses import replace

from swcache._exceptions import StorageError
from swcache._headers import Vary
from swcache._models import Entry, Request, Response
from swcache._utils import generate_key, normalized_url

logger = logging.getLogger("swcache.storages")

__all__ = ("AsyncBaseGeneration", "AsyncBaseStorage")


class AsyncBaseGeneration(abc.ABC):
    """
    A named, independent cache namespace mapping requests to response snapshots.

    Subclasses implement the four key-level primitives; request matching,
    key derivation and the storability rules live here so every backend
    behaves the same.
    """

    def __init__(self, name: str) -> None:
        self.name = name

    @abc.abstractmethod
    async def get_entry(self, key: str) -> tp.Optional[Entry]:
        """
        Retrieve the entry stored under ``key``, or None.
        """
        raise NotImplementedError()

    @abc.abstractmethod
    async def set_entry(self, entry: Entry) -> None:
        """
        Store ``entry``, replacing whatever was stored under the same key.

        Raises:
            StorageError: If the backend could not persist the entry.
        """
        raise NotImplementedError()

    @abc.abstractmethod
    async def remove_entry(self, key: str) -> bool:
        """
        Remove the entry stored under ``key``. Returns whether something was removed.
        """
        raise NotImplementedError()

    @abc.abstractmethod
    async def list_entries(self) -> tp.List[Entry]:
        """
        Return every entry of the generation in insertion order.
        """
        raise NotImplementedError()

    async def match_entry(self, request: Request) -> tp.Optional[Entry]:
        if request.method.upper() != "GET":
            return None
        entry = await self.get_entry(generate_key(request))
        if entry is None:
            return None
        if not entry.matches(request):
            logger.debug(f"Stored response for {request.url} does not match the request's varied headers")
            return None
        return entry

    async def match(self, request: Request) -> tp.Optional[Response]:
        entry = await self.match_entry(request)
        return entry.response if entry is not None else None

    async def put(self, request: Request, response: Response) -> Entry:
        if request.method.upper() != "GET":
            raise StorageError(f"Only GET requests can be stored, got {request.method}")
        if Vary.from_headers(response.headers).is_wildcard:
            raise StorageError("Responses with `Vary: *` can not be stored")

        entry = Entry(
            key=generate_key(request),
            request=replace(request, url=normalized_url(request.url), content=b"", extensions={}),
            response=response.snapshot(),
        )
        await self.set_entry(entry)
        return entry

    async def delete(self, request: Request) -> bool:
        return await self.remove_entry(generate_key(request))

    async def keys(self) -> tp.List[Request]:
        return [entry.request for entry in await self.list_entries()]


class AsyncBaseStorage(abc.ABC):
    """
    A store of named cache generations.
    """

    @abc.abstractmethod
    async def open(self, name: str) -> AsyncBaseGeneration:
        """
        Open the generation called ``name``, creating it when it does not exist yet.
        """
        raise NotImplementedError()

    @abc.abstractmethod
    async def has(self, name: str) -> bool:
        raise NotImplementedError()

    @abc.abstractmethod
    async def keys(self) -> tp.List[str]:
        """
        Return the names of all existing generations in creation order.
        """
        raise NotImplementedError()

    @abc.abstractmethod
    async def delete(self, name: str) -> bool:
        """
        Delete the generation called ``name`` with all of its entries.

        Returns:
            True if the generation existed.
        """
        raise NotImplementedError()

    async def aclose(self) -> None:
        return
