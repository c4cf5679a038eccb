from __future__ import annotations

import typing as tp

from swcache._models import Entry
from swcache._storages._base import AsyncBaseGeneration, AsyncBaseStorage
from swcache._synchronization import AsyncLock

__all__ = ("AsyncInMemoryGeneration", "AsyncInMemoryStorage")


class AsyncInMemoryGeneration(AsyncBaseGeneration):
    def __init__(self, name: str) -> None:
        super().__init__(name)
        self._entries: tp.Dict[str, Entry] = {}

    async def get_entry(self, key: str) -> tp.Optional[Entry]:
        return self._entries.get(key)

    async def set_entry(self, entry: Entry) -> None:
        # Re-insert so the replaced key moves to the end, like a fresh put.
        self._entries.pop(entry.key, None)
        self._entries[entry.key] = entry

    async def remove_entry(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    async def list_entries(self) -> tp.List[Entry]:
        return list(self._entries.values())


class AsyncInMemoryStorage(AsyncBaseStorage):
    """
    A simple in-memory storage. Everything is lost when the process exits.
    """

    def __init__(self) -> None:
        self._generations: tp.Dict[str, AsyncInMemoryGeneration] = {}
        self._lock = AsyncLock()

    async def open(self, name: str) -> AsyncInMemoryGeneration:
        async with self._lock:
            generation = self._generations.get(name)
            if generation is None:
                generation = self._generations[name] = AsyncInMemoryGeneration(name)
            return generation

    async def has(self, name: str) -> bool:
        return name in self._generations

    async def keys(self) -> tp.List[str]:
        return list(self._generations)

    async def delete(self, name: str) -> bool:
        async with self._lock:
            return self._generations.pop(name, None) is not None
