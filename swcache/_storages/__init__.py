from swcache._storages._base import AsyncBaseGeneration, AsyncBaseStorage
from swcache._storages._memory import AsyncInMemoryGeneration, AsyncInMemoryStorage
from swcache._storages._sqlite import AsyncSqliteGeneration, AsyncSqliteStorage

__all__ = (
    "AsyncBaseGeneration",
    "AsyncBaseStorage",
    "AsyncInMemoryGeneration",
    "AsyncInMemoryStorage",
    "AsyncSqliteGeneration",
    "AsyncSqliteStorage",
)
