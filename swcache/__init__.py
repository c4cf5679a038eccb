from swcache.__version__ import __version__ as __version__
from swcache._config import CacheOptions as CacheOptions
from swcache._exceptions import (
    NetworkError as NetworkError,
    ProvisioningError as ProvisioningError,
    StorageError as StorageError,
    SwcacheError as SwcacheError,
)
from swcache._generations import GenerationManager as GenerationManager
from swcache._mock import MockAsyncFetcher as MockAsyncFetcher
from swcache._headers import Headers as Headers
from swcache._models import (
    Entry as Entry,
    Request as Request,
    Response as Response,
    ResponseMetadata as ResponseMetadata,
    generate_offline_response as generate_offline_response,
    is_offline_response as is_offline_response,
)
from swcache._router import AsyncCacheRouter as AsyncCacheRouter
from swcache._routing import (
    DEFAULT_PATTERN_TABLE as DEFAULT_PATTERN_TABLE,
    DEFAULT_STRATEGY as DEFAULT_STRATEGY,
    PatternGroup as PatternGroup,
    PatternTable as PatternTable,
    StrategyLabel as StrategyLabel,
    classify as classify,
)
from swcache._storages import (
    AsyncBaseGeneration as AsyncBaseGeneration,
    AsyncBaseStorage as AsyncBaseStorage,
    AsyncInMemoryStorage as AsyncInMemoryStorage,
    AsyncSqliteStorage as AsyncSqliteStorage,
)
from swcache._strategies import (
    BaseStrategy as BaseStrategy,
    CacheFirst as CacheFirst,
    Fetcher as Fetcher,
    NetworkFirst as NetworkFirst,
    StaleWhileRevalidate as StaleWhileRevalidate,
)
from swcache._worker import AsyncCacheWorker as AsyncCacheWorker

__all__ = (
    ## Models
    "Request",
    "Response",
    "ResponseMetadata",
    "Entry",
    "Headers",
    "generate_offline_response",
    "is_offline_response",
    ## Classification
    "StrategyLabel",
    "PatternGroup",
    "PatternTable",
    "DEFAULT_STRATEGY",
    "DEFAULT_PATTERN_TABLE",
    "classify",
    ## Strategies
    "Fetcher",
    "BaseStrategy",
    "CacheFirst",
    "NetworkFirst",
    "StaleWhileRevalidate",
    ## Storages
    "AsyncBaseGeneration",
    "AsyncBaseStorage",
    "AsyncInMemoryStorage",
    "AsyncSqliteStorage",
    ## Engine
    "CacheOptions",
    "GenerationManager",
    "AsyncCacheRouter",
    "AsyncCacheWorker",
    "MockAsyncFetcher",
    ## Errors
    "SwcacheError",
    "NetworkError",
    "StorageError",
    "ProvisioningError",
)
