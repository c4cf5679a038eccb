from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet, List, Optional

from swcache._routing import DEFAULT_PATTERN_TABLE, PatternTable

__all__ = ("CacheOptions",)


@dataclass
class CacheOptions:
    """
    Configuration options for the caching engine.

    All options have defaults that reproduce a single-site deployment with
    three pinned assets.

    Attributes:
    ----------
    prefix : str
        Common prefix of every generation name.

    version : str
        Version tag baked into generation names. Bumping it makes every
        generation of the previous version stale, so the next activation
        deletes them.

        Examples:
        --------
        >>> options = CacheOptions(prefix="shop", version="2.1.0")
        >>> options.static_cache_name
        'shop-static-v2.1.0'

    base_url : Optional[str]
        Origin used to resolve relative ``static_assets`` entries. When
        ``None``, assets must be absolute URLs.

    static_assets : list[str]
        Ordered URLs pinned into the static generation during install.

    pattern_table : PatternTable
        Ordered pattern groups used to classify requests.

    ignored_schemes : frozenset[str]
        URL schemes that are never intercepted. Such requests go straight to
        the network and their responses are not cached.

    offline_on_revalidate_miss : bool
        What stale-while-revalidate returns when nothing is cached and the
        network fails. ``False`` (default) returns ``None`` from the
        strategy; ``True`` returns the offline response like the other two
        strategies do.
    """

    prefix: str = "ieumcarelife"
    version: str = "1.0.0"
    base_url: Optional[str] = None
    static_assets: List[str] = field(default_factory=lambda: ["/", "/index.html", "/manifest.json"])
    pattern_table: PatternTable = DEFAULT_PATTERN_TABLE
    ignored_schemes: FrozenSet[str] = frozenset({"chrome-extension", "devtools"})
    offline_on_revalidate_miss: bool = False

    @property
    def cache_name(self) -> str:
        return f"{self.prefix}-v{self.version}"

    @property
    def static_cache_name(self) -> str:
        return f"{self.prefix}-static-v{self.version}"

    @property
    def dynamic_cache_name(self) -> str:
        return f"{self.prefix}-dynamic-v{self.version}"

    @property
    def known_cache_names(self) -> FrozenSet[str]:
        return frozenset({self.static_cache_name, self.dynamic_cache_name, self.cache_name})
