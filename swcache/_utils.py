from __future__ import annotations

import hashlib
import typing as tp
from pathlib import Path
from urllib.parse import urldefrag, urljoin, urlsplit

from swcache._models import Request

T = tp.TypeVar("T")


def normalized_url(url: str) -> str:
    """
    Strip the fragment from ``url``; fragments never take part in cache matching.

    Examples:
        >>> normalized_url("https://example.com/app.js#main")
        'https://example.com/app.js'
    """
    return urldefrag(url).url


def url_scheme(url: str) -> str:
    return urlsplit(url).scheme.lower()


def resolve_url(url: str, base_url: tp.Optional[str]) -> str:
    """
    Resolve a possibly relative asset URL against ``base_url``.

    Absolute URLs and a missing ``base_url`` leave the value unchanged.

    Examples:
        >>> resolve_url("/index.html", "https://example.com")
        'https://example.com/index.html'
    """
    if base_url is None:
        return url
    return urljoin(base_url, url)


def generate_key(request: Request) -> str:
    """
    Generate the cache key of a request: a sha256 digest of its method and normalized URL.
    """
    raw = f"{request.method.upper()} {normalized_url(request.url)}"
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def partition(iterable: tp.Iterable[T], predicate: tp.Callable[[T], bool]) -> tp.Tuple[tp.List[T], tp.List[T]]:
    """
    Partition an iterable into two lists: one for matching items and one for non-matching items.
    """
    matching, non_matching = [], []
    for item in iterable:
        if predicate(item):
            matching.append(item)
        else:
            non_matching.append(item)
    return matching, non_matching


def ensure_cache_dict(base_path: tp.Optional[Path] = None) -> Path:
    _base_path = base_path if base_path is not None else Path(".cache/swcache")
    _gitignore_file = _base_path / ".gitignore"

    _base_path.mkdir(parents=True, exist_ok=True)

    if not _gitignore_file.is_file():
        with open(_gitignore_file, "w", encoding="utf-8") as f:
            f.write("# Automatically created by swcache\n*")
    return _base_path
