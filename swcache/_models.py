from __future__ import annotations

import time
from dataclasses import dataclass, field, replace
from typing import Any, Mapping, Optional, TypedDict

from swcache._headers import Headers, Vary

OFFLINE_STATUS_CODE = 503
OFFLINE_CONTENT = b"Offline"


class ResponseMetadata(TypedDict, total=False):
    # All the names here should be prefixed with "swcache_" to avoid collisions with user data
    swcache_from_cache: bool
    """Indicates whether the response was served from a cache generation."""

    swcache_strategy: str
    """The strategy that produced the response."""

    swcache_stored: bool
    """Indicates whether the response was stored in the dynamic generation."""

    swcache_created_at: float
    """Timestamp when the served snapshot was stored."""

    swcache_offline: bool
    """Indicates the synthetic offline response."""


@dataclass(frozen=True)
class Request:
    method: str
    url: str
    headers: Headers = field(default_factory=Headers)
    content: bytes = b""
    extensions: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Response:
    status_code: int
    headers: Headers = field(default_factory=Headers)
    content: bytes = b""
    metadata: ResponseMetadata | Mapping[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def with_metadata(self, **metadata: Any) -> "Response":
        """
        Return a copy carrying extra metadata; the original is left untouched.
        """
        return replace(self, metadata={**self.metadata, **metadata})

    def snapshot(self) -> "Response":
        """
        Return the storable form of this response, stripped of per-call metadata.
        """
        return replace(self, metadata={})


@dataclass(frozen=True)
class Entry:
    key: str
    request: Request
    response: Response
    created_at: float = field(default_factory=time.time)

    def matches(self, request: Request) -> bool:
        """
        Check that the headers named by the stored response's Vary header
        agree between the stored request and ``request``.
        """
        vary = Vary.from_headers(self.response.headers)
        if vary.is_wildcard:
            return False
        for header_name in vary.values:
            if self.request.headers.get_list(header_name) != request.headers.get_list(header_name):
                return False
        return True


def generate_offline_response(metadata: Optional[Mapping[str, Any]] = None) -> Response:
    return Response(
        status_code=OFFLINE_STATUS_CODE,
        headers=Headers({"Content-Type": "text/plain;charset=UTF-8"}),
        content=OFFLINE_CONTENT,
        metadata={"swcache_offline": True, **(metadata or {})},
    )


def is_offline_response(response: Response) -> bool:
    return bool(response.metadata.get("swcache_offline"))
