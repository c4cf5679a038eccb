from __future__ import annotations

from typing import Any, Mapping, Optional, cast

import msgpack

from swcache._headers import Headers
from swcache._models import Entry, Request, Response


def filter_out_swcache_metadata(data: Mapping[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in data.items() if not k.startswith("swcache_")}


def pack(value: Entry, /) -> bytes:
    return cast(
        bytes,
        msgpack.packb(
            {
                "key": value.key,
                "request": {
                    "method": value.request.method,
                    "url": value.request.url,
                    "headers": value.request.headers.to_dict(),
                },
                "response": {
                    "status_code": value.response.status_code,
                    "headers": value.response.headers.to_dict(),
                    "content": value.response.content,
                    "extra": filter_out_swcache_metadata(value.response.metadata),
                },
                "created_at": value.created_at,
            }
        ),
    )


def unpack(value: Optional[bytes], /) -> Optional[Entry]:
    if value is None:
        return None
    data = msgpack.unpackb(value)
    return Entry(
        key=data["key"],
        request=Request(
            method=data["request"]["method"],
            url=data["request"]["url"],
            headers=Headers(data["request"]["headers"]),
        ),
        response=Response(
            status_code=data["response"]["status_code"],
            headers=Headers(data["response"]["headers"]),
            content=data["response"]["content"],
            metadata=data["response"]["extra"],
        ),
        created_at=data["created_at"],
    )
