from __future__ import annotations

import logging
import ssl
import types
import typing as t
from typing import Union, overload

from swcache._config import CacheOptions
from swcache._exceptions import NetworkError
from swcache._headers import Headers
from swcache._models import Request, Response, generate_offline_response
from swcache._storages._base import AsyncBaseStorage
from swcache._worker import AsyncCacheWorker

try:
    import httpx
except ImportError as e:
    raise ImportError(
        "httpx is required to use swcache.httpx module. "
        "Please install swcache with the 'httpx' extra, "
        "e.g., 'pip install swcache[httpx]'."
    ) from e

if t.TYPE_CHECKING:  # pragma: no cover
    from typing_extensions import Self

logger = logging.getLogger("swcache.httpx")

# Bodies are read eagerly, so these describe a wire format that no longer applies.
_WIRE_HEADERS = ("content-encoding", "transfer-encoding", "content-length")


@overload
def _internal_to_httpx(
    value: Request,
) -> httpx.Request: ...
@overload
def _internal_to_httpx(
    value: Response,
) -> httpx.Response: ...
def _internal_to_httpx(
    value: Union[Request, Response],
) -> Union[httpx.Request, httpx.Response]:
    """
    Convert internal Request/Response to httpx.Request/httpx.Response.
    """
    if isinstance(value, Request):
        return httpx.Request(
            method=value.method,
            url=value.url,
            headers=value.headers.multi_items(),
            content=value.content,
            extensions=dict(value.extensions),
        )
    return httpx.Response(
        status_code=value.status_code,
        headers=value.headers.multi_items(),
        content=value.content,
        extensions=dict(value.metadata),
    )


@overload
def _httpx_to_internal(
    value: httpx.Request,
) -> Request: ...
@overload
def _httpx_to_internal(
    value: httpx.Response,
) -> Response: ...
def _httpx_to_internal(
    value: Union[httpx.Request, httpx.Response],
) -> Union[Request, Response]:
    """
    Convert an already read httpx.Request/httpx.Response to internal Request/Response.
    """
    if isinstance(value, httpx.Request):
        return Request(
            method=value.method,
            url=str(value.url),
            headers=Headers(value.headers.multi_items()),
            content=value.content,
        )
    headers = Headers(
        [(key, header_value) for key, header_value in value.headers.multi_items() if key.lower() not in _WIRE_HEADERS]
        + [("content-length", str(len(value.content)))]
    )
    return Response(
        status_code=value.status_code,
        headers=headers,
        content=value.content,
    )


class AsyncHttpxFetcher:
    """
    Send internal requests through an httpx transport.

    Transport-level failures (``httpx.TransportError``: DNS, refused
    connections, timeouts, ...) are raised as ``NetworkError``. Any HTTP
    status, including errors, is a regular response.

    Args:
        transport: The transport that performs the requests. Defaults to
            ``httpx.AsyncHTTPTransport()``.
    """

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.transport = transport if transport is not None else httpx.AsyncHTTPTransport()

    async def __call__(self, request: Request) -> Response:
        httpx_request = _internal_to_httpx(request)
        try:
            httpx_response = await self.transport.handle_async_request(httpx_request)
            try:
                await httpx_response.aread()
            finally:
                await httpx_response.aclose()
        except httpx.TransportError as exc:
            raise NetworkError(f"{type(exc).__name__}: {exc}") from exc
        return _httpx_to_internal(httpx_response)

    async def aclose(self) -> None:
        await self.transport.aclose()


class AsyncCacheTransport(httpx.AsyncBaseTransport):
    """
    An httpx transport that serves requests through an AsyncCacheWorker.

    Must be entered (directly, or through ``async with httpx.AsyncClient(...)``)
    before use, since background revalidations need a running task group.

    Args:
        next_transport: Transport used to reach the network.
        storage: Storage backend for cache generations. Defaults to AsyncSqliteStorage.
        options: Engine configuration. Defaults to CacheOptions().
    """

    def __init__(
        self,
        next_transport: httpx.AsyncBaseTransport | None = None,
        storage: AsyncBaseStorage | None = None,
        options: CacheOptions | None = None,
    ) -> None:
        self.fetcher = AsyncHttpxFetcher(next_transport)
        self.worker = AsyncCacheWorker(self.fetcher, storage=storage, options=options)
        self.storage = self.worker.storage

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        await request.aread()
        internal_response = await self.worker.handle_request(_httpx_to_internal(request))
        if internal_response is None:
            # httpx always needs a response to hand back.
            logger.debug(f"No response available for {request.url}, answering offline")
            internal_response = generate_offline_response()
        return _internal_to_httpx(internal_response)

    async def aclose(self) -> None:
        await self.fetcher.aclose()
        await self.worker.aclose()

    async def __aenter__(self) -> Self:
        await self.worker.__aenter__()
        return self

    async def __aexit__(
        self,
        exc_type: t.Optional[t.Type[BaseException]] = None,
        exc_value: t.Optional[BaseException] = None,
        traceback: t.Optional[types.TracebackType] = None,
    ) -> None:
        try:
            await self.worker.__aexit__(exc_type, exc_value, traceback)
        finally:
            await self.fetcher.aclose()


class AsyncCacheClient(httpx.AsyncClient):
    """
    An ``httpx.AsyncClient`` whose requests go through the caching engine.

    Accepts every ``httpx.AsyncClient`` argument plus ``storage`` and
    ``options``. A custom ``transport`` is wrapped, not replaced.

    The client must be used as an async context manager
    (``async with AsyncCacheClient() as client``). Background revalidations
    run in a task group that only exists inside that block; requests sent
    outside of it raise ``RuntimeError``.
    """

    def __init__(self, *args: t.Any, **kwargs: t.Any) -> None:
        self.storage: AsyncBaseStorage | None = kwargs.pop("storage", None)
        self.options: CacheOptions | None = kwargs.pop("options", None)
        super().__init__(*args, **kwargs)

    def _init_transport(
        self,
        verify: ssl.SSLContext | str | bool = True,
        cert: t.Union[str, t.Tuple[str, str], t.Tuple[str, str, str], None] = None,
        trust_env: bool = True,
        http1: bool = True,
        http2: bool = False,
        limits: httpx.Limits = httpx.Limits(max_connections=100, max_keepalive_connections=20),
        transport: httpx.AsyncBaseTransport | None = None,
        **kwargs: t.Any,
    ) -> httpx.AsyncBaseTransport:
        if transport is None:
            transport = httpx.AsyncHTTPTransport(
                verify=verify,
                cert=cert,
                trust_env=trust_env,
                http1=http1,
                http2=http2,
                limits=limits,
            )

        return AsyncCacheTransport(
            next_transport=transport,
            storage=self.storage,
            options=self.options,
        )

    def _init_proxy_transport(
        self,
        proxy: httpx.Proxy,
        verify: ssl.SSLContext | str | bool = True,
        cert: t.Union[str, t.Tuple[str, str], t.Tuple[str, str, str], None] = None,
        trust_env: bool = True,
        http1: bool = True,
        http2: bool = False,
        limits: httpx.Limits = httpx.Limits(max_connections=100, max_keepalive_connections=20),
        **kwargs: t.Any,
    ) -> httpx.AsyncBaseTransport:
        return AsyncCacheTransport(
            next_transport=httpx.AsyncHTTPTransport(
                verify=verify,
                cert=cert,
                trust_env=trust_env,
                http1=http1,
                http2=http2,
                limits=limits,
                proxy=proxy,
            ),
            storage=self.storage,
            options=self.options,
        )
