import os
import typing as tp

import pytest

from swcache import AsyncInMemoryStorage, CacheOptions, Headers, MockAsyncFetcher, Request, Response


@pytest.fixture()
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture()
def use_temp_dir(tmpdir: tp.Any) -> tp.Iterator[None]:
    cur_dir = os.getcwd()
    os.chdir(tmpdir)
    yield
    os.chdir(cur_dir)


@pytest.fixture()
def fetcher() -> MockAsyncFetcher:
    return MockAsyncFetcher()


@pytest.fixture()
def storage() -> AsyncInMemoryStorage:
    return AsyncInMemoryStorage()


@pytest.fixture()
def options() -> CacheOptions:
    return CacheOptions(prefix="test", version="1", base_url="https://example.com")


def make_response(status_code: int = 200, content: bytes = b"body", **headers: str) -> Response:
    return Response(
        status_code=status_code,
        headers=Headers({key.replace("_", "-"): value for key, value in headers.items()}),
        content=content,
    )


def make_request(url: str, method: str = "GET", **headers: str) -> Request:
    return Request(
        method=method,
        url=url,
        headers=Headers({key.replace("_", "-"): value for key, value in headers.items()}),
    )
