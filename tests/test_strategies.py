from datetime import datetime
from zoneinfo import ZoneInfo

import anyio
import anyio.lowlevel
import pytest
from inline_snapshot import snapshot
from time_machine import travel

from swcache import (
    CacheFirst,
    MockAsyncFetcher,
    NetworkError,
    NetworkFirst,
    Request,
    Response,
    StaleWhileRevalidate,
    StorageError,
    is_offline_response,
)
from swcache._models import Entry
from swcache._storages import AsyncInMemoryGeneration, AsyncInMemoryStorage

from .conftest import make_request, make_response


class BrokenGeneration(AsyncInMemoryGeneration):
    async def set_entry(self, entry: Entry) -> None:
        raise StorageError("disk full")


@pytest.mark.anyio
async def test_cache_first_hit_skips_network(storage: AsyncInMemoryStorage, fetcher: MockAsyncFetcher) -> None:
    generation = await storage.open("dynamic")
    request = make_request("https://example.com/app.js")
    await generation.put(request, make_response(content=b"cached"))

    response = await CacheFirst(fetcher).run(request, generation)

    assert response.content == b"cached"
    assert response.metadata["swcache_from_cache"] is True
    assert fetcher.call_count == 0


@pytest.mark.anyio
async def test_cache_first_miss_stores_then_returns(storage: AsyncInMemoryStorage, fetcher: MockAsyncFetcher) -> None:
    generation = await storage.open("dynamic")
    request = make_request("https://example.com/app.js")
    fetcher.add_responses([make_response(content=b"fresh", content_type="application/javascript")])

    response = await CacheFirst(fetcher).run(request, generation)

    assert response.status_code == 200
    assert response.content == b"fresh"
    assert response.metadata["swcache_stored"] is True

    stored = await generation.match(request)
    assert stored is not None
    assert stored.status_code == response.status_code
    assert stored.headers == response.headers
    assert stored.content == response.content
    assert stored.metadata == {}


@pytest.mark.anyio
async def test_cache_first_second_request_is_served_from_cache(
    storage: AsyncInMemoryStorage, fetcher: MockAsyncFetcher
) -> None:
    generation = await storage.open("dynamic")
    request = make_request("https://example.com/app.js")
    fetcher.add_responses([make_response(content=b"fresh")])
    strategy = CacheFirst(fetcher)

    await strategy.run(request, generation)
    response = await strategy.run(request, generation)

    assert response.content == b"fresh"
    assert response.metadata["swcache_from_cache"] is True
    assert fetcher.call_count == 1


@pytest.mark.anyio
async def test_cache_first_does_not_store_error_status(
    storage: AsyncInMemoryStorage, fetcher: MockAsyncFetcher
) -> None:
    generation = await storage.open("dynamic")
    request = make_request("https://example.com/missing.js")
    fetcher.add_responses([make_response(404, b"not found")])

    response = await CacheFirst(fetcher).run(request, generation)

    assert response.status_code == 404
    assert response.content == b"not found"
    assert response.metadata["swcache_stored"] is False
    assert await generation.match(request) is None


@pytest.mark.anyio
async def test_cache_first_network_failure_is_offline(
    storage: AsyncInMemoryStorage, fetcher: MockAsyncFetcher
) -> None:
    generation = await storage.open("dynamic")
    fetcher.add_responses([NetworkError("connection refused")])

    response = await CacheFirst(fetcher).run(make_request("https://example.com/app.js"), generation)

    assert response.status_code == 503
    assert response.content == b"Offline"
    assert is_offline_response(response)


@pytest.mark.anyio
async def test_cache_first_store_failure_still_returns_response(
    fetcher: MockAsyncFetcher, caplog: pytest.LogCaptureFixture
) -> None:
    generation = BrokenGeneration("dynamic")
    fetcher.add_responses([make_response(content=b"fresh")])

    with caplog.at_level("WARNING", logger="swcache"):
        response = await CacheFirst(fetcher).run(make_request("https://example.com/app.js"), generation)

    assert response.content == b"fresh"
    assert response.metadata["swcache_stored"] is False
    assert caplog.messages == snapshot(["Could not store https://example.com/app.js in 'dynamic': disk full"])


@pytest.mark.anyio
async def test_cache_first_never_stores_non_get(storage: AsyncInMemoryStorage, fetcher: MockAsyncFetcher) -> None:
    generation = await storage.open("dynamic")
    request = make_request("https://example.com/app.js", method="POST")
    fetcher.add_responses([make_response(content=b"first"), make_response(content=b"second")])
    strategy = CacheFirst(fetcher)

    first = await strategy.run(request, generation)
    second = await strategy.run(request, generation)

    assert (first.content, second.content) == (b"first", b"second")
    assert await generation.keys() == []


@pytest.mark.anyio
async def test_cache_first_concurrent_misses_both_fetch(
    storage: AsyncInMemoryStorage, fetcher: MockAsyncFetcher
) -> None:
    generation = await storage.open("dynamic")
    request = make_request("https://example.com/app.js")
    fetcher.add_responses([make_response(content=b"a"), make_response(content=b"b")])

    async def yielding_fetcher(request: Request) -> Response:
        await anyio.lowlevel.checkpoint()
        return await fetcher(request)

    strategy = CacheFirst(yielding_fetcher)

    async with anyio.create_task_group() as task_group:
        task_group.start_soon(strategy.run, request, generation)
        task_group.start_soon(strategy.run, request, generation)

    assert fetcher.call_count == 2
    stored = await generation.match(request)
    assert stored is not None
    assert stored.content in (b"a", b"b")


@pytest.mark.anyio
@travel(datetime(2024, 1, 1, 0, 0, 0, tzinfo=ZoneInfo("UTC")), tick=False)
async def test_cache_first_metadata(storage: AsyncInMemoryStorage, fetcher: MockAsyncFetcher) -> None:
    generation = await storage.open("dynamic")
    request = make_request("https://example.com/app.js")
    fetcher.add_responses([make_response()])
    strategy = CacheFirst(fetcher)

    first = await strategy.run(request, generation)
    second = await strategy.run(request, generation)

    assert first.metadata == snapshot(
        {
            "swcache_from_cache": False,
            "swcache_strategy": "cache-first",
            "swcache_stored": True,
        }
    )
    assert second.metadata == snapshot(
        {
            "swcache_from_cache": True,
            "swcache_strategy": "cache-first",
            "swcache_stored": False,
            "swcache_created_at": 1704067200.0,
        }
    )


@pytest.mark.anyio
async def test_network_first_prefers_network(storage: AsyncInMemoryStorage, fetcher: MockAsyncFetcher) -> None:
    generation = await storage.open("dynamic")
    request = make_request("https://example.com/blog")
    await generation.put(request, make_response(content=b"old"))
    fetcher.add_responses([make_response(content=b"new")])

    response = await NetworkFirst(fetcher).run(request, generation)

    assert response.content == b"new"
    assert response.metadata["swcache_from_cache"] is False
    stored = await generation.match(request)
    assert stored is not None
    assert stored.content == b"new"


@pytest.mark.anyio
async def test_network_first_falls_back_to_cache(storage: AsyncInMemoryStorage, fetcher: MockAsyncFetcher) -> None:
    generation = await storage.open("dynamic")
    request = make_request("https://example.com/blog")
    await generation.put(request, make_response(content=b"cached"))
    fetcher.add_responses([NetworkError("timeout")])

    response = await NetworkFirst(fetcher).run(request, generation)

    assert response.content == b"cached"
    assert response.metadata["swcache_from_cache"] is True
    assert fetcher.call_count == 1


@pytest.mark.anyio
async def test_network_first_offline_when_nothing_cached(
    storage: AsyncInMemoryStorage, fetcher: MockAsyncFetcher
) -> None:
    generation = await storage.open("dynamic")
    fetcher.add_responses([NetworkError("dns failure")])

    response = await NetworkFirst(fetcher).run(make_request("https://example.com/contact"), generation)

    assert response.status_code == 503
    assert response.content == b"Offline"
    assert fetcher.call_count == 1


@pytest.mark.anyio
async def test_network_first_keeps_cache_on_error_status(
    storage: AsyncInMemoryStorage, fetcher: MockAsyncFetcher
) -> None:
    generation = await storage.open("dynamic")
    request = make_request("https://example.com/blog")
    await generation.put(request, make_response(content=b"cached"))
    fetcher.add_responses([make_response(500, b"boom")])

    response = await NetworkFirst(fetcher).run(request, generation)

    assert response.status_code == 500
    stored = await generation.match(request)
    assert stored is not None
    assert stored.content == b"cached"


@pytest.mark.anyio
async def test_stale_while_revalidate_serves_cache_without_waiting(storage: AsyncInMemoryStorage) -> None:
    generation = await storage.open("dynamic")
    request = make_request("https://example.com/api/users")
    await generation.put(request, make_response(content=b"stale"))

    release = anyio.Event()
    fetched: list[Request] = []

    async def slow_fetcher(request: Request) -> Response:
        await release.wait()
        fetched.append(request)
        return make_response(content=b"fresh")

    async with anyio.create_task_group() as task_group:
        response = await StaleWhileRevalidate(slow_fetcher, task_group).run(request, generation)

        assert response is not None
        assert response.content == b"stale"
        assert response.metadata["swcache_from_cache"] is True
        assert fetched == []
        release.set()

    assert len(fetched) == 1
    stored = await generation.match(request)
    assert stored is not None
    assert stored.content == b"fresh"


@pytest.mark.anyio
async def test_stale_while_revalidate_background_failure_is_silent(
    storage: AsyncInMemoryStorage, fetcher: MockAsyncFetcher
) -> None:
    generation = await storage.open("dynamic")
    request = make_request("https://example.com/api/users")
    await generation.put(request, make_response(content=b"stale"))
    fetcher.add_responses([NetworkError("connection reset")])

    async with anyio.create_task_group() as task_group:
        response = await StaleWhileRevalidate(fetcher, task_group).run(request, generation)

    assert response is not None
    assert response.content == b"stale"
    assert fetcher.call_count == 1
    stored = await generation.match(request)
    assert stored is not None
    assert stored.content == b"stale"


@pytest.mark.anyio
async def test_stale_while_revalidate_background_error_status_not_stored(
    storage: AsyncInMemoryStorage, fetcher: MockAsyncFetcher
) -> None:
    generation = await storage.open("dynamic")
    request = make_request("https://example.com/api/users")
    await generation.put(request, make_response(content=b"stale"))
    fetcher.add_responses([make_response(502, b"bad gateway")])

    async with anyio.create_task_group() as task_group:
        await StaleWhileRevalidate(fetcher, task_group).run(request, generation)

    stored = await generation.match(request)
    assert stored is not None
    assert stored.content == b"stale"


@pytest.mark.anyio
async def test_stale_while_revalidate_miss_waits_for_network(
    storage: AsyncInMemoryStorage, fetcher: MockAsyncFetcher
) -> None:
    generation = await storage.open("dynamic")
    request = make_request("https://example.com/api/users")
    fetcher.add_responses([make_response(content=b"fresh")])

    async with anyio.create_task_group() as task_group:
        response = await StaleWhileRevalidate(fetcher, task_group).run(request, generation)

    assert response is not None
    assert response.content == b"fresh"
    assert response.metadata["swcache_stored"] is True
    stored = await generation.match(request)
    assert stored is not None
    assert stored.content == b"fresh"


@pytest.mark.anyio
async def test_stale_while_revalidate_miss_and_network_failure_returns_none(
    storage: AsyncInMemoryStorage, fetcher: MockAsyncFetcher
) -> None:
    generation = await storage.open("dynamic")
    fetcher.add_responses([NetworkError("offline")])

    async with anyio.create_task_group() as task_group:
        response = await StaleWhileRevalidate(fetcher, task_group).run(
            make_request("https://example.com/api/users"), generation
        )

    assert response is None


@pytest.mark.anyio
async def test_stale_while_revalidate_miss_can_answer_offline(
    storage: AsyncInMemoryStorage, fetcher: MockAsyncFetcher
) -> None:
    generation = await storage.open("dynamic")
    fetcher.add_responses([NetworkError("offline")])

    async with anyio.create_task_group() as task_group:
        response = await StaleWhileRevalidate(fetcher, task_group, offline_on_miss=True).run(
            make_request("https://example.com/api/users"), generation
        )

    assert response is not None
    assert response.status_code == 503
    assert response.metadata["swcache_strategy"] == "stale-while-revalidate"
