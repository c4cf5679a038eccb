from __future__ import annotations

import typing as tp

from swcache._models import Request, Response

__all__ = ("MockAsyncFetcher",)


class MockAsyncFetcher:
    """
    A fetcher that answers with queued responses, or raises queued exceptions.
    """

    def __init__(self) -> None:
        self.mocked_responses: tp.List[tp.Union[Response, Exception]] = []
        self.requests: tp.List[Request] = []

    async def __call__(self, request: Request) -> Response:
        self.requests.append(request)
        mocked = self.mocked_responses.pop(0)
        if isinstance(mocked, Exception):
            raise mocked
        return mocked

    def add_responses(self, responses: tp.List[tp.Union[Response, Exception]]) -> None:
        self.mocked_responses.extend(responses)

    @property
    def call_count(self) -> int:
        return len(self.requests)
