import json
from collections.abc import Callable

import httpx
import pytest

from dashboard.core.cache import ResponseCache
from dashboard.github_api import UpstreamClient


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


class FakeClock:
    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


def calendar_payload(days: dict[str, int]) -> dict[str, object]:
    """GraphQL response body with every day in a single week bucket."""

    return {
        "data": {
            "user": {
                "contributionsCollection": {
                    "contributionCalendar": {
                        "weeks": [
                            {
                                "contributionDays": [
                                    {"date": day, "contributionCount": count}
                                    for day, count in days.items()
                                ]
                            }
                        ]
                    }
                }
            }
        }
    }


def commit_payload(authored_at: str) -> dict[str, object]:
    return {"sha": authored_at, "commit": {"author": {"date": authored_at}}}


class RecordingHandler:
    """MockTransport handler that records requests and routes by path."""

    def __init__(self, routes: dict[str, Callable[[httpx.Request], httpx.Response]]):
        self.routes = routes
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get(request.url.path)
        if handler is None:
            return httpx.Response(404, json={"message": "Not Found"})
        return handler(request)

    def calls_to(self, path: str) -> list[httpx.Request]:
        return [request for request in self.requests if request.url.path == path]


def graphql_variables(request: httpx.Request) -> dict[str, object]:
    return json.loads(request.content)["variables"]


def make_client(
    handler: Callable[[httpx.Request], httpx.Response],
    token: str | None = "test-token",
    cache: ResponseCache | None = None,
) -> UpstreamClient:
    return UpstreamClient(
        cache=cache if cache is not None else ResponseCache(),
        token=token,
        transport=httpx.MockTransport(handler),
    )
