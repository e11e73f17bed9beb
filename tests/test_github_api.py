import httpx
import pytest

from conftest import RecordingHandler
from conftest import calendar_payload
from conftest import commit_payload
from conftest import graphql_variables
from conftest import make_client
from dashboard.core.cache import ResponseCache
from dashboard.github_api import Failure
from dashboard.github_api import FailureKind
from dashboard.github_api import Success
from dashboard.github_api import flatten_contribution_calendar
from dashboard.github_api import year_window
from dashboard.models import Repo


pytestmark = pytest.mark.anyio


PROFILE = {
    "login": "octocat",
    "name": "The Octocat",
    "avatar_url": "https://avatars.example/octocat.png",
    "followers": 10,
    "following": 2,
    "public_repos": 8,
    "bio": "mascot",
}


async def test_fetch_profile_returns_profile_and_sends_headers() -> None:
    handler = RecordingHandler(
        {"/users/octocat": lambda request: httpx.Response(200, json=PROFILE)}
    )
    async with make_client(handler) as client:
        result = await client.fetch_profile("octocat")

    assert isinstance(result, Success)
    assert result.payload.login == "octocat"
    assert result.payload.name == "The Octocat"
    assert result.payload.public_repos == 8
    assert result.payload.is_placeholder is False

    request = handler.requests[0]
    assert request.headers["Authorization"] == "Bearer test-token"
    assert request.headers["Accept"] == "application/vnd.github.v3+json"
    assert request.headers["User-Agent"] == "github-activity-dashboard"


async def test_requests_without_token_have_no_authorization_header() -> None:
    handler = RecordingHandler(
        {"/users/octocat": lambda request: httpx.Response(200, json=PROFILE)}
    )
    async with make_client(handler, token=None) as client:
        await client.fetch_profile("octocat")

    assert "Authorization" not in handler.requests[0].headers


@pytest.mark.parametrize(
    ("status_code", "kind"),
    [
        (404, FailureKind.NOT_FOUND),
        (403, FailureKind.RATE_LIMITED),
        (500, FailureKind.ERROR),
        (401, FailureKind.ERROR),
    ],
)
async def test_fetch_profile_maps_status_to_failure_kind(
    status_code: int, kind: FailureKind
) -> None:
    handler = RecordingHandler(
        {"/users/octocat": lambda request: httpx.Response(status_code, json={})}
    )
    async with make_client(handler) as client:
        result = await client.fetch_profile("octocat")

    assert result == Failure(kind, status_code, result.reason)


async def test_transport_failure_maps_to_network_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("boom", request=request)

    async with make_client(handler) as client:
        result = await client.fetch_profile("octocat")

    assert isinstance(result, Failure)
    assert result.kind is FailureKind.NETWORK
    assert result.status is None


async def test_successful_responses_are_served_from_cache() -> None:
    handler = RecordingHandler(
        {"/users/octocat": lambda request: httpx.Response(200, json=PROFILE)}
    )
    cache = ResponseCache()
    async with make_client(handler, cache=cache) as client:
        first = await client.fetch_profile("octocat")
        second = await client.fetch_profile("octocat")

    assert first == second
    assert len(handler.requests) == 1


async def test_failed_responses_are_not_cached() -> None:
    statuses = iter([500, 200])
    handler = RecordingHandler(
        {"/users/octocat": lambda request: httpx.Response(next(statuses), json=PROFILE)}
    )
    async with make_client(handler) as client:
        first = await client.fetch_profile("octocat")
        second = await client.fetch_profile("octocat")

    assert isinstance(first, Failure)
    assert isinstance(second, Success)
    assert len(handler.requests) == 2


async def test_expired_cache_entry_triggers_refetch(clock) -> None:
    handler = RecordingHandler(
        {"/users/octocat": lambda request: httpx.Response(200, json=PROFILE)}
    )
    cache = ResponseCache(ttl_seconds=300, clock=clock)
    async with make_client(handler, cache=cache) as client:
        await client.fetch_profile("octocat")
        clock.advance(301)
        await client.fetch_profile("octocat")

    assert len(handler.requests) == 2


async def test_fetch_repositories_requests_updated_order() -> None:
    repos = [
        {"name": "newest", "updated_at": "2024-05-01T00:00:00Z"},
        {"name": "older", "updated_at": "2024-01-01T00:00:00Z"},
        {"full_name": "broken/no-name"},
    ]
    handler = RecordingHandler(
        {"/users/octocat/repos": lambda request: httpx.Response(200, json=repos)}
    )
    async with make_client(handler) as client:
        result = await client.fetch_repositories("octocat")

    assert isinstance(result, Success)
    assert [repo.name for repo in result.payload] == ["newest", "older"]
    params = handler.requests[0].url.params
    assert params["sort"] == "updated"
    assert params["per_page"] == "100"


async def test_fetch_repositories_rate_limited() -> None:
    handler = RecordingHandler(
        {"/users/octocat/repos": lambda request: httpx.Response(403, json={})}
    )
    async with make_client(handler) as client:
        result = await client.fetch_repositories("octocat")

    assert isinstance(result, Failure)
    assert result.kind is FailureKind.RATE_LIMITED


async def test_fetch_commits_filters_by_author_and_window() -> None:
    commits = [commit_payload("2024-02-03T10:00:00Z"), {"sha": "no-date", "commit": {}}]
    handler = RecordingHandler(
        {"/repos/octocat/hello/commits": lambda request: httpx.Response(200, json=commits)}
    )
    since, until = year_window(2024)
    async with make_client(handler) as client:
        result = await client.fetch_commits("octocat", Repo(name="hello"), since, until)

    assert isinstance(result, Success)
    assert result.payload[0].authored_at.isoformat() == "2024-02-03T10:00:00+00:00"
    assert result.payload[1].authored_at is None
    params = handler.requests[0].url.params
    assert params["author"] == "octocat"
    assert params["since"] == "2024-01-01T00:00:00Z"
    assert params["until"] == "2024-12-31T23:59:59Z"
    assert params["per_page"] == "100"


async def test_fetch_contribution_calendar_flattens_days() -> None:
    days = {"2024-01-01": 0, "2024-01-02": 3}
    handler = RecordingHandler(
        {"/graphql": lambda request: httpx.Response(200, json=calendar_payload(days))}
    )
    async with make_client(handler) as client:
        result = await client.fetch_contribution_calendar("octocat", 2024)

    assert result == {"2024-01-01": 0, "2024-01-02": 3}
    request = handler.requests[0]
    assert request.method == "POST"
    assert graphql_variables(request) == {
        "login": "octocat",
        "from": "2024-01-01T00:00:00Z",
        "to": "2024-12-31T23:59:59Z",
    }


async def test_fetch_contribution_calendar_without_token_skips_request() -> None:
    handler = RecordingHandler({})
    async with make_client(handler, token=None) as client:
        result = await client.fetch_contribution_calendar("octocat", 2024)

    assert result is None
    assert handler.requests == []


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(502, json={}),
        httpx.Response(200, json={"errors": [{"message": "bad"}]}),
        httpx.Response(200, json={"data": {"user": None}}),
    ],
)
async def test_fetch_contribution_calendar_failures_return_none(
    response: httpx.Response,
) -> None:
    handler = RecordingHandler({"/graphql": lambda request: response})
    async with make_client(handler) as client:
        result = await client.fetch_contribution_calendar("octocat", 2024)

    assert result is None


async def test_fetch_contribution_calendar_is_cached() -> None:
    handler = RecordingHandler(
        {
            "/graphql": lambda request: httpx.Response(
                200, json=calendar_payload({"2024-01-01": 1})
            )
        }
    )
    async with make_client(handler) as client:
        first = await client.fetch_contribution_calendar("octocat", 2024)
        first["2024-01-01"] = 99
        second = await client.fetch_contribution_calendar("octocat", 2024)

    assert second == {"2024-01-01": 1}
    assert len(handler.requests) == 1


def test_flatten_contribution_calendar_rejects_missing_weeks() -> None:
    payload = {"data": {"user": {"contributionsCollection": {"contributionCalendar": {}}}}}

    with pytest.raises(ValueError, match="weeks"):
        flatten_contribution_calendar(payload)
