import logging
from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any
from typing import Generic
from typing import TypeVar

import httpx

from dashboard.core.cache import ResponseCache
from dashboard.models import Commit
from dashboard.models import ContributionMap
from dashboard.models import Repo
from dashboard.models import UserProfile
from dashboard.settings import Settings


logger = logging.getLogger(__name__)

T = TypeVar("T")

CONTRIBUTION_CALENDAR_QUERY = """
query($login: String!, $from: DateTime!, $to: DateTime!) {
  user(login: $login) {
    contributionsCollection(from: $from, to: $to) {
      contributionCalendar {
        weeks {
          contributionDays {
            date
            contributionCount
          }
        }
      }
    }
  }
}
"""


class FailureKind(StrEnum):
    NOT_FOUND = "not_found"
    RATE_LIMITED = "rate_limited"
    ERROR = "error"
    NETWORK = "network"


@dataclass(frozen=True)
class Success(Generic[T]):
    payload: T
    status: int = 200


@dataclass(frozen=True)
class Failure:
    kind: FailureKind
    status: int | None = None
    reason: str = ""


def year_window(year: int) -> tuple[str, str]:
    """Return the ISO-8601 `from`/`to` bounds covering one calendar year."""

    return f"{year}-01-01T00:00:00Z", f"{year}-12-31T23:59:59Z"


def classify_status(status_code: int) -> FailureKind:
    if status_code == 404:
        return FailureKind.NOT_FOUND
    if status_code in {403, 429}:
        return FailureKind.RATE_LIMITED
    return FailureKind.ERROR


def flatten_contribution_calendar(payload: Any) -> ContributionMap:
    """Flatten a GraphQL contribution calendar into a date -> count map.

    Zero-count days are kept since the calendar reports every day in range.

    Raises:
        ValueError: If the response does not carry a contribution calendar.
    """

    if not isinstance(payload, Mapping):
        raise ValueError("GitHub GraphQL response is invalid")

    if payload.get("errors"):
        raise ValueError("GitHub GraphQL returned errors")

    data = payload.get("data")
    if not isinstance(data, Mapping):
        raise ValueError("GitHub GraphQL data is missing")

    user = data.get("user")
    if not isinstance(user, Mapping):
        raise ValueError("GitHub user not found")

    collection = user.get("contributionsCollection")
    if not isinstance(collection, Mapping):
        raise ValueError("GitHub contributionsCollection is missing")

    calendar = collection.get("contributionCalendar")
    if not isinstance(calendar, Mapping):
        raise ValueError("GitHub contributionCalendar is missing")

    weeks = calendar.get("weeks")
    if not isinstance(weeks, list):
        raise ValueError("GitHub contribution weeks are missing")

    contributions: ContributionMap = {}
    for week in weeks:
        if not isinstance(week, Mapping):
            continue
        contribution_days = week.get("contributionDays")
        if not isinstance(contribution_days, list):
            continue
        for item in contribution_days:
            if not isinstance(item, Mapping):
                continue
            raw_date = item.get("date")
            raw_count = item.get("contributionCount")
            if isinstance(raw_date, str) and raw_date:
                contributions[raw_date] = raw_count if isinstance(raw_count, int) else 0

    return contributions


class UpstreamClient:
    """Cached, authenticated access to the GitHub REST and GraphQL APIs.

    Every operation returns a `Success` or a `Failure` (or, for the
    contribution calendar, a map or None); HTTP and transport problems never
    propagate as exceptions. Only successful responses are cached.
    """

    def __init__(
        self,
        cache: ResponseCache,
        token: str | None = None,
        api_base_url: str = "https://api.github.com",
        graphql_url: str = "https://api.github.com/graphql",
        user_agent: str = "github-activity-dashboard",
        timeout: float = 20.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.cache = cache
        self.token = token or None
        self.api_base_url = api_base_url.rstrip("/")
        self.graphql_url = graphql_url

        headers = {
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": user_agent,
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        self._http = httpx.AsyncClient(
            headers=headers, timeout=timeout, transport=transport
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        cache: ResponseCache,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "UpstreamClient":
        return cls(
            cache=cache,
            token=settings.github_token,
            api_base_url=settings.github_api_base_url,
            graphql_url=settings.github_graphql_url,
            user_agent=settings.github_user_agent,
            timeout=settings.http_timeout_seconds,
            transport=transport,
        )

    async def __aenter__(self) -> "UpstreamClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def fetch_profile(self, username: str) -> Success[UserProfile] | Failure:
        result = await self._get_json(f"{self.api_base_url}/users/{username}")
        if isinstance(result, Failure):
            return result

        if not isinstance(result.payload, Mapping):
            return Failure(FailureKind.ERROR, result.status, "profile response is invalid")
        try:
            profile = UserProfile.from_api(result.payload)
        except ValueError as exc:
            return Failure(FailureKind.ERROR, result.status, str(exc))
        return Success(profile, result.status)

    async def fetch_repositories(self, username: str) -> Success[list[Repo]] | Failure:
        result = await self._get_json(
            f"{self.api_base_url}/users/{username}/repos",
            params={"sort": "updated", "per_page": 100},
        )
        if isinstance(result, Failure):
            return result

        if not isinstance(result.payload, list):
            return Failure(FailureKind.ERROR, result.status, "repository list is invalid")

        repos: list[Repo] = []
        for item in result.payload:
            if isinstance(item, Mapping) and (repo := Repo.from_api(item)) is not None:
                repos.append(repo)
        return Success(repos, result.status)

    async def fetch_commits(
        self, username: str, repo: Repo | str, since: str, until: str
    ) -> Success[list[Commit]] | Failure:
        repo_name = repo.name if isinstance(repo, Repo) else repo
        result = await self._get_json(
            f"{self.api_base_url}/repos/{username}/{repo_name}/commits",
            params={
                "author": username,
                "since": since,
                "until": until,
                "per_page": 100,
            },
        )
        if isinstance(result, Failure):
            return result

        if not isinstance(result.payload, list):
            return Failure(FailureKind.ERROR, result.status, "commit list is invalid")

        commits = [Commit.from_api(item) for item in result.payload if isinstance(item, Mapping)]
        return Success(commits, result.status)

    async def fetch_contribution_calendar(
        self, username: str, year: int
    ) -> ContributionMap | None:
        """Fetch one year of per-day contribution counts from GraphQL.

        Returns None when no token is configured or the request fails in any
        way, so callers can fall back to commit enumeration.
        """

        if not self.token:
            logger.warning("No GitHub token available for GraphQL contributions fetch")
            return None

        cache_key = f"graphql:{username}:{year}"
        async with self.cache.lock(cache_key):
            cached = self.cache.get(cache_key)
            if cached is not None:
                return dict(cached.payload)

            date_from, date_to = year_window(year)
            try:
                response = await self._http.post(
                    self.graphql_url,
                    json={
                        "query": CONTRIBUTION_CALENDAR_QUERY,
                        "variables": {"login": username, "from": date_from, "to": date_to},
                    },
                    headers={"Content-Type": "application/json"},
                )
            except httpx.HTTPError as exc:
                logger.warning("GraphQL contribution fetch error for %s: %s", username, exc)
                return None

            if not response.is_success:
                logger.warning(
                    "GraphQL contribution fetch failed for %s/%d: %s %s",
                    username,
                    year,
                    response.status_code,
                    response.reason_phrase,
                )
                return None

            try:
                contributions = flatten_contribution_calendar(response.json())
            except ValueError as exc:
                logger.warning("GraphQL contribution fetch errors for %s/%d: %s", username, year, exc)
                return None

            self.cache.put(cache_key, contributions, response.status_code)
            return dict(contributions)

    async def _get_json(
        self, url: str, params: dict[str, str | int] | None = None
    ) -> Success[Any] | Failure:
        cache_key = str(httpx.URL(url, params=params))
        async with self.cache.lock(cache_key):
            cached = self.cache.get(cache_key)
            if cached is not None:
                return Success(cached.payload, cached.status)

            try:
                response = await self._http.get(url, params=params)
            except httpx.HTTPError as exc:
                logger.error("API fetch error for %s: %s", cache_key, exc)
                return Failure(FailureKind.NETWORK, None, "network error")

            logger.debug(
                "API call to %s: %s %s", cache_key, response.status_code, response.reason_phrase
            )

            if not response.is_success:
                if response.status_code in {403, 429}:
                    remaining = response.headers.get("X-RateLimit-Remaining", "unknown")
                    logger.warning(
                        "GitHub rate limit hit for %s (remaining: %s)", cache_key, remaining
                    )
                return Failure(
                    classify_status(response.status_code),
                    response.status_code,
                    response.reason_phrase,
                )

            try:
                payload = response.json()
            except ValueError:
                logger.warning("Failed to parse JSON response from %s", cache_key)
                return Failure(FailureKind.ERROR, response.status_code, "invalid JSON")

            self.cache.put(cache_key, payload, response.status_code)
            return Success(payload, response.status_code)
