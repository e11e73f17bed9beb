import logging
from asyncio import sleep
from collections.abc import Iterable
from collections.abc import Mapping

from dashboard.github_api import Failure
from dashboard.github_api import UpstreamClient
from dashboard.github_api import year_window
from dashboard.models import ContributionLoad
from dashboard.models import ContributionMap
from dashboard.models import YearContributions


logger = logging.getLogger(__name__)

DEFAULT_MAX_REPOSITORIES = 5
DEFAULT_THROTTLE_SECONDS = 0.1


def merge_into(target: ContributionMap, source: Mapping[str, int]) -> ContributionMap:
    """Add every count of `source` into `target` in place and return `target`."""

    for day, count in source.items():
        target[day] = target.get(day, 0) + count
    return target


def count_contributions(contributions: Mapping[str, int]) -> int:
    return sum(contributions.values())


async def get_contributions(
    client: UpstreamClient,
    username: str,
    year: int,
    max_repositories: int = DEFAULT_MAX_REPOSITORIES,
    throttle_seconds: float = DEFAULT_THROTTLE_SECONDS,
) -> ContributionMap:
    """Return one user's contributions for one year.

    The GraphQL contribution calendar is authoritative and returned as-is.
    Without it, commits authored by the user in their most recently updated
    repositories are counted per day. Any failure along the way ends in an
    empty map rather than an exception.
    """

    logger.info("Fetching contribution data for %s, year %d", username, year)

    calendar = await client.fetch_contribution_calendar(username, year)
    if calendar is not None:
        return calendar

    repos_result = await client.fetch_repositories(username)
    if isinstance(repos_result, Failure):
        logger.warning(
            "Failed to fetch repos for %s: %s %s",
            username,
            repos_result.status,
            repos_result.reason,
        )
        return {}

    repos = repos_result.payload
    if not repos:
        logger.info("No repositories found for %s", username)
        return {}

    since, until = year_window(year)
    contributions: ContributionMap = {}
    total_commits = 0

    # Capped to keep the request volume within unauthenticated rate limits.
    for repo in repos[:max_repositories]:
        commits_result = await client.fetch_commits(username, repo, since, until)
        if isinstance(commits_result, Failure):
            logger.warning(
                "Failed to fetch commits for %s: %s", repo.name, commits_result.status
            )
        else:
            for commit in commits_result.payload:
                if commit.authored_at is None or commit.authored_at.year != year:
                    continue
                day = commit.authored_at.date().isoformat()
                contributions[day] = contributions.get(day, 0) + 1
                total_commits += 1

        if throttle_seconds > 0:
            await sleep(throttle_seconds)

    logger.info("Total commits found for %s in %d: %d", username, year, total_commits)
    if total_commits == 0:
        return {}
    return contributions


async def load_all_years(
    client: UpstreamClient,
    users: Iterable[str],
    years: Iterable[int],
    max_repositories: int = DEFAULT_MAX_REPOSITORIES,
    throttle_seconds: float = DEFAULT_THROTTLE_SECONDS,
) -> ContributionLoad:
    users = list(users)
    per_user_totals = {username: 0 for username in users}
    per_year: list[YearContributions] = []
    grand_total = 0

    for year in years:
        combined: ContributionMap = {}
        per_user_maps: dict[str, ContributionMap] = {}

        for username in users:
            contributions = await get_contributions(
                client,
                username,
                year,
                max_repositories=max_repositories,
                throttle_seconds=throttle_seconds,
            )
            per_user_maps[username] = contributions
            per_user_totals[username] += count_contributions(contributions)
            merge_into(combined, contributions)

        year_total = count_contributions(combined)
        grand_total += year_total
        if year_total > 0:
            per_year.append(
                YearContributions(
                    year=year,
                    combined=combined,
                    per_user_maps=per_user_maps,
                    total=year_total,
                )
            )

    return ContributionLoad(
        per_year=per_year,
        per_user_totals=per_user_totals,
        grand_total=grand_total,
    )
