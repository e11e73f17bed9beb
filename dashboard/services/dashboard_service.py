import logging
from collections.abc import Sequence
from dataclasses import dataclass
from dataclasses import field
from datetime import date

from dashboard.github_api import Failure
from dashboard.github_api import FailureKind
from dashboard.github_api import UpstreamClient
from dashboard.models import ContributionLoad
from dashboard.models import UserProfile
from dashboard.services.calendar_layout import build_month_labels
from dashboard.services.calendar_layout import build_year_grid
from dashboard.services.contribution_service import DEFAULT_MAX_REPOSITORIES
from dashboard.services.contribution_service import DEFAULT_THROTTLE_SECONDS
from dashboard.services.contribution_service import load_all_years
from dashboard.settings import Settings


logger = logging.getLogger(__name__)


class UserNotFoundError(Exception):
    """Raised when one of the requested GitHub users does not exist."""

    def __init__(self, username: str) -> None:
        super().__init__(f"User {username} not found")
        self.username = username


class GitHubAPIError(Exception):
    """Raised when profile resolution fails for reasons other than 404/403."""


def default_years(today: date | None = None) -> list[int]:
    current_year = (today or date.today()).year
    return [current_year, current_year - 1]


@dataclass
class DashboardSession:
    """Everything one dashboard load needs, passed explicitly."""

    client: UpstreamClient
    users: list[str]
    years: list[int]
    current_year: int = field(default_factory=lambda: date.today().year)
    max_repositories: int = DEFAULT_MAX_REPOSITORIES
    throttle_seconds: float = DEFAULT_THROTTLE_SECONDS

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        client: UpstreamClient,
        users: Sequence[str] | None = None,
        years: Sequence[int] | None = None,
        today: date | None = None,
    ) -> "DashboardSession":
        today = today or date.today()
        return cls(
            client=client,
            users=list(users or settings.dashboard_users),
            years=list(years or settings.dashboard_years or default_years(today)),
            current_year=today.year,
            max_repositories=settings.max_fallback_repositories,
            throttle_seconds=settings.repository_throttle_seconds,
        )


@dataclass
class ProfileLoad:
    profiles: list[UserProfile]
    rate_limited: bool = False


async def load_profiles(client: UpstreamClient, usernames: Sequence[str]) -> ProfileLoad:
    """Resolve every username to a profile, in order.

    Raises:
        UserNotFoundError: If any user does not exist.
        GitHubAPIError: If a lookup fails with anything but 403/404.
    """

    profiles: list[UserProfile] = []
    rate_limited = False

    for username in usernames:
        result = await client.fetch_profile(username)
        if not isinstance(result, Failure):
            profiles.append(result.payload)
            continue

        if result.kind is FailureKind.NOT_FOUND:
            raise UserNotFoundError(username)
        if result.kind is FailureKind.RATE_LIMITED:
            logger.warning("Rate limit hit while fetching profile %s", username)
            rate_limited = True
            profiles.append(UserProfile.placeholder(username))
            continue
        if result.kind is FailureKind.NETWORK:
            raise GitHubAPIError("GitHub API network error")
        raise GitHubAPIError(f"GitHub API error: {result.status} {result.reason}")

    validate_profiles(profiles)
    return ProfileLoad(profiles=profiles, rate_limited=rate_limited)


def validate_profiles(profiles: Sequence[UserProfile]) -> None:
    if not profiles or any(not profile.login for profile in profiles):
        raise GitHubAPIError("Invalid user data received")


def build_notices(
    profiles: Sequence[UserProfile], rate_limited: bool, grand_total: int
) -> list[str]:
    logins = [profile.login for profile in profiles]
    notices = []
    if rate_limited:
        notices.append(f"{' + '.join(logins)} (rate limited)")
    if grand_total == 0:
        notices.append(f"No contribution data found for {' · '.join(logins)}")
    return notices


def build_year_sections(
    load: ContributionLoad, users: Sequence[str]
) -> list[dict[str, object]]:
    return [
        {
            "year": year_data.year,
            "total": year_data.total,
            "month_labels": build_month_labels(year_data.year),
            "grid": build_year_grid(
                year_data.year, year_data.combined, year_data.per_user_maps, users
            ),
        }
        for year_data in load.per_year
    ]


def empty_year_section(year: int, users: Sequence[str]) -> dict[str, object]:
    return {
        "year": year,
        "total": 0,
        "month_labels": build_month_labels(year),
        "grid": build_year_grid(year, {}, {}, users),
    }


async def build_dashboard(session: DashboardSession) -> dict[str, object]:
    """Load profiles and contributions and lay out the yearly grids."""

    profile_load = await load_profiles(session.client, session.users)
    logins = [profile.login for profile in profile_load.profiles]

    try:
        load = await load_all_years(
            session.client,
            logins,
            session.years,
            max_repositories=session.max_repositories,
            throttle_seconds=session.throttle_seconds,
        )
        years = build_year_sections(load, logins)
        per_user_totals = load.per_user_totals
        grand_total = load.grand_total
    except Exception:
        logger.exception("Error loading contributions")
        years = [empty_year_section(session.current_year, logins)]
        per_user_totals = {login: 0 for login in logins}
        grand_total = 0

    for year_section in years:
        logger.info("%s: %s contributions", year_section["year"], year_section["total"])

    return {
        "profiles": profile_load.profiles,
        "years": years,
        "per_user_totals": [
            {
                "login": login,
                "role": "Primary" if index == 0 else "Secondary",
                "total": per_user_totals.get(login, 0),
            }
            for index, login in enumerate(logins)
        ],
        "grand_total": grand_total,
        "current_year": session.current_year,
        "notices": build_notices(
            profile_load.profiles, profile_load.rate_limited, grand_total
        ),
    }
