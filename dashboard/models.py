from collections.abc import Mapping
from datetime import date
from datetime import datetime
from typing import Any

from pydantic import BaseModel
from pydantic import ConfigDict


# ISO date (YYYY-MM-DD) -> contribution count. Absent dates count as 0.
ContributionMap = dict[str, int]

RATE_LIMITED_BIO = "Rate limit hit. Add a GitHub token for full details."


def parse_github_datetime(raw_value: str) -> datetime:
    return datetime.fromisoformat(raw_value.replace("Z", "+00:00"))


def _as_int(value: Any) -> int:
    return value if isinstance(value, int) and value >= 0 else 0


class UserProfile(BaseModel):
    """Identity and public stats of one GitHub account."""

    model_config = ConfigDict(frozen=True)

    login: str
    name: str | None = None
    avatar_url: str = ""
    followers: int = 0
    following: int = 0
    public_repos: int = 0
    bio: str | None = None
    is_placeholder: bool = False

    @classmethod
    def from_api(cls, payload: Mapping[str, Any]) -> "UserProfile":
        raw_login = payload.get("login")
        if not isinstance(raw_login, str) or not raw_login:
            raise ValueError("GitHub user response is missing login")

        return cls(
            login=raw_login,
            name=payload.get("name") if isinstance(payload.get("name"), str) else None,
            avatar_url=payload.get("avatar_url") or "",
            followers=_as_int(payload.get("followers")),
            following=_as_int(payload.get("following")),
            public_repos=_as_int(payload.get("public_repos")),
            bio=payload.get("bio") if isinstance(payload.get("bio"), str) else None,
        )

    @classmethod
    def placeholder(cls, username: str) -> "UserProfile":
        """Degraded profile used when the profile lookup was rate limited."""

        return cls(
            login=username,
            name=username,
            bio=RATE_LIMITED_BIO,
            is_placeholder=True,
        )


class Repo(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    full_name: str | None = None
    updated_at: str | None = None

    @classmethod
    def from_api(cls, payload: Mapping[str, Any]) -> "Repo | None":
        raw_name = payload.get("name")
        if not isinstance(raw_name, str) or not raw_name:
            return None
        full_name = payload.get("full_name")
        updated_at = payload.get("updated_at")
        return cls(
            name=raw_name,
            full_name=full_name if isinstance(full_name, str) else None,
            updated_at=updated_at if isinstance(updated_at, str) else None,
        )


class Commit(BaseModel):
    model_config = ConfigDict(frozen=True)

    sha: str | None = None
    authored_at: datetime | None = None

    @classmethod
    def from_api(cls, payload: Mapping[str, Any]) -> "Commit":
        sha = payload.get("sha")
        authored_at = None

        commit = payload.get("commit")
        author = commit.get("author") if isinstance(commit, Mapping) else None
        raw_date = author.get("date") if isinstance(author, Mapping) else None
        if isinstance(raw_date, str):
            try:
                authored_at = parse_github_datetime(raw_date)
            except ValueError:
                authored_at = None

        return cls(sha=sha if isinstance(sha, str) else None, authored_at=authored_at)


class DayCell(BaseModel):
    """One square of the contribution grid."""

    date: date
    count: int
    level: int
    per_user_counts: dict[str, int]
    belongs_to_month: bool
    tooltip: str


class MonthBlock(BaseModel):
    """Whole weeks (Sunday..Saturday) covering one calendar month."""

    month_index: int
    name: str
    start: date
    end: date
    weeks: int
    width: int
    days: list[DayCell]


class YearGridModel(BaseModel):
    year: int
    months: list[MonthBlock]


class YearContributions(BaseModel):
    year: int
    combined: ContributionMap
    per_user_maps: dict[str, ContributionMap]
    total: int


class ContributionLoad(BaseModel):
    """Result of loading contributions for every configured user and year.

    `per_year` only holds years whose combined total is above zero, while
    `grand_total` sums every loaded year.
    """

    per_year: list[YearContributions]
    per_user_totals: dict[str, int]
    grand_total: int
