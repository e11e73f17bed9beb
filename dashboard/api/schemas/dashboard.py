from pydantic import BaseModel

from dashboard.models import UserProfile
from dashboard.models import YearGridModel


class MonthLabel(BaseModel):
    """Month name and the pixel width of the block it sits above."""

    name: str
    width: int


class YearSection(BaseModel):
    """Combined contribution grid for one year with nonzero activity."""

    year: int
    total: int
    month_labels: list[MonthLabel]
    grid: YearGridModel


class UserTotal(BaseModel):
    login: str
    role: str
    total: int


class DashboardResponse(BaseModel):
    """Combined activity dashboard payload."""

    profiles: list[UserProfile]
    years: list[YearSection]
    per_user_totals: list[UserTotal]
    grand_total: int
    current_year: int
    notices: list[str]
