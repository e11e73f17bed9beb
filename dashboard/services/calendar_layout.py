import calendar
from collections.abc import Mapping
from collections.abc import Sequence
from datetime import date
from datetime import timedelta

from dashboard.models import DayCell
from dashboard.models import MonthBlock
from dashboard.models import YearGridModel


MONTH_NAMES = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
               "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]
DAY_LABELS = ["S", "M", "T", "W", "T", "F", "S"]

DAY_WIDTH = 10
COLUMN_GAP = 3


def contribution_level(count: int) -> int:
    """Map daily contribution count to a heatmap level in range 0..4."""

    if count <= 0:
        return 0
    if count <= 2:
        return 1
    if count <= 5:
        return 2
    if count <= 8:
        return 3
    return 4


def sunday_index(day: date) -> int:
    """Day of week with Sunday as 0 and Saturday as 6."""

    return (day.weekday() + 1) % 7


def month_range(year: int, month_index: int) -> tuple[date, date]:
    """Return the Sunday..Saturday range covering a 0-indexed month."""

    month = month_index + 1
    first_day = date(year, month, 1)
    last_day = date(year, month, calendar.monthrange(year, month)[1])

    start = first_day - timedelta(days=sunday_index(first_day))
    end = last_day + timedelta(days=6 - sunday_index(last_day))
    return start, end


def month_week_count(year: int, month_index: int) -> int:
    start, end = month_range(year, month_index)
    total_days = (end - start).days + 1
    return -(-total_days // 7)


def compute_month_block_width(year: int, month_index: int) -> int:
    """Pixel width of a month block: one column per week, gaps between."""

    weeks = month_week_count(year, month_index)
    return weeks * DAY_WIDTH + (weeks - 1) * COLUMN_GAP


def build_day_tooltip(
    day: str, per_user_counts: Mapping[str, int], users: Sequence[str]
) -> str:
    lines = []
    for username in users:
        count = per_user_counts.get(username, 0)
        if count > 0:
            label = "contribution" if count == 1 else "contributions"
            lines.append(f"{username}: {count} {label}")

    if not lines:
        return f"No contributions on {day}"
    return "\n".join([*lines, day])


def build_month_block(
    year: int,
    month_index: int,
    combined: Mapping[str, int],
    per_user_maps: Mapping[str, Mapping[str, int]],
    users: Sequence[str],
) -> MonthBlock:
    start, end = month_range(year, month_index)

    days: list[DayCell] = []
    current_day = start
    while current_day <= end:
        day_key = current_day.isoformat()
        per_user_counts = {
            username: per_user_maps.get(username, {}).get(day_key, 0)
            for username in users
        }
        count = combined.get(day_key, 0)
        in_month = current_day.month == month_index + 1

        days.append(
            DayCell(
                date=current_day,
                count=count,
                level=contribution_level(count) if in_month else 0,
                per_user_counts=per_user_counts,
                belongs_to_month=in_month,
                tooltip=build_day_tooltip(day_key, per_user_counts, users),
            )
        )
        current_day += timedelta(days=1)

    weeks = month_week_count(year, month_index)
    return MonthBlock(
        month_index=month_index,
        name=MONTH_NAMES[month_index],
        start=start,
        end=end,
        weeks=weeks,
        width=compute_month_block_width(year, month_index),
        days=days,
    )


def build_year_grid(
    year: int,
    combined: Mapping[str, int],
    per_user_maps: Mapping[str, Mapping[str, int]] | None = None,
    users: Sequence[str] = (),
) -> YearGridModel:
    """Lay out twelve month blocks for a year of combined contributions."""

    per_user_maps = per_user_maps or {}
    return YearGridModel(
        year=year,
        months=[
            build_month_block(year, month_index, combined, per_user_maps, users)
            for month_index in range(12)
        ],
    )


def build_month_labels(year: int) -> list[dict[str, str | int]]:
    return [
        {"name": name, "width": compute_month_block_width(year, month_index)}
        for month_index, name in enumerate(MONTH_NAMES)
    ]
