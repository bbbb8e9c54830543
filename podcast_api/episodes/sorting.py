"""Resolution of listing sort keys to ORM columns."""

from typing import NamedTuple, Optional

from sqlalchemy.orm import InstrumentedAttribute

RANDOM_SORT = "random"
MOST_RECENT_SORT = "most-recent"

# Sort key -> (attribute name, direction). "random" has no column.
SORT_COLUMNS = {
    "top-past-hour": ("past_hour_total_unique_pageviews", "DESC"),
    "top-past-day": ("past_day_total_unique_pageviews", "DESC"),
    "top-past-week": ("past_week_total_unique_pageviews", "DESC"),
    "top-past-month": ("past_month_total_unique_pageviews", "DESC"),
    "top-past-year": ("past_year_total_unique_pageviews", "DESC"),
    "top-all-time": ("past_all_time_total_unique_pageviews", "DESC"),
    MOST_RECENT_SORT: ("pub_date", "DESC"),
    "oldest": ("pub_date", "ASC"),
    "alphabetical": ("title", "ASC"),
}

VALID_SORTS = frozenset(SORT_COLUMNS) | {RANDOM_SORT}


class SortColumn(NamedTuple):
    """An ORM column paired with "ASC" or "DESC"."""

    column: Optional[InstrumentedAttribute]
    direction: str


def resolve_sort_column(entity, sort: Optional[str], default_column: str) -> SortColumn:
    """
    Resolve a listing sort key to a column on `entity` and a direction.

    Unknown or missing keys fall back to `default_column` descending. The
    "random" key resolves to no column; callers order by the database's
    random function instead.

    Args:
        entity: ORM model class the column belongs to.
        sort: Sort key such as "top-past-week" or "most-recent".
        default_column: Attribute name used when the key is not recognized.

    Returns:
        SortColumn: (column, direction)
    """
    if sort == RANDOM_SORT:
        return SortColumn(None, "ASC")

    attribute, direction = SORT_COLUMNS.get(sort, (default_column, "DESC"))
    return SortColumn(getattr(entity, attribute), direction)
