"""Period normalization and time-window calculation."""
import calendar
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Tuple

PERIODS = ('week', 'month', 'year', 'future')
DEFAULT_PERIOD = 'future'
FUTURE_YEARS = 3


def normalize_period(period: Optional[str]) -> str:
    """Return a known period name, defaulting to 'future'."""
    period = (period or '').strip().lower()
    return period if period in PERIODS else DEFAULT_PERIOD


def current_monday(today: date) -> date:
    """
    Return the Monday of the week containing a date.

    Args:
        today: Any date

    Returns:
        Monday on or before that date
    """
    return today - timedelta(days=today.weekday())


def week_start(year: Optional[int] = None, month: Optional[int] = None,
               week: Optional[int] = None,
               today: Optional[date] = None) -> date:
    """
    Return the Monday that starts the requested week.

    With year, month and week the week is counted within the month,
    week 1 being the week that contains the 1st. With year and week
    only, week is an ISO week number. Otherwise the current week is used.

    Args:
        year: Calendar year
        month: Month (1-12)
        week: Week number
        today: Reference date, defaults to today (UTC)

    Returns:
        Monday of the week
    """
    today = today or datetime.now(timezone.utc).date()

    if year and month and week:
        first_monday = current_monday(date(year, month, 1))
        return first_monday + timedelta(weeks=week - 1)

    if year and week:
        return date.fromisocalendar(year, week, 1)

    return current_monday(today)


def resolve_days(period: str, year: Optional[int] = None,
                 month: Optional[int] = None, week: Optional[int] = None,
                 today: Optional[date] = None) -> Tuple[date, date]:
    """
    Resolve the first and last day covered by a period.

    The fetch window and the cache date bucket are both derived from this.

    Args:
        period: 'week', 'month', 'year' or 'future'
        year: Optional specific year
        month: Optional specific month (1-12)
        week: Optional specific week number
        today: Reference date, defaults to today (UTC)

    Returns:
        Tuple of (first_day, last_day)
    """
    today = today or datetime.now(timezone.utc).date()
    target_year = year or today.year
    target_month = month or today.month

    if period == 'future':
        try:
            end_day = today.replace(year=today.year + FUTURE_YEARS)
        except ValueError:
            # Feb 29 with no leap day three years out
            end_day = today.replace(year=today.year + FUTURE_YEARS, day=28)
        return today, end_day

    if period == 'week':
        if year and week:
            start_day = week_start(year, month, week, today)
        elif year:
            start_day = current_monday(date(target_year, target_month, 1))
        else:
            start_day = current_monday(today)
        return start_day, start_day + timedelta(days=6)

    if period == 'month':
        last_day = calendar.monthrange(target_year, target_month)[1]
        return (date(target_year, target_month, 1),
                date(target_year, target_month, last_day))

    return date(target_year, 1, 1), date(target_year, 12, 31)


def time_range(period: str, year: Optional[int] = None,
               month: Optional[int] = None, week: Optional[int] = None,
               now: Optional[datetime] = None) -> Tuple[datetime, datetime]:
    """
    Calculate the UTC time window to fetch for a period.

    Args:
        period: 'week', 'month', 'year' or 'future'
        year: Optional specific year
        month: Optional specific month (1-12)
        week: Optional specific week number
        now: Reference instant, defaults to now (UTC)

    Returns:
        Tuple of (time_min, time_max)
    """
    now = now or datetime.now(timezone.utc)
    start_day, end_day = resolve_days(period, year, month, week, now.date())

    time_min = datetime.combine(start_day, time(0, 0, 0), tzinfo=timezone.utc)
    time_max = datetime.combine(end_day, time(23, 59, 59), tzinfo=timezone.utc)
    return time_min, time_max
