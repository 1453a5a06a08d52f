"""Cache key fingerprinting and cache duration policy."""
import hashlib
from datetime import date, datetime, timezone
from typing import Any, Iterable, List, Optional

from processor.models import CategoryId
from processor.periods import resolve_days

DEFAULT_DURATION = 60
MAX_DURATION = 3600


def normalize_tags(tags: Optional[Iterable[str]]) -> List[str]:
    """Uppercase, deduplicate and sort tags."""
    return sorted({CategoryId(tag) for tag in (tags or []) if tag and tag.strip()})


def date_key(period: str, year: Optional[int] = None,
             month: Optional[int] = None, week: Optional[int] = None,
             today: Optional[date] = None) -> str:
    """
    Derive the date bucket component of a cache key.

    Args:
        period: 'week', 'month', 'year' or 'future'
        year: Optional specific year
        month: Optional specific month
        week: Optional specific week number
        today: Reference date, defaults to today (UTC)

    Returns:
        Date bucket string
    """
    today = today or datetime.now(timezone.utc).date()
    start_day, _ = resolve_days(period, year, month, week, today)

    if period == 'future':
        return start_day.strftime('%Y-%m-%d')

    if period == 'week':
        if year and week:
            iso_year, iso_week, _ = start_day.isocalendar()
            return f"{iso_year}-W{iso_week:02d}"
        return start_day.strftime('%Y-%m-%d')

    if period == 'month':
        return start_day.strftime('%Y-%m')

    if period == 'year':
        return str(start_day.year)

    return ''


def generate_key(calendar_id: str, period: str,
                 tags: Optional[Iterable[str]] = None,
                 year: Optional[int] = None, month: Optional[int] = None,
                 week: Optional[int] = None, today: Optional[date] = None,
                 scope: Optional[str] = None) -> str:
    """
    Generate a cache key for an event query.

    Identical queries always produce the same key, whatever the order
    or casing of the tags.

    Args:
        calendar_id: Selected calendar id
        period: 'week', 'month', 'year' or 'future'
        tags: Requested filter tags
        year: Optional specific year
        month: Optional specific month
        week: Optional specific week number
        today: Reference date for the date bucket
        scope: Optional extra component separating viewer audiences

    Returns:
        SHA256 hex digest
    """
    key_parts = [
        calendar_id or '',
        period,
        date_key(period, year, month, week, today),
        '_'.join(normalize_tags(tags))
    ]
    if scope:
        key_parts.append(scope)

    composite = '|'.join(key_parts)
    return hashlib.sha256(composite.encode('utf-8')).hexdigest()


def clamp_duration(value: Any) -> int:
    """Clamp a cache duration to [0, 3600] seconds."""
    try:
        duration = int(value)
    except (TypeError, ValueError):
        return DEFAULT_DURATION

    return max(0, min(duration, MAX_DURATION))
