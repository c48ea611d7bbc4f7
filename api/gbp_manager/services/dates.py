"""Date-window and text helpers shared by the analytics and sync services."""
from datetime import datetime, date, timedelta
from typing import Optional, Tuple

from gbp_manager.exceptions import ValidationError

# Fixed-offset windows ending now, not calendar-aligned
PERIOD_DAYS = {
    "week": 7,
    "month": 30,
    "quarter": 90,
}

ELLIPSIS = "..."


def resolve_date_range(period: str, now: Optional[datetime] = None) -> Tuple[date, date]:
    """Closed [start, end] date range for a period, ending today."""
    key = getattr(period, "value", period)
    if key not in PERIOD_DAYS:
        raise ValidationError(
            f"Unknown period: {key}", {"allowed": sorted(PERIOD_DAYS)}
        )
    end = now or datetime.utcnow()
    start = end - timedelta(days=PERIOD_DAYS[key])
    return start.date(), end.date()


def day_key(value) -> str:
    """YYYY-MM-DD for a date or datetime."""
    if isinstance(value, datetime):
        value = value.date()
    return value.isoformat()


def day_label(value) -> str:
    """Short chart label, e.g. 'Mar 05'."""
    if isinstance(value, str):
        value = date.fromisoformat(value)
    return value.strftime("%b %d")


def truncate(text: Optional[str], limit: int) -> str:
    if not text:
        return ""
    if len(text) <= limit:
        return text
    return text[:limit] + ELLIPSIS
