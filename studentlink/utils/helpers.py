from datetime import datetime, date
from typing import Any, Optional

def utcnow() -> datetime:
    # Naive UTC everywhere; the DB columns are timezone-less
    return datetime.utcnow()

def isoformat(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat()

def hours_between(start: Optional[datetime], end: Optional[datetime]) -> Optional[float]:
    if not start or not end:
        return None
    return (end - start).total_seconds() / 3600

def safe_int(value: Any, default: Optional[int] = None) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default

def parse_date(value: Any) -> Optional[date]:
    """Accept YYYY-MM-DD (or a full ISO timestamp); None when blank or unparsable."""
    if not value:
        return None
    if isinstance(value, date):
        return value
    try:
        return datetime.fromisoformat(str(value).strip()).date()
    except ValueError:
        return None

def percent(part: int, whole: int, digits: int = 2) -> float:
    if not whole:
        return 0
    return round(part / whole * 100, digits)

# Jinja filters for reports and mail ("March 5, 2025 at 3:07 PM", "Mar 5, 2025")
def long_datetime(value: Optional[datetime]) -> str:
    if not value:
        return "N/A"
    hour = value.hour % 12 or 12
    return f"{value:%B} {value.day}, {value:%Y} at {hour}:{value:%M %p}"

def short_date(value: Optional[datetime], default: str = "N/A") -> str:
    if not value:
        return default
    return f"{value:%b} {value.day}, {value:%Y}"

def humanize(value: Optional[str]) -> str:
    return (value or "").replace("_", " ").capitalize()
