"""
Timezone-aware datetime helpers. Everything is stored and compared in UTC.
"""
from datetime import datetime, timezone
from typing import Optional

UTC = timezone.utc


def now_utc() -> datetime:
    """Current time in UTC (timezone-aware)."""
    return datetime.now(UTC)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """If dt is naive, treat as UTC; if aware, convert to UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def iso_utc(dt: Optional[datetime]) -> Optional[str]:
    """Serialize as ISO-8601 in UTC. Use for API response datetime fields."""
    if dt is None:
        return None
    return ensure_utc(dt).isoformat()
