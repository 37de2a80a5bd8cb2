import math
from datetime import datetime, timezone
from typing import Optional

SECONDS_PER_DAY = 86400


def utcnow() -> datetime:
    """Current UTC time as a naive datetime (the store keeps naive UTC)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def days_until(moment: datetime, now: Optional[datetime] = None) -> int:
    """Whole days left until `moment`, rounded up."""
    now = now or utcnow()
    return math.ceil((moment - now).total_seconds() / SECONDS_PER_DAY)
