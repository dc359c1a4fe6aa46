"""Day-key computation with a configurable cutoff.

A "day" does not start at midnight: anything logged before the cutoff
(05:30 by default) still counts toward the previous day.
"""

from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from body_os.domain.errors import ValidationError

MAX_HOUR = 23
MAX_MINUTE = 59


@dataclass(frozen=True)
class DayCutoff:
    """Local time at which a new day key starts."""

    hour: int = 5
    minute: int = 30

    def __post_init__(self) -> None:
        if not 0 <= self.hour <= MAX_HOUR:
            raise ValidationError("Day cutoff hour must be between 0 and 23")
        if not 0 <= self.minute <= MAX_MINUTE:
            raise ValidationError("Day cutoff minute must be between 0 and 59")


def daily_log_key(
    moment: datetime, cutoff: DayCutoff, timezone_name: str = "UTC"
) -> str:
    """Return the ISO day key a timestamp belongs to."""
    local = moment.astimezone(ZoneInfo(timezone_name))
    day = local.date()
    if (local.hour, local.minute) < (cutoff.hour, cutoff.minute):
        day -= timedelta(days=1)
    return day.isoformat()


def day_bounds(
    date_key: str, cutoff: DayCutoff, timezone_name: str = "UTC"
) -> tuple[datetime, datetime]:
    """Return the UTC [start, end) range covered by a day key."""
    tz = ZoneInfo(timezone_name)
    start = datetime.combine(
        date.fromisoformat(date_key), time(cutoff.hour, cutoff.minute), tzinfo=tz
    )
    end = start + timedelta(days=1)
    return start.astimezone(UTC), end.astimezone(UTC)
