"""Server-side logging and daily aggregation."""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta
from typing import Protocol
from uuid import UUID

from body_os.domain.aggregates import (
    CheckInRecord,
    CheckInValues,
    DailyAggregate,
    DailyReview,
    NutritionLogResult,
    NutritionTotals,
    WaterLogResult,
)
from body_os.domain.days import DayCutoff, daily_log_key, day_bounds
from body_os.domain.errors import ValidationError
from body_os.domain.inventory import InventoryItem, NutritionLogEntry, WaterLogEntry
from body_os.domain.validation import (
    validate_check_in,
    validate_quantity,
    validate_water_amount,
)
from body_os.services.inventory import InventoryService
from body_os.services.user_settings import UserSettingsService

BLOAT_LOOKBACK_DAYS = 3


class DailyLogRepository(Protocol):
    """Persistence interface for per-day aggregate rows."""

    def get_daily_log(self, user_id: UUID, date_key: str) -> DailyAggregate | None:
        """Return the row for a day key, if present."""

    def upsert_daily_log(
        self, user_id: UUID, date_key: str, values: dict[str, object]
    ) -> DailyAggregate:
        """Create or update the row for a day key and return it."""

    def list_recent_daily_logs(
        self, user_id: UUID, since: str, limit: int
    ) -> list[DailyAggregate]:
        """Return rows dated on or after `since`, newest first."""


class DailyReviewRepository(Protocol):
    """Persistence interface for end-of-day reviews."""

    def upsert_daily_review(
        self, daily_log_id: UUID, date_key: str, values: dict[str, object]
    ) -> DailyReview:
        """Create or update the review attached to a daily log row."""


class LogEntryRepository(Protocol):
    """Persistence interface for append-only log entries."""

    def create_water_log(
        self, user_id: UUID, amount_ml: int, logged_at: datetime
    ) -> WaterLogEntry:
        """Append a water entry."""

    def list_water_logs(
        self, user_id: UUID, start: datetime, end: datetime
    ) -> list[WaterLogEntry]:
        """Return water entries in [start, end)."""

    def create_nutrition_log(
        self,
        user_id: UUID,
        item: InventoryItem,
        quantity: float,
        logged_at: datetime,
        meal_type: str | None,
    ) -> NutritionLogEntry:
        """Append a nutrition entry."""

    def list_nutrition_logs(
        self, user_id: UUID, start: datetime, end: datetime
    ) -> list[NutritionLogEntry]:
        """Return nutrition entries in [start, end) with item snapshots."""


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class DailyLogService:
    """Appends log entries and keeps the daily totals authoritative.

    Every write accepts the caller's day cutoff. When it is omitted the
    user's stored cutoff applies, so a client that reads with its own cutoff
    must also write with it.
    """

    daily_logs: DailyLogRepository
    entries: LogEntryRepository
    inventory_service: InventoryService
    user_settings_service: UserSettingsService
    reviews: DailyReviewRepository
    clock: Callable[[], datetime] = _utc_now

    def log_water(
        self, user_id: UUID, amount_ml: int, cutoff: DayCutoff | None = None
    ) -> WaterLogResult:
        """Append a water entry and return the recomputed day total."""
        validate_water_amount(amount_ml)
        now = self.clock()
        self.entries.create_water_log(user_id, amount_ml, now)
        date_key, start, end = self._day_window(user_id, now, cutoff)
        water_total = sum(
            entry.amount_ml
            for entry in self.entries.list_water_logs(user_id, start, end)
        )
        self.daily_logs.upsert_daily_log(
            user_id, date_key, {"water_total": water_total}
        )
        return WaterLogResult(
            success=True, updated_water_total=water_total, date_key=date_key
        )

    def log_nutrition(  # noqa: PLR0913
        self,
        user_id: UUID,
        item_id: UUID,
        quantity: float = 1,
        meal_type: str | None = None,
        cutoff: DayCutoff | None = None,
    ) -> NutritionLogResult:
        """Append a nutrition entry and return the recomputed day totals."""
        validate_quantity(quantity)
        item = self.inventory_service.get_item(item_id)
        if item is None:
            raise ValidationError(f"Unknown inventory item {item_id}")
        now = self.clock()
        self.entries.create_nutrition_log(user_id, item, quantity, now, meal_type)
        date_key, start, end = self._day_window(user_id, now, cutoff)
        totals = _sum_nutrition(self.entries.list_nutrition_logs(user_id, start, end))
        self.daily_logs.upsert_daily_log(
            user_id,
            date_key,
            {
                "protein_total": totals.protein_total,
                "carbs_total": totals.carbs_total,
                "fats_total": totals.fats_total,
                "calories_total": totals.calories_total,
            },
        )
        return NutritionLogResult(success=True, daily_totals=totals, date_key=date_key)

    def upsert_check_in(
        self,
        user_id: UUID,
        values: CheckInValues,
        cutoff: DayCutoff | None = None,
    ) -> CheckInRecord:
        """Create or update today's morning check-in.

        Only the values that were given are written; the others keep their
        stored value.
        """
        validate_check_in(values)
        date_key = self._today_key(user_id, cutoff)
        row = self.daily_logs.upsert_daily_log(user_id, date_key, values.provided())
        if row.id is None:
            raise RuntimeError("Daily log upsert returned no id")
        return CheckInRecord(
            id=row.id,
            date_key=row.date_key,
            weight=row.weight,
            sleep_hours=row.sleep_hours,
            sleep_quality=row.sleep_quality,
            mood=row.mood,
        )

    def submit_daily_review(  # noqa: PLR0913
        self,
        user_id: UUID,
        took_soya: bool | None = None,
        elbow_status: str | None = None,
        notes: str | None = None,
        cutoff: DayCutoff | None = None,
    ) -> DailyReview:
        """Record the end-of-day review, creating today's row if needed."""
        date_key = self._today_key(user_id, cutoff)
        row = self.daily_logs.upsert_daily_log(user_id, date_key, {})
        if row.id is None:
            raise RuntimeError("Daily log upsert returned no id")
        return self.reviews.upsert_daily_review(
            row.id,
            date_key,
            {"took_soya": took_soya, "elbow_status": elbow_status, "notes": notes},
        )

    def get_today(
        self, user_id: UUID, cutoff: DayCutoff | None = None
    ) -> DailyAggregate | None:
        """Return today's aggregate row, if one exists."""
        return self.daily_logs.get_daily_log(user_id, self._today_key(user_id, cutoff))

    def mark_bloated(
        self, user_id: UUID, bloated: bool, cutoff: DayCutoff | None = None
    ) -> DailyAggregate:
        """Flag today as bloated and re-evaluate the soya rule.

        Only rows from the last three days take part in the rule.
        """
        today = self._today_key(user_id, cutoff)
        row = self.daily_logs.upsert_daily_log(user_id, today, {"bloated": bloated})
        since = date.fromisoformat(today) - timedelta(days=BLOAT_LOOKBACK_DAYS)
        recent = self.daily_logs.list_recent_daily_logs(
            user_id, since.isoformat(), BLOAT_LOOKBACK_DAYS
        )
        self.inventory_service.apply_bloat_pattern(recent)
        return row

    def _today_key(self, user_id: UUID, cutoff: DayCutoff | None) -> str:
        return self._day_window(user_id, self.clock(), cutoff)[0]

    def _day_window(
        self, user_id: UUID, moment: datetime, cutoff: DayCutoff | None
    ) -> tuple[str, datetime, datetime]:
        resolved = cutoff or self.user_settings_service.get_day_cutoff(user_id)
        timezone_name = self.user_settings_service.get_timezone(user_id)
        date_key = daily_log_key(moment, resolved, timezone_name)
        start, end = day_bounds(date_key, resolved, timezone_name)
        return date_key, start, end


def _sum_nutrition(entries: list[NutritionLogEntry]) -> NutritionTotals:
    total = NutritionTotals()
    for entry in entries:
        portion = entry.item.totals_for(entry.quantity)
        total = NutritionTotals(
            protein_total=total.protein_total + portion.protein_total,
            carbs_total=total.carbs_total + portion.carbs_total,
            fats_total=total.fats_total + portion.fats_total,
            calories_total=total.calories_total + portion.calories_total,
        )
    return total
