"""Supabase repository for daily log rows."""

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from supabase import Client

from body_os.domain.aggregates import DailyAggregate
from body_os.services.daily_logs import DailyLogRepository

_COLUMNS = (
    "id, date, protein_total, carbs_total, fats_total, calories_total, "
    "water_total, bloated, weight, sleep_hours, sleep_quality, mood"
)


@dataclass
class SupabaseDailyLogRepository(DailyLogRepository):
    """Supabase implementation for daily logs."""

    client: Client

    def get_daily_log(self, user_id: UUID, date_key: str) -> DailyAggregate | None:
        """Return the row for a day key, if present."""
        response = (
            self.client.table("daily_logs")
            .select(_COLUMNS)
            .eq("user_id", str(user_id))
            .eq("date", date_key)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_daily_log(response.data[0])

    def upsert_daily_log(
        self, user_id: UUID, date_key: str, values: dict[str, object]
    ) -> DailyAggregate:
        """Create or update the row keyed by (user_id, date)."""
        payload = {
            "user_id": str(user_id),
            "date": date_key,
            "updated_at": datetime.now(tz=UTC).isoformat(),
            **values,
        }
        response = (
            self.client.table("daily_logs")
            .upsert(payload, on_conflict="user_id,date")
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to upsert daily log")
        return _parse_daily_log(response.data[0])

    def list_recent_daily_logs(
        self, user_id: UUID, since: str, limit: int
    ) -> list[DailyAggregate]:
        """Return rows dated on or after `since`, newest first."""
        response = (
            self.client.table("daily_logs")
            .select(_COLUMNS)
            .eq("user_id", str(user_id))
            .gte("date", since)
            .order("date", desc=True)
            .limit(limit)
            .execute()
        )
        return [_parse_daily_log(row) for row in response.data or []]


def _parse_daily_log(row: dict[str, object]) -> DailyAggregate:
    weight = row.get("weight")
    sleep_hours = row.get("sleep_hours")
    sleep_quality = row.get("sleep_quality")
    return DailyAggregate(
        id=UUID(str(row["id"])) if row.get("id") else None,
        date_key=str(row["date"])[:10],
        protein_total=float(row.get("protein_total") or 0.0),
        carbs_total=float(row.get("carbs_total") or 0.0),
        fats_total=float(row.get("fats_total") or 0.0),
        calories_total=float(row.get("calories_total") or 0.0),
        water_total=int(row.get("water_total") or 0),
        bloated=bool(row.get("bloated") or False),
        weight=float(weight) if weight is not None else None,
        sleep_hours=float(sleep_hours) if sleep_hours is not None else None,
        sleep_quality=int(sleep_quality) if sleep_quality is not None else None,
        mood=row.get("mood"),
    )
