"""Supabase repository for user settings."""

from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from uuid import UUID

from supabase import Client

from body_os.domain.aggregates import DailyTargets
from body_os.domain.days import DayCutoff
from body_os.services.user_settings import UserSettingsRepository

_COLUMNS = (
    "timezone, day_cutoff_hour, day_cutoff_minute, protein_target, "
    "carbs_target, fats_target, calories_target, water_target"
)


@dataclass
class SupabaseUserSettingsRepository(UserSettingsRepository):
    """Supabase implementation for user settings."""

    client: Client

    def get_timezone(self, user_id: UUID) -> str | None:
        """Return the stored timezone for a user."""
        row = self._get_row(user_id)
        if row is None:
            return None
        return row.get("timezone")

    def get_day_cutoff(self, user_id: UUID) -> DayCutoff | None:
        """Return the stored day cutoff for a user."""
        row = self._get_row(user_id)
        if row is None:
            return None
        hour = row.get("day_cutoff_hour")
        minute = row.get("day_cutoff_minute")
        if hour is None or minute is None:
            return None
        return DayCutoff(hour=int(hour), minute=int(minute))

    def set_day_cutoff(self, user_id: UUID, cutoff: DayCutoff) -> None:
        """Create or update the user's day cutoff."""
        self._upsert(
            user_id,
            {"day_cutoff_hour": cutoff.hour, "day_cutoff_minute": cutoff.minute},
        )

    def get_targets(self, user_id: UUID) -> DailyTargets | None:
        """Return the stored goals; unset columns fall back to defaults."""
        row = self._get_row(user_id)
        if row is None:
            return None
        defaults = DailyTargets()
        water_target = row.get("water_target")
        return DailyTargets(
            protein_target=_float_or(
                row.get("protein_target"), defaults.protein_target
            ),
            carbs_target=_float_or(row.get("carbs_target"), defaults.carbs_target),
            fats_target=_float_or(row.get("fats_target"), defaults.fats_target),
            calories_target=_float_or(
                row.get("calories_target"), defaults.calories_target
            ),
            water_target=(
                int(water_target) if water_target is not None else defaults.water_target
            ),
        )

    def set_targets(self, user_id: UUID, targets: DailyTargets) -> None:
        """Create or update the user's daily goals."""
        self._upsert(user_id, asdict(targets))

    def _upsert(self, user_id: UUID, values: dict[str, object]) -> None:
        self.client.table("user_settings").upsert(
            {
                "user_id": str(user_id),
                **values,
                "updated_at": datetime.now(tz=UTC).isoformat(),
            },
            on_conflict="user_id",
        ).execute()

    def _get_row(self, user_id: UUID) -> dict[str, object] | None:
        response = (
            self.client.table("user_settings")
            .select(_COLUMNS)
            .eq("user_id", str(user_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return response.data[0]


def _float_or(value: object, default: float) -> float:
    return float(value) if value is not None else default
