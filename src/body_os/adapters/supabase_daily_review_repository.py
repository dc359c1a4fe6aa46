"""Supabase repository for end-of-day reviews."""

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from supabase import Client

from body_os.domain.aggregates import DailyReview
from body_os.services.daily_logs import DailyReviewRepository


@dataclass
class SupabaseDailyReviewRepository(DailyReviewRepository):
    """Supabase implementation for daily reviews."""

    client: Client

    def upsert_daily_review(
        self, daily_log_id: UUID, date_key: str, values: dict[str, object]
    ) -> DailyReview:
        """Create or update the review keyed by its daily log row."""
        payload = {
            "daily_log_id": str(daily_log_id),
            "date": date_key,
            "updated_at": datetime.now(tz=UTC).isoformat(),
            **values,
        }
        response = (
            self.client.table("daily_reviews")
            .upsert(payload, on_conflict="daily_log_id")
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to upsert daily review")
        return _parse_daily_review(response.data[0])


def _parse_daily_review(row: dict[str, object]) -> DailyReview:
    took_soya = row.get("took_soya")
    return DailyReview(
        id=UUID(str(row["id"])),
        daily_log_id=UUID(str(row["daily_log_id"])),
        date_key=str(row["date"])[:10],
        took_soya=bool(took_soya) if took_soya is not None else None,
        elbow_status=row.get("elbow_status"),
        notes=row.get("notes"),
    )
