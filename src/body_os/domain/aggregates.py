"""Domain models for daily aggregates."""

from dataclasses import dataclass, fields, replace
from uuid import UUID


@dataclass(frozen=True)
class NutritionTotals:
    """Macro totals, used both as a delta and as server day totals."""

    protein_total: float = 0.0
    carbs_total: float = 0.0
    fats_total: float = 0.0
    calories_total: float = 0.0


@dataclass(frozen=True)
class DailyAggregate:
    """One user's nutrition and hydration totals for one day key."""

    date_key: str
    protein_total: float = 0.0
    carbs_total: float = 0.0
    fats_total: float = 0.0
    calories_total: float = 0.0
    water_total: int = 0
    bloated: bool = False
    weight: float | None = None
    sleep_hours: float | None = None
    sleep_quality: int | None = None
    mood: str | None = None
    id: UUID | None = None

    @property
    def nutrition(self) -> NutritionTotals:
        """Return the macro totals of this aggregate."""
        return NutritionTotals(
            protein_total=self.protein_total,
            carbs_total=self.carbs_total,
            fats_total=self.fats_total,
            calories_total=self.calories_total,
        )


@dataclass(frozen=True)
class WaterLogResult:
    """Server response for a water log."""

    success: bool
    updated_water_total: int
    date_key: str | None = None


@dataclass(frozen=True)
class NutritionLogResult:
    """Server response for a nutrition log."""

    success: bool
    daily_totals: NutritionTotals
    date_key: str | None = None


@dataclass(frozen=True)
class CheckInRecord:
    """Stored morning check-in values."""

    id: UUID
    date_key: str
    weight: float | None
    sleep_hours: float | None
    sleep_quality: int | None = None
    mood: str | None = None


@dataclass(frozen=True)
class CheckInValues:
    """Morning check-in input. None leaves the stored value unchanged."""

    weight: float | None = None
    sleep_hours: float | None = None
    sleep_quality: int | None = None
    mood: str | None = None

    def provided(self) -> dict[str, object]:
        """Return the fields that were given, keyed by aggregate field name."""
        return {
            field.name: getattr(self, field.name)
            for field in fields(self)
            if getattr(self, field.name) is not None
        }


@dataclass(frozen=True)
class DailyReview:
    """End-of-day questionnaire attached to a daily log."""

    id: UUID
    daily_log_id: UUID
    date_key: str
    took_soya: bool | None = None
    elbow_status: str | None = None
    notes: str | None = None


@dataclass(frozen=True)
class DailyTargets:
    """Per-user daily macro and water goals."""

    protein_target: float = 140.0
    carbs_target: float = 200.0
    fats_target: float = 60.0
    calories_target: float = 2000.0
    water_target: int = 4000


def empty_aggregate(date_key: str) -> DailyAggregate:
    """Return the all-zero baseline for a day that has no row yet."""
    return DailyAggregate(date_key=date_key)


def add_nutrition(aggregate: DailyAggregate, delta: NutritionTotals) -> DailyAggregate:
    """Return the aggregate with a macro delta added."""
    return replace(
        aggregate,
        protein_total=aggregate.protein_total + delta.protein_total,
        carbs_total=aggregate.carbs_total + delta.carbs_total,
        fats_total=aggregate.fats_total + delta.fats_total,
        calories_total=aggregate.calories_total + delta.calories_total,
    )


def subtract_nutrition(
    aggregate: DailyAggregate, delta: NutritionTotals
) -> DailyAggregate:
    """Return the aggregate with a macro delta removed, floored at zero."""
    return replace(
        aggregate,
        protein_total=max(0.0, aggregate.protein_total - delta.protein_total),
        carbs_total=max(0.0, aggregate.carbs_total - delta.carbs_total),
        fats_total=max(0.0, aggregate.fats_total - delta.fats_total),
        calories_total=max(0.0, aggregate.calories_total - delta.calories_total),
    )


def with_nutrition(
    aggregate: DailyAggregate, totals: NutritionTotals
) -> DailyAggregate:
    """Return the aggregate with its macro totals overwritten."""
    return replace(
        aggregate,
        protein_total=totals.protein_total,
        carbs_total=totals.carbs_total,
        fats_total=totals.fats_total,
        calories_total=totals.calories_total,
    )
