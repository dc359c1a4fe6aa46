"""Pydantic wire models shared by the API and the HTTP gateway."""

from uuid import UUID

from pydantic import BaseModel, Field

from body_os.domain.aggregates import (
    CheckInRecord,
    CheckInValues,
    DailyAggregate,
    DailyReview,
    DailyTargets,
    NutritionLogResult,
    NutritionTotals,
    WaterLogResult,
)
from body_os.domain.days import DayCutoff
from body_os.domain.inventory import InventoryItem


class CutoffFields(BaseModel):
    """Optional day cutoff sent by clients with every write."""

    cutoff_hour: int | None = Field(default=None, ge=0, le=23)
    cutoff_minute: int | None = Field(default=None, ge=0, le=59)

    def day_cutoff(self) -> DayCutoff | None:
        if self.cutoff_hour is None or self.cutoff_minute is None:
            return None
        return DayCutoff(hour=self.cutoff_hour, minute=self.cutoff_minute)


class WaterLogRequest(CutoffFields):
    """Body of POST /water."""

    amount_ml: int = Field(gt=0)


class WaterLogResponse(BaseModel):
    """Water log result with the server's day total."""

    success: bool
    updated_water_total: int
    date: str | None = None

    @classmethod
    def from_domain(cls, result: WaterLogResult) -> "WaterLogResponse":
        return cls(
            success=result.success,
            updated_water_total=result.updated_water_total,
            date=result.date_key,
        )

    def to_domain(self) -> WaterLogResult:
        return WaterLogResult(
            success=self.success,
            updated_water_total=self.updated_water_total,
            date_key=self.date,
        )


class NutritionLogRequest(CutoffFields):
    """Body of POST /nutrition."""

    item_id: UUID
    quantity: float = Field(default=1, gt=0, allow_inf_nan=False)
    meal_type: str | None = None


class DailyTotalsModel(BaseModel):
    """Macro totals for a day."""

    protein_total: float
    carbs_total: float
    fats_total: float
    calories_total: float


class NutritionLogResponse(BaseModel):
    """Nutrition log result with the server's day totals."""

    success: bool
    daily_totals: DailyTotalsModel
    date: str | None = None

    @classmethod
    def from_domain(cls, result: NutritionLogResult) -> "NutritionLogResponse":
        totals = result.daily_totals
        return cls(
            success=result.success,
            daily_totals=DailyTotalsModel(
                protein_total=totals.protein_total,
                carbs_total=totals.carbs_total,
                fats_total=totals.fats_total,
                calories_total=totals.calories_total,
            ),
            date=result.date_key,
        )

    def to_domain(self) -> NutritionLogResult:
        return NutritionLogResult(
            success=self.success,
            daily_totals=NutritionTotals(
                protein_total=self.daily_totals.protein_total,
                carbs_total=self.daily_totals.carbs_total,
                fats_total=self.daily_totals.fats_total,
                calories_total=self.daily_totals.calories_total,
            ),
            date_key=self.date,
        )


class CheckInRequest(CutoffFields):
    """Body of PUT /check-in."""

    weight: float | None = Field(default=None, gt=0, allow_inf_nan=False)
    sleep_hours: float | None = Field(default=None, ge=0, le=24, allow_inf_nan=False)
    sleep_quality: int | None = Field(default=None, ge=1, le=10)
    mood: str | None = None

    def to_domain(self) -> CheckInValues:
        return CheckInValues(
            weight=self.weight,
            sleep_hours=self.sleep_hours,
            sleep_quality=self.sleep_quality,
            mood=self.mood,
        )


class CheckInResponse(BaseModel):
    """Stored check-in row."""

    id: UUID
    weight: float | None
    sleep_hours: float | None
    sleep_quality: int | None = None
    mood: str | None = None
    date: str

    @classmethod
    def from_domain(cls, record: CheckInRecord) -> "CheckInResponse":
        return cls(
            id=record.id,
            weight=record.weight,
            sleep_hours=record.sleep_hours,
            sleep_quality=record.sleep_quality,
            mood=record.mood,
            date=record.date_key,
        )

    def to_domain(self) -> CheckInRecord:
        return CheckInRecord(
            id=self.id,
            date_key=self.date,
            weight=self.weight,
            sleep_hours=self.sleep_hours,
            sleep_quality=self.sleep_quality,
            mood=self.mood,
        )


class DailyLogModel(BaseModel):
    """Daily aggregate row."""

    id: UUID | None = None
    date: str
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

    @classmethod
    def from_domain(cls, aggregate: DailyAggregate) -> "DailyLogModel":
        return cls(
            id=aggregate.id,
            date=aggregate.date_key,
            protein_total=aggregate.protein_total,
            carbs_total=aggregate.carbs_total,
            fats_total=aggregate.fats_total,
            calories_total=aggregate.calories_total,
            water_total=aggregate.water_total,
            bloated=aggregate.bloated,
            weight=aggregate.weight,
            sleep_hours=aggregate.sleep_hours,
            sleep_quality=aggregate.sleep_quality,
            mood=aggregate.mood,
        )

    def to_domain(self) -> DailyAggregate:
        return DailyAggregate(
            id=self.id,
            date_key=self.date,
            protein_total=self.protein_total,
            carbs_total=self.carbs_total,
            fats_total=self.fats_total,
            calories_total=self.calories_total,
            water_total=self.water_total,
            bloated=self.bloated,
            weight=self.weight,
            sleep_hours=self.sleep_hours,
            sleep_quality=self.sleep_quality,
            mood=self.mood,
        )


class TodayLogResponse(BaseModel):
    """Response of GET /daily-log/today."""

    daily_log: DailyLogModel | None


class BloatedRequest(CutoffFields):
    """Body of POST /daily-log/bloated."""

    bloated: bool


class InventoryItemModel(BaseModel):
    """Inventory catalog entry."""

    id: UUID
    name: str
    icon: str | None = None
    protein_per_unit: float
    carbs_per_unit: float
    fat_per_unit: float
    calories_per_unit: float
    is_active: bool = True

    @classmethod
    def from_domain(cls, item: InventoryItem) -> "InventoryItemModel":
        return cls(
            id=item.id,
            name=item.name,
            icon=item.icon,
            protein_per_unit=item.protein_per_unit,
            carbs_per_unit=item.carbs_per_unit,
            fat_per_unit=item.fat_per_unit,
            calories_per_unit=item.calories_per_unit,
            is_active=item.is_active,
        )


class DayCutoffModel(BaseModel):
    """Day cutoff setting."""

    hour: int = Field(ge=0, le=23)
    minute: int = Field(ge=0, le=59)


class DailyReviewRequest(CutoffFields):
    """Body of POST /daily-log/review."""

    took_soya: bool | None = None
    elbow_status: str | None = None
    notes: str | None = None


class DailyReviewModel(BaseModel):
    """Stored end-of-day review."""

    id: UUID
    daily_log_id: UUID
    date: str
    took_soya: bool | None = None
    elbow_status: str | None = None
    notes: str | None = None

    @classmethod
    def from_domain(cls, review: DailyReview) -> "DailyReviewModel":
        return cls(
            id=review.id,
            daily_log_id=review.daily_log_id,
            date=review.date_key,
            took_soya=review.took_soya,
            elbow_status=review.elbow_status,
            notes=review.notes,
        )


class TargetsModel(BaseModel):
    """Daily macro and water goals."""

    protein_target: float
    carbs_target: float
    fats_target: float
    calories_target: float
    water_target: int

    @classmethod
    def from_domain(cls, targets: DailyTargets) -> "TargetsModel":
        return cls(
            protein_target=targets.protein_target,
            carbs_target=targets.carbs_target,
            fats_target=targets.fats_target,
            calories_target=targets.calories_target,
            water_target=targets.water_target,
        )


class TargetsUpdateRequest(BaseModel):
    """Body of PUT /settings/targets. Omitted goals stay unchanged."""

    protein_target: float | None = Field(default=None, gt=0, allow_inf_nan=False)
    carbs_target: float | None = Field(default=None, gt=0, allow_inf_nan=False)
    fats_target: float | None = Field(default=None, gt=0, allow_inf_nan=False)
    calories_target: float | None = Field(default=None, gt=0, allow_inf_nan=False)
    water_target: int | None = Field(default=None, gt=0)
