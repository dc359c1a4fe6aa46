"""Domain models for the food inventory and log entries."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from body_os.domain.aggregates import NutritionTotals


@dataclass(frozen=True)
class InventoryItem:
    """Catalog entry with macros per unit."""

    id: UUID
    name: str
    protein_per_unit: float
    carbs_per_unit: float
    fat_per_unit: float
    calories_per_unit: float
    icon: str | None = None
    is_active: bool = True

    def totals_for(self, quantity: float) -> NutritionTotals:
        """Return the macros contributed by `quantity` units."""
        return NutritionTotals(
            protein_total=self.protein_per_unit * quantity,
            carbs_total=self.carbs_per_unit * quantity,
            fats_total=self.fat_per_unit * quantity,
            calories_total=self.calories_per_unit * quantity,
        )


@dataclass(frozen=True)
class WaterLogEntry:
    """Append-only water log row."""

    id: UUID
    user_id: UUID
    amount_ml: int
    logged_at: datetime


@dataclass(frozen=True)
class NutritionLogEntry:
    """Append-only nutrition log row with the item snapshot."""

    id: UUID
    user_id: UUID
    item: InventoryItem
    quantity: float
    logged_at: datetime
    meal_type: str | None = None
