"""Input checks shared by the client coordinator and the server services."""

import math

from body_os.domain.aggregates import CheckInValues, DailyTargets
from body_os.domain.errors import ValidationError
from body_os.domain.inventory import InventoryItem

MAX_SLEEP_HOURS = 24
MIN_SLEEP_QUALITY = 1
MAX_SLEEP_QUALITY = 10


def _is_finite_number(value: object) -> bool:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return False
    return math.isfinite(value)


def validate_water_amount(amount_ml: int) -> None:
    """Reject anything but a positive integer amount in milliliters."""
    if isinstance(amount_ml, bool) or not isinstance(amount_ml, int):
        raise ValidationError("Water amount must be an integer")
    if amount_ml <= 0:
        raise ValidationError("Water amount must be positive")


def validate_quantity(quantity: float) -> None:
    """Reject non-finite or non-positive quantities."""
    if not _is_finite_number(quantity):
        raise ValidationError("Quantity must be a finite number")
    if quantity <= 0:
        raise ValidationError("Quantity must be positive")


def validate_item(item: InventoryItem) -> None:
    """Reject items whose per-unit macros are negative or not finite."""
    per_unit = (
        item.protein_per_unit,
        item.carbs_per_unit,
        item.fat_per_unit,
        item.calories_per_unit,
    )
    if not all(_is_finite_number(value) and value >= 0 for value in per_unit):
        raise ValidationError(f"Item {item.name} has invalid macros")


def validate_check_in(values: CheckInValues) -> None:
    """Check ranges of a morning check-in; at least one field is required."""
    if not values.provided():
        raise ValidationError("Check-in needs at least one value")
    if values.weight is not None and not (
        _is_finite_number(values.weight) and values.weight > 0
    ):
        raise ValidationError("Weight must be a positive number")
    if values.sleep_hours is not None and not (
        _is_finite_number(values.sleep_hours)
        and 0 <= values.sleep_hours <= MAX_SLEEP_HOURS
    ):
        raise ValidationError("Sleep hours must be between 0 and 24")
    if values.sleep_quality is not None and (
        isinstance(values.sleep_quality, bool)
        or not isinstance(values.sleep_quality, int)
        or not MIN_SLEEP_QUALITY <= values.sleep_quality <= MAX_SLEEP_QUALITY
    ):
        raise ValidationError("Sleep quality must be an integer from 1 to 10")
    if values.mood is not None and not values.mood.strip():
        raise ValidationError("Mood must not be blank")


def validate_targets(targets: DailyTargets) -> None:
    """Require every goal to be a positive finite number."""
    for name, value in vars(targets).items():
        if not _is_finite_number(value) or value <= 0:
            raise ValidationError(f"{name} must be a positive number")
    if not isinstance(targets.water_target, int):
        raise ValidationError("water_target must be an integer")
