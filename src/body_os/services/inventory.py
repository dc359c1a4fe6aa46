"""Inventory catalog and the bloat-pattern rule."""

import logging
from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from body_os.domain.aggregates import DailyAggregate
from body_os.domain.inventory import InventoryItem

_logger = logging.getLogger(__name__)

BLOAT_WINDOW = 2
HIGH_SOYA_TERMS = ("Soya", "100g")
SOYA_TERMS = ("Soya",)


class InventoryRepository(Protocol):
    """Persistence interface for inventory items."""

    def list_active_items(self) -> list[InventoryItem]:
        """Return active items ordered by name."""

    def get_item(self, item_id: UUID) -> InventoryItem | None:
        """Return an item by id, if present."""

    def set_active_matching(self, name_terms: tuple[str, ...], is_active: bool) -> int:
        """Toggle items whose name contains every term; return the count."""


@dataclass
class InventoryService:
    """Application service for the food inventory."""

    repository: InventoryRepository

    def list_active(self) -> list[InventoryItem]:
        """Return items available for logging."""
        return self.repository.list_active_items()

    def get_item(self, item_id: UUID) -> InventoryItem | None:
        """Return an item by id."""
        return self.repository.get_item(item_id)

    def apply_bloat_pattern(self, recent_logs: list[DailyAggregate]) -> bool | None:
        """Disable high-volume soya after two bloated days in a row.

        `recent_logs` is newest first. Returns the active state that was
        applied, or None when the pattern is inconclusive.
        """
        if len(recent_logs) < BLOAT_WINDOW:
            return None
        window = recent_logs[:BLOAT_WINDOW]
        if all(log.bloated for log in window):
            count = self.repository.set_active_matching(HIGH_SOYA_TERMS, False)
            _logger.info("Consecutive bloat detected, disabled %s soya items", count)
            return False
        if not any(log.bloated for log in window):
            self.repository.set_active_matching(SOYA_TERMS, True)
            return True
        return None
