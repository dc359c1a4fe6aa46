"""Supabase repository for water and nutrition log entries."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from supabase import Client

from body_os.adapters.supabase_inventory_repository import (
    INVENTORY_COLUMNS,
    parse_inventory_item,
)
from body_os.domain.inventory import InventoryItem, NutritionLogEntry, WaterLogEntry
from body_os.services.daily_logs import LogEntryRepository


@dataclass
class SupabaseLogEntryRepository(LogEntryRepository):
    """Supabase implementation for append-only log entries."""

    client: Client

    def create_water_log(
        self, user_id: UUID, amount_ml: int, logged_at: datetime
    ) -> WaterLogEntry:
        """Insert a water log row."""
        response = (
            self.client.table("water_logs")
            .insert(
                {
                    "user_id": str(user_id),
                    "amount": amount_ml,
                    "timestamp": logged_at.isoformat(),
                }
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to create water log")
        return _parse_water_log(response.data[0])

    def list_water_logs(
        self, user_id: UUID, start: datetime, end: datetime
    ) -> list[WaterLogEntry]:
        """Return water rows in [start, end)."""
        response = (
            self.client.table("water_logs")
            .select("id, user_id, amount, timestamp")
            .eq("user_id", str(user_id))
            .gte("timestamp", start.isoformat())
            .lt("timestamp", end.isoformat())
            .order("timestamp", desc=False)
            .execute()
        )
        return [_parse_water_log(row) for row in response.data or []]

    def create_nutrition_log(
        self,
        user_id: UUID,
        item: InventoryItem,
        quantity: float,
        logged_at: datetime,
        meal_type: str | None,
    ) -> NutritionLogEntry:
        """Insert a nutrition log row."""
        response = (
            self.client.table("nutrition_logs")
            .insert(
                {
                    "user_id": str(user_id),
                    "inventory_item_id": str(item.id),
                    "qty": quantity,
                    "meal_type": meal_type,
                    "timestamp": logged_at.isoformat(),
                }
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to create nutrition log")
        row = response.data[0]
        return NutritionLogEntry(
            id=UUID(str(row["id"])),
            user_id=user_id,
            item=item,
            quantity=quantity,
            logged_at=logged_at,
            meal_type=meal_type,
        )

    def list_nutrition_logs(
        self, user_id: UUID, start: datetime, end: datetime
    ) -> list[NutritionLogEntry]:
        """Return nutrition rows in [start, end) joined with their items."""
        response = (
            self.client.table("nutrition_logs")
            .select(
                "id, user_id, qty, meal_type, timestamp, "
                f"inventory_items({INVENTORY_COLUMNS})"
            )
            .eq("user_id", str(user_id))
            .gte("timestamp", start.isoformat())
            .lt("timestamp", end.isoformat())
            .order("timestamp", desc=False)
            .execute()
        )
        entries = []
        for row in response.data or []:
            item_row = row.get("inventory_items")
            if not isinstance(item_row, dict):
                continue
            entries.append(
                NutritionLogEntry(
                    id=UUID(str(row["id"])),
                    user_id=UUID(str(row["user_id"])),
                    item=parse_inventory_item(item_row),
                    quantity=float(row.get("qty") or 0.0),
                    logged_at=datetime.fromisoformat(str(row["timestamp"])),
                    meal_type=row.get("meal_type"),
                )
            )
        return entries


def _parse_water_log(row: dict[str, object]) -> WaterLogEntry:
    return WaterLogEntry(
        id=UUID(str(row["id"])),
        user_id=UUID(str(row["user_id"])),
        amount_ml=int(row.get("amount") or 0),
        logged_at=datetime.fromisoformat(str(row["timestamp"])),
    )
