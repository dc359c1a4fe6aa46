"""Supabase repository for inventory items."""

from dataclasses import dataclass
from uuid import UUID

from supabase import Client

from body_os.domain.inventory import InventoryItem
from body_os.services.inventory import InventoryRepository

INVENTORY_COLUMNS = (
    "id, name, icon, protein_per_unit, carbs_per_unit, fat_per_unit, "
    "calories_per_unit, is_active"
)


@dataclass
class SupabaseInventoryRepository(InventoryRepository):
    """Supabase implementation for the inventory catalog."""

    client: Client

    def list_active_items(self) -> list[InventoryItem]:
        """Return active items ordered by name."""
        response = (
            self.client.table("inventory_items")
            .select(INVENTORY_COLUMNS)
            .eq("is_active", True)
            .order("name", desc=False)
            .execute()
        )
        return [parse_inventory_item(row) for row in response.data or []]

    def get_item(self, item_id: UUID) -> InventoryItem | None:
        """Return an item by id."""
        response = (
            self.client.table("inventory_items")
            .select(INVENTORY_COLUMNS)
            .eq("id", str(item_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return parse_inventory_item(response.data[0])

    def set_active_matching(self, name_terms: tuple[str, ...], is_active: bool) -> int:
        """Toggle items whose name contains every term."""
        query = self.client.table("inventory_items").update({"is_active": is_active})
        for term in name_terms:
            query = query.ilike("name", f"%{term}%")
        response = query.execute()
        return len(response.data or [])


def parse_inventory_item(row: dict[str, object]) -> InventoryItem:
    """Build an inventory item from a row."""
    return InventoryItem(
        id=UUID(str(row["id"])),
        name=str(row.get("name", "")),
        icon=row.get("icon"),
        protein_per_unit=float(row.get("protein_per_unit") or 0.0),
        carbs_per_unit=float(row.get("carbs_per_unit") or 0.0),
        fat_per_unit=float(row.get("fat_per_unit") or 0.0),
        calories_per_unit=float(row.get("calories_per_unit") or 0.0),
        is_active=bool(row.get("is_active", True)),
    )
