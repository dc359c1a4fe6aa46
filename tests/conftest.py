"""Shared test fixtures."""

import asyncio
import logging
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from uuid import UUID, uuid4

import pytest

from body_os.config import Settings
from body_os.containers import AppContainer
from body_os.domain.aggregates import (
    CheckInRecord,
    CheckInValues,
    DailyAggregate,
    DailyReview,
    DailyTargets,
    NutritionLogResult,
    WaterLogResult,
)
from body_os.domain.days import DayCutoff
from body_os.domain.inventory import InventoryItem, NutritionLogEntry, WaterLogEntry
from body_os.services.aggregate_store import LocalAggregateStore
from body_os.services.auth import StaticAuthProvider, TokenRegistry
from body_os.services.daily_logs import (
    DailyLogRepository,
    DailyLogService,
    DailyReviewRepository,
    LogEntryRepository,
)
from body_os.services.inventory import InventoryRepository, InventoryService
from body_os.services.sync import OptimisticUpdateCoordinator, RemoteMutationGateway
from body_os.services.user_settings import (
    UserSettingsRepository,
    UserSettingsService,
)

FIXED_NOW = datetime(2026, 3, 10, 12, 0, tzinfo=UTC)
TODAY = "2026-03-10"
USER_ID = UUID("7d8f4f9e-2f6a-4a53-9d0e-0c3f3b6f2a11")
API_TOKEN = "test-token"


def fixed_clock() -> datetime:
    return FIXED_NOW


def make_item(  # noqa: PLR0913
    name: str = "Whey Scoop",
    protein: float = 24,
    carbs: float = 3,
    fat: float = 1.5,
    calories: float = 120,
    is_active: bool = True,
) -> InventoryItem:
    return InventoryItem(
        id=uuid4(),
        name=name,
        icon="shake",
        protein_per_unit=protein,
        carbs_per_unit=carbs,
        fat_per_unit=fat,
        calories_per_unit=calories,
        is_active=is_active,
    )


@dataclass
class InMemoryDailyLogRepository(DailyLogRepository):
    """In-memory daily log repository for tests."""

    rows: dict[tuple[UUID, str], DailyAggregate] = field(default_factory=dict)

    def get_daily_log(self, user_id: UUID, date_key: str) -> DailyAggregate | None:
        return self.rows.get((user_id, date_key))

    def upsert_daily_log(
        self, user_id: UUID, date_key: str, values: dict[str, object]
    ) -> DailyAggregate:
        current = self.rows.get((user_id, date_key)) or DailyAggregate(
            date_key=date_key, id=uuid4()
        )
        updated = replace(current, **values)
        self.rows[(user_id, date_key)] = updated
        return updated

    def list_recent_daily_logs(
        self, user_id: UUID, since: str, limit: int
    ) -> list[DailyAggregate]:
        rows = [
            row
            for (owner, date_key), row in self.rows.items()
            if owner == user_id and date_key >= since
        ]
        return sorted(rows, key=lambda row: row.date_key, reverse=True)[:limit]


@dataclass
class InMemoryDailyReviewRepository(DailyReviewRepository):
    """In-memory daily review repository for tests."""

    reviews: dict[UUID, DailyReview] = field(default_factory=dict)

    def upsert_daily_review(
        self, daily_log_id: UUID, date_key: str, values: dict[str, object]
    ) -> DailyReview:
        current = self.reviews.get(daily_log_id) or DailyReview(
            id=uuid4(), daily_log_id=daily_log_id, date_key=date_key
        )
        updated = replace(current, **values)
        self.reviews[daily_log_id] = updated
        return updated


@dataclass
class InMemoryLogEntryRepository(LogEntryRepository):
    """In-memory log entry repository for tests."""

    water: list[WaterLogEntry] = field(default_factory=list)
    nutrition: list[NutritionLogEntry] = field(default_factory=list)

    def create_water_log(
        self, user_id: UUID, amount_ml: int, logged_at: datetime
    ) -> WaterLogEntry:
        entry = WaterLogEntry(
            id=uuid4(), user_id=user_id, amount_ml=amount_ml, logged_at=logged_at
        )
        self.water.append(entry)
        return entry

    def list_water_logs(
        self, user_id: UUID, start: datetime, end: datetime
    ) -> list[WaterLogEntry]:
        return [
            entry
            for entry in self.water
            if entry.user_id == user_id and start <= entry.logged_at < end
        ]

    def create_nutrition_log(  # noqa: PLR0913
        self,
        user_id: UUID,
        item: InventoryItem,
        quantity: float,
        logged_at: datetime,
        meal_type: str | None,
    ) -> NutritionLogEntry:
        entry = NutritionLogEntry(
            id=uuid4(),
            user_id=user_id,
            item=item,
            quantity=quantity,
            logged_at=logged_at,
            meal_type=meal_type,
        )
        self.nutrition.append(entry)
        return entry

    def list_nutrition_logs(
        self, user_id: UUID, start: datetime, end: datetime
    ) -> list[NutritionLogEntry]:
        return [
            entry
            for entry in self.nutrition
            if entry.user_id == user_id and start <= entry.logged_at < end
        ]


@dataclass
class InMemoryInventoryRepository(InventoryRepository):
    """In-memory inventory repository for tests."""

    items: dict[UUID, InventoryItem] = field(default_factory=dict)

    def add(self, item: InventoryItem) -> InventoryItem:
        self.items[item.id] = item
        return item

    def list_active_items(self) -> list[InventoryItem]:
        active = [item for item in self.items.values() if item.is_active]
        return sorted(active, key=lambda item: item.name)

    def get_item(self, item_id: UUID) -> InventoryItem | None:
        return self.items.get(item_id)

    def set_active_matching(self, name_terms: tuple[str, ...], is_active: bool) -> int:
        count = 0
        for item_id, item in list(self.items.items()):
            if all(term.lower() in item.name.lower() for term in name_terms):
                self.items[item_id] = replace(item, is_active=is_active)
                count += 1
        return count


@dataclass
class InMemoryUserSettingsRepository(UserSettingsRepository):
    """In-memory user settings repository for tests."""

    timezones: dict[UUID, str] = field(default_factory=dict)
    cutoffs: dict[UUID, DayCutoff] = field(default_factory=dict)
    targets: dict[UUID, DailyTargets] = field(default_factory=dict)

    def get_timezone(self, user_id: UUID) -> str | None:
        return self.timezones.get(user_id)

    def get_day_cutoff(self, user_id: UUID) -> DayCutoff | None:
        return self.cutoffs.get(user_id)

    def set_day_cutoff(self, user_id: UUID, cutoff: DayCutoff) -> None:
        self.cutoffs[user_id] = cutoff

    def get_targets(self, user_id: UUID) -> DailyTargets | None:
        return self.targets.get(user_id)

    def set_targets(self, user_id: UUID, targets: DailyTargets) -> None:
        self.targets[user_id] = targets


@dataclass
class ScriptedGateway(RemoteMutationGateway):
    """Gateway whose calls block until the test resolves them in order."""

    calls: list[tuple[str, tuple[object, ...]]] = field(default_factory=list)
    pending: list[asyncio.Future] = field(default_factory=list)
    server_aggregate: DailyAggregate | None = None
    fetches: int = 0

    async def log_water(self, amount_ml: int, cutoff: DayCutoff) -> WaterLogResult:
        return await self._call("log_water", amount_ml, cutoff)

    async def log_nutrition(
        self, item_id: UUID, quantity: float, cutoff: DayCutoff
    ) -> NutritionLogResult:
        return await self._call("log_nutrition", item_id, quantity, cutoff)

    async def upsert_check_in(
        self, values: CheckInValues, cutoff: DayCutoff
    ) -> CheckInRecord:
        return await self._call("upsert_check_in", values, cutoff)

    async def fetch_daily_aggregate(self, cutoff: DayCutoff) -> DailyAggregate | None:
        self.fetches += 1
        return self.server_aggregate

    def resolve(self, index: int, result: object) -> None:
        self.pending[index].set_result(result)

    def fail(self, index: int, exc: Exception) -> None:
        self.pending[index].set_exception(exc)

    async def _call(self, name: str, *args: object):  # type: ignore[no-untyped-def]
        self.calls.append((name, args))
        future = asyncio.get_running_loop().create_future()
        self.pending.append(future)
        return await future


async def drain() -> None:
    """Let every ready task run until it blocks again."""
    for _ in range(5):
        await asyncio.sleep(0)


def build_coordinator(
    gateway: RemoteMutationGateway,
    store: LocalAggregateStore | None = None,
    user_id: str | None = str(USER_ID),
    **kwargs: object,
) -> OptimisticUpdateCoordinator:
    return OptimisticUpdateCoordinator(
        store=store or LocalAggregateStore(),
        gateway=gateway,
        auth_provider=StaticAuthProvider(user_id),
        clock=fixed_clock,
        **kwargs,
    )


def build_daily_log_service(
    inventory_repository: InMemoryInventoryRepository | None = None,
) -> DailyLogService:
    return DailyLogService(
        daily_logs=InMemoryDailyLogRepository(),
        entries=InMemoryLogEntryRepository(),
        inventory_service=InventoryService(
            inventory_repository or InMemoryInventoryRepository()
        ),
        user_settings_service=UserSettingsService(InMemoryUserSettingsRepository()),
        reviews=InMemoryDailyReviewRepository(),
        clock=fixed_clock,
    )


@pytest.fixture
def sync_log_records():
    """Capture DEBUG records emitted by the sync coordinator."""
    logger = logging.getLogger("body_os.services.sync")
    records: list[logging.LogRecord] = []

    class _ListHandler(logging.Handler):
        def emit(self, record: logging.LogRecord) -> None:
            records.append(record)

    handler = _ListHandler(level=logging.DEBUG)
    previous_level = logger.level
    logger.setLevel(logging.DEBUG)
    logger.addHandler(handler)
    yield records
    logger.removeHandler(handler)
    logger.setLevel(previous_level)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key=(
            "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9."
            "eyJyb2xlIjoic2VydmljZV9yb2xlIn0."
            "c2lnbmF0dXJlLXBsYWNlaG9sZGVy"
        ),
        api_tokens=f"{API_TOKEN}:{USER_ID}",
        api_access_token=API_TOKEN,
        api_user_id=str(USER_ID),
    )


@pytest.fixture
def inventory_repository() -> InMemoryInventoryRepository:
    return InMemoryInventoryRepository()


@pytest.fixture
def container(
    settings: Settings, inventory_repository: InMemoryInventoryRepository
) -> AppContainer:
    daily_log_service = build_daily_log_service(inventory_repository)

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        token_registry=TokenRegistry({API_TOKEN: USER_ID}),
        daily_log_service=daily_log_service,
        inventory_service=daily_log_service.inventory_service,
        user_settings_service=daily_log_service.user_settings_service,
        close_resources=close_resources,
    )
