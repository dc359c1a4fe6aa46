"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path

from supabase import create_client

from body_os.adapters.file_mirror import JsonFileAggregateMirror
from body_os.adapters.http_gateway import HttpxMutationGateway
from body_os.adapters.supabase_daily_log_repository import SupabaseDailyLogRepository
from body_os.adapters.supabase_daily_review_repository import (
    SupabaseDailyReviewRepository,
)
from body_os.adapters.supabase_inventory_repository import (
    SupabaseInventoryRepository,
)
from body_os.adapters.supabase_log_entry_repository import (
    SupabaseLogEntryRepository,
)
from body_os.adapters.supabase_user_settings_repository import (
    SupabaseUserSettingsRepository,
)
from body_os.config import Settings, parse_api_tokens
from body_os.domain.days import DayCutoff
from body_os.services.aggregate_store import LocalAggregateStore
from body_os.services.auth import AuthProvider, StaticAuthProvider, TokenRegistry
from body_os.services.daily_logs import DailyLogService
from body_os.services.inventory import InventoryService
from body_os.services.sync import OptimisticUpdateCoordinator, RemoteMutationGateway
from body_os.services.user_settings import UserSettingsService


@dataclass
class AppContainer:
    """Holds server-side dependencies."""

    settings: Settings
    token_registry: TokenRegistry
    daily_log_service: DailyLogService
    inventory_service: InventoryService
    user_settings_service: UserSettingsService
    close_resources: Callable[[], Awaitable[None]]


@dataclass
class SyncClient:
    """Holds the client-side store and coordinator."""

    store: LocalAggregateStore
    gateway: RemoteMutationGateway
    auth_provider: AuthProvider
    coordinator: OptimisticUpdateCoordinator
    close_resources: Callable[[], Awaitable[None]]


def default_cutoff(settings: Settings) -> DayCutoff:
    """Return the configured day cutoff."""
    return DayCutoff(hour=settings.day_cutoff_hour, minute=settings.day_cutoff_minute)


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default server container."""
    resolved_settings = settings or Settings()
    if not resolved_settings.supabase_url or not resolved_settings.supabase_service_key:
        raise RuntimeError("SUPABASE_URL and SUPABASE_SERVICE_KEY must be set")
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    inventory_service = InventoryService(SupabaseInventoryRepository(supabase_client))
    user_settings_service = UserSettingsService(
        SupabaseUserSettingsRepository(supabase_client),
        default_timezone=resolved_settings.timezone,
        default_cutoff=default_cutoff(resolved_settings),
    )
    daily_log_service = DailyLogService(
        daily_logs=SupabaseDailyLogRepository(supabase_client),
        entries=SupabaseLogEntryRepository(supabase_client),
        inventory_service=inventory_service,
        user_settings_service=user_settings_service,
        reviews=SupabaseDailyReviewRepository(supabase_client),
    )

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=resolved_settings,
        token_registry=TokenRegistry(parse_api_tokens(resolved_settings.api_tokens)),
        daily_log_service=daily_log_service,
        inventory_service=inventory_service,
        user_settings_service=user_settings_service,
        close_resources=close_resources,
    )


def build_sync_client(
    settings: Settings | None = None,
    auth_provider: AuthProvider | None = None,
) -> SyncClient:
    """Create a client-side store and coordinator talking to the HTTP API."""
    resolved_settings = settings or Settings()
    resolved_auth = auth_provider or StaticAuthProvider(resolved_settings.api_user_id)
    mirror = (
        JsonFileAggregateMirror(Path(resolved_settings.store_mirror_path))
        if resolved_settings.store_mirror_path
        else None
    )
    store = LocalAggregateStore(mirror=mirror)
    store.load_from_mirror()
    gateway = HttpxMutationGateway.create(
        base_url=resolved_settings.api_base_url,
        access_token=resolved_settings.api_access_token,
    )
    coordinator = OptimisticUpdateCoordinator(
        store=store,
        gateway=gateway,
        auth_provider=resolved_auth,
        cutoff=default_cutoff(resolved_settings),
        timezone_name=resolved_settings.timezone,
        timeout_seconds=resolved_settings.remote_timeout_seconds,
    )

    async def close_resources() -> None:
        await gateway.close()

    return SyncClient(
        store=store,
        gateway=gateway,
        auth_provider=resolved_auth,
        coordinator=coordinator,
        close_resources=close_resources,
    )
