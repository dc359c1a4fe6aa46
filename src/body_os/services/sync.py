"""Optimistic update protocol for water, nutrition and check-in logging.

Each logging action applies a locally computed estimate to the store right
away, then calls the server. Server totals overwrite the estimate unless a
newer write has landed in the meantime; a failed call rolls the estimate
back. Every settled action triggers one refresh so the store converges on
server state even when a reconciliation was discarded.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import Enum
from typing import Protocol
from uuid import UUID

from body_os.domain.aggregates import (
    CheckInRecord,
    CheckInValues,
    DailyAggregate,
    NutritionLogResult,
    WaterLogResult,
    add_nutrition,
    empty_aggregate,
    subtract_nutrition,
    with_nutrition,
)
from body_os.domain.days import DayCutoff, daily_log_key
from body_os.domain.errors import (
    RemoteFailure,
    StaleReconciliation,
    Unauthenticated,
)
from body_os.domain.inventory import InventoryItem
from body_os.domain.validation import (
    validate_check_in,
    validate_item,
    validate_quantity,
    validate_water_amount,
)
from body_os.services.aggregate_store import LocalAggregateStore
from body_os.services.auth import AuthProvider

_logger = logging.getLogger(__name__)


class RemoteMutationGateway(Protocol):
    """Server operations the coordinator depends on.

    Every call carries the client's day cutoff so writes and reads land on
    the same day row.
    """

    async def log_water(self, amount_ml: int, cutoff: DayCutoff) -> WaterLogResult:
        """Append a water entry and return the day's water total."""

    async def log_nutrition(
        self, item_id: UUID, quantity: float, cutoff: DayCutoff
    ) -> NutritionLogResult:
        """Append a nutrition entry and return the day's macro totals."""

    async def upsert_check_in(
        self, values: CheckInValues, cutoff: DayCutoff
    ) -> CheckInRecord:
        """Create or update today's check-in."""

    async def fetch_daily_aggregate(self, cutoff: DayCutoff) -> DailyAggregate | None:
        """Return the server's aggregate for today, if any."""


class MutationState(Enum):
    """Lifecycle of a single logging action."""

    IDLE = "IDLE"
    OPTIMISTIC_APPLIED = "OPTIMISTIC_APPLIED"
    RECONCILED = "RECONCILED"
    ROLLED_BACK = "ROLLED_BACK"


@dataclass(frozen=True)
class MutationSpec:
    """Per-action configuration of the optimistic update protocol."""

    name: str
    apply_optimistic: Callable[[DailyAggregate], DailyAggregate]
    remote_call: Callable[[], Awaitable[object]]
    reconcile: Callable[[DailyAggregate, object], DailyAggregate]
    revert: Callable[[DailyAggregate], DailyAggregate]


@dataclass
class PendingMutation:
    """Handle for an in-flight logging action.

    Awaiting it returns the store's aggregate once the action settled, or
    raises `RemoteFailure` after a rollback. Awaiting is optional: a failure
    is logged either way.
    """

    name: str
    sequence: int
    snapshot: DailyAggregate | None
    date_key: str
    state: MutationState = MutationState.OPTIMISTIC_APPLIED
    stale: bool = False
    task: "asyncio.Task[DailyAggregate | None] | None" = None

    def __await__(self):  # type: ignore[no-untyped-def]
        if self.task is None:
            raise RuntimeError("Mutation was never dispatched")
        return self.task.__await__()


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class OptimisticUpdateCoordinator:
    """Runs logging actions against the local store and the server."""

    store: LocalAggregateStore
    gateway: RemoteMutationGateway
    auth_provider: AuthProvider
    cutoff: DayCutoff = field(default_factory=DayCutoff)
    timezone_name: str = "UTC"
    timeout_seconds: float = 10.0
    refresh_after_settle: bool = True
    clock: Callable[[], datetime] = _utc_now
    _in_flight: int = field(default=0, init=False)
    _authoritative_version: int = field(default=0, init=False)
    _invalidation_listeners: list[Callable[[str], None]] = field(
        default_factory=list, init=False
    )

    @property
    def in_flight(self) -> int:
        """Return the number of unsettled actions."""
        return self._in_flight

    def today_key(self) -> str:
        """Return the day key for the current time."""
        return daily_log_key(self.clock(), self.cutoff, self.timezone_name)

    def on_invalidate(self, listener: Callable[[str], None]) -> None:
        """Register a callback fired after every settled action."""
        self._invalidation_listeners.append(listener)

    def log_nutrition(
        self, item: InventoryItem, quantity: float = 1
    ) -> PendingMutation:
        """Log `quantity` units of an inventory item."""
        validate_quantity(quantity)
        validate_item(item)
        delta = item.totals_for(quantity)
        cutoff = self.cutoff

        async def remote_call() -> NutritionLogResult:
            result = await self.gateway.log_nutrition(item.id, quantity, cutoff)
            if not result.success:
                raise RemoteFailure("Failed to log nutrition")
            return result

        return self.dispatch(
            MutationSpec(
                name="log_nutrition",
                apply_optimistic=lambda base: add_nutrition(base, delta),
                remote_call=remote_call,
                reconcile=lambda current, result: with_nutrition(
                    current, result.daily_totals
                ),
                revert=lambda current: subtract_nutrition(current, delta),
            )
        )

    def log_water(self, amount_ml: int) -> PendingMutation:
        """Log a water intake in milliliters."""
        validate_water_amount(amount_ml)
        cutoff = self.cutoff

        async def remote_call() -> WaterLogResult:
            result = await self.gateway.log_water(amount_ml, cutoff)
            if not result.success:
                raise RemoteFailure("Failed to log water")
            return result

        return self.dispatch(
            MutationSpec(
                name="log_water",
                apply_optimistic=lambda base: replace(
                    base, water_total=base.water_total + amount_ml
                ),
                remote_call=remote_call,
                reconcile=lambda current, result: replace(
                    current, water_total=result.updated_water_total
                ),
                revert=lambda current: replace(
                    current, water_total=max(0, current.water_total - amount_ml)
                ),
            )
        )

    def submit_check_in(
        self,
        weight: float | None = None,
        sleep_hours: float | None = None,
        sleep_quality: int | None = None,
        mood: str | None = None,
    ) -> PendingMutation:
        """Record the morning check-in. Values replace, they do not add up."""
        values = CheckInValues(
            weight=weight,
            sleep_hours=sleep_hours,
            sleep_quality=sleep_quality,
            mood=mood,
        )
        validate_check_in(values)
        provided = values.provided()
        previous = self._baseline(self.store.get_current())
        cutoff = self.cutoff

        def reconcile(current: DailyAggregate, result: CheckInRecord) -> DailyAggregate:
            return replace(
                current,
                id=result.id,
                date_key=result.date_key,
                weight=result.weight,
                sleep_hours=result.sleep_hours,
                sleep_quality=result.sleep_quality,
                mood=result.mood,
            )

        def revert(current: DailyAggregate) -> DailyAggregate:
            restored = {
                name: getattr(previous, name)
                for name, value in provided.items()
                if getattr(current, name) == value
            }
            return replace(current, **restored)

        return self.dispatch(
            MutationSpec(
                name="submit_check_in",
                apply_optimistic=lambda base: replace(base, **provided),
                remote_call=lambda: self.gateway.upsert_check_in(values, cutoff),
                reconcile=reconcile,
                revert=revert,
            )
        )

    def dispatch(self, mutation: MutationSpec) -> PendingMutation:
        """Apply the optimistic estimate now and settle it in a task.

        Must be called from a running event loop.
        """
        if not self.auth_provider.current_user_id():
            raise Unauthenticated("No active session")
        loop = asyncio.get_running_loop()
        snapshot = self.store.snapshot()
        baseline = self._baseline(snapshot)
        sequence = self.store.replace(mutation.apply_optimistic(baseline))
        self._in_flight += 1
        pending = PendingMutation(
            name=mutation.name,
            sequence=sequence,
            snapshot=snapshot,
            date_key=baseline.date_key,
        )
        pending.task = loop.create_task(self._settle(mutation, pending))
        pending.task.add_done_callback(_log_failure)
        _logger.debug("Dispatched %s at version %s", mutation.name, sequence)
        return pending

    async def refresh(self) -> DailyAggregate | None:
        """Overwrite the store with the server's aggregate for today.

        The result is dropped if an action is in flight or the store was
        written while the fetch was pending.
        """
        if not self.auth_provider.current_user_id():
            raise Unauthenticated("No active session")
        version = self.store.version
        aggregate = await asyncio.wait_for(
            self.gateway.fetch_daily_aggregate(self.cutoff),
            timeout=self.timeout_seconds,
        )
        if self._in_flight or self.store.version != version:
            _logger.debug("Discarding refresh fetched at version %s", version)
            return self.store.get_current()
        if aggregate is None:
            return self.store.get_current()
        self._authoritative_version = self.store.replace(aggregate)
        return aggregate

    async def _settle(
        self, mutation: MutationSpec, pending: PendingMutation
    ) -> DailyAggregate | None:
        try:
            result = await asyncio.wait_for(
                mutation.remote_call(), timeout=self.timeout_seconds
            )
        except Exception as exc:
            self._roll_back(mutation, pending)
            raise RemoteFailure(f"{mutation.name} failed: {exc!r}") from exc
        else:
            self._reconcile(mutation, pending, result)
            return self.store.get_current()
        finally:
            self._in_flight -= 1
            await self._converge(mutation.name)

    def _reconcile(
        self, mutation: MutationSpec, pending: PendingMutation, result: object
    ) -> None:
        current = self.store.get_current() or self._baseline(None)
        try:
            version = self.store.replace_if_version(
                mutation.reconcile(current, result), pending.sequence
            )
        except StaleReconciliation as exc:
            pending.stale = True
            _logger.debug("Ignoring %s reconciliation: %s", mutation.name, exc)
        else:
            self._authoritative_version = version
        pending.state = MutationState.RECONCILED

    def _roll_back(self, mutation: MutationSpec, pending: PendingMutation) -> None:
        current = self.store.get_current()
        if self.store.version == pending.sequence:
            self.store.replace(pending.snapshot)
        elif (
            self._authoritative_version < pending.sequence
            and current is not None
            and current.date_key == pending.date_key
        ):
            self.store.replace(mutation.revert(current))
        else:
            _logger.debug(
                "Rollback of %s skipped, store no longer holds its estimate",
                mutation.name,
            )
        pending.state = MutationState.ROLLED_BACK
        _logger.info("Rolled back %s at version %s", mutation.name, pending.sequence)

    async def _converge(self, name: str) -> None:
        for listener in list(self._invalidation_listeners):
            try:
                listener(name)
            except Exception:
                _logger.exception("Invalidation listener failed")
        if not self.refresh_after_settle or self._in_flight:
            return
        try:
            await self.refresh()
        except Exception as exc:
            _logger.warning("Refresh after %s failed: %r", name, exc)

    def _baseline(self, snapshot: DailyAggregate | None) -> DailyAggregate:
        today = self.today_key()
        if snapshot is not None and snapshot.date_key == today:
            return snapshot
        return empty_aggregate(today)


def _log_failure(task: "asyncio.Task[DailyAggregate | None]") -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        _logger.debug("Mutation task finished with %r", exc)
