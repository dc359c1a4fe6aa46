"""Tests for the optimistic update coordinator."""

import asyncio
import gc
from datetime import timedelta
from uuid import uuid4

import pytest

from body_os.domain.aggregates import (
    CheckInRecord,
    CheckInValues,
    DailyAggregate,
    NutritionLogResult,
    NutritionTotals,
    WaterLogResult,
)
from body_os.domain.errors import RemoteFailure, Unauthenticated, ValidationError
from body_os.services.aggregate_store import LocalAggregateStore
from body_os.services.sync import MutationState
from tests.conftest import (
    FIXED_NOW,
    TODAY,
    ScriptedGateway,
    build_coordinator,
    drain,
    make_item,
)


def _store_with(aggregate: DailyAggregate | None) -> LocalAggregateStore:
    store = LocalAggregateStore()
    if aggregate is not None:
        store.replace(aggregate)
    return store


def test_log_nutrition_applies_optimistically_then_rolls_back() -> None:
    async def scenario() -> None:
        gateway = ScriptedGateway()
        store = _store_with(DailyAggregate(date_key=TODAY))
        coordinator = build_coordinator(gateway, store)

        pending = coordinator.log_nutrition(make_item(protein=24), quantity=1)

        assert store.get_current().protein_total == 24
        assert pending.state is MutationState.OPTIMISTIC_APPLIED

        await drain()
        gateway.fail(0, ConnectionError("offline"))
        with pytest.raises(RemoteFailure):
            await pending

        assert store.get_current().protein_total == 0
        assert store.get_current().water_total == 0
        assert pending.state is MutationState.ROLLED_BACK

    asyncio.run(scenario())


def test_log_water_takes_server_total() -> None:
    async def scenario() -> None:
        gateway = ScriptedGateway()
        store = _store_with(DailyAggregate(date_key=TODAY, water_total=1000))
        coordinator = build_coordinator(gateway, store, refresh_after_settle=False)

        pending = coordinator.log_water(250)
        assert store.get_current().water_total == 1250

        await drain()
        gateway.resolve(0, WaterLogResult(success=True, updated_water_total=1300))
        result = await pending

        assert result.water_total == 1300
        assert store.get_current().water_total == 1300
        assert pending.state is MutationState.RECONCILED

    asyncio.run(scenario())


def test_serial_failures_leave_store_untouched() -> None:
    async def scenario() -> None:
        gateway = ScriptedGateway()
        initial = DailyAggregate(date_key=TODAY, protein_total=50, calories_total=800)
        store = _store_with(initial)
        coordinator = build_coordinator(gateway, store)

        for index in range(3):
            pending = coordinator.log_nutrition(make_item(), quantity=2)
            await drain()
            gateway.fail(index, TimeoutError())
            with pytest.raises(RemoteFailure):
                await pending

        assert store.get_current() == initial

    asyncio.run(scenario())


def test_successive_logs_add_up() -> None:
    async def scenario() -> None:
        gateway = ScriptedGateway()
        store = LocalAggregateStore()
        coordinator = build_coordinator(gateway, store, refresh_after_settle=False)

        first = coordinator.log_nutrition(make_item(protein=24))
        await drain()
        gateway.resolve(
            0,
            NutritionLogResult(
                success=True, daily_totals=NutritionTotals(protein_total=24)
            ),
        )
        await first

        second = coordinator.log_nutrition(make_item(protein=18))
        assert store.get_current().protein_total == 42
        await drain()
        gateway.resolve(
            1,
            NutritionLogResult(
                success=True, daily_totals=NutritionTotals(protein_total=42)
            ),
        )
        await second

        assert store.get_current().protein_total == 42

    asyncio.run(scenario())


def test_concurrent_water_logs_do_not_lose_updates() -> None:
    async def scenario() -> None:
        gateway = ScriptedGateway()
        store = _store_with(DailyAggregate(date_key=TODAY, water_total=1000))
        coordinator = build_coordinator(gateway, store)

        first = coordinator.log_water(250)
        second = coordinator.log_water(250)
        assert store.get_current().water_total == 1500

        await drain()
        gateway.server_aggregate = DailyAggregate(date_key=TODAY, water_total=1250)
        gateway.resolve(0, WaterLogResult(success=True, updated_water_total=1250))
        await first
        assert first.stale
        assert store.get_current().water_total == 1500

        gateway.server_aggregate = DailyAggregate(date_key=TODAY, water_total=1500)
        gateway.resolve(1, WaterLogResult(success=True, updated_water_total=1500))
        await second

        assert store.get_current().water_total == 1500

    asyncio.run(scenario())


def test_out_of_order_reconciliation_is_discarded(sync_log_records) -> None:
    async def scenario() -> None:
        gateway = ScriptedGateway()
        store = _store_with(DailyAggregate(date_key=TODAY, water_total=0))
        coordinator = build_coordinator(gateway, store, refresh_after_settle=False)

        older = coordinator.log_water(250)
        newer = coordinator.log_water(500)
        await drain()

        gateway.resolve(1, WaterLogResult(success=True, updated_water_total=750))
        await newer
        gateway.resolve(0, WaterLogResult(success=True, updated_water_total=250))
        await older

        assert store.get_current().water_total == 750
        assert older.stale
        assert not newer.stale

    asyncio.run(scenario())

    messages = [record.getMessage() for record in sync_log_records]
    assert any("Ignoring log_water reconciliation" in message for message in messages)


def test_missing_session_never_calls_gateway() -> None:
    async def scenario() -> None:
        gateway = ScriptedGateway()
        initial = DailyAggregate(date_key=TODAY, water_total=400)
        store = _store_with(initial)
        coordinator = build_coordinator(gateway, store, user_id=None)
        version = store.version

        with pytest.raises(Unauthenticated):
            coordinator.log_water(250)
        with pytest.raises(Unauthenticated):
            coordinator.log_nutrition(make_item())
        with pytest.raises(Unauthenticated):
            coordinator.submit_check_in(weight=80.5, sleep_hours=7)

        assert gateway.calls == []
        assert store.get_current() == initial
        assert store.version == version

    asyncio.run(scenario())


def test_invalid_input_is_rejected_before_any_mutation() -> None:
    async def scenario() -> None:
        gateway = ScriptedGateway()
        store = LocalAggregateStore()
        coordinator = build_coordinator(gateway, store)

        with pytest.raises(ValidationError):
            coordinator.log_water(0)
        with pytest.raises(ValidationError):
            coordinator.log_water(True)
        with pytest.raises(ValidationError):
            coordinator.log_nutrition(make_item(), quantity=0)
        with pytest.raises(ValidationError):
            coordinator.log_nutrition(make_item(protein=-1))
        with pytest.raises(ValidationError):
            coordinator.submit_check_in()
        with pytest.raises(ValidationError):
            coordinator.submit_check_in(sleep_hours=25)

        assert gateway.calls == []
        assert store.version == 0

    asyncio.run(scenario())


def test_timeout_forces_rollback() -> None:
    async def scenario() -> None:
        gateway = ScriptedGateway()
        store = _store_with(DailyAggregate(date_key=TODAY, water_total=300))
        coordinator = build_coordinator(gateway, store, timeout_seconds=0.01)

        pending = coordinator.log_water(200)
        with pytest.raises(RemoteFailure):
            await pending

        assert store.get_current().water_total == 300
        assert pending.state is MutationState.ROLLED_BACK

    asyncio.run(scenario())


def test_unsuccessful_result_counts_as_failure() -> None:
    async def scenario() -> None:
        gateway = ScriptedGateway()
        store = _store_with(DailyAggregate(date_key=TODAY, water_total=300))
        coordinator = build_coordinator(gateway, store)

        pending = coordinator.log_water(200)
        await drain()
        gateway.resolve(0, WaterLogResult(success=False, updated_water_total=0))
        with pytest.raises(RemoteFailure):
            await pending

        assert store.get_current().water_total == 300

    asyncio.run(scenario())


def test_failure_after_newer_apply_reverts_only_its_delta() -> None:
    async def scenario() -> None:
        gateway = ScriptedGateway()
        store = _store_with(DailyAggregate(date_key=TODAY, water_total=1000))
        coordinator = build_coordinator(gateway, store, refresh_after_settle=False)

        first = coordinator.log_water(250)
        second = coordinator.log_water(500)
        await drain()

        gateway.fail(0, ConnectionError("offline"))
        with pytest.raises(RemoteFailure):
            await first
        assert store.get_current().water_total == 1500

        gateway.resolve(1, WaterLogResult(success=True, updated_water_total=1500))
        await second
        assert store.get_current().water_total == 1500

    asyncio.run(scenario())


def test_failure_after_server_state_keeps_server_state() -> None:
    async def scenario() -> None:
        gateway = ScriptedGateway()
        store = _store_with(DailyAggregate(date_key=TODAY, water_total=1000))
        coordinator = build_coordinator(gateway, store, refresh_after_settle=False)

        first = coordinator.log_water(250)
        second = coordinator.log_water(500)
        await drain()

        gateway.resolve(1, WaterLogResult(success=True, updated_water_total=1500))
        await second
        gateway.fail(0, ConnectionError("offline"))
        with pytest.raises(RemoteFailure):
            await first

        assert store.get_current().water_total == 1500

    asyncio.run(scenario())


def test_refresh_converges_after_discarded_reconciliation() -> None:
    async def scenario() -> None:
        gateway = ScriptedGateway()
        store = _store_with(DailyAggregate(date_key=TODAY))
        coordinator = build_coordinator(gateway, store)
        invalidated: list[str] = []
        coordinator.on_invalidate(invalidated.append)

        older = coordinator.log_water(250)
        newer = coordinator.log_water(250)
        await drain()

        gateway.resolve(1, WaterLogResult(success=True, updated_water_total=250))
        await newer
        assert gateway.fetches == 0

        gateway.server_aggregate = DailyAggregate(date_key=TODAY, water_total=500)
        gateway.resolve(0, WaterLogResult(success=True, updated_water_total=500))
        await older

        assert older.stale
        assert gateway.fetches == 1
        assert store.get_current().water_total == 500
        assert invalidated == ["log_water", "log_water"]

    asyncio.run(scenario())


def test_absent_aggregate_starts_from_zero_for_today() -> None:
    async def scenario() -> None:
        gateway = ScriptedGateway()
        store = _store_with(DailyAggregate(date_key="2026-03-09", water_total=2000))
        coordinator = build_coordinator(gateway, store, refresh_after_settle=False)

        pending = coordinator.log_water(300)
        current = store.get_current()
        assert current.date_key == TODAY
        assert current.water_total == 300

        await drain()
        gateway.fail(0, ConnectionError("offline"))
        with pytest.raises(RemoteFailure):
            await pending
        assert store.get_current().date_key == "2026-03-09"
        assert store.get_current().water_total == 2000

    asyncio.run(scenario())


def test_check_in_replaces_and_reconciles_with_server_row() -> None:
    async def scenario() -> None:
        gateway = ScriptedGateway()
        store = _store_with(DailyAggregate(date_key=TODAY, water_total=600))
        coordinator = build_coordinator(gateway, store, refresh_after_settle=False)
        row_id = uuid4()

        pending = coordinator.submit_check_in(weight=81.2, sleep_hours=6.5)
        assert store.get_current().weight == 81.2
        assert store.get_current().sleep_hours == 6.5

        await drain()
        name, args = gateway.calls[0]
        assert name == "upsert_check_in"
        assert args == (CheckInValues(weight=81.2, sleep_hours=6.5), coordinator.cutoff)
        gateway.resolve(
            0,
            CheckInRecord(id=row_id, date_key=TODAY, weight=81.2, sleep_hours=6.5),
        )
        await pending

        current = store.get_current()
        assert current.id == row_id
        assert current.water_total == 600

    asyncio.run(scenario())


def test_check_in_rollback_restores_unset_values() -> None:
    async def scenario() -> None:
        gateway = ScriptedGateway()
        store = _store_with(DailyAggregate(date_key=TODAY))
        coordinator = build_coordinator(gateway, store)

        pending = coordinator.submit_check_in(weight=79.0)
        await drain()
        gateway.fail(0, ConnectionError("offline"))
        with pytest.raises(RemoteFailure):
            await pending

        assert store.get_current().weight is None
        assert store.get_current().sleep_hours is None

    asyncio.run(scenario())


def test_dispatch_requires_running_loop() -> None:
    coordinator = build_coordinator(ScriptedGateway())

    with pytest.raises(RuntimeError):
        coordinator.log_water(250)


def test_every_write_carries_the_coordinator_cutoff() -> None:
    async def scenario() -> None:
        gateway = ScriptedGateway()
        coordinator = build_coordinator(gateway, refresh_after_settle=False)
        item = make_item()

        coordinator.log_water(250)
        coordinator.log_nutrition(item, quantity=2)
        await drain()

        assert gateway.calls == [
            ("log_water", (250, coordinator.cutoff)),
            ("log_nutrition", (item.id, 2, coordinator.cutoff)),
        ]
        gateway.resolve(0, WaterLogResult(success=True, updated_water_total=250))
        gateway.resolve(
            1,
            NutritionLogResult(
                success=True, daily_totals=NutritionTotals(protein_total=48)
            ),
        )
        await drain()

    asyncio.run(scenario())


def test_failure_after_day_rollover_leaves_new_day_untouched() -> None:
    async def scenario() -> None:
        gateway = ScriptedGateway()
        store = _store_with(DailyAggregate(date_key=TODAY, water_total=1000))
        coordinator = build_coordinator(gateway, store, refresh_after_settle=False)

        first = coordinator.log_water(250)
        coordinator.clock = lambda: FIXED_NOW + timedelta(days=1)
        second = coordinator.log_water(500)
        assert store.get_current().date_key == "2026-03-11"
        await drain()

        gateway.fail(0, ConnectionError("offline"))
        with pytest.raises(RemoteFailure):
            await first

        current = store.get_current()
        assert current.date_key == "2026-03-11"
        assert current.water_total == 500
        assert first.state is MutationState.ROLLED_BACK

        gateway.resolve(1, WaterLogResult(success=True, updated_water_total=500))
        await second
        assert store.get_current().water_total == 500

    asyncio.run(scenario())


def test_non_finite_input_is_rejected() -> None:
    async def scenario() -> None:
        gateway = ScriptedGateway()
        store = LocalAggregateStore()
        coordinator = build_coordinator(gateway, store)

        with pytest.raises(ValidationError):
            coordinator.log_nutrition(make_item(), quantity=float("nan"))
        with pytest.raises(ValidationError):
            coordinator.log_nutrition(make_item(), quantity=float("inf"))
        with pytest.raises(ValidationError):
            coordinator.log_nutrition(make_item(protein=float("nan")))
        with pytest.raises(ValidationError):
            coordinator.log_nutrition(make_item(calories=float("inf")))
        with pytest.raises(ValidationError):
            coordinator.submit_check_in(weight=float("inf"))
        with pytest.raises(ValidationError):
            coordinator.submit_check_in(weight=float("nan"))
        with pytest.raises(ValidationError):
            coordinator.submit_check_in(sleep_hours=float("nan"))
        with pytest.raises(ValidationError):
            coordinator.submit_check_in(sleep_quality=0)
        with pytest.raises(ValidationError):
            coordinator.submit_check_in(mood="")

        assert gateway.calls == []
        assert store.version == 0

    asyncio.run(scenario())


def test_check_in_quality_and_mood_apply_and_roll_back() -> None:
    async def scenario() -> None:
        gateway = ScriptedGateway()
        store = _store_with(DailyAggregate(date_key=TODAY, mood="tired"))
        coordinator = build_coordinator(gateway, store, refresh_after_settle=False)

        pending = coordinator.submit_check_in(sleep_quality=7, mood="rested")
        assert store.get_current().sleep_quality == 7
        assert store.get_current().mood == "rested"

        await drain()
        assert gateway.calls[0][1][0] == CheckInValues(sleep_quality=7, mood="rested")
        gateway.fail(0, ConnectionError("offline"))
        with pytest.raises(RemoteFailure):
            await pending

        assert store.get_current().sleep_quality is None
        assert store.get_current().mood == "tired"

    asyncio.run(scenario())


def test_unawaited_failure_is_retrieved(sync_log_records) -> None:
    async def scenario() -> None:
        loop = asyncio.get_running_loop()
        unhandled: list[dict[str, object]] = []
        loop.set_exception_handler(lambda _loop, context: unhandled.append(context))
        gateway = ScriptedGateway()
        coordinator = build_coordinator(gateway, refresh_after_settle=False)

        pending = coordinator.log_water(250)
        await drain()
        gateway.fail(0, ConnectionError("offline"))
        await drain()
        await drain()
        assert pending.task.done()

        del pending
        gc.collect()
        assert unhandled == []

    asyncio.run(scenario())

    messages = [record.getMessage() for record in sync_log_records]
    assert any("finished with RemoteFailure" in message for message in messages)
