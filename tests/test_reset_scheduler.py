"""Tests for day-boundary detection."""

import asyncio

import pytest

from calorie_tracker.services.clock import seconds_until_next_midnight
from calorie_tracker.services.ledger import LedgerStore
from calorie_tracker.services.reset import ResetScheduler, ResetState
from tests.conftest import FixedClock, local_time, make_entry


class _StopLoop(Exception):
    pass


def test_check_is_idempotent_within_a_day(
    store: LedgerStore, clock: FixedClock
) -> None:
    days: list[str] = []
    scheduler = ResetScheduler(store=store, clock=clock, listeners=[days.append])

    assert scheduler.state == ResetState.STALE
    assert scheduler.check() is True
    assert scheduler.check() is False
    assert scheduler.state == ResetState.CURRENT
    assert days == ["2024-03-15"]
    assert store.load_reset_marker() == "2024-03-15"


def test_check_after_midnight_advances_marker(
    store: LedgerStore, clock: FixedClock
) -> None:
    scheduler = ResetScheduler(store=store, clock=clock)
    scheduler.check()

    clock.advance(hours=12)

    assert scheduler.state == ResetState.STALE
    assert scheduler.check() is True
    assert store.load_reset_marker() == "2024-03-16"


def test_check_never_deletes_ledgers(store: LedgerStore, clock: FixedClock) -> None:
    entry = make_entry("Dinner", 700, local_time(2024, 3, 15, 19))
    store.put("2024-03-15", [entry])
    scheduler = ResetScheduler(store=store, clock=clock)
    scheduler.check()

    clock.advance(days=1)
    scheduler.check()

    assert store.get("2024-03-15") == [entry]


def test_visibility_triggers_check(store: LedgerStore, clock: FixedClock) -> None:
    scheduler = ResetScheduler(store=store, clock=clock)

    assert scheduler.on_visibility_change(False) is False
    assert store.load_reset_marker() is None
    assert scheduler.on_visibility_change(True) is True
    assert scheduler.on_visibility_change(True) is False


def test_listener_failure_does_not_stop_others(
    store: LedgerStore, clock: FixedClock
) -> None:
    seen: list[str] = []

    def broken(_day: str) -> None:
        raise RuntimeError("boom")

    scheduler = ResetScheduler(store=store, clock=clock)
    scheduler.add_listener(broken)
    scheduler.add_listener(seen.append)

    assert scheduler.check() is True
    assert seen == ["2024-03-15"]


def test_run_checks_at_startup_midnight_and_daily(
    store: LedgerStore, clock: FixedClock
) -> None:
    days: list[str] = []
    delays: list[float] = []

    async def fake_sleep(seconds: float) -> None:
        delays.append(seconds)
        if len(delays) == 3:
            raise _StopLoop
        clock.advance(seconds=seconds)

    scheduler = ResetScheduler(
        store=store, clock=clock, sleep=fake_sleep, listeners=[days.append]
    )

    with pytest.raises(_StopLoop):
        asyncio.run(scheduler.run())

    assert delays == [11.5 * 3600, 86400, 86400]
    assert days == ["2024-03-15", "2024-03-16", "2024-03-17"]


def test_start_and_stop_manage_background_task(
    store: LedgerStore, clock: FixedClock
) -> None:
    async def wait_forever(_seconds: float) -> None:
        await asyncio.Event().wait()

    scheduler = ResetScheduler(store=store, clock=clock, sleep=wait_forever)

    async def scenario() -> None:
        scheduler.start()
        await asyncio.sleep(0)
        assert store.load_reset_marker() == "2024-03-15"
        await scheduler.stop()

    asyncio.run(scenario())

    assert scheduler._task is None


def test_seconds_until_midnight_on_dst_change() -> None:
    clock = FixedClock(local_time(2024, 3, 10, 0, 30))

    assert seconds_until_next_midnight(clock) == 22.5 * 3600


def test_seconds_until_midnight_regular_day(clock: FixedClock) -> None:
    assert seconds_until_next_midnight(clock) == 11.5 * 3600
