"""ConnectionSupervisor: lifecycle handling, health checks, bounded reconnect."""

import asyncio
from datetime import datetime

import pytest

from conftest import NZ
from ritualbot.bus.events import LifecycleEvent
from ritualbot.cron.catalog import ActionCatalog
from ritualbot.cron.executor import RetryExecutor
from ritualbot.cron.service import Scheduler
from ritualbot.errors import ReconnectExhaustedError
from ritualbot.session.supervisor import ConnectionSupervisor


@pytest.fixture
def scheduler(ctx, session, recorded_sleep):
    executor = RetryExecutor(session, sleep=recorded_sleep)
    return Scheduler(
        ctx.scheduler, ActionCatalog.default(), executor,
        clock=lambda: datetime(2023, 1, 1, tzinfo=NZ),
    )


@pytest.fixture
def supervisor(ctx, session, scheduler, recorded_sleep):
    return ConnectionSupervisor(ctx, session, scheduler, sleep=recorded_sleep)


@pytest.mark.asyncio
async def test_reconnect_halts_after_max_attempts(supervisor, ctx, session, recorded_sleep):
    session.init_failures = 99
    assert await supervisor.reconnect() is False
    assert session.initialize_calls == 5
    assert session.destroy_calls == 5
    assert recorded_sleep.delays == [30.0] * 5
    assert supervisor.state == "exhausted"
    assert isinstance(supervisor.last_error, ReconnectExhaustedError)
    assert "Max reconnection attempts (5) reached" in str(supervisor.last_error)

    # Exhaustion is terminal: no sixth attempt
    assert await supervisor.reconnect() is False
    assert session.initialize_calls == 5


@pytest.mark.asyncio
async def test_reconnect_succeeds_after_failures(supervisor, ctx, session):
    session.init_failures = 2
    assert await supervisor.reconnect() is True
    assert session.initialize_calls == 3
    assert ctx.reconnect.attempt_count == 3
    assert supervisor.state == "connecting"


@pytest.mark.asyncio
async def test_ready_resets_attempt_counter(ctx, session, scheduler):
    supervisor = ConnectionSupervisor(ctx, session, scheduler)
    ctx.reconnect.attempt_count = 3
    await supervisor.handle(LifecycleEvent(kind="ready"))
    try:
        assert ctx.reconnect.attempt_count == 0
        assert ctx.ready_at is not None
        assert supervisor.state == "ready"
        assert supervisor._health_task is not None
    finally:
        await supervisor.stop()
    assert supervisor._health_task is None


@pytest.mark.asyncio
async def test_disconnect_tears_down_and_reconnects(supervisor, ctx, session, scheduler, group):
    await scheduler.setup(group)
    assert len(ctx.scheduler.jobs) == 4

    await supervisor.handle(LifecycleEvent(kind="disconnected", detail="NAVIGATION"))
    assert ctx.scheduler.active is False
    assert ctx.scheduler.jobs == {}
    assert await supervisor.wait_reconnect() is True
    assert session.destroy_calls == 1
    assert session.initialize_calls == 1
    # Jobs stay torn down until the next start command
    assert ctx.scheduler.jobs == {}


@pytest.mark.asyncio
async def test_second_disconnect_during_reconnect_is_ignored(ctx, session, scheduler):
    gate = asyncio.Event()

    async def held_sleep(delay):
        await gate.wait()

    supervisor = ConnectionSupervisor(ctx, session, scheduler, sleep=held_sleep)
    await supervisor.handle(LifecycleEvent(kind="disconnected"))
    await asyncio.sleep(0)
    await supervisor.handle(LifecycleEvent(kind="disconnected"))
    await asyncio.sleep(0)
    assert supervisor.reconnecting is True
    assert ctx.reconnect.attempt_count == 1

    gate.set()
    assert await supervisor.wait_reconnect() is True
    assert session.initialize_calls == 1


@pytest.mark.asyncio
async def test_auth_failure_has_no_effect(supervisor, ctx, session):
    await supervisor.handle(LifecycleEvent(kind="auth_failure", detail="bad session"))
    await supervisor.handle(LifecycleEvent(kind="qr", detail="2@abc"))
    await supervisor.handle(LifecycleEvent(kind="loading", percent=40))
    await supervisor.handle(LifecycleEvent(kind="authenticated"))
    assert supervisor.reconnecting is False
    assert ctx.reconnect.attempt_count == 0
    assert session.initialize_calls == 0
    assert supervisor.state == "disconnected"


@pytest.mark.asyncio
async def test_start_failure_enters_reconnect(supervisor, session):
    session.init_failures = 1
    await supervisor.start()
    assert await supervisor.wait_reconnect() is True
    assert session.initialize_calls == 2


@pytest.mark.asyncio
async def test_start_success_does_not_reconnect(supervisor, session):
    await supervisor.start()
    assert supervisor.state == "connecting"
    assert supervisor.reconnecting is False
    assert await supervisor.wait_reconnect() is None


@pytest.mark.asyncio
async def test_health_check_outcomes(supervisor, session):
    assert await supervisor.check_health() is True

    session.state = None
    assert await supervisor.check_health() is False

    session.state = "CONNECTED"
    session.state_error = RuntimeError("page crashed")
    assert await supervisor.check_health() is False

    session.state_error = None
    session.ready = False
    assert await supervisor.check_health() is False
    # Observational only
    assert session.initialize_calls == 0
    assert supervisor.reconnecting is False


@pytest.mark.asyncio
async def test_health_loop_runs_on_interval(ctx, session, scheduler):
    delays = []

    async def counting_sleep(delay):
        delays.append(delay)
        if len(delays) > 2:
            await asyncio.Event().wait()

    supervisor = ConnectionSupervisor(ctx, session, scheduler, health_check_interval_s=300.0, sleep=counting_sleep)
    supervisor.start_health_check()
    for _ in range(5):
        await asyncio.sleep(0)
    await supervisor.stop()
    assert delays == [300.0, 300.0, 300.0]
