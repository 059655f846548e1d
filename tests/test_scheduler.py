import asyncio

import pytest

from pdf_form_fill.scheduler import SchedulerState, UpdateScheduler


def _recorder(duration=0.0):
    calls = []
    running = {"now": 0, "max": 0}

    async def run_cycle(payload):
        running["now"] += 1
        running["max"] = max(running["max"], running["now"])
        try:
            await asyncio.sleep(duration)
            calls.append(payload)
        finally:
            running["now"] -= 1

    return run_cycle, calls, running


def test_burst_coalesces_into_one_cycle_with_latest_payload():
    async def scenario():
        run_cycle, calls, _ = _recorder()
        scheduler = UpdateScheduler(run_cycle, first_delay=0.5, delay=0.3)
        scheduler.request("a")
        await asyncio.sleep(0.05)
        scheduler.request("b")
        await asyncio.sleep(0.03)
        scheduler.request("c")
        assert scheduler.state is SchedulerState.PENDING
        await scheduler.wait_idle()
        return calls, scheduler

    calls, scheduler = asyncio.run(scenario())
    assert calls == ["c"]
    assert scheduler.cycles_started == 1
    assert scheduler.cycles_completed == 1
    assert scheduler.state is SchedulerState.IDLE


def test_debounce_window_restarts_on_each_request():
    async def scenario():
        run_cycle, calls, _ = _recorder()
        scheduler = UpdateScheduler(run_cycle, first_delay=0.2, delay=0.2)
        for _ in range(4):
            scheduler.request("x")
            await asyncio.sleep(0.1)
        started_while_typing = scheduler.cycles_started
        await scheduler.wait_idle()
        return started_while_typing, calls

    started_while_typing, calls = asyncio.run(scenario())
    assert started_while_typing == 0
    assert calls == ["x"]


def test_first_cycle_uses_longer_delay():
    async def scenario():
        run_cycle, _, _ = _recorder()
        scheduler = UpdateScheduler(run_cycle, first_delay=0.05, delay=0.01)
        before = scheduler.current_delay
        scheduler.request(1)
        await scheduler.wait_idle()
        return before, scheduler.current_delay

    before, after = asyncio.run(scenario())
    assert before == 0.05
    assert after == 0.01


def test_single_flight_and_latest_wins_behind_running_cycle():
    async def scenario():
        run_cycle, calls, running = _recorder(duration=0.2)
        scheduler = UpdateScheduler(run_cycle, first_delay=0.01, delay=0.01)
        scheduler.request("a")
        await asyncio.sleep(0.05)
        assert scheduler.state is SchedulerState.RUNNING
        scheduler.request("b")
        scheduler.request("c")
        # both timers fire while "a" is still in flight
        await asyncio.sleep(0.05)
        assert scheduler.cycles_started == 1
        await scheduler.wait_idle()
        return calls, running, scheduler

    calls, running, scheduler = asyncio.run(scenario())
    assert calls == ["a", "c"]
    assert running["max"] == 1
    assert scheduler.cycles_started == 2


def test_failed_cycle_keeps_scheduler_usable():
    errors = []

    async def scenario():
        calls = []

        async def run_cycle(payload):
            if payload == "bad":
                raise RuntimeError("render failed")
            calls.append(payload)

        scheduler = UpdateScheduler(run_cycle, first_delay=0.01, delay=0.01, on_error=errors.append)
        scheduler.request("bad")
        await scheduler.wait_idle()
        scheduler.request("good")
        await scheduler.wait_idle()
        return calls, scheduler

    calls, scheduler = asyncio.run(scenario())
    assert calls == ["good"]
    assert scheduler.cycles_failed == 1
    assert scheduler.cycles_completed == 1
    assert len(errors) == 1 and isinstance(errors[0], RuntimeError)


def test_flush_runs_without_waiting_for_timer():
    async def scenario():
        run_cycle, calls, _ = _recorder()
        scheduler = UpdateScheduler(run_cycle, first_delay=10, delay=10)
        scheduler.request("now")
        await asyncio.wait_for(scheduler.flush(), timeout=1)
        return calls

    assert asyncio.run(scenario()) == ["now"]


def test_close_drops_pending_and_waits_for_in_flight():
    async def scenario():
        run_cycle, calls, _ = _recorder(duration=0.1)
        scheduler = UpdateScheduler(run_cycle, first_delay=0.01, delay=0.01)
        scheduler.request("running")
        await asyncio.sleep(0.03)
        scheduler.request("dropped")
        await scheduler.close()
        with pytest.raises(RuntimeError):
            scheduler.request("late")
        return calls, scheduler

    calls, scheduler = asyncio.run(scenario())
    assert calls == ["running"]
    assert scheduler.state is SchedulerState.IDLE
    assert scheduler.cycles_started == 1


def test_wait_idle_returns_immediately_when_idle():
    async def scenario():
        run_cycle, _, _ = _recorder()
        scheduler = UpdateScheduler(run_cycle)
        await asyncio.wait_for(scheduler.wait_idle(), timeout=0.5)
        return scheduler.state

    assert asyncio.run(scenario()) is SchedulerState.IDLE
