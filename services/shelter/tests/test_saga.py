import asyncio

import pytest

from app.saga import Saga


class Boom(Exception):
    pass


@pytest.mark.asyncio
async def test_runs_steps_in_order_and_returns_results():
    calls = []

    async def step(name):
        calls.append(name)
        return name.upper()

    saga = Saga("test").step("a", lambda: step("a")).step("b", lambda: step("b"))

    assert await saga.run() == ["A", "B"]
    assert calls == ["a", "b"]
    assert [e["status"] for e in saga.saga_log] == ["COMPLETED", "COMPLETED"]
    assert saga.compensated is False


@pytest.mark.asyncio
async def test_failure_compensates_completed_steps_in_reverse():
    calls = []

    async def forward(name):
        calls.append(name)
        return name

    async def compensate(result):
        calls.append(f"undo-{result}")

    async def fail():
        raise Boom("no")

    saga = (
        Saga("test")
        .step("a", lambda: forward("a"), compensate)
        .step("b", lambda: forward("b"), compensate)
        .step("c", fail, compensate)
    )

    with pytest.raises(Boom):
        await saga.run()

    assert calls == ["a", "b", "undo-b", "undo-a"]
    assert [(e["action"], e["status"]) for e in saga.saga_log] == [
        ("a", "COMPLETED"),
        ("b", "COMPLETED"),
        ("c", "FAILED"),
        ("b (COMPENSATING)", "COMPENSATED"),
        ("a (COMPENSATING)", "COMPENSATED"),
    ]
    assert saga.saga_log[2]["error"] == "no"


@pytest.mark.asyncio
async def test_failed_compensation_is_recorded_and_original_error_raised():
    calls = []

    async def ok():
        return None

    async def bad_compensation(_):
        raise RuntimeError("still down")

    async def good_compensation(_):
        calls.append("undo-a")

    async def fail():
        raise Boom()

    saga = (
        Saga("test")
        .step("a", ok, good_compensation)
        .step("b", ok, bad_compensation)
        .step("c", fail)
    )

    with pytest.raises(Boom):
        await saga.run()

    assert calls == ["undo-a"]
    assert saga.saga_log[3]["status"] == "FAILED"
    assert saga.saga_log[3]["error"] == "still down"
    assert saga.saga_log[2]["error"] == "Boom"


@pytest.mark.asyncio
async def test_cancellation_runs_compensation():
    calls = []
    started = asyncio.Event()

    async def ok():
        return "a"

    async def compensate(result):
        calls.append(f"undo-{result}")

    async def hang():
        started.set()
        await asyncio.sleep(10)

    saga = Saga("test").step("a", ok, compensate).step("b", hang)
    task = asyncio.create_task(saga.run())
    await started.wait()
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task

    assert calls == ["undo-a"]
    assert saga.saga_log[1]["status"] == "FAILED"
