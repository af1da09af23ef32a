"""Tests for the batch orchestrator."""

import asyncio

import httpx
import pytest

from app.generation.errors import (
    CredentialsExhaustedError,
    GenerationHTTPError,
    NoCredentialsConfiguredError,
)
from app.generation.orchestrator import GenerationTask
from conftest import FakeClock, gemini_response, make_client, request_prompt


def _tasks(n: int) -> list[GenerationTask]:
    return [GenerationTask(id=f"task-{i}", prompt=f"prompt {i}") for i in range(n)]


def _echo(request: httpx.Request) -> httpx.Response:
    return gemini_response(f"answer to {request_prompt(request)}")


@pytest.mark.asyncio
async def test_every_task_dispatched_once_in_order():
    prompts: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        prompts.append(request_prompt(request))
        return _echo(request)

    client = make_client(handler, keys=("a", "b", "c"))
    results = await client.orchestrator.run(_tasks(7))

    assert len(prompts) == 7
    assert sorted(prompts) == sorted(f"prompt {i}" for i in range(7))
    assert [r.id for r in results] == [f"task-{i}" for i in range(7)]
    assert [r.result for r in results] == [f"answer to prompt {i}" for i in range(7)]
    assert all(r.ok for r in results)


@pytest.mark.asyncio
async def test_batches_sized_to_eligible_keys():
    batches: list[tuple[int, int]] = []
    client = make_client(_echo, keys=("a", "b", "c"))

    await client.orchestrator.run(_tasks(7), on_batch=lambda done, total: batches.append((done, total)))

    # ceil(7 / 3) batches
    assert batches == [(3, 7), (6, 7), (7, 7)]
    sleep = client.orchestrator._sleep
    assert sleep.calls == [0.5, 0.5]


@pytest.mark.asyncio
async def test_keys_spread_evenly():
    used: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        used.append(request.url.params["key"])
        return _echo(request)

    client = make_client(handler, keys=("a", "b"))
    await client.orchestrator.run(_tasks(4))
    assert sorted(used) == ["a", "a", "b", "b"]


@pytest.mark.asyncio
async def test_partial_failure_does_not_abort_batch():
    def handler(request: httpx.Request) -> httpx.Response:
        if request_prompt(request) == "prompt 1":
            return httpx.Response(500, text="boom")
        return _echo(request)

    client = make_client(handler, keys=("a", "b", "c"))
    results = await client.orchestrator.run(_tasks(3))

    assert [r.ok for r in results] == [True, False, True]
    assert isinstance(results[1].error, GenerationHTTPError)
    assert results[2].result == "answer to prompt 2"


@pytest.mark.asyncio
async def test_empty_pool_raises():
    client = make_client(_echo, keys=())
    with pytest.raises(NoCredentialsConfiguredError):
        await client.orchestrator.run(_tasks(2))
    with pytest.raises(NoCredentialsConfiguredError):
        await client.orchestrator.generate("p")


@pytest.mark.asyncio
async def test_no_tasks():
    client = make_client(_echo)
    assert await client.orchestrator.run([]) == []


@pytest.mark.asyncio
async def test_waits_for_key_to_free_up():
    clock = FakeClock()
    client = make_client(_echo, keys=("a",), clock=clock, min_interval=1.0)

    results = await client.orchestrator.run(_tasks(3))

    assert all(r.ok for r in results)
    # Pause after each batch, then the rest of the 1s interval
    assert client.orchestrator._sleep.calls == [0.5, 0.5, 0.5, 0.5]


@pytest.mark.asyncio
async def test_suspended_pool_waits_out_cooldown():
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request_prompt(request))
        return httpx.Response(429, text="quota exceeded")

    clock = FakeClock()
    client = make_client(handler, keys=("a", "b"), clock=clock, min_interval=1.0, cooldown=300.0)
    tasks = _tasks(10)

    results = await client.orchestrator.run(tasks)

    # Both keys are suspended after the third batch and come back after the cooldown
    assert len(calls) == len(tasks)
    assert sorted(calls) == sorted(t.prompt for t in tasks)
    assert [r.id for r in results] == [t.id for t in tasks]
    assert all(isinstance(r.error, GenerationHTTPError) for r in results)
    assert max(client.orchestrator._sleep.calls) >= 299.0


@pytest.mark.asyncio
async def test_generate_single():
    client = make_client(_echo)
    assert await client.orchestrator.generate("hello") == "answer to hello"
    assert len(client.key_pool.usage(0).requests) == 1


@pytest.mark.asyncio
async def test_generate_exhausted_reports_retry_after():
    clock = FakeClock()
    client = make_client(_echo, keys=("a",), clock=clock, min_interval=2.0)
    await client.orchestrator.generate("first")

    with pytest.raises(CredentialsExhaustedError) as exc_info:
        await client.orchestrator.generate("second")
    assert exc_info.value.retry_after == pytest.approx(2.0)


@pytest.mark.asyncio
async def test_batch_is_concurrent():
    in_flight = 0
    peak = 0

    async def slow_dispatch(prompt, key_id, *, request_id):
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0)
        in_flight -= 1
        return prompt

    client = make_client(_echo, keys=("a", "b", "c"))
    client.dispatcher.dispatch = slow_dispatch
    await client.orchestrator.run(_tasks(3))
    assert peak == 3
