import asyncio

import pytest

from mailflow.models import RemoteStub
from mailflow.search import ConcurrentDetailFetcher
from tests.utils import make_email, parts, temp_test_dir

# in here for ruff
parts
temp_test_dir


def _stubs(count: int) -> list[RemoteStub]:
    return [RemoteStub(id=f"d{i}") for i in range(count)]


@pytest.mark.asyncio
async def test_concurrency_is_bounded(parts):
    parts.client.add_messages(
        [make_email(f"d{i}", subject="detail", minutes=i) for i in range(30)]
    )
    parts.client.delay = 0.02

    emails = await ConcurrentDetailFetcher(concurrency=10).enrich(
        parts.client, _stubs(30)
    )

    assert len(emails) == 30
    assert parts.client.fetch_calls == 30
    assert 1 < parts.client.max_in_flight <= 10


@pytest.mark.asyncio
async def test_concurrency_of_one_is_sequential(parts):
    parts.client.add_messages([make_email(f"d{i}") for i in range(5)])
    parts.client.delay = 0.01

    await ConcurrentDetailFetcher(concurrency=1).enrich(parts.client, _stubs(5))
    assert parts.client.max_in_flight == 1


@pytest.mark.asyncio
async def test_failed_fetches_are_dropped(parts):
    parts.client.add_messages([make_email(f"d{i}") for i in range(4)])
    parts.client.failing_ids = {"d1", "d3"}

    emails = await ConcurrentDetailFetcher().enrich(parts.client, _stubs(4))
    assert sorted(e.id for e in emails) == ["d0", "d2"]


@pytest.mark.asyncio
async def test_no_stubs(parts):
    assert await ConcurrentDetailFetcher().enrich(parts.client, []) == []
    assert parts.client.fetch_calls == 0


@pytest.mark.asyncio
async def test_cancelling_the_caller_aborts_inflight_fetches(parts):
    parts.client.add_messages([make_email(f"d{i}") for i in range(5)])
    parts.client.delay = 10

    task = asyncio.create_task(
        ConcurrentDetailFetcher(concurrency=3).enrich(parts.client, _stubs(5))
    )
    for _ in range(100):
        if parts.client.in_flight == 3:
            break
        await asyncio.sleep(0.01)
    assert parts.client.in_flight == 3

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await asyncio.wait_for(task, timeout=1)

    assert parts.client.in_flight == 0
    # the stubs still waiting for a slot were never fetched
    assert parts.client.fetch_calls == 3


def test_concurrency_must_be_positive():
    with pytest.raises(ValueError):
        ConcurrentDetailFetcher(concurrency=0)
