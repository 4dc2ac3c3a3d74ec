# Copyright (C) 2025 VerifyNews Contributors
#
# This file is part of VerifyNews Engine.

"""Unit tests for in-flight request deduplication."""

import asyncio

import pytest

from verifynews_core.verification.dedup import RequestDeduplicator


class _Gate:
    """Counts invocations and blocks each one until released."""

    def __init__(self, result=None, error=None):
        self.calls = 0
        self.release = asyncio.Event()
        self._result = result
        self._error = error

    async def __call__(self):
        self.calls += 1
        await self.release.wait()
        if self._error is not None:
            raise self._error
        return self._result


@pytest.mark.unit
@pytest.mark.asyncio
async def test_concurrent_callers_share_one_invocation():
    dedup = RequestDeduplicator()
    gate = _Gate(result={"veracity": "false"})

    tasks = [asyncio.create_task(dedup.dedupe("moon", gate)) for _ in range(3)]
    await asyncio.sleep(0)
    assert dedup.is_pending("moon")
    gate.release.set()
    results = await asyncio.gather(*tasks)

    assert gate.calls == 1
    assert results[0] is results[1] is results[2]
    assert len(dedup) == 0


@pytest.mark.unit
@pytest.mark.asyncio
async def test_concurrent_callers_share_one_rejection():
    dedup = RequestDeduplicator()
    err = RuntimeError("provider down")
    gate = _Gate(error=err)

    tasks = [asyncio.create_task(dedup.dedupe("moon", gate)) for _ in range(3)]
    await asyncio.sleep(0)
    gate.release.set()
    outcomes = await asyncio.gather(*tasks, return_exceptions=True)

    assert gate.calls == 1
    assert all(o is err for o in outcomes)
    assert not dedup.is_pending("moon")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_entry_removed_after_settle_so_next_call_runs_again():
    dedup = RequestDeduplicator()
    gate = _Gate(result=1)
    gate.release.set()

    assert await dedup.dedupe("k", gate) == 1
    await asyncio.sleep(0)
    assert await dedup.dedupe("k", gate) == 1
    assert gate.calls == 2


@pytest.mark.unit
@pytest.mark.asyncio
async def test_different_keys_run_independently():
    dedup = RequestDeduplicator()
    a, b = _Gate(result="a"), _Gate(result="b")
    a.release.set()
    b.release.set()

    assert await asyncio.gather(dedup.dedupe("a", a), dedup.dedupe("b", b)) == ["a", "b"]
    assert (a.calls, b.calls) == (1, 1)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_cancelled_waiter_does_not_cancel_shared_work():
    dedup = RequestDeduplicator()
    gate = _Gate(result="done")

    first = asyncio.create_task(dedup.dedupe("k", gate))
    second = asyncio.create_task(dedup.dedupe("k", gate))
    await asyncio.sleep(0)

    first.cancel()
    await asyncio.sleep(0)
    gate.release.set()

    assert await second == "done"
    assert first.cancelled()
    assert gate.calls == 1
