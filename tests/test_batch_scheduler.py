"""Batch scheduling: ordering, chunking, isolation of failures and progress."""

import pytest

from level_lens.models.cefr import CEFRLevel
from level_lens.models.generation import BatchRequest, SimplificationResult
from level_lens.services.batch_scheduler import BatchScheduler
from level_lens.services.provider import SessionKind


def make_requests(priorities):
    return [
        BatchRequest(id=f"r{index}", text=f"Passage number {index} is here.", priority=priority)
        for index, priority in enumerate(priorities)
    ]


def test_chunks_follow_priority_then_submission_order(container):
    scheduler = BatchScheduler(container.adaptation, chunk_size=5)

    chunks = scheduler.plan_chunks(make_requests([3, 1, 2, 1, 3, 2, 1]))

    assert [[r.id for r in chunk] for chunk in chunks] == [
        ["r1", "r3", "r6", "r2", "r5"],
        ["r0", "r4"],
    ]
    assert [r.priority for r in chunks[0]] == [1, 1, 1, 2, 2]


def test_invalid_chunk_size(container):
    with pytest.raises(ValueError):
        BatchScheduler(container.adaptation, chunk_size=0)


@pytest.mark.asyncio
async def test_every_request_gets_one_result(container):
    scheduler = BatchScheduler(container.adaptation, chunk_size=2, chunk_delay=0)
    requests = make_requests([2, 1, 3, 1, 2])

    results = await scheduler.run(requests, CEFRLevel.A2)

    assert sorted(result.id for result in results) == sorted(r.id for r in requests)
    assert all(result.success for result in results)
    assert results[0].data.simplified == "language_model: Passage number 1 is here."


@pytest.mark.asyncio
async def test_failures_are_isolated(container, fake_provider):
    fake_provider.fail_when = lambda kind, prompt: kind == SessionKind.LANGUAGE_MODEL and "broken" in prompt
    scheduler = BatchScheduler(container.adaptation, chunk_size=5, chunk_delay=0)
    requests = [
        BatchRequest(id="good", text="A perfectly fine passage."),
        BatchRequest(id="empty", text="   "),
        BatchRequest(id="broken", text="This passage is broken somehow."),
        BatchRequest(id="script", text="<script>alert(1)</script> hello"),
    ]

    results = {result.id: result for result in await scheduler.run(requests, CEFRLevel.B1)}

    assert len(results) == 4
    assert results["good"].success
    assert results["empty"].error_code == "VALIDATION_ERROR"
    assert results["broken"].error_code == "GENERATION_FAILED"
    assert results["script"].error_code == "VALIDATION_ERROR"
    assert not any(results[key].success for key in ("empty", "broken", "script"))


@pytest.mark.asyncio
async def test_progress_reported_after_each_chunk(container):
    scheduler = BatchScheduler(container.adaptation, chunk_size=2, chunk_delay=0)
    reports = []

    await scheduler.run(make_requests([1, 1, 1, 1, 1]), CEFRLevel.B1, progress_callback=reports.append)

    assert [(p.completed, p.total) for p in reports] == [(2, 5), (4, 5), (5, 5)]


@pytest.mark.asyncio
async def test_async_progress_callback(container):
    scheduler = BatchScheduler(container.adaptation, chunk_size=3, chunk_delay=0)
    reports = []

    async def on_progress(progress):
        reports.append(progress.completed)

    await scheduler.run(make_requests([1, 2, 3, 4]), CEFRLevel.B1, progress_callback=on_progress)

    assert reports == [3, 4]


@pytest.mark.asyncio
async def test_failing_progress_callback_does_not_abort(container):
    scheduler = BatchScheduler(container.adaptation, chunk_size=1, chunk_delay=0)

    def on_progress(progress):
        raise RuntimeError("listener went away")

    results = await scheduler.run(make_requests([1, 1]), CEFRLevel.B1, progress_callback=on_progress)

    assert all(result.success for result in results)


@pytest.mark.asyncio
async def test_cache_hits_skip_the_provider(container, fake_provider):
    text = "The cat sat on the mat."
    container.cache.set(
        text,
        CEFRLevel.A1,
        SimplificationResult(simplified="Cat on mat.", summary="Cat.", original_text=text),
    )
    fake_provider.available = False
    scheduler = BatchScheduler(container.adaptation, chunk_delay=0)

    results = await scheduler.run([BatchRequest(id="hit", text=text)], CEFRLevel.A1)

    assert results[0].success
    assert results[0].data.simplified == "Cat on mat."
    assert results[0].data.from_cache
    assert fake_provider.calls == []


@pytest.mark.asyncio
async def test_unavailable_provider_fails_misses_only(container, fake_provider):
    cached = "Already simplified before."
    container.cache.set(
        cached, CEFRLevel.B2, SimplificationResult(simplified="Done.", original_text=cached)
    )
    fake_provider.available = False
    scheduler = BatchScheduler(container.adaptation, chunk_delay=0)

    results = {
        result.id: result
        for result in await scheduler.run(
            [BatchRequest(id="hit", text=cached), BatchRequest(id="miss", text="Never seen this text.")],
            CEFRLevel.B2,
        )
    }

    assert results["hit"].success
    assert not results["miss"].success
    assert results["miss"].error_code == "PROVIDER_UNAVAILABLE"


@pytest.mark.asyncio
async def test_results_are_cached_for_later_requests(container, fake_provider):
    scheduler = BatchScheduler(container.adaptation, chunk_delay=0)
    requests = make_requests([1, 2])

    await scheduler.run(requests, CEFRLevel.C1)
    calls_after_first_run = len(fake_provider.calls_of(SessionKind.LANGUAGE_MODEL))
    results = await scheduler.run(requests, CEFRLevel.C1)

    assert calls_after_first_run == 2
    assert len(fake_provider.calls_of(SessionKind.LANGUAGE_MODEL)) == 2
    assert all(result.data.from_cache for result in results)
