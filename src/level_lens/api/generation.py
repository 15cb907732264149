"""Text adaptation endpoints: simplify, quiz and batch."""

import asyncio
import json
from typing import Any, AsyncIterator, Dict, List, Optional, Set

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from ..core import get_logger
from ..models.api import (
    BatchSubmitRequest,
    QuizRequest,
    QuizResponse,
    SimplifyRequest,
    SimplifyResponse,
)
from ..models.cefr import CEFRLevel
from ..models.generation import BatchProgress, BatchRequest
from ..services.container import AppContainer
from .dependencies import get_container

router = APIRouter()
logger = get_logger(__name__)

NDJSON_MEDIA_TYPE = "application/x-ndjson"

# Batch runs in flight, held until done so a closed stream never drops one
running_batches: Set["asyncio.Task[Any]"] = set()


async def resolve_level(container: AppContainer, level: Optional[CEFRLevel]) -> CEFRLevel:
    """Requested level, or the stored level when the request omits it."""
    if level is not None:
        return level
    return await container.store.get_level()


@router.post("/simplify", response_model=SimplifyResponse, tags=["Adaptation"])
async def simplify_text(
    body: SimplifyRequest,
    container: AppContainer = Depends(get_container),
):
    """
    Rewrite a passage for a CEFR level.

    Repeated requests for the same text and level are served from the
    result cache, even while the provider is unavailable.
    """
    level = await resolve_level(container, body.level)
    logger.info("Simplification requested", level=level.value, text_length=len(body.text))

    result = await container.adaptation.simplify(body.text, level)
    return SimplifyResponse(result=result)


@router.post("/quiz", response_model=QuizResponse, tags=["Adaptation"])
async def generate_quiz(
    body: QuizRequest,
    container: AppContainer = Depends(get_container),
):
    """Generate a short comprehension quiz for a passage."""
    level = await resolve_level(container, body.level)
    logger.info("Quiz requested", level=level.value, text_length=len(body.text))

    quiz = await container.adaptation.generate_quiz(body.text, level)
    return QuizResponse(
        questions=quiz.questions,
        original_text=quiz.original_text,
        from_cache=quiz.from_cache,
    )


def _ndjson(payload: Dict[str, Any]) -> str:
    return json.dumps(payload) + "\n"


def _batch_finished(task: "asyncio.Task[Any]") -> None:
    running_batches.discard(task)
    if task.cancelled():
        logger.warning("Batch run cancelled")
    elif task.exception() is not None:
        logger.error("Batch run failed", error=str(task.exception()))
    else:
        logger.info("Batch run finished", total_results=len(task.result()))


async def batch_stream(
    container: AppContainer,
    requests: List[BatchRequest],
    level: CEFRLevel,
) -> AsyncIterator[str]:
    """
    Run a batch and yield its NDJSON lines.

    Closing the stream early stops the reporting only. The run keeps going
    in ``running_batches`` so provider calls already issued complete and
    their results still reach the cache.
    """
    queue: "asyncio.Queue[Optional[Dict[str, Any]]]" = asyncio.Queue()

    async def on_progress(progress: BatchProgress) -> None:
        await queue.put({"type": "progress", **progress.model_dump()})

    task = asyncio.create_task(
        container.scheduler.run(requests, level, progress_callback=on_progress)
    )
    running_batches.add(task)
    task.add_done_callback(_batch_finished)
    # Sentinel lands after every progress line the run produced
    task.add_done_callback(lambda _: queue.put_nowait(None))

    try:
        while True:
            item = await queue.get()
            if item is None:
                break
            yield _ndjson(item)

        results = await task
        yield _ndjson({
            "type": "result",
            "results": [result.model_dump(mode="json") for result in results],
        })
    finally:
        if not task.done():
            logger.warning(
                "Batch stream closed before completion, run continues",
                level=level.value,
                total_requests=len(requests),
            )


@router.post("/batch", tags=["Adaptation"])
async def submit_batch(
    body: BatchSubmitRequest,
    container: AppContainer = Depends(get_container),
):
    """
    Simplify many texts, streaming progress as newline-delimited JSON.

    Each processed chunk produces a ``{"type": "progress"}`` line; the last
    line is ``{"type": "result"}`` with one result per request. Failures of
    individual texts are reported in their results and never abort the batch.
    """
    level = await resolve_level(container, body.level)
    logger.info("Batch submitted", total_requests=len(body.requests), level=level.value)

    return StreamingResponse(
        batch_stream(container, body.requests, level), media_type=NDJSON_MEDIA_TYPE
    )
