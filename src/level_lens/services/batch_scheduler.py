"""Priority-ordered, chunked batch simplification."""

import asyncio
import inspect
import time
from typing import Awaitable, Callable, List, Optional, Sequence, Union

from ..core import get_logger, LevelLensException
from ..models.cefr import CEFRLevel
from ..models.generation import BatchProgress, BatchRequest, BatchResult
from .text_adaptation import TextAdaptationService

logger = get_logger(__name__)

ProgressCallback = Callable[[BatchProgress], Union[None, Awaitable[None]]]


class BatchScheduler:
    """
    Simplifies many texts without overwhelming the generation capability.

    Requests are ordered by priority (stable, lower first) and cut into
    chunks. Requests inside a chunk run concurrently; chunks run one after
    another with a short pause. Every request yields exactly one result.
    """

    def __init__(
        self,
        service: TextAdaptationService,
        chunk_size: int = 5,
        chunk_delay: float = 0.1,
    ):
        if chunk_size < 1:
            raise ValueError("chunk_size must be at least 1")
        self.service = service
        self.chunk_size = chunk_size
        self.chunk_delay = chunk_delay

    def plan_chunks(self, requests: Sequence[BatchRequest]) -> List[List[BatchRequest]]:
        """Priority-ordered chunks; ties keep submission order."""
        ordered = sorted(requests, key=lambda request: request.priority)
        return [
            ordered[i:i + self.chunk_size]
            for i in range(0, len(ordered), self.chunk_size)
        ]

    async def run(
        self,
        requests: Sequence[BatchRequest],
        level: CEFRLevel,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> List[BatchResult]:
        """
        Process every request and report progress after each chunk.

        Args:
            requests: Texts to simplify with their priorities
            level: Target level for all texts
            progress_callback: Called with a BatchProgress after each chunk (may be async)

        Returns:
            One BatchResult per request, in processing order
        """
        level = CEFRLevel(level)
        start_time = time.time()
        total = len(requests)
        chunks = self.plan_chunks(requests)
        results: List[BatchResult] = []

        logger.info(
            "Starting batch simplification",
            total_requests=total,
            chunk_count=len(chunks),
            chunk_size=self.chunk_size,
            level=level.value,
        )

        for chunk_num, chunk in enumerate(chunks, 1):
            logger.debug(f"Processing chunk {chunk_num}/{len(chunks)}", chunk_size=len(chunk))

            tasks = [self._process(request, level) for request in chunk]
            chunk_results = await asyncio.gather(*tasks, return_exceptions=True)

            for request, result in zip(chunk, chunk_results):
                if isinstance(result, BaseException):
                    # _process captures failures itself; anything here escaped it
                    logger.error("Batch request crashed", request_id=request.id, error=str(result))
                    result = BatchResult(id=request.id, success=False, error=str(result))
                results.append(result)

            await self._report(progress_callback, BatchProgress(completed=len(results), total=total))

            # Small delay between chunks so the provider is not saturated
            if chunk_num < len(chunks) and self.chunk_delay > 0:
                await asyncio.sleep(self.chunk_delay)

        failed = sum(1 for result in results if not result.success)
        logger.info(
            "Batch simplification completed",
            total_requests=total,
            succeeded=total - failed,
            failed=failed,
            processing_time=round(time.time() - start_time, 3),
        )
        return results

    async def _process(self, request: BatchRequest, level: CEFRLevel) -> BatchResult:
        try:
            self.service.check_text(request.text)

            cached = self.service.lookup(request.text, level)
            if cached is not None:
                return BatchResult(id=request.id, success=True, data=cached)

            data = await self.service.generate_and_cache(request.text, level)
            return BatchResult(id=request.id, success=True, data=data)

        except LevelLensException as exc:
            logger.warning(
                "Batch request failed",
                request_id=request.id,
                error_code=exc.error_code,
                error=exc.message,
            )
            return BatchResult(id=request.id, success=False, error=exc.message, error_code=exc.error_code)
        except Exception as exc:
            logger.error("Batch request failed", request_id=request.id, error=str(exc), exc_info=True)
            return BatchResult(id=request.id, success=False, error=str(exc))

    @staticmethod
    async def _report(callback: Optional[ProgressCallback], progress: BatchProgress) -> None:
        if callback is None:
            return
        try:
            outcome = callback(progress)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as exc:
            logger.warning("Progress callback failed", error=str(exc))
