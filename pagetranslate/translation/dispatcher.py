"""
Batch Dispatcher Module

Drives many translation client calls with bounded concurrency:
- Work runs in waves of at most ``concurrency`` simultaneous calls
- Wave k+1 starts only after every call in wave k has settled
- One unit's failure is recorded as a None result and never aborts the batch
- Every settlement triggers one fire-and-forget progress notification

Cancellation is an extension point: an optional ``cancel_check`` is consulted
before each wave starts. Units of waves that never start stay None and are not
reported as progress.
"""

import asyncio
import time
from typing import Callable, List, Optional, Sequence

from pagetranslate.ai.providers import TranslationClient
from pagetranslate.logger import get_logger
from pagetranslate.structures import (
    AUTO_LANGUAGE,
    BatchRequest,
    BatchResponse,
    TranslationRequest,
    TranslationResult,
)
from pagetranslate.translation.progress import ProgressSink, notify_progress

logger = get_logger(__name__)

_PENDING = object()


class BatchJob:
    """
    Bookkeeping for one bounded-concurrency run.

    Each slot of ``results`` is written once, by the worker that owns its index.
    ``completed_count`` only grows and reaches ``total`` once, when the job
    becomes terminal.
    """

    def __init__(self, total: int, concurrency: int):
        self.total = total
        self.concurrency = concurrency
        self.completed_count = 0
        self.cancelled = False
        self._results: List[object] = [_PENDING] * total

    @property
    def finished(self) -> bool:
        return self.completed_count == self.total

    def record(self, index: int, text: Optional[str]) -> int:
        """Store the outcome for ``index`` and return the new completed count."""
        if self._results[index] is not _PENDING:
            raise RuntimeError(f"Result {index} was already recorded")
        self._results[index] = text
        self.completed_count += 1
        return self.completed_count

    def results(self) -> List[TranslationResult]:
        return [
            TranslationResult(index=i, text=None if value is _PENDING else value)
            for i, value in enumerate(self._results)
        ]


class BatchDispatcher:
    """Runs one TranslationClient over many texts in waves."""

    def __init__(
        self,
        translator: TranslationClient,
        target_lang: str,
        source_lang: str = AUTO_LANGUAGE,
    ):
        self.translator = translator
        self.target_lang = target_lang
        self.source_lang = source_lang or AUTO_LANGUAGE

    async def run_batch(
        self,
        texts: Sequence[str],
        concurrency: int,
        on_progress: Optional[ProgressSink] = None,
        cancel_check: Optional[Callable[[], bool]] = None,
    ) -> List[TranslationResult]:
        """
        Translate ``texts`` and return one result per text, in input order.

        Args:
            texts: Ordered texts to translate
            concurrency: Maximum number of calls in flight (>= 1)
            on_progress: Optional ``(completed, total)`` sink, called after every settlement
            cancel_check: Optional function consulted before each wave

        Returns:
            List of TranslationResult; ``text`` is None for failed or skipped units
        """
        job = await self.run_job(texts, concurrency, on_progress, cancel_check)
        return job.results()

    async def run_job(
        self,
        texts: Sequence[str],
        concurrency: int,
        on_progress: Optional[ProgressSink] = None,
        cancel_check: Optional[Callable[[], bool]] = None,
    ) -> BatchJob:
        if isinstance(concurrency, bool) or not isinstance(concurrency, int) or concurrency < 1:
            raise ValueError(f"concurrency must be an integer >= 1, got {concurrency!r}")

        job = BatchJob(total=len(texts), concurrency=concurrency)
        start_time = time.time()
        total_waves = (job.total + concurrency - 1) // concurrency
        logger.info(
            f"Batch started: {job.total} texts, concurrency={concurrency}, "
            f"waves={total_waves}, target={self.target_lang}"
        )

        for wave_number, start in enumerate(range(0, job.total, concurrency), start=1):
            if cancel_check and cancel_check():
                job.cancelled = True
                logger.info(f"Batch cancelled before wave {wave_number}/{total_waves}")
                break

            end = min(start + concurrency, job.total)
            logger.debug(f"Wave {wave_number}/{total_waves}: units {start}..{end - 1}")
            await asyncio.gather(
                *(self._run_unit(job, index, texts[index], on_progress) for index in range(start, end))
            )

        failed = sum(1 for result in job.results() if result.text is None)
        logger.info(
            f"Batch finished: {job.completed_count}/{job.total} settled, {failed} without translation, "
            f"{time.time() - start_time:.2f}s"
        )
        return job

    async def _run_unit(
        self,
        job: BatchJob,
        index: int,
        text: str,
        on_progress: Optional[ProgressSink],
    ) -> None:
        try:
            request = TranslationRequest(
                text=text,
                target_lang=self.target_lang,
                source_lang=self.source_lang,
            )
            translated = await self.translator.atranslate(request)
        except Exception as e:
            logger.warning(f"Unit {index} failed: {type(e).__name__}: {e}")
            translated = None

        completed = job.record(index, translated)
        notify_progress(on_progress, completed, job.total)


async def dispatch_batch(
    translator: TranslationClient,
    request: BatchRequest,
    cancel_check: Optional[Callable[[], bool]] = None,
) -> BatchResponse:
    """Host-facing entry point: run one BatchRequest and return its ordered results."""
    dispatcher = BatchDispatcher(
        translator,
        target_lang=request.target_lang,
        source_lang=request.source_lang,
    )
    job = await dispatcher.run_job(
        request.texts,
        request.concurrency,
        on_progress=request.progress_sink,
        cancel_check=cancel_check,
    )
    return BatchResponse(
        results=[result.text for result in job.results()],
        cancelled=job.cancelled,
    )
