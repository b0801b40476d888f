"""
Batch résumé analysis.

``BatchAnalyzer`` scores every résumé of a batch against one job
description.  Scoring clients are synchronous (they wrap blocking SDK
calls), so each call runs on a dedicated thread pool whose size equals
the concurrency limit, guarded by an ``asyncio.Semaphore``.  A call
that times out keeps its slot until the thread actually returns, so no
more than ``concurrency`` external calls are ever in flight.

Per-résumé failures are recorded next to the successful results and
never stop the batch.  A :class:`StreamError` from the client (the
backend cannot be reached at all) stops scheduling and ends the stream
with an ``error`` event instead.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, AsyncIterator, Callable, Dict, List, Optional, Sequence, Union

from ..config import DEFAULT_BUFFER_SIZE, DEFAULT_CONCURRENCY, DEFAULT_TIMEOUT, Settings
from ..errors import ScoringError, StreamError, ValidationError
from ..rank.ranker import BatchSummary, rank, summarize
from ..resume.schema import JobDescription, ResumeInput
from ..score.providers import ScoringClient
from ..score.schema import AnalysisResult
from .events import Event, FailureRecord, ProgressStream, format_eta

logger = logging.getLogger(__name__)


class BatchStatus(str, Enum):
    RUNNING = "running"
    COMPLETE = "complete"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class BatchStats:
    """Timing and success counters for one batch."""

    total: int = 0
    successful: int = 0
    failed: int = 0
    start_time: Optional[float] = None
    end_time: Optional[float] = None

    @property
    def completed(self) -> int:
        return self.successful + self.failed

    @property
    def success_rate(self) -> float:
        if self.total == 0:
            return 0.0
        return (self.successful / self.total) * 100

    @property
    def processing_time(self) -> float:
        if self.start_time is None:
            return 0.0
        end = self.end_time if self.end_time is not None else time.monotonic()
        return end - self.start_time

    @property
    def average_time(self) -> float:
        return self.processing_time / self.completed if self.completed else 0.0

    def eta(self) -> str:
        return format_eta(self.completed, self.total, self.processing_time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "successful": self.successful,
            "failed": self.failed,
            "totalProcessingTime": round(self.processing_time, 3),
            "averageProcessingTime": round(self.average_time, 3),
            "successRate": round(self.success_rate, 1),
        }


@dataclass
class BatchJob:
    """One job description scored against a set of résumés."""

    job_description: JobDescription
    resumes: List[ResumeInput]
    results: List[AnalysisResult] = field(default_factory=list)
    failures: List[FailureRecord] = field(default_factory=list)
    status: BatchStatus = BatchStatus.RUNNING
    error: Optional[str] = None
    stats: BatchStats = field(default_factory=BatchStats)

    @property
    def summary(self) -> BatchSummary:
        return summarize(self.results, self.failures, submitted=len(self.resumes))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "error": self.error,
            "jobDescription": self.job_description.text,
            "results": [r.to_dict() for r in self.results],
            "failures": [f.to_dict() for f in self.failures],
            "summary": self.summary.to_dict(),
            "stats": self.stats.to_dict(),
        }


def validate_batch(
    job_description: Union[str, JobDescription], resumes: Sequence[ResumeInput]
) -> JobDescription:
    """Reject unusable batch input before any work is scheduled."""
    job = job_description if isinstance(job_description, JobDescription) else JobDescription(job_description)
    if not resumes:
        raise ValidationError("No resumes provided for analysis")
    seen = set()
    for resume in resumes:
        if not resume.raw_text or not resume.raw_text.strip():
            raise ValidationError(f"Resume {resume.file_name} has no text")
        if resume.id in seen:
            raise ValidationError(f"Duplicate resume id {resume.id} ({resume.file_name})")
        seen.add(resume.id)
    return job


def _consume_result(future: "asyncio.Future[Any]") -> None:
    # Results of abandoned calls (timeout, cancellation) are dropped.
    if not future.cancelled():
        future.exception()


class _RunState:
    def __init__(self) -> None:
        self.lock = asyncio.Lock()
        self.fatal: Optional[BaseException] = None

    @property
    def aborted(self) -> bool:
        return self.fatal is not None


class BatchAnalyzer:
    """Score résumés concurrently and report progress on a stream."""

    def __init__(
        self,
        client: ScoringClient,
        concurrency: int = DEFAULT_CONCURRENCY,
        timeout: float = DEFAULT_TIMEOUT,
        retry_delays: Sequence[float] = (),
        buffer_size: int = DEFAULT_BUFFER_SIZE,
    ) -> None:
        if concurrency < 1:
            raise ValidationError("concurrency must be at least 1")
        if timeout <= 0:
            raise ValidationError("timeout must be positive")
        self.client = client
        self.concurrency = concurrency
        self.timeout = timeout
        self.retry_delays = tuple(retry_delays)
        self.buffer_size = buffer_size

    @classmethod
    def from_settings(cls, client: ScoringClient, settings: Settings) -> "BatchAnalyzer":
        return cls(
            client,
            concurrency=settings.concurrency,
            timeout=settings.timeout,
            retry_delays=settings.retry_delays,
            buffer_size=settings.buffer_size,
        )

    def prepare(
        self, job_description: Union[str, JobDescription], resumes: Sequence[ResumeInput]
    ) -> BatchJob:
        job = validate_batch(job_description, resumes)
        batch = BatchJob(job_description=job, resumes=list(resumes))
        batch.stats.total = len(batch.resumes)
        return batch

    async def run(
        self,
        job_description: Union[str, JobDescription],
        resumes: Sequence[ResumeInput],
        stream: ProgressStream,
    ) -> BatchJob:
        """Score a batch, publishing events on ``stream``.

        Raises:
            ValidationError: Before any event is sent, for unusable input.
        """
        return await self.execute(self.prepare(job_description, resumes), stream)

    def stream(
        self, job_description: Union[str, JobDescription], resumes: Sequence[ResumeInput]
    ) -> "BatchRun":
        """Start a batch whose events are consumed with ``async for``.

        Input is validated immediately.  The returned :class:`BatchRun`
        exposes the ``BatchJob`` as ``.job`` once iteration ends.
        """
        return BatchRun(self, self.prepare(job_description, resumes))

    async def execute(self, batch: BatchJob, stream: ProgressStream) -> BatchJob:
        state = _RunState()
        executor = ThreadPoolExecutor(max_workers=self.concurrency, thread_name_prefix="hireflow-score")
        semaphore = asyncio.Semaphore(self.concurrency)
        batch.stats.start_time = time.monotonic()
        logger.info(
            "Starting batch analysis of %d resumes (concurrency=%d, timeout=%gs)",
            len(batch.resumes), self.concurrency, self.timeout,
        )
        tasks = [
            asyncio.ensure_future(self._score_resume(batch, resume, stream, executor, semaphore, state))
            for resume in batch.resumes
        ]
        try:
            await asyncio.gather(*tasks)
        except asyncio.CancelledError:
            batch.status = BatchStatus.CANCELLED
            batch.results.clear()
            logger.warning(
                "Batch cancelled after %d of %d resumes; results discarded",
                batch.stats.completed, batch.stats.total,
            )
            raise
        except Exception as exc:  # noqa: BLE001
            logger.exception("Batch analysis failed: %s", exc)
            state.fatal = exc
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
        finally:
            executor.shutdown(wait=False, cancel_futures=True)
            batch.stats.end_time = time.monotonic()

        if state.fatal is not None:
            batch.status = BatchStatus.FAILED
            batch.error = f"Batch analysis aborted: {state.fatal}"
            await stream.fail(batch.error)
        elif not batch.results:
            batch.status = BatchStatus.FAILED
            reason = batch.failures[0].error if batch.failures else "no results"
            batch.error = f"No resumes could be scored: {reason}"
            await stream.fail(batch.error)
        else:
            batch.results = rank(batch.results)
            batch.status = BatchStatus.COMPLETE
            await stream.complete(batch.results, batch.failures)

        logger.info(
            "Batch analysis %s: %s in %.1fs",
            batch.status.value, batch.summary.describe(), batch.stats.processing_time,
        )
        return batch

    async def _score_resume(
        self,
        batch: BatchJob,
        resume: ResumeInput,
        stream: ProgressStream,
        executor: ThreadPoolExecutor,
        semaphore: asyncio.Semaphore,
        state: _RunState,
    ) -> None:
        await semaphore.acquire()
        holds_slot = True
        try:
            if state.aborted:
                await self._record_failure(batch, resume, "Not scheduled: batch aborted", stream, state)
                return
            loop = asyncio.get_running_loop()
            started = time.monotonic()
            error: Optional[BaseException] = None

            for attempt, delay in enumerate((0.0,) + self.retry_delays):
                if delay > 0:
                    logger.info("Retrying %s in %gs (attempt %d)", resume.file_name, delay, attempt + 1)
                    await asyncio.sleep(delay)
                    if state.aborted:
                        break
                future = loop.run_in_executor(
                    executor, self.client.score, resume.raw_text, batch.job_description.text
                )
                future.add_done_callback(_consume_result)
                try:
                    result = await asyncio.wait_for(asyncio.shield(future), self.timeout)
                except asyncio.TimeoutError:
                    logger.warning("Scoring %s timed out after %gs", resume.file_name, self.timeout)
                    # The abandoned call gives its worker slot back when its thread returns.
                    future.add_done_callback(lambda _f: semaphore.release())
                    holds_slot = False
                    await self._record_failure(
                        batch, resume, f"Scoring timed out after {self.timeout:g}s", stream, state
                    )
                    return
                except StreamError as exc:
                    logger.error("Scoring backend unavailable while scoring %s: %s", resume.file_name, exc)
                    state.fatal = exc
                    error = exc
                    break
                except ScoringError as exc:
                    logger.warning("Scoring %s failed (attempt %d): %s", resume.file_name, attempt + 1, exc)
                    error = exc
                    continue
                except Exception as exc:  # noqa: BLE001
                    logger.exception("Scoring client raised for %s: %s", resume.file_name, exc)
                    error = ScoringError(str(exc), resume.id)
                    continue

                elapsed_ms = int((time.monotonic() - started) * 1000)
                await self._record_result(
                    batch, result.with_source(resume.id, resume.file_name, elapsed_ms), stream, state
                )
                return

            await self._record_failure(batch, resume, str(error) or type(error).__name__, stream, state)
        finally:
            if holds_slot:
                semaphore.release()

    async def _record_result(
        self, batch: BatchJob, result: AnalysisResult, stream: ProgressStream, state: _RunState
    ) -> None:
        async with state.lock:
            batch.results.append(result)
            batch.stats.successful += 1
            logger.info(
                "Analyzed resume %d/%d: %s (%.0f%%)",
                batch.stats.completed, batch.stats.total, result.file_name, result.match_percentage,
            )
            await self._publish(batch, result.file_name, stream)

    async def _record_failure(
        self, batch: BatchJob, resume: ResumeInput, message: str, stream: ProgressStream, state: _RunState
    ) -> None:
        async with state.lock:
            batch.failures.append(FailureRecord(resume_id=resume.id, file_name=resume.file_name, error=message))
            batch.stats.failed += 1
            logger.error(
                "Failed resume %d/%d: %s: %s",
                batch.stats.completed, batch.stats.total, resume.file_name, message,
            )
            await self._publish(batch, resume.file_name, stream)

    async def _publish(self, batch: BatchJob, file_name: str, stream: ProgressStream) -> None:
        # Called with the state lock held so ``current`` is strictly increasing.
        await stream.progress(
            batch.stats.completed,
            batch.stats.total,
            file_name=file_name,
            failed=batch.stats.failed,
            eta=batch.stats.eta(),
        )


class BatchRun:
    """Async iterable over the events of one batch.

    If the consumer stops iterating before the terminal event (client
    disconnect), the producer is cancelled: nothing new is scheduled,
    in-flight calls finish on their own and their results are dropped.
    """

    def __init__(self, analyzer: BatchAnalyzer, job: BatchJob) -> None:
        self.analyzer = analyzer
        self.job = job
        self._started = False

    def __aiter__(self) -> AsyncIterator[Event]:
        if self._started:
            raise StreamError("A batch can only be consumed once")
        self._started = True
        return self._events()

    async def _events(self) -> AsyncIterator[Event]:
        stream = ProgressStream(self.analyzer.buffer_size)
        producer = asyncio.create_task(self.analyzer.execute(self.job, stream))
        try:
            async for event in stream:
                yield event
            await producer
        finally:
            if not producer.done():
                logger.info("Consumer disconnected; cancelling batch")
                producer.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await producer


def run_batch(
    client: ScoringClient,
    job_description: Union[str, JobDescription],
    resumes: Sequence[ResumeInput],
    *,
    settings: Optional[Settings] = None,
    on_event: Optional[Callable[[Event], None]] = None,
) -> BatchJob:
    """Synchronous wrapper: run a batch to completion on a fresh event loop.

    Args:
        client: Scoring client shared by all workers.
        job_description: Job text or ``JobDescription``.
        resumes: Résumés to score.
        settings: Concurrency/timeout settings; defaults when omitted.
        on_event: Optional callback invoked for every event in order.

    Returns:
        The finished ``BatchJob``.
    """
    analyzer = BatchAnalyzer.from_settings(client, settings or Settings())
    batch = analyzer.stream(job_description, resumes)

    async def _consume() -> BatchJob:
        async for event in batch:
            if on_event is not None:
                on_event(event)
        return batch.job

    return asyncio.run(_consume())
