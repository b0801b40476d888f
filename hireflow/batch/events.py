"""
Progress events and the ordered channel that carries them.

A batch reports to its consumer through a :class:`ProgressStream`: zero
or more ``progress`` events followed by exactly one terminal event,
either ``complete`` (with the ranked results) or ``error``.  The
stream is a bounded ``asyncio.Queue`` so a slow consumer applies
backpressure to the producer instead of letting events pile up.

``encode_sse``/``decode_sse`` convert events to and from the
Server-Sent-Events style text frames (``data: {json}``) used on the
wire.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, List, Sequence, Tuple, Union

from ..config import DEFAULT_BUFFER_SIZE
from ..errors import StreamError
from ..score.schema import AnalysisResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FailureRecord:
    """A résumé that produced no result."""

    resume_id: str
    file_name: str
    error: str

    def to_dict(self) -> Dict[str, str]:
        return {"resumeId": self.resume_id, "fileName": self.file_name, "error": self.error}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FailureRecord":
        return cls(
            resume_id=str(data.get("resumeId", "")),
            file_name=str(data.get("fileName", "")),
            error=str(data.get("error", "")),
        )


@dataclass(frozen=True)
class ProgressEvent:
    current: int
    total: int
    file_name: str = ""
    failed: int = 0
    eta: str = ""

    type: ClassVar[str] = "progress"
    terminal: ClassVar[bool] = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "current": self.current,
            "total": self.total,
            "fileName": self.file_name,
            "failed": self.failed,
            "eta": self.eta,
        }


@dataclass(frozen=True)
class CompleteEvent:
    results: Tuple[AnalysisResult, ...]
    failures: Tuple[FailureRecord, ...] = field(default_factory=tuple)

    type: ClassVar[str] = "complete"
    terminal: ClassVar[bool] = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "results": [r.to_dict() for r in self.results],
            "failures": [f.to_dict() for f in self.failures],
        }


@dataclass(frozen=True)
class ErrorEvent:
    message: str

    type: ClassVar[str] = "error"
    terminal: ClassVar[bool] = True

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "error": self.message}


Event = Union[ProgressEvent, CompleteEvent, ErrorEvent]


class ProgressStream:
    """Single-producer, single-consumer ordered event channel.

    The producer calls :meth:`progress` any number of times and then
    exactly one of :meth:`complete` or :meth:`fail`.  The consumer
    iterates with ``async for``; iteration ends after the terminal
    event has been delivered.
    """

    def __init__(self, maxsize: int = DEFAULT_BUFFER_SIZE) -> None:
        if maxsize < 1:
            raise ValueError("maxsize must be at least 1")
        self._queue: "asyncio.Queue[Event]" = asyncio.Queue(maxsize=maxsize)
        self._closed = False
        self._finished = False

    @property
    def closed(self) -> bool:
        """True once the terminal event has been sent."""
        return self._closed

    @property
    def finished(self) -> bool:
        """True once the terminal event has been received."""
        return self._finished

    async def send(self, event: Event) -> None:
        """Enqueue an event, waiting while the buffer is full."""
        if self._closed:
            raise StreamError(f"Cannot send '{event.type}' after the terminal event")
        if event.terminal:
            self._closed = True
        await self._queue.put(event)

    async def progress(self, current: int, total: int, **details: Any) -> None:
        await self.send(ProgressEvent(current=current, total=total, **details))

    async def complete(
        self, results: Sequence[AnalysisResult], failures: Sequence[FailureRecord] = ()
    ) -> None:
        await self.send(CompleteEvent(results=tuple(results), failures=tuple(failures)))

    async def fail(self, message: str) -> None:
        await self.send(ErrorEvent(message=message))

    async def receive(self) -> Event:
        if self._finished:
            raise StreamError("Stream already delivered its terminal event")
        event = await self._queue.get()
        if event.terminal:
            self._finished = True
        return event

    def __aiter__(self) -> "ProgressStream":
        return self

    async def __anext__(self) -> Event:
        if self._finished:
            raise StopAsyncIteration
        return await self.receive()


def encode_sse(event: Event) -> str:
    """Frame an event as ``data: {json}`` followed by a blank line."""
    return f"data: {json.dumps(event.to_dict(), ensure_ascii=False)}\n\n"


def decode_sse(body: str) -> List[Dict[str, Any]]:
    """Parse buffered SSE text back into event dictionaries.

    Lines that are not ``data:`` frames are ignored, as is a trailing
    frame that was cut off mid-JSON.
    """
    events: List[Dict[str, Any]] = []
    for line in body.splitlines():
        line = line.strip()
        if not line.startswith("data:"):
            continue
        payload = line[len("data:"):].strip()
        try:
            events.append(json.loads(payload))
        except json.JSONDecodeError:
            logger.debug("Skipping incomplete SSE frame: %s", payload[:80])
    return events


def format_eta(completed: int, total: int, elapsed_seconds: float) -> str:
    """Estimate remaining time from the average time per résumé so far."""
    if completed <= 0:
        return "Calculating..."
    remaining = max(0, total - completed)
    eta = remaining * (elapsed_seconds / completed)
    minutes, seconds = divmod(int(eta), 60)
    if minutes > 0:
        return f"{minutes}m {seconds}s"
    return f"{seconds}s"
