"""
Batch analysis for hireflow.

* `events` – progress/complete/error events, the bounded
  ``ProgressStream`` channel and SSE framing.
* `analyzer` – ``BatchAnalyzer``: bounded-concurrency scoring with
  per-call timeouts, per-résumé failure isolation and cancellation.
"""

from .events import (  # noqa: F401
    CompleteEvent,
    ErrorEvent,
    Event,
    FailureRecord,
    ProgressEvent,
    ProgressStream,
    decode_sse,
    encode_sse,
    format_eta,
)
from .analyzer import (  # noqa: F401
    BatchAnalyzer,
    BatchJob,
    BatchRun,
    BatchStats,
    BatchStatus,
    run_batch,
    validate_batch,
)
