"""
Result ranking and summary statistics.

``rank`` orders and filters finished analysis results without touching
its input.  Python's sort is stable, so results with equal keys keep
their relative input order and ranking an already ranked list returns
it unchanged.  ``summarize`` always works on the full result set so the
headline numbers do not move when a filter is applied.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from ..errors import ValidationError
from ..score.schema import AnalysisResult, HiringRecommendation, InterviewReadiness

logger = logging.getLogger(__name__)

Predicate = Callable[[AnalysisResult], bool]


class SortKey(str, Enum):
    MATCH_PERCENTAGE = "matchPercentage"
    ATS_OVERALL = "atsScore.overall"
    EXPERIENCE_RELEVANCE = "experienceRelevance"
    FILE_NAME = "fileName"


class MatchBand(str, Enum):
    HIGH = "high-match"  # >= 80
    MEDIUM = "medium-match"  # 60-79
    LOW = "low-match"  # < 60

    def contains(self, match_percentage: float) -> bool:
        if self is MatchBand.HIGH:
            return match_percentage >= 80
        if self is MatchBand.MEDIUM:
            return 60 <= match_percentage < 80
        return match_percentage < 60


def _number(value: Optional[float]) -> float:
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return 0.0
    return float(value)


def _match(result: AnalysisResult) -> float:
    return _number(getattr(result, "match_percentage", None))


def _ats_overall(result: AnalysisResult) -> float:
    ats = getattr(result, "ats_score", None)
    return _number(getattr(ats, "overall", None))


def _experience(result: AnalysisResult) -> float:
    ats = getattr(result, "ats_score", None)
    return _number(getattr(ats, "experience_relevance", None))


_SORT_KEYS: Dict[SortKey, Callable[[AnalysisResult], object]] = {
    SortKey.MATCH_PERCENTAGE: lambda r: (-_match(r), r.file_name),
    SortKey.ATS_OVERALL: lambda r: -_ats_overall(r),
    SortKey.EXPERIENCE_RELEVANCE: lambda r: -_experience(r),
    SortKey.FILE_NAME: lambda r: r.file_name,
}


def parse_sort_key(value: "str | SortKey") -> SortKey:
    try:
        return SortKey(value)
    except ValueError as exc:
        options = ", ".join(k.value for k in SortKey)
        raise ValidationError(f"Unknown sort key '{value}'; expected one of {options}") from exc


def recommendation_filter(bucket: "str | HiringRecommendation") -> Predicate:
    """Keep results whose hiring recommendation equals ``bucket``."""
    target = HiringRecommendation(bucket)
    return lambda r: r.hiring_recommendation == target


def match_band_filter(band: "str | MatchBand") -> Predicate:
    """Keep results whose match percentage falls in ``band``."""
    target = MatchBand(band)
    return lambda r: target.contains(_match(r))


def parse_filter(name: Optional[str]) -> Optional[Predicate]:
    """Resolve a filter name: ``all``, a match band or a recommendation bucket."""
    if not name or name == "all":
        return None
    if name in {b.value for b in MatchBand}:
        return match_band_filter(name)
    if name in {r.value for r in HiringRecommendation}:
        return recommendation_filter(name)
    raise ValidationError(f"Unknown filter '{name}'")


def rank(
    results: Iterable[AnalysisResult],
    sort_key: "str | SortKey" = SortKey.MATCH_PERCENTAGE,
    predicate: Optional[Predicate] = None,
) -> List[AnalysisResult]:
    """Filter then stably sort results.

    Args:
        results: Analysis results in any order.
        sort_key: One of :class:`SortKey`.  Scores sort descending (match
            percentage ties broken by file name), file names ascending.
        predicate: Optional filter applied before sorting.

    Returns:
        A new list; the input is not modified.
    """
    key = _SORT_KEYS[parse_sort_key(sort_key)]
    selected = [r for r in results if predicate is None or predicate(r)]
    ranked = sorted(selected, key=key)  # type: ignore[arg-type]
    logger.debug("Ranked %d results by %s", len(ranked), sort_key)
    return ranked


@dataclass(frozen=True)
class BatchSummary:
    total: int
    failed: int
    recommended: int
    average_match: int
    high_match: int
    interview_ready: int
    submitted: Optional[int] = None

    @property
    def processed(self) -> int:
        return self.total + self.failed

    def describe(self) -> str:
        submitted = self.processed if self.submitted is None else self.submitted
        return f"{self.processed} of {submitted} processed, {self.failed} failed"

    def to_dict(self) -> Dict[str, int]:
        return {
            "total": self.total,
            "failed": self.failed,
            "recommended": self.recommended,
            "averageMatch": self.average_match,
            "highMatch": self.high_match,
            "interviewReady": self.interview_ready,
            "processed": self.processed,
        }


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def summarize(
    results: Sequence[AnalysisResult],
    failures: Sequence[object] = (),
    submitted: Optional[int] = None,
) -> BatchSummary:
    """Headline numbers for a batch, from the complete unfiltered results.

    ``submitted`` is the batch size when some résumés are still pending.
    """
    total = len(results)
    average = _round_half_up(sum(_match(r) for r in results) / total) if total else 0
    return BatchSummary(
        total=total,
        failed=len(failures),
        recommended=sum(1 for r in results if r.hiring_recommendation and r.hiring_recommendation.is_recommended),
        average_match=average,
        high_match=sum(1 for r in results if _match(r) >= 80),
        interview_ready=sum(1 for r in results if r.interview_readiness == InterviewReadiness.READY),
        submitted=submitted,
    )
