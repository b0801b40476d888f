"""Tests for ranking, filtering and batch summaries."""

from __future__ import annotations

import pytest  # type: ignore

from conftest import make_result
from hireflow.batch.events import FailureRecord
from hireflow.errors import ValidationError
from hireflow.rank import MatchBand, SortKey, parse_filter, rank, summarize
from hireflow.score.schema import HiringRecommendation, InterviewReadiness


def _results():
    return [
        make_result(72, "carol.pdf", ats=65, experience=90),
        make_result(91, "alice.pdf", ats=80, experience=40),
        make_result(55, "bob.pdf", ats=95, experience=70),
        make_result(91, "aaron.pdf", ats=70, experience=60),
    ]


def test_default_sort_is_match_desc_then_file_name() -> None:
    ranked = rank(_results())
    assert [r.file_name for r in ranked] == ["aaron.pdf", "alice.pdf", "carol.pdf", "bob.pdf"]


@pytest.mark.parametrize(
    "key, expected",
    [
        (SortKey.ATS_OVERALL, ["bob.pdf", "alice.pdf", "aaron.pdf", "carol.pdf"]),
        ("experienceRelevance", ["carol.pdf", "bob.pdf", "aaron.pdf", "alice.pdf"]),
        ("fileName", ["aaron.pdf", "alice.pdf", "bob.pdf", "carol.pdf"]),
    ],
)
def test_sort_keys(key, expected) -> None:
    assert [r.file_name for r in rank(_results(), key)] == expected


def test_file_name_sort_is_stable() -> None:
    first_a = make_result(40, "a.pdf", resume_id="first")
    second_a = make_result(90, "a.pdf", resume_id="second")
    ranked = rank([make_result(70, "b.pdf"), first_a, second_a], "fileName", parse_filter("all"))
    assert [r.file_name for r in ranked] == ["a.pdf", "a.pdf", "b.pdf"]
    assert [r.resume_id for r in ranked[:2]] == ["first", "second"]


@pytest.mark.parametrize("key", [k.value for k in SortKey])
def test_ranking_is_idempotent(key) -> None:
    once = rank(_results(), key)
    assert rank(once, key) == once


def test_rank_does_not_modify_input() -> None:
    results = _results()
    before = list(results)
    rank(results, "fileName")
    assert results == before


def test_high_match_filter_never_returns_low_scores() -> None:
    results = _results() + [make_result(79.9, "edge.pdf"), make_result(80, "exact.pdf")]
    ranked = rank(results, predicate=parse_filter("high-match"))
    assert all(r.match_percentage >= 80 for r in ranked)
    assert "exact.pdf" in [r.file_name for r in ranked]
    assert "edge.pdf" not in [r.file_name for r in ranked]


def test_band_and_recommendation_filters() -> None:
    results = _results()
    medium = rank(results, predicate=parse_filter(MatchBand.MEDIUM.value))
    assert [r.file_name for r in medium] == ["carol.pdf"]
    low = rank(results, predicate=parse_filter("low-match"))
    assert [r.file_name for r in low] == ["bob.pdf"]
    strong = rank(results, predicate=parse_filter("strong-hire"))
    assert {r.hiring_recommendation for r in strong} == {HiringRecommendation.STRONG_HIRE}
    assert parse_filter("all") is None
    assert parse_filter(None) is None


def test_unknown_sort_key_or_filter_is_rejected() -> None:
    with pytest.raises(ValidationError):
        rank(_results(), "salary")
    with pytest.raises(ValidationError):
        parse_filter("maybe-later")


def test_missing_scores_sort_as_zero() -> None:
    ranked = rank([make_result(float("nan"), "nan.pdf"), make_result(10, "ten.pdf")])
    assert [r.file_name for r in ranked] == ["ten.pdf", "nan.pdf"]


def test_summary_counts_only_scored_results() -> None:
    results = [
        make_result(90, "a.pdf", interview_readiness=InterviewReadiness.READY),
        make_result(71, "b.pdf"),
        make_result(40, "c.pdf"),
    ]
    failures = [FailureRecord("d", "d.pdf", "timed out")]
    summary = summarize(results, failures)
    assert summary.total == 3
    assert summary.failed == 1
    assert summary.recommended == 2
    assert summary.average_match == 67
    assert summary.high_match == 1
    assert summary.interview_ready == 1
    assert summary.describe() == "4 of 4 processed, 1 failed"
    assert summary.to_dict()["processed"] == 4


def test_summary_of_a_batch_still_running() -> None:
    results = [make_result(60 + i, f"r{i}.pdf") for i in range(35)]
    failures = [FailureRecord(f"f{i}", f"f{i}.pdf", "timed out") for i in range(3)]
    summary = summarize(results, failures, submitted=45)
    assert summary.describe() == "38 of 45 processed, 3 failed"


def test_summary_rounds_half_up_and_handles_empty() -> None:
    assert summarize([make_result(70, "a"), make_result(71, "b")]).average_match == 71
    empty = summarize([])
    assert empty.total == 0
    assert empty.average_match == 0
