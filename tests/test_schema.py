"""Tests for the batch input and analysis result records."""

from __future__ import annotations

import math

import pytest  # type: ignore

from hireflow.errors import ValidationError
from hireflow.resume.schema import JobDescription, ResumeInput, fingerprint, parse_batch_request
from hireflow.score.schema import (
    AnalysisResult,
    AtsScore,
    HiringRecommendation,
    InterviewReadiness,
    clamp_score,
    recommendation_for,
)


@pytest.mark.parametrize(
    "raw, expected",
    [(42, 42.0), (-5, 0.0), (180, 100.0), ("77", 77.0), (None, 0.0), ("n/a", 0.0), (True, 0.0), (math.nan, 0.0)],
)
def test_clamp_score(raw, expected) -> None:
    assert clamp_score(raw) == expected


@pytest.mark.parametrize(
    "match, bucket",
    [(85, "strong-hire"), (84.9, "hire"), (70, "hire"), (50, "maybe"), (49, "no-hire")],
)
def test_recommendation_buckets(match, bucket) -> None:
    assert recommendation_for(match).value == bucket


def test_result_from_model_output_is_clamped_and_completed() -> None:
    result = AnalysisResult.from_dict(
        {
            "matchPercentage": 140,
            "atsScore": {"overall": -3, "keywordMatch": 88, "experienceRelevance": "65"},
            "skillsAnalysis": {"matchingSkills": ["python", None, " "], "missingCriticalSkills": ["go"]},
            "strengths": "not a list",
            "hiringRecommendation": "Strong Hire",
            "interviewReadiness": "not-ready",
            "confidenceScore": 300,
        }
    )
    assert result.match_percentage == 100
    assert result.ats_score.overall == 0
    assert result.experience_relevance == 65
    assert result.skills_analysis.matching_skills == ["python"]
    assert result.strengths == []
    assert result.hiring_recommendation is HiringRecommendation.STRONG_HIRE
    assert result.interview_readiness is InterviewReadiness.NEEDS_PREP
    assert result.confidence_score == 100
    assert result.analyzed_at


def test_flat_skill_lists_are_accepted() -> None:
    result = AnalysisResult.from_dict({"matchPercentage": 61, "matchingSkills": ["sql"], "missingSkills": ["spark"]})
    assert result.skills_analysis.matching_skills == ["sql"]
    assert result.skills_analysis.missing_critical_skills == ["spark"]
    assert result.hiring_recommendation is HiringRecommendation.MAYBE


def test_result_wire_form_round_trip() -> None:
    original = AnalysisResult(
        resume_id="r1",
        file_name="a.pdf",
        match_percentage=73,
        ats_score=AtsScore(overall=70, keyword_match=60),
        strengths=["Python"],
        processing_time_ms=1200,
    )
    data = original.to_dict()
    assert data["processingTime"] == 1200
    assert data["hiringRecommendation"] == "hire"
    assert AnalysisResult.from_dict(data) == original


def test_with_source_stamps_identity() -> None:
    stamped = AnalysisResult(resume_id="", file_name="", match_percentage=50).with_source("r9", "z.pdf", 15)
    assert (stamped.resume_id, stamped.file_name, stamped.processing_time_ms) == ("r9", "z.pdf", 15)


def test_resume_ids_are_stable_fingerprints() -> None:
    first = ResumeInput.create("a.pdf", "Python developer")
    assert first.id == fingerprint("a.pdf", "Python developer")
    assert first.id == ResumeInput.create("a.pdf", "Python developer").id
    assert first.id != ResumeInput.create("b.pdf", "Python developer").id
    assert ResumeInput.create("a.pdf", "x", resume_id="given").id == "given"


def test_parse_batch_request() -> None:
    job, resumes = parse_batch_request(
        {
            "jobDescription": "Data engineer",
            "resumes": [{"fileName": "a.pdf", "text": "Spark"}, {"fileName": "b.pdf", "text": "SQL", "id": 7}],
        }
    )
    assert job == JobDescription("Data engineer")
    assert [r.file_name for r in resumes] == ["a.pdf", "b.pdf"]
    assert resumes[1].id == "7"


@pytest.mark.parametrize(
    "payload, message",
    [
        ({"jobDescription": "x"}, "Resumes array is required"),
        ({"jobDescription": "x", "resumes": []}, "Resumes array is required"),
        ({"resumes": [{"fileName": "a.pdf", "text": "t"}]}, "Job description is required"),
        ({"jobDescription": "   ", "resumes": [{"fileName": "a.pdf", "text": "t"}]}, "Job description is required"),
        ({"jobDescription": "x", "resumes": [{"fileName": "a.pdf"}]}, "missing text"),
        ({"jobDescription": "x", "resumes": ["a.pdf"]}, "expected an object"),
    ],
)
def test_parse_batch_request_rejects_bad_input(payload, message) -> None:
    with pytest.raises(ValidationError, match=message):
        parse_batch_request(payload)


def test_wire_form_always_carries_a_recommendation() -> None:
    # Constructed without a recommendation, it is derived from the match score.
    result = AnalysisResult(resume_id="r2", file_name="b.pdf", match_percentage=20)
    assert result.to_dict()["hiringRecommendation"] == "no-hire"
