"""
Analysis result schema.

Defines the structured output of scoring one résumé against a job
description.  Attributes are snake_case; ``to_dict``/``from_dict``
convert to and from the camelCase wire form used by the batch stream
and the results JSON.  Every score lies in [0, 100]: values outside
the range are clamped and non-numeric values become 0.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional


class HiringRecommendation(str, Enum):
    STRONG_HIRE = "strong-hire"
    HIRE = "hire"
    MAYBE = "maybe"
    NO_HIRE = "no-hire"

    @property
    def is_recommended(self) -> bool:
        return self in (HiringRecommendation.STRONG_HIRE, HiringRecommendation.HIRE)


class InterviewReadiness(str, Enum):
    READY = "ready"
    NEEDS_PREP = "needs-prep"


def clamp_score(value: Any) -> float:
    """Coerce to a number in [0, 100]; anything unusable becomes 0."""
    if isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number):
        return 0.0
    return max(0.0, min(100.0, number))


def _as_float(value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return 0.0 if math.isnan(number) or number < 0 else number


def _as_int(value: Any) -> int:
    return int(_as_float(value))


def _str_list(value: Any) -> List[str]:
    if not isinstance(value, (list, tuple)):
        return []
    return [str(item) for item in value if item is not None and str(item).strip()]


def recommendation_for(match_percentage: float) -> HiringRecommendation:
    """Fallback bucket when the scorer did not provide one."""
    if match_percentage >= 85:
        return HiringRecommendation.STRONG_HIRE
    if match_percentage >= 70:
        return HiringRecommendation.HIRE
    if match_percentage >= 50:
        return HiringRecommendation.MAYBE
    return HiringRecommendation.NO_HIRE


def parse_recommendation(value: Any, match_percentage: float) -> HiringRecommendation:
    if isinstance(value, HiringRecommendation):
        return value
    text = str(value or "").strip().lower().replace("_", "-").replace(" ", "-")
    try:
        return HiringRecommendation(text)
    except ValueError:
        return recommendation_for(match_percentage)


def parse_readiness(value: Any) -> InterviewReadiness:
    if isinstance(value, InterviewReadiness):
        return value
    text = str(value or "").strip().lower()
    # Older scorers answer ready / needs-preparation / not-ready.
    if text == "ready":
        return InterviewReadiness.READY
    return InterviewReadiness.NEEDS_PREP


@dataclass(frozen=True)
class AtsScore:
    overall: float = 0.0
    keyword_match: float = 0.0
    skills_alignment: float = 0.0
    experience_relevance: float = 0.0
    education_fit: float = 0.0
    format_compatibility: float = 0.0

    def __post_init__(self) -> None:
        for name in self.__dataclass_fields__:
            object.__setattr__(self, name, clamp_score(getattr(self, name)))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AtsScore":
        return cls(
            overall=data.get("overall", 0),
            keyword_match=data.get("keywordMatch", 0),
            skills_alignment=data.get("skillsAlignment", 0),
            experience_relevance=data.get("experienceRelevance", 0),
            education_fit=data.get("educationFit", 0),
            format_compatibility=data.get("formatCompatibility", 0),
        )

    def to_dict(self) -> Dict[str, float]:
        return {
            "overall": self.overall,
            "keywordMatch": self.keyword_match,
            "skillsAlignment": self.skills_alignment,
            "experienceRelevance": self.experience_relevance,
            "educationFit": self.education_fit,
            "formatCompatibility": self.format_compatibility,
        }


@dataclass(frozen=True)
class KeywordAnalysis:
    matched_keywords: List[str] = field(default_factory=list)
    missing_keywords: List[str] = field(default_factory=list)
    keyword_density: float = 0.0
    total_job_keywords: int = 0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "KeywordAnalysis":
        return cls(
            matched_keywords=_str_list(data.get("matchedKeywords")),
            missing_keywords=_str_list(data.get("missingKeywords")),
            keyword_density=_as_float(data.get("keywordDensity")),
            total_job_keywords=_as_int(data.get("totalJobKeywords")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "matchedKeywords": list(self.matched_keywords),
            "missingKeywords": list(self.missing_keywords),
            "keywordDensity": self.keyword_density,
            "totalJobKeywords": self.total_job_keywords,
        }


@dataclass(frozen=True)
class SkillsAnalysis:
    matching_skills: List[str] = field(default_factory=list)
    missing_critical_skills: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SkillsAnalysis":
        return cls(
            matching_skills=_str_list(data.get("matchingSkills")),
            missing_critical_skills=_str_list(data.get("missingCriticalSkills")),
        )

    def to_dict(self) -> Dict[str, List[str]]:
        return {
            "matchingSkills": list(self.matching_skills),
            "missingCriticalSkills": list(self.missing_critical_skills),
        }


@dataclass(frozen=True)
class ExperienceAnalysis:
    total_years: float = 0.0
    relevant_years: float = 0.0
    experience_match: str = "unknown"
    career_progression: str = "unknown"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ExperienceAnalysis":
        return cls(
            total_years=_as_float(data.get("totalYears")),
            relevant_years=_as_float(data.get("relevantYears")),
            experience_match=str(data.get("experienceMatch") or "unknown"),
            career_progression=str(data.get("careerProgression") or "unknown"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalYears": self.total_years,
            "relevantYears": self.relevant_years,
            "experienceMatch": self.experience_match,
            "careerProgression": self.career_progression,
        }


@dataclass(frozen=True)
class AnalysisResult:
    """Outcome of scoring one résumé against a job description."""

    resume_id: str
    file_name: str
    match_percentage: float
    ats_score: AtsScore = field(default_factory=AtsScore)
    keyword_analysis: KeywordAnalysis = field(default_factory=KeywordAnalysis)
    skills_analysis: SkillsAnalysis = field(default_factory=SkillsAnalysis)
    experience_analysis: ExperienceAnalysis = field(default_factory=ExperienceAnalysis)
    strengths: List[str] = field(default_factory=list)
    weaknesses: List[str] = field(default_factory=list)
    interview_questions: List[str] = field(default_factory=list)
    hiring_recommendation: Optional[HiringRecommendation] = None
    interview_readiness: InterviewReadiness = InterviewReadiness.NEEDS_PREP
    confidence_score: float = 0.0
    overall_assessment: str = ""
    recommendations: List[str] = field(default_factory=list)
    processing_time_ms: int = 0
    analyzed_at: str = ""

    def __post_init__(self) -> None:
        match = clamp_score(self.match_percentage)
        object.__setattr__(self, "match_percentage", match)
        object.__setattr__(self, "confidence_score", clamp_score(self.confidence_score))
        object.__setattr__(
            self, "hiring_recommendation", parse_recommendation(self.hiring_recommendation, match)
        )
        object.__setattr__(self, "interview_readiness", parse_readiness(self.interview_readiness))
        if not self.analyzed_at:
            object.__setattr__(self, "analyzed_at", datetime.now(timezone.utc).isoformat())

    @property
    def experience_relevance(self) -> float:
        return self.ats_score.experience_relevance

    def with_source(self, resume_id: str, file_name: str, processing_time_ms: int = 0) -> "AnalysisResult":
        """Copy stamped with the résumé it was computed for."""
        return replace(self, resume_id=resume_id, file_name=file_name, processing_time_ms=processing_time_ms)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AnalysisResult":
        """Build from the camelCase wire form, tolerating missing fields."""
        match = clamp_score(data.get("matchPercentage"))
        skills = data.get("skillsAnalysis") or {}
        # Flat matchingSkills/missingSkills as returned by simpler prompts.
        if not skills and ("matchingSkills" in data or "missingSkills" in data):
            skills = {
                "matchingSkills": data.get("matchingSkills"),
                "missingCriticalSkills": data.get("missingSkills"),
            }
        return cls(
            resume_id=str(data.get("resumeId") or ""),
            file_name=str(data.get("fileName") or ""),
            match_percentage=match,
            ats_score=AtsScore.from_dict(data.get("atsScore") or {}),
            keyword_analysis=KeywordAnalysis.from_dict(data.get("keywordAnalysis") or {}),
            skills_analysis=SkillsAnalysis.from_dict(skills),
            experience_analysis=ExperienceAnalysis.from_dict(data.get("experienceAnalysis") or {}),
            strengths=_str_list(data.get("strengths")),
            weaknesses=_str_list(data.get("weaknesses")),
            interview_questions=_str_list(data.get("interviewQuestions")),
            hiring_recommendation=parse_recommendation(data.get("hiringRecommendation"), match),
            interview_readiness=parse_readiness(data.get("interviewReadiness")),
            confidence_score=data.get("confidenceScore", 0),
            overall_assessment=str(data.get("overallAssessment") or ""),
            recommendations=_str_list(data.get("recommendations")),
            processing_time_ms=_as_int(data.get("processingTime")),
            analyzed_at=str(data.get("analysisTimestamp") or ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "resumeId": self.resume_id,
            "fileName": self.file_name,
            "matchPercentage": self.match_percentage,
            "atsScore": self.ats_score.to_dict(),
            "keywordAnalysis": self.keyword_analysis.to_dict(),
            "skillsAnalysis": self.skills_analysis.to_dict(),
            "experienceAnalysis": self.experience_analysis.to_dict(),
            "strengths": list(self.strengths),
            "weaknesses": list(self.weaknesses),
            "interviewQuestions": list(self.interview_questions),
            "hiringRecommendation": self.hiring_recommendation.value,
            "interviewReadiness": self.interview_readiness.value,
            "confidenceScore": self.confidence_score,
            "overallAssessment": self.overall_assessment,
            "recommendations": list(self.recommendations),
            "processingTime": self.processing_time_ms,
            "analysisTimestamp": self.analyzed_at,
        }
