"""
Scoring client abstractions.

A scoring client takes the raw text of one résumé and the job
description and returns a structured :class:`AnalysisResult`.  Concrete
implementations are provided for the OpenAI and Gemini (Google
Generative AI) APIs, sharing one prompt and one response parser.  A
deterministic :class:`KeywordScoringClient` is used when no API keys are
configured, which also makes the batch pipeline usable offline.

Clients never substitute made-up output for a failed call: a failure
for one résumé raises :class:`ScoringError`, and a backend that cannot
be reached at all (bad credentials, no network) raises
:class:`BackendUnavailableError` so the batch can abort early.
"""

from __future__ import annotations

import json
import logging
import os
import re
from abc import ABC, abstractmethod
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..config import Settings
from ..errors import BackendUnavailableError, ScoringError
from .schema import (
    AnalysisResult,
    AtsScore,
    ExperienceAnalysis,
    InterviewReadiness,
    KeywordAnalysis,
    SkillsAnalysis,
    recommendation_for,
)

logger = logging.getLogger(__name__)

PROMPT_TEMPLATE = """
Analyze the following resume against the job description and provide a comprehensive ATS match analysis.

JOB DESCRIPTION:
{job_text}

RESUME:
{resume_text}

Respond ONLY with a JSON object in this exact format (all scores are integers from 0 to 100):
{{
  "matchPercentage": number,
  "atsScore": {{
    "overall": number,
    "keywordMatch": number,
    "skillsAlignment": number,
    "experienceRelevance": number,
    "educationFit": number,
    "formatCompatibility": number
  }},
  "keywordAnalysis": {{
    "matchedKeywords": ["keyword"],
    "missingKeywords": ["keyword"],
    "keywordDensity": number,
    "totalJobKeywords": number
  }},
  "skillsAnalysis": {{
    "matchingSkills": ["skill"],
    "missingCriticalSkills": ["skill"]
  }},
  "experienceAnalysis": {{
    "totalYears": number,
    "relevantYears": number,
    "experienceMatch": "entry/mid/senior",
    "careerProgression": "brief description"
  }},
  "strengths": ["strength"],
  "weaknesses": ["weakness"],
  "interviewQuestions": ["question"],
  "hiringRecommendation": "strong-hire/hire/maybe/no-hire",
  "interviewReadiness": "ready/needs-prep",
  "confidenceScore": number,
  "overallAssessment": "brief overall assessment",
  "recommendations": ["recommendation"]
}}
"""

_JSON_BLOCK = re.compile(r"\{[\s\S]*\}")


def build_prompt(resume_text: str, job_text: str) -> str:
    return PROMPT_TEMPLATE.format(job_text=job_text.strip(), resume_text=resume_text.strip())


def parse_response(content: Optional[str]) -> AnalysisResult:
    """Parse a model response into an ``AnalysisResult``.

    The first ``{...}`` block is used, so Markdown code fences or a
    sentence of preamble around the JSON are tolerated.

    Raises:
        ScoringError: If no JSON object can be found or decoded.
    """
    if not content:
        raise ScoringError("Empty response from scoring model")
    match = _JSON_BLOCK.search(content)
    if not match:
        raise ScoringError("No valid JSON found in scoring response")
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        raise ScoringError(f"Failed to parse scoring response JSON: {exc}") from exc
    if not isinstance(data, dict) or "matchPercentage" not in data:
        raise ScoringError("Scoring response is missing matchPercentage")
    return AnalysisResult.from_dict(data)


class ScoringClient(ABC):
    """Abstract base class for résumé scoring clients."""

    name = "abstract"

    @abstractmethod
    def score(self, resume_text: str, job_text: str) -> AnalysisResult:
        """Score one résumé against a job description.

        Args:
            resume_text: Plain text of the résumé.
            job_text: Plain text of the job description.

        Returns:
            An ``AnalysisResult``; ``resume_id`` and ``file_name`` are left
            empty for the caller to stamp.

        Raises:
            ScoringError: The résumé could not be scored.
            BackendUnavailableError: The backend cannot be reached at all.
        """
        raise NotImplementedError

    def is_configured(self) -> bool:
        return True


STOPWORDS = frozenset(
    """
    a about above after all also an and any are as at be been being both but by can could did do
    does doing for from had has have having he her here his how i if in into is it its itself just
    may me more most must my no nor not of off on once only or other our out over own same she
    should so some such than that the their them then there these they this those through to too
    under until up very was we were what when where which while who whom why will with would you
    your yours able ability across etc including strong work working years year experience team
    role job candidate candidates required requirements preferred plus using use new well within
    """.split()
)

DEGREE_TERMS = ("bachelor", "master", "phd", "b.s", "m.s", "bsc", "msc", "degree", "b.e", "m.tech", "mba")
SECTION_TERMS = ("experience", "education", "skills", "projects", "summary")
_TOKEN = re.compile(r"[a-zA-Z][a-zA-Z0-9+#.\-]*[a-zA-Z0-9+#]|[a-zA-Z]{2,}")
_YEARS = re.compile(r"(\d{1,2})\+?\s*(?:years?|yrs?)", re.I)

# Penalty multiplier when a candidate is below the required years.
EXPERIENCE_PENALTY = 0.7
WEIGHTS = {
    "keyword": 0.35,
    "skills": 0.25,
    "experience": 0.20,
    "education": 0.10,
    "format": 0.10,
}
KNOWN_SKILLS = frozenset(
    """
    python java javascript typescript go golang rust c++ c# ruby php scala kotlin swift sql nosql
    postgresql mysql mongodb redis kafka spark hadoop airflow dbt aws azure gcp docker kubernetes
    terraform ansible linux git react angular vue node.js django flask fastapi spring graphql rest
    pandas numpy tensorflow pytorch scikit-learn keras machine-learning nlp tableau excel
    jenkins microservices html css figma agile scrum
    """.split()
)


def _tokens(text: str) -> List[str]:
    return [t.lower().rstrip(".") for t in _TOKEN.findall(text)]


def _keywords(text: str) -> List[str]:
    seen: Dict[str, None] = {}
    for token in _tokens(text):
        if len(token) >= 3 and token not in STOPWORDS and not token.isdigit():
            seen.setdefault(token, None)
    return list(seen)


def _max_years(text: str) -> int:
    values = [int(v) for v in _YEARS.findall(text)]
    return max(values) if values else 0


class KeywordScoringClient(ScoringClient):
    """Deterministic scorer based on keyword and skill overlap.

    Used when no LLM provider is configured.  The same input always
    produces the same scores, which also makes it a convenient client for
    dry runs of the batch pipeline.
    """

    name = "keyword"

    def score(self, resume_text: str, job_text: str) -> AnalysisResult:
        if not resume_text or not resume_text.strip():
            raise ScoringError("Resume text is required for analysis")
        job_keywords = _keywords(job_text or "")
        if not job_keywords:
            raise ScoringError("Job description contains no scorable keywords")

        resume_tokens = _tokens(resume_text)
        resume_set = set(resume_tokens)
        matched = [k for k in job_keywords if k in resume_set]
        missing = [k for k in job_keywords if k not in resume_set]
        keyword_match = 100.0 * len(matched) / len(job_keywords)

        job_skills = [k for k in job_keywords if k in KNOWN_SKILLS]
        matching_skills = [s for s in job_skills if s in resume_set]
        missing_skills = [s for s in job_skills if s not in resume_set]
        skills_alignment = 100.0 * len(matching_skills) / len(job_skills) if job_skills else keyword_match

        required_years = _max_years(job_text)
        total_years = _max_years(resume_text)
        if required_years:
            if total_years >= required_years:
                experience = 100.0
            else:
                experience = total_years / required_years * 100 * EXPERIENCE_PENALTY
        else:
            experience = 70.0 if total_years else 50.0

        lowered_job = job_text.lower()
        lowered_resume = resume_text.lower()
        if any(term in lowered_job for term in DEGREE_TERMS):
            education = 100.0 if any(term in lowered_resume for term in DEGREE_TERMS) else 40.0
        else:
            education = 80.0
        sections = sum(1 for term in SECTION_TERMS if term in lowered_resume)
        format_score = min(100.0, 40.0 + 15.0 * sections)

        overall = (
            WEIGHTS["keyword"] * keyword_match
            + WEIGHTS["skills"] * skills_alignment
            + WEIGHTS["experience"] * experience
            + WEIGHTS["education"] * education
            + WEIGHTS["format"] * format_score
        )
        match_percentage = round(0.5 * overall + 0.3 * skills_alignment + 0.2 * keyword_match)
        counts = Counter(resume_tokens)
        density = round(100.0 * sum(counts[k] for k in matched) / len(resume_tokens), 2) if resume_tokens else 0.0

        strengths = [f"Demonstrates {s}" for s in matching_skills[:5]]
        if keyword_match >= 60:
            strengths.append("Strong keyword coverage of the job description")
        weaknesses = [f"No evidence of {s}" for s in missing_skills[:5]]
        if required_years and total_years < required_years:
            weaknesses.append(f"{total_years} years of experience against {required_years} required")
        questions = [f"Describe a project where you used {s}." for s in matching_skills[:3]]
        questions += [f"How would you get up to speed with {s}?" for s in missing_skills[:2]]

        if total_years >= 7:
            level = "senior"
        elif total_years >= 3:
            level = "mid"
        else:
            level = "entry"

        return AnalysisResult(
            resume_id="",
            file_name="",
            match_percentage=match_percentage,
            ats_score=AtsScore(
                overall=round(overall),
                keyword_match=round(keyword_match),
                skills_alignment=round(skills_alignment),
                experience_relevance=round(experience),
                education_fit=round(education),
                format_compatibility=round(format_score),
            ),
            keyword_analysis=KeywordAnalysis(
                matched_keywords=matched[:25],
                missing_keywords=missing[:25],
                keyword_density=density,
                total_job_keywords=len(job_keywords),
            ),
            skills_analysis=SkillsAnalysis(matching_skills=matching_skills, missing_critical_skills=missing_skills),
            experience_analysis=ExperienceAnalysis(
                total_years=float(total_years),
                relevant_years=float(min(total_years, required_years) if required_years else total_years),
                experience_match=level,
                career_progression="not assessed",
            ),
            strengths=strengths,
            weaknesses=weaknesses,
            interview_questions=questions,
            hiring_recommendation=recommendation_for(match_percentage),
            interview_readiness=InterviewReadiness.READY if match_percentage >= 75 else InterviewReadiness.NEEDS_PREP,
            confidence_score=round(50.0 + 50.0 * min(1.0, len(resume_tokens) / 300.0)),
            overall_assessment=(
                f"Keyword match {round(keyword_match)}%, skills alignment {round(skills_alignment)}%"
            ),
        )


class OpenAIScoringClient(ScoringClient):
    """Client that uses the OpenAI chat completions API."""

    name = "openai"

    def __init__(self, api_key: str | None = None, model: str | None = None, timeout: float = 60.0) -> None:
        try:
            import openai  # type: ignore
        except ImportError as exc:
            raise RuntimeError(
                "openai package is required for OpenAIScoringClient. Install it via pip."
            ) from exc
        self.openai = openai
        self.api_key = api_key or os.getenv("OPENAI_API_KEY")
        self.model = model or os.getenv("OPENAI_MODEL") or "gpt-4o-mini"
        if not self.api_key:
            raise ValueError("OPENAI_API_KEY not provided")
        self.client = openai.OpenAI(api_key=self.api_key, timeout=timeout, max_retries=0)

    def score(self, resume_text: str, job_text: str) -> AnalysisResult:
        prompt = build_prompt(resume_text, job_text)
        logger.debug("Sending prompt to OpenAI: %s", prompt[:200])
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=0.3,
                response_format={"type": "json_object"},
            )
        except (self.openai.AuthenticationError, self.openai.PermissionDeniedError) as exc:
            raise BackendUnavailableError(f"OpenAI rejected the credentials: {exc}") from exc
        except self.openai.APITimeoutError as exc:
            raise ScoringError(f"OpenAI request timed out: {exc}") from exc
        except self.openai.APIConnectionError as exc:
            raise BackendUnavailableError(f"Cannot reach OpenAI: {exc}") from exc
        except self.openai.OpenAIError as exc:
            logger.exception("OpenAI API call failed: %s", exc)
            raise ScoringError(f"OpenAI API error: {exc}") from exc
        content = response.choices[0].message.content
        return parse_response(content)


class GeminiScoringClient(ScoringClient):
    """Client that uses Google Generative AI (Gemini) via google-generativeai."""

    name = "gemini"

    def __init__(self, api_key: str | None = None, model: str | None = None) -> None:
        try:
            import google.generativeai as genai  # type: ignore
            from google.api_core import exceptions as google_exceptions  # type: ignore
        except ImportError as exc:
            raise RuntimeError(
                "google-generativeai package is required for GeminiScoringClient. Install it via pip."
            ) from exc
        self.genai = genai
        self.google_exceptions = google_exceptions
        # API key resolution: explicit argument > env variables
        self.api_key = api_key or os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")
        env_model = os.getenv("GEMINI_MODEL") or os.getenv("GOOGLE_MODEL")
        self.model_name = model or env_model or "gemini-1.5-pro"
        if not self.api_key:
            raise ValueError("GEMINI_API_KEY/GOOGLE_API_KEY not provided")
        self.genai.configure(api_key=self.api_key)
        try:
            self.model = self.genai.GenerativeModel(
                self.model_name,
                generation_config={
                    "temperature": 0.3,
                    "top_k": 40,
                    "top_p": 0.95,
                    "max_output_tokens": 2048,
                    "response_mime_type": "application/json",
                },
            )
        except Exception as exc:
            raise RuntimeError(f"Failed to load Gemini model {self.model_name}: {exc}") from exc

    def score(self, resume_text: str, job_text: str) -> AnalysisResult:
        prompt = build_prompt(resume_text, job_text)
        logger.debug("Sending prompt to Gemini: %s", prompt[:200])
        errors = self.google_exceptions
        try:
            response = self.model.generate_content(prompt)
            content = response.text
        except (errors.Unauthenticated, errors.PermissionDenied) as exc:
            raise BackendUnavailableError(f"Gemini rejected the credentials: {exc}") from exc
        except errors.GoogleAPIError as exc:
            logger.exception("Gemini API call failed: %s", exc)
            raise ScoringError(f"Gemini API error: {exc}") from exc
        except ValueError as exc:
            # response.text raises ValueError when the candidate was blocked
            raise ScoringError(f"Gemini returned no text: {exc}") from exc
        return parse_response(content)


def get_default_client(settings: Optional[Settings] = None) -> ScoringClient:
    """Return a ScoringClient based on configuration and API keys.

    The resolution order is:

    1. ``settings.provider`` or the ``LLM_PROVIDER`` environment variable
       (``"openai"``, ``"gemini"`` or ``"keyword"``).  If the named
       client cannot be initialised a warning is logged and automatic
       detection is used.
    2. If ``OPENAI_API_KEY`` is present, return :class:`OpenAIScoringClient`.
    3. If ``GEMINI_API_KEY`` or ``GOOGLE_API_KEY`` is present, return
       :class:`GeminiScoringClient`.
    4. Otherwise, return :class:`KeywordScoringClient`.
    """
    model = settings.model if settings else None
    timeout = settings.timeout if settings else 60.0
    preferred = (settings.provider if settings and settings.provider else os.getenv("LLM_PROVIDER")) or ""
    pref = preferred.lower()
    if pref == "openai":
        try:
            return OpenAIScoringClient(model=model, timeout=timeout)
        except Exception as exc:  # noqa: BLE001
            logger.warning("LLM_PROVIDER=openai but failed to initialise OpenAIScoringClient: %s", exc)
    elif pref == "gemini":
        try:
            return GeminiScoringClient(model=model)
        except Exception as exc:  # noqa: BLE001
            logger.warning("LLM_PROVIDER=gemini but failed to initialise GeminiScoringClient: %s", exc)
    elif pref in ("keyword", "placeholder"):
        logger.info("LLM_PROVIDER=%s; using keyword scoring client", pref)
        return KeywordScoringClient()
    elif pref:
        logger.warning("Unknown LLM_PROVIDER value '%s'; falling back to automatic detection", preferred)

    if os.getenv("OPENAI_API_KEY"):
        try:
            return OpenAIScoringClient(model=model, timeout=timeout)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Failed to initialise OpenAIScoringClient: %s", exc)
    if os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY"):
        try:
            return GeminiScoringClient(model=model)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Failed to initialise GeminiScoringClient: %s", exc)
    logger.info("No LLM API keys found; using keyword scoring client")
    return KeywordScoringClient()


def client_health(client: ScoringClient) -> Dict[str, Any]:
    """Describe whether a client is ready to score."""
    configured = client.is_configured()
    if isinstance(client, KeywordScoringClient):
        message = "Using offline keyword scoring; set OPENAI_API_KEY or GEMINI_API_KEY for model scoring"
    elif configured:
        message = "API key is configured and ready"
    else:
        message = "API key is missing"
    return {
        "provider": client.name,
        "status": "healthy" if configured else "unhealthy",
        "configured": configured,
        "message": message,
        "checkedAt": datetime.now(timezone.utc).isoformat(),
    }
