"""
Scoring subsystem for hireflow.

* `schema` – ``AnalysisResult`` and its sub-records, with score
  clamping and the camelCase wire form.
* `providers` – the ``ScoringClient`` interface and its keyword,
  OpenAI and Gemini implementations.
"""

from .schema import AnalysisResult, HiringRecommendation, InterviewReadiness  # noqa: F401
from .providers import (  # noqa: F401
    KeywordScoringClient,
    ScoringClient,
    client_health,
    get_default_client,
)
