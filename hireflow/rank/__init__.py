"""
Ranking subsystem for hireflow.

* `ranker` – stable sorting by match percentage, ATS score, experience
  relevance or file name; filters by match band or hiring
  recommendation; batch summary statistics.
* `export` – CSV export of results.
"""

from .ranker import (  # noqa: F401
    BatchSummary,
    MatchBand,
    SortKey,
    match_band_filter,
    parse_filter,
    rank,
    recommendation_filter,
    summarize,
)
from .export import results_to_csv, write_results_csv  # noqa: F401
