"""
CSV export of analysis results.

One row per result under the header
``File Name,Match %,Matching Skills,Missing Skills,Recommendation``.
Skill lists are joined with ", " and every text cell is quoted so the
embedded commas survive a round trip through spreadsheet tools.
"""

from __future__ import annotations

import csv
import io
from typing import Iterable, TextIO

from ..score.schema import AnalysisResult

HEADERS = ["File Name", "Match %", "Matching Skills", "Missing Skills", "Recommendation"]


def _write(results: Iterable[AnalysisResult], handle: TextIO) -> int:
    # Header is unquoted; data rows quote every non-numeric cell.
    csv.writer(handle, lineterminator="\n").writerow(HEADERS)
    writer = csv.writer(handle, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")
    count = 0
    for result in results:
        writer.writerow(
            [
                result.file_name,
                int(round(result.match_percentage)),
                ", ".join(result.skills_analysis.matching_skills),
                ", ".join(result.skills_analysis.missing_critical_skills),
                result.hiring_recommendation.value if result.hiring_recommendation else "",
            ]
        )
        count += 1
    return count


def results_to_csv(results: Iterable[AnalysisResult]) -> str:
    """Render results as CSV text."""
    buffer = io.StringIO()
    _write(results, buffer)
    return buffer.getvalue()


def write_results_csv(results: Iterable[AnalysisResult], path: str) -> int:
    """Write results to ``path``, overwriting it.  Returns the row count."""
    with open(path, "w", newline="", encoding="utf-8") as csvfile:
        return _write(results, csvfile)
