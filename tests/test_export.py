"""Tests for CSV export of analysis results."""

from __future__ import annotations

import csv
from pathlib import Path

from conftest import make_result
from hireflow.rank.export import HEADERS, results_to_csv, write_results_csv
from hireflow.score.schema import SkillsAnalysis


def _result():
    return make_result(
        86.6,
        "jane doe.pdf",
        skills=SkillsAnalysis(matching_skills=["python", "aws"], missing_critical_skills=["kubernetes"]),
    )


def test_header_and_quoted_list_cells() -> None:
    text = results_to_csv([_result()])
    lines = text.splitlines()
    assert lines[0] == "File Name,Match %,Matching Skills,Missing Skills,Recommendation"
    assert lines[1] == '"jane doe.pdf",87,"python, aws","kubernetes","strong-hire"'


def test_written_file_parses_back(tmp_path: Path) -> None:
    out = tmp_path / "results.csv"
    count = write_results_csv([_result(), make_result(40, "bob.pdf")], str(out))
    assert count == 2
    with open(out, newline="", encoding="utf-8") as f:
        rows = list(csv.reader(f))
    assert rows[0] == HEADERS
    assert rows[1][2] == "python, aws"
    assert rows[2] == ["bob.pdf", "40", "", "", "no-hire"]


def test_no_results_writes_header_only() -> None:
    assert results_to_csv([]) == ",".join(HEADERS) + "\n"
