"""
Command line interface for hireflow.

Subcommands cover each stage of the pipeline: scoring a batch of résumés
against a job description, ranking and exporting the results, moving
applications through the hiring workflow and checking that a scoring
backend is configured.  The CLI stays thin and delegates the work to the
`batch`, `rank`, `applications` and `score` packages.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List, Optional

from tqdm import tqdm

from . import __version__
from .applications import ApplicationLedger, allowed_actions
from .batch import BatchStatus, FailureRecord, ProgressEvent, encode_sse, run_batch
from .config import load_settings
from .errors import HireflowError, ValidationError
from .rank import SortKey, parse_filter, rank, summarize, write_results_csv
from .resume import extract_text, load_resumes
from .score import AnalysisResult, client_health, get_default_client

logger = logging.getLogger("hireflow.cli")

DEFAULT_STORE = "applications.json"


def _load_results(path: str) -> Dict[str, Any]:
    """Read a results file written by ``analyze --out`` (or a bare result list)."""
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as exc:
            raise ValidationError(f"{path} is not valid JSON: {exc}") from exc
    if isinstance(data, list):
        data = {"results": data}
    return {
        "results": [AnalysisResult.from_dict(r) for r in data.get("results") or []],
        "failures": [FailureRecord.from_dict(f) for f in data.get("failures") or []],
    }


def _write_json(data: object, path: str) -> None:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    with out.open("w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, indent=2)


def cmd_analyze(args: argparse.Namespace) -> int:
    """Score résumés against a job description.

    Progress is shown as a progress bar, or written to stdout as
    ``data: {json}`` frames with ``--sse``.  The finished batch (ranked
    results, failures, summary) can be saved as JSON and the results as
    CSV.
    """
    overrides = {"concurrency": args.concurrency, "timeout": args.timeout, "provider": args.provider}
    settings = replace(load_settings(args.config), **{k: v for k, v in overrides.items() if v is not None})

    job_text = extract_text(args.job)
    resumes = load_resumes(args.resumes)
    client = get_default_client(settings)
    logger.info("Scoring %d resumes with the %s client", len(resumes), client.name)

    if args.sse:
        def on_event(event):
            sys.stdout.write(encode_sse(event))
            sys.stdout.flush()

        job = run_batch(client, job_text, resumes, settings=settings, on_event=on_event)
    else:
        with tqdm(total=len(resumes), desc="Analyzing resumes", unit="resume") as pbar:
            def on_event(event):
                if isinstance(event, ProgressEvent):
                    pbar.update(1)
                    pbar.set_postfix(failed=event.failed, eta=event.eta)

            job = run_batch(client, job_text, resumes, settings=settings, on_event=on_event)

    if args.out:
        _write_json(job.to_dict(), args.out)
        logger.info("Batch written to %s", args.out)
    if args.csv and job.results:
        count = write_results_csv(job.results, args.csv)
        logger.info("Wrote %d rows to %s", count, args.csv)

    if job.status is not BatchStatus.COMPLETE:
        logger.error("%s", job.error)
        return 1
    if not args.sse:
        print(job.summary.describe())
    return 0


def cmd_rank(args: argparse.Namespace) -> int:
    """Print a ranked report from a results file."""
    loaded = _load_results(args.results)
    results: List[AnalysisResult] = loaded["results"]
    ranked = rank(results, args.sort, parse_filter(args.filter))
    limit = args.limit or len(ranked)
    for i, result in enumerate(ranked[:limit]):
        print(
            f"{i+1:02d}. {result.file_name} – {result.match_percentage:.0f}% match "
            f"(ATS {result.ats_score.overall:.0f}, {result.hiring_recommendation.value})"
        )
        if result.skills_analysis.matching_skills:
            print(f"   Skills: {', '.join(result.skills_analysis.matching_skills)}")
        if result.skills_analysis.missing_critical_skills:
            print(f"   Missing: {', '.join(result.skills_analysis.missing_critical_skills)}")
    # Summary numbers always come from the full, unfiltered result set.
    summary = summarize(results, loaded["failures"])
    print()
    print(summary.describe())
    print(
        f"Average match {summary.average_match}%, {summary.recommended} recommended, "
        f"{summary.high_match} high match, {summary.interview_ready} interview ready"
    )
    return 0


def cmd_export(args: argparse.Namespace) -> int:
    """Export results to CSV in ranked order."""
    loaded = _load_results(args.results)
    ranked = rank(loaded["results"], args.sort, parse_filter(args.filter))
    count = write_results_csv(ranked, args.out)
    logger.info("Exported %d results to %s", count, args.out)
    return 0


def _print_application(app, notification=None) -> None:
    print(json.dumps(app.to_dict(), ensure_ascii=False, indent=2))
    if notification is not None:
        print(f"Notify {notification.candidate_id}: {notification.message}")
    actions = allowed_actions(app.status)
    print(f"Next actions: {', '.join(actions) if actions else 'none (final status)'}")


def cmd_application_create(args: argparse.Namespace) -> int:
    ledger = ApplicationLedger.load(args.store)
    analysis: Optional[AnalysisResult] = None
    if args.analysis:
        results = _load_results(args.analysis)["results"]
        matches = [r for r in results if args.resume in (r.resume_id, r.file_name)] if args.resume else results[:1]
        if not matches:
            raise ValidationError(f"No result for resume '{args.resume}' in {args.analysis}")
        analysis = matches[0]
    app = ledger.create(args.candidate, args.job_id, application_id=args.id, analysis=analysis)
    ledger.save(args.store)
    _print_application(app)
    return 0


def cmd_application_act(args: argparse.Namespace) -> int:
    ledger = ApplicationLedger.load(args.store)
    result = ledger.act(args.id, args.action, notes=args.notes or "", changed_by=args.by)
    ledger.save(args.store)
    _print_application(result.application, result.notification)
    return 0


def cmd_application_show(args: argparse.Namespace) -> int:
    ledger = ApplicationLedger.load(args.store)
    if args.id:
        _print_application(ledger.get(args.id))
        return 0
    apps = ledger.by_status(args.status) if args.status else list(ledger)
    for app in apps:
        print(f"{app.id}  {app.candidate_id} -> {app.job_id}  [{app.status.value}]")
    logger.info("%d applications", len(apps))
    return 0


def cmd_health(args: argparse.Namespace) -> int:
    """Report which scoring backend would be used and whether it is ready."""
    settings = load_settings(args.config)
    if args.provider:
        settings.provider = args.provider
    health = client_health(get_default_client(settings))
    print(json.dumps(health, indent=2))
    return 0 if health["configured"] else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="hireflow", description="Batch resume scoring and application tracking")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # Analyze
    analyze_cmd = subparsers.add_parser("analyze", help="Score resumes against a job description")
    analyze_cmd.add_argument("--job", required=True, help="Job description file (txt, md, pdf, docx)")
    analyze_cmd.add_argument("--resumes", required=True, nargs="+", help="Resume files or directories")
    analyze_cmd.add_argument("--config", help="YAML settings file")
    analyze_cmd.add_argument("--provider", choices=["openai", "gemini", "keyword"], help="Scoring backend")
    analyze_cmd.add_argument("--concurrency", type=int, help="Maximum concurrent scoring calls")
    analyze_cmd.add_argument("--timeout", type=float, help="Per-resume timeout in seconds")
    analyze_cmd.add_argument("--out", default="results.json", help="Output JSON path")
    analyze_cmd.add_argument("--csv", help="Also write results as CSV")
    analyze_cmd.add_argument("--sse", action="store_true", help="Write progress as SSE frames to stdout")
    analyze_cmd.set_defaults(func=cmd_analyze)

    # Rank
    rank_cmd = subparsers.add_parser("rank", help="Print ranked results")
    rank_cmd.add_argument("--results", required=True, help="Results JSON from analyze")
    rank_cmd.add_argument("--sort", default=SortKey.MATCH_PERCENTAGE.value, choices=[k.value for k in SortKey])
    rank_cmd.add_argument("--filter", default="all", help="all, high-match, medium-match, low-match or a recommendation")
    rank_cmd.add_argument("--limit", type=int, default=20, help="Number of results to display")
    rank_cmd.set_defaults(func=cmd_rank)

    # Export
    export_cmd = subparsers.add_parser("export", help="Export results to CSV")
    export_cmd.add_argument("--results", required=True, help="Results JSON from analyze")
    export_cmd.add_argument("--out", default="results.csv", help="Output CSV path")
    export_cmd.add_argument("--sort", default=SortKey.MATCH_PERCENTAGE.value, choices=[k.value for k in SortKey])
    export_cmd.add_argument("--filter", default="all")
    export_cmd.set_defaults(func=cmd_export)

    # Applications
    app_parser = subparsers.add_parser("application", help="Application workflow commands")
    app_parser.add_argument("--store", default=DEFAULT_STORE, help="Application snapshot JSON")
    app_sub = app_parser.add_subparsers(dest="subcommand", required=True)

    create_cmd = app_sub.add_parser("create", help="Create a pending application")
    create_cmd.add_argument("--candidate", required=True, help="Candidate id")
    create_cmd.add_argument("--job-id", dest="job_id", required=True, help="Job id")
    create_cmd.add_argument("--id", help="Application id (generated when omitted)")
    create_cmd.add_argument("--analysis", help="Results JSON to attach an analysis from")
    create_cmd.add_argument("--resume", help="Resume id or file name within --analysis")
    create_cmd.set_defaults(func=cmd_application_create)

    act_cmd = app_sub.add_parser("act", help="Apply a workflow action")
    act_cmd.add_argument("--id", required=True, help="Application id")
    act_cmd.add_argument(
        "--action", required=True, choices=["review", "shortlist", "schedule-interview", "reject", "hire"]
    )
    act_cmd.add_argument("--notes", help="Note stored in the history entry")
    act_cmd.add_argument("--by", help="Who is making the change")
    act_cmd.set_defaults(func=cmd_application_act)

    show_cmd = app_sub.add_parser("show", help="Show one application or list them")
    show_cmd.add_argument("--id", help="Application id")
    show_cmd.add_argument("--status", help="Only list applications with this status")
    show_cmd.set_defaults(func=cmd_application_show)

    # Health
    health_cmd = subparsers.add_parser("health", help="Check the scoring backend configuration")
    health_cmd.add_argument("--config", help="YAML settings file")
    health_cmd.add_argument("--provider", choices=["openai", "gemini", "keyword"])
    health_cmd.set_defaults(func=cmd_health)
    return parser


def main(argv: List[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="[%(levelname)s] %(message)s",
    )
    try:
        return args.func(args)
    except HireflowError as exc:
        logger.error("%s", exc)
        return 2
    except FileNotFoundError as exc:
        logger.error("File not found: %s", exc.filename or exc)
        return 2


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
