#!/usr/bin/env python3
"""
CLI entrypoint for bugreport.

Usage:
    # Report on every unit in a results directory
    bugreport report --results-dir out/specs --issues-json report.json

    # Only some units
    bugreport report out/specs/foo.specs out/specs/bar.specs --issues-txt bugs.txt

    # Re-render a JSON report for regression tests
    bugreport replay report.json --issues-tests issues.exp

Returns:
    0: report written
    2: usage error
    3: error (bad input, unsupported format, missing output file)
"""

import argparse
import logging
import sys
from pathlib import Path

from . import __version__
from .aggregator import replay_report, run_report
from .config import ReportConfig
from .errors import ReportError, UsageError
from .formats import FormatKind, FormatTarget, ReportKind


# ── Shared arguments ─────────────────────────────────────────────────────────

def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--verbose", action="store_true", help="Verbose output")
    parser.add_argument(
        "--config", type=Path, default=None,
        help="Path to the config file (default: .bugreport.yml in the current directory)",
    )
    parser.add_argument(
        "--issues-txt", type=Path, default=None,
        help="Write issues as text, one per line",
    )
    parser.add_argument(
        "--issues-tests", type=Path, default=None,
        help="Write the issues field projection used by regression tests",
    )
    parser.add_argument(
        "--issues-fields", type=str, default=None,
        help="Comma-separated fields for --issues-tests",
    )


def _add_report_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "spec_files", nargs="*", metavar="SPECS_FILE",
        help=".specs files to report on (default: every unit in --results-dir)",
    )
    parser.add_argument(
        "--results-dir", type=Path, default=Path("."),
        help="Directory holding the .specs files (default: current directory)",
    )
    parser.add_argument(
        "--source-root", type=Path, default=Path("."),
        help="Root used to resolve source files echoed in the stats report",
    )
    parser.add_argument("--issues-json", type=Path, default=None, help="Write issues as a JSON array")
    parser.add_argument("--procs-csv", type=Path, default=None, help="Write per-procedure CSV")
    parser.add_argument("--stats-report", type=Path, default=None, help="Write the run summary report")
    parser.add_argument(
        "--log-events", action="store_true",
        help="Log run statistics as a structured event on the bugreport.events logger",
    )
    parser.add_argument("--lint-issues-dir", type=Path, default=None, help="Directory of lint issue files")
    parser.add_argument(
        "--no-filtering", action="store_true",
        help="Report every footprint issue, ignoring kind, bucket and censorship policy",
    )
    parser.add_argument("--debug", action="store_true", help="Also report issues in model files")
    parser.add_argument(
        "--developer-mode", action="store_true",
        help="Report pruned duplicates and write reporting perf stats",
    )
    parser.add_argument(
        "--report-skipped-functions", action="store_true",
        help="Do not suppress SKIP_FUNCTION issues",
    )
    parser.add_argument(
        "--filter-report", action="append", default=[], metavar="RULE",
        help="Censorship rule [!]<issue_type_regex>:[!]<filename_regex>:<reason> (repeatable)",
    )
    parser.add_argument("--precondition-stats", action="store_true", help="Print precondition stats")
    parser.add_argument("--print-summaries", action="store_true", help="Print per-procedure summaries")
    parser.add_argument("--quiet", action="store_true", help="Do not print per-procedure summaries")


# ── Helpers ──────────────────────────────────────────────────────────────────

def _setup_logging(args: argparse.Namespace) -> None:
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)
    if getattr(args, "log_events", False):
        logging.getLogger("bugreport.events").setLevel(logging.INFO)


def _load_config(args: argparse.Namespace) -> ReportConfig:
    """Config file first, command-line flags on top."""
    config = ReportConfig.load(Path.cwd(), args.config)
    if args.issues_fields:
        config.output.issues_fields = [f.strip() for f in args.issues_fields.split(",") if f.strip()]
    if args.command != "report":
        return config

    filters = config.filters
    if args.no_filtering:
        filters.filtering = False
    if args.debug:
        filters.debug_mode = True
    if args.developer_mode:
        filters.developer_mode = True
    if args.report_skipped_functions:
        filters.report_skipped_functions = True
    filters.filter_report.extend(args.filter_report)

    output = config.output
    if args.precondition_stats:
        output.precondition_stats = True
    if args.print_summaries:
        output.print_summaries = True
    if args.quiet:
        output.quiet = True
    return config


def _issue_targets(args: argparse.Namespace) -> list[FormatTarget]:
    targets = []
    if getattr(args, "issues_json", None) is not None:
        targets.append(FormatTarget(ReportKind.ISSUES, FormatKind.JSON, args.issues_json))
    if args.issues_tests is not None:
        targets.append(FormatTarget(ReportKind.ISSUES, FormatKind.TESTS, args.issues_tests))
    if args.issues_txt is not None:
        targets.append(FormatTarget(ReportKind.ISSUES, FormatKind.TEXT, args.issues_txt))
    return targets


def _report_targets(args: argparse.Namespace) -> list[FormatTarget]:
    targets = _issue_targets(args)
    if args.procs_csv is not None:
        targets.append(FormatTarget(ReportKind.PROCS, FormatKind.CSV, args.procs_csv))
    if args.stats_report is not None:
        targets.append(FormatTarget(ReportKind.STATS, FormatKind.CSV, args.stats_report))
    if args.log_events:
        targets.append(FormatTarget(ReportKind.STATS, FormatKind.LOGS))
    return targets


# ── Subcommand handlers ─────────────────────────────────────────────────────

def _handle_report(args: argparse.Namespace) -> int:
    """Handle ``bugreport report``."""
    config = _load_config(args)
    stats = run_report(
        config,
        _report_targets(args),
        args.results_dir,
        spec_files=args.spec_files,
        lint_dir=args.lint_issues_dir,
        source_root=args.source_root,
    )
    logging.getLogger(__name__).info(
        "%d procedures, %d errors, %d warnings", stats.nprocs, stats.nerrors, stats.nwarnings
    )
    return 0


def _handle_replay(args: argparse.Namespace) -> int:
    """Handle ``bugreport replay <report.json>``."""
    config = _load_config(args)
    replay_report(config, _issue_targets(args), args.report)
    return 0


# ── Main entry point ────────────────────────────────────────────────────────

def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="bugreport",
        description="Stable, deduplicated bug reports from analysis results",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command")

    # ── report subcommand ────────────────────────────────────────────────
    report_parser = subparsers.add_parser(
        "report",
        help="Aggregate analysis results into reports",
    )
    _add_report_arguments(report_parser)
    _add_common_arguments(report_parser)

    # ── replay subcommand ────────────────────────────────────────────────
    replay_parser = subparsers.add_parser(
        "replay",
        help="Re-render a previously written JSON issues report",
    )
    replay_parser.add_argument("report", type=Path, help="JSON report written by --issues-json")
    replay_parser.add_argument(
        "--issues-json", type=Path, default=None,
        help=argparse.SUPPRESS,
    )
    _add_common_arguments(replay_parser)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    _setup_logging(args)
    try:
        if args.command == "report":
            return _handle_report(args)
        elif args.command == "replay":
            return _handle_replay(args)
    except ReportError as e:
        print(f"Error: {e}", file=sys.stderr)
        if isinstance(e, UsageError):
            parser.print_usage(sys.stderr)
        return e.exit_code
    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
