"""
Run aggregation: one full reporting pass over a results directory.

Units are loaded one at a time in sorted path order.  Per-unit formats and
statistics are written as each unit is processed, while issues are
collected, deduplicated once all units are in, and only then handed to
the issue writers.  Lint issues follow as an independent stream that is
never deduplicated.
"""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Any, Iterable, Optional

from .config import ReportConfig
from .dedup import sort_filter_issues
from .errors import UsageError
from .filters import ReportPolicy
from .formats import FormatTarget, ReportContext, ReportDispatcher
from .formats.replay import load_report, tests_sort_key
from .loader import SPECS_SUFFIX, iter_units, list_unit_files, load_lint_issues
from .model import AnalysisUnit, Issue, extract_issues
from .source import LineReader
from .stats import PreconditionStats, RunStatistics, categorize_preconditions

logger = logging.getLogger(__name__)

REPORTING_STATS_DIR = "reporting_stats"
PERF_STATS_FILE = "reporting.json"


def select_unit_files(results_dir: Path, spec_files: Iterable[str] = ()) -> list[Path]:
    """
    Explicit ``.specs`` arguments, or every unit in ``results_dir``.

    ``.`` is accepted as a synonym for "the whole results directory".
    """
    explicit = []
    for arg in spec_files:
        if arg == ".":
            continue
        if not arg.endswith(SPECS_SUFFIX):
            raise UsageError(f"file {arg}: arguments must be {SPECS_SUFFIX} files")
        explicit.append(Path(arg))
    if explicit:
        return sorted(explicit)
    return list_unit_files(results_dir)


def render_unit_summary(unit: AnalysisUnit) -> str:
    """Textual dump of one unit for the Summary report."""
    failure = unit.stats.failure
    lines = [
        f"Procedure: {unit.proc_name}",
        f"  signature: {unit.signature}",
        f"  location: {unit.loc.file}:{unit.loc.line}",
        f"  specs: {len(unit.specs)} ({categorize_preconditions(unit.specs).value})",
        f"  symops: {unit.stats.symops}",
        f"  failure: {failure.kind.value if failure is not None else 'NONE'}",
        f"  issues: {len(unit.err_log)}",
    ]
    for key, data in unit.err_log:
        lines.append(
            f"    {data.loc.line}: {key.kind.value} {key.issue_type.unique_id} "
            f"{key.desc.to_plain_string()}"
        )
    return "\n".join(lines)


def write_perf_stats(results_dir: Path, perf: dict[str, Any]) -> Path:
    stats_dir = Path(results_dir) / REPORTING_STATS_DIR
    stats_dir.mkdir(parents=True, exist_ok=True)
    path = stats_dir / PERF_STATS_FILE
    with open(path, "w") as f:
        json.dump(perf, f, indent=2)
    logger.debug("wrote reporting perf stats to %s", path)
    return path


def run_report(
    config: ReportConfig,
    targets: Iterable[FormatTarget],
    results_dir: Path,
    spec_files: Iterable[str] = (),
    lint_dir: Optional[Path] = None,
    source_root: Path = Path("."),
) -> RunStatistics:
    """Run one reporting pass and return its statistics."""
    started = time.monotonic()
    policy = ReportPolicy.from_config(config.filters)
    context = ReportContext(
        policy=policy,
        output=config.output,
        line_reader=LineReader(source_root),
        statistics=RunStatistics(),
    )
    dispatcher = ReportDispatcher(targets, context)
    paths = select_unit_files(results_dir, spec_files)
    logger.info("reporting on %d analysis units from %s", len(paths), results_dir)

    output = config.output
    precondition_stats = PreconditionStats() if output.precondition_stats else None
    all_issues: list[Issue] = []
    nlint = 0

    with dispatcher:
        for unit in iter_units(paths):
            dispatcher.process_unit(unit, policy.error_filter(unit.proc_name))
            if output.print_summaries and not output.quiet:
                print(render_unit_summary(unit))
            if precondition_stats is not None:
                print(precondition_stats.do_unit(unit))
            all_issues.extend(extract_issues(unit))

        issues = sort_filter_issues(all_issues, developer_mode=config.filters.developer_mode)
        for issue in issues:
            dispatcher.write_issue(issue, policy.error_filter(issue.proc_name))

        if precondition_stats is not None:
            print(precondition_stats.render())

        lint_issues = load_lint_issues(lint_dir)
        for proc_name in sorted(lint_issues, key=str):
            error_filter = policy.error_filter(proc_name)
            for key, data in lint_issues[proc_name]:
                dispatcher.write_issue(Issue(proc_name, None, key, data), error_filter)
                nlint += 1

    if config.filters.developer_mode:
        write_perf_stats(results_dir, {
            "elapsed_seconds": round(time.monotonic() - started, 3),
            "units": len(paths),
            "issues_collected": len(all_issues),
            "issues_after_dedup": len(issues),
            "lint_issues": nlint,
            "statistics": context.statistics.to_dict(),
        })
    return context.statistics


def replay_report(
    config: ReportConfig,
    targets: Iterable[FormatTarget],
    report_path: Path,
) -> int:
    """Re-render a JSON report; returns the number of issues written."""
    context = ReportContext(output=config.output)
    dispatcher = ReportDispatcher(targets, context, replay=True)
    records = sorted(load_report(report_path), key=tests_sort_key)
    with dispatcher:
        for record in records:
            dispatcher.write_record(record)
    return len(records)
