"""
Format dispatch: capability tables and the per-run writer set.

Every requested target is checked against the table for the run mode when
the dispatcher is built, so an unsupported pairing or a missing output
file fails before any stream is opened.  Inside ``with``, every opened
writer is finalized (footer, then close) on both the normal and the error
path.  Finalization is LIFO over registration: procs, then issues, then
stats, whose footer needs the fully accumulated RunStatistics.
"""

from __future__ import annotations

import logging
from contextlib import ExitStack
from typing import Iterable, Optional

from ..errors import MissingOutputError, UnsupportedFormatError
from ..filters import ErrorFilter
from ..model import AnalysisUnit, Issue
from ..records import BugRecord
from .base import FormatKind, FormatTarget, ReportContext, ReportKind, ReportWriter
from .issues import IssuesJsonWriter, IssuesTextWriter
from .procs import ProcsCsvWriter
from .replay import ReplayTextWriter, TestsWriter
from .stats import StatsCsvWriter, StatsLogsWriter

logger = logging.getLogger(__name__)

WriterTable = dict[tuple[ReportKind, FormatKind], type[ReportWriter]]

LIVE_WRITERS: WriterTable = {
    (ReportKind.ISSUES, FormatKind.JSON): IssuesJsonWriter,
    (ReportKind.ISSUES, FormatKind.TEXT): IssuesTextWriter,
    (ReportKind.PROCS, FormatKind.CSV): ProcsCsvWriter,
    (ReportKind.STATS, FormatKind.CSV): StatsCsvWriter,
    (ReportKind.STATS, FormatKind.LOGS): StatsLogsWriter,
}

REPLAY_WRITERS: WriterTable = {
    (ReportKind.ISSUES, FormatKind.TESTS): TestsWriter,
    (ReportKind.ISSUES, FormatKind.TEXT): ReplayTextWriter,
}

# Stats first so that it is finalized last
_REGISTRATION_ORDER = [ReportKind.STATS, ReportKind.ISSUES, ReportKind.PROCS, ReportKind.SUMMARY]


def writer_class(table: WriterTable, target: FormatTarget, mode: str) -> type[ReportWriter]:
    cls = table.get((target.report_kind, target.format_kind))
    if cls is None:
        raise UnsupportedFormatError(
            f"printing {target.report_kind.value} in {target.format_kind.value} format "
            f"is not implemented in {mode} mode"
        )
    if cls.needs_path and target.path is None:
        raise MissingOutputError(f"an output file is required for {target}")
    return cls


class ReportDispatcher:
    """Owns every output stream of one run."""

    def __init__(
        self,
        targets: Iterable[FormatTarget],
        context: ReportContext,
        *,
        replay: bool = False,
    ):
        table = REPLAY_WRITERS if replay else LIVE_WRITERS
        mode = "replay" if replay else "live"
        resolved = [(target, writer_class(table, target, mode)) for target in targets]
        resolved.sort(key=lambda pair: _REGISTRATION_ORDER.index(pair[0].report_kind))

        self.context = context
        self.writers: list[ReportWriter] = [cls(target, context) for target, cls in resolved]
        self._stack: Optional[ExitStack] = None

    def writers_for(self, report_kind: ReportKind) -> list[ReportWriter]:
        return [w for w in self.writers if w.target.report_kind is report_kind]

    # ── Lifecycle ────────────────────────────────────────────────────────

    def __enter__(self) -> "ReportDispatcher":
        with ExitStack() as stack:
            for writer in self.writers:
                writer.open()
                stack.push(_finalizer(writer))
                writer.write_header()
            self._stack = stack.pop_all()
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        stack, self._stack = self._stack, None
        if stack is None:
            return False
        if exc_type is None:
            stack.close()
            return False
        # finalizers see the pending exception
        return stack.__exit__(exc_type, exc, tb)

    # ── Items ────────────────────────────────────────────────────────────

    def process_unit(self, unit: AnalysisUnit, error_filter: ErrorFilter) -> None:
        """Per-unit formats and statistics."""
        for writer in self.writers_for(ReportKind.PROCS):
            writer.write_item(unit)
        self.context.statistics.process_unit(unit, error_filter, self.context.line_reader)

    def write_issue(self, issue: Issue, error_filter: ErrorFilter) -> None:
        for writer in self.writers_for(ReportKind.ISSUES):
            writer.write_item(issue, error_filter)

    def write_record(self, record: BugRecord) -> None:
        for writer in self.writers_for(ReportKind.ISSUES):
            writer.write_item(record)


def _finalizer(writer: ReportWriter):
    """Exit callback writing the footer and closing ``writer``."""

    def finalize(exc_type, exc, tb) -> bool:
        try:
            writer.write_footer()
        except Exception:
            if exc_type is None:
                raise
            logger.exception("could not finalize %s after an earlier error", writer.target)
        finally:
            writer.close()
        return False

    return finalize
