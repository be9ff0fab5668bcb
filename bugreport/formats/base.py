"""
Report and format kinds, output targets and the writer base class.

A writer owns one output stream for the run: ``open`` then
``write_header`` before the first unit, ``write_item`` per item, and
``write_footer`` then ``close`` after the last one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import IO, Any, Optional

from ..config import OutputConfig
from ..errors import MissingOutputError
from ..filters import ReportPolicy
from ..source import LineReader
from ..stats import RunStatistics

logger = logging.getLogger(__name__)


class ReportKind(Enum):
    ISSUES = "issues"
    PROCS = "procs"
    STATS = "stats"
    SUMMARY = "summary"


class FormatKind(Enum):
    JSON = "json"
    CSV = "csv"
    LOGS = "logs"
    TESTS = "tests"
    TEXT = "text"


@dataclass(frozen=True)
class FormatTarget:
    """A requested (report kind, format kind) pair and where it goes."""
    report_kind: ReportKind
    format_kind: FormatKind
    path: Optional[Path] = None

    def __str__(self) -> str:
        return f"{self.report_kind.value}/{self.format_kind.value}"


@dataclass
class ReportContext:
    """Run-scoped state shared by every writer of one run."""
    policy: ReportPolicy = field(default_factory=ReportPolicy)
    output: OutputConfig = field(default_factory=OutputConfig)
    line_reader: LineReader = field(default_factory=LineReader)
    statistics: RunStatistics = field(default_factory=RunStatistics)


class ReportWriter:
    """Base class: a file-backed writer with no header or footer."""

    needs_path = True

    def __init__(self, target: FormatTarget, context: ReportContext):
        self.target = target
        self.context = context
        self.stream: Optional[IO[str]] = None

    def open(self) -> None:
        if not self.needs_path:
            return
        if self.target.path is None:
            raise MissingOutputError(f"an output file is required for {self.target}")
        path = Path(self.target.path)
        path.parent.mkdir(parents=True, exist_ok=True)
        self.stream = open(path, "w", encoding="utf-8")
        logger.debug("opened %s for %s", path, self.target)

    def write_header(self) -> None:
        pass

    def write_item(self, item: Any, *args: Any) -> None:
        raise NotImplementedError

    def write_footer(self) -> None:
        pass

    def close(self) -> None:
        if self.stream is not None:
            self.stream.close()
            self.stream = None

    def _write(self, text: str) -> None:
        assert self.stream is not None, f"{self.target} written before open"
        self.stream.write(text)
