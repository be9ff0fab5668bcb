"""
Run-wide statistics.

RunStatistics is created once per run, updated once per analysis unit and
rendered at the end.  Every procedure is exactly one of verified, checked
or defective; ``timeout`` is an independent flag on top.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from .filters import ErrorFilter
from .model import AnalysisUnit, ErrKind, ErrLog, LocTraceElem, PreCategory, Spec
from .source import LineReader


def _indent(n: int) -> str:
    return "  " * n


def trace_to_lines(trace: list[LocTraceElem], line_reader: Optional[LineReader], indent: int) -> list[str]:
    """Render a trace with the source line of every step."""
    lines: list[str] = []
    for elem in trace:
        code = line_reader.from_loc(elem.loc) if line_reader is not None else None
        prefix = _indent(elem.level + indent)
        text = ""
        if elem.description:
            text = f"{prefix}{' ':>4}  // {elem.description}\n"
        text += f"{prefix}{elem.loc.line:04d}: {code or ''}"
        lines.extend(["", text])
    return lines


@dataclass
class RunStatistics:
    files: set[str] = field(default_factory=set)
    nchecked: int = 0
    ndefective: int = 0
    nerrors: int = 0
    ninfos: int = 0
    nadvice: int = 0
    nlikes: int = 0
    nprocs: int = 0
    nspecs: int = 0
    ntimeouts: int = 0
    nverified: int = 0
    nwarnings: int = 0
    saved_errors: list[str] = field(default_factory=list)

    def _process_err_log(
        self,
        err_log: ErrLog,
        source_file: str,
        error_filter: ErrorFilter,
        line_reader: Optional[LineReader],
    ) -> bool:
        found_errors = False
        for key, data in err_log:
            if not (key.in_footprint and error_filter(source_file, key.desc, key.issue_type)):
                continue
            if key.kind is ErrKind.ERROR:
                found_errors = True
                self.nerrors += 1
                self.saved_errors.extend([
                    f"{self.nerrors}: {key.issue_type.unique_id}",
                    f"  {data.loc.file}:{data.loc.line}",
                    f"  ({key.desc.to_plain_string()})",
                ])
                self.saved_errors.extend(trace_to_lines(list(data.loc_trace), line_reader, 1))
                self.saved_errors.append("")
            elif key.kind is ErrKind.WARNING:
                self.nwarnings += 1
            elif key.kind is ErrKind.INFO:
                self.ninfos += 1
            elif key.kind is ErrKind.ADVICE:
                self.nadvice += 1
            elif key.kind is ErrKind.LIKE:
                self.nlikes += 1
        return found_errors

    def process_unit(
        self,
        unit: AnalysisUnit,
        error_filter: ErrorFilter,
        line_reader: Optional[LineReader] = None,
    ) -> None:
        is_defective = self._process_err_log(unit.err_log, unit.loc.file, error_filter, line_reader)
        is_verified = bool(unit.specs) and not is_defective
        is_checked = not (is_defective or is_verified)
        failure = unit.stats.failure
        is_timeout = failure is not None and failure.is_timeout

        self.nprocs += 1
        self.nspecs += len(unit.specs)
        if is_verified:
            self.nverified += 1
        if is_checked:
            self.nchecked += 1
        if is_timeout:
            self.ntimeouts += 1
        if is_defective:
            self.ndefective += 1
        self.files.add(unit.loc.file)

    @property
    def num_files(self) -> int:
        return len(self.files)

    def render(self) -> str:
        lines = [
            f"Files: {self.num_files}",
            f"Specs: {self.nspecs}",
            f"Timeouts: {self.ntimeouts}",
            f"Procedures: {self.nprocs}",
            f"  Verified: {self.nverified}",
            f"  Checked: {self.nchecked}",
            f"  Defective: {self.ndefective}",
            f"Errors: {self.nerrors}",
            f"Warnings: {self.nwarnings}",
            f"Infos: {self.ninfos}",
            "",
            " -------------------",
            "",
            "Detailed Errors",
            "",
        ]
        lines.extend(self.saved_errors)
        return "\n".join(lines) + "\n"

    def to_dict(self) -> dict[str, Any]:
        return {
            "files": self.num_files,
            "specs": self.nspecs,
            "timeouts": self.ntimeouts,
            "procedures": self.nprocs,
            "verified": self.nverified,
            "checked": self.nchecked,
            "defective": self.ndefective,
            "errors": self.nerrors,
            "warnings": self.nwarnings,
            "infos": self.ninfos,
            "advice": self.nadvice,
            "likes": self.nlikes,
        }


# ── Precondition categories ──────────────────────────────────────────────────

def categorize_preconditions(specs: tuple[Spec, ...]) -> PreCategory:
    if not specs:
        return PreCategory.NO_PRES
    categories = {spec.pre_category for spec in specs}
    if categories == {PreCategory.EMPTY}:
        return PreCategory.EMPTY
    if categories <= {PreCategory.EMPTY, PreCategory.ONLY_ALLOCATION}:
        return PreCategory.ONLY_ALLOCATION
    return PreCategory.DATA_CONSTRAINTS


@dataclass
class PreconditionStats:
    counts: dict[PreCategory, int] = field(
        default_factory=lambda: {category: 0 for category in PreCategory}
    )

    def do_unit(self, unit: AnalysisUnit) -> str:
        """Count the unit and return its per-procedure report line."""
        category = categorize_preconditions(unit.specs)
        self.counts[category] += 1
        return f"Procedure: {unit.proc_name} footprint:{category.value}"

    def render(self) -> str:
        return "\n".join([
            "",
            "Precondition stats",
            f"Procedures with no preconditions: {self.counts[PreCategory.NO_PRES]}",
            f"Procedures with empty precondition: {self.counts[PreCategory.EMPTY]}",
            f"Procedures with only allocation conditions: {self.counts[PreCategory.ONLY_ALLOCATION]}",
            f"Procedures with data constraints: {self.counts[PreCategory.DATA_CONSTRAINTS]}",
        ])
