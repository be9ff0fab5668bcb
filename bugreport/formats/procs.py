"""
Per-procedure CSV report.
"""

from __future__ import annotations

from ..model import AnalysisUnit, ErrKind
from .base import ReportWriter

PROCS_CSV_COLUMNS = [
    "name",
    "name_id",
    "specs",
    "time",
    "to",
    "symop",
    "err",
    "file",
    "line",
    "loc",
    "top",
    "signature",
    "weight",
    "proof_coverage",
    "rank",
    "in_calls",
    "out_calls",
    "proof_trace",
]


def escape_csv(text: str) -> str:
    """Double quotes are doubled; non-ASCII characters become ``?``."""
    return "".join(
        '""' if ch == '"' else "?" if ord(ch) > 127 else ch
        for ch in text
    )


def procs_csv_row(unit: AnalysisUnit) -> str:
    failure = unit.stats.failure
    footprint_errors = unit.err_log.count(
        lambda key: key.kind is ErrKind.ERROR and key.in_footprint
    )
    values = [
        f'"{escape_csv(unit.proc_name.to_string())}"',
        f'"{escape_csv(unit.proc_name.to_filename())}"',
        str(len(unit.specs)),
        failure.kind.value if failure is not None else "NONE",
        str(unit.stats.symops),
        str(footprint_errors),
        unit.loc.file,
        str(unit.loc.line),
        f'"{escape_csv(unit.signature)}"',
        " ".join(str(line) for line in unit.visited_lines()),
    ]
    return ",".join(values) + "\n"


class ProcsCsvWriter(ReportWriter):
    def write_header(self) -> None:
        self._write(",".join(PROCS_CSV_COLUMNS) + "\n")

    def write_item(self, unit: AnalysisUnit) -> None:
        self._write(procs_csv_row(unit))
