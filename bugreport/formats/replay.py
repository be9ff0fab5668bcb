"""
Replay of a previously written Issues JSON report.

The report is parsed back into BugRecords, sorted into a stable order and
re-rendered as a field projection (Tests) or as text.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Callable

from ..errors import UsageError
from ..model import strip_crc
from ..records import POTENTIAL_EXCEPTION_MESSAGE, BugRecord
from .base import ReportWriter

logger = logging.getLogger(__name__)


def load_report(path: Path) -> list[BugRecord]:
    """Parse an Issues JSON report; any failure is a usage error."""
    try:
        with open(path, encoding="utf-8") as f:
            raw = json.load(f)
    except OSError as e:
        raise UsageError(f"Error reading '{path}': {e.strerror}") from e
    except json.JSONDecodeError as e:
        raise UsageError(f"Error reading '{path}': {e}") from e

    if not isinstance(raw, list):
        raise UsageError(f"Error reading '{path}': expected a JSON array of issues")
    try:
        records = [BugRecord.from_dict(item) for item in raw]
    except (TypeError, ValueError, AttributeError) as e:
        raise UsageError(f"Error reading '{path}': malformed issue ({e})") from e
    logger.debug("loaded %d issues from %s", len(records), path)
    return records


def tests_sort_key(record: BugRecord) -> tuple:
    return (
        record.file,
        record.procedure,
        record.line - record.procedure_start_line,
        record.bug_type,
        record.hash,
    )


def _render_trace(record: BugRecord) -> str:
    descriptions = [step.description for step in record.bug_trace if step.description]
    return f"[{', '.join(descriptions)}]"


def _plain(name: str) -> Callable[[BugRecord], str]:
    return lambda record: str(getattr(record, name))


ISSUE_FIELDS: dict[str, Callable[[BugRecord], str]] = {
    name: _plain(name)
    for name in (
        "bug_class",
        "kind",
        "bug_type",
        "qualifier",
        "severity",
        "visibility",
        "line",
        "column",
        "procedure",
        "procedure_id",
        "procedure_start_line",
        "file",
        "key",
        "hash",
    )
}
ISSUE_FIELDS.update({
    "bug_trace": _render_trace,
    "line_offset": lambda record: str(record.line - record.procedure_start_line),
    "procedure_id_without_crc": lambda record: strip_crc(record.procedure_id),
    "qualifier_contains_potential_exception_note": (
        lambda record: str(POTENTIAL_EXCEPTION_MESSAGE in record.qualifier).lower()
    ),
})


def render_fields(record: BugRecord, fields: list[str]) -> str:
    return ", ".join(ISSUE_FIELDS[name](record) for name in fields)


class TestsWriter(ReportWriter):
    """One line per issue with the configured fields joined by ``", "``."""

    __test__ = False

    def __init__(self, target, context):
        super().__init__(target, context)
        self.fields = list(context.output.issues_fields)
        unknown = [name for name in self.fields if name not in ISSUE_FIELDS]
        if unknown:
            raise UsageError(
                f"unknown issues field(s) {', '.join(unknown)}; "
                f"choose from {', '.join(sorted(ISSUE_FIELDS))}"
            )

    def write_item(self, record: BugRecord) -> None:
        self._write(render_fields(record, self.fields) + "\n")


class ReplayTextWriter(ReportWriter):
    def write_item(self, record: BugRecord) -> None:
        self._write(f"{record.file}:{record.line}: {record.kind}: {record.bug_type} {record.qualifier}\n")
