"""
BugRecord: the serializable form of a reported issue.

Built from an Issue plus the report policy (hash, censorship reason,
resolved qualifier).  Also parsed back from a JSON report for replay.
"""

from __future__ import annotations

import hashlib
from dataclasses import asdict, dataclass, field
from typing import Any, Optional, Sequence

from .errors import InvalidInputError
from .filters import ReportPolicy
from .hashing import compute_hash
from .model import RESOURCE_LEAK, ErrKind, Issue, LocTraceElem

POTENTIAL_EXCEPTION_MESSAGE = "potential exception at line"


@dataclass
class TraceRecord:
    level: int
    filename: str
    line_number: int
    column_number: int
    description: str


@dataclass
class BugRecord:
    bug_class: str
    kind: str
    bug_type: str
    qualifier: str
    severity: str
    visibility: str
    line: int
    column: int
    procedure: str
    procedure_id: str
    procedure_start_line: int
    file: str
    bug_trace: list[TraceRecord] = field(default_factory=list)
    key: str = ""
    hash: str = ""
    dotty: Optional[str] = None
    tool_source_loc: Optional[dict[str, Any]] = None
    bug_type_hum: str = ""
    linters_def_file: Optional[str] = None
    doc_url: Optional[str] = None
    censored_reason: str = ""
    access: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        """JSON object; optional fields that are unset are left out."""
        return {name: value for name, value in asdict(self).items() if value is not None}

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "BugRecord":
        data = dict(raw)
        data["bug_trace"] = [TraceRecord(**step) for step in data.get("bug_trace", [])]
        known = cls.__dataclass_fields__
        record = cls(**{name: value for name, value in data.items() if name in known})
        _check_types(record, int, ("line", "column", "procedure_start_line"))
        _check_types(record, str, ("file", "procedure", "bug_type", "hash"))
        for step in record.bug_trace:
            _check_types(step, int, ("level", "line_number", "column_number"))
        return record


def _check_types(obj: Any, expected: type, names: Sequence[str]) -> None:
    for name in names:
        value = getattr(obj, name)
        if not isinstance(value, expected) or isinstance(value, bool):
            raise ValueError(f"field '{name}' must be {expected.__name__}, got {value!r}")


# ── Qualifier and trace ──────────────────────────────────────────────────────

def compute_local_exception_line(trace: Sequence[LocTraceElem]) -> Optional[int]:
    """Line of the first exception-tagged step, if it is in the procedure itself."""
    for elem in trace:
        if "exception" in elem.tags:
            return elem.loc.line if elem.level == 0 else None
    return None


def resolve_qualifier(issue: Issue) -> str:
    base = issue.key.desc.to_plain_string()
    if issue.key.issue_type.unique_id != RESOURCE_LEAK.unique_id:
        return base
    line = compute_local_exception_line(issue.data.loc_trace)
    if line is None:
        return base
    return f"{base}\nNote: {POTENTIAL_EXCEPTION_MESSAGE} {line}"


def trace_records(trace: Sequence[LocTraceElem], kind: ErrKind) -> list[TraceRecord]:
    if kind is ErrKind.INFO:
        return []
    return [
        TraceRecord(
            level=elem.level,
            filename=elem.loc.file,
            line_number=elem.loc.line,
            column_number=elem.loc.col,
            description=elem.description,
        )
        for elem in trace
    ]


def issue_source(issue: Issue) -> tuple[str, int]:
    """
    (source file, procedure start line) for an issue.

    Lint issues carry no procedure location; their own location is used
    with start line 0.  An empty file name is an input error.
    """
    if issue.proc_location is not None:
        source_file, start_line = issue.proc_location.file, issue.proc_location.line
    else:
        source_file, start_line = issue.data.loc.file, 0
    if not source_file:
        raise InvalidInputError(
            f"invalid source file for {issue.key.issue_type.unique_id} "
            f"in {issue.proc_name}: {issue.key.desc.to_plain_string()}"
        )
    return source_file, start_line


def make_bug_record(
    issue: Issue,
    policy: ReportPolicy,
    *,
    include_tool_source_loc: bool = False,
) -> BugRecord:
    key, data = issue.key, issue.data
    source_file, start_line = issue_source(issue)
    kind = key.kind.value
    bug_type = key.issue_type.unique_id
    qualifier = resolve_qualifier(issue)

    tool_loc = None
    if include_tool_source_loc and data.tool_source_loc is not None:
        tool_loc = asdict(data.tool_source_loc)

    return BugRecord(
        bug_class=data.err_class.value,
        kind=kind,
        bug_type=bug_type,
        qualifier=qualifier,
        severity=key.severity,
        visibility=data.visibility.value,
        line=data.loc.line,
        column=data.loc.col,
        procedure=issue.proc_name.to_string(),
        procedure_id=issue.proc_name.to_filename(),
        procedure_start_line=start_line,
        file=source_file,
        bug_trace=trace_records(data.loc_trace, key.kind),
        key=compute_node_key(data.node_key),
        hash=compute_hash(kind, bug_type, issue.proc_name, source_file, qualifier),
        dotty=key.desc.dotty,
        tool_source_loc=tool_loc,
        bug_type_hum=key.issue_type.hum,
        linters_def_file=data.linters_def_file,
        doc_url=data.doc_url,
        censored_reason=policy.censored_reason(key.issue_type, source_file),
        access=data.access,
    )


def compute_node_key(node_key: str) -> str:
    return hashlib.md5(node_key.encode("utf-8")).hexdigest()
