"""
Builders for units, issues and on-disk documents used across the tests.
"""

import json
from pathlib import Path

from bugreport.model import (
    AnalysisUnit,
    ErrClass,
    ErrKind,
    ErrLog,
    ErrorDesc,
    FindingData,
    FindingKey,
    Issue,
    IssueType,
    Language,
    Location,
    LocTraceElem,
    ProcName,
    Spec,
    UnitStats,
)


def finding(
    type_id="NULL_DEREFERENCE",
    kind=ErrKind.ERROR,
    qualifier="pointer p could be null and is dereferenced",
    tags=(("bucket", "B1"),),
    file="src/a.c",
    line=10,
    trace=(),
    in_footprint=True,
    err_class=ErrClass.CHECKER,
    node_key="node-1",
):
    key = FindingKey(
        kind=kind,
        issue_type=IssueType(type_id),
        desc=ErrorDesc((qualifier,), tuple(tags)),
        severity="HIGH",
        in_footprint=in_footprint,
    )
    data = FindingData(
        loc=Location(file, line, 4),
        loc_trace=tuple(trace),
        err_class=err_class,
        node_key=node_key,
    )
    return key, data


def step(line, description="", level=0, file="src/a.c", tags=()):
    return LocTraceElem(level, Location(file, line, 1), description, tuple(tags))


def make_unit(
    name="foo",
    file="src/a.c",
    line=1,
    findings=(),
    specs=1,
    failure=None,
    class_name="",
    language=Language.C,
    symops=0,
    signature="",
):
    return AnalysisUnit(
        proc_name=ProcName(name, class_name, language=language),
        loc=Location(file, line),
        signature=signature,
        specs=tuple(Spec() for _ in range(specs)),
        stats=UnitStats(symops=symops, failure=failure),
        err_log=ErrLog(findings),
    )


def make_issue(name="foo", class_name="", proc_file="src/a.c", proc_line=1, **finding_args):
    finding_args.setdefault("file", proc_file)
    key, data = finding(**finding_args)
    proc_name = ProcName(name, class_name, language=Language.CPP if class_name else Language.C)
    return Issue(proc_name, Location(proc_file, proc_line), key, data)


def accept_all(_source_file, _desc, _issue_type):
    return True


# ── On-disk documents ────────────────────────────────────────────────────────

def finding_doc(
    type_id="NULL_DEREFERENCE",
    kind="ERROR",
    qualifier="pointer p could be null and is dereferenced",
    file="src/a.c",
    line=10,
    bucket="B1",
    trace=(),
):
    return {
        "key": {
            "kind": kind,
            "issue_type": {"unique_id": type_id},
            "desc": {"descriptions": [qualifier], "tags": {"bucket": bucket}},
            "severity": "HIGH",
            "in_footprint": True,
        },
        "data": {
            "loc": {"file": file, "line": line, "col": 4},
            "loc_trace": list(trace),
            "visibility": "user",
            "err_class": "checker",
            "node_key": f"{file}:{line}",
        },
    }


def unit_doc(name="foo", file="src/a.c", line=1, findings=(), class_name="", language="c", specs=1):
    return {
        "proc_name": {"name": name, "class_name": class_name, "language": language},
        "signature": f"void {name}()",
        "loc": {"file": file, "line": line},
        "specs": [{"visited": [[1, [line + 1, line + 2]]], "pre_category": "Empty"}] * specs,
        "stats": {"symops": 42, "failure": None},
        "err_log": list(findings),
    }


def write_unit(results_dir, filename, doc):
    results_dir = Path(results_dir)
    results_dir.mkdir(parents=True, exist_ok=True)
    path = results_dir / filename
    path.write_text(json.dumps(doc))
    return path


def record_dict(**overrides):
    record = {
        "bug_class": "checker",
        "kind": "ERROR",
        "bug_type": "NULL_DEREFERENCE",
        "qualifier": "pointer p could be null and is dereferenced.",
        "severity": "HIGH",
        "visibility": "user",
        "line": 10,
        "column": 4,
        "procedure": "foo",
        "procedure_id": "foo",
        "procedure_start_line": 1,
        "file": "src/a.c",
        "bug_trace": [],
        "key": "k",
        "hash": "h",
    }
    record.update(overrides)
    return record
