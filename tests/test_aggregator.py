"""
End-to-end tests for a reporting run over a results directory.
"""

import json

import pytest

from bugreport.aggregator import run_report, select_unit_files
from bugreport.config import ReportConfig
from bugreport.errors import InvalidInputError, UsageError
from bugreport.formats import FormatKind, FormatTarget, ReportKind

from builders import finding_doc, unit_doc, write_unit


def _json_target(tmp_path):
    return FormatTarget(ReportKind.ISSUES, FormatKind.JSON, tmp_path / "report.json")


def _run(tmp_path, config=None, **kwargs):
    config = config or ReportConfig()
    targets = kwargs.pop("targets", [_json_target(tmp_path)])
    stats = run_report(config, targets, tmp_path / "specs", **kwargs)
    return stats, json.loads((tmp_path / "report.json").read_text())


def test_template_duplicates_reported_once(tmp_path):
    results = tmp_path / "specs"
    for n, cls in enumerate(["Foo<int>", "Foo<string>"]):
        write_unit(results, f"u{n}.specs", unit_doc(
            "bar", class_name=cls, language="cpp", findings=[finding_doc()],
        ))
    stats, bugs = _run(tmp_path)
    assert len(bugs) == 1
    assert stats.nprocs == 2
    assert stats.ndefective == 2


def test_issues_are_ordered_by_location(tmp_path):
    results = tmp_path / "specs"
    write_unit(results, "a.specs", unit_doc("a", file="src/z.c", findings=[finding_doc(file="src/z.c", line=3)]))
    write_unit(results, "b.specs", unit_doc("b", findings=[finding_doc(line=30), finding_doc(line=12)]))
    _, bugs = _run(tmp_path)
    assert [(bug["file"], bug["line"]) for bug in bugs] == [("src/a.c", 12), ("src/a.c", 30), ("src/z.c", 3)]


def test_empty_results_directory(tmp_path):
    stats, bugs = _run(tmp_path)
    assert bugs == []
    assert stats.nprocs == 0


def test_lint_issues_follow_deduplicated_issues(tmp_path):
    write_unit(tmp_path / "specs", "a.specs", unit_doc("foo", findings=[finding_doc(line=50)]))
    lint_dir = tmp_path / "lint"
    lint_dir.mkdir()
    (lint_dir / "issues.json").write_text(json.dumps([
        {
            "proc_name": {"name": "viewDidLoad", "class_name": "Ctl", "language": "objc"},
            "err_log": [finding_doc("BAD_POINTER_COMPARISON", file="src/ctl.m", line=4)],
        },
    ]))
    _, bugs = _run(tmp_path, lint_dir=lint_dir)
    assert [bug["bug_type"] for bug in bugs] == ["NULL_DEREFERENCE", "BAD_POINTER_COMPARISON"]
    assert bugs[1]["file"] == "src/ctl.m"
    assert bugs[1]["procedure_start_line"] == 0
    assert bugs[1]["procedure"] == "Ctl_viewDidLoad"


def test_explicit_spec_files(tmp_path):
    results = tmp_path / "specs"
    first = write_unit(results, "a.specs", unit_doc("a", findings=[finding_doc(line=5)]))
    write_unit(results, "b.specs", unit_doc("b", findings=[finding_doc(line=6)]))
    stats, bugs = _run(tmp_path, spec_files=[str(first)])
    assert stats.nprocs == 1
    assert [bug["procedure"] for bug in bugs] == ["a"]


def test_spec_file_arguments_must_be_specs(tmp_path):
    with pytest.raises(UsageError):
        select_unit_files(tmp_path, ["notes.txt"])
    assert select_unit_files(tmp_path, ["."]) == []


def test_corrupt_unit_aborts_run_and_closes_report(tmp_path):
    results = tmp_path / "specs"
    write_unit(results, "a.specs", unit_doc("a", findings=[finding_doc()]))
    (results / "b.specs").write_text("{not json")
    with pytest.raises(InvalidInputError, match="b.specs"):
        run_report(ReportConfig(), [_json_target(tmp_path)], results)
    assert json.loads((tmp_path / "report.json").read_text()) == []


def test_skip_function_issues_are_suppressed(tmp_path):
    write_unit(tmp_path / "specs", "a.specs", unit_doc(findings=[
        finding_doc("SKIP_FUNCTION", kind="INFO"),
        finding_doc("SKIP_FUNCTION", kind="WARNING", line=11),
    ]))
    _, bugs = _run(tmp_path)
    assert bugs == []

    config = ReportConfig()
    config.filters.report_skipped_functions = True
    _, bugs = _run(tmp_path, config)
    assert [bug["line"] for bug in bugs] == [11]


def test_all_live_formats_in_one_run(tmp_path):
    write_unit(tmp_path / "specs", "a.specs", unit_doc(findings=[finding_doc()]))
    targets = [
        _json_target(tmp_path),
        FormatTarget(ReportKind.ISSUES, FormatKind.TEXT, tmp_path / "bugs.txt"),
        FormatTarget(ReportKind.PROCS, FormatKind.CSV, tmp_path / "procs.csv"),
        FormatTarget(ReportKind.STATS, FormatKind.CSV, tmp_path / "stats.txt"),
    ]
    _run(tmp_path, targets=targets)
    assert (tmp_path / "bugs.txt").read_text().startswith("src/a.c:10: ERROR: NULL_DEREFERENCE")
    assert len((tmp_path / "procs.csv").read_text().splitlines()) == 2
    assert "Errors: 1\n" in (tmp_path / "stats.txt").read_text()


def test_summaries_and_precondition_stats_printed(tmp_path, capsys):
    write_unit(tmp_path / "specs", "a.specs", unit_doc("foo"))
    config = ReportConfig()
    config.output.print_summaries = True
    config.output.precondition_stats = True
    _run(tmp_path, config)
    out = capsys.readouterr().out
    assert "Procedure: foo\n  signature: void foo()" in out
    assert "Procedure: foo footprint:Empty" in out
    assert "Procedures with empty precondition: 1" in out

    config.output.quiet = True
    _run(tmp_path, config)
    assert "signature" not in capsys.readouterr().out


def test_developer_mode_writes_perf_stats(tmp_path):
    write_unit(tmp_path / "specs", "a.specs", unit_doc(findings=[finding_doc()]))
    config = ReportConfig()
    config.filters.developer_mode = True
    _run(tmp_path, config)
    perf = json.loads((tmp_path / "specs" / "reporting_stats" / "reporting.json").read_text())
    assert perf["units"] == 1
    assert perf["issues_after_dedup"] == 1
    assert perf["statistics"]["errors"] == 1
