"""
Tests for the format writers and the dispatcher.
"""

import json
import logging

import pytest

from bugreport.config import FilterConfig
from bugreport.errors import MissingOutputError, UnsupportedFormatError
from bugreport.filters import ReportPolicy
from bugreport.formats import FormatKind, FormatTarget, ReportContext, ReportDispatcher, ReportKind
from bugreport.formats.procs import PROCS_CSV_COLUMNS, ProcsCsvWriter, escape_csv, procs_csv_row
from bugreport.model import ErrKind, Spec

from builders import accept_all, finding, make_issue, make_unit


def _context(**filters):
    return ReportContext(policy=ReportPolicy.from_config(FilterConfig(**filters)))


def _write_issues(tmp_path, issues, fmt=FormatKind.JSON, **filters):
    path = tmp_path / f"report.{fmt.value}"
    context = _context(**filters)
    with ReportDispatcher([FormatTarget(ReportKind.ISSUES, fmt, path)], context) as dispatcher:
        for issue in issues:
            dispatcher.write_issue(issue, context.policy.error_filter(issue.proc_name))
    return path.read_text()


# ── Issues JSON ──────────────────────────────────────────────────────────────

def test_json_empty_report_is_an_empty_array(tmp_path):
    assert _write_issues(tmp_path, []) == "[]\n"


def test_json_report_is_a_valid_array(tmp_path):
    """0, 1 and N issues all produce a well-formed array."""
    one = _write_issues(tmp_path, [make_issue(line=3)])
    assert one.startswith("[{") and one.endswith("}]\n")
    assert len(json.loads(one)) == 1

    many = _write_issues(tmp_path, [make_issue(line=n) for n in (3, 4, 5)])
    assert ",]" not in many
    assert [bug["line"] for bug in json.loads(many)] == [3, 4, 5]


def test_json_skips_ineligible_issues(tmp_path):
    issues = [
        make_issue(line=1),
        make_issue(line=2, in_footprint=False),
        make_issue(line=3, kind=ErrKind.INFO),
        make_issue(line=4, tags=(("bucket", "B5"),)),
        make_issue(line=5, proc_file="models/libc.c"),
    ]
    text = _write_issues(tmp_path, issues, model_dirs=["models/"])
    assert [bug["line"] for bug in json.loads(text)] == [1]


def test_disabling_filtering_never_reports_less(tmp_path):
    issues = [
        make_issue(line=1),
        make_issue(line=3, kind=ErrKind.INFO),
        make_issue(line=4, tags=(("bucket", "B5"),)),
        make_issue(line=5, proc_file="test/x.c"),
    ]
    rules = ["NULL_DEREFERENCE:!test/.*:flaky"]
    filtered = json.loads(_write_issues(tmp_path, issues, filter_report=rules))
    unfiltered = json.loads(_write_issues(tmp_path, issues, filter_report=rules, filtering=False))
    assert {bug["line"] for bug in filtered} <= {bug["line"] for bug in unfiltered}
    assert len(unfiltered) == 4


def test_json_keeps_censored_issues_with_reason(tmp_path):
    issues = [make_issue(proc_file="test/x.c")]
    bugs = json.loads(_write_issues(tmp_path, issues, filter_report=["NULL_DEREFERENCE:!test/.*:flaky"]))
    assert bugs[0]["censored_reason"] == "flaky"


# ── Issues text ──────────────────────────────────────────────────────────────

def test_text_line_format(tmp_path):
    text = _write_issues(tmp_path, [make_issue(line=10, qualifier="p is null")], FormatKind.TEXT)
    assert text == "src/a.c:10: ERROR: NULL_DEREFERENCE p is null.\n"


def test_text_drops_censored_issues_while_filtering(tmp_path):
    issues = [make_issue(proc_file="test/x.c", line=1), make_issue(proc_file="src/x.c", line=2)]
    rules = ["NULL_DEREFERENCE:!test/.*:flaky"]
    text = _write_issues(tmp_path, issues, FormatKind.TEXT, filter_report=rules)
    assert text == "src/x.c:2: ERROR: NULL_DEREFERENCE pointer p could be null and is dereferenced.\n"

    text = _write_issues(tmp_path, issues, FormatKind.TEXT, filter_report=rules, filtering=False)
    assert len(text.splitlines()) == 2


# ── Procs CSV ────────────────────────────────────────────────────────────────

def test_procs_csv_row():
    unit = make_unit(
        "foo",
        findings=[finding(), finding(kind=ErrKind.WARNING), finding(in_footprint=False)],
        symops=12,
        signature='int foo(char* "s")',
    )
    unit.specs = (Spec(visited=((1, (3, 1)), (2, (5,)))),)
    assert procs_csv_row(unit) == '"foo","foo",1,NONE,12,1,src/a.c,1,"int foo(char* ""s"")",1 3 5\n'


def test_procs_csv_file(tmp_path):
    path = tmp_path / "procs.csv"
    with ReportDispatcher([FormatTarget(ReportKind.PROCS, FormatKind.CSV, path)], _context()) as d:
        d.process_unit(make_unit("foo"), accept_all)
        d.process_unit(make_unit("bar"), accept_all)
    lines = path.read_text().splitlines()
    assert lines[0] == ",".join(PROCS_CSV_COLUMNS)
    assert len(PROCS_CSV_COLUMNS) == 18
    assert [line.split(",")[0] for line in lines[1:]] == ['"foo"', '"bar"']


def test_escape_csv():
    assert escape_csv('say "hi"') == 'say ""hi""'
    assert escape_csv("café") == "caf?"


# ── Stats ────────────────────────────────────────────────────────────────────

def test_stats_csv_report(tmp_path):
    path = tmp_path / "stats.txt"
    context = _context()
    with ReportDispatcher([FormatTarget(ReportKind.STATS, FormatKind.CSV, path)], context) as d:
        d.process_unit(make_unit(findings=[finding()]), accept_all)
    text = path.read_text()
    assert text.startswith("Analysis Results -- generated ")
    assert "\n\nSummary Report\n\nFiles: 1\n" in text
    assert "  Defective: 1\n" in text


def test_stats_logs_event(caplog):
    context = _context()
    target = FormatTarget(ReportKind.STATS, FormatKind.LOGS)
    with caplog.at_level(logging.INFO, logger="bugreport.events"):
        with ReportDispatcher([target], context) as d:
            d.process_unit(make_unit(), accept_all)
            d.process_unit(make_unit("bar", specs=0), accept_all)
    events = [r for r in caplog.records if r.name == "bugreport.events"]
    assert len(events) == 1
    payload = json.loads(events[0].getMessage())
    assert payload["event"] == "analysis_stats"
    assert payload["procedures"] == 2
    assert events[0].stats["verified"] == 1


# ── Dispatcher ───────────────────────────────────────────────────────────────

@pytest.mark.parametrize("report_kind, format_kind", [
    (ReportKind.ISSUES, FormatKind.CSV),
    (ReportKind.ISSUES, FormatKind.TESTS),
    (ReportKind.ISSUES, FormatKind.LOGS),
    (ReportKind.PROCS, FormatKind.LOGS),
    (ReportKind.PROCS, FormatKind.JSON),
    (ReportKind.STATS, FormatKind.TEXT),
    (ReportKind.SUMMARY, FormatKind.LOGS),
])
def test_unsupported_live_pairs_fail_before_opening(tmp_path, report_kind, format_kind):
    targets = [
        FormatTarget(ReportKind.ISSUES, FormatKind.JSON, tmp_path / "ok.json"),
        FormatTarget(report_kind, format_kind, tmp_path / "bad"),
    ]
    with pytest.raises(UnsupportedFormatError):
        ReportDispatcher(targets, _context())
    assert list(tmp_path.iterdir()) == []


def test_json_is_not_a_replay_format(tmp_path):
    target = FormatTarget(ReportKind.ISSUES, FormatKind.JSON, tmp_path / "out.json")
    with pytest.raises(UnsupportedFormatError):
        ReportDispatcher([target], _context(), replay=True)


def test_missing_output_path():
    with pytest.raises(MissingOutputError):
        ReportDispatcher([FormatTarget(ReportKind.ISSUES, FormatKind.JSON)], _context())


def test_json_array_closed_when_run_aborts(tmp_path):
    path = tmp_path / "report.json"
    context = _context()
    with pytest.raises(RuntimeError):
        with ReportDispatcher([FormatTarget(ReportKind.ISSUES, FormatKind.JSON, path)], context) as d:
            d.write_issue(make_issue(), accept_all)
            raise RuntimeError("decoding failed")
    assert len(json.loads(path.read_text())) == 1


def test_stats_writers_take_no_items(tmp_path):
    path = tmp_path / "stats.txt"
    context = _context()
    with ReportDispatcher([FormatTarget(ReportKind.STATS, FormatKind.CSV, path)], context) as d:
        [writer] = d.writers_for(ReportKind.STATS)
        with pytest.raises(NotImplementedError):
            writer.write_item(make_unit())
        d.process_unit(make_unit(), accept_all)
    assert context.statistics.nprocs == 1
    assert "Procedures: 1\n" in path.read_text()


def test_header_failure_finalizes_already_opened_writers(tmp_path, monkeypatch):
    def broken_header(self):
        raise OSError("disk full")

    monkeypatch.setattr(ProcsCsvWriter, "write_header", broken_header)
    targets = [
        FormatTarget(ReportKind.ISSUES, FormatKind.JSON, tmp_path / "report.json"),
        FormatTarget(ReportKind.PROCS, FormatKind.CSV, tmp_path / "procs.csv"),
    ]
    dispatcher = ReportDispatcher(targets, _context())
    with pytest.raises(OSError, match="disk full"):
        with dispatcher:
            pass
    assert json.loads((tmp_path / "report.json").read_text()) == []
    assert all(writer.stream is None for writer in dispatcher.writers)
