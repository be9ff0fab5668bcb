"""
Live issue writers: JSON array of BugRecords and one-line-per-issue text.
"""

from __future__ import annotations

import json

from ..filters import ErrorFilter
from ..model import Issue
from ..records import issue_source, make_bug_record
from .base import ReportWriter


def _source_file(issue: Issue) -> str:
    loc = issue.proc_location if issue.proc_location is not None else issue.data.loc
    return loc.file


class IssuesWriter(ReportWriter):
    """Shared eligibility check for the issue formats."""

    def is_eligible(self, issue: Issue, error_filter: ErrorFilter, source_file: str) -> bool:
        key, data = issue.key, issue.data
        policy = self.context.policy
        return (
            key.in_footprint
            and error_filter(source_file, key.desc, key.issue_type)
            and policy.is_reportable_source(source_file)
            and policy.should_report(key.kind, key.issue_type, key.desc, data.err_class)
        )


class IssuesJsonWriter(IssuesWriter):
    """``[`` on open, comma-separated records, ``]`` on close."""

    def __init__(self, target, context):
        super().__init__(target, context)
        self.count = 0

    def write_header(self) -> None:
        self.count = 0
        self._write("[")

    def write_item(self, issue: Issue, error_filter: ErrorFilter) -> None:
        source_file, _ = issue_source(issue)
        if not self.is_eligible(issue, error_filter, source_file):
            return
        record = make_bug_record(
            issue,
            self.context.policy,
            include_tool_source_loc=self.context.output.include_tool_source_loc,
        )
        if self.count:
            self._write(",")
        self._write(json.dumps(record.to_dict()))
        self.count += 1

    def write_footer(self) -> None:
        self._write("]\n")


class IssuesTextWriter(IssuesWriter):
    """``file:line: KIND: TYPE qualifier``; censored issues are dropped while filtering."""

    def write_item(self, issue: Issue, error_filter: ErrorFilter) -> None:
        key, data = issue.key, issue.data
        source_file = _source_file(issue)
        if not self.is_eligible(issue, error_filter, source_file):
            return
        policy = self.context.policy
        if policy.filtering and policy.censored_reason(key.issue_type, source_file):
            return
        self._write(
            f"{data.loc.file}:{data.loc.line}: {key.kind.value}: "
            f"{key.issue_type.unique_id} {key.desc.to_plain_string()}\n"
        )
