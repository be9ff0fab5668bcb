"""
Deduplication of issues across procedures.

Template/generic instantiations of the same code produce one finding per
instantiation, identical except for the procedure name (``Foo<int>::bar``
vs ``Foo<string>::bar``).  Issues are sorted with the procedure name left
out of the ordering, then each run of equal issues is collapsed to its
first member.
"""

from __future__ import annotations

import logging
from itertools import groupby
from typing import Iterable

from .model import Issue

logger = logging.getLogger(__name__)


def issue_sort_key(issue: Issue) -> tuple:
    """Total order on issues that ignores the procedure name."""
    key, data = issue.key, issue.data
    proc_loc = issue.proc_location
    return (
        (data.loc.file, data.loc.line, data.loc.col),
        (proc_loc.file, proc_loc.line, proc_loc.col) if proc_loc is not None else (),
        key.kind.rank,
        key.issue_type.unique_id,
        key.desc.descriptions,
        key.desc.tags,
        key.severity,
        key.in_footprint,
    )


def sort_filter_issues(issues: Iterable[Issue], *, developer_mode: bool = False) -> list[Issue]:
    """Sort issues and keep one per group of issues equal up to procedure name."""
    issues = list(issues)
    deduplicated = [
        next(group)
        for _, group in groupby(sorted(issues, key=issue_sort_key), key=issue_sort_key)
    ]
    pruned = len(issues) - len(deduplicated)
    if developer_mode and pruned > 0:
        logger.warning("Note: pruned %d duplicate issues", pruned)
    return deduplicated
