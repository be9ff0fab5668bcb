"""
Filter chain deciding which findings are reported.

Three independent gates, AND-composed:

1. External filters (path / issue type / procedure), bypassed by findings
   tagged ``always_report``.
2. Kind/bucket policy, active only when filtering is on: INFO findings are
   dropped and null-dereference-class findings must fall in a reportable
   bucket.  Linter findings skip this gate.
3. Censorship rules, which attach a reason string instead of dropping the
   finding outright.  Text output drops censored findings when filtering
   is on; JSON output carries the reason.

Statistics use gate 1 only.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Iterable, Protocol, Sequence

from .config import FilterConfig
from .errors import UsageError
from .model import (
    EMPTY_VECTOR_ACCESS,
    FIELD_NOT_NULL_CHECKED,
    NULL_DEREFERENCE,
    PARAMETER_NOT_NULL_CHECKED,
    PREMATURE_NIL_TERMINATION,
    SKIP_FUNCTION,
    ErrClass,
    ErrKind,
    ErrorDesc,
    IssueType,
    ProcName,
)

logger = logging.getLogger(__name__)

NULL_DEREF_ISSUE_TYPES = frozenset(
    t.unique_id
    for t in (
        FIELD_NOT_NULL_CHECKED,
        NULL_DEREFERENCE,
        PARAMETER_NOT_NULL_CHECKED,
        PREMATURE_NIL_TERMINATION,
        EMPTY_VECTOR_ACCESS,
    )
)

# (source_file, description, issue_type) -> accepted
ErrorFilter = Callable[[str, ErrorDesc, IssueType], bool]


# ── Pattern matching ─────────────────────────────────────────────────────────

class PatternMatcher(Protocol):
    def matches(self, text: str) -> bool:
        ...


class RegexMatcher:
    """Matches when the regex matches at the start of the text."""

    def __init__(self, pattern: str):
        self.pattern = pattern
        self._regex = _compile(pattern)

    def matches(self, text: str) -> bool:
        return self._regex.match(text) is not None

    def __repr__(self) -> str:
        return f"RegexMatcher({self.pattern!r})"


# ── Censorship rules ─────────────────────────────────────────────────────────

_RULE_SEPARATOR = re.compile(r"(?<!\\):")


@dataclass(frozen=True)
class CensorRule:
    """
    ``issue type matches == type_polarity`` implies
    ``file matches == file_polarity``.  A finding for which the implication
    is false is censored with ``reason``.
    """
    issue_type: PatternMatcher
    issue_type_polarity: bool
    file: PatternMatcher
    file_polarity: bool
    reason: str

    def rejects(self, type_id: str, filename: str) -> bool:
        accepted = (
            self.issue_type_polarity != self.issue_type.matches(type_id)
            or self.file_polarity == self.file.matches(filename)
        )
        return not accepted

    @classmethod
    def parse(cls, text: str) -> "CensorRule":
        """
        Parse ``[!]<issue_type_regex>:[!]<filename_regex>:<reason>``.

        A colon inside either regex is written ``\\:``, which ``re`` also
        reads as a literal colon.  The reason is free text.
        """
        parts = _RULE_SEPARATOR.split(text, maxsplit=2)
        if len(parts) != 3:
            raise UsageError(
                f"invalid filter-report rule {text!r}: "
                "expected <issue_type_regex>:<filename_regex>:<reason>"
            )
        type_re, file_re, reason = parts
        type_polarity, type_re = _polarity(type_re)
        file_polarity, file_re = _polarity(file_re)
        return cls(RegexMatcher(type_re), type_polarity, RegexMatcher(file_re), file_polarity, reason)


def _polarity(pattern: str) -> tuple[bool, str]:
    if pattern.startswith("!"):
        return False, pattern[1:]
    return True, pattern


def censored_reason(issue_type: IssueType, filename: str, rules: Sequence[CensorRule]) -> str:
    """Reason of the first rejecting rule, or ``""`` if the issue is reportable."""
    for rule in rules:
        if rule.rejects(issue_type.unique_id, filename):
            logger.debug("censored %s in %s: %s", issue_type.unique_id, filename, rule.reason)
            return rule.reason
    return ""


# ── External filters ─────────────────────────────────────────────────────────

@dataclass
class Filters:
    path_filter: Callable[[str], bool] = lambda _path: True
    error_filter: Callable[[IssueType], bool] = lambda _issue_type: True
    proc_filter: Callable[[ProcName], bool] = lambda _proc_name: True


def create_filters(config: FilterConfig) -> Filters:
    """Build the path/issue-type/procedure predicates from the config."""
    whitelist = [_compile(p) for p in config.path_whitelist]
    blacklist = [_compile(p) for p in config.path_blacklist]
    enabled = set(config.enabled_issue_types)
    disabled = set(config.disabled_issue_types)
    skipped = [_compile(p) for p in config.skip_procedures]

    def path_filter(path: str) -> bool:
        if whitelist and not any(r.search(path) for r in whitelist):
            return False
        return not any(r.search(path) for r in blacklist)

    def error_filter(issue_type: IssueType) -> bool:
        if enabled and issue_type.unique_id not in enabled:
            return False
        return issue_type.unique_id not in disabled

    def proc_filter(proc_name: ProcName) -> bool:
        name = proc_name.to_string()
        return not any(r.search(name) for r in skipped)

    return Filters(path_filter, error_filter, proc_filter)


def _compile(pattern: str) -> "re.Pattern[str]":
    try:
        return re.compile(pattern)
    except re.error as e:
        raise UsageError(f"invalid regular expression {pattern!r}: {e}") from e


def make_bucket_classifier(buckets: Iterable[str]) -> Callable[[ErrorDesc], bool]:
    reportable = frozenset(buckets)

    def is_reportable_bucket(desc: ErrorDesc) -> bool:
        return desc.bucket in reportable

    return is_reportable_bucket


# ── Policy ───────────────────────────────────────────────────────────────────

@dataclass
class ReportPolicy:
    filters: Filters = field(default_factory=Filters)
    censor_rules: Sequence[CensorRule] = ()
    filtering: bool = True
    debug_mode: bool = False
    report_skipped_functions: bool = False
    is_reportable_bucket: Callable[[ErrorDesc], bool] = field(
        default_factory=lambda: make_bucket_classifier(["B1", "B2"])
    )
    model_dirs: Sequence[str] = ()

    @classmethod
    def from_config(cls, config: FilterConfig) -> "ReportPolicy":
        return cls(
            filters=create_filters(config),
            censor_rules=[CensorRule.parse(rule) for rule in config.filter_report],
            filtering=config.filtering,
            debug_mode=config.debug_mode,
            report_skipped_functions=config.report_skipped_functions,
            is_reportable_bucket=make_bucket_classifier(config.reportable_buckets),
            model_dirs=list(config.model_dirs),
        )

    def error_filter(self, proc_name: ProcName) -> ErrorFilter:
        """Gate 1 for one procedure.  Rebuilt per issue, never cached."""
        filters = self.filters

        def accept(source_file: str, desc: ErrorDesc, issue_type: IssueType) -> bool:
            if issue_type.unique_id == SKIP_FUNCTION.unique_id and not self.report_skipped_functions:
                return False
            if desc.tag_value("always_report") == "true":
                return True
            return (
                filters.path_filter(source_file)
                and filters.error_filter(issue_type)
                and filters.proc_filter(proc_name)
            )

        return accept

    def should_report(
        self,
        kind: ErrKind,
        issue_type: IssueType,
        desc: ErrorDesc,
        err_class: ErrClass,
    ) -> bool:
        """Gate 2: kind and bucket policy."""
        if not self.filtering or err_class is ErrClass.LINTERS:
            return True
        if kind is ErrKind.INFO:
            return False
        if issue_type.unique_id in NULL_DEREF_ISSUE_TYPES:
            return self.is_reportable_bucket(desc)
        return True

    def censored_reason(self, issue_type: IssueType, filename: str) -> str:
        """Gate 3."""
        return censored_reason(issue_type, filename, self.censor_rules)

    def is_model_file(self, filename: str) -> bool:
        return any(filename.startswith(prefix) for prefix in self.model_dirs)

    def is_reportable_source(self, filename: str) -> bool:
        return self.debug_mode or not self.is_model_file(filename)
