"""
Exception hierarchy for the reporting pipeline.

Every error below aborts the whole run: continuing after any of them would
silently under-report.  Filtered findings, unmatched censorship rules and
empty runs are normal outcomes and never raise.
"""


class ReportError(Exception):
    """Base class for all fatal reporting errors."""

    exit_code = 3


class UsageError(ReportError):
    """Malformed command line or unreadable user-supplied report file."""

    exit_code = 2


class InvalidInputError(ReportError):
    """A unit cannot be loaded, or a finding references an invalid source file."""


class UnsupportedFormatError(ReportError):
    """A (report kind, format kind) pairing that has no writer."""


class MissingOutputError(ReportError):
    """A format that writes to a file was requested without a destination."""
