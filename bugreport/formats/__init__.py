"""
Output formats for bug reports.
"""

from .base import FormatKind, FormatTarget, ReportContext, ReportKind, ReportWriter
from .dispatch import LIVE_WRITERS, REPLAY_WRITERS, ReportDispatcher

__all__ = [
    "FormatKind",
    "FormatTarget",
    "ReportContext",
    "ReportKind",
    "ReportWriter",
    "LIVE_WRITERS",
    "REPLAY_WRITERS",
    "ReportDispatcher",
]
