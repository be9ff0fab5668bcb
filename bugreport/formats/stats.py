"""
Run statistics writers.

Both report the RunStatistics aggregate once, from ``write_footer``; they
take no items, the dispatcher updates the statistics per unit.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime

from .base import ReportWriter

# Structured events go to their own logger so they can be routed separately
events_logger = logging.getLogger("bugreport.events")


class StatsWriter(ReportWriter):
    """Takes no items; the dispatcher feeds units to the shared RunStatistics."""


class StatsCsvWriter(StatsWriter):
    """Human-readable summary report: header, counters, detailed errors."""

    def write_header(self) -> None:
        generated = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        self._write(f"Analysis Results -- generated {generated}\n\nSummary Report\n\n")

    def write_footer(self) -> None:
        self._write(self.context.statistics.render())


class StatsLogsWriter(StatsWriter):
    """One ``analysis_stats`` event on the ``bugreport.events`` logger."""

    needs_path = False

    def write_footer(self) -> None:
        payload = {"event": "analysis_stats", **self.context.statistics.to_dict()}
        events_logger.info(json.dumps(payload, sort_keys=True), extra={"stats": payload})
