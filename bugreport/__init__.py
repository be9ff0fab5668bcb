"""
bugreport: stable, deduplicated bug reports from per-procedure analysis results.

Reads the summaries an analysis engine leaves in a results directory and
produces:
1. Issues: JSON / text reports with a location-independent hash per finding
2. Procs: one CSV row per analyzed procedure
3. Stats: run-wide verified/checked/defective/timeout counts (CSV or event log)

A previously written JSON report can be replayed as text or as a
test-oriented column projection.
"""

__version__ = "0.1.0"
