"""
Configuration file loader for ``.bugreport.yml``.

Provides defaults so the reporter works out of the box without a config
file, while allowing per-repo customisation of filtering and output.
Command-line flags are applied on top by ``bugreport.cli``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from .errors import UsageError

DEFAULT_ISSUES_FIELDS = [
    "file",
    "procedure",
    "line_offset",
    "bug_type",
    "bug_trace",
]


@dataclass
class FilterConfig:
    filtering: bool = True
    debug_mode: bool = False
    developer_mode: bool = False
    report_skipped_functions: bool = False
    path_whitelist: list[str] = field(default_factory=list)
    path_blacklist: list[str] = field(default_factory=list)
    enabled_issue_types: list[str] = field(default_factory=list)
    disabled_issue_types: list[str] = field(default_factory=list)
    skip_procedures: list[str] = field(default_factory=list)
    filter_report: list[str] = field(default_factory=list)
    reportable_buckets: list[str] = field(default_factory=lambda: ["B1", "B2"])
    model_dirs: list[str] = field(default_factory=list)


@dataclass
class OutputConfig:
    issues_fields: list[str] = field(default_factory=lambda: list(DEFAULT_ISSUES_FIELDS))
    quiet: bool = False
    print_summaries: bool = False
    precondition_stats: bool = False
    include_tool_source_loc: bool = False


@dataclass
class ReportConfig:
    """Top-level configuration for bugreport."""
    filters: FilterConfig = field(default_factory=FilterConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    @classmethod
    def load(cls, repo_root: Path, explicit: Optional[Path] = None) -> "ReportConfig":
        """Load config from .bugreport.yml, falling back to defaults."""
        if explicit is not None:
            config_path = Path(explicit)
            if not config_path.exists():
                raise UsageError(f"config file not found: {config_path}")
        else:
            config_path = repo_root / ".bugreport.yml"
            if not config_path.exists():
                config_path = repo_root / ".bugreport.yaml"
            if not config_path.exists():
                return cls()

        with open(config_path) as f:
            try:
                raw = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise UsageError(f"cannot parse {config_path}: {e}") from e

        if not isinstance(raw, dict):
            raise UsageError(f"{config_path}: top level must be a mapping")
        return cls._from_dict(raw)

    @classmethod
    def _from_dict(cls, raw: dict[str, Any]) -> "ReportConfig":
        filters_raw = raw.get("filters", {}) or {}
        output_raw = raw.get("output", {}) or {}

        defaults = FilterConfig()
        filters = FilterConfig(
            filtering=_get(filters_raw, "filtering", defaults.filtering),
            debug_mode=_get(filters_raw, "debug-mode", defaults.debug_mode),
            developer_mode=_get(filters_raw, "developer-mode", defaults.developer_mode),
            report_skipped_functions=_get(
                filters_raw, "report-skipped-functions", defaults.report_skipped_functions
            ),
            path_whitelist=list(_get(filters_raw, "path-whitelist", [])),
            path_blacklist=list(_get(filters_raw, "path-blacklist", [])),
            enabled_issue_types=list(_get(filters_raw, "enabled-issue-types", [])),
            disabled_issue_types=list(_get(filters_raw, "disabled-issue-types", [])),
            skip_procedures=list(_get(filters_raw, "skip-procedures", [])),
            filter_report=list(_get(filters_raw, "filter-report", [])),
            reportable_buckets=list(
                _get(filters_raw, "reportable-buckets", defaults.reportable_buckets)
            ),
            model_dirs=list(_get(filters_raw, "model-dirs", [])),
        )

        output = OutputConfig(
            issues_fields=list(_get(output_raw, "issues-fields", DEFAULT_ISSUES_FIELDS)),
            quiet=_get(output_raw, "quiet", False),
            print_summaries=_get(output_raw, "print-summaries", False),
            precondition_stats=_get(output_raw, "precondition-stats", False),
            include_tool_source_loc=_get(output_raw, "include-tool-source-loc", False),
        )
        return cls(filters=filters, output=output)


def _get(section: dict[str, Any], key: str, default: Any) -> Any:
    """Look up ``key`` in kebab-case, then snake_case."""
    if key in section:
        return section[key]
    return section.get(key.replace("-", "_"), default)
