"""
Loading analysis units and lint issues from a results directory.

Each ``<proc>.specs`` file is a JSON document describing one procedure.
Units are loaded one at a time so only the current one is held in memory.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable, Iterator, Optional

from .errors import InvalidInputError
from .model import (
    AnalysisUnit,
    ErrClass,
    ErrKind,
    ErrLog,
    ErrorDesc,
    Failure,
    FailureKind,
    FindingData,
    FindingKey,
    IssueType,
    Language,
    Location,
    LocTraceElem,
    PreCategory,
    ProcName,
    Spec,
    ToolSourceLoc,
    UnitStats,
    Visibility,
)

logger = logging.getLogger(__name__)

SPECS_SUFFIX = ".specs"


def list_unit_files(results_dir: Path) -> list[Path]:
    """All ``.specs`` files in ``results_dir``; empty when it does not exist."""
    results_dir = Path(results_dir)
    if not results_dir.is_dir():
        return []
    return sorted(p for p in results_dir.iterdir() if p.is_file() and p.name.endswith(SPECS_SUFFIX))


def iter_units(paths: Iterable[Path]) -> Iterator[AnalysisUnit]:
    """Load units in sorted path order, one at a time."""
    for path in sorted(Path(p) for p in paths):
        yield load_unit(path)


def load_unit(path: Path) -> AnalysisUnit:
    raw = _read_json(path)
    try:
        return unit_from_dict(raw)
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise InvalidInputError(f"cannot decode analysis unit {path}: {e!r}") from e


def load_lint_issues(lint_dir: Optional[Path]) -> dict[ProcName, ErrLog]:
    """
    Read the lint side-channel: JSON files holding a list of
    ``{"proc_name": ..., "err_log": [...]}`` entries.
    """
    issues: dict[ProcName, ErrLog] = {}
    if lint_dir is None or not Path(lint_dir).is_dir():
        return issues
    for path in sorted(Path(lint_dir).glob("*.json")):
        raw = _read_json(path)
        try:
            for entry in raw:
                proc_name = proc_name_from_dict(entry["proc_name"])
                err_log = issues.setdefault(proc_name, ErrLog())
                for key, data in _err_log_entries(entry.get("err_log", [])):
                    err_log.add(key, data)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise InvalidInputError(f"cannot decode lint issues {path}: {e!r}") from e
    logger.debug("loaded lint issues for %d procedures", len(issues))
    return issues


def _read_json(path: Path) -> Any:
    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except OSError as e:
        raise InvalidInputError(f"cannot open file {path}: {e.strerror}") from e
    except json.JSONDecodeError as e:
        raise InvalidInputError(f"cannot decode {path}: {e}") from e


# ── Decoding ─────────────────────────────────────────────────────────────────

def proc_name_from_dict(raw: Any) -> ProcName:
    if isinstance(raw, str):
        return ProcName(raw)
    return ProcName(
        name=raw["name"],
        class_name=raw.get("class_name", ""),
        params=tuple(raw.get("params", ())),
        return_type=raw.get("return_type", ""),
        language=Language(raw.get("language", "c")),
        objc_instance_method=raw.get("objc_instance_method", raw.get("kind") == "instance"),
    )


def location_from_dict(raw: dict[str, Any]) -> Location:
    return Location(raw["file"], int(raw["line"]), int(raw.get("col", -1)))


def _desc_from_dict(raw: Any) -> ErrorDesc:
    if isinstance(raw, str):
        return ErrorDesc((raw,))
    return ErrorDesc(
        descriptions=tuple(raw.get("descriptions", ())),
        tags=_tags_from_raw(raw.get("tags", {})),
        dotty=raw.get("dotty"),
    )


def _tags_from_raw(raw: Any) -> tuple[tuple[str, str], ...]:
    pairs = raw.items() if isinstance(raw, dict) else raw
    return tuple((str(name), str(value)) for name, value in pairs)


def _key_from_dict(raw: dict[str, Any]) -> FindingKey:
    issue_type = raw["issue_type"]
    if isinstance(issue_type, str):
        issue_type = IssueType(issue_type)
    else:
        issue_type = IssueType(issue_type["unique_id"], issue_type.get("hum", ""))
    return FindingKey(
        kind=ErrKind(raw["kind"]),
        issue_type=issue_type,
        desc=_desc_from_dict(raw.get("desc", "")),
        severity=raw.get("severity", ""),
        in_footprint=raw.get("in_footprint", True),
    )


def _data_from_dict(raw: dict[str, Any]) -> FindingData:
    tool_loc = raw.get("tool_source_loc")
    return FindingData(
        loc=location_from_dict(raw["loc"]),
        loc_trace=tuple(
            LocTraceElem(
                level=step.get("level", 0),
                loc=location_from_dict(step["loc"]),
                description=step.get("description", ""),
                tags=tuple(step.get("tags", ())),
            )
            for step in raw.get("loc_trace", ())
        ),
        visibility=Visibility(raw.get("visibility", "user")),
        err_class=ErrClass(raw.get("err_class", "unknown")),
        node_key=raw.get("node_key", ""),
        linters_def_file=raw.get("linters_def_file"),
        doc_url=raw.get("doc_url"),
        access=raw.get("access"),
        tool_source_loc=ToolSourceLoc(**tool_loc) if tool_loc else None,
    )


def _err_log_entries(raw: list[dict[str, Any]]) -> Iterator[tuple[FindingKey, FindingData]]:
    for entry in raw:
        yield _key_from_dict(entry["key"]), _data_from_dict(entry["data"])


def unit_from_dict(raw: dict[str, Any]) -> AnalysisUnit:
    if not isinstance(raw, dict):
        raise TypeError(f"expected a JSON object, got {type(raw).__name__}")
    stats_raw = raw.get("stats", {})
    failure_raw = stats_raw.get("failure")
    failure = None
    if failure_raw:
        failure = Failure(FailureKind(failure_raw["kind"]), failure_raw.get("message", ""))

    specs = tuple(
        Spec(
            visited=tuple((int(node), tuple(lines)) for node, lines in spec.get("visited", ())),
            pre_category=PreCategory(spec.get("pre_category", PreCategory.DATA_CONSTRAINTS.value)),
        )
        for spec in raw.get("specs", ())
    )

    return AnalysisUnit(
        proc_name=proc_name_from_dict(raw["proc_name"]),
        loc=location_from_dict(raw["loc"]),
        signature=raw.get("signature", ""),
        specs=specs,
        stats=UnitStats(symops=int(stats_raw.get("symops", 0)), failure=failure),
        err_log=ErrLog(_err_log_entries(raw.get("err_log", []))),
    )
