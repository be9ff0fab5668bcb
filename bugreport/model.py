"""
Data model shared by every stage of the reporting pipeline.

An AnalysisUnit is one procedure's result as produced by the analysis
engine.  Its error log pairs a FindingKey (identity of the finding) with a
FindingData (where it happened and how we got there).  Extraction turns each
pair into an Issue, the unit that is filtered, deduplicated and rendered.
"""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterator, Optional


# ============================================================================
# ENUMERATIONS
# ============================================================================

class ErrKind(Enum):
    """Severity class of a finding."""
    ERROR = "ERROR"
    WARNING = "WARNING"
    INFO = "INFO"
    ADVICE = "ADVICE"
    LIKE = "LIKE"

    @property
    def rank(self) -> int:
        return _ERR_KIND_ORDER.index(self)


_ERR_KIND_ORDER = [ErrKind.ERROR, ErrKind.WARNING, ErrKind.INFO, ErrKind.ADVICE, ErrKind.LIKE]


class ErrClass(Enum):
    """Which part of the engine produced the finding."""
    CHECKER = "checker"
    PROVER = "prover"
    LINTERS = "linters"
    UNKNOWN = "unknown"


class Visibility(Enum):
    USER = "user"
    DEVELOPER = "developer"
    SYSTEM = "system"


class Language(Enum):
    C = "c"
    CPP = "cpp"
    OBJC = "objc"
    JAVA = "java"


class FailureKind(Enum):
    """Why symbolic execution of a procedure stopped early."""
    TIMEOUT = "TIMEOUT"
    SYMOPS_TIMEOUT = "SYMOPS_TIMEOUT"
    RECURSION_TIMEOUT = "RECURSION_TIMEOUT"
    CRASH = "CRASH"


class PreCategory(Enum):
    """Shape of the preconditions computed for a procedure."""
    NO_PRES = "NoPres"
    EMPTY = "Empty"
    ONLY_ALLOCATION = "OnlyAllocation"
    DATA_CONSTRAINTS = "DataConstraints"


# ============================================================================
# ISSUE TYPES
# ============================================================================

@dataclass(frozen=True)
class IssueType:
    """Opaque finding type: a stable id plus a human-readable label."""
    unique_id: str
    hum: str = ""

    def __post_init__(self):
        if not self.hum:
            object.__setattr__(self, "hum", _humanize(self.unique_id))


def _humanize(unique_id: str) -> str:
    return " ".join(word.capitalize() for word in unique_id.split("_") if word)


FIELD_NOT_NULL_CHECKED = IssueType("IVAR_NOT_NULL_CHECKED", "Field Not Null Checked")
NULL_DEREFERENCE = IssueType("NULL_DEREFERENCE")
PARAMETER_NOT_NULL_CHECKED = IssueType("PARAMETER_NOT_NULL_CHECKED")
PREMATURE_NIL_TERMINATION = IssueType("PREMATURE_NIL_TERMINATION_ARGUMENT")
EMPTY_VECTOR_ACCESS = IssueType("EMPTY_VECTOR_ACCESS")
RESOURCE_LEAK = IssueType("RESOURCE_LEAK")
SKIP_FUNCTION = IssueType("SKIP_FUNCTION")


# ============================================================================
# PROCEDURES AND LOCATIONS
# ============================================================================

# Longest procedure_id kept verbatim; longer ids are truncated and get a checksum
MAX_PROCEDURE_ID_LENGTH = 120

_UNSAFE_FILENAME_CHARS = re.compile(r"[^\w.$<>:-]")
_ANONYMOUS_CLASS_SUFFIX = re.compile(r"\$[0-9]+")
_CRC_SUFFIX = re.compile(r"\.[0-9a-f]{32}$")


@dataclass(frozen=True)
class ProcName:
    """
    Identity of an analyzed procedure.

    ``name`` is the bare method/function name; ``class_name`` the enclosing
    class (C++ template arguments included, e.g. ``Foo<int>``).
    """
    name: str
    class_name: str = ""
    params: tuple[str, ...] = ()
    return_type: str = ""
    language: Language = Language.C
    objc_instance_method: bool = False

    def to_string(self) -> str:
        if self.language is Language.JAVA:
            qualified = f"{self.class_name}.{self.name}" if self.class_name else self.name
            text = f"{qualified}({','.join(self.params)})"
            return f"{self.return_type} {text}" if self.return_type else text
        if not self.class_name:
            return self.name
        if self.language is Language.OBJC:
            return f"{self.class_name}_{self.name}"
        return f"{self.class_name}::{self.name}"

    def hashable_name(self) -> str:
        """
        Name used for issue hashing.

        Parameter and return types are left out so that reformatting a
        signature does not change the hash.  Java anonymous class numbers
        (``Outer$1``) are replaced because they shift when code moves.
        """
        if self.language is Language.JAVA:
            qualified = f"{self.class_name}.{self.name}" if self.class_name else self.name
            return _ANONYMOUS_CLASS_SUFFIX.sub("$_", qualified)
        if self.language is Language.OBJC and self.class_name:
            return self.name
        return self.to_string()

    def to_filename(self) -> str:
        """Filesystem-safe identifier; long names end in ``.<md5>``."""
        full = self.to_string()
        escaped = _UNSAFE_FILENAME_CHARS.sub("_", full)
        if len(escaped) <= MAX_PROCEDURE_ID_LENGTH:
            return escaped
        crc = hashlib.md5(full.encode("utf-8")).hexdigest()
        return f"{escaped[:MAX_PROCEDURE_ID_LENGTH - len(crc) - 1]}.{crc}"

    def __str__(self) -> str:
        return self.to_string()


def strip_crc(procedure_id: str) -> str:
    """Drop the checksum suffix added by ``ProcName.to_filename``."""
    return _CRC_SUFFIX.sub("", procedure_id)


@dataclass(frozen=True, order=True)
class Location:
    file: str
    line: int
    col: int = -1


@dataclass(frozen=True)
class LocTraceElem:
    """One step of a bug trace."""
    level: int
    loc: Location
    description: str = ""
    tags: tuple[str, ...] = ()


@dataclass(frozen=True)
class ToolSourceLoc:
    """Where in the analyzer's own sources the finding was raised."""
    file: str
    lnum: int
    cnum: int
    enum: int


# ============================================================================
# FINDINGS
# ============================================================================

@dataclass(frozen=True)
class ErrorDesc:
    """
    Structured description of a finding.

    Rendering is owned by the engine; here we only join the description
    fragments and read tags such as ``bucket`` or ``always_report``.
    """
    descriptions: tuple[str, ...] = ()
    tags: tuple[tuple[str, str], ...] = ()
    dotty: Optional[str] = None

    def tag_value(self, tag: str) -> str:
        for name, value in self.tags:
            if name == tag:
                return value
        return ""

    @property
    def bucket(self) -> str:
        return self.tag_value("bucket")

    def to_plain_string(self) -> str:
        text = " ".join(self.descriptions).strip()
        return text if text.endswith(".") else text + "."


@dataclass(frozen=True)
class FindingKey:
    kind: ErrKind
    issue_type: IssueType
    desc: ErrorDesc
    severity: str = ""
    in_footprint: bool = True


@dataclass(frozen=True)
class FindingData:
    loc: Location
    loc_trace: tuple[LocTraceElem, ...] = ()
    visibility: Visibility = Visibility.USER
    err_class: ErrClass = ErrClass.UNKNOWN
    node_key: str = ""
    linters_def_file: Optional[str] = None
    doc_url: Optional[str] = None
    access: Optional[str] = None
    tool_source_loc: Optional[ToolSourceLoc] = None


class ErrLog:
    """Ordered collection of (FindingKey, FindingData) pairs."""

    def __init__(self, entries=()):
        self._entries: list[tuple[FindingKey, FindingData]] = list(entries)

    def add(self, key: FindingKey, data: FindingData) -> None:
        self._entries.append((key, data))

    def count(self, predicate: Callable[[FindingKey], bool]) -> int:
        return sum(1 for key, _ in self._entries if predicate(key))

    def __iter__(self) -> Iterator[tuple[FindingKey, FindingData]]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


# ============================================================================
# ANALYSIS UNITS
# ============================================================================

@dataclass(frozen=True)
class Failure:
    kind: FailureKind
    message: str = ""

    @property
    def is_timeout(self) -> bool:
        return self.kind is not FailureKind.CRASH


@dataclass(frozen=True)
class Spec:
    """One pre/post pair; only what reporting needs is kept."""
    visited: tuple[tuple[int, tuple[int, ...]], ...] = ()
    pre_category: PreCategory = PreCategory.DATA_CONSTRAINTS


@dataclass
class UnitStats:
    symops: int = 0
    failure: Optional[Failure] = None


@dataclass
class AnalysisUnit:
    """One procedure's analysis result.  Read-only for the reporter."""
    proc_name: ProcName
    loc: Location
    signature: str = ""
    specs: tuple[Spec, ...] = ()
    stats: UnitStats = field(default_factory=UnitStats)
    err_log: ErrLog = field(default_factory=ErrLog)

    def visited_lines(self) -> list[int]:
        lines: set[int] = set()
        for spec in self.specs:
            for _node, node_lines in spec.visited:
                lines.update(node_lines)
        return sorted(lines)


@dataclass(frozen=True)
class Issue:
    """A finding together with the procedure it was reported in."""
    proc_name: ProcName
    proc_location: Optional[Location]
    key: FindingKey
    data: FindingData


def extract_issues(unit: AnalysisUnit) -> list[Issue]:
    """One Issue per error-log entry, in error-log order."""
    return [
        Issue(unit.proc_name, unit.loc, key, data)
        for key, data in unit.err_log
    ]
