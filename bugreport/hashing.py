"""
Location-independent issue hashing.

A finding keeps the same hash when unrelated code is added above it: only
the base file name is used, and ``line N`` / ``column N`` mentions in the
qualifier are replaced before hashing.
"""

from __future__ import annotations

import hashlib
import json
import posixpath
import re

from .model import ProcName

_POSITION_RE = re.compile(r"(line|column) [0-9]+")


def location_independent_qualifier(qualifier: str) -> str:
    return _POSITION_RE.sub("_", qualifier)


def compute_hash(
    kind: str,
    type_id: str,
    proc_name: ProcName,
    filename: str,
    qualifier: str,
) -> str:
    """Hex digest of (kind, type, hashable proc name, base filename, qualifier)."""
    base_filename = posixpath.basename(filename.replace("\\", "/"))
    payload = json.dumps(
        [
            kind,
            type_id,
            proc_name.hashable_name(),
            base_filename,
            location_independent_qualifier(qualifier),
        ],
        separators=(",", ":"),
    )
    return hashlib.md5(payload.encode("utf-8")).hexdigest()
