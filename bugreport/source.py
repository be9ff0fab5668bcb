"""
Source line reader used to echo code next to bug trace steps.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from .model import Location


class LineReader:
    """Reads and caches source files relative to ``root``."""

    def __init__(self, root: Path | str = "."):
        self.root = Path(root)
        self._cache: dict[str, Optional[list[str]]] = {}

    def _lines(self, filename: str) -> Optional[list[str]]:
        if filename not in self._cache:
            path = self.root / filename
            if path.is_file():
                text = path.read_text(encoding="utf-8", errors="replace")
                self._cache[filename] = text.splitlines()
            else:
                self._cache[filename] = None
        return self._cache[filename]

    def from_loc(self, loc: Location) -> Optional[str]:
        """The 1-based line ``loc.line`` of ``loc.file``, or None."""
        lines = self._lines(loc.file)
        if lines is None or not 1 <= loc.line <= len(lines):
            return None
        return lines[loc.line - 1]
