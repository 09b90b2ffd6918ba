"""Textual follow-up checks on finalized dead exports.

These are not semantic: they look at source text only, to tell the reader
whether an unused export can be deleted outright or just un-exported.
"""
import logging
import re
from pathlib import Path
from typing import Dict, Optional

logger = logging.getLogger(__name__)

# JavaScript identifiers may contain $, which \b does not treat as a word char
_IDENTIFIER_BOUNDARY = r'(?<![\w$]){}(?![\w$])'


class SameFileHeuristic:
    """Does a symbol's local name appear in its file beyond the declaration?

    Used for the "export can be dropped, symbol is used locally" note.
    File contents are read once and cached for the run.
    """

    def __init__(self):
        self._contents: Dict[Path, Optional[str]] = {}

    def _read(self, module: Path) -> Optional[str]:
        if module not in self._contents:
            try:
                with open(module, 'r', encoding='utf-8', errors='ignore') as f:
                    self._contents[module] = f.read()
            except (IOError, OSError) as exc:
                logger.warning("Same-file check cannot read %s: %s", module, exc)
                self._contents[module] = None
        return self._contents[module]

    def occurrences(self, module: Path, local_name: str) -> int:
        content = self._read(module)
        if content is None:
            return 0
        pattern = _IDENTIFIER_BOUNDARY.format(re.escape(local_name))
        return len(re.findall(pattern, content))

    def is_used_locally(self, module: Path, local_name: str) -> bool:
        """True when the name occurs at least twice (declaration + one use).

        The reserved default name is never checked: it has no local binding
        to search for.
        """
        if not local_name or local_name == 'default':
            return False
        return self.occurrences(module, local_name) >= 2
