"""Scoped namespace-alias bindings for one module's traversal.

Maps local identifiers to the module they stand in for:

    import * as utils from './utils'           utils -> utils.ts
    const api = require('./api')               api   -> api.ts
    const mod = await import('./lazy')         mod   -> lazy.ts
    import('./lazy').then(mod => mod.run())    mod   -> lazy.ts (callback body only)

Frames are pushed for function bodies, blocks and loops and popped when the
traversal leaves them, which restores whatever the name meant outside.
"""
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional


@dataclass
class NamespaceAlias:
    """A local binding standing in for a whole module's export surface."""
    local_name: str
    target: Optional[Path]  # None: the name shadows an outer alias
    source_module: Optional[str] = None


@dataclass
class _Frame:
    is_function: bool
    bindings: Dict[str, NamespaceAlias] = field(default_factory=dict)


class AliasScope:
    """Stack of binding frames; the bottom frame is the module scope."""

    def __init__(self):
        self._frames: List[_Frame] = [_Frame(is_function=True)]

    def push(self, is_function: bool = False) -> None:
        self._frames.append(_Frame(is_function=is_function))

    def pop(self) -> None:
        if len(self._frames) == 1:
            raise RuntimeError("Cannot pop the module scope")
        self._frames.pop()

    def bind(self, name: str, target: Optional[Path], source_module: Optional[str] = None,
             hoist: bool = False) -> None:
        """Bind name in the innermost frame, or the innermost function frame for `var`."""
        frame = self._function_frame() if hoist else self._frames[-1]
        frame.bindings[name] = NamespaceAlias(name, target, source_module)

    def shadow(self, name: str, hoist: bool = False) -> None:
        """Hide an outer alias behind a plain local binding of the same name."""
        if self.lookup(name) is not None:
            self.bind(name, None, hoist=hoist)

    def lookup(self, name: str) -> Optional[Path]:
        """Target module for name, or None if it is not a (visible) alias."""
        alias = self.lookup_alias(name)
        return alias.target if alias else None

    def lookup_alias(self, name: str) -> Optional[NamespaceAlias]:
        for frame in reversed(self._frames):
            alias = frame.bindings.get(name)
            if alias is not None:
                return alias if alias.target is not None else None
        return None

    def _function_frame(self) -> _Frame:
        for frame in reversed(self._frames):
            if frame.is_function:
                return frame
        return self._frames[0]
