"""
Dead export reconciliation.

Runs once after every module was extracted. A declared export is dead when
no usage fact reaches it, either directly or through `export * from` chains.
"""
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Set

from .usage_index import AnalysisContext, ExportRegistry

DEFAULT_EXPORT = 'default'


@dataclass
class ModuleReport:
    """Unused exports of one module, by exported name."""
    unused_value_exports: Set[str] = field(default_factory=set)
    unused_type_exports: Set[str] = field(default_factory=set)

    @property
    def is_empty(self) -> bool:
        return not self.unused_value_exports and not self.unused_type_exports


def trace_export(registry: ExportRegistry, module: Path, symbol: str,
                 visited: Optional[Set[Path]] = None) -> Optional[Path]:
    """Find the module that actually declares `symbol` as seen from `module`.

    Star re-exports are searched last-declared first: a later
    `export * from` shadows an earlier one exporting the same name.
    The default export is never forwarded through `export *`.

    Returns:
        The declaring module, or None when the usage cannot be attributed
        (unknown module, unknown name, or a cycle).
    """
    if visited is None:
        visited = set()
    if module in visited:
        return None
    visited.add(module)

    exports = registry.get(module)
    if exports is None:
        return None
    if exports.declares(symbol):
        return module
    if symbol == DEFAULT_EXPORT:
        return None

    for target in reversed(exports.export_all):
        found = trace_export(registry, target, symbol, visited)
        if found is not None:
            return found
    return None


def finalize(context: AnalysisContext) -> Dict[Path, ModuleReport]:
    """Compute unused exports per module.

    Read-only: the context is not modified, so calling this twice without
    new input returns equal reports.
    """
    registry = context.exports

    # Step 1: everything without a direct usage starts out unused
    reports: Dict[Path, ModuleReport] = {}
    for module, exports in registry:
        used = context.usages.symbols_for(module)
        reports[module] = ModuleReport(
            unused_value_exports={name for name in exports.value_exports if name not in used},
            unused_type_exports={name for name in exports.type_exports if name not in used},
        )

    # Step 2: attribute every usage to the module that really declares it
    for module, symbol in context.usages.facts():
        owner = trace_export(registry, module, symbol)
        if owner is None:
            continue
        report = reports[owner]
        report.unused_value_exports.discard(symbol)
        report.unused_type_exports.discard(symbol)

    # Step 3: only modules with something left to report
    return {module: report for module, report in reports.items() if not report.is_empty}
