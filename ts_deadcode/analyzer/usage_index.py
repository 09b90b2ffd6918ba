"""Run-scoped accumulators: the usage index and the module export registry."""
from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Set, Tuple

from .errors import DuplicateModuleError


@dataclass
class ModuleExports:
    """Declared exports of one module.

    Both tables map exported name -> original local name. A later
    declaration of the same exported name replaces the earlier one.
    """
    value_exports: Dict[str, str] = field(default_factory=dict)
    type_exports: Dict[str, str] = field(default_factory=dict)
    # Targets of `export * from`, in declaration order (later ones shadow earlier)
    export_all: List[Path] = field(default_factory=list)

    def declares(self, name: str) -> bool:
        return name in self.value_exports or name in self.type_exports

    @property
    def is_empty(self) -> bool:
        return not self.value_exports and not self.type_exports and not self.export_all


@dataclass
class Diagnostic:
    """A non-fatal note about a shape the extractor skipped."""
    module: Path
    line: int
    message: str

    def __str__(self) -> str:
        return f"{self.module}:{self.line}: {self.message}"


@dataclass
class FileFacts:
    """Everything one extractor run learned, buffered until the file completes."""
    module: Path
    exports: ModuleExports
    usages: List[Tuple[Path, str]] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)


class UsageIndex:
    """module identity -> names referenced against that module."""

    def __init__(self):
        self._usages: Dict[Path, Set[str]] = defaultdict(set)

    def add_usage(self, module: Path, symbol: str) -> None:
        self._usages[module].add(symbol)

    def symbols_for(self, module: Path) -> Set[str]:
        return self._usages.get(module, set())

    def facts(self) -> Iterator[Tuple[Path, str]]:
        for module, symbols in self._usages.items():
            for symbol in symbols:
                yield module, symbol

    def merge(self, other: 'UsageIndex') -> None:
        for module, symbol in other.facts():
            self.add_usage(module, symbol)

    def __iter__(self) -> Iterator[Tuple[Path, Set[str]]]:
        return iter(self._usages.items())

    def __contains__(self, fact: Tuple[Path, str]) -> bool:
        module, symbol = fact
        return symbol in self._usages.get(module, ())

    def __len__(self) -> int:
        return sum(len(symbols) for symbols in self._usages.values())


class ExportRegistry:
    """module identity -> ModuleExports, written once per module."""

    def __init__(self):
        self._modules: Dict[Path, ModuleExports] = {}

    def register(self, module: Path, exports: ModuleExports) -> None:
        if module in self._modules:
            raise DuplicateModuleError(module)
        self._modules[module] = exports

    def get(self, module: Path):
        return self._modules.get(module)

    def __iter__(self) -> Iterator[Tuple[Path, ModuleExports]]:
        return iter(self._modules.items())

    def __contains__(self, module: Path) -> bool:
        return module in self._modules

    def __len__(self) -> int:
        return len(self._modules)


@dataclass
class AnalysisContext:
    """State shared by every extractor run of one analysis.

    Passed explicitly so independent analyses (tests, parallel runs)
    never see each other's facts.
    """
    usages: UsageIndex = field(default_factory=UsageIndex)
    exports: ExportRegistry = field(default_factory=ExportRegistry)
    diagnostics: List[Diagnostic] = field(default_factory=list)

    def commit(self, facts: FileFacts) -> None:
        """Merge one completed file. Nothing is written for files that failed."""
        self.exports.register(facts.module, facts.exports)
        for module, symbol in facts.usages:
            self.usages.add_usage(module, symbol)
        self.diagnostics.extend(facts.diagnostics)
