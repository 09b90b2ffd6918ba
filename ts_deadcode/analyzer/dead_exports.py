"""Dead export analysis: parse, extract, commit, finalize.

Usage:
    analyzer = DeadExportAnalyzer(create_resolver(root))
    analyzer.add_files(discover_sources(root))
    reports = analyzer.finalize()
"""
import logging
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass
from itertools import repeat
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Set, Union

from .errors import AnalysisError, MalformedSyntaxError, ParseError
from .extractor import analyze_module, extract_module
from .finalizer import ModuleReport, finalize
from .heuristics import SameFileHeuristic
from .parser import LanguageParser
from .resolver import Resolver
from .usage_index import AnalysisContext, FileFacts

logger = logging.getLogger(__name__)

# Errors that skip one file under --keep-going; anything else aborts
FILE_ERRORS = (ParseError, MalformedSyntaxError)


@dataclass
class DeadExport:
    """One row of the audit report."""
    module: Path
    name: str
    kind: str  # 'value' or 'type'
    local_name: str
    used_locally: bool = False


def parse_module(path: Path, source: Optional[bytes] = None, language: Optional[str] = None):
    """Parse a module from disk (or from the given bytes), rejecting broken trees."""
    language = language or LanguageParser.language_for(path)
    if language is None:
        raise ParseError(path, "unsupported file extension")
    parser = LanguageParser.for_language(language)
    if source is None:
        tree, _ = parser.parse_file(path)
    else:
        tree = parser.parse_source(source)
    LanguageParser.check_tree(tree, path)
    return tree


def extract_file(path: Path, resolver: Resolver) -> FileFacts:
    """Parse and extract one file without shared state."""
    return extract_module(path, parse_module(path), resolver)


def _extract_in_worker(path: Path, resolver: Resolver) -> Union[FileFacts, AnalysisError]:
    # Per-file errors are returned so the parent decides whether to keep going
    try:
        return extract_file(path, resolver)
    except FILE_ERRORS as exc:
        return exc


class DeadExportAnalyzer:
    """Facade over one AnalysisContext."""

    def __init__(self, resolver: Resolver, context: Optional[AnalysisContext] = None):
        self.resolver = resolver
        self.context = context if context is not None else AnalysisContext()
        self.skipped: List[AnalysisError] = []

    def add_source(self, path: str | Path, source: Union[str, bytes],
                   language: Optional[str] = None) -> FileFacts:
        """Analyze in-memory source text as if it lived at `path`."""
        module = Path(path).resolve()
        if isinstance(source, str):
            source = source.encode('utf-8')
        tree = parse_module(module, source=source, language=language)
        return analyze_module(self.context, module, tree, self.resolver)

    def add_file(self, path: str | Path) -> FileFacts:
        module = Path(path).resolve()
        return analyze_module(self.context, module, parse_module(module), self.resolver)

    def add_files(self, paths: Iterable[str | Path], jobs: int = 1, keep_going: bool = False,
                  progress: Optional[Callable[[Path], None]] = None) -> List[AnalysisError]:
        """Analyze many files; facts are committed in sorted path order.

        Args:
            paths: Files to analyze
            jobs: Worker processes for extraction (1 = in-process)
            keep_going: Log and skip files that fail to parse instead of raising
            progress: Called with each path once it was handled

        Returns:
            Errors of the files skipped because of keep_going
        """
        modules = sorted({Path(p).resolve() for p in paths})
        skipped: List[AnalysisError] = []

        def handle(module: Path, outcome: Union[FileFacts, AnalysisError]) -> None:
            if isinstance(outcome, AnalysisError):
                if not keep_going:
                    raise outcome
                logger.error("Skipping %s", outcome)
                skipped.append(outcome)
            else:
                self.context.commit(outcome)
            if progress is not None:
                progress(module)

        if jobs <= 1:
            for module in modules:
                try:
                    outcome = extract_file(module, self.resolver)
                except FILE_ERRORS as exc:
                    outcome = exc
                handle(module, outcome)
        else:
            logger.info("Extracting %d files with %d workers", len(modules), jobs)
            with ProcessPoolExecutor(max_workers=jobs) as pool:
                outcomes = pool.map(_extract_in_worker, modules, repeat(self.resolver), chunksize=8)
                for module, outcome in zip(modules, outcomes):
                    handle(module, outcome)

        self.skipped.extend(skipped)
        return skipped

    def finalize(self) -> Dict[Path, ModuleReport]:
        return finalize(self.context)

    def dead_exports(self, entry_modules: Iterable[Path] = (),
                     same_file_check: bool = True) -> List[DeadExport]:
        """Flatten finalized reports into sorted rows, leaving out public entry modules."""
        return collect_dead_exports(self.context, self.finalize(), entry_modules, same_file_check)


def collect_dead_exports(context: AnalysisContext, reports: Dict[Path, ModuleReport],
                         entry_modules: Iterable[Path] = (),
                         same_file_check: bool = True) -> List[DeadExport]:
    entries: Set[Path] = set(entry_modules)
    heuristic = SameFileHeuristic() if same_file_check else None
    rows = []

    for module, report in reports.items():
        if module in entries:
            continue
        exports = context.exports.get(module)
        for kind, names, table in (
            ('value', report.unused_value_exports, exports.value_exports),
            ('type', report.unused_type_exports, exports.type_exports),
        ):
            for name in names:
                local_name = table.get(name, name)
                used_locally = bool(heuristic and heuristic.is_used_locally(module, local_name))
                rows.append(DeadExport(module, name, kind, local_name, used_locally))

    rows.sort(key=lambda row: (str(row.module), row.kind, row.name))
    return rows
