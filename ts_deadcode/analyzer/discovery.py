"""Source file discovery for an analyzed project."""
import fnmatch
import re
from pathlib import Path
from typing import Iterable, List, Optional, Set

from .config_parser import EXCLUDED_DIRS
from .parser import LanguageParser

# Type declarations describe other modules; they have no runtime consumers
DECLARATION_SUFFIXES = ('.d.ts', '.d.mts', '.d.cts')

TEST_DIRECTORIES = {'__tests__', '__mocks__', '__fixtures__'}
_TEST_FILE_RE = re.compile(r'\.(test|spec|stories)\.[cm]?[jt]sx?$')


def is_declaration_file(path: Path) -> bool:
    return path.name.endswith(DECLARATION_SUFFIXES)


def is_test_file(path: Path) -> bool:
    """*.test.ts, *.spec.js, *.stories.tsx, or anything under __tests__."""
    if _TEST_FILE_RE.search(path.name):
        return True
    return any(part in TEST_DIRECTORIES for part in path.parts)


def discover_sources(project_root: str | Path,
                     extra_excluded_dirs: Iterable[str] = (),
                     exclude_tests: bool = False) -> List[Path]:
    """All analyzable modules under project_root, sorted, as resolved paths.

    Skips dependency/build directories (node_modules, dist, ...), hidden
    directories, declaration files, and optionally test files.
    """
    root = Path(project_root).resolve()
    excluded: Set[str] = set(EXCLUDED_DIRS) | set(extra_excluded_dirs)
    sources = []

    for path in root.rglob('*'):
        if path.suffix.lower() not in LanguageParser.SUPPORTED_LANGUAGES:
            continue
        relative_parts = path.relative_to(root).parts
        if any(part in excluded or part.startswith('.') for part in relative_parts[:-1]):
            continue
        if not path.is_file() or is_declaration_file(path):
            continue
        if exclude_tests and is_test_file(Path(*relative_parts)):
            continue
        sources.append(path.resolve())

    return sorted(sources)


def match_entry_globs(modules: Iterable[Path], project_root: Path,
                      patterns: Optional[Iterable[str]]) -> Set[Path]:
    """Modules whose project-relative posix path matches any of the glob patterns."""
    patterns = list(patterns or ())
    if not patterns:
        return set()
    root = Path(project_root).resolve()
    matched = set()
    for module in modules:
        try:
            relative = module.relative_to(root).as_posix()
        except ValueError:
            continue
        if any(fnmatch.fnmatch(relative, pattern) for pattern in patterns):
            matched.add(module)
    return matched
