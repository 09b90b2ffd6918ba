"""Project configuration parsing for module resolution.

Reads the JavaScript/TypeScript configuration files that decide how import
specifiers map to files:

- tsconfig.json: compilerOptions.baseUrl and compilerOptions.paths,
  following "extends" chains
- package.json: workspace package names and their entry points

Malformed files are logged and ignored so that resolution degrades to a
simpler strategy instead of aborting the run.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set

logger = logging.getLogger(__name__)

# Strings are matched first so that "//" inside a URL is not taken for a comment.
_JSONC_TOKEN_RE = re.compile(r'"(?:\\.|[^"\\])*"|//[^\n]*|/\*.*?\*/', re.DOTALL)
_TRAILING_COMMA_RE = re.compile(r',(\s*[}\]])')

# package.json fields that may point at a package's entry module, in priority order
ENTRY_FIELDS = ('source', 'types', 'typings', 'module', 'main')

# Directories never searched for workspace packages
EXCLUDED_DIRS = {
    'node_modules', '.git', 'dist', 'build', 'out', 'coverage',
    'vendor', 'third_party', '.next', '.nuxt', '.turbo', '.cache',
}


@dataclass
class TsconfigPaths:
    """Path-alias settings from tsconfig.json."""
    config_dir: Path
    base_url: Optional[Path] = None
    paths: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return self.base_url is None and not self.paths

    @property
    def paths_root(self) -> Path:
        """Directory that `paths` targets are relative to (baseUrl, else the config dir)."""
        return self.base_url or self.config_dir


@dataclass
class WorkspacePackage:
    """A package.json found inside the project tree."""
    name: str
    root: Path
    manifest: dict

    def entry_candidates(self) -> List[str]:
        """Relative entry paths declared by the manifest, best first."""
        candidates = []
        for key in ENTRY_FIELDS:
            value = self.manifest.get(key)
            if isinstance(value, str):
                candidates.append(value)

        exports = self.manifest.get('exports')
        if isinstance(exports, str):
            candidates.append(exports)
        elif isinstance(exports, dict):
            root_export = exports.get('.', exports)
            candidates.extend(_export_targets(root_export))
        return candidates


def strip_jsonc(content: str) -> str:
    """Remove comments and trailing commas from JSONC text (tsconfig style)."""
    def replace(match: re.Match) -> str:
        token = match.group(0)
        return token if token.startswith('"') else ''

    without_comments = _JSONC_TOKEN_RE.sub(replace, content)
    return _TRAILING_COMMA_RE.sub(r'\1', without_comments)


def read_jsonc(path: Path) -> Optional[dict]:
    """Load a JSON/JSONC file, returning None (and logging) when it is unusable."""
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.loads(strip_jsonc(f.read()))
    except (IOError, OSError, UnicodeDecodeError) as exc:
        logger.warning("Cannot read %s: %s", path, exc)
        return None
    except json.JSONDecodeError as exc:
        logger.warning("Invalid JSON in %s: %s", path, exc)
        return None

    if not isinstance(data, dict):
        logger.warning("Ignoring %s: top-level value is not an object", path)
        return None
    return data


def load_tsconfig(project_root: Path, filename: str = 'tsconfig.json') -> Optional[TsconfigPaths]:
    """Parse tsconfig.json for baseUrl and path mappings.

    Patterns detected:
    - compilerOptions.baseUrl: "./src"
    - compilerOptions.paths: {"@utils/*": ["src/utils/*"]}
    - extends: "./tsconfig.base.json" (options are inherited, nearest wins)

    Returns:
        TsconfigPaths, or None when there is no usable tsconfig.json
    """
    tsconfig_json = Path(project_root) / filename
    if not tsconfig_json.is_file():
        return None

    result = TsconfigPaths(config_dir=tsconfig_json.parent.resolve())
    seen: Set[Path] = set()
    current: Optional[Path] = tsconfig_json.resolve()
    found_any = False

    # Walk the extends chain; the first file that defines an option wins.
    while current is not None and current not in seen:
        seen.add(current)
        data = read_jsonc(current)
        if data is None:
            break
        found_any = True

        compiler_options = data.get('compilerOptions') or {}
        if result.base_url is None and isinstance(compiler_options.get('baseUrl'), str):
            result.base_url = (current.parent / compiler_options['baseUrl']).resolve()

        paths = compiler_options.get('paths')
        if not result.paths and isinstance(paths, dict):
            result.paths = {
                alias: [t for t in targets if isinstance(t, str)]
                for alias, targets in paths.items()
                if isinstance(targets, list)
            }
            # paths without baseUrl are relative to the file that declares them
            if result.base_url is None:
                result.config_dir = current.parent

        current = _resolve_extends(current, data.get('extends'))

    return result if found_any else None


def _resolve_extends(config_file: Path, extends) -> Optional[Path]:
    """Resolve a relative "extends" value. Package-based extends are not followed."""
    if isinstance(extends, list):
        extends = extends[0] if extends else None
    if not isinstance(extends, str) or not extends.startswith('.'):
        return None

    candidate = (config_file.parent / extends).resolve()
    if candidate.is_file():
        return candidate
    with_suffix = candidate.with_name(candidate.name + '.json')
    if with_suffix.is_file():
        return with_suffix
    logger.warning("tsconfig extends target not found: %s (from %s)", extends, config_file)
    return None


def find_workspace_packages(project_root: Path,
                            excluded_dirs: Iterable[str] = EXCLUDED_DIRS) -> Dict[str, WorkspacePackage]:
    """Map package name -> WorkspacePackage for every named package.json in the tree."""
    root = Path(project_root).resolve()
    excluded = set(excluded_dirs)
    packages: Dict[str, WorkspacePackage] = {}

    for manifest_path in sorted(root.rglob('package.json')):
        relative_parts = manifest_path.relative_to(root).parts[:-1]
        if any(part in excluded for part in relative_parts):
            continue

        manifest = read_jsonc(manifest_path)
        if manifest is None:
            continue
        name = manifest.get('name')
        if not isinstance(name, str) or not name:
            continue
        if name in packages:
            logger.warning("Duplicate workspace package name '%s' (%s and %s)",
                           name, packages[name].root, manifest_path.parent)
            continue
        packages[name] = WorkspacePackage(name=name, root=manifest_path.parent, manifest=manifest)

    return packages


def package_entry_points(project_root: Path) -> List[Path]:
    """Entry modules declared by the root package.json ("main", "module", "types", "exports").

    Exports of these modules form the package's public API.
    """
    manifest_path = Path(project_root) / 'package.json'
    if not manifest_path.is_file():
        return []
    manifest = read_jsonc(manifest_path)
    if manifest is None:
        return []

    package = WorkspacePackage(name=manifest.get('name') or '', root=manifest_path.parent, manifest=manifest)
    entries = []
    for relative in package.entry_candidates():
        entries.append((package.root / relative).resolve())

    bin_field = manifest.get('bin')
    if isinstance(bin_field, str):
        entries.append((package.root / bin_field).resolve())
    elif isinstance(bin_field, dict):
        entries.extend((package.root / v).resolve() for v in bin_field.values() if isinstance(v, str))
    return entries


def _export_targets(value) -> List[str]:
    """Flatten a conditional "exports" entry into its string targets."""
    if isinstance(value, str):
        return [value]
    if isinstance(value, dict):
        targets = []
        for key, nested in value.items():
            # Subpath keys ("./feature") are not the package root
            if key.startswith('.'):
                continue
            targets.extend(_export_targets(nested))
        return targets
    if isinstance(value, list):
        targets = []
        for nested in value:
            targets.extend(_export_targets(nested))
        return targets
    return []
