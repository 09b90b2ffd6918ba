"""Module specifier resolution.

The analysis engine only ever calls `Resolver.resolve()`. Everything that
touches the file system or a package manifest lives here, so the resolution
policy (plain relative, workspace packages, tsconfig path aliases) can be
swapped without touching the extractor or the finalizer.
"""
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, Optional, Tuple, Union
import logging

from .config_parser import (
    EXCLUDED_DIRS,
    TsconfigPaths,
    WorkspacePackage,
    find_workspace_packages,
    load_tsconfig,
    read_jsonc,
)
from .errors import ConfigError

logger = logging.getLogger(__name__)


class ReferenceKind(str, Enum):
    """How a specifier was referenced."""
    IMPORT = 'import'
    REQUIRE = 'require'
    DYNAMIC_IMPORT = 'dynamic-import'
    EXPORT_FROM = 'export-from'
    EXPORT_ALL = 'export-all'


@dataclass(frozen=True)
class ResolvedModule:
    path: Path


@dataclass(frozen=True)
class Builtin:
    name: str


@dataclass(frozen=True)
class Ignored:
    reason: str


@dataclass(frozen=True)
class ResolutionFailure:
    message: str


Resolution = Union[ResolvedModule, Builtin, Ignored, ResolutionFailure]


NODE_BUILTINS = frozenset({
    'assert', 'async_hooks', 'buffer', 'child_process', 'cluster', 'console',
    'constants', 'crypto', 'dgram', 'diagnostics_channel', 'dns', 'domain',
    'events', 'fs', 'http', 'http2', 'https', 'inspector', 'module', 'net',
    'os', 'path', 'perf_hooks', 'process', 'punycode', 'querystring',
    'readline', 'repl', 'stream', 'string_decoder', 'sys', 'timers', 'tls',
    'trace_events', 'tty', 'url', 'util', 'v8', 'vm', 'wasi',
    'worker_threads', 'zlib',
})

# Non-code imports handled by bundlers; they never declare JS exports.
ASSET_SUFFIXES = frozenset({
    '.css', '.scss', '.sass', '.less', '.styl', '.svg', '.png', '.jpg',
    '.jpeg', '.gif', '.webp', '.avif', '.ico', '.bmp', '.woff', '.woff2',
    '.ttf', '.eot', '.otf', '.mp3', '.mp4', '.webm', '.wav', '.html',
    '.md', '.mdx', '.txt', '.graphql', '.gql', '.yaml', '.yml', '.wasm',
})

# TypeScript ESM sources import "./x.js" while the file on disk is x.ts
TS_SOURCE_FOR_JS = {
    '.js': ('.ts', '.tsx'),
    '.jsx': ('.tsx',),
    '.mjs': ('.mts',),
    '.cjs': ('.cts',),
}


class Resolver:
    """Contract between the analysis engine and a resolution policy."""

    def resolve(self, specifier: str, from_module: Path,
                kind: ReferenceKind = ReferenceKind.IMPORT) -> Resolution:
        raise NotImplementedError


class RelativeResolver(Resolver):
    """Resolves relative and absolute paths; bare specifiers are external.

    Probes for files using JS resolution rules:
    1. Exact match
    2. TypeScript ESM mapping (./x.js -> ./x.ts)
    3. Appended extensions (.ts, .tsx, ..., .json)
    4. Directory: package.json entry fields, then index files
    """

    EXTENSIONS = ('.ts', '.tsx', '.mts', '.cts', '.d.ts', '.js', '.jsx', '.mjs', '.cjs', '.json')

    def __init__(self, project_root: str | Path):
        self.root = Path(project_root).resolve()
        self._probe_cache: Dict[Path, Optional[Path]] = {}

    def resolve(self, specifier: str, from_module: Path,
                kind: ReferenceKind = ReferenceKind.IMPORT) -> Resolution:
        if not specifier:
            return ResolutionFailure("empty module specifier")

        if specifier.startswith('node:') or specifier.split('/')[0] in NODE_BUILTINS:
            return Builtin(specifier)

        bare = specifier.split('?', 1)[0]
        if Path(bare).suffix.lower() in ASSET_SUFFIXES:
            return Ignored(f"asset import '{specifier}'")

        if bare.startswith('.') or bare.startswith('/'):
            base = Path(bare) if bare.startswith('/') else Path(from_module).parent / bare
            found = self.probe(base)
            if found is None:
                return ResolutionFailure(f"cannot resolve '{specifier}' from {from_module}")
            return ResolvedModule(found)

        return self._resolve_bare(bare, Path(from_module), kind)

    def _resolve_bare(self, specifier: str, from_module: Path, kind: ReferenceKind) -> Resolution:
        return Ignored(f"external package '{specifier}'")

    def probe(self, path: Path) -> Optional[Path]:
        """Find the source file a path without (or with) extension refers to."""
        path = Path(path)
        if path not in self._probe_cache:
            found = self._probe_uncached(path)
            self._probe_cache[path] = found.resolve() if found else None
        return self._probe_cache[path]

    def _probe_uncached(self, path: Path, follow_manifest: bool = True) -> Optional[Path]:
        if path.is_file():
            return path

        # Case A: TypeScript source behind a .js specifier
        for source_ext in TS_SOURCE_FOR_JS.get(path.suffix.lower(), ()):
            candidate = path.with_suffix(source_ext)
            if candidate.is_file():
                return candidate

        # Case B: extensionless specifier; with_name keeps dotted names ("a.service")
        for ext in self.EXTENSIONS:
            candidate = path.with_name(path.name + ext)
            if candidate.is_file():
                return candidate

        # Case C: directory (package.json entry, then index)
        if path.is_dir():
            if follow_manifest:
                found = self._probe_manifest(path)
                if found:
                    return found
            for ext in self.EXTENSIONS:
                index_file = path / f"index{ext}"
                if index_file.is_file():
                    return index_file
        return None

    def _probe_manifest(self, directory: Path) -> Optional[Path]:
        manifest = directory / 'package.json'
        if not manifest.is_file():
            return None
        data = read_jsonc(manifest)
        if not data:
            return None
        package = WorkspacePackage(name=data.get('name') or '', root=directory, manifest=data)
        for entry in package.entry_candidates():
            found = self._probe_uncached(directory / entry, follow_manifest=False)
            if found:
                return found
        return None


class PackageResolver(RelativeResolver):
    """Adds workspace packages: bare specifiers naming a package.json in the tree."""

    def __init__(self, project_root: str | Path,
                 packages: Optional[Dict[str, WorkspacePackage]] = None):
        super().__init__(project_root)
        if packages is None:
            packages = find_workspace_packages(self.root)
        self.packages = packages
        # Longest names first so "@app/ui-kit" wins over "@app/ui"
        self._names = sorted(self.packages, key=len, reverse=True)

    def _resolve_bare(self, specifier: str, from_module: Path, kind: ReferenceKind) -> Resolution:
        match = self._match_package(specifier)
        if match is None:
            return super()._resolve_bare(specifier, from_module, kind)

        package, subpath = match
        if subpath:
            found = self.probe(package.root / subpath)
        else:
            found = self._package_entry(package)
        if found is None:
            return ResolutionFailure(f"workspace package '{package.name}' has no module for '{specifier}'")
        return ResolvedModule(found)

    def _match_package(self, specifier: str) -> Optional[Tuple[WorkspacePackage, str]]:
        for name in self._names:
            if specifier == name:
                return self.packages[name], ''
            if specifier.startswith(name + '/'):
                return self.packages[name], specifier[len(name) + 1:]
        return None

    def _package_entry(self, package: WorkspacePackage) -> Optional[Path]:
        for entry in package.entry_candidates():
            # Built output is not analyzed; prefer the source index when main points at dist/
            if any(part in EXCLUDED_DIRS for part in Path(entry).parts[:-1]):
                continue
            found = self._probe_uncached(package.root / entry, follow_manifest=False)
            if found:
                return found.resolve()
        for ext in self.EXTENSIONS:
            for base in (package.root / 'src', package.root):
                index_file = base / f"index{ext}"
                if index_file.is_file():
                    return index_file.resolve()
        return None


class TsconfigResolver(PackageResolver):
    """Adds tsconfig.json compilerOptions.baseUrl / paths aliases."""

    def __init__(self, project_root: str | Path, tsconfig: Optional[TsconfigPaths] = None,
                 packages: Optional[Dict[str, WorkspacePackage]] = None):
        super().__init__(project_root, packages=packages)
        if tsconfig is None:
            tsconfig = load_tsconfig(self.root) or TsconfigPaths(config_dir=self.root)
        self.tsconfig = tsconfig

    def _resolve_bare(self, specifier: str, from_module: Path, kind: ReferenceKind) -> Resolution:
        match = self._match_alias(specifier)
        if match is not None:
            pattern, wildcard = match
            for target in self.tsconfig.paths[pattern]:
                candidate = self.tsconfig.paths_root / target.replace('*', wildcard, 1)
                found = self.probe(candidate)
                if found:
                    return ResolvedModule(found)
            return ResolutionFailure(f"path alias '{pattern}' matched '{specifier}' but no file exists")

        if self.tsconfig.base_url is not None:
            found = self.probe(self.tsconfig.base_url / specifier)
            if found:
                return ResolvedModule(found)

        return super()._resolve_bare(specifier, from_module, kind)

    def _match_alias(self, specifier: str) -> Optional[Tuple[str, str]]:
        """Pick the paths pattern TypeScript would use: exact match, else longest prefix."""
        if specifier in self.tsconfig.paths:
            return specifier, ''

        best: Optional[Tuple[str, str]] = None
        best_prefix = -1
        for pattern in self.tsconfig.paths:
            if pattern.count('*') != 1:
                continue
            prefix, suffix = pattern.split('*')
            if (specifier.startswith(prefix) and specifier.endswith(suffix)
                    and len(specifier) >= len(prefix) + len(suffix)
                    and len(prefix) > best_prefix):
                best = (pattern, specifier[len(prefix):len(specifier) - len(suffix)])
                best_prefix = len(prefix)
        return best


RESOLVER_STRATEGIES = ('auto', 'relative', 'package', 'tsconfig')


def create_resolver(project_root: str | Path, strategy: str = 'auto') -> Resolver:
    """Select the resolution policy for a project, once per run.

    auto: tsconfig when baseUrl/paths are configured, else workspace packages
    when any package.json names a package, else plain relative resolution.
    """
    root = Path(project_root).resolve()
    if strategy not in RESOLVER_STRATEGIES:
        raise ConfigError(f"Unknown resolver strategy '{strategy}' (choose from {', '.join(RESOLVER_STRATEGIES)})")

    if strategy == 'relative':
        return RelativeResolver(root)
    if strategy == 'package':
        return PackageResolver(root)

    tsconfig = load_tsconfig(root)
    if strategy == 'tsconfig' or (tsconfig is not None and not tsconfig.is_empty):
        return TsconfigResolver(root, tsconfig=tsconfig)

    packages = find_workspace_packages(root)
    if packages:
        logger.info("Using workspace package resolution (%d packages)", len(packages))
        return PackageResolver(root, packages=packages)
    return RelativeResolver(root)


def describe(resolver: Resolver) -> str:
    """Short name of a resolver for reports."""
    names = {TsconfigResolver: 'tsconfig', PackageResolver: 'package', RelativeResolver: 'relative'}
    return names.get(type(resolver), type(resolver).__name__)
