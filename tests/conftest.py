"""Shared fixtures: throwaway TS projects and a one-call analysis helper."""
import logging
import os
import textwrap
from pathlib import Path
from typing import Callable, Dict

import pytest

from ts_deadcode import config
from ts_deadcode.analyzer.dead_exports import DeadExportAnalyzer
from ts_deadcode.analyzer.discovery import discover_sources
from ts_deadcode.analyzer.finalizer import ModuleReport
from ts_deadcode.analyzer.resolver import create_resolver



@pytest.fixture(autouse=True)
def isolated_runtime(monkeypatch):
    """Fresh config singleton and default logging for every test."""
    monkeypatch.setattr(config, '_config', None)
    for name in list(os.environ):
        if name.startswith('TS_DEADCODE_'):
            monkeypatch.delenv(name)
    yield
    package_logger = logging.getLogger('ts_deadcode')
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
    package_logger.propagate = True
    package_logger.setLevel(logging.NOTSET)


@pytest.fixture
def project(tmp_path) -> Callable[[Dict[str, str]], Path]:
    """Write {relative path: source} into tmp_path and return the project root."""
    def write(files: Dict[str, str]) -> Path:
        for relative, source in files.items():
            path = tmp_path / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(textwrap.dedent(source).lstrip(), encoding='utf-8')
        return tmp_path.resolve()
    return write


@pytest.fixture
def analyze() -> Callable[..., Dict[str, ModuleReport]]:
    """Run the whole pipeline on a project; reports keyed by relative posix path."""
    def run(root: Path, strategy: str = 'relative') -> Dict[str, ModuleReport]:
        analyzer = DeadExportAnalyzer(create_resolver(root, strategy))
        analyzer.add_files(discover_sources(root))
        return {
            module.relative_to(root).as_posix(): report
            for module, report in analyzer.finalize().items()
        }
    return run
