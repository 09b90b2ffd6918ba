"""Configuration management for ts-deadcode.

Settings come from, highest priority first: command-line options, the
process environment, then a `.env` file in the analyzed project's root.
"""
import os
from pathlib import Path
from typing import Dict, List, Optional

from dotenv import dotenv_values

from .analyzer.errors import ConfigError
from .analyzer.resolver import RESOLVER_STRATEGIES

__version__ = "1.2.0"

_TRUE_VALUES = {'1', 'true', 'yes', 'on'}
_FALSE_VALUES = {'0', 'false', 'no', 'off', ''}
_LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')


class Config:
    """Configuration loader with environment variable support."""

    def __init__(self, project_root: str | Path = "."):
        """Load .env from the analyzed project (process environment wins).

        Raises:
            ConfigError: If any setting has an invalid value
        """
        self.project_root = Path(project_root).resolve()
        env_path = self.project_root / ".env"
        self._dotenv: Dict[str, Optional[str]] = dotenv_values(env_path) if env_path.is_file() else {}
        self._validate()

    def _get(self, name: str, default: str) -> str:
        value = os.getenv(name)
        if value is None:
            value = self._dotenv.get(name)
        return default if value is None else value

    def _validate(self):
        # Touch every property once so bad values fail before analysis starts
        self.resolver_strategy
        self.excluded_dirs
        self.exclude_tests
        self.jobs
        self.log_level

    @property
    def resolver_strategy(self) -> str:
        """TS_DEADCODE_RESOLVER: auto (default), relative, package or tsconfig."""
        value = self._get("TS_DEADCODE_RESOLVER", "auto").strip().lower()
        if value not in RESOLVER_STRATEGIES:
            raise ConfigError(
                f"TS_DEADCODE_RESOLVER must be one of {', '.join(RESOLVER_STRATEGIES)}, got '{value}'"
            )
        return value

    @property
    def excluded_dirs(self) -> List[str]:
        """Extra directory names to skip, comma-separated."""
        raw = self._get("TS_DEADCODE_EXCLUDE_DIRS", "")
        return [part.strip() for part in raw.split(',') if part.strip()]

    @property
    def exclude_tests(self) -> bool:
        value = self._get("TS_DEADCODE_EXCLUDE_TESTS", "false").strip().lower()
        if value in _TRUE_VALUES:
            return True
        if value in _FALSE_VALUES:
            return False
        raise ConfigError(f"TS_DEADCODE_EXCLUDE_TESTS must be a boolean, got '{value}'")

    @property
    def jobs(self) -> int:
        """Extraction worker processes (1 = no process pool)."""
        value = self._get("TS_DEADCODE_JOBS", "1").strip()
        try:
            jobs = int(value)
        except ValueError:
            raise ConfigError(f"TS_DEADCODE_JOBS must be an integer, got '{value}'") from None
        if jobs < 1:
            raise ConfigError(f"TS_DEADCODE_JOBS must be at least 1, got {jobs}")
        return jobs

    @property
    def log_level(self) -> str:
        value = self._get("TS_DEADCODE_LOG_LEVEL", "WARNING").strip().upper()
        if value not in _LOG_LEVELS:
            raise ConfigError(f"TS_DEADCODE_LOG_LEVEL must be one of {', '.join(_LOG_LEVELS)}, got '{value}'")
        return value


# Singleton instance for the current project root
_config = None


def get_config(project_root: str | Path = ".") -> Config:
    """Get or create the Config for a project root.

    Returns:
        Config instance
    """
    global _config
    root = Path(project_root).resolve()
    if _config is None or _config.project_root != root:
        _config = Config(root)
    return _config
