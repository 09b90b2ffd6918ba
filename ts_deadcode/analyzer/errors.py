"""Exceptions raised by the dead-export analysis engine."""
from pathlib import Path
from typing import Optional


class AnalysisError(Exception):
    """Base class for every error raised by ts-deadcode."""


class ParseError(AnalysisError):
    """A source file could not be read or did not parse cleanly.

    Fatal for the whole run unless the driver was asked to keep going.
    """

    def __init__(self, file_path: str | Path, message: str, line: Optional[int] = None):
        self.file_path = Path(file_path)
        self.message = message
        self.line = line
        location = f"{self.file_path}:{line}" if line else str(self.file_path)
        super().__init__(f"{location}: {message}")

    def __reduce__(self):
        # Travels back from extraction worker processes
        return type(self), (self.file_path, self.message, self.line)


class MalformedSyntaxError(AnalysisError):
    """A syntax shape the extractor cannot interpret at all.

    Raised when continuing would record facts from a half-understood
    pattern. The file's buffered facts are discarded.
    """

    def __init__(self, file_path: str | Path, line: int, node_type: str, context: str):
        self.file_path = Path(file_path)
        self.line = line
        self.node_type = node_type
        self.context = context
        super().__init__(f"{self.file_path}:{line}: unexpected '{node_type}' in {context}")

    def __reduce__(self):
        return type(self), (self.file_path, self.line, self.node_type, self.context)


class DuplicateModuleError(AnalysisError):
    """The same module was registered twice in one analysis context."""

    def __init__(self, module: Path):
        self.module = module
        super().__init__(f"Module already analyzed in this run: {module}")

    def __reduce__(self):
        return type(self), (self.module,)


class ConfigError(AnalysisError):
    """Invalid configuration from the environment or the command line."""
