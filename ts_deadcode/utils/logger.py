"""Terminal-safe output and logging setup.

Detects whether the terminal can render UTF-8 and swaps the report's icons
for ASCII otherwise, so Windows consoles never crash on output.
"""
import locale
import logging
import sys
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler


# Unicode to ASCII icon mapping for non-UTF-8 terminals
ICON_MAP = {
    '✓': '[OK]',
    '✗': '[FAIL]',
    '⚠': '[WARN]',
    '→': '->',
    '↻': '<->',
    '…': '...',
    '•': '*',
    '📦': '[pkg]',
    '🔍': '[search]',
    '📊': '[stats]',
}

LOG_FORMAT = "%(name)s: %(message)s"


def detect_terminal_encoding() -> str:
    """Detect the terminal's encoding capability.

    Returns:
        str: Terminal encoding ('utf-8', 'cp1252', 'ascii', etc.)
    """
    if getattr(sys.stdout, 'encoding', None):
        return sys.stdout.encoding.lower()

    try:
        return locale.getpreferredencoding().lower()
    except (ValueError, LookupError):
        return 'ascii'


def is_utf8_capable() -> bool:
    return detect_terminal_encoding().replace('_', '-') in ('utf-8', 'utf8')


def sanitize_for_terminal(text: str) -> str:
    """Replace Unicode icons with ASCII equivalents if terminal doesn't support UTF-8.

    Args:
        text: Text potentially containing Unicode icons

    Returns:
        str: Sanitized text safe for current terminal
    """
    if is_utf8_capable():
        return text

    sanitized = text
    for unicode_char, ascii_replacement in ICON_MAP.items():
        sanitized = sanitized.replace(unicode_char, ascii_replacement)
    return sanitized


def parse_log_level(value: str | int) -> int:
    """Map 'debug', 'INFO', 20, ... to a logging level; ValueError when unknown."""
    if isinstance(value, int):
        return value
    level = logging.getLevelName(value.strip().upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {value}")
    return level


def configure_logging(level: str | int = logging.WARNING, console: Optional[Console] = None) -> None:
    """Route every ts_deadcode logger through one RichHandler on stderr.

    Calling it again replaces the previous handler (the CLI may be invoked
    several times in one process, e.g. under CliRunner).
    """
    level = parse_log_level(level)
    handler = RichHandler(
        console=console,
        show_time=False,
        show_path=False,
        markup=False,
        rich_tracebacks=False,
    )
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    package_logger = logging.getLogger('ts_deadcode')
    for existing in list(package_logger.handlers):
        if isinstance(existing, RichHandler):
            package_logger.removeHandler(existing)
    package_logger.addHandler(handler)
    package_logger.setLevel(level)
    package_logger.propagate = False
