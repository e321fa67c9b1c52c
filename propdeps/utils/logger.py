"""Logging setup and terminal-safe text for propdeps.

Detects terminal encoding and provides ASCII alternatives for the icons used
in reports, so output does not crash terminals without UTF-8 support.
"""
import logging
import locale
import sys

from rich.console import Console
from rich.logging import RichHandler


# Unicode to ASCII icon mapping for non UTF-8 terminals
ICON_MAP = {
    '✓': '[OK]',      # check mark
    '✔': '[OK]',
    '✗': '[FAIL]',    # ballot x
    '✘': '[FAIL]',
    '⚠': '[WARN]',    # warning sign
    '→': '->',
    '←': '<-',
    '⇒': '=>',
    '…': '...',
    '•': '*',
    '│': '|',
    '─': '-',
}


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
    """Check if the terminal can handle UTF-8 Unicode characters."""
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


def configure_logging(level: int = logging.WARNING) -> logging.Logger:
    """Route the ``propdeps`` loggers through a rich handler.

    Args:
        level: Logging level for the package loggers

    Returns:
        The package root logger
    """
    logger = logging.getLogger('propdeps')
    logger.setLevel(level)
    if not any(isinstance(handler, RichHandler) for handler in logger.handlers):
        handler = RichHandler(console=Console(stderr=True), show_path=False, markup=False)
        handler.setFormatter(logging.Formatter('%(name)s: %(message)s'))
        logger.addHandler(handler)
    return logger
