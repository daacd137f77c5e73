"""
Logging setup for the CLI entrypoints.
"""

import logging
import sys
from typing import Optional, TextIO

import click

_LEVEL_COLORS = {
    logging.DEBUG: "white",
    logging.INFO: "cyan",
    logging.WARNING: "yellow",
    logging.ERROR: "red",
    logging.CRITICAL: "red",
}

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class ColorFormatter(logging.Formatter):
    """Formatter that colours the level name with click styles."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        color = _LEVEL_COLORS.get(record.levelno)
        if not color:
            return message
        styled = click.style(record.levelname, fg=color, bold=record.levelno >= logging.ERROR)
        return message.replace(record.levelname, styled, 1)


def configure_logging(debug: bool = False, no_color: bool = False, stream: Optional[TextIO] = None) -> None:
    """
    Configure the root logger once for the process.

    Args:
        debug: Log at DEBUG instead of INFO
        no_color: Disable coloured level names
        stream: Output stream, stderr by default
    """
    stream = stream or sys.stderr
    handler = logging.StreamHandler(stream)

    use_color = not no_color and hasattr(stream, "isatty") and stream.isatty()
    formatter_cls = ColorFormatter if use_color else logging.Formatter
    handler.setFormatter(formatter_cls(LOG_FORMAT))

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if debug else logging.INFO)

    # urllib3 logs every request at DEBUG
    logging.getLogger("urllib3").setLevel(logging.INFO if debug else logging.WARNING)
