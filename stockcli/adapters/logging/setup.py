from __future__ import annotations

import sys
from typing import Callable, Optional

from loguru import logger

try:
    import readline
except ImportError:
    readline = None

LOG_FORMAT = "{time:HH:mm:ss.SSSSSS} {message}"


def make_prompting_sink(prompt: Callable[[], str]):
    """Sink that writes a log line above the prompt and redraws the partial input."""

    def _sink(message) -> None:
        buffer = ""
        if readline is not None:
            try:
                buffer = readline.get_line_buffer()
            except Exception:
                buffer = ""
        # Clear the current input line before printing async output.
        sys.stderr.write("\r\x1b[2K")
        sys.stderr.write(str(message))
        sys.stderr.flush()
        sys.stdout.write(prompt() + buffer)
        sys.stdout.flush()

    return _sink


def configure_logging(
    *,
    prompt: Optional[Callable[[], str]] = None,
    log_path: Optional[str] = None,
    level: str = "INFO",
) -> None:
    logger.remove()
    if prompt is not None:
        logger.add(make_prompting_sink(prompt), format=LOG_FORMAT, level=level, colorize=False)
    else:
        logger.add(sys.stderr, format=LOG_FORMAT, level=level)
    if log_path:
        logger.add(log_path, format=LOG_FORMAT, level="DEBUG", enqueue=True)
