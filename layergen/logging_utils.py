"""
logging_utils.py — Terminal logging setup and timed log sections.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Iterator, Optional

from rich.console import Console
from rich.logging import RichHandler

LOG_FORMAT = "%(message)s"
DATE_FORMAT = "[%X]"


def setup_logging(verbose: bool = False, console: Optional[Console] = None) -> None:
    """Route all log records through rich: time, level, message."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        handlers=[
            RichHandler(
                console=console,
                show_path=verbose,
                rich_tracebacks=True,
                markup=False,
            )
        ],
        force=True,
    )
    # Pillow's PNG plugin is chatty at DEBUG
    logging.getLogger("PIL").setLevel(logging.INFO)


@contextmanager
def log_measure(message: str, logger: Optional[logging.Logger] = None) -> Iterator[None]:
    """
    Log the start and end of a section with its elapsed time.

      Starting: 'Create images for group 3fa2c1' …
      Finished: 'Create images for group 3fa2c1' after 1.42s
    """
    log = logger or logging.getLogger(__name__)
    log.info(f"Starting: '{message}' …")
    t0 = time.perf_counter()
    try:
        yield
    finally:
        log.info(f"Finished: '{message}' after {time.perf_counter() - t0:.2f}s")
