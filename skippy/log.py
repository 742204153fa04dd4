"""Logging helpers.

skippy logs through the standard ``logging`` module under the ``skippy``
logger hierarchy. Stage-by-stage progress is logged at DEBUG normally and at
INFO in debug mode, where someone is actively watching a run.
"""

from __future__ import annotations

import logging
import sys
import time
from collections.abc import Callable, Iterator, MutableMapping
from contextlib import contextmanager
from typing import Any

LOG_PREFIX = "[Skippy]"

Logger = logging.Logger | logging.LoggerAdapter


class PrefixAdapter(logging.LoggerAdapter):
    """Prefix every message, e.g. with the tool a computation runs for."""

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> tuple[Any, MutableMapping[str, Any]]:
        return f"{self.extra['prefix']} {msg}", kwargs


def prefixed(logger: logging.Logger, tool: str) -> PrefixAdapter:
    """Return a logger that prefixes messages with ``[Skippy][tool]``."""
    return PrefixAdapter(logger, {"prefix": f"{LOG_PREFIX}[{tool}]"})


def verbose(logger: Logger, debug: bool) -> Callable[[str], None]:
    """Pick the level for progress messages.

    Counter-intuitively, debug mode logs them at INFO: debug mode is for
    watching a run, and DEBUG output is usually filtered out.
    """
    return logger.info if debug else logger.debug


@contextmanager
def timed(log: Callable[[str], None], name: str) -> Iterator[None]:
    """Log how long the body of the ``with`` block took."""
    start = time.perf_counter()
    try:
        yield
    finally:
        log(f"{name} took {time.perf_counter() - start:.3f}s")


def configure(debug: bool = False) -> None:
    """Send skippy's log output to stderr.

    Library users that already configure logging do not need this.
    """
    logger = logging.getLogger("skippy")
    logger.setLevel(logging.DEBUG if debug else logging.INFO)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(handler)
