"""Optional timing of priest processing steps."""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Iterator

logger = logging.getLogger(__name__)


class _State:
    enabled = False


def set_enabled(enabled: bool) -> None:
    """Turn timing statistics on or off."""
    _State.enabled = bool(enabled)


def is_enabled() -> bool:
    """Tell whether timing statistics are on."""
    return _State.enabled


@contextmanager
def time_stat(process_name: str) -> Iterator[None]:
    """Log how long the block took, when statistics are on."""
    if not _State.enabled:
        yield
        return
    begin = time.perf_counter()
    try:
        yield
    finally:
        elapsed = time.perf_counter() - begin
        logger.info("stat <%s> process use time:%.3fms", process_name, elapsed * 1000)