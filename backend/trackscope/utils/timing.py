"""
Wall-clock timing of processing stages.
"""

import logging
import time
from contextlib import contextmanager
from typing import Iterator


logger = logging.getLogger(__name__)


@contextmanager
def timed(label: str) -> Iterator[None]:
    """Log how long the wrapped block took."""
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(f"{label} took {elapsed_ms:.1f} ms")
