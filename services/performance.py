"""Timing instrumentation for editor operations.

One `PerformanceMonitor` is created by the application entry point and
handed to every editing session; there is no module-level instance.
"""
from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Dict, Iterator, Optional

logger = logging.getLogger(__name__)


class PerformanceMonitor:
    """Named time marks and the durations measured between them (ms)."""

    def __init__(self):
        self.marks: Dict[str, float] = {}
        self.measures: Dict[str, float] = {}

    def mark(self, name: str) -> None:
        self.marks[name] = time.perf_counter() * 1000

    def measure(self, name: str, start_mark: str, end_mark: str) -> Optional[float]:
        """Record the duration between two marks. Missing marks are ignored."""
        start = self.marks.get(start_mark)
        end = self.marks.get(end_mark)
        if start is None or end is None:
            return None

        duration = end - start
        self.measures[name] = duration
        logger.debug(f"[PERF] {name}: {duration:.2f}ms")
        return duration

    def get_measure(self, name: str) -> Optional[float]:
        return self.measures.get(name)

    @contextmanager
    def track(self, name: str) -> Iterator[None]:
        """Mark, run the block, then measure it under `name`."""
        self.mark(f"{name}:start")
        try:
            yield
        finally:
            self.mark(f"{name}:end")
            self.measure(name, f"{name}:start", f"{name}:end")

    def clear(self) -> None:
        self.marks.clear()
        self.measures.clear()
