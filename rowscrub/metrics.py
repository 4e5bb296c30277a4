from __future__ import annotations

import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass


class Counter:
    def __init__(self) -> None:
        self.value = 0
        self._lock = threading.Lock()

    def inc(self, n: int = 1) -> None:
        with self._lock:
            self.value += n

    def reset(self) -> None:
        with self._lock:
            self.value = 0


@dataclass
class Span:
    ms: float | None = None


class Timer:
    """Aggregates timed spans.

    Each ``time()`` block yields its own :class:`Span`, so concurrent users
    read their own duration rather than ``last_ms``, which any of them may
    have overwritten.
    """

    def __init__(self) -> None:
        self.last_ms: float | None = None
        self.total_ms = 0.0
        self.count = 0

    @contextmanager
    def time(self):  # noqa: ANN201 (to keep it lightweight)
        span = Span()
        start = time.perf_counter()
        try:
            yield span
        finally:
            span.ms = (time.perf_counter() - start) * 1000
            self.last_ms = span.ms
            self.total_ms += span.ms
            self.count += 1


records_scrubbed_total = Counter()
record_failures_total = Counter()
tables_failed_total = Counter()
page_fetch_ms = Timer()
