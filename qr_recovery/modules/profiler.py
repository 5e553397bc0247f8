"""
Wall-clock timing of named operations, used to spot slow recovery strategies.
"""

import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from typing import Dict, Iterator, List, Optional

logger = logging.getLogger("qr-recovery.profiler")


@dataclass(frozen=True)
class PerformanceReport:
    operation: str
    count: int
    avg_ms: float
    min_ms: float
    max_ms: float
    total_ms: float

    def to_dict(self) -> dict:
        return asdict(self)


class PerformanceProfiler:
    """
    Collects durations per operation name. Safe to share between threads.
    """

    def __init__(self):
        self._timings: Dict[str, List[float]] = {}
        self._lock = threading.Lock()

    @contextmanager
    def measure(self, operation: str) -> Iterator[None]:
        """Times the body of the ``with`` block, even when it raises."""
        start = time.perf_counter()
        try:
            yield
        finally:
            self.record(operation, (time.perf_counter() - start) * 1000.0)

    def record(self, operation: str, duration_ms: float):
        with self._lock:
            self._timings.setdefault(operation, []).append(duration_ms)

    def report(self, operation: str) -> Optional[PerformanceReport]:
        with self._lock:
            timings = list(self._timings.get(operation, ()))
        if not timings:
            return None
        total = sum(timings)
        return PerformanceReport(
            operation=operation,
            count=len(timings),
            avg_ms=total / len(timings),
            min_ms=min(timings),
            max_ms=max(timings),
            total_ms=total,
        )

    def full_report(self) -> Dict[str, PerformanceReport]:
        with self._lock:
            operations = list(self._timings)
        reports = {}
        for operation in operations:
            report = self.report(operation)
            if report is not None:
                reports[operation] = report
        return reports

    def bottlenecks(self, threshold_ms: float = 100.0) -> List[PerformanceReport]:
        """
        Operations averaging above ``threshold_ms`` or peaking above twice
        that, slowest average first.
        """
        slow = [
            report
            for report in self.full_report().values()
            if report.avg_ms > threshold_ms or report.max_ms > 2 * threshold_ms
        ]
        slow.sort(key=lambda report: report.avg_ms, reverse=True)
        for report in slow:
            logger.debug(
                "Bottleneck %s: avg=%.1fms max=%.1fms over %d calls",
                report.operation,
                report.avg_ms,
                report.max_ms,
                report.count,
            )
        return slow

    def clear(self):
        with self._lock:
            self._timings.clear()
