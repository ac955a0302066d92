"""
Positioning metrics: counters, drop reasons and bounded histograms.

Counters track the flow through the estimation path (scans, solves,
smoother updates, fixes) and the calibration store. Every dropped
observation and every failed fix is recorded under a reason code from
DROP_REASONS; failed fixes use ErrorCode.drop_reason.
"""

import logging
import statistics
import threading
import time
from collections import defaultdict, deque
from dataclasses import dataclass
from typing import Deque, Dict, Optional

logger = logging.getLogger(__name__)

# Counters reported even when still zero
STANDARD_COUNTERS = (
    'scans_in',
    'observations_in',
    'solve_attempts',
    'solve_success',
    'smoother_updates',
    'fixes_produced',
    'store_upserts',
    'store_lookups',
)

HISTOGRAM_SAMPLES = 5000


@dataclass
class CounterSnapshot:
    """Copy of the collector state at one point in time."""

    timestamp: float
    counters: Dict[str, int]
    drop_reasons: Dict[str, int]
    histograms: Dict[str, Dict[str, float]]

    def total_dropped(self) -> int:
        return sum(self.drop_reasons.values())


class MetricsCollector:
    """
    Thread-safe metrics for the positioning pipeline.

    Usage:
        metrics = MetricsCollector()
        metrics.increment('scans_in')
        metrics.increment_drop('below_threshold')
        metrics.record_histogram('solve_condition', 0.75)

        print(metrics.format_summary())
    """

    DROP_REASONS = {
        # Per observation
        'below_threshold': 'Observation RSSI at or below threshold',
        'calibration_missing': 'No calibration record for emitter',
        'degenerate_distance': 'Distance estimate zero or non-finite',
        'malformed_observation': 'Observation missing identifier or RSSI',
        'parse_error': 'Malformed scan message entry',
        # Per fix
        'insufficient_observations': 'Fewer observations than min_samples',
        'insufficient_valid_observations': 'Too few observations after filtering',
        'insufficient_samples': 'Solver called with too few samples',
        'zero_weight': 'Total sample weight is zero',
        'ill_conditioned': 'Near-singular emitter geometry',
        'invalid_numeric': 'NaN/inf or out-of-bounds solve output',
        # Calibration store
        'store_full': 'Calibration store has no free slot',
        'identifier_invalid': 'Identifier empty, non-printable or too long',
        'corrupt_slot': 'Garbage calibration slot skipped',
    }

    def __init__(self, histogram_samples: int = HISTOGRAM_SAMPLES):
        self._lock = threading.Lock()
        self._histogram_samples = histogram_samples
        self._counters: Dict[str, int] = {name: 0 for name in STANDARD_COUNTERS}
        self._drop_reasons: Dict[str, int] = {reason: 0 for reason in self.DROP_REASONS}
        self._histograms: Dict[str, Deque[float]] = defaultdict(
            lambda: deque(maxlen=self._histogram_samples)
        )
        self._start_time = time.time()

    def increment(self, counter_name: str, value: int = 1):
        with self._lock:
            self._counters[counter_name] = self._counters.get(counter_name, 0) + value

    def increment_drop(self, reason: str, value: int = 1):
        """
        Record dropped observations or failed fixes.

        Args:
            reason: Drop reason code (one of DROP_REASONS)
            value: Number of drops
        """
        if reason not in self.DROP_REASONS:
            # Counted anyway so nothing goes missing
            logger.warning(f"Unknown drop reason '{reason}'")

        with self._lock:
            self._drop_reasons[reason] = self._drop_reasons.get(reason, 0) + value
            self._counters['dropped'] = self._counters.get('dropped', 0) + value

    def get_counter(self, counter_name: str) -> int:
        with self._lock:
            return self._counters.get(counter_name, 0)

    def get_drop_count(self, reason: str) -> int:
        with self._lock:
            return self._drop_reasons.get(reason, 0)

    def record_histogram(self, histogram_name: str, value: float):
        """Record a value; only the most recent samples are kept."""
        with self._lock:
            self._histograms[histogram_name].append(value)

    def get_histogram_stats(self, histogram_name: str) -> Optional[Dict[str, float]]:
        """
        Summary of a histogram.

        Returns:
            Dict with count, min, max, mean; None if nothing was recorded
        """
        with self._lock:
            return self._histogram_stats(histogram_name)

    def snapshot(self) -> CounterSnapshot:
        with self._lock:
            return CounterSnapshot(
                timestamp=time.time(),
                counters=dict(self._counters),
                drop_reasons=dict(self._drop_reasons),
                histograms={name: self._histogram_stats(name) for name in self._histograms},
            )

    def get_uptime(self) -> float:
        return time.time() - self._start_time

    def format_summary(self) -> str:
        """Human-readable summary: fix rate, counters, drops, histograms."""
        snapshot = self.snapshot()
        counters = snapshot.counters

        scans = counters.get('scans_in', 0)
        fixes = counters.get('fixes_produced', 0)
        fix_rate = 100.0 * fixes / scans if scans else 0.0

        lines = [
            "=" * 60,
            f"  POSITIONING METRICS (uptime: {self.get_uptime():.1f}s)",
            "=" * 60,
            f"  fixes: {fixes}/{scans} scans ({fix_rate:.1f}%)",
            "",
            "COUNTERS:",
        ]
        lines.extend(f"  {name:32s}: {value:8d}" for name, value in sorted(counters.items()))

        total_dropped = snapshot.total_dropped()
        if total_dropped:
            lines += ["", "DROP REASONS:"]
            for reason, count in sorted(snapshot.drop_reasons.items()):
                if count:
                    lines.append(f"  {reason:32s}: {count:8d} "
                                 f"({100.0 * count / total_dropped:5.1f}%)")

        if snapshot.histograms:
            lines += ["", "HISTOGRAMS:"]
            for name, stats in sorted(snapshot.histograms.items()):
                lines.append(f"  {name}: count={stats['count']}, mean={stats['mean']:.4g}, "
                             f"min={stats['min']:.4g}, max={stats['max']:.4g}")

        lines.append("=" * 60)
        return "\n".join(lines)

    def print_summary(self):
        print("\n" + self.format_summary() + "\n")

    def _histogram_stats(self, histogram_name: str) -> Optional[Dict[str, float]]:
        samples = self._histograms.get(histogram_name)
        if not samples:
            return None
        return {
            'count': len(samples),
            'min': min(samples),
            'max': max(samples),
            'mean': statistics.fmean(samples),
        }
