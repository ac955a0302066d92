"""
Metrics Module: Diagnostics, counters, histograms.

- Counters: scans_in, observations_in, solve_attempts, fixes_produced, etc.
- Histograms: solve condition, total weight, smoother variance
- Drop reason codes (no silent drops)

Usage:
    from rssi_core.metrics import get_metrics

    metrics = get_metrics()
    metrics.increment('scans_in')
    metrics.increment_drop('below_threshold')
    metrics.record_histogram('solve_condition', 0.42)
"""

from .counters import MetricsCollector

# Global singleton for easy access
_global_metrics = None


def get_metrics() -> MetricsCollector:
    """
    Get the global metrics collector singleton.

    Returns:
        MetricsCollector instance
    """
    global _global_metrics
    if _global_metrics is None:
        _global_metrics = MetricsCollector()
    return _global_metrics


def reset_metrics():
    """Reset global metrics (for testing)."""
    global _global_metrics
    _global_metrics = MetricsCollector()


__all__ = ['MetricsCollector', 'get_metrics', 'reset_metrics']
