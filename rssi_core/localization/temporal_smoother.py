"""
Temporal Smoother (decoupled per-axis Kalman filter).

Two independent 1-D filters, one per axis, stored side by side in length-2
arrays. All operations are element-wise: there is no cross-axis covariance
and no motion model, the position is assumed static between fixes apart
from process noise.

    predict:  P += Q
    update:   K = P / (P + R)
              x += K (z - x)
              P *= (1 - K)

The first measurement bypasses the update and is taken as the estimate,
so the first fix is not pulled toward the zero prior.
"""

from typing import Optional, Tuple
from dataclasses import dataclass
import logging

import numpy as np

from rssi_core.localization.estimator_config import EstimatorConfig
from rssi_core.metrics import get_metrics

logger = logging.getLogger(__name__)


@dataclass
class EstimatorState:
    """
    Snapshot of smoother state.

    Attributes:
        smoothed_position: Current (x, y) estimate (m)
        per_axis_variance: Current (var_x, var_y) (m²)
        initialized: True once the first fix has been taken
    """

    smoothed_position: Tuple[float, float]
    per_axis_variance: Tuple[float, float]
    initialized: bool


class TemporalSmoother:
    """
    Smooth successive raw fixes of one receiver.

    Usage:
        smoother = TemporalSmoother(config)
        smoother.update(raw_x, raw_y)
        x, y = smoother.current_estimate()

    Notes:
        - One instance per tracked receiver, never shared
        - Never resets implicitly; call reset() explicitly
    """

    def __init__(self, config: Optional[EstimatorConfig] = None):
        """
        Initialize smoother with total uncertainty.

        Args:
            config: Estimator configuration (uses defaults if None)
        """
        self.config = config or EstimatorConfig()
        self.metrics = get_metrics()

        self._estimate = np.zeros(2)
        self._variance = np.full(2, self.config.initial_variance)
        self._initialized = False

    def is_initialized(self) -> bool:
        """Check if the first fix has been taken."""
        return self._initialized

    def update(self, x: float, y: float) -> Tuple[float, float]:
        """
        Feed one raw fix.

        Args:
            x: Raw X coordinate (m)
            y: Raw Y coordinate (m)

        Returns:
            Smoothed (x, y) after the update
        """
        measurement = np.array([x, y], dtype=np.float64)

        if not self._initialized:
            self._estimate = measurement
            self._initialized = True
            self.metrics.increment('smoother_initialized')
            logger.debug(f"Smoother initialized at ({x:.3f}, {y:.3f})")
            return self.current_estimate()

        # Predict
        self._variance = self._variance + self.config.process_noise

        # Update
        gain = self._variance / (self._variance + self.config.measurement_noise)
        self._estimate = self._estimate + gain * (measurement - self._estimate)
        self._variance = self._variance * (1.0 - gain)

        self.metrics.increment('smoother_updates')
        self.metrics.record_histogram('smoother_variance_x', float(self._variance[0]))
        self.metrics.record_histogram('smoother_variance_y', float(self._variance[1]))

        return self.current_estimate()

    def current_estimate(self) -> Tuple[float, float]:
        """Latest smoothed (x, y); zeros before the first update."""
        return (float(self._estimate[0]), float(self._estimate[1]))

    def current_variance(self) -> Tuple[float, float]:
        """Latest per-axis variance (m²)."""
        return (float(self._variance[0]), float(self._variance[1]))

    @property
    def state(self) -> EstimatorState:
        """Snapshot of the current state."""
        return EstimatorState(
            smoothed_position=self.current_estimate(),
            per_axis_variance=self.current_variance(),
            initialized=self._initialized,
        )

    def reset(self):
        """Return to the uninitialized, total-uncertainty state."""
        self._estimate = np.zeros(2)
        self._variance = np.full(2, self.config.initial_variance)
        self._initialized = False
        self.metrics.increment('smoother_resets')
