"""
Weighted Linearized Multilateration (2-D).

Solves for the receiver position from (emitter position, distance, weight)
samples. Each range circle

    (x - x_i)² + (y - y_i)² = d_i²

is subtracted from the weighted mean circle, which removes the quadratic
terms and leaves one linear equation per sample:

    (2 x_i - A) x + (2 y_i - B) y = k_i - D,    k_i = x_i² + y_i² - d_i²

with the weight-normalized sums

    A = (2/W) Σ w_i x_i,   B = (2/W) Σ w_i y_i,   D = (1/W) Σ w_i k_i,
    W = Σ w_i,   w_i = 1 / d_i²

The weighted normal equations are scaled to unit diagonal, so the system
reduces to [[1, C], [C, 1]] where C is the weighted correlation of the
emitter coordinates. The solution carries the denominator (C² - 1), which
goes to zero when the emitters are collinear (two emitters always are).
"""

from typing import List, Optional, Tuple
from dataclasses import dataclass
import logging

import numpy as np

from rssi_core.proto.errors import ErrorCode
from rssi_core.localization.estimator_config import EstimatorConfig
from rssi_core.localization.distance_estimator import distance_weight
from rssi_core.metrics import get_metrics

logger = logging.getLogger(__name__)


@dataclass
class WeightedSample:
    """
    One solver input, derived from a single valid observation.

    Attributes:
        position: Emitter (x, y) in meters
        distance: Estimated receiver-emitter distance (m)
        weight: Sample weight (1 / distance²)
        identifier: Emitter identifier, for diagnostics
    """

    position: Tuple[float, float]
    distance: float
    weight: float
    identifier: Optional[str] = None

    def __post_init__(self):
        """Validate sample weight."""
        # Zero stays constructible for ZERO_WEIGHT; NaN fails the comparison
        if not self.weight >= 0.0:
            raise ValueError(f"Sample weight must be non-negative: {self.weight}")

    @classmethod
    def from_distance(
        cls,
        position: Tuple[float, float],
        distance_m: float,
        identifier: Optional[str] = None,
    ) -> 'WeightedSample':
        """Build a sample with inverse-square weighting."""
        return cls(
            position=(float(position[0]), float(position[1])),
            distance=float(distance_m),
            weight=distance_weight(distance_m),
            identifier=identifier,
        )


@dataclass
class SolveResult:
    """
    Output of a multilateration solve.

    Attributes:
        error: ErrorCode.OK on success
        position: Raw (x, y) solution, None on failure
        condition: Correlation term C of the normalized system, if computed
        total_weight: Sum of sample weights, if computed
    """

    error: ErrorCode
    position: Optional[Tuple[float, float]] = None
    condition: Optional[float] = None
    total_weight: Optional[float] = None

    @property
    def ok(self) -> bool:
        return self.error == ErrorCode.OK


class WeightedMultilaterator:
    """
    Weighted linearized least-squares position solver.

    Usage:
        solver = WeightedMultilaterator(config)
        samples = [WeightedSample.from_distance((0, 0), 7.1), ...]
        result = solver.solve(samples)

        if result.ok:
            x, y = result.position

    Failure modes:
        - INSUFFICIENT_SAMPLES: fewer than config.min_samples samples
        - ZERO_WEIGHT: total weight is zero
        - INVALID_NUMERIC: non-finite sample data or total weight
        - ILL_CONDITIONED: |C² - 1| < config.condition_epsilon, or no
          coordinate spread along one axis
    """

    def __init__(self, config: Optional[EstimatorConfig] = None):
        """
        Initialize solver.

        Args:
            config: Estimator configuration (uses defaults if None)
        """
        self.config = config or EstimatorConfig()
        self.metrics = get_metrics()

    def solve(self, samples: List[WeightedSample]) -> SolveResult:
        """
        Solve the receiver position from weighted samples.

        Args:
            samples: Weighted samples, one per emitter

        Returns:
            SolveResult with the raw position or the failure reason
        """
        self.metrics.increment('solve_attempts')

        if len(samples) < self.config.min_samples:
            return self._fail(ErrorCode.INSUFFICIENT_SAMPLES, f"{len(samples)} samples")

        xs = np.array([s.position[0] for s in samples], dtype=np.float64)
        ys = np.array([s.position[1] for s in samples], dtype=np.float64)
        ds = np.array([s.distance for s in samples], dtype=np.float64)
        ws = np.array([s.weight for s in samples], dtype=np.float64)

        with np.errstate(all='ignore'):
            total_weight = float(np.sum(ws))

            if total_weight == 0.0:
                return self._fail(ErrorCode.ZERO_WEIGHT, "sum of weights is zero")

            if not (np.all(np.isfinite(xs)) and np.all(np.isfinite(ys))
                    and np.all(np.isfinite(ds)) and np.isfinite(total_weight)):
                return self._fail(ErrorCode.INVALID_NUMERIC, "non-finite sample data")

            # Normalized first moments
            k = xs * xs + ys * ys - ds * ds
            a = 2.0 * np.sum(xs * ws) / total_weight
            b = 2.0 * np.sum(ys * ws) / total_weight
            d = np.sum(k * ws) / total_weight

            # Linearized rows: ux * x + uy * y = r
            ux = 2.0 * xs - a
            uy = 2.0 * ys - b
            r = k - d

            # Normalized weighted normal equations
            pxx = np.sum(ws * ux * ux) / total_weight
            pyy = np.sum(ws * uy * uy) / total_weight
            pxy = np.sum(ws * ux * uy) / total_weight
            pxr = np.sum(ws * ux * r) / total_weight
            pyr = np.sum(ws * uy * r) / total_weight

            eps = self.config.condition_epsilon
            spread = pxx + pyy
            if not spread > 0.0 or min(pxx, pyy) < eps * spread:
                return self._fail(
                    ErrorCode.ILL_CONDITIONED, "no coordinate spread on one axis",
                    total_weight=total_weight,
                )

            sx = np.sqrt(pxx)
            sy = np.sqrt(pyy)
            c = pxy / (sx * sy)
            denominator = c * c - 1.0

            if not np.isfinite(denominator) or abs(denominator) < eps:
                return self._fail(
                    ErrorCode.ILL_CONDITIONED, f"C={c:.9f}",
                    condition=float(c), total_weight=total_weight,
                )

            gx = pxr / sx
            gy = pyr / sy
            x = (c * gy - gx) / denominator / sx
            y = (c * gx - gy) / denominator / sy

        self.metrics.increment('solve_success')
        self.metrics.record_histogram('solve_condition', float(abs(denominator)))
        self.metrics.record_histogram('solve_total_weight', total_weight)

        return SolveResult(
            error=ErrorCode.OK,
            position=(float(x), float(y)),
            condition=float(c),
            total_weight=total_weight,
        )

    def _fail(
        self,
        error: ErrorCode,
        detail: str,
        condition: Optional[float] = None,
        total_weight: Optional[float] = None,
    ) -> SolveResult:
        """Record and return a failed solve."""
        self.metrics.increment_drop(error.drop_reason)
        logger.debug(f"Solve failed: {error.name} ({detail})")
        return SolveResult(error=error, condition=condition, total_weight=total_weight)
