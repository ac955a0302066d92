"""
Stability Guard for raw multilateration output.

A solve that passes the conditioning threshold can still produce NaN or
infinite coordinates in finite precision. Those are rejected here so they
never reach the smoother.
"""

from typing import Optional
import logging
import math

from rssi_core.proto.errors import ErrorCode
from rssi_core.localization.estimator_config import EstimatorConfig
from rssi_core.metrics import get_metrics

logger = logging.getLogger(__name__)


class StabilityGuard:
    """
    Validate raw (x, y) fixes.

    Usage:
        guard = StabilityGuard(config)
        if guard.validate(x, y) == ErrorCode.OK:
            smoother.update(x, y)
    """

    def __init__(self, config: Optional[EstimatorConfig] = None):
        self.config = config or EstimatorConfig()
        self.metrics = get_metrics()

    def validate(self, x: float, y: float) -> ErrorCode:
        """
        Check a raw fix.

        Args:
            x: Raw X coordinate (m)
            y: Raw Y coordinate (m)

        Returns:
            ErrorCode.OK, or ErrorCode.INVALID_NUMERIC for NaN/inf (or
            coordinates beyond config.max_abs_coordinate, when set)
        """
        if not (math.isfinite(x) and math.isfinite(y)):
            return self._reject(f"non-finite fix ({x}, {y})")

        limit = self.config.max_abs_coordinate
        if limit is not None and (abs(x) > limit or abs(y) > limit):
            return self._reject(f"fix ({x:.1f}, {y:.1f}) beyond +/-{limit}")

        return ErrorCode.OK

    def _reject(self, detail: str) -> ErrorCode:
        self.metrics.increment_drop(ErrorCode.INVALID_NUMERIC.drop_reason)
        logger.debug(f"Unstable fix rejected: {detail}")
        return ErrorCode.INVALID_NUMERIC
