"""
RSSI to Distance Conversion.

Inverts the log-distance path loss model per emitter:

    d = 10 ^ ((RSSI@1m - RSSI) / (10 * n))

A larger RSSI deficit (weaker signal) yields a larger distance.
"""

import numpy as np

from rssi_core.proto.calibration_record import CalibrationRecord
from rssi_core.proto.observation import Observation


def rssi_to_distance(
    measured_rssi: float,
    rssi_at_1m: float,
    path_loss_exponent: float,
) -> float:
    """
    Estimate distance (m) from a measured RSSI.

    Args:
        measured_rssi: Measured RSSI (dBm)
        rssi_at_1m: Reference RSSI at 1 m (dBm)
        path_loss_exponent: Path loss exponent (> 0)

    Returns:
        Estimated distance in meters. Overflow saturates to inf and
        underflow to 0.0; callers drop such distances.
    """
    exponent = (rssi_at_1m - measured_rssi) / (10.0 * path_loss_exponent)
    with np.errstate(over='ignore', under='ignore'):
        return float(np.power(10.0, exponent))


def distance_weight(distance_m: float) -> float:
    """Inverse-square sample weight; near emitters are trusted more."""
    with np.errstate(divide='ignore', over='ignore', under='ignore'):
        return float(np.float64(1.0) / np.square(np.float64(distance_m)))


class DistanceEstimator:
    """
    Convert (observation, calibration) pairs into distance estimates.

    Usage:
        estimator = DistanceEstimator()
        record = store.lookup(obs.identifier)
        d = estimator.distance(obs, record)
    """

    def distance(self, observation: Observation, calibration: CalibrationRecord) -> float:
        """
        Estimated distance between receiver and emitter.

        Args:
            observation: RSSI observation of the emitter
            calibration: Calibration record of the same emitter

        Returns:
            Distance in meters
        """
        return rssi_to_distance(
            observation.measured_rssi,
            calibration.rssi_at_1m,
            calibration.path_loss_exponent,
        )
