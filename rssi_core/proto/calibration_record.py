"""
Calibration Record Schema.

Per-hotspot position and log-distance propagation parameters, established
out-of-band (site survey) and held by the calibration store.
"""

from dataclasses import dataclass
from typing import Tuple
import math


@dataclass(frozen=True)
class CalibrationRecord:
    """
    Calibration of a single reference emitter.

    Attributes:
        identifier: Emitter identifier (SSID), unique key in the store
        x: Emitter X position (m)
        y: Emitter Y position (m)
        rssi_at_1m: Reference RSSI measured at 1 m (dBm)
        path_loss_exponent: Log-distance path loss exponent (> 0)

    Notes:
        - Immutable; the estimation core only ever reads it
        - Validation here is the store's write contract, so the distance
          model can assume path_loss_exponent > 0
    """

    identifier: str
    x: float
    y: float
    rssi_at_1m: float
    path_loss_exponent: float

    def __post_init__(self):
        """Validate calibration record."""
        if not isinstance(self.identifier, str) or not self.identifier:
            raise ValueError(f"Identifier must be a non-empty string: {self.identifier!r}")

        for name in ('x', 'y', 'rssi_at_1m', 'path_loss_exponent'):
            value = getattr(self, name)
            if not math.isfinite(value):
                raise ValueError(f"{name} must be finite: {value}")

        if self.path_loss_exponent <= 0:
            raise ValueError(
                f"Path loss exponent must be positive: {self.path_loss_exponent}"
            )

    @property
    def position(self) -> Tuple[float, float]:
        """Emitter position (x, y) in meters."""
        return (self.x, self.y)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            'identifier': self.identifier,
            'x': self.x,
            'y': self.y,
            'rssi_at_1m': self.rssi_at_1m,
            'path_loss_exponent': self.path_loss_exponent,
        }
