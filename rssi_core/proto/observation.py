"""
RSSI Observation Schema.

One reading of one hotspot, produced by the radio scanner once per scan
and consumed once by the estimation pipeline.
"""

from dataclasses import dataclass
from typing import Optional
import math
import numbers


@dataclass
class Observation:
    """
    Signal strength of a hotspot seen in a single scan.

    Attributes:
        identifier: Emitter identifier (SSID)
        measured_rssi: Measured RSSI in dBm (integer, as reported by the radio)
        timestamp: Scan time in seconds, if the scanner provides one
    """

    identifier: str
    measured_rssi: int
    timestamp: Optional[float] = None

    @property
    def is_valid(self) -> bool:
        """Check if observation is usable by the pipeline."""
        if not isinstance(self.identifier, str) or not self.identifier:
            return False
        if isinstance(self.measured_rssi, bool):
            return False
        if not isinstance(self.measured_rssi, numbers.Real):
            return False
        try:
            return math.isfinite(self.measured_rssi)
        except OverflowError:
            # int beyond float range
            return False

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            'identifier': self.identifier,
            'rssi': self.measured_rssi,
            'timestamp': self.timestamp,
        }
