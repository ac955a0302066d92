"""
Estimator configuration.

One configuration structure is passed to the pipeline at construction and
shared with its components, instead of compiled-in constants.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class EstimatorConfig:
    """
    Configuration for the position estimation pipeline.

    Attributes:
        rssi_threshold_dbm: Observations at or below this RSSI are dropped (dBm)
        min_samples: Minimum number of qualifying samples for a solve
        process_noise: Smoother variance added per update (m²)
        measurement_noise: Smoother measurement variance (m²)
        initial_variance: Smoother per-axis variance before any fix (m²)
        condition_epsilon: Solves with |C² - 1| below this are ill-conditioned
        max_abs_coordinate: Optional bound on |x|, |y| of a raw fix (m)
    """

    rssi_threshold_dbm: float = -90.0
    min_samples: int = 2
    process_noise: float = 0.01
    measurement_noise: float = 1.0
    initial_variance: float = 1000.0   # "No prior knowledge"
    condition_epsilon: float = 1e-6
    max_abs_coordinate: Optional[float] = None

    def __post_init__(self):
        """Validate configuration."""
        assert self.min_samples >= 1, "min_samples must be at least 1"
        assert self.process_noise >= 0, "process_noise cannot be negative"
        assert self.measurement_noise > 0, "measurement_noise must be positive"
        assert self.initial_variance > 0, "initial_variance must be positive"
        assert self.condition_epsilon > 0, "condition_epsilon must be positive"
        if self.max_abs_coordinate is not None:
            assert self.max_abs_coordinate > 0, "max_abs_coordinate must be positive"
