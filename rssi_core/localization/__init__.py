"""
Localization Module: RSSI distance model, multilateration, smoothing.

Key classes:
- EstimatorConfig: Thresholds, noise constants, conditioning epsilon
- DistanceEstimator: Log-distance path loss inversion
- WeightedMultilaterator: Weighted linearized least-squares 2-D solve
- StabilityGuard: Rejects NaN/inf raw fixes
- TemporalSmoother: Decoupled per-axis Kalman-style smoothing
- PositionEstimationPipeline: One fix per scan cycle
"""

from .estimator_config import EstimatorConfig
from .distance_estimator import (
    DistanceEstimator,
    rssi_to_distance,
    distance_weight,
)
from .weighted_multilaterator import (
    WeightedMultilaterator,
    WeightedSample,
    SolveResult,
)
from .stability_guard import StabilityGuard
from .temporal_smoother import (
    TemporalSmoother,
    EstimatorState,
)
from .position_pipeline import (
    PositionEstimationPipeline,
    create_default_pipeline,
)

__all__ = [
    'EstimatorConfig',
    'DistanceEstimator',
    'rssi_to_distance',
    'distance_weight',
    'WeightedMultilaterator',
    'WeightedSample',
    'SolveResult',
    'StabilityGuard',
    'TemporalSmoother',
    'EstimatorState',
    'PositionEstimationPipeline',
    'create_default_pipeline',
]
