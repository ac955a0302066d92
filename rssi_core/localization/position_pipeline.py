"""
Position Estimation Pipeline.

Composes one fix per scan cycle:

1. Minimum observation count
2. Signal threshold filter
3. Minimum count after filtering
4. Calibration lookup (missing records are skipped, count re-checked)
5. Distance estimation + weighted multilateration
6. Stability guard
7. Temporal smoothing

Usage:
    store = CalibrationStore(FileSlotBacking("hotspots.bin"))
    pipeline = PositionEstimationPipeline("R0", EstimatorConfig())

    fix = pipeline.estimate(observations, store.lookup)
    if fix.ok:
        print(f"Position: {fix.position}")
    else:
        print(f"No fix this cycle: {fix.error.name}")
"""

from collections import defaultdict
from typing import Callable, Dict, Iterable, List, Optional
import logging
import math
import numbers
import time

from rssi_core.proto.errors import ErrorCode
from rssi_core.proto.calibration_record import CalibrationRecord
from rssi_core.proto.observation import Observation
from rssi_core.proto.position_fix import PositionFix, create_failed_fix
from rssi_core.proto.estimation_event import EstimationEvent, EventKind
from rssi_core.localization.estimator_config import EstimatorConfig
from rssi_core.localization.distance_estimator import DistanceEstimator
from rssi_core.localization.weighted_multilaterator import (
    WeightedMultilaterator,
    WeightedSample,
)
from rssi_core.localization.stability_guard import StabilityGuard
from rssi_core.localization.temporal_smoother import TemporalSmoother
from rssi_core.metrics import get_metrics

logger = logging.getLogger(__name__)

CalibrationLookup = Callable[[str], Optional[CalibrationRecord]]
EventCallback = Callable[[EstimationEvent], None]


class PositionEstimationPipeline:
    """
    Estimation pipeline for a single receiver.

    Every failure is returned as a PositionFix carrying an ErrorCode; a
    failed cycle means "no fix this cycle" and the smoother state is left
    untouched.

    Notes:
        - Owns its TemporalSmoother; one pipeline per tracked receiver
        - Not safe for concurrent calls on the same instance
        - Diagnostics go to the optional event callback, the metrics
          collector and the module logger
    """

    def __init__(
        self,
        receiver_id: str = "R0",
        config: Optional[EstimatorConfig] = None,
        event_callback: Optional[EventCallback] = None,
    ):
        """
        Initialize pipeline.

        Args:
            receiver_id: ID of the receiver this pipeline tracks
            config: Estimator configuration (uses defaults if None)
            event_callback: Optional receiver of EstimationEvent diagnostics
        """
        self.receiver_id = receiver_id
        self.config = config or EstimatorConfig()
        self.event_callback = event_callback
        self.metrics = get_metrics()

        self.distance_estimator = DistanceEstimator()
        self.solver = WeightedMultilaterator(self.config)
        self.guard = StabilityGuard(self.config)
        self.smoother = TemporalSmoother(self.config)

        # Per-receiver tallies; self.metrics is process-wide
        self._counts: Dict[str, int] = defaultdict(int)

    def estimate(
        self,
        observations: Iterable[Observation],
        calibration_lookup: CalibrationLookup,
        t_solve: Optional[float] = None,
    ) -> PositionFix:
        """
        Produce one fix from one scan.

        Args:
            observations: Observations of a single scan
            calibration_lookup: identifier -> CalibrationRecord or None
                (e.g. CalibrationStore.lookup)
            t_solve: Fix time; defaults to the latest observation
                timestamp, or the wall clock if none carry one

        Returns:
            PositionFix (ok, or carrying the failure ErrorCode)
        """
        observations = [] if observations is None else list(observations)
        if t_solve is None:
            t_solve = self._scan_time(observations)

        self._counts['scans'] += 1
        self.metrics.increment('scans_in')
        self.metrics.increment('observations_in', len(observations))
        min_samples = self.config.min_samples

        # Stage 1: Raw observation count
        if len(observations) < min_samples:
            return self._fail(ErrorCode.INSUFFICIENT_OBSERVATIONS, t_solve)

        # Stage 2: Signal threshold
        strong = []
        for obs in observations:
            if not isinstance(obs, Observation) or not obs.is_valid:
                identifier = getattr(obs, 'identifier', None)
                self._drop(
                    EventKind.MALFORMED_OBSERVATION,
                    'malformed_observation',
                    identifier if isinstance(identifier, str) else None,
                    f"unusable observation {obs!r}",
                )
                continue

            if obs.measured_rssi <= self.config.rssi_threshold_dbm:
                self._drop(
                    EventKind.SIGNAL_BELOW_THRESHOLD,
                    'below_threshold',
                    obs.identifier,
                    f"rssi {obs.measured_rssi} dBm <= {self.config.rssi_threshold_dbm} dBm",
                )
                continue

            strong.append(obs)

        # Stage 3: Count after filtering
        if len(strong) < min_samples:
            return self._fail(ErrorCode.INSUFFICIENT_VALID_OBSERVATIONS, t_solve)

        # Stage 4: Calibration lookup and sample construction
        samples: List[WeightedSample] = []
        for obs in strong:
            record = calibration_lookup(obs.identifier)
            if record is None:
                self._drop(
                    EventKind.CALIBRATION_MISSING,
                    ErrorCode.CALIBRATION_MISSING.drop_reason,
                    obs.identifier,
                    "no calibration record",
                    error=ErrorCode.CALIBRATION_MISSING,
                )
                continue

            distance = self.distance_estimator.distance(obs, record)
            sample = WeightedSample.from_distance(record.position, distance, obs.identifier)

            if not (math.isfinite(distance) and distance > 0.0
                    and math.isfinite(sample.weight) and sample.weight > 0.0):
                self._drop(
                    EventKind.DEGENERATE_DISTANCE,
                    'degenerate_distance',
                    obs.identifier,
                    f"distance {distance} m",
                )
                continue

            samples.append(sample)

        if len(samples) < min_samples:
            return self._fail(ErrorCode.INSUFFICIENT_VALID_OBSERVATIONS, t_solve)

        # Stage 5: Multilateration
        result = self.solver.solve(samples)
        if not result.ok:
            self._emit(EstimationEvent(
                kind=EventKind.SOLVE_FAILED,
                receiver_id=self.receiver_id,
                error=result.error,
                detail=f"{len(samples)} samples, C={result.condition}",
            ))
            return self._fail(result.error, t_solve, count_drop=False)

        raw_x, raw_y = result.position

        # Stage 6: Stability guard
        verdict = self.guard.validate(raw_x, raw_y)
        if verdict != ErrorCode.OK:
            self._emit(EstimationEvent(
                kind=EventKind.UNSTABLE_FIX,
                receiver_id=self.receiver_id,
                error=verdict,
                detail=f"raw fix ({raw_x}, {raw_y})",
            ))
            return self._fail(verdict, t_solve, count_drop=False)

        # Stage 7: Smoothing
        smoothed = self.smoother.update(raw_x, raw_y)

        fix = PositionFix(
            receiver_id=self.receiver_id,
            t_solve=t_solve,
            error=ErrorCode.OK,
            position=smoothed,
            raw_position=(raw_x, raw_y),
            variance=self.smoother.current_variance(),
            num_samples=len(samples),
            identifiers=[s.identifier for s in samples],
        )

        self._counts['fixes'] += 1
        self.metrics.increment('fixes_produced')
        self._emit(EstimationEvent(
            kind=EventKind.FIX_ACCEPTED,
            receiver_id=self.receiver_id,
            detail=f"raw ({raw_x:.3f}, {raw_y:.3f}) -> ({smoothed[0]:.3f}, {smoothed[1]:.3f})",
        ))
        return fix

    def current_estimate(self):
        """Latest smoothed (x, y) of this receiver."""
        return self.smoother.current_estimate()

    def reset(self):
        """Reset smoother state (explicit only)."""
        self.smoother.reset()
        self.metrics.increment('pipeline_resets')

    def get_statistics(self) -> dict:
        """
        Get statistics of this receiver's pipeline.

        Counts cover this instance only; process-wide totals are in
        get_metrics().
        """
        return {
            'receiver_id': self.receiver_id,
            'scans': self._counts['scans'],
            'fixes': self._counts['fixes'],
            'failed': self._counts['scans'] - self._counts['fixes'],
            'below_threshold': self._counts['below_threshold'],
            'calibration_missing': self._counts['calibration_missing'],
            'ill_conditioned': self._counts['ill_conditioned'],
            'invalid_numeric': self._counts['invalid_numeric'],
            'smoother_initialized': self.smoother.is_initialized(),
        }

    def _fail(self, error: ErrorCode, t_solve: float, count_drop: bool = True) -> PositionFix:
        """Build a failed fix carrying the last smoothed position."""
        self._counts[error.drop_reason] += 1
        if count_drop:
            self.metrics.increment_drop(error.drop_reason)
        logger.debug(f"[{self.receiver_id}] no fix: {error.name}")
        return create_failed_fix(
            self.receiver_id, t_solve, error, self.smoother.current_estimate()
        )

    def _drop(
        self,
        kind: EventKind,
        reason: str,
        identifier: Optional[str],
        detail: str,
        error: ErrorCode = ErrorCode.OK,
    ):
        """Record a skipped observation."""
        self._counts[reason] += 1
        self.metrics.increment_drop(reason)
        logger.debug(f"[{self.receiver_id}] skip {identifier}: {detail}")
        self._emit(EstimationEvent(
            kind=kind,
            receiver_id=self.receiver_id,
            identifier=identifier,
            error=error,
            detail=detail,
        ))

    def _emit(self, event: EstimationEvent):
        if self.event_callback is not None:
            self.event_callback(event)

    @staticmethod
    def _scan_time(observations: List[Observation]) -> float:
        timestamps = [
            o.timestamp for o in observations
            if isinstance(o, Observation) and isinstance(o.timestamp, numbers.Real)
            and not isinstance(o.timestamp, bool)
        ]
        return max(timestamps) if timestamps else time.time()


def create_default_pipeline(
    receiver_id: str,
    event_callback: Optional[EventCallback] = None,
) -> PositionEstimationPipeline:
    """
    Create estimation pipeline with default configuration.

    Args:
        receiver_id: Receiver ID
        event_callback: Optional diagnostics callback

    Returns:
        Configured PositionEstimationPipeline
    """
    config = EstimatorConfig(
        rssi_threshold_dbm=-90.0,
        min_samples=2,
        process_noise=0.01,
        measurement_noise=1.0,
        initial_variance=1000.0,
    )

    return PositionEstimationPipeline(receiver_id, config, event_callback)
