"""
Position Fix Output Schema.

Result of one estimation call: either a smoothed 2-D position or a typed
error meaning "no fix this cycle".
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .errors import ErrorCode


@dataclass
class PositionFix:
    """
    Receiver position estimate from the estimation pipeline.

    Attributes:
        receiver_id: Receiver this pipeline tracks
        t_solve: Time of the estimate (scan timestamp or wall clock)
        error: ErrorCode.OK for a fix, otherwise the failure reason
        position: Smoothed (x, y) in meters; on failure, the last smoothed
            estimate (zeros before the first fix)
        raw_position: Unsmoothed multilateration output (None on failure)
        variance: Per-axis smoother variance after the update (m²)
        num_samples: Number of weighted samples used in the solve
        identifiers: Emitters that contributed samples
    """

    receiver_id: str
    t_solve: float
    error: ErrorCode
    position: Tuple[float, float]
    raw_position: Optional[Tuple[float, float]] = None
    variance: Optional[Tuple[float, float]] = None
    num_samples: int = 0
    identifiers: List[str] = field(default_factory=list)

    def __post_init__(self):
        """Validate position fix."""
        if self.num_samples < 0:
            raise ValueError(f"Num samples cannot be negative: {self.num_samples}")

    @property
    def ok(self) -> bool:
        """Check if this is a valid position fix."""
        return self.error == ErrorCode.OK

    @property
    def x(self) -> float:
        return self.position[0]

    @property
    def y(self) -> float:
        return self.position[1]

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            'receiver_id': self.receiver_id,
            't_solve': self.t_solve,
            'error': self.error.name,
            'position': self.position,
            'raw_position': self.raw_position,
            'variance': self.variance,
            'num_samples': self.num_samples,
            'identifiers': self.identifiers,
        }


def create_failed_fix(
    receiver_id: str,
    t_solve: float,
    error: ErrorCode,
    last_position: Tuple[float, float] = (0.0, 0.0),
) -> PositionFix:
    """
    Create a failed PositionFix.

    Args:
        receiver_id: Receiver ID
        t_solve: Solve time
        error: Failure reason (must not be OK)
        last_position: Last smoothed position (default: origin)

    Returns:
        PositionFix carrying the error
    """
    if error == ErrorCode.OK:
        raise ValueError("A failed fix needs an error code other than OK")

    return PositionFix(
        receiver_id=receiver_id,
        t_solve=t_solve,
        error=error,
        position=last_position,
    )
