"""
Estimation Event Schema.

Structured diagnostics emitted by the estimation pipeline (skipped
signals, missing calibration, unstable solves) so that reporting stays
out of the estimation logic.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .errors import ErrorCode


class EventKind(Enum):
    """What happened during an estimation call."""

    SIGNAL_BELOW_THRESHOLD = "signal_below_threshold"
    CALIBRATION_MISSING = "calibration_missing"
    DEGENERATE_DISTANCE = "degenerate_distance"
    MALFORMED_OBSERVATION = "malformed_observation"
    SOLVE_FAILED = "solve_failed"
    UNSTABLE_FIX = "unstable_fix"
    FIX_ACCEPTED = "fix_accepted"


@dataclass
class EstimationEvent:
    """
    A single diagnostic event.

    Attributes:
        kind: Event kind
        receiver_id: Receiver whose pipeline emitted the event
        identifier: Emitter concerned, for per-observation events
        error: Associated error code (OK for informational events)
        detail: Short human-readable detail
    """

    kind: EventKind
    receiver_id: str
    identifier: Optional[str] = None
    error: ErrorCode = ErrorCode.OK
    detail: str = ""

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            'kind': self.kind.value,
            'receiver_id': self.receiver_id,
            'identifier': self.identifier,
            'error': self.error.name,
            'detail': self.detail,
        }
