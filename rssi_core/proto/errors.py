"""
Error codes shared by the estimation path and the calibration store.

Every failure is reported as a code on the returned result; none of them
is fatal and the caller simply retries on the next scan cycle.
"""

from enum import IntEnum


class ErrorCode(IntEnum):
    """Typed outcome of an estimation or store operation."""

    OK = 0
    INSUFFICIENT_OBSERVATIONS = 1        # Fewer raw observations than min_samples
    INSUFFICIENT_VALID_OBSERVATIONS = 2  # Too few left after threshold/calibration
    INSUFFICIENT_SAMPLES = 3             # Solver called with too few samples
    ZERO_WEIGHT = 4                      # Total sample weight is zero
    ILL_CONDITIONED = 5                  # Near-singular emitter geometry
    INVALID_NUMERIC = 6                  # NaN/inf solve output
    CALIBRATION_MISSING = 7              # Per-observation, non-fatal
    STORE_FULL = 8                       # No free slot for a new identifier
    IDENTIFIER_INVALID = 9               # Empty, non-printable or too long

    @property
    def drop_reason(self) -> str:
        """Metrics drop reason code for this error."""
        return self.name.lower()
