"""
Protocol Module: Message schemas.

- Observations produced by the scanner
- Calibration records held by the calibration store
- Position fixes and typed error codes returned by the pipeline
- Structured estimation events
"""

from .errors import ErrorCode
from .calibration_record import CalibrationRecord
from .observation import Observation
from .position_fix import (
    PositionFix,
    create_failed_fix,
)
from .estimation_event import (
    EstimationEvent,
    EventKind,
)

__all__ = [
    'ErrorCode',
    'CalibrationRecord',
    'Observation',
    'PositionFix',
    'create_failed_fix',
    'EstimationEvent',
    'EventKind',
]
