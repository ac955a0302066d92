"""
Pytest configuration and shared fixtures for the RSSI positioning tests.

Provides reusable emitter layouts, calibration stores and helpers for
multilateration, smoothing and pipeline tests.
"""

import sys
import math
from pathlib import Path
from typing import Dict, List, Tuple

import pytest

# Add project root to path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from rssi_core.io import CalibrationStore
from rssi_core.localization import WeightedSample
from rssi_core.metrics import reset_metrics
from rssi_core.proto import CalibrationRecord


# Calibration shared by every emitter in the fixtures below
RSSI_AT_1M = -40.0
PATH_LOSS_EXPONENT = 2.0


@pytest.fixture(autouse=True)
def fresh_metrics():
    """Isolate global metrics between tests."""
    reset_metrics()
    yield
    reset_metrics()


# =============================================================================
# Emitter Layout Fixtures
# =============================================================================


@pytest.fixture
def right_triangle_emitters() -> Dict[str, Tuple[float, float]]:
    """
    Three emitters in a right-triangle layout.

    Equal distances to all three put the receiver at the circumcenter (5, 5).
    """
    return {
        "AP-0": (0.0, 0.0),
        "AP-1": (10.0, 0.0),
        "AP-2": (0.0, 10.0),
    }


@pytest.fixture
def square_emitters() -> Dict[str, Tuple[float, float]]:
    """Four emitters on the corners of a 10 m square."""
    return {
        "AP-0": (0.0, 0.0),
        "AP-1": (10.0, 0.0),
        "AP-2": (0.0, 10.0),
        "AP-3": (10.0, 10.0),
    }


@pytest.fixture
def calibration_store(right_triangle_emitters) -> CalibrationStore:
    """In-memory store holding the right-triangle emitters."""
    store = CalibrationStore()
    for identifier, (x, y) in right_triangle_emitters.items():
        store.upsert(identifier, make_record(identifier, x, y))
    return store


# =============================================================================
# Helper Functions
# =============================================================================


def make_record(identifier: str, x: float, y: float,
                rssi_at_1m: float = RSSI_AT_1M,
                path_loss_exponent: float = PATH_LOSS_EXPONENT) -> CalibrationRecord:
    """Calibration record with the shared propagation parameters."""
    return CalibrationRecord(identifier, x, y, rssi_at_1m, path_loss_exponent)


def _exact_samples(emitters: Dict[str, Tuple[float, float]],
                   receiver: Tuple[float, float]) -> List[WeightedSample]:
    """Noise-free samples for a receiver at a known position."""
    return [
        WeightedSample.from_distance(pos, calculate_distance_2d(pos, receiver), identifier)
        for identifier, pos in emitters.items()
    ]


def calculate_distance_2d(
    p1: Tuple[float, float], p2: Tuple[float, float]
) -> float:
    """
    Calculate Euclidean distance between two 2D points.

    Args:
        p1: First point (x, y).
        p2: Second point (x, y).

    Returns:
        Distance in the same units as input.
    """
    return math.sqrt((p1[0] - p2[0]) ** 2 + (p1[1] - p2[1]) ** 2)


@pytest.fixture
def exact_samples():
    """Factory for noise-free samples: exact_samples(emitters, receiver)."""
    return _exact_samples
