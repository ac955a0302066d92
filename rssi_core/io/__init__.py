"""
I/O Module: Calibration persistence and scanner input.

- Fixed-capacity calibration store (slot arena + identifier index)
- Volatile and file-backed (non-volatile) slot backings
- Defensive parsing of scan messages
"""

from .slot_backing import (
    MemorySlotBacking,
    FileSlotBacking,
)
from .calibration_store import (
    CalibrationStore,
    SlotStatus,
    SLOT_SIZE,
    DEFAULT_CAPACITY,
    is_valid_identifier,
    pack_slot,
    unpack_slot,
)
from .scan_parsing import (
    parse_scan_message,
    parse_scan_lines,
)

__all__ = [
    'MemorySlotBacking',
    'FileSlotBacking',
    'CalibrationStore',
    'SlotStatus',
    'SLOT_SIZE',
    'DEFAULT_CAPACITY',
    'is_valid_identifier',
    'pack_slot',
    'unpack_slot',
    'parse_scan_message',
    'parse_scan_lines',
]
