"""
Calibration Store: bounded, slot-based hotspot calibration table.

An arena of fixed-size slots (default 12) plus an identifier -> slot index.
Each slot is packed as:

    identifier  32 bytes, UTF-8, NUL-terminated (so at most 31 bytes of text)
    x, y        float64 (m)
    rssi_at_1m  float64 (dBm)
    path_loss_exponent float64

Backed by a slot backing (see slot_backing); with FileSlotBacking the table
survives restarts and power loss. Slots holding garbage (undecodable or
non-printable identifiers, NaN/inf numbers, non-positive path loss) are
skipped when loading, never listed, and reused for new identifiers.
"""

from dataclasses import replace
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union
import logging
import struct

from rssi_core.proto.errors import ErrorCode
from rssi_core.proto.calibration_record import CalibrationRecord
from rssi_core.io.slot_backing import MemorySlotBacking, FileSlotBacking
from rssi_core.metrics import get_metrics

logger = logging.getLogger(__name__)

SLOT_FORMAT = '<32s4d'
SLOT_SIZE = struct.calcsize(SLOT_FORMAT)   # 64 bytes
IDENTIFIER_FIELD_BYTES = 32
DEFAULT_CAPACITY = 12


class SlotStatus(Enum):
    """Decoded state of a raw slot."""

    EMPTY = "empty"
    VALID = "valid"
    GARBAGE = "garbage"


def is_valid_identifier(identifier) -> bool:
    """
    Check if an identifier can be stored.

    Must be a non-empty printable string whose UTF-8 encoding fits the
    identifier field with its NUL terminator.
    """
    if not isinstance(identifier, str) or not identifier:
        return False
    if not identifier.isprintable():
        return False
    return len(identifier.encode('utf-8')) < IDENTIFIER_FIELD_BYTES


def pack_slot(record: CalibrationRecord) -> bytes:
    """Serialize a record into one slot."""
    return struct.pack(
        SLOT_FORMAT,
        record.identifier.encode('utf-8'),
        record.x,
        record.y,
        record.rssi_at_1m,
        record.path_loss_exponent,
    )


def unpack_slot(data: bytes) -> Tuple[SlotStatus, Optional[CalibrationRecord]]:
    """
    Decode one slot.

    Returns:
        (SlotStatus, record or None)
    """
    raw_id, x, y, rssi_at_1m, path_loss_exponent = struct.unpack(SLOT_FORMAT, data[:SLOT_SIZE])

    name = raw_id.split(b'\x00', 1)[0]
    if not name:
        return SlotStatus.EMPTY, None

    try:
        identifier = name.decode('utf-8')
    except UnicodeDecodeError:
        return SlotStatus.GARBAGE, None

    if not is_valid_identifier(identifier):
        return SlotStatus.GARBAGE, None

    try:
        record = CalibrationRecord(identifier, x, y, rssi_at_1m, path_loss_exponent)
    except ValueError:
        return SlotStatus.GARBAGE, None

    return SlotStatus.VALID, record


class CalibrationStore:
    """
    Fixed-capacity hotspot calibration table.

    Usage:
        store = CalibrationStore.open("hotspots.bin")
        store.upsert("Lab-AP-1", CalibrationRecord("Lab-AP-1", 0.0, 0.0, -40.0, 2.0))

        record = store.lookup("Lab-AP-1")
        for record in store.list():
            print(record.to_dict())

    Notes:
        - upsert of an existing identifier overwrites its slot in place
        - upsert of a new identifier fails STORE_FULL when no slot is free
        - every successful write is committed to the backing immediately
    """

    def __init__(
        self,
        backing: Optional[MemorySlotBacking] = None,
        capacity: int = DEFAULT_CAPACITY,
    ):
        """
        Initialize store over a slot backing.

        Args:
            backing: Slot backing (volatile MemorySlotBacking if None)
            capacity: Slot count when creating the default backing
        """
        self.backing = backing or MemorySlotBacking(capacity, SLOT_SIZE)
        if self.backing.slot_size != SLOT_SIZE:
            raise ValueError(
                f"Backing slot size {self.backing.slot_size} != record size {SLOT_SIZE}"
            )

        self.capacity = self.backing.capacity
        self.metrics = get_metrics()

        self._slots: List[Optional[CalibrationRecord]] = [None] * self.capacity
        self._index: Dict[str, int] = {}
        self._load()

    @classmethod
    def open(cls, path: Union[str, Path], capacity: int = DEFAULT_CAPACITY) -> 'CalibrationStore':
        """Open (or create) a file-backed store."""
        return cls(FileSlotBacking(path, capacity, SLOT_SIZE))

    def lookup(self, identifier: str) -> Optional[CalibrationRecord]:
        """
        Get the calibration of an emitter.

        Args:
            identifier: Emitter identifier

        Returns:
            CalibrationRecord, or None if absent
        """
        self.metrics.increment('store_lookups')
        slot = self._index.get(identifier)
        if slot is None:
            return None
        return self._slots[slot]

    def upsert(self, identifier: str, record: CalibrationRecord) -> ErrorCode:
        """
        Insert or overwrite the calibration of an emitter.

        Args:
            identifier: Emitter identifier (key)
            record: Calibration; stored under `identifier`

        Returns:
            ErrorCode.OK, ErrorCode.STORE_FULL or ErrorCode.IDENTIFIER_INVALID
        """
        if not is_valid_identifier(identifier):
            self.metrics.increment_drop(ErrorCode.IDENTIFIER_INVALID.drop_reason)
            logger.warning(f"Identifier {identifier!r} cannot be stored, skipping save")
            return ErrorCode.IDENTIFIER_INVALID

        if record.identifier != identifier:
            record = replace(record, identifier=identifier)

        slot = self._index.get(identifier)
        existing = slot is not None

        if not existing:
            slot = self._free_slot()
            if slot is None:
                self.metrics.increment_drop(ErrorCode.STORE_FULL.drop_reason)
                logger.warning(f"Calibration store is full, could not save {identifier}")
                return ErrorCode.STORE_FULL

        previous = self.backing.read_slot(slot)
        self.backing.write_slot(slot, pack_slot(record))
        try:
            self.backing.commit()
        except OSError:
            # Backing image must match the index
            self.backing.write_slot(slot, previous)
            logger.error(f"Could not persist hotspot {identifier}, slot {slot} rolled back")
            raise

        self._slots[slot] = record
        self._index[identifier] = slot
        self.metrics.increment('store_upserts')

        if existing:
            logger.info(f"Updated existing hotspot {identifier} in slot {slot}")
        else:
            logger.info(f"Saved new hotspot {identifier} to slot {slot}")

        return ErrorCode.OK

    def list(self) -> List[CalibrationRecord]:
        """All valid records, in slot order (garbage slots excluded)."""
        return [record for record in self._slots if record is not None]

    def clear(self):
        """Zero every slot."""
        previous = [self.backing.read_slot(slot) for slot in range(self.capacity)]
        empty = bytes(SLOT_SIZE)
        for slot in range(self.capacity):
            self.backing.write_slot(slot, empty)
        try:
            self.backing.commit()
        except OSError:
            for slot, data in enumerate(previous):
                self.backing.write_slot(slot, data)
            logger.error("Could not persist cleared calibration store, rolled back")
            raise

        self._slots = [None] * self.capacity
        self._index.clear()
        logger.info("All hotspots cleared from calibration store")

    @property
    def free_slots(self) -> int:
        """Number of slots available for new identifiers."""
        return self.capacity - len(self._index)

    def __len__(self) -> int:
        return len(self._index)

    def __contains__(self, identifier) -> bool:
        return identifier in self._index

    def _free_slot(self) -> Optional[int]:
        for slot, record in enumerate(self._slots):
            if record is None:
                return slot
        return None

    def _load(self):
        """Decode every slot of the backing and rebuild the index."""
        for slot in range(self.capacity):
            status, record = unpack_slot(self.backing.read_slot(slot))

            if status is SlotStatus.GARBAGE:
                self.metrics.increment_drop('corrupt_slot')
                logger.warning(f"Skipping garbage calibration slot {slot}")
                continue

            if status is SlotStatus.VALID:
                if record.identifier in self._index:
                    self.metrics.increment_drop('corrupt_slot')
                    logger.warning(
                        f"Duplicate identifier {record.identifier} in slot {slot}, skipping"
                    )
                    continue
                self._slots[slot] = record
                self._index[record.identifier] = slot

        logger.debug(f"Calibration store loaded: {len(self._index)}/{self.capacity} slots used")
