"""
Fixed-slot byte backings for the calibration store.

A backing is an arena of `capacity` slots of `slot_size` bytes. Writes are
staged in memory and made durable by commit().

- MemorySlotBacking: bytearray only (tests, volatile use)
- FileSlotBacking: file image, rewritten through a temp file, fsynced and
  atomically replaced on commit so a power loss leaves either the old or
  the new image on disk
"""

from pathlib import Path
from typing import Union
import logging
import os

logger = logging.getLogger(__name__)


class MemorySlotBacking:
    """
    Volatile slot arena.

    Usage:
        backing = MemorySlotBacking(capacity=12, slot_size=64)
        backing.write_slot(0, payload)
        backing.commit()
    """

    def __init__(self, capacity: int, slot_size: int):
        assert capacity > 0, "capacity must be positive"
        assert slot_size > 0, "slot_size must be positive"
        self.capacity = capacity
        self.slot_size = slot_size
        self._image = bytearray(capacity * slot_size)

    def read_slot(self, index: int) -> bytes:
        """Raw bytes of one slot."""
        start = self._offset(index)
        return bytes(self._image[start:start + self.slot_size])

    def write_slot(self, index: int, data: bytes):
        """Stage new bytes for one slot."""
        if len(data) != self.slot_size:
            raise ValueError(f"Slot payload must be {self.slot_size} bytes, got {len(data)}")
        start = self._offset(index)
        self._image[start:start + self.slot_size] = data

    def commit(self):
        """Nothing to flush for a memory arena."""

    def _offset(self, index: int) -> int:
        if not 0 <= index < self.capacity:
            raise IndexError(f"Slot {index} out of range (capacity {self.capacity})")
        return index * self.slot_size


class FileSlotBacking(MemorySlotBacking):
    """
    Non-volatile slot arena stored in a single file.

    A missing file starts as an all-zero (empty) arena. A file of the wrong
    size is zero-padded or truncated to the arena size; the store filters
    whatever garbage it finds inside slots.
    """

    def __init__(self, path: Union[str, Path], capacity: int, slot_size: int):
        super().__init__(capacity, slot_size)
        self.path = Path(path)

        if self.path.exists():
            data = self.path.read_bytes()
            expected = capacity * slot_size
            if len(data) != expected:
                logger.warning(
                    f"Store image {self.path} is {len(data)} bytes, expected {expected}; resizing"
                )
            data = data[:expected]
            self._image[:len(data)] = data
            logger.info(f"Loaded store image from {self.path}")

    def commit(self):
        """Write the arena image durably (temp file + fsync + atomic replace)."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")

        with open(tmp_path, "wb") as fh:
            fh.write(self._image)
            fh.flush()
            os.fsync(fh.fileno())

        os.replace(tmp_path, self.path)
        logger.debug(f"Committed store image to {self.path}")
