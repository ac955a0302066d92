"""
Unit tests for the calibration store and its slot backings.

Tests cover:
- Insert, lookup, in-place update and capacity limit
- Identifier validation
- Garbage slot filtering and reuse
- File persistence across reopen
"""

import struct

import pytest

from rssi_core.io import (
    CalibrationStore,
    MemorySlotBacking,
    FileSlotBacking,
    SlotStatus,
    SLOT_SIZE,
    DEFAULT_CAPACITY,
    is_valid_identifier,
    pack_slot,
    unpack_slot,
)
from rssi_core.io.calibration_store import SLOT_FORMAT
from rssi_core.metrics import get_metrics
from rssi_core.proto import CalibrationRecord, ErrorCode


def _record(identifier: str, x: float = 1.0, y: float = 2.0) -> CalibrationRecord:
    return CalibrationRecord(identifier, x, y, -41.5, 2.7)


class TestSlotLayout:
    """Tests for slot packing."""

    def test_slot_size(self):
        assert SLOT_SIZE == 64
        assert DEFAULT_CAPACITY == 12

    def test_pack_unpack(self):
        record = _record("Lab-AP-1", 3.25, -7.5)

        status, decoded = unpack_slot(pack_slot(record))

        assert status is SlotStatus.VALID
        assert decoded == record

    def test_zero_slot_is_empty(self):
        assert unpack_slot(bytes(SLOT_SIZE)) == (SlotStatus.EMPTY, None)

    @pytest.mark.parametrize("raw_id, values", [
        (b'\xff\xfe\xfd', (0.0, 0.0, -40.0, 2.0)),
        (b'bad\x07id', (0.0, 0.0, -40.0, 2.0)),
        (b'AP-0', (float('nan'), 0.0, -40.0, 2.0)),
        (b'AP-0', (0.0, 0.0, -40.0, 0.0)),
    ])
    def test_garbage_slots(self, raw_id, values):
        data = struct.pack(SLOT_FORMAT, raw_id, *values)

        assert unpack_slot(data) == (SlotStatus.GARBAGE, None)


class TestIdentifiers:
    """Tests for identifier validation."""

    @pytest.mark.parametrize("identifier", ["AP-0", "a" * 31, "é" * 15, "Cafe Wi-Fi 5G"])
    def test_valid(self, identifier):
        assert is_valid_identifier(identifier)

    @pytest.mark.parametrize("identifier", ["", "a" * 32, "é" * 16, "tab\there", None, 42])
    def test_invalid(self, identifier):
        assert not is_valid_identifier(identifier)

    def test_upsert_rejects_invalid_identifier(self):
        store = CalibrationStore()

        result = store.upsert("x" * 40, _record("AP-0"))

        assert result == ErrorCode.IDENTIFIER_INVALID
        assert len(store) == 0
        assert get_metrics().get_drop_count('identifier_invalid') == 1


class TestUpsertLookup:
    """Tests for insert, lookup and update."""

    def test_round_trip(self):
        store = CalibrationStore()
        record = _record("AP-0", 4.0, 5.0)

        assert store.upsert("AP-0", record) == ErrorCode.OK
        assert store.lookup("AP-0") == record
        assert "AP-0" in store
        assert len(store) == 1

    def test_lookup_absent(self):
        assert CalibrationStore().lookup("nope") is None

    def test_update_in_place(self):
        """Test that re-inserting an identifier overwrites its slot."""
        store = CalibrationStore()
        store.upsert("AP-0", _record("AP-0", 1.0, 1.0))
        store.upsert("AP-1", _record("AP-1"))

        assert store.upsert("AP-0", _record("AP-0", 9.0, 9.0)) == ErrorCode.OK

        assert len(store) == 2
        assert store.lookup("AP-0").position == (9.0, 9.0)
        assert [r.identifier for r in store.list()] == ["AP-0", "AP-1"]

    def test_key_overrides_record_identifier(self):
        store = CalibrationStore()

        store.upsert("AP-9", _record("something-else"))

        assert store.lookup("AP-9").identifier == "AP-9"
        assert store.lookup("something-else") is None

    def test_store_full(self):
        store = CalibrationStore()
        for i in range(DEFAULT_CAPACITY):
            assert store.upsert(f"AP-{i}", _record(f"AP-{i}")) == ErrorCode.OK

        assert store.free_slots == 0
        assert store.upsert("AP-extra", _record("AP-extra")) == ErrorCode.STORE_FULL
        assert store.lookup("AP-extra") is None
        assert get_metrics().get_drop_count('store_full') == 1

        # Existing identifiers can still be updated when full
        assert store.upsert("AP-3", _record("AP-3", 0.0, 0.0)) == ErrorCode.OK

    def test_custom_capacity(self):
        store = CalibrationStore(capacity=2)
        store.upsert("A", _record("A"))
        store.upsert("B", _record("B"))

        assert store.upsert("C", _record("C")) == ErrorCode.STORE_FULL

    def test_clear(self):
        store = CalibrationStore()
        store.upsert("AP-0", _record("AP-0"))
        store.upsert("AP-1", _record("AP-1"))

        store.clear()

        assert store.list() == []
        assert store.lookup("AP-0") is None
        assert store.free_slots == DEFAULT_CAPACITY
        assert store.backing.read_slot(0) == bytes(SLOT_SIZE)


class TestGarbageSlots:
    """Tests for garbage filtering on load."""

    def _dirty_backing(self) -> MemorySlotBacking:
        backing = MemorySlotBacking(DEFAULT_CAPACITY, SLOT_SIZE)
        backing.write_slot(0, struct.pack(SLOT_FORMAT, b'\xff\xfe', 0.0, 0.0, -40.0, 2.0))
        backing.write_slot(1, struct.pack(SLOT_FORMAT, b'AP-1', float('inf'), 0.0, -40.0, 2.0))
        backing.write_slot(2, pack_slot(_record("AP-2")))
        backing.write_slot(3, pack_slot(_record("AP-2", 7.0, 7.0)))
        return backing

    def test_garbage_is_not_listed(self):
        store = CalibrationStore(self._dirty_backing())

        assert [r.identifier for r in store.list()] == ["AP-2"]
        assert store.lookup("AP-2").position == (1.0, 2.0)
        assert get_metrics().get_drop_count('corrupt_slot') == 3

    def test_garbage_slots_are_reused(self):
        backing = self._dirty_backing()
        store = CalibrationStore(backing)

        assert store.free_slots == DEFAULT_CAPACITY - 1
        store.upsert("AP-new", _record("AP-new"))

        status, record = unpack_slot(backing.read_slot(0))
        assert status is SlotStatus.VALID
        assert record.identifier == "AP-new"

    def test_slot_size_mismatch(self):
        with pytest.raises(ValueError):
            CalibrationStore(MemorySlotBacking(DEFAULT_CAPACITY, 48))


class TestMemorySlotBacking:
    """Tests for the volatile backing."""

    def test_out_of_range(self):
        backing = MemorySlotBacking(2, 8)

        with pytest.raises(IndexError):
            backing.read_slot(2)

    def test_wrong_payload_length(self):
        backing = MemorySlotBacking(2, 8)

        with pytest.raises(ValueError):
            backing.write_slot(0, b'short')


class TestFilePersistence:
    """Tests for the file-backed store."""

    def test_survives_reopen(self, tmp_path):
        path = tmp_path / "hotspots.bin"
        store = CalibrationStore.open(path)
        record = _record("Lab-AP-1", 0.1, 1e-9)
        store.upsert("Lab-AP-1", record)
        store.upsert("Lab-AP-2", _record("Lab-AP-2"))

        reopened = CalibrationStore.open(path)

        assert reopened.lookup("Lab-AP-1") == record
        assert len(reopened) == 2

    def test_image_size_and_no_temp_file(self, tmp_path):
        path = tmp_path / "hotspots.bin"
        CalibrationStore.open(path).upsert("AP-0", _record("AP-0"))

        assert path.stat().st_size == DEFAULT_CAPACITY * SLOT_SIZE
        assert not (tmp_path / "hotspots.bin.tmp").exists()

    def test_missing_file_is_empty(self, tmp_path):
        store = CalibrationStore.open(tmp_path / "absent.bin")

        assert store.list() == []
        assert not (tmp_path / "absent.bin").exists()

    def test_short_file_is_padded(self, tmp_path):
        path = tmp_path / "hotspots.bin"
        path.write_bytes(pack_slot(_record("AP-0")))

        store = CalibrationStore.open(path)
        assert store.lookup("AP-0") is not None

        store.upsert("AP-1", _record("AP-1"))
        assert path.stat().st_size == DEFAULT_CAPACITY * SLOT_SIZE

    def test_clear_persists(self, tmp_path):
        path = tmp_path / "hotspots.bin"
        store = CalibrationStore.open(path)
        store.upsert("AP-0", _record("AP-0"))

        store.clear()

        assert CalibrationStore.open(path).list() == []
        assert path.read_bytes() == bytes(DEFAULT_CAPACITY * SLOT_SIZE)

    def test_file_backing_slot_size(self, tmp_path):
        backing = FileSlotBacking(tmp_path / "x.bin", 4, SLOT_SIZE)

        assert backing.capacity == 4
        assert backing.slot_size == SLOT_SIZE


class TestCommitFailure:
    """Tests for writes whose commit fails."""

    @staticmethod
    def _fail_next_commit(monkeypatch, backing):
        original = backing.commit

        def failing_commit():
            monkeypatch.setattr(backing, "commit", original)
            raise OSError("disk full")

        monkeypatch.setattr(backing, "commit", failing_commit)

    def test_failed_upsert_never_reaches_disk(self, tmp_path, monkeypatch):
        """Test that a rolled-back slot is not persisted by a later commit."""
        path = tmp_path / "hotspots.bin"
        store = CalibrationStore.open(path)
        store.upsert("A", _record("A"))

        self._fail_next_commit(monkeypatch, store.backing)
        with pytest.raises(OSError):
            store.upsert("GHOST", _record("GHOST"))

        assert store.lookup("GHOST") is None
        assert store.upsert("A", _record("A", 3.0, 3.0)) == ErrorCode.OK

        reopened = CalibrationStore.open(path)
        assert reopened.lookup("GHOST") is None
        assert [r.identifier for r in reopened.list()] == ["A"]
        assert reopened.lookup("A").position == (3.0, 3.0)

    def test_failed_update_keeps_old_record(self, tmp_path, monkeypatch):
        path = tmp_path / "hotspots.bin"
        store = CalibrationStore.open(path)
        store.upsert("A", _record("A", 1.0, 1.0))

        self._fail_next_commit(monkeypatch, store.backing)
        with pytest.raises(OSError):
            store.upsert("A", _record("A", 8.0, 8.0))

        store.upsert("B", _record("B"))

        assert store.lookup("A").position == (1.0, 1.0)
        assert CalibrationStore.open(path).lookup("A").position == (1.0, 1.0)

    def test_failed_clear_keeps_records(self, tmp_path, monkeypatch):
        path = tmp_path / "hotspots.bin"
        store = CalibrationStore.open(path)
        store.upsert("A", _record("A"))

        self._fail_next_commit(monkeypatch, store.backing)
        with pytest.raises(OSError):
            store.clear()

        store.upsert("B", _record("B"))

        assert [r.identifier for r in CalibrationStore.open(path).list()] == ["A", "B"]
