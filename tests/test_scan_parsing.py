"""
Unit tests for scan message parsing.
"""

import json

from rssi_core.io import parse_scan_message, parse_scan_lines
from rssi_core.metrics import get_metrics
from rssi_core.proto import Observation


class TestParseScanMessage:
    """Tests for single message parsing."""

    def test_valid_message(self):
        message = {
            "type": "rssi_scan",
            "timestamp": 1718000000.5,
            "observations": [
                {"identifier": "AP-0", "rssi": -61},
                {"identifier": "AP-1", "rssi": -72},
            ],
        }

        observations = parse_scan_message(message)

        assert observations == [
            Observation("AP-0", -61, 1718000000.5),
            Observation("AP-1", -72, 1718000000.5),
        ]

    def test_ssid_alias_and_rounding(self):
        """Test that 'ssid' is accepted and float RSSI is rounded to dBm."""
        observations = parse_scan_message({"observations": [{"ssid": "Cafe", "rssi": -63.6}]})

        assert observations[0].identifier == "Cafe"
        assert observations[0].measured_rssi == -64
        assert isinstance(observations[0].measured_rssi, int)
        assert observations[0].timestamp is None

    def test_malformed_entries_dropped(self):
        message = {
            "observations": [
                {"identifier": "AP-0", "rssi": -61},
                {"identifier": "", "rssi": -50},
                {"identifier": "AP-2"},
                {"identifier": "AP-3", "rssi": "strong"},
                {"identifier": "AP-4", "rssi": True},
                "AP-5",
            ],
        }

        observations = parse_scan_message(message)

        assert [o.identifier for o in observations] == ["AP-0"]
        assert get_metrics().get_drop_count('parse_error') == 5

    def test_other_message_type_ignored(self):
        assert parse_scan_message({"type": "heartbeat", "observations": []}) == []
        assert get_metrics().get_drop_count('parse_error') == 0

    def test_non_object_message(self):
        assert parse_scan_message(["AP-0", -50]) == []
        assert get_metrics().get_drop_count('parse_error') == 1

    def test_observations_not_a_list(self):
        assert parse_scan_message({"observations": {"AP-0": -50}}) == []
        assert get_metrics().get_drop_count('parse_error') == 1


class TestParseScanLines:
    """Tests for newline-delimited JSON input."""

    def test_multiple_scans(self):
        lines = [
            json.dumps({"type": "rssi_scan", "observations": [{"identifier": "A", "rssi": -50}]}),
            "",
            json.dumps({"type": "rssi_scan", "observations": []}),
        ]

        scans = parse_scan_lines(lines)

        assert len(scans) == 2
        assert scans[0][0].identifier == "A"
        assert scans[1] == []

    def test_bad_json_skipped(self):
        lines = [
            "{not json",
            json.dumps({"observations": [{"identifier": "A", "rssi": -50}]}),
        ]

        scans = parse_scan_lines(lines)

        assert len(scans) == 1
        assert get_metrics().get_drop_count('parse_error') == 1

    def test_other_types_skipped(self):
        lines = [json.dumps({"type": "status", "battery": 80})]

        assert parse_scan_lines(lines) == []
