"""
Scan message parsing.

Turns scanner output into Observations. Messages are JSON objects:

    {
        "type": "rssi_scan",
        "timestamp": 1718000000.0,          # optional
        "observations": [
            {"identifier": "Lab-AP-1", "rssi": -61},
            ...
        ]
    }

Parsing is defensive: malformed entries are dropped with a reason code and
a warning, the rest of the scan is kept.
"""

from typing import Iterable, List
import json
import logging
import math

from rssi_core.proto.observation import Observation
from rssi_core.metrics import get_metrics

logger = logging.getLogger(__name__)

SCAN_MESSAGE_TYPE = "rssi_scan"


def _parse_entry(entry, timestamp) -> Observation:
    """Parse one observation entry; raises ValueError if malformed."""
    if not isinstance(entry, dict):
        raise ValueError(f"entry is not an object: {entry!r}")

    identifier = entry.get("identifier", entry.get("ssid"))
    if not isinstance(identifier, str) or not identifier:
        raise ValueError(f"missing identifier: {entry!r}")

    rssi = entry.get("rssi")
    if isinstance(rssi, bool) or not isinstance(rssi, (int, float)) or not math.isfinite(rssi):
        raise ValueError(f"bad rssi for {identifier}: {rssi!r}")

    return Observation(identifier=identifier, measured_rssi=int(round(rssi)), timestamp=timestamp)


def parse_scan_message(message: dict) -> List[Observation]:
    """
    Parse one scan message.

    Args:
        message: Decoded JSON scan message

    Returns:
        Observations of this scan (possibly empty)
    """
    metrics = get_metrics()

    if not isinstance(message, dict):
        metrics.increment_drop('parse_error')
        logger.warning(f"Scan message is not an object: {message!r}")
        return []

    msg_type = message.get("type", SCAN_MESSAGE_TYPE)
    if msg_type != SCAN_MESSAGE_TYPE:
        logger.debug(f"Ignoring message type: {msg_type}")
        return []

    timestamp = message.get("timestamp")
    if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)):
        timestamp = None

    entries = message.get("observations", [])
    if not isinstance(entries, list):
        metrics.increment_drop('parse_error')
        logger.warning("Scan message 'observations' is not a list")
        return []

    observations = []
    for entry in entries:
        try:
            observations.append(_parse_entry(entry, timestamp))
        except ValueError as e:
            metrics.increment_drop('parse_error')
            logger.warning(f"Dropping scan entry: {e}")

    return observations


def parse_scan_lines(lines: Iterable[str]) -> List[List[Observation]]:
    """
    Parse newline-delimited JSON scan messages.

    Args:
        lines: One JSON message per line; blank lines are ignored

    Returns:
        One observation list per scan message
    """
    scans = []
    for line_no, line in enumerate(lines, start=1):
        line = line.strip()
        if not line:
            continue

        try:
            message = json.loads(line)
        except json.JSONDecodeError as e:
            get_metrics().increment_drop('parse_error')
            logger.warning(f"JSON parse failed on line {line_no}: {e}")
            continue

        if isinstance(message, dict) and message.get("type", SCAN_MESSAGE_TYPE) != SCAN_MESSAGE_TYPE:
            continue

        scans.append(parse_scan_message(message))

    return scans
