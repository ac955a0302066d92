"""
RSSI Hotspot Positioning Core Package.

2-D receiver positioning from WiFi hotspot signal strength, using hotspots
whose positions and propagation parameters come from a calibration store.

Package structure:
- io: Calibration store (slot arena + non-volatile backing), scan parsing
- proto: Message schemas (observations, calibration records, fixes, events)
- localization: Distance model, weighted multilateration, stability guard,
  per-axis smoothing, estimation pipeline
- metrics: Diagnostics, counters, histograms
"""

__version__ = "0.1.0"
__author__ = "RSSI Positioning Team"
