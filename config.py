"""
RSSI positioning runner configuration.
"""

# Calibration store
STORE_CONFIG = {
    "path": "hotspots.bin",   # Non-volatile slot image
    "capacity": 12,           # Max hotspots
}

# Estimation
ESTIMATOR_CONFIG = {
    "rssi_threshold_dbm": -90.0,   # Drop observations at or below this
    "min_samples": 2,
    "process_noise": 0.01,
    "measurement_noise": 1.0,
    "initial_variance": 1000.0,
    "condition_epsilon": 1e-6,
    "max_abs_coordinate": None,    # e.g. 1000.0 to reject absurd fixes
}

# Output
OUTPUT_CONFIG = {
    "print_failed_fixes": True,     # Also print "no fix" cycles
    "print_events": False,          # Print estimation events (skips, unstable fixes)
    "print_metrics_summary": True,  # Summary after a locate run
}

# Logging
LOGGING_CONFIG = {
    "level": "INFO",
    "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
}
