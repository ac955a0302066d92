"""
RSSI positioning runner.

Manages the hotspot calibration store and runs the estimation pipeline
over recorded scans (newline-delimited JSON, see rssi_core.io.scan_parsing).

    python main.py store add Lab-AP-1 0 0 -40 2.0
    python main.py store list
    python main.py locate scans.ndjson --receiver R0
"""

import sys
import json
import logging
import argparse
from typing import List, Optional

import config
from rssi_core.io import CalibrationStore, parse_scan_lines
from rssi_core.localization import EstimatorConfig, PositionEstimationPipeline
from rssi_core.metrics import get_metrics
from rssi_core.proto import CalibrationRecord, ErrorCode, EstimationEvent

logging.basicConfig(
    level=getattr(logging, config.LOGGING_CONFIG["level"]),
    format=config.LOGGING_CONFIG["format"]
)
logger = logging.getLogger(__name__)


class PositioningRunner:
    """Command handlers over one calibration store."""

    def __init__(self, store_path: str, capacity: int):
        self.store = CalibrationStore.open(store_path, capacity)
        logger.info(f"Calibration store {store_path}: {len(self.store)}/{self.store.capacity} slots used")

    def add(self, identifier: str, x: float, y: float,
            rssi_at_1m: float, path_loss_exponent: float) -> int:
        try:
            record = CalibrationRecord(identifier, x, y, rssi_at_1m, path_loss_exponent)
        except ValueError as e:
            logger.error(f"Invalid calibration: {e}")
            return 2

        result = self.store.upsert(identifier, record)
        if result != ErrorCode.OK:
            logger.error(f"Could not save {identifier}: {result.name}")
            return 1
        return 0

    def list(self) -> int:
        print("Stored hotspots:")
        for record in self.store.list():
            print(f"  {record.identifier}: x={record.x:.2f}, y={record.y:.2f}, "
                  f"RSSI@1m={record.rssi_at_1m:.1f}, PathLoss={record.path_loss_exponent:.2f}")
        return 0

    def clear(self) -> int:
        self.store.clear()
        return 0

    def locate(self, scan_path: str, receiver_id: str,
               estimator_config: EstimatorConfig) -> int:
        pipeline = PositionEstimationPipeline(
            receiver_id,
            estimator_config,
            event_callback=self._print_event if config.OUTPUT_CONFIG["print_events"] else None,
        )

        with open(scan_path, "r", encoding="utf-8") as fh:
            scans = parse_scan_lines(fh)

        fixes = 0
        for observations in scans:
            fix = pipeline.estimate(observations, self.store.lookup)
            if fix.ok:
                fixes += 1
            if fix.ok or config.OUTPUT_CONFIG["print_failed_fixes"]:
                print(json.dumps(fix.to_dict()))

        logger.info(f"{fixes}/{len(scans)} scans produced a fix")
        if config.OUTPUT_CONFIG["print_metrics_summary"]:
            get_metrics().print_summary()
        return 0

    @staticmethod
    def _print_event(event: EstimationEvent):
        print(json.dumps(event.to_dict()), file=sys.stderr)


def build_estimator_config(args) -> EstimatorConfig:
    """Estimator settings from config.py, with CLI overrides."""
    settings = dict(config.ESTIMATOR_CONFIG)
    if args.threshold is not None:
        settings["rssi_threshold_dbm"] = args.threshold
    return EstimatorConfig(**settings)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description='RSSI hotspot positioning')
    parser.add_argument('--store', '-s', type=str, default=None,
                        help='Calibration store image path')
    parser.add_argument('--debug', '-d', action='store_true',
                        help='Enable debug logging')

    commands = parser.add_subparsers(dest='command', required=True)

    store_parser = commands.add_parser('store', help='Manage hotspot calibration')
    store_commands = store_parser.add_subparsers(dest='store_command', required=True)

    add_parser = store_commands.add_parser('add', help='Add or update a hotspot')
    add_parser.add_argument('identifier')
    add_parser.add_argument('x', type=float)
    add_parser.add_argument('y', type=float)
    add_parser.add_argument('rssi_at_1m', type=float)
    add_parser.add_argument('path_loss_exponent', type=float)

    store_commands.add_parser('list', help='List stored hotspots')
    store_commands.add_parser('clear', help='Remove all hotspots')

    locate_parser = commands.add_parser('locate', help='Estimate positions from recorded scans')
    locate_parser.add_argument('scans', help='Newline-delimited JSON scan file')
    locate_parser.add_argument('--receiver', '-r', default='R0', help='Receiver ID')
    locate_parser.add_argument('--threshold', '-t', type=float, default=None,
                               help='RSSI threshold (dBm)')

    args = parser.parse_args(argv)

    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    runner = PositioningRunner(
        args.store or config.STORE_CONFIG["path"],
        config.STORE_CONFIG["capacity"],
    )

    if args.command == 'store':
        if args.store_command == 'add':
            return runner.add(args.identifier, args.x, args.y,
                              args.rssi_at_1m, args.path_loss_exponent)
        if args.store_command == 'list':
            return runner.list()
        return runner.clear()

    return runner.locate(args.scans, args.receiver, build_estimator_config(args))


if __name__ == "__main__":
    sys.exit(main())
