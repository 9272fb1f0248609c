"""
Main Cruise Control Application
===============================

Entry point that wires the control panel, cruise controller, tick scheduler
and trace logger together, or replays a built-in scenario.
"""

import time
import signal
import sys
import json
import argparse
import logging
from dataclasses import dataclass, field, asdict
from typing import Optional

from .control.controller import CruiseController
from .control.control_state import ControlSnapshot, DriveMode
from .control.tick_scheduler import TickScheduler, SchedulerConfig
from .sensors.control_panel import InputSource, MockControlPanel, SerialControlPanel, PanelConfig
from .simulation.scenarios import ScenarioType, get_scenario
from .simulation.scenario_runner import ScenarioRunner
from .telemetry.trace_logger import TraceLogger, TraceLoggerConfig

logger = logging.getLogger(__name__)


@dataclass
class AppConfig:
    """Main application configuration."""
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    panel: PanelConfig = field(default_factory=PanelConfig)
    trace: TraceLoggerConfig = field(default_factory=TraceLoggerConfig)

    # Modes
    simulation: bool = False        # Use mock panel instead of serial
    trace_enabled: bool = True

    # Status report interval in the run loop
    status_interval_s: float = 5.0

    @classmethod
    def from_json(cls, filepath: str) -> 'AppConfig':
        """
        Load configuration from a JSON file.

        Sections "scheduler", "panel" and "trace" override the matching
        dataclass fields; top-level keys override AppConfig fields.

        Raises:
            ValueError: if the file cannot be read or has unknown keys
        """
        try:
            with open(filepath, 'r') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ValueError(f"Failed to load config {filepath}: {e}") from e

        if not isinstance(data, dict):
            raise ValueError(f"Config {filepath} must contain a JSON object")

        try:
            return cls(
                scheduler=SchedulerConfig(**data.pop("scheduler", {})),
                panel=PanelConfig(**data.pop("panel", {})),
                trace=TraceLoggerConfig(**data.pop("trace", {})),
                **data
            )
        except TypeError as e:
            raise ValueError(f"Invalid config {filepath}: {e}") from e

    def to_dict(self) -> dict:
        return asdict(self)


class CruiseControlApp:
    """
    Main cruise control application.

    Coordinates:
    - Control panel input (serial or mock)
    - Cruise controller kernel
    - Tick scheduler (timing domains)
    - Trace logging
    """

    def __init__(self, config: Optional[AppConfig] = None,
                 source: Optional[InputSource] = None):
        self.config = config or AppConfig()

        self._source = source
        self._controller: Optional[CruiseController] = None
        self._scheduler: Optional[TickScheduler] = None
        self._trace: Optional[TraceLogger] = None

        self._running = False
        self._last_display: Optional[tuple] = None

    def start(self) -> bool:
        """Initialize and start all subsystems."""
        logger.info("Starting cruise control...")

        if self._source is None:
            if self.config.simulation:
                logger.info("Running in SIMULATION mode")
                self._source = MockControlPanel(self.config.panel)
            else:
                self._source = SerialControlPanel(self.config.panel)

        if not self._source.start():
            logger.error("Control panel failed to start")
            return False

        self._controller = CruiseController()
        self._controller.add_callback(self._on_snapshot)
        self._controller.add_mode_callback(self._on_mode_change)

        if self.config.trace_enabled:
            self._trace = TraceLogger(self.config.trace)
            if self._trace.start():
                self._controller.add_callback(self._trace.record)
            else:
                logger.warning("Trace logger failed to start, continuing without trace")
                self._trace = None

        self._scheduler = TickScheduler(self._controller, self._source, self.config.scheduler)
        self._scheduler.start()

        self._running = True
        logger.info("Cruise control started successfully")
        return True

    def stop(self):
        """Stop all subsystems."""
        logger.info("Stopping cruise control...")
        self._running = False

        if self._scheduler:
            self._scheduler.stop()
        if self._trace:
            self._trace.stop()
        if self._source:
            self._source.stop()

        logger.info("Cruise control stopped")

    def run(self):
        """Block until stopped, reporting status periodically."""
        last_status = time.time()

        while self._running:
            try:
                now = time.time()
                if now - last_status >= self.config.status_interval_s:
                    logger.info(f"Status: {self.status}")
                    last_status = now
                time.sleep(0.1)
            except KeyboardInterrupt:
                logger.info("Interrupted by user")
                break

    def _on_snapshot(self, snapshot: ControlSnapshot):
        """Display sink: log the two LCD rows when they change."""
        lines = snapshot.lcd_lines()
        if lines != self._last_display:
            self._last_display = lines
            logger.info(f"[{lines[0]} {lines[1]}] {snapshot.status_message}")

    def _on_mode_change(self, old_mode: DriveMode, new_mode: DriveMode):
        if new_mode == DriveMode.ADAPTIVE:
            logger.info("Adaptive cruise engaged")
        elif old_mode == DriveMode.ADAPTIVE:
            logger.info("Adaptive cruise disengaged")

    @property
    def controller(self) -> Optional[CruiseController]:
        return self._controller

    @property
    def status(self) -> dict:
        """Get current application status."""
        if self._controller is None:
            return {"running": self._running, "mode": "UNKNOWN"}

        snapshot = self._controller.get_snapshot()
        status = {
            "running": self._running,
            "mode": snapshot.mode.name,
            "speed": snapshot.speed,
            "cruise_target": snapshot.cruise_target,
            "accel_indicator": snapshot.accel_indicator,
            "brake_indicator": snapshot.brake_indicator,
        }
        status.update(self._controller.stats)
        if self._trace:
            status["trace_records"] = self._trace.stats["total_records"]
        return status


def run_scenario(name: str, config: AppConfig) -> dict:
    """Run a built-in scenario and return its summary."""
    scenario = get_scenario(ScenarioType(name))
    runner = ScenarioRunner(config.scheduler)
    result = runner.run(scenario)

    if config.trace_enabled:
        trace = TraceLogger(config.trace)
        if trace.start():
            for snapshot in result.snapshots:
                trace.record(snapshot)
            trace.stop()

    summary = result.summary()
    for key, value in summary.items():
        logger.info(f"  {key}: {value}")
    return summary


def main(argv: Optional[list] = None):
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Adaptive Cruise Control")
    parser.add_argument("--config", "-c",
                       help="JSON configuration file")
    parser.add_argument("--scenario",
                       choices=[s.value for s in ScenarioType],
                       help="Run a built-in scenario and exit")
    parser.add_argument("--port", "-p",
                       help="Control panel serial port")
    parser.add_argument("--simulation", "-s", action="store_true",
                       help="Run with a mock control panel")
    parser.add_argument("--trace-dir",
                       help="Trace output directory")
    parser.add_argument("--no-trace", action="store_true",
                       help="Disable trace logging")
    parser.add_argument("--no-compress", action="store_true",
                       help="Disable gzip compression of traces")
    parser.add_argument("--manual-interval", type=float,
                       help="Manual tick interval in seconds")
    parser.add_argument("--drag-interval", type=float,
                       help="Drag tick interval in seconds")
    parser.add_argument("--adaptive-interval", type=float,
                       help="Adaptive tick interval in seconds")
    parser.add_argument("--verbose", "-v", action="store_true",
                       help="Verbose logging")

    args = parser.parse_args(argv)

    # Setup logging
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    # Create config
    try:
        config = AppConfig.from_json(args.config) if args.config else AppConfig()
    except ValueError as e:
        logger.error(str(e))
        sys.exit(1)

    if args.port:
        config.panel.port = args.port
    if args.simulation:
        config.simulation = True
    if args.trace_dir:
        config.trace.log_dir = args.trace_dir
    if args.no_trace:
        config.trace_enabled = False
    if args.no_compress:
        config.trace.compression = False
    if args.manual_interval is not None:
        config.scheduler.manual_interval_s = args.manual_interval
    if args.drag_interval is not None:
        config.scheduler.drag_interval_s = args.drag_interval
    if args.adaptive_interval is not None:
        config.scheduler.adaptive_interval_s = args.adaptive_interval

    if args.scenario:
        run_scenario(args.scenario, config)
        return

    app = CruiseControlApp(config)

    # Signal handler for graceful shutdown
    def signal_handler(sig, frame):
        logger.info("Shutdown signal received")
        app.stop()
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    if app.start():
        logger.info("Cruise control running. Press Ctrl+C to stop.")
        app.run()
    else:
        logger.error("Failed to start cruise control")
        sys.exit(1)


if __name__ == "__main__":
    main()
