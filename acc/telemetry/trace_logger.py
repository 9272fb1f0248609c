"""
Trace Logger Module
===================

Records controller snapshots for offline analysis.

Features:
- JSONL output, gzip compressed by default
- Log rotation based on file size or age
- Consecutive duplicate records are suppressed
"""

import gzip
import json
import logging
import os
import time
from dataclasses import dataclass, asdict
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

from ..control.control_state import ControlSnapshot

logger = logging.getLogger(__name__)


@dataclass
class TraceLoggerConfig:
    """Configuration for the trace logger."""
    log_dir: str = "logs/trace"
    max_file_size_mb: float = 64.0
    max_file_age_minutes: float = 60.0
    compression: bool = True
    suppress_duplicates: bool = True


@dataclass
class TraceRecord:
    """Single record of controller output."""
    timestamp: float
    domain: str = "none"
    mode: str = "normal"
    speed: int = 0
    cruise_target: Optional[int] = None
    accel_indicator: bool = False
    brake_indicator: bool = False
    proximity: Optional[float] = None
    event: str = "none"

    @classmethod
    def from_snapshot(cls, snapshot: ControlSnapshot) -> 'TraceRecord':
        """Build a record from a controller snapshot."""
        proximity = snapshot.proximity
        # JSON has no infinity
        if proximity is not None and not (proximity < float("inf")):
            proximity = None
        return cls(
            timestamp=snapshot.timestamp,
            domain=snapshot.domain.value if snapshot.domain else "none",
            mode=snapshot.mode.name.lower(),
            speed=snapshot.speed,
            cruise_target=snapshot.cruise_target,
            accel_indicator=snapshot.accel_indicator,
            brake_indicator=snapshot.brake_indicator,
            proximity=proximity,
            event=snapshot.event.value if snapshot.event else "none",
        )

    def same_output(self, other: 'TraceRecord') -> bool:
        """True if other differs only in timestamp."""
        mine = asdict(self)
        theirs = asdict(other)
        mine.pop("timestamp")
        theirs.pop("timestamp")
        return mine == theirs


class TraceLogger:
    """
    Writes one JSON line per controller snapshot.

    Register with CruiseController.add_callback(trace_logger.record).
    Write failures are logged and never reach the controller.
    """

    def __init__(self, config: Optional[TraceLoggerConfig] = None):
        self.config = config or TraceLoggerConfig()

        # Log file state
        self._current_file = None
        self._current_path: Optional[Path] = None
        self._file_start_time: float = 0.0
        self._record_count: int = 0
        self._last_record: Optional[TraceRecord] = None
        self._running = False

        # Statistics
        self._total_records: int = 0
        self._files_written: int = 0
        self._duplicates_skipped: int = 0

    def start(self) -> bool:
        """Create the log directory and enable recording."""
        try:
            Path(self.config.log_dir).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Failed to create trace directory {self.config.log_dir}: {e}")
            return False

        self._running = True
        logger.info(f"Trace logger started, output: {self.config.log_dir}")
        return True

    def stop(self):
        """Stop recording and close the current file."""
        self._running = False
        self._close_current_file()
        logger.info(
            f"Trace logger stopped. Records: {self._total_records}, "
            f"Files: {self._files_written}, Duplicates skipped: {self._duplicates_skipped}"
        )

    def record(self, snapshot: ControlSnapshot):
        """Record a snapshot (controller callback)."""
        if not self._running:
            return

        record = TraceRecord.from_snapshot(snapshot)
        if (self.config.suppress_duplicates and self._last_record is not None
                and record.same_output(self._last_record)):
            self._duplicates_skipped += 1
            return

        if self._write_record(record):
            self._last_record = record

    def _write_record(self, record: TraceRecord) -> bool:
        """Write a record to the current log file."""
        try:
            if self._should_rotate():
                self._rotate_file()

            if self._current_file is None:
                self._open_new_file()

            line = json.dumps(asdict(record)) + "\n"
            self._current_file.write(line.encode('utf-8'))
            self._record_count += 1
            self._total_records += 1
            return True
        except Exception as e:
            logger.error(f"Failed to write record: {e}")
            return False

    def _should_rotate(self) -> bool:
        """Check if log file should be rotated."""
        if self._current_file is None or self._current_path is None:
            return False

        file_age_min = (time.time() - self._file_start_time) / 60
        if file_age_min >= self.config.max_file_age_minutes:
            return True

        try:
            file_size_mb = os.path.getsize(self._current_path) / (1024 * 1024)
            if file_size_mb >= self.config.max_file_size_mb:
                return True
        except OSError:
            pass

        return False

    def _open_new_file(self):
        """Open a new log file."""
        timestamp_str = datetime.now().strftime("%Y%m%d_%H%M%S_%f")

        if self.config.compression:
            filename = f"acc_{timestamp_str}.jsonlog.gz"
            path = Path(self.config.log_dir) / filename
            self._current_file = gzip.open(path, 'wb')
        else:
            filename = f"acc_{timestamp_str}.jsonlog"
            path = Path(self.config.log_dir) / filename
            self._current_file = open(path, 'wb')

        self._current_path = path

        self._file_start_time = time.time()
        self._record_count = 0
        self._files_written += 1

        logger.info(f"Opened new trace file: {filename}")

    def _close_current_file(self):
        """Close the current log file."""
        if self._current_file is not None:
            try:
                self._current_file.close()
                logger.info(
                    f"Closed trace file: {self._current_path.name}, "
                    f"records: {self._record_count}"
                )
            except Exception as e:
                logger.error(f"Error closing file: {e}")
            finally:
                self._current_file = None
                self._current_path = None

    def _rotate_file(self):
        """Rotate to a new log file."""
        self._close_current_file()
        self._open_new_file()

    @property
    def current_path(self) -> Optional[Path]:
        return self._current_path

    @property
    def stats(self) -> Dict[str, Any]:
        """Get current statistics."""
        return {
            "total_records": self._total_records,
            "files_written": self._files_written,
            "duplicates_skipped": self._duplicates_skipped,
            "current_file": str(self._current_path) if self._current_path else None,
        }


def read_trace(filepath: str) -> Iterator[TraceRecord]:
    """
    Read records back from a trace file (.jsonlog or .jsonlog.gz).

    Malformed lines are skipped.
    """
    path = Path(filepath)
    opener = gzip.open if path.suffix == '.gz' else open

    with opener(path, 'rt', encoding='utf-8') as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                yield TraceRecord(**json.loads(line))
            except (json.JSONDecodeError, TypeError):
                continue
