"""
Control Panel Interface
=======================

Sources of InputSample for the cruise controller.

The driver panel has five analog buttons and an ultrasonic distance sensor,
wired to a microcontroller that streams readings over serial:

    Pins:
        A0 Accelerate | A1 Brake | A2 Cancel | A3 Set cruise | A4 Set adaptive

    Panel message (MCU → host):
        $PNL,<a0>,<a1>,<a2>,<a3>,<a4>,<distance_m>*XX

Voltages are in volts, distance in meters, XX is the XOR checksum of the
characters between $ and *. Echo timing is done on the MCU; the host only
sees the distance.
"""

import math
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional
import logging

from .input_sample import InputSample, FULL_SCALE_V

logger = logging.getLogger(__name__)

# Try to import serial
try:
    import serial
    HAS_SERIAL = True
except ImportError:
    serial = None
    HAS_SERIAL = False
    logger.warning("pyserial not available. Install with: pip install pyserial")


class PanelButton(Enum):
    """Panel buttons and their analog pins."""
    ACCEL = "A0"
    BRAKE = "A1"
    CANCEL = "A2"
    SET_CRUISE = "A3"
    SET_ADAPTIVE = "A4"


@dataclass
class PanelConfig:
    """Configuration for the control panel."""
    port: str = "/dev/ttyACM0"
    baudrate: int = 9600
    timeout: float = 0.1

    # Panel supply (button full scale)
    full_scale_v: float = FULL_SCALE_V

    # Readings older than this are treated as all-released
    max_sample_age_s: float = 0.5

    # Distance range of the sensor (meters)
    min_distance_m: float = 0.0
    max_distance_m: float = 1.0


class InputSource(ABC):
    """Anything that can produce an InputSample on demand."""

    def start(self) -> bool:
        return True

    def stop(self):
        pass

    @abstractmethod
    def read_sample(self) -> InputSample:
        """Return the current inputs. Must not block."""


class MockControlPanel(InputSource):
    """
    In-memory control panel for simulation and testing.

    Buttons are held as voltages so the 80% threshold is exercised the same
    way as on hardware.
    """

    def __init__(self, config: Optional[PanelConfig] = None, distance_m: float = 0.5):
        self.config = config or PanelConfig()
        self._voltages: Dict[PanelButton, float] = {button: 0.0 for button in PanelButton}
        self._distance_m = distance_m
        self._lock = threading.Lock()

    def press(self, button: PanelButton):
        """Hold a button at full scale."""
        self.set_voltage(button, self.config.full_scale_v)

    def release(self, button: PanelButton):
        """Release a button."""
        self.set_voltage(button, 0.0)

    def release_all(self):
        with self._lock:
            for button in PanelButton:
                self._voltages[button] = 0.0

    def set_voltage(self, button: PanelButton, voltage: float):
        """Set a raw button reading."""
        with self._lock:
            self._voltages[button] = voltage

    def set_distance(self, distance_m: float):
        """Set the distance sensor reading (meters)."""
        with self._lock:
            self._distance_m = distance_m

    def step_distance(self, delta_m: float) -> float:
        """
        Move the vehicle ahead closer (negative) or farther (positive).

        The result is kept within the sensor range.

        Returns:
            New distance in meters
        """
        with self._lock:
            distance = self._distance_m + delta_m
            distance = max(self.config.min_distance_m, min(self.config.max_distance_m, distance))
            # Keep centimeter resolution
            self._distance_m = round(distance, 2)
            return self._distance_m

    @property
    def distance(self) -> float:
        with self._lock:
            return self._distance_m

    def read_sample(self) -> InputSample:
        with self._lock:
            v = self._voltages
            return InputSample.from_voltages(
                v[PanelButton.ACCEL],
                v[PanelButton.BRAKE],
                v[PanelButton.CANCEL],
                v[PanelButton.SET_CRUISE],
                v[PanelButton.SET_ADAPTIVE],
                proximity=self._distance_m,
                full_scale=self.config.full_scale_v,
            )


class SerialControlPanel(InputSource):
    """
    Control panel read from a microcontroller over serial.

    A background thread parses panel messages and keeps the latest reading.
    read_sample never blocks; if the latest reading is stale it returns an
    all-released sample with no obstacle.
    """

    def __init__(self, config: Optional[PanelConfig] = None):
        self.config = config or PanelConfig()
        self._serial = None
        self._lock = threading.Lock()
        self._running = False
        self._read_thread: Optional[threading.Thread] = None

        # Latest reading
        self._voltages = [0.0] * len(PanelButton)
        self._distance_m = math.inf
        self._timestamp = 0.0

        # Statistics
        self._messages_received = 0
        self._parse_errors = 0
        self._stale_reads = 0

    def start(self) -> bool:
        """Open serial connection and start reader thread."""
        if not HAS_SERIAL:
            logger.error("pyserial not available")
            return False

        try:
            self._serial = serial.Serial(
                port=self.config.port,
                baudrate=self.config.baudrate,
                timeout=self.config.timeout
            )

            # Clear any stale data
            self._serial.reset_input_buffer()

            self._running = True
            self._read_thread = threading.Thread(target=self._read_loop, daemon=True)
            self._read_thread.start()

            logger.info(f"Control panel started on {self.config.port}")
            return True

        except Exception as e:
            logger.error(f"Failed to open serial port: {e}")
            return False

    def stop(self):
        """Stop reader thread and close port."""
        self._running = False
        if self._read_thread:
            self._read_thread.join(timeout=1.0)

        if self._serial:
            self._serial.close()
            self._serial = None

        logger.info("Control panel stopped")

    def read_sample(self) -> InputSample:
        with self._lock:
            voltages = list(self._voltages)
            distance = self._distance_m
            timestamp = self._timestamp

        age = time.time() - timestamp
        if age > self.config.max_sample_age_s:
            self._stale_reads += 1
            return InputSample()

        return InputSample.from_voltages(
            *voltages,
            proximity=distance,
            full_scale=self.config.full_scale_v,
        )

    @staticmethod
    def _compute_checksum(payload: str) -> int:
        """Compute XOR checksum of payload."""
        checksum = 0
        for c in payload:
            checksum ^= ord(c)
        return checksum

    def _read_loop(self):
        """Background thread reading panel messages."""
        buffer = ""

        while self._running:
            try:
                if self._serial and self._serial.in_waiting:
                    data = self._serial.read(self._serial.in_waiting).decode('ascii', errors='ignore')
                    buffer += data

                    # Process complete messages
                    while '\n' in buffer:
                        line, buffer = buffer.split('\n', 1)
                        line = line.strip()
                        if line.startswith('$PNL,'):
                            self._parse_message(line)
                else:
                    time.sleep(0.005)

            except Exception as e:
                logger.warning(f"Read error: {e}")
                time.sleep(0.1)

    def _parse_message(self, message: str) -> bool:
        """
        Parse a panel message and store the reading.

        Returns:
            True if the message was accepted
        """
        # Format: $PNL,<a0>,<a1>,<a2>,<a3>,<a4>,<distance_m>*XX
        try:
            if not message.startswith('$') or '*' not in message:
                self._parse_errors += 1
                return False

            payload, checksum_str = message[1:].rsplit('*', 1)
            expected_checksum = int(checksum_str, 16)
            actual_checksum = self._compute_checksum(payload)

            if expected_checksum != actual_checksum:
                self._parse_errors += 1
                logger.debug(f"Checksum mismatch: expected {expected_checksum:02X}, got {actual_checksum:02X}")
                return False

            parts = payload.split(',')
            if len(parts) != 7 or parts[0] != 'PNL':
                self._parse_errors += 1
                return False

            voltages = [float(p) for p in parts[1:6]]
            distance = float(parts[6])

            with self._lock:
                self._voltages = voltages
                self._distance_m = distance
                self._timestamp = time.time()

            self._messages_received += 1
            return True

        except (ValueError, IndexError) as e:
            self._parse_errors += 1
            logger.debug(f"Failed to parse panel message: {e}")
            return False

    @property
    def stats(self) -> dict:
        """Get interface statistics."""
        return {
            "messages_received": self._messages_received,
            "parse_errors": self._parse_errors,
            "stale_reads": self._stale_reads,
        }
