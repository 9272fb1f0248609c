"""
Unit tests for Control Panel module.

Tests the mock panel, serial message parsing, checksum validation and
stale reading handling.
"""

import math
import time
import pytest
from unittest.mock import Mock, patch

from acc.sensors import control_panel
from acc.sensors.control_panel import (
    PanelButton, PanelConfig, MockControlPanel, SerialControlPanel
)


def panel_message(a0, a1, a2, a3, a4, distance):
    """Build a checksummed panel message."""
    payload = f"PNL,{a0},{a1},{a2},{a3},{a4},{distance}"
    checksum = SerialControlPanel._compute_checksum(payload)
    return f"${payload}*{checksum:02X}"


class TestPanelConfig:
    """Tests for PanelConfig dataclass."""

    def test_default_config(self):
        """Default config should match the panel hardware."""
        config = PanelConfig()

        assert config.port == "/dev/ttyACM0"
        assert config.baudrate == 9600
        assert config.full_scale_v == 5.0
        assert config.min_distance_m == 0.0
        assert config.max_distance_m == 1.0

    def test_button_pins(self):
        """Buttons should map to analog pins A0-A4."""
        assert [b.value for b in PanelButton] == ["A0", "A1", "A2", "A3", "A4"]


class TestMockControlPanel:
    """Tests for MockControlPanel."""

    def test_initial_sample(self, panel):
        """Nothing pressed and the initial distance reported."""
        sample = panel.read_sample()

        assert not sample.has_speed_request
        assert not sample.has_mode_request
        assert sample.proximity == 0.5

    def test_press_and_release(self, panel):
        """Pressed buttons should read as asserted."""
        panel.press(PanelButton.ACCEL)
        panel.press(PanelButton.SET_ADAPTIVE)
        sample = panel.read_sample()
        assert sample.accel_request
        assert sample.set_adaptive_request

        panel.release(PanelButton.ACCEL)
        assert not panel.read_sample().accel_request

    def test_release_all(self, panel):
        """release_all should clear every button."""
        for button in PanelButton:
            panel.press(button)
        panel.release_all()

        sample = panel.read_sample()
        assert not sample.has_speed_request
        assert not sample.has_mode_request

    def test_voltage_threshold(self, panel):
        """Raw voltages should go through the 80% threshold."""
        panel.set_voltage(PanelButton.BRAKE, 3.9)
        assert not panel.read_sample().brake_request

        panel.set_voltage(PanelButton.BRAKE, 4.0)
        assert panel.read_sample().brake_request

    def test_set_distance(self, panel):
        """Distance changes should appear in the next sample."""
        panel.set_distance(0.12)
        assert panel.read_sample().proximity == 0.12
        assert panel.distance == 0.12

    def test_step_distance(self, panel):
        """Stepping should move in centimeter steps."""
        assert panel.step_distance(-0.02) == 0.48
        assert panel.step_distance(0.04) == 0.52

    def test_step_distance_clamped(self, panel):
        """Stepping should stay within the sensor range."""
        assert panel.step_distance(5.0) == 1.0
        assert panel.step_distance(-5.0) == 0.0

    def test_start_stop(self, panel):
        """Mock panel always starts."""
        assert panel.start() is True
        panel.stop()


class TestSerialControlPanel:
    """Tests for SerialControlPanel message handling."""

    @pytest.fixture
    def serial_panel(self):
        return SerialControlPanel(PanelConfig(port="/dev/null"))

    def test_checksum(self):
        """Checksum should XOR all payload characters."""
        assert SerialControlPanel._compute_checksum("") == 0
        assert SerialControlPanel._compute_checksum("A") == ord("A")
        assert SerialControlPanel._compute_checksum("AA") == 0

    def test_parse_valid_message(self, serial_panel):
        """Valid message should update the latest reading."""
        assert serial_panel._parse_message(panel_message(5.0, 0.0, 0.0, 0.0, 4.2, 0.25))

        sample = serial_panel.read_sample()
        assert sample.accel_request
        assert not sample.brake_request
        assert sample.set_adaptive_request
        assert sample.proximity == 0.25
        assert serial_panel.stats["messages_received"] == 1

    def test_parse_bad_checksum(self, serial_panel):
        """Wrong checksum should be rejected."""
        message = panel_message(5.0, 0.0, 0.0, 0.0, 0.0, 0.5)
        bad = message[:-2] + ("00" if not message.endswith("00") else "01")

        assert not serial_panel._parse_message(bad)
        assert serial_panel.stats["parse_errors"] == 1

    def test_parse_missing_checksum(self, serial_panel):
        """Message without checksum should be rejected."""
        assert not serial_panel._parse_message("$PNL,0,0,0,0,0,0.5")
        assert serial_panel.stats["parse_errors"] == 1

    def test_parse_wrong_field_count(self, serial_panel):
        """Message with missing fields should be rejected."""
        payload = "PNL,0,0,0,0.5"
        message = f"${payload}*{SerialControlPanel._compute_checksum(payload):02X}"

        assert not serial_panel._parse_message(message)
        assert serial_panel.stats["parse_errors"] == 1

    def test_parse_non_numeric(self, serial_panel):
        """Non-numeric fields should be rejected."""
        assert not serial_panel._parse_message(panel_message("x", 0, 0, 0, 0, 0.5))
        assert serial_panel.stats["parse_errors"] == 1

    def test_stale_reading(self, serial_panel):
        """No recent reading should give an all-released sample."""
        sample = serial_panel.read_sample()

        assert not sample.has_speed_request
        assert not sample.has_mode_request
        assert math.isinf(sample.proximity)
        assert serial_panel.stats["stale_reads"] == 1

    def test_reading_goes_stale(self, serial_panel):
        """Held button should release once the reading ages out."""
        serial_panel._parse_message(panel_message(5.0, 0, 0, 0, 0, 0.5))

        with patch("acc.sensors.control_panel.time.time", return_value=time.time() + 1.0):
            sample = serial_panel.read_sample()

        assert not sample.accel_request

    def test_start_without_pyserial(self, serial_panel):
        """Start should fail cleanly without pyserial."""
        with patch.object(control_panel, "HAS_SERIAL", False):
            assert serial_panel.start() is False

    def test_start_port_error(self, serial_panel):
        """Start should fail cleanly if the port cannot be opened."""
        fake_serial = Mock()
        fake_serial.Serial.side_effect = OSError("no such port")

        with patch.object(control_panel, "HAS_SERIAL", True), \
                patch.object(control_panel, "serial", fake_serial):
            assert serial_panel.start() is False

    def test_read_loop(self, serial_panel):
        """Reader thread should parse lines from the port."""
        data = (panel_message(0, 5.0, 0, 0, 0, 0.8) + "\n").encode("ascii")
        port = Mock()
        port.in_waiting = len(data)

        def read(n):
            port.in_waiting = 0
            return data

        port.read.side_effect = read
        fake_serial = Mock()
        fake_serial.Serial.return_value = port

        with patch.object(control_panel, "HAS_SERIAL", True), \
                patch.object(control_panel, "serial", fake_serial):
            assert serial_panel.start() is True
            time.sleep(0.1)
            serial_panel.stop()

        assert serial_panel.stats["messages_received"] == 1
        port.reset_input_buffer.assert_called_once()
        port.close.assert_called_once()
