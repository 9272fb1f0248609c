"""
Tests for Input Sample Module
=============================

Tests the 80% button threshold and sample construction from voltages.
"""

import dataclasses
import math

import pytest

from acc.sensors.input_sample import (
    InputSample,
    is_asserted,
    ASSERT_THRESHOLD,
    FULL_SCALE_V,
)


class TestIsAsserted:
    """Test analog button threshold."""

    def test_threshold_constants(self):
        """Test threshold is 80% of a 5V panel."""
        assert ASSERT_THRESHOLD == 0.8
        assert FULL_SCALE_V == 5.0

    def test_exactly_four_volts_is_pressed(self):
        """Test 4.0V on a 5V panel counts as pressed."""
        assert is_asserted(4.0) is True

    def test_just_below_threshold(self):
        """Test 3.99V is not pressed."""
        assert is_asserted(3.99) is False

    def test_full_scale_and_above(self):
        """Test full scale and over-range readings are pressed."""
        assert is_asserted(5.0) is True
        assert is_asserted(7.5) is True

    def test_zero_and_negative(self):
        """Test released and negative readings are not pressed."""
        assert is_asserted(0.0) is False
        assert is_asserted(-1.0) is False

    def test_nan_is_not_pressed(self):
        """Test NaN reading is never asserted."""
        assert is_asserted(float("nan")) is False

    def test_custom_full_scale(self):
        """Test threshold scales with full scale."""
        assert is_asserted(820, full_scale=1024) is True
        assert is_asserted(800, full_scale=1024) is False

    def test_invalid_full_scale(self):
        """Test zero or negative full scale never asserts."""
        assert is_asserted(5.0, full_scale=0) is False
        assert is_asserted(5.0, full_scale=-5.0) is False


class TestInputSample:
    """Test InputSample dataclass."""

    def test_defaults(self):
        """Test default sample has nothing pressed and a clear road."""
        sample = InputSample()

        assert sample.accel_request is False
        assert sample.brake_request is False
        assert sample.cancel_request is False
        assert sample.set_cruise_request is False
        assert sample.set_adaptive_request is False
        assert math.isinf(sample.proximity)

    def test_from_voltages_pin_order(self):
        """Test voltages map to buttons in pin order A0-A4."""
        sample = InputSample.from_voltages(5.0, 0.0, 0.0, 0.0, 0.0)
        assert sample.accel_request and not sample.brake_request

        sample = InputSample.from_voltages(0.0, 5.0, 0.0, 0.0, 0.0)
        assert sample.brake_request and not sample.accel_request

        sample = InputSample.from_voltages(0.0, 0.0, 5.0, 0.0, 0.0)
        assert sample.cancel_request

        sample = InputSample.from_voltages(0.0, 0.0, 0.0, 5.0, 0.0)
        assert sample.set_cruise_request

        sample = InputSample.from_voltages(0.0, 0.0, 0.0, 0.0, 5.0)
        assert sample.set_adaptive_request

    def test_from_voltages_proximity(self):
        """Test proximity is passed through unchanged."""
        sample = InputSample.from_voltages(0, 0, 0, 0, 0, proximity=0.42)
        assert sample.proximity == 0.42

    def test_from_voltages_default_proximity(self):
        """Test missing proximity reads as clear road."""
        sample = InputSample.from_voltages(0, 0, 0, 0, 0)
        assert math.isinf(sample.proximity)

    def test_from_voltages_full_scale(self):
        """Test full scale is honored."""
        sample = InputSample.from_voltages(2.7, 0, 0, 0, 0, full_scale=3.3)
        assert sample.accel_request is True

    @pytest.mark.parametrize("kwargs,expected", [
        ({}, False),
        ({"accel_request": True}, True),
        ({"brake_request": True}, True),
        ({"cancel_request": True}, False),
    ])
    def test_has_speed_request(self, kwargs, expected):
        """Test speed request covers only accel and brake."""
        assert InputSample(**kwargs).has_speed_request is expected

    @pytest.mark.parametrize("kwargs,expected", [
        ({}, False),
        ({"accel_request": True}, False),
        ({"cancel_request": True}, True),
        ({"set_cruise_request": True}, True),
        ({"set_adaptive_request": True}, True),
    ])
    def test_has_mode_request(self, kwargs, expected):
        """Test mode request covers the three mode buttons."""
        assert InputSample(**kwargs).has_mode_request is expected

    def test_sample_is_read_only(self):
        """Test a sample cannot be changed once built."""
        sample = InputSample(accel_request=True, proximity=0.5)

        with pytest.raises(dataclasses.FrozenInstanceError):
            sample.accel_request = False
        with pytest.raises(dataclasses.FrozenInstanceError):
            sample.proximity = 0.1

    def test_replace_builds_new_sample(self):
        """Test replace leaves the original sample untouched."""
        sample = InputSample(accel_request=True, cancel_request=True)
        edited = dataclasses.replace(sample, accel_request=False)

        assert sample.accel_request is True
        assert edited.accel_request is False
        assert edited.cancel_request is True
