"""
Input Sample Module
===================

Per-tick snapshot of the driver controls and the distance sensor.

The panel buttons are analog inputs read as voltages. A button counts as
pressed when its reading reaches 80% of full scale (4.0V on a 5V panel).
The kernel branches only on these booleans, never on the magnitude.
"""

import math
from dataclasses import dataclass

# Button threshold as a fraction of full scale
ASSERT_THRESHOLD = 0.8

# Panel supply voltage
FULL_SCALE_V = 5.0


def is_asserted(reading: float, full_scale: float = FULL_SCALE_V) -> bool:
    """
    Check whether a raw analog reading counts as a pressed button.

    Args:
        reading: Raw reading (volts, or any unit matching full_scale)
        full_scale: Reading at 100% of range

    Returns:
        True if reading >= 80% of full scale. NaN is never asserted.
    """
    if full_scale <= 0:
        return False
    return reading / full_scale >= ASSERT_THRESHOLD


@dataclass(frozen=True)
class InputSample:
    """Control inputs for one tick."""
    accel_request: bool = False
    brake_request: bool = False
    cancel_request: bool = False
    set_cruise_request: bool = False
    set_adaptive_request: bool = False

    # Latest distance to the vehicle ahead (meters)
    proximity: float = math.inf

    @classmethod
    def from_voltages(cls,
                      accel_v: float,
                      brake_v: float,
                      cancel_v: float,
                      cruise_v: float,
                      adaptive_v: float,
                      proximity: float = math.inf,
                      full_scale: float = FULL_SCALE_V) -> 'InputSample':
        """
        Build a sample from raw panel voltages (pins A0-A4).

        Args:
            accel_v: Accelerate button (A0)
            brake_v: Brake button (A1)
            cancel_v: Cancel button (A2)
            cruise_v: Set cruise button (A3)
            adaptive_v: Set adaptive cruise button (A4)
            proximity: Distance sensor reading (meters)
            full_scale: Panel full-scale voltage
        """
        return cls(
            accel_request=is_asserted(accel_v, full_scale),
            brake_request=is_asserted(brake_v, full_scale),
            cancel_request=is_asserted(cancel_v, full_scale),
            set_cruise_request=is_asserted(cruise_v, full_scale),
            set_adaptive_request=is_asserted(adaptive_v, full_scale),
            proximity=proximity,
        )

    @property
    def has_speed_request(self) -> bool:
        """True if accelerate or brake is held."""
        return self.accel_request or self.brake_request

    @property
    def has_mode_request(self) -> bool:
        """True if any mode button is pressed."""
        return (self.cancel_request or self.set_cruise_request
                or self.set_adaptive_request)
