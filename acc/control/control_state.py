"""
Control State Module
====================

Shared data types for the cruise control kernel.

ControlState is the single mutable record owned by CruiseController.
ControlSnapshot is the read-only copy handed to display, logging and
actuator sinks after every tick.
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional, Tuple


class DriveMode(Enum):
    """Operating modes, exactly one active at a time."""
    NORMAL = auto()         # Manual accel/brake with ambient drag
    CRUISE = auto()         # Manual accel/brake, speed held otherwise
    ADAPTIVE = auto()       # Proximity-governed, capped at cruise target


class TickDomain(Enum):
    """Timing domain that triggered a regulation pass."""
    MANUAL = "manual"
    DRAG = "drag"
    ADAPTIVE = "adaptive"


class RegulatorEvent(Enum):
    """Outcome of a regulation pass, used for status reporting."""
    NORMAL_IDLE = "normal_idle"
    NORMAL_ACCEL = "normal_accel"
    NORMAL_BRAKE = "normal_brake"
    NORMAL_DRAG = "normal_drag"
    CRUISE_HOLD = "cruise_hold"
    CRUISE_ACCEL = "cruise_accel"
    CRUISE_BRAKE = "cruise_brake"
    ADAPTIVE_SAFE = "adaptive_safe"
    ADAPTIVE_CAP = "adaptive_cap"
    ADAPTIVE_DANGER = "adaptive_danger"


STATUS_MESSAGES = {
    RegulatorEvent.NORMAL_IDLE: "Normal mode: vehicle at rest",
    RegulatorEvent.NORMAL_ACCEL: "Normal mode: accelerating",
    RegulatorEvent.NORMAL_BRAKE: "Normal mode: braking",
    RegulatorEvent.NORMAL_DRAG: "Normal mode: no input, drag reducing speed",
    RegulatorEvent.CRUISE_HOLD: "Cruise control: holding speed",
    RegulatorEvent.CRUISE_ACCEL: "Cruise control: manual acceleration",
    RegulatorEvent.CRUISE_BRAKE: "Cruise control: manual braking",
    RegulatorEvent.ADAPTIVE_SAFE: "Adaptive cruise: path clear, restoring speed",
    RegulatorEvent.ADAPTIVE_CAP: "Adaptive cruise: at target speed",
    RegulatorEvent.ADAPTIVE_DANGER: "Adaptive cruise: proximity hazard, decelerating",
}

# First LCD row for each mode
MODE_LABELS = {
    DriveMode.NORMAL: "Vehicle Speed:",
    DriveMode.CRUISE: "Cruise mode:",
    DriveMode.ADAPTIVE: "Adap_Cruise_mode",
}


@dataclass
class ControlState:
    """Kernel state. Mutated only by ModeArbiter and SpeedRegulator."""
    speed: int = 0
    mode: DriveMode = DriveMode.NORMAL
    cruise_target: int = 0          # Captured on entry to ADAPTIVE

    # Indicator outputs (accelerate LED, brake LED)
    accel_indicator: bool = False
    brake_indicator: bool = False

    def set_indicators(self, accel: bool, brake: bool):
        """Assign both indicators together."""
        self.accel_indicator = accel
        self.brake_indicator = brake


@dataclass(frozen=True)
class ControlSnapshot:
    """Read-only copy of the kernel state after a tick."""
    timestamp: float
    speed: int
    mode: DriveMode
    cruise_target: Optional[int]    # None outside ADAPTIVE
    accel_indicator: bool
    brake_indicator: bool
    domain: Optional[TickDomain] = None
    event: Optional[RegulatorEvent] = None
    proximity: Optional[float] = None
    applied: bool = True            # False if the tick was gated out

    @classmethod
    def capture(cls, state: ControlState, timestamp: float,
                domain: Optional[TickDomain] = None,
                event: Optional[RegulatorEvent] = None,
                proximity: Optional[float] = None,
                applied: bool = True) -> 'ControlSnapshot':
        """Copy a ControlState into a snapshot."""
        target = state.cruise_target if state.mode == DriveMode.ADAPTIVE else None
        return cls(
            timestamp=timestamp,
            speed=state.speed,
            mode=state.mode,
            cruise_target=target,
            accel_indicator=state.accel_indicator,
            brake_indicator=state.brake_indicator,
            domain=domain,
            event=event,
            proximity=proximity,
            applied=applied,
        )

    @property
    def mode_label(self) -> str:
        """Display label for the current mode."""
        return MODE_LABELS[self.mode]

    @property
    def status_message(self) -> str:
        """Human readable status line for the last regulation pass."""
        if self.event is None:
            return ""
        message = STATUS_MESSAGES[self.event]
        if self.event == RegulatorEvent.ADAPTIVE_SAFE and self.cruise_target is not None:
            message = f"{message} to {self.cruise_target}"
        return message

    def lcd_lines(self) -> Tuple[str, str]:
        """Two display rows: mode label and speed."""
        return (self.mode_label, str(self.speed))
