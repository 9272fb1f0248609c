"""
Speed Regulator Module
======================

Per-mode speed update policy.

NORMAL:
    accel +1, brake -1, otherwise drag -1 (drag ticks only)
CRUISE:
    accel +1, brake -1, otherwise hold
ADAPTIVE:
    hazard (proximity < 0.3m) -1, otherwise +1 up to the cruise target

Speed is clamped at zero in every mode and capped at the cruise target in
ADAPTIVE. Indicators are always written as a pair so accel and brake are
never lit together.
"""

import logging

from .control_state import ControlState, DriveMode, RegulatorEvent, TickDomain
from ..sensors.input_sample import InputSample

logger = logging.getLogger(__name__)

# Safety distance to the vehicle ahead (meters). Fixed, not configurable.
PROXIMITY_HAZARD_M = 0.3


class SpeedRegulator:
    """
    Computes the next speed and indicator outputs for the active mode.

    The regulator is a pure computation on the state it is given: it never
    raises, blocks or validates inputs. A negative proximity reads as a
    hazard; NaN compares as clear.
    """

    def __init__(self):
        self._handlers = {
            DriveMode.NORMAL: self._step_normal,
            DriveMode.CRUISE: self._step_cruise,
            DriveMode.ADAPTIVE: self._step_adaptive,
        }
        self._hazard_count = 0

    def step(self, state: ControlState, sample: InputSample,
             domain: TickDomain = TickDomain.MANUAL) -> RegulatorEvent:
        """
        Run one regulation pass for the current mode.

        Args:
            state: Kernel state, updated in place
            sample: Inputs for this tick
            domain: Timing domain that triggered the pass

        Returns:
            Event describing what the pass did
        """
        return self._handlers[state.mode](state, sample, domain)

    def _step_normal(self, state: ControlState, sample: InputSample,
                     domain: TickDomain) -> RegulatorEvent:
        if sample.accel_request:
            state.speed += 1
            state.set_indicators(True, False)
            event = RegulatorEvent.NORMAL_ACCEL
        elif sample.brake_request:
            state.speed -= 1
            event = RegulatorEvent.NORMAL_BRAKE
        elif domain == TickDomain.DRAG:
            state.speed -= 1
            event = RegulatorEvent.NORMAL_DRAG
        else:
            event = RegulatorEvent.NORMAL_IDLE

        if self._clamp_zero(state) and event == RegulatorEvent.NORMAL_DRAG:
            event = RegulatorEvent.NORMAL_IDLE
        return event

    def _step_cruise(self, state: ControlState, sample: InputSample,
                     domain: TickDomain) -> RegulatorEvent:
        if sample.accel_request:
            state.speed += 1
            state.set_indicators(True, False)
            event = RegulatorEvent.CRUISE_ACCEL
        elif sample.brake_request:
            state.speed -= 1
            event = RegulatorEvent.CRUISE_BRAKE
        else:
            # No drag in cruise
            event = RegulatorEvent.CRUISE_HOLD

        self._clamp_zero(state)
        return event

    def _step_adaptive(self, state: ControlState, sample: InputSample,
                       domain: TickDomain) -> RegulatorEvent:
        state.set_indicators(True, False)

        if sample.proximity < PROXIMITY_HAZARD_M:
            state.speed -= 1
            self._hazard_count += 1
            event = RegulatorEvent.ADAPTIVE_DANGER
            logger.warning(
                f"Proximity hazard: {sample.proximity:.2f}m, speed reduced to {max(state.speed, 0)}"
            )
        elif state.speed < state.cruise_target:
            state.speed += 1
            event = RegulatorEvent.ADAPTIVE_SAFE
        else:
            event = RegulatorEvent.ADAPTIVE_CAP

        if state.speed > state.cruise_target:
            state.speed = state.cruise_target

        if state.speed <= 0:
            state.speed = 0
            state.set_indicators(False, True)
        return event

    def _clamp_zero(self, state: ControlState) -> bool:
        """Clamp negative speed to zero and light the brake indicator."""
        if state.speed < 0:
            state.speed = 0
            state.set_indicators(False, True)
            return True
        return False

    @property
    def hazard_count(self) -> int:
        """Number of hazard responses applied."""
        return self._hazard_count
