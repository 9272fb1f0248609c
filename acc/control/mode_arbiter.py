"""
Mode Arbiter Module
===================

Resolves the active drive mode from the panel mode buttons.

Priority (first match wins, no match keeps the current mode):
    1. Cancel            -> NORMAL
    2. Set cruise        -> CRUISE
    3. Set adaptive      -> ADAPTIVE, cruise target captured from speed
"""

import logging
from typing import Callable, Optional, Tuple

from .control_state import ControlState, DriveMode
from ..sensors.input_sample import InputSample

logger = logging.getLogger(__name__)


class ModeArbiter:
    """
    Selects the drive mode ahead of each regulation pass.

    There are no automatic transitions: only button requests change the
    mode. Selecting ADAPTIVE re-captures the cruise target from the current
    speed every time it is evaluated with the request asserted, including
    when ADAPTIVE is already active.
    """

    def __init__(self):
        self._callbacks: list[Callable[[DriveMode, DriveMode], None]] = []
        self._transition_count = 0

    def step(self, state: ControlState, sample: InputSample) -> DriveMode:
        """
        Apply the priority rule to state and notify mode callbacks.

        Args:
            state: Kernel state, updated in place
            sample: Inputs for this tick

        Returns:
            Mode after arbitration
        """
        transition = self.arbitrate(state, sample)
        if transition is not None:
            self.notify(*transition)
        return state.mode

    def arbitrate(self, state: ControlState,
                  sample: InputSample) -> Optional[Tuple[DriveMode, DriveMode]]:
        """
        Apply the priority rule to state without running callbacks.

        Returns:
            (old_mode, new_mode) if the mode changed, otherwise None
        """
        old_mode = state.mode

        if sample.cancel_request:
            new_mode = DriveMode.NORMAL
        elif sample.set_cruise_request:
            new_mode = DriveMode.CRUISE
        elif sample.set_adaptive_request:
            new_mode = DriveMode.ADAPTIVE
            state.cruise_target = state.speed
            logger.debug(f"Cruise target captured: {state.cruise_target}")
        else:
            return None

        state.mode = new_mode

        # Leaving via cancel resets both indicators before regulation
        if sample.cancel_request:
            state.set_indicators(False, False)

        if new_mode == old_mode:
            return None

        self._transition_count += 1
        logger.info(
            f"Mode change: {old_mode.name} → {new_mode.name}, "
            f"speed={state.speed}, target={state.cruise_target}"
        )
        return old_mode, new_mode

    def notify(self, old_mode: DriveMode, new_mode: DriveMode):
        """Run mode callbacks for a transition."""
        for callback in self._callbacks:
            try:
                callback(old_mode, new_mode)
            except Exception as e:
                logger.warning(f"Mode callback error: {e}")

    def add_callback(self, callback: Callable[[DriveMode, DriveMode], None]):
        """Register callback(old_mode, new_mode) for mode changes."""
        self._callbacks.append(callback)

    @property
    def transition_count(self) -> int:
        """Number of mode changes seen so far."""
        return self._transition_count
