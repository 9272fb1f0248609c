"""
Cruise Controller Module
========================

Kernel facade owning the ControlState.

Exposes one entry point per timing domain plus the mode-event entry point:

    handle_mode_event(sample)   arbitration + first regulation pass
    manual_tick(sample)         accel/brake held (NORMAL, CRUISE)
    drag_tick(sample)           ambient drag (NORMAL, no input)
    adaptive_tick(sample)       proximity law (ADAPTIVE)

Every entry point runs under a single lock, so ticks from the scheduler
thread and events from other threads are serialized. Callbacks run after
the lock is released. Cadence is owned by the caller (see TickScheduler).
"""

import threading
import time
import logging
from typing import Callable, Optional

from .control_state import ControlState, ControlSnapshot, DriveMode, TickDomain
from .mode_arbiter import ModeArbiter
from .speed_regulator import SpeedRegulator
from ..sensors.input_sample import InputSample

logger = logging.getLogger(__name__)


class CruiseController:
    """
    Vehicle speed controller with NORMAL, CRUISE and ADAPTIVE modes.

    Sinks (display, trace logger, actuators) register with add_callback
    and receive a ControlSnapshot after every applied tick. They are called
    without the lock held, so they may read the controller, but must not
    mutate kernel state.
    """

    def __init__(self,
                 state: Optional[ControlState] = None,
                 clock: Callable[[], float] = time.time):
        self._state = state or ControlState()
        self._arbiter = ModeArbiter()
        self._regulator = SpeedRegulator()
        self._clock = clock
        self._lock = threading.Lock()
        self._callbacks: list[Callable[[ControlSnapshot], None]] = []

        # Set by a manual tick with accel/brake, cleared by the next drag tick
        self._manual_since_drag = False

        # Statistics
        self._tick_counts = {domain: 0 for domain in TickDomain}
        self._skipped_drag = 0

    def handle_mode_event(self, sample: InputSample) -> ControlSnapshot:
        """
        Handle a mode button press.

        Arbitration and the first regulation pass run in the same locked
        step, so no tick can observe the old mode after the event. Mode
        callbacks and sinks run after the lock is released.

        Args:
            sample: Inputs at the time of the press

        Returns:
            Snapshot after the regulation pass
        """
        with self._lock:
            transition = self._arbiter.arbitrate(self._state, sample)
            mode = self._state.mode
            domain = TickDomain.ADAPTIVE if mode == DriveMode.ADAPTIVE else TickDomain.MANUAL
            snapshot = self._regulate(sample, domain)

        if transition is not None:
            self._arbiter.notify(*transition)
        return self._publish(snapshot)

    def manual_tick(self, sample: InputSample) -> ControlSnapshot:
        """Manual domain tick, fired while accelerate or brake is held."""
        with self._lock:
            if not sample.has_speed_request:
                return self._skip(TickDomain.MANUAL)
            self._manual_since_drag = True
            if self._state.mode == DriveMode.ADAPTIVE:
                # Manual inputs are not consulted in ADAPTIVE
                return self._skip(TickDomain.MANUAL)
            snapshot = self._regulate(sample, TickDomain.MANUAL)
        return self._publish(snapshot)

    def drag_tick(self, sample: InputSample) -> ControlSnapshot:
        """
        Drag domain tick.

        Has no effect outside NORMAL, while accelerate or brake is held, or
        when a manual tick with input ran since the previous drag tick.
        """
        with self._lock:
            preempted = self._manual_since_drag
            self._manual_since_drag = False

            if self._state.mode != DriveMode.NORMAL or sample.has_speed_request:
                return self._skip(TickDomain.DRAG)
            if preempted:
                self._skipped_drag += 1
                logger.debug("Drag tick preempted by manual input")
                return self._skip(TickDomain.DRAG)
            snapshot = self._regulate(sample, TickDomain.DRAG)
        return self._publish(snapshot)

    def adaptive_tick(self, sample: InputSample) -> ControlSnapshot:
        """Adaptive domain tick, re-sampling proximity each time."""
        with self._lock:
            if self._state.mode != DriveMode.ADAPTIVE:
                return self._skip(TickDomain.ADAPTIVE)
            snapshot = self._regulate(sample, TickDomain.ADAPTIVE)
        return self._publish(snapshot)

    def _regulate(self, sample: InputSample, domain: TickDomain) -> ControlSnapshot:
        """Run the regulator and capture the result. Caller holds the lock."""
        event = self._regulator.step(self._state, sample, domain)
        self._tick_counts[domain] += 1

        proximity = sample.proximity if self._state.mode == DriveMode.ADAPTIVE else None
        snapshot = ControlSnapshot.capture(
            self._state, self._clock(),
            domain=domain, event=event, proximity=proximity
        )
        logger.debug(
            f"{domain.value} tick: {snapshot.mode.name} speed={snapshot.speed} "
            f"event={event.value}"
        )
        return snapshot

    def _publish(self, snapshot: ControlSnapshot) -> ControlSnapshot:
        """Hand a snapshot to the sinks. Called without the lock held."""
        for callback in self._callbacks:
            try:
                callback(snapshot)
            except Exception as e:
                logger.warning(f"Snapshot callback error: {e}")

        return snapshot

    def _skip(self, domain: TickDomain) -> ControlSnapshot:
        """Snapshot for a tick that was gated out."""
        return ControlSnapshot.capture(self._state, self._clock(),
                                       domain=domain, applied=False)

    def add_callback(self, callback: Callable[[ControlSnapshot], None]):
        """Register a sink for snapshots of applied ticks."""
        self._callbacks.append(callback)

    def add_mode_callback(self, callback: Callable[[DriveMode, DriveMode], None]):
        """Register callback(old_mode, new_mode) for mode changes."""
        self._arbiter.add_callback(callback)

    def get_snapshot(self) -> ControlSnapshot:
        """Get a copy of the current state."""
        with self._lock:
            return ControlSnapshot.capture(self._state, self._clock(), applied=False)

    @property
    def mode(self) -> DriveMode:
        """Current drive mode."""
        with self._lock:
            return self._state.mode

    @property
    def speed(self) -> int:
        """Current commanded speed."""
        with self._lock:
            return self._state.speed

    @property
    def stats(self) -> dict:
        """Get controller statistics."""
        with self._lock:
            return {
                "manual_ticks": self._tick_counts[TickDomain.MANUAL],
                "drag_ticks": self._tick_counts[TickDomain.DRAG],
                "adaptive_ticks": self._tick_counts[TickDomain.ADAPTIVE],
                "skipped_drag": self._skipped_drag,
                "mode_changes": self._arbiter.transition_count,
                "hazard_responses": self._regulator.hazard_count,
            }
