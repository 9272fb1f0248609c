"""
Tick Scheduler Module
=====================

Drives the cruise controller from three independent timing domains:

    MANUAL    fires on press of accel/brake, then every manual interval
              while held; disarmed on release
    DRAG      fixed slow interval
    ADAPTIVE  fixed interval, re-sampling proximity each time

Mode buttons are edge-triggered: a rising edge is delivered once to
CruiseController.handle_mode_event, ahead of any domain tick in the same
poll. Within a poll the order is mode events, manual, adaptive, drag, so
manual input preempts drag in the same window.

The scheduler owns all cadence values. The controller gates each tick on
the current mode and inputs.
"""

import threading
import time
import logging
from dataclasses import dataclass, replace
from typing import Callable, Dict, List, Optional

from .control_state import ControlSnapshot, DriveMode, TickDomain
from .controller import CruiseController
from ..sensors.control_panel import InputSource
from ..sensors.input_sample import InputSample

logger = logging.getLogger(__name__)


@dataclass
class SchedulerConfig:
    """Timing domain intervals."""
    manual_interval_s: float = 0.1      # Accel/brake repeat while held
    drag_interval_s: float = 1.5        # Ambient drag in NORMAL
    adaptive_interval_s: float = 0.5    # Proximity law in ADAPTIVE
    poll_interval_s: float = 0.01       # Input polling for button edges

    @property
    def poll_rate_hz(self) -> float:
        """Input polling rate."""
        return 1.0 / self.poll_interval_s


@dataclass
class TimingDomain:
    """A periodic timer bound to one controller entry point."""
    domain: TickDomain
    interval_s: float
    handler: Callable[[InputSample], ControlSnapshot]
    next_due: Optional[float] = None    # None while disarmed
    fire_count: int = 0

    @property
    def armed(self) -> bool:
        return self.next_due is not None

    def arm(self, now: float, immediate: bool = False):
        """Schedule the next firing, now or one interval from now."""
        self.next_due = now if immediate else now + self.interval_s

    def disarm(self):
        self.next_due = None

    def is_due(self, now: float) -> bool:
        return self.next_due is not None and now >= self.next_due

    def fire(self, now: float, sample: InputSample) -> ControlSnapshot:
        """Invoke the handler and schedule the next firing."""
        self.fire_count += 1
        self.next_due += self.interval_s

        # Prevent runaway if we're behind
        if self.next_due <= now:
            self.next_due = now + self.interval_s

        return self.handler(sample)


class TickScheduler:
    """
    Polls an input source and fires controller ticks per timing domain.

    Run it either on a background thread (start/stop) or step it manually
    with poll(now), which is how scenario simulation and tests drive it on
    a virtual clock.
    """

    def __init__(self,
                 controller: CruiseController,
                 source: InputSource,
                 config: Optional[SchedulerConfig] = None,
                 clock: Callable[[], float] = time.time):
        self.config = config or SchedulerConfig()
        self.controller = controller
        self.source = source
        self._clock = clock

        self._domains: Dict[TickDomain, TimingDomain] = {
            TickDomain.MANUAL: TimingDomain(
                TickDomain.MANUAL, self.config.manual_interval_s, controller.manual_tick),
            TickDomain.DRAG: TimingDomain(
                TickDomain.DRAG, self.config.drag_interval_s, controller.drag_tick),
            TickDomain.ADAPTIVE: TimingDomain(
                TickDomain.ADAPTIVE, self.config.adaptive_interval_s, controller.adaptive_tick),
        }

        # Previous button levels for edge detection
        self._last_sample = InputSample()
        self._started = False

        self._running = False
        self._thread: Optional[threading.Thread] = None

        # Statistics
        self._poll_count = 0
        self._mode_events = 0

    def poll(self, now: Optional[float] = None) -> List[ControlSnapshot]:
        """
        Sample inputs once and fire whatever is due.

        Args:
            now: Current time (defaults to the scheduler clock)

        Returns:
            Snapshots from the mode event and ticks fired in this poll
        """
        if now is None:
            now = self._clock()

        sample = self.source.read_sample()
        self._poll_count += 1
        results: List[ControlSnapshot] = []

        if not self._started:
            self._domains[TickDomain.DRAG].arm(now)
            self._domains[TickDomain.ADAPTIVE].arm(now)
            self._started = True

        # Mode buttons: rising edges only. Speed requests are left to the
        # manual domain so a press is not applied twice in one poll.
        edges = replace(
            sample,
            accel_request=False,
            brake_request=False,
            cancel_request=sample.cancel_request and not self._last_sample.cancel_request,
            set_cruise_request=sample.set_cruise_request and not self._last_sample.set_cruise_request,
            set_adaptive_request=sample.set_adaptive_request and not self._last_sample.set_adaptive_request,
        )
        if edges.has_mode_request:
            self._mode_events += 1
            snapshot = self.controller.handle_mode_event(edges)
            results.append(snapshot)
            if snapshot.mode == DriveMode.ADAPTIVE:
                # First adaptive pass already ran with the event
                self._domains[TickDomain.ADAPTIVE].arm(now)

        # Manual domain follows the accel/brake hold
        manual = self._domains[TickDomain.MANUAL]
        if sample.has_speed_request:
            if not manual.armed:
                manual.arm(now, immediate=True)
        elif manual.armed:
            manual.disarm()

        for domain in (TickDomain.MANUAL, TickDomain.ADAPTIVE, TickDomain.DRAG):
            timer = self._domains[domain]
            if timer.is_due(now):
                results.append(timer.fire(now, sample))

        self._last_sample = sample
        return results

    def start(self) -> bool:
        """Start the polling thread."""
        if self._running:
            return True

        self._running = True
        self._thread = threading.Thread(
            target=self._run_loop,
            daemon=True,
            name=f"{self.__class__.__name__}-poll"
        )
        self._thread.start()
        logger.info(
            f"Tick scheduler started: manual={self.config.manual_interval_s}s, "
            f"drag={self.config.drag_interval_s}s, adaptive={self.config.adaptive_interval_s}s"
        )
        return True

    def stop(self):
        """Stop the polling thread."""
        self._running = False
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=2.0)
        self._thread = None
        logger.info("Tick scheduler stopped")

    def _run_loop(self):
        """Background polling loop at the configured rate."""
        next_poll = self._clock()

        while self._running:
            now = self._clock()

            if now >= next_poll:
                try:
                    self.poll(now)
                except Exception as e:
                    logger.error(f"Scheduler poll error: {e}")
                    time.sleep(0.1)

                next_poll += self.config.poll_interval_s
                if next_poll < now:
                    next_poll = now + self.config.poll_interval_s
            else:
                time.sleep(min(next_poll - now, self.config.poll_interval_s))

    def get_domain(self, domain: TickDomain) -> TimingDomain:
        """Get the timer for a domain."""
        return self._domains[domain]

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def stats(self) -> dict:
        """Get scheduler statistics."""
        return {
            "polls": self._poll_count,
            "mode_events": self._mode_events,
            "manual_fired": self._domains[TickDomain.MANUAL].fire_count,
            "drag_fired": self._domains[TickDomain.DRAG].fire_count,
            "adaptive_fired": self._domains[TickDomain.ADAPTIVE].fire_count,
        }
