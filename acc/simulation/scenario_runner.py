"""
Scenario Runner
===============

Replays a Scenario against the real TickScheduler and CruiseController on a
virtual clock, sampling the controller state after every poll.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import logging

import numpy as np

from .scenarios import Scenario, ScenarioAction, ActionKind
from ..control.control_state import ControlSnapshot, DriveMode, RegulatorEvent
from ..control.controller import CruiseController
from ..control.tick_scheduler import TickScheduler, SchedulerConfig
from ..sensors.control_panel import MockControlPanel

logger = logging.getLogger(__name__)


class VirtualClock:
    """Manually advanced clock shared by scheduler and controller."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now


@dataclass
class ScenarioResult:
    """Time series and snapshots from a scenario run."""
    name: str
    times: np.ndarray
    speeds: np.ndarray
    modes: np.ndarray                  # Mode names per sample
    cruise_targets: np.ndarray         # -1 outside ADAPTIVE
    brake_indicators: np.ndarray
    snapshots: List[ControlSnapshot] = field(default_factory=list)
    controller_stats: Dict[str, Any] = field(default_factory=dict)

    @property
    def final_speed(self) -> int:
        return int(self.speeds[-1]) if len(self.speeds) else 0

    @property
    def max_speed(self) -> int:
        return int(self.speeds.max()) if len(self.speeds) else 0

    def count_events(self, event: RegulatorEvent) -> int:
        """Number of applied ticks that produced event."""
        return sum(1 for s in self.snapshots if s.event == event)

    def invariant_violations(self) -> int:
        """Samples with negative speed or speed above target in ADAPTIVE."""
        negative = self.speeds < 0
        adaptive = self.modes == DriveMode.ADAPTIVE.name
        over_target = adaptive & (self.speeds > self.cruise_targets)
        return int(np.count_nonzero(negative | over_target))

    def summary(self) -> Dict[str, Any]:
        """Summary metrics for the run."""
        if len(self.times) > 1:
            dt = float(np.mean(np.diff(self.times)))
        else:
            dt = 0.0
        return {
            "name": self.name,
            "duration_s": float(self.times[-1]) if len(self.times) else 0.0,
            "max_speed": self.max_speed,
            "final_speed": self.final_speed,
            "mean_speed": float(np.mean(self.speeds)) if len(self.speeds) else 0.0,
            "time_stopped_s": float(np.count_nonzero(self.speeds == 0) * dt),
            "hazard_ticks": self.count_events(RegulatorEvent.ADAPTIVE_DANGER),
            "mode_changes": self.controller_stats.get("mode_changes", 0),
            "invariant_violations": self.invariant_violations(),
        }


class ScenarioRunner:
    """
    Runs scenarios deterministically.

    Time advances in steps of the scheduler poll interval; actions scheduled
    at or before the current time are applied to the mock panel before the
    poll.
    """

    def __init__(self, config: Optional[SchedulerConfig] = None):
        self.config = config or SchedulerConfig()

    def run(self, scenario: Scenario) -> ScenarioResult:
        """
        Run a scenario to completion.

        Args:
            scenario: Scenario to replay

        Returns:
            ScenarioResult with one sample per poll
        """
        clock = VirtualClock()
        panel = MockControlPanel(distance_m=scenario.initial_distance_m)
        controller = CruiseController(clock=clock)
        scheduler = TickScheduler(controller, panel, self.config, clock=clock)

        snapshots: List[ControlSnapshot] = []
        controller.add_callback(snapshots.append)

        actions = scenario.sorted_actions()
        next_action = 0

        dt = self.config.poll_interval_s
        steps = int(round(scenario.duration_s / dt)) + 1

        times = np.zeros(steps)
        speeds = np.zeros(steps, dtype=int)
        modes = np.empty(steps, dtype=object)
        targets = np.full(steps, -1, dtype=int)
        brakes = np.zeros(steps, dtype=bool)

        logger.info(f"Running scenario '{scenario.name}' for {scenario.duration_s}s")

        for i in range(steps):
            # Integer step count avoids drift in the virtual clock
            now = i * dt
            clock.now = now

            while next_action < len(actions) and actions[next_action].time_s <= now + 1e-9:
                self._apply(panel, actions[next_action])
                next_action += 1

            scheduler.poll(now)

            snapshot = controller.get_snapshot()
            times[i] = now
            speeds[i] = snapshot.speed
            modes[i] = snapshot.mode.name
            if snapshot.cruise_target is not None:
                targets[i] = snapshot.cruise_target
            brakes[i] = snapshot.brake_indicator

        result = ScenarioResult(
            name=scenario.name,
            times=times,
            speeds=speeds,
            modes=modes,
            cruise_targets=targets,
            brake_indicators=brakes,
            snapshots=snapshots,
            controller_stats=controller.stats,
        )
        logger.info(
            f"Scenario '{scenario.name}' done: final speed {result.final_speed}, "
            f"max {result.max_speed}"
        )
        return result

    @staticmethod
    def _apply(panel: MockControlPanel, action: ScenarioAction):
        """Apply one action to the panel."""
        if action.kind == ActionKind.PRESS:
            panel.press(action.button)
        elif action.kind == ActionKind.RELEASE:
            panel.release(action.button)
        elif action.kind == ActionKind.SET_DISTANCE:
            panel.set_distance(action.distance_m)
        logger.debug(f"t={action.time_s:.2f}s {action.kind.value} "
                     f"{action.button.name if action.button else action.distance_m}")
