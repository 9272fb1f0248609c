"""
Scenarios Module
================

Predefined driving scenarios for the cruise controller.

Each scenario is a timeline of panel actions (button presses and releases,
changes of distance to the vehicle ahead) replayed against the real
scheduler and controller by ScenarioRunner.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional
import logging

from ..sensors.control_panel import PanelButton

logger = logging.getLogger(__name__)

# Mode buttons are held this long when tapped
TAP_DURATION_S = 0.25


class ScenarioType(Enum):
    """Built-in driving scenarios."""
    CITY_DRIVE = "city_drive"
    HIGHWAY_CRUISE = "highway_cruise"
    ADAPTIVE_FOLLOW = "adaptive_follow"
    EMERGENCY_STOP = "emergency_stop"
    COASTDOWN = "coastdown"


class ActionKind(Enum):
    """Panel actions available in a scenario timeline."""
    PRESS = "press"
    RELEASE = "release"
    SET_DISTANCE = "set_distance"


@dataclass
class ScenarioAction:
    """One timed panel action."""
    time_s: float
    kind: ActionKind
    button: Optional[PanelButton] = None
    distance_m: float = 0.0


@dataclass
class Scenario:
    """
    Complete driving scenario definition.

    Actions need not be sorted; the runner orders them by time.
    """
    name: str
    description: str
    duration_s: float = 20.0

    # Distance to the vehicle ahead at t=0 (meters)
    initial_distance_m: float = 0.5

    actions: List[ScenarioAction] = field(default_factory=list)

    def press(self, time_s: float, button: PanelButton) -> 'Scenario':
        self.actions.append(ScenarioAction(time_s, ActionKind.PRESS, button))
        return self

    def release(self, time_s: float, button: PanelButton) -> 'Scenario':
        self.actions.append(ScenarioAction(time_s, ActionKind.RELEASE, button))
        return self

    def hold(self, start_s: float, end_s: float, button: PanelButton) -> 'Scenario':
        """Hold a button from start_s until end_s."""
        return self.press(start_s, button).release(end_s, button)

    def tap(self, time_s: float, button: PanelButton) -> 'Scenario':
        """Briefly press a mode button."""
        return self.hold(time_s, time_s + TAP_DURATION_S, button)

    def set_distance(self, time_s: float, distance_m: float) -> 'Scenario':
        self.actions.append(ScenarioAction(time_s, ActionKind.SET_DISTANCE, distance_m=distance_m))
        return self

    def sorted_actions(self) -> List[ScenarioAction]:
        return sorted(self.actions, key=lambda a: a.time_s)


def get_scenario(scenario_type: ScenarioType) -> Scenario:
    """
    Get a predefined scenario by type.

    Args:
        scenario_type: Type of scenario to create

    Returns:
        Configured Scenario object
    """
    if scenario_type == ScenarioType.CITY_DRIVE:
        return _city_drive()
    elif scenario_type == ScenarioType.HIGHWAY_CRUISE:
        return _highway_cruise()
    elif scenario_type == ScenarioType.ADAPTIVE_FOLLOW:
        return _adaptive_follow()
    elif scenario_type == ScenarioType.EMERGENCY_STOP:
        return _emergency_stop()
    elif scenario_type == ScenarioType.COASTDOWN:
        return _coastdown()
    else:
        raise ValueError(f"Unknown scenario type: {scenario_type}")


def _city_drive() -> Scenario:
    """Stop-and-go driving in NORMAL mode."""
    scenario = Scenario(
        name="City Drive",
        description="Accelerate, coast with drag, brake and pull away again",
        duration_s=16.0,
    )
    scenario.hold(0.5, 2.5, PanelButton.ACCEL)
    scenario.hold(7.0, 7.5, PanelButton.BRAKE)
    scenario.hold(9.0, 10.0, PanelButton.ACCEL)
    return scenario


def _highway_cruise() -> Scenario:
    """Cruise control holding speed without drag."""
    scenario = Scenario(
        name="Highway Cruise",
        description="Accelerate, engage cruise, adjust, then cancel and coast",
        duration_s=24.0,
    )
    scenario.hold(0.5, 3.5, PanelButton.ACCEL)
    scenario.tap(4.0, PanelButton.SET_CRUISE)
    scenario.hold(10.0, 10.5, PanelButton.ACCEL)
    scenario.hold(13.0, 13.3, PanelButton.BRAKE)
    scenario.tap(16.0, PanelButton.CANCEL)
    return scenario


def _adaptive_follow() -> Scenario:
    """Following a slower vehicle that closes in and pulls away."""
    scenario = Scenario(
        name="Adaptive Follow",
        description="Engage adaptive cruise, lead vehicle closes in then pulls away",
        duration_s=20.0,
        initial_distance_m=0.8,
    )
    scenario.hold(0.5, 3.0, PanelButton.ACCEL)
    scenario.tap(3.5, PanelButton.SET_ADAPTIVE)
    scenario.set_distance(6.0, 0.5)
    scenario.set_distance(7.0, 0.25)
    scenario.set_distance(10.0, 0.4)
    scenario.set_distance(12.0, 0.7)
    return scenario


def _emergency_stop() -> Scenario:
    """Obstacle stays inside the hazard distance until the vehicle stops."""
    scenario = Scenario(
        name="Emergency Stop",
        description="Adaptive cruise brings the vehicle to rest behind an obstacle",
        duration_s=12.0,
        initial_distance_m=0.9,
    )
    scenario.hold(0.2, 1.2, PanelButton.ACCEL)
    scenario.tap(1.5, PanelButton.SET_ADAPTIVE)
    scenario.set_distance(2.0, 0.1)
    return scenario


def _coastdown() -> Scenario:
    """Release all controls and let drag stop the vehicle."""
    scenario = Scenario(
        name="Coastdown",
        description="Short acceleration followed by drag down to standstill",
        duration_s=20.0,
    )
    scenario.hold(0.0, 1.0, PanelButton.ACCEL)
    return scenario
