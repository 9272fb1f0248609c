"""
Simulation Module
=================

Replays scripted driving scenarios against the cruise controller.
"""

from .scenarios import Scenario, ScenarioType, ScenarioAction, ActionKind, get_scenario
from .scenario_runner import ScenarioRunner, ScenarioResult, VirtualClock

__all__ = [
    'Scenario', 'ScenarioType', 'ScenarioAction', 'ActionKind', 'get_scenario',
    'ScenarioRunner', 'ScenarioResult', 'VirtualClock',
]
