"""
Shared test fixtures for cruise control unit tests.
"""

import pytest

from acc.control.control_state import ControlState, DriveMode
from acc.control.controller import CruiseController
from acc.control.tick_scheduler import TickScheduler, SchedulerConfig
from acc.sensors.control_panel import MockControlPanel
from acc.sensors.input_sample import InputSample
from acc.simulation.scenario_runner import VirtualClock


@pytest.fixture
def no_input():
    """Sample with no buttons pressed and a clear road."""
    return InputSample(proximity=0.5)


@pytest.fixture
def accel_input():
    """Sample with accelerate held."""
    return InputSample(accel_request=True, proximity=0.5)


@pytest.fixture
def brake_input():
    """Sample with brake held."""
    return InputSample(brake_request=True, proximity=0.5)


@pytest.fixture
def clear_road():
    """Adaptive sample with the vehicle ahead beyond the hazard distance."""
    return InputSample(proximity=0.5)


@pytest.fixture
def hazard_road():
    """Adaptive sample with the vehicle ahead inside the hazard distance."""
    return InputSample(proximity=0.2)


@pytest.fixture
def clock():
    """Manually advanced clock."""
    return VirtualClock()


@pytest.fixture
def controller(clock):
    """Controller at rest in NORMAL mode."""
    return CruiseController(clock=clock)


@pytest.fixture
def make_controller(clock):
    """Factory for a controller starting from a given state."""
    def _make(speed=0, mode=DriveMode.NORMAL, cruise_target=0):
        state = ControlState(speed=speed, mode=mode, cruise_target=cruise_target)
        return CruiseController(state=state, clock=clock)
    return _make


@pytest.fixture
def panel():
    """Mock control panel with the road clear at 0.5m."""
    return MockControlPanel(distance_m=0.5)


@pytest.fixture
def scheduler_config():
    """Default scheduler intervals."""
    return SchedulerConfig()


@pytest.fixture
def scheduler(controller, panel, scheduler_config, clock):
    """Scheduler bound to the controller, panel and virtual clock."""
    return TickScheduler(controller, panel, scheduler_config, clock=clock)
