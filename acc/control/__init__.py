"""
Control System Modules
======================

This package contains the cruise control kernel.

Components:
    - ModeArbiter: Mode selection from panel buttons
    - SpeedRegulator: Per-mode speed update policy
    - CruiseController: Kernel facade owning the control state
    - TickScheduler: Timing domains driving the controller
"""

from .control_state import (
    ControlState,
    ControlSnapshot,
    DriveMode,
    TickDomain,
    RegulatorEvent,
)

from .mode_arbiter import ModeArbiter

from .speed_regulator import (
    SpeedRegulator,
    PROXIMITY_HAZARD_M,
)

from .controller import CruiseController

from .tick_scheduler import (
    TickScheduler,
    SchedulerConfig,
    TimingDomain,
)

__all__ = [
    'ControlState',
    'ControlSnapshot',
    'DriveMode',
    'TickDomain',
    'RegulatorEvent',
    'ModeArbiter',
    'SpeedRegulator',
    'PROXIMITY_HAZARD_M',
    'CruiseController',
    'TickScheduler',
    'SchedulerConfig',
    'TimingDomain',
]
