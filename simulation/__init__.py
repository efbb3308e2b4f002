"""
Simulation package - Network emulator and runners.

Contains:
- Event-driven network emulator
- Batch runner for parameter sweeps
"""

from .simulator import Simulator, SimulatorConfig, EventType
from .runner import BatchRunner, RunConfig, run_single_simulation

__all__ = [
    'Simulator',
    'SimulatorConfig',
    'EventType',
    'BatchRunner',
    'RunConfig',
    'run_single_simulation'
]
