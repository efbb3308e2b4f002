"""
Utilities package - Helper functions and classes.

Contains implementations for:
- Metrics calculation (throughput, efficiency, latency)
- Logging utilities
"""

from .metrics import MetricsCollector
from .logger import SimulationLogger, LogLevel, get_logger, set_logger

__all__ = [
    'MetricsCollector',
    'SimulationLogger',
    'LogLevel',
    'get_logger',
    'set_logger'
]
