"""
Visualization package - Plotting tools for sweep results.

Contains:
- Heatmap generation
"""

from .heatmap import ThroughputHeatmap

__all__ = [
    'ThroughputHeatmap'
]
