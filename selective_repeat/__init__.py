"""
Selective Repeat transport engine and network emulator.

Subpackages:
- arq: sequence space, packets, sender and receiver engines, timer
- channel: lossy, order-preserving channel model
- layers: application message source and delivery verifier
- utils: logging and metrics
"""

__version__ = "1.0.0"
