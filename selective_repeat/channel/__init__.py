"""
Channel package - Network layer models.

Contains implementations for:
- Lossy, corrupting, order-preserving channel
"""

from .lossy_channel import LossyChannel

__all__ = [
    'LossyChannel'
]
