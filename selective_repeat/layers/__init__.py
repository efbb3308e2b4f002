"""
Layers package - Application endpoints of the emulation.

Contains implementations for:
- Application message source
- In-order delivery verification
"""

from .application_layer import MessageSource, DeliveryVerifier

__all__ = [
    'MessageSource',
    'DeliveryVerifier'
]
