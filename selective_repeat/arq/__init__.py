"""
ARQ package - Selective Repeat protocol components.

Contains implementations for:
- Sequence number space and window membership
- Packet structure and checksum
- Sender with window management
- Receiver with out-of-order buffering
- Shared per-entity timer
"""

from .sequence import SequenceSpace, ConfigurationError
from .settings import ProtocolConfig, Entity
from .checksum import compute_checksum, is_corrupted
from .packet import Packet
from .timer import ProtocolTimer, TimerState, TimerStateError
from .sender import SRSender
from .receiver import SRReceiver, ReackPolicy

__all__ = [
    'SequenceSpace',
    'ConfigurationError',
    'ProtocolConfig',
    'Entity',
    'compute_checksum',
    'is_corrupted',
    'Packet',
    'ProtocolTimer',
    'TimerState',
    'TimerStateError',
    'SRSender',
    'SRReceiver',
    'ReackPolicy'
]
