"""
Protocol parameters shared by the sender and receiver engines.
"""

from dataclasses import dataclass
from enum import IntEnum

from config import WINDOWSIZE, SEQSPACE, TIMEOUT_TICKS, PAYLOAD_SIZE
from .sequence import SequenceSpace, ConfigurationError


@dataclass(frozen=True)
class ProtocolConfig:
    """
    The four constants that parameterize both engines.

    Attributes:
        window_size: Send / receive window size
        seq_space: Size of the sequence number space
        timeout: Retransmission timeout in time units
        payload_size: Fixed payload length in bytes
    """
    window_size: int = WINDOWSIZE
    seq_space: int = SEQSPACE
    timeout: float = TIMEOUT_TICKS
    payload_size: int = PAYLOAD_SIZE

    def __post_init__(self):
        """Validate parameters; fails fast on an unusable configuration."""
        if self.timeout <= 0:
            raise ConfigurationError(f"timeout must be positive, got {self.timeout}")
        if self.payload_size < 1:
            raise ConfigurationError(
                f"payload size must be positive, got {self.payload_size}"
            )
        # raises ConfigurationError for a bad window / space pair
        self.sequence_space()

    def sequence_space(self) -> SequenceSpace:
        """Build the sequence space for these parameters."""
        return SequenceSpace(window_size=self.window_size, seq_space=self.seq_space)


class Entity(IntEnum):
    """Endpoints of the simplex transfer: A sends data, B receives it."""
    A = 0
    B = 1
