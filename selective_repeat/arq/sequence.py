"""
Sequence Number Space

This module implements modular sequence-number arithmetic and the
window-membership test shared by the sender and the receiver.
"""

from dataclasses import dataclass

from config import WINDOWSIZE, SEQSPACE, minimum_seq_space


class ConfigurationError(ValueError):
    """Raised when protocol parameters break the window invariants."""


@dataclass(frozen=True)
class SequenceSpace:
    """
    Modular sequence space [0, seq_space) with a fixed window size.

    Attributes:
        window_size: Maximum number of outstanding / bufferable packets
        seq_space: Number of distinct sequence numbers
    """
    window_size: int = WINDOWSIZE
    seq_space: int = SEQSPACE

    def __post_init__(self):
        """Reject spaces too small to tell old and new packets apart."""
        if self.window_size < 1:
            raise ConfigurationError(
                f"window size must be positive, got {self.window_size}"
            )
        if self.seq_space < minimum_seq_space(self.window_size):
            raise ConfigurationError(
                f"sequence space {self.seq_space} is too small for window "
                f"size {self.window_size} (need at least "
                f"{minimum_seq_space(self.window_size)})"
            )

    def advance(self, seq_num: int) -> int:
        """Next sequence number, wrapping to 0."""
        return (seq_num + 1) % self.seq_space

    def previous(self, seq_num: int) -> int:
        """Preceding sequence number, wrapping to seq_space - 1."""
        return (seq_num - 1) % self.seq_space

    def in_window(self, base: int, seq_num: int, *, size: int = None) -> bool:
        """
        Check if seq_num lies in the circular interval [base, base + size).

        Args:
            base: First sequence number of the window
            seq_num: Sequence number to test
            size: Window length (defaults to window_size)

        Returns:
            True if seq_num is inside the window
        """
        if size is None:
            size = self.window_size
        end = base + size
        if end <= self.seq_space:
            # no wraparound
            return base <= seq_num < end
        # wraparound
        return seq_num >= base or seq_num < end % self.seq_space

    def window(self, base: int, size: int = None) -> list:
        """List the sequence numbers of the window starting at base."""
        if size is None:
            size = self.window_size
        return [(base + i) % self.seq_space for i in range(size)]
