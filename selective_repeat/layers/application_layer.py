"""
Application Layer Implementation

This module implements the two application endpoints of the emulation:
the message source feeding the sender and the verifier checking what the
receiver delivers.
"""

from typing import List, Tuple, Optional

from config import PAYLOAD_SIZE


class MessageSource:
    """
    Generates fixed-length application messages.

    Message i is PAYLOAD_SIZE copies of the letter 'a' + (i mod 26).

    Attributes:
        payload_size: Length of each message
        generated: Number of messages produced so far
    """

    def __init__(self, payload_size: int = PAYLOAD_SIZE):
        """
        Initialize message source.

        Args:
            payload_size: Length of each message in bytes
        """
        self.payload_size = payload_size
        self.generated = 0

    @staticmethod
    def make_message(index: int, payload_size: int = PAYLOAD_SIZE) -> bytes:
        """Build message number index."""
        return bytes([ord('a') + index % 26]) * payload_size

    def next_message(self) -> bytes:
        """Produce the next message."""
        message = self.make_message(self.generated, self.payload_size)
        self.generated += 1
        return message

    def reset(self):
        """Restart numbering from the first message."""
        self.generated = 0


class DeliveryVerifier:
    """
    Checks delivered messages against the messages the sender accepted.

    Delivery is correct when the delivered sequence is a prefix of the
    accepted sequence: in order, without gaps and without duplicates.
    """

    def __init__(self):
        """Initialize verifier."""
        self.accepted: List[bytes] = []
        self.delivered: List[bytes] = []

    def record_accepted(self, message: bytes):
        """Record a message the sender took into its window."""
        self.accepted.append(message)

    def record_delivered(self, payload: bytes):
        """Record a payload handed to the receiving application."""
        self.delivered.append(payload)

    @property
    def pending(self) -> int:
        """Accepted messages not delivered yet."""
        return len(self.accepted) - len(self.delivered)

    def first_mismatch(self) -> Optional[int]:
        """Index of the first delivered payload that breaks the order."""
        for index, payload in enumerate(self.delivered):
            if index >= len(self.accepted) or payload != self.accepted[index]:
                return index
        return None

    def verify(self) -> Tuple[bool, dict]:
        """
        Verify delivered data.

        Returns:
            Tuple of (valid, details)
        """
        mismatch = self.first_mismatch()
        details = {
            'accepted': len(self.accepted),
            'delivered': len(self.delivered),
            'pending': self.pending,
            'first_mismatch': mismatch
        }
        if mismatch is not None:
            details['expected_payload'] = (self.accepted[mismatch]
                                           if mismatch < len(self.accepted) else None)
            details['delivered_payload'] = self.delivered[mismatch]
        return mismatch is None, details

    def reset(self):
        """Clear recorded messages."""
        self.accepted.clear()
        self.delivered.clear()
