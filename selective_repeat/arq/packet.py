"""
Packet Structure for the Selective Repeat Protocol

This module defines the packet exchanged between the two entities,
including the checksum field and wire serialization.
"""

import struct
from dataclasses import dataclass, field
from typing import Optional, Tuple

from config import PAYLOAD_SIZE, NOT_IN_USE, ACK_SEQNUM, ACK_FILL
from . import checksum as integrity


@dataclass(frozen=True)
class Packet:
    """
    Transport packet, immutable once built.

    Wire Layout (12 + payload bytes):
        - Sequence Number: 4 bytes (signed int)
        - ACK Number: 4 bytes (signed int, NOT_IN_USE on data packets)
        - Checksum: 4 bytes (signed int)
        - Payload: fixed length

    Attributes:
        seqnum: Sequence number (placeholder on acknowledgments)
        acknum: Acknowledged sequence number, None on data packets
        checksum: Additive checksum over the other fields
        payload: Payload bytes
        payload_size: Required payload length
    """

    seqnum: int
    acknum: Optional[int]
    checksum: int
    payload: bytes
    payload_size: int = field(default=PAYLOAD_SIZE, compare=False, repr=False)

    HEADER_FORMAT = '!iii'
    HEADER_SIZE = 12

    def __post_init__(self):
        """Validate packet after initialization."""
        if self.seqnum < 0:
            raise ValueError("Sequence number must be non-negative")
        if self.acknum is not None and self.acknum < 0:
            raise ValueError("ACK number must be non-negative")
        if not isinstance(self.payload, bytes):
            raise ValueError("Payload must be bytes")
        if len(self.payload) != self.payload_size:
            raise ValueError(
                f"Payload must be {self.payload_size} bytes, got {len(self.payload)}"
            )

    @property
    def is_ack(self) -> bool:
        """Check if this packet carries an acknowledgment."""
        return self.acknum is not None

    @property
    def is_corrupted(self) -> bool:
        """Check if the stored checksum no longer matches the contents."""
        return integrity.is_corrupted(self)

    @property
    def total_size(self) -> int:
        """Get total packet size (header + payload)."""
        return self.HEADER_SIZE + len(self.payload)

    def serialize(self) -> bytes:
        """
        Serialize the packet to bytes.

        Returns:
            Serialized packet as bytes
        """
        acknum = NOT_IN_USE if self.acknum is None else self.acknum
        header = struct.pack(self.HEADER_FORMAT, self.seqnum, acknum, self.checksum)
        return header + self.payload

    @classmethod
    def deserialize(
        cls,
        data: bytes,
        payload_size: int = PAYLOAD_SIZE
    ) -> Tuple[Optional['Packet'], bool]:
        """
        Deserialize bytes to a Packet object.

        Args:
            data: Serialized packet bytes
            payload_size: Expected payload length

        Returns:
            Tuple of (Packet or None, checksum valid)
        """
        if len(data) != cls.HEADER_SIZE + payload_size:
            return None, False

        seqnum, acknum, checksum = struct.unpack(
            cls.HEADER_FORMAT, data[:cls.HEADER_SIZE]
        )
        if seqnum < 0 or (acknum < 0 and acknum != NOT_IN_USE):
            return None, False

        packet = cls(
            seqnum=seqnum,
            acknum=None if acknum == NOT_IN_USE else acknum,
            checksum=checksum,
            payload=data[cls.HEADER_SIZE:],
            payload_size=payload_size
        )
        return packet, not packet.is_corrupted

    @classmethod
    def make_data(
        cls,
        seqnum: int,
        payload: bytes,
        payload_size: int = PAYLOAD_SIZE
    ) -> 'Packet':
        """
        Create a data packet with a valid checksum.

        Args:
            seqnum: Sequence number
            payload: Message bytes
            payload_size: Expected payload length

        Returns:
            Data packet
        """
        return cls(
            seqnum=seqnum,
            acknum=None,
            checksum=integrity.compute_checksum(seqnum, None, payload),
            payload=payload,
            payload_size=payload_size
        )

    @classmethod
    def make_ack(cls, acknum: int, payload_size: int = PAYLOAD_SIZE) -> 'Packet':
        """
        Create an acknowledgment packet.

        Only acknum and checksum are meaningful; seqnum and payload are
        fixed placeholders.

        Args:
            acknum: Sequence number being acknowledged
            payload_size: Payload length to fill

        Returns:
            ACK packet
        """
        payload = ACK_FILL * payload_size
        return cls(
            seqnum=ACK_SEQNUM,
            acknum=acknum,
            checksum=integrity.compute_checksum(ACK_SEQNUM, acknum, payload),
            payload=payload,
            payload_size=payload_size
        )

    def __repr__(self) -> str:
        kind = "ACK" if self.is_ack else "DATA"
        return (f"Packet(type={kind}, seq={self.seqnum}, ack={self.acknum}, "
                f"checksum={self.checksum}, payload={self.payload!r})")
