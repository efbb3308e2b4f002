"""
Packet integrity check.

A plain additive checksum over the header fields and payload bytes. It
catches the corruption the emulated channel introduces (a rewritten header
field or payload byte); it is not meant to resist deliberate tampering.
"""

from typing import Optional

from config import NOT_IN_USE


def compute_checksum(seq_num: int, ack_num: Optional[int], payload: bytes) -> int:
    """
    Compute the checksum of a packet's contents.

    Args:
        seq_num: Sequence number
        ack_num: Acknowledgment number, or None for a data packet
        payload: Payload bytes

    Returns:
        seqnum + acknum + sum of payload bytes
    """
    if ack_num is None:
        ack_num = NOT_IN_USE
    return seq_num + ack_num + sum(payload)


def is_corrupted(packet) -> bool:
    """Check a packet's stored checksum against its contents."""
    return packet.checksum != compute_checksum(
        packet.seqnum, packet.acknum, packet.payload
    )
