"""
Selective Repeat Receiver

This module implements the receiver side of the Selective Repeat protocol,
including the receive window, out-of-order buffering, per-packet
acknowledgment and in-order delivery to the application.
"""

from typing import Optional, List, Callable
from dataclasses import dataclass, field
from enum import Enum

from .packet import Packet
from .sequence import SequenceSpace
from .settings import ProtocolConfig, Entity
from ..utils.logger import SimulationLogger, get_logger


class ReackPolicy(Enum):
    """
    Acknowledgment sent for an uncorrupted packet outside the receive window.

    LAST_DELIVERED re-asserts expected - 1. SELECTIVE acknowledges the
    packet's own sequence number when it belongs to the previous window
    (the sender missed that ACK) and falls back to expected - 1 otherwise.
    """
    LAST_DELIVERED = "last_delivered"
    SELECTIVE = "selective"


@dataclass
class ReceiveWindow:
    """
    Sliding window for the receiver.

    Attributes:
        seq_space: Number of sequence numbers (array capacity)
        expected: Next sequence number to deliver (cumulative cursor)
        received: Received flag per slot
        packets: Buffered packet per slot
    """
    seq_space: int
    expected: int = 0
    received: List[bool] = field(default_factory=list)
    packets: List[Optional[Packet]] = field(default_factory=list)

    def __post_init__(self):
        self.received = [False] * self.seq_space
        self.packets = [None] * self.seq_space

    def buffered(self) -> List[int]:
        """Sequence numbers currently held for later delivery."""
        return [s for s in range(self.seq_space) if self.received[s]]


class SRReceiver:
    """
    Selective Repeat Receiver (entity B).

    Implements the receiver side of SR with:
    - Receive window [expected, expected + window_size)
    - First-arrival buffering of in-window packets
    - One ACK per arriving packet
    - Delivery of the contiguous run starting at expected

    Attributes:
        config: Protocol parameters
        space: Sequence number space
        window: Receive window state
        reack_policy: ACK choice for out-of-window packets
    """

    def __init__(
        self,
        transmit: Callable[[int, Packet], None],
        deliver: Optional[Callable[[int, bytes], None]] = None,
        config: Optional[ProtocolConfig] = None,
        entity: int = Entity.B,
        reack_policy: ReackPolicy = ReackPolicy.LAST_DELIVERED,
        logger: Optional[SimulationLogger] = None
    ):
        """
        Initialize SR receiver.

        Args:
            transmit: Network layer call taking (entity, packet)
            deliver: Application call taking (entity, payload)
            config: Protocol parameters (defaults from config.py)
            entity: Entity identifier of this receiver
            reack_policy: ACK choice for out-of-window packets
            logger: Logger for protocol events
        """
        self.config = config or ProtocolConfig()
        self.space: SequenceSpace = self.config.sequence_space()
        self.entity = entity
        self.name = Entity(entity).name
        self.reack_policy = reack_policy

        self._transmit = transmit
        self._deliver = deliver
        self.logger = logger or get_logger()

        self.window = ReceiveWindow(seq_space=self.config.seq_space)

        # Statistics
        self.packets_received = 0
        self.packets_delivered = 0
        self.duplicate_packets = 0
        self.out_of_window_packets = 0
        self.corrupted_packets = 0
        self.acks_sent = 0

    @property
    def expected(self) -> int:
        """Next sequence number to deliver."""
        return self.window.expected

    def on_packet(self, packet: Packet) -> Optional[Packet]:
        """
        Process a packet arriving from layer 3.

        Args:
            packet: Received packet

        Returns:
            The ACK sent in response, or None if the packet was ignored
        """
        if packet.is_corrupted:
            self.corrupted_packets += 1
            self.logger.corrupted(self.name, "packet")
            return self._send_ack(self.space.previous(self.window.expected))

        if packet.is_ack:
            self.logger.debug(f"{self.name}: ignoring ACK {packet.acknum}", "RX")
            return None

        seq_num = packet.seqnum

        if (seq_num >= self.config.seq_space or
                not self.space.in_window(self.window.expected, seq_num)):
            self.out_of_window_packets += 1
            ack_num = self._reack_number(seq_num)
            self.logger.out_of_window(self.name, seq_num, ack_num)
            return self._send_ack(ack_num)

        self.packets_received += 1

        first_arrival = not self.window.received[seq_num]
        if first_arrival:
            self.window.received[seq_num] = True
            self.window.packets[seq_num] = packet
        else:
            self.duplicate_packets += 1
        self.logger.packet_received(self.name, seq_num, first_arrival)

        ack = self._send_ack(seq_num)
        self._deliver_in_order()
        return ack

    def _reack_number(self, seq_num: int) -> int:
        """Choose the ACK number for an out-of-window packet."""
        last_delivered = self.space.previous(self.window.expected)
        if self.reack_policy == ReackPolicy.SELECTIVE and seq_num < self.config.seq_space:
            previous_base = (self.window.expected - self.config.window_size) % self.config.seq_space
            if self.space.in_window(previous_base, seq_num):
                return seq_num
        return last_delivered

    def _deliver_in_order(self):
        """Deliver buffered packets that are now in order."""
        while self.window.received[self.window.expected]:
            seq_num = self.window.expected
            packet = self.window.packets[seq_num]

            self.logger.delivered(self.name, seq_num)
            if self._deliver:
                self._deliver(self.entity, packet.payload)
            self.packets_delivered += 1

            self.window.received[seq_num] = False
            self.window.packets[seq_num] = None
            self.window.expected = self.space.advance(seq_num)

    def _send_ack(self, ack_num: int) -> Packet:
        """
        Build and transmit an ACK.

        Args:
            ack_num: Sequence number to acknowledge

        Returns:
            ACK packet
        """
        ack = Packet.make_ack(ack_num, self.config.payload_size)
        self._transmit(self.entity, ack)
        self.acks_sent += 1
        self.logger.ack_sent(self.name, ack_num)
        return ack

    def get_window_state(self) -> dict:
        """Get current window state."""
        return {
            'expected': self.window.expected,
            'size': self.config.window_size,
            'window': self.space.window(self.window.expected),
            'buffered': self.window.buffered()
        }

    def get_statistics(self) -> dict:
        """Get receiver statistics."""
        return {
            'packets_received': self.packets_received,
            'packets_delivered': self.packets_delivered,
            'duplicate_packets': self.duplicate_packets,
            'out_of_window_packets': self.out_of_window_packets,
            'corrupted_packets': self.corrupted_packets,
            'acks_sent': self.acks_sent
        }

    def reset(self):
        """Reset receiver to initial state."""
        self.window = ReceiveWindow(seq_space=self.config.seq_space)

        self.packets_received = 0
        self.packets_delivered = 0
        self.duplicate_packets = 0
        self.out_of_window_packets = 0
        self.corrupted_packets = 0
        self.acks_sent = 0
