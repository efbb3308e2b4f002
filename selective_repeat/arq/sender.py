"""
Selective Repeat Sender

This module implements the sender side of the Selective Repeat protocol,
including sliding window management, per-slot acknowledgment tracking,
and retransmission on the shared timer.
"""

from typing import Optional, List, Callable
from dataclasses import dataclass, field

from .packet import Packet
from .sequence import SequenceSpace
from .settings import ProtocolConfig, Entity
from .timer import ProtocolTimer
from ..utils.logger import SimulationLogger, get_logger


@dataclass
class SendWindow:
    """
    Sliding window for the sender.

    Per-slot arrays are indexed by sequence number and sized to the
    sequence space.

    Attributes:
        seq_space: Number of sequence numbers (array capacity)
        base: Oldest unacknowledged sequence number
        count: Number of packets in flight
        next_seq: Next sequence number to assign
        packets: Buffered packet per slot
        acked: Acknowledged flag per slot
        deadlines: Retransmission deadline per slot
    """
    seq_space: int
    base: int = 0
    count: int = 0
    next_seq: int = 0
    packets: List[Optional[Packet]] = field(default_factory=list)
    acked: List[bool] = field(default_factory=list)
    deadlines: List[Optional[float]] = field(default_factory=list)

    def __post_init__(self):
        self.packets = [None] * self.seq_space
        self.acked = [False] * self.seq_space
        self.deadlines = [None] * self.seq_space

    def clear_slot(self, seq_num: int):
        """Release a slot once the window slides past it."""
        self.packets[seq_num] = None
        self.acked[seq_num] = False
        self.deadlines[seq_num] = None


class SRSender:
    """
    Selective Repeat Sender (entity A).

    Implements the sender side of SR with:
    - Fixed window of at most window_size unacknowledged packets
    - Independent (selective) acknowledgment of each packet
    - Window sliding over the contiguous acknowledged prefix
    - One shared timer; every unacknowledged packet is resent on expiry

    Attributes:
        config: Protocol parameters
        space: Sequence number space
        window: Send window state
        timer: The entity's retransmission timer
    """

    def __init__(
        self,
        transmit: Callable[[int, Packet], None],
        start_timer: Optional[Callable[[int, float], None]] = None,
        stop_timer: Optional[Callable[[int], None]] = None,
        config: Optional[ProtocolConfig] = None,
        entity: int = Entity.A,
        clock: Optional[Callable[[], float]] = None,
        logger: Optional[SimulationLogger] = None
    ):
        """
        Initialize SR sender.

        Args:
            transmit: Network layer call taking (entity, packet)
            start_timer: Network layer call taking (entity, duration)
            stop_timer: Network layer call taking (entity)
            config: Protocol parameters (defaults from config.py)
            entity: Entity identifier of this sender
            clock: Current time source used for per-slot deadlines
            logger: Logger for protocol events
        """
        self.config = config or ProtocolConfig()
        self.space: SequenceSpace = self.config.sequence_space()
        self.entity = entity
        self.name = Entity(entity).name

        self._transmit = transmit
        self.clock = clock
        self.logger = logger or get_logger()

        self.window = SendWindow(seq_space=self.config.seq_space)
        self.timer = ProtocolTimer(entity, start_timer, stop_timer)

        # Time source when no clock is supplied: each expiry is one timeout
        self.current_tick = 0.0

        # Statistics
        self.window_full = 0
        self.packets_sent = 0
        self.retransmissions = 0
        self.total_acks_received = 0
        self.new_acks = 0
        self.duplicate_acks = 0
        self.stale_acks = 0
        self.corrupted_acks = 0
        self.timeouts = 0

    @property
    def is_window_full(self) -> bool:
        """Check if no further packet may be sent."""
        return self.window.count >= self.config.window_size

    def _now(self) -> float:
        """Current time for deadline bookkeeping."""
        if self.clock is not None:
            return self.clock()
        return self.current_tick

    def submit(self, message: bytes) -> Optional[Packet]:
        """
        Frame and send an application message.

        A message arriving while the window is full is dropped, not queued;
        the caller retries once acknowledgments free space.

        Args:
            message: Message of exactly payload_size bytes

        Returns:
            The transmitted packet, or None if the window was full
        """
        if len(message) != self.config.payload_size:
            raise ValueError(
                f"message must be {self.config.payload_size} bytes, "
                f"got {len(message)}"
            )

        if self.is_window_full:
            self.window_full += 1
            self.logger.window_full(self.name)
            return None

        seq_num = self.window.next_seq
        packet = Packet.make_data(seq_num, bytes(message), self.config.payload_size)

        self.window.packets[seq_num] = packet
        self.window.acked[seq_num] = False
        self.window.deadlines[seq_num] = self._now() + self.config.timeout

        self.logger.packet_sent(self.name, seq_num)
        self._transmit(self.entity, packet)
        self.packets_sent += 1

        self.window.count += 1
        self.window.next_seq = self.space.advance(seq_num)

        if not self.timer.is_running:
            self.timer.start(self.config.timeout, self._now())

        return packet

    def on_packet(self, packet: Packet) -> bool:
        """
        Process a packet arriving from layer 3 (an acknowledgment).

        Args:
            packet: Received packet

        Returns:
            True if the packet acknowledged a new sequence number
        """
        if packet.is_corrupted:
            self.corrupted_acks += 1
            self.logger.corrupted(self.name, "ACK")
            return False

        if not packet.is_ack:
            self.logger.debug(f"{self.name}: ignoring data packet {packet.seqnum}", "RX")
            return False

        self.total_acks_received += 1
        ack_num = packet.acknum

        # Only outstanding slots can be acknowledged
        if (ack_num >= self.config.seq_space or
                not self.space.in_window(self.window.base, ack_num, size=self.window.count)):
            self.stale_acks += 1
            self.logger.duplicate_ack(self.name, ack_num)
            return False

        if self.window.acked[ack_num]:
            self.duplicate_acks += 1
            self.logger.duplicate_ack(self.name, ack_num)
            return False

        self.window.acked[ack_num] = True
        self.new_acks += 1
        self.logger.ack_received(self.name, ack_num)

        self._slide_window()

        if self.window.count > 0:
            self.timer.restart(self.config.timeout, self._now())
        else:
            self.timer.stop()

        return True

    def on_timer_fired(self) -> List[Packet]:
        """
        Handle expiry of the shared timer.

        Every buffered, unacknowledged packet in the window is resent.

        Returns:
            List of retransmitted packets
        """
        self.timer.expired()
        self.timeouts += 1
        if self.clock is None:
            self.current_tick += self.config.timeout

        pending = [
            seq_num for seq_num in self.space.window(self.window.base, self.window.count)
            if not self.window.acked[seq_num]
        ]
        self.logger.timeout(self.name, len(pending))

        resent = []
        for seq_num in pending:
            packet = self.window.packets[seq_num]
            self.logger.retransmit(self.name, seq_num)
            self._transmit(self.entity, packet)
            self.window.deadlines[seq_num] = self._now() + self.config.timeout
            self.retransmissions += 1
            resent.append(packet)

        if resent:
            self.timer.start(self.config.timeout, self._now())
        else:
            self.timer.stop()

        return resent

    def _slide_window(self):
        """Slide the window forward past consecutive acknowledged packets."""
        while self.window.count > 0 and self.window.acked[self.window.base]:
            self.window.clear_slot(self.window.base)
            self.window.base = self.space.advance(self.window.base)
            self.window.count -= 1

        self.logger.window_update(
            self.name, self.window.base, self.window.count, self.config.window_size
        )

    def outstanding(self) -> List[int]:
        """Sequence numbers currently in flight, oldest first."""
        return self.space.window(self.window.base, self.window.count)

    def deadline(self, seq_num: int) -> Optional[float]:
        """Retransmission deadline recorded for a slot."""
        return self.window.deadlines[seq_num]

    def is_idle(self) -> bool:
        """Check if nothing is awaiting acknowledgment."""
        return self.window.count == 0

    def get_window_state(self) -> dict:
        """Get current window state."""
        return {
            'base': self.window.base,
            'next_seq': self.window.next_seq,
            'count': self.window.count,
            'size': self.config.window_size,
            'outstanding': self.outstanding(),
            'acked': [s for s in self.outstanding() if self.window.acked[s]],
            'timer_running': self.timer.is_running
        }

    def get_statistics(self) -> dict:
        """Get sender statistics."""
        return {
            'window_full': self.window_full,
            'packets_sent': self.packets_sent,
            'retransmissions': self.retransmissions,
            'total_acks_received': self.total_acks_received,
            'new_acks': self.new_acks,
            'duplicate_acks': self.duplicate_acks,
            'stale_acks': self.stale_acks,
            'corrupted_acks': self.corrupted_acks,
            'timeouts': self.timeouts,
            **self.timer.get_statistics()
        }

    def reset(self):
        """Reset sender to initial state."""
        self.window = SendWindow(seq_space=self.config.seq_space)
        self.timer.reset()
        self.current_tick = 0.0

        self.window_full = 0
        self.packets_sent = 0
        self.retransmissions = 0
        self.total_acks_received = 0
        self.new_acks = 0
        self.duplicate_acks = 0
        self.stale_acks = 0
        self.corrupted_acks = 0
        self.timeouts = 0
