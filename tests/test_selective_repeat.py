"""
Unit tests for the Selective Repeat protocol engines.
"""

import pytest
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import (
    RTT, TIMEOUT_TICKS, WINDOWSIZE, SEQSPACE,
    calculate_timeout_ticks, minimum_seq_space
)
from selective_repeat.arq import (
    SequenceSpace, ConfigurationError, ProtocolConfig, Entity,
    compute_checksum, Packet, ProtocolTimer, TimerState, TimerStateError,
    SRSender, SRReceiver, ReackPolicy
)
from selective_repeat.utils.logger import SimulationLogger, LogLevel


class NetworkRecorder:
    """Records every call an engine makes into its network layer."""

    def __init__(self):
        self.sent = []
        self.timer_calls = []
        self.delivered = []

    def transmit(self, entity, packet):
        self.sent.append((entity, packet))

    def start_timer(self, entity, duration):
        self.timer_calls.append(('start', entity, duration))

    def stop_timer(self, entity):
        self.timer_calls.append(('stop', entity))

    def deliver(self, entity, payload):
        self.delivered.append(payload)


def message(letter='a'):
    return letter.encode() * 20


@pytest.fixture
def quiet_logger():
    return SimulationLogger(level=LogLevel.CRITICAL)


@pytest.fixture
def net():
    return NetworkRecorder()


@pytest.fixture
def sender(net, quiet_logger):
    return SRSender(
        transmit=net.transmit,
        start_timer=net.start_timer,
        stop_timer=net.stop_timer,
        logger=quiet_logger
    )


@pytest.fixture
def receiver(net, quiet_logger):
    return SRReceiver(transmit=net.transmit, deliver=net.deliver, logger=quiet_logger)


class TestSequenceSpace:
    """Tests for modular sequence arithmetic."""

    def test_in_window_every_base(self):
        """Window membership matches the modular distance for every base."""
        space = SequenceSpace(window_size=6, seq_space=13)
        for base in range(13):
            for seq in range(13):
                expected = (seq - base) % 13 < 6
                assert space.in_window(base, seq) == expected, (base, seq)

    def test_in_window_wraparound(self):
        """A window starting at 10 covers 10, 11, 12, 0, 1, 2."""
        space = SequenceSpace(window_size=6, seq_space=13)
        assert space.window(10) == [10, 11, 12, 0, 1, 2]
        assert space.in_window(10, 0)
        assert space.in_window(10, 2)
        assert not space.in_window(10, 3)
        assert not space.in_window(10, 9)

    def test_in_window_explicit_size(self):
        """A zero-length window contains nothing."""
        space = SequenceSpace(window_size=6, seq_space=13)
        for seq in range(13):
            assert not space.in_window(4, seq, size=0)
        assert space.in_window(12, 0, size=2)
        assert not space.in_window(12, 1, size=2)

    def test_window_size_is_keyword_only(self):
        """The window length cannot be passed in the position of seq_num."""
        space = SequenceSpace(window_size=6, seq_space=13)
        with pytest.raises(TypeError):
            space.in_window(0, 6, 3)
        assert not space.in_window(0, 3, size=3)

    def test_advance_and_previous_wrap(self):
        """Sequence numbers wrap at both ends."""
        space = SequenceSpace(window_size=6, seq_space=13)
        assert space.advance(12) == 0
        assert space.advance(5) == 6
        assert space.previous(0) == 12
        assert space.previous(5) == 4

    def test_space_too_small(self):
        """A space that cannot tell windows apart is rejected."""
        with pytest.raises(ConfigurationError):
            SequenceSpace(window_size=6, seq_space=6)
        with pytest.raises(ConfigurationError):
            SequenceSpace(window_size=0, seq_space=13)
        SequenceSpace(window_size=6, seq_space=7)

    def test_default_constants(self):
        """The configured timeout and space follow from RTT and window size."""
        assert calculate_timeout_ticks(RTT) == TIMEOUT_TICKS == 24
        assert minimum_seq_space(WINDOWSIZE) == 7
        assert SEQSPACE >= minimum_seq_space(WINDOWSIZE)
        config = ProtocolConfig()
        assert (config.window_size, config.seq_space) == (6, 13)

    def test_protocol_config_validation(self):
        """Bad protocol parameters fail fast."""
        with pytest.raises(ConfigurationError):
            ProtocolConfig(timeout=0)
        with pytest.raises(ConfigurationError):
            ProtocolConfig(payload_size=0)
        with pytest.raises(ValueError):
            ProtocolConfig(window_size=8, seq_space=8)


class TestPacket:
    """Tests for packets and the checksum."""

    def test_checksum_value(self):
        """Checksum is seqnum + acknum + payload byte sum."""
        payload = message('a')
        assert compute_checksum(3, 5, payload) == 3 + 5 + 97 * 20
        assert compute_checksum(3, None, payload) == 3 - 1 + 97 * 20

    def test_data_packet(self):
        """Data packets carry no acknowledgment and are valid."""
        packet = Packet.make_data(4, message('e'))
        assert not packet.is_ack
        assert packet.acknum is None
        assert not packet.is_corrupted

    def test_ack_packet(self):
        """ACK packets carry the acknowledged number and are valid."""
        ack = Packet.make_ack(7)
        assert ack.is_ack
        assert ack.acknum == 7
        assert len(ack.payload) == 20
        assert not ack.is_corrupted

    def test_payload_corruption_detected(self):
        """Overwriting the first payload byte breaks the checksum."""
        packet = Packet.make_data(1, message('b'))
        damaged = Packet(packet.seqnum, packet.acknum, packet.checksum,
                         b'Z' + packet.payload[1:])
        assert damaged.is_corrupted

    def test_seqnum_corruption_detected(self):
        """Overwriting the seqnum breaks the checksum."""
        packet = Packet.make_data(1, message('b'))
        damaged = Packet(999999, packet.acknum, packet.checksum, packet.payload)
        assert damaged.is_corrupted

    def test_acknum_corruption_detected(self):
        """Overwriting the acknum breaks the checksum on data and ACKs."""
        data = Packet.make_data(1, message('b'))
        assert Packet(data.seqnum, 999999, data.checksum, data.payload).is_corrupted
        ack = Packet.make_ack(2)
        assert Packet(ack.seqnum, 999999, ack.checksum, ack.payload).is_corrupted

    def test_serialization_deserialization(self):
        """Packets survive the wire format."""
        original = Packet.make_data(9, message('j'))
        data = original.serialize()
        assert len(data) == original.total_size == 32

        restored, valid = Packet.deserialize(data)
        assert valid
        assert restored == original

        ack, valid = Packet.deserialize(Packet.make_ack(3).serialize())
        assert valid
        assert ack.acknum == 3

    def test_deserialize_detects_corruption(self):
        """A flipped payload byte is reported as invalid."""
        data = bytearray(Packet.make_data(2, message('c')).serialize())
        data[-1] ^= 0x01
        packet, valid = Packet.deserialize(bytes(data))
        assert packet is not None
        assert not valid

    def test_deserialize_wrong_length(self):
        """Truncated input is rejected."""
        packet, valid = Packet.deserialize(b'\x00' * 10)
        assert packet is None
        assert not valid

    def test_invalid_packet(self):
        """Negative sequence numbers are rejected."""
        with pytest.raises(ValueError):
            Packet(-1, None, 0, message())

    def test_wrong_payload_length(self):
        """Payloads must be exactly one payload size long."""
        with pytest.raises(ValueError):
            Packet(0, None, 0, b'abc')
        with pytest.raises(ValueError):
            Packet.make_data(0, b'a' * 21)
        with pytest.raises(ValueError):
            Packet.make_data(0, b'a' * 20, payload_size=8)

    def test_custom_payload_size(self):
        """A configured payload size carries through factories and the wire."""
        packet = Packet.make_data(2, b'abcdefgh', payload_size=8)
        assert packet.total_size == 20
        restored, valid = Packet.deserialize(packet.serialize(), payload_size=8)
        assert valid
        assert restored == packet
        assert len(Packet.make_ack(1, payload_size=8).payload) == 8


class TestProtocolTimer:
    """Tests for the per-entity timer state machine."""

    def test_start_and_stop(self, net):
        """Start and stop each reach the network layer once."""
        timer = ProtocolTimer(Entity.A, net.start_timer, net.stop_timer)
        assert timer.state == TimerState.IDLE

        timer.start(24.0, current_time=10.0)
        assert timer.is_running
        assert timer.deadline == 34.0

        timer.stop()
        assert timer.state == TimerState.IDLE
        assert timer.deadline is None
        assert net.timer_calls == [('start', Entity.A, 24.0), ('stop', Entity.A)]

    def test_double_start_raises(self, net):
        """Starting an armed timer is an error."""
        timer = ProtocolTimer(Entity.A, net.start_timer, net.stop_timer)
        timer.start(24.0)
        with pytest.raises(TimerStateError):
            timer.start(24.0)

    def test_stop_idle_is_noop(self, net):
        """Stopping an idle timer does not reach the network layer."""
        timer = ProtocolTimer(Entity.A, net.start_timer, net.stop_timer)
        timer.stop()
        timer.stop()
        assert net.timer_calls == []
        assert timer.stops == 0

    def test_expired_returns_to_idle(self, net):
        """Expiry goes idle without a stop call."""
        timer = ProtocolTimer(Entity.A, net.start_timer, net.stop_timer)
        timer.start(24.0)
        timer.expired()
        assert not timer.is_running
        assert net.timer_calls == [('start', Entity.A, 24.0)]
        timer.start(24.0)
        assert timer.get_statistics()['timer_starts'] == 2

    def test_restart(self, net):
        """Restart stops then starts."""
        timer = ProtocolTimer(Entity.A, net.start_timer, net.stop_timer)
        timer.start(24.0)
        timer.restart(24.0, current_time=5.0)
        assert timer.deadline == 29.0
        assert [call[0] for call in net.timer_calls] == ['start', 'stop', 'start']


class TestSRSender:
    """Tests for the sender engine."""

    def fill_window(self, sender):
        for i in range(6):
            sender.submit(message(chr(ord('a') + i)))

    def test_submit_assigns_sequence_numbers(self, sender, net):
        """Messages get consecutive sequence numbers and start the timer once."""
        self.fill_window(sender)
        assert [p.seqnum for _, p in net.sent] == [0, 1, 2, 3, 4, 5]
        assert all(entity == Entity.A for entity, _ in net.sent)
        assert sender.window.count == 6
        assert sender.window.next_seq == 6
        assert net.timer_calls == [('start', Entity.A, 24)]

    def test_window_full_rejects(self, sender, net):
        """A seventh message is refused while six are outstanding."""
        self.fill_window(sender)
        assert sender.is_window_full
        assert sender.submit(message('g')) is None
        assert sender.window_full == 1
        assert len(net.sent) == 6
        assert sender.window.count == 6

    def test_wrong_message_length(self, sender):
        """Messages must be exactly one payload long."""
        with pytest.raises(ValueError):
            sender.submit(b'short')

    def test_in_order_acks_slide_window(self, sender, net):
        """Acknowledging 0 and 1 slides the base to 2."""
        self.fill_window(sender)
        assert sender.on_packet(Packet.make_ack(0))
        assert sender.on_packet(Packet.make_ack(1))
        assert sender.window.base == 2
        assert sender.window.count == 4
        assert sender.outstanding() == [2, 3, 4, 5]
        assert sender.timer.is_running

    def test_selective_ack_blocks_until_gap_filled(self, sender):
        """An ack for 3 before 2 waits for 2, then the base jumps to 4."""
        self.fill_window(sender)
        sender.on_packet(Packet.make_ack(0))
        sender.on_packet(Packet.make_ack(1))

        sender.on_packet(Packet.make_ack(3))
        assert sender.window.acked[3]
        assert sender.window.base == 2
        assert sender.window.count == 4

        sender.on_packet(Packet.make_ack(2))
        assert sender.window.base == 4
        assert sender.window.count == 2

    def test_duplicate_ack_is_idempotent(self, sender):
        """A repeated ack changes nothing but a counter."""
        self.fill_window(sender)
        sender.on_packet(Packet.make_ack(3))
        state = sender.get_window_state()

        assert not sender.on_packet(Packet.make_ack(3))
        assert sender.duplicate_acks == 1
        assert sender.get_window_state() == state

    def test_stale_ack_ignored(self, sender):
        """An ack for a number not outstanding is ignored."""
        self.fill_window(sender)
        sender.on_packet(Packet.make_ack(0))
        state = sender.get_window_state()

        assert not sender.on_packet(Packet.make_ack(0))
        assert not sender.on_packet(Packet.make_ack(12))
        assert sender.stale_acks == 2
        assert not sender.window.acked[12]
        assert sender.get_window_state() == state

    def test_corrupted_ack_ignored(self, sender):
        """A corrupted ack is counted and dropped."""
        self.fill_window(sender)
        ack = Packet.make_ack(0)
        damaged = Packet(ack.seqnum, ack.acknum, ack.checksum, b'Z' + ack.payload[1:])

        assert not sender.on_packet(damaged)
        assert sender.corrupted_acks == 1
        assert sender.window.base == 0
        assert not sender.window.acked[0]

    def test_last_ack_stops_timer(self, sender, net):
        """The timer stops once nothing is outstanding."""
        sender.submit(message('a'))
        sender.on_packet(Packet.make_ack(0))
        assert sender.is_idle()
        assert not sender.timer.is_running
        assert net.timer_calls[-1] == ('stop', Entity.A)

    def test_timeout_resends_all_unacked(self, sender, net):
        """On expiry every unacknowledged packet is resent and the timer restarts."""
        self.fill_window(sender)
        sender.on_packet(Packet.make_ack(2))
        sender.on_packet(Packet.make_ack(4))
        net.sent.clear()
        net.timer_calls.clear()

        resent = sender.on_timer_fired()

        assert [p.seqnum for p in resent] == [0, 1, 3, 5]
        assert [p.seqnum for _, p in net.sent] == [0, 1, 3, 5]
        assert sender.retransmissions == 4
        assert sender.timeouts == 1
        assert net.timer_calls == [('start', Entity.A, 24)]
        assert sender.timer.is_running

    def test_timeout_refreshes_deadlines(self, sender):
        """Resent packets get a deadline one timeout after expiry."""
        sender.submit(message('a'))
        assert sender.deadline(0) == 24
        sender.on_timer_fired()
        assert sender.deadline(0) == 48

    def test_timeout_with_nothing_outstanding(self, sender, net):
        """A spurious expiry leaves the timer idle."""
        resent = sender.on_timer_fired()
        assert resent == []
        assert not sender.timer.is_running
        assert net.timer_calls == []

    def test_sequence_wraparound(self, sender, net):
        """Sequence numbers wrap after 12 and acks keep working."""
        for i in range(20):
            packet = sender.submit(message('a'))
            sender.on_packet(Packet.make_ack(packet.seqnum))
        seqnums = [p.seqnum for _, p in net.sent]
        assert seqnums == [i % 13 for i in range(20)]
        assert sender.window.base == 20 % 13
        assert sender.is_idle()

    def test_reset(self, sender):
        """Reset returns to the initial state."""
        self.fill_window(sender)
        sender.reset()
        assert sender.window.base == 0
        assert sender.window.count == 0
        assert sender.packets_sent == 0
        assert not sender.timer.is_running


class TestSRReceiver:
    """Tests for the receiver engine."""

    def test_receive_in_order(self, receiver, net):
        """In-order packets are delivered and acknowledged individually."""
        for seq in range(3):
            ack = receiver.on_packet(Packet.make_data(seq, message(chr(ord('a') + seq))))
            assert ack.acknum == seq
        assert net.delivered == [message('a'), message('b'), message('c')]
        assert receiver.expected == 3
        assert all(entity == Entity.B for entity, _ in net.sent)

    def test_receive_out_of_order(self, receiver, net):
        """Arrivals 2, 0, 1 deliver 0, 1, 2 in order."""
        receiver.on_packet(Packet.make_data(2, message('c')))
        assert net.delivered == []
        assert receiver.window.buffered() == [2]

        receiver.on_packet(Packet.make_data(0, message('a')))
        assert net.delivered == [message('a')]
        assert receiver.expected == 1

        receiver.on_packet(Packet.make_data(1, message('b')))
        assert net.delivered == [message('a'), message('b'), message('c')]
        assert receiver.expected == 3
        assert receiver.window.buffered() == []
        assert [p.acknum for _, p in net.sent] == [2, 0, 1]

    def test_corrupted_packet_acks_previous(self, receiver, net):
        """A corrupted packet at expected=5 draws ack 4 and nothing else."""
        for seq in range(5):
            receiver.on_packet(Packet.make_data(seq, message()))
        delivered = len(net.delivered)

        packet = Packet.make_data(5, message('f'))
        damaged = Packet(packet.seqnum, packet.acknum, packet.checksum,
                         b'Z' + packet.payload[1:])
        ack = receiver.on_packet(damaged)

        assert ack.acknum == 4
        assert receiver.expected == 5
        assert len(net.delivered) == delivered
        assert receiver.window.buffered() == []
        assert receiver.corrupted_packets == 1

    def test_corrupted_packet_at_start_acks_last_slot(self, receiver):
        """Before any delivery the previous number wraps to 12."""
        packet = Packet.make_data(0, message())
        damaged = Packet(999999, packet.acknum, packet.checksum, packet.payload)
        ack = receiver.on_packet(damaged)
        assert ack.acknum == 12

    def test_duplicate_in_window(self, receiver, net):
        """A buffered packet arriving again is acked but stored once."""
        receiver.on_packet(Packet.make_data(3, message('d')))
        ack = receiver.on_packet(Packet.make_data(3, message('d')))
        assert ack.acknum == 3
        assert receiver.duplicate_packets == 1
        assert receiver.window.buffered() == [3]
        assert net.delivered == []

    def test_out_of_window_last_delivered(self, receiver, net):
        """An old packet is re-acked with expected - 1 by default."""
        for seq in range(4):
            receiver.on_packet(Packet.make_data(seq, message()))
        ack = receiver.on_packet(Packet.make_data(1, message()))
        assert ack.acknum == 3
        assert receiver.out_of_window_packets == 1
        assert len(net.delivered) == 4

    def test_out_of_window_selective(self, net, quiet_logger):
        """The selective policy re-acks an old packet's own number."""
        receiver = SRReceiver(
            transmit=net.transmit, deliver=net.deliver,
            reack_policy=ReackPolicy.SELECTIVE, logger=quiet_logger
        )
        for seq in range(4):
            receiver.on_packet(Packet.make_data(seq, message()))
        ack = receiver.on_packet(Packet.make_data(1, message()))
        assert ack.acknum == 1

    def test_selective_far_packet_falls_back(self, net, quiet_logger):
        """Outside the previous window the selective policy acks expected - 1."""
        receiver = SRReceiver(
            transmit=net.transmit, deliver=net.deliver,
            reack_policy=ReackPolicy.SELECTIVE, logger=quiet_logger
        )
        # expected=0: window 0..5, previous window 7..12, 6 is in neither
        ack = receiver.on_packet(Packet.make_data(6, message()))
        assert ack.acknum == 12
        ack = receiver.on_packet(Packet.make_data(10, message()))
        assert ack.acknum == 10

    def test_ack_packets_ignored(self, receiver, net):
        """Uncorrupted ACKs reaching B produce no response."""
        assert receiver.on_packet(Packet.make_ack(0)) is None
        assert net.sent == []

    def test_reset(self, receiver):
        """Reset returns to the initial state."""
        receiver.on_packet(Packet.make_data(0, message()))
        receiver.reset()
        assert receiver.expected == 0
        assert receiver.packets_delivered == 0
