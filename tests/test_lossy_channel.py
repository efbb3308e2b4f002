"""
Unit tests for the lossy channel model.
"""

import pytest
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from selective_repeat.arq import Packet
from selective_repeat.channel import LossyChannel


def data_packet(seq=0):
    return Packet.make_data(seq, b'a' * 20)


class TestLossyChannel:
    """Tests for the lossy, order-preserving channel."""

    def test_initialization(self):
        """Test channel initialization."""
        channel = LossyChannel(loss_prob=0.1, corrupt_prob=0.2, seed=42)

        assert channel.loss_prob == 0.1
        assert channel.corrupt_prob == 0.2
        assert channel.last_arrival == 0.0

    def test_invalid_probability(self):
        """Probabilities outside [0, 1] are rejected."""
        with pytest.raises(ValueError):
            LossyChannel(loss_prob=1.5)
        with pytest.raises(ValueError):
            LossyChannel(corrupt_prob=-0.1)

    def test_perfect_channel(self):
        """Without impairments every packet arrives intact."""
        channel = LossyChannel(seed=1)
        for seq in range(50):
            packet, arrival, corrupted = channel.transmit(data_packet(seq % 13), 0.0)
            assert packet is not None
            assert not corrupted
            assert not packet.is_corrupted
        assert channel.get_statistics()['packets_lost'] == 0

    def test_arrivals_preserve_order(self):
        """Arrival times never decrease and respect the transit bounds."""
        channel = LossyChannel(seed=7)
        now = 0.0
        previous = 0.0
        for seq in range(100):
            now += 0.5
            _, arrival, _ = channel.transmit(data_packet(seq % 13), now)
            assert arrival >= previous
            assert arrival >= now + 1.0
            assert arrival <= max(now, previous) + 10.0
            previous = arrival

    def test_total_loss(self):
        """With loss probability one nothing arrives."""
        channel = LossyChannel(loss_prob=1.0, seed=3)
        for _ in range(20):
            packet, arrival, corrupted = channel.transmit(data_packet(), 0.0)
            assert packet is None
            assert arrival is None
            assert not corrupted
        assert channel.packets_lost == 20
        assert channel.get_statistics()['observed_loss_rate'] == 1.0

    def test_corruption_always_detected(self):
        """Every corruption mode breaks the checksum."""
        channel = LossyChannel(corrupt_prob=1.0, seed=5)
        for seq in range(200):
            packet, _, corrupted = channel.transmit(data_packet(seq % 13), 0.0)
            assert corrupted
            assert packet.is_corrupted
        for ack_num in range(13):
            ack, _, _ = channel.transmit(Packet.make_ack(ack_num), 0.0)
            assert ack.is_corrupted

    def test_corruption_modes(self):
        """Corruption rewrites the payload, the seqnum or the acknum."""
        channel = LossyChannel(seed=11)
        original = data_packet(4)
        payload_hits = seq_hits = ack_hits = 0
        for _ in range(400):
            damaged = channel.corrupt(original)
            assert damaged.checksum == original.checksum
            if damaged.payload[0] == ord('Z'):
                payload_hits += 1
            elif damaged.seqnum == 999999:
                seq_hits += 1
            elif damaged.acknum == 999999:
                ack_hits += 1
        assert payload_hits + seq_hits + ack_hits == 400
        assert payload_hits > seq_hits
        assert payload_hits > ack_hits
        assert seq_hits > 0 and ack_hits > 0
        # the original packet is untouched
        assert not original.is_corrupted

    def test_loss_rate(self):
        """Observed loss rate tracks the configured probability."""
        channel = LossyChannel(loss_prob=0.3, seed=42)
        for _ in range(5000):
            channel.transmit(data_packet(), 0.0)
        rate = channel.get_statistics()['observed_loss_rate']
        assert 0.25 < rate < 0.35

    def test_reproducibility(self):
        """Same seed gives the same outcomes."""
        results = []
        for _ in range(2):
            channel = LossyChannel(loss_prob=0.2, corrupt_prob=0.2, seed=99)
            run = []
            for seq in range(100):
                packet, arrival, corrupted = channel.transmit(data_packet(seq % 13), seq)
                run.append((packet, arrival, corrupted))
            results.append(run)
        assert results[0] == results[1]

    def test_reset(self):
        """Reset clears statistics and the order cursor."""
        channel = LossyChannel(loss_prob=0.5, seed=8)
        for _ in range(10):
            channel.transmit(data_packet(), 5.0)
        channel.reset(seed=8)
        assert channel.packets_sent == 0
        assert channel.packets_lost == 0
        assert channel.last_arrival == 0.0
