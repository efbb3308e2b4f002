"""
Lossy, Order-Preserving Channel Model

This module models one direction of the emulated network layer. Packets
may be lost or corrupted, and take a random transit time, but packets that
do arrive arrive in the order they were sent.
"""

import dataclasses
from typing import Optional, Tuple

import numpy as np

from config import (
    LOSS_PROB, CORRUPT_PROB, MIN_TRANSIT, MAX_EXTRA_TRANSIT,
    CORRUPT_FIELD_VALUE, CORRUPT_PAYLOAD_BYTE
)
from ..arq.packet import Packet


class LossyChannel:
    """
    One-way channel with independent loss and corruption.

    Corruption rewrites part of the packet while keeping its checksum, the
    way the classic layer-3 emulator does: the first payload byte becomes
    'Z' (75%), or the seqnum (12.5%) or the acknum (12.5%) becomes 999999.

    Attributes:
        loss_prob: Probability a packet is dropped
        corrupt_prob: Probability a surviving packet is corrupted
        min_transit: Minimum one-way transit time
        max_extra_transit: Upper bound of the uniform extra transit time
        rng: Random number generator
    """

    def __init__(
        self,
        loss_prob: float = LOSS_PROB,
        corrupt_prob: float = CORRUPT_PROB,
        min_transit: float = MIN_TRANSIT,
        max_extra_transit: float = MAX_EXTRA_TRANSIT,
        seed: Optional[int] = None
    ):
        """
        Initialize the channel.

        Args:
            loss_prob: Probability of dropping a packet
            corrupt_prob: Probability of corrupting a packet
            min_transit: Minimum transit time
            max_extra_transit: Maximum additional random transit time
            seed: Random seed for reproducibility
        """
        for name, value in (('loss_prob', loss_prob), ('corrupt_prob', corrupt_prob)):
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be in [0, 1], got {value}")

        self.loss_prob = loss_prob
        self.corrupt_prob = corrupt_prob
        self.min_transit = min_transit
        self.max_extra_transit = max_extra_transit

        self.rng = np.random.default_rng(seed)

        # Arrival time of the last packet scheduled on this channel
        self.last_arrival = 0.0

        # Statistics
        self.packets_sent = 0
        self.packets_lost = 0
        self.packets_corrupted = 0

    def transmit(
        self,
        packet: Packet,
        current_time: float
    ) -> Tuple[Optional[Packet], Optional[float], bool]:
        """
        Send a packet through the channel.

        Args:
            packet: Packet handed down by the sending entity
            current_time: Current simulation time

        Returns:
            Tuple of (packet as it will arrive or None if lost,
            arrival time or None if lost, corrupted flag)
        """
        self.packets_sent += 1

        if self.rng.random() < self.loss_prob:
            self.packets_lost += 1
            return None, None, False

        arrival = (max(current_time, self.last_arrival) + self.min_transit +
                   self.max_extra_transit * self.rng.random())
        self.last_arrival = arrival

        corrupted = False
        if self.rng.random() < self.corrupt_prob:
            packet = self.corrupt(packet)
            corrupted = True
            self.packets_corrupted += 1

        return packet, arrival, corrupted

    def corrupt(self, packet: Packet) -> Packet:
        """
        Return a damaged copy of a packet with the original checksum.

        Args:
            packet: Packet to damage

        Returns:
            Corrupted packet
        """
        x = self.rng.random()
        if x < 0.75:
            payload = bytes([CORRUPT_PAYLOAD_BYTE]) + packet.payload[1:]
            return dataclasses.replace(packet, payload=payload)
        if x < 0.875:
            return dataclasses.replace(packet, seqnum=CORRUPT_FIELD_VALUE)
        return dataclasses.replace(packet, acknum=CORRUPT_FIELD_VALUE)

    def get_statistics(self) -> dict:
        """
        Get channel statistics.

        Returns:
            Dictionary with transmission statistics
        """
        return {
            'packets_sent': self.packets_sent,
            'packets_lost': self.packets_lost,
            'packets_corrupted': self.packets_corrupted,
            'observed_loss_rate': (self.packets_lost / self.packets_sent
                                   if self.packets_sent > 0 else 0),
            'observed_corruption_rate': (self.packets_corrupted / self.packets_sent
                                         if self.packets_sent > 0 else 0)
        }

    def reset_statistics(self):
        """Reset all statistics counters."""
        self.packets_sent = 0
        self.packets_lost = 0
        self.packets_corrupted = 0

    def reset(self, seed: Optional[int] = None):
        """
        Reset the channel to its initial state.

        Args:
            seed: New random seed (optional)
        """
        if seed is not None:
            self.rng = np.random.default_rng(seed)
        self.last_arrival = 0.0
        self.reset_statistics()
