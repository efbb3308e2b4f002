"""
Metrics Collection and Calculation

This module provides utilities for calculating and tracking
performance metrics of an emulation run: delivered messages,
retransmissions, channel impairments and delivery latency.
"""

from typing import List, Optional, Dict

import numpy as np


class MetricsCollector:
    """
    Collects and calculates performance metrics for the emulation.

    Primary metric: Throughput = Delivered Messages / Total Emulated Time

    Attributes:
        start_time: Emulation start time
        end_time: Emulation end time
    """

    def __init__(self):
        """Initialize metrics collector."""
        # Time tracking
        self.start_time: Optional[float] = None
        self.end_time: Optional[float] = None

        # Application counters
        self.messages_offered = 0
        self.messages_accepted = 0
        self.messages_rejected = 0
        self.messages_delivered = 0

        # Packet counters
        self.data_packets_sent = 0
        self.retransmissions = 0
        self.acks_sent = 0
        self.acks_received = 0

        # Channel impairments
        self.packets_lost = 0
        self.packets_corrupted = 0

        # Delivery latency (submission -> delivery) samples
        self.latency_samples: List[float] = []

        # Outstanding packets seen at each submission
        self.window_occupancy_samples: List[int] = []

    def start(self, time: float):
        """Mark emulation start."""
        self.start_time = time

    def finish(self, time: float):
        """Mark emulation end."""
        self.end_time = time

    def record_message_offered(self, accepted: bool, outstanding: int = 0):
        """
        Record a message handed to the sender.

        Args:
            accepted: Whether the sender accepted it (window not full)
            outstanding: Packets in flight after the submission
        """
        self.messages_offered += 1
        if accepted:
            self.messages_accepted += 1
            self.data_packets_sent += 1
            self.window_occupancy_samples.append(outstanding)
        else:
            self.messages_rejected += 1

    def record_retransmission(self, count: int = 1):
        """Record retransmitted data packets."""
        self.retransmissions += count

    def record_ack_sent(self):
        """Record ACK sent by the receiver."""
        self.acks_sent += 1

    def record_ack_received(self):
        """Record uncorrupted ACK reaching the sender."""
        self.acks_received += 1

    def record_packet_lost(self):
        """Record packet dropped by the channel."""
        self.packets_lost += 1

    def record_packet_corrupted(self):
        """Record packet corrupted by the channel."""
        self.packets_corrupted += 1

    def record_delivery(self, latency: Optional[float] = None):
        """
        Record a message delivered to the receiving application.

        Args:
            latency: Time between acceptance and delivery
        """
        self.messages_delivered += 1
        if latency is not None:
            self.latency_samples.append(latency)

    def calculate_throughput(self) -> float:
        """Delivered messages per emulated time unit."""
        total_time = self._total_time()
        if total_time <= 0:
            return 0.0
        return self.messages_delivered / total_time

    def calculate_efficiency(self) -> float:
        """Fraction of data transmissions that were first transmissions."""
        total = self.data_packets_sent + self.retransmissions
        if total == 0:
            return 0.0
        return self.data_packets_sent / total

    def calculate_rejection_rate(self) -> float:
        """Fraction of offered messages refused because the window was full."""
        if self.messages_offered == 0:
            return 0.0
        return self.messages_rejected / self.messages_offered

    def get_latency_statistics(self) -> Dict[str, float]:
        """
        Get delivery latency statistics.

        Returns:
            Dictionary with mean, median, p95, max and sample count
        """
        if not self.latency_samples:
            return {'mean': 0.0, 'median': 0.0, 'p95': 0.0, 'max': 0.0, 'samples': 0}

        samples = np.asarray(self.latency_samples)
        return {
            'mean': float(np.mean(samples)),
            'median': float(np.median(samples)),
            'p95': float(np.percentile(samples, 95)),
            'max': float(np.max(samples)),
            'samples': len(self.latency_samples)
        }

    def get_window_occupancy_stats(self) -> Dict[str, float]:
        """Get statistics of packets in flight at submission time."""
        if not self.window_occupancy_samples:
            return {'mean': 0.0, 'max': 0}

        return {
            'mean': float(np.mean(self.window_occupancy_samples)),
            'max': int(np.max(self.window_occupancy_samples))
        }

    def _total_time(self) -> float:
        if self.start_time is None or self.end_time is None:
            return 0.0
        return self.end_time - self.start_time

    def get_summary(self) -> Dict:
        """
        Get comprehensive metrics summary.

        Returns:
            Dictionary with all metrics
        """
        return {
            # Time
            'total_time': self._total_time(),
            'start_time': self.start_time,
            'end_time': self.end_time,

            # Primary metric
            'throughput': self.calculate_throughput(),
            'efficiency': self.calculate_efficiency(),

            # Application counts
            'messages_offered': self.messages_offered,
            'messages_accepted': self.messages_accepted,
            'messages_rejected': self.messages_rejected,
            'rejection_rate': self.calculate_rejection_rate(),
            'messages_delivered': self.messages_delivered,

            # Packet counts
            'data_packets_sent': self.data_packets_sent,
            'retransmissions': self.retransmissions,
            'acks_sent': self.acks_sent,
            'acks_received': self.acks_received,

            # Channel
            'packets_lost': self.packets_lost,
            'packets_corrupted': self.packets_corrupted,

            # Latency
            'latency': self.get_latency_statistics(),

            # Window occupancy
            'window_occupancy': self.get_window_occupancy_stats()
        }

    def to_csv_row(self) -> Dict:
        """
        Get metrics as a flat dictionary suitable for CSV export.

        Returns:
            Dictionary with flattened metrics
        """
        summary = self.get_summary()
        latency = summary.pop('latency')
        occupancy = summary.pop('window_occupancy')

        flat = {**summary}
        for key, value in latency.items():
            flat[f'latency_{key}'] = value
        for key, value in occupancy.items():
            flat[f'window_occupancy_{key}'] = value

        return flat

    def reset(self):
        """Reset all metrics."""
        self.start_time = None
        self.end_time = None
        self.messages_offered = 0
        self.messages_accepted = 0
        self.messages_rejected = 0
        self.messages_delivered = 0
        self.data_packets_sent = 0
        self.retransmissions = 0
        self.acks_sent = 0
        self.acks_received = 0
        self.packets_lost = 0
        self.packets_corrupted = 0
        self.latency_samples.clear()
        self.window_occupancy_samples.clear()
