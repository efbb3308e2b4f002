"""
Network Emulator - Event-Driven Simulation

This module implements the event-driven emulator that plays the network
and application layers around the two protocol entities: it generates
application messages at A, carries packets over lossy channels, runs the
per-entity timers and collects delivered messages at B.
"""

from typing import Optional, Dict, List
from dataclasses import dataclass, field
from enum import Enum
import heapq
import time

import numpy as np

from config import (
    NUM_MESSAGES, LOSS_PROB, CORRUPT_PROB, MESSAGE_INTERVAL, TRACE,
    MAX_SIMULATION_TIME, WINDOWSIZE, SEQSPACE, TIMEOUT_TICKS, PAYLOAD_SIZE
)
from selective_repeat.arq import (
    Packet, ProtocolConfig, Entity, SRSender, SRReceiver, ReackPolicy
)
from selective_repeat.channel import LossyChannel
from selective_repeat.layers import MessageSource, DeliveryVerifier
from selective_repeat.utils.metrics import MetricsCollector
from selective_repeat.utils.logger import SimulationLogger, trace_to_log_level


class EventType(Enum):
    """Types of simulation events."""
    FROM_LAYER5 = 0       # Application message arrives at A
    FROM_LAYER3 = 1       # Packet arrives at an entity
    TIMER_INTERRUPT = 2   # Entity timer expires


@dataclass(order=True)
class SimEvent:
    """Simulation event, ordered by time then by scheduling order."""
    time: float
    order: int
    event_type: EventType = field(compare=False)
    entity: int = field(compare=False)
    packet: Optional[Packet] = field(compare=False, default=None)
    cancelled: bool = field(compare=False, default=False)


@dataclass
class SimulatorConfig:
    """Configuration for the emulator."""
    # Protocol parameters
    window_size: int = WINDOWSIZE
    seq_space: int = SEQSPACE
    timeout: float = TIMEOUT_TICKS
    payload_size: int = PAYLOAD_SIZE
    reack_policy: ReackPolicy = ReackPolicy.SELECTIVE

    # Network parameters
    num_messages: int = NUM_MESSAGES
    loss_prob: float = LOSS_PROB
    corrupt_prob: float = CORRUPT_PROB
    message_interval: float = MESSAGE_INTERVAL

    # Simulation parameters
    seed: int = 42
    max_time: float = MAX_SIMULATION_TIME
    trace: int = TRACE
    log_file: Optional[str] = None

    def protocol_config(self) -> ProtocolConfig:
        """Protocol parameters for both engines."""
        return ProtocolConfig(
            window_size=self.window_size,
            seq_space=self.seq_space,
            timeout=self.timeout,
            payload_size=self.payload_size
        )


class Simulator:
    """
    Event-Driven Network Emulator.

    Uses one channel per direction (A to B for data, B to A for ACKs),
    each preserving the order of the packets it delivers.
    """

    def __init__(self, config: SimulatorConfig):
        """Initialize emulator."""
        self.config = config
        protocol = config.protocol_config()

        self.logger = SimulationLogger(
            name="Emulator",
            level=trace_to_log_level(config.trace),
            log_file=config.log_file
        )

        # Channel for the data path and for the ACK path
        self.forward_channel = LossyChannel(
            config.loss_prob, config.corrupt_prob, seed=config.seed
        )
        self.reverse_channel = LossyChannel(
            config.loss_prob, config.corrupt_prob, seed=config.seed + 1
        )
        self.arrival_rng = np.random.default_rng(config.seed + 2)

        self.sender = SRSender(
            transmit=self.transmit,
            start_timer=self.start_timer,
            stop_timer=self.stop_timer,
            config=protocol,
            clock=lambda: self.current_time,
            logger=self.logger
        )
        self.receiver = SRReceiver(
            transmit=self.transmit,
            deliver=self.deliver,
            config=protocol,
            reack_policy=config.reack_policy,
            logger=self.logger
        )

        self.source = MessageSource(protocol.payload_size)
        self.verifier = DeliveryVerifier()
        self.metrics = MetricsCollector()

        # Simulation state
        self.current_time = 0.0
        self.event_queue: List[SimEvent] = []
        self._event_counter = 0
        self.timers: Dict[int, SimEvent] = {}
        self.accept_times: List[float] = []

        # Stats
        self.timer_warnings = 0
        self.events_processed = 0

    def _schedule_event(
        self,
        time: float,
        event_type: EventType,
        entity: int,
        packet: Optional[Packet] = None
    ) -> SimEvent:
        """Schedule an event."""
        event = SimEvent(
            time=time,
            order=self._event_counter,
            event_type=event_type,
            entity=entity,
            packet=packet
        )
        self._event_counter += 1
        heapq.heappush(self.event_queue, event)
        return event

    # ------------------------------------------------------------------
    # Network layer interface used by the protocol engines
    # ------------------------------------------------------------------

    def transmit(self, entity: int, packet: Packet):
        """Hand a packet from an entity to the channel towards its peer."""
        if entity == Entity.A:
            channel, destination = self.forward_channel, Entity.B
        else:
            channel, destination = self.reverse_channel, Entity.A
            self.metrics.record_ack_sent()

        arriving, arrival_time, corrupted = channel.transmit(packet, self.current_time)
        if arriving is None:
            self.metrics.record_packet_lost()
            self.logger.debug("TOLAYER3: packet being lost", "CHANNEL")
            return
        if corrupted:
            self.metrics.record_packet_corrupted()
            self.logger.debug("TOLAYER3: packet being corrupted", "CHANNEL")

        self._schedule_event(arrival_time, EventType.FROM_LAYER3, destination, arriving)

    def start_timer(self, entity: int, duration: float):
        """Arm an entity's timer."""
        if entity in self.timers:
            self.timer_warnings += 1
            self.logger.warning(
                f"attempt to start a timer for {Entity(entity).name} that is already started",
                "TIMER"
            )
            return
        self.timers[entity] = self._schedule_event(
            self.current_time + duration, EventType.TIMER_INTERRUPT, entity
        )
        self.logger.timer_event(f"START TIMER {Entity(entity).name}: {duration}")

    def stop_timer(self, entity: int):
        """Cancel an entity's timer."""
        event = self.timers.pop(entity, None)
        if event is None:
            self.timer_warnings += 1
            self.logger.warning(
                f"unable to cancel timer for {Entity(entity).name}, it was not running",
                "TIMER"
            )
            return
        event.cancelled = True
        self.logger.timer_event(f"STOP TIMER {Entity(entity).name}")

    def deliver(self, entity: int, payload: bytes):
        """Receive a payload at the application layer of an entity."""
        index = len(self.verifier.delivered)
        self.verifier.record_delivered(payload)

        latency = None
        if index < len(self.accept_times):
            latency = self.current_time - self.accept_times[index]
        self.metrics.record_delivery(latency)

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    def _schedule_next_message(self):
        """Schedule the next application message arrival at A."""
        gap = self.config.message_interval * 2 * self.arrival_rng.random()
        self._schedule_event(self.current_time + gap, EventType.FROM_LAYER5, Entity.A)

    def _handle_message_arrival(self):
        """Hand a new application message to the sender."""
        self._schedule_next_message()

        message = self.source.next_message()
        packet = self.sender.submit(message)
        accepted = packet is not None
        if accepted:
            self.verifier.record_accepted(message)
            self.accept_times.append(self.current_time)
        self.metrics.record_message_offered(accepted, self.sender.window.count)

    def _handle_packet_arrival(self, event: SimEvent):
        """Hand an arriving packet to the destination entity."""
        if event.entity == Entity.A:
            if not event.packet.is_corrupted:
                self.metrics.record_ack_received()
            self.sender.on_packet(event.packet)
        else:
            self.receiver.on_packet(event.packet)

    def _handle_timer(self, event: SimEvent):
        """Fire an entity's timer."""
        self.timers.pop(event.entity, None)
        if event.entity == Entity.A:
            resent = self.sender.on_timer_fired()
            self.metrics.record_retransmission(len(resent))

    def _is_complete(self) -> bool:
        """Check if enough messages reached B."""
        return len(self.verifier.delivered) >= self.config.num_messages

    def run(self) -> Dict:
        """Run the emulation."""
        self.reset()

        self.logger.simulation_start({
            'messages': self.config.num_messages,
            'loss': self.config.loss_prob,
            'corrupt': self.config.corrupt_prob,
            'interval': self.config.message_interval,
            'window': self.config.window_size,
            'seqspace': self.config.seq_space,
            'seed': self.config.seed
        })

        self.metrics.start(0.0)
        sim_start_real = time.time()

        self._schedule_next_message()

        while (self.event_queue and
               not self._is_complete()):
            event = heapq.heappop(self.event_queue)
            if event.cancelled:
                continue
            if event.time > self.config.max_time:
                self.logger.warning(
                    f"time limit {self.config.max_time} reached", "SIM"
                )
                break

            self.current_time = event.time
            self.logger.set_sim_time(self.current_time)
            self.events_processed += 1

            if event.event_type == EventType.FROM_LAYER5:
                self._handle_message_arrival()
            elif event.event_type == EventType.FROM_LAYER3:
                self._handle_packet_arrival(event)
            elif event.event_type == EventType.TIMER_INTERRUPT:
                self._handle_timer(event)

        self.metrics.finish(self.current_time)
        sim_end_real = time.time()

        valid, verify_details = self.verifier.verify()
        metrics_summary = self.metrics.get_summary()
        self.logger.simulation_end(metrics_summary)

        return {
            'config': {
                'num_messages': self.config.num_messages,
                'loss_prob': self.config.loss_prob,
                'corrupt_prob': self.config.corrupt_prob,
                'message_interval': self.config.message_interval,
                'window_size': self.config.window_size,
                'seq_space': self.config.seq_space,
                'timeout': self.config.timeout,
                'reack_policy': self.config.reack_policy.value,
                'seed': self.config.seed
            },
            'sender': self.sender.get_statistics(),
            'receiver': self.receiver.get_statistics(),
            'forward_channel': self.forward_channel.get_statistics(),
            'reverse_channel': self.reverse_channel.get_statistics(),
            'metrics': metrics_summary,
            'verification': {'valid': valid, **verify_details},
            'timer_warnings': self.timer_warnings,
            'events_processed': self.events_processed,
            'real_time': sim_end_real - sim_start_real,
            'simulation_time': self.current_time,
            'complete': self._is_complete()
        }

    def reset(self, seed: Optional[int] = None):
        """Reset emulator."""
        if seed is not None:
            self.config.seed = seed
        self.sender.reset()
        self.receiver.reset()
        self.forward_channel.reset(self.config.seed)
        self.reverse_channel.reset(self.config.seed + 1)
        self.arrival_rng = np.random.default_rng(self.config.seed + 2)
        self.source.reset()
        self.verifier.reset()
        self.metrics.reset()

        self.current_time = 0.0
        self.event_queue.clear()
        self._event_counter = 0
        self.timers.clear()
        self.accept_times.clear()
        self.timer_warnings = 0
        self.events_processed = 0
