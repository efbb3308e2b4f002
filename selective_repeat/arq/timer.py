"""
Timer Management for the Selective Repeat Protocol

Each entity owns one retransmission timer shared by all of its outstanding
packets. ProtocolTimer tracks whether that timer is armed and forwards every
transition to the network layer's start/stop primitives exactly once.
"""

from enum import Enum
from typing import Optional, Callable


class TimerState(Enum):
    """Timer state enumeration."""
    IDLE = 0
    ARMED = 1


class TimerStateError(RuntimeError):
    """Raised when a timer transition is requested from the wrong state."""


class ProtocolTimer:
    """
    Single per-entity timer: {Idle, Armed(deadline)}.

    Attributes:
        entity: Entity the timer belongs to
        state: Current timer state
        deadline: Absolute expiry time while armed, None while idle
        starts: Number of start transitions
        stops: Number of stop transitions
        expirations: Number of expirations reported by the network layer
    """

    def __init__(
        self,
        entity: int,
        start_timer: Optional[Callable[[int, float], None]] = None,
        stop_timer: Optional[Callable[[int], None]] = None
    ):
        """
        Initialize an idle timer.

        Args:
            entity: Entity identifier passed to the network layer
            start_timer: Network layer call arming the entity's timer
            stop_timer: Network layer call cancelling the entity's timer
        """
        self.entity = entity
        self._start_timer = start_timer
        self._stop_timer = stop_timer

        self.state = TimerState.IDLE
        self.deadline: Optional[float] = None

        # Statistics
        self.starts = 0
        self.stops = 0
        self.expirations = 0

    @property
    def is_running(self) -> bool:
        """Check if the timer is armed."""
        return self.state == TimerState.ARMED

    def start(self, duration: float, current_time: float = 0.0):
        """
        Arm the timer.

        Args:
            duration: Time until expiry
            current_time: Current time, used to record the deadline

        Raises:
            TimerStateError: If the timer is already armed
        """
        if self.state == TimerState.ARMED:
            raise TimerStateError(
                f"timer for entity {self.entity} is already running"
            )
        self.state = TimerState.ARMED
        self.deadline = current_time + duration
        self.starts += 1
        if self._start_timer:
            self._start_timer(self.entity, duration)

    def stop(self):
        """Cancel the timer; a no-op when it is already idle."""
        if self.state == TimerState.IDLE:
            return
        self.state = TimerState.IDLE
        self.deadline = None
        self.stops += 1
        if self._stop_timer:
            self._stop_timer(self.entity)

    def restart(self, duration: float, current_time: float = 0.0):
        """Stop (if armed) and start again with a fresh deadline."""
        self.stop()
        self.start(duration, current_time)

    def expired(self):
        """
        Record that the network layer fired the timer.

        The network layer has already discarded its own timer, so the state
        returns to idle without calling stop_timer.
        """
        self.state = TimerState.IDLE
        self.deadline = None
        self.expirations += 1

    def reset(self):
        """Return to idle without notifying the network layer."""
        self.state = TimerState.IDLE
        self.deadline = None
        self.starts = 0
        self.stops = 0
        self.expirations = 0

    def get_statistics(self) -> dict:
        """Get timer statistics."""
        return {
            'timer_starts': self.starts,
            'timer_stops': self.stops,
            'timer_expirations': self.expirations,
            'timer_running': self.is_running
        }
