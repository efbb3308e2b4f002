"""
Simulation Logger

This module provides logging utilities for the emulator and the protocol
engines, with configurable verbosity levels and structured output.
"""

from typing import Optional, TextIO
from datetime import datetime
from enum import IntEnum
import os

from config import DEFAULT_LOG_LEVEL


class LogLevel(IntEnum):
    """Log level enumeration."""
    DEBUG = 0
    INFO = 1
    WARNING = 2
    ERROR = 3
    CRITICAL = 4


def trace_to_log_level(trace: int) -> LogLevel:
    """Map an emulator TRACE setting onto a log level."""
    if trace <= 0:
        return LogLevel.WARNING
    if trace == 1:
        return LogLevel.INFO
    return LogLevel.DEBUG


class SimulationLogger:
    """
    Logger for simulation events.

    Provides structured logging with timestamps and categories.

    Attributes:
        name: Logger name
        level: Minimum log level
        file: Optional file for logging
    """

    # Color codes for terminal output
    COLORS = {
        LogLevel.DEBUG: '\033[36m',     # Cyan
        LogLevel.INFO: '\033[32m',      # Green
        LogLevel.WARNING: '\033[33m',   # Yellow
        LogLevel.ERROR: '\033[31m',     # Red
        LogLevel.CRITICAL: '\033[35m',  # Magenta
    }
    RESET = '\033[0m'

    def __init__(
        self,
        name: str = "Emulator",
        level: int = DEFAULT_LOG_LEVEL,
        log_file: Optional[str] = None,
        use_colors: bool = True,
        include_timestamp: bool = True
    ):
        """
        Initialize logger.

        Args:
            name: Logger name
            level: Minimum log level
            log_file: Optional file path for logging
            use_colors: Use ANSI colors in output
            include_timestamp: Include timestamps in log messages
        """
        self.name = name
        self.level = level
        self.use_colors = use_colors
        self.include_timestamp = include_timestamp

        self.file: Optional[TextIO] = None
        if log_file:
            log_dir = os.path.dirname(log_file)
            if log_dir:
                os.makedirs(log_dir, exist_ok=True)
            self.file = open(log_file, 'w')

        # Simulation time tracking
        self.sim_time: Optional[float] = None

        # Message counts
        self.message_counts = {level: 0 for level in LogLevel}

    def set_sim_time(self, time: float):
        """Set current simulation time for log messages."""
        self.sim_time = time

    def set_level(self, level: int):
        """Set minimum log level."""
        self.level = level

    def _format_message(
        self,
        level: LogLevel,
        message: str,
        category: Optional[str] = None
    ) -> str:
        """Format a log message."""
        parts = []

        if self.include_timestamp:
            if self.sim_time is not None:
                parts.append(f"[{self.sim_time:10.4f}]")
            else:
                parts.append(f"[{datetime.now().strftime('%H:%M:%S.%f')[:-3]}]")

        level_str = level.name.ljust(8)
        if self.use_colors:
            level_str = f"{self.COLORS[level]}{level_str}{self.RESET}"
        parts.append(level_str)

        parts.append(f"[{self.name}]")

        if category:
            parts.append(f"[{category}]")

        parts.append(message)

        return " ".join(parts)

    def _log(
        self,
        level: LogLevel,
        message: str,
        category: Optional[str] = None
    ):
        """Log a message."""
        if level < self.level:
            return

        self.message_counts[level] += 1
        formatted = self._format_message(level, message, category)

        print(formatted)

        if self.file:
            # Strip color codes for file
            clean = formatted
            for color in self.COLORS.values():
                clean = clean.replace(color, '')
            clean = clean.replace(self.RESET, '')
            self.file.write(clean + '\n')
            self.file.flush()

    def debug(self, message: str, category: Optional[str] = None):
        """Log debug message."""
        self._log(LogLevel.DEBUG, message, category)

    def info(self, message: str, category: Optional[str] = None):
        """Log info message."""
        self._log(LogLevel.INFO, message, category)

    def warning(self, message: str, category: Optional[str] = None):
        """Log warning message."""
        self._log(LogLevel.WARNING, message, category)

    def error(self, message: str, category: Optional[str] = None):
        """Log error message."""
        self._log(LogLevel.ERROR, message, category)

    def critical(self, message: str, category: Optional[str] = None):
        """Log critical message."""
        self._log(LogLevel.CRITICAL, message, category)

    # Convenience methods for protocol events
    def packet_sent(self, entity: str, seq_num: int):
        """Log data packet handed to layer 3."""
        self.info(f"{entity}: sending packet {seq_num} to layer 3", "TX")

    def packet_received(self, entity: str, seq_num: int, buffered: bool):
        """Log data packet received in the receive window."""
        status = "buffered" if buffered else "duplicate, already buffered"
        self.debug(f"{entity}: packet {seq_num} correctly received, {status}", "RX")

    def out_of_window(self, entity: str, seq_num: int, ack_num: int):
        """Log data packet outside the receive window."""
        self.debug(f"{entity}: packet {seq_num} outside window, resend ACK {ack_num}", "RX")

    def ack_sent(self, entity: str, ack_num: int):
        """Log ACK sent event."""
        self.debug(f"{entity}: ACK {ack_num} sent", "ACK")

    def ack_received(self, entity: str, ack_num: int):
        """Log new ACK received event."""
        self.info(f"{entity}: ACK {ack_num} is not a duplicate", "ACK")

    def duplicate_ack(self, entity: str, ack_num: int):
        """Log duplicate or stale ACK."""
        self.debug(f"{entity}: duplicate ACK {ack_num} received, do nothing", "ACK")

    def corrupted(self, entity: str, kind: str):
        """Log corrupted packet event."""
        self.debug(f"{entity}: corrupted {kind} received", "CORRUPT")

    def window_full(self, entity: str):
        """Log rejected message."""
        self.info(f"{entity}: new message arrives, send window is full", "WINDOW")

    def window_update(self, entity: str, base: int, count: int, size: int):
        """Log window update."""
        self.debug(f"{entity}: window base={base}, outstanding={count}/{size}", "WINDOW")

    def delivered(self, entity: str, seq_num: int):
        """Log in-order delivery to layer 5."""
        self.debug(f"{entity}: delivering packet {seq_num} to layer 5", "DELIVER")

    def timeout(self, entity: str, outstanding: int):
        """Log timeout event."""
        self.warning(f"{entity}: time out, resending {outstanding} packet(s)", "TIMEOUT")

    def retransmit(self, entity: str, seq_num: int):
        """Log retransmission event."""
        self.info(f"{entity}: resending packet {seq_num}", "RETX")

    def timer_event(self, message: str):
        """Log timer bookkeeping."""
        self.debug(message, "TIMER")

    def simulation_start(self, params: dict):
        """Log simulation start."""
        param_str = ", ".join(f"{k}={v}" for k, v in params.items())
        self.info(f"Simulation started: {param_str}", "SIM")

    def simulation_end(self, metrics: dict):
        """Log simulation end."""
        self.info(
            f"Simulation ended: delivered={metrics.get('messages_delivered', 0)}, "
            f"throughput={metrics.get('throughput', 0):.4f} msg/unit",
            "SIM"
        )

    def get_summary(self) -> dict:
        """Get logging summary."""
        return {
            'message_counts': dict(self.message_counts),
            'total_messages': sum(self.message_counts.values())
        }

    def close(self):
        """Close log file if open."""
        if self.file:
            self.file.close()
            self.file = None

    def __del__(self):
        """Cleanup on deletion."""
        self.close()


# Global logger instance
_global_logger: Optional[SimulationLogger] = None


def get_logger() -> SimulationLogger:
    """Get global logger instance."""
    global _global_logger
    if _global_logger is None:
        _global_logger = SimulationLogger()
    return _global_logger


def set_logger(logger: SimulationLogger):
    """Set global logger instance."""
    global _global_logger
    _global_logger = logger
