"""
Configuration file for the Selective Repeat transport emulator.
Contains the fixed protocol constants and the emulator defaults.
"""

# =============================================================================
# PROTOCOL PARAMETERS
# =============================================================================

# Maximum number of buffered, unacknowledged packets
WINDOWSIZE = 6

# Sequence numbers run over [0, SEQSPACE); must be at least WINDOWSIZE + 1
SEQSPACE = 13

# Round trip time of the emulated channel (time units)
RTT = 16.0

# Retransmission timeout (RTT * 1.5)
TIMEOUT_TICKS = 24

# Fixed message / packet payload length (bytes)
PAYLOAD_SIZE = 20

# Wire value of a header field that is not in use (e.g. acknum on data)
NOT_IN_USE = -1

# Placeholder sequence number and payload byte carried by acknowledgments
ACK_SEQNUM = 0
ACK_FILL = b'0'

# =============================================================================
# NETWORK EMULATOR PARAMETERS
# =============================================================================

# Number of messages to deliver at B before the emulation stops
NUM_MESSAGES = 20

# Per-packet loss and corruption probabilities
LOSS_PROB = 0.0
CORRUPT_PROB = 0.0

# Average time between messages arriving from the sending application
MESSAGE_INTERVAL = 10.0

# One-way transit time is MIN_TRANSIT + MAX_EXTRA_TRANSIT * U(0, 1)
MIN_TRANSIT = 1.0
MAX_EXTRA_TRANSIT = 9.0

# Values written over a header field when the channel corrupts it
CORRUPT_FIELD_VALUE = 999999
CORRUPT_PAYLOAD_BYTE = ord('Z')

# Emulator trace level (0 = quiet, 1 = protocol events, 2+ = everything)
TRACE = 1

# =============================================================================
# PARAMETER SWEEP CONFIGURATION
# =============================================================================

LOSS_PROBS = [0.0, 0.1, 0.2, 0.3, 0.4]
CORRUPT_PROBS = [0.0, 0.1, 0.2, 0.3, 0.4]

# Number of emulation runs per (loss, corruption) pair
RUNS_PER_CONFIGURATION = 5

# Messages delivered per sweep run
SWEEP_MESSAGES = 200

# Default RNG seed base (actual seed = base + offsets)
RNG_SEED_BASE = 1234

# Simulation time limit (time units) - failsafe
MAX_SIMULATION_TIME = 1_000_000.0

# =============================================================================
# LOGGING
# =============================================================================

LOG_LEVEL_DEBUG = 0
LOG_LEVEL_INFO = 1
LOG_LEVEL_WARNING = 2
LOG_LEVEL_ERROR = 3

DEFAULT_LOG_LEVEL = LOG_LEVEL_INFO

# =============================================================================
# OUTPUT PATHS
# =============================================================================

import os

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
DATA_DIR = os.path.join(BASE_DIR, "data")
OUTPUT_DIR = os.path.join(DATA_DIR, "output")
PLOTS_DIR = os.path.join(OUTPUT_DIR, "plots")

RESULTS_CSV = os.path.join(OUTPUT_DIR, "results.csv")

# =============================================================================
# DERIVED PARAMETERS
# =============================================================================

def calculate_timeout_ticks(rtt):
    """Timeout used by the sender for a given round trip time."""
    return int(rtt * 1.5)


def minimum_seq_space(window_size):
    """
    Smallest sequence space that keeps old and new acknowledgments apart.

    The sender never has more than window_size packets outstanding, so one
    spare sequence number is enough for a stale ACK not to alias a fresh one.
    """
    return window_size + 1


# Print configuration summary
if __name__ == "__main__":
    print("=" * 60)
    print("SELECTIVE REPEAT EMULATOR - CONFIGURATION")
    print("=" * 60)

    print(f"\nProtocol:")
    print(f"  Window Size: {WINDOWSIZE}")
    print(f"  Sequence Space: {SEQSPACE} (minimum {minimum_seq_space(WINDOWSIZE)})")
    print(f"  RTT: {RTT}")
    print(f"  Timeout: {TIMEOUT_TICKS} ticks")
    print(f"  Payload: {PAYLOAD_SIZE} bytes")

    print(f"\nEmulator:")
    print(f"  Messages: {NUM_MESSAGES}")
    print(f"  Loss Probability: {LOSS_PROB}")
    print(f"  Corruption Probability: {CORRUPT_PROB}")
    print(f"  Message Interval: {MESSAGE_INTERVAL}")
    print(f"  Transit: {MIN_TRANSIT} + U(0, {MAX_EXTRA_TRANSIT})")

    print(f"\nParameter Sweep:")
    print(f"  Loss Probabilities: {LOSS_PROBS}")
    print(f"  Corruption Probabilities: {CORRUPT_PROBS}")
    print(f"  Runs per config: {RUNS_PER_CONFIGURATION}")
    print(f"  Total simulations: {len(LOSS_PROBS) * len(CORRUPT_PROBS) * RUNS_PER_CONFIGURATION}")
