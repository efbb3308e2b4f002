#!/usr/bin/env python3
"""
Selective Repeat Transport Emulator - Main Entry Point

This is the main CLI interface for the selective repeat emulator.
It provides options for:
- Single emulation runs
- Parameter sweep over loss and corruption probabilities
- Visualization generation

Usage:
    python main.py --single --messages 100 --loss 0.2 --corrupt 0.2 --trace 2
    python main.py --sweep --runs 5 --parallel
    python main.py --visualize --csv results.csv
"""

import argparse
import os
import sys
import time

# Ensure project root is in path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from config import (
    NUM_MESSAGES, LOSS_PROB, CORRUPT_PROB, MESSAGE_INTERVAL, TRACE,
    LOSS_PROBS, CORRUPT_PROBS, RUNS_PER_CONFIGURATION, SWEEP_MESSAGES,
    RESULTS_CSV, PLOTS_DIR
)


def run_single_simulation(args):
    """Run a single emulation with specified parameters."""
    from simulation.simulator import Simulator, SimulatorConfig

    config = SimulatorConfig(
        num_messages=resolve_messages(args),
        loss_prob=args.loss,
        corrupt_prob=args.corrupt,
        message_interval=args.interval,
        trace=args.trace,
        seed=args.seed
    )

    print("=" * 60)
    print("SELECTIVE REPEAT TRANSPORT EMULATOR")
    print("=" * 60)
    print(f"\nConfiguration:")
    print(f"  Messages: {config.num_messages}")
    print(f"  Loss probability: {config.loss_prob}")
    print(f"  Corruption probability: {config.corrupt_prob}")
    print(f"  Message interval: {config.message_interval}")
    print(f"  Window size: {config.window_size} (seq space {config.seq_space})")
    print(f"  Timeout: {config.timeout}")
    print(f"  Seed: {config.seed}")

    sim = Simulator(config)
    start_time = time.time()
    results = sim.run()
    elapsed = time.time() - start_time

    print("\n" + "=" * 60)
    print("RESULTS")
    print("=" * 60)

    print(f"\nTransfer Status:")
    print(f"  Complete: {results['complete']}")
    print(f"  Delivery Valid: {results['verification']['valid']}")
    print(f"  Simulation Time: {results['simulation_time']:.2f}")
    print(f"  Real Time: {elapsed:.2f} s")
    print(f"  Timer Warnings: {results['timer_warnings']}")

    sender = results['sender']
    print(f"\nSender (A):")
    print(f"  Original packets sent: {sender['packets_sent']}")
    print(f"  Retransmissions: {sender['retransmissions']}")
    print(f"  ACKs received: {sender['total_acks_received']}")
    print(f"  New ACKs: {sender['new_acks']}")
    print(f"  Duplicate ACKs: {sender['duplicate_acks']}")
    print(f"  Stale ACKs: {sender['stale_acks']}")
    print(f"  Corrupted ACKs: {sender['corrupted_acks']}")
    print(f"  Window full: {sender['window_full']}")
    print(f"  Timeouts: {sender['timeouts']}")

    receiver = results['receiver']
    print(f"\nReceiver (B):")
    print(f"  Packets received: {receiver['packets_received']}")
    print(f"  Messages delivered: {receiver['packets_delivered']}")
    print(f"  Duplicate packets: {receiver['duplicate_packets']}")
    print(f"  Out-of-window packets: {receiver['out_of_window_packets']}")
    print(f"  Corrupted packets: {receiver['corrupted_packets']}")
    print(f"  ACKs sent: {receiver['acks_sent']}")

    metrics = results['metrics']
    print(f"\nPerformance Metrics:")
    print(f"  Throughput: {metrics['throughput']:.4f} messages / time unit")
    print(f"  Efficiency: {metrics['efficiency'] * 100:.2f}%")
    print(f"  Rejection rate: {metrics['rejection_rate'] * 100:.2f}%")
    if metrics['latency']['samples'] > 0:
        print(f"  Latency mean: {metrics['latency']['mean']:.2f}")
        print(f"  Latency p95: {metrics['latency']['p95']:.2f}")

    return results


def run_parameter_sweep(args):
    """Run parameter sweep."""
    from simulation.runner import BatchRunner

    print("=" * 60)
    print("PARAMETER SWEEP")
    print("=" * 60)

    if args.quick:
        loss_probs = [0.0, 0.2, 0.4]
        corrupt_probs = [0.0, 0.2, 0.4]
        runs = 2
    else:
        loss_probs = LOSS_PROBS
        corrupt_probs = CORRUPT_PROBS
        runs = args.runs
    messages = resolve_messages(args)

    output = args.output or RESULTS_CSV
    runner = BatchRunner(
        loss_probs=loss_probs,
        corrupt_probs=corrupt_probs,
        runs_per_config=runs,
        num_messages=messages,
        message_interval=args.interval,
        output_file=output
    )

    print(f"\nConfiguration:")
    print(f"  Loss probabilities: {loss_probs}")
    print(f"  Corruption probabilities: {corrupt_probs}")
    print(f"  Runs per config: {runs}")
    print(f"  Messages per run: {messages}")
    print(f"  Total simulations: {runner.total_runs}")
    print(f"  Output: {output}")

    if args.parallel:
        results = runner.run_parallel(max_workers=args.workers)
    else:
        results = runner.run_sequential()

    runner.save_results()

    aggregated = runner.get_aggregated_results()
    print("\n" + "=" * 60)
    print("AGGREGATED RESULTS")
    print("=" * 60)
    if aggregated.empty:
        print("  No successful runs")
    else:
        print(aggregated[['loss_prob', 'corrupt_prob', 'throughput_mean',
                          'retx_mean', 'all_valid']].to_string(index=False))

    failed = runner.get_failed_runs()
    if failed:
        print(f"\nWARNING: {len(failed)} runs failed or delivered out of order")

    return results


def generate_visualizations(args):
    """Generate visualization plots."""
    print("=" * 60)
    print("GENERATING VISUALIZATIONS")
    print("=" * 60)

    csv_file = args.csv or RESULTS_CSV

    if not os.path.exists(csv_file):
        print(f"Error: Results file not found: {csv_file}")
        print("Run a parameter sweep first: python main.py --sweep")
        return

    from visualization.heatmap import ThroughputHeatmap
    heatmap = ThroughputHeatmap(csv_file=csv_file)
    print(f"Loaded {len(heatmap.results)} results from {csv_file}")

    files = heatmap.plot_all(output_dir=args.output or PLOTS_DIR)

    loss, corrupt, value = heatmap.best_cell('throughput')
    print("\n" + "=" * 60)
    print("VISUALIZATIONS GENERATED")
    print("=" * 60)
    for path in files:
        print(f"  {path}")
    print(f"\nBest throughput {value:.4f} at loss={loss}, corrupt={corrupt}")


def show_config(args):
    """Display current configuration."""
    import config as cfg

    print("=" * 60)
    print("EMULATOR CONFIGURATION")
    print("=" * 60)

    print(f"\nProtocol Parameters:")
    print(f"  Window Size: {cfg.WINDOWSIZE}")
    print(f"  Sequence Space: {cfg.SEQSPACE} (minimum {cfg.minimum_seq_space(cfg.WINDOWSIZE)})")
    print(f"  RTT: {cfg.RTT}")
    print(f"  Timeout: {cfg.TIMEOUT_TICKS}")
    print(f"  Payload Size: {cfg.PAYLOAD_SIZE} bytes")

    print(f"\nNetwork Parameters:")
    print(f"  Loss Probability: {cfg.LOSS_PROB}")
    print(f"  Corruption Probability: {cfg.CORRUPT_PROB}")
    print(f"  Message Interval: {cfg.MESSAGE_INTERVAL}")
    print(f"  Transit Time: {cfg.MIN_TRANSIT} + U(0, {cfg.MAX_EXTRA_TRANSIT})")

    print(f"\nParameter Sweep:")
    print(f"  Loss Probabilities: {cfg.LOSS_PROBS}")
    print(f"  Corruption Probabilities: {cfg.CORRUPT_PROBS}")
    print(f"  Runs per config: {cfg.RUNS_PER_CONFIGURATION}")
    print(f"  Total simulations: {len(cfg.LOSS_PROBS) * len(cfg.CORRUPT_PROBS) * cfg.RUNS_PER_CONFIGURATION}")


def resolve_messages(args):
    """Messages per run: the explicit --messages value, else the mode default."""
    if args.messages is not None:
        return args.messages
    if args.sweep:
        return 50 if args.quick else SWEEP_MESSAGES
    return NUM_MESSAGES


def build_parser():
    """Build the command line parser."""
    parser = argparse.ArgumentParser(
        description="Selective Repeat Transport Emulator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Single emulation:
    python main.py --single --messages 20 --loss 0.2 --corrupt 0.2

  Quick parameter sweep (for testing):
    python main.py --sweep --quick

  Parallel parameter sweep:
    python main.py --sweep --parallel --workers 4

  Generate visualizations:
    python main.py --visualize

  Show configuration:
    python main.py --config
        """
    )

    # Mode selection
    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument('--single', action='store_true',
                      help='Run single emulation')
    mode.add_argument('--sweep', action='store_true',
                      help='Run parameter sweep')
    mode.add_argument('--visualize', action='store_true',
                      help='Generate visualizations')
    mode.add_argument('--config', action='store_true',
                      help='Show configuration')

    # Emulation options
    parser.add_argument('--messages', '-m', type=int, default=None,
                        help=f'Messages to deliver (default: {NUM_MESSAGES} single, '
                             f'{SWEEP_MESSAGES} sweep, 50 quick sweep)')
    parser.add_argument('--loss', '-l', type=float, default=LOSS_PROB,
                        help=f'Packet loss probability (default: {LOSS_PROB})')
    parser.add_argument('--corrupt', '-c', type=float, default=CORRUPT_PROB,
                        help=f'Packet corruption probability (default: {CORRUPT_PROB})')
    parser.add_argument('--interval', '-i', type=float, default=MESSAGE_INTERVAL,
                        help=f'Mean time between messages (default: {MESSAGE_INTERVAL})')
    parser.add_argument('--trace', '-t', type=int, default=TRACE,
                        help=f'Trace level 0-3 (default: {TRACE})')
    parser.add_argument('--seed', '-s', type=int, default=42,
                        help='Random seed (default: 42)')

    # Parameter sweep options
    parser.add_argument('--runs', '-r', type=int,
                        default=RUNS_PER_CONFIGURATION,
                        help=f'Runs per configuration (default: {RUNS_PER_CONFIGURATION})')
    parser.add_argument('--parallel', action='store_true',
                        help='Run simulations in parallel')
    parser.add_argument('--workers', type=int, default=None,
                        help='Number of parallel workers')
    parser.add_argument('--quick', action='store_true',
                        help='Quick test with reduced parameters')

    # Output options
    parser.add_argument('--output', '-o', type=str,
                        help='Output file path (sweep) or directory (visualize)')
    parser.add_argument('--csv', type=str,
                        help='CSV file for visualization')

    return parser


def main():
    args = build_parser().parse_args()

    if args.single:
        run_single_simulation(args)
    elif args.sweep:
        run_parameter_sweep(args)
    elif args.visualize:
        generate_visualizations(args)
    elif args.config:
        show_config(args)


if __name__ == "__main__":
    main()
