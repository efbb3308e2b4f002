"""
Batch Runner for Parameter Sweep Simulations

This module implements the batch runner that executes the emulator over
the (loss probability, corruption probability) grid with several seeded
runs per grid cell.
"""

import os
import time
from typing import Optional, Callable, List, Dict
from dataclasses import dataclass
from concurrent.futures import ProcessPoolExecutor, as_completed
import multiprocessing
import sys

import pandas as pd
from tqdm import tqdm

# Add parent to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import (
    LOSS_PROBS, CORRUPT_PROBS, RUNS_PER_CONFIGURATION, SWEEP_MESSAGES,
    MESSAGE_INTERVAL, RNG_SEED_BASE, OUTPUT_DIR, RESULTS_CSV
)
from simulation.simulator import Simulator, SimulatorConfig


@dataclass
class RunConfig:
    """Configuration for a single simulation run."""
    loss_prob: float
    corrupt_prob: float
    run_id: int
    seed: int
    num_messages: int
    message_interval: float = MESSAGE_INTERVAL


def run_single_simulation(run_config: RunConfig) -> Dict:
    """
    Run a single simulation with given configuration.

    This function is designed to be called in a separate process.

    Args:
        run_config: Configuration for this run

    Returns:
        Dictionary with results
    """
    try:
        config = SimulatorConfig(
            loss_prob=run_config.loss_prob,
            corrupt_prob=run_config.corrupt_prob,
            num_messages=run_config.num_messages,
            message_interval=run_config.message_interval,
            seed=run_config.seed,
            trace=0  # Warnings only for batch runs
        )

        sim = Simulator(config)
        results = sim.run()

        metrics = results['metrics']
        sender = results['sender']

        return {
            'loss_prob': run_config.loss_prob,
            'corrupt_prob': run_config.corrupt_prob,
            'run_id': run_config.run_id,
            'seed': run_config.seed,
            'throughput': metrics['throughput'],
            'efficiency': metrics['efficiency'],
            'messages_delivered': metrics['messages_delivered'],
            'messages_rejected': metrics['messages_rejected'],
            'retransmissions': sender['retransmissions'],
            'timeouts': sender['timeouts'],
            'duplicate_acks': sender['duplicate_acks'],
            'latency_mean': metrics['latency']['mean'],
            'latency_p95': metrics['latency']['p95'],
            'total_time': results['simulation_time'],
            'timer_warnings': results['timer_warnings'],
            'data_valid': results['verification']['valid'],
            'complete': results['complete'],
            'error': None
        }

    except Exception as e:
        return {
            'loss_prob': run_config.loss_prob,
            'corrupt_prob': run_config.corrupt_prob,
            'run_id': run_config.run_id,
            'seed': run_config.seed,
            'throughput': 0.0,
            'error': str(e)
        }


class BatchRunner:
    """
    Batch Runner for parameter sweep simulations.

    Executes all (loss, corruption) combinations with multiple runs each.

    Attributes:
        loss_probs: Loss probabilities to test
        corrupt_probs: Corruption probabilities to test
        runs_per_config: Number of runs per grid cell
        num_messages: Messages to deliver per run
    """

    def __init__(
        self,
        loss_probs: List[float] = None,
        corrupt_probs: List[float] = None,
        runs_per_config: int = RUNS_PER_CONFIGURATION,
        num_messages: int = SWEEP_MESSAGES,
        message_interval: float = MESSAGE_INTERVAL,
        output_file: str = RESULTS_CSV,
        on_progress: Optional[Callable[[int, int, dict], None]] = None
    ):
        """
        Initialize batch runner.

        Args:
            loss_probs: Loss probabilities (default from config)
            corrupt_probs: Corruption probabilities (default from config)
            runs_per_config: Number of runs per grid cell
            num_messages: Messages to deliver per run
            message_interval: Mean time between application messages
            output_file: Path to output CSV file
            on_progress: Callback for progress updates
        """
        self.loss_probs = loss_probs if loss_probs is not None else LOSS_PROBS
        self.corrupt_probs = corrupt_probs if corrupt_probs is not None else CORRUPT_PROBS
        self.runs_per_config = runs_per_config
        self.num_messages = num_messages
        self.message_interval = message_interval
        self.output_file = output_file
        self.on_progress = on_progress

        self.results: List[Dict] = []

        self.total_runs = (len(self.loss_probs) *
                           len(self.corrupt_probs) *
                           self.runs_per_config)
        self.completed_runs = 0
        self.start_time = 0.0

    def _generate_run_configs(self) -> List[RunConfig]:
        """Generate all run configurations."""
        configs = []

        for loss_prob in self.loss_probs:
            for corrupt_prob in self.corrupt_probs:
                for run_id in range(self.runs_per_config):
                    # Unique seed for each run; a run uses seed to seed + 2
                    seed = RNG_SEED_BASE + len(configs) * 10

                    configs.append(RunConfig(
                        loss_prob=loss_prob,
                        corrupt_prob=corrupt_prob,
                        run_id=run_id,
                        seed=seed,
                        num_messages=self.num_messages,
                        message_interval=self.message_interval
                    ))

        return configs

    def _record(self, result: Dict):
        """Store a finished run and report progress."""
        self.results.append(result)
        self.completed_runs += 1
        if self.on_progress:
            self.on_progress(self.completed_runs, self.total_runs, result)

    def run_sequential(self, show_progress: bool = True) -> List[Dict]:
        """
        Run all simulations sequentially.

        Returns:
            List of result dictionaries
        """
        configs = self._generate_run_configs()
        self.results = []
        self.completed_runs = 0
        self.start_time = time.time()

        print(f"Running {self.total_runs} simulations sequentially...")

        for config in tqdm(configs, desc="Simulations", disable=not show_progress):
            self._record(run_single_simulation(config))

        total_time = time.time() - self.start_time
        print(f"Completed {self.total_runs} simulations in {total_time:.1f}s")

        return self.results

    def run_parallel(
        self,
        max_workers: Optional[int] = None,
        show_progress: bool = True
    ) -> List[Dict]:
        """
        Run simulations in parallel using multiprocessing.

        Args:
            max_workers: Number of parallel workers (default: CPU count)

        Returns:
            List of result dictionaries
        """
        if max_workers is None:
            max_workers = multiprocessing.cpu_count()

        configs = self._generate_run_configs()
        self.results = []
        self.completed_runs = 0
        self.start_time = time.time()

        print(f"Running {self.total_runs} simulations with {max_workers} workers...")

        with ProcessPoolExecutor(max_workers=max_workers) as executor:
            futures = {
                executor.submit(run_single_simulation, config): config
                for config in configs
            }

            for future in tqdm(as_completed(futures), total=len(futures),
                               desc="Simulations", disable=not show_progress):
                self._record(future.result())

        total_time = time.time() - self.start_time
        print(f"Completed {self.total_runs} simulations in {total_time:.1f}s")

        return self.results

    def to_dataframe(self) -> pd.DataFrame:
        """Results as a DataFrame sorted by grid cell and run."""
        if not self.results:
            return pd.DataFrame()
        return (pd.DataFrame(self.results)
                .sort_values(['loss_prob', 'corrupt_prob', 'run_id'])
                .reset_index(drop=True))

    def save_results(self, filepath: Optional[str] = None):
        """
        Save results to CSV file.

        Args:
            filepath: Output file path (default: self.output_file)
        """
        filepath = filepath or self.output_file

        if not self.results:
            print("No results to save!")
            return

        directory = os.path.dirname(filepath)
        if directory:
            os.makedirs(directory, exist_ok=True)

        self.to_dataframe().to_csv(filepath, index=False)
        print(f"Results saved to: {filepath}")

    def get_aggregated_results(self) -> pd.DataFrame:
        """
        Get aggregated results by (loss, corruption) pair.

        Failed runs are left out.

        Returns:
            DataFrame with one row per grid cell
        """
        df = self.to_dataframe()
        if df.empty:
            return df
        df = df[df['error'].isna()]
        if df.empty:
            return df

        grouped = df.groupby(['loss_prob', 'corrupt_prob'])
        aggregated = grouped.agg(
            throughput_mean=('throughput', 'mean'),
            throughput_std=('throughput', 'std'),
            throughput_min=('throughput', 'min'),
            throughput_max=('throughput', 'max'),
            retx_mean=('retransmissions', 'mean'),
            efficiency_mean=('efficiency', 'mean'),
            latency_mean=('latency_mean', 'mean'),
            runs=('run_id', 'count'),
            all_valid=('data_valid', 'all')
        ).reset_index()

        # Single-run cells have no spread
        aggregated['throughput_std'] = aggregated['throughput_std'].fillna(0.0)
        return aggregated

    def get_failed_runs(self) -> List[Dict]:
        """Runs that raised or delivered out of order."""
        return [r for r in self.results
                if r.get('error') or not r.get('data_valid', False)]


if __name__ == "__main__":
    print("=" * 60)
    print("BATCH RUNNER TEST")
    print("=" * 60)

    runner = BatchRunner(
        loss_probs=[0.0, 0.2],
        corrupt_probs=[0.0, 0.2],
        runs_per_config=2,
        num_messages=20,
        output_file=os.path.join(OUTPUT_DIR, "test_results.csv")
    )

    print(f"\nTest configuration:")
    print(f"  Loss probabilities: {runner.loss_probs}")
    print(f"  Corruption probabilities: {runner.corrupt_probs}")
    print(f"  Runs per config: {runner.runs_per_config}")
    print(f"  Total runs: {runner.total_runs}")

    runner.run_sequential()
    runner.save_results()

    print("\nAggregated results:")
    print(runner.get_aggregated_results().to_string(index=False))
