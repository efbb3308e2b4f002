"""
Throughput Heatmap Visualization

This module generates 2D heatmaps of sweep metrics over the
(loss probability, corruption probability) grid.
"""

import os
import sys
from typing import Dict, List, Optional, Tuple

import numpy as np
import pandas as pd
import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import seaborn as sns

# Add parent to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import PLOTS_DIR


METRIC_LABELS = {
    'throughput': 'Throughput (messages / time unit)',
    'retransmissions': 'Retransmissions',
    'efficiency': 'Efficiency',
    'latency_mean': 'Mean delivery latency'
}


class ThroughputHeatmap:
    """
    Generates 2D heatmaps of a metric over loss and corruption rates.

    Attributes:
        results: DataFrame with one row per run
    """

    def __init__(
        self,
        results: Optional[List[Dict]] = None,
        csv_file: Optional[str] = None
    ):
        """
        Initialize heatmap generator.

        Args:
            results: List of result dictionaries
            csv_file: Path to CSV file with results
        """
        if results:
            self.results = pd.DataFrame(results)
        elif csv_file:
            self.results = pd.read_csv(csv_file)
        else:
            self.results = pd.DataFrame()

        if not self.results.empty and 'error' in self.results.columns:
            self.results = self.results[self.results['error'].isna()]

    def create_matrix(self, metric: str = 'throughput') -> pd.DataFrame:
        """
        Mean of a metric per grid cell.

        Rows are loss probabilities (highest first), columns corruption
        probabilities.
        """
        if self.results.empty:
            raise ValueError("No results to plot")
        if metric not in self.results.columns:
            raise ValueError(f"Unknown metric: {metric}")

        matrix = self.results.pivot_table(
            index='loss_prob',
            columns='corrupt_prob',
            values=metric,
            aggfunc='mean'
        )
        return matrix.sort_index(ascending=False)

    def best_cell(self, metric: str = 'throughput') -> Tuple[float, float, float]:
        """Grid cell with the highest mean metric as (loss, corrupt, value)."""
        matrix = self.create_matrix(metric)
        values = matrix.to_numpy()
        i, j = np.unravel_index(np.nanargmax(values), values.shape)
        return matrix.index[i], matrix.columns[j], values[i, j]

    def plot(
        self,
        output_file: Optional[str] = None,
        metric: str = 'throughput',
        title: Optional[str] = None,
        figsize: Tuple[int, int] = (10, 8),
        cmap: str = "viridis",
        show_values: bool = True
    ) -> str:
        """
        Generate and save heatmap.

        Args:
            output_file: Output file path (auto-generated if None)
            metric: Result column to plot
            title: Plot title
            figsize: Figure size (width, height)
            cmap: Colormap name
            show_values: Show values in cells

        Returns:
            Path to saved figure
        """
        matrix = self.create_matrix(metric)
        label = METRIC_LABELS.get(metric, metric)

        fig, ax = plt.subplots(figsize=figsize)
        sns.heatmap(
            matrix,
            annot=show_values,
            fmt='.3f',
            cmap=cmap,
            ax=ax,
            cbar_kws={'label': label}
        )

        ax.set_xlabel('Corruption probability', fontsize=12)
        ax.set_ylabel('Loss probability', fontsize=12)
        ax.set_title(title or f"{label} vs Loss and Corruption",
                     fontsize=14, fontweight='bold')

        plt.tight_layout()

        if output_file is None:
            os.makedirs(PLOTS_DIR, exist_ok=True)
            output_file = os.path.join(PLOTS_DIR, f'{metric}_heatmap.png')

        plt.savefig(output_file, dpi=150, bbox_inches='tight')
        plt.close(fig)

        print(f"Heatmap saved to: {output_file}")
        return output_file

    def plot_all(self, output_dir: Optional[str] = None) -> List[str]:
        """Plot throughput and retransmission heatmaps."""
        output_dir = output_dir or PLOTS_DIR
        os.makedirs(output_dir, exist_ok=True)

        files = []
        for metric, cmap in (('throughput', 'viridis'), ('retransmissions', 'magma')):
            if metric in self.results.columns:
                files.append(self.plot(
                    output_file=os.path.join(output_dir, f'{metric}_heatmap.png'),
                    metric=metric,
                    cmap=cmap
                ))
        return files
