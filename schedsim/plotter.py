"""
Visualization module for the scheduling simulator.

Draws the history table as a Gantt-style timeline (one lane per process,
one cell per tick, coloured by state) and compares policies on the
metrics derived from their tables.
"""

import matplotlib.pyplot as plt
import matplotlib.patches as mpatches
import numpy as np
from typing import Dict, List, Optional
from pathlib import Path

from schedsim.config import DEFAULT_MAX_TICKS, DEFAULT_SEED
from schedsim.process import ProcessState
from schedsim.scheduler import create_scheduler
from schedsim.simulator import HistoryTable, SimulationMetrics, Simulator
from schedsim.workload import WorkloadGenerator


plt.rcParams.update({
    'font.family': 'serif',
    'font.size': 11,
    'axes.titlesize': 14,
    'axes.labelsize': 12,
    'legend.fontsize': 10,
    'figure.dpi': 150,
    'savefig.dpi': 300,
    'savefig.bbox': 'tight',
})

# Color palette (colorblind-friendly)
STATE_COLORS = {
    ProcessState.READY: '#E69F00',      # Orange
    ProcessState.PENDING: '#CCCCCC',    # Light gray
    ProcessState.EXECUTING: '#0072B2',  # Blue
    ProcessState.FINISHED: '#FFFFFF',   # White
}

STATE_CODES = {state: code for code, state in enumerate(STATE_COLORS)}


def timeline_matrix(table: HistoryTable) -> np.ndarray:
    """
    Encode a history table as a (processes x ticks) matrix of state codes.

    Missing cells are encoded as -1.
    """
    matrix = np.full((len(table.pids), len(table)), -1, dtype=int)
    for row, pid in enumerate(table.pids):
        for tick, state in enumerate(table.column(pid)):
            if state is not None:
                matrix[row, tick] = STATE_CODES[state]
    return matrix


def plot_timeline(
    table: HistoryTable,
    title: str = "Scheduling Timeline",
    output_path: str = "timeline.png",
    show: bool = False
) -> None:
    """
    Plot one lane per process showing its state at every tick.

    Args:
        table: History table from the tick driver
        title: Figure title (usually the scheduler name)
        output_path: Where to save the figure
        show: Whether to display interactively
    """
    matrix = timeline_matrix(table)
    fig, ax = plt.subplots(figsize=(max(6, len(table) * 0.35), 1 + len(table.pids) * 0.5))

    for row in range(matrix.shape[0]):
        for tick in range(matrix.shape[1]):
            code = matrix[row, tick]
            if code < 0:
                continue
            state = list(STATE_COLORS)[code]
            ax.broken_barh(
                [(tick + 1, 1)], (row - 0.4, 0.8),
                facecolors=STATE_COLORS[state],
                edgecolor='black', linewidth=0.3
            )

    ax.set_yticks(range(len(table.pids)))
    ax.set_yticklabels(table.pids)
    ax.invert_yaxis()
    ax.set_xlim(1, len(table) + 1)
    ax.set_xlabel('Tick', fontweight='bold')
    ax.set_ylabel('Process', fontweight='bold')
    ax.set_title(title, fontweight='bold', pad=15)

    handles = [
        mpatches.Patch(facecolor=color, edgecolor='black', label=state.value)
        for state, color in STATE_COLORS.items()
    ]
    ax.legend(handles=handles, loc='upper left', bbox_to_anchor=(1.01, 1.0), framealpha=0.9)

    plt.tight_layout()
    plt.savefig(output_path)
    print(f"Saved: {output_path}")

    if show:
        plt.show()
    plt.close(fig)


def plot_metrics_comparison(
    results: Dict[str, SimulationMetrics],
    output_path: str = "metrics_comparison.png",
    show: bool = False
) -> None:
    """
    Grouped bars of average waiting and completion time per scheduler.

    Args:
        results: {scheduler_name: metrics}
        output_path: Where to save the figure
        show: Whether to display interactively
    """
    names = list(results.keys())
    waiting = [results[n].avg_waiting for n in names]
    completion = [results[n].avg_completion for n in names]

    fig, ax = plt.subplots(figsize=(10, 6))
    x = np.arange(len(names))
    width = 0.35

    ax.bar(x - width / 2, waiting, width, label='Avg waiting (ticks)',
           color=STATE_COLORS[ProcessState.READY], alpha=0.8)
    ax.bar(x + width / 2, completion, width, label='Avg completion tick',
           color=STATE_COLORS[ProcessState.EXECUTING], alpha=0.8)

    ax.set_xticks(x)
    ax.set_xticklabels(names)
    ax.set_ylabel('Ticks', fontweight='bold')
    ax.set_title('Scheduler Comparison', fontweight='bold', pad=15)
    ax.legend(loc='upper left', framealpha=0.9)
    ax.grid(True, alpha=0.3, axis='y')
    ax.set_ylim(bottom=0)

    plt.tight_layout()
    plt.savefig(output_path)
    print(f"Saved: {output_path}")

    if show:
        plt.show()
    plt.close(fig)


def generate_all_plots(
    scheduler_names: Optional[List[str]] = None,
    count: int = 6,
    seed: int = DEFAULT_SEED,
    max_ticks: int = DEFAULT_MAX_TICKS,
    output_dir: str = "results",
    show: bool = False
) -> Dict[str, SimulationMetrics]:
    """
    Run each scheduler on one generated workload and plot everything.

    Args:
        scheduler_names: Policies to run (default: fcfs, rr, mlq)
        count: Number of generated processes
        seed: Workload seed
        max_ticks: Tick budget per run
        output_dir: Directory to save plots
        show: Whether to display plots interactively

    Returns:
        Metrics per scheduler name
    """
    if scheduler_names is None:
        scheduler_names = ["fcfs", "rr", "mlq"]

    processes = WorkloadGenerator(count=count, seed=seed).generate()

    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)

    print("\nGenerating plots...")

    results: Dict[str, SimulationMetrics] = {}
    for name in scheduler_names:
        scheduler = create_scheduler(name)
        sim = Simulator(scheduler=scheduler, processes=processes, max_ticks=max_ticks)
        results[scheduler.name] = sim.run()
        plot_timeline(
            sim.table,
            title=f"{scheduler.name} Timeline",
            output_path=str(output_path / f"timeline_{name}.png"),
            show=show
        )

    plot_metrics_comparison(results, str(output_path / "metrics_comparison.png"), show)

    print("\nAll plots generated successfully!")
    return results


def main() -> None:
    """Main entry point for plotting with CLI arguments."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Generate timeline plots for the scheduling simulator"
    )
    parser.add_argument(
        "--output-dir", "-o", type=str, default="results",
        help="Directory to save plots (default: results)"
    )
    parser.add_argument(
        "--show", action="store_true",
        help="Display plots interactively"
    )
    parser.add_argument(
        "--count", "-c", type=int, default=6,
        help="Number of generated processes (default: 6)"
    )
    parser.add_argument(
        "--seed", "-s", type=int, default=DEFAULT_SEED,
        help=f"Random seed (default: {DEFAULT_SEED})"
    )

    args = parser.parse_args()

    generate_all_plots(count=args.count, seed=args.seed, output_dir=args.output_dir, show=args.show)


if __name__ == "__main__":
    main()
