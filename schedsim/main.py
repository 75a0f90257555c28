"""
Main entry point for the tick-driven scheduling simulator.

Builds a workload (plan-driven processes from ``--plan`` and/or random
walkers from ``--random``), runs one or all policies over it and prints
the aligned history table followed by a metrics summary.

Example:
    python -m schedsim.main --scheduler rr --plan "3E 2P E" --plan "90:4E P 4E"
    python -m schedsim.main --scheduler all --random 5 --seed 7
"""

from typing import Dict, List, Optional, Tuple
import logging

from schedsim.config import DEFAULT_MAX_TICKS, DEFAULT_SEED, DEFAULT_TIMEOUT
from schedsim.process import Process
from schedsim.scheduler import Scheduler, create_scheduler
from schedsim.simulator import HistoryTable, SimulationMetrics, Simulator
from schedsim.workload import ProcessFactory


# Sample workload used when neither --plan nor --random is given
DEMO_PLANS = ["3E 2P E", "4E P 4E"]
DEMO_RANDOM = 5


def print_header(title: str) -> None:
    """Print a formatted section header."""
    width = 70
    print("\n" + "=" * width)
    print(f" {title}")
    print("=" * width)


def print_table(table: HistoryTable) -> None:
    """
    Print the history table: one row per tick, one column per process.

    Args:
        table: Table returned by the tick driver
    """
    width = max([9] + [len(pid) for pid in table.pids])

    header = f"{'tick':>5} | " + " | ".join(f"{pid:<{width}}" for pid in table.pids)
    print(header)
    print("-" * len(header))

    for tick, record in enumerate(table.as_records(), start=1):
        cells = [f"{(record[pid] or ''):<{width}}" for pid in table.pids]
        print(f"{tick:>5} | " + " | ".join(cells))


def print_metrics(name: str, metrics: SimulationMetrics) -> None:
    """Print a metrics summary for one scheduler."""
    print(f"\n  {name}:")
    print(f"    Ticks:          {metrics.ticks}")
    print(f"    Finished:       {metrics.finished}/{metrics.total_processes}")
    print(f"    CPU busy:       {metrics.cpu_utilization:.1%}")
    print(f"    Avg Waiting:    {metrics.avg_waiting:.2f} ticks")
    print(f"    Avg Completion: {metrics.avg_completion:.2f} ticks")
    print(f"    Switches:       {metrics.context_switches}")


def parse_plan_argument(text: str) -> Tuple[int, str]:
    """
    Split a ``--plan`` value into (priority, plan text).

    ``"90:3E 2P"`` gives ``(90, "3E 2P")``; without a prefix the
    priority is 0.
    """
    head, sep, tail = text.partition(":")
    if sep and head.strip().isdigit():
        return int(head.strip()), tail
    return 0, text


def build_workload(
    plans: Optional[List[str]],
    n_random: Optional[int],
    seed: int
) -> List[Process]:
    """Create the processes requested on the command line."""
    if not plans and n_random is None:
        plans, n_random = DEMO_PLANS, DEMO_RANDOM

    factory = ProcessFactory(seed=seed)
    processes = []
    for text in plans or []:
        priority, plan = parse_plan_argument(text)
        processes.append(factory.planned_process(plan, priority=priority))

    if n_random:
        # Spread random walkers over the priority range for MLQ runs
        for i in range(n_random):
            processes.append(factory.random_process(priority=(i * 37) % 101))

    return processes


def build_schedulers(name: str, timeout: int) -> List[Scheduler]:
    if name == "all":
        return [
            create_scheduler("fcfs"),
            create_scheduler("rr", timeout=timeout),
            create_scheduler("mlq"),
        ]
    if name == "rr":
        return [create_scheduler("rr", timeout=timeout)]
    return [create_scheduler(name)]


def run(
    scheduler_name: str = "fcfs",
    plans: Optional[List[str]] = None,
    n_random: Optional[int] = None,
    ticks: int = DEFAULT_MAX_TICKS,
    timeout: int = DEFAULT_TIMEOUT,
    seed: int = DEFAULT_SEED
) -> Dict[str, SimulationMetrics]:
    """
    Run the requested schedulers and print their tables.

    Returns:
        Dict: {scheduler_name: metrics}
    """
    processes = build_workload(plans, n_random, seed)
    results: Dict[str, SimulationMetrics] = {}

    for scheduler in build_schedulers(scheduler_name, timeout):
        sim = Simulator(scheduler=scheduler, processes=processes, max_ticks=ticks)
        metrics = sim.run()
        results[scheduler.name] = metrics

        print_header(f"{scheduler.name}: {len(processes)} processes, {metrics.ticks} ticks")
        print_table(sim.table)

    print_header("Summary")
    for name, metrics in results.items():
        print_metrics(name, metrics)

    return results


def main() -> None:
    """Main entry point with CLI argument parsing."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Tick-driven simulator for FCFS, Round-Robin and Multi-Level Queue scheduling"
    )
    parser.add_argument(
        "--scheduler", "-s", choices=["fcfs", "rr", "mlq", "all"], default="fcfs",
        help="Scheduling policy to run (default: fcfs)"
    )
    parser.add_argument(
        "--ticks", "-n", type=int, default=DEFAULT_MAX_TICKS,
        help=f"Maximum number of ticks (default: {DEFAULT_MAX_TICKS})"
    )
    parser.add_argument(
        "--timeout", "-t", type=int, default=DEFAULT_TIMEOUT,
        help=f"Round-Robin time slice in ticks (default: {DEFAULT_TIMEOUT})"
    )
    parser.add_argument(
        "--seed", type=int, default=DEFAULT_SEED,
        help=f"Random seed (default: {DEFAULT_SEED})"
    )
    parser.add_argument(
        "--plan", "-p", action="append", default=None,
        help='Plan-driven process, e.g. "3E 2P E" or "90:3E 2P E" (repeatable)'
    )
    parser.add_argument(
        "--random", "-r", type=int, default=None, dest="n_random",
        help="Number of random-walk processes to add"
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true",
        help="Enable debug logging"
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s"
    )

    if args.ticks < 1:
        parser.error("--ticks must be a positive integer")
    if args.timeout < 1:
        parser.error("--timeout must be a positive integer")

    run(
        scheduler_name=args.scheduler,
        plans=args.plan,
        n_random=args.n_random,
        ticks=args.ticks,
        timeout=args.timeout,
        seed=args.seed,
    )

    print("\n" + "=" * 70)
    print(" Simulation Complete!")
    print(" Run 'python -m schedsim.plotter' to draw the timelines in results/")
    print("=" * 70 + "\n")


if __name__ == "__main__":
    main()
