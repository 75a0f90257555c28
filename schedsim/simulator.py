"""
Tick driver for the scheduling simulator.

This module repeatedly applies a policy to a snapshot until the tick
budget is spent or every process has finished, then assembles the
aligned history table: one row per tick, one column per process id.

Simulation Approach:
    Time advances in fixed ticks. Each tick is a pure ``state -> state``
    transformation, so the driver only has to thread the snapshot through
    the policy and watch for the all-finished condition. The budget ``n``
    is a hard iteration cap; there is no wall-clock element.

The table is the artifact consumed by the CLI and the plotter; metrics
are derived from it after the fact.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Callable, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple, TypeVar, Union
import logging

from schedsim.config import DEFAULT_MAX_TICKS, DEFAULT_SEED
from schedsim.process import Process, ProcessState
from schedsim.scheduler import Scheduler, create_scheduler
from schedsim.workload import WorkloadGenerator


logger = logging.getLogger(__name__)

State = TypeVar("State")
Policy = Callable[[State], State]


@dataclass(frozen=True)
class HistoryTable:
    """
    Aligned per-tick history of every process.

    Attributes:
        pids: Process ids, ascending
        rows: One mapping ``pid -> state`` per tick (missing entries are
            None if some history is shorter than the longest one)
    """
    pids: Tuple[str, ...]
    rows: Tuple[Mapping[str, Optional[ProcessState]], ...]

    @classmethod
    def from_processes(cls, processes: Sequence[Process]) -> "HistoryTable":
        ordered = sorted(processes, key=lambda p: p.pid)
        length = max((len(p.history) for p in ordered), default=0)
        rows = tuple(
            MappingProxyType({p.pid: (p.history[i] if i < len(p.history) else None) for p in ordered})
            for i in range(length)
        )
        return cls(pids=tuple(p.pid for p in ordered), rows=rows)

    def column(self, pid: str) -> List[Optional[ProcessState]]:
        """States of one process, tick by tick."""
        return [row[pid] for row in self.rows]

    def executing_at(self, tick: int) -> List[str]:
        """Ids executing at a 0-based tick index."""
        return [pid for pid, s in self.rows[tick].items() if s is ProcessState.EXECUTING]

    def as_records(self) -> List[Dict[str, Optional[str]]]:
        """Rows as plain ``{pid: "state"}`` dicts, ready for rendering."""
        return [
            {pid: (s.value if s is not None else None) for pid, s in row.items()}
            for row in self.rows
        ]

    def __len__(self) -> int:
        return len(self.rows)


def iterate(policy: Policy, state: State, n: int) -> Iterator[State]:
    """
    Yield successive snapshots produced by ``policy``.

    Stops after ``n`` ticks, or right after the first tick in which every
    process is finished.

    Args:
        policy: One-tick transformation
        state: Initial snapshot (must expose ``processes``)
        n: Maximum number of ticks

    Raises:
        ValueError: If n is not a positive integer
    """
    if not isinstance(n, int) or n < 1:
        raise ValueError(f"Tick budget must be a positive integer, got {n!r}")

    for tick in range(1, n + 1):
        state = policy(state)
        yield state
        if all(p.is_finished for p in state.processes):
            logger.debug("All processes finished after %d ticks", tick)
            return


def execute(policy: Policy, state: State, n: int) -> HistoryTable:
    """
    Run ``policy`` from ``state`` for at most ``n`` ticks.

    Args:
        policy: Scheduler (or any ``state -> state`` callable)
        state: Initial snapshot
        n: Tick budget

    Returns:
        The aligned history table of the final snapshot
    """
    for state in iterate(policy, state, n):
        pass
    return HistoryTable.from_processes(state.processes)


# =============================================================================
# Metrics
# =============================================================================

@dataclass
class SimulationMetrics:
    """
    Aggregated metrics from a simulation run.

    Attributes:
        ticks: Number of ticks simulated
        total_processes: Number of tracked processes
        finished: Processes that reached ``finished``
        cpu_utilization: Fraction of ticks with a process executing
        context_switches: Changes of executing process between busy ticks
        waiting: Ticks each process spent ``ready``
        completion: 1-based tick at which each process first showed
            ``finished`` (None if it never did)
    """
    ticks: int
    total_processes: int
    finished: int
    cpu_utilization: float
    context_switches: int
    waiting: Dict[str, int] = field(default_factory=dict)
    completion: Dict[str, Optional[int]] = field(default_factory=dict)

    @property
    def avg_waiting(self) -> float:
        if not self.waiting:
            return 0.0
        return sum(self.waiting.values()) / len(self.waiting)

    @property
    def avg_completion(self) -> float:
        done = [t for t in self.completion.values() if t is not None]
        return sum(done) / len(done) if done else 0.0

    def __str__(self) -> str:
        return (
            f"Ticks: {self.ticks}, "
            f"Finished: {self.finished}/{self.total_processes}, "
            f"CPU: {self.cpu_utilization:.0%}, "
            f"Avg Wait: {self.avg_waiting:.2f}, "
            f"Switches: {self.context_switches}"
        )


def compute_metrics(table: HistoryTable) -> SimulationMetrics:
    """Derive aggregate metrics from a history table."""
    waiting: Dict[str, int] = {}
    completion: Dict[str, Optional[int]] = {}

    for pid in table.pids:
        column = table.column(pid)
        waiting[pid] = sum(1 for s in column if s is ProcessState.READY)
        completion[pid] = next(
            (i + 1 for i, s in enumerate(column) if s is ProcessState.FINISHED),
            None
        )

    busy = 0
    switches = 0
    previous = None
    for tick in range(len(table)):
        running = table.executing_at(tick)
        if not running:
            continue
        busy += 1
        if previous is not None and running[0] != previous:
            switches += 1
        previous = running[0]

    return SimulationMetrics(
        ticks=len(table),
        total_processes=len(table.pids),
        finished=sum(1 for t in completion.values() if t is not None),
        cpu_utilization=busy / len(table) if len(table) else 0.0,
        context_switches=switches,
        waiting=waiting,
        completion=completion,
    )


class Simulator:
    """
    Stateful wrapper around the tick driver.

    Keeps every intermediate snapshot so a run can be inspected tick by
    tick after the fact.

    Attributes:
        scheduler: Policy to evaluate
        initial: Starting snapshot built by the scheduler
        max_ticks: Tick budget
        snapshots: Snapshots produced so far, one per tick
        table: History table of the last run (None before ``run``)
    """

    def __init__(
        self,
        scheduler: Scheduler,
        processes: Sequence[Process],
        max_ticks: int = DEFAULT_MAX_TICKS
    ) -> None:
        self.scheduler = scheduler
        self.initial = scheduler.initial_state(processes)
        self.max_ticks = max_ticks
        self.snapshots: list = []
        self.table: Optional[HistoryTable] = None

    def run(self) -> SimulationMetrics:
        """Execute the full simulation and return metrics."""
        self.snapshots = list(iterate(self.scheduler, self.initial, self.max_ticks))
        final = self.snapshots[-1] if self.snapshots else self.initial
        self.table = HistoryTable.from_processes(final.processes)
        return compute_metrics(self.table)


def run_simulation(
    scheduler: Scheduler,
    processes: Optional[Sequence[Process]] = None,
    count: int = 5,
    seed: Optional[int] = DEFAULT_SEED,
    max_ticks: int = DEFAULT_MAX_TICKS
) -> SimulationMetrics:
    """
    Convenience function to run a complete simulation.

    Args:
        scheduler: Scheduler policy to evaluate
        processes: Workload to run (generated from count/seed if omitted)
        count: Number of processes to generate
        seed: Random seed for the generated workload
        max_ticks: Tick budget

    Returns:
        SimulationMetrics from the simulation
    """
    if processes is None:
        processes = WorkloadGenerator(count=count, seed=seed).generate()

    sim = Simulator(scheduler=scheduler, processes=processes, max_ticks=max_ticks)
    return sim.run()


def compare_schedulers(
    schedulers: Sequence[Union[str, Scheduler]],
    processes: Sequence[Process],
    max_ticks: int = DEFAULT_MAX_TICKS
) -> Dict[str, SimulationMetrics]:
    """
    Run several schedulers over the same workload.

    Processes are immutable, so the same list is safely shared between
    runs.

    Args:
        schedulers: Scheduler instances, or names understood by
            ``create_scheduler`` ("fcfs", "rr", "mlq")
        processes: Shared workload
        max_ticks: Tick budget per run

    Returns:
        Dict: {scheduler_name: metrics}
    """
    results: Dict[str, SimulationMetrics] = {}
    for scheduler in schedulers:
        if isinstance(scheduler, str):
            scheduler = create_scheduler(scheduler)
        results[scheduler.name] = run_simulation(
            scheduler=scheduler,
            processes=processes,
            max_ticks=max_ticks
        )
        logger.debug("%s: %s", scheduler.name, results[scheduler.name])
    return results
