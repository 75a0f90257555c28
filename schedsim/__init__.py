"""
Tick-Driven CPU Scheduling Simulator

A discrete-time simulator for comparing CPU scheduling policies over a
fixed set of logical processes, one tick at a time.

Key Components:
    - config: Simulation constants and defaults
    - plan: Plan DSL parser ("3E 2P E")
    - process: Process model, states, bands and transition functions
    - workload: Process factory, id generators, random workloads
    - scheduler: FCFS, Round-Robin and Multi-Level Queue policies
    - simulator: Tick driver, history table and metrics
    - plotter: Visualization utilities

Usage:
    # Run a simulation
    python -m schedsim.main --scheduler all

    # Generate plots
    python -m schedsim.plotter

    # Run tests
    pytest schedsim/tests/
"""

from schedsim.config import (
    DEFAULT_TIMEOUT,
    DEFAULT_MAX_TICKS,
)

from schedsim.process import (
    ProcessState,
    Band,
    RandomWalk,
    PlanDriven,
    Process,
    TransitionCache,
    band_for_priority,
    transition,
)

from schedsim.plan import (
    PlanStep,
    parse_plans,
    total_duration,
)

from schedsim.workload import (
    CounterIdGenerator,
    TokenIdGenerator,
    ProcessFactory,
    WorkloadGenerator,
)

from schedsim.scheduler import (
    Scheduler,
    SchedulerState,
    MLQState,
    FCFSScheduler,
    RoundRobinScheduler,
    MultiLevelQueueScheduler,
    create_scheduler,
)

from schedsim.simulator import (
    HistoryTable,
    Simulator,
    SimulationMetrics,
    execute,
    run_simulation,
    compare_schedulers,
)

__version__ = "0.1.0"

__all__ = [
    # Config
    "DEFAULT_TIMEOUT",
    "DEFAULT_MAX_TICKS",
    # Process
    "ProcessState",
    "Band",
    "RandomWalk",
    "PlanDriven",
    "Process",
    "TransitionCache",
    "band_for_priority",
    "transition",
    # Plan
    "PlanStep",
    "parse_plans",
    "total_duration",
    # Workload
    "CounterIdGenerator",
    "TokenIdGenerator",
    "ProcessFactory",
    "WorkloadGenerator",
    # Scheduler
    "Scheduler",
    "SchedulerState",
    "MLQState",
    "FCFSScheduler",
    "RoundRobinScheduler",
    "MultiLevelQueueScheduler",
    "create_scheduler",
    # Simulator
    "HistoryTable",
    "Simulator",
    "SimulationMetrics",
    "execute",
    "run_simulation",
    "compare_schedulers",
]
