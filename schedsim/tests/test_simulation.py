"""
Test suite for the tick driver and end-to-end simulation.

This module tests:
    1. History table assembly and the all-finished early stop
    2. Lockstep history growth across every process
    3. Determinism of repeated runs
    4. Metrics, comparisons and the CLI entry point
"""

import pytest

import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from schedsim.plan import parse_plans
from schedsim.process import PlanDriven, Process, ProcessState
from schedsim.scheduler import (
    FCFSScheduler,
    MultiLevelQueueScheduler,
    RoundRobinScheduler,
    SchedulerState,
)
from schedsim.simulator import (
    HistoryTable,
    Simulator,
    compare_schedulers,
    compute_metrics,
    execute,
    iterate,
    run_simulation,
)
from schedsim.workload import WorkloadGenerator
from schedsim import main as cli


E = ProcessState.EXECUTING
P = ProcessState.PENDING
R = ProcessState.READY
F = ProcessState.FINISHED


def planned(pid: str, plan: str, priority: int = 0) -> Process:
    return Process(pid=pid, behaviour=PlanDriven(parse_plans(plan)), priority=priority)


def two_jobs() -> SchedulerState:
    return SchedulerState(processes=(planned("P1", "2E"), planned("P2", "2E")))


# =============================================================================
# Tick driver
# =============================================================================

class TestExecute:
    """Tests for the functional tick driver."""

    def test_stops_when_all_finished(self) -> None:
        """Verify the loop ends on the first all-finished tick."""
        table = execute(FCFSScheduler(), two_jobs(), 100)
        assert len(table) == 5

    def test_respects_budget(self) -> None:
        """Verify the loop never runs more than n ticks."""
        table = execute(FCFSScheduler(), two_jobs(), 3)
        assert len(table) == 3
        assert table.column("P2") == [R, R, E]

    def test_invalid_budget(self) -> None:
        """Verify a non-positive budget raises ValueError."""
        with pytest.raises(ValueError, match="positive integer"):
            execute(FCFSScheduler(), two_jobs(), 0)

    def test_empty_process_set(self) -> None:
        """Verify an empty simulation yields an empty table."""
        table = execute(FCFSScheduler(), SchedulerState(), 10)
        assert len(table) == 0
        assert table.pids == ()

    def test_table_columns_sorted(self) -> None:
        """Verify columns are ordered by ascending id."""
        state = SchedulerState(processes=(planned("b", "E"), planned("a", "E")))
        table = execute(FCFSScheduler(), state, 10)
        assert table.pids == ("a", "b")
        assert list(table.as_records()[0]) == ["a", "b"]

    def test_records_are_plain_strings(self) -> None:
        """Verify as_records exposes state names for renderers."""
        records = execute(FCFSScheduler(), two_jobs(), 10).as_records()
        assert records[0] == {"P1": "executing", "P2": "ready"}
        assert records[-1] == {"P1": "finished", "P2": "finished"}

    def test_plain_callable_policy(self) -> None:
        """Verify any state -> state callable can drive the loop."""
        fcfs = FCFSScheduler()
        table = execute(lambda state: fcfs.step(state), two_jobs(), 10)
        assert table.column("P1") == [E, E, F, F, F]

    def test_lockstep_histories(self) -> None:
        """Verify every process gains exactly one entry per tick."""
        for scheduler in (FCFSScheduler(), RoundRobinScheduler(), MultiLevelQueueScheduler()):
            processes = WorkloadGenerator(count=7, seed=11).generate()
            state = scheduler.initial_state(processes)
            for tick, snapshot in enumerate(iterate(scheduler, state, 40), start=1):
                assert {len(p.history) for p in snapshot.processes} == {tick}

    def test_deterministic_runs(self) -> None:
        """Verify identical invocations produce identical tables."""
        processes = WorkloadGenerator(count=6, seed=5).generate()
        for scheduler in (FCFSScheduler(), RoundRobinScheduler(), MultiLevelQueueScheduler()):
            first = execute(scheduler, scheduler.initial_state(processes), 50)
            second = execute(scheduler, scheduler.initial_state(processes), 50)
            assert first.as_records() == second.as_records()


class TestHistoryTable:
    """Tests for HistoryTable assembly."""

    def test_ragged_histories_padded(self) -> None:
        """Verify shorter histories are padded with None."""
        processes = [
            Process(pid="a", state=E, history=(R, E)),
            Process(pid="b", state=R, history=(R,)),
        ]
        table = HistoryTable.from_processes(processes)
        assert len(table) == 2
        assert table.column("b") == [R, None]
        assert table.as_records()[1] == {"a": "executing", "b": None}

    def test_executing_at(self) -> None:
        table = execute(FCFSScheduler(), two_jobs(), 10)
        assert table.executing_at(0) == ["P1"]
        assert table.executing_at(4) == []

    def test_rows_are_read_only(self) -> None:
        """Verify a recorded tick cannot be rewritten."""
        table = execute(FCFSScheduler(), two_jobs(), 10)
        with pytest.raises(TypeError):
            table.rows[0]["P1"] = F
        assert table.rows[0]["P1"] is E


# =============================================================================
# Metrics
# =============================================================================

class TestMetrics:
    """Tests for metrics derived from the history table."""

    def test_two_job_metrics(self) -> None:
        """Verify waiting, completion, utilization and switches."""
        metrics = compute_metrics(execute(FCFSScheduler(), two_jobs(), 10))

        assert metrics.ticks == 5
        assert metrics.finished == 2
        assert metrics.waiting == {"P1": 0, "P2": 2}
        assert metrics.completion == {"P1": 3, "P2": 5}
        assert metrics.cpu_utilization == pytest.approx(0.8)
        assert metrics.context_switches == 1
        assert metrics.avg_waiting == pytest.approx(1.0)
        assert metrics.avg_completion == pytest.approx(4.0)

    def test_unfinished_process(self) -> None:
        """Verify a process cut off by the budget has no completion tick."""
        metrics = compute_metrics(execute(FCFSScheduler(), two_jobs(), 2))
        assert metrics.completion == {"P1": None, "P2": None}
        assert metrics.finished == 0

    def test_round_robin_switches_more(self) -> None:
        """Verify time slicing causes more context switches than FCFS."""
        state = SchedulerState(processes=(planned("P1", "4E"), planned("P2", "4E")))
        fcfs = compute_metrics(execute(FCFSScheduler(), state, 30))
        rr = compute_metrics(execute(RoundRobinScheduler(timeout=2), state, 30))
        assert fcfs.context_switches == 1
        assert rr.context_switches == 3


class TestSimulator:
    """Tests for the Simulator wrapper."""

    def test_snapshots_recorded(self) -> None:
        """Verify one snapshot per tick is kept."""
        sim = Simulator(FCFSScheduler(), [planned("P1", "2E"), planned("P2", "2E")], max_ticks=10)
        metrics = sim.run()

        assert len(sim.snapshots) == 5
        assert metrics.ticks == 5
        assert sim.table.as_records() == execute(FCFSScheduler(), two_jobs(), 10).as_records()

    def test_run_simulation_generates_workload(self) -> None:
        """Verify run_simulation builds a seeded workload when none is given."""
        first = run_simulation(RoundRobinScheduler(), count=4, seed=9, max_ticks=30)
        second = run_simulation(RoundRobinScheduler(), count=4, seed=9, max_ticks=30)
        assert first.total_processes == 4
        assert first == second

    def test_compare_schedulers(self) -> None:
        """Verify every scheduler runs over the shared workload."""
        processes = WorkloadGenerator(count=5, seed=2).generate()
        results = compare_schedulers(
            [FCFSScheduler(), RoundRobinScheduler(), MultiLevelQueueScheduler()],
            processes,
            max_ticks=40
        )
        assert list(results) == ["FCFS", "RR(timeout=2)", "MLQ(FCFS)"]
        for metrics in results.values():
            assert metrics.total_processes == 5

    def test_compare_schedulers_by_name(self) -> None:
        """Verify policy names are resolved through the factory."""
        processes = WorkloadGenerator(count=5, seed=2).generate()
        by_name = compare_schedulers(["fcfs", "rr", "mlq"], processes, max_ticks=40)
        by_instance = compare_schedulers(
            [FCFSScheduler(), RoundRobinScheduler(), MultiLevelQueueScheduler()],
            processes,
            max_ticks=40
        )
        assert by_name == by_instance

    def test_compare_schedulers_unknown_name(self) -> None:
        with pytest.raises(ValueError, match="Unknown scheduler type"):
            compare_schedulers(["sjf"], [], max_ticks=5)


# =============================================================================
# CLI
# =============================================================================

class TestMain:
    """Tests for the command-line helpers."""

    def test_parse_plan_argument(self) -> None:
        assert cli.parse_plan_argument("90:3E 2P") == (90, "3E 2P")
        assert cli.parse_plan_argument("3E 2P") == (0, "3E 2P")

    def test_build_workload_demo(self) -> None:
        """Verify the demo workload is used when nothing is requested."""
        processes = cli.build_workload(None, None, seed=1)
        assert len(processes) == len(cli.DEMO_PLANS) + cli.DEMO_RANDOM

    def test_run_prints_table(self, capsys) -> None:
        """Verify run prints a table and a summary for each scheduler."""
        results = cli.run("all", plans=["2E", "90:2E"], ticks=20)
        out = capsys.readouterr().out

        assert set(results) == {"FCFS", "RR(timeout=2)", "MLQ(FCFS)"}
        assert "Summary" in out
        assert "executing" in out


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
