"""
Tests for the timeline and comparison plots.
"""

import matplotlib
matplotlib.use("Agg")

import numpy as np
import pytest

import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from schedsim.plan import parse_plans
from schedsim.plotter import (
    STATE_CODES,
    generate_all_plots,
    plot_metrics_comparison,
    plot_timeline,
    timeline_matrix,
)
from schedsim.process import PlanDriven, Process, ProcessState
from schedsim.scheduler import FCFSScheduler, SchedulerState
from schedsim.simulator import HistoryTable, compute_metrics, execute


E = ProcessState.EXECUTING
R = ProcessState.READY


def two_job_table() -> HistoryTable:
    state = SchedulerState(processes=(
        Process(pid="P1", behaviour=PlanDriven(parse_plans("2E"))),
        Process(pid="P2", behaviour=PlanDriven(parse_plans("2E"))),
    ))
    return execute(FCFSScheduler(), state, 10)


class TestTimelineMatrix:
    """Tests for encoding a table as state codes."""

    def test_shape_and_codes(self) -> None:
        """Verify one row per process and one column per tick."""
        matrix = timeline_matrix(two_job_table())
        assert matrix.shape == (2, 5)
        assert matrix[0, 0] == STATE_CODES[E]
        assert matrix[1, 0] == STATE_CODES[R]

    def test_missing_cells(self) -> None:
        """Verify padded cells are encoded as -1."""
        table = HistoryTable.from_processes([
            Process(pid="a", state=E, history=(R, E)),
            Process(pid="b", state=R, history=(R,)),
        ])
        matrix = timeline_matrix(table)
        assert np.array_equal(matrix[1], [STATE_CODES[R], -1])


class TestPlots:
    """Tests that plots are written to disk."""

    def test_plot_timeline(self, tmp_path, capsys) -> None:
        """Verify a timeline image is saved."""
        output = tmp_path / "timeline.png"
        plot_timeline(two_job_table(), output_path=str(output))
        assert output.exists()
        assert "Saved:" in capsys.readouterr().out

    def test_plot_metrics_comparison(self, tmp_path) -> None:
        """Verify the comparison chart is saved."""
        output = tmp_path / "comparison.png"
        metrics = compute_metrics(two_job_table())
        plot_metrics_comparison({"FCFS": metrics}, output_path=str(output))
        assert output.exists()

    def test_generate_all_plots(self, tmp_path) -> None:
        """Verify every policy gets a timeline plus one comparison chart."""
        results = generate_all_plots(count=4, seed=3, max_ticks=20, output_dir=str(tmp_path))

        assert list(results) == ["FCFS", "RR(timeout=2)", "MLQ(FCFS)"]
        for name in ("fcfs", "rr", "mlq"):
            assert (tmp_path / f"timeline_{name}.png").exists()
        assert (tmp_path / "metrics_comparison.png").exists()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
