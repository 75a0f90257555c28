"""
Process model and transition functions for the scheduling simulator.

A process is plain, immutable data: an id, its current state, the full
history of states it has been in (one entry per tick) and a *behaviour*
describing how it wants to move next. Two behaviours exist:

    - RandomWalk: weighted random successor for the current state
    - PlanDriven: deterministic replay of a parsed plan ("3E 2P E")

Policies never call a behaviour directly. Each tick they go through a
TransitionCache, so that the lookahead used for queue admission and the
transition that is finally committed always agree.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING, Dict, Tuple, Union
from collections import deque
import random

from schedsim.config import (
    HIGH_PRIORITY_THRESHOLD,
    NORMAL_PRIORITY_THRESHOLD,
    RANDOM_WALK_CHOICES,
)

if TYPE_CHECKING:
    from schedsim.plan import Plan


class ProcessState(Enum):
    """States a simulated process can be in."""
    READY = "ready"
    PENDING = "pending"
    EXECUTING = "executing"
    FINISHED = "finished"

    def __str__(self) -> str:
        return self.value


class Band(Enum):
    """Multi-Level Queue priority bands, listed in visiting order."""
    HIGH = 0
    NORMAL = 1
    LOW = 2

    def __str__(self) -> str:
        return self.name.capitalize()


def band_for_priority(priority: int) -> Band:
    """
    Map a numeric priority onto its band.

    Args:
        priority: Process priority, nominally in [0, 100]

    Returns:
        HIGH above 66, NORMAL above 33, LOW otherwise
    """
    if priority > HIGH_PRIORITY_THRESHOLD:
        return Band.HIGH
    if priority > NORMAL_PRIORITY_THRESHOLD:
        return Band.NORMAL
    return Band.LOW


# =============================================================================
# Behaviours
# =============================================================================

@dataclass(frozen=True)
class RandomWalk:
    """
    Random-walk behaviour.

    The draw for a given (pid, state, history length) is seeded from those
    values plus ``seed``, so re-evaluating the same process at the same
    point always yields the same successor.
    """
    seed: int = 0


@dataclass(frozen=True)
class PlanDriven:
    """Plan-driven behaviour; ``plan`` is consumed strictly in order."""
    plan: "Plan" = field(default_factory=tuple)


Behaviour = Union[RandomWalk, PlanDriven]

History = Tuple[ProcessState, ...]


def _random_walk(
    behaviour: RandomWalk,
    pid: str,
    state: ProcessState,
    history: History
) -> ProcessState:
    if state is ProcessState.FINISHED or ProcessState.FINISHED in history:
        return ProcessState.FINISHED

    choices = RANDOM_WALK_CHOICES[state.value]
    rng = random.Random(f"{behaviour.seed}:{pid}:{state.value}:{len(history)}")
    return ProcessState(rng.choice(choices))


def _drop_exhausted(steps: deque) -> None:
    while steps and steps[0][1] <= 0:
        steps.popleft()


def _replay_plan(behaviour: PlanDriven, history: History) -> ProcessState:
    # Private copy of the plan: (state, remaining ticks)
    steps = deque((step.state, step.duration) for step in behaviour.plan)
    _drop_exhausted(steps)

    for entry in history:
        if entry is ProcessState.FINISHED:
            return ProcessState.FINISHED
        if entry is ProcessState.READY:
            continue
        if not steps:
            return ProcessState.FINISHED

        head_state, remaining = steps[0]
        if entry is head_state:
            steps[0] = (head_state, remaining - 1)
            _drop_exhausted(steps)

    if not steps:
        return ProcessState.FINISHED
    return steps[0][0]


def transition(
    behaviour: Behaviour,
    pid: str,
    state: ProcessState,
    history: History
) -> ProcessState:
    """
    Compute the state a process proposes to move into next.

    This is a pure function: the same behaviour, pid, state and history
    always produce the same result.

    Args:
        behaviour: RandomWalk or PlanDriven variant
        pid: Process id (part of the random-walk seed)
        state: Current state
        history: All states the process has been in so far

    Returns:
        Proposed next state

    Raises:
        TypeError: If behaviour is not a known variant
    """
    if isinstance(behaviour, PlanDriven):
        return _replay_plan(behaviour, history)
    if isinstance(behaviour, RandomWalk):
        return _random_walk(behaviour, pid, state, history)
    raise TypeError(f"Unknown process behaviour: {behaviour!r}")


# =============================================================================
# Process
# =============================================================================

@dataclass(frozen=True)
class Process:
    """
    A simulated unit of work.

    Attributes:
        pid: Unique id; also the tie-break key for queue admission
        behaviour: How the process chooses its next state
        state: Current state
        history: One entry per tick the process has taken part in
        priority: Static priority in [0, 100] (Multi-Level Queue only)
    """
    pid: str
    behaviour: Behaviour = field(default_factory=RandomWalk)
    state: ProcessState = ProcessState.READY
    history: History = ()
    priority: int = 0

    @property
    def band(self) -> Band:
        return band_for_priority(self.priority)

    @property
    def is_finished(self) -> bool:
        return self.state is ProcessState.FINISHED

    @property
    def ticks(self) -> int:
        """Number of ticks this process has been simulated for."""
        return len(self.history)

    def advance(self, next_state: ProcessState) -> "Process":
        """Return a copy moved into ``next_state`` with it appended to history."""
        return replace(self, state=next_state, history=self.history + (next_state,))

    def __repr__(self) -> str:
        return (
            f"Process(pid={self.pid}, state={self.state.value}, "
            f"ticks={len(self.history)}, priority={self.priority})"
        )


class TransitionCache:
    """
    Per-tick memo of proposed transitions.

    Keyed by ``(pid, state, history)``. A policy creates one cache per
    tick and routes both its lookahead and its committed transition through
    it, so the two can never disagree.
    """

    def __init__(self) -> None:
        self._proposals: Dict[Tuple[str, ProcessState, History], ProcessState] = {}
        self.hits = 0
        self.misses = 0

    def next_state(self, process: Process) -> ProcessState:
        """Proposed next state for ``process``, computed at most once."""
        key = (process.pid, process.state, process.history)
        if key in self._proposals:
            self.hits += 1
            return self._proposals[key]

        self.misses += 1
        proposal = transition(process.behaviour, process.pid, process.state, process.history)
        self._proposals[key] = proposal
        return proposal

    def __len__(self) -> int:
        return len(self._proposals)
