"""
Workload generation module for the scheduling simulator.

Processes are created once, before the simulation starts, and are never
added or removed mid-run. This module provides:

    - Id generators (sequential counter or random tokens), passed
      explicitly into the factory rather than kept as hidden global state
    - ProcessFactory: builds random-walk and plan-driven processes
    - WorkloadGenerator: reproducible, seeded mixes of both kinds
"""

from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Set, Union
import random

from schedsim.config import (
    DEFAULT_SEED,
    MAX_PRIORITY,
    MIN_PRIORITY,
    PID_WIDTH,
    TOKEN_ALPHABET,
)
from schedsim.plan import Plan, PlanStep, parse_plans
from schedsim.process import PlanDriven, Process, ProcessState, RandomWalk


IdGenerator = Callable[[], str]


class CounterIdGenerator:
    """
    Sequential, zero-padded ids: "0001", "0002", ...

    Zero padding keeps lexicographic order equal to creation order.
    """

    def __init__(self, start: int = 1, width: int = PID_WIDTH) -> None:
        self._next = start
        self.width = width

    def __call__(self) -> str:
        pid = str(self._next).zfill(self.width)
        self._next += 1
        return pid


class TokenIdGenerator:
    """Random alphanumeric ids, unique within one generator."""

    def __init__(self, seed: Optional[int] = None, length: int = 8) -> None:
        if length < 1:
            raise ValueError(f"Token length must be >= 1, got {length}")
        self.length = length
        self._rng = random.Random(seed)
        self._issued: Set[str] = set()

    def __call__(self) -> str:
        while True:
            token = "".join(self._rng.choice(TOKEN_ALPHABET) for _ in range(self.length))
            if token not in self._issued:
                self._issued.add(token)
                return token


def _check_priority(priority: int) -> int:
    if not MIN_PRIORITY <= priority <= MAX_PRIORITY:
        raise ValueError(
            f"Priority must be in [{MIN_PRIORITY}, {MAX_PRIORITY}], got {priority}"
        )
    return priority


class ProcessFactory:
    """
    Creates processes with unique ids.

    Every process starts ``ready`` with an empty history.

    Attributes:
        id_generator: Callable returning a fresh id on every call
    """

    def __init__(
        self,
        id_generator: Optional[IdGenerator] = None,
        seed: Optional[int] = None
    ) -> None:
        self.id_generator = id_generator or CounterIdGenerator()
        self._rng = random.Random(seed)

    def random_process(self, priority: int = 0, seed: Optional[int] = None) -> Process:
        """
        Create a random-walk process.

        Args:
            priority: Static priority in [0, 100]
            seed: Seed for the walk (drawn from the factory if omitted)
        """
        if seed is None:
            seed = self._rng.randrange(2 ** 32)
        return Process(
            pid=self.id_generator(),
            behaviour=RandomWalk(seed=seed),
            state=ProcessState.READY,
            priority=_check_priority(priority),
        )

    def planned_process(
        self,
        plan: Union[Plan, str, Sequence[str]],
        priority: int = 0
    ) -> Process:
        """
        Create a plan-driven process.

        Args:
            plan: A parsed plan, or DSL text such as "3E 2P E"
            priority: Static priority in [0, 100]
        """
        if isinstance(plan, str):
            steps = parse_plans(plan)
        elif all(isinstance(step, PlanStep) for step in plan):
            steps = tuple(plan)
        else:
            steps = parse_plans(list(plan))

        return Process(
            pid=self.id_generator(),
            behaviour=PlanDriven(plan=steps),
            state=ProcessState.READY,
            priority=_check_priority(priority),
        )

    def random_processes(self, count: int, priority: int = 0) -> List[Process]:
        """Create ``count`` random-walk processes sharing one priority."""
        return [self.random_process(priority=priority) for _ in range(count)]


@dataclass
class WorkloadGenerator:
    """
    Generates a reproducible mix of random-walk and plan-driven processes.

    Attributes:
        count: Number of processes to create
        seed: Random seed for reproducibility
        planned_fraction: Share of processes that follow a random plan
        max_plan_steps: Upper bound on steps in a generated plan
        max_step_duration: Upper bound on a generated step's duration
        prioritized: Draw a random priority per process (else 0)

    Example:
        >>> gen = WorkloadGenerator(count=5, seed=42)
        >>> [p.pid for p in gen.generate()]
        ['0001', '0002', '0003', '0004', '0005']
    """
    count: int
    seed: Optional[int] = DEFAULT_SEED
    planned_fraction: float = 0.5
    max_plan_steps: int = 4
    max_step_duration: int = 4
    prioritized: bool = True
    _rng: random.Random = field(default_factory=random.Random, repr=False)

    def __post_init__(self) -> None:
        """Initialize the random number generator with seed if provided."""
        if self.count < 0:
            raise ValueError(f"Process count must be >= 0, got {self.count}")
        if not 0.0 <= self.planned_fraction <= 1.0:
            raise ValueError(
                f"planned_fraction must be in [0, 1], got {self.planned_fraction}"
            )
        if self.seed is not None:
            self._rng.seed(self.seed)

    def random_plan(self) -> Plan:
        """
        Draw a random plan.

        Plans open and close with an executing step and alternate freely
        between pending and executing in between. A plan ending on a
        pending step never reaches the slot again, so it would never finish.
        """
        n_steps = self._rng.randint(1, self.max_plan_steps)
        steps = [PlanStep(ProcessState.EXECUTING, self._rng.randint(1, self.max_step_duration))]
        for _ in range(n_steps - 2):
            state = self._rng.choice([ProcessState.PENDING, ProcessState.EXECUTING])
            steps.append(PlanStep(state, self._rng.randint(1, self.max_step_duration)))
        if n_steps > 1:
            steps.append(PlanStep(ProcessState.EXECUTING, self._rng.randint(1, self.max_step_duration)))
        return tuple(steps)

    def generate(self, factory: Optional[ProcessFactory] = None) -> List[Process]:
        """
        Generate the workload.

        Args:
            factory: Factory to build with (a counter-id factory seeded
                from this generator is used if omitted)

        Returns:
            List of processes, in creation order
        """
        factory = factory or ProcessFactory(seed=self._rng.randrange(2 ** 32))
        processes: List[Process] = []

        for _ in range(self.count):
            priority = (
                self._rng.randint(MIN_PRIORITY, MAX_PRIORITY) if self.prioritized else 0
            )
            if self._rng.random() < self.planned_fraction:
                processes.append(factory.planned_process(self.random_plan(), priority=priority))
            else:
                processes.append(factory.random_process(priority=priority))

        return processes
