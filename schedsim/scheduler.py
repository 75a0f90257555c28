"""
Scheduler module for the tick-driven scheduling simulator.

Each policy is a pure ``state -> state`` function over an immutable
snapshot: it consumes the ready queue(s) and the process collection of
one tick and returns a brand-new snapshot for the next tick. Nothing in
the previous snapshot is mutated.

Policies Implemented:
    1. FCFSScheduler: non-preemptive, single ready queue
    2. RoundRobinScheduler: FCFS plus a fixed time-slice preemption rule
    3. MultiLevelQueueScheduler: strict-priority bands (High > Normal > Low),
       each running its own FCFS queue, sharing one execution slot

Queue Admission:
    Every tick the ready queue keeps the ids it already held (dropping ids
    of processes that no longer exist) and then appends, in ascending id
    order, every other process that is ``ready`` or whose lookahead
    transition is ``executing``. A pending process that is about to become
    runnable is therefore queued one tick early.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple
import logging

from schedsim.config import DEFAULT_TIMEOUT
from schedsim.process import Band, Process, ProcessState, TransitionCache


logger = logging.getLogger(__name__)

Queue = Tuple[str, ...]


# =============================================================================
# Simulation State
# =============================================================================

def _by_pid(processes: Iterable[Process]) -> Tuple[Process, ...]:
    return tuple(sorted(processes, key=lambda p: p.pid))


@dataclass(frozen=True)
class SchedulerState:
    """
    Snapshot consumed and produced by single-queue policies.

    Attributes:
        queue: Ready queue as process ids, in admission order
        processes: Every tracked process
    """
    queue: Queue = ()
    processes: Tuple[Process, ...] = ()

    @property
    def all_finished(self) -> bool:
        return all(p.is_finished for p in self.processes)

    @property
    def executing(self) -> Optional[Process]:
        return _find_executing(self.processes)

    def process(self, pid: str) -> Optional[Process]:
        """Look a process up by id."""
        return next((p for p in self.processes if p.pid == pid), None)


@dataclass(frozen=True)
class MLQState:
    """
    Snapshot consumed and produced by the Multi-Level Queue policy.

    Attributes:
        queues: One ready queue per populated band
        processes: Every tracked process, across all bands
    """
    queues: Mapping[Band, Queue] = field(default_factory=dict)
    processes: Tuple[Process, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "queues", MappingProxyType(dict(self.queues)))

    @property
    def all_finished(self) -> bool:
        return all(p.is_finished for p in self.processes)

    @property
    def executing(self) -> Optional[Process]:
        return _find_executing(self.processes)

    def band_state(self, band: Band) -> SchedulerState:
        """Single-queue view restricted to one band."""
        return SchedulerState(
            queue=tuple(self.queues.get(band, ())),
            processes=_by_pid(p for p in self.processes if p.band is band),
        )


# =============================================================================
# Shared tick steps
# =============================================================================

def _find_executing(processes: Iterable[Process]) -> Optional[Process]:
    return next(
        (p for p in _by_pid(processes) if p.state is ProcessState.EXECUTING),
        None
    )


def _split_executing(
    processes: Sequence[Process]
) -> Tuple[Optional[Process], List[Process]]:
    """Separate the executing process from the rest (sorted by id)."""
    executing = _find_executing(processes)
    others = [
        p for p in _by_pid(processes)
        if executing is None or p.pid != executing.pid
    ]
    return executing, others


def rebuild_queue(
    queue: Queue,
    processes: Sequence[Process],
    candidates: Sequence[Process],
    cache: TransitionCache
) -> List[str]:
    """
    Rebuild the ready queue for this tick.

    Args:
        queue: Queue from the previous snapshot
        processes: All processes the queue may refer to
        candidates: Processes eligible for admission, sorted by id
        cache: This tick's transition cache

    Returns:
        New queue: surviving ids first, then newly admitted ids
    """
    known = {p.pid for p in processes}
    previous = set(queue)
    kept = [pid for pid in queue if pid in known]

    admitted = [
        p.pid for p in candidates
        if p.pid not in previous and (
            p.state is ProcessState.READY
            or cache.next_state(p) is ProcessState.EXECUTING
        )
    ]
    return kept + admitted


def _promote_head(
    queue: List[str],
    others: List[Process]
) -> Tuple[Optional[Process], List[str], List[Process]]:
    """Pop the queue head and move it into the execution slot."""
    if not queue:
        return None, queue, others

    head = next((p for p in others if p.pid == queue[0]), None)
    if head is None:
        return None, queue, others

    logger.debug("Promoting %s to executing", head.pid)
    promoted = head.advance(ProcessState.EXECUTING)
    remaining = [p for p in others if p.pid != head.pid]
    return promoted, queue[1:], remaining


def _settle(others: Sequence[Process], queue: Sequence[str]) -> List[Process]:
    """Queued processes wait as ``ready``; everyone else repeats its state."""
    queued = set(queue)
    return [
        p.advance(ProcessState.READY) if p.pid in queued else p.advance(p.state)
        for p in others
    ]


# =============================================================================
# Policies
# =============================================================================

class Scheduler(ABC):
    """
    Abstract base class for scheduling policies.

    A scheduler is callable: ``scheduler(state)`` performs one tick and
    returns the successor snapshot, so it can be handed straight to the
    tick driver.
    """

    @abstractmethod
    def step(self, state, cache: Optional[TransitionCache] = None):
        """
        Advance the simulation by one tick.

        Args:
            state: Snapshot of the current tick
            cache: Transition cache to share with a caller running several
                policies in the same tick (a fresh one is used otherwise)

        Returns:
            Snapshot of the next tick
        """
        pass

    @abstractmethod
    def initial_state(self, processes: Iterable[Process]):
        """Build the starting snapshot (empty queues) for ``processes``."""
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable name for this scheduler."""
        pass

    def __call__(self, state):
        return self.step(state)


class FCFSScheduler(Scheduler):
    """
    First-Come-First-Served, non-preemptive.

    The executing process keeps the slot until its own transition leaves
    ``executing``; only then is the queue head promoted.
    """

    def step(
        self,
        state: SchedulerState,
        cache: Optional[TransitionCache] = None
    ) -> SchedulerState:
        cache = cache if cache is not None else TransitionCache()
        executing, others = _split_executing(state.processes)
        updated: List[Process] = []

        proposal = None
        if executing is not None:
            proposal = cache.next_state(executing)
            updated.append(executing.advance(proposal))

        queue = rebuild_queue(state.queue, state.processes, others, cache)

        if proposal is not ProcessState.EXECUTING:
            promoted, queue, others = _promote_head(queue, others)
            if promoted is not None:
                updated.append(promoted)

        updated.extend(_settle(others, queue))
        return SchedulerState(queue=tuple(queue), processes=_by_pid(updated))

    def initial_state(self, processes: Iterable[Process]) -> SchedulerState:
        return SchedulerState(queue=(), processes=_by_pid(processes))

    @property
    def name(self) -> str:
        return "FCFS"


class RoundRobinScheduler(Scheduler):
    """
    Round-Robin: FCFS with a fixed time slice.

    The executing process is forced back to ``ready`` when it would keep
    running, someone is waiting in the queue, and its last ``timeout``
    history entries are all ``executing``.

    Attributes:
        timeout: Time slice length in ticks
    """

    def __init__(self, timeout: int = DEFAULT_TIMEOUT) -> None:
        if timeout < 1:
            raise ValueError(f"Timeout must be >= 1, got {timeout}")
        self.timeout = timeout

    def _slice_used(self, process: Process) -> bool:
        tail = process.history[-self.timeout:]
        return (
            len(process.history) >= self.timeout
            and all(s is ProcessState.EXECUTING for s in tail)
        )

    def step(
        self,
        state: SchedulerState,
        cache: Optional[TransitionCache] = None
    ) -> SchedulerState:
        cache = cache if cache is not None else TransitionCache()
        executing, others = _split_executing(state.processes)
        updated: List[Process] = []

        queue = rebuild_queue(state.queue, state.processes, others, cache)

        committed = None
        if executing is not None:
            proposal = cache.next_state(executing)
            committed = proposal
            if (proposal is ProcessState.EXECUTING
                    and queue
                    and self._slice_used(executing)):
                logger.debug("Time slice expired for %s", executing.pid)
                committed = ProcessState.READY
            updated.append(executing.advance(committed))

        if committed is not ProcessState.EXECUTING:
            promoted, queue, others = _promote_head(queue, others)
            if promoted is not None:
                updated.append(promoted)

        updated.extend(_settle(others, queue))
        return SchedulerState(queue=tuple(queue), processes=_by_pid(updated))

    def initial_state(self, processes: Iterable[Process]) -> SchedulerState:
        return SchedulerState(queue=(), processes=_by_pid(processes))

    @property
    def name(self) -> str:
        return f"RR(timeout={self.timeout})"


def decay_tick(
    state: SchedulerState,
    cache: Optional[TransitionCache] = None
) -> SchedulerState:
    """
    Tick for a band that lost the execution slot to a higher band.

    The queue is rebuilt as usual, but nobody is promoted and a process
    that would keep executing is demoted to ``ready``.
    """
    cache = cache if cache is not None else TransitionCache()
    executing, others = _split_executing(state.processes)
    updated: List[Process] = []

    queue = rebuild_queue(state.queue, state.processes, others, cache)

    if executing is not None:
        proposal = cache.next_state(executing)
        if proposal is ProcessState.EXECUTING:
            logger.debug("Preempting %s for a higher band", executing.pid)
            proposal = ProcessState.READY
        updated.append(executing.advance(proposal))

    updated.extend(_settle(others, queue))
    return SchedulerState(queue=tuple(queue), processes=_by_pid(updated))


class MultiLevelQueueScheduler(Scheduler):
    """
    Strict-priority Multi-Level Queue.

    Populated bands are visited High, Normal, Low. Bands run their own
    policy (FCFS by default) until one of them ends the tick with an
    executing process; every band visited after that runs a decay tick.

    Attributes:
        band_scheduler: Policy run inside each band that may use the slot
    """

    def __init__(self, band_scheduler: Optional[Scheduler] = None) -> None:
        self.band_scheduler = band_scheduler or FCFSScheduler()

    def step(
        self,
        state: MLQState,
        cache: Optional[TransitionCache] = None
    ) -> MLQState:
        cache = cache if cache is not None else TransitionCache()
        populated = sorted({p.band for p in state.processes}, key=lambda b: b.value)

        queues: Dict[Band, Queue] = {}
        updated: List[Process] = []
        slot_taken = False

        for band in populated:
            band_state = state.band_state(band)
            if slot_taken:
                result = decay_tick(band_state, cache)
            else:
                result = self.band_scheduler.step(band_state, cache)
                slot_taken = result.executing is not None

            queues[band] = result.queue
            updated.extend(result.processes)

        return MLQState(queues=queues, processes=_by_pid(updated))

    def initial_state(self, processes: Iterable[Process]) -> MLQState:
        processes = _by_pid(processes)
        bands = sorted({p.band for p in processes}, key=lambda b: b.value)
        return MLQState(queues={band: () for band in bands}, processes=processes)

    @property
    def name(self) -> str:
        return f"MLQ({self.band_scheduler.name})"


# =============================================================================
# Factory function for easy scheduler creation
# =============================================================================

def create_scheduler(
    scheduler_type: str,
    **kwargs
) -> Scheduler:
    """
    Factory function to create schedulers by name.

    Args:
        scheduler_type: "fcfs", "rr" or "mlq"
        **kwargs: Arguments passed to scheduler constructor; "mlq" also
            accepts ``band_policy`` ("fcfs" or "rr") and ``timeout``

    Returns:
        Configured scheduler instance

    Raises:
        ValueError: If scheduler_type is unknown
    """
    kind = scheduler_type.lower()

    if kind == "mlq":
        band_policy = kwargs.pop("band_policy", "fcfs").lower()
        if band_policy == "mlq":
            raise ValueError("MLQ bands cannot themselves be MLQ")
        band_kwargs = {"timeout": kwargs.pop("timeout")} if "timeout" in kwargs else {}
        if band_policy != "rr":
            band_kwargs = {}
        band_scheduler = create_scheduler(band_policy, **band_kwargs)
        return MultiLevelQueueScheduler(band_scheduler=band_scheduler, **kwargs)

    schedulers = {
        "fcfs": FCFSScheduler,
        "rr": RoundRobinScheduler,
    }

    if kind not in schedulers:
        raise ValueError(
            f"Unknown scheduler type: {scheduler_type}. "
            f"Available: {list(schedulers.keys()) + ['mlq']}"
        )

    return schedulers[kind](**kwargs)
