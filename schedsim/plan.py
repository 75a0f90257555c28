"""
Plan DSL parser for plan-driven processes.

A plan is written as a compact list of tokens such as ``"3E 2P E"``: each
token is an optional decimal duration (default 1) followed by ``E``
(executing) or ``P`` (pending), case-insensitive. Tokens may be separated
by spaces, commas, semicolons or pipes, and may be spread over several
arguments.

Malformed tokens are dropped and parsing carries on with the rest of the
input, so a typo in one step never discards the whole plan.

Example:
    >>> parse_plans("3E 2P E")
    (PlanStep(state=<ProcessState.EXECUTING: 'executing'>, duration=3), ...)
"""

from dataclasses import dataclass
from typing import Iterable, Iterator, Optional, Tuple, Union
import logging
import re

from schedsim.process import ProcessState


logger = logging.getLogger(__name__)

_SEPARATORS = re.compile(r"[\s,;|]+")
_TOKEN = re.compile(r"^(\d*)([EePp])$", re.ASCII)

_SUFFIX_STATES = {
    "e": ProcessState.EXECUTING,
    "p": ProcessState.PENDING,
}


@dataclass(frozen=True)
class PlanStep:
    """
    One step of a plan: stay in ``state`` for ``duration`` ticks.

    Attributes:
        state: Either PENDING or EXECUTING
        duration: Number of ticks the step lasts (0 is kept but is
            exhausted immediately)
    """
    state: ProcessState
    duration: int

    def __str__(self) -> str:
        return f"{self.duration}{self.state.value[0].upper()}"


Plan = Tuple[PlanStep, ...]

PlanSource = Union[str, Iterable[str]]


def _tokens(plans: Tuple[PlanSource, ...]) -> Iterator[str]:
    for source in plans:
        texts = [source] if isinstance(source, str) else list(source)
        for text in texts:
            for token in _SEPARATORS.split(text):
                if token:
                    yield token


def parse_token(token: str) -> Optional[PlanStep]:
    """
    Parse a single plan token.

    Args:
        token: Text such as ``"3E"``, ``"p"`` or ``"12P"``

    Returns:
        The parsed step, or None if the token is malformed
    """
    match = _TOKEN.match(token.strip())
    if match is None:
        return None

    digits, suffix = match.groups()
    duration = int(digits) if digits else 1
    return PlanStep(state=_SUFFIX_STATES[suffix.lower()], duration=duration)


def parse_plans(*plans: PlanSource) -> Plan:
    """
    Parse one or more plan descriptions into an ordered plan.

    Args:
        *plans: Strings, or lists of strings, holding plan tokens

    Returns:
        Tuple of plan steps in input order; malformed tokens are skipped
    """
    steps = []
    for token in _tokens(plans):
        step = parse_token(token)
        if step is None:
            logger.debug("Dropping malformed plan token %r", token)
            continue
        steps.append(step)
    return tuple(steps)


def total_duration(plan: Plan) -> int:
    """Total number of ticks a plan asks for across all of its steps."""
    return sum(max(step.duration, 0) for step in plan)


def format_plan(plan: Plan) -> str:
    """Render a plan back into DSL form, e.g. ``"3E 2P 1E"``."""
    return " ".join(str(step) for step in plan)
