"""
Configuration module for the tick-driven scheduling simulator.

This module stores the constants shared by the policies, the process
factory and the CLI. Everything is a plain module-level value; the CLI
flags in ``schedsim.main`` override the defaults for a single run.

Priority Bands:
    - priority > 66        -> High
    - 33 < priority <= 66  -> Normal
    - priority <= 33       -> Low
"""

from typing import Dict, Tuple


# =============================================================================
# Policy Defaults
# =============================================================================

DEFAULT_TIMEOUT: int = 2
"""Round-Robin time slice, in ticks of uninterrupted execution."""

DEFAULT_MAX_TICKS: int = 50
"""Default tick budget for a single driver invocation."""

DEFAULT_SEED: int = 42
"""Default seed for generated workloads."""


# =============================================================================
# Priority Bands (Multi-Level Queue)
# =============================================================================

MIN_PRIORITY: int = 0
MAX_PRIORITY: int = 100

HIGH_PRIORITY_THRESHOLD: int = 66
"""Priorities strictly above this value belong to the High band."""

NORMAL_PRIORITY_THRESHOLD: int = 33
"""Priorities strictly above this value (and not High) belong to Normal."""


# =============================================================================
# Process Identity
# =============================================================================

PID_WIDTH: int = 4
"""Zero-padded width of counter-generated process ids ("0001")."""

TOKEN_ALPHABET: str = "abcdefghijklmnopqrstuvwxyz0123456789"
"""Alphabet used by random-token id generation."""


# =============================================================================
# Random-Walk Transitions
# =============================================================================
# Successors are listed with repetition; a uniform pick over the tuple
# gives the weighted choice (pending is twice as likely as executing).

RANDOM_WALK_CHOICES: Dict[str, Tuple[str, ...]] = {
    "ready": ("executing",),
    "pending": ("pending", "pending", "executing"),
    "executing": ("pending", "pending", "executing", "finished"),
    "finished": ("finished",),
}
