"""Jitter strategies.

A jitter strategy maps a delay magnitude (a non-negative integer, unit-less
until combined with a time scale) to the magnitude actually waited.
Randomizing delays keeps independent callers from retrying in lockstep.
"""

from __future__ import annotations

import random
from typing import Callable, Dict

JitterFunc = Callable[[int], int]


def _check(cap: int) -> int:
    if cap < 0:
        raise ValueError(f"Delay magnitude must be >= 0, got {cap}")
    return int(cap)


def no_jitter(cap: int) -> int:
    """Return the magnitude unchanged (deterministic timing)"""
    return _check(cap)


def full_jitter(cap: int) -> int:
    """Return a uniformly random magnitude in [0, cap).

    There is no integer in [0, cap) to draw from when cap is 0, and only 0
    when cap is 1, so both return 0.
    """
    cap = _check(cap)
    if cap <= 1:
        return 0
    return random.randrange(cap)


def equal_jitter(cap: int) -> int:
    """Return half of the magnitude plus a random share of the other half.

    The result lies in [cap // 2, cap // 2 + cap // 2), which stays below cap.
    With cap < 2 the random half is empty and cap // 2 is returned.
    """
    half = _check(cap) // 2
    if half == 0:
        return half
    return half + random.randrange(half)


JITTER_STRATEGIES: Dict[str, JitterFunc] = {
    "none": no_jitter,
    "full": full_jitter,
    "equal": equal_jitter,
}


def resolve_jitter(name: str) -> JitterFunc:
    """Look up a jitter strategy by name

    Args:
        name: Strategy name (none, full, equal)

    Returns:
        Jitter function

    Raises:
        ValueError: If the name is not registered
    """
    key = name.lower()
    if key not in JITTER_STRATEGIES:
        available = ", ".join(JITTER_STRATEGIES.keys())
        raise ValueError(f"Unknown jitter strategy: {name}. Available strategies: {available}")
    return JITTER_STRATEGIES[key]
