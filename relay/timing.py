"""Humanlike reply latency policy."""

from __future__ import annotations

import random
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class DelayRange:
    """Inclusive delay bounds in milliseconds."""

    min_ms: int
    max_ms: int


@dataclass(frozen=True, slots=True)
class ReplyTiming:
    """Delay ranges and activity windows used by conversation actors.

    ``idle`` is the long delay for cold conversations, ``read`` the short one
    for conversations with recent traffic (also used between a read receipt
    and typing), ``typing`` the minimum time spent "typing" before a reply.
    """

    idle: DelayRange = DelayRange(60_000, 600_000)
    read: DelayRange = DelayRange(5_000, 15_000)
    typing: DelayRange = DelayRange(2_000, 5_000)
    staleness_default_seconds: int = 60
    staleness_business_seconds: int = 15 * 60


def random_between(low: int, high: int, rng: random.Random | None = None) -> int:
    """Return a uniformly distributed integer in ``[low, high]``."""

    if low > high:
        raise ValueError("The 'low' value must be less than or equal to the 'high' value.")
    return (rng or random).randint(low, high)


def delay_range(is_active: bool, timing: ReplyTiming) -> DelayRange:
    """Pick the scheduling range for a conversation."""

    return timing.read if is_active else timing.idle


def pick_delay_ms(delay: DelayRange, rng: random.Random | None = None) -> int:
    return random_between(delay.min_ms, delay.max_ms, rng)
