"""Delay and drop decisions for the simulated network.

Both legs of an exchange (request and response) ask the same policy, so a
test can swap in a deterministic one without touching the router.
"""
from __future__ import annotations

import random
from typing import Iterable, Optional, Protocol


class DelayPolicy(Protocol):
    def next_delay(self, min_ms: int, max_ms: int) -> int: ...


class DropPolicy(Protocol):
    def should_drop(self, probability: float) -> bool: ...


def next_delay(min_ms: int, max_ms: int, rng: random.Random | None = None) -> int:
    if min_ms < 0 or max_ms < min_ms:
        raise ValueError(f"bad delay range [{min_ms}, {max_ms}]")
    return (rng or random).randint(int(min_ms), int(max_ms))


def should_drop(probability: float, rng: random.Random | None = None) -> bool:
    if not 0.0 <= probability <= 1.0:
        raise ValueError(f"bad drop probability {probability}")
    if probability <= 0:
        return False
    return (rng or random).random() < probability


class RandomPolicy:
    """Uniform delays and Bernoulli drops, reproducible when seeded."""

    def __init__(self, seed: Optional[int] = None):
        self.rng = random.Random(seed)

    def next_delay(self, min_ms: int, max_ms: int) -> int:
        return next_delay(min_ms, max_ms, self.rng)

    def should_drop(self, probability: float) -> bool:
        return should_drop(probability, self.rng)


class FixedDelay:
    def __init__(self, delay_ms: int):
        self.delay_ms = delay_ms

    def next_delay(self, min_ms: int, max_ms: int) -> int:
        return self.delay_ms


class FixedDrop:
    """Replays a scripted sequence of drop decisions, then repeats ``default``."""

    def __init__(self, decisions: Iterable[bool] = (), default: bool = False):
        self._decisions = list(decisions)
        self.default = default

    def should_drop(self, probability: float) -> bool:
        if self._decisions:
            return self._decisions.pop(0)
        return self.default
