"""Deterministic 32-bit seeded random stream."""

from __future__ import annotations

import math

import numpy as np

_MASK32 = 0xFFFFFFFF
_INCREMENT = 0x6D2B79F5
_TWO_POW_32 = 4294967296.0


def _uint32(value: int) -> int:
    return int(value) & _MASK32


def _imul(a: int, b: int) -> int:
    return (a * b) & _MASK32


def normalize_seed(seed: float) -> int:
    """Map a zero or NaN seed to 1, floor it and wrap it into the unsigned 32-bit range."""

    try:
        number = float(seed)
    except (TypeError, ValueError):
        return 1
    if math.isnan(number) or number == 0.0:
        number = 1.0
    if math.isinf(number):
        return 0
    return _uint32(int(math.floor(number)))


class Mulberry32:
    """Mulberry32 generator; identical seeds give identical streams everywhere."""

    def __init__(self, seed: int) -> None:
        self._state = _uint32(seed)
        self.call_count = 0

    @property
    def state(self) -> int:
        return self._state

    def next(self) -> float:
        """Return the next value in [0, 1)."""

        self.call_count += 1
        self._state = _uint32(self._state + _INCREMENT)
        t = self._state
        r = _imul(t ^ (t >> 15), t | 1)
        r ^= _uint32(r + _imul(r ^ (r >> 7), r | 61))
        return _uint32(r ^ (r >> 14)) / _TWO_POW_32

    def draws(self, count: int) -> np.ndarray:
        """Return the next `count` values as a float64 array, in stream order."""

        if count < 0:
            raise ValueError("count must be non-negative")
        return np.array([self.next() for _ in range(count)], dtype=np.float64)
