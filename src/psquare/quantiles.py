"""Streaming quantile estimation using the P² algorithm (Jain & Chlamtac, 1985).

Five markers track the minimum, three target quantiles and the maximum of a
stream. Memory O(1), update O(1). The functional core never mutates a state:
``observe`` returns a fresh ``P2State`` so callers own and thread the value
themselves. ``P2Quantile`` wraps that loop for single-owner streaming use and
falls back to exact sample quantiles until five samples have arrived.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from itertools import islice
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from .errors import (
    InsufficientData,
    InvalidObservation,
    InvalidQuantiles,
    MarkerStateError,
)
from .logutil import get_logger

SEED_SIZE = 5

Quantiles = Union[float, Sequence[float]]


@dataclass(frozen=True)
class P2State:
    heights: Tuple[float, ...]  # marker heights h[0..4]
    positions: Tuple[int, ...]  # marker positions n[0..4]
    desired: Tuple[float, ...]  # desired marker positions n'[0..4]
    increments: Tuple[float, ...]  # increments dn[0..4]

    @property
    def count(self) -> int:
        """Number of observations folded into this state."""
        return self.positions[4]

    @property
    def quantiles(self) -> Tuple[float, float, float]:
        return self.increments[1], self.increments[2], self.increments[3]


def target_fractions(quantiles: Quantiles) -> Tuple[float, float, float]:
    """Normalise a single target ``p`` or three fractions into ``(p1, p2, p3)``.

    A single ``p`` tracks ``p/2, p, (1+p)/2`` so the middle marker sits on ``p``.
    """
    if isinstance(quantiles, (int, float)):
        p = float(quantiles)
        if not (0 < p < 1):
            raise InvalidQuantiles(f"quantile must be in (0,1), got {quantiles!r}")
        return p / 2, p, (1 + p) / 2
    qs = tuple(float(q) for q in quantiles)
    if len(qs) == 1:
        return target_fractions(qs[0])
    if len(qs) != 3:
        raise InvalidQuantiles(f"expected 1 or 3 quantiles, got {len(qs)}")
    p1, p2, p3 = qs
    if not (0 < p1 < p2 < p3 < 1):
        raise InvalidQuantiles(f"quantiles must satisfy 0 < p1 < p2 < p3 < 1, got {qs!r}")
    return p1, p2, p3


def _require_finite(value: float) -> float:
    if not math.isfinite(value):
        raise InvalidObservation(f"observation must be a finite number, got {value!r}")
    return float(value)


def initialize(seed: Sequence[float], quantiles: Quantiles) -> P2State:
    """Build the initial state from exactly five observations."""
    values = list(seed)
    if len(values) != SEED_SIZE:
        raise InsufficientData(f"expected exactly {SEED_SIZE} seed observations, got {len(values)}")
    p1, p2, p3 = target_fractions(quantiles)
    heights = tuple(sorted(_require_finite(v) for v in values))
    return P2State(
        heights=heights,
        positions=(1, 2, 3, 4, 5),
        desired=(1.0, 1 + 4 * p1, 1 + 4 * p2, 1 + 4 * p3, 5.0),
        increments=(0.0, p1, p2, p3, 1.0),
    )


def _fit(x: float, heights: Tuple[float, ...]) -> Tuple[int, Tuple[float, ...]]:
    """Return the first marker whose position grows, replacing an extremum if needed."""
    h0, h1, h2, h3, h4 = heights
    if x < h0:
        return 1, (x, h1, h2, h3, h4)
    if x > h4:
        return 4, (h0, h1, h2, h3, x)
    if x < h1:
        return 1, heights
    if x < h2:
        return 2, heights
    if x < h3:
        return 3, heights
    return 4, heights


def _parabolic(i: int, d: int, h: List[float], n: List[int]) -> float:
    n0, n1, n2 = n[i-1], n[i], n[i+1]
    h0, h1, h2 = h[i-1], h[i], h[i+1]
    return h1 + d / (n2 - n0) * ((n1 - n0 + d) * (h2 - h1) / (n2 - n1) + (n2 - n1 - d) * (h1 - h0) / (n1 - n0))


def _linear(i: int, d: int, h: List[float], n: List[int]) -> float:
    # Halved differences cannot overflow; the neighbour gap is >= 2 so doubling back stays finite.
    return h[i] + d * ((h[i + d] / 2 - h[i] / 2) / (n[i + d] - n[i])) * 2


def _adjust(i: int, h: List[float], n: List[int], desired: Tuple[float, ...]) -> None:
    d = desired[i] - n[i]
    # d uses >= / <= but the neighbour gap is strict, as published.
    if d >= 1 and n[i+1] - n[i] > 1:
        sign = 1
    elif d <= -1 and n[i-1] - n[i] < -1:
        sign = -1
    else:
        return
    try:
        hp = _parabolic(i, sign, h, n)
        if not (math.isfinite(hp) and h[i-1] < hp < h[i+1]):
            hp = _linear(i, sign, h, n)
    except ZeroDivisionError as exc:
        raise MarkerStateError(f"marker {i + 1} has a zero-width neighbour cell: positions={n}") from exc
    if not math.isfinite(hp):
        raise MarkerStateError(f"marker {i + 1} height is not finite: heights={h}")
    h[i] = hp
    n[i] += sign


def observe(state: P2State, value: float) -> P2State:
    """Fold one observation into ``state`` and return the next state."""
    x = _require_finite(value)
    k, heights = _fit(x, state.heights)
    positions = tuple(p + 1 if i >= k else p for i, p in enumerate(state.positions))
    desired = tuple(nd + dn for nd, dn in zip(state.desired, state.increments))

    h = list(heights)
    n = list(positions)
    # Ascending order matters: marker 3 reads marker 2's updated values.
    for i in (1, 2, 3):
        _adjust(i, h, n, desired)
    return P2State(tuple(h), tuple(n), desired, state.increments)


def estimates(state: P2State) -> List[Tuple[float, float]]:
    """Return ``(quantile, value)`` for the three interior markers."""
    return [(state.increments[i], state.heights[i]) for i in (1, 2, 3)]


def estimate(observations: Iterable[float], quantile: float) -> float:
    """Estimate ``quantile`` over a whole sequence in a single pass."""
    if not isinstance(quantile, (int, float)):
        raise InvalidQuantiles(f"estimate takes a single quantile in (0,1), got {quantile!r}")
    it = iter(observations)
    seed = list(islice(it, SEED_SIZE))
    if len(seed) < SEED_SIZE:
        raise InsufficientData(f"need at least {SEED_SIZE} observations, got {len(seed)}")
    state = initialize(seed, quantile)
    for value in it:
        state = observe(state, value)
    return estimates(state)[1][1]


def exact_quantile(values: Iterable[float], q: float) -> float:
    data = sorted(values)
    if not data:
        return float("nan")
    if len(data) == 1:
        return data[0]
    position = q * (len(data) - 1)
    lower = math.floor(position)
    upper = math.ceil(position)
    if lower == upper:
        return data[lower]
    fraction = position - lower
    return data[lower] + (data[upper] - data[lower]) * fraction


@dataclass
class P2Quantile:
    q: Quantiles  # single target in (0,1), or three ascending fractions
    _state: Optional[P2State] = None
    _buffer: List[float] = field(default_factory=list)  # samples before seeding

    def __post_init__(self) -> None:
        self._fractions = target_fractions(self.q)

    @property
    def state(self) -> Optional[P2State]:
        return self._state

    @property
    def count(self) -> int:
        if self._state is None:
            return len(self._buffer)
        return self._state.count

    def update(self, x: float) -> None:
        """Observe one sample."""
        if self._state is not None:
            self._state = observe(self._state, x)
            return
        self._buffer.append(_require_finite(x))
        if len(self._buffer) == SEED_SIZE:
            self._state = initialize(self._buffer, self._fractions)
            self._buffer = []
            get_logger().debug("seeded P2 markers for quantiles %s: %s", self._fractions, self._state.heights)

    def estimates(self) -> List[Tuple[float, float]]:
        """Return the three ``(quantile, value)`` pairs (exact while warming up)."""
        if self._state is None:
            return [(p, exact_quantile(self._buffer, p)) for p in self._fractions]
        return estimates(self._state)

    def value(self) -> float:
        """Return the middle quantile estimate."""
        return self.estimates()[1][1]


__all__ = [
    "P2State",
    "P2Quantile",
    "initialize",
    "observe",
    "estimates",
    "estimate",
    "exact_quantile",
    "target_fractions",
]
