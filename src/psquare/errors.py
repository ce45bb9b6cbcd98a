"""Exception taxonomy for psquare.

Every precondition failure derives from ``QuantileError`` (itself a
``ValueError``) so callers can catch bad input with one clause. A corrupted
marker state is a different animal and raises ``MarkerStateError``.
"""
from __future__ import annotations


class QuantileError(ValueError):
    """Base class for rejected estimator input."""


class InvalidQuantiles(QuantileError):
    """Target fractions are out of (0,1) or not strictly ascending."""


class InsufficientData(QuantileError):
    """Not enough observations to seed the five markers."""


class InvalidObservation(QuantileError):
    """Observation is NaN or infinite."""


class MarkerStateError(RuntimeError):
    """Marker positions collapsed; the state was built outside ``initialize``/``observe``."""


__all__ = [
    "QuantileError",
    "InvalidQuantiles",
    "InsufficientData",
    "InvalidObservation",
    "MarkerStateError",
]
