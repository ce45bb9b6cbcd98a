"""Package metadata and public API for psquare.

Expose a single source of truth for the version. Prefer reading from
importlib.metadata so that an editable install or wheel always reports
the version declared in pyproject.toml. Fallback to a hardcoded string
to avoid import errors when metadata is unavailable (e.g. direct source
usage without installation).
"""

from __future__ import annotations

from importlib import metadata as _metadata

from .errors import (
    InsufficientData,
    InvalidObservation,
    InvalidQuantiles,
    MarkerStateError,
    QuantileError,
)
from .metrics import state_metrics
from .quantiles import (
    P2Quantile,
    P2State,
    estimate,
    estimates,
    exact_quantile,
    initialize,
    observe,
)

__all__ = [
    "__version__",
    "P2State",
    "P2Quantile",
    "initialize",
    "observe",
    "estimates",
    "estimate",
    "exact_quantile",
    "state_metrics",
    "QuantileError",
    "InvalidQuantiles",
    "InsufficientData",
    "InvalidObservation",
    "MarkerStateError",
]

_FALLBACK_VERSION = "0.1.0"  # MUST match pyproject.toml [project].version

try:  # pragma: no cover - success path covered indirectly via CLI test
    __version__ = _metadata.version("psquare")  # type: ignore[assignment]
except _metadata.PackageNotFoundError:  # pragma: no cover - fallback exercised if metadata missing
    __version__ = _FALLBACK_VERSION
