"""Metrics helper for P2State.

Provides a plain-dict snapshot of the marker arrays suitable for JSON output
or logging. Never mutates the state.
"""
from __future__ import annotations

from typing import Dict, Any

from .quantiles import P2State, estimates


def state_metrics(state: P2State) -> Dict[str, Any]:
    return {
        "count": state.count,
        "heights": list(state.heights),
        "positions": list(state.positions),
        "desired_positions": list(state.desired),
        "increments": list(state.increments),
        "estimates": [{"quantile": q, "value": v} for q, v in estimates(state)],
    }

__all__ = ["state_metrics"]
