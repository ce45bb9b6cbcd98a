from dataclasses import dataclass
from typing import Dict, Optional, Tuple


@dataclass
class TrackConfig:
    # Single target quantile; the middle marker tracks it
    quantile: float = 0.5
    # Explicit ascending fractions; overrides `quantile` when set
    quantiles: Optional[Tuple[float, float, float]] = None
    # Print running estimates every N observations (0 disables)
    report_every: int = 1000
    # Digits after the decimal point in text output
    precision: int = 6

    @property
    def targets(self):
        return self.quantiles if self.quantiles is not None else self.quantile


# Named marker layouts; tune as needed
QUANTILE_PRESETS: Dict[str, Tuple[float, float, float]] = {
    "quartiles": (0.25, 0.5, 0.75),
    "latency": (0.5, 0.9, 0.99),
    "tail": (0.95, 0.99, 0.999),
}
