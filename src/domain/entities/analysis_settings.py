"""Analysis settings entity."""

from dataclasses import dataclass
from typing import Any, Dict, Tuple


@dataclass(frozen=True)
class AnalysisSettings:
    """Thresholds used by the diagnostic and GLS stages."""

    alpha: float = 0.05
    max_acf_lag: int = 5
    dw_tolerance: float = 0.5
    confidence_level: float = 0.95
    rho_bounds: Tuple[float, float] = (-0.99, 0.99)

    def __post_init__(self):
        if not 0 < self.alpha < 1:
            raise ValueError(f"alpha must be in (0, 1), got {self.alpha}")
        if not 0 < self.confidence_level < 1:
            raise ValueError(f"confidence_level must be in (0, 1), got {self.confidence_level}")
        if self.max_acf_lag < 1:
            raise ValueError("max_acf_lag must be at least 1")
        low, high = self.rho_bounds
        if not -1 < low < high < 1:
            raise ValueError(f"rho_bounds must lie inside (-1, 1), got {self.rho_bounds}")

    @classmethod
    def from_dict(cls, definition: Dict[str, Any]) -> "AnalysisSettings":
        """Create AnalysisSettings from a settings dictionary."""
        return cls(
            alpha=definition.get("alpha", 0.05),
            max_acf_lag=definition.get("max_acf_lag", 5),
            dw_tolerance=definition.get("dw_tolerance", 0.5),
            confidence_level=definition.get("confidence_level", 0.95),
            rho_bounds=tuple(definition.get("rho_bounds", (-0.99, 0.99))),
        )
