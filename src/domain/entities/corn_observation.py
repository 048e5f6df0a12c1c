"""Corn observation entities."""

import math
from dataclasses import dataclass
from typing import Optional
from .irrigation import Irrigation


def compute_yield(production: Optional[float], acres_harvested: Optional[float]) -> Optional[float]:
    """
    Yield as production per harvested acre.

    Returns None when either component is missing or acres are not positive.
    """
    if production is None or acres_harvested is None:
        return None
    if math.isnan(production) or math.isnan(acres_harvested):
        return None
    if acres_harvested <= 0:
        return None
    return production / acres_harvested


@dataclass
class CornObservation:
    """Represents one reshaped county or state row for a single year."""

    year: int
    state: str
    commodity: str
    crop_type: str
    irrigation: Irrigation
    acres_harvested: Optional[float] = None  # acres
    production: Optional[float] = None  # bushels
    ag_district: Optional[str] = None
    county: Optional[str] = None

    @property
    def yield_per_acre(self) -> Optional[float]:
        """Production divided by acres harvested (bu/acre)."""
        return compute_yield(self.production, self.acres_harvested)

    @property
    def yield_undefined(self) -> bool:
        return self.yield_per_acre is None

    def __str__(self) -> str:
        return f"{self.state}_{self.county or 'ALL'}_{self.year}_{self.irrigation.value}"


@dataclass
class RegionalObservation:
    """Represents summed production and acreage for one region-year stratum."""

    year: int
    region: str
    commodity: str
    crop_type: str
    irrigation: Irrigation
    acres_harvested: float
    production: float
    n_sources: int = 0  # observations summed into this row

    @property
    def yield_per_acre(self) -> Optional[float]:
        """Yield recomputed from the summed totals."""
        return compute_yield(self.production, self.acres_harvested)

    def __str__(self) -> str:
        return f"{self.region}_{self.year}_{self.irrigation.value}"
