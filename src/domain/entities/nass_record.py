"""Raw NASS Quick Stats record entity."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class NASSRecord:
    """Represents one raw row of a Quick Stats export, before reshaping."""

    year: int
    state: str
    commodity: str
    data_item: str  # e.g. 'CORN, GRAIN, IRRIGATED - ACRES HARVESTED'
    value: str  # raw text, may hold thousands separators or '(D)'
    ag_district: Optional[str] = None
    ag_district_code: Optional[str] = None
    county: Optional[str] = None
    row_number: Optional[int] = None  # position in the source file

    def __str__(self) -> str:
        return f"{self.state}_{self.year}_{self.data_item}"
