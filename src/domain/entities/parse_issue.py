"""Parse issue and aggregation gap entities."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class IssueKind(str, Enum):
    """Why a raw row was rejected during reshaping."""

    SCHEMA = "schema"  # data item does not split into the expected parts
    CATEGORY = "category"  # unknown irrigation status
    VALUE = "value"  # value is not numeric after normalisation
    DUPLICATE = "duplicate"  # second row for the same key and variable


@dataclass(frozen=True)
class ParseIssue:
    """A flagged input row, reported instead of being silently dropped."""

    kind: IssueKind
    raw_value: str
    reason: str
    row_number: Optional[int] = None

    def __str__(self) -> str:
        return f"[{self.kind.value}] row {self.row_number}: {self.reason} ({self.raw_value!r})"


@dataclass(frozen=True)
class AggregationGap:
    """A state excluded from regional aggregation because it has no region."""

    state: str
    n_rows: int

    def __str__(self) -> str:
        return f"{self.state} ({self.n_rows} rows)"
