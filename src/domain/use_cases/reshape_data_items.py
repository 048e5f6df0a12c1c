"""Use case for reshaping raw NASS rows into one observation per key."""

import logging
import math
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import pandas as pd

from ..entities.corn_observation import CornObservation
from ..entities.irrigation import Irrigation
from ..entities.nass_record import NASSRecord
from ..entities.parse_issue import IssueKind, ParseIssue
from ..entities.variable import Variable
from ..exceptions import DataItemFormatError
from .frames import observations_to_frame

logger = logging.getLogger(__name__)

PIVOT_KEYS = ["year", "state", "ag_district", "county", "commodity", "crop_type", "irrigation"]

# Quick Stats suppression and rounding codes, e.g. '(D)' withheld, '(Z)' less than half a unit
_SUPPRESSION_CODE = re.compile(r"^\(\s*[A-Z]{1,2}\s*\)$")


def normalize_text(text: str) -> str:
    """Trim, collapse internal whitespace and upper-case."""
    return " ".join(str(text).split()).upper()


@dataclass(frozen=True)
class DataItem:
    """The three facts (plus unit) packed into a 'Data Item' string."""

    commodity: str
    crop_type: str
    irrigation: str
    variable: str
    unit: Optional[str] = None


def split_data_item(text: str) -> DataItem:
    """
    Split 'CORN, GRAIN, IRRIGATED - PRODUCTION, MEASURED IN BU'.

    The descriptor (left of ' - ') must hold exactly three comma-separated
    parts; the measure holds the variable and an optional unit.

    Raises:
        DataItemFormatError: if the text does not have that shape
    """
    normalized = normalize_text(text)
    halves = [h.strip() for h in normalized.split(" - ")]
    if len(halves) != 2:
        raise DataItemFormatError(
            f"expected 'descriptor - measure', found {len(halves)} part(s)"
        )
    descriptor, measure = halves

    parts = [p.strip() for p in descriptor.split(",")]
    if len(parts) != 3 or not all(parts):
        raise DataItemFormatError(
            f"expected 3 comma-separated descriptor parts, found {len(parts)}"
        )

    measure_parts = [p.strip() for p in measure.split(",", 1)]
    if not measure_parts[0]:
        raise DataItemFormatError("empty measured variable")
    unit = measure_parts[1] if len(measure_parts) > 1 and measure_parts[1] else None

    return DataItem(
        commodity=parts[0],
        crop_type=parts[1],
        irrigation=parts[2],
        variable=measure_parts[0],
        unit=unit,
    )


def parse_value(text: str) -> float:
    """
    Convert a Quick Stats value such as '1,234,500' to a float.

    Raises:
        ValueError: for suppression codes, blanks and other non-numeric text
    """
    cleaned = normalize_text(text).replace(",", "").replace(" ", "")
    if not cleaned:
        raise ValueError("empty value")
    if _SUPPRESSION_CODE.match(cleaned):
        raise ValueError(f"suppressed value {cleaned}")
    value = float(cleaned)
    if not math.isfinite(value):
        raise ValueError(f"non-finite value {cleaned}")
    return value


@dataclass
class ReshapeResult:
    """Reshaped observations together with everything that was not kept."""

    observations: List[CornObservation] = field(default_factory=list)
    issues: List[ParseIssue] = field(default_factory=list)
    n_input: int = 0
    n_filtered: int = 0  # well-formed rows outside the crop type / variables of interest

    @property
    def n_rejected(self) -> int:
        return len(self.issues)

    @property
    def issue_counts(self) -> Counter:
        return Counter(issue.kind.value for issue in self.issues)

    @property
    def n_yield_undefined(self) -> int:
        return sum(1 for o in self.observations if o.yield_undefined)

    def to_frame(self) -> pd.DataFrame:
        return observations_to_frame(self.observations)

    def issues_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            [
                {
                    "row_number": i.row_number,
                    "kind": i.kind.value,
                    "reason": i.reason,
                    "raw_value": i.raw_value,
                }
                for i in self.issues
            ],
            columns=["row_number", "kind", "reason", "raw_value"],
        )


class ReshapeDataItemsUseCase:
    """Use case to split 'Data Item' strings and pivot measures into columns."""

    def __init__(
        self,
        crop_type: Optional[str] = "GRAIN",
        variables: Tuple[Variable, ...] = (Variable.ACRES_HARVESTED, Variable.PRODUCTION),
    ):
        """
        Initialize use case.

        Args:
            crop_type: Crop type to keep (e.g. 'GRAIN'); None keeps every type
            variables: Measured variables that become columns
        """
        self.crop_type = normalize_text(crop_type) if crop_type else None
        self.variables = variables

    def _to_long_row(self, record: NASSRecord, result: ReshapeResult) -> Optional[dict]:
        try:
            item = split_data_item(record.data_item)
        except DataItemFormatError as e:
            result.issues.append(
                ParseIssue(IssueKind.SCHEMA, record.data_item, str(e), record.row_number)
            )
            return None

        variable = next((v for v in self.variables if v.value == item.variable), None)
        if variable is None or (self.crop_type and item.crop_type != self.crop_type):
            result.n_filtered += 1
            return None

        try:
            irrigation = Irrigation.parse(item.irrigation)
        except ValueError as e:
            result.issues.append(
                ParseIssue(IssueKind.CATEGORY, record.data_item, str(e), record.row_number)
            )
            return None

        try:
            value = parse_value(record.value)
        except ValueError as e:
            result.issues.append(
                ParseIssue(IssueKind.VALUE, record.value, str(e), record.row_number)
            )
            return None

        return {
            "year": record.year,
            "state": normalize_text(record.state),
            # pivot keys cannot be null
            "ag_district": normalize_text(record.ag_district) if record.ag_district else "",
            "county": normalize_text(record.county) if record.county else "",
            "commodity": item.commodity,
            "crop_type": item.crop_type,
            "irrigation": irrigation.value,
            "variable": variable.column,
            "value": value,
            "row_number": record.row_number,
            "data_item": record.data_item,
        }

    def execute(self, records: List[NASSRecord]) -> ReshapeResult:
        """
        Execute reshaping.

        Args:
            records: Raw NASSRecord entities

        Returns:
            ReshapeResult with one CornObservation per pivot key
        """
        logger.info(f"Reshaping {len(records)} raw records")
        result = ReshapeResult(n_input=len(records))

        rows = [row for row in (self._to_long_row(r, result) for r in records) if row]
        value_columns = [v.column for v in self.variables]
        if not rows:
            logger.warning("No rows left to pivot after parsing")
            self._log_issues(result)
            return result

        df_long = pd.DataFrame(rows)

        duplicated = df_long.duplicated(subset=PIVOT_KEYS + ["variable"], keep="first")
        for _, row in df_long[duplicated].iterrows():
            result.issues.append(
                ParseIssue(
                    IssueKind.DUPLICATE,
                    row["data_item"],
                    f"duplicate {row['variable']} for {row['state']} {row['county']} {row['year']}",
                    row["row_number"],
                )
            )
        df_long = df_long[~duplicated]

        # Long-to-wide: one row per key, one column per measured variable
        df_wide = (
            df_long.pivot_table(
                index=PIVOT_KEYS, columns="variable", values="value", aggfunc="first"
            )
            .reindex(columns=value_columns)
            .reset_index()
        )

        for _, row in df_wide.iterrows():
            result.observations.append(
                CornObservation(
                    year=int(row["year"]),
                    state=row["state"],
                    commodity=row["commodity"],
                    crop_type=row["crop_type"],
                    irrigation=Irrigation(row["irrigation"]),
                    acres_harvested=(
                        float(row["acres_harvested"]) if pd.notna(row["acres_harvested"]) else None
                    ),
                    production=float(row["production"]) if pd.notna(row["production"]) else None,
                    ag_district=row["ag_district"] or None,
                    county=row["county"] or None,
                )
            )

        self._log_issues(result)
        logger.info(
            f"Reshaped into {len(result.observations)} observations "
            f"({result.n_filtered} rows filtered, {result.n_rejected} rows flagged)"
        )
        if result.n_yield_undefined:
            logger.warning(
                f"{result.n_yield_undefined} observations have an undefined yield "
                "(zero or missing acres harvested, or missing production)"
            )
        return result

    def _log_issues(self, result: ReshapeResult) -> None:
        if not result.issues:
            return
        counts = ", ".join(f"{kind}={n}" for kind, n in sorted(result.issue_counts.items()))
        logger.warning(f"Flagged {result.n_rejected} raw rows: {counts}")
        for issue in result.issues[:5]:
            logger.warning(f"  → {issue}")
