"""NASS Quick Stats corn yield repository implementation."""

import logging
from pathlib import Path
from typing import List, Optional

import pandas as pd

from ...domain.entities.nass_record import NASSRecord
from ...domain.repositories.corn_yield_repository import CornYieldRepository

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ["Year", "State", "Commodity", "Data Item", "Value"]
OPTIONAL_COLUMNS = ["Ag District", "Ag District Code", "County"]


def _optional_text(value) -> Optional[str]:
    if pd.isna(value):
        return None
    text = str(value).strip()
    return text or None


class NASSCornYieldRepository(CornYieldRepository):
    """Repository for corn survey rows from a Quick Stats CSV or Excel export."""

    def __init__(self, data_file: str):
        """
        Initialize repository.

        Args:
            data_file: Path to the CSV or .xlsx export
        """
        self.data_file = Path(data_file)
        if not self.data_file.exists():
            raise FileNotFoundError(f"Corn data file not found: {data_file}")

    def _read_frame(self) -> pd.DataFrame:
        # Value stays text so thousands separators and suppression codes survive
        if self.data_file.suffix == ".xlsx":
            df = pd.read_excel(self.data_file, engine="openpyxl", dtype={"Value": str})
        else:
            df = pd.read_csv(self.data_file, dtype={"Value": str}, skipinitialspace=True)
        df.columns = [str(c).strip() for c in df.columns]

        missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
        if missing:
            raise ValueError(f"Input file {self.data_file} is missing columns: {missing}")
        for column in OPTIONAL_COLUMNS:
            if column not in df.columns:
                df[column] = None
        return df

    def get_records(
        self,
        state: Optional[str] = None,
        year: Optional[int] = None,
    ) -> List[NASSRecord]:
        """Retrieve raw records from the export file."""
        logger.info(f"Loading corn survey data from {self.data_file}")

        try:
            df = self._read_frame()
        except (OSError, pd.errors.ParserError) as e:
            logger.error(f"Error reading data file: {e}")
            raise

        df["Year"] = pd.to_numeric(df["Year"], errors="coerce")
        bad_years = df["Year"].isna()
        if bad_years.any():
            logger.warning(f"Dropping {int(bad_years.sum())} rows without a numeric Year")
        df = df[~bad_years]

        # Apply filters
        if state:
            df = df[df["State"].str.strip().str.upper() == state.strip().upper()]
        if year:
            df = df[df["Year"] == year]

        # Convert to entities
        result = []
        for idx, row in df.iterrows():
            result.append(
                NASSRecord(
                    year=int(row["Year"]),
                    state=str(row["State"]).strip(),
                    commodity=str(row["Commodity"]).strip(),
                    data_item=str(row["Data Item"]),
                    value="" if pd.isna(row["Value"]) else str(row["Value"]),
                    ag_district=_optional_text(row["Ag District"]),
                    ag_district_code=_optional_text(row["Ag District Code"]),
                    county=_optional_text(row["County"]),
                    row_number=int(idx) + 1,
                )
            )

        logger.info(f"Loaded {len(result)} corn survey records")
        return result
