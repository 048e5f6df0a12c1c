"""Use case for aggregating observations into analysis regions."""

import logging
from dataclasses import dataclass, field
from typing import List

import pandas as pd

from ..entities.corn_observation import CornObservation, RegionalObservation
from ..entities.irrigation import Irrigation
from ..entities.parse_issue import AggregationGap
from ..entities.region_grouping import RegionGrouping
from .frames import observations_to_frame, regional_to_frame

logger = logging.getLogger(__name__)

GROUP_KEYS = ["year", "region", "commodity", "crop_type", "irrigation"]
STATE_KEYS = ["year", "state", "commodity", "crop_type", "irrigation"]

# Quick Stats publishes state totals, district totals and county rows side by side
LEVEL_STATE, LEVEL_DISTRICT, LEVEL_COUNTY = 0, 1, 2


def geo_level(df: pd.DataFrame) -> pd.Series:
    """Geography of each observation row: state total, district total or county."""
    level = pd.Series(LEVEL_STATE, index=df.index)
    level.loc[df["ag_district"].notna()] = LEVEL_DISTRICT
    level.loc[df["county"].notna()] = LEVEL_COUNTY
    return level


@dataclass
class AggregationResult:
    """Regional totals plus what was left out of them."""

    observations: List[RegionalObservation] = field(default_factory=list)
    gaps: List[AggregationGap] = field(default_factory=list)
    n_incomplete: int = 0  # rows missing acres or production
    n_overlapping: int = 0  # finer rows dropped because a coarser total covers them

    @property
    def excluded_states(self) -> List[str]:
        return [gap.state for gap in self.gaps]

    def to_frame(self) -> pd.DataFrame:
        return regional_to_frame(self.observations)

    def gaps_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            [{"state": g.state, "n_rows": g.n_rows} for g in self.gaps],
            columns=["state", "n_rows"],
        )


class AggregateByRegionUseCase:
    """Use case to sum production and acreage by region, then recompute yield."""

    def __init__(self, grouping: RegionGrouping):
        """
        Initialize use case.

        Args:
            grouping: State -> region mapping
        """
        self.grouping = grouping

    def execute(self, observations: List[CornObservation]) -> AggregationResult:
        """
        Execute aggregation.

        Args:
            observations: Reshaped county/state observations

        Returns:
            AggregationResult with one RegionalObservation per
            (year, region, commodity, crop type, irrigation)
        """
        logger.info(
            f"Aggregating {len(observations)} observations into "
            f"{len(self.grouping.regions)} regions"
        )
        result = AggregationResult()
        df = observations_to_frame(observations)
        if df.empty:
            logger.warning("Nothing to aggregate")
            return result

        df["region"] = df["state"].map(self.grouping.region_for)

        # States without a region are reported, then left out
        unmatched = df[df["region"].isna()]
        for state, n_rows in unmatched.groupby("state").size().items():
            result.gaps.append(AggregationGap(state=state, n_rows=int(n_rows)))
        if result.gaps:
            logger.warning(
                f"Excluding {len(unmatched)} rows from {len(result.gaps)} states "
                f"absent from the region grouping: {', '.join(map(str, result.gaps))}"
            )
        df = df[df["region"].notna()]

        incomplete = df["acres_harvested"].isna() | df["production"].isna()
        result.n_incomplete = int(incomplete.sum())
        if result.n_incomplete:
            logger.warning(
                f"Excluding {result.n_incomplete} rows missing acres harvested or production"
            )
        df = df[~incomplete]

        # Summing a state total with its own counties would count them twice
        level = geo_level(df)
        coarsest = level.groupby([df[k] for k in STATE_KEYS]).transform("min")
        overlapping = level > coarsest
        result.n_overlapping = int(overlapping.sum())
        if result.n_overlapping:
            states = sorted(df.loc[overlapping, "state"].unique())
            logger.warning(
                f"Dropping {result.n_overlapping} district/county rows already covered by "
                f"a coarser total for the same year and irrigation: {', '.join(states)}"
            )
        df = df[~overlapping]

        # Sum the extensive quantities first; yield is recomputed from the totals
        grouped = (
            df.groupby(GROUP_KEYS)
            .agg(
                acres_harvested=("acres_harvested", "sum"),
                production=("production", "sum"),
                n_sources=("production", "size"),
            )
            .reset_index()
        )

        for _, row in grouped.iterrows():
            result.observations.append(
                RegionalObservation(
                    year=int(row["year"]),
                    region=row["region"],
                    commodity=row["commodity"],
                    crop_type=row["crop_type"],
                    irrigation=Irrigation(row["irrigation"]),
                    acres_harvested=float(row["acres_harvested"]),
                    production=float(row["production"]),
                    n_sources=int(row["n_sources"]),
                )
            )

        undefined = sum(1 for o in result.observations if o.yield_per_acre is None)
        if undefined:
            logger.warning(f"{undefined} regional rows have zero acres harvested; yield undefined")
        logger.info(f"Aggregated into {len(result.observations)} regional rows")
        return result
