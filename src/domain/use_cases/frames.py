"""DataFrame views of observation entities."""

from typing import List

import pandas as pd

from ..entities.corn_observation import CornObservation, RegionalObservation

OBSERVATION_COLUMNS = [
    "year",
    "state",
    "ag_district",
    "county",
    "commodity",
    "crop_type",
    "irrigation",
    "acres_harvested",
    "production",
    "yield_per_acre",
    "yield_undefined",
]

REGIONAL_COLUMNS = [
    "year",
    "region",
    "commodity",
    "crop_type",
    "irrigation",
    "acres_harvested",
    "production",
    "yield_per_acre",
    "n_sources",
]


def observations_to_frame(observations: List[CornObservation]) -> pd.DataFrame:
    """Convert reshaped observations to a DataFrame (irrigation as plain text)."""
    records = [
        {
            "year": o.year,
            "state": o.state,
            "ag_district": o.ag_district,
            "county": o.county,
            "commodity": o.commodity,
            "crop_type": o.crop_type,
            "irrigation": o.irrigation.value,
            "acres_harvested": o.acres_harvested,
            "production": o.production,
            "yield_per_acre": o.yield_per_acre,
            "yield_undefined": o.yield_undefined,
        }
        for o in observations
    ]
    df = pd.DataFrame(records, columns=OBSERVATION_COLUMNS)
    for column in ["acres_harvested", "production", "yield_per_acre"]:
        df[column] = pd.to_numeric(df[column], errors="coerce").astype(float)
    return df


def regional_to_frame(observations: List[RegionalObservation]) -> pd.DataFrame:
    """Convert regional observations to the DataFrame the models are fitted on."""
    records = [
        {
            "year": o.year,
            "region": o.region,
            "commodity": o.commodity,
            "crop_type": o.crop_type,
            "irrigation": o.irrigation.value,
            "acres_harvested": o.acres_harvested,
            "production": o.production,
            "yield_per_acre": o.yield_per_acre,
            "n_sources": o.n_sources,
        }
        for o in observations
    ]
    df = pd.DataFrame(records, columns=REGIONAL_COLUMNS)
    df["yield_per_acre"] = pd.to_numeric(df["yield_per_acre"], errors="coerce").astype(float)
    return df
