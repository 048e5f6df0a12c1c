"""Shared pytest fixtures: synthetic Quick Stats exports and regional frames."""

import csv

import numpy as np
import pandas as pd
import pytest

from config.settings import REGION_GROUPS
from src.domain.entities.analysis_settings import AnalysisSettings
from src.domain.entities.nass_record import NASSRecord
from src.domain.entities.region_grouping import RegionGrouping

QUICKSTATS_HEADER = [
    "Program",
    "Year",
    "Period",
    "Geo Level",
    "State",
    "Ag District",
    "Ag District Code",
    "County",
    "Commodity",
    "Data Item",
    "Value",
]


def data_item(irrigation: str, variable: str) -> str:
    if variable == "PRODUCTION":
        return f"CORN, GRAIN, {irrigation} - PRODUCTION, MEASURED IN BU"
    return f"CORN, GRAIN, {irrigation} - {variable}"


def quickstats_row(year, state, item, value, county="", district="", district_code=""):
    return {
        "Program": "SURVEY",
        "Year": year,
        "Period": "YEAR",
        "Geo Level": "COUNTY" if county else "STATE",
        "State": state,
        "Ag District": district,
        "Ag District Code": district_code,
        "County": county,
        "Commodity": "CORN",
        "Data Item": item,
        "Value": value,
    }


def write_quickstats_csv(path, rows):
    with open(path, "w", newline="", encoding="utf-8") as fh:
        writer = csv.DictWriter(fh, fieldnames=QUICKSTATS_HEADER)
        writer.writeheader()
        writer.writerows(rows)
    return path


def observation_rows(year, state, irrigation, acres, production, county=""):
    """The two raw rows (acres, production) NASS publishes for one observation."""
    return [
        quickstats_row(year, state, data_item(irrigation, "ACRES HARVESTED"), f"{int(acres):,}", county),
        quickstats_row(year, state, data_item(irrigation, "PRODUCTION"), f"{int(production):,}", county),
    ]


def make_record(data_item_text, value, year=2000, state="NEBRASKA", county=None, row_number=None):
    return NASSRecord(
        year=year,
        state=state,
        commodity="CORN",
        data_item=data_item_text,
        value=value,
        county=county,
        row_number=row_number,
    )


def ar1_noise(rng, n, rho, sd):
    noise = np.empty(n)
    noise[0] = rng.normal(0, sd / np.sqrt(1 - rho ** 2))
    for t in range(1, n):
        noise[t] = rho * noise[t - 1] + rng.normal(0, sd)
    return noise


REGION_EFFECT = {"CORN BELT": 0.0, "PLAINS": -12.0, "WEST": -25.0}
IRRIGATION_EFFECT = {"IRRIGATED": 35.0, "NON-IRRIGATED": 0.0}


def synthetic_regional_frame(seed=7, years=range(2000, 2020), rho=0.7, sd=4.0):
    """Regional frame with a known mean structure and AR(1) errors per stratum."""
    rng = np.random.default_rng(seed)
    years = list(years)
    rows = []
    for region, r_eff in REGION_EFFECT.items():
        for irrigation, i_eff in IRRIGATION_EFFECT.items():
            noise = ar1_noise(rng, len(years), rho, sd)
            for year, e in zip(years, noise):
                acres = 100_000.0
                yld = 140.0 + r_eff + i_eff + 1.8 * (year - years[0]) + e
                rows.append(
                    {
                        "year": year,
                        "region": region,
                        "commodity": "CORN",
                        "crop_type": "GRAIN",
                        "irrigation": irrigation,
                        "acres_harvested": acres,
                        "production": acres * yld,
                        "yield_per_acre": yld,
                        "n_sources": 1,
                    }
                )
    return pd.DataFrame(rows)


@pytest.fixture
def settings():
    return AnalysisSettings()


@pytest.fixture
def grouping():
    return RegionGrouping.from_dict(REGION_GROUPS)


@pytest.fixture
def regional_frame():
    return synthetic_regional_frame()


@pytest.fixture
def four_row_csv(tmp_path):
    """Two years × two irrigation statuses in one state of one region."""
    rows = []
    rows += observation_rows(2000, "NEBRASKA", "IRRIGATED", 100, 20_000)
    rows += observation_rows(2000, "NEBRASKA", "NON-IRRIGATED", 200, 24_000)
    rows += observation_rows(2001, "NEBRASKA", "IRRIGATED", 100, 21_000)
    rows += observation_rows(2001, "NEBRASKA", "NON-IRRIGATED", 200, 28_000)
    return write_quickstats_csv(tmp_path / "four_rows.csv", rows)


@pytest.fixture
def quickstats_csv(tmp_path):
    """State-level export across three regions, one unmapped state and a few bad rows."""
    rng = np.random.default_rng(11)
    states = {
        "NEBRASKA": "PLAINS",
        "KANSAS": "PLAINS",
        "IOWA": "CORN BELT",
        "ILLINOIS": "CORN BELT",
        "COLORADO": "WEST",
        "WYOMING": None,
    }
    years = list(range(2000, 2015))
    rows = []
    for state, region in states.items():
        r_eff = REGION_EFFECT.get(region, -30.0)
        for irrigation, i_eff in IRRIGATION_EFFECT.items():
            acres = {"IRRIGATED": 400_000, "NON-IRRIGATED": 1_200_000}[irrigation]
            noise = ar1_noise(rng, len(years), 0.6, 5.0)
            for year, e in zip(years, noise):
                yld = 140.0 + r_eff + i_eff + 1.5 * (year - years[0]) + e
                rows += observation_rows(year, state, irrigation, acres, round(acres * yld))
                rows.append(
                    quickstats_row(
                        year, state, f"CORN, GRAIN, {irrigation} - YIELD, MEASURED IN BU / ACRE", f"{yld:.1f}"
                    )
                )
    # flagged rows
    rows.append(quickstats_row(2005, "IOWA", "CORN, GRAIN - ACRES HARVESTED", "13,000,000"))
    rows.append(quickstats_row(2005, "IOWA", "CORN, GRAIN, DRIP - ACRES HARVESTED", "1,000"))
    rows.append(quickstats_row(2005, "KANSAS", data_item("IRRIGATED", "PRODUCTION"), "(D)", county="FINNEY"))
    return write_quickstats_csv(tmp_path / "quickstats.csv", rows)
