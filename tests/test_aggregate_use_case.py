"""Tests for AggregateByRegionUseCase."""

import pytest
from src.domain.entities.corn_observation import CornObservation
from src.domain.entities.irrigation import Irrigation
from src.domain.entities.region_grouping import RegionGrouping
from src.domain.use_cases.aggregate_by_region import AggregateByRegionUseCase


def observation(state, acres, production, year=2000, irrigation=Irrigation.IRRIGATED, county=None):
    return CornObservation(
        year=year,
        state=state,
        commodity="CORN",
        crop_type="GRAIN",
        irrigation=irrigation,
        acres_harvested=acres,
        production=production,
        county=county,
    )


def test_aggregate_yield_is_total_over_total_with_equal_acres(grouping):
    data = [
        observation("NEBRASKA", 100.0, 10_000.0, county="ADAMS"),
        observation("NEBRASKA", 100.0, 30_000.0, county="HALL"),
    ]
    result = AggregateByRegionUseCase(grouping).execute(data)
    assert len(result.observations) == 1
    row = result.observations[0]
    assert row.acres_harvested == 200.0
    assert row.production == 40_000.0
    assert row.yield_per_acre == pytest.approx(40_000.0 / 200.0)
    assert row.n_sources == 2


def test_aggregate_yield_is_not_mean_of_row_yields(grouping):
    # row yields 100 and 200 average to 150; the acreage-correct yield is 175
    data = [
        observation("NEBRASKA", 100.0, 10_000.0),
        observation("KANSAS", 300.0, 60_000.0),
    ]
    result = AggregateByRegionUseCase(grouping).execute(data)
    row = result.observations[0]
    assert row.region == "PLAINS"
    assert row.yield_per_acre == pytest.approx(175.0)
    assert row.yield_per_acre != pytest.approx(150.0)


def test_aggregate_groups_by_year_region_and_irrigation(grouping):
    data = [
        observation("IOWA", 100.0, 20_000.0, year=2000),
        observation("ILLINOIS", 100.0, 18_000.0, year=2000),
        observation("IOWA", 100.0, 21_000.0, year=2001),
        observation("IOWA", 50.0, 8_000.0, year=2000, irrigation=Irrigation.NON_IRRIGATED),
        observation("COLORADO", 10.0, 1_500.0, year=2000),
    ]
    frame = AggregateByRegionUseCase(grouping).execute(data).to_frame()
    assert len(frame) == 4
    corn_belt_2000 = frame[
        (frame["region"] == "CORN BELT") & (frame["year"] == 2000) & (frame["irrigation"] == "IRRIGATED")
    ].iloc[0]
    assert corn_belt_2000["production"] == 38_000.0
    assert corn_belt_2000["yield_per_acre"] == pytest.approx(190.0)
    assert set(frame["region"]) == {"CORN BELT", "WEST"}


def test_unmapped_states_are_excluded_and_reported(grouping):
    data = [
        observation("NEBRASKA", 100.0, 20_000.0),
        observation("WYOMING", 100.0, 15_000.0, county="GOSHEN"),
        observation("WYOMING", 100.0, 15_000.0, county="PLATTE"),
        observation("GEORGIA", 100.0, 15_000.0),
    ]
    result = AggregateByRegionUseCase(grouping).execute(data)
    assert sorted(result.excluded_states) == ["GEORGIA", "WYOMING"]
    gaps = {g.state: g.n_rows for g in result.gaps}
    assert gaps == {"GEORGIA": 1, "WYOMING": 2}
    assert result.gaps_frame()["n_rows"].sum() == 3
    frame = result.to_frame()
    assert frame["production"].sum() == 20_000.0
    assert set(frame["region"]) == {"PLAINS"}


def test_each_grouped_state_lands_in_its_region(grouping):
    data = [observation(state, 100.0, 10_000.0) for state in grouping.states]
    result = AggregateByRegionUseCase(grouping).execute(data)
    assert result.gaps == []
    frame = result.to_frame().set_index("region")
    for region in grouping.regions:
        n_states = sum(1 for s in grouping.states if grouping.region_for(s) == region)
        assert frame.loc[region, "n_sources"] == n_states
        assert frame.loc[region, "acres_harvested"] == 100.0 * n_states


def test_incomplete_rows_are_counted_and_excluded(grouping):
    data = [
        observation("NEBRASKA", 100.0, 20_000.0),
        observation("KANSAS", None, 20_000.0),
        observation("KANSAS", 100.0, None, county="FINNEY"),
    ]
    result = AggregateByRegionUseCase(grouping).execute(data)
    assert result.n_incomplete == 2
    assert result.observations[0].production == 20_000.0


def test_zero_acre_region_has_undefined_yield():
    grouping = RegionGrouping.from_dict({"NEBRASKA": "PLAINS"})
    result = AggregateByRegionUseCase(grouping).execute([observation("NEBRASKA", 0.0, 0.0)])
    assert result.observations[0].yield_per_acre is None
    assert result.to_frame()["yield_per_acre"].isna().all()


def test_aggregate_empty_input(grouping):
    result = AggregateByRegionUseCase(grouping).execute([])
    assert result.observations == []
    assert result.gaps == []


def test_state_total_is_not_summed_with_its_counties(grouping):
    data = [
        observation("NEBRASKA", 300.0, 60_000.0),
        observation("NEBRASKA", 100.0, 18_000.0, county="ADAMS"),
        observation("NEBRASKA", 200.0, 42_000.0, county="HALL"),
        observation("KANSAS", 100.0, 15_000.0, county="FINNEY"),
    ]
    result = AggregateByRegionUseCase(grouping).execute(data)
    assert result.n_overlapping == 2
    row = result.observations[0]
    assert row.production == 75_000.0
    assert row.acres_harvested == 400.0
    assert row.n_sources == 2


def test_county_rows_kept_when_no_total_covers_them(grouping):
    data = [
        observation("NEBRASKA", 300.0, 60_000.0, year=2000),
        observation("NEBRASKA", 100.0, 18_000.0, year=2001, county="ADAMS"),
        observation("NEBRASKA", 200.0, 42_000.0, year=2001, county="HALL"),
    ]
    result = AggregateByRegionUseCase(grouping).execute(data)
    assert result.n_overlapping == 0
    assert [o.production for o in result.observations] == [60_000.0, 60_000.0]
