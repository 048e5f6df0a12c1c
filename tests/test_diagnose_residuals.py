"""Tests for DiagnoseResidualsUseCase."""

import numpy as np
import pytest
from src.domain.use_cases.diagnose_residuals import DiagnoseResidualsUseCase
from src.domain.use_cases.fit_ols import FitOLSUseCase


def test_diagnostics_cover_overall_and_each_stratum(regional_frame, settings):
    fit = FitOLSUseCase().execute(regional_frame, interactions=True)
    report = DiagnoseResidualsUseCase(settings).execute(fit)

    assert [r.test for r in report.overall] == ["breusch_pagan", "shapiro_wilk", "durbin_watson"]
    assert all(not r.skipped for r in report.overall)
    assert len(report.by_stratum) == 6 * 3
    assert report.get("shapiro_wilk", "PLAINS / IRRIGATED").n_obs == 20

    frame = report.to_frame()
    assert set(frame["model"]) == {"ols_interaction"}
    assert len(frame) == 21


def test_durbin_watson_flags_ar1_residuals(regional_frame, settings):
    # residuals carry rho = 0.7 within each stratum, so DW sits well below 2
    fit = FitOLSUseCase().execute(regional_frame, interactions=True)
    dw = DiagnoseResidualsUseCase(settings).execute(fit).get("durbin_watson")
    assert dw.statistic < 1.5
    assert dw.passed is False


def test_pass_flags_follow_thresholds(settings):
    use_case = DiagnoseResidualsUseCase(settings)
    rng = np.random.default_rng(3)
    residuals = rng.normal(size=200)
    sw = use_case.shapiro_wilk(residuals)
    assert sw.passed == (sw.p_value >= settings.alpha)

    dw = use_case.durbin_watson(np.array([1.0, -1.0] * 10))
    assert dw.statistic > 3
    assert dw.passed is False


def test_small_strata_are_skipped_not_raised(settings):
    use_case = DiagnoseResidualsUseCase(settings)
    two = np.array([0.5, -0.5])
    assert use_case.shapiro_wilk(two).skipped
    exog = np.column_stack([np.ones(2), [2000.0, 2001.0]])
    assert use_case.breusch_pagan(two, exog).skipped
    assert use_case.durbin_watson(np.array([0.3])).skipped


def test_breusch_pagan_detects_growing_variance(settings):
    rng = np.random.default_rng(5)
    x = np.linspace(1, 10, 300)
    residuals = rng.normal(scale=x)
    exog = np.column_stack([np.ones_like(x), x])
    result = DiagnoseResidualsUseCase(settings).breusch_pagan(residuals, exog)
    assert result.passed is False
    assert result.p_value < 0.01


def test_all_passed_ignores_skipped(settings, regional_frame):
    fit = FitOLSUseCase().execute(regional_frame, interactions=True)
    report = DiagnoseResidualsUseCase(settings).execute(fit)
    assert report.all_passed is False  # Durbin-Watson fails on AR(1) data
    with pytest.raises(KeyError):
        report.get("durbin_watson", "NOWHERE")
