"""Tests for FitGLSAR1UseCase and the AR(1) correlation helpers."""

import numpy as np
import pandas as pd
import pytest
import statsmodels.formula.api as smf
from scipy.optimize import OptimizeResult
from src.domain.exceptions import ModelFitError
from src.domain.use_cases.fit_gls_ar1 import (
    FitGLSAR1UseCase,
    ar1_correlation_matrix,
    ar1_whiten,
)
from src.domain.use_cases.fit_ols import build_formula


def test_correlation_matrix_is_block_diagonal():
    R = ar1_correlation_matrix([3, 1, 2], 0.5)
    assert R.shape == (6, 6)
    np.testing.assert_allclose(R[:3, :3], [[1, 0.5, 0.25], [0.5, 1, 0.5], [0.25, 0.5, 1]])
    assert R[3, 3] == 1.0
    np.testing.assert_allclose(R[4:, 4:], [[1, 0.5], [0.5, 1]])
    # nothing leaks between strata
    assert np.count_nonzero(R[:3, 3:]) == 0
    assert np.count_nonzero(R[3, [0, 1, 2, 4, 5]]) == 0


def test_whitening_restarts_at_each_stratum():
    residuals = np.array([1.0, 2.0, 3.0, 10.0, 20.0])
    rho = 0.6
    z = ar1_whiten(residuals, [3, 2], rho)
    scale = np.sqrt(1 - rho ** 2)
    np.testing.assert_allclose(
        z, [1.0, (2.0 - 0.6) / scale, (3.0 - 1.2) / scale, 10.0, (20.0 - 6.0) / scale]
    )


def test_whitening_inverts_the_correlation():
    # z' z equals e' R^-1 e
    rng = np.random.default_rng(0)
    e = rng.normal(size=7)
    sizes = [4, 3]
    R = ar1_correlation_matrix(sizes, -0.3)
    z = ar1_whiten(e, sizes, -0.3)
    assert z @ z == pytest.approx(e @ np.linalg.solve(R, e))


def test_gls_estimates_positive_rho(regional_frame, settings):
    fit = FitGLSAR1UseCase(settings).execute(regional_frame)
    assert fit.method == "ML"
    assert fit.formula == build_formula(regional_frame, interactions=True)
    assert 0.3 < fit.rho < 0.95
    assert fit.rho_ci[0] < fit.rho < fit.rho_ci[1]
    assert fit.lr_pvalue < 0.05
    assert fit.log_likelihood > fit.log_likelihood_independent
    assert fit.aic < fit.aic_independent
    assert fit.n_strata == 6
    assert fit.block_sizes == [20] * 6


def test_rho_maximises_profile_likelihood(regional_frame, settings):
    use_case = FitGLSAR1UseCase(settings)
    fit = use_case.execute(regional_frame)
    y = fit.data["yield_per_acre"].to_numpy()
    X = np.asarray(fit.results.model.exog)
    for other in (fit.rho - 0.05, fit.rho + 0.05, 0.0):
        assert use_case._profile_loglik(y, X, fit.block_sizes, other) <= fit.log_likelihood + 1e-8
    # the interval bounds sit on the chi-square cutoff
    for bound in fit.rho_ci:
        drop = fit.log_likelihood - use_case._profile_loglik(y, X, fit.block_sizes, bound)
        assert drop == pytest.approx(3.841458820694124 / 2, abs=1e-4)


def test_rho_zero_likelihood_matches_ols(regional_frame, settings):
    fit = FitGLSAR1UseCase(settings).execute(regional_frame)
    ols = smf.ols(fit.formula, data=fit.data).fit()
    assert fit.log_likelihood_independent == pytest.approx(ols.llf, rel=1e-9)


def test_gls_outputs(regional_frame, settings):
    fit = FitGLSAR1UseCase(settings).execute(regional_frame)
    assert {"estimate", "std_error", "p_value"} <= set(fit.coefficients.columns)
    assert "C(region):year" in fit.term_tests.index
    assert list(fit.term_tests.columns) == ["statistic", "p_value", "df_num", "df_denom"]
    assert fit.term_tests.loc["C(irrigation)", "df_num"] == 1
    assert fit.aliased_columns == []
    groups = fit.by_stratum()
    assert set(groups) == {f"{r} / {i}" for r in ("CORN BELT", "PLAINS", "WEST") for i in ("IRRIGATED", "NON-IRRIGATED")}
    for group in groups.values():
        assert group["year"].is_monotonic_increasing
        np.testing.assert_allclose(group["fitted"] + group["residual"], group["yield_per_acre"], atol=1e-8)
    summary = fit.summary_frame().iloc[0]
    assert summary["rho"] == fit.rho
    assert summary["n_obs"] == 120


def test_row_order_does_not_change_the_fit(regional_frame, settings):
    use_case = FitGLSAR1UseCase(settings)
    base = use_case.execute(regional_frame)
    shuffled = use_case.execute(regional_frame.sample(frac=1.0, random_state=3))
    assert shuffled.rho == pytest.approx(base.rho, abs=1e-9)
    pd.testing.assert_series_equal(
        shuffled.coefficients["estimate"], base.coefficients["estimate"], atol=1e-8
    )


def test_reordering_one_stratum_leaves_other_blocks_alone(regional_frame):
    """Years of one stratum can be permuted without touching another stratum's correlation block."""
    data = regional_frame.sort_values(["region", "irrigation", "year"]).reset_index(drop=True)
    permuted = data.copy()
    mask = (permuted["region"] == "WEST") & (permuted["irrigation"] == "IRRIGATED")
    permuted.loc[mask, "yield_per_acre"] = permuted.loc[mask, "yield_per_acre"].to_numpy()[::-1]

    sizes = data.groupby(["region", "irrigation"], sort=True).size().tolist()
    R = ar1_correlation_matrix(sizes, 0.7)
    e_before = data["yield_per_acre"].to_numpy()
    e_after = permuted["yield_per_acre"].to_numpy()
    z_before = ar1_whiten(e_before, sizes, 0.7)
    z_after = ar1_whiten(e_after, sizes, 0.7)
    changed = np.flatnonzero(mask.to_numpy())
    untouched = np.setdiff1d(np.arange(len(data)), changed)
    np.testing.assert_allclose(z_before[untouched], z_after[untouched])
    assert np.count_nonzero(R[np.ix_(changed, untouched)]) == 0


def test_single_observation_stratum_does_not_abort(regional_frame, settings):
    lone = pd.DataFrame(
        [
            {
                "year": 2005,
                "region": "DELTA",
                "commodity": "CORN",
                "crop_type": "GRAIN",
                "irrigation": "IRRIGATED",
                "acres_harvested": 1.0,
                "production": 180.0,
                "yield_per_acre": 180.0,
                "n_sources": 1,
            }
        ]
    )
    data = pd.concat([regional_frame, lone], ignore_index=True)
    formula = "yield_per_acre ~ C(region) + C(irrigation) + year"
    fit = FitGLSAR1UseCase(settings).execute(data, formula=formula)
    assert fit.skipped_strata == ["DELTA / IRRIGATED"]
    assert 1 in fit.block_sizes
    assert -1 < fit.rho < 1


def test_no_informative_stratum_raises(settings):
    data = pd.DataFrame(
        {
            "year": [2000, 2001, 2002, 2003],
            "region": ["A", "B", "C", "D"],
            "irrigation": ["IRRIGATED"] * 4,
            "yield_per_acre": [150.0, 160.0, 170.0, 165.0],
        }
    )
    with pytest.raises(ModelFitError, match="two or more observations"):
        FitGLSAR1UseCase(settings).execute(data, formula="yield_per_acre ~ year")


def test_saturated_design_raises(settings):
    data = pd.DataFrame(
        {
            "year": [2000, 2001, 2000, 2001],
            "region": ["PLAINS"] * 4,
            "irrigation": ["IRRIGATED", "IRRIGATED", "NON-IRRIGATED", "NON-IRRIGATED"],
            "yield_per_acre": [200.0, 210.0, 120.0, 140.0],
        }
    )
    with pytest.raises(ModelFitError, match="degrees of freedom"):
        FitGLSAR1UseCase(settings).execute(data)


def test_duplicate_stratum_years_raise(regional_frame, settings):
    data = pd.concat([regional_frame, regional_frame.head(1)], ignore_index=True)
    with pytest.raises(ModelFitError, match="more than one row"):
        FitGLSAR1UseCase(settings).execute(data)


def without_cell(frame, region, irrigation):
    drop = (frame["region"] == region) & (frame["irrigation"] == irrigation)
    return frame[~drop].reset_index(drop=True)


def test_empty_cell_leaves_out_aliased_column(regional_frame, settings):
    data = without_cell(regional_frame, "WEST", "IRRIGATED")
    fit = FitGLSAR1UseCase(settings).execute(data)

    assert fit.aliased_columns == ["C(region)[T.WEST]:C(irrigation)[T.NON-IRRIGATED]"]
    assert fit.aliased_columns[0] not in fit.coefficients.index
    assert fit.summary_frame().iloc[0]["n_aliased_columns"] == 1
    assert fit.n_strata == 5
    # only the identifiable interaction column is tested
    assert fit.term_tests.loc["C(region):C(irrigation)", "df_num"] == 1
    assert fit.term_tests.loc["C(region):year", "df_num"] == 2


def test_information_criteria_count_estimable_parameters(regional_frame, settings):
    data = without_cell(regional_frame, "WEST", "IRRIGATED")
    fit = FitGLSAR1UseCase(settings).execute(data)
    ols = smf.ols(fit.formula, data=fit.data).fit()
    rank = int(np.linalg.matrix_rank(ols.model.exog))
    n = len(fit.data)

    assert rank == ols.model.exog.shape[1] - 1
    assert fit.log_likelihood_independent == pytest.approx(ols.llf, rel=1e-9)
    # statsmodels leaves sigma out of its OLS parameter count
    assert fit.aic_independent == pytest.approx(ols.aic + 2)
    assert fit.aic == pytest.approx(-2 * fit.log_likelihood + 2 * (rank + 2))
    assert fit.bic == pytest.approx(-2 * fit.log_likelihood + np.log(n) * (rank + 2))


def test_rho_search_failure_raises(regional_frame, settings, monkeypatch):
    def no_convergence(fun, bounds=None, method=None, options=None):
        return OptimizeResult(x=0.5, fun=fun(0.5), success=False, message="Maximum number of function calls reached")

    monkeypatch.setattr("src.domain.use_cases.fit_gls_ar1.minimize_scalar", no_convergence)
    with pytest.raises(ModelFitError, match="did not converge"):
        FitGLSAR1UseCase(settings).execute(regional_frame)
