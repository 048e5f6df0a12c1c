"""Use case for fitting GLS yield models with AR(1) errors within strata."""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
import patsy
import statsmodels.api as sm
from scipy import stats
from scipy.linalg import block_diag, toeplitz
from scipy.optimize import brentq, minimize_scalar

from ..entities.analysis_settings import AnalysisSettings
from ..exceptions import ModelFitError
from .diagnose_residuals import STRATUM_KEYS, stratum_label
from .fit_ols import RESPONSE, build_formula, coefficient_table

logger = logging.getLogger(__name__)


def ar1_correlation_matrix(block_sizes: Sequence[int], rho: float) -> np.ndarray:
    """
    Block-diagonal AR(1) correlation matrix.

    Each block is rho ** |i - j| for one stratum in year order; entries
    between strata are zero.
    """
    blocks = [toeplitz(rho ** np.arange(m)) for m in block_sizes]
    return block_diag(*blocks)


def ar1_whiten(residuals: np.ndarray, block_sizes: Sequence[int], rho: float) -> np.ndarray:
    """
    Prais-Winsten transform of residuals, restarted at each stratum.

    Returns innovations with unit correlation: the first value of each block
    is kept and later values become (e_t - rho * e_t-1) / sqrt(1 - rho ** 2).
    """
    out = np.empty_like(residuals, dtype=float)
    scale = np.sqrt(1.0 - rho ** 2)
    start = 0
    for m in block_sizes:
        block = residuals[start:start + m]
        out[start] = block[0]
        if m > 1:
            out[start + 1:start + m] = (block[1:] - rho * block[:-1]) / scale
        start += m
    return out


def identifiable_columns(X: pd.DataFrame) -> Tuple[List[str], List[str]]:
    """
    Split design columns into estimable ones and ones aliased with earlier columns.

    An empty (region, irrigation) cell makes its interaction column a copy of
    another column; such columns carry no information and are left out of the fit.
    """
    kept: List[str] = []
    aliased: List[str] = []
    rank = 0
    for column in X.columns:
        trial = np.linalg.matrix_rank(X[kept + [column]].to_numpy(dtype=float))
        if trial > rank:
            kept.append(column)
            rank = trial
        else:
            aliased.append(column)
    return kept, aliased


TERM_TEST_COLUMNS = ["statistic", "p_value", "df_num", "df_denom"]


def term_wald_tests(results: Any, design_info: Any) -> pd.DataFrame:
    """Joint F test of every model term over its estimable columns."""
    names = list(results.params.index)
    rows = []
    for term, columns in design_info.term_name_slices.items():
        if term == "Intercept":
            continue
        columns = [c for c in design_info.column_names[columns] if c in names]
        if not columns:
            continue
        R = np.zeros((len(columns), len(names)))
        for i, column in enumerate(columns):
            R[i, names.index(column)] = 1.0
        test = results.wald_test(R, use_f=True, scalar=True)
        rows.append(
            {
                "term": term,
                "statistic": float(test.statistic),
                "p_value": float(test.pvalue),
                "df_num": len(columns),
                "df_denom": float(test.df_denom),
            }
        )
    return pd.DataFrame(rows, columns=["term"] + TERM_TEST_COLUMNS).set_index("term")


@dataclass
class GLSFit:
    """A GLS fit with AR(1) correlation and the report numbers."""

    formula: str
    results: Any  # statsmodels GLS RegressionResultsWrapper at rho_hat
    rho: float
    rho_ci: Tuple[float, float]
    log_likelihood: float
    aic: float
    bic: float
    log_likelihood_independent: float  # same mean model with rho = 0
    aic_independent: float
    lr_statistic: float
    lr_pvalue: float
    data: pd.DataFrame  # rows in stratum/year order with fitted and residual columns
    coefficients: pd.DataFrame
    term_tests: pd.DataFrame
    block_sizes: List[int] = field(default_factory=list)
    skipped_strata: List[str] = field(default_factory=list)  # single-observation strata
    aliased_columns: List[str] = field(default_factory=list)  # design columns with no information
    method: str = "ML"
    confidence_level: float = 0.95

    @property
    def n_strata(self) -> int:
        return len(self.block_sizes)

    def by_stratum(self) -> Dict[str, pd.DataFrame]:
        """Fitted values and residuals per stratum."""
        return {
            stratum: group[["year", RESPONSE, "fitted", "residual", "normalized_residual"]]
            for stratum, group in self.data.groupby("stratum", sort=False)
        }

    def summary_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            [
                {
                    "method": self.method,
                    "rho": self.rho,
                    "rho_ci_low": self.rho_ci[0],
                    "rho_ci_high": self.rho_ci[1],
                    "log_likelihood": self.log_likelihood,
                    "aic": self.aic,
                    "bic": self.bic,
                    "log_likelihood_rho0": self.log_likelihood_independent,
                    "aic_rho0": self.aic_independent,
                    "lr_statistic": self.lr_statistic,
                    "lr_pvalue": self.lr_pvalue,
                    "n_obs": len(self.data),
                    "n_strata": self.n_strata,
                    "n_single_obs_strata": len(self.skipped_strata),
                    "n_aliased_columns": len(self.aliased_columns),
                }
            ]
        )


class FitGLSAR1UseCase:
    """
    Fit yield ~ (region + irrigation + year) ** 2 by GLS with AR(1) errors.

    The AR(1) clock restarts at every (region, irrigation) stratum. rho is
    chosen by maximising the profile log-likelihood (ML, not REML); the
    coefficients are the GLS estimates at that rho.
    """

    def __init__(self, settings: AnalysisSettings):
        self.settings = settings

    def _profile_loglik(self, y: np.ndarray, X: np.ndarray, block_sizes: List[int], rho: float) -> float:
        # GLS loglike concentrates out sigma and includes -0.5 * log|R|
        sigma = ar1_correlation_matrix(block_sizes, rho)
        return float(sm.GLS(y, X, sigma=sigma).fit().llf)

    def _profile_interval(self, loglik, rho_hat: float, llf_max: float) -> Tuple[float, float]:
        low, high = self.settings.rho_bounds
        cutoff = llf_max - stats.chi2.ppf(self.settings.confidence_level, df=1) / 2.0

        def excess(r: float) -> float:
            return loglik(r) - cutoff

        lower = low
        if rho_hat > low and excess(low) < 0:
            lower = brentq(excess, low, rho_hat, xtol=1e-8)
        upper = high
        if rho_hat < high and excess(high) < 0:
            upper = brentq(excess, rho_hat, high, xtol=1e-8)
        return float(lower), float(upper)

    def execute(
        self,
        data: pd.DataFrame,
        formula: Optional[str] = None,
        strata: Sequence[str] = STRATUM_KEYS,
    ) -> GLSFit:
        """
        Fit the model.

        Args:
            data: Regional frame (year, region, irrigation, yield_per_acre)
            formula: Explicit formula; defaults to the pairwise interaction model
            strata: Columns defining the independent AR(1) series

        Returns:
            GLSFit

        Raises:
            ModelFitError: saturated design, no stratum with two observations,
                or the likelihood optimisation did not converge
        """
        df = data.dropna(subset=[RESPONSE]).copy()
        if len(df) < len(data):
            logger.warning(f"GLS: dropping {len(data) - len(df)} rows with undefined yield")
        # Correlation blocks need each stratum contiguous and in year order
        df = df.sort_values(list(strata) + ["year"]).reset_index(drop=True)
        if df.duplicated(subset=list(strata) + ["year"]).any():
            raise ModelFitError("GLS: more than one row per stratum and year")

        df["stratum"] = [stratum_label(tuple(k)) for k in df[list(strata)].itertuples(index=False)]
        sizes = df.groupby("stratum", sort=False).size()
        block_sizes = [int(m) for m in sizes]
        skipped = [s for s, m in sizes.items() if m < 2]
        if skipped:
            logger.info(f"GLS: {len(skipped)} single-observation strata carry no AR(1) information: {skipped}")
        if len(skipped) == len(block_sizes):
            raise ModelFitError("GLS: no stratum has two or more observations to estimate rho")

        formula = formula or build_formula(df, interactions=True)
        y_frame, X_frame = patsy.dmatrices(formula, df, return_type="dataframe")
        design_info = X_frame.design_info
        kept, aliased = identifiable_columns(X_frame)
        if aliased:
            logger.warning(f"GLS: dropping {len(aliased)} aliased design columns: {aliased}")
        X_frame = X_frame[kept]
        y = y_frame.to_numpy(dtype=float).ravel()
        X = X_frame.to_numpy(dtype=float)
        n, p = X.shape
        if n - p < 1:
            raise ModelFitError(
                f"GLS: no residual degrees of freedom ({n} rows, {p} estimable columns)"
            )

        logger.info(
            f"Fitting GLS AR(1) by ML: {formula} on {len(df)} rows in {len(block_sizes)} strata"
        )

        def loglik(r: float) -> float:
            return self._profile_loglik(y, X, block_sizes, r)

        low, high = self.settings.rho_bounds
        opt = minimize_scalar(
            lambda r: -loglik(r), bounds=(low, high), method="bounded", options={"xatol": 1e-6}
        )
        if not opt.success or not np.isfinite(opt.fun):
            raise ModelFitError(f"GLS: rho optimisation did not converge ({opt.message})")

        rho_hat = float(opt.x)
        llf_max = -float(opt.fun)
        llf_zero = loglik(0.0)
        if llf_zero > llf_max:
            # bounded search can miss the optimum when it sits at rho = 0
            rho_hat, llf_max = 0.0, llf_zero
        rho_ci = self._profile_interval(loglik, rho_hat, llf_max)

        results = sm.GLS(
            y_frame.iloc[:, 0], X_frame, sigma=ar1_correlation_matrix(block_sizes, rho_hat)
        ).fit()

        # parameters: p estimable coefficients, sigma and rho (sigma only for rho = 0)
        aic = -2 * llf_max + 2 * (p + 2)
        bic = -2 * llf_max + np.log(n) * (p + 2)
        aic_zero = -2 * llf_zero + 2 * (p + 1)
        lr_stat = max(0.0, 2 * (llf_max - llf_zero))
        lr_pvalue = float(stats.chi2.sf(lr_stat, df=1))

        df["fitted"] = np.asarray(results.fittedvalues)
        df["residual"] = np.asarray(results.resid)
        sigma_ml = np.sqrt(np.mean(ar1_whiten(df["residual"].to_numpy(), block_sizes, rho_hat) ** 2))
        df["normalized_residual"] = ar1_whiten(df["residual"].to_numpy(), block_sizes, rho_hat) / sigma_ml

        term_tests = term_wald_tests(results, design_info)

        logger.info(
            f"GLS AR(1): rho={rho_hat:.3f} "
            f"[{rho_ci[0]:.3f}, {rho_ci[1]:.3f}] | logLik={llf_max:.2f} | "
            f"LR vs rho=0: {lr_stat:.2f} (p={lr_pvalue:.3g})"
        )
        return GLSFit(
            formula=formula,
            results=results,
            rho=rho_hat,
            rho_ci=rho_ci,
            log_likelihood=llf_max,
            aic=float(aic),
            bic=float(bic),
            log_likelihood_independent=llf_zero,
            aic_independent=float(aic_zero),
            lr_statistic=float(lr_stat),
            lr_pvalue=lr_pvalue,
            data=df,
            coefficients=coefficient_table(results, alpha=1 - self.settings.confidence_level),
            term_tests=term_tests,
            block_sizes=block_sizes,
            skipped_strata=skipped,
            aliased_columns=aliased,
            confidence_level=self.settings.confidence_level,
        )
