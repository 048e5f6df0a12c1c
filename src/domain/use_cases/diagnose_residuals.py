"""Use case for numeric residual diagnostics of a fitted OLS model."""

import logging
from dataclasses import dataclass, field
from typing import List, Sequence

import numpy as np
import pandas as pd
import statsmodels.api as sm
from scipy import stats
from statsmodels.stats.diagnostic import het_breuschpagan
from statsmodels.stats.stattools import durbin_watson

from ..entities.analysis_settings import AnalysisSettings
from ..entities.diagnostic_result import DiagnosticResult
from .fit_ols import OLSFit

logger = logging.getLogger(__name__)

STRATUM_KEYS = ["region", "irrigation"]


def stratum_label(key) -> str:
    if not isinstance(key, tuple):
        key = (key,)
    return " / ".join(str(k) for k in key)


@dataclass
class DiagnosticsReport:
    """Assumption checks for one model, overall and per stratum."""

    model_name: str
    overall: List[DiagnosticResult] = field(default_factory=list)
    by_stratum: List[DiagnosticResult] = field(default_factory=list)

    def get(self, test: str, stratum: str = "ALL") -> DiagnosticResult:
        for result in self.overall + self.by_stratum:
            if result.test == test and result.stratum == stratum:
                return result
        raise KeyError(f"No {test} result for stratum {stratum}")

    @property
    def all_passed(self) -> bool:
        return all(r.passed for r in self.overall if not r.skipped)

    def to_frame(self) -> pd.DataFrame:
        df = pd.DataFrame([r.to_dict() for r in self.overall + self.by_stratum])
        df.insert(0, "model", self.model_name)
        return df


class DiagnoseResidualsUseCase:
    """Breusch-Pagan, Shapiro-Wilk and Durbin-Watson checks with pass/fail flags."""

    def __init__(self, settings: AnalysisSettings):
        self.settings = settings

    def breusch_pagan(
        self, residuals: np.ndarray, exog: np.ndarray, stratum: str = "ALL"
    ) -> DiagnosticResult:
        n = len(residuals)
        if exog.shape[1] < 2 or n <= exog.shape[1]:
            return DiagnosticResult(
                "breusch_pagan", None, None, None, n, stratum, note="too few observations"
            )
        if np.allclose(residuals, 0):
            return DiagnosticResult(
                "breusch_pagan", None, None, None, n, stratum, note="zero residuals"
            )
        lm_stat, lm_pvalue, _, _ = het_breuschpagan(residuals, exog)
        return DiagnosticResult(
            "breusch_pagan",
            float(lm_stat),
            float(lm_pvalue),
            bool(lm_pvalue >= self.settings.alpha),
            n,
            stratum,
        )

    def shapiro_wilk(self, residuals: np.ndarray, stratum: str = "ALL") -> DiagnosticResult:
        n = len(residuals)
        if n < 3:
            return DiagnosticResult(
                "shapiro_wilk", None, None, None, n, stratum, note="needs at least 3 residuals"
            )
        if np.ptp(residuals) == 0:
            return DiagnosticResult(
                "shapiro_wilk", None, None, None, n, stratum, note="constant residuals"
            )
        # scipy's p value is approximate above 5000 samples
        statistic, p_value = stats.shapiro(residuals[:5000])
        return DiagnosticResult(
            "shapiro_wilk",
            float(statistic),
            float(p_value),
            bool(p_value >= self.settings.alpha),
            n,
            stratum,
        )

    def durbin_watson(self, residuals: np.ndarray, stratum: str = "ALL") -> DiagnosticResult:
        n = len(residuals)
        if n < 2 or np.allclose(residuals, 0):
            return DiagnosticResult(
                "durbin_watson", None, None, None, n, stratum, note="too few observations"
            )
        dw = float(durbin_watson(residuals))
        return DiagnosticResult(
            "durbin_watson",
            dw,
            None,
            bool(abs(dw - 2) <= self.settings.dw_tolerance),
            n,
            stratum,
        )

    def _check(self, residuals: np.ndarray, exog: np.ndarray, stratum: str) -> List[DiagnosticResult]:
        return [
            self.breusch_pagan(residuals, exog, stratum),
            self.shapiro_wilk(residuals, stratum),
            self.durbin_watson(residuals, stratum),
        ]

    def execute(self, fit: OLSFit, strata: Sequence[str] = STRATUM_KEYS) -> DiagnosticsReport:
        """
        Execute diagnostics.

        Residuals are ordered by stratum then year so Durbin-Watson reads
        each stratum as a time series.

        Args:
            fit: Fitted OLS model
            strata: Columns defining the strata

        Returns:
            DiagnosticsReport
        """
        logger.info(f"Running residual diagnostics for {fit.name}")
        report = DiagnosticsReport(model_name=fit.name)

        order = fit.data.sort_values(list(strata) + ["year"]).index
        residuals = fit.data.loc[order, "residual"].to_numpy(dtype=float)
        exog = np.asarray(fit.results.model.exog)[order]
        report.overall = self._check(residuals, exog, "ALL")

        for key, group in fit.data.groupby(list(strata)):
            group = group.sort_values("year")
            group_resid = group["residual"].to_numpy(dtype=float)
            # within a stratum only the year trend varies
            group_exog = sm.add_constant(group["year"].to_numpy(dtype=float), has_constant="add")
            report.by_stratum.extend(self._check(group_resid, group_exog, stratum_label(key)))

        for result in report.overall:
            if result.skipped:
                logger.info(f"  {result.test}: skipped ({result.note})")
            else:
                verdict = "pass" if result.passed else "FAIL"
                p_text = f", p={result.p_value:.4f}" if result.p_value is not None else ""
                logger.info(f"  {result.test}: stat={result.statistic:.4f}{p_text} → {verdict}")
        failed = [r for r in report.by_stratum if r.passed is False]
        if failed:
            logger.warning(
                f"{len(failed)} stratum-level checks failed for {fit.name}: "
                + ", ".join(f"{r.stratum}:{r.test}" for r in failed)
            )
        return report
