"""Use case for checking residual autocorrelation within strata."""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd
from statsmodels.stats.diagnostic import acorr_ljungbox
from statsmodels.tsa.stattools import acf

from ..entities.analysis_settings import AnalysisSettings
from .diagnose_residuals import STRATUM_KEYS, stratum_label

logger = logging.getLogger(__name__)


@dataclass
class GroupAutocorrelation:
    """Sample ACF and Ljung-Box decision for one stratum's year-ordered residuals."""

    stratum: str
    n_obs: int
    years: List[int] = field(default_factory=list)
    acf: Optional[np.ndarray] = None  # lags 0..lag
    lag: int = 0
    lb_statistic: Optional[float] = None
    lb_pvalue: Optional[float] = None
    autocorrelated: Optional[bool] = None
    note: str = ""

    @property
    def skipped(self) -> bool:
        return self.autocorrelated is None

    @property
    def lag1(self) -> Optional[float]:
        if self.acf is None or len(self.acf) < 2:
            return None
        return float(self.acf[1])


@dataclass
class AutocorrelationReport:
    """Per-stratum autocorrelation results and the overall GLS decision."""

    groups: List[GroupAutocorrelation] = field(default_factory=list)
    alpha: float = 0.05

    @property
    def tested(self) -> List[GroupAutocorrelation]:
        return [g for g in self.groups if not g.skipped]

    @property
    def skipped(self) -> List[GroupAutocorrelation]:
        return [g for g in self.groups if g.skipped]

    @property
    def requires_gls(self) -> bool:
        """True when any stratum shows significant autocorrelation."""
        return any(g.autocorrelated for g in self.tested)

    def get(self, stratum: str) -> GroupAutocorrelation:
        for group in self.groups:
            if group.stratum == stratum:
                return group
        raise KeyError(stratum)

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            [
                {
                    "stratum": g.stratum,
                    "n_obs": g.n_obs,
                    "lag": g.lag,
                    "acf_lag1": g.lag1,
                    "lb_statistic": g.lb_statistic,
                    "lb_pvalue": g.lb_pvalue,
                    "autocorrelated": g.autocorrelated,
                    "note": g.note,
                }
                for g in self.groups
            ]
        )


class CheckAutocorrelationUseCase:
    """Use case replacing visual ACF inspection with a Ljung-Box decision per stratum."""

    def __init__(self, settings: AnalysisSettings):
        self.settings = settings

    def check_group(self, stratum: str, years: Sequence[int], residuals: np.ndarray) -> GroupAutocorrelation:
        """
        Check one stratum.

        Args:
            stratum: Stratum label
            years: Years, aligned with residuals and already sorted
            residuals: Residuals in year order

        Returns:
            GroupAutocorrelation; skipped when fewer than two observations
        """
        n = len(residuals)
        result = GroupAutocorrelation(stratum=stratum, n_obs=n, years=[int(y) for y in years])
        if n < 2:
            result.note = "single observation"
            return result
        if np.ptp(residuals) == 0:
            result.note = "constant residuals"
            return result

        lag = min(self.settings.max_acf_lag, n - 1)
        result.lag = lag
        result.acf = acf(residuals, nlags=lag, fft=False)

        lb = acorr_ljungbox(residuals, lags=[lag])
        result.lb_statistic = float(lb["lb_stat"].iloc[-1])
        result.lb_pvalue = float(lb["lb_pvalue"].iloc[-1])
        result.autocorrelated = bool(result.lb_pvalue < self.settings.alpha)
        return result

    def execute(
        self,
        data: pd.DataFrame,
        residual_column: str = "residual",
        strata: Sequence[str] = STRATUM_KEYS,
    ) -> AutocorrelationReport:
        """
        Execute the check.

        Args:
            data: Frame with strata columns, 'year' and the residual column
            residual_column: Column holding the residuals to test
            strata: Columns defining the strata

        Returns:
            AutocorrelationReport
        """
        logger.info(f"Checking autocorrelation of '{residual_column}' by {list(strata)}")
        report = AutocorrelationReport(alpha=self.settings.alpha)

        for key, group in data.groupby(list(strata)):
            group = group.sort_values("year")
            report.groups.append(
                self.check_group(
                    stratum_label(key),
                    group["year"].tolist(),
                    group[residual_column].to_numpy(dtype=float),
                )
            )

        for group in report.skipped:
            logger.info(f"  {group.stratum}: skipped ({group.note})")
        flagged = [g.stratum for g in report.tested if g.autocorrelated]
        logger.info(
            f"Ljung-Box: {len(flagged)}/{len(report.tested)} strata autocorrelated "
            f"at alpha={self.settings.alpha} → GLS {'required' if report.requires_gls else 'not required'}"
        )
        return report
