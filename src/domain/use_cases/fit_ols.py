"""Use case for fitting ordinary least squares yield models."""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd
import statsmodels.api as sm
import statsmodels.formula.api as smf

from ..exceptions import ModelFitError

logger = logging.getLogger(__name__)

RESPONSE = "yield_per_acre"


def model_terms(data: pd.DataFrame) -> List[str]:
    """
    Right-hand side terms with more than one observed level.

    Region and irrigation enter as treatment-coded factors, year as a
    continuous trend.
    """
    terms = []
    if data["region"].nunique() > 1:
        terms.append("C(region)")
    if data["irrigation"].nunique() > 1:
        terms.append("C(irrigation)")
    if data["year"].nunique() > 1:
        terms.append("year")
    return terms


def build_formula(data: pd.DataFrame, interactions: bool = False) -> str:
    """
    Build the patsy formula for the yield model.

    Args:
        data: Regional frame the formula will be fitted on
        interactions: Add every pairwise interaction between the terms

    Returns:
        Formula string, e.g. 'yield_per_acre ~ (C(region) + C(irrigation) + year) ** 2'
    """
    terms = model_terms(data)
    if not terms:
        return f"{RESPONSE} ~ 1"
    rhs = " + ".join(terms)
    if interactions and len(terms) > 1:
        rhs = f"({rhs}) ** 2"
    return f"{RESPONSE} ~ {rhs}"


def coefficient_table(results: Any, alpha: float = 0.05) -> pd.DataFrame:
    """Estimates, standard errors, t statistics, p values and confidence bounds."""
    ci = results.conf_int(alpha=alpha)
    table = pd.DataFrame(
        {
            "estimate": results.params,
            "std_error": results.bse,
            "t_value": results.tvalues,
            "p_value": results.pvalues,
            "ci_low": ci.iloc[:, 0],
            "ci_high": ci.iloc[:, 1],
        }
    )
    table.index.name = "term"
    return table


@dataclass
class OLSFit:
    """A fitted OLS yield model with the numbers needed for the report."""

    name: str
    formula: str
    results: Any  # statsmodels RegressionResultsWrapper
    data: pd.DataFrame  # fitted rows with 'fitted' and 'residual' columns
    coefficients: pd.DataFrame
    anova: pd.DataFrame
    summary: Dict[str, float] = field(default_factory=dict)

    @property
    def fitted(self) -> pd.Series:
        return self.data["fitted"]

    @property
    def residuals(self) -> pd.Series:
        return self.data["residual"]


class FitOLSUseCase:
    """Use case to fit yield ~ region, irrigation and year by OLS."""

    def __init__(self, alpha: float = 0.05):
        """
        Initialize use case.

        Args:
            alpha: Significance level for coefficient confidence intervals
        """
        self.alpha = alpha

    def execute(
        self,
        data: pd.DataFrame,
        interactions: bool = False,
        formula: Optional[str] = None,
        name: Optional[str] = None,
    ) -> OLSFit:
        """
        Fit the model.

        Args:
            data: Regional frame (year, region, irrigation, yield_per_acre)
            interactions: Use full pairwise interactions instead of main effects
            formula: Explicit formula overriding the generated one
            name: Label used in logs and exported artifacts

        Returns:
            OLSFit
        """
        name = name or ("ols_interaction" if interactions else "ols_additive")
        df = data.dropna(subset=[RESPONSE]).reset_index(drop=True)
        if len(df) < len(data):
            logger.warning(f"{name}: dropping {len(data) - len(df)} rows with undefined yield")

        formula = formula or build_formula(df, interactions=interactions)
        logger.info(f"Fitting {name}: {formula} on {len(df)} rows")

        model = smf.ols(formula, data=df)
        if model.exog.shape[0] - np.linalg.matrix_rank(model.exog) < 1:
            raise ModelFitError(
                f"{name}: no residual degrees of freedom "
                f"({model.exog.shape[0]} rows, {model.exog.shape[1]} columns)"
            )
        results = model.fit()

        df["fitted"] = np.asarray(results.fittedvalues)
        df["residual"] = np.asarray(results.resid)

        summary = {
            "n_obs": int(results.nobs),
            "n_params": int(len(results.params)),
            "df_resid": float(results.df_resid),
            "r_squared": float(results.rsquared),
            "adj_r_squared": float(results.rsquared_adj),
            "f_statistic": float(results.fvalue) if results.df_model > 0 else np.nan,
            "f_pvalue": float(results.f_pvalue) if results.df_model > 0 else np.nan,
            "log_likelihood": float(results.llf),
            "aic": float(results.aic),
            "bic": float(results.bic),
            "sigma": float(np.sqrt(results.scale)),
        }
        anova = sm.stats.anova_lm(results, typ=1)

        logger.info(
            f"{name}: R²={summary['r_squared']:.3f} | "
            f"F={summary['f_statistic']:.2f} (p={summary['f_pvalue']:.3g}) | "
            f"AIC={summary['aic']:.1f}"
        )
        return OLSFit(
            name=name,
            formula=formula,
            results=results,
            data=df,
            coefficients=coefficient_table(results, alpha=self.alpha),
            anova=anova,
            summary=summary,
        )
