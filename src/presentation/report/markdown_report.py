"""Markdown rendering of a finished analysis run."""

import os
from typing import List

import pandas as pd

from ...application.services.analysis_result import AnalysisResult
from ...domain.use_cases.diagnose_residuals import DiagnosticsReport


def _table(df: pd.DataFrame, float_format: str = "{:.4g}", index: bool = True) -> str:
    text = df.to_string(index=index, float_format=lambda v: float_format.format(v))
    return f"```\n{text}\n```"


def _figure(result: AnalysisResult, name: str, caption: str) -> str:
    path = result.figures.get(name)
    if not path:
        return ""
    rel = os.path.relpath(path, result.output_dir) if result.output_dir else path
    return f"![{caption}]({rel})\n"


def _diagnostics_lines(report: DiagnosticsReport) -> List[str]:
    lines = []
    for r in report.overall:
        if r.skipped:
            lines.append(f"- `{r.test}`: skipped ({r.note})")
            continue
        p_text = f", p = {r.p_value:.4f}" if r.p_value is not None else ""
        verdict = "pass" if r.passed else "**fail**"
        lines.append(f"- `{r.test}`: statistic = {r.statistic:.4f}{p_text} → {verdict}")
    failed = [r for r in report.by_stratum if r.passed is False]
    if failed:
        lines.append(
            "- stratum-level failures: "
            + ", ".join(f"{r.stratum} ({r.test})" for r in failed)
        )
    return lines


def build_markdown(result: AnalysisResult) -> str:
    """Render the report document."""
    reshape, agg = result.reshape, result.aggregation
    out = ["# Corn yield by region, irrigation and year", ""]

    out += ["## Data", ""]
    out.append(
        f"{reshape.n_input} raw rows were read; {reshape.n_filtered} were outside the "
        f"variables of interest and {reshape.n_rejected} were flagged "
        f"(see `00_parse_issues.csv`). Reshaping produced {len(reshape.observations)} "
        f"observations, {reshape.n_yield_undefined} of them with an undefined yield."
    )
    if reshape.issues:
        counts = ", ".join(f"{k}: {n}" for k, n in sorted(reshape.issue_counts.items()))
        out.append(f"Flagged rows by kind: {counts}.")
    out.append("")
    out.append(
        f"Regional aggregation sums production and acres harvested before dividing, "
        f"giving {len(agg.observations)} region-year rows."
    )
    if agg.gaps:
        out.append(
            "States absent from the region grouping were excluded: "
            + ", ".join(str(g) for g in agg.gaps)
            + "."
        )
    if agg.n_incomplete:
        out.append(f"{agg.n_incomplete} rows missing acres or production were excluded.")
    if agg.n_overlapping:
        out.append(
            f"{agg.n_overlapping} district or county rows were dropped because a state or "
            "district total for the same year and irrigation was present."
        )
    out.append("")
    out.append(_figure(result, "production_by_region", "Production"))
    out.append(_figure(result, "yield_by_region", "Yield"))

    for fit in (result.ols_additive, result.ols_interaction):
        if fit is None:
            continue
        s = fit.summary
        out += [f"## OLS: `{fit.name}`", "", f"Formula: `{fit.formula}`", ""]
        out.append(
            f"n = {s['n_obs']}, R² = {s['r_squared']:.3f} (adjusted {s['adj_r_squared']:.3f}), "
            f"F = {s['f_statistic']:.2f} (p = {s['f_pvalue']:.3g}), AIC = {s['aic']:.1f}."
        )
        out += ["", _table(fit.coefficients), "", "Sequential ANOVA:", "", _table(fit.anova), ""]
        diagnostics = result.diagnostics.get(fit.name)
        if diagnostics is not None:
            out += ["Residual diagnostics:", ""] + _diagnostics_lines(diagnostics) + [""]
        out.append(_figure(result, f"{fit.name}_residuals_vs_fitted", "Residuals vs fitted"))
        out.append(_figure(result, f"{fit.name}_qq", "Normal Q-Q"))
        out.append(_figure(result, f"{fit.name}_strata", "Residuals by stratum"))

    if result.autocorrelation is not None:
        ac = result.autocorrelation
        out += ["## Autocorrelation check", ""]
        out.append(
            f"Ljung-Box tests on year-ordered OLS residuals per stratum "
            f"(alpha = {ac.alpha}): {sum(1 for g in ac.tested if g.autocorrelated)} of "
            f"{len(ac.tested)} strata autocorrelated; {len(ac.skipped)} skipped. "
            f"GLS with AR(1) errors is {'warranted' if ac.requires_gls else 'not indicated, but fitted for comparison'}."
        )
        out += ["", _table(ac.to_frame(), index=False), ""]
        out.append(_figure(result, "acf_ols_residuals", "ACF of OLS residuals"))

    gls = result.gls
    if gls is not None:
        out += ["## GLS with AR(1) errors", "", f"Formula: `{gls.formula}`", ""]
        out.append(
            f"Estimated by maximum likelihood with the AR(1) series restarted in each of "
            f"{gls.n_strata} (region, irrigation) strata."
        )
        out.append(
            f"rho = {gls.rho:.3f}, {gls.confidence_level:.0%} profile interval [{gls.rho_ci[0]:.3f}, {gls.rho_ci[1]:.3f}]. "
            f"Log-likelihood {gls.log_likelihood:.2f} vs {gls.log_likelihood_independent:.2f} "
            f"with rho = 0 (LR = {gls.lr_statistic:.2f}, p = {gls.lr_pvalue:.3g}); "
            f"AIC {gls.aic:.1f} vs {gls.aic_independent:.1f}."
        )
        if gls.aliased_columns:
            out.append(
                "Design columns aliased with other columns (no data in that cell) were left out "
                "of the fit and the term tests: " + ", ".join(f"`{c}`" for c in gls.aliased_columns) + "."
            )
        if gls.skipped_strata:
            out.append(
                "Single-observation strata (no AR(1) information): "
                + ", ".join(gls.skipped_strata)
                + "."
            )
        out += ["", "Coefficients:", "", _table(gls.coefficients), ""]
        out += ["Term tests (Wald):", "", _table(gls.term_tests), ""]
        if result.gls_autocorrelation is not None:
            remaining = [g.stratum for g in result.gls_autocorrelation.tested if g.autocorrelated]
            out.append(
                "Normalized GLS residuals remain autocorrelated in: " + ", ".join(remaining) + "."
                if remaining
                else "No stratum shows autocorrelation in the normalized GLS residuals."
            )
            out.append("")
        out.append(_figure(result, "gls_residuals_vs_fitted", "GLS residuals vs fitted"))
        out.append(_figure(result, "acf_gls_residuals", "ACF of normalized GLS residuals"))

    return "\n".join(line for line in out if line is not None) + "\n"
