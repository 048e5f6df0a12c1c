"""Write the figures and the Markdown document for a finished run."""

import logging

from ...application.services.analysis_result import AnalysisResult
from ...domain.repositories.report_repository import ReportRepository
from . import figures
from .markdown_report import build_markdown

logger = logging.getLogger(__name__)


def publish_report(result: AnalysisResult, repository: ReportRepository) -> str:
    """
    Render every figure, then the report that links them.

    Returns:
        Path or identifier of the saved report document
    """
    logger.info("Rendering report figures")
    regional = result.aggregation.to_frame()

    def save(name, fig):
        result.figures[name] = repository.save_figure(name, fig)

    if not regional.empty:
        save(
            "production_by_region",
            figures.plot_time_series(regional, "production", "Production by region", ylabel="Production (bu)"),
        )
        save(
            "yield_by_region",
            figures.plot_time_series(regional, "yield_per_acre", "Yield by region", ylabel="Yield (bu/acre)"),
        )

    for fit in (result.ols_additive, result.ols_interaction):
        if fit is None:
            continue
        save(
            f"{fit.name}_residuals_vs_fitted",
            figures.plot_residuals_vs_fitted(fit.fitted, fit.residuals, f"{fit.name}: residuals vs fitted"),
        )
        save(f"{fit.name}_qq", figures.plot_qq(fit.residuals, f"{fit.name}: normal Q-Q"))
        save(f"{fit.name}_strata", figures.plot_stratum_residuals(fit.data, f"{fit.name}: residuals by stratum"))

    if result.autocorrelation is not None:
        save("acf_ols_residuals", figures.plot_acf_by_stratum(result.autocorrelation, "ACF of OLS residuals"))

    if result.gls is not None:
        save(
            "gls_residuals_vs_fitted",
            figures.plot_residuals_vs_fitted(
                result.gls.data["fitted"],
                result.gls.data["normalized_residual"],
                "GLS AR(1): normalized residuals vs fitted",
            ),
        )
    if result.gls_autocorrelation is not None:
        save(
            "acf_gls_residuals",
            figures.plot_acf_by_stratum(result.gls_autocorrelation, "ACF of normalized GLS residuals"),
        )

    path = repository.save_text("report.md", build_markdown(result))
    logger.info(f"Report written to {path}")
    return path
