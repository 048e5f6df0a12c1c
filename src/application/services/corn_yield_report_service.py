"""Main service orchestrating the corn yield regression report."""

import logging
from typing import Any, Dict, Optional, Tuple

import pandas as pd

from ...domain.entities.analysis_settings import AnalysisSettings
from ...domain.entities.region_grouping import RegionGrouping
from ...domain.repositories.corn_yield_repository import CornYieldRepository
from ...domain.repositories.report_repository import ReportRepository

# Use cases
from ...domain.use_cases.collect_corn_yield_data import CollectCornYieldDataUseCase
from ...domain.use_cases.reshape_data_items import ReshapeDataItemsUseCase, ReshapeResult
from ...domain.use_cases.aggregate_by_region import AggregateByRegionUseCase, AggregationResult
from ...domain.use_cases.fit_ols import FitOLSUseCase
from ...domain.use_cases.diagnose_residuals import DiagnoseResidualsUseCase
from ...domain.use_cases.check_autocorrelation import CheckAutocorrelationUseCase
from ...domain.use_cases.fit_gls_ar1 import FitGLSAR1UseCase
from .analysis_result import AnalysisResult

logger = logging.getLogger(__name__)


class CornYieldReportService:
    """Orchestrates load → reshape → aggregate → OLS → diagnostics → GLS AR(1)."""

    def __init__(
        self,
        corn_yield_repo: CornYieldRepository,
        report_repo: ReportRepository,
        region_groups: Dict[str, str],
        analysis_settings: Dict[str, Any],
        commodity: str = "CORN",
        crop_type: Optional[str] = "GRAIN",
    ):
        self.corn_yield_repo = corn_yield_repo
        self.report_repo = report_repo

        # Convert definitions to domain entities
        self.grouping = RegionGrouping.from_dict(region_groups)
        self.settings = AnalysisSettings.from_dict(analysis_settings)

        # Use cases
        self.collect_uc = CollectCornYieldDataUseCase(corn_yield_repo, commodity=commodity)
        self.reshape_uc = ReshapeDataItemsUseCase(crop_type=crop_type)
        self.aggregate_uc = AggregateByRegionUseCase(self.grouping)
        self.fit_ols_uc = FitOLSUseCase(alpha=1 - self.settings.confidence_level)
        self.diagnose_uc = DiagnoseResidualsUseCase(self.settings)
        self.autocorrelation_uc = CheckAutocorrelationUseCase(self.settings)
        self.fit_gls_uc = FitGLSAR1UseCase(self.settings)

    def prepare_data(self) -> Tuple[ReshapeResult, AggregationResult]:
        """Run the data stages and export the intermediate tables."""
        logger.info("=== Starting data preparation ===")

        records = self.collect_uc.execute()
        reshaped = self.reshape_uc.execute(records)
        aggregated = self.aggregate_uc.execute(reshaped.observations)

        self.report_repo.save_table("00_parse_issues", reshaped.issues_frame())
        self.report_repo.save_table("01_observations", reshaped.to_frame())
        self.report_repo.save_table("02_regional", aggregated.to_frame())
        if aggregated.gaps:
            self.report_repo.save_table("02_excluded_states", aggregated.gaps_frame())

        logger.info("=== Data preparation completed ===")
        return reshaped, aggregated

    def fit_models(self, result: AnalysisResult) -> AnalysisResult:
        """Fit OLS, run diagnostics and the autocorrelation gate, then fit GLS AR(1)."""
        logger.info("=== Starting model fitting ===")
        regional = result.aggregation.to_frame()
        if regional.empty:
            raise ValueError("No regional rows to model; check the input file and region grouping")

        result.ols_additive = self.fit_ols_uc.execute(regional, interactions=False)
        result.ols_interaction = self.fit_ols_uc.execute(regional, interactions=True)
        for fit in (result.ols_additive, result.ols_interaction):
            result.diagnostics[fit.name] = self.diagnose_uc.execute(fit)

        # Gate on the interaction model, the mean structure GLS keeps
        result.autocorrelation = self.autocorrelation_uc.execute(result.ols_interaction.data)
        if not result.autocorrelation.requires_gls:
            logger.info("No stratum is autocorrelated; fitting GLS AR(1) for comparison anyway")

        result.gls = self.fit_gls_uc.execute(regional)
        result.gls_autocorrelation = self.autocorrelation_uc.execute(
            result.gls.data, residual_column="normalized_residual"
        )
        logger.info("=== Model fitting completed ===")
        return result

    def export_results(self, result: AnalysisResult) -> None:
        """Write model tables and pickled fits through the report repository."""
        for fit in (result.ols_additive, result.ols_interaction):
            self.report_repo.save_table(f"03_{fit.name}_coefficients", fit.coefficients, index=True)
            self.report_repo.save_table(f"03_{fit.name}_anova", fit.anova, index=True)
            self.report_repo.save_table(
                f"03_{fit.name}_fitted", fit.data[["year", "region", "irrigation", "yield_per_acre", "fitted", "residual"]]
            )
            self.report_repo.save_model(
                fit.name, fit.results, metadata={"formula": fit.formula, **fit.summary}
            )

        diagnostics = pd.concat(
            [report.to_frame() for report in result.diagnostics.values()], ignore_index=True
        )
        self.report_repo.save_table("04_residual_diagnostics", diagnostics)
        self.report_repo.save_table("05_autocorrelation_ols", result.autocorrelation.to_frame())

        gls = result.gls
        self.report_repo.save_table("06_gls_coefficients", gls.coefficients, index=True)
        self.report_repo.save_table("06_gls_term_tests", gls.term_tests, index=True)
        self.report_repo.save_table("06_gls_fitted", gls.data)
        self.report_repo.save_table("06_ar1_summary", gls.summary_frame())
        self.report_repo.save_table("07_autocorrelation_gls", result.gls_autocorrelation.to_frame())
        self.report_repo.save_model(
            "gls_ar1",
            gls.results,
            metadata={
                "formula": gls.formula,
                "method": gls.method,
                "rho": gls.rho,
                "rho_ci": gls.rho_ci,
                "log_likelihood": gls.log_likelihood,
                "block_sizes": gls.block_sizes,
                "aliased_columns": gls.aliased_columns,
                "created": pd.Timestamp.now().isoformat(),
            },
        )

    def run(self) -> AnalysisResult:
        """Run the whole pipeline and export every table."""
        reshaped, aggregated = self.prepare_data()
        result = AnalysisResult(
            reshape=reshaped,
            aggregation=aggregated,
            output_dir=str(getattr(self.report_repo, "output_dir", "")) or None,
        )
        self.fit_models(result)
        self.export_results(result)
        return result
