"""CLI interface for the corn yield regression report."""

import argparse
import logging
import sys

from ...application.services.corn_yield_report_service import CornYieldReportService
from ...domain.exceptions import ModelFitError
from ...infrastructure.repositories.nass_corn_yield_repository import NASSCornYieldRepository
from ...infrastructure.repositories.file_report_repository import FileReportRepository
from ..report.publisher import publish_report

from config.settings import (
    CORN_DATA_FILE,
    OUTPUT_DIR,
    COMMODITY,
    CROP_TYPE,
    REGION_GROUPS,
    ANALYSIS_SETTINGS,
    LOG_FORMAT,
)

logger = logging.getLogger(__name__)


def build_service(data_file: str, output_dir: str) -> CornYieldReportService:
    return CornYieldReportService(
        corn_yield_repo=NASSCornYieldRepository(data_file),
        report_repo=FileReportRepository(output_dir),
        region_groups=REGION_GROUPS,
        analysis_settings=ANALYSIS_SETTINGS,
        commodity=COMMODITY,
        crop_type=CROP_TYPE,
    )


def main(argv=None):
    parser = argparse.ArgumentParser(description="Corn yield by region, irrigation and year")
    parser.add_argument(
        "--data-file", type=str, default=str(CORN_DATA_FILE), help="Quick Stats CSV or .xlsx export"
    )
    parser.add_argument(
        "--output-dir", type=str, default=str(OUTPUT_DIR), help="Directory for tables, figures and report"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # === prepare-data: reshape + aggregate, export tables ===
    subparsers.add_parser(
        "prepare-data",
        help="Load → reshape → aggregate by region, and export the tables",
    )

    # === report: full pipeline ===
    subparsers.add_parser(
        "report",
        help="Run the full pipeline: OLS, diagnostics, autocorrelation check, GLS AR(1), report",
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    # === Initialize service ===
    try:
        service = build_service(args.data_file, args.output_dir)
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Failed to initialize service: {e}")
        sys.exit(1)

    # === Command: prepare-data ===
    if args.command == "prepare-data":
        try:
            reshaped, aggregated = service.prepare_data()
        except (OSError, ValueError) as e:
            logger.error(f"Data preparation failed: {e}", exc_info=True)
            sys.exit(1)

        print("\n" + "=" * 60)
        print(" DATA PREPARED ")
        print("=" * 60)
        print(f" Raw rows:           {reshaped.n_input}")
        print(f" Flagged rows:       {reshaped.n_rejected}")
        print(f" Observations:       {len(reshaped.observations)}")
        print(f" Regional rows:      {len(aggregated.observations)}")
        if aggregated.gaps:
            print(f" Excluded states:    {', '.join(aggregated.excluded_states)}")
        print(f" Tables saved to:    {args.output_dir}")
        print("=" * 60)

    # === Command: report ===
    elif args.command == "report":
        try:
            result = service.run()
            report_path = publish_report(result, service.report_repo)
        except ModelFitError as e:
            logger.error(f"Model fit failed: {e}", exc_info=True)
            sys.exit(1)
        except (OSError, ValueError) as e:
            logger.error(f"Report failed: {e}", exc_info=True)
            sys.exit(1)

        gls = result.gls
        print("\n" + "=" * 60)
        print(" REPORT COMPLETED ")
        print("=" * 60)
        print(f" OLS additive R²:     {result.ols_additive.summary['r_squared']:.4f}")
        print(f" OLS interaction R²:  {result.ols_interaction.summary['r_squared']:.4f}")
        print(f" Autocorrelated strata: "
              f"{sum(1 for g in result.autocorrelation.tested if g.autocorrelated)}"
              f"/{len(result.autocorrelation.tested)}")
        print(f" GLS AR(1) rho:       {gls.rho:.4f} [{gls.rho_ci[0]:.4f}, {gls.rho_ci[1]:.4f}]")
        print(f" Report:              {report_path}")
        print("=" * 60)


if __name__ == "__main__":
    main()
