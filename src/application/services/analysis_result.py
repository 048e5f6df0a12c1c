"""Container for everything one analysis run produces."""

from dataclasses import dataclass, field
from typing import Dict, Optional

from ...domain.use_cases.aggregate_by_region import AggregationResult
from ...domain.use_cases.check_autocorrelation import AutocorrelationReport
from ...domain.use_cases.diagnose_residuals import DiagnosticsReport
from ...domain.use_cases.fit_gls_ar1 import GLSFit
from ...domain.use_cases.fit_ols import OLSFit
from ...domain.use_cases.reshape_data_items import ReshapeResult


@dataclass
class AnalysisResult:
    """Results of one run, passed from the service to the report writers."""

    reshape: ReshapeResult
    aggregation: AggregationResult
    ols_additive: Optional[OLSFit] = None
    ols_interaction: Optional[OLSFit] = None
    diagnostics: Dict[str, DiagnosticsReport] = field(default_factory=dict)
    autocorrelation: Optional[AutocorrelationReport] = None
    gls: Optional[GLSFit] = None
    gls_autocorrelation: Optional[AutocorrelationReport] = None
    figures: Dict[str, str] = field(default_factory=dict)  # name -> saved path
    output_dir: Optional[str] = None
