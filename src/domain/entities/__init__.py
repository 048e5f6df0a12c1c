"""Domain entities."""

from .irrigation import Irrigation
from .variable import Variable
from .nass_record import NASSRecord
from .corn_observation import CornObservation, RegionalObservation, compute_yield
from .region_grouping import RegionGrouping
from .parse_issue import IssueKind, ParseIssue, AggregationGap
from .analysis_settings import AnalysisSettings
from .diagnostic_result import DiagnosticResult

__all__ = [
    "Irrigation",
    "Variable",
    "NASSRecord",
    "CornObservation",
    "RegionalObservation",
    "compute_yield",
    "RegionGrouping",
    "IssueKind",
    "ParseIssue",
    "AggregationGap",
    "AnalysisSettings",
    "DiagnosticResult",
]
