"""Use cases - core analysis operations."""

from .collect_corn_yield_data import CollectCornYieldDataUseCase
from .reshape_data_items import ReshapeDataItemsUseCase
from .aggregate_by_region import AggregateByRegionUseCase
from .fit_ols import FitOLSUseCase
from .diagnose_residuals import DiagnoseResidualsUseCase
from .check_autocorrelation import CheckAutocorrelationUseCase
from .fit_gls_ar1 import FitGLSAR1UseCase

__all__ = [
    "CollectCornYieldDataUseCase",
    "ReshapeDataItemsUseCase",
    "AggregateByRegionUseCase",
    "FitOLSUseCase",
    "DiagnoseResidualsUseCase",
    "CheckAutocorrelationUseCase",
    "FitGLSAR1UseCase",
]
