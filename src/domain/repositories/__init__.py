"""Repository interfaces."""

from .corn_yield_repository import CornYieldRepository
from .report_repository import ReportRepository

__all__ = [
    "CornYieldRepository",
    "ReportRepository",
]
