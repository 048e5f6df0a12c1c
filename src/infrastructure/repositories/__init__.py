"""Concrete repository implementations."""

from .nass_corn_yield_repository import NASSCornYieldRepository
from .file_report_repository import FileReportRepository

__all__ = [
    "NASSCornYieldRepository",
    "FileReportRepository",
]
