"""Corn yield repository interface."""

from abc import ABC, abstractmethod
from typing import List, Optional
from ..entities.nass_record import NASSRecord


class CornYieldRepository(ABC):
    """Abstract repository for raw corn survey data access."""

    @abstractmethod
    def get_records(
        self,
        state: Optional[str] = None,
        year: Optional[int] = None,
    ) -> List[NASSRecord]:
        """
        Retrieve raw records.

        Args:
            state: Filter by state name (optional)
            year: Filter by year (optional)

        Returns:
            List of NASSRecord entities
        """
        pass
