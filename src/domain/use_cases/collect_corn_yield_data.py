"""Use case for collecting raw corn survey data."""

import logging
from typing import List, Optional
from ..entities.nass_record import NASSRecord
from ..repositories.corn_yield_repository import CornYieldRepository

logger = logging.getLogger(__name__)


class CollectCornYieldDataUseCase:
    """Use case to collect raw records from repository, keeping one commodity."""

    def __init__(self, repository: CornYieldRepository, commodity: str = "CORN"):
        """
        Initialize use case.

        Args:
            repository: Repository for corn survey data access
            commodity: Commodity to keep (matched case-insensitively)
        """
        self.repository = repository
        self.commodity = commodity.strip().upper()

    def execute(
        self,
        state: Optional[str] = None,
        year: Optional[int] = None,
    ) -> List[NASSRecord]:
        """
        Execute the use case.

        Args:
            state: Optional state filter
            year: Optional year filter

        Returns:
            List of NASSRecord entities for the configured commodity
        """
        logger.info(f"Collecting {self.commodity} records: state={state}, year={year}")
        data = self.repository.get_records(state=state, year=year)
        kept = [r for r in data if r.commodity.strip().upper() == self.commodity]
        if len(kept) < len(data):
            logger.info(f"Filtered out {len(data) - len(kept)} records of other commodities")
        logger.info(f"Collected {len(kept)} {self.commodity} records")
        return kept
