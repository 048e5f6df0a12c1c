"""Report repository interface."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import pandas as pd


class ReportRepository(ABC):
    """Abstract repository for report artifacts."""

    @abstractmethod
    def save_table(self, name: str, table: pd.DataFrame, index: bool = False) -> str:
        """
        Save a table.

        Args:
            name: Artifact name without extension (e.g. '02_regional')
            table: DataFrame to save
            index: Whether to write the index

        Returns:
            Path or identifier where the table was saved
        """
        pass

    @abstractmethod
    def save_figure(self, name: str, figure: Any) -> str:
        """
        Save a matplotlib figure and release it.

        Returns:
            Path or identifier where the figure was saved
        """
        pass

    @abstractmethod
    def save_text(self, name: str, text: str) -> str:
        """Save a text document (e.g. 'report.md')."""
        pass

    @abstractmethod
    def save_model(self, name: str, model: Any, metadata: Optional[Dict[str, Any]] = None) -> str:
        """
        Save fitted model results.

        Args:
            name: Model name (e.g. 'gls_ar1')
            model: The fitted results object
            metadata: Optional metadata about the fit

        Returns:
            Path or identifier where the model was saved
        """
        pass

    @abstractmethod
    def load_model(self, model_id: str) -> Any:
        """Load previously saved model results."""
        pass
