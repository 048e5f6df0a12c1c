"""File-based report repository implementation."""

import datetime
import logging
import pickle
from pathlib import Path
from typing import Any, Dict, Optional

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
import pandas as pd

from ...domain.repositories.report_repository import ReportRepository

logger = logging.getLogger(__name__)


class FileReportRepository(ReportRepository):
    """Repository writing report tables, figures and fitted models to a directory."""

    FIGURE_DIR = "figures"
    MODEL_DIR = "models"

    def __init__(self, output_dir: str = "output/latest_run"):
        """
        Initialize repository.

        Args:
            output_dir: Directory to store the report
        """
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        (self.output_dir / self.FIGURE_DIR).mkdir(exist_ok=True)
        (self.output_dir / self.MODEL_DIR).mkdir(exist_ok=True)

    def save_table(self, name: str, table: pd.DataFrame, index: bool = False) -> str:
        """Save table as CSV."""
        path = self.output_dir / f"{name}.csv"
        table.to_csv(path, index=index)
        logger.info(f"Saved table {path} ({len(table)} rows)")
        return str(path)

    def save_figure(self, name: str, figure: Any) -> str:
        """Save figure as PNG."""
        path = self.output_dir / self.FIGURE_DIR / f"{name}.png"
        figure.savefig(path, dpi=120, bbox_inches="tight")
        plt.close(figure)
        logger.info(f"Saved figure {path}")
        return str(path)

    def save_text(self, name: str, text: str) -> str:
        path = self.output_dir / name
        path.write_text(text, encoding="utf-8")
        logger.info(f"Saved document {path}")
        return str(path)

    def save_model(self, name: str, model: Any, metadata: Optional[Dict[str, Any]] = None) -> str:
        """Save fitted results to a pickle file."""
        timestamp = datetime.datetime.now().strftime("%Y%m%d_%H%M%S")
        model_file = self.output_dir / self.MODEL_DIR / f"{name}_{timestamp}.pkl"
        metadata_file = self.output_dir / self.MODEL_DIR / f"{name}_{timestamp}_metadata.pkl"

        logger.info(f"Saving model to {model_file}")

        with open(model_file, "wb") as f:
            pickle.dump(model, f)

        if metadata:
            with open(metadata_file, "wb") as f:
                pickle.dump(metadata, f)

        logger.info(f"Model saved successfully: {model_file}")
        return str(model_file)

    def load_model(self, model_id: str) -> Any:
        """Load fitted results from a pickle file."""
        model_file = Path(model_id)
        if not model_file.exists():
            raise FileNotFoundError(f"Model file not found: {model_id}")

        logger.info(f"Loading model from {model_file}")

        with open(model_file, "rb") as f:
            model = pickle.load(f)

        logger.info("Model loaded successfully")
        return model
