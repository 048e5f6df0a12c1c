"""Application settings and configuration."""

import os
from pathlib import Path

# Base directory
BASE_DIR = Path(__file__).parent.parent

# Data paths
DATA_DIR = BASE_DIR / "data"
CORN_DATA_FILE = Path(os.getenv("CORN_DATA_FILE", DATA_DIR / "nass_corn_irrigation.csv"))

# Report output directory
OUTPUT_DIR = Path(os.getenv("CORN_OUTPUT_DIR", BASE_DIR / "output" / "latest_run"))

# Rows kept from the Quick Stats export
COMMODITY = "CORN"
CROP_TYPE = "GRAIN"

# Hand-authored state -> analysis region grouping.
# States not listed here are excluded from the regional table and reported.
REGION_GROUPS = {
    "NEBRASKA": "PLAINS",
    "KANSAS": "PLAINS",
    "SOUTH DAKOTA": "PLAINS",
    "NORTH DAKOTA": "PLAINS",
    "IOWA": "CORN BELT",
    "ILLINOIS": "CORN BELT",
    "INDIANA": "CORN BELT",
    "MINNESOTA": "CORN BELT",
    "MISSOURI": "CORN BELT",
    "COLORADO": "WEST",
    "TEXAS": "WEST",
    "OKLAHOMA": "WEST",
}

# Statistical settings
ANALYSIS_SETTINGS = {
    "alpha": 0.05,
    "max_acf_lag": 5,
    "dw_tolerance": 0.5,
    "confidence_level": 0.95,
    "rho_bounds": (-0.99, 0.99),
}

# Logging
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
