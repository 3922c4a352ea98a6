# catalog_dedup/config/settings.py

"""Central configuration for the catalog_dedup engine."""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Central configuration for the catalog_dedup engine."""

    # --- Composite weights (must sum to 1.0) ---
    WEIGHT_BRAND: float = 0.30
    WEIGHT_NAME: float = 0.40
    WEIGHT_CATEGORY: float = 0.20
    WEIGHT_INGREDIENTS: float = 0.10

    # --- Decision thresholds ---
    THRESHOLD_OVERALL: float = 0.85     # isDuplicate / "medium"
    THRESHOLD_HIGH: float = 0.90        # "high"
    THRESHOLD_EXACT: float = 1.0        # "exact"
    THRESHOLD_BRAND_NAME: float = 0.90  # brand+name escalation
    THRESHOLD_LOW: float = 0.5          # "low" tier, also pair log cut-off

    # --- Ingredient comparison ---
    INGREDIENT_TOP_N: int = 3
    INGREDIENT_MATCH_THRESHOLD: float = 0.8

    # --- Scan limits ---
    MAX_CANDIDATES: int = 50            # linear-scan ceiling per check
    BATCH_MAX_PROCESSED: int = 100      # O(n^2) safety valve
    STATS_SAMPLE_SIZE: int = 50
    STATS_TOP_PAIRS: int = 5

    # --- Merge placeholders ---
    UNKNOWN_BRANDS: frozenset[str] = frozenset({
        "未知品牌",
        "未知",
        "unknown",
        "unknown brand",
    })
    IMAGE_PLACEHOLDER_MARKER: str = "placeholder"
    OTHER_CATEGORY: str = "其他"

    # --- Storage ---
    STORE_BACKEND: str = os.getenv("CATALOG_STORE", "sqlite").lower()

    # --- Paths ---
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent
    DATA_DIR: Path = BASE_DIR / "data"
    CATALOG_DB_PATH: Path = Path(
        os.getenv("CATALOG_DB_PATH", str(DATA_DIR / "catalog.db"))
    )
    BACKUPS_DIR: Path = DATA_DIR / "backups"
    REPORTS_DIR: Path = BASE_DIR / "reports"
    LOGS_DIR: Path = BASE_DIR / "logs"
