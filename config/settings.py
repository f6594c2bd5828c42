"""
Watershed EJ Index - Application Settings
Manages environment variables and configuration using Pydantic
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import Optional
import os


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Input paths default to files under data/ so a checkout with the
    standard data layout runs without a .env file.

    Optional:
        - BLOCK_GROUP_BOUNDARIES_PATH (maps are skipped without it)
    """

    # Application
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # File storage
    EXPORT_DIR: str = "exports"
    LOG_DIR: str = "logs"

    # Inputs
    EJSCREEN_CSV_PATH: str = "data/EJSCREEN_2023_BG_with_AS_CNMI_GU_VI.csv"
    LIFE_EXPECTANCY_CSV_PATH: str = "data/US_A.CSV"
    REGION_IDS_PATH: str = "data/watershed_block_groups.csv"
    BLOCK_GROUP_BOUNDARIES_PATH: Optional[str] = None

    # Scopes
    STATE_NAME: str = "Maryland"
    REGION_NAME: str = "Watershed"

    # Index parameters
    THRESHOLD_QUANTILE: float = 0.8
    LIFE_EXPECTANCY_OFFSET: float = 150.0  # negated = offset - years
    PCA_STANDARDIZE: bool = True
    PCA_SIGN_MIN_ABS_CORRELATION: float = 0.1  # below this the PCA sign is indeterminate

    # Outputs
    OUTPUT_TABLE_NAME: str = "ej_indexes.csv"
    THRESHOLD_SUMMARY_NAME: str = "threshold_summary.csv"
    REGION_FLAGS_NAME: str = "region_exceedances.csv"
    PCA_LOADINGS_NAME: str = "pca_loadings.csv"
    MAP_DPI: int = 200
    MAP_CMAP: str = "YlOrRd"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True
    )

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        # Create directories if they don't exist
        os.makedirs(self.EXPORT_DIR, exist_ok=True)
        if self.LOG_DIR:
            os.makedirs(self.LOG_DIR, exist_ok=True)


@lru_cache()
def get_settings() -> Settings:
    """
    Returns cached settings instance.
    Uses lru_cache to avoid re-reading .env on every call.
    """
    return Settings()


# EJSCREEN identifying columns
ID_COLUMN = "ID"
STATE_COLUMN = "STATE_NAME"
TRACT_ID_COLUMN = "TRACT_ID"

# Census GEOID widths
BLOCK_GROUP_ID_LENGTH = 12  # 2 state + 3 county + 6 tract + 1 block group
TRACT_ID_LENGTH = 11

# USALEEP life-expectancy file
LIFE_EXPECTANCY_TRACT_COLUMN = "Tract ID"
LIFE_EXPECTANCY_COLUMN = "e(0)"
