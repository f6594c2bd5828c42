"""
Watershed EJ Index - Input Loading
Reads the EJSCREEN block-group table, the USALEEP life-expectancy table and
the watershed block-group list

Data sources:
- EPA EJSCREEN block-group CSV (national)
- CDC/NCHS USALEEP tract life expectancy (US_A.CSV)
- Region membership list (CSV with an ID column)

All tables are checked against their schema before anything else runs.
"""

from typing import FrozenSet, Optional

import pandas as pd

from config.settings import (
    BLOCK_GROUP_ID_LENGTH,
    ID_COLUMN,
    LIFE_EXPECTANCY_TRACT_COLUMN,
    TRACT_ID_LENGTH,
    get_settings,
)
from src.ingest.schema import (
    EJSCREEN_SCHEMA,
    LIFE_EXPECTANCY_SCHEMA,
    REGION_IDS_SCHEMA,
    TableSchema,
    validate_table,
)
from src.utils.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()


def pad_geoid(ids: pd.Series, width: int) -> pd.Series:
    """
    Normalize GEOID strings to a fixed width.

    CSV round trips through spreadsheet tools drop leading zeros
    (e.g. Alabama '01...' becomes '1...'); this restores them.

    Args:
        ids: Identifier strings
        width: Expected number of digits

    Returns:
        Zero-padded identifiers (missing stays missing)
    """
    return ids.astype("string").str.strip().str.zfill(width)


def read_table(path: str, schema: TableSchema) -> pd.DataFrame:
    """
    Read a delimited file, keeping only the schema's columns, and validate it.

    Args:
        path: CSV path
        schema: Expected columns

    Returns:
        Validated DataFrame
    """
    wanted = set(schema.column_names)

    logger.info(f"Reading {schema.name} from {path}")

    df = pd.read_csv(
        path,
        dtype=schema.read_dtypes(),
        usecols=lambda c: c in wanted,
        low_memory=False,
    )

    return validate_table(df, schema)


def load_ejscreen_table(path: Optional[str] = None) -> pd.DataFrame:
    """
    Load the EJSCREEN block-group table.

    Args:
        path: CSV path (default: settings.EJSCREEN_CSV_PATH)

    Returns:
        DataFrame with ID, STATE_NAME, raw indicator and percentile columns
    """
    df = read_table(path or settings.EJSCREEN_CSV_PATH, EJSCREEN_SCHEMA)
    df[ID_COLUMN] = pad_geoid(df[ID_COLUMN], BLOCK_GROUP_ID_LENGTH)

    logger.info(
        f"Loaded {len(df)} block groups across {df['STATE_NAME'].nunique()} states"
    )
    return df


def load_life_expectancy(path: Optional[str] = None) -> pd.DataFrame:
    """
    Load tract life expectancy.

    Args:
        path: CSV path (default: settings.LIFE_EXPECTANCY_CSV_PATH)

    Returns:
        DataFrame keyed by an 11-digit tract ID, one row per tract
    """
    df = read_table(path or settings.LIFE_EXPECTANCY_CSV_PATH, LIFE_EXPECTANCY_SCHEMA)
    df[LIFE_EXPECTANCY_TRACT_COLUMN] = pad_geoid(df[LIFE_EXPECTANCY_TRACT_COLUMN], TRACT_ID_LENGTH)

    valid = (
        df[LIFE_EXPECTANCY_TRACT_COLUMN]
        .str.fullmatch(rf"\d{{{TRACT_ID_LENGTH}}}")
        .fillna(False)
        .astype(bool)
    )
    if not valid.all():
        logger.warning(
            f"Dropping {int((~valid).sum())} life expectancy rows without a "
            f"{TRACT_ID_LENGTH}-digit tract ID"
        )
        df = df.loc[valid].reset_index(drop=True)

    duplicated = df[LIFE_EXPECTANCY_TRACT_COLUMN].duplicated(keep="first")
    if duplicated.any():
        logger.warning(f"Dropping {int(duplicated.sum())} duplicate life expectancy tracts")
        df = df.loc[~duplicated].reset_index(drop=True)

    logger.info(f"Loaded life expectancy for {len(df)} tracts")
    return df


def load_region_ids(path: Optional[str] = None) -> FrozenSet[str]:
    """
    Load the block-group identifiers that make up the region.

    Args:
        path: CSV path (default: settings.REGION_IDS_PATH)

    Returns:
        Frozen set of 12-digit block-group IDs
    """
    df = read_table(path or settings.REGION_IDS_PATH, REGION_IDS_SCHEMA)
    ids = pad_geoid(df[ID_COLUMN], BLOCK_GROUP_ID_LENGTH).dropna()

    region_ids = frozenset(ids.tolist())
    logger.info(f"Loaded {len(region_ids)} {settings.REGION_NAME} block group IDs")
    return region_ids
