"""
Watershed EJ Index - Identifier Linkage
Attaches tract-level life expectancy to block-group records

A block-group GEOID is its tract GEOID plus one digit, so the tract key is
the first 11 characters. Unmatched tracts keep missing life expectancy.
"""

import numpy as np
import pandas as pd

from config.settings import (
    BLOCK_GROUP_ID_LENGTH,
    ID_COLUMN,
    LIFE_EXPECTANCY_COLUMN,
    LIFE_EXPECTANCY_TRACT_COLUMN,
    TRACT_ID_COLUMN,
    TRACT_ID_LENGTH,
)
from src.utils.logging import get_logger

logger = get_logger(__name__)


def tract_id_from_block_group(block_group_ids: pd.Series) -> pd.Series:
    """
    Derive tract GEOIDs by truncating block-group GEOIDs.

    Args:
        block_group_ids: 12-digit block-group identifiers

    Returns:
        11-digit tract identifiers; identifiers that are not 12 digits map to missing
    """
    ids = block_group_ids.astype("string")
    valid = ids.str.fullmatch(rf"\d{{{BLOCK_GROUP_ID_LENGTH}}}").fillna(False).astype(bool)

    if (~valid & ids.notna()).any():
        logger.warning(
            f"{int((~valid & ids.notna()).sum())} identifiers are not "
            f"{BLOCK_GROUP_ID_LENGTH}-digit block groups; tract key left missing"
        )

    tracts = ids.str.slice(0, TRACT_ID_LENGTH)
    return tracts.where(valid, pd.NA)


def link_life_expectancy(df: pd.DataFrame, life_expectancy: pd.DataFrame) -> pd.DataFrame:
    """
    Left-join life expectancy onto block groups via the tract prefix.

    Args:
        df: Block-group table with an ID column
        life_expectancy: Tract table from load_life_expectancy (unique tract IDs)

    Returns:
        Copy of df with TRACT_ID and the life expectancy column; row count unchanged
    """
    linked = df.copy()
    linked[TRACT_ID_COLUMN] = tract_id_from_block_group(linked[ID_COLUMN])

    # Missing keys on either side never match
    right = life_expectancy.dropna(subset=[LIFE_EXPECTANCY_TRACT_COLUMN])
    lookup = pd.Series(
        pd.to_numeric(right[LIFE_EXPECTANCY_COLUMN], errors="coerce").to_numpy(dtype=float),
        index=right[LIFE_EXPECTANCY_TRACT_COLUMN].astype(str).to_numpy(),
    )

    if not lookup.index.is_unique:
        raise ValueError("Life expectancy table has duplicate tract IDs")

    tracts = linked[TRACT_ID_COLUMN]
    values = pd.Series(np.nan, index=linked.index, dtype=float)
    has_key = tracts.notna()
    values[has_key] = tracts[has_key].map(lookup).astype(float)
    linked[LIFE_EXPECTANCY_COLUMN] = values

    matched = int(linked[LIFE_EXPECTANCY_COLUMN].notna().sum())
    logger.info(
        f"Linked life expectancy: {matched}/{len(linked)} block groups matched, "
        f"{len(linked) - matched} left missing"
    )

    return linked
