"""
Watershed EJ Index - Indicator Normalization
Puts every indicator in "higher = more disadvantaged" units and ranks it

Methods:
- Percent scale (EJSCREEN fractions -> 0-100)
- Negated offset (life expectancy years -> offset - years)
- Percentile rank (0-100, average ranks for ties, missing stays missing)

National percentiles rank over every loaded block group; scope percentiles
rank only within a state or the region.
"""

from typing import Optional

import numpy as np
import pandas as pd

from config.settings import get_settings
from src.processing.indicator_registry import (
    INDICATORS,
    IndicatorDefinition,
    Transform,
)
from src.utils.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()


def percentile_rank(values: pd.Series) -> pd.Series:
    """
    Rank values as percentiles (0-100).

    Rank uses the average of tied positions and is divided by the number of
    non-missing values. A unique largest value scores 100; tied values share
    the mean of their positions, so a tied maximum scores below 100.

    Args:
        values: Raw values (missing allowed)

    Returns:
        Percentiles, missing where the input is missing
    """
    numeric = pd.to_numeric(values, errors="coerce").astype(float)
    return numeric.rank(method="average", pct=True, na_option="keep") * 100.0


def scope_percentile(values: pd.Series, mask: pd.Series) -> pd.Series:
    """
    Percentile rank within a subset of rows.

    Args:
        values: Raw values for all rows
        mask: Boolean selector of the ranking population

    Returns:
        Percentiles for rows in the mask, missing elsewhere
    """
    mask = mask.fillna(False).astype(bool)
    result = pd.Series(np.nan, index=values.index, dtype=float)

    if mask.any():
        result[mask] = percentile_rank(values[mask])

    return result


def percent_scale(values: pd.Series) -> pd.Series:
    """Convert an EJSCREEN fraction (0-1) to percent units (0-100)"""
    return pd.to_numeric(values, errors="coerce").astype(float) * 100.0


def negate_offset(values: pd.Series, offset: Optional[float] = None) -> pd.Series:
    """
    Flip a "higher = better" measure so that higher = worse.

    Args:
        values: Raw values (life expectancy in years)
        offset: Constant subtracted from (default: settings.LIFE_EXPECTANCY_OFFSET)

    Returns:
        offset - values
    """
    offset = settings.LIFE_EXPECTANCY_OFFSET if offset is None else offset
    return offset - pd.to_numeric(values, errors="coerce").astype(float)


def transform_indicator(df: pd.DataFrame, indicator: IndicatorDefinition) -> pd.Series:
    """
    Compute an indicator's value column from its source column.

    Args:
        df: Table holding indicator.source_column
        indicator: Registry definition

    Returns:
        Series of transformed values
    """
    if indicator.source_column not in df.columns:
        logger.warning(f"Indicator {indicator.name} column {indicator.source_column} not found")
        return pd.Series(np.nan, index=df.index)

    values = df[indicator.source_column]

    if indicator.transform == Transform.PERCENT_SCALE:
        result = percent_scale(values)

    elif indicator.transform == Transform.NEGATE_OFFSET:
        result = negate_offset(values)

    else:
        raise ValueError(f"Unknown transform: {indicator.transform}")

    logger.info(
        f"Transformed {indicator.name}: "
        f"min={result.min():.3f}, max={result.max():.3f}, "
        f"mean={result.mean():.3f}, missing={result.isna().sum()}"
    )

    return result


def add_indicator_values(df: pd.DataFrame) -> pd.DataFrame:
    """
    Add the transformed value column for every registered indicator.

    Args:
        df: Linked block-group table

    Returns:
        Copy of df with value columns added
    """
    out = df.copy()

    for indicator in INDICATORS:
        out[indicator.value_column] = transform_indicator(out, indicator)

    return out


def add_national_percentiles(df: pd.DataFrame) -> pd.DataFrame:
    """
    Fill percentile columns that EJSCREEN does not precompute.

    The ranking population is every row of df, so df must be the national table.

    Args:
        df: Table with value columns

    Returns:
        Copy of df with every indicator's percentile column present
    """
    out = df.copy()

    for indicator in INDICATORS:
        if indicator.percentile_precomputed and indicator.percentile_column in out.columns:
            continue

        if indicator.percentile_precomputed:
            logger.warning(
                f"Precomputed percentile {indicator.percentile_column} missing; "
                f"ranking {indicator.name} nationally"
            )

        out[indicator.percentile_column] = percentile_rank(out[indicator.value_column])
        logger.info(
            f"Ranked {indicator.name} nationally: "
            f"{out[indicator.percentile_column].notna().sum()} of {len(out)} rows ranked"
        )

    return out
