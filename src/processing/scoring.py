"""
Watershed EJ Index - Composite Scoring
Aggregates indicator values and percentiles into composite indexes

Rules:
- Equal weighting across indicators
- A composite is missing if any of its inputs is missing (no partial averages)
- index_pctile_best picks the 5-metric mean where life expectancy exists,
  otherwise the 4-metric mean, never a blend
- A failed PCA fit leaves only that PCA column missing
"""

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Sequence

import numpy as np
import pandas as pd

from config.settings import get_settings
from src.processing.indicator_registry import (
    COMPOSITE_INDEXES,
    FOUR_METRIC_PERCENTILE_COLUMNS,
    INDEX_PCTILE_4,
    INDEX_PCTILE_5,
    INDEX_PCTILE_BEST,
    INDEX_RAW,
    LIFE_EXPECTANCY,
    PCA_INPUTS,
    PERCENTILE_COLUMNS,
    VALUE_COLUMNS,
)
from src.processing.normalization import scope_percentile
from src.processing.pca import PCAModel, compute_pca_index
from src.processing.thresholds import Scope, scope_mask
from src.utils.errors import PCAFitError
from src.utils.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()


@dataclass
class ScoringResult:
    """Composite indexes plus the fitted PCA models and any PCA failures"""
    table: pd.DataFrame
    pca_models: Dict[str, PCAModel] = field(default_factory=dict)
    pca_failures: Dict[str, str] = field(default_factory=dict)


def strict_mean(df: pd.DataFrame, columns: Sequence[str]) -> pd.Series:
    """
    Row mean that is missing whenever any input is missing.

    Args:
        df: Table holding the columns
        columns: Columns to average

    Returns:
        Series of row means
    """
    available = [c for c in columns if c in df.columns]
    if len(available) != len(columns):
        logger.warning(f"Composite inputs not found: {sorted(set(columns) - set(available))}")
        return pd.Series(np.nan, index=df.index)

    values = df[list(columns)].apply(pd.to_numeric, errors="coerce").astype(float)
    return values.mean(axis=1, skipna=False)


def calculate_raw_index(df: pd.DataFrame) -> pd.Series:
    """Mean of the five transformed indicator values"""
    return strict_mean(df, VALUE_COLUMNS)


def calculate_percentile_indexes(df: pd.DataFrame) -> pd.DataFrame:
    """
    Percentile-average composites.

    Args:
        df: Table with all five percentile columns

    Returns:
        DataFrame with index_pctile_5, index_pctile_4 and index_pctile_best
    """
    five = strict_mean(df, PERCENTILE_COLUMNS)
    four = strict_mean(df, FOUR_METRIC_PERCENTILE_COLUMNS)

    if LIFE_EXPECTANCY.percentile_column in df.columns:
        has_life_expectancy = df[LIFE_EXPECTANCY.percentile_column].notna()
    else:
        has_life_expectancy = pd.Series(False, index=df.index)

    best = five.where(has_life_expectancy, four)

    logger.info(
        f"Percentile composites: {int(has_life_expectancy.sum())} rows use 5 metrics, "
        f"{int((~has_life_expectancy & four.notna()).sum())} fall back to 4"
    )

    return pd.DataFrame(
        {INDEX_PCTILE_5: five, INDEX_PCTILE_4: four, INDEX_PCTILE_BEST: best},
        index=df.index,
    )


def calculate_all_indexes(
    df: pd.DataFrame, standardize: Optional[bool] = None
) -> ScoringResult:
    """
    Compute all six composite indexes.

    Args:
        df: National table with value and percentile columns
        standardize: Z-score PCA inputs (default: settings.PCA_STANDARDIZE)

    Returns:
        ScoringResult with the table, fitted PCA models and PCA failures
    """
    logger.info("Calculating composite indexes")

    table = df.copy()
    table[INDEX_RAW] = calculate_raw_index(table)

    percentile_indexes = calculate_percentile_indexes(table)
    for column in percentile_indexes.columns:
        table[column] = percentile_indexes[column]

    result = ScoringResult(table=table)

    for index_name, columns in PCA_INPUTS.items():
        try:
            scores, model = compute_pca_index(
                table, columns, reference=table[INDEX_RAW], standardize=standardize
            )
            table[index_name] = scores
            result.pca_models[index_name] = model

        except PCAFitError as e:
            logger.error(f"PCA composite {index_name} failed: {e}")
            table[index_name] = np.nan
            result.pca_failures[index_name] = str(e)

    for index_name in COMPOSITE_INDEXES:
        values = table[index_name]
        logger.info(
            f"Index {index_name}: "
            f"mean={values.mean():.3f}, missing={values.isna().sum()}"
        )

    return result


def add_scope_percentiles(
    df: pd.DataFrame,
    state_name: Optional[str] = None,
    region_ids: Optional[FrozenSet[str]] = None,
    indexes: Optional[List[str]] = None,
) -> pd.DataFrame:
    """
    Rank each composite within the state and within the region.

    Args:
        df: Table with composite columns
        state_name: State scope (default: settings.STATE_NAME)
        region_ids: Region block-group IDs; region percentiles skipped when None
        indexes: Composites to rank (default: all six)

    Returns:
        Copy of df with {index}_pctile_state and {index}_pctile_region columns
    """
    out = df.copy()
    indexes = indexes or list(COMPOSITE_INDEXES)

    scopes = [Scope.STATE]
    if region_ids is not None:
        scopes.append(Scope.REGION)

    for scope in scopes:
        mask = scope_mask(out, scope, state_name=state_name, region_ids=region_ids)
        for index_name in indexes:
            out[f"{index_name}_pctile_{scope.value}"] = scope_percentile(out[index_name], mask)

    return out
