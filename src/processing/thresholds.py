"""
Watershed EJ Index - Threshold Exceedance
Compares regional block groups against quantile cutoffs at three scales

Scopes (nested): region ⊆ state ⊆ national
- National: every loaded block group
- State: block groups whose STATE_NAME equals the configured state
- Region: block groups listed in the region ID file

Each (scope, index) pair is computed independently from that scope's rows
only. An empty scope yields a missing threshold and not-applicable counts.
"""

from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, List, Optional

import numpy as np
import pandas as pd

from config.settings import ID_COLUMN, STATE_COLUMN, get_settings
from src.processing.indicator_registry import COMPOSITE_INDEXES
from src.utils.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()


class Scope(str, Enum):
    """Population a threshold is computed over"""
    NATIONAL = "national"
    STATE = "state"
    REGION = "region"


@dataclass
class ThresholdResult:
    """Regional records with exceedance flags, and the per-(scope, index) summary"""
    region_table: pd.DataFrame
    summary: pd.DataFrame


def scope_mask(
    df: pd.DataFrame,
    scope: Scope,
    state_name: Optional[str] = None,
    region_ids: Optional[FrozenSet[str]] = None,
) -> pd.Series:
    """
    Boolean selector of the rows in a scope.

    Args:
        df: National table
        scope: Scope to select
        state_name: State for Scope.STATE (default: settings.STATE_NAME)
        region_ids: Block-group IDs for Scope.REGION

    Returns:
        Boolean Series aligned with df
    """
    if scope == Scope.NATIONAL:
        return pd.Series(True, index=df.index)

    if scope == Scope.STATE:
        state_name = state_name or settings.STATE_NAME
        return (df[STATE_COLUMN] == state_name).fillna(False).astype(bool)

    if scope == Scope.REGION:
        if region_ids is None:
            raise ValueError("Region scope requires region_ids")
        return df[ID_COLUMN].isin(list(region_ids)).fillna(False).astype(bool)

    raise ValueError(f"Unknown scope: {scope}")


def compute_threshold(values: pd.Series, quantile: Optional[float] = None) -> float:
    """
    Quantile cutoff of the non-missing values.

    Uses linear interpolation between order statistics.

    Args:
        values: Composite values of one scope
        quantile: Quantile level in [0, 1] (default: settings.THRESHOLD_QUANTILE)

    Returns:
        Cutoff value, NaN when no value is present
    """
    quantile = settings.THRESHOLD_QUANTILE if quantile is None else quantile

    if not 0.0 <= quantile <= 1.0:
        raise ValueError(f"Quantile must be within [0, 1], got {quantile}")

    present = pd.to_numeric(values, errors="coerce").dropna()
    if present.empty:
        return float("nan")

    return float(present.quantile(quantile))


def exceedance_flags(values: pd.Series, threshold: float) -> pd.Series:
    """
    Flag values strictly above a threshold.

    Args:
        values: Composite values
        threshold: Cutoff (NaN allowed)

    Returns:
        Nullable boolean Series; <NA> where the value or threshold is missing
    """
    numeric = pd.to_numeric(values, errors="coerce").astype(float)

    if pd.isna(threshold):
        return pd.Series(pd.NA, index=values.index, dtype="boolean")

    flags = (numeric > threshold).astype("boolean")
    flags[numeric.isna()] = pd.NA
    return flags


def run_threshold_analysis(
    df: pd.DataFrame,
    region_ids: FrozenSet[str],
    indexes: Optional[List[str]] = None,
    state_name: Optional[str] = None,
    quantile: Optional[float] = None,
) -> ThresholdResult:
    """
    Compute every (scope, index) threshold and flag regional records.

    Args:
        df: National table with composite columns
        region_ids: Region block-group IDs
        indexes: Composites to evaluate (default: all six)
        state_name: State scope (default: settings.STATE_NAME)
        quantile: Quantile level (default: settings.THRESHOLD_QUANTILE)

    Returns:
        ThresholdResult with {index}_gt_{scope} flag columns on the regional
        records and a summary of scope, index, quantile, threshold, n_scope,
        n_compared, n_exceeding
    """
    indexes = indexes or list(COMPOSITE_INDEXES)
    quantile = settings.THRESHOLD_QUANTILE if quantile is None else quantile
    state_name = state_name or settings.STATE_NAME

    logger.info(
        f"Running threshold analysis: {len(Scope)} scopes x {len(indexes)} indexes, "
        f"quantile={quantile}, state={state_name}"
    )

    region_mask = scope_mask(df, Scope.REGION, region_ids=region_ids)
    region_table = df.loc[region_mask].copy()

    if region_table.empty:
        logger.warning("No region block groups found in the national table")

    rows = []

    for scope in Scope:
        mask = scope_mask(df, scope, state_name=state_name, region_ids=region_ids)
        n_scope = int(mask.sum())

        if n_scope == 0:
            logger.warning(f"Scope {scope.value} has no rows; thresholds not applicable")

        for index_name in indexes:
            threshold = compute_threshold(df.loc[mask, index_name], quantile)
            flags = exceedance_flags(region_table[index_name], threshold)
            region_table[f"{index_name}_gt_{scope.value}"] = flags

            if np.isnan(threshold):
                n_compared = pd.NA
                n_exceeding = pd.NA
            else:
                n_compared = int(flags.notna().sum())
                n_exceeding = int(flags.sum())

            rows.append(
                {
                    "scope": scope.value,
                    "index": index_name,
                    "quantile": quantile,
                    "threshold": threshold,
                    "n_scope": n_scope,
                    "n_compared": n_compared,
                    "n_exceeding": n_exceeding,
                }
            )

            logger.info(
                f"Threshold {scope.value}/{index_name}: value={threshold:.3f}, "
                f"exceeding={n_exceeding}/{n_compared}"
            )

    summary = pd.DataFrame(rows)
    summary["n_compared"] = summary["n_compared"].astype("Int64")
    summary["n_exceeding"] = summary["n_exceeding"].astype("Int64")

    return ThresholdResult(region_table=region_table, summary=summary)
