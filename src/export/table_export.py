"""
Watershed EJ Index - Table Export
Writes the per-block-group index table and the threshold/PCA reports

Outputs (under settings.EXPORT_DIR):
- ej_indexes.csv (identifiers, indicators, percentiles, composites)
- threshold_summary.csv (one row per scope x index)
- region_exceedances.csv (regional block groups with exceedance flags)
- pca_loadings.csv (fitted loadings per PCA composite)

Column order of ej_indexes.csv is fixed so successive runs line up.
"""

import os
from typing import Dict, List, Optional

import pandas as pd

from config.settings import (
    ID_COLUMN,
    LIFE_EXPECTANCY_COLUMN,
    STATE_COLUMN,
    TRACT_ID_COLUMN,
    get_settings,
)
from src.processing.indicator_registry import (
    COMPOSITE_INDEXES,
    PERCENTILE_COLUMNS,
    VALUE_COLUMNS,
    get_ejscreen_indicators,
)
from src.processing.thresholds import Scope
from src.utils.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()

STRING_COLUMNS = [ID_COLUMN, STATE_COLUMN, TRACT_ID_COLUMN]


def output_columns() -> List[str]:
    """Ordered column list of the index table"""
    source_columns = [ind.source_column for ind in get_ejscreen_indicators()]
    scope_columns = [
        f"{index_name}_pctile_{scope.value}"
        for index_name in COMPOSITE_INDEXES
        for scope in (Scope.STATE, Scope.REGION)
    ]

    return (
        STRING_COLUMNS
        + source_columns
        + [LIFE_EXPECTANCY_COLUMN]
        + VALUE_COLUMNS
        + PERCENTILE_COLUMNS
        + list(COMPOSITE_INDEXES)
        + scope_columns
    )


def export_path(filename: str, export_dir: Optional[str] = None) -> str:
    export_dir = export_dir or settings.EXPORT_DIR
    os.makedirs(export_dir, exist_ok=True)
    return os.path.join(export_dir, filename)


def write_index_table(df: pd.DataFrame, path: Optional[str] = None) -> str:
    """
    Write the index table with the fixed column order.

    Columns the run did not produce are written empty rather than dropped.

    Args:
        df: Scored national table
        path: Output path (default: EXPORT_DIR/OUTPUT_TABLE_NAME)

    Returns:
        Path written
    """
    path = path or export_path(settings.OUTPUT_TABLE_NAME)

    columns = output_columns()
    absent = [c for c in columns if c not in df.columns]
    if absent:
        logger.warning(f"Index table columns not produced this run: {absent}")

    df.reindex(columns=columns).to_csv(path, index=False)

    logger.info(f"Wrote {len(df)} rows x {len(columns)} columns to {path}")
    return path


def read_index_table(path: Optional[str] = None) -> pd.DataFrame:
    """
    Reload an index table written by write_index_table.

    Floats are parsed with round-trip precision so composites reload unchanged.

    Args:
        path: Table path (default: EXPORT_DIR/OUTPUT_TABLE_NAME)

    Returns:
        DataFrame with identifier columns as strings
    """
    path = path or export_path(settings.OUTPUT_TABLE_NAME)

    df = pd.read_csv(
        path,
        dtype={c: str for c in STRING_COLUMNS},
        float_precision="round_trip",
    )

    logger.info(f"Read {len(df)} rows from {path}")
    return df


def write_reports(
    summary: pd.DataFrame,
    region_table: pd.DataFrame,
    loadings: pd.DataFrame,
    export_dir: Optional[str] = None,
) -> Dict[str, str]:
    """
    Write the threshold summary, regional exceedance flags and PCA loadings.

    Args:
        summary: ThresholdResult.summary
        region_table: ThresholdResult.region_table
        loadings: pca.loadings_table output
        export_dir: Output directory (default: settings.EXPORT_DIR)

    Returns:
        Dict of report name -> path
    """
    paths = {
        "threshold_summary": export_path(settings.THRESHOLD_SUMMARY_NAME, export_dir),
        "region_exceedances": export_path(settings.REGION_FLAGS_NAME, export_dir),
        "pca_loadings": export_path(settings.PCA_LOADINGS_NAME, export_dir),
    }

    summary.to_csv(paths["threshold_summary"], index=False)

    flag_columns = [c for c in region_table.columns if "_gt_" in c]
    index_columns = [c for c in COMPOSITE_INDEXES if c in region_table.columns]
    region_table[[ID_COLUMN, STATE_COLUMN] + index_columns + flag_columns].to_csv(
        paths["region_exceedances"], index=False
    )

    loadings.to_csv(paths["pca_loadings"], index=False)

    for name, path in paths.items():
        logger.info(f"Wrote {name} to {path}")

    return paths
