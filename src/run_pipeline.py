"""
Watershed EJ Index - Main Pipeline Orchestration

Runs the complete index pipeline from input loading through map export.

Pipeline stages:
1. Load EJSCREEN, life expectancy and region IDs (schema checked)
2. Link life expectancy and normalize indicators
3. Composite scoring (raw, percentile and PCA indexes)
4. Threshold exceedance at national, state and region scale
5. Table export
6. Map export (optional, needs block group boundaries)

Usage:
    python -m src.run_pipeline --state Maryland --quantile 0.8
    python -m src.run_pipeline --boundaries data/tl_2023_24_bg.shp
"""

import argparse
import os
import sys
from datetime import datetime
from typing import Any, Dict, FrozenSet, Optional

import pandas as pd

from config.settings import LIFE_EXPECTANCY_COLUMN, get_settings
from src.utils.errors import IndexPipelineError
from src.utils.logging import get_logger, log_banner, setup_logging

logger = get_logger(__name__)
settings = get_settings()


def run_loading(
    ejscreen_path: Optional[str] = None,
    life_expectancy_path: Optional[str] = None,
    region_ids_path: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Load and validate all inputs.

    Args:
        ejscreen_path: EJSCREEN CSV (default: settings)
        life_expectancy_path: USALEEP CSV (default: settings)
        region_ids_path: Region ID CSV (default: settings)

    Returns:
        Dict with 'ejscreen', 'life_expectancy' and 'region_ids'

    Raises:
        SchemaError: If any input violates its schema
    """
    from src.ingest.ejscreen import load_ejscreen_table, load_life_expectancy, load_region_ids

    return {
        "ejscreen": load_ejscreen_table(ejscreen_path),
        "life_expectancy": load_life_expectancy(life_expectancy_path),
        "region_ids": load_region_ids(region_ids_path),
    }


def run_processing(
    ejscreen: pd.DataFrame,
    life_expectancy: pd.DataFrame,
    region_ids: FrozenSet[str],
    state_name: Optional[str] = None,
    quantile: Optional[float] = None,
) -> Dict[str, Any]:
    """
    Link, normalize, score and compute thresholds.

    Args:
        ejscreen: Validated EJSCREEN table
        life_expectancy: Validated tract life expectancy
        region_ids: Region block-group IDs
        state_name: State scope (default: settings.STATE_NAME)
        quantile: Threshold quantile (default: settings.THRESHOLD_QUANTILE)

    Returns:
        Dict with 'scoring' (ScoringResult), 'thresholds' (ThresholdResult)
        and 'table' (national table with scope percentiles)
    """
    from src.processing.linkage import link_life_expectancy
    from src.processing.normalization import add_indicator_values, add_national_percentiles
    from src.processing.scoring import add_scope_percentiles, calculate_all_indexes
    from src.processing.thresholds import run_threshold_analysis

    logger.info("Linking and normalizing indicators")
    linked = link_life_expectancy(ejscreen, life_expectancy)
    normalized = add_national_percentiles(add_indicator_values(linked))

    logger.info("Running scoring")
    scoring = calculate_all_indexes(normalized)

    table = add_scope_percentiles(scoring.table, state_name=state_name, region_ids=region_ids)

    logger.info("Running threshold analysis")
    thresholds = run_threshold_analysis(
        table, region_ids, state_name=state_name, quantile=quantile
    )

    return {"scoring": scoring, "thresholds": thresholds, "table": table}


def run_table_export(processed: Dict[str, Any], export_dir: Optional[str] = None) -> Dict[str, str]:
    """
    Write the index table and reports.

    Args:
        processed: Output of run_processing
        export_dir: Output directory (default: settings.EXPORT_DIR)

    Returns:
        Dict of output name -> path
    """
    from src.export.table_export import export_path, write_index_table, write_reports
    from src.processing.pca import loadings_table

    table_path = write_index_table(
        processed["table"], export_path(settings.OUTPUT_TABLE_NAME, export_dir)
    )

    paths = write_reports(
        processed["thresholds"].summary,
        processed["thresholds"].region_table,
        loadings_table(processed["scoring"].pca_models),
        export_dir=export_dir,
    )
    paths["index_table"] = table_path
    return paths


def run_map_stage(
    region_table: pd.DataFrame,
    boundaries_path: Optional[str] = None,
    export_dir: Optional[str] = None,
) -> bool:
    """
    Run map export.

    Args:
        region_table: Regional records with indexes and flags
        boundaries_path: Block-group polygon file
        export_dir: Output directory

    Returns:
        True if successful, False otherwise
    """
    logger.info("Starting map export")

    try:
        from src.export.map_export import run_map_export

        outputs = run_map_export(region_table, boundaries_path, export_dir)
        logger.info(f"Map export complete: {len(outputs)} files")
        return True

    except Exception as e:
        logger.error(f"Map export failed: {e}", exc_info=True)
        return False


def build_run_summary(loaded: Dict[str, Any], processed: Dict[str, Any]) -> Dict[str, Any]:
    """
    Collect the figures an operator checks after a run.

    Args:
        loaded: Output of run_loading
        processed: Output of run_processing

    Returns:
        Dict of summary values
    """
    table = processed["table"]
    scoring = processed["scoring"]
    summary = processed["thresholds"].summary

    pca_status = {name: "fitted" for name in scoring.pca_models}
    pca_status.update({name: f"failed: {reason}" for name, reason in scoring.pca_failures.items()})

    exceedances = {
        f"{row['scope']}/{row['index']}": (
            None if pd.isna(row["n_exceeding"]) else int(row["n_exceeding"])
        )
        for _, row in summary.iterrows()
    }

    return {
        "block_groups": len(table),
        "life_expectancy_matched": int(table[LIFE_EXPECTANCY_COLUMN].notna().sum()),
        "region_block_groups": len(processed["thresholds"].region_table),
        "region_ids_supplied": len(loaded["region_ids"]),
        "pca": pca_status,
        "exceedances": exceedances,
    }


def run_index_pipeline(
    ejscreen_path: Optional[str] = None,
    life_expectancy_path: Optional[str] = None,
    region_ids_path: Optional[str] = None,
    state_name: Optional[str] = None,
    quantile: Optional[float] = None,
    export_dir: Optional[str] = None,
    boundaries_path: Optional[str] = None,
    render_maps: bool = True,
) -> Dict[str, Any]:
    """
    Run every stage and return the run summary.

    Raises:
        IndexPipelineError: On schema violations (PCA failures do not raise)
    """
    log_banner(logger, "STAGE 1: LOAD INPUTS")
    loaded = run_loading(ejscreen_path, life_expectancy_path, region_ids_path)

    log_banner(logger, "STAGE 2: PROCESSING (Link, Normalize, Score, Threshold)")
    processed = run_processing(
        loaded["ejscreen"],
        loaded["life_expectancy"],
        loaded["region_ids"],
        state_name=state_name,
        quantile=quantile,
    )

    log_banner(logger, "STAGE 3: TABLE EXPORT")
    outputs = run_table_export(processed, export_dir=export_dir)

    summary = build_run_summary(loaded, processed)
    summary["outputs"] = outputs

    boundaries_path = boundaries_path or settings.BLOCK_GROUP_BOUNDARIES_PATH
    if render_maps and boundaries_path:
        log_banner(logger, "STAGE 4: MAP EXPORT")
        summary["maps"] = run_map_stage(
            processed["thresholds"].region_table, boundaries_path, export_dir
        )
    else:
        logger.info("Map export skipped (no boundary file configured)")
        summary["maps"] = None

    for key in ("block_groups", "life_expectancy_matched", "region_block_groups", "pca"):
        logger.info(f"Summary {key}: {summary[key]}")

    return summary


def main():
    """Main pipeline orchestration"""

    parser = argparse.ArgumentParser(
        description="Watershed EJ Index - Pipeline Orchestration"
    )

    parser.add_argument("--ejscreen", type=str, help="EJSCREEN block group CSV")
    parser.add_argument("--life-expectancy", type=str, help="USALEEP tract life expectancy CSV")
    parser.add_argument("--region-ids", type=str, help="CSV of region block group IDs")
    parser.add_argument("--boundaries", type=str, help="Block group polygon file for maps")

    parser.add_argument(
        "--state",
        type=str,
        help=f"State name for the state scope (default: {settings.STATE_NAME})"
    )

    parser.add_argument(
        "--quantile",
        type=float,
        help=f"Threshold quantile (default: {settings.THRESHOLD_QUANTILE})"
    )

    parser.add_argument(
        "--export-dir",
        type=str,
        help=f"Output directory (default: {settings.EXPORT_DIR})"
    )

    parser.add_argument(
        "--skip-maps",
        action="store_true",
        help="Skip map rendering"
    )

    args = parser.parse_args()

    pipeline_logger = setup_logging("pipeline")

    # Pipeline start
    start_time = datetime.now()
    pipeline_logger.info("=" * 60)
    pipeline_logger.info("Watershed EJ Index - Pipeline Start")
    pipeline_logger.info(f"Time: {start_time.isoformat()}")
    pipeline_logger.info(f"Arguments: {vars(args)}")
    pipeline_logger.info("=" * 60)

    try:
        summary = run_index_pipeline(
            ejscreen_path=args.ejscreen,
            life_expectancy_path=args.life_expectancy,
            region_ids_path=args.region_ids,
            state_name=args.state,
            quantile=args.quantile,
            export_dir=args.export_dir,
            boundaries_path=args.boundaries,
            render_maps=not args.skip_maps,
        )

        if summary["maps"] is False:
            pipeline_logger.error("Map export failed")
            sys.exit(1)

        # Pipeline complete
        end_time = datetime.now()
        duration = (end_time - start_time).total_seconds()

        pipeline_logger.info("\n" + "=" * 60)
        pipeline_logger.info("PIPELINE COMPLETE")
        pipeline_logger.info(f"Duration: {duration:.1f} seconds")
        pipeline_logger.info(f"Outputs: {os.path.abspath(args.export_dir or settings.EXPORT_DIR)}")
        pipeline_logger.info("=" * 60)

        sys.exit(0)

    except KeyboardInterrupt:
        pipeline_logger.warning("Pipeline interrupted by user")
        sys.exit(130)

    except IndexPipelineError as e:
        pipeline_logger.error(f"Pipeline aborted: {e}")
        sys.exit(1)

    except Exception as e:
        pipeline_logger.error(f"Pipeline failed with unhandled exception: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
