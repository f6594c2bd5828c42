"""
Watershed EJ Index - Map Export
Joins regional index values onto block-group polygons and renders maps

Data sources:
- Geometries: Census TIGER/Line block-group shapefile (local path)
- Indexes: regional records from the threshold analysis

Outputs:
- exports/region_indexes.geojson
- exports/maps/{index}.png (one choropleth per composite index)
"""

import os
from typing import Dict, List, Optional

import geopandas as gpd
import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402
import pandas as pd  # noqa: E402

from config.settings import BLOCK_GROUP_ID_LENGTH, ID_COLUMN, get_settings  # noqa: E402
from src.processing.indicator_registry import COMPOSITE_INDEXES  # noqa: E402
from src.utils.logging import get_logger  # noqa: E402

logger = get_logger(__name__)
settings = get_settings()

GEOMETRY_ID_CANDIDATES = ["GEOID", "GEOID20", "GEOID10", ID_COLUMN]


def load_block_group_boundaries(path: Optional[str] = None) -> gpd.GeoDataFrame:
    """
    Read block-group polygons and key them by the EJSCREEN identifier.

    Args:
        path: Shapefile/GeoPackage/GeoJSON path (default: settings.BLOCK_GROUP_BOUNDARIES_PATH)

    Returns:
        GeoDataFrame with ID and geometry columns
    """
    path = path or settings.BLOCK_GROUP_BOUNDARIES_PATH
    if not path:
        raise ValueError("No block group boundary file configured (BLOCK_GROUP_BOUNDARIES_PATH)")

    logger.info(f"Reading block group boundaries from {path}")
    gdf = gpd.read_file(path)

    id_column = next((c for c in GEOMETRY_ID_CANDIDATES if c in gdf.columns), None)
    if id_column is None:
        raise ValueError(f"Boundary file has none of the identifier columns {GEOMETRY_ID_CANDIDATES}")

    gdf = gdf.rename(columns={id_column: ID_COLUMN})
    gdf[ID_COLUMN] = gdf[ID_COLUMN].astype(str).str.zfill(BLOCK_GROUP_ID_LENGTH)

    logger.info(f"Loaded {len(gdf)} block group polygons")
    return gdf[[ID_COLUMN, "geometry"]]


def join_indexes_to_geometry(
    boundaries: gpd.GeoDataFrame, records: pd.DataFrame
) -> gpd.GeoDataFrame:
    """
    Attach index values to polygons of the given records.

    Args:
        boundaries: Polygons keyed by ID
        records: Regional records (ID plus index and flag columns)

    Returns:
        GeoDataFrame with one polygon per record that has a geometry
    """
    records = records.copy()
    records[ID_COLUMN] = records[ID_COLUMN].astype(str)

    joined = boundaries.merge(records, on=ID_COLUMN, how="inner")

    unmatched = len(records) - len(joined)
    if unmatched:
        logger.warning(f"{unmatched} regional block groups have no polygon")

    return gpd.GeoDataFrame(joined, geometry="geometry", crs=boundaries.crs)


def export_geojson(gdf: gpd.GeoDataFrame, path: str) -> str:
    """
    Write a GeoJSON in WGS84.

    Nullable boolean and string columns are written as plain objects with null
    for missing.

    Args:
        gdf: Joined regional polygons
        path: Output path

    Returns:
        Path written
    """
    out = gdf.copy()

    if out.crs is not None and out.crs != "EPSG:4326":
        out = out.to_crs("EPSG:4326")

    for column in out.columns:
        if str(out[column].dtype) in ("boolean", "string"):
            out[column] = out[column].astype(object).where(out[column].notna(), None)

    out.to_file(path, driver="GeoJSON")
    logger.info(f"Wrote {len(out)} features to {path}")
    return path


def render_choropleth(gdf: gpd.GeoDataFrame, column: str, title: str, path: str) -> str:
    """
    Render one choropleth map to PNG.

    Block groups with a missing value are drawn in light gray.

    Args:
        gdf: Joined regional polygons
        column: Value column to shade
        title: Map title
        path: Output PNG path

    Returns:
        Path written
    """
    fig, ax = plt.subplots(figsize=(10, 10))

    try:
        gdf.plot(
            column=column,
            ax=ax,
            cmap=settings.MAP_CMAP,
            legend=True,
            edgecolor="white",
            linewidth=0.1,
            missing_kwds={"color": "lightgray", "label": "Missing"},
        )
        ax.set_title(title, fontsize=12, fontweight="bold")
        ax.set_axis_off()
        fig.savefig(path, dpi=settings.MAP_DPI, bbox_inches="tight")
    finally:
        plt.close(fig)

    logger.info(f"Rendered {column} map to {path}")
    return path


def render_index_maps(
    gdf: gpd.GeoDataFrame, output_dir: str, indexes: Optional[List[str]] = None
) -> Dict[str, str]:
    """
    Render one map per composite index.

    Indexes with no values at all (e.g. a failed PCA fit) are skipped.

    Args:
        gdf: Joined regional polygons
        output_dir: Directory for PNG files
        indexes: Composites to map (default: all six)

    Returns:
        Dict of index name -> PNG path
    """
    os.makedirs(output_dir, exist_ok=True)
    indexes = indexes or list(COMPOSITE_INDEXES)

    paths = {}
    for index_name in indexes:
        if index_name not in gdf.columns or gdf[index_name].isna().all():
            logger.warning(f"Skipping map for {index_name}: no values")
            continue

        title = f"{settings.REGION_NAME}: {COMPOSITE_INDEXES[index_name]}"
        paths[index_name] = render_choropleth(
            gdf, index_name, title, os.path.join(output_dir, f"{index_name}.png")
        )

    return paths


def run_map_export(
    region_table: pd.DataFrame,
    boundaries_path: Optional[str] = None,
    export_dir: Optional[str] = None,
) -> Dict[str, str]:
    """
    Main entry point for map export.

    Args:
        region_table: ThresholdResult.region_table
        boundaries_path: Block-group polygon file
        export_dir: Output directory (default: settings.EXPORT_DIR)

    Returns:
        Dict of output name -> path
    """
    export_dir = export_dir or settings.EXPORT_DIR
    os.makedirs(export_dir, exist_ok=True)

    boundaries = load_block_group_boundaries(boundaries_path)
    gdf = join_indexes_to_geometry(boundaries, region_table)

    outputs = {"geojson": export_geojson(gdf, os.path.join(export_dir, "region_indexes.geojson"))}
    for index_name, path in render_index_maps(gdf, os.path.join(export_dir, "maps")).items():
        outputs[f"map_{index_name}"] = path

    return outputs
