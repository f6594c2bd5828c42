"""
Tests for map export

Run with: pytest tests/test_export_map_export.py -v
"""

import geopandas as gpd
import matplotlib
import numpy as np
import pandas as pd
import pytest
from shapely.geometry import box

from src.export.map_export import (
    export_geojson,
    join_indexes_to_geometry,
    load_block_group_boundaries,
    render_index_maps,
    run_map_export,
)


@pytest.fixture
def boundaries_file(tmp_path, region_ids):
    """One unit square per region block group, keyed by GEOID"""
    ids = sorted(region_ids)
    gdf = gpd.GeoDataFrame(
        {"GEOID": ids, "ALAND": [1000] * len(ids)},
        geometry=[box(i, 0, i + 1, 1) for i in range(len(ids))],
        crs="EPSG:4326",
    )
    path = tmp_path / "bg.geojson"
    gdf.to_file(path, driver="GeoJSON")
    return str(path)


@pytest.fixture
def region_records(region_ids):
    ids = sorted(region_ids)
    return pd.DataFrame({
        "ID": ids,
        "STATE_NAME": pd.Series(["Maryland"] * len(ids), dtype="string"),
        "index_raw": [12.0, 30.5, np.nan, 18.2],
        "index_pctile_4": [40.0, 80.0, 55.0, 62.0],
        "index_raw_gt_national": pd.array([False, True, pd.NA, False], dtype="boolean"),
    })


def test_backend_is_non_interactive():
    assert matplotlib.get_backend().lower() == "agg"


def test_load_boundaries_renames_geoid(boundaries_file, region_ids):
    gdf = load_block_group_boundaries(boundaries_file)

    assert gdf.columns.tolist() == ["ID", "geometry"]
    assert set(gdf["ID"]) == set(region_ids)


def test_load_boundaries_requires_path(monkeypatch):
    from src.export import map_export

    monkeypatch.setattr(map_export.settings, "BLOCK_GROUP_BOUNDARIES_PATH", None)

    with pytest.raises(ValueError):
        load_block_group_boundaries()


def test_join_keeps_matched_records(boundaries_file, region_records):
    boundaries = load_block_group_boundaries(boundaries_file)
    extra = pd.concat(
        [region_records, region_records.iloc[[0]].assign(ID="249999999999")],
        ignore_index=True,
    )

    joined = join_indexes_to_geometry(boundaries, extra)

    assert isinstance(joined, gpd.GeoDataFrame)
    assert len(joined) == 4
    assert "249999999999" not in set(joined["ID"])


def test_export_geojson_writes_nulls(tmp_path, boundaries_file, region_records):
    joined = join_indexes_to_geometry(load_block_group_boundaries(boundaries_file), region_records)
    path = export_geojson(joined, str(tmp_path / "out.geojson"))

    reloaded = gpd.read_file(path)

    assert len(reloaded) == 4
    assert reloaded.crs.to_epsg() == 4326
    assert reloaded["index_raw"].isna().sum() == 1


def test_render_index_maps_skips_empty_indexes(tmp_path, boundaries_file, region_records):
    joined = join_indexes_to_geometry(
        load_block_group_boundaries(boundaries_file),
        region_records.assign(pca_index=np.nan),
    )

    paths = render_index_maps(
        joined, str(tmp_path / "maps"), indexes=["index_raw", "pca_index"]
    )

    assert list(paths) == ["index_raw"]
    assert (tmp_path / "maps" / "index_raw.png").exists()
    assert not (tmp_path / "maps" / "pca_index.png").exists()


def test_run_map_export(tmp_path, boundaries_file, region_records):
    outputs = run_map_export(region_records, boundaries_file, str(tmp_path))

    assert outputs["geojson"].endswith("region_indexes.geojson")
    assert "map_index_raw" in outputs
    assert "map_index_pctile_4" in outputs
