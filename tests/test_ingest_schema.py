import numpy as np
import pandas as pd
import pytest

from src.ingest.ejscreen import (
    load_ejscreen_table,
    load_life_expectancy,
    load_region_ids,
    pad_geoid,
)
from src.ingest.schema import (
    EJSCREEN_SCHEMA,
    LIFE_EXPECTANCY_SCHEMA,
    ColumnSpec,
    ColumnType,
    TableSchema,
    validate_table,
)
from src.utils.errors import IndexPipelineError, SchemaError


def test_ejscreen_schema_lists_expected_columns():
    assert EJSCREEN_SCHEMA.column_names == [
        "ID",
        "STATE_NAME",
        "LOWINCPCT",
        "P_LWINCPCT",
        "LINGISOPCT",
        "P_LNGISPCT",
        "LESSHSPCT",
        "P_LESHSPCT",
        "UNEMPPCT",
        "P_UNEMPPCT",
    ]
    assert EJSCREEN_SCHEMA.string_columns == ["ID", "STATE_NAME"]


def test_validate_table_missing_column_raises(ejscreen_df):
    with pytest.raises(SchemaError, match="UNEMPPCT"):
        validate_table(ejscreen_df.drop(columns=["UNEMPPCT"]), EJSCREEN_SCHEMA)


def test_validate_table_mistyped_column_raises(ejscreen_df):
    df = ejscreen_df.astype({"LOWINCPCT": object})
    df.loc[2, "LOWINCPCT"] = "n/a"

    with pytest.raises(SchemaError, match="LOWINCPCT"):
        validate_table(df, EJSCREEN_SCHEMA)


def test_schema_error_is_pipeline_error():
    assert issubclass(SchemaError, IndexPipelineError)


def test_validate_table_coerces_and_keeps_missing():
    schema = TableSchema(
        name="test",
        columns=(
            ColumnSpec("key", ColumnType.STRING),
            ColumnSpec("value", ColumnType.FLOAT),
            ColumnSpec("extra", ColumnType.FLOAT, required=False),
        ),
    )
    df = pd.DataFrame({"key": ["a", "b"], "value": ["1.5", np.nan], "ignored": [1, 2]})

    out = validate_table(df, schema)

    assert out.columns.tolist() == ["key", "value"]
    assert out["value"].iloc[0] == pytest.approx(1.5)
    assert pd.isna(out["value"].iloc[1])
    assert out["key"].dtype == "string"


def test_pad_geoid_restores_leading_zero():
    result = pad_geoid(pd.Series(["10730001001", " 240010001001 "]), 12)
    assert result.tolist() == ["010730001001", "240010001001"]


def test_load_ejscreen_table(write_inputs):
    df = load_ejscreen_table(write_inputs["ejscreen"])

    assert len(df) == 10
    assert df["ID"].iloc[0] == "240010001001"
    assert df["LOWINCPCT"].dtype == float
    assert df.columns.tolist() == EJSCREEN_SCHEMA.column_names


def test_load_ejscreen_table_ignores_extra_columns(tmp_path, ejscreen_df):
    path = tmp_path / "wide.csv"
    ejscreen_df.assign(PM25=1.0, OBJECTID=range(len(ejscreen_df))).to_csv(path, index=False)

    df = load_ejscreen_table(str(path))

    assert "PM25" not in df.columns


def test_load_ejscreen_table_schema_violation_is_fatal(tmp_path, ejscreen_df):
    path = tmp_path / "broken.csv"
    ejscreen_df.drop(columns=["P_LWINCPCT"]).to_csv(path, index=False)

    with pytest.raises(SchemaError):
        load_ejscreen_table(str(path))


def test_load_life_expectancy_drops_duplicate_tracts(tmp_path, life_expectancy_df):
    path = tmp_path / "le.csv"
    pd.concat([life_expectancy_df, life_expectancy_df.iloc[[0]]]).to_csv(path, index=False)

    df = load_life_expectancy(str(path))

    assert df["Tract ID"].is_unique
    assert len(df) == len(life_expectancy_df)
    assert df.columns.tolist() == LIFE_EXPECTANCY_SCHEMA.column_names


def test_load_region_ids(write_inputs, region_ids):
    assert load_region_ids(write_inputs["region_ids"]) == region_ids


def test_load_life_expectancy_drops_rows_without_tract(tmp_path):
    path = tmp_path / "le.csv"
    path.write_text("Tract ID,e(0)\n24001000100,79.5\n,70.0\n24001A00100,71.0\n")

    df = load_life_expectancy(str(path))

    assert df["Tract ID"].tolist() == ["24001000100"]
    assert df["e(0)"].tolist() == pytest.approx([79.5])
