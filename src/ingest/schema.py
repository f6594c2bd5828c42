"""
Watershed EJ Index - Input Table Schemas
Named, typed column definitions checked when input tables are loaded

A table that is missing a required column, or whose numeric column holds
values that cannot be parsed as numbers, fails with SchemaError before any
index is computed.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Tuple

import pandas as pd

from config.settings import (
    ID_COLUMN,
    LIFE_EXPECTANCY_COLUMN,
    LIFE_EXPECTANCY_TRACT_COLUMN,
    STATE_COLUMN,
)
from src.processing.indicator_registry import get_ejscreen_indicators
from src.utils.errors import SchemaError
from src.utils.logging import get_logger

logger = get_logger(__name__)


class ColumnType(str, Enum):
    """Declared type of an input column"""
    STRING = "string"
    FLOAT = "float"


@dataclass(frozen=True)
class ColumnSpec:
    name: str
    dtype: ColumnType
    required: bool = True


@dataclass(frozen=True)
class TableSchema:
    """
    Expected columns of one input table
    """
    name: str
    columns: Tuple[ColumnSpec, ...] = field(default_factory=tuple)

    @property
    def column_names(self) -> List[str]:
        return [c.name for c in self.columns]

    @property
    def string_columns(self) -> List[str]:
        return [c.name for c in self.columns if c.dtype == ColumnType.STRING]

    def read_dtypes(self) -> dict:
        """dtype mapping for pandas.read_csv (numeric columns are coerced after reading)"""
        return {name: str for name in self.string_columns}


def validate_table(df: pd.DataFrame, schema: TableSchema) -> pd.DataFrame:
    """
    Check a loaded table against its schema and coerce declared types.

    Args:
        df: Table as read from disk
        schema: Expected columns

    Returns:
        Copy of df restricted to the schema's columns, in schema order

    Raises:
        SchemaError: If a required column is absent or a numeric column
            contains non-numeric values
    """
    missing = [c.name for c in schema.columns if c.required and c.name not in df.columns]
    if missing:
        raise SchemaError(f"{schema.name}: missing required columns {missing}")

    present = [c for c in schema.columns if c.name in df.columns]
    out = df[[c.name for c in present]].copy()

    for spec in present:
        if spec.dtype == ColumnType.STRING:
            out[spec.name] = out[spec.name].astype("string")
            continue

        coerced = pd.to_numeric(out[spec.name], errors="coerce")
        bad = coerced.isna() & out[spec.name].notna()
        if bad.any():
            examples = out.loc[bad, spec.name].astype(str).unique()[:3].tolist()
            raise SchemaError(
                f"{schema.name}: column {spec.name} expected {spec.dtype.value}, "
                f"found {int(bad.sum())} non-numeric values (e.g. {examples})"
            )
        out[spec.name] = coerced.astype(float)

    logger.info(f"Validated {schema.name}: {len(out)} rows, {len(present)} columns")
    return out


EJSCREEN_SCHEMA = TableSchema(
    name="EJSCREEN block groups",
    columns=(
        ColumnSpec(ID_COLUMN, ColumnType.STRING),
        ColumnSpec(STATE_COLUMN, ColumnType.STRING),
        *(
            ColumnSpec(column, ColumnType.FLOAT)
            for ind in get_ejscreen_indicators()
            for column in (ind.source_column, ind.percentile_column)
        ),
    ),
)

LIFE_EXPECTANCY_SCHEMA = TableSchema(
    name="USALEEP life expectancy",
    columns=(
        ColumnSpec(LIFE_EXPECTANCY_TRACT_COLUMN, ColumnType.STRING),
        ColumnSpec(LIFE_EXPECTANCY_COLUMN, ColumnType.FLOAT),
    ),
)

REGION_IDS_SCHEMA = TableSchema(
    name="Region block groups",
    columns=(ColumnSpec(ID_COLUMN, ColumnType.STRING),),
)
