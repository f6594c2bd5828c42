"""
Watershed EJ Index - Indicator Registry
Single source of truth for the demographic indicators and composite indexes

This registry defines:
- Canonical indicator names
- Source tables and columns
- The transform that puts each indicator in "higher = more disadvantaged" units
- National percentile columns (precomputed by EJSCREEN or computed here)
- The composite indexes reported per run

NO indicator should enter a composite without being registered here.
"""

from typing import Dict, List
from dataclasses import dataclass
from enum import Enum


class Transform(str, Enum):
    """How a raw column becomes the indicator value used in composites"""
    PERCENT_SCALE = "percent_scale"  # EJSCREEN fraction (0-1) -> percent (0-100)
    NEGATE_OFFSET = "negate_offset"  # years -> offset - years (higher = worse)


@dataclass(frozen=True)
class IndicatorDefinition:
    """
    Definition of a single demographic indicator
    """
    name: str  # Canonical indicator name
    source_table: str  # 'ejscreen' or 'life_expectancy'
    source_column: str  # Column name in the source table
    value_column: str  # Derived column holding the transformed value
    percentile_column: str  # National percentile column (0-100)
    transform: Transform
    unit: str  # Human-readable unit of value_column
    description: str
    percentile_precomputed: bool = True  # False when the percentile is ranked here
    in_four_metric: bool = True  # Part of the composite that omits life expectancy


INDICATORS: List[IndicatorDefinition] = [
    IndicatorDefinition(
        name="low_income",
        source_table="ejscreen",
        source_column="LOWINCPCT",
        value_column="LOWINC_100",
        percentile_column="P_LWINCPCT",
        transform=Transform.PERCENT_SCALE,
        unit="Percent of population",
        description="Population in households below twice the federal poverty level",
    ),
    IndicatorDefinition(
        name="linguistic_isolation",
        source_table="ejscreen",
        source_column="LINGISOPCT",
        value_column="LINGISO_100",
        percentile_column="P_LNGISPCT",
        transform=Transform.PERCENT_SCALE,
        unit="Percent of households",
        description="Households in which no one over 14 speaks English very well",
    ),
    IndicatorDefinition(
        name="less_than_high_school",
        source_table="ejscreen",
        source_column="LESSHSPCT",
        value_column="LESSHS_100",
        percentile_column="P_LESHSPCT",
        transform=Transform.PERCENT_SCALE,
        unit="Percent of adults 25+",
        description="Adults 25 and over without a high school diploma",
    ),
    IndicatorDefinition(
        name="unemployment",
        source_table="ejscreen",
        source_column="UNEMPPCT",
        value_column="UNEMP_100",
        percentile_column="P_UNEMPPCT",
        transform=Transform.PERCENT_SCALE,
        unit="Percent of labor force",
        description="Unemployed share of the civilian labor force",
    ),
    IndicatorDefinition(
        name="life_expectancy",
        source_table="life_expectancy",
        source_column="e(0)",
        value_column="NEG_LIFEEXP",
        percentile_column="P_NEG_LIFEEXP",
        transform=Transform.NEGATE_OFFSET,
        unit="Offset minus years at birth",
        description="Tract life expectancy at birth (USALEEP), negated so lower expectancy scores higher",
        percentile_precomputed=False,
        in_four_metric=False,
    ),
]

INDICATORS_BY_NAME: Dict[str, IndicatorDefinition] = {ind.name: ind for ind in INDICATORS}

LIFE_EXPECTANCY = INDICATORS_BY_NAME["life_expectancy"]

VALUE_COLUMNS: List[str] = [ind.value_column for ind in INDICATORS]
PERCENTILE_COLUMNS: List[str] = [ind.percentile_column for ind in INDICATORS]
FOUR_METRIC_PERCENTILE_COLUMNS: List[str] = [
    ind.percentile_column for ind in INDICATORS if ind.in_four_metric
]


# ============================================================================
# COMPOSITE INDEXES
# ============================================================================

INDEX_RAW = "index_raw"
INDEX_PCTILE_5 = "index_pctile_5"
INDEX_PCTILE_4 = "index_pctile_4"
INDEX_PCTILE_BEST = "index_pctile_best"
PCA_INDEX = "pca_index"
PCA_PCTILE_INDEX = "pca_pctile_index"

COMPOSITE_INDEXES: Dict[str, str] = {
    INDEX_RAW: "Mean of the five indicator values",
    INDEX_PCTILE_5: "Mean of the five national percentiles",
    INDEX_PCTILE_4: "Mean of the four national percentiles excluding life expectancy",
    INDEX_PCTILE_BEST: "Five-percentile mean where life expectancy exists, else four",
    PCA_INDEX: "First principal component of the five indicator values",
    PCA_PCTILE_INDEX: "First principal component of the five national percentiles",
}

# PCA composites and the columns each is fitted on
PCA_INPUTS: Dict[str, List[str]] = {
    PCA_INDEX: VALUE_COLUMNS,
    PCA_PCTILE_INDEX: PERCENTILE_COLUMNS,
}


def get_indicator(name: str) -> IndicatorDefinition:
    """Get indicator definition by name"""
    if name not in INDICATORS_BY_NAME:
        raise ValueError(f"Unknown indicator: {name}")
    return INDICATORS_BY_NAME[name]


def get_ejscreen_indicators() -> List[IndicatorDefinition]:
    """Indicators read directly from the EJSCREEN table"""
    return [ind for ind in INDICATORS if ind.source_table == "ejscreen"]
