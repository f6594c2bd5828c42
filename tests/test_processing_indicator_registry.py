import pytest

from src.processing.indicator_registry import (
    COMPOSITE_INDEXES,
    FOUR_METRIC_PERCENTILE_COLUMNS,
    INDICATORS,
    LIFE_EXPECTANCY,
    PCA_INPUTS,
    PERCENTILE_COLUMNS,
    VALUE_COLUMNS,
    Transform,
    get_ejscreen_indicators,
    get_indicator,
)


def test_five_indicators_in_fixed_order():
    assert [ind.name for ind in INDICATORS] == [
        "low_income",
        "linguistic_isolation",
        "less_than_high_school",
        "unemployment",
        "life_expectancy",
    ]
    assert VALUE_COLUMNS == ["LOWINC_100", "LINGISO_100", "LESSHS_100", "UNEMP_100", "NEG_LIFEEXP"]


def test_life_expectancy_is_negated_and_ranked_here():
    assert LIFE_EXPECTANCY.transform == Transform.NEGATE_OFFSET
    assert LIFE_EXPECTANCY.percentile_precomputed is False
    assert LIFE_EXPECTANCY.in_four_metric is False


def test_four_metric_excludes_life_expectancy():
    assert FOUR_METRIC_PERCENTILE_COLUMNS == PERCENTILE_COLUMNS[:4]
    assert "P_NEG_LIFEEXP" not in FOUR_METRIC_PERCENTILE_COLUMNS


def test_ejscreen_indicators_are_percent_scaled():
    ejscreen = get_ejscreen_indicators()

    assert len(ejscreen) == 4
    assert all(ind.transform == Transform.PERCENT_SCALE for ind in ejscreen)
    assert all(ind.percentile_precomputed for ind in ejscreen)


def test_six_composites():
    assert list(COMPOSITE_INDEXES) == [
        "index_raw",
        "index_pctile_5",
        "index_pctile_4",
        "index_pctile_best",
        "pca_index",
        "pca_pctile_index",
    ]
    assert PCA_INPUTS["pca_index"] == VALUE_COLUMNS
    assert PCA_INPUTS["pca_pctile_index"] == PERCENTILE_COLUMNS


def test_get_indicator():
    assert get_indicator("unemployment").source_column == "UNEMPPCT"

    with pytest.raises(ValueError):
        get_indicator("pm25")
