"""
filters.py

Attribute filters for the analysis inputs: jurisdiction (state + county) for the
indicator block groups, observation year for the bird points.

Filters never modify their input. An empty result is a valid state: it is
reported with an EmptyInputWarning and flows through the rest of the pipeline.
"""

import warnings
from typing import Optional

import geopandas as gpd
import pandas as pd
from loguru import logger

from .errors import EmptyInputWarning


def _require_column(gdf: gpd.GeoDataFrame, column: str, dataset_name: str) -> None:
    if column not in gdf.columns:
        logger.error(f"❌ Column '{column}' missing from {dataset_name}")
        logger.info(f"Available columns: {list(gdf.columns)}")
        raise KeyError(f"Column '{column}' not found in {dataset_name}")


def _warn_if_empty(result: gpd.GeoDataFrame, dataset_name: str, criteria: str) -> None:
    if result.empty:
        message = f"{dataset_name}: no records match {criteria}"
        logger.warning(f"  ⚠️ {message}")
        warnings.warn(message, EmptyInputWarning, stacklevel=3)


def filter_by_jurisdiction(
    gdf: gpd.GeoDataFrame,
    state: Optional[str] = None,
    county: Optional[str] = None,
    state_col: str = "STATE_NAME",
    county_col: str = "CNTY_NAME",
    dataset_name: str = "ejscreen",
) -> gpd.GeoDataFrame:
    """
    Keep records whose state and county keys equal the given values.

    Matching is exact string equality. A key left as None is not filtered on.

    Args:
        gdf: Attribute collection (block groups)
        state: State-level key (e.g., 'California')
        county: County-level key (e.g., 'Los Angeles County')
        state_col: Column holding the state key
        county_col: Column holding the county key
        dataset_name: Name used in log messages

    Returns:
        Filtered copy, possibly empty
    """
    logger.info(f"🎯 Filtering {dataset_name} to county={county!r}, state={state!r}...")

    mask = pd.Series(True, index=gdf.index)
    if state is not None:
        _require_column(gdf, state_col, dataset_name)
        mask &= gdf[state_col] == state
    if county is not None:
        _require_column(gdf, county_col, dataset_name)
        mask &= gdf[county_col] == county

    result = gdf.loc[mask].copy()
    logger.info(f"  📊 {dataset_name}: {len(gdf):,} → {len(result):,} records")

    _warn_if_empty(result, dataset_name, f"state={state!r}, county={county!r}")
    return result


def filter_by_year(
    gdf: gpd.GeoDataFrame,
    year: int,
    year_col: str = "year",
    dataset_name: str = "birds",
) -> gpd.GeoDataFrame:
    """
    Keep observations recorded in the given year.

    Year values stored as strings or floats are coerced to integers before the
    comparison; values that cannot be coerced never match.

    Args:
        gdf: Observation collection (points)
        year: Year to keep
        year_col: Column holding the year
        dataset_name: Name used in log messages

    Returns:
        Filtered copy, possibly empty
    """
    logger.info(f"📅 Filtering {dataset_name} to {year_col} == {year}...")
    _require_column(gdf, year_col, dataset_name)

    years = pd.to_numeric(gdf[year_col], errors="coerce")
    result = gdf.loc[years == int(year)].copy()
    logger.info(f"  📊 {dataset_name}: {len(gdf):,} → {len(result):,} records")

    _warn_if_empty(result, dataset_name, f"{year_col}={year}")
    return result
