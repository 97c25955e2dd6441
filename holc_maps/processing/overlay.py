"""
overlay.py

Spatial intersection join between a left collection (block groups or bird
observations) and the HOLC grade zones.

Join semantics (left join on `intersects`):
- a left record with no intersecting zone appears once, with a null grade
- a left record intersecting N zones appears N times, once per zone

Downstream counts depend on the fan-out, so it is never collapsed here.
"""

import geopandas as gpd
import pandas as pd
from loguru import logger

from .errors import GeometryError, ProjectionError


def _require_valid_geometries(gdf: gpd.GeoDataFrame, dataset_name: str) -> None:
    invalid_mask = gdf.geometry.notna() & ~gdf.geometry.is_valid
    if invalid_mask.any():
        bad_index = gdf.index[invalid_mask.to_numpy()][0]
        raise GeometryError(
            f"{int(invalid_mask.sum())} invalid geometries, first at index {bad_index} "
            f"(run repair_geometries before joining)",
            dataset=dataset_name,
        )


def join_grades(
    left: gpd.GeoDataFrame,
    zones: gpd.GeoDataFrame,
    grade_col: str = "grade",
    left_name: str = "left",
    zones_name: str = "holc",
) -> gpd.GeoDataFrame:
    """
    Attach the HOLC grade of every intersecting zone to each left record.

    Args:
        left: Polygons or points to classify
        zones: HOLC zone polygons carrying grade_col
        grade_col: Grade column in zones; also the output column name
        left_name: Name of the left dataset for logs and errors
        zones_name: Name of the zones dataset for logs and errors

    Returns:
        GeoDataFrame with all left attributes plus grade_col, one row per
        intersecting (left, zone) pair, unmatched rows kept with a null grade

    Raises:
        KeyError: If zones has no grade_col
        ProjectionError: If the operands do not share a CRS
        GeometryError: If either operand holds an invalid geometry
    """
    logger.info(
        f"🔗 Joining {left_name} ({len(left):,}) to {zones_name} ({len(zones):,}) by intersection..."
    )

    if grade_col not in zones.columns:
        raise KeyError(f"Column '{grade_col}' not found in {zones_name}")

    if left.crs is None or zones.crs is None or left.crs != zones.crs:
        left_crs = left.crs.to_string() if left.crs is not None else None
        zones_crs = zones.crs.to_string() if zones.crs is not None else None
        raise ProjectionError(
            f"CRS mismatch: {left_name}={left_crs}, {zones_name}={zones_crs}",
            dataset=left_name,
        )

    _require_valid_geometries(left, left_name)
    _require_valid_geometries(zones, zones_name)

    left_work = left
    if grade_col in left.columns:
        logger.debug(f"  📝 {left_name} already has '{grade_col}', keeping it as '{grade_col}_left'")
        left_work = left.rename(columns={grade_col: f"{grade_col}_left"})

    right = zones[[grade_col, zones.geometry.name]].reset_index(drop=True)

    if left_work.empty or right.empty:
        joined = left_work.copy()
        joined[grade_col] = pd.Series([None] * len(joined), index=joined.index, dtype=object)
    else:
        joined = gpd.sjoin(left_work, right, how="left", predicate="intersects")
        joined = joined.drop(columns="index_right")

    joined = joined.reset_index(drop=True)

    matched = int(joined[grade_col].notna().sum())
    logger.success(f"  ✅ Joined {len(left):,} {left_name} records → {len(joined):,} rows")
    logger.info(f"     📊 Rows with a grade: {matched:,}")
    logger.info(f"     📊 Ungraded rows: {len(joined) - matched:,}")
    if len(joined) > len(left):
        logger.info(f"     📊 Fan-out from multi-zone intersections: {len(joined) - len(left):,}")

    return joined
