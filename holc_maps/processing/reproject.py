"""
reproject.py

CRS standardization for the three analysis datasets.

Every dataset is transformed independently, and identically, to one target CRS
before any spatial predicate runs. A missing source CRS is never guessed: the
caller has to fix the input. Coordinates outside the area of use of the target
CRS are rejected before transforming, since PROJ returns finite but
meaningless values for many of them.
"""

from typing import Dict, Union

import geopandas as gpd
import numpy as np
from loguru import logger
from pyproj import CRS
from pyproj.exceptions import CRSError

from .errors import ProjectionError

GEOGRAPHIC_CRS = "EPSG:4326"
# Degrees of slack at the edge of a CRS area of use
DOMAIN_TOLERANCE = 1e-6


def resolve_crs(target_crs: Union[str, int, CRS], dataset_name: str = "target") -> CRS:
    """
    Parse a user supplied CRS (EPSG code, authority string, WKT, PROJ string).

    Raises:
        ProjectionError: If pyproj cannot resolve the CRS
    """
    try:
        return CRS.from_user_input(target_crs)
    except CRSError as e:
        raise ProjectionError(f"Unknown CRS {target_crs!r}: {e}", dataset=dataset_name) from e


def _check_finite_coordinates(gdf: gpd.GeoDataFrame, dataset_name: str) -> None:
    """Fail when a transform produced inf/NaN coordinates (outside the projection domain)."""
    if gdf.empty:
        return

    coords = gdf.geometry.get_coordinates()
    if coords.empty:
        return

    finite = np.isfinite(coords[["x", "y"]].to_numpy()).all(axis=1)
    if not finite.all():
        bad_index = coords.index[~finite][0]
        bad_count = coords.index[~finite].nunique()
        raise ProjectionError(
            f"Transform undefined for {bad_count} feature(s), first at index {bad_index} "
            f"(coordinates outside the projection domain)",
            dataset=dataset_name,
        )


def _outside_area_of_use(lon: np.ndarray, lat: np.ndarray, bounds) -> np.ndarray:
    west, south, east, north = bounds
    if west <= east:
        lon_ok = (lon >= west - DOMAIN_TOLERANCE) & (lon <= east + DOMAIN_TOLERANCE)
    else:
        # Area crosses the antimeridian
        lon_ok = (lon >= west - DOMAIN_TOLERANCE) | (lon <= east + DOMAIN_TOLERANCE)
    lat_ok = (lat >= south - DOMAIN_TOLERANCE) & (lat <= north + DOMAIN_TOLERANCE)
    return ~(lon_ok & lat_ok)


def _check_area_of_use(gdf: gpd.GeoDataFrame, target: CRS, dataset_name: str) -> None:
    """Fail when source coordinates fall outside the target CRS area of use."""
    area = target.area_of_use
    if area is None or gdf.empty:
        return

    try:
        coords = gdf.geometry.to_crs(GEOGRAPHIC_CRS).get_coordinates()
    except (CRSError, ValueError, RuntimeError) as e:
        raise ProjectionError(f"Could not locate coordinates in lon/lat: {e}", dataset=dataset_name) from e
    if coords.empty:
        return

    outside = _outside_area_of_use(coords["x"].to_numpy(), coords["y"].to_numpy(), area.bounds)
    if outside.any():
        bad = coords.index[outside]
        west, south, east, north = area.bounds
        raise ProjectionError(
            f"{bad.nunique()} feature(s) outside the area of use of {target.name} "
            f"(lon {west}..{east}, lat {south}..{north}), first at index {bad[0]}",
            dataset=dataset_name,
        )


def reproject(
    gdf: gpd.GeoDataFrame,
    target_crs: Union[str, int, CRS],
    dataset_name: str = "GeoDataFrame",
) -> gpd.GeoDataFrame:
    """
    Return a copy of gdf expressed in target_crs.

    Args:
        gdf: Input GeoDataFrame, must carry a CRS
        target_crs: Target CRS (e.g., 'EPSG:3310')
        dataset_name: Name used in log messages and errors

    Returns:
        Reprojected GeoDataFrame

    Raises:
        ProjectionError: If the source CRS is unknown, the target cannot be parsed,
            or a coordinate lies outside the target area of use or transforms
            to inf/NaN
    """
    target = resolve_crs(target_crs, dataset_name)
    logger.info(f"🌐 Reprojecting {dataset_name} ({len(gdf):,} features) to {target_crs}...")

    if gdf.crs is None:
        raise ProjectionError("Source CRS is undefined, cannot reproject", dataset=dataset_name)

    if target.is_geographic:
        logger.warning(f"  ⚠️ Target CRS {target_crs} is geographic, not planar")

    if gdf.crs == target:
        logger.info(f"  ✅ Already in target CRS: {target_crs}")
        return gdf.copy()

    _check_area_of_use(gdf, target, dataset_name)

    logger.debug(f"  🔄 Transforming from {gdf.crs.to_string()} to {target.to_string()}")
    try:
        projected = gdf.to_crs(target)
    except (CRSError, ValueError, RuntimeError) as e:
        raise ProjectionError(f"CRS transformation failed: {e}", dataset=dataset_name) from e

    _check_finite_coordinates(projected, dataset_name)

    logger.success(f"  ✅ {dataset_name} reprojected")
    return projected


def reproject_all(
    datasets: Dict[str, gpd.GeoDataFrame], target_crs: Union[str, int, CRS]
) -> Dict[str, gpd.GeoDataFrame]:
    """Apply the same reprojection to every named dataset."""
    return {name: reproject(gdf, target_crs, name) for name, gdf in datasets.items()}
