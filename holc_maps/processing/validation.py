"""
validation.py

Pre-join checks: geometry repair and CRS consistency.

Repair uses shapely's make_valid. For polygons, only the polygonal parts of the
repaired geometry are kept, so slivers collapsed into lines or points do not
change the type of the feature. A polygon is never dropped: if nothing
polygonal survives the repair, GeometryError is raised instead.
"""

from dataclasses import dataclass, field
from itertools import combinations
from typing import Dict, List, Mapping, Optional, Tuple

import geopandas as gpd
from loguru import logger
from pyproj import CRS
from shapely.geometry import GeometryCollection, MultiPolygon, Polygon
from shapely.geometry.base import BaseGeometry
from shapely.ops import unary_union
from shapely.validation import explain_validity, make_valid

from .errors import GeometryError

POLYGONAL_TYPES = ("Polygon", "MultiPolygon")


def _polygonal_part(geom: BaseGeometry) -> Optional[BaseGeometry]:
    """Extract the polygonal part of a make_valid result."""
    if isinstance(geom, (Polygon, MultiPolygon)):
        return geom
    if isinstance(geom, GeometryCollection):
        parts = [g for g in geom.geoms if isinstance(g, (Polygon, MultiPolygon))]
        if parts:
            return unary_union(parts)
    return None


def repair_geometry(geom: BaseGeometry) -> Optional[BaseGeometry]:
    """
    Repair a single geometry.

    Returns:
        A valid, non-empty geometry of the same family, or None if the
        geometry cannot be repaired
    """
    if geom is None or geom.is_valid:
        return geom

    fixed = make_valid(geom)
    if geom.geom_type in POLYGONAL_TYPES:
        fixed = _polygonal_part(fixed)

    if fixed is None or fixed.is_empty or not fixed.is_valid:
        return None
    return fixed


def repair_geometries(gdf: gpd.GeoDataFrame, dataset_name: str = "GeoDataFrame") -> gpd.GeoDataFrame:
    """
    Repair invalid geometries (self-intersections, bad ring orientation).

    Args:
        gdf: Input GeoDataFrame
        dataset_name: Name used in log messages and errors

    Returns:
        Copy of gdf with every non-null geometry valid

    Raises:
        GeometryError: If a geometry cannot be repaired
    """
    logger.info(f"🔧 Validating geometries in {dataset_name}...")

    null_count = int(gdf.geometry.isna().sum())
    if null_count > 0:
        logger.warning(f"  ⚠️ Found {null_count} null geometries in {dataset_name} (kept as-is)")

    invalid_mask = gdf.geometry.notna() & ~gdf.geometry.is_valid
    invalid_count = int(invalid_mask.sum())
    if invalid_count == 0:
        logger.info(f"  ✅ All geometries valid in {dataset_name}")
        return gdf.copy()

    logger.warning(f"  ⚠️ Found {invalid_count} invalid geometries, repairing...")

    repaired_geoms = []
    for idx, geom, invalid in zip(gdf.index, gdf.geometry, invalid_mask):
        if not invalid:
            repaired_geoms.append(geom)
            continue

        reason = explain_validity(geom)
        fixed = repair_geometry(geom)
        if fixed is None:
            raise GeometryError(
                f"Geometry at index {idx} could not be repaired ({reason})", dataset=dataset_name
            )

        if geom.geom_type in POLYGONAL_TYPES and geom.area > 0:
            logger.debug(
                f"    🔨 {idx}: {reason} → area {geom.area:.3f} → {fixed.area:.3f}"
            )
        else:
            logger.debug(f"    🔨 {idx}: {reason}")
        repaired_geoms.append(fixed)

    repaired = gdf.copy()
    repaired[gdf.geometry.name] = gpd.GeoSeries(repaired_geoms, index=gdf.index, crs=gdf.crs)

    logger.success(f"  ✅ Repaired {invalid_count} invalid geometries in {dataset_name}")
    return repaired


@dataclass(frozen=True)
class CRSCheck:
    """
    Outcome of comparing the CRS of several datasets.

    When every dataset shares one CRS the check is a single "all match" outcome.
    Otherwise each pair is reported on its own so a caller can see exactly
    which datasets disagree.
    """

    crs_by_dataset: Dict[str, Optional[CRS]]
    pairwise: Tuple[Tuple[str, str, bool], ...] = field(default_factory=tuple)

    @property
    def all_match(self) -> bool:
        return all(crs is not None for crs in self.crs_by_dataset.values()) and all(
            matches for _, _, matches in self.pairwise
        )

    @property
    def mismatched_pairs(self) -> List[Tuple[str, str]]:
        return [(a, b) for a, b, matches in self.pairwise if not matches]

    def describe(self) -> List[str]:
        """Human-readable lines: one for a full match, one per pair otherwise."""
        if self.all_match:
            names = ", ".join(self.crs_by_dataset)
            crs = next(iter(self.crs_by_dataset.values()), None)
            label = crs.to_string() if crs is not None else "no datasets"
            return [f"All datasets share the same CRS ({names}: {label})"]

        lines = []
        for a, b, matches in self.pairwise:
            status = "match" if matches else "MISMATCH"
            lines.append(f"{a} vs {b}: {status}")
        return lines


def _same_crs(a: Optional[CRS], b: Optional[CRS]) -> bool:
    if a is None or b is None:
        return False
    return a == b


def check_crs_consistency(datasets: Mapping[str, gpd.GeoDataFrame]) -> CRSCheck:
    """
    Compare the CRS of every dataset against every other.

    This check does not raise. The caller decides whether to proceed on a
    partial match. A missing CRS never matches anything.

    Args:
        datasets: Mapping of dataset name to GeoDataFrame

    Returns:
        CRSCheck with the per-dataset CRS and the pairwise comparisons
    """
    logger.info("🧭 Checking CRS consistency...")

    crs_by_dataset = {name: gdf.crs for name, gdf in datasets.items()}
    pairwise = tuple(
        (a, b, _same_crs(crs_by_dataset[a], crs_by_dataset[b]))
        for a, b in combinations(crs_by_dataset, 2)
    )
    check = CRSCheck(crs_by_dataset=crs_by_dataset, pairwise=pairwise)

    if check.all_match:
        logger.success(f"  ✅ {check.describe()[0]}")
    else:
        for line in check.describe():
            if line.endswith("MISMATCH"):
                logger.warning(f"  ⚠️ {line}")
            else:
                logger.info(f"  ✓ {line}")

    return check
