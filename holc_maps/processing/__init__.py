"""
Processing package for HOLC Equity Maps

Reprojection, filtering, geometry validation and the spatial join that feed the
per-grade aggregation.
"""

from .errors import EmptyInputWarning, GeometryError, HolcMapsError, ProjectionError
from .filters import filter_by_jurisdiction, filter_by_year
from .overlay import join_grades
from .reproject import reproject, reproject_all
from .validation import CRSCheck, check_crs_consistency, repair_geometries

__all__ = [
    "HolcMapsError",
    "ProjectionError",
    "GeometryError",
    "EmptyInputWarning",
    "reproject",
    "reproject_all",
    "filter_by_jurisdiction",
    "filter_by_year",
    "repair_geometries",
    "check_crs_consistency",
    "CRSCheck",
    "join_grades",
]
