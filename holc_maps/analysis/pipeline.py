"""
pipeline.py

End-to-end analysis: filter → reproject → validate → join → aggregate, run for
both questions asked of the HOLC zones:

1. Indicators by grade: EJScreen block groups in the configured county,
   joined to the zones, averaged per grade.
2. Biodiversity by grade: bird observations in the configured year, joined to
   the zones, counted per grade.

Each summary's percent uses its own post-join record count as the
denominator, so the percentages of one table always add up to 100.
"""

from dataclasses import dataclass, field
from typing import List

import geopandas as gpd
import pandas as pd
from loguru import logger

from ..ops.config_loader import Config
from ..processing.filters import filter_by_jurisdiction, filter_by_year
from ..processing.overlay import join_grades
from ..processing.reproject import reproject_all
from ..processing.validation import CRSCheck, check_crs_consistency, repair_geometries
from .aggregate import summarize_by_grade


@dataclass
class AnalysisResult:
    """Everything a presenter needs from one run."""

    ejscreen: gpd.GeoDataFrame
    holc: gpd.GeoDataFrame
    birds: gpd.GeoDataFrame
    ejscreen_joined: gpd.GeoDataFrame
    birds_joined: gpd.GeoDataFrame
    ejscreen_summary: pd.DataFrame
    birds_summary: pd.DataFrame
    crs_check: CRSCheck
    indicators: List[str] = field(default_factory=list)
    target_crs: str = ""


def run_analysis(
    ejscreen: gpd.GeoDataFrame,
    holc: gpd.GeoDataFrame,
    birds: gpd.GeoDataFrame,
    config: Config,
) -> AnalysisResult:
    """
    Run both analyses on already-loaded inputs.

    Args:
        ejscreen: Block groups with jurisdiction keys and indicator fields
        holc: HOLC zones with a grade column
        birds: Bird observations with a year column
        config: Pipeline configuration

    Returns:
        AnalysisResult with filtered inputs, joined frames and summaries

    Raises:
        ProjectionError: If any dataset cannot be transformed to the target CRS
        GeometryError: If a geometry cannot be repaired
    """
    target_crs = config.get_system_setting("target_crs")
    grade_col = config.get_column_name("grade")
    indicators = list(config.get_analysis_setting("indicators") or [])
    grade_order = config.get_analysis_setting("grade_order") or []
    ungraded_label = config.get_analysis_setting("ungraded_label")
    state = config.get_analysis_setting("state")
    county = config.get_analysis_setting("county")
    year = config.get_analysis_setting("year")

    # 1. Filter on attributes, before any transform
    logger.info("🎯 Step 1: Filtering to jurisdiction and year")
    ejscreen = filter_by_jurisdiction(
        ejscreen,
        state=state,
        county=county,
        state_col=config.get_column_name("state"),
        county_col=config.get_column_name("county"),
        dataset_name="ejscreen",
    )
    if year is not None:
        birds = filter_by_year(birds, year, year_col=config.get_column_name("year"), dataset_name="birds")
    else:
        logger.info("  ⏭️ No observation year configured, keeping all birds")

    # 2. Reproject
    logger.info("🌐 Step 2: Reprojecting datasets")
    projected = reproject_all({"ejscreen": ejscreen, "holc": holc, "birds": birds}, target_crs)
    ejscreen, holc, birds = projected["ejscreen"], projected["holc"], projected["birds"]

    # 3. Validate
    logger.info("🔧 Step 3: Validating geometries and CRS")
    ejscreen = repair_geometries(ejscreen, "ejscreen")
    holc = repair_geometries(holc, "holc")
    birds = repair_geometries(birds, "birds")
    crs_check = check_crs_consistency({"ejscreen": ejscreen, "holc": holc, "birds": birds})

    # 4. Join
    logger.info("🔗 Step 4: Joining to HOLC grades")
    ejscreen_joined = join_grades(ejscreen, holc, grade_col, left_name="ejscreen", zones_name="holc")
    birds_joined = join_grades(birds, holc, grade_col, left_name="birds", zones_name="holc")

    # 5. Aggregate
    logger.info("📊 Step 5: Summarizing by grade")
    ejscreen_summary = summarize_by_grade(
        ejscreen_joined,
        grade_col=grade_col,
        mean_fields=indicators,
        grade_order=grade_order,
        ungraded_label=ungraded_label,
    )
    birds_summary = summarize_by_grade(
        birds_joined,
        grade_col=grade_col,
        grade_order=grade_order,
        ungraded_label=ungraded_label,
    )

    logger.success("✅ Analysis complete")
    return AnalysisResult(
        ejscreen=ejscreen,
        holc=holc,
        birds=birds,
        ejscreen_joined=ejscreen_joined,
        birds_joined=birds_joined,
        ejscreen_summary=ejscreen_summary,
        birds_summary=birds_summary,
        crs_check=crs_check,
        indicators=indicators,
        target_crs=str(target_crs),
    )
