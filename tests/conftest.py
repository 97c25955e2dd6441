"""Shared fixtures: small in-memory datasets in a planar CRS (EPSG:3310, metres)."""

import geopandas as gpd
import numpy as np
import pytest
from loguru import logger
from shapely.geometry import Point, box

PLANAR_CRS = "EPSG:3310"


@pytest.fixture(autouse=True)
def quiet_logging():
    """Keep test output readable; loguru logs only warnings and above."""
    logger.remove()
    logger.add(lambda msg: None, level="WARNING")
    yield
    logger.remove()


@pytest.fixture
def zones() -> gpd.GeoDataFrame:
    """Three separated HOLC zones: A at x 0-10, B at x 20-30, C at x 40-50."""
    return gpd.GeoDataFrame(
        {"grade": ["A", "B", "C"], "area_id": [1, 2, 3]},
        geometry=[box(0, 0, 10, 10), box(20, 0, 30, 10), box(40, 0, 50, 10)],
        crs=PLANAR_CRS,
    )


@pytest.fixture
def overlapping_zones() -> gpd.GeoDataFrame:
    """Two zones overlapping on x 5-10, plus one ungraded (null grade) zone."""
    return gpd.GeoDataFrame(
        {"grade": ["A", "B", None]},
        geometry=[box(0, 0, 10, 10), box(5, 0, 15, 10), box(100, 100, 110, 110)],
        crs=PLANAR_CRS,
    )


@pytest.fixture
def block_groups() -> gpd.GeoDataFrame:
    """
    Block groups with indicator values.

    Two inside zone A (40, 60), two inside zone B (50, missing), one outside
    every zone (70).
    """
    return gpd.GeoDataFrame(
        {
            "GEOID": ["bg1", "bg2", "bg3", "bg4", "bg5"],
            "STATE_NAME": ["California"] * 5,
            "CNTY_NAME": ["Los Angeles County"] * 4 + ["Orange County"],
            "P_PM25": [40.0, 60.0, 50.0, np.nan, 70.0],
        },
        geometry=[
            box(1, 1, 4, 4),
            box(5, 5, 8, 8),
            box(21, 1, 24, 4),
            box(25, 5, 28, 8),
            box(60, 0, 65, 5),
        ],
        crs=PLANAR_CRS,
    )


@pytest.fixture
def birds() -> gpd.GeoDataFrame:
    """Five observations: two from 2022 in zone C, three from 2021 in zones A/B/outside."""
    return gpd.GeoDataFrame(
        {
            "species": ["Corvus", "Turdus", "Passer", "Columba", "Sturnus"],
            "year": [2022, 2022, 2021, 2021, 2021],
        },
        geometry=[Point(41, 1), Point(45, 5), Point(5, 5), Point(25, 5), Point(80, 80)],
        crs=PLANAR_CRS,
    )
