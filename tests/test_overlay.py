"""Tests for the intersects-based left join against HOLC zones."""

import geopandas as gpd
import pandas as pd
import pytest
from geopandas.testing import assert_geodataframe_equal
from shapely.geometry import Point, Polygon, box

from holc_maps.processing.errors import GeometryError, ProjectionError
from holc_maps.processing.overlay import join_grades


class TestJoinGrades:
    """Test join cardinality and carried attributes."""

    def test_unmatched_record_appears_once_with_null_grade(self, zones) -> None:
        """A record outside every zone is kept exactly once, ungraded."""
        points = gpd.GeoDataFrame(
            {"obs_id": [1, 2]}, geometry=[Point(5, 5), Point(200, 200)], crs=zones.crs
        )

        joined = join_grades(points, zones)

        assert len(joined) == 2
        outside = joined[joined["obs_id"] == 2]
        assert len(outside) == 1
        assert pd.isna(outside["grade"].iloc[0])
        assert joined.loc[joined["obs_id"] == 1, "grade"].tolist() == ["A"]

    def test_point_in_overlap_fans_out(self, overlapping_zones) -> None:
        """A point inside two overlapping zones appears once per zone."""
        points = gpd.GeoDataFrame({"obs_id": [1]}, geometry=[Point(7, 5)], crs=overlapping_zones.crs)

        joined = join_grades(points, overlapping_zones)

        assert len(joined) == 2
        assert sorted(joined["grade"].tolist()) == ["A", "B"]
        assert joined["obs_id"].tolist() == [1, 1]

    def test_polygon_spanning_zones_fans_out(self, zones) -> None:
        """A polygon intersecting N zones appears N times."""
        wide = gpd.GeoDataFrame({"GEOID": ["wide"]}, geometry=[box(5, 2, 45, 8)], crs=zones.crs)

        joined = join_grades(wide, zones)

        assert len(joined) == 3
        assert sorted(joined["grade"].tolist()) == ["A", "B", "C"]

    def test_null_grade_zone_counts_as_ungraded(self, overlapping_zones) -> None:
        """Intersecting a zone whose grade is null still yields a null grade."""
        points = gpd.GeoDataFrame(
            {"obs_id": [1]}, geometry=[Point(105, 105)], crs=overlapping_zones.crs
        )

        joined = join_grades(points, overlapping_zones)

        assert len(joined) == 1
        assert pd.isna(joined["grade"].iloc[0])

    def test_carries_left_attributes(self, block_groups, zones) -> None:
        """All left columns survive; zone-only columns do not leak in."""
        joined = join_grades(block_groups, zones)

        for col in block_groups.columns:
            assert col in joined.columns
        assert "area_id" not in joined.columns
        assert "index_right" not in joined.columns
        assert len(joined) == len(block_groups)

    def test_existing_grade_column_is_preserved(self, zones) -> None:
        """A left column clashing with the grade column is renamed, not overwritten."""
        points = gpd.GeoDataFrame({"grade": ["old"]}, geometry=[Point(5, 5)], crs=zones.crs)

        joined = join_grades(points, zones)

        assert joined["grade"].tolist() == ["A"]
        assert joined["grade_left"].tolist() == ["old"]

    def test_custom_grade_column(self, zones) -> None:
        """The grade column name is configurable."""
        renamed = zones.rename(columns={"grade": "holc_grade"})
        points = gpd.GeoDataFrame({"obs_id": [1]}, geometry=[Point(25, 5)], crs=zones.crs)

        joined = join_grades(points, renamed, grade_col="holc_grade")

        assert joined["holc_grade"].tolist() == ["B"]

    def test_does_not_mutate_inputs(self, block_groups, zones) -> None:
        """Neither operand is modified."""
        before_left = block_groups.copy()
        before_zones = zones.copy()

        join_grades(block_groups, zones)

        assert_geodataframe_equal(block_groups, before_left)
        assert_geodataframe_equal(zones, before_zones)


class TestJoinGradesEmpty:
    """Test empty operands."""

    def test_empty_left(self, zones) -> None:
        """An empty left collection joins to an empty result with a grade column."""
        empty = gpd.GeoDataFrame({"obs_id": []}, geometry=[], crs=zones.crs)

        joined = join_grades(empty, zones)

        assert len(joined) == 0
        assert "grade" in joined.columns

    def test_empty_zones(self, birds) -> None:
        """With no zones every record is ungraded, once."""
        empty_zones = gpd.GeoDataFrame({"grade": []}, geometry=[], crs=birds.crs)

        joined = join_grades(birds, empty_zones)

        assert len(joined) == len(birds)
        assert joined["grade"].isna().all()


class TestJoinGradesErrors:
    """Test the join's preconditions."""

    def test_crs_mismatch_raises(self, zones) -> None:
        """Operands in different CRS are rejected, not silently reprojected."""
        points = gpd.GeoDataFrame({"obs_id": [1]}, geometry=[Point(-118.3, 34.0)], crs="EPSG:4326")

        with pytest.raises(ProjectionError) as excinfo:
            join_grades(points, zones, left_name="birds")

        assert excinfo.value.dataset == "birds"

    def test_missing_crs_raises(self, zones) -> None:
        """A left collection without CRS cannot be joined."""
        points = gpd.GeoDataFrame({"obs_id": [1]}, geometry=[Point(5, 5)])

        with pytest.raises(ProjectionError):
            join_grades(points, zones)

    def test_invalid_geometry_raises(self, zones) -> None:
        """An unrepaired self-intersecting polygon aborts the join."""
        bowtie = Polygon([(0, 0), (2, 2), (2, 0), (0, 2), (0, 0)])
        bad = gpd.GeoDataFrame({"GEOID": ["bad"]}, geometry=[bowtie], crs=zones.crs)

        with pytest.raises(GeometryError) as excinfo:
            join_grades(bad, zones, left_name="ejscreen")

        assert excinfo.value.dataset == "ejscreen"
        assert "index 0" in str(excinfo.value)

    def test_missing_grade_column_raises(self, zones, birds) -> None:
        """Zones without the grade column are rejected."""
        with pytest.raises(KeyError):
            join_grades(birds, zones.drop(columns="grade"))
