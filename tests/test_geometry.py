"""
Tests for the map geometry helpers
"""

import pytest

from engine import geometry


class TestCoordinates:

    def test_validate_coordinates_accepts_numeric_strings(self):
        """Test coordinates are coerced to floats"""
        assert geometry.validate_coordinates('40.7', '-74.0') == (40.7, -74.0)

    @pytest.mark.parametrize('lat,lng', [(91, 0), (-90.5, 0), (0, 180.1), (0, -181)])
    def test_validate_coordinates_out_of_range(self, lat, lng):
        """Test latitude and longitude bounds"""
        with pytest.raises(ValueError):
            geometry.validate_coordinates(lat, lng)

    def test_validate_coordinates_rejects_non_numbers(self):
        with pytest.raises(ValueError, match='must be numbers'):
            geometry.validate_coordinates(None, 'east')


class TestDistances:

    def test_haversine_one_degree_of_latitude(self):
        """Test one degree of latitude is roughly 111 km"""
        distance = geometry.haversine_distance((0.0, 0.0), (1.0, 0.0))
        assert distance == pytest.approx(111195, rel=1e-3)

    def test_haversine_same_point(self):
        assert geometry.haversine_distance((40.7, -74.0), (40.7, -74.0)) == 0

    def test_is_within_radius(self):
        center = (40.7128, -74.0060)
        near = (40.7130, -74.0060)
        far = (40.7228, -74.0060)

        assert geometry.is_within_radius(near, center, 50) is True
        assert geometry.is_within_radius(far, center, 50) is False

    def test_path_length_sums_segments(self):
        points = [(0.0, 0.0), (0.001, 0.0), (0.002, 0.0)]
        expected = geometry.haversine_distance(points[0], points[2])
        assert geometry.path_length(points) == pytest.approx(expected, rel=1e-6)

    def test_bounding_box_contains_radius(self):
        """Test the box spans the radius in every direction"""
        min_lat, max_lat, min_lng, max_lng = geometry.bounding_box(40.0, -74.0, 1000)

        assert max_lat - 40.0 == pytest.approx(1000 / 111000)
        assert 40.0 - min_lat == pytest.approx(1000 / 111000)
        # Longitude degrees shrink away from the equator
        assert max_lng - (-74.0) > max_lat - 40.0
        assert min_lng < -74.0


class TestPolygons:

    square = [(0.0, 0.0), (0.0, 1.0), (1.0, 1.0), (1.0, 0.0)]

    def test_polygon_area_square_degrees(self):
        """Test the shoelace formula on a unit square"""
        assert geometry.polygon_area(self.square) == pytest.approx(1.0)

    def test_polygon_area_needs_three_points(self):
        assert geometry.polygon_area([(0, 0), (1, 1)]) == 0.0

    def test_polygon_area_m2_small_square(self):
        """Test a 0.001 degree square near the equator is about 111 m a side"""
        vertices = [(0.0, 0.0), (0.0, 0.001), (0.001, 0.001), (0.001, 0.0)]
        assert geometry.polygon_area_m2(vertices) == pytest.approx(111.19 ** 2, rel=1e-2)

    def test_centroid(self):
        assert geometry.centroid(self.square) == (0.5, 0.5)

    def test_centroid_empty(self):
        with pytest.raises(ValueError):
            geometry.centroid([])

    def test_point_in_polygon(self):
        assert geometry.point_in_polygon((0.5, 0.5), self.square) is True
        assert geometry.point_in_polygon((1.5, 0.5), self.square) is False
