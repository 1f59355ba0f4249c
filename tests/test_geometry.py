"""Tests for planar geometry helpers."""

import numpy as np
import pytest

from py_starmap.config import Bounds
from py_starmap.core.geometry import (
    circumcenter, clean_polygon, compute_circumcenters, find_vertex_index,
    is_point_in_triangle, is_vertex_convex, looped_index, order_vertices_clockwise,
    polygon_centroid, remove_spikes, signed_area,
)


class TestCircumcenter:
    """Test single and batched circumcenter computation."""

    def test_right_triangle(self):
        """Test the circumcenter of a right triangle is the hypotenuse midpoint."""
        assert circumcenter((0, 0), (2, 0), (0, 2)) == pytest.approx((1.0, 1.0))

    def test_collinear_is_undefined(self):
        """Test collinear corners have no circumcenter."""
        assert circumcenter((0, 0), (1, 1), (2, 2)) is None

    def test_batched_matches_single(self):
        """Test the vectorised version agrees with the closed form."""
        points = np.array([[0, 0], [4, 0], [0, 3], [5, 5]], dtype=float)
        triangles = np.array([0, 1, 2, 1, 3, 2])
        centers, valid = compute_circumcenters(points, triangles)

        assert valid.tolist() == [True, True]
        np.testing.assert_allclose(centers[0], circumcenter(points[0], points[1], points[2]))
        np.testing.assert_allclose(centers[1], circumcenter(points[1], points[3], points[2]))

    def test_batched_collinear_invalid(self):
        """Test degenerate triangles are flagged invalid."""
        points = np.array([[0, 0], [1, 0], [2, 0]], dtype=float)
        _, valid = compute_circumcenters(points, np.array([0, 1, 2]))
        assert not valid[0]

    def test_bounds_invalidate_far_centers(self):
        """Test circumcenters outside the bounds are flagged invalid."""
        points = np.array([[0, 0], [2, 0], [0, 2]], dtype=float)
        inside, valid_inside = compute_circumcenters(points, np.array([0, 1, 2]), Bounds.centered(5))
        _, valid_outside = compute_circumcenters(
            points, np.array([0, 1, 2]), Bounds(x_min=10, y_min=10, x_max=20, y_max=20)
        )
        assert valid_inside[0]
        assert not valid_outside[0]
        np.testing.assert_allclose(inside[0], [1.0, 1.0])


class TestWinding:
    """Test signed area and clockwise ordering."""

    def test_signed_area_sign(self):
        """Test counter-clockwise rings have positive area."""
        ccw = [(0, 0), (1, 0), (1, 1), (0, 1)]
        assert signed_area(ccw) == pytest.approx(1.0)
        assert signed_area(list(reversed(ccw))) == pytest.approx(-1.0)

    def test_order_clockwise(self):
        """Test rings come back clockwise and the input is not mutated."""
        ccw = [(0, 0), (1, 0), (1, 1), (0, 1)]
        ordered = order_vertices_clockwise(ccw)
        assert signed_area(ordered) < 0
        assert ccw[1] == (1, 0)
        assert order_vertices_clockwise(ordered) == ordered

    def test_looped_index(self):
        assert looped_index(-1, 5) == 4
        assert looped_index(7, 5) == 2
        assert looped_index(3, 0) == 0


class TestPolygonCleaning:
    """Test duplicate and spike removal."""

    def test_clean_polygon(self):
        """Test consecutive duplicates and the closing vertex are dropped."""
        ring = [(0, 0), (0, 0), (1, 0), (1, 1), (0, 0)]
        assert clean_polygon(ring) == [(0, 0), (1, 0), (1, 1)]

    def test_remove_spikes(self):
        """Test an out-and-back excursion is folded away."""
        ring = [(0, 0), (0, 10), (10, 10), (15, 15), (10, 10), (10, 0)]
        assert remove_spikes(ring) == [(0, 0), (0, 10), (10, 10), (10, 0)]

    def test_remove_spikes_keeps_simple_ring(self):
        ring = [(0, 0), (0, 10), (10, 10), (10, 0)]
        assert remove_spikes(ring) == ring

    def test_find_vertex_index(self):
        """Test nearest vertex lookup within epsilon."""
        ring = [(0, 0), (1, 0), (1, 1)]
        assert find_vertex_index(ring, (1.0 + 1e-9, 0.0)) == 1
        assert find_vertex_index(ring, (0.5, 0.5)) == -1


class TestTrianglePredicates:
    """Test convexity and point-in-triangle tests."""

    def test_convexity_follows_winding(self):
        """Test a left turn is convex only for counter-clockwise rings."""
        prev, curr, nxt = (0, 0), (1, 0), (1, 1)
        assert is_vertex_convex(prev, curr, nxt, clockwise=False)
        assert not is_vertex_convex(prev, curr, nxt, clockwise=True)

    def test_point_inside(self):
        assert is_point_in_triangle((0.5, 0.5), (0, 0), (2, 0), (0, 2))
        assert not is_point_in_triangle((3, 3), (0, 0), (2, 0), (0, 2))

    def test_point_on_edge(self):
        """Test edge points are excluded unless allowed."""
        assert not is_point_in_triangle((1, 0), (0, 0), (2, 0), (0, 2))
        assert is_point_in_triangle((1, 0), (0, 0), (2, 0), (0, 2), allow_on_edge=True)


class TestCentroid:
    """Test polygon centroid."""

    def test_square(self):
        assert polygon_centroid([(0, 0), (2, 0), (2, 2), (0, 2)]) == pytest.approx((1.0, 1.0))

    def test_degenerate_falls_back_to_mean(self):
        assert polygon_centroid([(0, 0), (2, 0), (4, 0)]) == pytest.approx((2.0, 0.0))
