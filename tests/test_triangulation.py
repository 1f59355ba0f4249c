"""Tests for the half-edge Delaunay adapter."""

import numpy as np
import pytest

from py_starmap.core.errors import StructuralError, TriangulationError
from py_starmap.core.triangulation import (
    HULL, Triangulation, delaunay_triangulation, next_halfedge, prev_halfedge,
)


def _points():
    return np.array([[0, 0], [10, 0], [10, 10], [0, 10], [4, 6], [7, 3]], dtype=float)


class TestHalfedgeNavigation:
    """Test index arithmetic inside a triangle."""

    def test_next_and_prev(self):
        assert [next_halfedge(e) for e in range(6)] == [1, 2, 0, 4, 5, 3]
        assert [prev_halfedge(e) for e in range(6)] == [2, 0, 1, 5, 3, 4]


class TestDelaunayTriangulation:
    """Test the scipy adapter output layout."""

    def test_layout(self):
        tri = delaunay_triangulation(_points())
        assert len(tri.triangles) % 3 == 0
        assert len(tri.halfedges) == len(tri.triangles)
        tri.validate(6)

    def test_counter_clockwise(self):
        """Test every triangle is oriented counter-clockwise."""
        points = _points()
        tri = delaunay_triangulation(points)
        for t in range(tri.triangle_count):
            a, b, c = points[tri.triangles[3 * t:3 * t + 3]]
            cross = (b[0] - a[0]) * (c[1] - a[1]) - (b[1] - a[1]) * (c[0] - a[0])
            assert cross > 0

    def test_twins_are_reversed(self):
        """Test twin half-edges join the same points in opposite directions."""
        tri = delaunay_triangulation(_points())
        triangles, halfedges = tri.triangles, tri.halfedges
        for e in range(len(triangles)):
            twin = halfedges[e]
            if twin == HULL:
                continue
            assert halfedges[twin] == e
            assert triangles[twin] == triangles[next_halfedge(e)]
            assert triangles[next_halfedge(twin)] == triangles[e]

    def test_hull_edges(self):
        """Test the four square sides are the only hull edges."""
        tri = delaunay_triangulation(_points())
        assert int(np.count_nonzero(tri.halfedges == HULL)) == 4

    def test_too_few_points(self):
        with pytest.raises(TriangulationError):
            delaunay_triangulation(np.array([[0, 0], [1, 1]], dtype=float))

    def test_collinear_points(self):
        with pytest.raises(TriangulationError):
            delaunay_triangulation(np.array([[0, 0], [1, 1], [2, 2]], dtype=float))


class TestValidate:
    """Test structural checks on provider output."""

    def test_empty(self):
        with pytest.raises(StructuralError):
            Triangulation(np.array([], dtype=int), np.array([], dtype=int)).validate(3)

    def test_length_not_multiple_of_three(self):
        with pytest.raises(StructuralError):
            Triangulation(np.array([0, 1]), np.array([-1, -1])).validate(3)

    def test_halfedge_length_mismatch(self):
        with pytest.raises(StructuralError):
            Triangulation(np.array([0, 1, 2]), np.array([-1, -1])).validate(3)

    def test_point_out_of_range(self):
        with pytest.raises(StructuralError):
            Triangulation(np.array([0, 1, 5]), np.array([-1, -1, -1])).validate(3)

    def test_twin_out_of_range(self):
        with pytest.raises(StructuralError):
            Triangulation(np.array([0, 1, 2]), np.array([-1, 9, -1])).validate(3)
