"""Tests for Voronoi cell construction and adjacency."""

import numpy as np
import pytest

from conftest import build_diagram
from py_starmap.core.errors import StructuralError
from py_starmap.core.geometry import compute_circumcenters, signed_area
from py_starmap.core.site_index import SiteIndex
from py_starmap.core.triangulation import Triangulation
from py_starmap.core.voronoi_cells import DiagramContext, build_voronoi_cells


class TestFourCorners:
    """Test the cocircular square of four sites."""

    def test_every_site_has_a_cell(self, square_diagram):
        context, cells = square_diagram
        for index in range(4):
            assert len(cells.polygons[index]) >= 3

    def test_two_neighbours_each(self, square_diagram):
        """Test diagonal sites touching at a single point are not adjacent."""
        _, cells = square_diagram
        assert sorted(cells.adjacency[0]) == [1, 3]
        assert sorted(cells.adjacency[1]) == [0, 2]
        assert sorted(cells.adjacency[2]) == [1, 3]
        assert sorted(cells.adjacency[3]) == [0, 2]

    def test_cells_share_the_center(self, square_diagram):
        """Test all four cells meet at the square's center."""
        _, cells = square_diagram
        for index in range(4):
            assert any(np.hypot(x, y) < 1e-9 for x, y in cells.polygons[index])

    def test_padding_not_in_adjacency(self, square_diagram):
        context, cells = square_diagram
        assert set(cells.adjacency) == {0, 1, 2, 3}
        assert set(cells.members) == {0, 1, 2, 3}


class TestScatteredSites:
    """Test properties that hold for any site layout."""

    def test_boundedness(self, scattered_sites):
        """Test every real cell is closed, finite and inside the validity bounds."""
        context, cells = build_diagram(scattered_sites, padding_count=24)
        for index in range(context.sites.real_count):
            polygon = cells.polygons[index]
            assert len(polygon) >= 3
            assert np.all(np.isfinite(np.array(polygon)))

    def test_cell_contains_its_site_region(self, scattered_sites):
        """Test each site lies inside the bounding box of its cell."""
        context, cells = build_diagram(scattered_sites, padding_count=24)
        for record in context.sites.real_records():
            xs, ys = zip(*cells.polygons[record.index])
            assert min(xs) <= record.position[0] <= max(xs)
            assert min(ys) <= record.position[1] <= max(ys)

    def test_adjacency_symmetric(self, scattered_sites):
        context, cells = build_diagram(scattered_sites, padding_count=24)
        for site, neighbors in cells.adjacency.items():
            assert site not in neighbors
            for neighbor in neighbors:
                assert context.sites.is_real(neighbor)
                assert site in cells.adjacency[neighbor]

    def test_clockwise_winding(self, scattered_sites):
        _, cells = build_diagram(scattered_sites, padding_count=24)
        for polygon in cells.polygons.values():
            assert signed_area(polygon) <= 0

    def test_real_cells_tile_the_hull(self, scattered_sites):
        """Test real cells do not overlap: their areas sum to less than the ring."""
        context, cells = build_diagram(scattered_sites, padding_count=24)
        total = sum(abs(signed_area(cells.polygons[i])) for i in range(context.sites.real_count))
        radius = max(np.hypot(x, y) for x, y in scattered_sites.values()) + 50.0
        assert 0 < total < np.pi * radius * radius


class TestStructuralFailures:
    """Test malformed input handling."""

    def _context(self, triangulation):
        sites = SiteIndex.build(
            [("a", (0.0, 0.0)), ("b", (4.0, 0.0)), ("c", (0.0, 4.0)), ("d", (9.0, 9.0))],
            np.empty((0, 2)),
        )
        triangles = triangulation.triangles if len(triangulation.triangles) % 3 == 0 else np.array([0, 1, 2])
        centers, valid = compute_circumcenters(sites.points, triangles)
        return DiagramContext(sites, triangulation, centers, valid)

    def test_malformed_triangulation(self):
        context = self._context(Triangulation(np.array([0, 1]), np.array([-1, -1])))
        with pytest.raises(StructuralError):
            build_voronoi_cells(context)

    def test_site_without_incoming_edge_skipped(self):
        """Test a point outside every triangle is skipped, not fatal."""
        context = self._context(Triangulation(np.array([0, 1, 2]), np.array([-1, -1, -1])))
        cells = build_voronoi_cells(context)
        assert cells.skipped == [3]
        assert cells.polygons == {}
        assert cells.adjacency == {0: [], 1: [], 2: [], 3: []}

    def test_walk_cap(self, square_sites):
        """Test a walk that exceeds its cap is fatal."""
        context, _ = build_diagram(square_sites)
        with pytest.raises(StructuralError):
            build_voronoi_cells(context, max_walk_iterations=1)
