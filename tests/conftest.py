"""Shared fixtures for territory overlay tests."""

import numpy as np
import pytest

from py_starmap.config import OverlayConfig
from py_starmap.core.geometry import compute_circumcenters
from py_starmap.core.padding import generate_padding_points, padding_radius
from py_starmap.core.site_index import SiteIndex
from py_starmap.core.triangulation import delaunay_triangulation
from py_starmap.core.voronoi_cells import DiagramContext, build_voronoi_cells


def build_diagram(sites, padding_count=8, offset=50.0, epsilon=1e-6):
    """Triangulate sites plus a padding ring and build their cells."""
    real = np.array(list(sites.values()), dtype=np.float64)
    radius = padding_radius(real, offset)
    padding = generate_padding_points((0.0, 0.0), radius, padding_count)
    index = SiteIndex.build(sites.items(), padding, epsilon)
    triangulation = delaunay_triangulation(index.points)
    config = OverlayConfig(padding_point_count=padding_count, padding_offset=offset)
    centers, valid = compute_circumcenters(index.points, triangulation.triangles,
                                           config.bounds_for_radius(radius), epsilon)
    context = DiagramContext(index, triangulation, centers, valid, epsilon)
    return context, build_voronoi_cells(context)


@pytest.fixture
def square_sites():
    """Four sites on the corners of a square centred on the origin."""
    return {
        "A": (-5.0, -5.0),
        "B": (5.0, -5.0),
        "C": (5.0, 5.0),
        "D": (-5.0, 5.0),
    }


@pytest.fixture
def square_diagram(square_sites):
    return build_diagram(square_sites)


@pytest.fixture
def scattered_sites():
    """Thirty random sites in a disc of radius 100."""
    rng = np.random.default_rng(1234)
    angles = rng.uniform(0, 2 * np.pi, 30)
    distances = 100.0 * np.sqrt(rng.uniform(0.05, 1, 30))
    return {
        i: (float(d * np.cos(a)), float(d * np.sin(a)))
        for i, (a, d) in enumerate(zip(angles, distances))
    }


@pytest.fixture
def flat_config():
    """Overlay settings without smoothing so outlines stay exact."""
    return OverlayConfig(padding_point_count=8, enable_smoothing=False)
