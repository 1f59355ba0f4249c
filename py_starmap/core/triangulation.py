"""
Delaunay triangulation in half-edge form.

The overlay consumes triangulations in the flat half-edge layout used by
Delaunator: ``triangles[3*t:3*t+3]`` holds the point indices of triangle
``t``, half-edge ``e`` runs from ``triangles[e]`` to
``triangles[next_halfedge(e)]`` and ``halfedges[e]`` is the twin half-edge
in the neighbouring triangle, or -1 on the hull.

``delaunay_triangulation`` adapts ``scipy.spatial.Delaunay`` to that layout.
Any callable with the same signature can be used as a provider.
"""

from dataclasses import dataclass
from typing import Callable

import numpy as np
import structlog
from scipy.spatial import Delaunay, QhullError

from .errors import StructuralError, TriangulationError

logger = structlog.get_logger()

HULL = -1


def next_halfedge(edge: int) -> int:
    """Next half-edge within the same triangle (0->1, 1->2, 2->0)."""
    return edge - 2 if edge % 3 == 2 else edge + 1


def prev_halfedge(edge: int) -> int:
    """Previous half-edge within the same triangle."""
    return edge + 2 if edge % 3 == 0 else edge - 1


@dataclass
class Triangulation:
    """Flat triangle and twin half-edge arrays."""
    triangles: np.ndarray
    halfedges: np.ndarray

    @property
    def triangle_count(self) -> int:
        return len(self.triangles) // 3

    def validate(self, point_count: int) -> None:
        """
        Check the structural invariants the cell walk relies on.

        Raises:
            StructuralError: on a malformed triangulation
        """
        n = len(self.triangles)
        if n == 0:
            raise StructuralError("Triangulation has no triangles")
        if n % 3 != 0:
            raise StructuralError(f"Triangle index count {n} is not a multiple of 3")
        if len(self.halfedges) != n:
            raise StructuralError(
                f"Half-edge count {len(self.halfedges)} does not match triangle index count {n}"
            )
        if self.triangles.min() < 0 or self.triangles.max() >= point_count:
            raise StructuralError(
                f"Triangle references point outside [0, {point_count}): "
                f"min={int(self.triangles.min())} max={int(self.triangles.max())}"
            )
        if self.halfedges.min() < HULL or self.halfedges.max() >= n:
            raise StructuralError(
                f"Half-edge twin outside [-1, {n}): "
                f"min={int(self.halfedges.min())} max={int(self.halfedges.max())}"
            )


TriangulationProvider = Callable[[np.ndarray], Triangulation]


def delaunay_triangulation(points: np.ndarray) -> Triangulation:
    """
    Triangulate points with Qhull and convert to half-edge form.

    Every triangle is oriented counter-clockwise so twin half-edges always
    run in opposite directions.

    Args:
        points: (n, 2) array of coordinates

    Returns:
        Triangulation in half-edge layout

    Raises:
        TriangulationError: too few points or a degenerate configuration
    """
    pts = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    if len(pts) < 3:
        raise TriangulationError(f"Need at least 3 points to triangulate, got {len(pts)}")

    try:
        delaunay = Delaunay(pts)
    except (QhullError, ValueError) as exc:
        raise TriangulationError(f"Delaunay triangulation failed: {exc}") from exc

    simplices = delaunay.simplices.astype(np.int64)
    neighbors = delaunay.neighbors.astype(np.int64)
    if len(simplices) == 0:
        raise TriangulationError("Delaunay triangulation produced no triangles")

    a = pts[simplices[:, 0]]
    b = pts[simplices[:, 1]]
    c = pts[simplices[:, 2]]
    cross = (b[:, 0] - a[:, 0]) * (c[:, 1] - a[:, 1]) - (b[:, 1] - a[:, 1]) * (c[:, 0] - a[:, 0])
    flip = cross < 0
    # neighbors[t, j] lies opposite vertex j, so it swaps together with the vertex
    simplices[flip] = simplices[flip][:, [0, 2, 1]]
    neighbors[flip] = neighbors[flip][:, [0, 2, 1]]

    n_tri = len(simplices)
    triangles = simplices.reshape(-1)
    halfedges = np.full(n_tri * 3, HULL, dtype=np.int64)

    for k in range(3):
        starts = simplices[:, k]
        ends = simplices[:, (k + 1) % 3]
        across = neighbors[:, (k + 2) % 3]
        inner = np.nonzero(across >= 0)[0]
        if len(inner) == 0:
            continue
        other = simplices[across[inner]]
        # The twin starts at our end point and runs back to our start point
        k_twin = np.argmax(other == ends[inner][:, None], axis=1)
        twin_end = other[np.arange(len(inner)), (k_twin + 1) % 3]
        matched = twin_end == starts[inner]
        if not np.all(matched):
            raise StructuralError(
                f"{int(np.count_nonzero(~matched))} Delaunay neighbours do not share a reversed edge"
            )
        halfedges[inner * 3 + k] = across[inner] * 3 + k_twin

    logger.info("Delaunay triangulation computed", points=len(pts), triangles=n_tri,
                skipped_points=len(getattr(delaunay, "coplanar", ())))
    return Triangulation(triangles=triangles, halfedges=halfedges)
