"""
Voronoi cell construction from a half-edge Delaunay triangulation.

Each site's cell is the ring of circumcenters of the triangles around it.
The ring is found by walking the triangulation: from an edge arriving at
the site, step to the outgoing edge of the same triangle and cross to its
twin, which arrives at the site again in the next triangle. The same walk
records which real sites share a Voronoi edge.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

import numpy as np
import structlog

from .errors import StructuralError
from .geometry import EPSILON, Point, clean_polygon, order_vertices_clockwise, squared_distance
from .site_index import SiteIndex
from .triangulation import HULL, Triangulation, next_halfedge

logger = structlog.get_logger()


@dataclass
class DiagramContext:
    """Everything one pass knows about the triangulated point set."""
    sites: SiteIndex
    triangulation: Triangulation
    circumcenters: np.ndarray
    valid: np.ndarray
    epsilon: float = EPSILON

    def circumcenter_of(self, triangle: int) -> Optional[Point]:
        """Circumcenter of a triangle, or None when undefined or out of bounds."""
        if triangle < 0 or triangle >= len(self.valid) or not self.valid[triangle]:
            return None
        x, y = self.circumcenters[triangle]
        return (float(x), float(y))

    def shares_voronoi_edge(self, edge: int, twin: int) -> bool:
        """
        Whether the Delaunay edge ``edge``/``twin`` has a Voronoi dual of
        non-zero length.

        Both bordering triangles having the same circumcenter (cocircular
        sites) collapses the dual edge to a point.
        """
        first = self.circumcenter_of(edge // 3)
        second = self.circumcenter_of(twin // 3)
        if first is None or second is None:
            return True
        return squared_distance(first, second) > self.epsilon * self.epsilon


@dataclass
class VoronoiCells:
    """Cell polygons and real-site adjacency keyed by point index."""
    polygons: Dict[int, List[Point]] = field(default_factory=dict)
    adjacency: Dict[int, List[int]] = field(default_factory=dict)
    members: Dict[int, List[int]] = field(default_factory=dict)
    skipped: List[int] = field(default_factory=list)

    def link(self, a: int, b: int) -> None:
        """Record a symmetric adjacency edge."""
        neighbors_a = self.adjacency.setdefault(a, [])
        if b not in neighbors_a:
            neighbors_a.append(b)
        neighbors_b = self.adjacency.setdefault(b, [])
        if a not in neighbors_b:
            neighbors_b.append(a)


def _first_incoming_edges(triangles: List[int], point_count: int) -> List[int]:
    incoming = [HULL] * point_count
    for edge in range(len(triangles)):
        head = triangles[next_halfedge(edge)]
        if incoming[head] == HULL:
            incoming[head] = edge
    return incoming


def build_voronoi_cells(context: DiagramContext, max_walk_iterations: Optional[int] = None,
                        verbose: bool = False) -> VoronoiCells:
    """
    Build the cell polygon of every point and the adjacency of real sites.

    Args:
        context: Triangulated point set with circumcenters
        max_walk_iterations: Cap on steps around one site; defaults to
            three times the point count
        verbose: Log per-site diagnostics

    Returns:
        VoronoiCells with clockwise polygons (cells with fewer than three
        vertices are left out) and symmetric real-site adjacency

    Raises:
        StructuralError: malformed triangulation or a walk that does not close
    """
    sites = context.sites
    point_count = len(sites)
    context.triangulation.validate(point_count)

    triangles = context.triangulation.triangles.tolist()
    halfedges = context.triangulation.halfedges.tolist()
    cap = max_walk_iterations or 3 * point_count + 3
    eps2 = context.epsilon * context.epsilon

    logger.info("Building Voronoi cells", points=point_count, real_sites=sites.real_count,
                triangles=len(triangles) // 3)

    incoming = _first_incoming_edges(triangles, point_count)
    cells = VoronoiCells()

    for site in range(point_count):
        is_real = sites.is_real(site)
        if is_real:
            cells.adjacency.setdefault(site, [])
            cells.members[site] = [site]

        start = incoming[site]
        if start == HULL:
            cells.skipped.append(site)
            logger.warning("Site has no incoming half-edge, no cell built",
                           site=site, real=is_real, position=sites[site].position)
            continue

        vertices: List[Point] = []
        edge = start
        steps = 0
        hit_hull = False
        while True:
            steps += 1
            if steps > cap:
                raise StructuralError(
                    f"Walk around site {site} did not close within {cap} steps"
                )

            center = context.circumcenter_of(edge // 3)
            if center is not None:
                if not vertices or squared_distance(vertices[-1], center) > eps2:
                    vertices.append(center)
            elif verbose:
                logger.debug("Undefined circumcenter on cell boundary", site=site, triangle=edge // 3)

            outgoing = next_halfedge(edge)
            twin = halfedges[outgoing]

            if is_real and twin != HULL:
                neighbor = triangles[twin]
                if (neighbor != site and sites.is_real(neighbor)
                        and context.shares_voronoi_edge(outgoing, twin)):
                    cells.link(site, neighbor)

            edge = twin
            if edge == HULL:
                hit_hull = True
                break
            if edge == start:
                break

        if hit_hull and is_real:
            logger.warning("Walk around real site reached the hull, cell may be open",
                           site=site, vertices=len(vertices))

        cleaned = clean_polygon(vertices, context.epsilon)
        if len(cleaned) < 3:
            if is_real or verbose:
                logger.warning("Cell discarded, fewer than 3 vertices", site=site,
                               raw=len(vertices), cleaned=len(cleaned))
            continue
        cells.polygons[site] = order_vertices_clockwise(cleaned)

    logger.info("Voronoi cells built", cells=len(cells.polygons),
                real_adjacency=len(cells.adjacency), skipped=len(cells.skipped))
    return cells
