"""
Geometric merging of adjacent Voronoi cells.

Two territories are fused along a Voronoi edge they share. The edge is
found through the Delaunay triangulation: the dual of a Delaunay edge
between a member of each territory runs between the circumcenters of the
two triangles bordering it. Both polygons are clockwise, so the shared
edge appears in opposite directions in the two rings and the merged ring
is the target's vertices from the far end of that edge round to its near
end, followed by the source's vertices strictly between them.
"""

from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Set, Tuple

import structlog

from .geometry import (
    Point, clean_polygon, find_vertex_index, looped_index,
    order_vertices_clockwise, remove_spikes, squared_distance,
)
from .triangulation import HULL, next_halfedge
from .voronoi_cells import DiagramContext, VoronoiCells

logger = structlog.get_logger()


@dataclass
class MergeOutcome:
    """Result of one merge attempt."""
    success: bool
    target: int
    source: int
    reason: str = ""
    transferred: List[int] = field(default_factory=list)

    def __bool__(self) -> bool:
        return self.success


def _candidate_edges(context: DiagramContext, target_members: Set[int],
                     source_members: Set[int]) -> Iterator[Tuple[int, int]]:
    """Delaunay half-edges joining the two territories, each undirected edge once."""
    triangles = context.triangulation.triangles
    halfedges = context.triangulation.halfedges
    seen: Set[int] = set()
    for edge in range(len(triangles)):
        if edge in seen:
            continue
        start = int(triangles[edge])
        end = int(triangles[next_halfedge(edge)])
        if ((start in target_members and end in source_members)
                or (start in source_members and end in target_members)):
            twin = int(halfedges[edge])
            seen.add(edge)
            if twin != HULL:
                seen.add(twin)
            yield edge, twin


def find_shared_voronoi_vertices(context: DiagramContext, edge: int,
                                 twin: int) -> Optional[Tuple[Point, Point]]:
    """
    Endpoints of the Voronoi edge dual to a Delaunay edge.

    Returns:
        The two circumcenters, or None when the edge is on the hull, either
        circumcenter is undefined, or they coincide
    """
    if twin == HULL:
        return None
    first = context.circumcenter_of(edge // 3)
    second = context.circumcenter_of(twin // 3)
    if first is None or second is None:
        return None
    if squared_distance(first, second) <= context.epsilon * context.epsilon:
        return None
    return first, second


def _splice(target_poly: List[Point], source_poly: List[Point], shared: Tuple[Point, Point],
            epsilon: float) -> Tuple[Optional[List[Point]], str]:
    vertex_a, vertex_b = shared
    n1, n2 = len(target_poly), len(source_poly)

    idx1a = find_vertex_index(target_poly, vertex_a, epsilon)
    idx1b = find_vertex_index(target_poly, vertex_b, epsilon)
    idx2a = find_vertex_index(source_poly, vertex_a, epsilon)
    idx2b = find_vertex_index(source_poly, vertex_b, epsilon)
    if min(idx1a, idx1b, idx2a, idx2b) < 0:
        return None, (f"shared vertices not found in polygons "
                      f"(target {idx1a},{idx1b} source {idx2a},{idx2b})")

    target_a_to_b = looped_index(idx1a + 1, n1) == idx1b
    target_b_to_a = looped_index(idx1b + 1, n1) == idx1a
    source_a_to_b = looped_index(idx2a + 1, n2) == idx2b
    source_b_to_a = looped_index(idx2b + 1, n2) == idx2a

    if target_b_to_a and source_a_to_b:
        idx1a, idx1b = idx1b, idx1a
        idx2a, idx2b = idx2b, idx2a
    elif not (target_a_to_b and source_b_to_a):
        return None, "shared edge is not traversed in opposite directions"

    # Target runs A -> B along the shared edge: take B round to A
    merged: List[Point] = []
    current = idx1b
    for _ in range(n1):
        merged.append(target_poly[current])
        if current == idx1a:
            break
        current = looped_index(current + 1, n1)

    # Source runs B -> A: take everything strictly after A up to B
    eps2 = epsilon * epsilon
    current = looped_index(idx2a + 1, n2)
    for _ in range(n2):
        if current == idx2b:
            break
        vertex = source_poly[current]
        if squared_distance(merged[-1], vertex) > eps2:
            merged.append(vertex)
        current = looped_index(current + 1, n2)

    ring = remove_spikes(clean_polygon(merged, epsilon), epsilon)
    if len(ring) < 3:
        return None, f"merged polygon degenerate ({len(ring)} vertices)"
    return ring, ""


def _repair_adjacency(cells: VoronoiCells, target: int, source: int) -> List[int]:
    adjacency = cells.adjacency
    target_neighbors = adjacency[target]
    source_neighbors = adjacency.pop(source)

    if source in target_neighbors:
        target_neighbors.remove(source)

    transferred = []
    for neighbor in source_neighbors:
        if neighbor == target:
            continue
        if neighbor not in target_neighbors:
            target_neighbors.append(neighbor)
            transferred.append(neighbor)
        neighbor_list = adjacency.get(neighbor)
        if neighbor_list is None:
            continue
        if target in neighbor_list:
            if source in neighbor_list:
                neighbor_list.remove(source)
        elif source in neighbor_list:
            neighbor_list[neighbor_list.index(source)] = target
        else:
            neighbor_list.append(target)
    return transferred


def merge_cells(cells: VoronoiCells, context: DiagramContext, target: int, source: int) -> MergeOutcome:
    """
    Fold the source cell into the target cell.

    Mutates ``cells`` in place on success and leaves it untouched on failure.
    The triangulation in ``context`` is only read.

    Args:
        cells: Cell polygons, adjacency and territory members of this pass
        context: Triangulation and circumcenters the cells were built from
        target: Point index of the surviving site
        source: Point index of the site being absorbed

    Returns:
        MergeOutcome describing success or the reason for failure
    """
    def fail(reason: str) -> MergeOutcome:
        logger.warning("Merge failed", target=target, source=source, reason=reason)
        return MergeOutcome(False, target, source, reason)

    if target == source:
        return fail("cannot merge a site with itself")

    target_poly = cells.polygons.get(target)
    source_poly = cells.polygons.get(source)
    if target_poly is None or len(target_poly) < 3:
        return fail("target has no valid polygon")
    if source_poly is None or len(source_poly) < 3:
        return fail("source has no valid polygon (already merged?)")
    if target not in cells.adjacency or source not in cells.adjacency:
        return fail("target or source has no adjacency entry")

    target_members = set(cells.members.get(target, [target]))
    source_members = set(cells.members.get(source, [source]))

    reason = "sites are not adjacent in the Delaunay triangulation"
    for edge, twin in _candidate_edges(context, target_members, source_members):
        shared = find_shared_voronoi_vertices(context, edge, twin)
        if shared is None:
            reason = "shared Voronoi edge is not fully resolved"
            continue
        ring, splice_reason = _splice(target_poly, source_poly, shared, context.epsilon)
        if ring is None:
            reason = splice_reason
            continue

        cells.polygons[target] = order_vertices_clockwise(ring)
        del cells.polygons[source]
        transferred = _repair_adjacency(cells, target, source)
        cells.members.setdefault(target, [target]).extend(
            cells.members.pop(source, [source])
        )
        logger.info("Cells merged", target=target, source=source,
                    vertices=len(cells.polygons[target]), transferred=transferred)
        return MergeOutcome(True, target, source, transferred=transferred)

    return fail(reason)
