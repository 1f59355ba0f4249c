"""Ear-clipping triangulation of simple region polygons."""

from typing import List, Optional, Sequence

import structlog

from .geometry import (
    CONVEXITY_TOLERANCE, EPSILON, Point, is_point_in_triangle,
    is_vertex_convex, looped_index, signed_area,
)

logger = structlog.get_logger()


def triangulate_ear_clipping(polygon: Sequence[Point], max_iterations: Optional[int] = None,
                             epsilon: float = EPSILON, verbose: bool = False) -> Optional[List[int]]:
    """
    Triangulate a simple polygon by repeatedly clipping ears.

    A vertex is an ear when it is convex for the polygon's winding and the
    triangle it forms with its neighbours contains no other remaining
    vertex. Each clipped ear is emitted as ``(prev, curr, next)`` indices
    into ``polygon``; the last three vertices form the final triangle.

    Args:
        polygon: Ring of vertices without a repeated closing vertex
        max_iterations: Cap on consecutive non-productive steps; defaults
            to ``2 * n * n + 100``
        epsilon: Tolerance of the point-in-triangle test
        verbose: Log the failing polygon on error

    Returns:
        Flat list of ``3 * (n - 2)`` vertex indices, or None on failure
    """
    n = len(polygon)
    if n < 3:
        return None
    if n == 3:
        return [0, 1, 2]

    area = signed_area(polygon)
    clockwise = area < 0
    if area == 0 and verbose:
        logger.warning("Polygon area is zero, vertices may be collinear", vertices=n)

    active = list(range(n))
    triangles: List[int] = []
    cap = max_iterations or 2 * n * n + 100
    stalled = 0
    current = 0

    while len(active) > 3 and stalled < cap:
        stalled += 1
        count = len(active)
        prev_slot = looped_index(current - 1, count)
        next_slot = looped_index(current + 1, count)
        prev_index, curr_index, next_index = active[prev_slot], active[current], active[next_slot]
        a, b, c = polygon[prev_index], polygon[curr_index], polygon[next_index]

        if is_vertex_convex(a, b, c, clockwise, CONVEXITY_TOLERANCE):
            is_ear = True
            for slot, other in enumerate(active):
                if slot in (prev_slot, current, next_slot):
                    continue
                if is_point_in_triangle(polygon[other], a, b, c, allow_on_edge=False, epsilon=epsilon):
                    is_ear = False
                    break

            if is_ear:
                triangles.extend((prev_index, curr_index, next_index))
                del active[current]
                current = current % len(active)
                stalled = 0
                continue

        current = (current + 1) % count

    if len(active) == 3:
        triangles.extend(active)
        return triangles

    logger.error("Ear clipping failed", cap=cap, remaining=len(active), vertices=n)
    if verbose:
        logger.debug("Failed polygon", polygon=list(polygon))
    return None
