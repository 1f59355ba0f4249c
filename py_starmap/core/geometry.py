"""Planar geometry helpers shared by the Voronoi overlay modules."""

import math
from typing import List, Optional, Sequence, Tuple

import numpy as np
import structlog

from ..config.overlay import Bounds

logger = structlog.get_logger()

Point = Tuple[float, float]

EPSILON = 1e-6
CONVEXITY_TOLERANCE = 1e-5


def looped_index(index: int, size: int) -> int:
    """Wrap ``index`` into ``[0, size)``, negative indices included."""
    if size <= 0:
        return 0
    return index % size


def circumcenter(a: Sequence[float], b: Sequence[float], c: Sequence[float],
                 epsilon: float = EPSILON) -> Optional[Point]:
    """
    Circumcenter of triangle ``abc``.

    Args:
        a, b, c: Triangle corners as (x, y)
        epsilon: Collinearity tolerance; the denominator is compared to epsilon**2

    Returns:
        (x, y) of the circumcenter, or None for collinear or non-finite input
    """
    ax, ay = float(a[0]), float(a[1])
    bx, by = float(b[0]), float(b[1])
    cx, cy = float(c[0]), float(c[1])

    d = 2.0 * (ax * (by - cy) + bx * (cy - ay) + cx * (ay - by))
    if abs(d) < epsilon * epsilon:
        return None

    a2 = ax * ax + ay * ay
    b2 = bx * bx + by * by
    c2 = cx * cx + cy * cy
    ux = (a2 * (by - cy) + b2 * (cy - ay) + c2 * (ay - by)) / d
    uy = (a2 * (cx - bx) + b2 * (ax - cx) + c2 * (bx - ax)) / d

    if not (math.isfinite(ux) and math.isfinite(uy)):
        logger.warning("Circumcenter is not finite", a=(ax, ay), b=(bx, by), c=(cx, cy), denominator=d)
        return None
    return (ux, uy)


def compute_circumcenters(points: np.ndarray, triangles: np.ndarray,
                          bounds: Optional[Bounds] = None,
                          epsilon: float = EPSILON) -> Tuple[np.ndarray, np.ndarray]:
    """
    Circumcenters of every triangle in a flat triangle index array.

    Args:
        points: (n, 2) array of point coordinates
        triangles: Flat array of point indices, three per triangle
        bounds: Optional validity rectangle; centers outside it are invalid
        epsilon: Collinearity tolerance

    Returns:
        Tuple of ((t, 2) centers, (t,) validity mask)
    """
    tri = np.asarray(triangles, dtype=np.int64).reshape(-1, 3)
    pts = np.asarray(points, dtype=np.float64)

    a = pts[tri[:, 0]]
    b = pts[tri[:, 1]]
    c = pts[tri[:, 2]]
    ax, ay = a[:, 0], a[:, 1]
    bx, by = b[:, 0], b[:, 1]
    cx, cy = c[:, 0], c[:, 1]

    d = 2.0 * (ax * (by - cy) + bx * (cy - ay) + cx * (ay - by))
    a2 = ax * ax + ay * ay
    b2 = bx * bx + by * by
    c2 = cx * cx + cy * cy

    with np.errstate(divide="ignore", invalid="ignore"):
        ux = (a2 * (by - cy) + b2 * (cy - ay) + c2 * (ay - by)) / d
        uy = (a2 * (cx - bx) + b2 * (ax - cx) + c2 * (bx - ax)) / d

    centers = np.column_stack([ux, uy])
    valid = (np.abs(d) >= epsilon * epsilon) & np.isfinite(ux) & np.isfinite(uy)

    if bounds is not None:
        inside = ((ux >= bounds.x_min) & (ux <= bounds.x_max) &
                  (uy >= bounds.y_min) & (uy <= bounds.y_max))
        out_of_bounds = int(np.count_nonzero(valid & ~inside))
        if out_of_bounds:
            logger.info("Circumcenters outside validity bounds discarded",
                        count=out_of_bounds, bounds=bounds.model_dump())
        valid &= inside

    return centers, valid


def signed_area(polygon: Sequence[Point]) -> float:
    """Shoelace signed area; positive for counter-clockwise winding."""
    n = len(polygon)
    if n < 3:
        return 0.0
    area = 0.0
    for i in range(n):
        x1, y1 = polygon[i]
        x2, y2 = polygon[(i + 1) % n]
        area += x1 * y2 - x2 * y1
    return area / 2.0


def order_vertices_clockwise(vertices: Sequence[Point]) -> List[Point]:
    """Return the vertices in clockwise order (non-positive signed area)."""
    ordered = list(vertices)
    if len(ordered) >= 3 and signed_area(ordered) > 0:
        ordered.reverse()
    return ordered


def squared_distance(p: Point, q: Point) -> float:
    dx = p[0] - q[0]
    dy = p[1] - q[1]
    return dx * dx + dy * dy


def clean_polygon(vertices: Sequence[Point], epsilon: float = EPSILON) -> List[Point]:
    """Drop consecutive near-duplicates and a repeated closing vertex."""
    if len(vertices) < 2:
        return list(vertices)

    eps2 = epsilon * epsilon
    cleaned = [vertices[0]]
    for vertex in vertices[1:]:
        if squared_distance(vertex, cleaned[-1]) > eps2:
            cleaned.append(vertex)

    if len(cleaned) > 1 and squared_distance(cleaned[-1], cleaned[0]) < eps2:
        cleaned.pop()
    return cleaned


def remove_spikes(ring: Sequence[Point], epsilon: float = EPSILON) -> List[Point]:
    """
    Collapse cyclic ``A, B, A`` excursions in a closed ring.

    Splicing two polygons along one edge of a longer shared boundary leaves
    the rest of that boundary traversed out and back; repeatedly removing
    the tip and the returning vertex folds it away.
    """
    eps2 = epsilon * epsilon
    result = clean_polygon(ring, epsilon)
    changed = True
    while changed and len(result) >= 3:
        changed = False
        n = len(result)
        for i in range(n):
            prev = result[(i - 1) % n]
            nxt = result[(i + 1) % n]
            if squared_distance(prev, nxt) < eps2:
                # Drop the tip and the duplicate that follows it
                drop = {i, (i + 1) % n}
                result = [v for j, v in enumerate(result) if j not in drop]
                result = clean_polygon(result, epsilon)
                changed = True
                break
    return result


def find_vertex_index(polygon: Sequence[Point], vertex: Point, epsilon: float = EPSILON) -> int:
    """Index of the vertex nearest to ``vertex`` within epsilon, or -1."""
    best_index = -1
    best = epsilon * epsilon
    for i, candidate in enumerate(polygon):
        dist = squared_distance(candidate, vertex)
        if dist < best:
            best = dist
            best_index = i
            if dist < 1e-24:
                break
    return best_index


def is_vertex_convex(prev: Point, curr: Point, nxt: Point, clockwise: bool,
                     tolerance: float = CONVEXITY_TOLERANCE) -> bool:
    """Convexity of ``curr`` for a polygon of the given winding."""
    cross = (curr[0] - prev[0]) * (nxt[1] - curr[1]) - (curr[1] - prev[1]) * (nxt[0] - curr[0])
    if clockwise:
        return cross <= tolerance
    return cross >= -tolerance


def is_point_in_triangle(p: Point, a: Point, b: Point, c: Point,
                         allow_on_edge: bool = False, epsilon: float = EPSILON) -> bool:
    """Barycentric point-in-triangle test; strict unless ``allow_on_edge``."""
    v0 = (c[0] - a[0], c[1] - a[1])
    v1 = (b[0] - a[0], b[1] - a[1])
    v2 = (p[0] - a[0], p[1] - a[1])

    dot00 = v0[0] * v0[0] + v0[1] * v0[1]
    dot01 = v0[0] * v1[0] + v0[1] * v1[1]
    dot02 = v0[0] * v2[0] + v0[1] * v2[1]
    dot11 = v1[0] * v1[0] + v1[1] * v1[1]
    dot12 = v1[0] * v2[0] + v1[1] * v2[1]

    denominator = dot00 * dot11 - dot01 * dot01
    if abs(denominator) < epsilon * epsilon:
        return False

    u = (dot11 * dot02 - dot01 * dot12) / denominator
    v = (dot00 * dot12 - dot01 * dot02) / denominator

    lower = -epsilon if allow_on_edge else epsilon
    upper = 1.0 + epsilon if allow_on_edge else 1.0 - epsilon
    return u >= lower and v >= lower and u + v <= upper


def polygon_centroid(vertices: Sequence[Point]) -> Point:
    """Area centroid of a polygon; vertex mean for degenerate input.

    Args:
        vertices: Polygon ring as (x, y) pairs

    Returns:
        (x, y) centroid coordinates
    """
    pts = np.asarray(vertices, dtype=np.float64)
    if len(pts) == 0:
        return (0.0, 0.0)
    if len(pts) < 3:
        mean = pts.mean(axis=0)
        return (float(mean[0]), float(mean[1]))

    x, y = pts[:, 0], pts[:, 1]
    xn, yn = np.roll(x, -1), np.roll(y, -1)
    cross = x * yn - xn * y
    area = cross.sum() * 0.5

    if abs(area) < 1e-10:
        mean = pts.mean(axis=0)
        return (float(mean[0]), float(mean[1]))

    cx = ((x + xn) * cross).sum() / (6.0 * area)
    cy = ((y + yn) * cross).sum() / (6.0 * area)
    return (float(cx), float(cy))
