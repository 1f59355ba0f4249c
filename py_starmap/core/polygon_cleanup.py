"""
Cleanup of raw region outlines before triangulation.

The pipeline runs in a fixed order:
- Backtrack filtering (A -> B -> A excursions)
- Close-point filtering against the last kept vertex
- Loop finalization (closed or open path)
- Optional Chaikin corner smoothing
"""

import math
from dataclasses import dataclass
from typing import List, Optional, Sequence

import structlog

from .geometry import Point

logger = structlog.get_logger()

DEFAULT_CLOSING_DISTANCE = 0.5


@dataclass
class CleanedPolygon:
    """Vertices after loop finalization and whether they form a closed loop."""
    vertices: List[Point]
    is_closed: bool

    def as_ring(self) -> List[Point]:
        """Vertices without the repeated closing vertex of a closed loop."""
        if self.is_closed and len(self.vertices) > 1 and self.vertices[0] == self.vertices[-1]:
            return list(self.vertices[:-1])
        return list(self.vertices)


@dataclass
class CleanupOptions:
    """Thresholds for one run of the cleanup pipeline."""
    min_vertex_distance: float = 0.1
    closing_distance: float = DEFAULT_CLOSING_DISTANCE
    smoothing: bool = True
    chaikin_iterations: int = 3
    chaikin_ratio: float = 0.25


def _distance(p: Point, q: Point) -> float:
    return math.hypot(p[0] - q[0], p[1] - q[1])


def filter_backtracks(vertices: Sequence[Point], verbose: bool = False) -> List[Point]:
    """
    Remove immediate backtracks.

    For a pattern ``A, B, A`` the first A is kept, B and the returning A are
    dropped and scanning resumes after them.
    """
    if len(vertices) < 3:
        return list(vertices)

    filtered = []
    i = 0
    n = len(vertices)
    while i < n:
        if i + 2 < n and vertices[i] == vertices[i + 2]:
            filtered.append(vertices[i])
            if verbose:
                logger.debug("Backtrack removed", index=i, kept=vertices[i], dropped=vertices[i + 1])
            i += 3
        else:
            filtered.append(vertices[i])
            i += 1
    return filtered


def filter_close_points(vertices: Sequence[Point], min_distance: float,
                        verbose: bool = False) -> List[Point]:
    """Keep a vertex only if it is at least ``min_distance`` from the last kept one."""
    if len(vertices) < 2 or min_distance <= 0:
        return list(vertices)

    filtered = [vertices[0]]
    for i in range(1, len(vertices)):
        dist = _distance(vertices[i], filtered[-1])
        if dist >= min_distance:
            filtered.append(vertices[i])
        elif verbose:
            logger.debug("Close point removed", index=i, distance=dist, threshold=min_distance)
    return filtered


def finalize_loop(vertices: Sequence[Point], closing_distance: float = DEFAULT_CLOSING_DISTANCE,
                  verbose: bool = False) -> CleanedPolygon:
    """
    Decide whether a vertex path is a closed loop.

    - ``v[1] == v[-1]`` and ``v[0] != v[1]``: v[0] is a stray lead-in and is dropped
    - ``v[0] == v[-1]``: already closed
    - ``v[0]`` within ``closing_distance`` of ``v[-1]``: last vertex snapped onto the first
    - otherwise an open path
    """
    if len(vertices) < 3:
        if verbose:
            logger.debug("Too few vertices to close a loop", count=len(vertices))
        return CleanedPolygon(list(vertices), False)

    first, second, last = vertices[0], vertices[1], vertices[-1]

    if second == last and first != second:
        if verbose:
            logger.debug("Stray first vertex dropped", vertex=first)
        return CleanedPolygon(list(vertices[1:]), True)

    if first == last:
        return CleanedPolygon(list(vertices), True)

    if _distance(first, last) < closing_distance:
        closed = list(vertices)
        closed[-1] = first
        if verbose:
            logger.debug("Loop closed by snapping", first=first, last=last)
        return CleanedPolygon(closed, True)

    if verbose:
        logger.debug("Path left open", first=first, last=last)
    return CleanedPolygon(list(vertices), False)


def _lerp(p0: Point, p1: Point, t: float) -> Point:
    return (p0[0] + (p1[0] - p0[0]) * t, p0[1] + (p1[1] - p0[1]) * t)


def chaikin_smooth(points: Sequence[Point], iterations: int = 1, ratio: float = 0.25,
                   closed: bool = False) -> List[Point]:
    """
    Smooth a path with Chaikin's corner cutting.

    Each edge (P0, P1) is replaced by the points at ``ratio`` and
    ``1 - ratio`` along it. Closed paths wrap around; open paths keep
    their first and last points.
    """
    if len(points) < 2 or iterations < 1:
        return list(points)

    current = list(points)
    for _ in range(iterations):
        n = len(current)
        if n < 2 or (closed and n < 3):
            break

        smoothed: List[Point] = []
        if closed:
            for i in range(n):
                p0, p1 = current[i], current[(i + 1) % n]
                smoothed.append(_lerp(p0, p1, ratio))
                smoothed.append(_lerp(p0, p1, 1.0 - ratio))
        else:
            smoothed.append(current[0])
            for i in range(n - 1):
                p0, p1 = current[i], current[i + 1]
                smoothed.append(_lerp(p0, p1, ratio))
                smoothed.append(_lerp(p0, p1, 1.0 - ratio))
            smoothed.append(current[-1])
        current = smoothed
    return current


def clean_region(vertices: Sequence[Point], options: CleanupOptions,
                 verbose: bool = False, closed: bool = False) -> Optional[CleanedPolygon]:
    """
    Run the full pipeline on one region outline.

    Args:
        vertices: Raw outline
        options: Cleanup thresholds
        verbose: Log every dropped vertex
        closed: Treat ``vertices`` as a ring even when the first vertex is
            not repeated at the end, as in the output of an earlier run

    Returns:
        The finalized (and possibly smoothed) outline in ring form, or None
        when fewer than 3 vertices survive close-point filtering
    """
    if closed and len(vertices) > 0 and vertices[0] != vertices[-1]:
        vertices = list(vertices) + [vertices[0]]

    no_backtracks = filter_backtracks(vertices, verbose)
    spaced = filter_close_points(no_backtracks, options.min_vertex_distance, verbose)
    if len(spaced) < 3:
        return None

    finalized = finalize_loop(spaced, options.closing_distance, verbose)
    ring = finalized.as_ring()

    if options.smoothing and len(ring) >= 2:
        ring = chaikin_smooth(ring, options.chaikin_iterations, options.chaikin_ratio,
                              finalized.is_closed)
    return CleanedPolygon(ring, finalized.is_closed)
