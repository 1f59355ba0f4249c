"""Padding ring generation for bounding the Voronoi diagram."""

from typing import Tuple

import numpy as np
import structlog

logger = structlog.get_logger()


def padding_radius(points: np.ndarray, offset: float) -> float:
    """
    Radius of a ring around the origin that strictly encloses every point.

    Args:
        points: (n, 2) array of real site coordinates
        offset: Distance to add beyond the furthest site

    Returns:
        Max distance of any point from the origin plus ``offset``
    """
    pts = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    if len(pts) == 0:
        return float(offset)
    max_radius = float(np.sqrt((pts ** 2).sum(axis=1)).max())
    return max_radius + float(offset)


def inscribed_radius(radius: float, count: int) -> float:
    """Distance from the center to the nearest point of the ring polygon's edges."""
    if count < 3:
        return 0.0
    return float(radius * np.cos(np.pi / count))


def generate_padding_points(center: Tuple[float, float], radius: float, count: int) -> np.ndarray:
    """
    Generate points evenly spaced on a circle.

    Adds points around the sites to prevent infinite Voronoi cells.

    Args:
        center: Ring center (x, y)
        radius: Ring radius
        count: Number of points

    Returns:
        (count, 2) array of coordinates, or an empty (0, 2) array when
        radius or count is not positive
    """
    if radius <= 0 or count <= 0:
        logger.warning("Padding ring not generated", radius=radius, count=count)
        return np.empty((0, 2), dtype=np.float64)

    angles = np.arange(count, dtype=np.float64) * (2.0 * np.pi / count)
    cx, cy = center
    return np.column_stack([cx + radius * np.cos(angles), cy + radius * np.sin(angles)])
