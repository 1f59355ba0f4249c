"""
Site bookkeeping for one generation pass.

Every point handed to the triangulation is tagged as a real site (carrying
the caller's identity) or a padding point from the moment it is added.
Coordinate lookups go through a quantized spatial hash so that positions
recomputed in floating point still find their site.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Hashable, Iterable, List, Optional, Tuple

import numpy as np
import structlog

from .geometry import EPSILON, Point

logger = structlog.get_logger()

SiteId = Hashable


class SiteKind(str, Enum):
    """Whether a triangulation point is a real site or part of the padding ring."""
    REAL = "real"
    PADDING = "padding"


@dataclass(frozen=True)
class SiteRecord:
    """One point of the combined triangulation input."""
    index: int
    position: Point
    kind: SiteKind
    site_id: Optional[SiteId] = None

    @property
    def is_real(self) -> bool:
        return self.kind is SiteKind.REAL


class SpatialHash:
    """Epsilon-aware point lookup keyed by quantized coordinates."""

    def __init__(self, epsilon: float = EPSILON):
        self.epsilon = epsilon
        self._buckets: Dict[Tuple[int, int], List[Tuple[Point, int]]] = {}

    def _key(self, point: Point) -> Tuple[int, int]:
        return (math.floor(point[0] / self.epsilon), math.floor(point[1] / self.epsilon))

    def find(self, point: Point) -> Optional[int]:
        """Value of the nearest stored point within epsilon, or None."""
        kx, ky = self._key(point)
        eps2 = self.epsilon * self.epsilon
        best = None
        best_dist = eps2
        for dx in (-1, 0, 1):
            for dy in (-1, 0, 1):
                for stored, value in self._buckets.get((kx + dx, ky + dy), ()):
                    dist = (stored[0] - point[0]) ** 2 + (stored[1] - point[1]) ** 2
                    if dist < best_dist:
                        best_dist = dist
                        best = value
        return best

    def insert(self, point: Point, value: int) -> None:
        self._buckets.setdefault(self._key(point), []).append((point, value))

    def __len__(self) -> int:
        return sum(len(bucket) for bucket in self._buckets.values())


@dataclass
class SiteIndex:
    """Bidirectional mapping between sites, coordinates and point indices."""
    records: List[SiteRecord] = field(default_factory=list)
    real_count: int = 0
    duplicates: List[Tuple[SiteId, SiteId]] = field(default_factory=list)
    epsilon: float = EPSILON

    def __post_init__(self):
        self._positions = SpatialHash(self.epsilon)
        self._by_site: Dict[SiteId, int] = {}

    @classmethod
    def build(cls, real_sites: Iterable[Tuple[SiteId, Point]], padding: np.ndarray,
              epsilon: float = EPSILON) -> "SiteIndex":
        """
        Index real sites first, then padding points.

        A real site whose coordinate is already taken by an earlier real
        site is recorded in ``duplicates`` and gets no point. A padding
        point landing on an existing coordinate still gets its own index,
        but coordinate lookups keep resolving to the earlier (real) index.
        """
        index = cls(epsilon=epsilon)
        for site_id, position in real_sites:
            position = (float(position[0]), float(position[1]))
            existing = index._positions.find(position)
            if existing is not None:
                owner = index.records[existing].site_id
                index.duplicates.append((site_id, owner))
                logger.warning("Duplicate site position", site=site_id, kept=owner, position=position)
                continue
            index._append(position, SiteKind.REAL, site_id)
        index.real_count = len(index.records)

        for x, y in np.asarray(padding, dtype=np.float64).reshape(-1, 2):
            position = (float(x), float(y))
            if index._positions.find(position) is not None:
                logger.info("Padding point collides with an existing site", position=position)
                record = SiteRecord(len(index.records), position, SiteKind.PADDING)
                index.records.append(record)
                continue
            index._append(position, SiteKind.PADDING, None)
        return index

    def _append(self, position: Point, kind: SiteKind, site_id: Optional[SiteId]) -> None:
        record = SiteRecord(len(self.records), position, kind, site_id)
        self.records.append(record)
        self._positions.insert(position, record.index)
        if site_id is not None:
            self._by_site[site_id] = record.index

    @property
    def points(self) -> np.ndarray:
        """(n, 2) array in triangulation order."""
        if not self.records:
            return np.empty((0, 2), dtype=np.float64)
        return np.array([record.position for record in self.records], dtype=np.float64)

    def __len__(self) -> int:
        return len(self.records)

    def __getitem__(self, index: int) -> SiteRecord:
        return self.records[index]

    def is_real(self, index: int) -> bool:
        return self.records[index].is_real

    def index_at(self, point: Point) -> Optional[int]:
        """Point index at a coordinate (real sites win over padding)."""
        return self._positions.find((float(point[0]), float(point[1])))

    def index_of(self, site_id: SiteId) -> Optional[int]:
        return self._by_site.get(site_id)

    def site_id(self, index: int) -> Optional[SiteId]:
        return self.records[index].site_id

    def real_records(self) -> List[SiteRecord]:
        return self.records[:self.real_count]
