"""Random merge plans for exercising territory merging."""

from typing import Dict, List, Optional, Sequence, Set, Tuple

import numpy as np
import structlog

from .site_index import SiteId

logger = structlog.get_logger()


def plan_neighbor_merges(adjacency: Dict[SiteId, Sequence[SiteId]], central_count: int = 3,
                         neighbors_per_center: int = 5,
                         seed: Optional[int] = None) -> List[Tuple[SiteId, SiteId]]:
    """
    Pick random central sites and merge up to N of their neighbours into each.

    A site is used at most once, either as a center or as an absorbed
    neighbour, so the resulting pairs can be queued in order.

    Args:
        adjacency: Site to neighbouring sites, e.g. ``TerritoryOverlay.adjacency``
        central_count: Number of merge groups to create
        neighbors_per_center: Maximum neighbours folded into each center
        seed: Seed for the numpy random generator

    Returns:
        List of (target, source) merge requests
    """
    if central_count <= 0 or neighbors_per_center <= 0:
        return []
    if len(adjacency) < 2:
        logger.warning("Not enough sites to plan merges", sites=len(adjacency))
        return []

    rng = np.random.default_rng(seed)
    available = list(adjacency.keys())
    used: Set[SiteId] = set()
    plan: List[Tuple[SiteId, SiteId]] = []
    groups = 0

    while groups < central_count and available:
        center = available.pop(int(rng.integers(len(available))))
        if center in used:
            continue
        used.add(center)

        chosen = [n for n in adjacency.get(center, ()) if n != center and n not in used]
        chosen = chosen[:neighbors_per_center]
        for neighbor in chosen:
            used.add(neighbor)
            plan.append((center, neighbor))

        groups += 1
        logger.info("Merge group planned", center=center, neighbors=len(chosen))

    return plan
