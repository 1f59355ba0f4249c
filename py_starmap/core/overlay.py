"""
Territory overlay controller.

This module handles:
- Building the bounded Voronoi diagram of the active sites
- Queuing merge requests and applying them at the next regeneration
- Replaying applied merges so territories persist across passes
- Cleaning and triangulating the final region of every surviving site
- Lookups against the last completed pass
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

import numpy as np
import structlog
from pydantic import ValidationError

from ..config.overlay import OverlayConfig
from .ear_clipping import triangulate_ear_clipping
from .errors import ConfigurationError, StarmapError
from .geometry import Point, compute_circumcenters, polygon_centroid, signed_area
from .merge import merge_cells
from .padding import generate_padding_points, inscribed_radius, padding_radius
from .polygon_cleanup import CleanupOptions, clean_region
from .site_index import SiteId, SiteIndex
from .triangulation import TriangulationProvider, delaunay_triangulation
from .voronoi_cells import DiagramContext, VoronoiCells, build_voronoi_cells

logger = structlog.get_logger()

MergeRequest = Tuple[SiteId, SiteId]


@dataclass
class Region:
    """Final outline of one territory, ready for rendering."""

    site_id: SiteId
    polygon: List[Point]
    is_closed: bool
    triangle_indices: List[int]
    members: List[SiteId] = field(default_factory=list)

    @property
    def area(self) -> float:
        """Unsigned shoelace area of the outline."""
        return abs(signed_area(self.polygon))

    @property
    def centroid(self) -> Point:
        return polygon_centroid(self.polygon)


@dataclass
class MergeFailure:
    """A merge request that could not be applied in a pass."""

    target: SiteId
    source: SiteId
    reason: str


@dataclass
class GenerationReport:
    """Degenerate cases recovered from during one pass."""

    site_count: int = 0
    region_count: int = 0
    duplicate_sites: List[Tuple[SiteId, SiteId]] = field(default_factory=list)
    skipped_regions: List[SiteId] = field(default_factory=list)
    applied_merges: List[MergeRequest] = field(default_factory=list)
    failed_merges: List[MergeFailure] = field(default_factory=list)
    triangulation_failures: List[SiteId] = field(default_factory=list)

    @property
    def clean(self) -> bool:
        return not (self.duplicate_sites or self.skipped_regions
                    or self.failed_merges or self.triangulation_failures)


class TerritoryOverlay:
    """
    Voronoi territory map over a set of sites with runtime merging.

    Every regeneration rebuilds the whole diagram. Merge requests queued
    with ``queue_merge`` are applied at the start of the next regeneration
    and then kept in the merge history, which is replayed on every later
    pass until ``clear`` is called.
    """

    def __init__(self, config: Union[OverlayConfig, Mapping[str, Any], None] = None,
                 triangulator: TriangulationProvider = delaunay_triangulation):
        """
        Initialize the overlay.

        Args:
            config: OverlayConfig or a mapping of its fields; defaults when None
            triangulator: Provider turning an (n, 2) point array into a half-edge triangulation

        Raises:
            ConfigurationError: invalid configuration values
        """
        if config is None:
            config = OverlayConfig()
        elif not isinstance(config, OverlayConfig):
            try:
                config = OverlayConfig(**dict(config))
            except ValidationError as exc:
                raise ConfigurationError(f"Invalid overlay configuration: {exc}") from exc

        self.config = config
        self.triangulator = triangulator

        self._pending: List[MergeRequest] = []
        self._history: List[MergeRequest] = []
        self._last_sites: Optional[Dict[SiteId, Point]] = None
        self._reset_pass()

    def _reset_pass(self):
        self._regions: Dict[SiteId, Region] = {}
        self._sites: Optional[SiteIndex] = None
        self._cells: Optional[VoronoiCells] = None
        self._territory_of: Dict[SiteId, SiteId] = {}
        self.report = GenerationReport()

    @property
    def pending_merges(self) -> List[MergeRequest]:
        return list(self._pending)

    @property
    def merge_history(self) -> List[MergeRequest]:
        return list(self._history)

    @property
    def regions(self) -> Dict[SiteId, Region]:
        return dict(self._regions)

    # Merge queue

    def queue_merge(self, target: Optional[SiteId], source: Optional[SiteId]) -> bool:
        """
        Queue folding ``source``'s region into ``target``'s at the next regeneration.

        Returns:
            False without queuing for a missing site, a self merge or a
            pair that is already pending
        """
        if target is None or source is None:
            logger.error("Invalid merge request, target or source is None", target=target, source=source)
            return False
        if target == source:
            logger.error("Invalid merge request, cannot merge a site into itself", site=target)
            return False
        if (target, source) in self._pending:
            logger.warning("Merge request already queued", target=target, source=source)
            return False

        if self._cells is not None and self._sites is not None:
            neighbors = self.neighbors_of(target)
            if source not in neighbors and self._territory_of.get(source, source) not in neighbors:
                logger.info("Merge request between sites that were not adjacent in the last pass",
                            target=target, source=source)

        self._pending.append((target, source))
        if self.config.verbose:
            logger.debug("Merge request queued", target=target, source=source, pending=len(self._pending))
        return True

    def clear_merges(self) -> None:
        """Drop all pending merge requests."""
        count = len(self._pending)
        self._pending.clear()
        if count:
            logger.info("Pending merge requests cleared", count=count)

    def clear(self) -> None:
        """Drop the last pass, pending merges, merge history and the stored site set."""
        self._pending.clear()
        self._history.clear()
        self._last_sites = None
        self._reset_pass()
        logger.info("Territory overlay cleared")

    # Generation

    def apply_merges_and_regenerate(self, sites: Mapping[SiteId, Point]) -> Dict[SiteId, Region]:
        """
        Rebuild the overlay for ``sites`` and apply all queued merges.

        Args:
            sites: Mapping of site identity to (x, y) position; iteration
                order fixes the processing order

        Returns:
            Mapping of each surviving site to its final Region

        Raises:
            ConfigurationError: empty or non-finite input, or a padding ring
                that does not enclose every site, before any state changes
            TriangulationError: the provider failed; the overlay is cleared
            StructuralError: malformed triangulation; the overlay is cleared
        """
        active = self._validate_sites(sites)
        self._check_padding(active)

        pending = self._pending
        self._pending = []
        requests = self._history + pending

        logger.info("Regenerating territory overlay", sites=len(active),
                    replayed_merges=len(self._history), new_merges=len(pending))
        try:
            self._generate(active, requests)
        except StarmapError:
            logger.error("Territory overlay generation failed, overlay cleared", sites=len(active))
            self.clear()
            raise

        self._last_sites = active
        return dict(self._regions)

    def regenerate(self, sites: Optional[Mapping[SiteId, Point]] = None) -> Dict[SiteId, Region]:
        """
        Rebuild without applying newly queued merges.

        Pending merges are dropped first. Reuses the last site set when
        ``sites`` is None.

        Raises:
            ConfigurationError: no site set given and none stored
        """
        if sites is None:
            if self._last_sites is None:
                raise ConfigurationError("No previous site set to regenerate from")
            sites = self._last_sites
        self.clear_merges()
        return self.apply_merges_and_regenerate(sites)

    def _validate_sites(self, sites: Mapping[SiteId, Point]) -> Dict[SiteId, Point]:
        if sites is None:
            raise ConfigurationError("Site mapping is None")

        active: Dict[SiteId, Point] = {}
        for site_id, position in sites.items():
            if site_id is None or position is None:
                logger.warning("Site without identity or position ignored", site=site_id)
                continue
            try:
                x, y = float(position[0]), float(position[1])
            except (TypeError, ValueError, IndexError) as exc:
                raise ConfigurationError(f"Site {site_id!r} has an invalid position {position!r}") from exc
            if not (math.isfinite(x) and math.isfinite(y)):
                raise ConfigurationError(f"Site {site_id!r} has a non-finite position ({x}, {y})")
            active[site_id] = (x, y)

        if not active:
            raise ConfigurationError("No sites to generate an overlay from")
        return active

    def _check_padding(self, active: Dict[SiteId, Point]) -> None:
        # Sites outside the ring polygon land on the hull and lose their cells
        count = self.config.padding_point_count
        real_points = np.array(list(active.values()), dtype=np.float64)
        furthest = padding_radius(real_points, 0.0)
        radius = padding_radius(real_points, self.config.padding_offset)
        clearance = inscribed_radius(radius, count)
        if clearance <= furthest:
            raise ConfigurationError(
                f"Padding ring of {count} points at radius {radius:.6g} does not enclose the "
                f"furthest site at distance {furthest:.6g}; raise padding_point_count or padding_offset"
            )

    def _generate(self, active: Dict[SiteId, Point], requests: List[MergeRequest]) -> None:
        config = self.config
        self._reset_pass()
        report = self.report
        report.site_count = len(active)

        real_points = np.array(list(active.values()), dtype=np.float64)
        radius = padding_radius(real_points, config.padding_offset)
        padding = generate_padding_points((0.0, 0.0), radius, config.padding_point_count)

        sites = SiteIndex.build(active.items(), padding, config.epsilon)
        report.duplicate_sites = list(sites.duplicates)

        triangulation = self.triangulator(sites.points)
        triangulation.validate(len(sites))
        bounds = config.bounds_for_radius(radius)
        centers, valid = compute_circumcenters(sites.points, triangulation.triangles, bounds, config.epsilon)

        context = DiagramContext(sites, triangulation, centers, valid, config.epsilon)
        cells = build_voronoi_cells(context, config.max_walk_iterations, config.verbose)

        self._apply_merges(cells, context, requests)
        self._sites = sites
        self._cells = cells
        self._build_regions(cells, sites)

        report.region_count = len(self._regions)
        logger.info("Territory overlay generated", regions=report.region_count,
                    duplicates=len(report.duplicate_sites), skipped=len(report.skipped_regions),
                    merges=len(report.applied_merges), failed_merges=len(report.failed_merges),
                    triangulation_failures=len(report.triangulation_failures))

    def _apply_merges(self, cells: VoronoiCells, context: DiagramContext,
                      requests: List[MergeRequest]) -> None:
        sites = context.sites
        report = self.report
        merged_into: Dict[SiteId, SiteId] = {}

        for target_id, source_id in requests:
            # A target that was merged away stands for the territory it joined
            final_target = target_id
            while final_target in merged_into:
                final_target = merged_into[final_target]

            reason = None
            if source_id in merged_into:
                reason = "source already merged"
            elif final_target == source_id:
                reason = "source and target are in the same territory"
            elif sites.index_of(final_target) is None:
                reason = "target is not an active site"
            elif sites.index_of(source_id) is None:
                reason = "source is not an active site"

            if reason is None:
                outcome = merge_cells(cells, context, sites.index_of(final_target), sites.index_of(source_id))
                if outcome:
                    merged_into[source_id] = final_target
                    report.applied_merges.append((target_id, source_id))
                    if final_target != target_id and self.config.verbose:
                        logger.debug("Merge redirected to final territory", requested=target_id,
                                     target=final_target, source=source_id)
                    continue
                reason = outcome.reason

            logger.warning("Merge request skipped", target=target_id, source=source_id, reason=reason)
            report.failed_merges.append(MergeFailure(target_id, source_id, reason))

        self._history = list(report.applied_merges)
        self._territory_of = merged_into

    def _build_regions(self, cells: VoronoiCells, sites: SiteIndex) -> None:
        config = self.config
        report = self.report
        options = CleanupOptions(
            min_vertex_distance=config.vertex_distance_threshold,
            closing_distance=config.loop_closing_distance,
            smoothing=config.enable_smoothing,
            chaikin_iterations=config.chaikin_iterations,
            chaikin_ratio=config.chaikin_ratio,
        )

        for record in sites.real_records():
            site_id = record.site_id
            if site_id in self._territory_of:
                continue

            polygon = cells.polygons.get(record.index)
            if polygon is None:
                logger.warning("No cell for site, region skipped", site=site_id, position=record.position)
                report.skipped_regions.append(site_id)
                continue

            cleaned = clean_region(polygon, options, config.verbose, closed=True)
            if cleaned is None or len(cleaned.vertices) < 3:
                logger.warning("Region degenerate after cleanup, skipped", site=site_id,
                               raw_vertices=len(polygon))
                report.skipped_regions.append(site_id)
                continue

            triangles = triangulate_ear_clipping(cleaned.vertices, config.max_clip_iterations,
                                                 config.epsilon, config.verbose)
            if triangles is None:
                report.triangulation_failures.append(site_id)
                continue

            members = [sites.site_id(index) for index in cells.members.get(record.index, [record.index])]
            self._regions[site_id] = Region(site_id, cleaned.vertices, cleaned.is_closed, triangles, members)

    # Lookups against the last completed pass

    def get_region_of(self, site_id: SiteId) -> Optional[Region]:
        """Region owned by a surviving site; None for merged, skipped or unknown sites."""
        return self._regions.get(site_id)

    def get_site_at(self, point: Point) -> Optional[SiteId]:
        """
        Active site located at ``point`` (within epsilon), or None.

        A site merged away in the last pass is no longer active; its
        position resolves to the surviving site that owns its territory.
        """
        if self._sites is None:
            return None
        index = self._sites.index_at(point)
        if index is None or not self._sites.is_real(index):
            return None
        return self.territory_of(self._sites.site_id(index))

    def get_site_position(self, site_id: SiteId) -> Optional[Point]:
        if self._sites is None:
            return None
        index = self._sites.index_of(site_id)
        if index is None:
            return None
        return self._sites[index].position

    def territory_of(self, site_id: SiteId) -> Optional[SiteId]:
        """Surviving site whose territory contains ``site_id``."""
        if self._sites is None or self._sites.index_of(site_id) is None:
            return None
        while site_id in self._territory_of:
            site_id = self._territory_of[site_id]
        return site_id

    def neighbors_of(self, site_id: SiteId) -> List[SiteId]:
        """Surviving sites sharing a Voronoi edge with ``site_id``'s territory."""
        if self._sites is None or self._cells is None:
            return []
        index = self._sites.index_of(site_id)
        if index is None:
            return []
        return [self._sites.site_id(neighbor) for neighbor in self._cells.adjacency.get(index, [])]

    @property
    def adjacency(self) -> Dict[SiteId, List[SiteId]]:
        """Adjacency of surviving sites in the last pass."""
        if self._sites is None or self._cells is None:
            return {}
        return {
            self._sites.site_id(index): [self._sites.site_id(n) for n in neighbors]
            for index, neighbors in self._cells.adjacency.items()
        }
