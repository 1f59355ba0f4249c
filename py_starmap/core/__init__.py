"""
Core territory overlay functionality.
"""

from .errors import StarmapError, ConfigurationError, TriangulationError, StructuralError
from .site_index import SiteIndex, SiteKind, SiteRecord
from .triangulation import Triangulation, delaunay_triangulation
from .voronoi_cells import DiagramContext, VoronoiCells, build_voronoi_cells
from .merge import MergeOutcome, merge_cells
from .polygon_cleanup import CleanedPolygon, CleanupOptions, clean_region
from .ear_clipping import triangulate_ear_clipping
from .overlay import GenerationReport, MergeFailure, Region, TerritoryOverlay
from .merge_planner import plan_neighbor_merges

__all__ = ['StarmapError', 'ConfigurationError', 'TriangulationError', 'StructuralError',
           'SiteIndex', 'SiteKind', 'SiteRecord', 'Triangulation', 'delaunay_triangulation',
           'DiagramContext', 'VoronoiCells', 'build_voronoi_cells', 'MergeOutcome', 'merge_cells',
           'CleanedPolygon', 'CleanupOptions', 'clean_region', 'triangulate_ear_clipping',
           'GenerationReport', 'MergeFailure', 'Region', 'TerritoryOverlay', 'plan_neighbor_merges']
