"""Exceptions raised by the territory overlay."""


class StarmapError(Exception):
    """Base class for overlay errors."""


class ConfigurationError(StarmapError, ValueError):
    """Bad configuration or unusable input; raised before any state changes."""


class TriangulationError(StarmapError):
    """The triangulation provider could not triangulate the point set."""


class StructuralError(StarmapError):
    """The triangulation is malformed or a cell walk did not terminate.

    Fatal for the whole generation pass.
    """
