"""
Voronoi territory overlay for star maps.
"""

__version__ = "0.1.0"
