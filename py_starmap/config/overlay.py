"""
Generation settings for the territory overlay.

These are the knobs the overlay consumes during a generation pass:
padding ring layout, circumcenter sanity bounds, cleanup thresholds,
smoothing and the safety caps for the cell walk and ear clipping.
"""

from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Bounds(BaseModel):
    """Axis-aligned rectangle used to sanity check circumcenters."""

    model_config = ConfigDict(frozen=True)

    x_min: float = Field(..., description="Left edge")
    y_min: float = Field(..., description="Bottom edge")
    x_max: float = Field(..., description="Right edge")
    y_max: float = Field(..., description="Top edge")

    @model_validator(mode="after")
    def _check_extent(self) -> "Bounds":
        if self.x_max <= self.x_min or self.y_max <= self.y_min:
            raise ValueError(
                f"Bounds must have positive extent, got "
                f"x=[{self.x_min}, {self.x_max}] y=[{self.y_min}, {self.y_max}]"
            )
        return self

    @classmethod
    def centered(cls, half_size: float, center: Tuple[float, float] = (0.0, 0.0)) -> "Bounds":
        """Square of the given half size around ``center``."""
        cx, cy = center
        return cls(x_min=cx - half_size, y_min=cy - half_size,
                   x_max=cx + half_size, y_max=cy + half_size)

    def contains(self, x: float, y: float) -> bool:
        return self.x_min <= x <= self.x_max and self.y_min <= y <= self.y_max


class OverlayConfig(BaseModel):
    """Settings for one territory overlay."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    # Padding ring
    padding_point_count: int = Field(default=24, ge=3, description="Number of padding points on the ring")
    padding_offset: float = Field(default=50.0, gt=0, description="Distance of the ring beyond the furthest site")

    # Circumcenter sanity check
    circumcenter_bounds: Optional[Bounds] = Field(
        default=None,
        description="Explicit validity rectangle; derived from the padding radius when unset",
    )
    circumcenter_bounds_scale: float = Field(
        default=10.0, gt=1.0,
        description="Half-size of the derived validity square as a multiple of the padding radius",
    )

    # Cleanup
    vertex_distance_threshold: float = Field(default=0.1, ge=0, description="Minimum distance between kept vertices")
    loop_closing_distance: float = Field(default=0.5, ge=0, description="Snap distance for nearly closed loops")
    enable_smoothing: bool = Field(default=True, description="Apply Chaikin smoothing to region outlines")
    chaikin_iterations: int = Field(default=3, ge=0, le=8, description="Chaikin corner cutting passes")
    chaikin_ratio: float = Field(default=0.25, gt=0, le=0.5, description="Chaikin cut ratio")

    # Safety caps (unset: derived from input size)
    max_walk_iterations: Optional[int] = Field(default=None, gt=0, description="Cap on steps around one site")
    max_clip_iterations: Optional[int] = Field(default=None, gt=0, description="Cap on non-productive ear clipping steps")

    epsilon: float = Field(default=1e-6, gt=0, description="Coordinate comparison tolerance")
    verbose: bool = Field(default=False, description="Per-site diagnostic logging")

    def bounds_for_radius(self, padding_radius: float) -> Bounds:
        """Circumcenter validity bounds for a ring of the given radius."""
        if self.circumcenter_bounds is not None:
            return self.circumcenter_bounds
        return Bounds.centered(padding_radius * self.circumcenter_bounds_scale)
