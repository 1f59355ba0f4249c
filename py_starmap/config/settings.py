"""Application settings pulled from environment variables."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .overlay import OverlayConfig


class Settings(BaseSettings):
    """Environment-driven defaults for logging and overlay generation."""

    model_config = SettingsConfigDict(
        env_prefix="STARMAP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="console", description="Logging format (console or json)")

    # Overlay defaults
    padding_point_count: int = Field(default=24, description="Padding ring point count")
    padding_offset: float = Field(default=50.0, description="Padding ring offset")
    vertex_distance_threshold: float = Field(default=0.1, description="Minimum distance between region vertices")
    enable_smoothing: bool = Field(default=True, description="Chaikin smoothing of region outlines")
    chaikin_iterations: int = Field(default=3, description="Chaikin iterations")

    def overlay_config(self, **overrides) -> OverlayConfig:
        """Build an OverlayConfig from these settings plus explicit overrides."""
        values = {
            "padding_point_count": self.padding_point_count,
            "padding_offset": self.padding_offset,
            "vertex_distance_threshold": self.vertex_distance_threshold,
            "enable_smoothing": self.enable_smoothing,
            "chaikin_iterations": self.chaikin_iterations,
        }
        values.update(overrides)
        return OverlayConfig(**values)


settings = Settings()
