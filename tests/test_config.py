"""Tests for overlay configuration and settings."""

import pytest
from pydantic import ValidationError

from py_starmap.config import Bounds, OverlayConfig, Settings, configure_logging


class TestBounds:
    """Test the circumcenter validity rectangle."""

    def test_centered(self):
        bounds = Bounds.centered(10.0, (1.0, 2.0))
        assert (bounds.x_min, bounds.y_min, bounds.x_max, bounds.y_max) == (-9.0, -8.0, 11.0, 12.0)
        assert bounds.contains(1.0, 2.0)
        assert not bounds.contains(12.0, 2.0)

    def test_empty_extent_rejected(self):
        with pytest.raises(ValidationError):
            Bounds(x_min=0, y_min=0, x_max=0, y_max=5)


class TestOverlayConfig:
    """Test overlay settings validation."""

    def test_defaults(self):
        config = OverlayConfig()
        assert config.padding_point_count == 24
        assert config.chaikin_ratio == 0.25
        assert config.loop_closing_distance == 0.5
        assert config.enable_smoothing

    @pytest.mark.parametrize("field,value", [
        ("padding_point_count", 2),
        ("padding_offset", 0.0),
        ("chaikin_ratio", 0.6),
        ("chaikin_iterations", -1),
        ("vertex_distance_threshold", -0.1),
        ("unknown_option", 1),
    ])
    def test_invalid_values(self, field, value):
        with pytest.raises(ValidationError):
            OverlayConfig(**{field: value})

    def test_derived_bounds(self):
        """Test bounds default to the padding radius times the scale."""
        bounds = OverlayConfig(circumcenter_bounds_scale=4.0).bounds_for_radius(25.0)
        assert bounds == Bounds.centered(100.0)

    def test_explicit_bounds(self):
        explicit = Bounds(x_min=-1, y_min=-1, x_max=1, y_max=1)
        assert OverlayConfig(circumcenter_bounds=explicit).bounds_for_radius(1000.0) == explicit

    def test_frozen(self):
        config = OverlayConfig()
        with pytest.raises(ValidationError):
            config.padding_offset = 10.0


class TestSettings:
    """Test environment driven settings."""

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("STARMAP_PADDING_POINT_COUNT", "12")
        monkeypatch.setenv("STARMAP_ENABLE_SMOOTHING", "false")
        config = Settings().overlay_config()
        assert config.padding_point_count == 12
        assert not config.enable_smoothing

    def test_explicit_overrides_win(self):
        config = Settings().overlay_config(padding_offset=5.0, verbose=True)
        assert config.padding_offset == 5.0
        assert config.verbose

    @pytest.mark.parametrize("log_format", ["console", "json"])
    def test_configure_logging(self, log_format):
        configure_logging(Settings(log_format=log_format, log_level="WARNING"))
