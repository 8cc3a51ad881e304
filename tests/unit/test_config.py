"""Unit tests for the config module."""

import pytest

from railtrack.config import (
    DEFAULT_BASE_COLOR,
    DEFAULT_PADDING,
    DEFAULT_STROKE_WIDTH,
    DEFAULT_WIDTH_THRESHOLD,
    Configuration,
)
from railtrack.errors import ConfigurationError


class TestConfigurationDefaults:
    """Tests for default values."""

    def test_defaults(self, default_config):
        """Test the documented defaults."""
        assert default_config.show_ebnf is True
        assert default_config.recursion_elimination is True
        assert default_config.factoring is True
        assert default_config.inline_literals is True
        assert default_config.keep_epsilon_refs is True
        assert default_config.width_threshold == DEFAULT_WIDTH_THRESHOLD == 992
        assert default_config.base_color is None
        assert default_config.hue_offset == 0
        assert default_config.padding is None
        assert default_config.stroke_width is None
        assert default_config.font_path is None

    def test_effective_values(self, default_config):
        """Test that None settings resolve to the built-in defaults."""
        assert default_config.effective_base_color == DEFAULT_BASE_COLOR
        assert default_config.effective_padding == DEFAULT_PADDING
        assert default_config.effective_stroke_width == DEFAULT_STROKE_WIDTH

    def test_explicit_values_win(self):
        """Test that explicit settings are used as given."""
        config = Configuration(base_color="#112233", padding=0, stroke_width=3)
        assert config.effective_base_color == "#112233"
        assert config.effective_padding == 0
        assert config.effective_stroke_width == 3

    def test_frozen(self, default_config):
        """Test that a configuration cannot be modified."""
        with pytest.raises(AttributeError):
            default_config.padding = 5


class TestConfigurationValidation:
    """Tests for validation in __post_init__."""

    @pytest.mark.parametrize("width", [0, -1])
    def test_non_positive_width_threshold(self, width):
        """Test that the width threshold must be positive."""
        with pytest.raises(ConfigurationError) as exc_info:
            Configuration(width_threshold=width)
        assert "width_threshold" in str(exc_info.value)

    def test_no_width_threshold_allowed(self):
        """Test that None disables wrapping."""
        assert Configuration(width_threshold=None).width_threshold is None

    @pytest.mark.parametrize("color", ["FFDB4D", "#FFF", "#GGGGGG", "#FFDB4D0", ""])
    def test_invalid_color(self, color):
        """Test that colors must match #RRGGBB."""
        with pytest.raises(ConfigurationError) as exc_info:
            Configuration(base_color=color)
        assert "#RRGGBB" in str(exc_info.value)

    def test_lowercase_color_accepted(self):
        """Test that hex digits are case-insensitive."""
        assert Configuration(base_color="#a0b1c2").base_color == "#a0b1c2"

    def test_negative_padding(self):
        """Test that padding must not be negative."""
        with pytest.raises(ConfigurationError):
            Configuration(padding=-1)

    def test_stroke_width_below_one(self):
        """Test that stroke width must be at least 1."""
        with pytest.raises(ConfigurationError):
            Configuration(stroke_width=0)

    def test_non_boolean_toggle(self):
        """Test that pass toggles must be booleans."""
        with pytest.raises(ConfigurationError) as exc_info:
            Configuration(factoring="yes")
        assert "factoring" in str(exc_info.value)

    def test_boolean_is_not_an_integer(self):
        """Test that True is rejected where an integer is expected."""
        with pytest.raises(ConfigurationError):
            Configuration(hue_offset=True)

    def test_configuration_error_is_value_error(self):
        """Test that configuration errors are ValueErrors."""
        with pytest.raises(ValueError):
            Configuration(padding=-5)

    def test_error_kind(self):
        """Test the structured error value."""
        with pytest.raises(ConfigurationError) as exc_info:
            Configuration(stroke_width=0)
        assert exc_info.value.as_dict()["kind"] == "configuration"


class TestWithOverrides:
    """Tests for Configuration.with_overrides."""

    def test_override_returns_copy(self, default_config):
        """Test that overrides produce a new configuration."""
        config = default_config.with_overrides(factoring=False, hue_offset=30)
        assert config.factoring is False
        assert config.hue_offset == 30
        assert default_config.factoring is True

    def test_override_is_validated(self, default_config):
        """Test that overridden values are validated."""
        with pytest.raises(ConfigurationError):
            default_config.with_overrides(width_threshold=-10)

    def test_unknown_override(self, default_config):
        """Test that unknown option names are rejected."""
        with pytest.raises(ConfigurationError) as exc_info:
            default_config.with_overrides(colour="#FFFFFF")
        assert "colour" in str(exc_info.value)
