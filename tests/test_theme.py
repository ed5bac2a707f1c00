"""Tests for theme resolution: defaults, presets and per-job overrides."""

import pytest

from coursegen.errors import ValidationError
from coursegen.factory.theme import (
    LIBRARY_DEFAULTS,
    ColorSchemeOverrides,
    ThemeConfigResolver,
    ThemeOverrides,
)


@pytest.fixture
def resolver() -> ThemeConfigResolver:
    return ThemeConfigResolver()


class TestPresets:
    def test_unknown_preset_falls_back_to_default(self, resolver):
        assert resolver.resolve("unknown-preset", {}) == resolver.resolve("modern", {})
        assert resolver.resolve("unknown-preset", {}).theme.name == "modern"

    def test_no_preset_means_default(self, resolver):
        assert resolver.resolve(None) == resolver.resolve("modern")

    def test_lists_all_presets(self, resolver):
        assert resolver.presets() == ["classic", "corporate", "creative", "minimal", "modern", "tech"]

    def test_preset_selects_its_color_scheme(self, resolver):
        classic = resolver.resolve("classic")

        assert classic.theme.enable_animations is False
        assert classic.theme.supported_layouts == ["title", "content"]
        assert classic.colors.name == "monochrome"
        assert classic.colors.primary == "#374151"

    def test_preset_keeps_unrelated_defaults(self, resolver):
        tech = resolver.resolve("tech")

        assert tech.colors.name == "green"
        assert tech.typography == LIBRARY_DEFAULTS.typography
        assert tech.layouts == LIBRARY_DEFAULTS.layouts

    def test_unknown_default_preset_is_rejected(self):
        with pytest.raises(ValueError):
            ThemeConfigResolver(default_preset="neon")


class TestOverrides:
    def test_override_beats_preset(self, resolver):
        config = resolver.resolve("classic", {"theme": {"enable_animations": True}})

        assert config.theme.enable_animations is True
        assert config.theme.name == "classic"

    def test_nested_sections_merge_field_by_field(self, resolver):
        config = resolver.resolve("modern", {"layouts": {"spacing": {"margin": 10}}})

        assert config.layouts.spacing.margin == 10
        assert config.layouts.spacing.horizontal == 20
        assert config.layouts.default_layout == "content"

    def test_lists_are_replaced_not_concatenated(self, resolver):
        config = resolver.resolve("modern", {"animations": {"supported_types": ["fade"]}})

        assert config.animations.supported_types == ["fade"]

    def test_color_overrides_patch_the_selected_scheme(self, resolver):
        config = resolver.resolve("modern", {
            "theme": {"default_color_scheme": "red"},
            "colors": {"primary": "#000000", "gradients": {"background": "none"}},
        })

        assert config.colors.name == "red"
        assert config.colors.primary == "#000000"
        assert config.colors.secondary == "#dc2626"
        assert config.colors.gradients.background == "none"
        assert config.colors.gradients.primary.startswith("linear-gradient")

    def test_typed_overrides_are_accepted(self, resolver):
        overrides = ThemeOverrides(colors=ColorSchemeOverrides(accent="#123456"))

        assert resolver.resolve("modern", overrides).colors.accent == "#123456"

    def test_invalid_overrides_raise_validation_error(self, resolver):
        with pytest.raises(ValidationError):
            resolver.resolve("modern", {"theme": {"sparkle": True}})
        with pytest.raises(ValidationError):
            resolver.resolve("modern", {"layouts": {"aspect_ratio": "21:9"}})

    def test_resolved_configs_do_not_share_state(self, resolver):
        first = resolver.resolve("modern")
        first.layouts.supported_layouts.append("mutated")
        first.typography.heading_scale.clear()

        second = resolver.resolve("modern")

        assert "mutated" not in second.layouts.supported_layouts
        assert second.typography.heading_scale == [3.5, 2.5, 2, 1.5, 1.25, 1]
        assert "mutated" not in LIBRARY_DEFAULTS.layouts.supported_layouts


class TestColorSchemes:
    def test_unknown_scheme_falls_back_to_blue(self, resolver):
        assert resolver.color_scheme("chartreuse") == resolver.color_scheme("blue")
        assert resolver.color_scheme(None).name == "blue"

    def test_lists_schemes(self, resolver):
        assert resolver.color_schemes() == ["blue", "green", "monochrome", "orange", "purple", "red"]
