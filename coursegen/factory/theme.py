"""
Theme Config Resolver - Deterministic theme configuration for page rendering.

Merge precedence, highest wins:
    per-job overrides > named preset > library defaults

Nested sections merge field by field. Lists and scalar values are replaced
wholesale, never concatenated. An unknown preset or color scheme name falls
back to the default one instead of failing.
"""

import logging
from typing import Any, Literal, Optional

import pydantic
from pydantic import BaseModel, ConfigDict

from coursegen.errors import ValidationError

logger = logging.getLogger(__name__)

DEFAULT_PRESET = "modern"
DEFAULT_COLOR_SCHEME = "blue"

DesignFreedom = Literal["conservative", "balanced", "creative", "extreme"]
AnimationType = Literal["fade", "slide", "zoom", "bounce", "rotate"]


# ============================================================================
# RESOLVED CONFIG
# ============================================================================


class ThemeInfo(BaseModel):
    name: str
    description: str
    default_color_scheme: str
    supported_layouts: list[str]
    enable_animations: bool
    design_freedom: DesignFreedom


class Gradients(BaseModel):
    primary: str
    secondary: str
    background: str


class ColorScheme(BaseModel):
    name: str
    primary: str
    secondary: str
    accent: str
    background: str
    text: str
    text_light: str
    gradients: Gradients


class Animations(BaseModel):
    enabled: bool
    default_type: AnimationType
    default_duration: float
    default_delay: float
    default_easing: str
    supported_types: list[AnimationType]


class Spacing(BaseModel):
    horizontal: int
    vertical: int
    margin: int


class Layouts(BaseModel):
    default_layout: str
    supported_layouts: list[str]
    aspect_ratio: Literal["16:9", "4:3", "A4"]
    spacing: Spacing


class FontWeights(BaseModel):
    light: int
    normal: int
    medium: int
    semibold: int
    bold: int
    extrabold: int


class Typography(BaseModel):
    font_family: str
    heading_font: str
    body_font: str
    base_size: int
    heading_scale: list[float]
    line_height: float
    font_weights: FontWeights


class ThemeConfig(BaseModel):
    """Fully resolved configuration consumed by the page renderer."""

    theme: ThemeInfo
    colors: ColorScheme
    animations: Animations
    layouts: Layouts
    typography: Typography


# ============================================================================
# OVERRIDES (every field optional; None means "keep the lower layer")
# ============================================================================


class _Overrides(BaseModel):
    model_config = ConfigDict(extra="forbid")


class ThemeInfoOverrides(_Overrides):
    name: Optional[str] = None
    description: Optional[str] = None
    default_color_scheme: Optional[str] = None
    supported_layouts: Optional[list[str]] = None
    enable_animations: Optional[bool] = None
    design_freedom: Optional[DesignFreedom] = None


class GradientsOverrides(_Overrides):
    primary: Optional[str] = None
    secondary: Optional[str] = None
    background: Optional[str] = None


class ColorSchemeOverrides(_Overrides):
    name: Optional[str] = None
    primary: Optional[str] = None
    secondary: Optional[str] = None
    accent: Optional[str] = None
    background: Optional[str] = None
    text: Optional[str] = None
    text_light: Optional[str] = None
    gradients: Optional[GradientsOverrides] = None


class AnimationsOverrides(_Overrides):
    enabled: Optional[bool] = None
    default_type: Optional[AnimationType] = None
    default_duration: Optional[float] = None
    default_delay: Optional[float] = None
    default_easing: Optional[str] = None
    supported_types: Optional[list[AnimationType]] = None


class SpacingOverrides(_Overrides):
    horizontal: Optional[int] = None
    vertical: Optional[int] = None
    margin: Optional[int] = None


class LayoutsOverrides(_Overrides):
    default_layout: Optional[str] = None
    supported_layouts: Optional[list[str]] = None
    aspect_ratio: Optional[Literal["16:9", "4:3", "A4"]] = None
    spacing: Optional[SpacingOverrides] = None


class FontWeightsOverrides(_Overrides):
    light: Optional[int] = None
    normal: Optional[int] = None
    medium: Optional[int] = None
    semibold: Optional[int] = None
    bold: Optional[int] = None
    extrabold: Optional[int] = None


class TypographyOverrides(_Overrides):
    font_family: Optional[str] = None
    heading_font: Optional[str] = None
    body_font: Optional[str] = None
    base_size: Optional[int] = None
    heading_scale: Optional[list[float]] = None
    line_height: Optional[float] = None
    font_weights: Optional[FontWeightsOverrides] = None


class ThemeOverrides(_Overrides):
    """One layer of the merge: a preset or a job's own overrides."""

    theme: Optional[ThemeInfoOverrides] = None
    colors: Optional[ColorSchemeOverrides] = None
    animations: Optional[AnimationsOverrides] = None
    layouts: Optional[LayoutsOverrides] = None
    typography: Optional[TypographyOverrides] = None


# ============================================================================
# LIBRARY DEFAULTS & PRESETS
# ============================================================================


def _scheme(name: str, primary: str, secondary: str, accent: str, text: str, text_light: str,
            bg_from: str, bg_mid: str) -> ColorScheme:
    return ColorScheme(
        name=name,
        primary=primary,
        secondary=secondary,
        accent=accent,
        background="#ffffff",
        text=text,
        text_light=text_light,
        gradients=Gradients(
            primary=f"linear-gradient(135deg, {primary} 0%, {secondary} 100%)",
            secondary=f"linear-gradient(135deg, {secondary} 0%, {accent} 100%)",
            background=f"linear-gradient(135deg, {bg_from} 0%, {bg_mid} 50%, #ffffff 100%)",
        ),
    )


COLOR_SCHEMES: dict[str, ColorScheme] = {
    "blue": _scheme("blue", "#3b82f6", "#8b5cf6", "#06b6d4", "#1f2937", "#6b7280", "#f0f9ff", "#e0f2fe"),
    "green": _scheme("green", "#10b981", "#059669", "#14b8a6", "#064e3b", "#047857", "#ecfdf5", "#d1fae5"),
    "purple": _scheme("purple", "#8b5cf6", "#7c3aed", "#a855f7", "#4c1d95", "#6d28d9", "#f3e8ff", "#e9d5ff"),
    "orange": _scheme("orange", "#f97316", "#ea580c", "#fb923c", "#9a3412", "#c2410c", "#fff7ed", "#fed7aa"),
    "red": _scheme("red", "#ef4444", "#dc2626", "#f87171", "#991b1b", "#b91c1c", "#fef2f2", "#fecaca"),
    "monochrome": _scheme("monochrome", "#374151", "#1f2937", "#6b7280", "#111827", "#4b5563", "#f9fafb", "#f3f4f6"),
}

LIBRARY_DEFAULTS = ThemeConfig(
    theme=ThemeInfo(
        name="modern",
        description="Modern professional style for business presentations",
        default_color_scheme=DEFAULT_COLOR_SCHEME,
        supported_layouts=["title", "content", "two-column", "image-text", "comparison"],
        enable_animations=True,
        design_freedom="creative",
    ),
    colors=COLOR_SCHEMES[DEFAULT_COLOR_SCHEME],
    animations=Animations(
        enabled=True,
        default_type="fade",
        default_duration=0.8,
        default_delay=0.1,
        default_easing="ease-out",
        supported_types=["fade", "slide", "zoom", "bounce", "rotate"],
    ),
    layouts=Layouts(
        default_layout="content",
        supported_layouts=["title", "content", "two-column", "image-text", "comparison", "custom"],
        aspect_ratio="16:9",
        spacing=Spacing(horizontal=20, vertical=20, margin=40),
    ),
    typography=Typography(
        font_family="Inter",
        heading_font="Inter",
        body_font="Inter",
        base_size=16,
        heading_scale=[3.5, 2.5, 2, 1.5, 1.25, 1],
        line_height=1.5,
        font_weights=FontWeights(light=300, normal=400, medium=500, semibold=600, bold=700, extrabold=800),
    ),
)


def _preset(**theme: Any) -> ThemeOverrides:
    return ThemeOverrides(theme=ThemeInfoOverrides(**theme))


PRESETS: dict[str, ThemeOverrides] = {
    "modern": _preset(
        name="modern",
        description="Modern professional style for business presentations",
        default_color_scheme="blue",
        supported_layouts=["title", "content", "two-column", "image-text", "comparison"],
        enable_animations=True,
        design_freedom="creative",
    ),
    "classic": _preset(
        name="classic",
        description="Classic traditional style for formal occasions",
        default_color_scheme="monochrome",
        supported_layouts=["title", "content"],
        enable_animations=False,
        design_freedom="conservative",
    ),
    "minimal": _preset(
        name="minimal",
        description="Minimal style that keeps the focus on content",
        default_color_scheme="monochrome",
        supported_layouts=["title", "content"],
        enable_animations=False,
        design_freedom="balanced",
    ),
    "creative": _preset(
        name="creative",
        description="Creative style for innovative topics",
        default_color_scheme="purple",
        supported_layouts=["title", "content", "two-column", "image-text", "comparison", "custom"],
        enable_animations=True,
        design_freedom="extreme",
    ),
    "corporate": _preset(
        name="corporate",
        description="Corporate style for company presentations",
        default_color_scheme="blue",
        supported_layouts=["title", "content", "two-column"],
        enable_animations=True,
        design_freedom="balanced",
    ),
    "tech": _preset(
        name="tech",
        description="Tech style for technical topics",
        default_color_scheme="green",
        supported_layouts=["title", "content", "two-column", "image-text"],
        enable_animations=True,
        design_freedom="creative",
    ),
}


# ============================================================================
# FIELD-LEVEL MERGE
# ============================================================================


def _set(**fields: Any) -> dict[str, Any]:
    """Keep only the fields a layer actually sets. Lists are copied."""
    return {k: list(v) if isinstance(v, list) else v for k, v in fields.items() if v is not None}


def merge_theme_info(base: ThemeInfo, o: Optional[ThemeInfoOverrides]) -> ThemeInfo:
    if o is None:
        return base
    return base.model_copy(update=_set(
        name=o.name,
        description=o.description,
        default_color_scheme=o.default_color_scheme,
        supported_layouts=o.supported_layouts,
        enable_animations=o.enable_animations,
        design_freedom=o.design_freedom,
    ))


def merge_gradients(base: Gradients, o: Optional[GradientsOverrides]) -> Gradients:
    if o is None:
        return base
    return base.model_copy(update=_set(primary=o.primary, secondary=o.secondary, background=o.background))


def merge_colors(base: ColorScheme, o: Optional[ColorSchemeOverrides]) -> ColorScheme:
    if o is None:
        return base
    return base.model_copy(update=_set(
        name=o.name,
        primary=o.primary,
        secondary=o.secondary,
        accent=o.accent,
        background=o.background,
        text=o.text,
        text_light=o.text_light,
        gradients=merge_gradients(base.gradients, o.gradients) if o.gradients else None,
    ))


def merge_animations(base: Animations, o: Optional[AnimationsOverrides]) -> Animations:
    if o is None:
        return base
    return base.model_copy(update=_set(
        enabled=o.enabled,
        default_type=o.default_type,
        default_duration=o.default_duration,
        default_delay=o.default_delay,
        default_easing=o.default_easing,
        supported_types=o.supported_types,
    ))


def merge_layouts(base: Layouts, o: Optional[LayoutsOverrides]) -> Layouts:
    if o is None:
        return base
    spacing = None
    if o.spacing is not None:
        spacing = base.spacing.model_copy(update=_set(
            horizontal=o.spacing.horizontal,
            vertical=o.spacing.vertical,
            margin=o.spacing.margin,
        ))
    return base.model_copy(update=_set(
        default_layout=o.default_layout,
        supported_layouts=o.supported_layouts,
        aspect_ratio=o.aspect_ratio,
        spacing=spacing,
    ))


def merge_typography(base: Typography, o: Optional[TypographyOverrides]) -> Typography:
    if o is None:
        return base
    weights = None
    if o.font_weights is not None:
        w = o.font_weights
        weights = base.font_weights.model_copy(update=_set(
            light=w.light,
            normal=w.normal,
            medium=w.medium,
            semibold=w.semibold,
            bold=w.bold,
            extrabold=w.extrabold,
        ))
    return base.model_copy(update=_set(
        font_family=o.font_family,
        heading_font=o.heading_font,
        body_font=o.body_font,
        base_size=o.base_size,
        heading_scale=o.heading_scale,
        line_height=o.line_height,
        font_weights=weights,
    ))


class ThemeConfigResolver:
    """Resolves a preset name plus per-job overrides into a ThemeConfig."""

    def __init__(
        self,
        default_preset: str = DEFAULT_PRESET,
        presets: Optional[dict[str, ThemeOverrides]] = None,
        color_schemes: Optional[dict[str, ColorScheme]] = None,
        defaults: ThemeConfig = LIBRARY_DEFAULTS,
    ):
        self._presets = dict(presets if presets is not None else PRESETS)
        self._color_schemes = dict(color_schemes if color_schemes is not None else COLOR_SCHEMES)
        self._defaults = defaults
        if default_preset not in self._presets:
            raise ValueError(f"Default preset '{default_preset}' is not a known preset")
        self.default_preset = default_preset

    def presets(self) -> list[str]:
        return sorted(self._presets)

    def color_schemes(self) -> list[str]:
        return sorted(self._color_schemes)

    def preset(self, name: Optional[str]) -> ThemeOverrides:
        """The named preset, or the default preset for unknown names."""
        if name and name in self._presets:
            return self._presets[name]
        if name:
            logger.debug(f"Unknown theme preset '{name}', using '{self.default_preset}'")
        return self._presets[self.default_preset]

    def color_scheme(self, name: Optional[str]) -> ColorScheme:
        """The named color scheme, or the default scheme for unknown names."""
        scheme = self._color_schemes.get(name or "")
        if scheme is None:
            scheme = self._color_schemes.get(DEFAULT_COLOR_SCHEME) or self._defaults.colors
        return scheme.model_copy(deep=True)

    def resolve(
        self,
        preset_name: Optional[str] = None,
        overrides: ThemeOverrides | dict[str, Any] | None = None,
    ) -> ThemeConfig:
        """
        Merge library defaults, the named preset and overrides.

        Raises:
            ValidationError: If overrides contain unknown fields or bad values.
        """
        if overrides is None:
            overrides = ThemeOverrides()
        elif isinstance(overrides, dict):
            try:
                overrides = ThemeOverrides.model_validate(overrides)
            except pydantic.ValidationError as e:
                raise ValidationError(f"Invalid theme overrides: {e}") from e

        layers = [self.preset(preset_name), overrides]
        base = self._defaults.model_copy(deep=True)

        theme, animations, layouts, typography = base.theme, base.animations, base.layouts, base.typography
        for layer in layers:
            theme = merge_theme_info(theme, layer.theme)
            animations = merge_animations(animations, layer.animations)
            layouts = merge_layouts(layouts, layer.layouts)
            typography = merge_typography(typography, layer.typography)

        # The scheme is looked up by the merged name, then patched by each layer
        colors = self.color_scheme(theme.default_color_scheme)
        for layer in layers:
            colors = merge_colors(colors, layer.colors)

        return ThemeConfig(
            theme=theme,
            colors=colors,
            animations=animations,
            layouts=layouts,
            typography=typography,
        )
