"""
Run configuration for railtrack.

A Configuration is built once per run, validated on construction and shared
by every pipeline stage. It is frozen; use with_overrides() to derive a
modified copy.
"""

import re
from dataclasses import dataclass, fields, replace
from typing import Optional

from .errors import ConfigurationError

DEFAULT_WIDTH_THRESHOLD = 992
DEFAULT_BASE_COLOR = "#FFDB4D"
DEFAULT_PADDING = 10
DEFAULT_STROKE_WIDTH = 1

COLOR_PATTERN = re.compile(r"^#[0-9a-fA-F]{6}$")

_TOGGLES = (
    "show_ebnf",
    "recursion_elimination",
    "factoring",
    "inline_literals",
    "keep_epsilon_refs",
)


@dataclass(frozen=True)
class Configuration:
    """
    Settings threaded through parsing, transformation, layout and rendering.

    Attributes:
        show_ebnf: Show the textual EBNF of each production next to its diagram.
        recursion_elimination: Rewrite direct left/right recursion as loops.
        factoring: Hoist common prefixes/suffixes out of choices.
        inline_literals: Inline references to productions that derive a
            single literal.
        keep_epsilon_refs: Keep references to productions that only derive
            the empty string. When False they are removed.
        width_threshold: Wrap the top-level sequence of a diagram once it
            grows wider than this. None disables wrapping.
        base_color: Base color as "#RRGGBB"; None selects DEFAULT_BASE_COLOR.
        hue_offset: Hue rotation in degrees per nesting depth.
        padding: Margin around each diagram; None selects DEFAULT_PADDING.
        stroke_width: Stroke width of rails and boxes; None selects
            DEFAULT_STROKE_WIDTH.
        font_path: TrueType font used to measure label widths. None uses a
            fixed-pitch estimate.
    """

    show_ebnf: bool = True
    recursion_elimination: bool = True
    factoring: bool = True
    inline_literals: bool = True
    keep_epsilon_refs: bool = True
    width_threshold: Optional[int] = DEFAULT_WIDTH_THRESHOLD
    base_color: Optional[str] = None
    hue_offset: int = 0
    padding: Optional[int] = None
    stroke_width: Optional[int] = None
    font_path: Optional[str] = None

    def __post_init__(self):
        for name in _TOGGLES:
            if not isinstance(getattr(self, name), bool):
                raise ConfigurationError(f"{name} must be a boolean")

        if self.width_threshold is not None:
            if not _is_int(self.width_threshold):
                raise ConfigurationError("width_threshold must be an integer")
            if self.width_threshold <= 0:
                raise ConfigurationError(
                    f"width_threshold must be positive, got {self.width_threshold}"
                )

        if self.base_color is not None and not (
            isinstance(self.base_color, str) and COLOR_PATTERN.match(self.base_color)
        ):
            raise ConfigurationError(
                f"invalid color code {self.base_color!r}, "
                f"color code must match #RRGGBB"
            )

        if not _is_int(self.hue_offset):
            raise ConfigurationError("hue_offset must be an integer")

        if self.padding is not None:
            if not _is_int(self.padding) or self.padding < 0:
                raise ConfigurationError(
                    f"padding must be a non-negative integer, got {self.padding!r}"
                )

        if self.stroke_width is not None:
            if not _is_int(self.stroke_width) or self.stroke_width < 1:
                raise ConfigurationError(
                    f"stroke_width must be a positive integer, "
                    f"got {self.stroke_width!r}"
                )

    @property
    def effective_base_color(self) -> str:
        return self.base_color or DEFAULT_BASE_COLOR

    @property
    def effective_padding(self) -> int:
        return DEFAULT_PADDING if self.padding is None else self.padding

    @property
    def effective_stroke_width(self) -> int:
        return DEFAULT_STROKE_WIDTH if self.stroke_width is None else self.stroke_width

    def with_overrides(self, **overrides) -> "Configuration":
        """
        Return a validated copy with some fields replaced.

        Raises:
            ConfigurationError: If an override names an unknown field or
                produces an invalid configuration.
        """
        known = {f.name for f in fields(self)}
        unknown = sorted(set(overrides) - known)
        if unknown:
            raise ConfigurationError(f"unknown configuration option(s): {unknown}")
        return replace(self, **overrides)


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)
