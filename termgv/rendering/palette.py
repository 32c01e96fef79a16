"""
Color policy for the alignment track

This module centralizes the colors used by the alignment renderer so the
compositor never hard-codes a color.
"""

from rich.color import Color

from ..constants import (
    BASE_COLORS,
    DARK_THEME,
    HIGH_PROBABILITY_THRESHOLD,
    LIGHT_THEME,
    LOW_PROBABILITY_THRESHOLD,
    MODIFICATION_COLOR_RAMPS,
    Theme,
)


def _indexed(index: int | None) -> Color:
    if index is None:
        return Color.default()
    return Color.from_ansi(index)


def _base_letter(base: int | str) -> str:
    if isinstance(base, int):
        base = chr(base) if 0 <= base < 128 else "N"
    return base.upper()


class Palette:
    """
    Theme-aware colors for alignment glyphs

    Attributes:
        theme: Theme enum (LIGHT or DARK)
        colors: Dictionary of 256-color indices for the theme

    Examples:
        >>> from termgv.constants import Theme
        >>> palette = Palette(Theme.DARK)
        >>> palette.match_bg.number
        238
    """

    def __init__(self, theme: Theme = Theme.DARK):
        self.theme = theme
        self.colors = DARK_THEME if theme == Theme.DARK else LIGHT_THEME

    @property
    def background(self) -> Color:
        return _indexed(self.colors["background"])

    @property
    def match_bg(self) -> Color:
        return _indexed(self.colors["match_bg"])

    @property
    def match_fg(self) -> Color:
        return _indexed(self.colors["match_fg"])

    @property
    def deletion_color(self) -> Color:
        return _indexed(self.colors["deletion_fg"])

    @property
    def pair_gap_color(self) -> Color:
        return _indexed(self.colors["pair_gap_fg"])

    @property
    def pair_overlap_color(self) -> Color:
        return _indexed(self.colors["pair_overlap_fg"])

    @property
    def insertion_color(self) -> Color:
        return _indexed(self.colors["insertion_fg"])

    def base_color(self, base: int | str) -> Color:
        """Color for a nucleotide (unknown letters use the N color)"""
        letter = _base_letter(base)
        return _indexed(BASE_COLORS.get(letter, BASE_COLORS["N"]))

    def softclip_color(self, base: int | str) -> Color:
        """Background for a soft-clipped base"""
        return self.base_color(base)

    def mismatch_color(self, base: int | str) -> Color:
        """Foreground for a mismatched base"""
        return self.base_color(base)

    def modification_color(self, modification_type, probability: int) -> Color:
        """
        Background for a modification call

        Calls are bucketed into low (< 77), mid and high (>= 179) probability,
        each with its own shade of the modification's color ramp.

        Args:
            modification_type: ModificationType of the call
            probability: ML probability byte (0-255)

        Returns:
            rich Color for the cell background
        """
        low, mid, high = MODIFICATION_COLOR_RAMPS[modification_type.value]
        if probability >= HIGH_PROBABILITY_THRESHOLD:
            return _indexed(high)
        if probability < LOW_PROBABILITY_THRESHOLD:
            return _indexed(low)
        return _indexed(mid)
