"""Constants and configuration for termgv"""

from enum import Enum

APP_NAME = "termgv"
APP_DESCRIPTION = "Terminal viewer for aligned sequencing reads"
APP_VERSION = "0.1.0"

# ==============================================================================
# Glyphs
# ==============================================================================

ALIGNED_GLYPH = "-"
DELETION_GLYPH = "-"
PAIR_GAP_GLYPH = "-"
PAIR_OVERLAP_GLYPH = "-"
FORWARD_GLYPH = "►"
REVERSE_GLYPH = "◄"
INSERTION_GLYPH = "▌"
PAIR_CONFLICT_GLYPH = "?"
BLANK_GLYPH = " "

# ==============================================================================
# Base Modification (MM/ML) Settings
# ==============================================================================

# ML probabilities are stored as bytes: 0 = unmodified, 255 = fully modified
HIGH_PROBABILITY_THRESHOLD = 179  # >= 70%
LOW_PROBABILITY_THRESHOLD = 77  # < 30%
DEFAULT_PROBABILITY = 255  # Used when the ML stream runs out

# Background ramps per modification code as 256-color indices (low, mid, high)
MODIFICATION_COLOR_RAMPS = {
    "m": (224, 174, 160),  # pink -> red
    "h": (225, 177, 129),  # lilac -> purple
    "a": (195, 116, 30),  # pale cyan -> teal
}

# ==============================================================================
# Theme Settings
# ==============================================================================


class Theme(Enum):
    """Color theme for the alignment track"""

    LIGHT = "light"
    DARK = "dark"


# Alignment colors as 256-color indices. None means the terminal default.
DARK_THEME = {
    "background": None,
    "match_bg": 238,
    "match_fg": 250,
    "deletion_fg": 244,
    "pair_gap_fg": 240,
    "pair_overlap_fg": 110,
    "insertion_fg": 135,
}

LIGHT_THEME = {
    "background": None,
    "match_bg": 252,
    "match_fg": 240,
    "deletion_fg": 242,
    "pair_gap_fg": 248,
    "pair_overlap_fg": 67,
    "insertion_fg": 91,
}

# Base colors shared by soft-clip backgrounds and mismatch foregrounds
BASE_COLORS = {
    "A": 34,  # Green
    "C": 33,  # Blue
    "G": 214,  # Orange
    "T": 160,  # Red
    "N": 244,  # Gray (unknown)
}

# ==============================================================================
# Display Options
# ==============================================================================


class DisplayOption(Enum):
    """Display options that affect alignment rendering"""

    VIEW_AS_PAIRS = "paired"  # Draw mates together on one row
    SHOW_BASE_MODIFICATIONS = "mod"  # Color aligned bases by MM/ML calls


# ==============================================================================
# Export Settings
# ==============================================================================


class ExportFormat(Enum):
    """Snapshot output formats"""

    TERMINAL = "terminal"  # Styled output straight to the console
    TEXT = "text"
    HTML = "html"
    SVG = "svg"


# SVG cell metrics in pixels
SVG_CELL_WIDTH = 8
SVG_CELL_HEIGHT = 16

# Page background used by HTML and SVG snapshots
SNAPSHOT_BACKGROUND = "#1e1e1e"

SNAPSHOT_FONT_FAMILY = (
    '"JetBrains Mono", "Fira Code", "Cascadia Code", '
    '"DejaVu Sans Mono", "Courier New", monospace'
)

# ==============================================================================
# Viewport Settings
# ==============================================================================

DEFAULT_VIEW_WIDTH = 120  # Columns
DEFAULT_VIEW_HEIGHT = 40  # Rows
ROW_SPACING = 1  # Minimum free reference positions between reads on a row
