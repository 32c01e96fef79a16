"""
Rendering utilities for termgv

This package contains the alignment track renderer:
- Palette: Theme-aware colors for alignment glyphs
- render_alignment: Draw all visible reads (or pairs) into a CellBuffer
- render_context: Draw a single rendering context
"""

from .alignment_renderer import (
    OnScreenRenderingContext,
    get_read_rendering_info,
    modification_background_at,
    render_alignment,
    render_context,
)
from .palette import Palette

__all__ = [
    "Palette",
    "OnScreenRenderingContext",
    "get_read_rendering_info",
    "modification_background_at",
    "render_alignment",
    "render_context",
]
