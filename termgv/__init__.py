"""
termgv: View aligned sequencing reads in the terminal

This package turns aligned reads (CIGAR operations plus optional MM/ML base
modification tags) into styled glyphs on a character grid, which can be
printed to a terminal or exported as text, HTML or SVG.

Example usage:
    >>> from termgv import (
    ...     AlignmentView, CellBuffer, DisplayOption, Palette,
    ...     load_alignment, render_alignment, buffer_to_text,
    ... )
    >>> alignment = load_alignment("reads.bam", "chr1", 10_000, 10_119)
    >>> buf = CellBuffer(120, 40)
    >>> render_alignment(
    ...     buf.area, buf, alignment, AlignmentView(left=10_000), Palette(),
    ...     [DisplayOption.SHOW_BASE_MODIFICATIONS],
    ... )
    >>> print(buffer_to_text(buf))
"""

__version__ = "0.1.0"

from .alignment import (
    AlignedRead,
    Alignment,
    Forward,
    Insertion,
    Mismatch,
    PairConflict,
    ReadPair,
    RenderingContext,
    RenderingContextKind,
    Reverse,
    build_rendering_contexts,
    load_alignment,
    pair_reads,
    stack_rows,
)
from .buffer import Cell, CellBuffer
from .constants import DisplayOption, ExportFormat, Theme
from .errors import GlyphError, StateError
from .export import (
    buffer_to_html,
    buffer_to_rich_text,
    buffer_to_svg,
    buffer_to_text,
    write_export,
)
from .layout import AlignmentView, OnScreenCoordinate, Placement, Rect
from .modifications import (
    BaseModification,
    ModificationMap,
    ModificationType,
    modification_data_from_segment,
    modification_tags,
    parse_modification_data,
)
from .rendering import Palette, render_alignment, render_context

__all__ = [
    "__version__",
    # Modifications
    "BaseModification",
    "ModificationMap",
    "ModificationType",
    "modification_data_from_segment",
    "modification_tags",
    "parse_modification_data",
    # Reads and rendering contexts
    "AlignedRead",
    "Alignment",
    "ReadPair",
    "RenderingContext",
    "RenderingContextKind",
    "Forward",
    "Reverse",
    "Insertion",
    "Mismatch",
    "PairConflict",
    "build_rendering_contexts",
    "load_alignment",
    "pair_reads",
    "stack_rows",
    # Layout and buffer
    "AlignmentView",
    "OnScreenCoordinate",
    "Placement",
    "Rect",
    "Cell",
    "CellBuffer",
    # Rendering
    "Palette",
    "render_alignment",
    "render_context",
    # Export
    "buffer_to_html",
    "buffer_to_rich_text",
    "buffer_to_svg",
    "buffer_to_text",
    "write_export",
    # Options and errors
    "DisplayOption",
    "ExportFormat",
    "Theme",
    "GlyphError",
    "StateError",
]
