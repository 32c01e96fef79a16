"""
Alignment track renderer

Composites the rendering contexts of every visible read onto a CellBuffer.
Each context is first resolved to a list of on-screen writes (base glyphs,
then modifier overlays), which are then applied to the buffer in order, so
later writes win where they overlap.
"""

from collections.abc import Iterable
from dataclasses import dataclass

from rich.color import Color
from rich.style import Style

from ..alignment import (
    Alignment,
    Forward,
    Insertion,
    Mismatch,
    PairConflict,
    RenderingContext,
    RenderingContextKind,
    Reverse,
)
from ..buffer import CellBuffer
from ..constants import (
    ALIGNED_GLYPH,
    DELETION_GLYPH,
    FORWARD_GLYPH,
    INSERTION_GLYPH,
    PAIR_CONFLICT_GLYPH,
    PAIR_GAP_GLYPH,
    PAIR_OVERLAP_GLYPH,
    REVERSE_GLYPH,
    DisplayOption,
)
from ..errors import GlyphError, StateError
from ..layout import AlignmentView, Rect, onscreen_start_and_length
from ..logging_config import get_logger
from ..modifications import ModificationMap, ModificationType
from .palette import Palette

logger = get_logger(__name__)


@dataclass
class OnScreenRenderingContext:
    """A string to write at an area-relative (x, y)"""

    x: int
    y: int
    string: str
    style: Style


def glyph_from_byte(value: int) -> str:
    """
    Turn a base byte into its display glyph

    Raises:
        GlyphError: If the byte is not a single-byte UTF-8 character
    """
    try:
        return bytes([value]).decode("utf-8")
    except (ValueError, TypeError) as e:
        raise GlyphError(f"Cannot render byte {value!r} as a glyph") from e


def modification_background_at(
    position: int, base_modifications: ModificationMap, palette: Palette
) -> Color | None:
    """
    Background color for a reference position from its modification calls

    5mC wins over 5hmC, which wins over any other call at the same position.

    Returns:
        Palette color for the chosen call, or None if no call was made here
    """
    calls = base_modifications.get(position)
    if not calls:
        return None

    for preferred in (ModificationType.FIVE_MC, ModificationType.FIVE_HMC):
        chosen = next((m for m in calls if m.modification_type == preferred), None)
        if chosen is not None:
            break
    else:
        chosen = calls[0]

    return palette.modification_color(chosen.modification_type, chosen.probability)


def _run(x: int, y: int, glyph: str, length: int, style: Style):
    return OnScreenRenderingContext(x=x, y=y, string=glyph * length, style=style)


def get_read_rendering_info(
    context: RenderingContext,
    y: int,
    alignment_view: AlignmentView,
    area: Rect,
    palette: Palette,
    base_modifications: ModificationMap | None = None,
) -> list[OnScreenRenderingContext] | None:
    """
    Resolve one rendering context to on-screen writes

    Args:
        context: Segment to draw
        y: Alignment row of the read
        alignment_view: Viewport mapping reference positions and rows to cells
        area: Area of the buffer used for the alignment track
        palette: Color policy
        base_modifications: Decoded calls for the read, or None to skip
            modification coloring

    Returns:
        Writes with area-relative coordinates, base glyphs first and modifier
        overlays after, or None if the context is off screen

    Raises:
        GlyphError: If a soft-clipped or mismatched base is not a valid glyph
    """
    onscreen_y = alignment_view.onscreen_y_coordinate(y, area)
    if not onscreen_y.is_on_screen:
        return None
    cell_y = onscreen_y.value

    start_coordinate = alignment_view.onscreen_x_coordinate(context.start, area)
    end_coordinate = alignment_view.onscreen_x_coordinate(context.end, area)

    span = onscreen_start_and_length(start_coordinate, end_coordinate, area)
    if span is None:
        return None
    onscreen_x, length = span

    output: list[OnScreenRenderingContext] = []

    # Base glyphs
    kind = context.kind
    if kind == RenderingContextKind.MATCH:
        if base_modifications is not None:
            # One cell per position so each can carry its own background
            for position in range(context.start, context.end + 1):
                coordinate = alignment_view.onscreen_x_coordinate(position, area)
                if not coordinate.is_on_screen:
                    continue
                bg = modification_background_at(
                    position, base_modifications, palette
                )
                output.append(
                    OnScreenRenderingContext(
                        x=coordinate.value,
                        y=cell_y,
                        string=ALIGNED_GLYPH,
                        style=Style(
                            color=palette.match_fg, bgcolor=bg or palette.match_bg
                        ),
                    )
                )
        else:
            output.append(
                _run(
                    onscreen_x,
                    cell_y,
                    ALIGNED_GLYPH,
                    length,
                    Style(color=palette.match_fg, bgcolor=palette.match_bg),
                )
            )
    elif kind == RenderingContextKind.DELETION:
        output.append(
            _run(
                onscreen_x,
                cell_y,
                DELETION_GLYPH,
                length,
                Style(color=palette.deletion_color, bgcolor=palette.background),
            )
        )
    elif kind == RenderingContextKind.PAIR_GAP:
        output.append(
            _run(
                onscreen_x,
                cell_y,
                PAIR_GAP_GLYPH,
                length,
                Style(color=palette.pair_gap_color, bgcolor=palette.background),
            )
        )
    elif kind == RenderingContextKind.PAIR_OVERLAP:
        output.append(
            _run(
                onscreen_x,
                cell_y,
                PAIR_OVERLAP_GLYPH,
                length,
                Style(color=palette.pair_overlap_color, bgcolor=palette.background),
            )
        )
    elif kind == RenderingContextKind.SOFT_CLIP:
        output.append(
            OnScreenRenderingContext(
                x=onscreen_x,
                y=cell_y,
                string=glyph_from_byte(context.base),
                style=Style(bgcolor=palette.softclip_color(context.base)),
            )
        )
    else:
        raise TypeError(f"Unknown rendering context kind: {kind}")

    if not output:
        # Modified match whose visible cells all fell between zoomed columns
        return output

    first_style = output[0].style

    # Modifier overlays
    for modifier in context.modifiers:
        if isinstance(modifier, Forward):
            if end_coordinate.is_on_screen:
                output.append(
                    OnScreenRenderingContext(
                        end_coordinate.value, cell_y, FORWARD_GLYPH, first_style
                    )
                )
        elif isinstance(modifier, Reverse):
            if start_coordinate.is_on_screen:
                output.append(
                    OnScreenRenderingContext(
                        start_coordinate.value, cell_y, REVERSE_GLYPH, first_style
                    )
                )
        elif isinstance(modifier, Insertion):
            if start_coordinate.is_on_screen:
                output.append(
                    OnScreenRenderingContext(
                        start_coordinate.value,
                        cell_y,
                        INSERTION_GLYPH,
                        Style(color=palette.insertion_color),
                    )
                )
        elif isinstance(modifier, Mismatch):
            coordinate = alignment_view.onscreen_x_coordinate(modifier.position, area)
            if coordinate.is_on_screen:
                mismatch_fg = palette.mismatch_color(modifier.base)
                if base_modifications is not None:
                    # Keep the modification background, swap only the foreground
                    bg = modification_background_at(
                        modifier.position, base_modifications, palette
                    )
                    style = Style(color=mismatch_fg, bgcolor=bg or palette.match_bg)
                else:
                    style = first_style + Style(color=mismatch_fg)
                output.append(
                    OnScreenRenderingContext(
                        coordinate.value,
                        cell_y,
                        glyph_from_byte(modifier.base),
                        style,
                    )
                )
        elif isinstance(modifier, PairConflict):
            coordinate = alignment_view.onscreen_x_coordinate(modifier.position, area)
            if coordinate.is_on_screen:
                output.append(
                    OnScreenRenderingContext(
                        coordinate.value, cell_y, PAIR_CONFLICT_GLYPH, first_style
                    )
                )
        else:
            raise TypeError(f"Unknown rendering context modifier: {modifier!r}")

    return output


def render_context(
    context: RenderingContext,
    y: int,
    buf: CellBuffer,
    alignment_view: AlignmentView,
    area: Rect,
    palette: Palette,
    base_modifications: ModificationMap | None = None,
) -> int:
    """
    Draw one rendering context into ``buf``

    Returns:
        Number of writes applied (0 when the context is off screen)
    """
    writes = get_read_rendering_info(
        context, y, alignment_view, area, palette, base_modifications
    )
    if not writes:
        return 0

    for write in writes:
        buf.set_string(area.x + write.x, area.y + write.y, write.string, write.style)
    return len(writes)


def render_alignment(
    area: Rect,
    buf: CellBuffer,
    alignment: Alignment,
    alignment_view: AlignmentView,
    palette: Palette,
    options: Iterable[DisplayOption] = (),
) -> None:
    """
    Draw every visible read (or read pair) into ``buf``

    In paired mode each visible pair is drawn on its own row and modification
    coloring is never applied. In individual mode a read's decoded
    modifications are used when SHOW_BASE_MODIFICATIONS is set and the read
    has any.

    Args:
        area: Area of the buffer used for the alignment track
        buf: Destination buffer (written in place)
        alignment: Reads with rows (and pairs, for paired mode)
        alignment_view: Viewport
        palette: Color policy
        options: Active display options

    Raises:
        StateError: If paired mode is requested before pairs are computed
        GlyphError: If a base cannot be rendered as a glyph
    """
    if area.height < 1:
        return

    options = set(options)
    display_as_pairs = DisplayOption.VIEW_AS_PAIRS in options
    show_modifications = DisplayOption.SHOW_BASE_MODIFICATIONS in options

    if display_as_pairs and (
        alignment.read_pairs is None or alignment.show_pairs is None
    ):
        raise StateError("Read pairs are not calculated before rendering.")

    writes = 0
    if display_as_pairs:
        for read_pair, show_pair in zip(alignment.read_pairs, alignment.show_pairs):
            if not show_pair:
                continue
            for context in read_pair.rendering_contexts:
                writes += render_context(
                    context, read_pair.row, buf, alignment_view, area, palette
                )
    else:
        for y, read_indexes in enumerate(alignment.ys_index):
            for read_index in read_indexes:
                read = alignment.reads[read_index]
                mods = None
                if show_modifications and read.base_modifications:
                    mods = read.base_modifications
                for context in read.rendering_contexts:
                    writes += render_context(
                        context, y, buf, alignment_view, area, palette, mods
                    )

    logger.debug(
        f"Rendered alignment ({'paired' if display_as_pairs else 'individual'}): "
        f"{writes} writes"
    )
