"""
Snapshot export for rendered alignment buffers

This module serializes a filled CellBuffer to plain text, a self-contained
HTML page, or an SVG image, and converts it to rich Text for printing to a
terminal.
"""

import html
from pathlib import Path

from rich.color import Color, ColorType
from rich.text import Text

from .buffer import CellBuffer
from .constants import (
    SNAPSHOT_BACKGROUND,
    SNAPSHOT_FONT_FAMILY,
    SVG_CELL_HEIGHT,
    SVG_CELL_WIDTH,
    ExportFormat,
)
from .logging_config import get_logger

logger = get_logger(__name__)

# Approximations for the 16 standard ANSI colors
ANSI_COLORS = [
    (0, 0, 0),
    (128, 0, 0),
    (0, 128, 0),
    (128, 128, 0),
    (0, 0, 128),
    (128, 0, 128),
    (0, 128, 128),
    (192, 192, 192),
    (128, 128, 128),
    (255, 0, 0),
    (0, 255, 0),
    (255, 255, 0),
    (0, 0, 255),
    (255, 0, 255),
    (0, 255, 255),
    (255, 255, 255),
]

INHERIT = "inherit"


def indexed_to_rgb(index: int) -> tuple[int, int, int]:
    """
    Approximate a 256-color palette index as RGB

    0-15 use the standard ANSI approximations, 16-231 the 6x6x6 color cube
    and 232-255 the 24-step greyscale ramp.

    Examples:
        >>> indexed_to_rgb(196)
        (255, 0, 0)
        >>> indexed_to_rgb(232)
        (8, 8, 8)
    """
    if not 0 <= index <= 255:
        raise ValueError(f"Color index must be 0-255, got {index}")

    if index < 16:
        return ANSI_COLORS[index]

    if index < 232:
        n = index - 16

        def scale(v: int) -> int:
            return 0 if v == 0 else 55 + v * 40

        return scale(n // 36), scale((n // 6) % 6), scale(n % 6)

    value = 8 + (index - 232) * 10
    return value, value, value


def color_to_css(color: Color | None) -> str:
    """CSS color for a cell color ("inherit" for the terminal default)"""
    if color is None or color.type == ColorType.DEFAULT:
        return INHERIT
    if color.type == ColorType.TRUECOLOR:
        r, g, b = color.triplet
    else:
        r, g, b = indexed_to_rgb(color.number)
    return f"#{r:02x}{g:02x}{b:02x}"


def _escape_html(symbol: str) -> str:
    return (
        symbol.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace(" ", "&nbsp;")
    )


def _escape_svg(symbol: str) -> str:
    return (
        symbol.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&apos;")
    )


def buffer_to_text(buf: CellBuffer) -> str:
    """Render the buffer as plain text, one newline-terminated line per row"""
    return "".join(line + "\n" for line in buf.lines())


def buffer_to_html(buf: CellBuffer, title: str = "termgv snapshot") -> str:
    """
    Render the buffer as a self-contained HTML page

    Every cell becomes one ``<span>`` with inline foreground and background
    colors inside a ``<pre>`` block.
    """
    body = []
    for row in buf.rows:
        for cell in row:
            body.append(
                f'<span style="color:{color_to_css(cell.fg)};'
                f'background-color:{color_to_css(cell.bg)}">'
                f"{_escape_html(cell.symbol)}</span>"
            )
        body.append("\n")

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{html.escape(title)}</title>
  <style>
    body {{
      background: {SNAPSHOT_BACKGROUND};
      margin: 0;
      padding: 1em;
    }}
    pre {{
      font-family: {SNAPSHOT_FONT_FAMILY};
      font-size: 13px;
      line-height: 1.4;
      white-space: pre;
      margin: 0;
    }}
  </style>
</head>
<body>
<pre>{"".join(body)}</pre>
</body>
</html>
"""


def buffer_to_svg(buf: CellBuffer) -> str:
    """
    Render the buffer as an SVG image

    Cells are 8x16 pixels. Each cell with a non-default background gets a
    ``<rect>`` and each non-blank cell a ``<text>`` element.
    """
    width = buf.width * SVG_CELL_WIDTH
    height = buf.height * SVG_CELL_HEIGHT

    rects = []
    texts = []
    for y, row in enumerate(buf.rows):
        for x, cell in enumerate(row):
            px = x * SVG_CELL_WIDTH
            py = y * SVG_CELL_HEIGHT

            bg = color_to_css(cell.bg)
            if bg != INHERIT:
                rects.append(
                    f'<rect x="{px}" y="{py}" width="{SVG_CELL_WIDTH}" '
                    f'height="{SVG_CELL_HEIGHT}" fill="{bg}"/>'
                )

            if all(c in (" ", "\0") for c in cell.symbol):
                continue

            # Baseline near the bottom of the cell
            text_y = py + SVG_CELL_HEIGHT - 3
            texts.append(
                f'<text x="{px}" y="{text_y}" fill="{color_to_css(cell.fg)}">'
                f"{_escape_svg(cell.symbol)}</text>"
            )

    rects_block = "\n".join(rects)
    texts_block = "\n".join(texts)
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<svg xmlns="http://www.w3.org/2000/svg"
     width="{width}" height="{height}"
     viewBox="0 0 {width} {height}">
  <defs>
    <style>
      text {{
        font-family: {SNAPSHOT_FONT_FAMILY};
        font-size: {SVG_CELL_HEIGHT}px;
        font-weight: normal;
      }}
    </style>
  </defs>
  <!-- background fill -->
  <rect width="{width}" height="{height}" fill="{SNAPSHOT_BACKGROUND}"/>
  <!-- cell backgrounds -->
{rects_block}
  <!-- characters -->
{texts_block}
</svg>
"""


def buffer_to_rich_text(buf: CellBuffer) -> Text:
    """Convert the buffer to styled rich Text for printing to a console"""
    text = Text(no_wrap=True, overflow="crop")
    for y, row in enumerate(buf.rows):
        if y:
            text.append("\n")
        for cell in row:
            text.append(cell.symbol, style=cell.style)
    return text


def write_export(buf: CellBuffer, output_path: str | Path, fmt: ExportFormat) -> Path:
    """
    Write a snapshot of the buffer to a file

    Args:
        buf: Rendered buffer
        output_path: Destination file
        fmt: TEXT, HTML or SVG

    Returns:
        Path that was written

    Raises:
        ValueError: If the format cannot be written to a file
    """
    serializers = {
        ExportFormat.TEXT: buffer_to_text,
        ExportFormat.HTML: buffer_to_html,
        ExportFormat.SVG: buffer_to_svg,
    }
    if fmt not in serializers:
        raise ValueError(f"Cannot export {fmt.value} snapshots to a file")

    output_path = Path(output_path)
    output_path.write_text(serializers[fmt](buf), encoding="utf-8")
    logger.info(f"Wrote {fmt.value} snapshot to {output_path}")
    return output_path
