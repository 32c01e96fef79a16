"""Command-line interface for headless alignment snapshots"""

import argparse
import re
import sys
from pathlib import Path

from rich.console import Console

from .alignment import load_alignment
from .buffer import CellBuffer
from .constants import (
    APP_DESCRIPTION,
    APP_NAME,
    APP_VERSION,
    DEFAULT_VIEW_HEIGHT,
    DEFAULT_VIEW_WIDTH,
    DisplayOption,
    ExportFormat,
    Theme,
)
from .errors import GlyphError, StateError
from .export import buffer_to_rich_text, write_export
from .layout import AlignmentView
from .rendering import Palette, render_alignment

console = Console()

REGION_PATTERN = re.compile(r"^(?P<contig>[^:]+):(?P<start>[\d,]+)(-(?P<end>[\d,]+))?$")


def parse_region(region: str, width: int) -> tuple[str, int, int]:
    """
    Parse a samtools-style region string

    A region without an end is widened to one screen of bases.

    Examples:
        >>> parse_region("chr1:1,000-1,099", 120)
        ('chr1', 1000, 1099)
        >>> parse_region("chr1:500", 100)
        ('chr1', 500, 599)
    """
    match = REGION_PATTERN.match(region.strip())
    if match is None:
        raise ValueError(f"Invalid region '{region}' (expected contig:start[-end])")

    contig = match.group("contig")
    start = int(match.group("start").replace(",", ""))
    if match.group("end"):
        end = int(match.group("end").replace(",", ""))
    else:
        end = start + width - 1

    if start < 1 or end < start:
        raise ValueError(f"Invalid region '{region}'")
    return contig, start, end


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description=f"{APP_NAME} - {APP_DESCRIPTION}",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  termgv reads.bam chr1:10000-10120                  Draw a region in the terminal
  termgv reads.bam chr1:10000 --mods                 Color 5mC/5hmC/6mA calls
  termgv reads.bam chr1:10000 --paired               Draw mates together
  termgv reads.bam chr1:10000 -f svg -o region.svg   Save an SVG snapshot
        """,
    )
    parser.add_argument("bam", type=str, help="Indexed BAM file")
    parser.add_argument("region", type=str, help="Region as contig:start[-end]")
    parser.add_argument(
        "--reference", "-r", type=str, help="Indexed FASTA for mismatch display"
    )
    parser.add_argument(
        "--paired", action="store_true", help="Draw read pairs on one row"
    )
    parser.add_argument(
        "--mods", action="store_true", help="Color bases by modification calls"
    )
    parser.add_argument("--width", type=int, default=DEFAULT_VIEW_WIDTH)
    parser.add_argument("--height", type=int, default=DEFAULT_VIEW_HEIGHT)
    parser.add_argument(
        "--theme", choices=[t.value for t in Theme], default=Theme.DARK.value
    )
    parser.add_argument(
        "--format",
        "-f",
        dest="export_format",
        choices=[f.value for f in ExportFormat],
        default=None,
        help="Output format (inferred from --output extension if omitted)",
    )
    parser.add_argument("--output", "-o", type=str, help="Snapshot file to write")
    parser.add_argument(
        "--version", "-v", action="version", version=f"{APP_NAME} {APP_VERSION}"
    )
    return parser


def _resolve_format(args) -> ExportFormat:
    if args.export_format:
        return ExportFormat(args.export_format)
    if args.output:
        format_map = {".html": "html", ".svg": "svg", ".txt": "text"}
        return ExportFormat(format_map.get(Path(args.output).suffix.lower(), "text"))
    return ExportFormat.TERMINAL


def run(args) -> int:
    """
    Render a region and print or save it

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code: 0 for success, 1 for error
    """
    try:
        if args.width < 1 or args.height < 1:
            raise ValueError("--width and --height must be positive")

        export_format = _resolve_format(args)
        if export_format != ExportFormat.TERMINAL and not args.output:
            raise ValueError(f"--output is required for {export_format.value} export")

        contig, start, end = parse_region(args.region, args.width)
        alignment = load_alignment(args.bam, contig, start, end, args.reference)

        options = []
        if args.paired:
            options.append(DisplayOption.VIEW_AS_PAIRS)
            alignment.compute_pairs()
        if args.mods:
            options.append(DisplayOption.SHOW_BASE_MODIFICATIONS)

        buf = CellBuffer(args.width, args.height)
        view = AlignmentView(left=start)
        render_alignment(
            buf.area, buf, alignment, view, Palette(Theme(args.theme)), options
        )

        if export_format == ExportFormat.TERMINAL:
            console.print(buffer_to_rich_text(buf))
        else:
            path = write_export(buf, args.output, export_format)
            console.print(
                f"[green]Saved {export_format.value} snapshot:[/green] {path}"
            )

    except (FileNotFoundError, ValueError, StateError, GlyphError) as e:
        console.print(f"[red]Error:[/red] {e}")
        return 1

    return 0


def main(argv: list[str] | None = None) -> int:
    """Entry point for the termgv command"""
    args = build_parser().parse_args(argv)
    return run(args)


if __name__ == "__main__":
    sys.exit(main())
