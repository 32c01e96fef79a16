"""Aligned reads and their rendering contexts

A read is drawn as a list of rendering contexts: contiguous visual segments
(a matched run, a deletion, one soft-clipped base, the gap between mates)
decorated with point modifiers (strand arrow, insertion marker, mismatched
base, pair conflict). This module defines those types and builds them from
CIGAR operations, pairs mates, and stacks reads into display rows.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

import numpy as np
import pysam

from .constants import ROW_SPACING
from .logging_config import get_logger
from .modifications import (
    MATCH_OPS,
    REFERENCE_ONLY_OPS,
    ModificationMap,
    build_query_to_reference_map,
    modification_tags,
    parse_modification_data,
)

logger = get_logger(__name__)


# ==============================================================================
# Rendering context model
# ==============================================================================


class RenderingContextKind(Enum):
    """Kinds of visual segment a read is split into"""

    MATCH = "match"
    DELETION = "deletion"
    SOFT_CLIP = "soft_clip"
    PAIR_GAP = "pair_gap"  # Unsequenced insert between two mates
    PAIR_OVERLAP = "pair_overlap"  # Region covered by both mates


@dataclass(frozen=True)
class Forward:
    """Forward strand arrow at the end of the context"""


@dataclass(frozen=True)
class Reverse:
    """Reverse strand arrow at the start of the context"""


@dataclass(frozen=True)
class Insertion:
    """Inserted bases before the context start"""

    length: int


@dataclass(frozen=True)
class Mismatch:
    """Read base that differs from the reference"""

    position: int  # 1-based reference position
    base: int  # Base as a byte value (e.g. ord("A"))


@dataclass(frozen=True)
class PairConflict:
    """Position where two overlapping mates disagree"""

    position: int  # 1-based reference position


RenderingContextModifier = Forward | Reverse | Insertion | Mismatch | PairConflict


@dataclass
class RenderingContext:
    """One visual segment of a read

    Attributes:
        kind: Segment kind
        start: First 1-based reference position covered (inclusive)
        end: Last 1-based reference position covered (inclusive)
        modifiers: Point annotations drawn on top of the segment, in order
        base: Clipped base as a byte value (SOFT_CLIP only)
    """

    kind: RenderingContextKind
    start: int
    end: int
    modifiers: list[RenderingContextModifier] = field(default_factory=list)
    base: int | None = None

    def __post_init__(self):
        if self.start > self.end:
            raise ValueError(
                f"Rendering context start {self.start} is after end {self.end}"
            )
        if self.kind == RenderingContextKind.SOFT_CLIP and self.base is None:
            raise ValueError("Soft clip context requires a base")

    @classmethod
    def soft_clip(cls, position: int, base: int) -> "RenderingContext":
        return cls(RenderingContextKind.SOFT_CLIP, position, position, base=base)


# ==============================================================================
# Reads, pairs and rows
# ==============================================================================


@dataclass
class AlignedRead:
    """Aligned read with everything the renderer needs

    Attributes:
        read_id: Query name
        sequence: Read bases (SEQ, soft clips included)
        cigar: pysam-style (operation, length) tuples
        start: 1-based reference position of the first aligned base
        is_reverse: Whether the read aligned to the reverse strand
        mm_tag: Raw MM tag text, if present
        ml_bytes: Raw ML probability bytes, if present
        rendering_contexts: Visual segments (see build_rendering_contexts)
        base_modifications: Decoded MM/ML calls by reference position
    """

    read_id: str
    sequence: str
    cigar: list[tuple[int, int]]
    start: int
    is_reverse: bool = False
    mm_tag: str | None = None
    ml_bytes: np.ndarray | None = None
    rendering_contexts: list[RenderingContext] = field(default_factory=list)
    base_modifications: ModificationMap = field(default_factory=dict)

    @property
    def reference_length(self) -> int:
        return sum(
            length
            for operation, length in self.cigar
            if operation in MATCH_OPS or operation in REFERENCE_ONLY_OPS
        )

    @property
    def end(self) -> int:
        """Last 1-based reference position covered by the alignment"""
        return self.start + max(self.reference_length, 1) - 1

    def decode_modifications(self) -> ModificationMap:
        """Decode ``mm_tag``/``ml_bytes`` into ``base_modifications``"""
        if self.mm_tag is None:
            self.base_modifications = {}
        else:
            ml = self.ml_bytes if self.ml_bytes is not None else []
            self.base_modifications = parse_modification_data(
                self.mm_tag, ml, self.sequence.upper(), self.cigar, self.start
            )
        return self.base_modifications

    @classmethod
    def from_segment(cls, segment: pysam.AlignedSegment) -> "AlignedRead":
        """Build an AlignedRead from a mapped pysam alignment

        Raises:
            ValueError: If the segment is unmapped
        """
        if segment.is_unmapped:
            raise ValueError(f"Read {segment.query_name} is unmapped")

        mm_tag, ml_bytes = modification_tags(segment)
        read = cls(
            read_id=segment.query_name,
            sequence=(segment.query_sequence or "").upper(),
            cigar=list(segment.cigartuples or []),
            start=segment.reference_start + 1,
            is_reverse=segment.is_reverse,
            mm_tag=mm_tag,
            ml_bytes=ml_bytes,
        )
        read.decode_modifications()
        return read


@dataclass
class ReadPair:
    """Two mates drawn together on one row"""

    read_1_index: int
    read_2_index: int | None
    rendering_contexts: list[RenderingContext]
    start: int
    end: int
    row: int = 0


def _reference_base(reference: str | None, reference_start: int, position: int):
    if reference is None:
        return None
    offset = position - reference_start
    if 0 <= offset < len(reference):
        return reference[offset].upper()
    return None


def build_rendering_contexts(
    read: AlignedRead, reference: str | None = None, reference_start: int = 1
) -> list[RenderingContext]:
    """
    Split a read into rendering contexts by walking its CIGAR

    - Match-class runs become MATCH contexts, with a Mismatch modifier for each
      base that differs from ``reference`` (N on either side is ignored)
    - Deletions become DELETION contexts; reference skips (N) draw nothing
    - Each soft-clipped base becomes a one-position SOFT_CLIP context next to
      the aligned part of the read
    - Insertions become an Insertion modifier on the following context; an
      insertion with no context after it is not drawn
    - The first context of a reverse read gets a Reverse arrow, the last
      context of a forward read gets a Forward arrow

    Args:
        read: Aligned read
        reference: Reference bases for mismatch detection (optional)
        reference_start: 1-based position of ``reference[0]``

    Returns:
        Rendering contexts in reference order
    """
    contexts: list[RenderingContext] = []
    pending_insertion = 0
    query_cursor = 0
    ref_cursor = read.start
    aligned_seen = False

    def add(context: RenderingContext) -> None:
        nonlocal pending_insertion
        if pending_insertion:
            context.modifiers.append(Insertion(pending_insertion))
            pending_insertion = 0
        contexts.append(context)

    for operation, length in read.cigar:
        if operation == pysam.CSOFT_CLIP:
            clipped = read.sequence[query_cursor : query_cursor + length]
            first = ref_cursor - length if not aligned_seen else ref_cursor
            for i, base in enumerate(clipped):
                position = first + i
                if position >= 1:
                    add(RenderingContext.soft_clip(position, ord(base)))
            query_cursor += length
        elif operation == pysam.CINS:
            pending_insertion += length
            query_cursor += length
        elif operation == pysam.CDEL:
            add(
                RenderingContext(
                    RenderingContextKind.DELETION, ref_cursor, ref_cursor + length - 1
                )
            )
            ref_cursor += length
            aligned_seen = True
        elif operation == pysam.CREF_SKIP:
            ref_cursor += length
            aligned_seen = True
        elif operation in MATCH_OPS:
            mismatches = []
            for i in range(length if reference is not None else 0):
                if query_cursor + i >= len(read.sequence):
                    # SEQ is "*" or shorter than the CIGAR
                    break
                ref_base = _reference_base(reference, reference_start, ref_cursor + i)
                read_base = read.sequence[query_cursor + i]
                if ref_base is None or "N" in (ref_base, read_base):
                    continue
                if read_base != ref_base:
                    mismatches.append(Mismatch(ref_cursor + i, ord(read_base)))
            context = RenderingContext(
                RenderingContextKind.MATCH, ref_cursor, ref_cursor + length - 1
            )
            add(context)
            context.modifiers.extend(mismatches)
            query_cursor += length
            ref_cursor += length
            aligned_seen = True
        # Hard clips and padding draw nothing

    if pending_insertion:
        logger.debug(
            f"Read {read.read_id} ends with a {pending_insertion}bp insertion"
        )

    if contexts:
        if read.is_reverse:
            contexts[0].modifiers.insert(0, Reverse())
        else:
            contexts[-1].modifiers.insert(0, Forward())

    return contexts


def _aligned_bases(read: AlignedRead) -> dict[int, str]:
    query_to_ref = build_query_to_reference_map(read.cigar, read.start)
    return {
        ref: read.sequence[query]
        for query, ref in query_to_ref.items()
        if query < len(read.sequence)
    }


def _mismatch_bases(read: AlignedRead) -> dict[int, int]:
    return {
        modifier.position: modifier.base
        for context in read.rendering_contexts
        for modifier in context.modifiers
        if isinstance(modifier, Mismatch)
    }


def _overlap_contexts(
    first: AlignedRead, second: AlignedRead, start: int, end: int
) -> list[RenderingContext]:
    """
    Build the PAIR_OVERLAP run covering ``start``-``end``

    The run is drawn over both mates, so it carries the markers they place
    inside it: strand arrows anchored in the overlap, insertion markers (the
    run is split where each one starts) and mismatches. Positions where the
    mates report different bases get a PairConflict instead.
    """
    insertions: dict[int, int] = {}
    forward = False
    reverse = False
    for read in (first, second):
        for context in read.rendering_contexts:
            if context.kind == RenderingContextKind.SOFT_CLIP:
                continue
            for modifier in context.modifiers:
                if isinstance(modifier, Insertion) and start <= context.start <= end:
                    insertions[context.start] = (
                        insertions.get(context.start, 0) + modifier.length
                    )
                elif isinstance(modifier, Forward) and start <= context.end <= end:
                    forward = True
                elif isinstance(modifier, Reverse) and start <= context.start <= end:
                    reverse = True

    first_bases = _aligned_bases(first)
    second_bases = _aligned_bases(second)
    first_mismatches = _mismatch_bases(first)
    second_mismatches = _mismatch_bases(second)

    points: list[Mismatch | PairConflict] = []
    for position in range(start, end + 1):
        first_base = first_bases.get(position)
        second_base = second_bases.get(position)
        if None not in (first_base, second_base) and first_base != second_base:
            points.append(PairConflict(position))
            continue
        base = first_mismatches.get(position, second_mismatches.get(position))
        if base is not None:
            points.append(Mismatch(position, base))

    breaks = sorted({start, *insertions})
    contexts = []
    for i, run_start in enumerate(breaks):
        run_end = breaks[i + 1] - 1 if i + 1 < len(breaks) else end
        modifiers: list[RenderingContextModifier] = []
        if run_start in insertions:
            modifiers.append(Insertion(insertions[run_start]))
        modifiers.extend(p for p in points if run_start <= p.position <= run_end)
        contexts.append(
            RenderingContext(
                RenderingContextKind.PAIR_OVERLAP, run_start, run_end, modifiers
            )
        )

    if reverse:
        contexts[0].modifiers.insert(0, Reverse())
    if forward:
        contexts[-1].modifiers.insert(0, Forward())
    return contexts


def _after(contexts: list[RenderingContext], end: int) -> list[RenderingContext]:
    """Second-mate contexts with everything up to ``end`` cut away"""
    kept = []
    for context in contexts:
        if context.kind == RenderingContextKind.SOFT_CLIP or context.start > end:
            kept.append(context)
        elif context.end > end:
            modifiers = [
                m
                for m in context.modifiers
                if isinstance(m, Forward)
                or (isinstance(m, Mismatch) and m.position > end)
            ]
            kept.append(
                RenderingContext(context.kind, end + 1, context.end, modifiers)
            )
    return kept


def _pair_contexts(first: AlignedRead, second: AlignedRead) -> list[RenderingContext]:
    contexts = list(first.rendering_contexts)

    if second.start > first.end + 1:
        contexts.append(
            RenderingContext(
                RenderingContextKind.PAIR_GAP, first.end + 1, second.start - 1
            )
        )
        contexts.extend(second.rendering_contexts)
    elif second.start <= first.end:
        overlap_end = min(first.end, second.end)
        contexts.extend(_overlap_contexts(first, second, second.start, overlap_end))
        contexts.extend(_after(second.rendering_contexts, overlap_end))
    else:
        contexts.extend(second.rendering_contexts)

    return contexts


def pair_reads(reads: Sequence[AlignedRead]) -> list[ReadPair]:
    """
    Group reads into mate pairs by read name

    Mates are ordered by alignment start. The pair's contexts are the first
    mate's, then a PAIR_GAP between the mates or a PAIR_OVERLAP run where they
    overlap, then the second mate's. The overlap run carries the mismatches
    and markers that fall inside it plus a PairConflict wherever the mates
    disagree, and the second mate is cut back to start after it.
    Reads without a mate, and records beyond the second for a name, become
    single-read pairs.

    Args:
        reads: Reads with rendering contexts already built

    Returns:
        List of ReadPair objects in order of first appearance
    """
    by_name: dict[str, list[int]] = {}
    for index, read in enumerate(reads):
        by_name.setdefault(read.read_id, []).append(index)

    pairs = []
    for indices in by_name.values():
        mates = sorted(indices[:2], key=lambda i: reads[i].start)
        extras = indices[2:]

        if len(mates) == 2:
            first, second = reads[mates[0]], reads[mates[1]]
            pairs.append(
                ReadPair(
                    read_1_index=mates[0],
                    read_2_index=mates[1],
                    rendering_contexts=_pair_contexts(first, second),
                    start=min(first.start, second.start),
                    end=max(first.end, second.end),
                )
            )
        else:
            extras = mates + extras

        for index in extras:
            read = reads[index]
            pairs.append(
                ReadPair(
                    read_1_index=index,
                    read_2_index=None,
                    rendering_contexts=list(read.rendering_contexts),
                    start=read.start,
                    end=read.end,
                )
            )

    return pairs


def stack_rows(
    intervals: Sequence[tuple[int, int]], spacing: int = ROW_SPACING
) -> tuple[list[int], list[list[int]]]:
    """
    Assign intervals to rows so that no two on a row overlap

    Intervals are placed by increasing start on the first row whose last
    interval ends at least ``spacing`` positions before.

    Args:
        intervals: (start, end) inclusive reference spans
        spacing: Free positions required between neighbours on a row

    Returns:
        (ys, ys_index): row of each interval, and interval indices per row

    Examples:
        >>> stack_rows([(1, 10), (5, 20), (12, 15)])
        ([0, 1, 0], [[0, 2], [1]])
    """
    ys = [0] * len(intervals)
    ys_index: list[list[int]] = []
    row_ends: list[int] = []

    for index in sorted(range(len(intervals)), key=lambda i: intervals[i][0]):
        start, end = intervals[index]
        for row, row_end in enumerate(row_ends):
            if row_end + spacing < start:
                break
        else:
            row = len(row_ends)
            row_ends.append(end)
            ys_index.append([])

        row_ends[row] = end
        ys[index] = row
        ys_index[row].append(index)

    return ys, ys_index


@dataclass
class Alignment:
    """Reads of one region with their row placement

    Attributes:
        reads: Loaded reads
        ys: Row of each read
        ys_index: Read indices drawn on each row
        read_pairs: Mate pairs (None until compute_pairs is called)
        show_pairs: Visibility flag for each entry of read_pairs
        region: (start, end) 1-based region the reads were loaded for
    """

    reads: list[AlignedRead]
    ys: list[int] = field(default_factory=list)
    ys_index: list[list[int]] = field(default_factory=list)
    read_pairs: list[ReadPair] | None = None
    show_pairs: list[bool] | None = None
    region: tuple[int, int] | None = None

    @classmethod
    def from_reads(
        cls, reads: list[AlignedRead], region: tuple[int, int] | None = None
    ) -> "Alignment":
        ys, ys_index = stack_rows([(read.start, read.end) for read in reads])
        return cls(reads=reads, ys=ys, ys_index=ys_index, region=region)

    def compute_pairs(self) -> list[ReadPair]:
        """Pair mates, stack pairs into rows and flag the visible ones"""
        pairs = pair_reads(self.reads)
        rows, _ = stack_rows([(pair.start, pair.end) for pair in pairs])
        for pair, row in zip(pairs, rows):
            pair.row = row

        if self.region is None:
            show = [True] * len(pairs)
        else:
            region_start, region_end = self.region
            show = [
                pair.start <= region_end and pair.end >= region_start
                for pair in pairs
            ]

        self.read_pairs = pairs
        self.show_pairs = show
        logger.debug(f"Computed {len(pairs)} pairs from {len(self.reads)} reads")
        return pairs

    @property
    def depth(self) -> int:
        """Number of rows in individual mode"""
        return len(self.ys_index)


def load_alignment(
    bam_path: str | Path,
    contig: str,
    start: int,
    end: int,
    reference_path: str | Path | None = None,
    include_secondary: bool = False,
) -> Alignment:
    """
    Load the reads overlapping a region of an indexed BAM file

    Args:
        bam_path: Path to an indexed BAM file
        contig: Reference sequence name
        start: 1-based region start
        end: 1-based region end (inclusive)
        reference_path: Indexed FASTA used to mark mismatches (optional)
        include_secondary: Keep secondary alignments

    Returns:
        Alignment with rendering contexts, modifications and rows computed

    Raises:
        FileNotFoundError: If the BAM or FASTA file does not exist
        ValueError: If the region is empty
    """
    bam_path = Path(bam_path)
    if not bam_path.exists():
        raise FileNotFoundError(f"BAM file not found: {bam_path}")
    if start < 1 or end < start:
        raise ValueError(f"Invalid region {contig}:{start}-{end}")

    reference = None
    reference_start = 1
    if reference_path is not None:
        reference_path = Path(reference_path)
        if not reference_path.exists():
            raise FileNotFoundError(f"FASTA file not found: {reference_path}")
        with pysam.FastaFile(str(reference_path)) as fasta:
            # Pad by a read length worth of bases so overhanging reads get mismatches
            reference_start = max(1, start - 1000)
            reference = fasta.fetch(contig, reference_start - 1, end + 1000)

    reads = []
    with pysam.AlignmentFile(str(bam_path), "rb") as bam:
        for segment in _fetch_segments(bam, contig, start, end):
            if segment.is_secondary and not include_secondary:
                continue
            read = AlignedRead.from_segment(segment)
            read.rendering_contexts = build_rendering_contexts(
                read, reference, reference_start
            )
            reads.append(read)

    logger.info(f"Loaded {len(reads)} reads from {contig}:{start}-{end}")
    return Alignment.from_reads(reads, region=(start, end))


def _fetch_segments(
    bam: pysam.AlignmentFile, contig: str, start: int, end: int
) -> Iterable[pysam.AlignedSegment]:
    for segment in bam.fetch(contig, start - 1, end):
        if segment.is_unmapped or not segment.cigartuples:
            continue
        yield segment
