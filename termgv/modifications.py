"""Base modification (MM/ML) decoding for termgv

This module decodes per-base modification calls from the SAM MM/ML tag pair
into a map keyed by 1-based reference position, ready for the alignment
renderer to color aligned bases.

Key components:
- ModificationType: The modification kinds the viewer can color
- BaseModification: One decoded call with its ML probability byte
- parse_modification_data(): Decode MM text + ML bytes against a read's CIGAR
- modification_data_from_segment(): Same, straight from a pysam alignment

MM format (per SAM spec):
    MM:Z:{base}{strand}{code}[.?],delta,delta,...[;...]

Each delta skips that many occurrences of {base} in the read before the next
call. ML holds one probability byte per delta across all sections, in order.

References:
- modBAM spec: https://github.com/samtools/hts-specs
"""

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

import numpy as np
import pysam

from .constants import (
    DEFAULT_PROBABILITY,
    HIGH_PROBABILITY_THRESHOLD,
    LOW_PROBABILITY_THRESHOLD,
)
from .logging_config import get_logger

logger = get_logger(__name__)

# CIGAR operation groups (pysam operation codes)
QUERY_ONLY_OPS = (pysam.CSOFT_CLIP, pysam.CINS)
REFERENCE_ONLY_OPS = (pysam.CDEL, pysam.CREF_SKIP)
MATCH_OPS = (pysam.CMATCH, pysam.CEQUAL, pysam.CDIFF)


class ModificationType(Enum):
    """Base modifications the viewer can decode, keyed by MM code"""

    FIVE_MC = "m"  # 5-methylcytosine, C+m
    FIVE_HMC = "h"  # 5-hydroxymethylcytosine, C+h
    SIX_MA = "a"  # N6-methyladenine, A+a

    @classmethod
    def from_code(cls, code: str) -> "ModificationType | None":
        """Return the type for a single-letter MM code, or None if unknown"""
        try:
            return cls(code)
        except ValueError:
            return None


@dataclass(frozen=True)
class BaseModification:
    """Single decoded modification call"""

    modification_type: ModificationType
    probability: int  # ML byte: 0 = unmodified, 255 = fully modified

    @property
    def is_high(self) -> bool:
        """Probability above 70% (>= 179/255)"""
        return self.probability >= HIGH_PROBABILITY_THRESHOLD

    @property
    def is_low(self) -> bool:
        """Probability below 30% (< 77/255)"""
        return self.probability < LOW_PROBABILITY_THRESHOLD


# 1-based reference position -> calls at that position, in decode order
ModificationMap = dict[int, list[BaseModification]]


def build_query_to_reference_map(
    cigar: Sequence[tuple[int, int]], alignment_start: int
) -> dict[int, int]:
    """Map 0-based query offsets to 1-based reference positions

    Only offsets consumed by match-class operations (M, =, X) are mapped.
    Soft clips and insertions advance the query only, deletions and skips
    advance the reference only, hard clips and padding advance neither.

    Args:
        cigar: pysam-style (operation, length) tuples
        alignment_start: 1-based reference position of the first aligned base

    Returns:
        Dict mapping query offset to reference position

    Examples:
        >>> cigar = [(pysam.CSOFT_CLIP, 2), (pysam.CMATCH, 3)]
        >>> build_query_to_reference_map(cigar, 10)
        {2: 10, 3: 11, 4: 12}
    """
    query_to_ref = {}
    query_cursor = 0
    ref_cursor = alignment_start

    for operation, length in cigar:
        if operation in QUERY_ONLY_OPS:
            query_cursor += length
        elif operation in REFERENCE_ONLY_OPS:
            ref_cursor += length
        elif operation in MATCH_OPS:
            for i in range(length):
                query_to_ref[query_cursor + i] = ref_cursor + i
            query_cursor += length
            ref_cursor += length
        # Hard clips and padding consume neither sequence

    return query_to_ref


def index_bases(sequence: str) -> dict[str, list[int]]:
    """Collect the query offsets of each base, left to right"""
    base_positions: dict[str, list[int]] = {}
    for offset, base in enumerate(sequence.upper()):
        base_positions.setdefault(base, []).append(offset)
    return base_positions


def _split_section(section: str) -> tuple[str, list[str]]:
    """Split one MM section into its header and delta tokens"""
    header, _, deltas = section.partition(",")
    tokens = deltas.split(",") if deltas else []
    return header, tokens


def _parse_delta(token: str) -> int | None:
    token = token.strip()
    # ASCII digits only
    if not (token.isascii() and token.isdigit()):
        return None
    return int(token)


def parse_modification_data(
    mm: str,
    ml: Sequence[int] | np.ndarray | bytes,
    sequence: str,
    cigar: Sequence[tuple[int, int]],
    alignment_start: int,
) -> ModificationMap:
    """Decode MM/ML tags into modification calls by reference position

    The ML cursor advances exactly once for every delta token read, whether or
    not the token produces a call. Reverse-strand sections, unknown codes and
    deltas that run past the last occurrence of the base still consume their
    probability bytes so later sections stay aligned with ML.

    Malformed content never raises: a non-numeric delta ends its section and
    calls decoded before it are kept.

    Args:
        mm: MM tag text (e.g. "C+m?,0,3,1;C+h?,2")
        ml: ML probability bytes (0-255), one per delta across all sections
        sequence: Read sequence as stored in the record (SEQ), soft clips included
        cigar: pysam-style (operation, length) tuples
        alignment_start: 1-based reference position of the first aligned base

    Returns:
        Dict mapping 1-based reference position to the calls made there

    Examples:
        >>> mods = parse_modification_data(
        ...     "C+m?,0,1", [200, 50], "ACGCACGC", [(pysam.CMATCH, 8)], 1
        ... )
        >>> sorted(mods)
        [2, 6]
        >>> mods[6][0].probability
        50
    """
    result: ModificationMap = {}

    query_to_ref = build_query_to_reference_map(cigar, alignment_start)
    base_positions = index_bases(sequence)

    ml_cursor = 0

    for section in mm.rstrip(";").split(";"):
        section = section.strip()
        if not section:
            continue

        header, tokens = _split_section(section)

        # Header must carry at least base, strand and code (e.g. "C+m")
        if len(header) < 3:
            continue

        base = header[0].upper()
        strand = header[1]
        mod_type = ModificationType.from_code(header[2])

        if strand != "+" or mod_type is None:
            # Not decodable, but its probabilities are still in ML
            logger.debug(
                f"Skipping MM section '{header}' ({len(tokens)} probabilities)"
            )
            ml_cursor += len(tokens)
            continue

        positions = base_positions.get(base, [])
        pos_cursor = 0

        for token in tokens:
            delta = _parse_delta(token)
            if delta is None:
                logger.debug(f"Malformed delta '{token}' in MM section '{header}'")
                break

            pos_cursor += delta
            if pos_cursor >= len(positions):
                ml_cursor += 1
                continue

            query_pos = positions[pos_cursor]
            pos_cursor += 1

            if ml_cursor < len(ml):
                probability = int(ml[ml_cursor])
            else:
                probability = DEFAULT_PROBABILITY
            ml_cursor += 1

            ref_pos = query_to_ref.get(query_pos)
            if ref_pos is None:
                # Call on a clipped or inserted base
                continue

            result.setdefault(ref_pos, []).append(
                BaseModification(modification_type=mod_type, probability=probability)
            )

    return result


def modification_tags(segment: pysam.AlignedSegment) -> tuple[str | None, np.ndarray]:
    """Read the MM text and ML bytes of a pysam alignment

    Falls back to the legacy Mm/Ml tag names written by older basecallers.

    Returns:
        (MM text or None if absent, ML bytes as a uint8 array)
    """
    mm = None
    ml = None
    for mm_name, ml_name in (("MM", "ML"), ("Mm", "Ml")):
        if segment.has_tag(mm_name):
            mm = segment.get_tag(mm_name)
            if segment.has_tag(ml_name):
                ml = segment.get_tag(ml_name)
            break
    return mm, np.asarray(ml if ml is not None else [], dtype=np.uint8)


def modification_data_from_segment(segment: pysam.AlignedSegment) -> ModificationMap:
    """Decode the MM/ML tags of a pysam alignment

    Args:
        segment: pysam AlignedSegment

    Returns:
        Modification map (empty if the read is unmapped or carries no MM tag)
    """
    if segment.is_unmapped or not segment.query_sequence:
        return {}

    mm, ml_bytes = modification_tags(segment)
    if mm is None:
        logger.debug(f"No MM tag on read {segment.query_name}")
        return {}

    return parse_modification_data(
        mm,
        ml_bytes,
        segment.query_sequence.upper(),
        segment.cigartuples or [],
        segment.reference_start + 1,
    )
