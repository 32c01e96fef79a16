"""Pytest configuration and shared fixtures."""

import pysam
import pytest

from termgv.buffer import CellBuffer
from termgv.constants import Theme
from termgv.layout import AlignmentView
from termgv.rendering import Palette


class MockSegment:
    """Stand-in for pysam.AlignedSegment with just the fields termgv reads"""

    def __init__(
        self,
        query_name="read_001",
        query_sequence="ACGT",
        cigartuples=None,
        reference_start=0,
        is_reverse=False,
        is_unmapped=False,
        is_secondary=False,
        tags=None,
    ):
        self.query_name = query_name
        self.query_sequence = query_sequence
        self.cigartuples = (
            cigartuples
            if cigartuples is not None
            else [(pysam.CMATCH, len(query_sequence or ""))]
        )
        self.reference_start = reference_start
        self.is_reverse = is_reverse
        self.is_unmapped = is_unmapped
        self.is_secondary = is_secondary
        self._tags = dict(tags or {})

    def has_tag(self, name):
        return name in self._tags

    def get_tag(self, name):
        return self._tags[name]


@pytest.fixture
def make_segment():
    """Factory for mock pysam alignments"""
    return MockSegment


@pytest.fixture
def palette():
    """Dark-theme palette used by most rendering tests"""
    return Palette(Theme.DARK)


@pytest.fixture
def buf():
    """Empty 20x4 cell buffer"""
    return CellBuffer(20, 4)


@pytest.fixture
def view():
    """Viewport whose first column is reference position 1"""
    return AlignmentView(left=1, top=0)
