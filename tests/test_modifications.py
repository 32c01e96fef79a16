"""Tests for MM/ML base modification decoding"""

import numpy as np
import pysam
import pytest

from termgv.modifications import (
    BaseModification,
    ModificationType,
    build_query_to_reference_map,
    index_bases,
    modification_data_from_segment,
    modification_tags,
    parse_modification_data,
)

M = pysam.CMATCH
I = pysam.CINS  # noqa: E741
D = pysam.CDEL
N = pysam.CREF_SKIP
S = pysam.CSOFT_CLIP
H = pysam.CHARD_CLIP
P = pysam.CPAD


class TestBaseModification:
    """Tests for BaseModification confidence predicates"""

    @pytest.mark.parametrize(
        "probability,is_high,is_low",
        [
            (0, False, True),
            (76, False, True),
            (77, False, False),
            (178, False, False),
            (179, True, False),
            (255, True, False),
        ],
    )
    def test_confidence_thresholds(self, probability, is_high, is_low):
        mod = BaseModification(ModificationType.FIVE_MC, probability)

        assert mod.is_high is is_high
        assert mod.is_low is is_low

    def test_is_immutable(self):
        mod = BaseModification(ModificationType.SIX_MA, 10)

        with pytest.raises(AttributeError):
            mod.probability = 20

    def test_from_code(self):
        assert ModificationType.from_code("m") == ModificationType.FIVE_MC
        assert ModificationType.from_code("h") == ModificationType.FIVE_HMC
        assert ModificationType.from_code("a") == ModificationType.SIX_MA
        assert ModificationType.from_code("z") is None


class TestQueryToReferenceMap:
    """Tests for CIGAR walking"""

    def test_all_match(self):
        assert build_query_to_reference_map([(M, 3)], 5) == {0: 5, 1: 6, 2: 7}

    def test_soft_clip_and_insertion_advance_query_only(self):
        mapping = build_query_to_reference_map([(S, 2), (M, 2), (I, 1), (M, 2)], 1)

        assert mapping == {2: 1, 3: 2, 5: 3, 6: 4}

    def test_deletion_and_skip_advance_reference_only(self):
        cigar = [(M, 1), (D, 2), (M, 1), (N, 10), (M, 1)]
        mapping = build_query_to_reference_map(cigar, 1)

        assert mapping == {0: 1, 1: 4, 2: 15}

    def test_hard_clip_and_pad_advance_nothing(self):
        mapping = build_query_to_reference_map([(H, 5), (M, 1), (P, 3), (M, 1)], 1)

        assert mapping == {0: 1, 1: 2}

    def test_sequence_match_and_mismatch_ops(self):
        mapping = build_query_to_reference_map(
            [(pysam.CEQUAL, 2), (pysam.CDIFF, 1)], 100
        )

        assert mapping == {0: 100, 1: 101, 2: 102}

    def test_mapping_is_monotonic_and_gap_free_per_run(self):
        cigar = [(S, 3), (M, 4), (I, 2), (D, 1), (M, 5), (S, 1)]
        mapping = build_query_to_reference_map(cigar, 50)

        first_run = [mapping[q] for q in range(3, 7)]
        second_run = [mapping[q] for q in range(9, 14)]
        assert first_run == list(range(50, 54))
        assert second_run == list(range(55, 60))
        assert len(set(mapping.values())) == len(mapping)


class TestIndexBases:
    def test_offsets_by_base_in_order(self):
        positions = index_bases("acgCA")

        assert positions["A"] == [0, 4]
        assert positions["C"] == [1, 3]
        assert positions["G"] == [2]


class TestParseModificationData:
    """Tests for parse_modification_data"""

    def test_5mc_basic(self):
        """Two calls on the 1st and 3rd C of an all-match read"""
        mods = parse_modification_data("C+m?,0,1", [200, 50], "ACGCACGC", [(M, 8)], 1)

        assert mods == {
            2: [BaseModification(ModificationType.FIVE_MC, 200)],
            6: [BaseModification(ModificationType.FIVE_MC, 50)],
        }

    def test_5mc_with_softclip(self):
        """Soft-clipped bases count as query positions"""
        mods = parse_modification_data(
            "C+m?,0", [255], "GGACGCACGC", [(S, 2), (M, 8)], 1
        )

        assert mods == {2: [BaseModification(ModificationType.FIVE_MC, 255)]}

    def test_reverse_strand_section_is_skipped(self):
        mods = parse_modification_data("C-m?,0", [200], "ACGCACGC", [(M, 8)], 1)

        assert mods == {}

    def test_5hmc(self):
        mods = parse_modification_data("C+h?,1", [180], "ACGCACGC", [(M, 8)], 1)

        assert list(mods) == [4]
        assert mods[4][0].modification_type == ModificationType.FIVE_HMC
        assert mods[4][0].probability == 180

    def test_6ma(self):
        mods = parse_modification_data("A+a.,1", [90], "ACGCACGC", [(M, 8)], 10)

        assert mods == {14: [BaseModification(ModificationType.SIX_MA, 90)]}

    def test_unknown_code_is_skipped(self):
        mods = parse_modification_data("C+z?,0", [200], "ACGCACGC", [(M, 8)], 1)

        assert mods == {}

    def test_chebi_code_is_skipped(self):
        mods = parse_modification_data("C+17596?,0", [200], "ACGCACGC", [(M, 8)], 1)

        assert mods == {}

    def test_empty_tag(self):
        assert parse_modification_data("", [], "ACGT", [(M, 4)], 1) == {}

    def test_with_deletion(self):
        mods = parse_modification_data(
            "C+m?,0,0", [200, 100], "ACGCAC", [(M, 3), (D, 2), (M, 3)], 1
        )

        assert set(mods) == {2, 6}
        assert mods[2][0].probability == 200
        assert mods[6][0].probability == 100

    def test_multiple_calls_keep_decode_order(self):
        mods = parse_modification_data(
            "C+m?,0;C+h?,0", [10, 20], "ACGT", [(M, 4)], 1
        )

        assert mods == {
            2: [
                BaseModification(ModificationType.FIVE_MC, 10),
                BaseModification(ModificationType.FIVE_HMC, 20),
            ]
        }

    def test_missing_probability_defaults_to_255(self):
        mods = parse_modification_data("C+m?,0,0", [40], "CC", [(M, 2)], 1)

        assert mods[1][0].probability == 40
        assert mods[2][0].probability == 255

    def test_call_on_clipped_base_is_dropped(self):
        mods = parse_modification_data("C+m?,0,0", [11, 22], "CAC", [(S, 1), (M, 2)], 1)

        assert mods == {2: [BaseModification(ModificationType.FIVE_MC, 22)]}

    def test_call_on_inserted_base_is_dropped(self):
        mods = parse_modification_data(
            "C+m?,0,0", [11, 22], "ACCA", [(M, 1), (I, 1), (M, 2)], 1
        )

        assert mods == {2: [BaseModification(ModificationType.FIVE_MC, 22)]}

    def test_accepts_numpy_and_bytes_probabilities(self):
        args = ("C+m?,0", "AC", [(M, 2)], 1)

        from_array = parse_modification_data(
            args[0], np.array([7], dtype=np.uint8), *args[1:]
        )
        from_bytes = parse_modification_data(args[0], bytes([7]), *args[1:])

        assert from_array == from_bytes == {
            2: [BaseModification(ModificationType.FIVE_MC, 7)]
        }

    def test_trailing_semicolon_and_whitespace(self):
        mods = parse_modification_data(" C+m?,0 ;", [99], "AC", [(M, 2)], 1)

        assert mods == {2: [BaseModification(ModificationType.FIVE_MC, 99)]}

    def test_short_header_is_ignored(self):
        mods = parse_modification_data("C+;C+m,0", [99], "AC", [(M, 2)], 1)

        assert mods == {2: [BaseModification(ModificationType.FIVE_MC, 99)]}

    def test_section_without_deltas(self):
        mods = parse_modification_data("C+m?;A+a?,0", [31], "AC", [(M, 2)], 1)

        assert mods == {1: [BaseModification(ModificationType.SIX_MA, 31)]}

    def test_decoding_is_idempotent(self):
        args = ("C+m?,0,1;C-h?,2;A+a?,0", [1, 2, 3, 4], "ACGCACGC", [(M, 8)], 3)

        assert parse_modification_data(*args) == parse_modification_data(*args)


class TestProbabilityCursor:
    """The ML cursor moves once per delta token, annotated or not"""

    def test_overshoot_consumes_a_byte(self):
        # Only two Cs: delta 5 overshoots, yet still takes byte 2,
        # so the 6mA call gets byte 3
        mods = parse_modification_data(
            "C+m?,0,5;A+a?,0", [10, 20, 30], "CACA", [(M, 4)], 1
        )

        assert mods == {
            1: [BaseModification(ModificationType.FIVE_MC, 10)],
            2: [BaseModification(ModificationType.SIX_MA, 30)],
        }

    def test_overshoot_mid_section_keeps_later_tokens_aligned(self):
        # Cursor lands past the end after delta 3; the following 0 still overshoots
        mods = parse_modification_data(
            "C+m?,3,0;C+h?,0", [10, 20, 30], "CC", [(M, 2)], 1
        )

        assert mods == {1: [BaseModification(ModificationType.FIVE_HMC, 30)]}

    def test_reverse_strand_consumes_bytes(self):
        mods = parse_modification_data(
            "C-m?,0,0,0;C+m?,0", [1, 2, 3, 200], "ACGC", [(M, 4)], 1
        )

        assert mods == {2: [BaseModification(ModificationType.FIVE_MC, 200)]}

    def test_unknown_code_consumes_bytes(self):
        mods = parse_modification_data(
            "C+x?,0,1;C+m?,1", [1, 2, 77], "ACGC", [(M, 4)], 1
        )

        assert mods == {4: [BaseModification(ModificationType.FIVE_MC, 77)]}

    def test_base_absent_from_read_consumes_bytes(self):
        mods = parse_modification_data(
            "A+a?,0,0;C+m?,0", [1, 2, 150], "CCGG", [(M, 4)], 1
        )

        assert mods == {1: [BaseModification(ModificationType.FIVE_MC, 150)]}

    def test_malformed_delta_abandons_section_only(self):
        mods = parse_modification_data(
            "C+m?,0,x,0;A+a?,0", [10, 20], "ACAC", [(M, 4)], 1
        )

        # The call before the bad token is kept; the next section reads byte 2
        assert mods == {
            2: [BaseModification(ModificationType.FIVE_MC, 10)],
            1: [BaseModification(ModificationType.SIX_MA, 20)],
        }

    def test_negative_delta_is_malformed(self):
        mods = parse_modification_data("C+m?,-1", [10], "AC", [(M, 2)], 1)

        assert mods == {}

    @pytest.mark.parametrize("token", ["\u00b2", "\u0663", "\uff11"])
    def test_non_ascii_digit_is_malformed(self, token):
        assert parse_modification_data(f"C+m?,{token}", [10], "AC", [(M, 2)], 1) == {}

    def test_non_ascii_digit_abandons_section_only(self):
        mods = parse_modification_data(
            "C+m?,\u00b2;C+m?,0", [1, 2], "ACGCACGC", [(M, 8)], 1
        )

        # The bad token consumes nothing, so the next section reads the first byte
        assert mods == {2: [BaseModification(ModificationType.FIVE_MC, 1)]}

    @pytest.mark.parametrize("deltas", ["0", "0,0", "1,0,2", "3"])
    def test_reverse_strand_never_annotates(self, deltas):
        mods = parse_modification_data(
            f"C-m?,{deltas}", [255] * 4, "CCCCCC", [(M, 6)], 1
        )

        assert mods == {}


class TestModificationDataFromSegment:
    """Tests for decoding straight from a pysam alignment"""

    def test_reads_mm_ml_tags(self, make_segment):
        segment = make_segment(
            query_sequence="ACGCACGC",
            reference_start=0,
            tags={"MM": "C+m?,0,1", "ML": [200, 50]},
        )

        mods = modification_data_from_segment(segment)

        assert set(mods) == {2, 6}
        assert mods[6][0].probability == 50

    def test_uses_zero_based_reference_start(self, make_segment):
        segment = make_segment(
            query_sequence="AC", reference_start=99, tags={"MM": "C+m?,0", "ML": [5]}
        )

        assert list(modification_data_from_segment(segment)) == [101]

    def test_legacy_tag_names(self, make_segment):
        segment = make_segment(
            query_sequence="AC", tags={"Mm": "C+m?,0", "Ml": [5]}
        )

        assert list(modification_data_from_segment(segment)) == [2]

    def test_no_tags(self, make_segment):
        assert modification_data_from_segment(make_segment()) == {}

    def test_missing_ml_defaults_to_255(self, make_segment):
        segment = make_segment(query_sequence="AC", tags={"MM": "C+m?,0"})

        mods = modification_data_from_segment(segment)

        assert mods[2][0].probability == 255

    def test_unmapped_segment(self, make_segment):
        segment = make_segment(is_unmapped=True, tags={"MM": "C+m?,0", "ML": [5]})

        assert modification_data_from_segment(segment) == {}


class TestModificationTags:
    """Tests for reading raw MM/ML tags off a pysam alignment"""

    def test_mm_and_ml(self, make_segment):
        segment = make_segment(tags={"MM": "C+m?,0", "ML": [7, 8]})

        mm, ml = modification_tags(segment)

        assert mm == "C+m?,0"
        assert ml.dtype == np.uint8
        assert list(ml) == [7, 8]

    def test_legacy_names(self, make_segment):
        segment = make_segment(tags={"Mm": "A+a?,1", "Ml": [9]})

        mm, ml = modification_tags(segment)

        assert mm == "A+a?,1"
        assert list(ml) == [9]

    def test_no_mm_tag(self, make_segment):
        mm, ml = modification_tags(make_segment(tags={"ML": [1]}))

        assert mm is None
        assert len(ml) == 0

    def test_ml_is_taken_from_the_same_tag_family(self, make_segment):
        segment = make_segment(tags={"MM": "C+m?,0", "Ml": [5]})

        mm, ml = modification_tags(segment)

        assert mm == "C+m?,0"
        assert len(ml) == 0
