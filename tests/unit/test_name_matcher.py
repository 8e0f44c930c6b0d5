"""Tests for tiered organism name matching."""

from __future__ import annotations

import pytest

from genomelink.core.name_matcher import (
    MatchTier,
    NameMatch,
    match_name,
    strain_tokens,
)
from genomelink.core.taxon_index import TaxonIndex


class TestStrainTokens:
    def test_min_length_filter(self):
        assert strain_tokens("BL23 ATCC334", 5) == {"ATCC334"}
        assert strain_tokens("BL23 ATCC334", 4) == {"BL23", "ATCC334"}

    def test_separator_variant(self):
        assert strain_tokens("ATCC-BAA-365 LC2W", 3, separator="-") == {
            "ATCC",
            "BAA",
            "365",
            "LC2W",
        }
        assert strain_tokens("K-12/MG1655", 2, separator="/") == {"K-12", "MG1655"}

    def test_strip_prefix(self):
        assert strain_tokens("DSM20011 xx__AB12", 4, strip_prefix=True) == {"20011", "AB12"}

    def test_empty_tokens_dropped(self):
        assert strain_tokens("", 2) == set()
        assert strain_tokens("xx__", 2, strip_prefix=True) == set()


class TestMatchTier:
    @pytest.mark.parametrize(
        "length,tier",
        [(5, MatchTier.TOKEN_4), (4, MatchTier.TOKEN_4), (3, MatchTier.TOKEN_3),
         (2, MatchTier.TOKEN_2)],
    )
    def test_for_token_length(self, length: int, tier: MatchTier):
        assert MatchTier.for_token_length(length) is tier


class TestExactTier:
    def test_same_strain_after_normalization_is_exact(self, casei_index: TaxonIndex):
        match = match_name("Lactobacillus casei LC2W", casei_index)
        assert match is not None
        assert match.tier is MatchTier.EXACT
        assert match.reference_id in {"R1", "R2"}

    def test_first_reference_wins(self, casei_index: TaxonIndex):
        match = match_name("Lactobacillus casei str. LC2W", casei_index)
        assert match == NameMatch("R1", "Lactobacillus casei LC2W", MatchTier.EXACT)

    def test_exact_beats_partial(self):
        index = TaxonIndex.build(
            [
                ("R1", "Bacillus subtilis KX 168A"),
                ("R2", "Bacillus subtilis 168A"),
            ]
        )
        match = match_name("Bacillus subtilis 168A", index)
        assert match.reference_id == "R2"
        assert match.tier is MatchTier.EXACT


class TestNormalizedTier:
    def test_rank_words_ignored(self):
        index = TaxonIndex.build([("R1", "Salmonella enterica serovar Typhi CT18")])
        match = match_name("Salmonella enterica sv. Typhi, CT18", index)
        assert match.reference_id == "R1"
        assert match.tier is MatchTier.NORMALIZED

    def test_collection_acronym_ignored(self):
        index = TaxonIndex.build([("R1", "Lactobacillus casei ATCC BL23")])
        match = match_name("Lactobacillus casei BL23", index)
        assert match.tier is MatchTier.NORMALIZED


class TestPartialTier:
    def test_long_shared_token(self):
        index = TaxonIndex.build([("R1", "Lactobacillus casei ATCC 334")])
        match = match_name("Lactobacillus casei BL23 ATCC334", index)
        assert match.reference_id == "R1"
        assert match.tier is MatchTier.TOKEN_4

    def test_collection_prefix_stripped(self):
        index = TaxonIndex.build([("R1", "Lactobacillus casei 20011")])
        match = match_name("Lactobacillus casei DSM 20011", index)
        assert match.tier is MatchTier.TOKEN_4

    def test_hyphen_separator(self):
        index = TaxonIndex.build([("R1", "Bacillus subtilis ABC-1")])
        match = match_name("Bacillus subtilis ABC", index)
        assert match.reference_id == "R1"
        assert match.tier is MatchTier.TOKEN_3

    def test_two_character_token(self):
        index = TaxonIndex.build([("R1", "Escherichia coli K1 O18")])
        match = match_name("Escherichia coli K1", index)
        assert match.tier is MatchTier.TOKEN_2

    def test_candidates_tried_in_order(self):
        index = TaxonIndex.build(
            [
                ("R1", "Bacillus subtilis XYZ12 ABC"),
                ("R2", "Bacillus subtilis XYZ12 DEF"),
            ]
        )
        assert match_name("Bacillus subtilis XYZ12", index).reference_id == "R1"

    def test_no_shared_token(self):
        index = TaxonIndex.build([("R1", "Bacillus subtilis 168")])
        assert match_name("Bacillus subtilis W23", index) is None


class TestSpeciesFallback:
    def test_disabled_by_default(self):
        index = TaxonIndex.build([("R1", "Bacillus subtilis 168")])
        assert match_name("Bacillus subtilis XYZ", index) is None

    def test_first_candidate_when_enabled(self):
        index = TaxonIndex.build(
            [
                ("R1", "Bacillus subtilis 168"),
                ("R2", "Bacillus subtilis W23"),
            ]
        )
        match = match_name("Bacillus subtilis XYZ", index, allow_species_fallback=True)
        assert match == NameMatch("R1", "Bacillus subtilis 168", MatchTier.SPECIES)


class TestNoMatch:
    @pytest.mark.parametrize(
        "name",
        [
            "uncultured bacterium",
            "Escherichia sp. ABC1",
            "Bacillus",
            "Lactobacillus rhamnosus GG",
            "Clostridium casei LC2W",
        ],
    )
    def test_no_lookup(self, casei_index: TaxonIndex, name: str):
        assert match_name(name, casei_index, allow_species_fallback=True) is None
