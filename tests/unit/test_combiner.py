"""Tests for the metadata / taxonomy / correspondence combiner."""

from __future__ import annotations

from pathlib import Path

import pytest

from genomelink.core.combiner import (
    OUTPUT_COLUMNS,
    TaxonomyStyle,
    combine_records,
    detect_taxonomy_style,
    fix_taxonomy_string,
    write_combined,
)
from genomelink.core.readers import load_entities
from genomelink.models.genomes import Entity

SPACED = TaxonomyStyle(sep_space=True, spp_space=True)
COMPACT = TaxonomyStyle(sep_space=False, spp_space=False)

PREFIX = "k__Bacteria; p__Firmicutes; c__Bacilli; o__Lactobacillales; f__Lactobacillaceae"


class TestDetectTaxonomyStyle:
    def test_spaced(self):
        style = detect_taxonomy_style([f"{PREFIX}; g__Lactobacillus; s__Lactobacillus casei"])
        assert style == SPACED

    def test_compact(self):
        style = detect_taxonomy_style(["k__Bacteria;p__Firmicutes;g__Bacillus;s__subtilis"])
        assert style == COMPACT

    def test_any_string_sets_flag(self):
        style = detect_taxonomy_style(["k__A;s__b", "k__A; s__b"])
        assert style == TaxonomyStyle(sep_space=True, spp_space=False)

    def test_empty(self):
        assert detect_taxonomy_style([]) == TaxonomyStyle()


class TestFixTaxonomyString:
    def test_fill_species(self):
        fix = fix_taxonomy_string(f"{PREFIX}; g__Lactobacillus; s__", "Lactobacillus casei LC2W", SPACED)
        assert fix.fixed
        assert fix.taxonomy == f"{PREFIX}; g__Lactobacillus; s__Lactobacillus casei"

    def test_fill_genus_and_species_compact(self):
        tax = "k__Bacteria;p__Firmicutes;c__Bacilli;o__Bacillales;f__Bacillaceae;g__;s__"
        fix = fix_taxonomy_string(tax, "Bacillus subtilis 168", COMPACT)
        assert fix.taxonomy == (
            "k__Bacteria;p__Firmicutes;c__Bacilli;o__Bacillales;f__Bacillaceae;"
            "g__Bacillus;s__Bacillussubtilis"
        )

    def test_candidatus(self):
        tax = "k__Archaea; p__E; c__M; o__M; f__M; g__Candidatus Methanococcus; s__"
        fix = fix_taxonomy_string(tax, "Candidatus Methanococcus infernus ME", SPACED)
        assert fix.fixed
        assert fix.taxonomy.endswith("s__Candidatus Methanococcus infernus")

    def test_species_placeholder_not_filled(self):
        fix = fix_taxonomy_string(f"{PREFIX}; g__; s__", "Lactobacillus sp. ABC", SPACED)
        assert fix.taxonomy == f"{PREFIX}; g__Lactobacillus; s__"
        assert fix.fixed

    @pytest.mark.parametrize(
        "name,reason",
        [
            ("uncultured bacterium", "lowercase genus"),
            ("Lactobacillus Casei", "capitalized species"),
            ("Bacillus subtilis 168", "genus disagreement"),
        ],
    )
    def test_suspicious_names_skipped(self, name: str, reason: str):
        tax = f"{PREFIX}; g__Lactobacillus; s__"
        fix = fix_taxonomy_string(tax, name, SPACED)
        assert fix.taxonomy == tax
        assert not fix.fixed
        assert reason in fix.skipped

    @pytest.mark.parametrize(
        "tax",
        [
            "-",
            "k__Bacteria; g__; s__",
            f"{PREFIX}; g__Lactobacillus; s__Lactobacillus casei",
        ],
    )
    def test_untouched(self, tax: str):
        fix = fix_taxonomy_string(tax, "Lactobacillus casei", SPACED)
        assert fix.taxonomy == tax
        assert not fix.fixed
        assert fix.skipped is None


class TestCombineRecords:
    @pytest.fixture
    def taxonomies(self) -> dict[str, str]:
        return {
            "R1": f"{PREFIX}; g__Lactobacillus; s__",
            "R5": "k__Bacteria; p__P; c__G; o__E; f__E; g__Escherichia; s__Escherichia coli",
        }

    def test_finished_prokaryotes_with_16s(self, metadata_file: Path, taxonomies: dict[str, str]):
        entities = load_entities(metadata_file)
        df, report = combine_records(
            entities, taxonomies, {"2500001": "R1", "2500005": "R5"}
        )
        assert df.columns == list(OUTPUT_COLUMNS)
        assert df["IMG ID"].to_list() == ["2500001", "2500004", "2500005"]
        assert report.metadata_entries == 5
        assert report.written == 3
        assert report.num_fixed == 1

        first = df.row(0, named=True)
        assert first["GG ID"] == "R1"
        assert first["GG Tax"].endswith("s__Lactobacillus casei")
        assert first["IMG Tax"] == (
            "Firmicutes;Bacilli;Lactobacillales;Lactobacillaceae;Lactobacillus;casei"
        )
        assert first["16S Count"] == "5"
        assert first["Genome Length"] == "3077434"

        archaeon = df.row(1, named=True)
        assert archaeon["GG ID"] == "-"
        assert archaeon["GG Tax"] == "-"

    def test_all_genomes(self, metadata_file: Path, taxonomies: dict[str, str]):
        df, _ = combine_records(load_entities(metadata_file), taxonomies, {}, finished_only=False)
        assert "2500003" in df["IMG ID"].to_list()
        assert "2500002" not in df["IMG ID"].to_list()

    def test_without_fixing(self, metadata_file: Path, taxonomies: dict[str, str]):
        df, report = combine_records(
            load_entities(metadata_file), taxonomies, {"2500001": "R1"}, fix_species=False
        )
        assert df.row(0, named=True)["GG Tax"] == taxonomies["R1"]
        assert report.num_fixed == 0

    def test_unknown_reference_keeps_id(self):
        entity = Entity(entity_id="1", name="X y", domain="Bacteria", status="Finished",
                        rrna_count=1)
        df, _ = combine_records([entity], {}, {"1": "R404"})
        assert df.row(0) == ("1", "X y", "-", "R404", "-", "1", "-", "-")

    def test_no_16s_genes_skipped(self):
        entities = [
            Entity(entity_id="1", name="X y", domain="Bacteria", status="Finished", rrna_count=0),
            Entity(entity_id="2", name="X y", domain="Bacteria", status="Finished"),
        ]
        df, report = combine_records(entities, {}, {})
        assert df.height == 0
        assert report.written == 0
        assert df.columns == list(OUTPUT_COLUMNS)


class TestWriteCombined:
    def test_header_and_rows(self, temp_dir: Path):
        entity = Entity(entity_id="1", name="X y", domain="Bacteria", status="Finished",
                        rrna_count=2)
        df, _ = combine_records([entity], {}, {})
        path = temp_dir / "combined.tsv"
        write_combined(df, path)
        lines = path.read_text().splitlines()
        assert lines[0] == "#" + "\t".join(OUTPUT_COLUMNS)
        assert lines[1] == "1\tX y\t-\t-\t-\t2\t-\t-"
