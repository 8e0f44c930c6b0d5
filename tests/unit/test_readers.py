"""Tests for tab-delimited input readers and the correspondence writer."""

from __future__ import annotations

from pathlib import Path

import pytest

from genomelink.core.exceptions import (
    InputFileError,
    MalformedInputError,
    MissingColumnError,
)
from genomelink.core.readers import (
    find_column,
    load_correspondences,
    load_entities,
    load_isolate_names,
    load_pairs,
    load_reference_names,
    load_taxonomies,
    normalize_header,
    write_correspondences,
)
from genomelink.models.genomes import Domain


class TestHeaders:
    def test_normalize_header(self):
        assert normalize_header("  16S  rRNA\tCount ") == "16s rrna count"

    def test_find_column_aliases(self):
        columns = ["Taxon Object ID", "Genome Name / Sample Name", "Domain"]
        assert find_column(columns, "entity_id") == "Taxon Object ID"
        assert find_column(columns, "name") == "Genome Name / Sample Name"
        assert find_column(columns, "status") is None


class TestLoadEntities:
    def test_reads_all_rows(self, metadata_file: Path):
        entities = load_entities(metadata_file)
        assert [e.entity_id for e in entities] == [
            "2500001",
            "2500002",
            "2500003",
            "2500004",
            "2500005",
        ]

    def test_fields(self, metadata_file: Path):
        first, eukaryote, draft = load_entities(metadata_file)[:3]
        assert first.name == "Lactobacillus casei LC2W"
        assert first.domain is Domain.BACTERIA
        assert first.is_finished
        assert first.lineage[-2:] == ("Lactobacillus", "casei")
        assert first.lineage_string.startswith("Firmicutes;Bacilli;")
        assert first.genome_size == "3077434"
        assert first.gene_count == "3064"
        assert first.rrna_count == 5
        assert eukaryote.domain is Domain.OTHER
        assert eukaryote.rrna_count == 0
        assert not draft.is_finished

    def test_minimal_columns(self, temp_dir: Path):
        path = temp_dir / "minimal.tsv"
        path.write_text(
            "Genome Name\ttaxon_oid\tDomain\n"
            "Bacillus subtilis 168\t42\tBacteria\n"
        )
        (entity,) = load_entities(path)
        assert entity.entity_id == "42"
        assert entity.status is None
        assert entity.lineage == ()
        assert entity.genome_size == "-"
        assert entity.rrna_count is None

    def test_unparseable_count(self, temp_dir: Path):
        path = temp_dir / "counts.tsv"
        path.write_text("taxon_oid\tDomain\tGenome Name\t16S rRNA Count\n1\tBacteria\tX y\tn/a\n")
        assert load_entities(path)[0].rrna_count is None

    def test_quotes_kept_literally(self, temp_dir: Path):
        path = temp_dir / "quotes.tsv"
        path.write_text("taxon_oid\tDomain\tGenome Name\n1\tBacteria\tNostoc sp. 'PCC 7120'\n")
        assert load_entities(path)[0].name == "Nostoc sp. 'PCC 7120'"

    def test_missing_column(self, temp_dir: Path):
        path = temp_dir / "bad.tsv"
        path.write_text("taxon_oid\tGenome Name\n1\tBacillus subtilis\n")
        with pytest.raises(MissingColumnError) as exc_info:
            load_entities(path)
        assert exc_info.value.column == "domain"

    def test_missing_file(self, temp_dir: Path):
        with pytest.raises(InputFileError):
            load_entities(temp_dir / "missing.tsv")


class TestLoadCorrespondences:
    def test_split_resolved_and_unresolved(self, correspondence_file: Path):
        correlations, unresolved = load_correspondences(correspondence_file)
        assert correlations == {"2500002": "R9", "2500003": "MISSING", "2500005": "R5"}
        assert unresolved == ["2500001", "2500004"]

    def test_dash_means_unresolved(self, temp_dir: Path):
        path = temp_dir / "corr.tsv"
        path.write_text("A\t-\nB\tR1\n")
        correlations, unresolved = load_correspondences(path)
        assert correlations == {"B": "R1"}
        assert unresolved == ["A"]

    def test_empty_file(self, temp_dir: Path):
        path = temp_dir / "empty.tsv"
        path.write_text("")
        assert load_correspondences(path) == ({}, [])

    def test_lone_id_on_first_line(self, temp_dir: Path):
        path = temp_dir / "corr.tsv"
        path.write_text("100\n200\tR2\n300\tR3\n")
        assert load_correspondences(path) == ({"200": "R2", "300": "R3"}, ["100"])

    def test_extra_fields_ignored(self, temp_dir: Path):
        path = temp_dir / "corr.tsv"
        path.write_text("100\tR1\textra\n200\n")
        assert load_correspondences(path) == ({"100": "R1"}, ["200"])

    def test_comments_only(self, temp_dir: Path):
        path = temp_dir / "comments.tsv"
        path.write_text("# nothing here\n")
        assert load_pairs(path) == {}


class TestLoadTaxonomies:
    def test_reads_pairs(self, temp_dir: Path):
        path = temp_dir / "gg_tax.txt"
        path.write_text(
            "#prokMSA_id\ttaxonomy\n"
            "R1\tk__Bacteria; p__Firmicutes; c__Bacilli; o__Lactobacillales; "
            "f__Lactobacillaceae; g__Lactobacillus; s__\n"
        )
        taxonomies = load_taxonomies(path)
        assert list(taxonomies) == ["R1"]
        assert taxonomies["R1"].endswith("g__Lactobacillus; s__")


class TestLoadIsolateNames:
    def test_strain_appended(self, isolates_file: Path):
        names = load_isolate_names(isolates_file)
        assert names["R1"] == "Lactobacillus casei LC2W"
        assert names["R4"] == "Methanococcus infernus DSM 11812"

    def test_strain_already_in_organism(self, isolates_file: Path):
        assert load_isolate_names(isolates_file)["R2"] == "Bacillus subtilis 168"

    def test_case_insensitive_containment(self, temp_dir: Path):
        path = temp_dir / "isolates.txt"
        path.write_text("R1|Lactobacillus casei lc2w|LC2W\nR2|Bacillus subtilis|\n")
        names = load_isolate_names(path)
        assert names == {"R1": "Lactobacillus casei lc2w", "R2": "Bacillus subtilis"}

    def test_strain_inside_word_not_appended(self, temp_dir: Path):
        path = temp_dir / "isolates.txt"
        path.write_text("R4|Methanococcus infernus|ME\n")
        assert load_isolate_names(path) == {"R4": "Methanococcus infernus"}

    def test_malformed_line(self, temp_dir: Path):
        path = temp_dir / "isolates.txt"
        path.write_text("R1|Lactobacillus casei|LC2W\njust-an-id\n")
        with pytest.raises(MalformedInputError) as exc_info:
            load_isolate_names(path)
        assert exc_info.value.line_num == 2


class TestLoadReferenceNames:
    def test_description_mode(self, reference_fasta: Path):
        names = load_reference_names("description", reference_fasta=reference_fasta)
        assert names["R1"] == "Lactobacillus casei LC2W"
        assert names["R2"] == "Bacillus subtilis 168"
        assert list(names) == ["R1", "R2", "R4", "R5", "R9"]

    def test_isolates_mode(self, isolates_file: Path):
        names = load_reference_names("isolates", isolates_file=isolates_file)
        assert names["R1"] == "Lactobacillus casei LC2W"

    def test_missing_source(self):
        with pytest.raises(ValueError):
            load_reference_names("isolates")
        with pytest.raises(ValueError):
            load_reference_names("description")


class TestWriteCorrespondences:
    def test_header_and_order(self, temp_dir: Path):
        path = temp_dir / "out.tsv"
        written = write_correspondences(path, {"B": "R2", "A": "R1", "C": ""})
        assert written == 2
        assert path.read_text().splitlines() == [
            "#source_id\treference_id",
            "B\tR2",
            "A\tR1",
        ]

    def test_roundtrip_through_loader(self, temp_dir: Path):
        path = temp_dir / "out.tsv"
        write_correspondences(path, {"A": "R1"})
        assert load_correspondences(path) == ({"A": "R1"}, [])

    def test_empty(self, temp_dir: Path):
        path = temp_dir / "out.tsv"
        assert write_correspondences(path, {}) == 0
        assert path.read_text() == "#source_id\treference_id\n"
