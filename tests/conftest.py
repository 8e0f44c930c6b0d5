"""
Shared pytest fixtures for genomelink tests.

Provides small metadata tables, correspondence files, reference FASTA files
and BLAST outputs written to temporary directories.
"""

from __future__ import annotations

import tempfile
from pathlib import Path

import pytest

from genomelink.core.taxon_index import TaxonIndex
from genomelink.external.base import ExternalTool
from genomelink.models.genomes import Entity

METADATA_HEADER = (
    "taxon_oid\tDomain\tStatus\tGenome Name\tPhylum\tClass\tOrder\tFamily\t"
    "Genus\tSpecies\tGenome Size\tGene Count\t16S rRNA Count"
)


def write_lines(path: Path, lines: list[str]) -> Path:
    path.write_text("\n".join(lines) + "\n")
    return path


# =============================================================================
# Temporary Files
# =============================================================================


@pytest.fixture
def temp_dir() -> Path:
    """Temporary directory removed after the test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def metadata_file(temp_dir: Path) -> Path:
    """Genome metadata table with prokaryotic, eukaryotic and draft genomes."""
    return write_lines(
        temp_dir / "img_metadata.tsv",
        [
            METADATA_HEADER,
            "2500001\tBacteria\tFinished\tLactobacillus casei LC2W\tFirmicutes\tBacilli\t"
            "Lactobacillales\tLactobacillaceae\tLactobacillus\tcasei\t3077434\t3064\t5",
            "2500002\tEukaryota\tFinished\tSaccharomyces cerevisiae S288C\tAscomycota\t"
            "Saccharomycetes\tSaccharomycetales\tSaccharomycetaceae\tSaccharomyces\t"
            "cerevisiae\t12157105\t6692\t0",
            "2500003\tBacteria\tDraft\tBacillus subtilis 168\tFirmicutes\tBacilli\t"
            "Bacillales\tBacillaceae\tBacillus\tsubtilis\t4215606\t4325\t10",
            "2500004\tArchaea\tFinished\tCandidatus Methanococcus infernus str. ME\t"
            "Euryarchaeota\tMethanococci\tMethanococcales\tMethanocaldococcaceae\t"
            "Methanococcus\tinfernus\t1328194\t1418\t1",
            "2500005\tBacteria\tFinished\tEscherichia coli str. K-12 substr. MG1655\t"
            "Proteobacteria\tGammaproteobacteria\tEnterobacteriales\tEnterobacteriaceae\t"
            "Escherichia\tcoli\t4641652\t4497\t7",
        ],
    )


@pytest.fixture
def correspondence_file(temp_dir: Path) -> Path:
    """Initial correspondences: one valid, one invalid, three unresolved."""
    return write_lines(
        temp_dir / "correspondences.tsv",
        [
            "# taxon_oid\tprokMSA_id",
            "2500001\t",
            "2500002\tR9",
            "2500003\tMISSING",
            "2500004\t",
            "2500005\tR5",
        ],
    )


@pytest.fixture
def reference_fasta(temp_dir: Path) -> Path:
    """Reference 16S FASTA whose descriptions carry organism names."""
    return write_lines(
        temp_dir / "references.fasta",
        [
            ">R1 AB002649.1 Lactobacillus casei LC2W 16S ribosomal RNA gene, partial sequence",
            "ACGTACGTACGT",
            ">R2 Bacillus subtilis 168 16S ribosomal RNA",
            "ACGTACGTAAAA",
            ">R4 Methanococcus infernus ME 16S rRNA",
            "ACGTTTTTACGT",
            ">R5 Escherichia coli K-12 16S ribosomal RNA",
            "ACGTCCCCACGT",
            ">R9 Saccharomyces cerevisiae S288C 18S ribosomal RNA",
            "ACGTGGGGACGT",
        ],
    )


@pytest.fixture
def isolates_file(temp_dir: Path) -> Path:
    """Named-isolates file with organism and strain columns."""
    return write_lines(
        temp_dir / "isolates.txt",
        [
            "R1|Lactobacillus casei|LC2W",
            "R2|Bacillus subtilis 168|168",
            "R4|Methanococcus infernus|DSM 11812",
        ],
    )


@pytest.fixture
def blast_output_file(temp_dir: Path) -> Path:
    """BLAST table in the genomelink outfmt with two queries."""
    return write_lines(
        temp_dir / "hits.blast.tsv",
        [
            # qseqid sseqid bitscore nident qlen slen qstart qend sstart send
            "2500003_1\tR2\t1800.0\t995\t1000\t1000\t1\t999\t1\t999",
            "2500003_1\tR5\t1800.0\t980\t1000\t1000\t1\t1000\t1\t1000",
            "2500004_1\tR4\t1500.0\t900\t1000\t1000\t1\t1000\t1\t1000",
        ],
    )


# =============================================================================
# Domain Objects
# =============================================================================


@pytest.fixture
def casei_index() -> TaxonIndex:
    """Index with two spellings of the same Lactobacillus casei strain."""
    return TaxonIndex.build(
        [
            ("R1", "Lactobacillus casei LC2W"),
            ("R2", "Lactobacillus casei str. LC2W"),
        ]
    )


@pytest.fixture
def entities() -> list[Entity]:
    return [
        Entity(entity_id="E1", name="Lactobacillus casei LC2W", domain="Bacteria",
               status="Finished"),
        Entity(entity_id="E2", name="Saccharomyces cerevisiae S288C", domain="Eukaryota",
               status="Finished"),
        Entity(entity_id="E3", name="Bacillus subtilis 168", domain="Bacteria",
               status="Draft"),
        Entity(entity_id="E4", name="", domain="Archaea", status="Finished"),
    ]


# =============================================================================
# External Tools
# =============================================================================


@pytest.fixture
def mock_executables():
    """Pretend every external tool is installed under /usr/bin."""
    ExternalTool.set_executable_resolver(lambda name: f"/usr/bin/{name}")
    yield
    ExternalTool.reset_executable_resolver()
