"""
Constants used throughout the genomelink package.

Centralizes the closed word lists of the organism-name grammar, file-format
markers and default thresholds.
"""

from __future__ import annotations

# =============================================================================
# Organism Name Grammar
# =============================================================================

# Culture collection acronyms recognised in strain designations
CULTURE_COLLECTIONS: tuple[str, ...] = (
    "ATCC",
    "BCRC",
    "CCM",
    "CCUG",
    "CECT",
    "CGMCC",
    "CIP",
    "DSM",
    "DSMZ",
    "IAM",
    "IFO",
    "JCM",
    "KCTC",
    "LMG",
    "MTCC",
    "NBRC",
    "NCCB",
    "NCDO",
    "NCIB",
    "NCIMB",
    "NCTC",
    "NRRL",
    "PCC",
    "VKM",
)

# Abbreviation -> full rank word. Keys are matched case-insensitively.
RANK_ABBREVIATIONS: dict[str, str] = {
    "sp": "species",
    "species": "species",
    "subsp": "subspecies",
    "ssp": "subspecies",
    "subspecies": "subspecies",
    "str": "strain",
    "strain": "strain",
    "var": "variety",
    "variety": "variety",
    "sv": "serovar",
    "serovar": "serovar",
    "bv": "biovar",
    "biovar": "biovar",
    "pv": "pathovar",
    "pathovar": "pathovar",
    "cv": "cultivar",
    "cultivar": "cultivar",
    "gv": "genomovar",
    "genomovar": "genomovar",
    "mv": "morphovar",
    "morphovar": "morphovar",
}

RANK_WORDS: tuple[str, ...] = tuple(dict.fromkeys(RANK_ABBREVIATIONS.values()))

CANDIDATUS = "Candidatus"

# =============================================================================
# Identifier Spaces
# =============================================================================

# Domains whose genomes carry 16S genes comparable to the reference taxonomy
IN_SCOPE_DOMAINS: frozenset[str] = frozenset({"Bacteria", "Archaea"})

FINISHED_STATUS = "Finished"

# Separator between genome id and gene id in composite sequence identifiers
GENE_ID_SEPARATOR = "_"

# Placeholder written for missing values in combined tables
MISSING_VALUE = "-"

# =============================================================================
# Alignment Defaults
# =============================================================================

DEFAULT_MIN_IDENTITY = 99.0
DEFAULT_MIN_COVERAGE = 99.0

# Columns requested from blastn, in order
BLAST_OUTFMT_COLUMNS: tuple[str, ...] = (
    "qseqid",
    "sseqid",
    "bitscore",
    "nident",
    "qlen",
    "slen",
    "qstart",
    "qend",
    "sstart",
    "send",
)

BLAST_OUTFMT = "6 " + " ".join(BLAST_OUTFMT_COLUMNS)

# Partial-token matching: minimum token lengths, most specific first
PARTIAL_TOKEN_LENGTHS: tuple[int, ...] = (5, 4, 3, 2)
