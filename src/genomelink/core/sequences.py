"""
FASTA helpers for reference and query 16S rRNA sequences.

Reference FASTA headers carry the reference id followed by a free-text
description, e.g.::

    >1111886 AB002649.1 Lactobacillus casei strain LC2W 16S ribosomal RNA gene

Query FASTA headers use composite "<genomeId>_<geneId>" identifiers.
"""

from __future__ import annotations

import gzip
import logging
import re
from collections.abc import Collection, Iterator
from pathlib import Path

from Bio import SeqIO

from genomelink.core.alignment import normalize_query_id
from genomelink.core.exceptions import InputFileError
from genomelink.models.genomes import Reference

logger = logging.getLogger(__name__)

# GenBank/RefSeq nucleotide accession, e.g. AB002649.1 or NR_041054.1
_ACCESSION = re.compile(r"^[A-Z]{1,2}_?\d{5,}(?:\.\d+)?$")

# Molecule description tail following the organism name
_MOLECULE_TAIL = re.compile(
    r"[\s,]+(?:16S|23S|SSU|small subunit|ribosomal|rRNA|gene|partial sequence|"
    r"complete sequence)\b.*$",
    re.IGNORECASE,
)


def _open_text(path: Path):
    if not path.exists():
        raise InputFileError(path, "file not found")
    try:
        if path.suffix == ".gz":
            return gzip.open(path, "rt")
        return path.open("r")
    except OSError as e:
        raise InputFileError(path, str(e)) from e


def iter_references(fasta: Path) -> Iterator[Reference]:
    """Iterate reference records of a FASTA file.

    Raises:
        InputFileError: If the file is missing or unreadable.
    """
    with _open_text(fasta) as handle:
        for record in SeqIO.parse(handle, "fasta"):
            description = record.description
            if description.startswith(record.id):
                description = description[len(record.id):]
            yield Reference(reference_id=record.id, description=description.strip())


def load_reference_ids(fasta: Path) -> set[str]:
    """Identifiers of all sequences in a reference FASTA."""
    ids = {ref.reference_id for ref in iter_references(fasta)}
    logger.info("Read %d reference ids from %s", len(ids), fasta)
    return ids


def organism_from_description(description: str) -> str:
    """Extract the organism name from a reference sequence description.

    Drops a leading nucleotide accession and the trailing molecule
    description.

    Example:
        >>> organism_from_description("AB002649.1 Lactobacillus casei LC2W 16S ribosomal RNA")
        'Lactobacillus casei LC2W'
    """
    parts = description.split(None, 1)
    if parts and _ACCESSION.match(parts[0]):
        description = parts[1] if len(parts) > 1 else ""
    return _MOLECULE_TAIL.sub("", description).strip()


def write_query_subset(
    query_fasta: Path,
    genome_ids: Collection[str],
    output: Path,
) -> int:
    """Write the query sequences belonging to the given genomes.

    Sequence ids are matched on their genome part, so every 16S gene of a
    selected genome is kept.

    Args:
        query_fasta: FASTA of 16S genes with "<genomeId>_<geneId>" ids.
        genome_ids: Genomes to keep.
        output: Destination FASTA.

    Returns:
        Number of sequences written.
    """
    wanted = set(genome_ids)
    with _open_text(query_fasta) as handle:
        records = (
            record
            for record in SeqIO.parse(handle, "fasta")
            if normalize_query_id(record.id) in wanted
        )
        count = SeqIO.write(records, str(output), "fasta")

    logger.info("Wrote %d query sequences for %d genomes to %s", count, len(wanted), output)
    return count
