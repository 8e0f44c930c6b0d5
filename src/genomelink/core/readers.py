"""
Readers and writers for the tab-delimited inputs and outputs.

- genome metadata table exported from the metadata catalog (header row)
- correspondence file: source id <TAB> reference id, "#" comments
- reference taxonomy file: reference id <TAB> taxonomy string, "#" comments
- named-isolates file: id|organism|strain
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Literal

import polars as pl

from genomelink.core.constants import MISSING_VALUE
from genomelink.core.exceptions import (
    InputFileError,
    MalformedInputError,
    MissingColumnError,
)
from genomelink.core.sequences import iter_references, organism_from_description
from genomelink.models.genomes import Entity

logger = logging.getLogger(__name__)

NameSource = Literal["description", "isolates"]

# Accepted header spellings per field, compared after normalize_header()
METADATA_COLUMNS: dict[str, tuple[str, ...]] = {
    "entity_id": ("taxon_oid", "taxon object id", "img genome id", "genome id"),
    "domain": ("domain",),
    "status": ("status", "sequencing status"),
    "name": ("genome name", "genome name / sample name", "organism name"),
    "phylum": ("phylum",),
    "class": ("class",),
    "order": ("order",),
    "family": ("family",),
    "genus": ("genus",),
    "species": ("species",),
    "genome_size": ("genome size", "genome size * assembled"),
    "gene_count": ("gene count", "gene count * assembled"),
    "rrna_count": ("16s rrna count", "16s rrna count * assembled"),
}

REQUIRED_METADATA = ("entity_id", "domain", "name")
LINEAGE_FIELDS = ("phylum", "class", "order", "family", "genus", "species")


def normalize_header(header: str) -> str:
    """Lowercase a column header and collapse internal whitespace."""
    return re.sub(r"\s+", " ", header).strip().lower()


def find_column(columns: list[str], field: str) -> str | None:
    """Return the actual column name holding a metadata field, if any."""
    aliases = METADATA_COLUMNS[field]
    for column in columns:
        if normalize_header(column) in aliases:
            return column
    return None


def _ensure_readable(path: Path) -> None:
    if not path.exists():
        raise InputFileError(path, "file not found")
    if not path.is_file():
        raise InputFileError(path, "not a regular file")


# Two-column layout of correspondence and taxonomy files; short lines are
# padded with nulls, extra fields are dropped
PAIR_SCHEMA = {"column_1": pl.Utf8, "column_2": pl.Utf8}


def _read_table(path: Path, *, has_header: bool) -> pl.DataFrame:
    _ensure_readable(path)
    if path.stat().st_size == 0:
        return pl.DataFrame()
    options: dict[str, object] = (
        {"infer_schema": False}
        if has_header
        else {"comment_prefix": "#", "schema": PAIR_SCHEMA}
    )
    try:
        return pl.read_csv(
            path,
            separator="\t",
            has_header=has_header,
            quote_char=None,
            truncate_ragged_lines=True,
            **options,
        )
    except pl.exceptions.NoDataError:
        return pl.DataFrame()
    except pl.exceptions.PolarsError as e:
        raise InputFileError(path, str(e)) from e


def _parse_count(value: str | None) -> int | None:
    try:
        return int((value or "").strip())
    except ValueError:
        return None


def load_entities(path: Path) -> list[Entity]:
    """Load genome records from a metadata table.

    Args:
        path: Tab-delimited metadata export with a header row.

    Returns:
        Entities in file order.

    Raises:
        InputFileError: If the file cannot be read.
        MissingColumnError: If a required column is absent.
    """
    df = _read_table(path, has_header=True)
    columns = df.columns

    found = {field: find_column(columns, field) for field in METADATA_COLUMNS}
    for field in REQUIRED_METADATA:
        if found[field] is None:
            raise MissingColumnError(path, METADATA_COLUMNS[field][0], columns)

    def value(row: dict[str, str], field: str, default: str = "") -> str:
        column = found[field]
        if column is None:
            return default
        return (row.get(column) or default).strip()

    has_lineage = all(found[f] is not None for f in LINEAGE_FIELDS)
    entities = []
    for row in df.iter_rows(named=True):
        entity_id = value(row, "entity_id")
        if not entity_id or entity_id.startswith("#"):
            continue
        entities.append(
            Entity(
                entity_id=entity_id,
                name=value(row, "name"),
                domain=value(row, "domain"),
                status=value(row, "status") or None,
                lineage=tuple(value(row, f) for f in LINEAGE_FIELDS) if has_lineage else (),
                genome_size=value(row, "genome_size", MISSING_VALUE) or MISSING_VALUE,
                gene_count=value(row, "gene_count", MISSING_VALUE) or MISSING_VALUE,
                rrna_count=_parse_count(value(row, "rrna_count")),
            )
        )

    logger.info("Read %d entries from metadata file %s", len(entities), path)
    return entities


def load_pairs(path: Path) -> dict[str, str]:
    """Read a two-column id <TAB> value file, skipping "#" comment lines.

    Missing or blank values are returned as empty strings. Later lines
    override earlier ones for the same id.
    """
    df = _read_table(path, has_header=False)
    if df.width == 0:
        return {}
    first, second = df.columns[0], df.columns[1]

    pairs: dict[str, str] = {}
    for row in df.iter_rows(named=True):
        key = (row[first] or "").strip()
        if not key:
            continue
        pairs[key] = (row[second] or "").strip()
    return pairs


def load_correspondences(path: Path) -> tuple[dict[str, str], list[str]]:
    """Load initial source id -> reference id correspondences.

    A blank (or "-") reference id marks the source as unresolved.

    Returns:
        Tuple of (correlations with a target, unresolved source ids)
    """
    pairs = load_pairs(path)
    correlations: dict[str, str] = {}
    unresolved: list[str] = []
    for source_id, target_id in pairs.items():
        if target_id and target_id != MISSING_VALUE:
            correlations[source_id] = target_id
        else:
            unresolved.append(source_id)

    logger.info(
        "Read %d entries from correlation file %s (%d without reference)",
        len(pairs),
        path,
        len(unresolved),
    )
    return correlations, unresolved


def load_taxonomies(path: Path) -> dict[str, str]:
    """Load reference id -> taxonomy string pairs."""
    taxonomies = load_pairs(path)
    logger.info("Read %d entries from taxonomy file %s", len(taxonomies), path)
    return taxonomies


def load_isolate_names(path: Path) -> dict[str, str]:
    """Read organism names from a named-isolates file.

    Each line is ``id|organism|strain``. The strain is appended to the
    organism unless it already appears in it (case-insensitive).

    Example line:
        ``4423|Lactobacillus casei|LC2W`` -> ``"Lactobacillus casei LC2W"``
    """
    _ensure_readable(path)
    names: dict[str, str] = {}
    try:
        with path.open("r") as f:
            for line_num, line in enumerate(f, start=1):
                line = line.rstrip("\n\r")
                if not line.strip() or line.startswith("#"):
                    continue
                fields = [field.strip() for field in line.split("|")]
                if len(fields) < 2 or not fields[0]:
                    raise MalformedInputError(path, line_num, "id|organism|strain")
                reference_id, organism = fields[0], fields[1]
                strain = fields[2] if len(fields) > 2 else ""
                if strain and strain.lower() not in organism.lower():
                    organism = f"{organism} {strain}"
                names[reference_id] = organism
    except OSError as e:
        raise InputFileError(path, str(e)) from e

    logger.info("Read %d named isolates from %s", len(names), path)
    return names


def load_reference_names(
    mode: NameSource,
    *,
    reference_fasta: Path | None = None,
    isolates_file: Path | None = None,
) -> dict[str, str]:
    """Organism names of the references.

    Args:
        mode: "description" to take names from the FASTA descriptions,
            "isolates" to read them from a named-isolates file.
        reference_fasta: Reference FASTA, required in description mode.
        isolates_file: Named-isolates file, required in isolates mode.

    Returns:
        Reference id -> organism name, in file order.
    """
    if mode == "isolates":
        if isolates_file is None:
            msg = "isolates_file is required when names come from a named-isolates file"
            raise ValueError(msg)
        return load_isolate_names(isolates_file)

    if reference_fasta is None:
        msg = "reference_fasta is required when names come from sequence descriptions"
        raise ValueError(msg)
    names = {
        ref.reference_id: organism_from_description(ref.description)
        for ref in iter_references(reference_fasta)
    }
    logger.info("Read %d reference names from %s", len(names), reference_fasta)
    return names


def write_correspondences(path: Path, correlations: Mapping[str, str]) -> int:
    """Write resolved source id -> reference id pairs.

    Entries with an empty reference id are omitted.

    Returns:
        Number of pairs written.
    """
    resolved = {k: v for k, v in correlations.items() if v}
    df = pl.DataFrame(
        {
            "source_id": list(resolved.keys()),
            "reference_id": list(resolved.values()),
        },
        schema={"source_id": pl.Utf8, "reference_id": pl.Utf8},
    )
    with path.open("w") as f:
        f.write("#source_id\treference_id\n")
        f.write(df.write_csv(separator="\t", include_header=False))

    logger.info("Wrote %d correspondences to %s", len(df), path)
    return len(df)
