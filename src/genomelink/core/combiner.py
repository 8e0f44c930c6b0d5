"""
Combine genome metadata, reference taxonomy and correspondences into one table.

Output columns:
    IMG ID, IMG Name, IMG Tax, GG ID, GG Tax, 16S Count, Genome Length, Gene Count

Only prokaryotic genomes with at least one 16S rRNA gene are written. Empty
genus or species ranks of the reference taxonomy can be filled in from the
genome name.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path

import polars as pl

from genomelink.core.constants import CANDIDATUS, MISSING_VALUE
from genomelink.models.genomes import Entity

logger = logging.getLogger(__name__)

OUTPUT_COLUMNS = (
    "IMG ID",
    "IMG Name",
    "IMG Tax",
    "GG ID",
    "GG Tax",
    "16S Count",
    "Genome Length",
    "Gene Count",
)

TAXONOMY_RANKS = 7
GENUS_PREFIX = "g__"
SPECIES_PREFIX = "s__"

_CANDIDATUS_PREFIX = re.compile(rf"^{CANDIDATUS}\s+", re.IGNORECASE)
_SPECIES_PLACEHOLDER = re.compile(r"^sp\.?$")


@dataclass(frozen=True)
class TaxonomyStyle:
    """Formatting conventions of a reference taxonomy file.

    Attributes:
        sep_space: Rank separator ";" is followed by a space
        spp_space: Species rank holds a space ("s__Genus species")
    """

    sep_space: bool = False
    spp_space: bool = False

    @property
    def separator(self) -> str:
        return "; " if self.sep_space else ";"

    @property
    def species_joiner(self) -> str:
        return " " if self.spp_space else ""


@dataclass(frozen=True)
class TaxonomyFix:
    """Result of an attempted taxonomy repair."""

    taxonomy: str
    fixed: bool = False
    skipped: str | None = None


@dataclass
class CombineReport:
    """Counters of a combine run."""

    metadata_entries: int = 0
    written: int = 0
    num_fixed: int = 0
    skipped_fixes: int = 0


def detect_taxonomy_style(taxonomies: Iterable[str]) -> TaxonomyStyle:
    """Detect separator and species spacing from the last rank of each string.

    Example:
        >>> detect_taxonomy_style(["k__Bacteria; p__Firmicutes; s__casei"])
        TaxonomyStyle(sep_space=True, spp_space=False)
    """
    sep_space = False
    spp_space = False
    for taxonomy in taxonomies:
        species = taxonomy.split(";")[-1]
        stripped = species.lstrip()
        if stripped != species:
            sep_space = True
        if " " in stripped:
            spp_space = True
    return TaxonomyStyle(sep_space=sep_space, spp_space=spp_space)


def fix_taxonomy_string(
    taxonomy: str,
    genome_name: str,
    style: TaxonomyStyle,
) -> TaxonomyFix:
    """Fill an empty genus or species rank from the genome name.

    The string is returned unchanged when it does not hold seven ranks, when
    nothing is missing, or when the name looks suspicious (lowercase genus,
    capitalized species) or names a different genus than the taxonomy.

    Example:
        >>> style = TaxonomyStyle(sep_space=True, spp_space=True)
        >>> tax = "k__B; p__F; c__B; o__L; f__L; g__Lactobacillus; s__"
        >>> fix_taxonomy_string(tax, "Lactobacillus casei LC2W", style).taxonomy
        'k__B; p__F; c__B; o__L; f__L; g__Lactobacillus; s__Lactobacillus casei'
    """
    ranks = re.split(r";\s*", taxonomy)
    if len(ranks) != TAXONOMY_RANKS:
        return TaxonomyFix(taxonomy)

    tax_genus, tax_species = ranks[-2], ranks[-1]
    if tax_genus != GENUS_PREFIX and tax_species != SPECIES_PREFIX:
        return TaxonomyFix(taxonomy)

    name, candidatus = _CANDIDATUS_PREFIX.subn("", genome_name.strip())
    words = name.split()
    genus = words[0] if words else ""
    species = words[1] if len(words) > 1 else ""

    if genus[:1].islower():
        return TaxonomyFix(taxonomy, skipped=f"lowercase genus '{genus}'")
    if species[:1].isupper():
        return TaxonomyFix(taxonomy, skipped=f"capitalized species '{species}'")

    expected_genus = GENUS_PREFIX + (f"{CANDIDATUS} " if candidatus else "") + genus
    if tax_genus not in (GENUS_PREFIX, expected_genus):
        return TaxonomyFix(
            taxonomy,
            skipped=f"genus disagreement: '{tax_genus}' vs '{genome_name}'",
        )

    fixed = False
    if genus and tax_genus == GENUS_PREFIX:
        ranks[-2] = GENUS_PREFIX + genus
        fixed = True
    if species and not _SPECIES_PLACEHOLDER.match(species) and tax_species == SPECIES_PREFIX:
        joiner = style.species_joiner
        prefix = CANDIDATUS + joiner if candidatus else ""
        ranks[-1] = f"{SPECIES_PREFIX}{prefix}{genus}{joiner}{species}"
        fixed = True

    return TaxonomyFix(style.separator.join(ranks), fixed=fixed)


def combine_records(
    entities: Iterable[Entity],
    taxonomies: Mapping[str, str],
    correlations: Mapping[str, str],
    finished_only: bool = True,
    fix_species: bool = True,
) -> tuple[pl.DataFrame, CombineReport]:
    """Join genome metadata with reference ids and taxonomy strings.

    Args:
        entities: Genome records, in metadata file order.
        taxonomies: Reference id -> taxonomy string.
        correlations: Genome id -> reference id.
        finished_only: Keep finished genomes only.
        fix_species: Repair empty genus/species ranks from genome names.

    Returns:
        Tuple of (DataFrame with OUTPUT_COLUMNS, CombineReport)
    """
    style = detect_taxonomy_style(taxonomies.values())
    report = CombineReport()
    rows: list[tuple[str, ...]] = []

    for entity in entities:
        report.metadata_entries += 1
        if not entity.domain.in_scope:
            continue
        if finished_only and not entity.is_finished:
            continue

        reference_id = correlations.get(entity.entity_id) or None
        taxonomy = taxonomies.get(reference_id, MISSING_VALUE) if reference_id else MISSING_VALUE

        if fix_species:
            fix = fix_taxonomy_string(taxonomy, entity.name, style)
            taxonomy = fix.taxonomy
            if fix.fixed:
                report.num_fixed += 1
            elif fix.skipped:
                report.skipped_fixes += 1
                logger.debug("Taxonomy of %s not fixed: %s", entity.entity_id, fix.skipped)

        if not entity.rrna_count:
            continue

        rows.append(
            (
                entity.entity_id,
                entity.name,
                entity.lineage_string,
                reference_id or MISSING_VALUE,
                taxonomy,
                str(entity.rrna_count),
                entity.genome_size,
                entity.gene_count,
            )
        )

    report.written = len(rows)
    df = pl.DataFrame(rows, schema={c: pl.Utf8 for c in OUTPUT_COLUMNS}, orient="row")
    logger.info(
        "Combined %d of %d metadata entries, fixed %d taxonomy strings",
        report.written,
        report.metadata_entries,
        report.num_fixed,
    )
    return df, report


def write_combined(df: pl.DataFrame, path: Path) -> None:
    """Write combined records with a "#"-prefixed header line."""
    with path.open("w") as f:
        f.write("#" + "\t".join(OUTPUT_COLUMNS) + "\n")
        f.write(df.write_csv(separator="\t", include_header=False))
