"""
Data models for genomes and reference sequences.

Genomes (entities) come from a genome metadata catalog such as IMG; references
are 16S rRNA sequences of a reference taxonomy such as Greengenes.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, field_validator

from genomelink.core.constants import FINISHED_STATUS, IN_SCOPE_DOMAINS, MISSING_VALUE


class Domain(str, Enum):
    """Domain of life of a genome."""

    BACTERIA = "Bacteria"
    ARCHAEA = "Archaea"
    OTHER = "Other"

    @classmethod
    def from_label(cls, label: str | None) -> Domain:
        """Map a free-text domain label to a Domain, defaulting to OTHER."""
        text = (label or "").strip().lower()
        for member in (cls.BACTERIA, cls.ARCHAEA):
            if text == member.value.lower():
                return member
        return cls.OTHER

    @property
    def in_scope(self) -> bool:
        """True for domains with comparable 16S rRNA genes."""
        return self.value in IN_SCOPE_DOMAINS


class Entity(BaseModel):
    """Genome record of the metadata catalog.

    Attributes:
        entity_id: Catalog identifier (e.g., IMG taxon_oid)
        name: Display name of the organism
        domain: Domain classification
        status: Sequencing status (e.g., "Finished", "Draft")
        lineage: Six ranks from phylum to species, when provided
        genome_size: Genome length in base pairs
        gene_count: Number of genes
        rrna_count: Number of 16S rRNA genes
    """

    entity_id: str = Field(description="Catalog identifier")
    name: str = Field(default="", description="Organism display name")
    domain: Domain = Field(default=Domain.OTHER, description="Domain classification")
    status: str | None = Field(default=None, description="Sequencing status")
    lineage: tuple[str, ...] = Field(
        default_factory=tuple,
        description="Phylum, class, order, family, genus and species",
    )
    genome_size: str = Field(default=MISSING_VALUE, description="Genome length (bp)")
    gene_count: str = Field(default=MISSING_VALUE, description="Number of genes")
    rrna_count: int | None = Field(default=None, ge=0, description="16S rRNA gene count")

    model_config = {"frozen": True}

    @field_validator("domain", mode="before")
    @classmethod
    def coerce_domain(cls, v: object) -> object:
        """Accept free-text domain labels."""
        if isinstance(v, str) and not isinstance(v, Domain):
            return Domain.from_label(v)
        return v

    @property
    def is_finished(self) -> bool:
        """True if the genome sequence is finished (complete)."""
        return (self.status or "").strip() == FINISHED_STATUS

    @property
    def lineage_string(self) -> str:
        """Lineage joined with semicolons, or "-" if unknown."""
        return ";".join(self.lineage) if self.lineage else MISSING_VALUE


class Reference(BaseModel):
    """Reference 16S rRNA sequence record.

    Attributes:
        reference_id: Reference identifier (e.g., Greengenes prokMSA id)
        description: FASTA description line after the identifier
    """

    reference_id: str = Field(description="Reference identifier")
    description: str = Field(default="", description="Sequence description")

    model_config = {"frozen": True}
