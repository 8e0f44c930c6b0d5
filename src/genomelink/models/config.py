"""
Pydantic configuration models for genomelink.

These models hold the matching thresholds, the stage switches and the BLAST
settings of a resolution run. Configuration can be loaded from a YAML file;
command-line options override the loaded values.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError

from genomelink.core.constants import (
    BLAST_OUTFMT,
    DEFAULT_MIN_COVERAGE,
    DEFAULT_MIN_IDENTITY,
)
from genomelink.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class MatchingConfig(BaseModel):
    """
    Configuration of the resolution stages.

    Identity and coverage are percentages relative to the shorter of the two
    aligned sequences. Both thresholds are inclusive.

    Attributes:
        min_identity: Minimum percent identity of an accepted HSP
        min_coverage: Minimum percent coverage of an accepted HSP
        name_matching: Run the name matching stage
        sequence_matching: Run the sequence matching stage
        allow_species_fallback: Accept a same-species reference without
            strain evidence
        name_source: Where reference organism names come from
        finished_only: Drop genomes whose sequencing status is not finished
    """

    min_identity: float = Field(
        default=DEFAULT_MIN_IDENTITY,
        ge=0,
        le=100,
        description="Minimum percent identity of an accepted alignment",
    )
    min_coverage: float = Field(
        default=DEFAULT_MIN_COVERAGE,
        ge=0,
        le=100,
        description="Minimum percent coverage of an accepted alignment",
    )
    name_matching: bool = Field(default=True, description="Run name matching")
    sequence_matching: bool = Field(default=True, description="Run sequence matching")
    allow_species_fallback: bool = Field(
        default=False,
        description="Fall back to any reference of the same species",
    )
    name_source: Literal["description", "isolates"] = Field(
        default="description",
        description=(
            "'description' reads organism names from the reference FASTA headers, "
            "'isolates' from a named-isolates file"
        ),
    )
    finished_only: bool = Field(
        default=False,
        description="Exclude genomes that are not finished",
    )

    model_config = {"frozen": True}

    @property
    def any_stage_enabled(self) -> bool:
        return self.name_matching or self.sequence_matching


class BlastConfig(BaseModel):
    """
    Configuration for blastn runs of query 16S genes against references.

    Near-identical full-length 16S sequences are expected, so the defaults
    favour megablast with a small number of targets per query.

    Attributes:
        task: blastn task (megablast, dc-megablast or blastn)
        num_threads: Number of CPU threads for BLAST
        word_size: Word size for seed matches (None uses the task default)
        max_target_seqs: Maximum aligned sequences per query
        evalue: E-value threshold
        perc_identity: Minimum percent identity applied by BLAST itself
        outfmt: BLAST output format string
    """

    task: Literal["megablast", "dc-megablast", "blastn"] = Field(
        default="megablast",
        description="blastn task",
    )
    num_threads: int = Field(default=4, ge=1, description="Number of CPU threads")
    word_size: int | None = Field(
        default=None,
        ge=4,
        description="Word size for seed matches",
    )
    max_target_seqs: int = Field(
        default=10,
        ge=1,
        description="Maximum aligned sequences per query",
    )
    evalue: float = Field(default=1e-10, gt=0, description="E-value threshold")
    perc_identity: float = Field(
        default=0.0,
        ge=0,
        le=100,
        description="Minimum percent identity filter",
    )
    outfmt: str = Field(
        default=BLAST_OUTFMT,
        description="BLAST output format specification",
    )

    model_config = {"frozen": True}


class ResolverConfig(BaseModel):
    """Complete configuration of a resolution run."""

    matching: MatchingConfig = Field(default_factory=MatchingConfig)
    blast: BlastConfig = Field(default_factory=BlastConfig)

    model_config = {"frozen": True}

    @classmethod
    def from_yaml(cls, path: Path) -> ResolverConfig:
        """
        Load configuration from a YAML file.

        The file uses nested ``thresholds``, ``stages``, ``names``, ``filters``
        and ``blast`` sections. Unknown keys are ignored.

        Args:
            path: Path to YAML configuration file.

        Returns:
            ResolverConfig populated from YAML values merged with defaults.

        Raises:
            ConfigurationError: If the file is missing, is not a mapping or
                holds invalid values.
        """
        import yaml

        if not path.exists():
            msg = f"Configuration file not found: {path}"
            raise ConfigurationError(msg, suggestion="Check the --config path")
        try:
            raw = yaml.safe_load(path.read_text())
        except yaml.YAMLError as e:
            msg = f"Could not parse YAML configuration {path}: {e}"
            raise ConfigurationError(msg) from e

        if raw is None:
            raw = {}
        if not isinstance(raw, dict):
            msg = f"YAML config must be a mapping, got {type(raw).__name__}"
            raise ConfigurationError(msg)

        try:
            config = cls(
                matching=MatchingConfig(**_flatten_matching(raw)),
                blast=BlastConfig(**_flatten_blast(raw)),
            )
        except ValidationError as e:
            msg = f"Invalid values in configuration {path}:\n{e}"
            raise ConfigurationError(msg) from e

        logger.debug("Loaded configuration from %s", path)
        return config

    def to_yaml(self, path: Path) -> None:
        """Write the configuration to a YAML file."""
        path.write_text(self.to_yaml_str())

    def to_yaml_str(self) -> str:
        """Serialize the configuration to a YAML string with nested sections."""
        import yaml

        data = _build_yaml_structure(self)
        return yaml.dump(data, default_flow_style=False, sort_keys=False)

    def with_overrides(
        self,
        matching: dict[str, Any] | None = None,
        blast: dict[str, Any] | None = None,
    ) -> ResolverConfig:
        """Copy of the configuration with non-None values replaced."""
        matching_updates = {k: v for k, v in (matching or {}).items() if v is not None}
        blast_updates = {k: v for k, v in (blast or {}).items() if v is not None}
        try:
            return ResolverConfig(
                matching=MatchingConfig(
                    **{**self.matching.model_dump(), **matching_updates}
                ),
                blast=BlastConfig(**{**self.blast.model_dump(), **blast_updates}),
            )
        except ValidationError as e:
            msg = f"Invalid option value:\n{e}"
            raise ConfigurationError(msg) from e


def _flatten_matching(raw: dict[str, Any]) -> dict[str, Any]:
    """
    Flatten the nested YAML sections into MatchingConfig keyword arguments.

    Maps:
        thresholds.min_identity -> min_identity
        stages.name_matching -> name_matching
        names.source -> name_source
        filters.finished_only -> finished_only
    """
    flat: dict[str, Any] = {}

    thresholds = raw.get("thresholds") or {}
    _map_if_present(thresholds, "min_identity", flat, "min_identity")
    _map_if_present(thresholds, "min_coverage", flat, "min_coverage")

    stages = raw.get("stages") or {}
    _map_if_present(stages, "name_matching", flat, "name_matching")
    _map_if_present(stages, "sequence_matching", flat, "sequence_matching")

    names = raw.get("names") or {}
    _map_if_present(names, "source", flat, "name_source")
    _map_if_present(names, "allow_species_fallback", flat, "allow_species_fallback")

    filters = raw.get("filters") or {}
    _map_if_present(filters, "finished_only", flat, "finished_only")

    return flat


def _flatten_blast(raw: dict[str, Any]) -> dict[str, Any]:
    flat: dict[str, Any] = {}
    blast = raw.get("blast") or {}
    for key in ("task", "word_size", "max_target_seqs", "evalue", "perc_identity"):
        _map_if_present(blast, key, flat, key)
    _map_if_present(blast, "threads", flat, "num_threads")
    return flat


def _map_if_present(
    source: dict[str, Any],
    source_key: str,
    target: dict[str, Any],
    target_key: str,
) -> None:
    """Copy value from source dict to target dict if key exists."""
    if source_key in source and source[source_key] is not None:
        target[target_key] = source[source_key]


def _build_yaml_structure(config: ResolverConfig) -> dict[str, Any]:
    """Build nested YAML dict from a ResolverConfig instance."""
    matching = config.matching
    blast = config.blast
    blast_section: dict[str, Any] = {
        "task": blast.task,
        "threads": blast.num_threads,
        "max_target_seqs": blast.max_target_seqs,
        "evalue": blast.evalue,
        "perc_identity": blast.perc_identity,
    }
    if blast.word_size is not None:
        blast_section["word_size"] = blast.word_size

    return {
        "thresholds": {
            "min_identity": matching.min_identity,
            "min_coverage": matching.min_coverage,
        },
        "stages": {
            "name_matching": matching.name_matching,
            "sequence_matching": matching.sequence_matching,
        },
        "names": {
            "source": matching.name_source,
            "allow_species_fallback": matching.allow_species_fallback,
        },
        "filters": {
            "finished_only": matching.finished_only,
        },
        "blast": blast_section,
    }
