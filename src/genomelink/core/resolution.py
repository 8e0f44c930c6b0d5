"""
Resolution of source genomes to reference sequences.

A resolution run starts from an initial correlation map (source id ->
reference id) and the set of source ids without a reference. Stages run in a
fixed order, each taking a ResolutionState and returning a new one together
with a StageReport:

1. out-of-scope exclusion (non-prokaryotic, optionally non-finished genomes)
2. invalid-id removal (targets that are not known references)
3. name matching
4. sequence matching

Correspondences are only ever added by the matching stages and only ever
removed by the first two stages.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Callable, Collection, Iterable, Mapping
from dataclasses import dataclass, field

from genomelink.core.alignment import AlignmentHit, reduce_hits
from genomelink.core.exceptions import GenomelinkError
from genomelink.core.name_matcher import match_name
from genomelink.core.taxon_index import TaxonIndex
from genomelink.models.config import MatchingConfig
from genomelink.models.genomes import Entity

logger = logging.getLogger(__name__)

HitsProvider = Callable[[list[str]], Iterable[AlignmentHit]]


@dataclass(frozen=True)
class ResolutionState:
    """Correlations and unresolved source ids at a point of the run.

    Attributes:
        correlations: Source id -> reference id
        unresolved: Source id -> display name (None when unknown), in
            insertion order
    """

    correlations: dict[str, str] = field(default_factory=dict)
    unresolved: dict[str, str | None] = field(default_factory=dict)

    @classmethod
    def initial(
        cls,
        correlations: Mapping[str, str],
        unresolved_ids: Iterable[str],
        entity_names: Mapping[str, str] | None = None,
    ) -> ResolutionState:
        """State built from loaded correspondences and entity names."""
        names = entity_names or {}
        return cls(
            correlations=dict(correlations),
            unresolved={sid: names.get(sid) or None for sid in unresolved_ids},
        )

    def copy(self) -> ResolutionState:
        return ResolutionState(dict(self.correlations), dict(self.unresolved))


@dataclass(frozen=True)
class StageReport:
    """Outcome of one resolution stage.

    Attributes:
        stage: Stage name
        resolved: Number of source ids that gained a reference
        removed: Number of entries removed from the correlation map
        matches: (source id, reference id) pairs added by the stage
        tiers: Matches per name-matching tier
        error: Error message if the stage failed
    """

    stage: str
    resolved: int = 0
    removed: int = 0
    matches: tuple[tuple[str, str], ...] = ()
    tiers: dict[str, int] = field(default_factory=dict)
    error: str | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None


def exclude_out_of_scope(
    state: ResolutionState,
    entities: Mapping[str, Entity],
    finished_only: bool = False,
) -> tuple[ResolutionState, StageReport]:
    """Drop genomes outside Bacteria/Archaea (and optionally unfinished ones).

    Ids absent from ``entities`` are kept unchanged.
    """
    new = state.copy()
    excluded: list[str] = []
    for source_id in list(new.correlations) + list(new.unresolved):
        entity = entities.get(source_id)
        if entity is None:
            continue
        if entity.domain.in_scope and (entity.is_finished or not finished_only):
            continue
        if source_id in new.correlations or source_id in new.unresolved:
            excluded.append(source_id)
        new.correlations.pop(source_id, None)
        new.unresolved.pop(source_id, None)

    logger.info("Excluded %d out-of-scope genomes", len(excluded))
    return new, StageReport(stage="scope", removed=len(excluded))


def remove_invalid_ids(
    state: ResolutionState,
    reference_ids: Collection[str],
    entity_names: Mapping[str, str] | None = None,
) -> tuple[ResolutionState, StageReport]:
    """Move correlations whose target is not a known reference back to unresolved."""
    names = entity_names or {}
    new = state.copy()
    invalid = [sid for sid, tid in new.correlations.items() if tid not in reference_ids]
    for source_id in invalid:
        logger.debug(
            "Removing %s -> %s: reference not found",
            source_id,
            new.correlations[source_id],
        )
        del new.correlations[source_id]
        new.unresolved[source_id] = names.get(source_id) or None

    logger.info("Removed %d correspondences with unknown reference ids", len(invalid))
    return new, StageReport(stage="invalid_ids", removed=len(invalid))


def match_names(
    state: ResolutionState,
    index: TaxonIndex,
    allow_species_fallback: bool = False,
) -> tuple[ResolutionState, StageReport]:
    """Resolve unresolved genomes by organism name."""
    new = state.copy()
    matches: list[tuple[str, str]] = []
    tiers: Counter[str] = Counter()

    for source_id, name in state.unresolved.items():
        if not name:
            continue
        match = match_name(name, index, allow_species_fallback)
        if match is None:
            continue
        logger.debug(
            "Name match [%s] %s '%s' -> %s '%s'",
            match.tier.value,
            source_id,
            name,
            match.reference_id,
            match.reference_name,
        )
        new.correlations[source_id] = match.reference_id
        del new.unresolved[source_id]
        matches.append((source_id, match.reference_id))
        tiers[match.tier.value] += 1

    logger.info(
        "Name matching resolved %d of %d genomes",
        len(matches),
        len(state.unresolved),
    )
    report = StageReport(
        stage="names",
        resolved=len(matches),
        matches=tuple(matches),
        tiers=dict(tiers),
    )
    return new, report


def match_sequences(
    state: ResolutionState,
    hits_provider: HitsProvider,
    min_identity: float,
    min_coverage: float,
) -> tuple[ResolutionState, StageReport]:
    """Resolve unresolved genomes by 16S rRNA alignment.

    A GenomelinkError raised by the hits provider fails the stage; the input
    state is returned unchanged together with a failed report.
    """
    if not state.unresolved:
        return state.copy(), StageReport(stage="sequences")

    query_ids = list(state.unresolved)
    try:
        best = reduce_hits(hits_provider(query_ids), min_identity, min_coverage)
    except GenomelinkError as e:
        logger.error("Sequence matching failed: %s", e.message)
        return state.copy(), StageReport(stage="sequences", error=e.message)

    new = state.copy()
    matches: list[tuple[str, str]] = []
    for source_id in query_ids:
        target_id = best.get(source_id)
        if target_id is None:
            continue
        logger.debug("Sequence match %s -> %s", source_id, target_id)
        new.correlations[source_id] = target_id
        del new.unresolved[source_id]
        matches.append((source_id, target_id))

    logger.info(
        "Sequence matching resolved %d of %d genomes",
        len(matches),
        len(query_ids),
    )
    return new, StageReport(stage="sequences", resolved=len(matches), matches=tuple(matches))


@dataclass(frozen=True)
class ResolutionResult:
    """Final state of a run and the report of every stage that ran."""

    state: ResolutionState
    reports: tuple[StageReport, ...]

    @property
    def failed(self) -> bool:
        return any(r.failed for r in self.reports)

    def report(self, stage: str) -> StageReport | None:
        return next((r for r in self.reports if r.stage == stage), None)


class Resolver:
    """
    Runs the resolution stages over loaded inputs.

    Example:
        >>> resolver = Resolver(entities, reference_ids, index=index)
        >>> result = resolver.run(correlations, unresolved_ids)
        >>> result.state.correlations
    """

    def __init__(
        self,
        entities: Iterable[Entity],
        reference_ids: Collection[str],
        index: TaxonIndex | None = None,
        hits_provider: HitsProvider | None = None,
        config: MatchingConfig | None = None,
    ) -> None:
        """
        Args:
            entities: Genome records of the metadata table.
            reference_ids: Identifiers of all known references.
            index: Index over reference names; required for name matching.
            hits_provider: Callable returning alignment hits for a list of
                source ids; required for sequence matching.
            config: Stage switches and thresholds.
        """
        self.entities = {e.entity_id: e for e in entities}
        self.reference_ids = reference_ids
        self.index = index
        self.hits_provider = hits_provider
        self.config = config or MatchingConfig()

    @property
    def name_matching_enabled(self) -> bool:
        return self.config.name_matching and self.index is not None

    @property
    def sequence_matching_enabled(self) -> bool:
        return self.config.sequence_matching and self.hits_provider is not None

    def run(
        self,
        correlations: Mapping[str, str],
        unresolved_ids: Iterable[str],
    ) -> ResolutionResult:
        """Run all enabled stages.

        Args:
            correlations: Initial source id -> reference id map.
            unresolved_ids: Source ids without a reference.

        Returns:
            ResolutionResult with the final state and per-stage reports.
        """
        names = {sid: e.name for sid, e in self.entities.items() if e.name}
        state = ResolutionState.initial(correlations, unresolved_ids, names)
        reports: list[StageReport] = []

        state, report = exclude_out_of_scope(state, self.entities, self.config.finished_only)
        reports.append(report)

        if not (self.name_matching_enabled or self.sequence_matching_enabled):
            logger.info("No matching stage enabled")
            return ResolutionResult(state, tuple(reports))
        if not state.unresolved:
            logger.info("Nothing to resolve")
            return ResolutionResult(state, tuple(reports))

        state, report = remove_invalid_ids(state, self.reference_ids, names)
        reports.append(report)

        if self.name_matching_enabled:
            state, report = match_names(
                state, self.index, self.config.allow_species_fallback
            )
            reports.append(report)

        if self.sequence_matching_enabled:
            state, report = match_sequences(
                state,
                self.hits_provider,
                self.config.min_identity,
                self.config.min_coverage,
            )
            reports.append(report)

        logger.info(
            "%d genomes resolved, %d remain unresolved",
            len(state.correlations),
            len(state.unresolved),
        )
        return ResolutionResult(state, tuple(reports))
