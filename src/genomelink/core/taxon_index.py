"""
Three-level lookup of reference organisms by genus, species and strain.

The index is built once per run from the reference names. Every level keeps
insertion order, which makes all candidate enumeration deterministic for a
given input order: the first reference read is the first one offered to the
name matcher.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from typing import NamedTuple

from genomelink.core.names import ParsedName, parse_name

logger = logging.getLogger(__name__)


class TaxonCandidate(NamedTuple):
    """One reference stored under a genus/species/strain leaf."""

    reference_id: str
    name: str
    strain: str
    strain_normalized: str


class TaxonIndex:
    """Nested genus -> species -> strain -> candidates container.

    Lookups never create intermediate levels; use ``add`` to insert.

    Example:
        >>> index = TaxonIndex.build({"R1": "Lactobacillus casei LC2W"})
        >>> [c.reference_id for c in index.candidates("Lactobacillus", "casei")]
        ['R1']
    """

    def __init__(self) -> None:
        self._tree: dict[str, dict[str, dict[str, list[TaxonCandidate]]]] = {}
        self._ids: set[str] = set()

    @classmethod
    def build(
        cls,
        names: Mapping[str, str] | Iterable[tuple[str, str]],
    ) -> TaxonIndex:
        """Build an index from reference id -> organism name pairs.

        References whose name has no parseable genus are skipped.

        Args:
            names: Mapping or iterable of (reference_id, organism_name).

        Returns:
            Populated TaxonIndex
        """
        items = names.items() if isinstance(names, Mapping) else names
        index = cls()
        skipped = 0
        for reference_id, name in items:
            if not index.add(reference_id, name):
                skipped += 1

        logger.info(
            "Indexed %d references under %d genera (%d skipped)",
            len(index),
            index.genus_count,
            skipped,
        )
        return index

    def add(
        self,
        reference_id: str,
        name: str,
        parsed: ParsedName | None = None,
    ) -> bool:
        """Insert one reference.

        Returns:
            True if the reference was indexed, False if it was skipped
            because its genus is empty or its id is already present.
        """
        if reference_id in self._ids:
            return False
        if parsed is None:
            parsed = parse_name(name)
        if not parsed.genus:
            return False

        strains = self._tree.setdefault(parsed.genus, {}).setdefault(parsed.species, {})
        strains.setdefault(parsed.strain, []).append(
            TaxonCandidate(
                reference_id=reference_id,
                name=name,
                strain=parsed.strain,
                strain_normalized=parsed.strain_normalized,
            )
        )
        self._ids.add(reference_id)
        return True

    def strains(self, genus: str, species: str) -> Mapping[str, list[TaxonCandidate]]:
        """Strain buckets for a genus/species pair (empty if absent)."""
        return self._tree.get(genus, {}).get(species, {})

    def leaf(self, genus: str, species: str, strain: str) -> list[TaxonCandidate]:
        """Candidates sharing exactly this genus, species and strain."""
        return list(self.strains(genus, species).get(strain, ()))

    def candidates(self, genus: str, species: str) -> Iterator[TaxonCandidate]:
        """Iterate all candidates of a genus/species pair in insertion order."""
        for bucket in self.strains(genus, species).values():
            yield from bucket

    def has_species(self, genus: str, species: str) -> bool:
        return bool(self.strains(genus, species))

    @property
    def genus_count(self) -> int:
        return len(self._tree)

    def __len__(self) -> int:
        return len(self._ids)

    def __contains__(self, reference_id: object) -> bool:
        return reference_id in self._ids
