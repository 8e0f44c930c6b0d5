"""
Tiered approximate matching of organism names against a TaxonIndex.

Tiers are tried from the most to the least strict and the first tier that
produces a candidate wins:

1. exact strain
2. normalized strain
3. shared strain token (minimum token length 5, 4, 3, then 2)
4. species only (opt-in)

Matching functions are pure: they return a NameMatch or None and leave any
reporting to the caller.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum

from genomelink.core.constants import CULTURE_COLLECTIONS, PARTIAL_TOKEN_LENGTHS
from genomelink.core.names import ParsedName, parse_name
from genomelink.core.taxon_index import TaxonCandidate, TaxonIndex

# Separator variants tried when splitting strains into tokens
_SEPARATOR_VARIANTS: tuple[str | None, ...] = (None, "-", "/")

# Leading "xyz__" tag or a fused culture collection acronym ("DSM20011")
_TOKEN_PREFIX = re.compile(
    r"^(?:[A-Za-z]+__|(?:"
    + "|".join(sorted(CULTURE_COLLECTIONS, key=len, reverse=True))
    + r")(?=\d))"
)


class MatchTier(str, Enum):
    """Confidence level at which a name match was found."""

    EXACT = "exact"
    NORMALIZED = "normalized"
    TOKEN_4 = "token>=4"
    TOKEN_3 = "token3"
    TOKEN_2 = "token2"
    SPECIES = "species"

    @classmethod
    def for_token_length(cls, min_length: int) -> MatchTier:
        """Tier implied by the minimum token length of a partial match."""
        if min_length >= 4:
            return cls.TOKEN_4
        if min_length == 3:
            return cls.TOKEN_3
        return cls.TOKEN_2


@dataclass(frozen=True)
class NameMatch:
    """Reference selected for a query name.

    Attributes:
        reference_id: Identifier of the matched reference.
        reference_name: Original organism name of the reference.
        tier: Matching tier that produced the result.
    """

    reference_id: str
    reference_name: str
    tier: MatchTier

    @classmethod
    def from_candidate(cls, candidate: TaxonCandidate, tier: MatchTier) -> NameMatch:
        return cls(
            reference_id=candidate.reference_id,
            reference_name=candidate.name,
            tier=tier,
        )


def strain_tokens(
    strain_normalized: str,
    min_length: int,
    separator: str | None = None,
    strip_prefix: bool = False,
) -> set[str]:
    """Split a normalized strain into comparable tokens.

    Args:
        strain_normalized: Output of ``massage_strain``.
        min_length: Tokens shorter than this are dropped.
        separator: Character treated as whitespace before splitting.
        strip_prefix: Remove a leading "xyz__" tag or collection acronym.

    Returns:
        Set of non-empty tokens

    Example:
        >>> sorted(strain_tokens("ATCC-BAA-365 LC2W", 3, separator="-"))
        ['365', 'ATCC', 'BAA', 'LC2W']
    """
    text = strain_normalized.replace(separator, " ") if separator else strain_normalized
    tokens = (t for t in text.split() if len(t) >= min_length)
    if strip_prefix:
        tokens = (_TOKEN_PREFIX.sub("", t) for t in tokens)
    return {t for t in tokens if t}


def _shares_token(query: str, candidate: str, min_length: int) -> bool:
    for separator in _SEPARATOR_VARIANTS:
        for strip_prefix in (False, True):
            query_tokens = strain_tokens(query, min_length, separator, strip_prefix)
            if not query_tokens:
                continue
            if query_tokens & strain_tokens(candidate, min_length, separator, strip_prefix):
                return True
    return False


def _partial_matches(
    query: ParsedName,
    candidates: list[TaxonCandidate],
) -> Iterator[NameMatch]:
    for candidate in candidates:
        for min_length in PARTIAL_TOKEN_LENGTHS:
            if _shares_token(query.strain_normalized, candidate.strain_normalized, min_length):
                yield NameMatch.from_candidate(
                    candidate, MatchTier.for_token_length(min_length)
                )
                break


def match_parsed(
    query: ParsedName,
    index: TaxonIndex,
    allow_species_fallback: bool = False,
) -> NameMatch | None:
    """Match an already parsed name. See ``match_name``."""
    if not query.genus or not query.species:
        return None
    if not index.has_species(query.genus, query.species):
        return None

    exact = index.leaf(query.genus, query.species, query.strain)
    if exact:
        return NameMatch.from_candidate(exact[0], MatchTier.EXACT)

    candidates = list(index.candidates(query.genus, query.species))

    for candidate in candidates:
        if candidate.strain_normalized == query.strain_normalized:
            return NameMatch.from_candidate(candidate, MatchTier.NORMALIZED)

    partial = next(_partial_matches(query, candidates), None)
    if partial is not None:
        return partial

    if allow_species_fallback:
        return NameMatch.from_candidate(candidates[0], MatchTier.SPECIES)

    return None


def match_name(
    entity_name: str,
    index: TaxonIndex,
    allow_species_fallback: bool = False,
) -> NameMatch | None:
    """Find the reference that best matches an organism name.

    Args:
        entity_name: Free-text organism name of the entity.
        index: TaxonIndex over the reference names.
        allow_species_fallback: Accept any reference of the same species when
            no strain-level evidence is found.

    Returns:
        NameMatch, or None when no tier produced a candidate.
    """
    return match_parsed(parse_name(entity_name), index, allow_species_fallback)
