"""
Core algorithms for linking genomes to reference sequences.

Contains name normalization, the reference taxon index, tiered name matching,
alignment result reduction and the resolution stages.
"""

from genomelink.core.alignment import AlignmentHit, AlignmentHsp, reduce_hits
from genomelink.core.name_matcher import MatchTier, NameMatch, match_name
from genomelink.core.names import ParsedName, massage_strain, parse_name
from genomelink.core.taxon_index import TaxonIndex

__all__ = [
    "AlignmentHit",
    "AlignmentHsp",
    "MatchTier",
    "NameMatch",
    "ParsedName",
    "TaxonIndex",
    "massage_strain",
    "match_name",
    "parse_name",
    "reduce_hits",
]
