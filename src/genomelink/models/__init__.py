"""
Pydantic data models for genomelink.

Provides models for genome records, reference sequences and run configuration.
"""

from genomelink.models.config import BlastConfig, MatchingConfig, ResolverConfig
from genomelink.models.genomes import Domain, Entity, Reference

__all__ = [
    "BlastConfig",
    "Domain",
    "Entity",
    "MatchingConfig",
    "Reference",
    "ResolverConfig",
]
