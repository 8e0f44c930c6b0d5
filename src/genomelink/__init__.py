"""
genomelink: link genome catalog entries to reference 16S rRNA sequences.

Resolves which reference sequence (e.g., a Greengenes prokMSA id) corresponds
to each genome of a metadata catalog (e.g., IMG), first by organism name and
then by 16S rRNA gene alignment.
"""

__version__ = "0.1.0"
__author__ = "genomelink Team"

from genomelink.core.name_matcher import NameMatch, match_name
from genomelink.core.names import ParsedName, parse_name
from genomelink.core.resolution import Resolver

__all__ = [
    "NameMatch",
    "ParsedName",
    "Resolver",
    "__version__",
    "match_name",
    "parse_name",
]
