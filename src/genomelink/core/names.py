"""
Organism name parsing and strain normalization.

Splits free-text organism names such as
``"Candidatus Methanococcus infernus str. ME"`` into genus, species and
strain parts, and derives a normalized strain designation that tolerates the
usual spelling variants of culture collection numbers and rank
abbreviations.

The normalization runs as an ordered pipeline over the whole string:

1. fuse culture collection numbers (``DSM 20021`` -> ``DSM20021``)
2. insert a missing space after a rank abbreviation (``sp.ABC1``)
3. expand rank abbreviations to full lowercase words (``str.`` -> ``strain``)
4. strip a leading ``Candidatus``
5. split off genus, species and strain
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from genomelink.core.constants import (
    CANDIDATUS,
    CULTURE_COLLECTIONS,
    RANK_ABBREVIATIONS,
    RANK_WORDS,
)


def _alternation(words) -> str:
    # Longest first so that e.g. DSMZ wins over DSM
    return "|".join(re.escape(w) for w in sorted(words, key=len, reverse=True))


_COLLECTION_NUMBER = re.compile(
    r"\b(" + _alternation(CULTURE_COLLECTIONS) + r")[\s:_-]?\s*(\d+)"
)
_COLLECTION_WORD = re.compile(r"\b(?:" + _alternation(CULTURE_COLLECTIONS) + r")\b")

_ABBREVIATIONS = [k for k, v in RANK_ABBREVIATIONS.items() if k != v]
_MISSING_SPACE = re.compile(
    r"(?<![\w.])(" + _alternation(_ABBREVIATIONS) + r")\.(?=\w)", re.IGNORECASE
)
_RANK_TOKEN = re.compile(
    r"(?<![\w.])(" + _alternation(RANK_ABBREVIATIONS) + r")\.?(?!\w)", re.IGNORECASE
)
_RANK_WORD = re.compile(r"\b(?:" + _alternation(RANK_WORDS) + r")\b", re.IGNORECASE)
_CANDIDATUS = re.compile(r"^" + CANDIDATUS + r"\s+", re.IGNORECASE)
_STRAY_PUNCTUATION = re.compile(r"[,;]")
_WHITESPACE = re.compile(r"\s+")

# Ranks that introduce an infraspecific part instead of a species epithet
INFRASPECIFIC_RANKS: frozenset[str] = frozenset(w for w in RANK_WORDS if w != "species")


@dataclass(frozen=True)
class ParsedName:
    """Structured view of an organism name.

    Attributes:
        candidatus: True if the name carried a leading "Candidatus".
        genus: Genus token, empty for non-scientific names.
        species: Species epithet, empty when absent or a "sp." placeholder.
        strain: Remaining strain designation, lightly cleaned.
        strain_normalized: Strain after ``massage_strain``.
    """

    candidatus: bool = False
    genus: str = ""
    species: str = ""
    strain: str = ""
    strain_normalized: str = ""

    @property
    def is_empty(self) -> bool:
        """True when no genus could be extracted."""
        return not self.genus

    def reconstruct(self) -> str:
        """Render the canonical "Genus species strain" form."""
        parts = [CANDIDATUS] if self.candidatus else []
        parts.append(self.genus)
        parts.append(self.species or "sp.")
        if self.strain:
            parts.append(self.strain)
        return " ".join(p for p in parts if p) if self.genus else ""


def fuse_collection_numbers(text: str) -> str:
    """Join culture collection acronyms with their catalog number.

    Example:
        >>> fuse_collection_numbers("Lactobacillus casei DSM 20011")
        'Lactobacillus casei DSM20011'
    """
    return _COLLECTION_NUMBER.sub(r"\1\2", text)


def expand_rank_abbreviations(text: str) -> str:
    """Spell out rank abbreviations as full lowercase words.

    Example:
        >>> expand_rank_abbreviations("Salmonella enterica subsp. enterica sv. Typhi")
        'Salmonella enterica subspecies enterica serovar Typhi'
    """
    text = _MISSING_SPACE.sub(r"\1. ", text)
    return _RANK_TOKEN.sub(lambda m: RANK_ABBREVIATIONS[m.group(1).lower()], text)


def _clean_strain(strain: str) -> str:
    strain = strain.strip()
    if strain.startswith(":"):
        strain = strain[1:].strip()
    if strain.startswith("strain "):
        strain = strain[len("strain "):].strip()
    if len(strain) >= 2 and strain.startswith("'") and strain.endswith("'"):
        strain = strain[1:-1].strip()
    return strain


def massage_strain(strain: str) -> str:
    """Normalize a strain designation for comparison.

    Removes rank words and bare culture collection acronyms, replaces commas
    and semicolons by spaces and collapses whitespace.

    Example:
        >>> massage_strain("strain ATCC BAA-365, DSM20011")
        'BAA-365 DSM20011'
    """
    strain = _RANK_WORD.sub(" ", strain)
    strain = _COLLECTION_WORD.sub(" ", strain)
    strain = _STRAY_PUNCTUATION.sub(" ", strain)
    return _WHITESPACE.sub(" ", strain).strip()


def parse_name(name: str) -> ParsedName:
    """Parse a free-text organism name.

    Names that do not start with an uppercase letter are not treated as
    scientific names and yield an empty ParsedName. The function never
    raises.

    Args:
        name: Organism name, e.g. "Escherichia coli str. K-12 substr. MG1655".

    Returns:
        ParsedName with genus, species and strain parts.

    Example:
        >>> parse_name("Candidatus Methanococcus infernus str. ME")
        ParsedName(candidatus=True, genus='Methanococcus', species='infernus', strain='ME', strain_normalized='ME')
    """
    text = (name or "").strip()
    if not text or not text[0].isupper():
        return ParsedName()

    text = fuse_collection_numbers(text)
    text = expand_rank_abbreviations(text)

    candidatus = bool(_CANDIDATUS.match(text))
    if candidatus:
        text = _CANDIDATUS.sub("", text, count=1)

    parts = text.split(None, 1)
    if not parts:
        return ParsedName(candidatus=candidatus)
    genus = parts[0]
    rest = parts[1].strip() if len(parts) > 1 else ""

    species = ""
    if rest and rest.split(None, 1)[0] not in INFRASPECIFIC_RANKS:
        species_parts = rest.split(None, 1)
        species = species_parts[0]
        rest = species_parts[1] if len(species_parts) > 1 else ""
        if species == "species":
            species = ""

    strain = _clean_strain(rest)
    return ParsedName(
        candidatus=candidatus,
        genus=genus,
        species=species,
        strain=strain,
        strain_normalized=massage_strain(strain),
    )
