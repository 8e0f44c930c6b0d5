"""
Reduction of pairwise alignment results to one best reference per query.

Alignments are produced by blastn with a custom tabular format (see
``BLAST_OUTFMT``). Each row is one aligned segment (HSP); consecutive rows for
the same query/target pair form one hit.

Selection rules per query:
- hits are visited by descending raw score (bitscore), stable
- scanning stops at the first hit scoring below the accepted best hit
- HSPs below the identity or coverage threshold are discarded
- the surviving HSP with most identical positions wins
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path
from typing import ClassVar, NamedTuple

import polars as pl

from genomelink.core.constants import BLAST_OUTFMT_COLUMNS, GENE_ID_SEPARATOR
from genomelink.core.exceptions import InputFileError, InvalidThresholdError

logger = logging.getLogger(__name__)


class AlignmentHsp(NamedTuple):
    """One locally aligned segment of a query/target alignment."""

    identical: int
    query_length: int
    target_length: int
    query_aligned: int
    target_aligned: int
    bitscore: float = 0.0

    @property
    def shorter_length(self) -> int:
        return min(self.query_length, self.target_length)

    @property
    def percent_identity(self) -> float:
        """Identical positions relative to the shorter sequence (0-100)."""
        if self.shorter_length <= 0:
            return 0.0
        return self.identical * 100 / self.shorter_length

    @property
    def coverage(self) -> float:
        """Aligned length relative to the shorter sequence (0-100)."""
        if self.shorter_length <= 0:
            return 0.0
        return min(self.query_aligned, self.target_aligned) * 100 / self.shorter_length


class AlignmentHit(NamedTuple):
    """All aligned segments between one query and one target."""

    query_id: str
    target_id: str
    score: float
    hsps: tuple[AlignmentHsp, ...]


class BestAlignment(NamedTuple):
    """Best accepted alignment of a query."""

    target_id: str
    score: float
    identical: int


def normalize_query_id(query_id: str) -> str:
    """Strip the gene part from a composite "<genomeId>_<geneId>" identifier.

    Example:
        >>> normalize_query_id("2500069000_2500071234")
        '2500069000'
    """
    return query_id.split(GENE_ID_SEPARATOR, 1)[0]


def _check_threshold(name: str, value: float) -> None:
    if not 0.0 <= value <= 100.0:
        raise InvalidThresholdError(name, value, 0.0, 100.0)


def select_best_hits(
    hits: Iterable[AlignmentHit],
    min_identity: float,
    min_coverage: float,
) -> dict[str, BestAlignment]:
    """Pick the best alignment for every query.

    Args:
        hits: Hits grouped by query, in aligner order.
        min_identity: Minimum percent identity of an HSP (inclusive).
        min_coverage: Minimum percent coverage of an HSP (inclusive).

    Returns:
        Query id -> BestAlignment, only for queries with a surviving HSP.
        Dict order follows the first appearance of each query.
    """
    _check_threshold("min_identity", min_identity)
    _check_threshold("min_coverage", min_coverage)

    by_query: dict[str, list[AlignmentHit]] = {}
    for hit in hits:
        by_query.setdefault(hit.query_id, []).append(hit)

    best: dict[str, BestAlignment] = {}
    for query_id, query_hits in by_query.items():
        current: BestAlignment | None = None
        # sorted() is stable: equal scores keep the aligner order
        for hit in sorted(query_hits, key=lambda h: h.score, reverse=True):
            if current is not None and hit.score < current.score:
                break
            for hsp in hit.hsps:
                if hsp.percent_identity < min_identity:
                    continue
                if hsp.coverage < min_coverage:
                    continue
                if current is None or hsp.identical > current.identical:
                    current = BestAlignment(hit.target_id, hit.score, hsp.identical)
        if current is not None:
            best[query_id] = current

    return best


def reduce_hits(
    hits: Iterable[AlignmentHit],
    min_identity: float,
    min_coverage: float,
) -> dict[str, str]:
    """Reduce alignment hits to a query id -> best target id mapping.

    Queries without any hit passing the filters are absent from the result.
    """
    return {
        query_id: choice.target_id
        for query_id, choice in select_best_hits(hits, min_identity, min_coverage).items()
    }


class BlastTableReader:
    """Reader for blastn tabular output in the genomelink column layout.

    Expected columns (outfmt 6):
    qseqid sseqid bitscore nident qlen slen qstart qend sstart send
    """

    SCHEMA: ClassVar[dict[str, pl.DataType]] = {
        "qseqid": pl.Utf8,
        "sseqid": pl.Utf8,
        "bitscore": pl.Float64,
        "nident": pl.Int64,
        "qlen": pl.Int64,
        "slen": pl.Int64,
        "qstart": pl.Int64,
        "qend": pl.Int64,
        "sstart": pl.Int64,
        "send": pl.Int64,
    }

    def __init__(self, path: Path, normalize_queries: bool = True) -> None:
        self.path = path
        self.normalize_queries = normalize_queries
        if not path.exists():
            raise InputFileError(path, "BLAST output not found")

    def read(self) -> pl.DataFrame:
        """Load the table, with gene parts stripped from query ids."""
        if self.path.stat().st_size == 0:
            return pl.DataFrame(schema=self.SCHEMA)
        try:
            df = pl.read_csv(
                self.path,
                separator="\t",
                has_header=False,
                schema=self.SCHEMA,
                comment_prefix="#",
            )
        except pl.exceptions.NoDataError:
            return pl.DataFrame(schema=self.SCHEMA)
        except pl.exceptions.PolarsError as e:
            raise InputFileError(
                self.path, f"not in the expected {len(BLAST_OUTFMT_COLUMNS)}-column format"
            ) from e

        if self.normalize_queries:
            df = df.with_columns(
                pl.col("qseqid").str.split(GENE_ID_SEPARATOR).list.first().alias("qseqid")
            )
        return df

    def read_hits(self) -> list[AlignmentHit]:
        """Group consecutive rows of the same query/target pair into hits."""
        hits: list[AlignmentHit] = []
        key: tuple[str, str] | None = None
        hsps: list[AlignmentHsp] = []

        for row in self.read().iter_rows(named=True):
            row_key = (row["qseqid"], row["sseqid"])
            if row_key != key and hsps:
                hits.append(_make_hit(key, hsps))
                hsps = []
            key = row_key
            hsps.append(
                AlignmentHsp(
                    identical=row["nident"],
                    query_length=row["qlen"],
                    target_length=row["slen"],
                    query_aligned=abs(row["qend"] - row["qstart"]) + 1,
                    target_aligned=abs(row["send"] - row["sstart"]) + 1,
                    bitscore=row["bitscore"],
                )
            )
        if hsps:
            hits.append(_make_hit(key, hsps))

        logger.debug("Read %d hits from %s", len(hits), self.path)
        return hits


def _make_hit(key: tuple[str, str] | None, hsps: list[AlignmentHsp]) -> AlignmentHit:
    query_id, target_id = key  # type: ignore[misc]
    return AlignmentHit(
        query_id=query_id,
        target_id=target_id,
        score=max(h.bitscore for h in hsps),
        hsps=tuple(hsps),
    )


def read_blast_hits(path: Path, normalize_queries: bool = True) -> list[AlignmentHit]:
    """Read blastn tabular output into AlignmentHit groups."""
    return BlastTableReader(path, normalize_queries=normalize_queries).read_hits()
