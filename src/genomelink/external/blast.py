"""
BLAST+ wrapper classes.

Provides Python interfaces for:
- MakeBlastDb: building the reference 16S database
- BlastN: aligning query 16S genes against it
- run_alignment / BlastHitsProvider: the sequence matching step end to end
"""

from __future__ import annotations

import logging
import tempfile
from collections.abc import Collection
from pathlib import Path

from genomelink.core.alignment import AlignmentHit, read_blast_hits
from genomelink.core.constants import BLAST_OUTFMT
from genomelink.core.exceptions import ConfigurationError
from genomelink.core.sequences import write_query_subset
from genomelink.external.base import ExternalTool, validate_path_safe
from genomelink.models.config import BlastConfig

logger = logging.getLogger(__name__)

# Files written by makeblastdb for a nucleotide database (or an alias file)
_DB_SUFFIXES = (".nin", ".nhr", ".nsq")
_DB_ALIAS_SUFFIX = ".nal"


class MakeBlastDb(ExternalTool):
    """Wrapper for makeblastdb database construction.

    Example:
        >>> builder = MakeBlastDb()
        >>> builder.run_or_raise(input_fasta=Path("gg_16S.fasta"), output_db=Path("gg_16S"))
    """

    TOOL_NAME = "makeblastdb"
    INSTALL_HINT = "conda install -c bioconda blast"

    def build_command(
        self,
        *,
        input_fasta: Path,
        output_db: Path,
        dbtype: str = "nucl",
        parse_seqids: bool = True,
        title: str | None = None,
    ) -> list[str]:
        """Build makeblastdb command.

        Args:
            input_fasta: Reference FASTA file.
            output_db: Output database prefix.
            dbtype: Database type, "nucl" or "prot".
            parse_seqids: Keep sequence ids so hits report reference ids.
            title: Title for the database.

        Returns:
            Command as list of strings.
        """
        input_fasta = validate_path_safe(input_fasta)
        output_db = validate_path_safe(output_db)

        cmd = [str(self.get_executable())]
        cmd.extend(["-in", str(input_fasta)])
        cmd.extend(["-out", str(output_db)])
        cmd.extend(["-dbtype", dbtype])
        if parse_seqids:
            cmd.append("-parse_seqids")
        if title:
            cmd.extend(["-title", title])
        return cmd

    @staticmethod
    def database_exists(prefix: Path) -> bool:
        """True if a nucleotide database with this prefix is present."""
        if Path(f"{prefix}{_DB_ALIAS_SUFFIX}").exists():
            return True
        return all(Path(f"{prefix}{suffix}").exists() for suffix in _DB_SUFFIXES)


class BlastN(ExternalTool):
    """Wrapper for blastn nucleotide alignment.

    Either a database prefix or a subject FASTA is aligned against.

    Example:
        >>> blastn = BlastN()
        >>> blastn.run_or_raise(
        ...     query=Path("queries.fasta"),
        ...     database=Path("gg_16S"),
        ...     output=Path("hits.tsv"),
        ... )
    """

    TOOL_NAME = "blastn"
    INSTALL_HINT = "conda install -c bioconda blast"

    def build_command(
        self,
        *,
        query: Path,
        output: Path,
        database: Path | None = None,
        subject: Path | None = None,
        outfmt: str = BLAST_OUTFMT,
        task: str = "megablast",
        word_size: int | None = None,
        evalue: float = 1e-10,
        max_target_seqs: int = 10,
        threads: int = 4,
        perc_identity: float | None = None,
    ) -> list[str]:
        """Build blastn command.

        Args:
            query: Query sequences (FASTA).
            output: Output file path.
            database: BLAST database prefix.
            subject: Subject FASTA, used when no database is given.
            outfmt: Output format string.
            task: BLAST task, "megablast", "dc-megablast" or "blastn".
            word_size: Word size for seed matches (None uses the task default).
            evalue: E-value threshold.
            max_target_seqs: Maximum target sequences per query.
            threads: Number of threads.
            perc_identity: Minimum percent identity filter.

        Returns:
            Command as list of strings.

        Raises:
            ValueError: If neither or both of database and subject are given.
        """
        if (database is None) == (subject is None):
            msg = "Exactly one of database or subject is required"
            raise ValueError(msg)

        query = validate_path_safe(query)
        output = validate_path_safe(output)

        cmd = [str(self.get_executable())]
        cmd.extend(["-query", str(query)])
        if database is not None:
            cmd.extend(["-db", str(validate_path_safe(database))])
        else:
            cmd.extend(["-subject", str(validate_path_safe(subject))])
        cmd.extend(["-out", str(output)])
        cmd.extend(["-outfmt", outfmt])

        cmd.extend(["-task", task])
        if word_size is not None:
            cmd.extend(["-word_size", str(word_size)])
        cmd.extend(["-evalue", str(evalue)])
        cmd.extend(["-max_target_seqs", str(max_target_seqs)])

        # -num_threads is ignored by blastn when searching a subject FASTA
        if database is not None:
            cmd.extend(["-num_threads", str(threads)])

        if perc_identity:
            cmd.extend(["-perc_identity", str(perc_identity)])

        return cmd

    @staticmethod
    def command_args(config: BlastConfig) -> dict[str, object]:
        """build_command() keyword arguments for a BlastConfig."""
        return {
            "outfmt": config.outfmt,
            "task": config.task,
            "word_size": config.word_size,
            "evalue": config.evalue,
            "max_target_seqs": config.max_target_seqs,
            "threads": config.num_threads,
            "perc_identity": config.perc_identity,
        }


def ensure_database(reference_fasta: Path, database: Path | None = None) -> Path:
    """Build the reference BLAST database unless it already exists.

    Args:
        reference_fasta: Reference 16S FASTA.
        database: Database prefix; defaults to the FASTA path.

    Returns:
        Database prefix
    """
    prefix = database or reference_fasta
    if MakeBlastDb.database_exists(prefix):
        logger.info("Using existing BLAST database %s", prefix)
        return prefix

    logger.info("Building BLAST database %s from %s", prefix, reference_fasta)
    MakeBlastDb().run_or_raise(input_fasta=reference_fasta, output_db=prefix)
    return prefix


def run_alignment(
    query_fasta: Path,
    genome_ids: Collection[str],
    reference_fasta: Path,
    output: Path,
    config: BlastConfig | None = None,
    database: Path | None = None,
    timeout: float | None = None,
) -> Path:
    """Align the 16S genes of selected genomes against the references.

    Writes the query subset to a temporary FASTA, builds the reference
    database when missing and runs blastn into ``output``.

    Args:
        query_fasta: FASTA of query 16S genes ("<genomeId>_<geneId>" ids).
        genome_ids: Genomes whose genes are aligned.
        reference_fasta: Reference 16S FASTA.
        output: BLAST tabular output file.
        config: BLAST settings.
        database: Database prefix; defaults to the reference FASTA path.
        timeout: Maximum blastn run time in seconds.

    Returns:
        Path of the BLAST output

    Raises:
        ToolNotFoundError: If BLAST+ is not installed.
        ToolExecutionError: If makeblastdb or blastn fails.
        ToolTimeoutError: If blastn exceeds the timeout.
    """
    config = config or BlastConfig()
    prefix = ensure_database(reference_fasta, database)

    with tempfile.TemporaryDirectory(prefix="genomelink_") as tmp:
        subset = Path(tmp) / "queries.fasta"
        count = write_query_subset(query_fasta, genome_ids, subset)
        if count == 0:
            logger.warning("No query sequences found for %d genomes", len(genome_ids))
            output.write_text("")
            return output

        result = BlastN().run_or_raise(
            timeout=timeout,
            query=subset,
            database=prefix,
            output=output,
            **BlastN.command_args(config),
        )

    logger.info("blastn finished in %.1fs, results in %s", result.elapsed_seconds, output)
    return output


class BlastHitsProvider:
    """Callable producing alignment hits for a list of genome ids.

    An existing output file is reused instead of running blastn again when
    ``reuse_existing`` is set.
    """

    def __init__(
        self,
        query_fasta: Path | None,
        reference_fasta: Path,
        output: Path,
        config: BlastConfig | None = None,
        database: Path | None = None,
        reuse_existing: bool = True,
    ) -> None:
        self.query_fasta = query_fasta
        self.reference_fasta = reference_fasta
        self.output = output
        self.config = config or BlastConfig()
        self.database = database
        self.reuse_existing = reuse_existing

    def __call__(self, genome_ids: list[str]) -> list[AlignmentHit]:
        if self.reuse_existing and self.output.exists():
            logger.info("Reusing BLAST output %s", self.output)
        else:
            if self.query_fasta is None:
                msg = "A query FASTA is required when no BLAST output is available"
                raise ConfigurationError(
                    msg, suggestion="Pass --queries or an existing --blast-output"
                )
            run_alignment(
                self.query_fasta,
                genome_ids,
                self.reference_fasta,
                self.output,
                config=self.config,
                database=self.database,
            )
        return read_blast_hits(self.output)
