"""
Resolve command: link genomes to reference 16S rRNA sequences.

Reads the genome metadata, the initial correspondence file and the reference
sequences, runs name matching and sequence matching for the genomes without
a valid reference, and writes the completed correspondence file.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from genomelink.cli.utils import QuietConsole, configure_logging, spinner_progress
from genomelink.core.exceptions import ConfigurationError, GenomelinkError
from genomelink.core.readers import (
    load_correspondences,
    load_entities,
    load_reference_names,
    write_correspondences,
)
from genomelink.core.resolution import ResolutionResult, Resolver
from genomelink.core.sequences import load_reference_ids
from genomelink.core.taxon_index import TaxonIndex
from genomelink.external.blast import BlastHitsProvider
from genomelink.models.config import ResolverConfig

console = Console()


class NameSource(str, Enum):
    """Where reference organism names are read from."""

    DESCRIPTION = "description"
    ISOLATES = "isolates"


def _load_config(config_file: Path | None) -> ResolverConfig:
    if config_file is None:
        return ResolverConfig()
    return ResolverConfig.from_yaml(config_file)


def _summary_table(result: ResolutionResult) -> Table:
    table = Table(title="Resolution summary")
    table.add_column("Stage")
    table.add_column("Resolved", justify="right")
    table.add_column("Removed", justify="right")
    table.add_column("Status")
    for report in result.reports:
        status = "[red]failed[/red]" if report.failed else "[green]ok[/green]"
        table.add_row(report.stage, str(report.resolved), str(report.removed), status)
    return table


def resolve(
    metadata: Path = typer.Option(
        ...,
        "--metadata",
        "-i",
        help="Genome metadata table (tab-delimited, with header row)",
        exists=True,
        dir_okay=False,
    ),
    correspondences: Path = typer.Option(
        ...,
        "--correspondences",
        "-c",
        help="Initial correspondences: genome id <TAB> reference id",
        exists=True,
        dir_okay=False,
    ),
    references: Path = typer.Option(
        ...,
        "--references",
        "-r",
        help="Reference 16S rRNA FASTA file",
        exists=True,
        dir_okay=False,
    ),
    output: Path = typer.Option(
        ...,
        "--output",
        "-o",
        help="Output correspondence file",
    ),
    isolates: Path | None = typer.Option(
        None,
        "--isolates",
        "-n",
        help="Named-isolates file (id|organism|strain) with reference names",
        exists=True,
        dir_okay=False,
    ),
    name_source: NameSource | None = typer.Option(
        None,
        "--name-source",
        help="Read reference names from FASTA descriptions or the isolates file",
    ),
    queries: Path | None = typer.Option(
        None,
        "--queries",
        "-q",
        help="FASTA of genome 16S genes with <genomeId>_<geneId> identifiers",
        exists=True,
        dir_okay=False,
    ),
    blast_output: Path | None = typer.Option(
        None,
        "--blast-output",
        "-b",
        help="BLAST output file; reused when it exists (default: <output>.blast.tsv)",
    ),
    database: Path | None = typer.Option(
        None,
        "--database",
        "-d",
        help="BLAST database prefix (default: built next to the reference FASTA)",
    ),
    min_identity: float | None = typer.Option(
        None,
        "--min-identity",
        help="Minimum percent identity of an accepted alignment [default: 99]",
        min=0.0,
        max=100.0,
    ),
    min_coverage: float | None = typer.Option(
        None,
        "--min-coverage",
        help="Minimum percent coverage of an accepted alignment [default: 99]",
        min=0.0,
        max=100.0,
    ),
    name_matching: bool | None = typer.Option(
        None,
        "--name-matching/--no-name-matching",
        help="Run name matching [default: on]",
    ),
    sequence_matching: bool | None = typer.Option(
        None,
        "--sequence-matching/--no-sequence-matching",
        help="Run sequence matching [default: on]",
    ),
    species_fallback: bool | None = typer.Option(
        None,
        "--species-fallback/--no-species-fallback",
        help="Accept a same-species reference without strain evidence [default: off]",
    ),
    finished_only: bool | None = typer.Option(
        None,
        "--finished-only/--all-genomes",
        help="Only resolve finished genomes [default: all genomes]",
    ),
    threads: int | None = typer.Option(
        None,
        "--threads",
        "-t",
        help="Number of BLAST threads",
        min=1,
    ),
    config_file: Path | None = typer.Option(
        None,
        "--config",
        help="YAML configuration file; command-line options take precedence",
        exists=True,
        dir_okay=False,
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Log every match",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        help="Suppress progress output",
    ),
) -> None:
    """
    Link genomes to reference 16S rRNA sequences.

    Correspondences pointing at unknown references are dropped, then every
    genome without a reference is matched by organism name and finally by
    alignment of its 16S genes.

    Examples:

        # Name matching with names from the reference FASTA
        genomelink resolve -i img_metadata.tsv -c gold_corr.tsv \\
            -r gg_16S.fasta --no-sequence-matching -o corr.tsv

        # Names from a named-isolates file, then BLAST
        genomelink resolve -i img_metadata.tsv -c gold_corr.tsv -r gg_16S.fasta \\
            -n gg_isolates.txt --name-source isolates -q img_16S.fna -o corr.tsv
    """
    out = QuietConsole(console, quiet=quiet)
    configure_logging(verbose, console, quiet=quiet)

    try:
        config = _load_config(config_file).with_overrides(
            matching={
                "min_identity": min_identity,
                "min_coverage": min_coverage,
                "name_matching": name_matching,
                "sequence_matching": sequence_matching,
                "allow_species_fallback": species_fallback,
                "name_source": name_source.value if name_source else None,
                "finished_only": finished_only,
            },
            blast={"num_threads": threads},
        )
        matching = config.matching
        blast_output = blast_output or output.with_suffix(".blast.tsv")

        if matching.name_source == "isolates" and matching.name_matching and isolates is None:
            msg = "Reference names from isolates require --isolates"
            raise ConfigurationError(
                msg, suggestion="Pass --isolates or --name-source description"
            )
        if matching.sequence_matching and queries is None and not blast_output.exists():
            msg = "Sequence matching requires --queries or an existing --blast-output"
            raise ConfigurationError(
                msg, suggestion="Pass --queries or --no-sequence-matching"
            )

        out.print("\n[bold blue]genomelink resolve[/bold blue]\n")

        with spinner_progress("Reading inputs...", console, quiet):
            entities = load_entities(metadata)
            initial, unresolved = load_correspondences(correspondences)
            reference_ids = load_reference_ids(references)

        out.print(f"[bold]Genomes:[/bold] {len(entities):,}")
        out.print(
            f"[bold]Correspondences:[/bold] {len(initial):,} "
            f"({len(unresolved):,} without reference)"
        )
        out.print(f"[bold]References:[/bold] {len(reference_ids):,}")

        index = None
        if matching.name_matching:
            with spinner_progress("Indexing reference names...", console, quiet):
                names = load_reference_names(
                    matching.name_source,
                    reference_fasta=references,
                    isolates_file=isolates,
                )
                index = TaxonIndex.build(names)

        hits_provider = None
        if matching.sequence_matching:
            hits_provider = BlastHitsProvider(
                queries,
                references,
                blast_output,
                config=config.blast,
                database=database,
            )

        resolver = Resolver(
            entities,
            reference_ids,
            index=index,
            hits_provider=hits_provider,
            config=matching,
        )
        with spinner_progress("Resolving genomes...", console, quiet):
            result = resolver.run(initial, unresolved)

        output.parent.mkdir(parents=True, exist_ok=True)
        written = write_correspondences(output, result.state.correlations)

    except GenomelinkError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e

    out.print()
    out.print(_summary_table(result))
    out.print(f"\n[bold]Output:[/bold] {output} ({written:,} correspondences)")
    out.print(f"[bold]Unresolved:[/bold] {len(result.state.unresolved):,}")

    sequences = result.report("sequences")
    if sequences is not None and sequences.failed:
        console.print(f"[red]Error:[/red] sequence matching failed: {sequences.error}")
        raise typer.Exit(1)

    out.print("\n[bold green]Done.[/bold green]")
