"""
Combine command: merge genome metadata, reference taxonomy and correspondences.

Writes one line per prokaryotic genome with 16S rRNA genes:
IMG ID, IMG Name, IMG Tax, GG ID, GG Tax, 16S Count, Genome Length, Gene Count.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from genomelink.cli.utils import QuietConsole, configure_logging, spinner_progress
from genomelink.core.combiner import combine_records, write_combined
from genomelink.core.exceptions import GenomelinkError
from genomelink.core.readers import load_entities, load_pairs, load_taxonomies

console = Console()


def combine(
    metadata: Path = typer.Option(
        ...,
        "--metadata",
        "-i",
        help="Genome metadata table (taxon_oid, Domain, Status, Genome Name, ranks, counts)",
        exists=True,
        dir_okay=False,
    ),
    taxonomy: Path = typer.Option(
        ...,
        "--taxonomy",
        "-g",
        help="Reference taxonomy file: reference id <TAB> taxonomy string",
        exists=True,
        dir_okay=False,
    ),
    correspondences: Path = typer.Option(
        ...,
        "--correspondences",
        "-c",
        help="Correspondences: genome id <TAB> reference id",
        exists=True,
        dir_okay=False,
    ),
    output: Path = typer.Option(
        ...,
        "--output",
        "-o",
        help="Output table",
    ),
    finished_only: bool = typer.Option(
        True,
        "--finished/--all",
        help="Include finished genomes only, or draft genomes as well",
    ),
    fix_species: bool = typer.Option(
        True,
        "--fix-species/--no-fix-species",
        help="Fill missing genus and species of reference taxonomy strings from genome names",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Log skipped taxonomy repairs",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        help="Suppress progress output",
    ),
) -> None:
    """
    Combine genome metadata with reference ids and taxonomy strings.

    Examples:

        genomelink combine -i img_metadata.tsv -g gg_taxonomy.txt \\
            -c corr.tsv -o combined.tsv

        # Draft genomes too, taxonomy strings left untouched
        genomelink combine -i img_metadata.tsv -g gg_taxonomy.txt \\
            -c corr.tsv -o combined.tsv --all --no-fix-species
    """
    out = QuietConsole(console, quiet=quiet)
    configure_logging(verbose, console, quiet=quiet)

    out.print("\n[bold blue]genomelink combine[/bold blue]\n")

    try:
        with spinner_progress("Reading inputs...", console, quiet):
            taxonomies = load_taxonomies(taxonomy)
            correlations = load_pairs(correspondences)
            entities = load_entities(metadata)

        df, report = combine_records(
            entities,
            taxonomies,
            correlations,
            finished_only=finished_only,
            fix_species=fix_species,
        )

        output.parent.mkdir(parents=True, exist_ok=True)
        write_combined(df, output)

    except GenomelinkError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e

    out.print(f"[bold]Metadata entries:[/bold] {report.metadata_entries:,}")
    out.print(f"[bold]Taxonomy strings:[/bold] {len(taxonomies):,}")
    out.print(f"[bold]Correspondences:[/bold] {len(correlations):,}")
    if fix_species:
        out.print(
            f"[bold]Fixed taxonomy strings:[/bold] {report.num_fixed:,} "
            f"({report.skipped_fixes:,} skipped)"
        )
    out.print(f"\n[bold]Output:[/bold] {output} ({report.written:,} genomes)")
    out.print("\n[bold green]Done.[/bold green]")
