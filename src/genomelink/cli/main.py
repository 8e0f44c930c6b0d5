"""
Main CLI entry point for genomelink.

Subcommands:
- resolve: Link genomes to reference 16S sequences by name and alignment
- combine: Merge metadata, reference taxonomy and correspondences
"""

from __future__ import annotations

import typer
from rich import print as rprint
from rich.console import Console

from genomelink import __version__

app = typer.Typer(
    name="genomelink",
    help="Link genome catalog entries to reference 16S rRNA sequences",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        rprint(f"genomelink version {__version__}")
        raise typer.Exit


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """
    genomelink: link genome catalog entries to reference 16S rRNA sequences.

    Genomes of a metadata catalog are matched to reference sequences by
    organism name and then by 16S rRNA gene alignment.
    """


from genomelink.cli import combine, resolve

app.command(name="resolve")(resolve.resolve)
app.command(name="combine")(combine.combine)


if __name__ == "__main__":
    app()
