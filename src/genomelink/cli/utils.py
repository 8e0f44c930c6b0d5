"""
Shared CLI utilities for genomelink commands.
"""

from __future__ import annotations

import logging
from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

from rich.console import Console
from rich.logging import RichHandler
from rich.progress import (
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)


@contextmanager
def spinner_progress(
    description: str,
    console: Console | None = None,
    quiet: bool = False,
) -> Generator[Progress, None, None]:
    """Spinner shown while a step runs, suppressed in quiet mode.

    Example:
        >>> with spinner_progress("Indexing references...", console, quiet):
        ...     index = TaxonIndex.build(names)
    """
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TimeElapsedColumn(),
        console=console,
        disable=quiet,
    ) as progress:
        progress.add_task(description=description, total=None)
        yield progress


def configure_logging(
    verbose: bool, console: Console | None = None, quiet: bool = False
) -> None:
    """Route genomelink log records to a rich handler.

    Args:
        verbose: Show debug records (individual matches) instead of info.
        quiet: Only show warnings and errors. Ignored when verbose.
        console: Console the handler writes to.
    """
    logger = logging.getLogger("genomelink")
    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)

    handler = RichHandler(console=console, show_path=False, markup=False)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    if verbose:
        logger.setLevel(logging.DEBUG)
    elif quiet:
        logger.setLevel(logging.WARNING)
    else:
        logger.setLevel(logging.INFO)


class QuietConsole:
    """Console wrapper that suppresses print output in quiet mode.

    Every other attribute is delegated to the wrapped console.

    Example:
        >>> out = QuietConsole(Console(), quiet=True)
        >>> out.print("Not shown")
    """

    def __init__(self, console: Console, quiet: bool = False):
        self._console = console
        self._quiet = quiet

    @property
    def console(self) -> Console:
        """The wrapped console, for output that ignores quiet mode."""
        return self._console

    def print(self, *args: Any, **kwargs: Any) -> None:
        if not self._quiet:
            self._console.print(*args, **kwargs)

    def __getattr__(self, name: str) -> Any:
        return getattr(self._console, name)
