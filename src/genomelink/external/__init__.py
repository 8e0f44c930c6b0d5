"""
Wrappers for external bioinformatics tools.

Provides Python interfaces to the BLAST+ programs used for sequence matching.
"""

from genomelink.external.base import (
    ExternalTool,
    ToolExecutionError,
    ToolNotFoundError,
    ToolResult,
    ToolTimeoutError,
    UnsafePathError,
)
from genomelink.external.blast import (
    BlastHitsProvider,
    BlastN,
    MakeBlastDb,
    ensure_database,
    run_alignment,
)

__all__ = [
    "BlastHitsProvider",
    "BlastN",
    "ExternalTool",
    "MakeBlastDb",
    "ToolExecutionError",
    "ToolNotFoundError",
    "ToolResult",
    "ToolTimeoutError",
    "UnsafePathError",
    "ensure_database",
    "run_alignment",
]
