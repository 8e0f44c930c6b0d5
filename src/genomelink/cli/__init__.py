"""
CLI commands for genomelink.

Provides the resolve and combine commands.
"""

__all__ = ["combine", "main", "resolve"]
