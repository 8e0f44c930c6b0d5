"""
Custom exceptions with actionable guidance.

Provides specific error types for common failure scenarios,
each with helpful suggestions for resolution.
"""

from __future__ import annotations

from pathlib import Path


class GenomelinkError(Exception):
    """Base exception for genomelink errors."""

    def __init__(self, message: str, suggestion: str | None = None):
        self.message = message
        self.suggestion = suggestion
        super().__init__(self.full_message)

    @property
    def full_message(self) -> str:
        if self.suggestion:
            return f"{self.message}\n\nSuggestion: {self.suggestion}"
        return self.message


class InputFileError(GenomelinkError):
    """Raised when an input file is missing or cannot be read."""

    def __init__(self, path: Path | str, reason: str = ""):
        detail = f": {reason}" if reason else ""
        super().__init__(
            message=f"Could not read input file '{path}'{detail}",
            suggestion=(
                "Check that the path is correct and that the file is readable. "
                "No output has been written."
            ),
        )
        self.path = Path(path)


class MissingColumnError(InputFileError):
    """Raised when a tab-delimited input lacks a required column."""

    def __init__(self, path: Path | str, column: str, available: list[str]):
        shown = ", ".join(available[:10])
        GenomelinkError.__init__(
            self,
            message=f"Column '{column}' not found in '{path}' (columns: {shown})",
            suggestion=(
                "Export the metadata table with a header row. Expected columns "
                "include taxon_oid, Domain, Status and Genome Name."
            ),
        )
        self.path = Path(path)
        self.column = column


class MalformedInputError(InputFileError):
    """Raised when a line of an input file does not follow its format."""

    def __init__(self, path: Path | str, line_num: int, expected: str):
        GenomelinkError.__init__(
            self,
            message=f"Malformed line {line_num} in '{path}': expected {expected}",
            suggestion="Fix or remove the offending line and rerun.",
        )
        self.path = Path(path)
        self.line_num = line_num


class ConfigurationError(GenomelinkError):
    """Raised when configuration is invalid."""


class InvalidThresholdError(ConfigurationError):
    """Raised when a threshold parameter is out of valid range."""

    def __init__(self, param_name: str, value: float, min_val: float, max_val: float):
        super().__init__(
            message=f"{param_name} = {value} is out of valid range [{min_val}, {max_val}]",
            suggestion=f"Set {param_name} to a value between {min_val} and {max_val}.",
        )
        self.param_name = param_name
        self.value = value
