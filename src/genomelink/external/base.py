"""
Base classes for wrapping external command-line tools.

Provides a common interface for building and executing tool commands with
error handling, timeouts and a dry-run mode.
"""

from __future__ import annotations

import logging
import re
import shutil
import subprocess
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import ClassVar

from genomelink.core.exceptions import GenomelinkError

logger = logging.getLogger(__name__)

# Characters expected in sequence and database paths
_SAFE_PATH_PATTERN = re.compile(r"^[\w\-./]+$")

_MAX_COMMAND_DISPLAY = 200
_MAX_STDERR_DISPLAY = 500


def _shorten(text: str, limit: int, marker: str = "...") -> str:
    return text if len(text) <= limit else text[:limit] + marker


class UnsafePathError(GenomelinkError):
    """Raised when a file path cannot be passed safely to a subprocess."""

    def __init__(self, path: Path, reason: str = ""):
        detail = f": {reason}" if reason else ""
        super().__init__(
            message=f"Unsafe path detected: {path}{detail}",
            suggestion=(
                "Use paths made of letters, digits, underscores, hyphens and "
                "periods only."
            ),
        )
        self.path = path


def validate_path_safe(path: Path, *, must_exist: bool = False) -> Path:
    """Resolve a path and check it before handing it to a tool.

    Args:
        path: Path to validate
        must_exist: If True, raise an error when the path does not exist

    Returns:
        The resolved path

    Raises:
        UnsafePathError: If the path contains a null byte
        FileNotFoundError: If must_exist=True and the path does not exist
    """
    if "\x00" in str(path):
        raise UnsafePathError(path, "contains null byte")

    path = path.resolve()
    path_str = str(path)

    if not _SAFE_PATH_PATTERN.match(path_str):
        logger.warning("Path contains unusual characters (may cause issues): %s", path)

    if must_exist and not path.exists():
        raise FileNotFoundError(f"Path does not exist: {path}")

    return path


class ToolNotFoundError(GenomelinkError):
    """Raised when a required external tool is not in PATH."""

    def __init__(self, tool_name: str, install_hint: str = ""):
        suggestion = f"Install {tool_name} and ensure it is in your PATH."
        if install_hint:
            suggestion = f"{suggestion}\n\nInstallation:\n  {install_hint}"
        super().__init__(
            message=f"Required tool '{tool_name}' not found in PATH",
            suggestion=suggestion,
        )
        self.tool_name = tool_name


class ToolExecutionError(GenomelinkError):
    """Raised when an external tool exits with a non-zero code."""

    def __init__(
        self,
        tool_name: str,
        command: list[str],
        return_code: int,
        stderr: str,
    ):
        cmd_str = _shorten(" ".join(command), _MAX_COMMAND_DISPLAY)
        stderr_display = _shorten(stderr.strip(), _MAX_STDERR_DISPLAY, "\n...[truncated]")
        super().__init__(
            message=(
                f"{tool_name} failed with exit code {return_code}\n\n"
                f"Command: {cmd_str}\n\n"
                f"Error output:\n{stderr_display}"
            ),
            suggestion=(
                "Check the sequence files and BLAST settings. "
                "Run with --verbose for detailed output."
            ),
        )
        self.tool_name = tool_name
        self.command = command
        self.return_code = return_code
        self.stderr = stderr


class ToolTimeoutError(GenomelinkError):
    """Raised when an external tool exceeds its timeout."""

    def __init__(self, tool_name: str, timeout_seconds: float, command: list[str]):
        cmd_str = _shorten(" ".join(command), _MAX_COMMAND_DISPLAY)
        super().__init__(
            message=(
                f"{tool_name} timed out after {timeout_seconds:.0f} seconds\n\n"
                f"Command: {cmd_str}"
            ),
            suggestion="Increase the timeout or align fewer query sequences at once.",
        )
        self.tool_name = tool_name
        self.timeout_seconds = timeout_seconds
        self.command = command


@dataclass(frozen=True)
class ToolResult:
    """Result of running an external tool.

    Attributes:
        command: The command that was executed.
        return_code: Exit code of the process.
        stdout: Standard output.
        stderr: Standard error.
        elapsed_seconds: Wall-clock execution time.
    """

    command: tuple[str, ...]
    return_code: int
    stdout: str
    stderr: str
    elapsed_seconds: float

    @property
    def success(self) -> bool:
        return self.return_code == 0

    @property
    def command_string(self) -> str:
        return " ".join(self.command)


class ExternalTool(ABC):
    """Abstract base class for command-line tool wrappers.

    Subclasses define:
        TOOL_NAME: Executable name (e.g., "blastn")
        build_command: Construct the command arguments

    Optional class attributes:
        TOOL_ALIASES: Alternative executable names
        INSTALL_HINT: How to install the tool

    Tests can replace executable lookup with set_executable_resolver().
    """

    TOOL_NAME: ClassVar[str]
    TOOL_ALIASES: ClassVar[tuple[str, ...]] = ()
    INSTALL_HINT: ClassVar[str] = ""

    _executable_cache: ClassVar[dict[str, Path | None]] = {}
    _executable_resolver: ClassVar[Callable[[str], str | None]] = staticmethod(
        shutil.which
    )

    @classmethod
    def check_available(cls) -> bool:
        """True if the tool executable can be found."""
        try:
            cls.get_executable()
            return True
        except ToolNotFoundError:
            return False

    @classmethod
    def get_executable(cls) -> Path:
        """Locate the tool executable.

        Raises:
            ToolNotFoundError: If the tool cannot be found.
        """
        if cls.TOOL_NAME in cls._executable_cache:
            cached = cls._executable_cache[cls.TOOL_NAME]
            if cached is not None:
                return cached
            raise ToolNotFoundError(cls.TOOL_NAME, cls.INSTALL_HINT)

        for name in (cls.TOOL_NAME, *cls.TOOL_ALIASES):
            exe_path = cls._executable_resolver(name)
            if exe_path:
                path = Path(exe_path)
                cls._executable_cache[cls.TOOL_NAME] = path
                return path

        cls._executable_cache[cls.TOOL_NAME] = None
        raise ToolNotFoundError(cls.TOOL_NAME, cls.INSTALL_HINT)

    @classmethod
    def clear_cache(cls) -> None:
        cls._executable_cache.clear()

    @classmethod
    def set_executable_resolver(
        cls,
        resolver: Callable[[str], str | None],
    ) -> None:
        """Replace executable lookup, e.g. ``lambda name: f"/usr/bin/{name}"``."""
        cls._executable_resolver = staticmethod(resolver)
        cls.clear_cache()

    @classmethod
    def reset_executable_resolver(cls) -> None:
        """Restore the default resolver (shutil.which)."""
        cls._executable_resolver = staticmethod(shutil.which)
        cls.clear_cache()

    @abstractmethod
    def build_command(self, **kwargs: object) -> list[str]:
        """Build the command-line arguments, executable included."""
        ...

    def run(
        self,
        *,
        timeout: float | None = None,
        dry_run: bool = False,
        **kwargs: object,
    ) -> ToolResult:
        """Execute the tool.

        Args:
            timeout: Maximum execution time in seconds (None for no limit).
            dry_run: If True, return the command without executing it.
            **kwargs: Arguments passed to build_command().

        Returns:
            ToolResult with command, exit code and captured output.

        Raises:
            ToolNotFoundError: If the tool is not installed.
            ToolTimeoutError: If execution exceeds the timeout.
        """
        command = self.build_command(**kwargs)
        command_tuple = tuple(command)

        if dry_run:
            return ToolResult(
                command=command_tuple,
                return_code=0,
                stdout="[dry-run] Command not executed",
                stderr="",
                elapsed_seconds=0.0,
            )

        logger.debug("Running %s", " ".join(command))
        start_time = time.perf_counter()
        try:
            result = subprocess.run(
                command,
                capture_output=True,
                text=True,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise ToolTimeoutError(self.TOOL_NAME, timeout or 0, command) from e
        except FileNotFoundError as e:
            raise ToolNotFoundError(self.TOOL_NAME, self.INSTALL_HINT) from e

        return ToolResult(
            command=command_tuple,
            return_code=result.returncode,
            stdout=result.stdout,
            stderr=result.stderr,
            elapsed_seconds=time.perf_counter() - start_time,
        )

    def run_or_raise(
        self,
        *,
        timeout: float | None = None,
        dry_run: bool = False,
        **kwargs: object,
    ) -> ToolResult:
        """Execute the tool and raise ToolExecutionError on a non-zero exit code."""
        result = self.run(timeout=timeout, dry_run=dry_run, **kwargs)
        if not result.success and not dry_run:
            raise ToolExecutionError(
                self.TOOL_NAME,
                list(result.command),
                result.return_code,
                result.stderr,
            )
        return result
