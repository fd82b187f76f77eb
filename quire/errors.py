"""Error types for Quire.

Every failure the pipeline reports derives from QuireError so the CLI can
catch one base class and turn it into a styled message and exit status.

Recovery policy:
- MalformedDocument: skipped with a warning, the build continues.
- AlreadyExists: surfaced to the author, nothing is written.
- RenderFailure, ConfigurationError: fatal for the build, previous output kept.
- DeployFailure: fatal for a publish, nothing is swapped in on the host.
"""

from __future__ import annotations

from pathlib import Path


class QuireError(Exception):
    """Base class for all Quire errors."""


class MalformedDocument(QuireError):
    """A document could not be parsed or lacks a required field.

    Attributes:
        path: Path to the offending document.
        reason: Human-readable explanation.
    """

    def __init__(self, path: Path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")


class AlreadyExists(QuireError):
    """Content creation targeted a path that is already occupied."""

    def __init__(self, path: Path):
        self.path = path
        super().__init__(f"Refusing to overwrite existing document: {path}")


class ConfigurationError(QuireError):
    """Site configuration is missing, unreadable or invalid."""


class RenderFailure(QuireError):
    """The renderer could not complete a build.

    Attributes:
        message: Human-readable error message.
        source_path: File that triggered the failure, when known.
        original_error: The underlying exception, when there is one.
    """

    def __init__(
        self,
        message: str,
        source_path: Path | None = None,
        original_error: Exception | None = None,
    ):
        self.message = message
        self.source_path = source_path
        self.original_error = original_error
        prefix = f"{source_path}: " if source_path is not None else ""
        super().__init__(f"{prefix}{message}")


class DeployFailure(QuireError):
    """Transferring the built site to the hosting target failed."""
