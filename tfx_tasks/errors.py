"""Exceptions raised by tfx task helpers."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Optional


class TfxTaskError(RuntimeError):
    """Base class for errors surfaced by the build tasks."""


class ConfigurationError(TfxTaskError, ValueError):
    """Raised when task inputs are missing or malformed."""


class InputRequiredError(ConfigurationError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Input required: {name}")
        self.name = name


class ManifestParseError(TfxTaskError):
    """Raised when a manifest file does not contain valid JSON."""

    def __init__(self, path: Path, cause: object, *, kind: str = "extension") -> None:
        super().__init__(f"Error parsing {kind} manifest: {path} - {cause}")
        self.path = path
        self.cause = cause


class ManifestReadError(TfxTaskError):
    """Raised when an extension manifest cannot be read during discovery."""

    def __init__(self, path: Path, cause: BaseException) -> None:
        super().__init__(f"Error determining tasks manifest paths: {path} - {cause}")
        self.path = path
        self.cause = cause


class RewriteError(TfxTaskError):
    """A single task manifest could not be read, parsed or written."""

    def __init__(self, path: Path, cause: BaseException) -> None:
        super().__init__(f"{path}: {cause}")
        self.path = path
        self.cause = cause


class AggregatedError(TfxTaskError):
    """Collects every per-file failure of a version update run."""

    def __init__(self, errors: Iterable[RewriteError]) -> None:
        self.errors: List[RewriteError] = list(errors)
        lines = [f"  - {error.path}: {error.cause}" for error in self.errors]
        super().__init__(
            f"Error updating version in {len(self.errors)} task manifest(s):\n" + "\n".join(lines)
        )

    @property
    def paths(self) -> List[Path]:
        return [error.path for error in self.errors]


class TfxOutputError(TfxTaskError):
    """Raised when tfx did not produce a usable JSON payload."""


class ToolRunnerError(TfxTaskError):
    """Raised when an external tool exits unsuccessfully."""

    def __init__(self, message: str, *, exit_code: Optional[int] = None, stderr: str = "") -> None:
        super().__init__(message)
        self.exit_code = exit_code
        self.stderr = stderr


class TfxNotFoundError(TfxTaskError):
    """Raised when tfx cannot be located or installed."""
