"""Propagate the extension version into the task manifests it contributes."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

from .errors import AggregatedError, RewriteError, TfxTaskError
from .inputs import TaskInputs
from .manifests import (
    DEFAULT_MANIFEST_PATTERN,
    TaskManifestRef,
    collect_task_manifests,
    find_matches,
    update_task_version,
)
from .versioning import TaskVersion, get_extension_version, to_task_version

logger = logging.getLogger(__name__)


class PropagationState(str, Enum):
    IDLE = "idle"
    RESOLVING = "resolving"
    DISCOVERING = "discovering"
    REWRITING = "rewriting"
    DONE = "done"
    FAILED = "failed"


@dataclass(slots=True)
class PropagationResult:
    state: PropagationState
    message: str
    version: Optional[str] = None
    task_version: Optional[TaskVersion] = None
    task_manifests: List[Path] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        return {
            "state": self.state.value,
            "message": self.message,
            "version": self.version,
            "task_version": self.task_version.to_manifest() if self.task_version else None,
            "task_manifests": [str(path) for path in self.task_manifests],
        }


class VersionPropagator:
    """Rewrite the ``version`` of every task contributed by the extension.

    Discovery failures abort the run. Rewrite failures are collected and
    raised together as :class:`AggregatedError` once every task manifest has
    been attempted.
    """

    def __init__(self, inputs: TaskInputs) -> None:
        self.inputs = inputs
        self.state = PropagationState.IDLE

    async def propagate(self, manifest_file: Optional[Path] = None) -> PropagationResult:
        try:
            return await self._run(manifest_file)
        except Exception:
            self.state = PropagationState.FAILED
            raise

    async def _run(self, manifest_file: Optional[Path]) -> PropagationResult:
        if not self.inputs.get_bool_input("updateTasksVersion"):
            logger.debug("No update tasks version required")
            return self._done("No update tasks version required.")

        self.state = PropagationState.RESOLVING
        version = get_extension_version(self.inputs)
        if not version:
            logger.debug("No update tasks version required (No extension version specified)")
            return self._done("No extension version specified.")

        self.state = PropagationState.DISCOVERING
        refs = await self.discover(manifest_file)
        if not refs:
            logger.debug("This extension has no build tasks on it.")
            return self._done("This extension has no build tasks on it.", version=version)

        self.state = PropagationState.REWRITING
        task_version = to_task_version(version)
        paths = [ref.path for ref in refs]
        logger.debug("Processing the following task manifest %s", ", ".join(str(path) for path in paths))
        await self.rewrite(paths, task_version)

        return self._done(
            f"Updated {len(paths)} task manifest(s) to version {task_version}.",
            version=version,
            task_version=task_version,
            task_manifests=paths,
        )

    async def discover(self, manifest_file: Optional[Path] = None) -> List[TaskManifestRef]:
        if manifest_file is not None:
            root = manifest_file.parent
            manifest_files = [manifest_file]
        else:
            root = self._discovery_root()
            pattern = self.inputs.get_input("patternManifest") or DEFAULT_MANIFEST_PATTERN
            logger.debug("Searching for extension manifests %s", pattern)
            manifest_files = await asyncio.to_thread(find_matches, root, pattern)
        return await collect_task_manifests(manifest_files, root)

    async def rewrite(self, paths: List[Path], task_version: TaskVersion) -> None:
        # a task listed twice is rewritten twice, one write at a time
        locks = {path: asyncio.Lock() for path in paths}
        outcomes = await asyncio.gather(
            *(self._rewrite_one(path, task_version, locks[path]) for path in paths)
        )
        errors = [error for error in outcomes if error is not None]
        if errors:
            raise AggregatedError(errors)

    @staticmethod
    async def _rewrite_one(path: Path, task_version: TaskVersion, lock: asyncio.Lock) -> Optional[RewriteError]:
        try:
            async with lock:
                await asyncio.to_thread(update_task_version, path, task_version)
        except (OSError, TfxTaskError, ValueError) as exc:
            logger.debug("Failed to update %s: %s", path, exc)
            return RewriteError(path, exc)
        return None

    def _discovery_root(self) -> Path:
        root = self.inputs.get_input("rootFolder") or self.inputs.get_variable("System.DefaultWorkingDirectory")
        return Path(root) if root else Path.cwd()

    def _done(self, message: str, **kwargs: object) -> PropagationResult:
        self.state = PropagationState.DONE
        return PropagationResult(state=self.state, message=message, **kwargs)  # type: ignore[arg-type]


def check_update_tasks_version(inputs: TaskInputs, manifest_file: Optional[Path] = None) -> PropagationResult:
    """Synchronous entry point used by the package task before running tfx."""

    return asyncio.run(VersionPropagator(inputs).propagate(manifest_file))
