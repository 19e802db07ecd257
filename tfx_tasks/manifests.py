"""Extension and task manifest helpers."""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ManifestParseError, ManifestReadError
from .versioning import TaskVersion

logger = logging.getLogger(__name__)

TASK_CONTRIBUTION_TYPE = "ms.vss-distributed-task.task"
TASK_MANIFEST_FILENAME = "task.json"
DEFAULT_MANIFEST_PATTERN = "vss-extension.json"

_BOM = "\ufeff"


class Contribution(BaseModel):
    id: Any = None
    type: Any = None
    properties: Any = None

    model_config = ConfigDict(extra="allow")

    @property
    def task_path(self) -> Optional[str]:
        if self.type != TASK_CONTRIBUTION_TYPE or not isinstance(self.properties, dict):
            return None
        name = self.properties.get("name")
        return str(name) if name else None


class ExtensionManifest(BaseModel):
    # entries are shaped freely; only task contributions are interpreted
    contributions: Any = Field(default=None)

    model_config = ConfigDict(extra="allow")

    def task_contributions(self) -> List[str]:
        entries = self.contributions if isinstance(self.contributions, list) else []
        contributions = (Contribution.model_validate(entry) for entry in entries if isinstance(entry, dict))
        return [path for path in (c.task_path for c in contributions) if path]


@dataclass(frozen=True, slots=True)
class TaskManifestRef:
    path: Path
    extension_manifest: Path


def strip_bom(text: str) -> str:
    return text[1:] if text.startswith(_BOM) else text


def dump_task_manifest(payload: Any) -> str:
    return json.dumps(payload, indent="\t", ensure_ascii=False)


def find_matches(root: Path, pattern: str) -> List[Path]:
    """Resolve newline-separated glob patterns relative to ``root``."""

    matches: List[Path] = []
    seen: set[Path] = set()
    for raw in pattern.splitlines():
        entry = raw.strip()
        if not entry:
            continue
        candidate = Path(entry)
        if candidate.is_absolute():
            anchor = Path(candidate.anchor)
            found: Iterable[Path] = anchor.glob(str(candidate.relative_to(anchor))) if _is_glob(entry) else [candidate]
        else:
            found = root.glob(entry) if _is_glob(entry) else [root / entry]
        for path in sorted(found):
            if path.is_file() and path not in seen:
                seen.add(path)
                matches.append(path)
    return matches


def _is_glob(value: str) -> bool:
    return any(char in value for char in "*?[")


def load_extension_manifest(path: Path) -> ExtensionManifest:
    logger.debug("Reading extension manifest file: %s", path)
    try:
        raw = path.read_bytes()
    except OSError as exc:
        raise ManifestReadError(path, exc) from exc
    try:
        payload = json.loads(strip_bom(raw.decode("utf-8")))
        return ExtensionManifest.model_validate(payload)
    except (json.JSONDecodeError, UnicodeDecodeError, ValidationError) as exc:
        raise ManifestParseError(path, exc) from exc


async def get_task_manifest_refs(manifest_file: Path, root: Path) -> List[TaskManifestRef]:
    manifest = await asyncio.to_thread(load_extension_manifest, manifest_file)
    logger.debug("Looking for task contributions in: %s", manifest_file)
    task_paths = manifest.task_contributions()
    logger.debug("Found task contributions: %s", ", ".join(task_paths))
    return [
        TaskManifestRef(path=root / task_path.lstrip("/\\") / TASK_MANIFEST_FILENAME, extension_manifest=manifest_file)
        for task_path in task_paths
    ]


async def collect_task_manifests(manifest_files: Iterable[Path], root: Path) -> List[TaskManifestRef]:
    """Gather task manifest references from every extension manifest.

    Fails on the first unreadable extension manifest; duplicates are kept.
    """

    results = await asyncio.gather(*(get_task_manifest_refs(path, root) for path in manifest_files))
    return [ref for refs in results for ref in refs]


def update_task_version(path: Path, version: TaskVersion) -> None:
    logger.debug("Reading task manifest file: %s", path)
    text = path.read_text(encoding="utf-8")
    try:
        payload = json.loads(strip_bom(text))
    except json.JSONDecodeError as exc:
        raise ManifestParseError(path, exc, kind="task") from exc
    if not isinstance(payload, dict):
        raise ManifestParseError(path, "expected a JSON object", kind="task")
    payload["version"] = version.to_manifest()
    path.write_text(dump_task_manifest(payload), encoding="utf-8")
    logger.debug("Task manifest %s version updated to %s", path, json.dumps(version.to_manifest()))
