from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, Iterable, Optional

import pytest

from tfx_tasks.inputs import TaskInputs


def write_extension_manifest(path: Path, task_paths: Iterable[str], *, bom: bool = False) -> Path:
    payload = {
        "manifestVersion": 1,
        "id": "build-tasks",
        "contributions": [
            {
                "id": task_path.replace("/", "-"),
                "type": "ms.vss-distributed-task.task",
                "targets": ["ms.vss-distributed-task.tasks"],
                "properties": {"name": task_path},
            }
            for task_path in task_paths
        ],
    }
    text = json.dumps(payload, indent=2)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(("\ufeff" if bom else "") + text, encoding="utf-8")
    return path


def write_task_manifest(path: Path, *, name: str = "Task", version: Optional[Dict[str, object]] = None) -> Path:
    payload = {
        "id": "00000000-0000-0000-0000-000000000000",
        "name": name,
        "friendlyName": f"{name} ✓",
        "version": version or {"Major": 0, "Minor": 1, "Patch": 0},
        "execution": {"Node": {"target": f"{name}.js"}},
    }
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=4), encoding="utf-8")
    return path


def make_inputs(env: Optional[Dict[str, str]] = None, **inputs: str) -> TaskInputs:
    environ = dict(env or {})
    return TaskInputs(environ, overrides=inputs)


@pytest.fixture()
def extension_root(tmp_path: Path) -> Path:
    root = tmp_path / "extension"
    write_extension_manifest(root / "vss-extension.json", ["BuildTasks/PackageExtension", "BuildTasks/ShareExtension"])
    write_task_manifest(root / "BuildTasks" / "PackageExtension" / "task.json", name="PackageExtension")
    write_task_manifest(root / "BuildTasks" / "ShareExtension" / "task.json", name="ShareExtension")
    return root


@pytest.fixture(autouse=True)
def _reset_agent_logging():
    yield
    import logging

    logger = logging.getLogger("tfx_tasks")
    for handler in list(logger.handlers):
        if handler.get_name() == "tfx_tasks.agent":
            logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
