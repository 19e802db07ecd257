"""Locate tfx, installing it under the agent tools folder when missing."""

from __future__ import annotations

import logging
import os
import platform
import subprocess
from pathlib import Path
from typing import Callable, List, Optional

from .. import agent
from ..agent import TaskResult
from ..errors import TfxNotFoundError, TfxTaskError
from ..inputs import TaskInputs
from .runner import ToolRunner, which

logger = logging.getLogger(__name__)

CHECK_GLOBAL_TFX_VARIABLE = "vstsDevTools.buildTasks.checkGlobalTfx"


def tools_folder(inputs: TaskInputs) -> Path:
    work_folder = inputs.get_variable("Agent.Workfolder")
    if not work_folder:
        raise TfxNotFoundError("Agent.Workfolder is not set; cannot locate the agent tools folder.")
    return Path(work_folder) / "_tools"


def local_tfx_candidates(tools: Path) -> List[str]:
    suffix = ".cmd" if platform.system() == "Windows" else ""
    return [
        str(tools / f"tfx{suffix}"),
        str(tools / "node_modules" / ".bin" / f"tfx{suffix}"),
    ]


def install_tfx(tools: Path) -> None:
    npm = which("npm")
    if npm is None:
        raise TfxNotFoundError("Unable to locate npm to install tfx-cli.")
    (tools / "node_modules").mkdir(parents=True, exist_ok=True)
    proc = subprocess.run(
        [npm, "install", "tfx-cli", "--prefix", str(tools)],
        capture_output=True,
        text=True,
        check=False,
    )
    for line in (proc.stdout or "").splitlines():
        agent.write_line(line)
    if proc.returncode != 0:
        raise TfxNotFoundError(f"Error installing tfx: {proc.stderr.strip() or proc.returncode}")


def resolve_tfx(inputs: TaskInputs) -> ToolRunner:
    check_global = inputs.get_variable(CHECK_GLOBAL_TFX_VARIABLE)
    if check_global and check_global.lower() != "false":
        logger.info("Checking tfx globally")
        tfx_path = which("tfx")
        if tfx_path:
            logger.info("Found tfx globally %s", tfx_path)
            return ToolRunner(tfx_path)

    tools = tools_folder(inputs)
    candidates = local_tfx_candidates(tools)
    logger.info("Checking tfx under: %s", candidates[0])
    tfx_path = which("", candidates)
    if tfx_path:
        logger.info("Found tfx under: %s", tfx_path)
        return ToolRunner(tfx_path)

    logger.info("Could not find tfx command. Preparing to install it under: %s", tools)
    install_tfx(tools)
    tfx_path = which("", candidates)
    if not tfx_path:
        raise TfxNotFoundError(f"tfx was not found under {tools} after installing tfx-cli.")
    return ToolRunner(tfx_path)


def run_tfx(
    inputs: TaskInputs,
    command: Callable[[ToolRunner], None],
    *,
    resolver: Optional[Callable[[TaskInputs], ToolRunner]] = None,
) -> bool:
    """Resolve tfx and hand it to ``command``; failures become a failed task result."""

    try:
        tfx = (resolver or resolve_tfx)(inputs)
    except (TfxTaskError, OSError) as exc:
        agent.set_result(TaskResult.FAILED, f"Error installing tfx: {exc}")
        return False

    try:
        cwd = inputs.get_input("cwd")
        if cwd:
            os.chdir(cwd)
        command(tfx)
    except (TfxTaskError, OSError) as exc:
        agent.set_result(TaskResult.FAILED, f"Error running task: {exc}")
        return False
    return True
