"""Package an extension into a .vsix with ``tfx extension create``."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional

from pydantic import BaseModel, ConfigDict, ValidationError

from .. import agent
from ..agent import TaskResult
from ..errors import TfxOutputError, TfxTaskError
from ..inputs import TaskInputs
from ..output import TfxJsonOutputStream
from ..propagation import check_update_tasks_version
from ..tfx import ToolRunner, run_tfx, set_manifest_arguments
from ..tfx.arguments import cleanup_all

logger = logging.getLogger(__name__)


class CreateOutput(BaseModel):
    """Subset of the JSON tfx prints for ``extension create --json``."""

    path: str

    model_config = ConfigDict(extra="allow")


def package_extension(
    inputs: TaskInputs,
    *,
    manifest_file: Optional[Path] = None,
    resolver: Optional[Callable[[TaskInputs], ToolRunner]] = None,
) -> bool:
    succeeded = False

    def command(tfx: ToolRunner) -> None:
        nonlocal succeeded
        tfx.arg(["extension", "create", "--json"])
        output_variable = inputs.get_input("outputVariable")

        cleanup = set_manifest_arguments(tfx, inputs)
        try:
            output_path = inputs.get_input("outputPath")
            tfx.arg_if(output_path, ["--output-path", output_path or ""])

            try:
                check_update_tasks_version(inputs, manifest_file)
            except TfxTaskError as exc:
                agent.set_result(TaskResult.FAILED, f"Error occurred while updating tasks version: {exc}")
                return

            output_stream = TfxJsonOutputStream(silent=False)
            try:
                code = tfx.exec(output_stream, fail_on_stderr=True)
                created = _parse_create_output(output_stream)
            except TfxTaskError as exc:
                agent.set_result(TaskResult.FAILED, f"tfx failed with error: {exc}")
                return

            if output_variable:
                agent.set_variable(output_variable, created.path)
            logger.info("Packaged extension: %s.", created.path)
            agent.set_result(TaskResult.SUCCEEDED, f"tfx exited with return code: {code}")
            succeeded = True
        finally:
            cleanup_all(cleanup)

    return run_tfx(inputs, command, resolver=resolver) and succeeded


def _parse_create_output(stream: TfxJsonOutputStream) -> CreateOutput:
    payload = stream.finalize().json()
    try:
        return CreateOutput.model_validate(payload)
    except ValidationError as exc:
        raise TfxOutputError(f"Unexpected tfx output: {exc}") from exc
