"""Share a published extension with accounts via ``tfx extension share``."""

from __future__ import annotations

from typing import Callable, Optional

from .. import agent
from ..agent import TaskResult
from ..errors import ToolRunnerError
from ..inputs import TaskInputs
from ..tfx import ToolRunner, run_tfx, set_manifest_arguments, set_marketplace_arguments
from ..tfx.arguments import cleanup_all


def share_extension(
    inputs: TaskInputs,
    *,
    resolver: Optional[Callable[[TaskInputs], ToolRunner]] = None,
) -> bool:
    succeeded = False

    def command(tfx: ToolRunner) -> None:
        nonlocal succeeded
        tfx.arg(["extension", "share"])
        set_marketplace_arguments(tfx, inputs)
        cleanup = set_manifest_arguments(tfx, inputs)
        try:
            accounts = inputs.get_delimited_input("accounts", ",", required=True)
            tfx.arg(["--share-with", *(account.strip() for account in accounts if account.strip())])
            try:
                code = tfx.exec()
            except ToolRunnerError as exc:
                agent.set_result(TaskResult.FAILED, f"tfx failed with error: {exc}")
                return
            agent.set_result(TaskResult.SUCCEEDED, f"tfx exited with return code: {code}")
            succeeded = True
        finally:
            cleanup_all(cleanup)

    return run_tfx(inputs, command, resolver=resolver) and succeeded
