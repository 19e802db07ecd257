from __future__ import annotations

import json
from pathlib import Path
from typing import List, Optional

import pytest

from tfx_tasks.errors import ToolRunnerError
from tfx_tasks.tasks import package_extension, share_extension
from tfx_tasks.tfx import ToolRunner

from .conftest import make_inputs


class FakeTfx(ToolRunner):
    """Tool runner that replays canned stdout chunks instead of spawning tfx."""

    def __init__(self, chunks: List[bytes], exit_code: int = 0) -> None:
        super().__init__("/agent/_tools/tfx")
        self.chunks = chunks
        self.exit_code = exit_code
        self.exec_kwargs: dict = {}
        self.overrides_seen: Optional[dict] = None

    def exec(self, out_stream=None, **kwargs) -> int:
        self.exec_kwargs = kwargs
        if "--overrides-file" in self.args:
            path = Path(self.args[self.args.index("--overrides-file") + 1])
            self.overrides_seen = json.loads(path.read_text(encoding="utf-8"))
        if out_stream is not None:
            out_stream.write(f"[command]{self.command_line()}\n".encode("utf-8"))
            for chunk in self.chunks:
                out_stream.write(chunk)
        if self.exit_code:
            raise ToolRunnerError(f"tfx failed with return code: {self.exit_code}", exit_code=self.exit_code)
        return self.exit_code


def test_package_sets_output_variable_and_updates_tasks(extension_root: Path, capsys: pytest.CaptureFixture[str]) -> None:
    tfx = FakeTfx([b"Warning: tfx is out of date\n", b'{"path": "/out/contoso.build-tasks-1.2.3.vsix"', b"}"])
    inputs = make_inputs(
        rootFolder=str(extension_root),
        extensionVersion="1.2.3",
        updateTasksVersion="true",
        outputPath="/out",
        outputVariable="Extension.OutputPath",
    )

    assert package_extension(inputs, resolver=lambda _: tfx) is True

    assert tfx.args[:3] == ["extension", "create", "--json"]
    assert tfx.args[-2:] == ["--output-path", "/out"]
    assert tfx.exec_kwargs == {"fail_on_stderr": True}
    assert tfx.overrides_seen == {"version": "1.2.3"}
    overrides_file = Path(tfx.args[tfx.args.index("--overrides-file") + 1])
    assert not overrides_file.exists()

    output = capsys.readouterr().out
    assert "##vso[task.setvariable variable=Extension.OutputPath;]/out/contoso.build-tasks-1.2.3.vsix" in output
    assert "##vso[task.complete result=Succeeded;]tfx exited with return code: 0" in output

    task = json.loads((extension_root / "BuildTasks" / "PackageExtension" / "task.json").read_text(encoding="utf-8"))
    assert task["version"] == {"Major": "1", "Minor": "2", "Patch": "3"}


def test_package_fails_when_task_update_fails(extension_root: Path, capsys: pytest.CaptureFixture[str]) -> None:
    (extension_root / "vss-extension.json").write_text("not json", encoding="utf-8")
    tfx = FakeTfx([b"{}"])
    inputs = make_inputs(rootFolder=str(extension_root), extensionVersion="1.0.0", updateTasksVersion="true")

    assert package_extension(inputs, resolver=lambda _: tfx) is False

    assert tfx.exec_kwargs == {}
    assert "result=Failed;]Error occurred while updating tasks version: Error parsing extension manifest" in capsys.readouterr().out


def test_package_fails_without_json_output(capsys: pytest.CaptureFixture[str]) -> None:
    tfx = FakeTfx([b"error: manifest not found"])
    assert package_extension(make_inputs(), resolver=lambda _: tfx) is False
    assert "result=Failed;]tfx failed with error: tfx did not produce any JSON output." in capsys.readouterr().out


def test_package_fails_on_tfx_error(capsys: pytest.CaptureFixture[str]) -> None:
    tfx = FakeTfx([], exit_code=2)
    assert package_extension(make_inputs(), resolver=lambda _: tfx) is False
    assert "result=Failed;]tfx failed with error: tfx failed with return code: 2" in capsys.readouterr().out


def test_share_passes_accounts(capsys: pytest.CaptureFixture[str]) -> None:
    env = {
        "ENDPOINT_URL_market": "https://marketplace.visualstudio.com",
        "ENDPOINT_AUTH_PARAMETER_market_PASSWORD": "pat",
    }
    tfx = FakeTfx([])
    inputs = make_inputs(env, connectedServiceName="market", publisherId="contoso", accounts=" fabrikam , contoso-dev")

    assert share_extension(inputs, resolver=lambda _: tfx) is True

    assert tfx.args[:2] == ["extension", "share"]
    assert tfx.args[-3:] == ["--share-with", "fabrikam", "contoso-dev"]
    assert "--publisher" in tfx.args
    assert "##vso[task.complete result=Succeeded;]" in capsys.readouterr().out


def test_share_requires_accounts(capsys: pytest.CaptureFixture[str]) -> None:
    env = {"ENDPOINT_URL_market": "https://marketplace.visualstudio.com"}
    inputs = make_inputs(env, connectedServiceName="market")
    assert share_extension(inputs, resolver=lambda _: FakeTfx([])) is False
    assert "Input required: accounts" in capsys.readouterr().out
