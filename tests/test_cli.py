from __future__ import annotations

import json
from contextlib import redirect_stderr, redirect_stdout
from io import StringIO
from pathlib import Path
from unittest import mock

import pytest

from tfx_tasks import cli

from .conftest import write_extension_manifest, write_task_manifest


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("AGENT_PROXYURL", "INPUT_UPDATETASKSVERSION", "INPUT_EXTENSIONVERSION", "INPUT_ROOTFOLDER"):
        monkeypatch.delenv(name, raising=False)


def _run_cli(argv: list[str]) -> tuple[int, str, str]:
    out, err = StringIO(), StringIO()
    with redirect_stdout(out), redirect_stderr(err):
        code = cli.main(argv)
    return code, out.getvalue(), err.getvalue()


def test_update_tasks_version_command(extension_root: Path) -> None:
    code, out, _ = _run_cli(
        [
            "--input", "updateTasksVersion=true",
            "--input", "extensionVersion=4.3.2",
            "update-tasks-version",
            "--manifest", str(extension_root / "vss-extension.json"),
        ]
    )

    assert code == 0
    payload = json.loads(out)
    assert payload["state"] == "done"
    assert payload["task_version"] == {"Major": "4", "Minor": "3", "Patch": "2"}
    assert len(payload["task_manifests"]) == 2


def test_update_tasks_version_reports_aggregated_failure(tmp_path: Path) -> None:
    write_extension_manifest(tmp_path / "vss-extension.json", ["Tasks/Ok", "Tasks/Broken"])
    write_task_manifest(tmp_path / "Tasks/Ok/task.json")
    broken = tmp_path / "Tasks/Broken/task.json"
    broken.parent.mkdir(parents=True)
    broken.write_text("[", encoding="utf-8")

    code, out, err = _run_cli(
        [
            "--input", "updateTasksVersion=true",
            "--input", "extensionVersion=1.0.0",
            "--input", f"rootFolder={tmp_path}",
            "update-tasks-version",
        ]
    )

    assert code == 1
    assert out == ""
    assert str(broken) in err


def test_update_tasks_version_missing_manifest(tmp_path: Path) -> None:
    missing = tmp_path / "nope.json"
    code, out, err = _run_cli(
        [
            "--input", "updateTasksVersion=true",
            "--input", "extensionVersion=1.0.0",
            "update-tasks-version",
            "--manifest", str(missing),
        ]
    )

    assert code == 1
    assert out == ""
    assert "Error determining tasks manifest paths" in err
    assert str(missing) in err


def test_env_file_supplies_inputs(extension_root: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    env_file = tmp_path / "task.env"
    env_file.write_text(
        f"INPUT_UPDATETASKSVERSION=true\nINPUT_EXTENSIONVERSION=7.0.1\nINPUT_ROOTFOLDER={extension_root}\n",
        encoding="utf-8",
    )
    for name in ("INPUT_UPDATETASKSVERSION", "INPUT_EXTENSIONVERSION", "INPUT_ROOTFOLDER"):
        monkeypatch.setenv(name, "placeholder")
        monkeypatch.delenv(name)

    code, out, _ = _run_cli(["--env-file", str(env_file), "update-tasks-version"])

    assert code == 0
    assert json.loads(out)["version"] == "7.0.1"


def test_package_command_dispatches() -> None:
    with mock.patch("tfx_tasks.cli.package_extension", return_value=True) as package_mock:
        code, _, _ = _run_cli(["--input", "publisherId=contoso", "package", "--manifest", "vss-extension.json"])
    assert code == 0
    inputs = package_mock.call_args.args[0]
    assert inputs.get_input("publisherId") == "contoso"
    assert package_mock.call_args.kwargs["manifest_file"] == Path("vss-extension.json")


def test_share_command_failure_exit_code() -> None:
    with mock.patch("tfx_tasks.cli.share_extension", return_value=False):
        code, _, _ = _run_cli(["share"])
    assert code == 1


def test_malformed_input_is_rejected() -> None:
    with pytest.raises(SystemExit):
        _run_cli(["--input", "novalue", "share"])
