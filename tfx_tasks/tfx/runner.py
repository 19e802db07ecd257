"""Minimal tool runner that streams a subprocess' stdout to a writer."""

from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
import threading
from pathlib import Path
from typing import IO, Iterable, List, Mapping, Optional, Protocol, Sequence

from .. import agent
from ..errors import ToolRunnerError

logger = logging.getLogger(__name__)

_READ_SIZE = 64 * 1024


class OutputStream(Protocol):
    def write(self, chunk: bytes) -> None:  # pragma: no cover - interface
        ...


class _LineForwarder:
    """Default out stream: forward decoded output to the agent log."""

    def __init__(self) -> None:
        self._pending = ""

    def write(self, chunk: bytes) -> None:
        self._pending += chunk.decode("utf-8", errors="replace")
        *lines, self._pending = self._pending.split("\n")
        for line in lines:
            agent.write_line(line)

    def flush(self) -> None:
        if self._pending:
            agent.write_line(self._pending)
            self._pending = ""


class ToolRunner:
    def __init__(self, tool_path: str | Path) -> None:
        self.tool_path = str(tool_path)
        self.args: List[str] = []

    def arg(self, values: str | Iterable[str]) -> "ToolRunner":
        if isinstance(values, str):
            self.args.append(values)
        else:
            self.args.extend(str(value) for value in values)
        return self

    def arg_if(self, condition: object, values: str | Iterable[str]) -> "ToolRunner":
        if condition:
            self.arg(values)
        return self

    def line(self, text: Optional[str]) -> "ToolRunner":
        """Append a free-form argument string, split the way a shell would."""

        if text:
            self.args.extend(shlex.split(text, posix=os.name != "nt"))
        return self

    def command_line(self) -> str:
        return shlex.join([self.tool_path, *self.args])

    def exec(
        self,
        out_stream: Optional[OutputStream] = None,
        *,
        fail_on_stderr: bool = False,
        cwd: Optional[str | Path] = None,
        env: Optional[Mapping[str, str]] = None,
    ) -> int:
        stream = out_stream if out_stream is not None else _LineForwarder()
        command = [self.tool_path, *self.args]
        stream.write(f"[command]{self.command_line()}\n".encode("utf-8"))

        process = subprocess.Popen(  # noqa: S603
            command,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            cwd=str(cwd) if cwd else None,
            env={**os.environ, **env} if env else None,
        )
        stderr_chunks: List[bytes] = []
        reader = threading.Thread(target=_drain, args=(process.stderr, stderr_chunks), daemon=True)
        reader.start()
        try:
            while process.stdout is not None:
                chunk = process.stdout.read1(_READ_SIZE)
                if not chunk:
                    break
                stream.write(chunk)
            exit_code = process.wait()
        finally:
            reader.join()
            if process.stdout is not None:
                process.stdout.close()
            if isinstance(stream, _LineForwarder):
                stream.flush()

        stderr = b"".join(stderr_chunks).decode("utf-8", errors="replace")
        log_stderr = agent.warning if fail_on_stderr else agent.write_line
        for line in stderr.splitlines():
            log_stderr(line)

        name = Path(self.tool_path).name
        if exit_code != 0:
            raise ToolRunnerError(
                f"{name} failed with return code: {exit_code}",
                exit_code=exit_code,
                stderr=stderr,
            )
        if fail_on_stderr and stderr.strip():
            raise ToolRunnerError(
                f"{name} failed with error: {stderr.strip()}",
                exit_code=exit_code,
                stderr=stderr,
            )
        logger.debug("%s exited with return code: %s", name, exit_code)
        return exit_code


def _drain(handle: Optional[IO[bytes]], sink: List[bytes]) -> None:
    if handle is None:
        return
    try:
        for chunk in iter(lambda: handle.read(_READ_SIZE), b""):
            sink.append(chunk)
    finally:
        handle.close()


def which(tool: str, candidates: Sequence[str] = ()) -> Optional[str]:
    """Return the first executable among ``candidates`` or ``tool`` on PATH."""

    for candidate in candidates:
        path = Path(candidate)
        if path.is_file() and os.access(path, os.X_OK):
            return str(path)
    return shutil.which(tool) if tool else None
