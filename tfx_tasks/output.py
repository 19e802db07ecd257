"""Demultiplex tfx ``--json`` output into command echo, messages and payload.

tfx prints warnings on stdout as plain text even when ``--json`` is passed, so
the stream written by the tool runner holds, in order: the echoed command
line, zero or more free-text messages, then the JSON document.
"""

from __future__ import annotations

import codecs
import json
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional

from . import agent
from .errors import TfxOutputError

LineWriter = Callable[[str], None]

_JSON_OPENERS = ("{", "[")


@dataclass(slots=True)
class OutputChannels:
    command_line: str = ""
    messages: List[str] = field(default_factory=list)
    json_payload: str = ""

    def json(self) -> Any:
        if not self.json_payload:
            raise TfxOutputError("tfx did not produce any JSON output.")
        try:
            return json.loads(self.json_payload)
        except json.JSONDecodeError as exc:
            raise TfxOutputError(f"Unable to parse tfx JSON output: {exc}") from exc


class TfxJsonOutputStream:
    """Writable consumer for a tool runner's stdout."""

    def __init__(
        self,
        silent: bool = False,
        *,
        echo: Optional[LineWriter] = None,
        warning: Optional[LineWriter] = None,
        debug: Optional[LineWriter] = None,
    ) -> None:
        self.silent = silent
        self._echo = echo or agent.write_line
        self._warning = warning or agent.warning
        self._debug = debug or agent.debug
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="surrogateescape")
        self._channels = OutputChannels()
        self._command_line_seen = False

    @property
    def command_line(self) -> str:
        return self._channels.command_line

    @property
    def messages(self) -> List[str]:
        return self._channels.messages

    @property
    def json_payload(self) -> str:
        return self._channels.json_payload

    def write(self, chunk: bytes | str) -> None:
        text = chunk if isinstance(chunk, str) else self._decoder.decode(chunk)
        if text:
            self._route(text)

    def finalize(self) -> OutputChannels:
        """Flush buffered bytes and return the classified channels.

        Safe to call on a partially consumed stream; the payload is whatever
        was received so far.
        """

        remainder = self._decoder.decode(b"", final=True)
        if remainder:
            self._route(remainder)
        return self._channels

    def _route(self, text: str) -> None:
        channels = self._channels
        if not self._command_line_seen:
            self._command_line_seen = True
            channels.command_line = text
            if not self.silent:
                self._emit(text, self._echo)
        elif not channels.json_payload and not text.startswith(_JSON_OPENERS):
            channels.messages.append(text)
            if not self.silent:
                self._emit(text, self._warning)
        else:
            channels.json_payload += text
            self._emit(text, self._debug)

    @staticmethod
    def _emit(text: str, line_writer: LineWriter) -> None:
        # undecodable bytes stay escaped in the channels, sinks see U+FFFD
        display = text.encode("utf-8", "surrogateescape").decode("utf-8", "replace")
        for line in display.split("\n"):
            line_writer(line)
