"""Build-agent logging commands and task result reporting."""

from __future__ import annotations

import logging
import sys
from enum import Enum
from typing import Optional, TextIO

logger = logging.getLogger("tfx_tasks")

_HANDLER_NAME = "tfx_tasks.agent"


class TaskResult(str, Enum):
    SUCCEEDED = "Succeeded"
    SUCCEEDED_WITH_ISSUES = "SucceededWithIssues"
    FAILED = "Failed"


def _escape_data(value: str) -> str:
    return value.replace("%", "%AZP25").replace("\r", "%0D").replace("\n", "%0A")


def _escape_property(value: str) -> str:
    return _escape_data(value).replace("]", "%5D").replace(";", "%3B")


class AgentLogFormatter(logging.Formatter):
    """Render log records as agent logging commands."""

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        if record.levelno >= logging.ERROR:
            return f"##vso[task.logissue type=error]{_escape_data(message)}"
        if record.levelno >= logging.WARNING:
            return f"##vso[task.logissue type=warning]{_escape_data(message)}"
        if record.levelno <= logging.DEBUG:
            return f"##[debug]{message}"
        return message


class _AgentStreamHandler(logging.StreamHandler):
    """Stream handler that follows the current ``sys.stdout`` unless given a stream."""

    def __init__(self, stream: Optional[TextIO] = None) -> None:
        super().__init__(stream or sys.stdout)
        self._follow_stdout = stream is None

    def emit(self, record: logging.LogRecord) -> None:
        if self._follow_stdout:
            self.stream = sys.stdout
        super().emit(record)


def configure_logging(level: int | str = logging.INFO, stream: Optional[TextIO] = None) -> logging.Logger:
    """Attach the agent formatter to the package logger (once)."""

    for handler in logger.handlers:
        if handler.get_name() == _HANDLER_NAME:
            handler.setLevel(level)
            logger.setLevel(level)
            return logger

    handler = _AgentStreamHandler(stream)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(AgentLogFormatter())
    handler.setLevel(level)
    logger.addHandler(handler)
    logger.setLevel(level)
    return logger


def write_line(message: str) -> None:
    logger.info(message)


def warning(message: str) -> None:
    logger.warning(message)


def debug(message: str) -> None:
    logger.debug(message)


def set_result(result: TaskResult, message: str = "", stream: Optional[TextIO] = None) -> None:
    out = stream or sys.stdout
    if result is TaskResult.FAILED and message:
        logger.error(message)
    out.write(f"##vso[task.complete result={result.value};]{_escape_data(message)}\n")
    out.flush()


def set_variable(name: str, value: str, *, secret: bool = False, stream: Optional[TextIO] = None) -> None:
    out = stream or sys.stdout
    properties = f"variable={_escape_property(name)};"
    if secret:
        properties += "issecret=true;"
    out.write(f"##vso[task.setvariable {properties}]{_escape_data(value)}\n")
    out.flush()
