from __future__ import annotations

import logging
import re
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from .errors import ConfigurationError
from .inputs import TaskInputs

logger = logging.getLogger(__name__)

_EXTENSION_VERSION_RE = re.compile(r"[0-9]+\.[0-9]+\.[0-9]+(?:\.[0-9]+)?")


class TaskVersion(BaseModel):
    """Major/Minor/Patch triple stored in a task manifest's ``version`` field."""

    major: str = Field(alias="Major")
    minor: str = Field(alias="Minor")
    patch: str = Field(alias="Patch")

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    def to_manifest(self) -> Dict[str, str]:
        return self.model_dump(by_alias=True)

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


def extract_extension_version(value: Optional[str]) -> Optional[str]:
    """Return the marketplace-compatible part of ``value``.

    ``v1.2.3-beta`` yields ``1.2.3``; anything without a ``##.##.##(.##)``
    sequence is rejected.
    """

    if not value:
        return None
    match = _EXTENSION_VERSION_RE.search(value)
    if match is None:
        raise ConfigurationError("Supplied ExtensionVersion must contain a string matching '##.##.##(.##)'.")
    return match.group(0)


def get_extension_version(inputs: TaskInputs) -> Optional[str]:
    return extract_extension_version(inputs.get_input("extensionVersion"))


def to_task_version(version: str) -> TaskVersion:
    parts = version.split(".")
    if len(parts) < 3:
        raise ConfigurationError(f"Version '{version}' is not in major.minor.patch format.")
    if len(parts) > 3:
        logger.warning(
            "Detected a version that consists of more than 3 parts. "
            "Build tasks support only 3 parts, ignoring the rest."
        )
    major, minor, patch = parts[:3]
    return TaskVersion(major=major, minor=minor, patch=patch)


def parse_task_version(value: str) -> TaskVersion:
    """Validate a raw version string and split it into a task version."""

    extracted = extract_extension_version(value)
    if extracted is None:
        raise ConfigurationError("Extension version is empty.")
    return to_task_version(extracted)
