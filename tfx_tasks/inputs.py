"""Task input, agent variable and service endpoint resolution."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional
from urllib.parse import quote, urlsplit, urlunsplit

from .errors import InputRequiredError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EndpointAuthorization:
    scheme: Optional[str]
    parameters: Dict[str, str] = field(default_factory=dict)

    def get(self, key: str) -> Optional[str]:
        return self.parameters.get(key.lower())


class TaskInputs:
    """Read-only view over the inputs a build agent hands to a task.

    Inputs and variables are looked up in ``environ`` using the agent naming
    convention (``INPUT_ROOTFOLDER`` for ``rootFolder``, ``AGENT_WORKFOLDER``
    for ``Agent.Workfolder``). Explicit ``overrides`` win over the environment.
    """

    def __init__(
        self,
        environ: Optional[Mapping[str, str]] = None,
        overrides: Optional[Mapping[str, str]] = None,
    ) -> None:
        self._environ: Mapping[str, str] = os.environ if environ is None else environ
        self._overrides: Dict[str, str] = {
            _input_key(name): value for name, value in (overrides or {}).items()
        }

    def with_overrides(self, overrides: Mapping[str, str]) -> "TaskInputs":
        merged = dict(self._overrides)
        merged.update({_input_key(name): value for name, value in overrides.items()})
        clone = TaskInputs(self._environ)
        clone._overrides = merged
        return clone

    def get_input(self, name: str, required: bool = False) -> Optional[str]:
        key = _input_key(name)
        value = self._overrides.get(key)
        if value is None:
            value = self._environ.get(key)
        value = value.strip() if value is not None else None
        if not value:
            if required:
                raise InputRequiredError(name)
            return None
        logger.debug("%s=%s", name, value)
        return value

    def get_bool_input(self, name: str, required: bool = False) -> bool:
        value = self.get_input(name, required)
        return (value or "").lower() == "true"

    def get_delimited_input(self, name: str, delimiter: str, required: bool = False) -> List[str]:
        value = self.get_input(name, required)
        if not value:
            return []
        return [item for item in value.split(delimiter) if item]

    def get_path_input(self, name: str, required: bool = False) -> Optional[Path]:
        value = self.get_input(name, required)
        return Path(value) if value else None

    def get_variable(self, name: str) -> Optional[str]:
        key = name.replace(".", "_").replace(" ", "_").upper()
        value = self._environ.get(key)
        if value is None:
            return None
        logger.debug("%s=%s", name, value)
        return value

    def get_endpoint_url(self, endpoint_id: str, optional: bool = False) -> Optional[str]:
        url = self._lookup(f"ENDPOINT_URL_{endpoint_id}")
        if not url and not optional:
            raise InputRequiredError(f"endpoint URL for {endpoint_id}")
        return url or None

    def get_endpoint_authorization(self, endpoint_id: str, optional: bool = False) -> Optional[EndpointAuthorization]:
        prefix = f"ENDPOINT_AUTH_PARAMETER_{endpoint_id}_".upper()
        parameters = {
            key[len(prefix) :].lower(): value
            for key, value in self._environ.items()
            if key.upper().startswith(prefix)
        }
        scheme = self._lookup(f"ENDPOINT_AUTH_SCHEME_{endpoint_id}")
        if not parameters and scheme is None:
            if optional:
                return None
            raise InputRequiredError(f"endpoint authorization for {endpoint_id}")
        return EndpointAuthorization(scheme=scheme, parameters=parameters)

    def _lookup(self, key: str) -> Optional[str]:
        value = self._environ.get(key)
        if value is not None:
            return value
        upper = key.upper()
        return next((value for name, value in self._environ.items() if name.upper() == upper), None)


def _input_key(name: str) -> str:
    return "INPUT_" + name.replace(" ", "_").upper()


def load_env_file(path: str | Path) -> bool:
    """Load ``path`` into the process environment without overriding existing values."""

    from dotenv import load_dotenv

    env_file = Path(path)
    if not env_file.exists():
        logger.debug("No env file at %s", env_file)
        return False
    return load_dotenv(env_file, override=False)


def configure_proxy(inputs: TaskInputs, environ: Optional[Dict[str, str]] = None) -> Optional[str]:
    """Export the agent proxy so spawned tools pick it up.

    Returns the proxy URL that was exported, or ``None`` when the agent has no
    proxy configured.
    """

    target = os.environ if environ is None else environ
    proxy_url = inputs.get_variable("Agent.ProxyUrl")
    if not proxy_url:
        return None

    username = inputs.get_variable("Agent.ProxyUsername")
    password = inputs.get_variable("Agent.ProxyPassword")
    if username:
        parts = urlsplit(proxy_url)
        credentials = quote(username, safe="")
        if password:
            credentials += ":" + quote(password, safe="")
        proxy_url = urlunsplit(
            (parts.scheme, f"{credentials}@{parts.netloc}", parts.path, parts.query, parts.fragment)
        )

    target["HTTP_PROXY"] = proxy_url
    target["HTTPS_PROXY"] = proxy_url
    logger.debug("Configured proxy for tfx from Agent.ProxyUrl")
    return proxy_url
