"""Argument builders shared by the tfx extension tasks."""

from __future__ import annotations

import json
import logging
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional

from ..errors import ConfigurationError
from ..inputs import TaskInputs
from ..manifests import find_matches
from ..versioning import get_extension_version
from .runner import ToolRunner

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class MarketplaceEndpoint:
    url: Optional[str]
    username: Optional[str] = None
    password: Optional[str] = None
    apitoken: Optional[str] = None


def build_manifest_overrides(inputs: TaskInputs) -> Optional[Dict[str, object]]:
    """Return the manifest values tfx should override, or ``None``."""

    overrides: Dict[str, object] = {}

    extension_name = inputs.get_input("extensionName")
    if extension_name:
        logger.debug("Overriding extension name to: %s", extension_name)
        overrides["name"] = extension_name

    visibility = inputs.get_input("extensionVisibility")
    if visibility and visibility != "default":
        logger.debug("Overriding extension visibility to: %s", visibility)
        overrides["public"] = "public" in visibility
        if "preview" in visibility:
            overrides.setdefault("galleryFlags", []).append("Preview")  # type: ignore[union-attr]

    pricing = inputs.get_input("extensionPricing")
    if pricing and pricing != "default":
        logger.debug("Overriding extension pricing to: %s", pricing)
        if "paid" in pricing:
            overrides.setdefault("galleryFlags", []).append("Paid")  # type: ignore[union-attr]

    version = get_extension_version(inputs)
    if version:
        logger.debug("Overriding extension version to: %s", version)
        overrides["version"] = version

    return overrides or None


def write_overrides_file(overrides: Dict[str, object], prefix: str = "PackageTask") -> Path:
    with tempfile.NamedTemporaryFile(
        "w", encoding="utf-8", prefix=f"{prefix}-", suffix=".tmp", delete=False
    ) as handle:
        json.dump(overrides, handle)
    path = Path(handle.name)
    logger.debug("Generated a JSON temp file to override manifest values Path: %s", path)
    return path


def _remove_file(path: Optional[Path]) -> None:
    if path is not None and path.exists():
        logger.debug("Deleting temp file: %s", path)
        path.unlink()


def resolve_vsix_file(inputs: TaskInputs) -> Path:
    pattern = inputs.get_input("vsixFile", required=True) or ""
    if "*" in pattern or "?" in pattern:
        logger.debug("Pattern found in vsixFile parameter.")
        matches: List[Path] = find_matches(Path.cwd(), pattern)
    else:
        logger.debug("No pattern found in vsixFile parameter.")
        matches = [Path(pattern)]

    if not matches:
        raise ConfigurationError(f"Found no vsix files matching: {pattern}.")
    if len(matches) != 1:
        raise ConfigurationError(f"Found multiple vsix files matching: {pattern}.")
    return matches[0]


def set_manifest_arguments(tfx: ToolRunner, inputs: TaskInputs) -> Callable[[], None]:
    """Add manifest related switches (``--root``, ``--manifest-globs``, overrides...).

    Returns a cleanup callable that removes the temporary overrides file.
    """

    root_folder = inputs.get_input("rootFolder")
    tfx.arg_if(root_folder, ["--root", root_folder or ""])

    manifest_globs = inputs.get_input("patternManifest")
    tfx.arg_if(manifest_globs, ["--manifest-globs", manifest_globs or ""])

    publisher = inputs.get_input("publisherId")

    localization_root = inputs.get_input("localizationRoot")
    tfx.arg_if(localization_root, ["--loc-root", localization_root or ""])

    extension_id = inputs.get_input("extensionId")
    extension_tag = inputs.get_input("extensionTag")
    if extension_id and extension_tag:
        extension_id += extension_tag
        logger.debug("Overriding extension id to: %s", extension_id)

    # "fileType" is the legacy name of "method"
    method = inputs.get_input("method") or inputs.get_input("fileType")
    if method == "vsix":
        tfx.arg(["--vsix", str(resolve_vsix_file(inputs))])
    else:
        tfx.arg_if(publisher, ["--publisher", publisher or ""])
        tfx.arg_if(extension_id, ["--extension-id", extension_id or ""])

    overrides = build_manifest_overrides(inputs)
    overrides_path: Optional[Path] = None
    if overrides:
        overrides_path = write_overrides_file(overrides)
        tfx.arg(["--overrides-file", str(overrides_path)])

    tfx.line(inputs.get_input("arguments"))

    return lambda: _remove_file(overrides_path)


def get_marketplace_endpoint(inputs: TaskInputs, input_name: str = "connectedServiceName") -> MarketplaceEndpoint:
    endpoint_id = inputs.get_input(input_name, required=True) or ""
    url = inputs.get_endpoint_url(endpoint_id)
    auth = inputs.get_endpoint_authorization(endpoint_id, optional=True)
    if auth is None:
        return MarketplaceEndpoint(url=url)
    return MarketplaceEndpoint(
        url=url,
        username=auth.get("username"),
        password=auth.get("password"),
        apitoken=auth.get("apitoken"),
    )


def set_marketplace_arguments(tfx: ToolRunner, inputs: TaskInputs) -> None:
    connect_to = inputs.get_input("connectTo") or "VsTeam"

    if connect_to == "VsTeam":
        endpoint = get_marketplace_endpoint(inputs, "connectedServiceName")
        tfx.arg(["--service-url", endpoint.url or ""])
        tfx.arg(["--auth-type", "pat"])
        tfx.arg(["--token", endpoint.password or ""])
        return

    endpoint = get_marketplace_endpoint(inputs, "connectedServiceNameTFS")
    tfx.arg(["--service-url", endpoint.url or ""])
    if endpoint.username:
        tfx.arg(["--auth-type", "basic"])
        tfx.arg(["--username", endpoint.username])
        tfx.arg(["--password", endpoint.password or ""])
    else:
        tfx.arg(["--auth-type", "pat"])
        tfx.arg(["--token", endpoint.apitoken or ""])


def cleanup_all(*cleaners: Callable[[], None]) -> None:
    for cleaner in cleaners:
        try:
            cleaner()
        except OSError as exc:
            logger.warning("Unable to remove temporary file: %s", exc)

