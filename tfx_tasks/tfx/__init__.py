"""tfx command construction and execution."""

from .arguments import (
    MarketplaceEndpoint,
    build_manifest_overrides,
    get_marketplace_endpoint,
    set_manifest_arguments,
    set_marketplace_arguments,
)
from .install import resolve_tfx, run_tfx
from .runner import ToolRunner

__all__ = [
    "MarketplaceEndpoint",
    "ToolRunner",
    "build_manifest_overrides",
    "get_marketplace_endpoint",
    "resolve_tfx",
    "run_tfx",
    "set_manifest_arguments",
    "set_marketplace_arguments",
]
