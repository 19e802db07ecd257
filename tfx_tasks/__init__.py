"""Build-task helpers that drive tfx to package, version and share extensions."""

__version__ = "0.3.0"

from .errors import (
    AggregatedError,
    ConfigurationError,
    ManifestParseError,
    ManifestReadError,
    RewriteError,
    TfxTaskError,
)
from .inputs import TaskInputs, configure_proxy
from .output import OutputChannels, TfxJsonOutputStream
from .propagation import (
    PropagationResult,
    PropagationState,
    VersionPropagator,
    check_update_tasks_version,
)
from .versioning import TaskVersion, parse_task_version

__all__ = [
    "__version__",
    "AggregatedError",
    "ConfigurationError",
    "ManifestParseError",
    "ManifestReadError",
    "RewriteError",
    "TfxTaskError",
    "TaskInputs",
    "configure_proxy",
    "OutputChannels",
    "TfxJsonOutputStream",
    "PropagationResult",
    "PropagationState",
    "VersionPropagator",
    "check_update_tasks_version",
    "TaskVersion",
    "parse_task_version",
]
