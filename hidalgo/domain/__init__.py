# -----------------------------------------------------------------------------
# DOMAIN LAYER
# -----------------------------------------------------------------------------
# Contains the build inputs (Pydantic models) passed between pipeline stages
# and the stage/exit-status taxonomy every stage error hangs off.
# -----------------------------------------------------------------------------

from .errors import ExitStatus, PipelineError, Stage
from .models import (
    BuildOptions,
    Config,
    Directive,
    EnvDirective,
    EnvironmentSnapshot,
    FileDirective,
    Manifest,
    PortDirective,
)

__all__ = [
    "BuildOptions", "Config", "Directive", "EnvDirective", "EnvironmentSnapshot",
    "FileDirective", "Manifest", "PortDirective",
    "ExitStatus", "PipelineError", "Stage",
]
