# -----------------------------------------------------------------------------
# CORE LAYER
# -----------------------------------------------------------------------------
# The build pipeline:
# - ConfigValidator: hidalgo.cfg parser
# - ManifestRenderer: Dockerfile generation
# - StreamingPackager: tar | docker build, streamed through a bounded channel
# - Orchestrator: stage sequencing and exit statuses
# - BuildSettings: machine-level defaults (settings.yaml)
# -----------------------------------------------------------------------------

from .validator import ConfigError, ConfigValidator, InvalidPort, MalformedDirective, UnknownDirective
from .renderer import ManifestRenderer, TemplateError
from .packager import (
    ArchiverFailed,
    BothFailed,
    BuilderFailed,
    ByteChannel,
    PackagingError,
    PackagingResult,
    StreamingPackager,
)
from .settings import BuildSettings, SettingsError, load_settings
from .orchestrator import Orchestrator

__all__ = [
    "ConfigError", "ConfigValidator", "InvalidPort", "MalformedDirective", "UnknownDirective",
    "ManifestRenderer", "TemplateError",
    "ArchiverFailed", "BothFailed", "BuilderFailed", "ByteChannel",
    "PackagingError", "PackagingResult", "StreamingPackager",
    "BuildSettings", "SettingsError", "load_settings",
    "Orchestrator",
]
