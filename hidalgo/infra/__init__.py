# -----------------------------------------------------------------------------
# INFRASTRUCTURE LAYER
# -----------------------------------------------------------------------------
# Contains the thin wrappers around the outside world:
# - resolve_package: directory -> Go package name
# - Workspace: temporary build directory lifecycle
# - GoCompiler: cross-compilation via `go build`
# -----------------------------------------------------------------------------

from .compiler import CompileError, GoCompiler
from .resolver import ResolutionError, ResolvedPackage, resolve_package
from .workspace import Workspace, WorkspaceError

__all__ = [
    "CompileError", "GoCompiler",
    "ResolutionError", "ResolvedPackage", "resolve_package",
    "Workspace", "WorkspaceError",
]
