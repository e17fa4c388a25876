# Copyright 2026 Pramod Kumar Voola
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

# -----------------------------------------------------------------------------
# PACKAGE RESOLUTION
# -----------------------------------------------------------------------------
# Responsibility: Map a directory on disk to the Go package it contains.
#
# GOPATH mode: if $GOPATH is set and the directory is under $GOPATH/src, the
# package name is the path relative to $GOPATH/src.
# Module mode: otherwise ask the toolchain (`go list .` in that directory).
# -----------------------------------------------------------------------------

import os
import subprocess
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from rich.console import Console
from rich.markup import escape

from hidalgo.domain.errors import PipelineError, Stage
from hidalgo.infra.process import command_string

console = Console()


class ResolutionError(PipelineError):
    """Raised when the directory does not hold a buildable Go package."""

    stage = Stage.RESOLVE_PACKAGE


@dataclass(frozen=True)
class ResolvedPackage:
    """A Go package: its import path and the directory it lives in."""

    name: str
    directory: Path


def _gopath_package(directory: Path, gopath: str) -> str | None:
    for entry in gopath.split(os.pathsep):
        if not entry:
            continue
        src = Path(entry).expanduser().resolve() / "src"
        try:
            relative = directory.relative_to(src)
        except ValueError:
            continue
        if relative.parts:
            return relative.as_posix()
    return None


def _module_package(directory: Path, go: str, verbose: bool = False) -> str:
    cmd = [go, "list", "."]
    if verbose:
        console.print(f"[dim][RESOLVER] {escape(command_string(cmd))} (in {escape(str(directory))})[/dim]")
    try:
        result = subprocess.run(
            cmd, cwd=directory, capture_output=True, text=True, check=False
        )
    except OSError as e:
        raise ResolutionError(f"Cannot run '{command_string(cmd)}': {e}") from e

    if result.returncode != 0:
        output = (result.stderr or result.stdout).strip()
        raise ResolutionError(f"'{command_string(cmd)}' failed in {directory}:\n{output}")

    name = result.stdout.strip()
    if not name:
        raise ResolutionError(f"No Go package found in {directory}")
    return name


def resolve_package(
    directory: str | Path,
    environ: Mapping[str, str] | None = None,
    go: str = "go",
    verbose: bool = False,
) -> ResolvedPackage:
    """
    Resolve a directory to a Go package.

    Args:
        directory: Package directory, possibly relative or a symlink.
        environ: Environment to read GOPATH from (process environment by default).
        go: Go toolchain command used in module mode.
        verbose: Print the toolchain invocation before running it.

    Returns:
        ResolvedPackage with the import path and the absolute directory.

    Raises:
        ResolutionError: Directory missing, or no package can be determined.
    """
    environ = os.environ if environ is None else environ
    try:
        actual = Path(directory).expanduser().resolve(strict=True)
    except (OSError, RuntimeError) as e:
        raise ResolutionError(f"Error determining package name: {e}") from e

    if not actual.is_dir():
        raise ResolutionError(f"Error determining package name: {actual} is not a directory")

    gopath = environ.get("GOPATH", "")
    if gopath:
        name = _gopath_package(actual, gopath)
        if name:
            return ResolvedPackage(name=name, directory=actual)

    return ResolvedPackage(name=_module_package(actual, go, verbose=verbose), directory=actual)
