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
# GO COMPILER
# -----------------------------------------------------------------------------
# Responsibility: Cross-compile the package into a static Linux executable
# inside the workspace.
#
# The target platform travels as an explicit override map merged into the
# child's environment; this process's own environment is never modified.
# -----------------------------------------------------------------------------

import os
import subprocess
from collections.abc import Mapping
from pathlib import Path

from rich.console import Console

from hidalgo.domain.errors import PipelineError, Stage
from hidalgo.domain.models import ARTIFACT_NAME
from hidalgo.infra.process import command_string, describe_status
from hidalgo.infra.resolver import ResolvedPackage

console = Console()

DEFAULT_TARGET_ENV = {"GOOS": "linux", "GOARCH": "amd64", "CGO_ENABLED": "0"}


class CompileError(PipelineError):
    """Raised when `go build` fails. Carries the compiler's combined output."""

    stage = Stage.COMPILE

    def __init__(self, message: str, output: str = "", command: str = "") -> None:
        super().__init__(message)
        self.output = output
        self.command = command


class GoCompiler:
    """Runs `go build -o <workspace>/server_linux64 <package>`."""

    def __init__(
        self,
        go: str = "go",
        env_overrides: Mapping[str, str] | None = None,
        base_env: Mapping[str, str] | None = None,
        verbose: bool = False,
    ) -> None:
        self._go = go
        self._overrides = dict(DEFAULT_TARGET_ENV if env_overrides is None else env_overrides)
        self._base_env = base_env
        self._verbose = verbose

    def command(self, package: ResolvedPackage, workspace: Path) -> list[str]:
        return [self._go, "build", "-o", str(workspace / ARTIFACT_NAME), package.name]

    def environment(self) -> dict[str, str]:
        base = os.environ if self._base_env is None else self._base_env
        return {**base, **self._overrides}

    def compile(self, package: ResolvedPackage, workspace: Path) -> Path:
        """
        Build the executable.

        Args:
            package: The resolved package; the build runs in its directory.
            workspace: Directory receiving the executable.

        Returns:
            Path of the executable.

        Raises:
            CompileError: The toolchain is missing or the build fails.
        """
        cmd = self.command(package, workspace)
        printable = command_string(cmd)
        if self._verbose:
            targets = " ".join(f"{k}={v}" for k, v in self._overrides.items())
            console.print(f"[dim][COMPILER] {targets} {printable}[/dim]")

        try:
            result = subprocess.run(
                cmd,
                cwd=package.directory,
                env=self.environment(),
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                check=False,
            )
        except OSError as e:
            raise CompileError(f"Cannot run '{printable}': {e}", command=printable) from e

        if result.returncode != 0:
            raise CompileError(
                f"Error running cmd '{printable}': compiler {describe_status(result.returncode)}",
                output=result.stdout or "",
                command=printable,
            )

        artifact = workspace / ARTIFACT_NAME
        if not artifact.is_file():
            raise CompileError(
                f"Error running cmd '{printable}': compiler produced no executable at {artifact}",
                output=result.stdout or "",
                command=printable,
            )

        console.print(f"[green][COMPILER] Build of {package.name} successful[/green]")
        return artifact
