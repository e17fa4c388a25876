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
# BUILD WORKSPACE
# -----------------------------------------------------------------------------
# Responsibility: Own the directory that holds the executable, the Dockerfile
# and nothing else (it is sent to the builder as the build context).
#
# - No build dir given: a temporary hidalgo-* directory, removed on exit
#   unless `keep` is set.
# - Build dir given: created if needed, never removed.
# -----------------------------------------------------------------------------

import shutil
import tempfile
from pathlib import Path

from rich.console import Console

from hidalgo.domain.errors import PipelineError, Stage

console = Console()

WORKSPACE_PREFIX = "hidalgo-"


class WorkspaceError(PipelineError):
    """Raised when the build directory cannot be created or used."""

    stage = Stage.PREPARE_WORKSPACE


class Workspace:
    """
    Context manager for the build directory.

    Usage:
        with Workspace(build_dir, keep=options.keep) as path:
            ...
    """

    def __init__(self, build_dir: str | Path | None = None, keep: bool = False) -> None:
        self._requested = Path(build_dir).expanduser() if build_dir else None
        self.keep = keep
        self.path: Path | None = None
        self._temporary = False

    @property
    def retained(self) -> bool:
        """Whether the directory survives close()."""
        return self.keep or not self._temporary

    def open(self) -> Path:
        """
        Create the directory.

        Raises:
            WorkspaceError: The directory cannot be created.
        """
        try:
            if self._requested is None:
                self.path = Path(tempfile.mkdtemp(prefix=WORKSPACE_PREFIX))
                self._temporary = True
            else:
                self._requested.mkdir(parents=True, exist_ok=True)
                self.path = self._requested.resolve()
        except OSError as e:
            target = self._requested or "temporary directory"
            raise WorkspaceError(f"Unable to create build directory {target}: {e}") from e
        return self.path

    def close(self) -> None:
        if self.path is None:
            return
        if self.retained:
            console.print(f"[yellow][WORKSPACE] Kept build directory: {self.path}[/yellow]")
        else:
            shutil.rmtree(self.path, ignore_errors=True)
        self.path = None

    def __enter__(self) -> Path:
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
