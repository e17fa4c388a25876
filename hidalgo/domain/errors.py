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
# PIPELINE STAGES & TERMINATION STATUSES
# -----------------------------------------------------------------------------
# Every stage of the build pipeline owns exactly one exit status. Stage errors
# are defined next to the code that raises them; they all derive from
# PipelineError so the Orchestrator can map any of them to a status.
# -----------------------------------------------------------------------------

from enum import Enum, IntEnum


class ExitStatus(IntEnum):
    """Process termination statuses, one per failing stage."""

    SUCCESS = 0
    USAGE = 1
    RESOLUTION = 2
    WORKSPACE = 3
    CONFIG = 4
    COMPILE = 5
    RENDER = 6
    PACKAGING = 7


class Stage(str, Enum):
    """
    The pipeline stages, in the order the Orchestrator runs them.

    Each stage knows the exit status reported when it fails.
    """

    RESOLVE_PACKAGE = "resolve-package"
    VALIDATE_CONFIG = "validate-config"
    PREPARE_WORKSPACE = "prepare-workspace"
    COMPILE = "compile"
    RENDER_MANIFEST = "render-manifest"
    PACKAGE = "package"

    @property
    def exit_status(self) -> ExitStatus:
        return _STAGE_STATUS[self]


_STAGE_STATUS = {
    Stage.RESOLVE_PACKAGE: ExitStatus.RESOLUTION,
    Stage.VALIDATE_CONFIG: ExitStatus.CONFIG,
    Stage.PREPARE_WORKSPACE: ExitStatus.WORKSPACE,
    Stage.COMPILE: ExitStatus.COMPILE,
    Stage.RENDER_MANIFEST: ExitStatus.RENDER,
    Stage.PACKAGE: ExitStatus.PACKAGING,
}


class PipelineError(Exception):
    """
    Base class for every error that aborts the build pipeline.

    Subclasses pin the stage they belong to; the Orchestrator reads it to
    pick the exit status and to name the failing stage for the user.
    """

    stage: Stage

    @property
    def exit_status(self) -> ExitStatus:
        return self.stage.exit_status
