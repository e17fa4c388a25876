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
# THE ORCHESTRATOR - BUILD PIPELINE
# -----------------------------------------------------------------------------
# Responsibility: Run one hidalgo build from package directory to image.
#
#   ResolvePackage -> ValidateConfig -> PrepareWorkspace -> Compile
#     -> RenderManifest -> (dry run ? done : Package) -> Done
#
# Stages run strictly in that order on one thread. The first failure ends
# the run with that stage's exit status; nothing is retried. The workspace
# is cleaned up on every path out unless the user asked to keep it.
# -----------------------------------------------------------------------------

import os
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import IO

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.text import Text

from hidalgo.core.packager import StreamingPackager
from hidalgo.core.renderer import ManifestRenderer, write_manifest
from hidalgo.core.settings import BuildSettings
from hidalgo.core.validator import CONFIG_FILENAME, ConfigValidator, load_config_file
from hidalgo.domain.errors import ExitStatus, PipelineError, Stage
from hidalgo.domain.models import BuildOptions, Config, EnvironmentSnapshot, Manifest
from hidalgo.infra.compiler import CompileError, GoCompiler
from hidalgo.infra.process import command_string
from hidalgo.infra.resolver import ResolvedPackage, resolve_package
from hidalgo.infra.workspace import Workspace, WorkspaceError

console = Console()


class Orchestrator:
    """
    Sequences the build stages and maps failures to exit statuses.

    Collaborators can be injected (tests do); by default they are built from
    the BuildSettings. The packager is only created when packaging actually
    happens, so a dry run never starts an archiver or builder.
    """

    def __init__(
        self,
        options: BuildOptions,
        settings: BuildSettings | None = None,
        environ: Mapping[str, str] | None = None,
        resolver: Callable[..., ResolvedPackage] = resolve_package,
        validator: ConfigValidator | None = None,
        renderer: ManifestRenderer | None = None,
        compiler: GoCompiler | None = None,
        packager: StreamingPackager | None = None,
        output: IO[bytes] | None = None,
    ) -> None:
        self.options = options
        self.settings = settings or BuildSettings()
        self._environ = dict(os.environ if environ is None else environ)
        self._resolver = resolver
        self._validator = validator or ConfigValidator()
        self._renderer = renderer or ManifestRenderer()
        self._compiler = compiler
        self._packager = packager
        self._output = output

        self.stage: Stage | None = None
        self.completed: list[Stage] = []
        self.manifest: Manifest | None = None

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _trace(self, message: str) -> None:
        """Print only in verbose mode."""
        if self.options.verbose:
            console.print(message)

    def _enter(self, stage: Stage | None) -> None:
        if self.stage is not None:
            self.completed.append(self.stage)
        self.stage = stage

    def _report(self, error: PipelineError) -> None:
        body = f"[bold red]Stage '{error.stage.value}' failed[/bold red]\n\n{escape(str(error))}"
        if isinstance(error, CompileError) and error.output:
            body += f"\n\n[dim]{escape(error.output.rstrip())}[/dim]"
        console.print(Panel(body, title="BUILD HALTED", border_style="red"))

    # -------------------------------------------------------------------------
    # Stages
    # -------------------------------------------------------------------------

    def _resolve(self) -> ResolvedPackage:
        self._enter(Stage.RESOLVE_PACKAGE)
        package = self._resolver(
            self.options.directory,
            environ=self._environ,
            go=self.settings.compiler,
            verbose=self.options.verbose,
        )
        self._trace(f"[cyan][RESOLVER] Package name: {escape(package.name)}[/cyan]")
        return package

    def _validate(self, package: ResolvedPackage) -> Config:
        self._enter(Stage.VALIDATE_CONFIG)
        config_file = package.directory / CONFIG_FILENAME
        config = load_config_file(config_file, self._validator)
        if config_file.exists():
            self._trace(f"[cyan][CONFIG] Configuration file: {escape(str(config_file))}[/cyan]")
        else:
            self._trace("[cyan][CONFIG] No configuration file, using empty configuration[/cyan]")
        return config

    def _compile(self, package: ResolvedPackage, workspace: Path) -> Path:
        self._enter(Stage.COMPILE)
        compiler = self._compiler or GoCompiler(
            go=self.settings.compiler,
            env_overrides=self.settings.compiler_env(),
            base_env=self._environ,
            verbose=self.options.verbose,
        )
        return compiler.compile(package, workspace)

    def _render(self, config: Config, workspace: Path) -> Manifest:
        self._enter(Stage.RENDER_MANIFEST)
        snapshot = EnvironmentSnapshot.capture(config.env_names, self._environ)
        captured = set(snapshot.names())
        for name in dict.fromkeys(config.env_names):
            if name in captured:
                self._trace(f"[cyan][RENDERER]   Environment variable {name} added to Dockerfile[/cyan]")
            else:
                self._trace(f"[yellow][RENDERER]   Environment variable {name} not set, skipped[/yellow]")
        self._trace(f"[cyan][RENDERER] Exposed ports: {list(config.ports)}[/cyan]")

        base_image = self.options.base_image or self.settings.base_image
        self._trace(f"[cyan][RENDERER] Base image to build FROM: {escape(base_image)}[/cyan]")

        manifest = self._renderer.render(config, snapshot, base_image=base_image)
        try:
            path = write_manifest(manifest, workspace)
        except OSError as e:
            raise WorkspaceError(f"Unable to write Dockerfile in {workspace}: {e}") from e

        if self.options.verbose:
            console.print(Panel(Text(manifest.text), title=str(path), border_style="cyan"))
        return manifest

    def _package(self, workspace: Path) -> None:
        self._enter(Stage.PACKAGE)
        packager = self._packager or StreamingPackager(
            docker=self.options.docker or self.settings.docker,
            archive_command=self.settings.archive_command,
            channel_capacity=self.settings.channel_capacity,
            chunk_size=self.settings.chunk_size,
            verbose=self.options.verbose,
        )
        tag = self.options.tag
        self._trace(
            f"[cyan][PACKAGER] Docker command used: {escape(command_string(packager.build_command(tag)))}[/cyan]"
        )
        result = packager.package(workspace, tag=tag, output=self._output)
        result.raise_for_failure()

    # -------------------------------------------------------------------------
    # Entry point
    # -------------------------------------------------------------------------

    def run(self) -> ExitStatus:
        """
        Execute the pipeline.

        Returns:
            ExitStatus.SUCCESS, or the status of the stage that failed.
        """
        try:
            package = self._resolve()
            config = self._validate(package)

            self._enter(Stage.PREPARE_WORKSPACE)
            with Workspace(self.options.build_dir, keep=self.options.keep) as workspace:
                self._trace(f"[cyan][WORKSPACE] Build directory: {escape(str(workspace))}[/cyan]")

                self._compile(package, workspace)
                self.manifest = self._render(config, workspace)

                if self.options.dry_run:
                    if not self.options.verbose:
                        console.out(self.manifest.text, highlight=False, end="")
                    console.print("[yellow][HIDALGO] Dry run: image build skipped[/yellow]")
                else:
                    self._package(workspace)
                    console.print("[bold green][HIDALGO] Image built![/bold green]")

            self._enter(None)
            return ExitStatus.SUCCESS

        except PipelineError as e:
            self._report(e)
            return e.exit_status
