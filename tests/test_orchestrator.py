# =============================================================================
# HIDALGO ORCHESTRATOR TESTS
# =============================================================================
# Tests for stage sequencing, exit statuses and workspace cleanup. The Go
# toolchain and docker are replaced with fakes from conftest.py.
# =============================================================================

from unittest.mock import MagicMock, patch

import pytest

from hidalgo.core.orchestrator import Orchestrator
from hidalgo.core.packager import combine_results
from hidalgo.core.renderer import MANIFEST_FILENAME, ManifestRenderer
from hidalgo.core.settings import BuildSettings
from hidalgo.domain.errors import ExitStatus, Stage
from hidalgo.domain.models import BuildOptions
from hidalgo.infra.compiler import CompileError
from hidalgo.infra.resolver import ResolutionError

ALL_STAGES = [
    Stage.RESOLVE_PACKAGE,
    Stage.VALIDATE_CONFIG,
    Stage.PREPARE_WORKSPACE,
    Stage.COMPILE,
    Stage.RENDER_MANIFEST,
    Stage.PACKAGE,
]


def _workspace_of(compiler):
    """The workspace path the fake compiler was called with."""
    (_, workspace), _ = compiler.compile.call_args
    return workspace


def _orchestrator(resolver, compiler, packager, **options):
    environ = options.pop("environ", {"FOO": "baz"})
    renderer = options.pop("renderer", None)
    return Orchestrator(
        BuildOptions(**options),
        settings=BuildSettings(),
        environ=environ,
        resolver=resolver,
        renderer=renderer,
        compiler=compiler,
        packager=packager,
    )


class TestSuccessfulRun:
    """Tests for a run where every stage succeeds."""

    def test_full_pipeline(self, resolver, fake_compiler, fake_packager):
        """All stages run in order and the run succeeds."""
        orchestrator = _orchestrator(resolver, fake_compiler, fake_packager)
        assert orchestrator.run() == ExitStatus.SUCCESS
        assert orchestrator.completed == ALL_STAGES
        fake_packager.package.assert_called_once()

    def test_packager_gets_workspace_and_tag(self, resolver, fake_compiler, fake_packager):
        """The workspace and the tag are handed to the packager."""
        orchestrator = _orchestrator(resolver, fake_compiler, fake_packager, tag="me/app:1")
        orchestrator.run()

        args, kwargs = fake_packager.package.call_args
        assert args[0] == _workspace_of(fake_compiler)
        assert kwargs["tag"] == "me/app:1"

    def test_manifest_uses_config_and_environment(
        self, package_dir, resolver, fake_compiler, fake_packager
    ):
        """hidalgo.cfg and the given environment shape the Dockerfile."""
        (package_dir / "hidalgo.cfg").write_text("env FOO;\nenv BAR;\nport 8080;\n")
        orchestrator = _orchestrator(resolver, fake_compiler, fake_packager, environ={"FOO": "baz"})
        orchestrator.run()

        text = orchestrator.manifest.text
        assert 'ENV FOO="baz"' in text
        assert "BAR" not in text
        assert "EXPOSE 8080" in text

    def test_manifest_written_before_packaging(self, resolver, fake_compiler, fake_packager):
        """The Dockerfile and executable are in the workspace when packaging starts."""
        seen = {}

        def _package(workspace, tag=None, output=None):
            seen["files"] = sorted(p.name for p in workspace.iterdir())
            return combine_results(0, 0)

        fake_packager.package.side_effect = _package
        _orchestrator(resolver, fake_compiler, fake_packager).run()
        assert seen["files"] == [MANIFEST_FILENAME, "server_linux64"]

    def test_base_image_option(self, resolver, fake_compiler, fake_packager):
        """--from overrides the settings base image."""
        orchestrator = _orchestrator(resolver, fake_compiler, fake_packager, base_image="alpine:3.20")
        orchestrator.run()
        assert orchestrator.manifest.base_image == "alpine:3.20"

    def test_settings_base_image(self, resolver, fake_compiler, fake_packager):
        """Without --from, the settings base image is used."""
        orchestrator = Orchestrator(
            BuildOptions(),
            settings=BuildSettings(base_image="busybox"),
            environ={},
            resolver=resolver,
            compiler=fake_compiler,
            packager=fake_packager,
        )
        orchestrator.run()
        assert orchestrator.manifest.base_image == "busybox"

    def test_temporary_workspace_removed(self, resolver, fake_compiler, fake_packager):
        """The temporary workspace is deleted after success."""
        _orchestrator(resolver, fake_compiler, fake_packager).run()
        assert not _workspace_of(fake_compiler).exists()

    def test_keep_retains_workspace(self, resolver, fake_compiler, fake_packager):
        """--keep leaves the workspace in place."""
        _orchestrator(resolver, fake_compiler, fake_packager, keep=True).run()
        workspace = _workspace_of(fake_compiler)
        assert (workspace / MANIFEST_FILENAME).exists()

    def test_explicit_build_dir(self, tmp_path, resolver, fake_compiler, fake_packager):
        """An explicit build directory is used and kept."""
        build_dir = tmp_path / "build"
        _orchestrator(resolver, fake_compiler, fake_packager, build_dir=str(build_dir)).run()
        assert _workspace_of(fake_compiler) == build_dir.resolve()
        assert (build_dir / MANIFEST_FILENAME).exists()

    def test_verbose_run(self, resolver, fake_compiler, fake_packager):
        """Verbose mode does not change the outcome."""
        orchestrator = _orchestrator(resolver, fake_compiler, fake_packager, verbose=True)
        assert orchestrator.run() == ExitStatus.SUCCESS

    def test_verbose_reaches_resolver(self, resolver, fake_compiler, fake_packager):
        """The resolver is told to trace its toolchain call in verbose mode."""
        _orchestrator(resolver, fake_compiler, fake_packager, verbose=True).run()
        assert resolver.call_args.kwargs["verbose"] is True


class TestDryRun:
    """Tests for --dryrun."""

    def test_dry_run_skips_packaging(self, resolver, fake_compiler, fake_packager):
        """No packaging after a successful render."""
        orchestrator = _orchestrator(resolver, fake_compiler, fake_packager, dry_run=True)
        assert orchestrator.run() == ExitStatus.SUCCESS
        fake_packager.package.assert_not_called()
        assert Stage.PACKAGE not in orchestrator.completed
        assert orchestrator.completed[-1] == Stage.RENDER_MANIFEST

    def test_dry_run_starts_no_processes(self, resolver, fake_compiler):
        """No archiver or builder process is ever started."""
        orchestrator = _orchestrator(resolver, fake_compiler, None, dry_run=True)
        with patch("hidalgo.core.packager.subprocess.Popen") as mock_popen:
            assert orchestrator.run() == ExitStatus.SUCCESS
        mock_popen.assert_not_called()

    def test_dry_run_echoes_manifest(self, resolver, fake_compiler, capsys):
        """The rendered Dockerfile is printed."""
        _orchestrator(resolver, fake_compiler, None, dry_run=True).run()
        assert "FROM scratch" in capsys.readouterr().out


class TestStageFailures:
    """Each stage failure ends the run with its own status."""

    def test_resolution_failure(self, fake_compiler, fake_packager):
        """A package that cannot be resolved -> RESOLUTION."""
        resolver = MagicMock(side_effect=ResolutionError("Directory not inside GOPATH"))
        orchestrator = _orchestrator(resolver, fake_compiler, fake_packager)
        assert orchestrator.run() == ExitStatus.RESOLUTION
        fake_compiler.compile.assert_not_called()

    def test_invalid_config(self, package_dir, resolver, fake_compiler, fake_packager):
        """An invalid hidalgo.cfg -> CONFIG; nothing is compiled."""
        (package_dir / "hidalgo.cfg").write_text("port 0;\n")
        orchestrator = _orchestrator(resolver, fake_compiler, fake_packager)
        assert orchestrator.run() == ExitStatus.CONFIG
        assert orchestrator.stage == Stage.VALIDATE_CONFIG
        fake_compiler.compile.assert_not_called()

    def test_unknown_directive(self, package_dir, resolver, fake_compiler, fake_packager):
        """An unknown directive -> CONFIG."""
        (package_dir / "hidalgo.cfg").write_text("volume /data;\n")
        assert _orchestrator(resolver, fake_compiler, fake_packager).run() == ExitStatus.CONFIG

    def test_workspace_failure(self, tmp_path, resolver, fake_compiler, fake_packager):
        """A build directory that cannot be created -> WORKSPACE."""
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("")
        orchestrator = _orchestrator(
            resolver, fake_compiler, fake_packager, build_dir=str(blocker / "build")
        )
        assert orchestrator.run() == ExitStatus.WORKSPACE
        fake_compiler.compile.assert_not_called()

    def test_compile_failure(self, resolver, fake_compiler, fake_packager):
        """go build failing -> COMPILE; workspace removed; nothing packaged."""
        seen = {}

        def _fail(package, workspace):
            seen["workspace"] = workspace
            raise CompileError("go build failed", output="undefined: foo")

        fake_compiler.compile.side_effect = _fail
        orchestrator = _orchestrator(resolver, fake_compiler, fake_packager)

        assert orchestrator.run() == ExitStatus.COMPILE
        fake_packager.package.assert_not_called()
        assert not seen["workspace"].exists()

    def test_compile_failure_keeps_workspace_when_asked(self, resolver, fake_compiler, fake_packager):
        """--keep retains the workspace on failure too."""
        seen = {}

        def _fail(package, workspace):
            seen["workspace"] = workspace
            raise CompileError("go build failed")

        fake_compiler.compile.side_effect = _fail
        _orchestrator(resolver, fake_compiler, fake_packager, keep=True).run()
        assert seen["workspace"].exists()

    def test_render_failure(self, resolver, fake_compiler, fake_packager):
        """A broken template -> RENDER; nothing packaged."""
        orchestrator = _orchestrator(
            resolver, fake_compiler, fake_packager, renderer=ManifestRenderer("FROM {{ nope }}")
        )
        assert orchestrator.run() == ExitStatus.RENDER
        fake_packager.package.assert_not_called()

    def test_multiline_env_value(self, package_dir, resolver, fake_compiler, fake_packager):
        """An env value with a newline -> RENDER; nothing packaged."""
        (package_dir / "hidalgo.cfg").write_text("env CERT;\n")
        orchestrator = _orchestrator(
            resolver, fake_compiler, fake_packager, environ={"CERT": "a\nb"}
        )
        assert orchestrator.run() == ExitStatus.RENDER
        fake_packager.package.assert_not_called()

    @pytest.mark.parametrize("archiver_status,builder_status", [(2, 0), (0, 1), (2, 1)])
    def test_packaging_failure(
        self, resolver, fake_compiler, fake_packager, archiver_status, builder_status
    ):
        """Archiver or builder failing -> PACKAGING."""
        fake_packager.package.return_value = combine_results(archiver_status, builder_status)
        orchestrator = _orchestrator(resolver, fake_compiler, fake_packager)
        assert orchestrator.run() == ExitStatus.PACKAGING
        assert orchestrator.stage == Stage.PACKAGE
        assert not _workspace_of(fake_compiler).exists()

    def test_failure_message_names_stage(self, package_dir, resolver, fake_compiler, fake_packager, capsys):
        """The user sees the failing stage and the cause."""
        (package_dir / "hidalgo.cfg").write_text("port 99999;\n")
        _orchestrator(resolver, fake_compiler, fake_packager).run()
        out = capsys.readouterr().out
        assert "validate-config" in out
        assert "99999" in out

    def test_statuses_are_distinct(self):
        """Every stage has its own exit status."""
        statuses = [stage.exit_status for stage in Stage]
        assert len(set(statuses)) == len(statuses)
        assert ExitStatus.SUCCESS not in statuses
        assert ExitStatus.USAGE not in statuses
