"""
Pytest configuration and fixtures for hidalgo tests.
"""

import shlex
import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from hidalgo.core.packager import PackagingResult, StreamingPackager
from hidalgo.domain.models import ARTIFACT_NAME
from hidalgo.infra.compiler import GoCompiler
from hidalgo.infra.resolver import ResolvedPackage


@pytest.fixture
def python_script(tmp_path):
    """
    Write a Python script to disk and return a shell-style command for it.

    The command runs the script with the current interpreter, so it can stand
    in for `tar` or `docker` in packager tests.
    """
    counter = {"n": 0}

    def _write(source: str) -> str:
        counter["n"] += 1
        path = tmp_path / f"script_{counter['n']}.py"
        path.write_text(source)
        return f"{shlex.quote(sys.executable)} {shlex.quote(str(path))}"

    return _write


@pytest.fixture
def package_dir(tmp_path):
    """A Go package directory (the source is never compiled in tests)."""
    directory = tmp_path / "gopath" / "src" / "example.com" / "hello"
    directory.mkdir(parents=True)
    (directory / "main.go").write_text("package main\n\nfunc main() {}\n")
    return directory


@pytest.fixture
def resolver(package_dir):
    """Resolver stand-in that always finds example.com/hello."""
    return MagicMock(
        return_value=ResolvedPackage(name="example.com/hello", directory=package_dir)
    )


@pytest.fixture
def fake_compiler():
    """GoCompiler stand-in that drops a fake executable into the workspace."""
    compiler = MagicMock(spec=GoCompiler)

    def _compile(package, workspace):
        artifact = workspace / ARTIFACT_NAME
        artifact.write_bytes(b"\x7fELF fake")
        return artifact

    compiler.compile.side_effect = _compile
    return compiler


@pytest.fixture
def fake_packager():
    """StreamingPackager stand-in that reports a successful build."""
    packager = MagicMock(spec=StreamingPackager)
    packager.build_command.return_value = ["docker", "build", "-"]
    packager.package.return_value = PackagingResult(archiver_status=0, builder_status=0)
    return packager
