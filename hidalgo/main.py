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
# HIDALGO - COMMAND LINE INTERFACE
# -----------------------------------------------------------------------------
# Responsibility: Turn command line flags (plus .env and settings.yaml
# defaults) into BuildOptions and exit with the Orchestrator's status.
#
#   hidalgo [-d DOCKER] [-t TAG] [-f FROM] [-b BUILDDIR] [-k] [-v] [-n] [DIR]
# -----------------------------------------------------------------------------

import argparse
import os
import sys

from dotenv import find_dotenv, load_dotenv
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape

from hidalgo import __version__
from hidalgo.core.orchestrator import Orchestrator
from hidalgo.core.settings import SettingsError, load_settings
from hidalgo.domain.errors import ExitStatus
from hidalgo.domain.models import BuildOptions, split_command

console = Console()


class UsageError(Exception):
    """Raised for invalid command line arguments."""

    pass


class _ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that reports bad arguments as UsageError instead of exiting 2."""

    def error(self, message: str) -> None:
        raise UsageError(message)


def build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="hidalgo",
        description="Build a minimal Docker image from a statically compiled Go package.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  hidalgo                                  # build the package in the current directory
  hidalgo -t myorg/server:1.2 ./cmd/server
  hidalgo -n -v ./cmd/server               # render the Dockerfile only
""",
    )
    parser.add_argument("directory", nargs="?", default=".", help="Directory of Go package to build")
    parser.add_argument(
        "-d", "--docker", default=os.getenv("HIDALGO_DOCKER"), help="Docker command (default: docker)"
    )
    parser.add_argument("-t", "--tag", default=os.getenv("HIDALGO_TAG"), help="Name to tag image with")
    parser.add_argument(
        "-f", "--from", dest="base_image", default=os.getenv("HIDALGO_FROM"),
        help="Docker image to build FROM (default: scratch)",
    )
    parser.add_argument("-b", "--builddir", dest="build_dir", help="Directory for Docker build")
    parser.add_argument("-k", "--keep", action="store_true", help="Keep Docker build directory")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    parser.add_argument("-n", "--dryrun", dest="dry_run", action="store_true", help="Suppress docker build")
    parser.add_argument("--settings", help="Settings file (default: $HIDALGO_SETTINGS or ~/.config/hidalgo/settings.yaml)")
    parser.add_argument("--version", action="version", version=f"hidalgo {__version__}")
    return parser


def parse_options(argv: list[str] | None = None) -> tuple[BuildOptions, str | None]:
    """
    Parse command line arguments.

    Returns:
        The BuildOptions and the explicit settings path (if any).

    Raises:
        UsageError: Unknown flag, missing value or an invalid option value.
    """
    args = build_parser().parse_args(argv)
    if args.docker is not None:
        if not args.docker.strip():
            raise UsageError("Missing Docker command")
        try:
            split_command(args.docker)
        except ValueError as e:
            raise UsageError(f"Invalid Docker command {args.docker!r}: {e}") from e

    try:
        options = BuildOptions(
            directory=args.directory,
            docker=args.docker,
            tag=args.tag or None,
            base_image=args.base_image or None,
            build_dir=args.build_dir,
            keep=args.keep,
            verbose=args.verbose,
            dry_run=args.dry_run,
        )
    except ValidationError as e:
        raise UsageError(str(e)) from e
    return options, args.settings


def main(argv: list[str] | None = None) -> int:
    """CLI entry point. Returns the process exit status."""
    load_dotenv(find_dotenv(usecwd=True))

    try:
        options, settings_file = parse_options(argv)
        settings = load_settings(settings_file)
    except (UsageError, SettingsError) as e:
        console.print(f"[red][HIDALGO] {escape(str(e))}[/red]")
        console.print("[dim]Run 'hidalgo --help' for usage.[/dim]")
        return int(ExitStatus.USAGE)

    if options.verbose:
        console.print(f"[bold cyan]hidalgo v{__version__}[/bold cyan]")

    return int(Orchestrator(options, settings=settings).run())


if __name__ == "__main__":
    sys.exit(main())
