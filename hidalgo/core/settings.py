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
# TOOL SETTINGS
# -----------------------------------------------------------------------------
# Responsibility: Load the machine-level defaults for hidalgo: which docker
# and go binaries to call, the target platform, the base image and the
# packager's channel sizing.
#
# Settings live in an optional YAML file; without one, built-in defaults are
# used. Command line flags always win over settings.
# -----------------------------------------------------------------------------

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator
from rich.console import Console

from hidalgo.core.packager import (
    DEFAULT_ARCHIVE_COMMAND,
    DEFAULT_CHANNEL_CAPACITY,
    DEFAULT_CHUNK_SIZE,
)
from hidalgo.core.renderer import DEFAULT_BASE_IMAGE
from hidalgo.domain.models import split_command

console = Console()

SETTINGS_ENV_VAR = "HIDALGO_SETTINGS"
DEFAULT_SETTINGS_PATH = Path.home() / ".config" / "hidalgo" / "settings.yaml"


class SettingsError(Exception):
    """Raised when the settings file exists but is unreadable or invalid."""

    pass


class BuildSettings(BaseModel):
    """
    Pydantic model for the hidalgo settings file.

    Example settings.yaml:

        docker: sdocker
        base_image: alpine:3.20
        target_arch: arm64
        channel_capacity: 32
    """

    docker: str = Field("docker", min_length=1)
    base_image: str = Field(DEFAULT_BASE_IMAGE, min_length=1)
    compiler: str = Field("go", min_length=1)
    target_os: str = "linux"
    target_arch: str = "amd64"
    cgo_enabled: bool = False
    archive_command: list[str] = Field(
        default_factory=lambda: list(DEFAULT_ARCHIVE_COMMAND), min_length=1
    )
    channel_capacity: int = Field(DEFAULT_CHANNEL_CAPACITY, ge=1)
    chunk_size: int = Field(DEFAULT_CHUNK_SIZE, ge=1)

    class Config:
        """Reject unknown keys so typos in settings.yaml are reported."""

        extra = "forbid"

    @field_validator("docker")
    @classmethod
    def _docker_splits(cls, value: str) -> str:
        try:
            split_command(value)
        except ValueError as e:
            raise ValueError(f"Invalid Docker command {value!r}: {e}") from e
        return value

    def compiler_env(self) -> dict[str, str]:
        """Environment overrides that pin the compiler's target platform."""
        return {
            "GOOS": self.target_os,
            "GOARCH": self.target_arch,
            "CGO_ENABLED": "1" if self.cgo_enabled else "0",
        }


def settings_path(explicit: str | Path | None = None) -> Path:
    """Pick the settings file: explicit path, then $HIDALGO_SETTINGS, then default."""
    if explicit:
        return Path(explicit).expanduser()
    from_env = os.getenv(SETTINGS_ENV_VAR)
    if from_env:
        return Path(from_env).expanduser()
    return DEFAULT_SETTINGS_PATH


def load_settings(path: str | Path | None = None) -> BuildSettings:
    """
    Load settings from YAML.

    Args:
        path: Settings file; see settings_path() for how it is chosen.

    Returns:
        BuildSettings, built-in defaults if the file does not exist.

    Raises:
        SettingsError: The file cannot be read, is not YAML or has bad values.
    """
    settings_file = settings_path(path)
    if not settings_file.exists():
        return BuildSettings()

    try:
        with open(settings_file) as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise SettingsError(f"Cannot read settings {settings_file}: {e}") from e

    if not isinstance(data, dict):
        raise SettingsError(f"Settings {settings_file} must be a mapping")

    try:
        settings = BuildSettings(**data)
    except ValidationError as e:
        raise SettingsError(f"Invalid settings in {settings_file}: {e}") from e

    console.print(f"[green][SETTINGS] Loaded: {settings_file}[/green]")
    return settings
