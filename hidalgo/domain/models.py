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
# DOMAIN MODELS - BUILD INPUTS
# -----------------------------------------------------------------------------
# These Pydantic models carry everything that flows between pipeline stages:
# the parsed hidalgo.cfg directives, the Config built from them, the host
# environment snapshot, the rendered Manifest and the run options.
#
# All of them are frozen: each is created once per run and only read after.
# -----------------------------------------------------------------------------

import shlex
from collections.abc import Iterable, Mapping
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

MIN_PORT = 1
MAX_PORT = 65535

# Fixed name of the compiled executable and where the image keeps it.
ARTIFACT_NAME = "server_linux64"
ARTIFACT_PATH = f"/usr/local/bin/{ARTIFACT_NAME}"

Port = Annotated[int, Field(ge=MIN_PORT, le=MAX_PORT)]


def split_command(command: str) -> list[str]:
    """
    Split a shell-style command line (e.g. `sudo docker`) into argv words.

    Raises:
        ValueError: Unbalanced quotes, or no words at all.
    """
    words = shlex.split(command)
    if not words or not words[0]:
        raise ValueError("empty command")
    return words


class EnvDirective(BaseModel):
    """`env <NAME>;` - pass a host environment variable into the image."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["env"] = "env"
    name: str = Field(..., min_length=1)


class PortDirective(BaseModel):
    """`port <NUMBER>;` - expose a port from the image."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["port"] = "port"
    number: Port


class FileDirective(BaseModel):
    """`file <PATH>;` - reserved. Parsed and kept, not used by any stage yet."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["file"] = "file"
    path: str = Field(..., min_length=1)


Directive = Annotated[
    Union[EnvDirective, PortDirective, FileDirective], Field(discriminator="kind")
]


class Config(BaseModel):
    """
    The validated contents of hidalgo.cfg.

    Each sequence keeps source order and duplicates; nothing is deduplicated.
    """

    model_config = ConfigDict(frozen=True)

    env_names: tuple[str, ...] = ()
    ports: tuple[Port, ...] = ()
    files: tuple[str, ...] = ()

    @classmethod
    def from_directives(cls, directives: Iterable[Directive]) -> "Config":
        env_names: list[str] = []
        ports: list[int] = []
        files: list[str] = []
        for directive in directives:
            if isinstance(directive, EnvDirective):
                env_names.append(directive.name)
            elif isinstance(directive, PortDirective):
                ports.append(directive.number)
            else:
                files.append(directive.path)
        return cls(env_names=tuple(env_names), ports=tuple(ports), files=tuple(files))


class EnvironmentSnapshot(BaseModel):
    """
    The declared env names that are set in the host environment, with values.

    Entries follow the order the names were declared in; a name declared twice
    appears once. Names that are unset (or set to the empty string) are left
    out rather than recorded with an empty value.
    """

    model_config = ConfigDict(frozen=True)

    entries: tuple[tuple[str, str], ...] = ()

    @classmethod
    def capture(cls, names: Iterable[str], environ: Mapping[str, str]) -> "EnvironmentSnapshot":
        entries: dict[str, str] = {}
        for name in names:
            value = environ.get(name, "")
            if value and name not in entries:
                entries[name] = value
        return cls(entries=tuple(entries.items()))

    def names(self) -> tuple[str, ...]:
        return tuple(name for name, _ in self.entries)


class Manifest(BaseModel):
    """A rendered Dockerfile and the inputs that produced it."""

    model_config = ConfigDict(frozen=True)

    text: str
    base_image: str
    env: tuple[tuple[str, str], ...] = ()
    ports: tuple[Port, ...] = ()
    artifact_path: str


class BuildOptions(BaseModel):
    """
    Options for one hidalgo run.

    Fields mirror the command line flags; `None` means "use the settings
    default" for docker, tag and base image.
    """

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    directory: str = "."
    docker: str | None = None
    tag: str | None = None
    base_image: str | None = None
    build_dir: str | None = None
    keep: bool = False
    verbose: bool = False
    dry_run: bool = False

    @field_validator("docker")
    @classmethod
    def _docker_splits(cls, value: str | None) -> str | None:
        if value is not None:
            try:
                split_command(value)
            except ValueError as e:
                raise ValueError(f"Invalid Docker command {value!r}: {e}") from e
        return value
