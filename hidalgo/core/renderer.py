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
# THE RENDERER - DOCKERFILE GENERATION
# -----------------------------------------------------------------------------
# Responsibility: Render the Dockerfile for the compiled executable.
#
# Rendering is a pure function of (Config, EnvironmentSnapshot, base image,
# artifact path). It never reads the process environment, so the same inputs
# always give byte-identical output.
# -----------------------------------------------------------------------------

from pathlib import Path

import jinja2
from jinja2 import Environment, StrictUndefined

from hidalgo.domain.errors import PipelineError, Stage
from hidalgo.domain.models import (
    ARTIFACT_NAME,
    ARTIFACT_PATH,
    Config,
    EnvironmentSnapshot,
    Manifest,
)

DEFAULT_BASE_IMAGE = "scratch"
MANIFEST_FILENAME = "Dockerfile"

MANIFEST_TEMPLATE = """\
# Generated by hidalgo. Do not edit; re-run hidalgo instead.
FROM {{ base_image }}

# Statically linked executable
ADD {{ artifact_name }} {{ artifact_path }}
{% if env %}

# Values captured from the build host
{% for name, value in env %}
ENV {{ name }}={{ value | dockerquote }}
{% endfor %}
{% endif %}
{% if ports %}

{% for port in ports %}
EXPOSE {{ port }}
{% endfor %}
{% endif %}

CMD [{{ artifact_path | dockerquote }}]
"""


class TemplateError(PipelineError):
    """Raised when the manifest template cannot be compiled or rendered."""

    stage = Stage.RENDER_MANIFEST


def dockerquote(value: str) -> str:
    """
    Quote a value as a Dockerfile double-quoted string.

    Raises:
        TemplateError: The value holds a line break, which a Dockerfile
            instruction cannot carry.
    """
    value = str(value)
    if "\n" in value or "\r" in value:
        raise TemplateError(f"Value {value!r} contains a line break and cannot be written to a Dockerfile")
    escaped = value.replace("\\", "\\\\").replace('"', '\\"').replace("$", "\\$")
    return f'"{escaped}"'


class ManifestRenderer:
    """
    Renders the Dockerfile that wraps the compiled executable.

    The template is compiled once, lazily, so a broken template surfaces as a
    TemplateError from render() rather than at construction.
    """

    def __init__(self, template: str = MANIFEST_TEMPLATE) -> None:
        self._source = template
        self._template: jinja2.Template | None = None
        self._environment = Environment(
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
            autoescape=False,
        )
        self._environment.filters["dockerquote"] = dockerquote

    def _compiled(self) -> jinja2.Template:
        if self._template is None:
            try:
                self._template = self._environment.from_string(self._source)
            except jinja2.TemplateError as e:
                raise TemplateError(f"Error parsing Dockerfile template: {e}") from e
        return self._template

    def render(
        self,
        config: Config,
        snapshot: EnvironmentSnapshot,
        base_image: str | None = None,
        artifact_path: str = ARTIFACT_PATH,
    ) -> Manifest:
        """
        Render the Dockerfile.

        Args:
            config: Validated hidalgo.cfg contents (ports are taken from here).
            snapshot: Declared env names that are set on the host.
            base_image: Image to build FROM; `scratch` when not given.
            artifact_path: Where the executable lives inside the image.

        Returns:
            The Manifest: text plus the inputs that produced it.

        Raises:
            TemplateError: The template is malformed or fails to render, or an
                environment value holds a line break.
        """
        base_image = base_image or DEFAULT_BASE_IMAGE
        template = self._compiled()

        for name, value in snapshot.entries:
            if "\n" in value or "\r" in value:
                raise TemplateError(
                    f"Environment variable {name} contains a line break and cannot be written to a Dockerfile"
                )

        try:
            text = template.render(
                base_image=base_image,
                artifact_name=ARTIFACT_NAME,
                artifact_path=artifact_path,
                env=snapshot.entries,
                ports=config.ports,
            )
        except jinja2.TemplateError as e:
            raise TemplateError(f"Error rendering Dockerfile template: {e}") from e

        return Manifest(
            text=text,
            base_image=base_image,
            env=snapshot.entries,
            ports=config.ports,
            artifact_path=artifact_path,
        )


def write_manifest(manifest: Manifest, directory: Path) -> Path:
    """
    Write the manifest into the workspace as a Dockerfile.

    Raises:
        OSError: The file cannot be written.
    """
    path = directory / MANIFEST_FILENAME
    path.write_text(manifest.text, encoding="utf-8")
    return path
