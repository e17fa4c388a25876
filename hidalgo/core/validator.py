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
# THE VALIDATOR - HIDALGO.CFG PARSER
# -----------------------------------------------------------------------------
# Responsibility: Turn the text of a hidalgo.cfg file into a Config.
#
# The language is closed: three directives, each a keyword, one value and a
# terminating semicolon.
#
#     env DATABASE_URL;      // host variable copied into the image
#     port 8080;             /* exposed port, 1-65535 */
#     file "static/app.css"; // reserved
#
# Text is parsed straight into Env/Port/File directives; anything outside
# that set is rejected on the spot. No I/O happens here except in
# load_config_file().
# -----------------------------------------------------------------------------

import re
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

from hidalgo.domain.errors import PipelineError, Stage
from hidalgo.domain.models import (
    MAX_PORT,
    MIN_PORT,
    Config,
    Directive,
    EnvDirective,
    FileDirective,
    PortDirective,
)

CONFIG_FILENAME = "hidalgo.cfg"

DIRECTIVE_NAMES = ("env", "port", "file")

_PORT_PATTERN = re.compile(r"[0-9]+")


class ConfigError(PipelineError):
    """Raised when hidalgo.cfg cannot be read or is not valid."""

    stage = Stage.VALIDATE_CONFIG

    def __init__(self, message: str, line: int | None = None) -> None:
        if line is not None:
            message = f"line {line}: {message}"
        super().__init__(message)
        self.line = line


class UnknownDirective(ConfigError):
    """Raised for a directive name other than env, port or file."""

    def __init__(self, name: str, line: int | None = None) -> None:
        super().__init__(
            f"Unknown directive '{name}' (expected one of: {', '.join(DIRECTIVE_NAMES)})",
            line=line,
        )
        self.name = name


class InvalidPort(ConfigError):
    """Raised when a port value is not an integer in 1-65535."""

    def __init__(self, value: str, line: int | None = None) -> None:
        super().__init__(
            f"Invalid port number: {value} (must be {MIN_PORT}-{MAX_PORT})", line=line
        )
        self.value = value


class MalformedDirective(ConfigError):
    """Raised for syntax problems: missing value, missing ';', stray quotes."""

    pass


@dataclass(frozen=True)
class _Statement:
    """The tokens of one `;`-terminated statement and the line it starts on."""

    tokens: tuple[str, ...]
    line: int


def _statements(text: str) -> Iterator[_Statement]:
    """
    Split config text into statements.

    Handles whitespace, `//` and `#` line comments, `/* */` block comments and
    double-quoted values with backslash escapes.

    Raises:
        MalformedDirective: Unterminated string, comment or statement.
    """
    tokens: list[str] = []
    start_line = 1
    line = 1
    i = 0
    length = len(text)

    while i < length:
        char = text[i]

        if char == "\n":
            line += 1
            i += 1
        elif char.isspace():
            i += 1
        elif char == "#" or text.startswith("//", i):
            end = text.find("\n", i)
            i = length if end == -1 else end
        elif text.startswith("/*", i):
            end = text.find("*/", i + 2)
            if end == -1:
                raise MalformedDirective("Unterminated comment", line=line)
            line += text.count("\n", i, end)
            i = end + 2
        elif char == ";":
            if not tokens:
                raise MalformedDirective("Empty directive", line=line)
            yield _Statement(tokens=tuple(tokens), line=start_line)
            tokens = []
            i += 1
        elif char == '"':
            if not tokens:
                start_line = line
            value: list[str] = []
            i += 1
            while True:
                if i >= length or text[i] == "\n":
                    raise MalformedDirective("Unterminated string", line=line)
                if text[i] == "\\" and i + 1 < length:
                    value.append(text[i + 1])
                    i += 2
                elif text[i] == '"':
                    i += 1
                    break
                else:
                    value.append(text[i])
                    i += 1
            tokens.append("".join(value))
        else:
            if not tokens:
                start_line = line
            end = i
            while end < length and not text[end].isspace() and text[end] not in ';"':
                end += 1
            tokens.append(text[i:end])
            i = end

    if tokens:
        raise MalformedDirective(f"Missing ';' after '{' '.join(tokens)}'", line=start_line)


def _parse_port(value: str, line: int) -> int:
    if not _PORT_PATTERN.fullmatch(value):
        raise InvalidPort(value, line=line)
    number = int(value)
    if number < MIN_PORT or number > MAX_PORT:
        raise InvalidPort(value, line=line)
    return number


def _directive(statement: _Statement) -> Directive:
    name, *values = statement.tokens

    if name not in DIRECTIVE_NAMES:
        raise UnknownDirective(name, line=statement.line)
    if len(values) != 1 or not values[0]:
        raise MalformedDirective(
            f"Directive '{name}' takes exactly one value, got {len(values)}",
            line=statement.line,
        )

    value = values[0]
    if name == "env":
        return EnvDirective(name=value)
    if name == "port":
        return PortDirective(number=_parse_port(value, statement.line))
    return FileDirective(path=value)


class ConfigValidator:
    """
    Parses hidalgo.cfg text into a Config.

    A missing source is not an error: validate(None) returns an empty Config.
    """

    def parse(self, text: str | None) -> list[Directive]:
        """
        Parse config text into directives, in source order.

        Raises:
            UnknownDirective: Directive name outside env/port/file.
            InvalidPort: Port value not an integer in range.
            MalformedDirective: Any other syntax problem.
        """
        if not text:
            return []
        return [_directive(statement) for statement in _statements(text)]

    def validate(self, text: str | None) -> Config:
        """Parse config text and collect the directives into a Config."""
        return Config.from_directives(self.parse(text))


def load_config_file(path: Path, validator: ConfigValidator | None = None) -> Config:
    """
    Read and validate a config file.

    Args:
        path: Location of hidalgo.cfg. It does not have to exist.
        validator: Validator to use (a fresh one by default).

    Returns:
        The Config, empty if the file is absent.

    Raises:
        ConfigError: The file exists but cannot be read, or is invalid.
    """
    validator = validator or ConfigValidator()
    if not path.exists():
        return validator.validate(None)

    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    return validator.validate(text)
