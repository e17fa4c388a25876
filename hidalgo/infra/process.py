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
# PROCESS HELPERS
# -----------------------------------------------------------------------------
# Small helpers shared by everything that launches external commands
# (compiler, archiver, builder): printable command lines and readable
# descriptions of exit statuses.
# -----------------------------------------------------------------------------

import shlex
import signal
from collections.abc import Sequence


def command_string(command: Sequence[str]) -> str:
    """Render a command as a line that could be pasted into a shell."""
    return shlex.join(str(part) for part in command)


def describe_status(returncode: int) -> str:
    """
    Describe a subprocess return code.

    Negative codes mean the process was killed by a signal (POSIX).
    """
    if returncode >= 0:
        return f"exited with status {returncode}"
    try:
        name = signal.Signals(-returncode).name
    except ValueError:
        name = f"signal {-returncode}"
    return f"killed by {name}"
