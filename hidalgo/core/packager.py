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
# THE PACKAGER - STREAMING IMAGE BUILD
# -----------------------------------------------------------------------------
# Responsibility: Stream the workspace into `docker build -` as a tar.gz,
# without ever holding the whole archive in memory.
#
#   archiver (tar zcf - .) --stdout--> [producer pump] --> ByteChannel
#   ByteChannel --> [consumer pump] --stdin--> builder (docker build -)
#
# Both processes and both pumps run concurrently. The channel is bounded, so
# a slow builder pushes back on the archiver instead of buffering.
#
# Close/wait protocol (the part that must never deadlock):
#   1. wait for the producer pump to see the end of the archiver's output
#   2. wait for the archiver to exit
#   3. close the channel's write end - always, even if the archiver failed
#   4. wait for the consumer pump to deliver end-of-stream to the builder
#   5. wait for the builder to exit
# The consumer pump drains the channel to the end even when the builder has
# stopped reading, so the producer can never block forever on a full channel.
#
# There is no timeout: once started, both processes run to completion.
# -----------------------------------------------------------------------------

import queue
import subprocess
import threading
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import IO

from rich.console import Console

from hidalgo.domain.errors import PipelineError, Stage
from hidalgo.domain.models import split_command
from hidalgo.infra.process import command_string, describe_status

console = Console()

DEFAULT_ARCHIVE_COMMAND = ("tar", "zcf", "-", ".")
DEFAULT_CHANNEL_CAPACITY = 16  # chunks in flight
DEFAULT_CHUNK_SIZE = 64 * 1024


class PackagingError(PipelineError):
    """Base class for failures while streaming the workspace into the builder."""

    stage = Stage.PACKAGE
    side = "packaging"

    def __init__(
        self,
        message: str,
        archiver_status: int | None = None,
        builder_status: int | None = None,
    ) -> None:
        super().__init__(message)
        self.archiver_status = archiver_status
        self.builder_status = builder_status


class ArchiverFailed(PackagingError):
    """The archiver could not be started or exited unsuccessfully."""

    side = "archiver"


class BuilderFailed(PackagingError):
    """The builder could not be started or exited unsuccessfully."""

    side = "builder"


class BothFailed(BuilderFailed):
    """
    Archiver and builder both failed.

    The builder is reported as the primary cause; the archiver failure is kept
    in `archiver_failure`.
    """

    def __init__(
        self,
        message: str,
        archiver_failure: ArchiverFailed,
        archiver_status: int | None = None,
        builder_status: int | None = None,
    ) -> None:
        super().__init__(message, archiver_status=archiver_status, builder_status=builder_status)
        self.archiver_failure = archiver_failure


class ChannelClosed(Exception):
    """Raised when writing to a ByteChannel whose write end is closed."""

    pass


_END_OF_STREAM = object()


class ByteChannel:
    """
    Bounded single-writer, single-reader byte stream.

    At most `capacity` chunks are buffered; write() blocks while the channel
    is full and read() blocks while it is empty and the write end is open.
    After close(), read() returns b"" once the buffered chunks are consumed.
    """

    def __init__(self, capacity: int = DEFAULT_CHANNEL_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("Channel capacity must be at least 1")
        self.capacity = capacity
        self._queue: queue.Queue = queue.Queue(maxsize=capacity)
        self._closed = threading.Event()
        self._exhausted = False

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def write(self, data: bytes) -> None:
        if self._closed.is_set():
            raise ChannelClosed("Write to closed channel")
        if data:
            self._queue.put(bytes(data))

    def close(self) -> None:
        """Close the write end. Idempotent."""
        if self._closed.is_set():
            return
        self._closed.set()
        self._queue.put(_END_OF_STREAM)

    def read(self) -> bytes:
        if self._exhausted:
            return b""
        chunk = self._queue.get()
        if chunk is _END_OF_STREAM:
            self._exhausted = True
            return b""
        return chunk


@dataclass(frozen=True)
class PackagingResult:
    """Outcome of one streaming build."""

    archiver_status: int
    builder_status: int
    combined_failure: PackagingError | None = None
    bytes_streamed: int = 0

    @property
    def succeeded(self) -> bool:
        return self.combined_failure is None

    def raise_for_failure(self) -> None:
        if self.combined_failure is not None:
            raise self.combined_failure


def combine_results(
    archiver_status: int,
    builder_status: int,
    bytes_streamed: int = 0,
    archiver_detail: str | None = None,
) -> PackagingResult:
    """
    Merge the two exit statuses into one PackagingResult.

    Archiver only failed -> ArchiverFailed. Builder only failed ->
    BuilderFailed. Both failed -> BothFailed (builder primary).
    """
    archiver_failure: ArchiverFailed | None = None
    if archiver_status != 0 or archiver_detail:
        reason = archiver_detail or f"archiver {describe_status(archiver_status)}"
        archiver_failure = ArchiverFailed(
            f"Error generating archive: {reason}",
            archiver_status=archiver_status,
            builder_status=builder_status,
        )

    failure: PackagingError | None = archiver_failure
    if builder_status != 0:
        message = f"Error performing build: builder {describe_status(builder_status)}"
        if archiver_failure is not None:
            failure = BothFailed(
                f"{message} (archive also failed: {archiver_failure})",
                archiver_failure=archiver_failure,
                archiver_status=archiver_status,
                builder_status=builder_status,
            )
        else:
            failure = BuilderFailed(
                message, archiver_status=archiver_status, builder_status=builder_status
            )

    return PackagingResult(
        archiver_status=archiver_status,
        builder_status=builder_status,
        combined_failure=failure,
        bytes_streamed=bytes_streamed,
    )


def _pump_archive(source: IO[bytes], channel: ByteChannel, chunk_size: int) -> int:
    """Copy archiver output into the channel until the archiver closes stdout."""
    total = 0
    try:
        while True:
            chunk = source.read1(chunk_size)
            if not chunk:
                return total
            channel.write(chunk)
            total += len(chunk)
    finally:
        # An archiver still writing gets EPIPE instead of blocking forever.
        source.close()


def _pump_build(channel: ByteChannel, sink: IO[bytes]) -> int:
    """
    Copy channel contents into the builder's stdin until end-of-stream.

    If the builder stops reading, the rest of the stream is discarded; the
    channel is always drained to its end.
    """
    delivered = 0
    broken = False
    try:
        while True:
            chunk = channel.read()
            if not chunk:
                break
            if broken:
                continue
            try:
                sink.write(chunk)
                sink.flush()
                delivered += len(chunk)
            except OSError:
                broken = True
    finally:
        while channel.read():
            pass
        try:
            sink.close()
        except OSError:
            pass
    return delivered


class StreamingPackager:
    """
    Runs archiver and builder as two concurrent processes joined by a
    bounded channel, and reports both outcomes as one PackagingResult.
    """

    def __init__(
        self,
        docker: str = "docker",
        archive_command: Sequence[str] = DEFAULT_ARCHIVE_COMMAND,
        channel_capacity: int = DEFAULT_CHANNEL_CAPACITY,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        verbose: bool = False,
    ) -> None:
        self._docker = split_command(docker)
        if not archive_command:
            raise ValueError("Missing archive command")
        self._archive_command = list(archive_command)
        self._capacity = channel_capacity
        self._chunk_size = chunk_size
        self._verbose = verbose

    def archive_command(self) -> list[str]:
        return list(self._archive_command)

    def build_command(self, tag: str | None = None) -> list[str]:
        if tag:
            return [*self._docker, "build", "-t", tag, "-"]
        return [*self._docker, "build", "-"]

    def package(
        self,
        context_dir: Path,
        tag: str | None = None,
        output: IO[bytes] | None = None,
    ) -> PackagingResult:
        """
        Stream `context_dir` into the builder.

        Args:
            context_dir: Workspace holding the executable and Dockerfile.
            tag: Optional image tag passed to the builder.
            output: Where builder progress goes (inherits stdout by default).
                Must be a real file with a file descriptor.

        Returns:
            PackagingResult; check `succeeded` or call raise_for_failure().

        Raises:
            ArchiverFailed: The archiver could not be started.
            BuilderFailed: The builder could not be started.
        """
        archive_cmd = self.archive_command()
        build_cmd = self.build_command(tag)

        if self._verbose:
            console.print(f"[dim][PACKAGER] Archive command: '{command_string(archive_cmd)}'[/dim]")
            console.print(f"[dim][PACKAGER] Build command: '{command_string(build_cmd)}'[/dim]")

        channel = ByteChannel(self._capacity)

        try:
            archiver = subprocess.Popen(archive_cmd, cwd=context_dir, stdout=subprocess.PIPE)
        except OSError as e:
            raise ArchiverFailed(f"Cannot start archiver '{archive_cmd[0]}': {e}") from e

        try:
            builder = subprocess.Popen(build_cmd, stdin=subprocess.PIPE, stdout=output)
        except OSError as e:
            archiver.kill()
            archiver.wait()
            archiver.stdout.close()
            raise BuilderFailed(f"Cannot start builder '{build_cmd[0]}': {e}") from e

        console.print(f"[cyan][PACKAGER] Streaming {context_dir} into builder...[/cyan]")

        archiver_detail: str | None = None
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="hidalgo-pump") as pool:
            producer = pool.submit(_pump_archive, archiver.stdout, channel, self._chunk_size)
            consumer = pool.submit(_pump_build, channel, builder.stdin)

            streamed = 0
            try:
                streamed = producer.result()
            except OSError as e:
                archiver_detail = f"reading archive failed: {e}"
            finally:
                archiver_status = archiver.wait()
                channel.close()

            consumer.result()

        builder_status = builder.wait()

        result = combine_results(
            archiver_status, builder_status, bytes_streamed=streamed, archiver_detail=archiver_detail
        )
        if result.succeeded:
            console.print(f"[green][PACKAGER] Image built ({streamed} bytes of context)[/green]")
        else:
            console.print(f"[red][PACKAGER] {result.combined_failure}[/red]")
        return result
