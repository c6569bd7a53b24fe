"""
Exec sessions with independent stdin/stdout/stderr streams.

A session wraps one attached process. Each output pipe gets its own pump
task feeding a queue of byte chunks, so stdout and stderr can be read at
different rates (or not at all) without stalling the far end. stdin is a
separate handle with its own close: closing it delivers EOF to the remote
process and leaves the output streams untouched.

Nothing about the far end is buffered for us. A write to stdin has no
ordering relationship with bytes already emitted on stdout.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from kubedrop.errors import AttachRefused

CHUNK_SIZE = 64 * 1024
STDERR_TAIL_LIMIT = 8 * 1024


@dataclass
class ExecResult:
    """Completion outcome of an exec session."""
    command: List[str]
    exit_code: int
    stderr_tail: str = ""

    @property
    def success(self) -> bool:
        return self.exit_code == 0


class OutputStream:
    """
    Lazy, finite sequence of byte chunks from one remote stream.

    Ends with end-of-stream once the pipe is drained, or immediately when
    the session is torn down.
    """

    def __init__(self, name: str):
        self.name = name
        self._queue: asyncio.Queue = asyncio.Queue()
        self._finished = False

    @property
    def at_eof(self) -> bool:
        return self._finished

    def _feed(self, chunk: bytes) -> None:
        self._queue.put_nowait(chunk)

    def _end(self) -> None:
        self._queue.put_nowait(None)

    def _discard(self) -> None:
        """Drop unread chunks and end the stream."""
        while not self._queue.empty():
            self._queue.get_nowait()
        self._end()

    async def read_chunk(self) -> Optional[bytes]:
        """Next chunk, or None at end-of-stream."""
        if self._finished:
            return None
        chunk = await self._queue.get()
        if chunk is None:
            self._finished = True
        return chunk

    async def read_all(self) -> bytes:
        return b"".join([chunk async for chunk in self])

    def __aiter__(self):
        return self

    async def __anext__(self) -> bytes:
        chunk = await self.read_chunk()
        if chunk is None:
            raise StopAsyncIteration
        return chunk


class StdinHandle:
    """Writable stdin of a session. Must be closed to signal EOF."""

    def __init__(self, writer: asyncio.StreamWriter):
        self._writer = writer
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def write(self, data: bytes) -> None:
        """Write data and wait until the transport accepts it."""
        if self._closed:
            raise ValueError("stdin is closed")
        self._writer.write(data)
        await self._writer.drain()

    async def close(self) -> None:
        """Send EOF to the remote process. Safe to call twice."""
        if self._closed:
            return
        self._closed = True
        self._writer.close()
        try:
            await self._writer.wait_closed()
        except (BrokenPipeError, ConnectionResetError):
            # The process already went away; its exit status tells the story
            pass

    def _abandon(self) -> None:
        if not self._closed:
            self._closed = True
            self._writer.close()


class ExecSession:
    """
    A live remote process with up to three independent stream handles.

    stdout is always readable. stdin and stderr exist only when requested;
    stderr is drained regardless and its tail kept for diagnostics.

    Usage:
        async with await channel.exec(handle, ["tar", "xf", "-"], want_stdin=True) as session:
            await session.stdin.write(data)
            await session.stdin.close()
            result = await session.wait()
    """

    def __init__(
        self,
        process: asyncio.subprocess.Process,
        command: Sequence[str],
        want_stdin: bool = False,
        want_stderr: bool = False,
        target: str = "",
        attach_failure_markers: Sequence[str] = (),
        logger: Optional[logging.Logger] = None,
    ):
        self.process = process
        self.command = list(command)
        self.target = target
        self.logger = logger or logging.getLogger("kubedrop.channel")
        self._attach_failure_markers = tuple(attach_failure_markers)

        self.stdin: Optional[StdinHandle] = StdinHandle(process.stdin) if want_stdin else None
        self.stdout = OutputStream("stdout")
        self.stderr: Optional[OutputStream] = OutputStream("stderr") if want_stderr else None

        self._stderr_tail = bytearray()
        self._closed = False
        self._stdout_pump = asyncio.create_task(self._pump(process.stdout, self.stdout))
        self._stderr_pump = asyncio.create_task(
            self._pump(process.stderr, self.stderr, keep_tail=True)
        )

    @classmethod
    async def spawn(
        cls,
        argv: Sequence[str],
        want_stdin: bool = False,
        want_stderr: bool = False,
        command: Optional[Sequence[str]] = None,
        target: str = "",
        attach_failure_markers: Sequence[str] = (),
        logger: Optional[logging.Logger] = None,
    ) -> "ExecSession":
        """
        Start argv as a subprocess and attach a session to it.

        Args:
            argv: Full local command line (e.g. a kubectl exec invocation)
            want_stdin: Allocate a writable stdin handle
            want_stderr: Expose stderr as a readable stream
            command: The remote command, for results and logs (defaults to argv)
            target: Pod name, for error messages
            attach_failure_markers: stderr substrings meaning the attach itself failed
        """
        process = await asyncio.create_subprocess_exec(
            *argv,
            stdin=asyncio.subprocess.PIPE if want_stdin else asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        return cls(
            process,
            command if command is not None else argv,
            want_stdin=want_stdin,
            want_stderr=want_stderr,
            target=target,
            attach_failure_markers=attach_failure_markers,
            logger=logger,
        )

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def stderr_text(self) -> str:
        return self._stderr_tail.decode("utf-8", errors="replace")

    async def _pump(
        self,
        reader: asyncio.StreamReader,
        stream: Optional[OutputStream],
        keep_tail: bool = False,
    ) -> None:
        try:
            while True:
                chunk = await reader.read(CHUNK_SIZE)
                if not chunk:
                    break
                if keep_tail:
                    self._stderr_tail.extend(chunk)
                    del self._stderr_tail[:-STDERR_TAIL_LIMIT]
                if stream is not None:
                    stream._feed(chunk)
        finally:
            if stream is not None:
                stream._end()

    def _attach_failure(self) -> Optional[str]:
        for line in self.stderr_text.splitlines():
            if any(marker in line for marker in self._attach_failure_markers):
                return line.strip()
        return None

    async def wait(self) -> ExecResult:
        """
        Wait for the remote process to exit.

        Output already produced stays readable after this returns.

        Raises:
            AttachRefused: the process never attached to the container
        """
        exit_code = await self.process.wait()
        # stderr must be fully drained before it can be diagnosed
        await asyncio.wait([self._stderr_pump])

        self.logger.debug(f"{' '.join(self.command)} on {self.target} exited with {exit_code}")

        if exit_code != 0:
            reason = self._attach_failure()
            if reason:
                raise AttachRefused(self.target, reason)

        return ExecResult(command=self.command, exit_code=exit_code, stderr_tail=self.stderr_text)

    async def close(self) -> None:
        """
        Tear the session down.

        Kills the remote process if it is still running, releases all three
        handles and discards output nobody has read yet.
        """
        if self._closed:
            return
        self._closed = True

        if self.process.returncode is None:
            try:
                self.process.kill()
            except ProcessLookupError:
                pass

        pumps = [self._stdout_pump, self._stderr_pump]
        for pump in pumps:
            pump.cancel()
        await asyncio.gather(*pumps, return_exceptions=True)

        if self.stdin is not None:
            self.stdin._abandon()
        self.stdout._discard()
        if self.stderr is not None:
            self.stderr._discard()

        await self.process.wait()

    async def __aenter__(self) -> "ExecSession":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
