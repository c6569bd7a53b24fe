"""
Tests for exec sessions.

Local `sh`/`cat` processes stand in for the remote container: the session
only cares about three pipes and an exit status, wherever they come from.
"""

import asyncio
import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from kubedrop.errors import AttachRefused
from kubedrop.modules.channel import ATTACH_FAILURE_MARKERS, ExecSession

pytestmark = pytest.mark.subprocess


async def spawn(*argv, **kwargs) -> ExecSession:
    return await ExecSession.spawn(list(argv), target="example", **kwargs)


@pytest.mark.asyncio
async def test_stdout_always_allocated():
    session = await spawn("sh", "-c", "printf hello")
    async with session:
        assert session.stdin is None
        assert session.stderr is None
        assert await session.stdout.read_all() == b"hello"
        result = await session.wait()

    assert result.success
    assert result.exit_code == 0


@pytest.mark.asyncio
async def test_stdin_round_trip_through_cat():
    data = os.urandom(200_000)
    session = await spawn("cat", want_stdin=True)
    async with session:
        reader = asyncio.create_task(session.stdout.read_all())
        await session.stdin.write(data)
        await session.stdin.close()
        output = await reader
        result = await session.wait()

    assert output == data
    assert result.success


@pytest.mark.asyncio
async def test_remote_blocks_until_stdin_closed():
    """cat never exits while stdin is open; closing it is what ends the process."""
    session = await spawn("cat", want_stdin=True)
    async with session:
        await session.stdin.write(b"partial")
        waiter = asyncio.create_task(session.wait())
        await asyncio.sleep(0.2)
        assert not waiter.done()

        await session.stdin.close()
        result = await asyncio.wait_for(waiter, 5)

    assert result.success


@pytest.mark.asyncio
async def test_closing_stdin_leaves_stdout_readable():
    session = await spawn("sh", "-c", "cat; echo done", want_stdin=True)
    async with session:
        await session.stdin.write(b"in\n")
        await session.stdin.close()
        assert session.stdin.closed
        assert await session.stdout.read_all() == b"in\ndone\n"


@pytest.mark.asyncio
async def test_stdin_close_is_idempotent():
    session = await spawn("cat", want_stdin=True)
    async with session:
        await session.stdin.close()
        await session.stdin.close()
        await session.wait()


@pytest.mark.asyncio
async def test_write_after_close_raises():
    session = await spawn("cat", want_stdin=True)
    async with session:
        await session.stdin.close()
        with pytest.raises(ValueError):
            await session.stdin.write(b"late")


@pytest.mark.asyncio
async def test_stdout_and_stderr_are_independent():
    session = await spawn(
        "sh", "-c", "echo out; echo err >&2; exit 3", want_stderr=True
    )
    async with session:
        stderr = await session.stderr.read_all()
        stdout = await session.stdout.read_all()
        result = await session.wait()

    assert stdout == b"out\n"
    assert stderr == b"err\n"
    assert result.exit_code == 3
    assert not result.success
    assert result.stderr_tail == "err\n"


@pytest.mark.asyncio
async def test_stderr_tail_kept_when_not_requested():
    session = await spawn("sh", "-c", "echo oops >&2; exit 1")
    async with session:
        result = await session.wait()

    assert session.stderr is None
    assert result.exit_code == 1
    assert "oops" in result.stderr_tail


@pytest.mark.asyncio
async def test_output_readable_after_exit():
    """A finished process is still readable until its buffered output is drained."""
    session = await spawn("sh", "-c", "echo one; echo two")
    async with session:
        result = await session.wait()
        assert result.success
        chunks = [chunk async for chunk in session.stdout]

    assert b"".join(chunks) == b"one\ntwo\n"
    assert session.stdout.at_eof
    assert await session.stdout.read_chunk() is None


@pytest.mark.asyncio
async def test_close_tears_down_running_process():
    session = await spawn("sh", "-c", "echo first; exec sleep 30", want_stdin=True, want_stderr=True)

    first = await asyncio.wait_for(session.stdout.read_chunk(), 5)
    assert first == b"first\n"

    await asyncio.wait_for(session.close(), 5)

    assert session.closed
    assert session.process.returncode is not None
    assert session.stdin.closed
    assert await session.stdout.read_chunk() is None
    assert await session.stderr.read_chunk() is None


@pytest.mark.asyncio
async def test_close_discards_unread_output():
    session = await spawn("sh", "-c", "echo buffered")
    await session.wait()
    # let the pump queue the output before tearing down
    await asyncio.sleep(0.05)

    await session.close()

    assert await session.stdout.read_all() == b""


@pytest.mark.asyncio
async def test_attach_failure_raises_attach_refused():
    session = await spawn(
        "sh",
        "-c",
        "echo 'error: unable to upgrade connection: container not found (\"example\")' >&2; exit 1",
        attach_failure_markers=ATTACH_FAILURE_MARKERS,
    )
    async with session:
        with pytest.raises(AttachRefused) as exc_info:
            await session.wait()

    assert exc_info.value.name == "example"
    assert "unable to upgrade connection" in exc_info.value.reason


@pytest.mark.asyncio
async def test_remote_failure_is_not_attach_refused():
    session = await spawn(
        "sh", "-c", "echo 'tar: Unexpected EOF in archive' >&2; exit 2",
        attach_failure_markers=ATTACH_FAILURE_MARKERS,
    )
    async with session:
        result = await session.wait()

    assert result.exit_code == 2


@pytest.mark.asyncio
async def test_result_reports_remote_command():
    session = await ExecSession.spawn(
        ["sh", "-c", "true"], command=["ls", "-l", "/rust_binary"]
    )
    async with session:
        result = await session.wait()

    assert result.command == ["ls", "-l", "/rust_binary"]
