"""
Delivery orchestration.

Pure sequencing, no state of its own:

1. Provision the pod
2. Wait for Running
3. Build the archive
4. Pipe it into `tar xf - -C <dir>` and check the exit status
5. `ls -l` the delivered file and compare size and permissions
6. Run it and keep the first chunk of output

A stage only starts once the previous one has succeeded. Any failure
aborts the run and nothing is retried. The pod stays behind either way.
"""

import asyncio
import logging
import posixpath
from dataclasses import dataclass
from typing import Awaitable, Optional, TypeVar

from kubedrop.config.provider import DeliveryConfig
from kubedrop.errors import (
    ExecTimedOut,
    SmokeTestFailed,
    UnpackFailed,
    VerificationFailed,
)
from kubedrop.modules.api.models import WorkloadHandle, WorkloadSpec
from kubedrop.modules.archive.builder import ArchiveBuilder, ArchiveEntry
from kubedrop.modules.controlplane.interfaces import ControlPlane
from kubedrop.modules.provisioner.provisioner import WorkloadProvisioner
from kubedrop.modules.watcher.readiness import ReadinessWatcher

from .listing import ListingEntry, parse_listing

T = TypeVar("T")


@dataclass
class DeliveryReport:
    """What a successful run observed."""
    handle: WorkloadHandle
    remote_path: str
    archive_size: int
    listing: ListingEntry
    first_output: bytes


class DeliveryOrchestrator:
    """Runs the provision / wait / unpack / verify / run sequence."""

    def __init__(
        self,
        control_plane: ControlPlane,
        config: DeliveryConfig,
        builder: Optional[ArchiveBuilder] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.control_plane = control_plane
        self.config = config
        self.logger = logger or logging.getLogger("kubedrop.delivery")
        self.provisioner = WorkloadProvisioner(
            control_plane, logger=self.logger.getChild("provisioner")
        )
        self.watcher = ReadinessWatcher(
            control_plane, timeout=config.ready_timeout, logger=self.logger.getChild("watcher")
        )
        self.builder = builder or ArchiveBuilder(logger=self.logger.getChild("archive"))

    @property
    def remote_path(self) -> str:
        return posixpath.join(self.config.target_dir, self.config.remote_name)

    async def deliver(self, spec: WorkloadSpec) -> DeliveryReport:
        """
        Deliver the configured payload into a new pod and run it.

        Raises:
            KubedropError: whichever stage failed first
        """
        handle = await self.provisioner.create(spec)
        await self.watcher.wait_until_running(handle.name)

        entry = self.builder.build_entry(self.config.payload, arcname=self.config.remote_name)
        archive = self.builder.serialize(entry)
        self.logger.info(f"Built {len(archive)}-byte archive for {entry.name}")

        await self._bounded("unpack", self.unpack(handle, archive))
        listing = await self._bounded("verify", self.verify(handle, entry))
        first_output = await self._bounded("run", self.smoke_run(handle))

        return DeliveryReport(
            handle=handle,
            remote_path=self.remote_path,
            archive_size=len(archive),
            listing=listing,
            first_output=first_output,
        )

    async def _bounded(self, stage: str, coro: Awaitable[T]) -> T:
        """Run an exec stage under the configured time budget."""
        try:
            return await asyncio.wait_for(coro, self.config.exec_timeout)
        except asyncio.TimeoutError:
            self.logger.error(f"Stage {stage} timed out, session torn down")
            raise ExecTimedOut(stage, self.config.exec_timeout)

    async def unpack(self, handle: WorkloadHandle, archive: bytes) -> None:
        """
        Stream the archive into the remote tar.

        stdin is always closed, even after a failed write: tar blocks until
        it sees EOF.

        Raises:
            UnpackFailed: tar exited non-zero (e.g. a truncated archive)
        """
        command = ["tar", "xf", "-", "-C", self.config.target_dir]
        async with await self.control_plane.exec(
            handle, command, want_stdin=True, want_stderr=True
        ) as session:
            try:
                await session.stdin.write(archive)
            except (BrokenPipeError, ConnectionResetError) as e:
                self.logger.warning(f"tar stopped reading before the archive ended: {e}")
            finally:
                await session.stdin.close()
            result = await session.wait()

        if not result.success:
            raise UnpackFailed(result.exit_code, result.stderr_tail)
        self.logger.info(f"Unpacked into {self.config.target_dir} on {handle.name}")

    async def verify(self, handle: WorkloadHandle, entry: ArchiveEntry) -> ListingEntry:
        """
        List the delivered file and compare it with the local payload.

        Raises:
            VerificationFailed: listing failed, or size/permissions differ
        """
        async with await self.control_plane.exec(
            handle, ["ls", "-l", self.remote_path], want_stderr=True
        ) as session:
            output = await session.stdout.read_all()
            result = await session.wait()

        if not result.success:
            raise VerificationFailed(
                f"Listing {self.remote_path} exited with {result.exit_code}: "
                f"{result.stderr_tail.strip()}"
            )

        lines = output.decode("utf-8", errors="replace").strip().splitlines()
        if not lines:
            raise VerificationFailed(f"Listing {self.remote_path} produced no output")

        listing = parse_listing(lines[0])
        self.logger.info(f"File permissions: {listing.raw}")

        if listing.size != entry.size:
            raise VerificationFailed(
                f"{self.remote_path} is {listing.size} bytes, expected {entry.size}"
            )
        if listing.mode != entry.mode:
            raise VerificationFailed(
                f"{self.remote_path} has mode {oct(listing.mode)}, expected {oct(entry.mode)}"
            )
        return listing

    async def smoke_run(self, handle: WorkloadHandle) -> bytes:
        """
        Run the delivered executable and return its first chunk of output.

        The session is torn down right after; the rest of the output is
        discarded.

        Raises:
            SmokeTestFailed: stdout ended without producing anything
        """
        async with await self.control_plane.exec(handle, [self.remote_path]) as session:
            chunk = await session.stdout.read_chunk()

        if not chunk:
            raise SmokeTestFailed(f"{self.remote_path} produced no output")

        self.logger.info(f"Logs from running {self.remote_path}: {chunk!r}")
        return chunk
