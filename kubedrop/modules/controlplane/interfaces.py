"""Control-plane interfaces following Black Box Design principles."""
from typing import AsyncIterator, Protocol, Sequence

from kubedrop.modules.api.models import (
    WatchEvent,
    WorkloadHandle,
    WorkloadSnapshot,
    WorkloadSpec,
)
from kubedrop.modules.channel.session import ExecSession


class ControlPlane(Protocol):
    """
    Protocol for the cluster collaborator the delivery core consumes.

    Implementations are bound to one namespace.
    """

    async def create(self, spec: WorkloadSpec) -> WorkloadHandle:
        """
        Register a pod. Does not wait for it to start.

        Raises:
            Conflict: a pod with this name exists or is terminating
        """
        ...

    async def get(self, name: str) -> WorkloadSnapshot:
        """Read the current state of a pod."""
        ...

    def watch(
        self, name: str, from_revision: str = "0", timeout_seconds: float = 10
    ) -> AsyncIterator[WatchEvent]:
        """
        Revision-ordered events for a single pod name.

        The sequence is finite: the server ends it after timeout_seconds.
        """
        ...

    async def exec(
        self,
        handle: WorkloadHandle,
        command: Sequence[str],
        want_stdin: bool = False,
        want_stderr: bool = False,
    ) -> ExecSession:
        """
        Run command in the pod's container.

        Raises:
            AttachRefused: the container does not accept attachment
        """
        ...

    async def delete(self, name: str) -> None:
        """Delete a pod. Not used by the delivery core."""
        ...

    async def close(self) -> None:
        """Release transport resources."""
        ...
