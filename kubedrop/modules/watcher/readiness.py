"""
Readiness watching for a freshly created pod.

Exec against a pod that is not Running fails on the API server, so the
delivery waits here first. The watch can end three ways besides success:
the deadline passes (TIMED_OUT), the pod is deleted or the watch reports
an error (FAILED), or a MODIFIED event shows up without any status at all,
which means our understanding of event ordering is wrong (StatusMissing).

State machine:
    WAITING --ADDED/BOOKMARK--> WAITING
    WAITING --MODIFIED, phase Running--> READY
    WAITING --MODIFIED, other phase--> WAITING
    WAITING --DELETED/ERROR--> FAILED
    WAITING --deadline--> TIMED_OUT
"""

import asyncio
import logging
from enum import Enum
from typing import AsyncIterator, Optional

from kubedrop.errors import StatusMissing, TimedOut, WatchFailed
from kubedrop.modules.api.models import WatchEvent, WatchEventType, WorkloadSnapshot
from kubedrop.modules.controlplane.interfaces import ControlPlane

DEFAULT_READY_TIMEOUT = 10.0


class ReadinessState(str, Enum):
    """States of the readiness state machine."""

    WAITING = "waiting"
    READY = "ready"
    TIMED_OUT = "timed_out"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self != ReadinessState.WAITING


def next_state(state: ReadinessState, event: WatchEvent) -> ReadinessState:
    """
    Apply one watch event to the state machine.

    Terminal states absorb every event.

    Raises:
        StatusMissing: a MODIFIED event carried no status
    """
    if state.is_terminal:
        return state

    if event.type in (WatchEventType.DELETED, WatchEventType.ERROR):
        return ReadinessState.FAILED

    if event.type == WatchEventType.MODIFIED:
        snapshot = event.object
        if snapshot is None or snapshot.status is None:
            raise StatusMissing(snapshot.name if snapshot else "<unknown>")
        if snapshot.is_running:
            return ReadinessState.READY

    return ReadinessState.WAITING


async def bounded_events(
    stream: AsyncIterator[WatchEvent], deadline: float
) -> AsyncIterator[WatchEvent]:
    """
    Re-yield stream until it ends or the loop clock reaches deadline.

    The underlying subscription is closed, not drained, when this
    generator finishes or is closed by its consumer.
    """
    loop = asyncio.get_running_loop()
    iterator = stream.__aiter__()
    try:
        while True:
            remaining = deadline - loop.time()
            if remaining <= 0:
                return
            try:
                event = await asyncio.wait_for(anext(iterator), remaining)
            except (asyncio.TimeoutError, StopAsyncIteration):
                return
            yield event
    finally:
        aclose = getattr(iterator, "aclose", None)
        if aclose is not None:
            await aclose()


class ReadinessWatcher:
    """Waits for a named pod to reach Running within a fixed budget."""

    def __init__(
        self,
        control_plane: ControlPlane,
        timeout: float = DEFAULT_READY_TIMEOUT,
        logger: Optional[logging.Logger] = None,
    ):
        self.control_plane = control_plane
        self.timeout = timeout
        self.logger = logger or logging.getLogger("kubedrop.watcher")
        self.state = ReadinessState.WAITING

    def _log_event(self, name: str, event: WatchEvent) -> None:
        if event.type == WatchEventType.ADDED:
            self.logger.info(f"Added {event.object.name if event.object else name}")
        elif event.type == WatchEventType.ERROR:
            self.logger.error(f"Watch error for {name}: {event.code} {event.message}")
        else:
            phase = event.object.phase.value if event.object and event.object.phase else None
            self.logger.debug(f"{event.type.value} {name} rev={event.revision} phase={phase}")

    async def wait_until_running(self, name: str, from_revision: str = "0") -> WorkloadSnapshot:
        """
        Consume the pod's watch stream until it is Running.

        Stops reading the moment READY is reached.

        Returns:
            Snapshot from the event that showed the pod Running

        Raises:
            TimedOut: deadline passed, or the stream ended, while WAITING
            WatchFailed: DELETED or ERROR event while WAITING
            StatusMissing: MODIFIED event without status
        """
        self.state = ReadinessState.WAITING
        deadline = asyncio.get_running_loop().time() + self.timeout

        stream = self.control_plane.watch(
            name, from_revision=from_revision, timeout_seconds=self.timeout
        )
        events = bounded_events(stream, deadline)
        try:
            async for event in events:
                self._log_event(name, event)
                self.state = next_state(self.state, event)

                if self.state == ReadinessState.READY:
                    self.logger.info(f"Ready to attach to {name}")
                    return event.object

                if self.state == ReadinessState.FAILED:
                    raise WatchFailed(name, event.type.value, event.message or "")
        finally:
            await events.aclose()

        self.state = ReadinessState.TIMED_OUT
        self.logger.error(f"Pod {name} not Running after {self.timeout:g}s")
        raise TimedOut(name, self.timeout)
