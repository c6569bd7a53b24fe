"""
Watcher Module - Black Box Interface

Purpose: Decide whether a new pod became Running, will never be, or ran out of time
Interface: ReadinessWatcher.wait_until_running(name), next_state(state, event)
Hidden: Deadline bookkeeping, subscription teardown

Works with any ControlPlane whose watch yields WatchEvent objects.
"""

from .readiness import (
    DEFAULT_READY_TIMEOUT,
    ReadinessState,
    ReadinessWatcher,
    bounded_events,
    next_state,
)

__all__ = [
    "DEFAULT_READY_TIMEOUT",
    "ReadinessState",
    "ReadinessWatcher",
    "bounded_events",
    "next_state",
]
