"""
Shared pytest fixtures for kubedrop tests.

This module provides common fixtures including:
- FakeControlPlane: in-memory pods, scripted watch events, and exec
  sessions backed by local subprocesses standing in for the container
- Pod/watch-event builders mirroring Kubernetes JSON
- A 2048-byte executable payload
"""

import asyncio
import os
import sys
from typing import Any, Dict, List, Optional, Sequence

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from kubedrop.errors import AttachRefused, Conflict
from kubedrop.modules.api.models import (
    WatchEvent,
    WorkloadHandle,
    WorkloadSnapshot,
    WorkloadSpec,
)
from kubedrop.modules.channel.kubectl import ATTACH_FAILURE_MARKERS
from kubedrop.modules.channel.session import ExecSession

PAYLOAD_SIZE = 2048


# =============================================================================
# Kubernetes JSON builders
# =============================================================================

def pod_json(
    name: str = "example",
    phase: Optional[str] = "Pending",
    resource_version: str = "1",
    with_status: bool = True,
) -> Dict[str, Any]:
    """Build a Pod object the way the API server returns it."""
    pod: Dict[str, Any] = {
        "apiVersion": "v1",
        "kind": "Pod",
        "metadata": {
            "name": name,
            "namespace": "default",
            "uid": f"uid-{name}",
            "resourceVersion": resource_version,
        },
    }
    if with_status:
        pod["status"] = {"phase": phase} if phase else {}
    return pod


def watch_event(event_type: str, **pod_kwargs) -> WatchEvent:
    """Build a parsed watch event for a pod."""
    return WatchEvent.from_wire({"type": event_type, "object": pod_json(**pod_kwargs)})


def error_event(message: str = "too old resource version", code: int = 410) -> WatchEvent:
    return WatchEvent.from_wire(
        {"type": "ERROR", "object": {"kind": "Status", "message": message, "code": code}}
    )


# =============================================================================
# Fake control plane
# =============================================================================

class FakeControlPlane:
    """
    ControlPlane double for tests.

    Watch replays a scripted event list (optionally hanging afterwards, like
    a quiet subscription). Exec runs the requested command as a local
    subprocess, so tar/ls/the payload really execute against the local disk.

    Usage:
        def test_something(fake_control_plane):
            fake_control_plane.events = [watch_event("MODIFIED", phase="Running")]
            handle = await fake_control_plane.create(spec)
    """

    def __init__(self, events: Optional[List[WatchEvent]] = None, hang: bool = False):
        self.events: List[WatchEvent] = list(events or [])
        self.hang = hang
        self.running = True
        self.pods: Dict[str, WorkloadSpec] = {}
        self.consumed = 0
        self.watch_closed = False
        self.watch_calls: List[Dict[str, Any]] = []
        self.exec_calls: List[Dict[str, Any]] = []
        self.sessions: List[ExecSession] = []
        # command[0] -> replacement argv, to fake specific remote commands
        self.overrides: Dict[str, List[str]] = {}
        self.deleted: List[str] = []

    async def create(self, spec: WorkloadSpec) -> WorkloadHandle:
        if spec.name in self.pods:
            raise Conflict(spec.name)
        self.pods[spec.name] = spec
        return WorkloadHandle(
            name=spec.name, namespace="default", container=spec.container_name, uid=f"uid-{spec.name}"
        )

    async def get(self, name: str) -> WorkloadSnapshot:
        return WorkloadSnapshot.from_manifest(
            pod_json(name, phase="Running" if self.running else "Pending")
        )

    async def watch(self, name: str, from_revision: str = "0", timeout_seconds: float = 10):
        self.watch_calls.append(
            {"name": name, "from_revision": from_revision, "timeout_seconds": timeout_seconds}
        )
        try:
            for event in self.events:
                self.consumed += 1
                yield event
            if self.hang:
                await asyncio.sleep(3600)
        finally:
            self.watch_closed = True

    async def exec(
        self,
        handle: WorkloadHandle,
        command: Sequence[str],
        want_stdin: bool = False,
        want_stderr: bool = False,
    ) -> ExecSession:
        self.exec_calls.append(
            {"name": handle.name, "command": list(command), "stdin": want_stdin, "stderr": want_stderr}
        )
        if not self.running:
            raise AttachRefused(handle.name, "pod phase is Pending")

        argv = self.overrides.get(command[0], list(command))
        session = await ExecSession.spawn(
            argv,
            want_stdin=want_stdin,
            want_stderr=want_stderr,
            command=command,
            target=handle.name,
            attach_failure_markers=ATTACH_FAILURE_MARKERS,
        )
        self.sessions.append(session)
        return session

    async def delete(self, name: str) -> None:
        self.deleted.append(name)
        self.pods.pop(name, None)

    async def close(self) -> None:
        pass


@pytest.fixture
def fake_control_plane():
    """A FakeControlPlane whose pod becomes Running on the second event."""
    return FakeControlPlane(
        events=[
            watch_event("ADDED", phase="Pending", resource_version="1"),
            watch_event("MODIFIED", phase="Running", resource_version="2"),
        ]
    )


@pytest.fixture
def workload_spec():
    return WorkloadSpec(name="example", image="ubuntu:20.04", command=["tail", "-f", "/dev/null"])


# =============================================================================
# Payloads
# =============================================================================

def write_script(path, body: bytes, size: int = PAYLOAD_SIZE, mode: int = 0o755) -> str:
    """Write a shell script padded with a comment line to exactly size bytes."""
    header = b"#!/bin/sh\n" + body
    padding = size - len(header) - 2
    assert padding >= 0, "script body too long for requested size"
    path.write_bytes(header + b"#" + b"x" * padding + b"\n")
    os.chmod(path, mode)
    return str(path)


@pytest.fixture
def payload(tmp_path):
    """A 2048-byte executable that prints a greeting."""
    return write_script(tmp_path / "payload", b"echo hello from kubedrop\n")


# =============================================================================
# Test Markers Configuration
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "subprocess: Tests that spawn local processes in place of a container"
    )
    config.addinivalue_line(
        "markers", "e2e: End-to-end tests requiring a real cluster"
    )
