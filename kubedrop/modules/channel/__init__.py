"""
Channel Module - Black Box Interface

Purpose: Run a command inside a pod container with independent byte streams
Interface: ExecSession (stdin / stdout / stderr handles, wait(), close())
Hidden: kubectl invocation, pump tasks, stderr diagnostics

Can be replaced with a direct websocket exec client without touching callers.
"""

from .kubectl import ATTACH_FAILURE_MARKERS, KubectlExecChannel
from .session import ExecResult, ExecSession, OutputStream, StdinHandle

__all__ = [
    "ATTACH_FAILURE_MARKERS",
    "ExecResult",
    "ExecSession",
    "KubectlExecChannel",
    "OutputStream",
    "StdinHandle",
]
