"""
API Module - Black Box Interface

Purpose: Shared pod and watch data models
Interface: pydantic models parsed from and rendered to Kubernetes JSON
Hidden: Wire field names, phase normalization

Every other module exchanges pod state through these types only.
"""

from .models import (
    WatchEvent,
    WatchEventType,
    WorkloadHandle,
    WorkloadPhase,
    WorkloadSnapshot,
    WorkloadSpec,
    WorkloadStatus,
)

__all__ = [
    "WatchEvent",
    "WatchEventType",
    "WorkloadHandle",
    "WorkloadPhase",
    "WorkloadSnapshot",
    "WorkloadSpec",
    "WorkloadStatus",
]
