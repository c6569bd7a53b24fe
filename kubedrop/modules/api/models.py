"""
Kubedrop shared data models.

These models define the structure of the pod and watch data passed
between the control-plane client, the provisioner and the watcher.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Enums


class WorkloadPhase(str, Enum):
    """Pod phase as reported by the control plane."""

    PENDING = "Pending"
    RUNNING = "Running"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    UNKNOWN = "Unknown"


class WatchEventType(str, Enum):
    """Kinds of events delivered by a watch stream."""

    ADDED = "ADDED"
    MODIFIED = "MODIFIED"
    DELETED = "DELETED"
    ERROR = "ERROR"
    BOOKMARK = "BOOKMARK"


# Request Models


class WorkloadSpec(BaseModel):
    """A single-container pod to create. Immutable once submitted."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(
        ...,
        description="Pod name, unique within the namespace",
        min_length=1,
        max_length=63,
        pattern="^[a-z0-9][a-z0-9-]*[a-z0-9]$|^[a-z0-9]$",
    )
    image: str = Field(..., description="Container image reference", min_length=1)
    command: List[str] = Field(default_factory=list, description="Startup command")
    container: Optional[str] = Field(None, description="Container name (defaults to pod name)")

    @property
    def container_name(self) -> str:
        return self.container or self.name

    def to_manifest(self) -> Dict[str, Any]:
        """Render the v1 Pod body for the create request."""
        container: Dict[str, Any] = {
            "name": self.container_name,
            "image": self.image,
        }
        if self.command:
            container["command"] = list(self.command)

        return {
            "apiVersion": "v1",
            "kind": "Pod",
            "metadata": {"name": self.name},
            "spec": {
                "containers": [container],
                "restartPolicy": "Never",
            },
        }


# Observed state


class WorkloadStatus(BaseModel):
    """Observed pod status. Written only by the control plane."""

    phase: Optional[WorkloadPhase] = None

    @field_validator("phase", mode="before")
    @classmethod
    def coerce_phase(cls, v):
        """Map unrecognized phase strings to Unknown."""
        if v is None or v == "":
            return None
        if isinstance(v, WorkloadPhase):
            return v
        try:
            return WorkloadPhase(v)
        except ValueError:
            return WorkloadPhase.UNKNOWN


class WorkloadSnapshot(BaseModel):
    """A pod as seen at one revision."""

    name: str
    namespace: Optional[str] = None
    uid: Optional[str] = None
    resource_version: Optional[str] = None
    status: Optional[WorkloadStatus] = None

    @property
    def phase(self) -> Optional[WorkloadPhase]:
        return self.status.phase if self.status else None

    @property
    def is_running(self) -> bool:
        return self.phase == WorkloadPhase.RUNNING

    @classmethod
    def from_manifest(cls, data: Dict[str, Any]) -> "WorkloadSnapshot":
        """Create from a Pod JSON object."""
        metadata = data.get("metadata") or {}
        status = data.get("status")
        return cls(
            name=metadata.get("name", ""),
            namespace=metadata.get("namespace"),
            uid=metadata.get("uid"),
            resource_version=metadata.get("resourceVersion"),
            status=WorkloadStatus(phase=status.get("phase")) if status is not None else None,
        )


class WatchEvent(BaseModel):
    """One notification from a watch stream."""

    type: WatchEventType
    object: Optional[WorkloadSnapshot] = None
    message: Optional[str] = None
    code: Optional[int] = None

    @property
    def revision(self) -> Optional[str]:
        return self.object.resource_version if self.object else None

    @classmethod
    def from_wire(cls, data: Dict[str, Any]) -> "WatchEvent":
        """
        Create from one line of a Kubernetes watch stream.

        ERROR events embed a Status object instead of a pod, so they carry
        the message and code rather than a snapshot.
        """
        event_type = WatchEventType(data.get("type", ""))
        raw = data.get("object") or {}

        if event_type == WatchEventType.ERROR:
            return cls(type=event_type, message=raw.get("message"), code=raw.get("code"))

        return cls(type=event_type, object=WorkloadSnapshot.from_manifest(raw))


class WorkloadHandle(BaseModel):
    """Identity of a created pod, owned by the run that created it."""

    model_config = ConfigDict(frozen=True)

    name: str
    namespace: str
    container: str
    uid: Optional[str] = None
