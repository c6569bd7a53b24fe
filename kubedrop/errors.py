"""
Error classes for kubedrop runs.

Every stage of a delivery signals failure by raising one of these.
Nothing is retried and nothing is cleaned up: the entry point catches
KubedropError at the boundary, reports it, and exits non-zero.

Error handling contract:
- Errors are exceptions, not values
- Each failure kind has its own class so callers can tell them apart
- The provisioned pod is left in place for inspection
"""

from typing import Optional


class KubedropError(Exception):
    """Base exception for kubedrop."""
    pass


# Control plane


class ControlPlaneError(KubedropError):
    """The API server answered with an unexpected status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class Conflict(ControlPlaneError):
    """
    A pod with the same name already exists or is still terminating.

    Fatal. Re-creating under ambiguous state could duplicate side effects,
    so there is no retry and no backoff.
    """

    def __init__(self, name: str, message: str = ""):
        super().__init__(
            message or f"Pod {name!r} already exists or is still terminating",
            status_code=409,
        )
        self.name = name


class AttachRefused(ControlPlaneError):
    """The container would not accept an exec attachment."""

    def __init__(self, name: str, reason: str):
        super().__init__(f"Cannot attach to pod {name!r}: {reason}")
        self.name = name
        self.reason = reason


# Readiness


class ReadinessError(KubedropError):
    """The pod never reached Running."""
    pass


class TimedOut(ReadinessError):
    """The readiness deadline expired while still waiting."""

    def __init__(self, name: str, timeout: float):
        super().__init__(f"Pod {name!r} was not Running within {timeout:g}s")
        self.name = name
        self.timeout = timeout


class WatchFailed(ReadinessError):
    """The watch delivered a DELETED or ERROR event before Running, or broke."""

    def __init__(self, name: str, event_type: str, detail: str = ""):
        message = f"Watch on pod {name!r} failed ({event_type})"
        if detail:
            message += f": {detail}"
        super().__init__(message)
        self.name = name
        self.event_type = event_type


class StatusMissing(ReadinessError):
    """
    A MODIFIED event arrived for a pod with no status.

    This means our assumptions about event ordering are wrong. It is a
    defect, not a condition to wait out.
    """

    def __init__(self, name: str):
        super().__init__(f"MODIFIED event for pod {name!r} carried no status")
        self.name = name


# Archive construction


class ArchiveError(KubedropError):
    """The payload could not be packaged."""

    def __init__(self, message: str, path: str):
        super().__init__(message)
        self.path = path


class MetadataUnreadable(ArchiveError):
    """Size or permission bits of the payload could not be read."""

    def __init__(self, path: str, cause: Exception):
        super().__init__(f"Cannot read metadata of {path}: {cause}", path)


class ContentUnreadable(ArchiveError):
    """The payload bytes could not be read."""

    def __init__(self, path: str, cause: Exception):
        super().__init__(f"Cannot read {path}: {cause}", path)


class PathTooLong(ArchiveError):
    """The archive member name does not fit the header name field."""

    def __init__(self, path: str, limit: int):
        super().__init__(
            f"Archive name {path!r} exceeds the {limit}-byte header name field", path
        )
        self.limit = limit


# Delivery stages


class DeliveryError(KubedropError):
    """A remote stage of the delivery failed."""
    pass


class UnpackFailed(DeliveryError):
    """The remote unpack command exited non-zero."""

    def __init__(self, exit_code: int, stderr: str = ""):
        message = f"Remote unpack exited with status {exit_code}"
        if stderr:
            message += f": {stderr.strip()}"
        super().__init__(message)
        self.exit_code = exit_code
        self.stderr = stderr


class VerificationFailed(DeliveryError):
    """The delivered file does not match the local payload."""
    pass


class SmokeTestFailed(DeliveryError):
    """The delivered executable produced no output."""
    pass


class ExecTimedOut(DeliveryError):
    """An exec stage ran past its time budget and was torn down."""

    def __init__(self, stage: str, timeout: float):
        super().__init__(f"Stage {stage!r} did not finish within {timeout:g}s")
        self.stage = stage
        self.timeout = timeout
