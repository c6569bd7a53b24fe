"""
Control Plane Module - Black Box Interface

Purpose: Talk to the cluster on behalf of the delivery core
Interface: ControlPlane protocol (create, get, watch, exec, delete)
Hidden: REST paths, authentication headers, kubectl invocation

Replaceable with any client that honors the ControlPlane protocol.
"""

from .client import KubeControlPlane
from .interfaces import ControlPlane

__all__ = ["ControlPlane", "KubeControlPlane"]
