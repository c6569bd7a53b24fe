"""
Provisioner Module - Black Box Interface

Purpose: Create the short-lived pod a delivery runs against
Interface: WorkloadProvisioner.create(spec) -> WorkloadHandle
Hidden: Manifest rendering, conflict reporting

Does not wait for readiness and never deletes what it created.
"""

from .provisioner import WorkloadProvisioner

__all__ = ["WorkloadProvisioner"]
