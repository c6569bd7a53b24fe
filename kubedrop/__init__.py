"""
Kubedrop - deliver an executable into a fresh Kubernetes pod

A `kubectl cp` analog with a smoke test on the far end.

Architecture:
- Each module is self-contained with clear interfaces
- Modules talk to the cluster only through the control-plane interface
- Stages run strictly in sequence; any failure aborts the run

Modules:
- api: shared pod/watch models
- controlplane: Kubernetes REST + kubectl exec client
- provisioner: pod creation
- watcher: readiness state machine over the watch stream
- archive: single-entry tar construction
- channel: multiplexed exec sessions
- delivery: the stage sequence
"""

__version__ = "1.0.0"
