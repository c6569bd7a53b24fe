"""
Delivery Module - Black Box Interface

Purpose: Sequence provisioning, readiness, unpack, verification and smoke run
Interface: DeliveryOrchestrator.deliver(spec) -> DeliveryReport
Hidden: Remote commands, listing parsing, per-stage time budgets

Contains no transport code; everything remote goes through the ControlPlane.
"""

from .listing import ListingEntry, parse_listing, permissions_to_mode
from .orchestrator import DeliveryOrchestrator, DeliveryReport

__all__ = [
    "DeliveryOrchestrator",
    "DeliveryReport",
    "ListingEntry",
    "parse_listing",
    "permissions_to_mode",
]
