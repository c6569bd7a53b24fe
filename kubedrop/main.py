#!/usr/bin/env python3
"""
Kubedrop - Main Entry Point

This is the thin orchestration layer that:
1. Loads configuration from the environment
2. Configures logging once for the process
3. Runs a single delivery and prints a summary

All business logic is in the modules, following black box principles.
The pod is left in place afterwards, whether the run succeeded or not.
"""

import asyncio
import logging
import logging.config as log_config
import os
import sys
from typing import Optional

from rich.console import Console
from rich.table import Table

from kubedrop.config.provider import ConfigProvider, EnvConfigProvider
from kubedrop.errors import KubedropError
from kubedrop.logging_config import get_logging_config
from kubedrop.modules.api.models import WorkloadSpec
from kubedrop.modules.controlplane.client import KubeControlPlane
from kubedrop.modules.delivery.orchestrator import DeliveryOrchestrator, DeliveryReport

logger = logging.getLogger("kubedrop")
console = Console()


async def run(provider: ConfigProvider) -> DeliveryReport:
    """Run one delivery with configuration from provider."""
    cluster = provider.get_cluster_config()
    workload = provider.get_workload_config()
    delivery = provider.get_delivery_config()

    spec = WorkloadSpec(name=workload.name, image=workload.image, command=workload.command)

    async with KubeControlPlane(cluster, logger=logger.getChild("controlplane")) as control_plane:
        orchestrator = DeliveryOrchestrator(control_plane, delivery, logger=logger.getChild("delivery"))
        return await orchestrator.deliver(spec)


def display_report(report: DeliveryReport) -> None:
    """Print a summary of a successful run."""
    table = Table(title=f"Delivered to {report.handle.namespace}/{report.handle.name}")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="yellow")

    table.add_row("Remote path", report.remote_path)
    table.add_row("Archive size", f"{report.archive_size} bytes")
    table.add_row("Listing", report.listing.raw)
    table.add_row("Executable", "✓" if report.listing.is_executable else "✗")
    table.add_row("First output", report.first_output.decode("utf-8", errors="replace").strip())

    console.print(table)


def main(provider: Optional[ConfigProvider] = None) -> int:
    """Main entry point."""
    log_config.dictConfig(get_logging_config(os.environ.get("LOG_LEVEL", "INFO")))
    provider = provider or EnvConfigProvider()

    try:
        report = asyncio.run(run(provider))
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        console.print(f"[red]Configuration error:[/red] {e}")
        return 1
    except KubedropError as e:
        logger.error(f"Delivery failed: {e}")
        console.print(f"[red]Delivery failed ({type(e).__name__}):[/red] {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("Stopped by user")
        return 130

    display_report(report)
    return 0


if __name__ == "__main__":
    sys.exit(main())
