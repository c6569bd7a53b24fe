import logging
from typing import Optional

from kubedrop.errors import Conflict
from kubedrop.modules.api.models import WorkloadHandle, WorkloadSpec
from kubedrop.modules.controlplane.interfaces import ControlPlane


class WorkloadProvisioner:
    def __init__(self, control_plane: ControlPlane, logger: Optional[logging.Logger] = None):
        """
        Initialize provisioner.

        Args:
            control_plane: Cluster client bound to the target namespace
            logger: Logger to use
        """
        self.control_plane = control_plane
        self.logger = logger or logging.getLogger("kubedrop.provisioner")

    async def create(self, spec: WorkloadSpec) -> WorkloadHandle:
        """
        Create the pod and take ownership of its identity for this run.

        Args:
            spec: Pod to create

        Returns:
            Handle for exec sessions against the pod

        Logic:
        1. Submit the pod; do not wait for it to start
        2. A name collision is fatal: no retry, no backoff

        Raises:
            Conflict: the name is taken or the old pod is still terminating
        """
        try:
            handle = await self.control_plane.create(spec)
        except Conflict:
            self.logger.error(f"Pod {spec.name} already exists or is still terminating")
            raise

        self.logger.info(f"Created pod {handle.name} (uid={handle.uid}) from {spec.image}")
        return handle
