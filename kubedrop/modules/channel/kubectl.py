"""Exec sessions opened through `kubectl exec`."""

import logging
from typing import List, Optional, Sequence

from kubedrop.config.provider import KUBECTL_PROXY_URL, ClusterConfig
from kubedrop.errors import AttachRefused
from kubedrop.modules.api.models import WorkloadHandle

from .session import ExecSession

# kubectl's own complaints when the exec stream cannot be attached
ATTACH_FAILURE_MARKERS = (
    "unable to upgrade connection",
    "cannot exec into a container",
    "container not found",
    "does not have a host assigned",
)


class KubectlExecChannel:
    """Opens ExecSessions by running kubectl exec as a local subprocess."""

    def __init__(self, config: ClusterConfig, logger: Optional[logging.Logger] = None):
        self.config = config
        self.logger = logger or logging.getLogger("kubedrop.channel")

    def _connection_flags(self) -> List[str]:
        flags: List[str] = []
        if self.config.context:
            flags += ["--context", self.config.context]
        # Behind `kubectl proxy` the kubeconfig context is the only route to the
        # cluster; anywhere else exec must hit the same server as the REST calls
        if self.config.token or self.config.api_url != KUBECTL_PROXY_URL:
            flags += ["--server", self.config.api_url]
            if self.config.token:
                flags += ["--token", self.config.token]
            if self.config.ca_cert:
                flags += ["--certificate-authority", self.config.ca_cert]
            elif not self.config.verify_ssl:
                flags.append("--insecure-skip-tls-verify")
        return flags

    def build_argv(
        self, handle: WorkloadHandle, command: Sequence[str], want_stdin: bool = False
    ) -> List[str]:
        """Build the kubectl command line for one exec."""
        argv = [self.config.kubectl] + self._connection_flags() + ["exec"]
        if want_stdin:
            argv.append("-i")
        argv += ["-n", handle.namespace, handle.name, "-c", handle.container, "--"]
        return argv + list(command)

    async def open(
        self,
        handle: WorkloadHandle,
        command: Sequence[str],
        want_stdin: bool = False,
        want_stderr: bool = False,
    ) -> ExecSession:
        argv = self.build_argv(handle, command, want_stdin)
        self.logger.debug(f"Running: {' '.join(argv[:1] + ['...', 'exec'] + list(command))}")
        try:
            return await ExecSession.spawn(
                argv,
                want_stdin=want_stdin,
                want_stderr=want_stderr,
                command=command,
                target=handle.name,
                attach_failure_markers=ATTACH_FAILURE_MARKERS,
                logger=self.logger,
            )
        except OSError as e:
            # kubectl missing or not executable
            self.logger.error(f"Could not start {self.config.kubectl}: {e}")
            raise AttachRefused(handle.name, f"could not start {self.config.kubectl}: {e}") from e
