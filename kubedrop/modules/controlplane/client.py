"""
Kubernetes control-plane client.

Pod create/get/watch/delete go to the REST API through httpx. Exec needs a
streaming upgrade the REST client does not speak, so it is delegated to
kubectl with the same server and credentials.
"""

import json
import logging
import math
from typing import AsyncIterator, Optional, Sequence

import httpx

from kubedrop.config.provider import ClusterConfig
from kubedrop.errors import AttachRefused, Conflict, ControlPlaneError, WatchFailed
from kubedrop.modules.api.models import (
    WatchEvent,
    WorkloadHandle,
    WorkloadSnapshot,
    WorkloadSpec,
)
from kubedrop.modules.channel.kubectl import KubectlExecChannel
from kubedrop.modules.channel.session import ExecSession


def _status_message(response: httpx.Response) -> str:
    """Extract the message from a Kubernetes Status body."""
    try:
        return response.json().get("message", "") or response.text
    except ValueError:
        return response.text


class KubeControlPlane:
    """ControlPlane backed by the Kubernetes API server."""

    def __init__(
        self,
        config: ClusterConfig,
        http_client: Optional[httpx.AsyncClient] = None,
        exec_channel: Optional[KubectlExecChannel] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the client.

        Args:
            config: Cluster connection settings
            http_client: Pre-built client (tests pass one with a MockTransport)
            exec_channel: Exec implementation (defaults to kubectl)
            logger: Logger to use
        """
        self.config = config
        self.namespace = config.namespace
        self.logger = logger or logging.getLogger("kubedrop.controlplane")

        headers = {"Accept": "application/json"}
        if config.token:
            headers["Authorization"] = f"Bearer {config.token}"

        self._owns_client = http_client is None
        self.http = http_client or httpx.AsyncClient(
            base_url=config.api_url,
            headers=headers,
            verify=config.verify,
            timeout=config.request_timeout,
        )
        self.exec_channel = exec_channel or KubectlExecChannel(config, logger=self.logger)

        if config.api_url.startswith("http://") and config.token:
            self.logger.warning("⚠️  Sending a bearer token over plain HTTP")

    def _pods_path(self, name: Optional[str] = None) -> str:
        path = f"/api/v1/namespaces/{self.namespace}/pods"
        return f"{path}/{name}" if name else path

    async def _request(self, method: str, path: str, action: str, **kwargs) -> httpx.Response:
        """Send one request; transport failures become ControlPlaneError."""
        try:
            return await self.http.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            self.logger.error(f"Failed to {action}: {type(e).__name__}: {e}")
            raise ControlPlaneError(f"Failed to {action}: {type(e).__name__}: {e}") from e

    def _raise_for_status(self, response: httpx.Response, action: str) -> None:
        if response.is_success:
            return
        raise ControlPlaneError(
            f"Failed to {action}: {response.status_code} {_status_message(response)}",
            status_code=response.status_code,
        )

    async def create(self, spec: WorkloadSpec) -> WorkloadHandle:
        response = await self._request(
            "POST", self._pods_path(), f"create pod {spec.name}", json=spec.to_manifest()
        )

        if response.status_code == 409:
            raise Conflict(spec.name, _status_message(response))
        self._raise_for_status(response, f"create pod {spec.name}")

        snapshot = WorkloadSnapshot.from_manifest(response.json())
        return WorkloadHandle(
            name=snapshot.name or spec.name,
            namespace=snapshot.namespace or self.namespace,
            container=spec.container_name,
            uid=snapshot.uid,
        )

    async def get(self, name: str) -> WorkloadSnapshot:
        response = await self._request("GET", self._pods_path(name), f"get pod {name}")
        self._raise_for_status(response, f"get pod {name}")
        return WorkloadSnapshot.from_manifest(response.json())

    async def watch(
        self, name: str, from_revision: str = "0", timeout_seconds: float = 10
    ) -> AsyncIterator[WatchEvent]:
        params = {
            "watch": "1",
            "fieldSelector": f"metadata.name={name}",
            "resourceVersion": from_revision,
            "timeoutSeconds": str(max(1, math.ceil(timeout_seconds))),
        }
        # The server holds the stream open for timeoutSeconds
        timeout = httpx.Timeout(
            self.config.request_timeout, read=timeout_seconds + self.config.request_timeout
        )

        try:
            async with self.http.stream(
                "GET", self._pods_path(), params=params, timeout=timeout
            ) as response:
                if response.status_code != 200:
                    await response.aread()
                    raise WatchFailed(name, f"HTTP {response.status_code}", _status_message(response))

                async for line in response.aiter_lines():
                    if not line.strip():
                        continue
                    try:
                        event = WatchEvent.from_wire(json.loads(line))
                    except ValueError as e:
                        # bad JSON, an unknown event type or a malformed object
                        raise WatchFailed(name, "ERROR", f"unparseable watch line: {e}") from e
                    yield event
        except httpx.HTTPError as e:
            self.logger.error(f"Watch on {name} broke: {type(e).__name__}: {e}")
            raise WatchFailed(name, "transport", f"{type(e).__name__}: {e}") from e

    async def exec(
        self,
        handle: WorkloadHandle,
        command: Sequence[str],
        want_stdin: bool = False,
        want_stderr: bool = False,
    ) -> ExecSession:
        snapshot = await self.get(handle.name)
        if not snapshot.is_running:
            phase = snapshot.phase.value if snapshot.phase else "unknown"
            raise AttachRefused(handle.name, f"pod phase is {phase}")

        return await self.exec_channel.open(
            handle, command, want_stdin=want_stdin, want_stderr=want_stderr
        )

    async def delete(self, name: str) -> None:
        response = await self._request("DELETE", self._pods_path(name), f"delete pod {name}")
        if response.status_code == 404:
            self.logger.info(f"Pod {name} already gone")
            return
        self._raise_for_status(response, f"delete pod {name}")

    async def close(self) -> None:
        if self._owns_client:
            await self.http.aclose()

    async def __aenter__(self) -> "KubeControlPlane":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
