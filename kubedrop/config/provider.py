"""Configuration provider following Black Box Design principles."""
import os
import shlex
from dataclasses import dataclass, field
from typing import List, Optional, Protocol

# Where `kubectl proxy` listens by default
KUBECTL_PROXY_URL = "http://127.0.0.1:8001"


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


def _env_float(name: str, default: str) -> float:
    raw = os.getenv(name, default)
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {raw!r}")
    return value


@dataclass
class ClusterConfig:
    """How to reach the cluster."""
    api_url: str
    namespace: str
    token: Optional[str] = None
    verify_ssl: bool = True
    ca_cert: Optional[str] = None
    kubectl: str = "kubectl"
    context: Optional[str] = None
    request_timeout: float = 30.0

    @property
    def verify(self):
        """TLS verification setting in the form httpx expects."""
        return self.ca_cert if self.ca_cert else self.verify_ssl


@dataclass
class WorkloadConfig:
    """The pod to provision."""
    name: str
    image: str
    command: List[str] = field(default_factory=list)


@dataclass
class DeliveryConfig:
    """What to deliver and how long each stage may take."""
    payload: str
    remote_name: str
    target_dir: str = "/"
    ready_timeout: float = 10.0
    exec_timeout: float = 60.0

    def __post_init__(self):
        # The archive stores names relative to target_dir
        self.remote_name = self.remote_name.lstrip("/")
        if not self.remote_name:
            raise ValueError("remote_name must name a file, not a directory")


class ConfigProvider(Protocol):
    """Protocol for configuration providers."""

    def get_cluster_config(self) -> ClusterConfig:
        """Get cluster connection configuration."""
        ...

    def get_workload_config(self) -> WorkloadConfig:
        """Get pod configuration."""
        ...

    def get_delivery_config(self) -> DeliveryConfig:
        """Get delivery configuration."""
        ...


class EnvConfigProvider:
    """Environment-based configuration provider."""

    def get_cluster_config(self) -> ClusterConfig:
        """Get cluster configuration from environment variables."""
        return ClusterConfig(
            api_url=os.getenv("KUBEDROP_API_URL", KUBECTL_PROXY_URL).rstrip("/"),
            namespace=os.getenv("KUBEDROP_NAMESPACE", "default"),
            token=os.getenv("KUBEDROP_TOKEN") or None,
            verify_ssl=_env_bool("KUBEDROP_SSL_VERIFY", "true"),
            ca_cert=os.getenv("KUBEDROP_CA_CERT") or None,
            kubectl=os.getenv("KUBEDROP_KUBECTL", "kubectl"),
            context=os.getenv("KUBEDROP_CONTEXT") or None,
            request_timeout=_env_float("KUBEDROP_REQUEST_TIMEOUT", "30"),
        )

    def get_workload_config(self) -> WorkloadConfig:
        """Get pod configuration from environment variables."""
        # The default container idles so we can exec into it
        return WorkloadConfig(
            name=os.getenv("KUBEDROP_POD_NAME", "example"),
            image=os.getenv("KUBEDROP_IMAGE", "ubuntu:20.04"),
            command=shlex.split(os.getenv("KUBEDROP_COMMAND", "tail -f /dev/null")),
        )

    def get_delivery_config(self) -> DeliveryConfig:
        """Get delivery configuration from environment variables."""
        payload = os.getenv("KUBEDROP_PAYLOAD")
        if not payload:
            raise ValueError(
                "KUBEDROP_PAYLOAD environment variable is required. "
                "Set it to the local executable to deliver into the pod."
            )

        return DeliveryConfig(
            payload=payload,
            remote_name=os.getenv("KUBEDROP_REMOTE_NAME") or os.path.basename(payload),
            target_dir=os.getenv("KUBEDROP_TARGET_DIR", "/"),
            ready_timeout=_env_float("KUBEDROP_READY_TIMEOUT", "10"),
            exec_timeout=_env_float("KUBEDROP_EXEC_TIMEOUT", "60"),
        )
