"""Docker Engine API access for running ``caddy reload`` in place."""

from caddyhook.runtime.client import (
    ContainerNotFoundError,
    ContainerRuntime,
    ContainerRuntimeError,
    DockerRuntimeClient,
)
from caddyhook.runtime.models import ContainerSummary

__all__ = [
    "ContainerNotFoundError",
    "ContainerRuntime",
    "ContainerRuntimeError",
    "ContainerSummary",
    "DockerRuntimeClient",
]
