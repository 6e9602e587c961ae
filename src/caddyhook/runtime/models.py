"""Docker Engine API payloads used by the runtime client."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ContainerSummary:
    """One entry of ``GET /containers/json``."""

    id: str
    names: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ContainerSummary:
        if not isinstance(data, dict):
            raise ValueError(f"container entry must be an object, got {type(data).__name__}")
        names = data.get("Names") or []
        if not isinstance(names, list):
            raise ValueError("container 'Names' must be a list")
        return cls(id=str(data.get("Id") or ""), names=[str(n) for n in names])

    def matches(self, name: str) -> bool:
        """Check *name* against this container's names.

        Docker reports names with a leading ``/``; one is stripped before the
        exact, case-sensitive comparison.
        """
        return any(n.removeprefix("/") == name for n in self.names)


@dataclass(frozen=True)
class ExecCreateRequest:
    """Body of ``POST /containers/{id}/exec``."""

    cmd: list[str]
    attach_stdout: bool = False
    attach_stderr: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "AttachStdout": self.attach_stdout,
            "AttachStderr": self.attach_stderr,
            "Cmd": list(self.cmd),
        }


@dataclass(frozen=True)
class ExecStartRequest:
    """Body of ``POST /exec/{id}/start``."""

    detach: bool = True
    tty: bool = False

    def to_dict(self) -> dict[str, bool]:
        return {"Detach": self.detach, "Tty": self.tty}


def find_container_id(containers: list[ContainerSummary], name: str) -> str | None:
    """Return the id of the first container named *name*, in listing order."""
    for container in containers:
        if container.id and container.matches(name):
            return container.id
    return None
