"""Minimal Docker Engine API client over the local Unix socket.

Only what a detached ``docker exec`` needs:

1. ``GET /containers/json`` to list running containers
2. resolve the container name to its id
3. ``POST /containers/{id}/exec`` to create an exec session
4. ``POST /exec/{id}/start`` to start it detached

Every step shares one HTTP client bound to the socket with a short per-call
timeout. Any failure aborts the sequence with a ``ContainerRuntimeError``
naming the step that failed.
"""

from __future__ import annotations

import asyncio
from typing import Any, Protocol

import httpx

from caddyhook.logging import get_logger
from caddyhook.runtime.models import (
    ContainerSummary,
    ExecCreateRequest,
    ExecStartRequest,
    find_container_id,
)

log = get_logger("caddyhook.runtime.client")

# Host part is ignored when talking over the socket.
DOCKER_BASE_URL = "http://docker"
DEFAULT_TIMEOUT = 10.0


class ContainerRuntimeError(Exception):
    """A Docker API step failed."""

    def __init__(self, step: str, detail: str, status_code: int | None = None) -> None:
        self.step = step
        self.detail = detail
        self.status_code = status_code
        super().__init__(f"{step} failed: {detail}")


class ContainerNotFoundError(ContainerRuntimeError):
    """No running container carries the requested name."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__("resolve container", f"container {name!r} not found")


class ContainerRuntime(Protocol):
    """Anything that can run a detached command inside a named container."""

    async def reload_service(self, container_name: str, command: list[str]) -> str: ...


class DockerRuntimeClient:
    """Runs detached exec sessions through the Docker Engine API."""

    def __init__(
        self,
        socket_path: str,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._socket_path = socket_path
        self._timeout = timeout
        # Tests inject an httpx.MockTransport here
        self._transport = transport

    @property
    def socket_path(self) -> str:
        return self._socket_path

    def _client(self) -> httpx.AsyncClient:
        transport = self._transport or httpx.AsyncHTTPTransport(uds=self._socket_path)
        return httpx.AsyncClient(
            transport=transport,
            base_url=DOCKER_BASE_URL,
            timeout=self._timeout,
        )

    # ------------------------------------------------------------------
    # High-level operation
    # ------------------------------------------------------------------

    async def reload_service(self, container_name: str, command: list[str]) -> str:
        """Run *command* detached inside *container_name*.

        Returns the exec session id.

        Raises:
            ContainerNotFoundError: No container has that name.
            ContainerRuntimeError: Any Docker API call failed or timed out.
        """
        async with self._client() as client:
            containers = await self._list_containers(client)

            container_id = find_container_id(containers, container_name)
            if container_id is None:
                raise ContainerNotFoundError(container_name)
            log.debug("container_resolved", name=container_name, container_id=container_id[:12])

            exec_id = await self._create_exec(client, container_id, command)
            await self._start_exec(client, exec_id)

        log.info(
            "exec_started",
            container=container_name,
            container_id=container_id[:12],
            exec_id=exec_id[:12],
            cmd=command,
        )
        return exec_id

    # ------------------------------------------------------------------
    # API calls
    # ------------------------------------------------------------------

    async def list_containers(self) -> list[ContainerSummary]:
        """Return the running containers as reported by the daemon."""
        async with self._client() as client:
            return await self._list_containers(client)

    async def _list_containers(self, client: httpx.AsyncClient) -> list[ContainerSummary]:
        resp = await self._send(client, "docker list containers", "GET", "/containers/json")
        data = self._decode(resp, "decode containers list")
        if not isinstance(data, list):
            raise ContainerRuntimeError(
                "decode containers list", f"expected a list, got {type(data).__name__}"
            )
        try:
            return [ContainerSummary.from_dict(item) for item in data]
        except ValueError as exc:
            raise ContainerRuntimeError("decode containers list", str(exc)) from exc

    async def _create_exec(
        self, client: httpx.AsyncClient, container_id: str, command: list[str]
    ) -> str:
        body = ExecCreateRequest(cmd=command).to_dict()
        resp = await self._send(
            client, "docker create exec", "POST", f"/containers/{container_id}/exec", json=body
        )
        data = self._decode(resp, "decode create exec response")
        exec_id = data.get("Id") if isinstance(data, dict) else None
        if not exec_id:
            raise ContainerRuntimeError("docker create exec", "empty exec id")
        return str(exec_id)

    async def _start_exec(self, client: httpx.AsyncClient, exec_id: str) -> None:
        body = ExecStartRequest(detach=True, tty=False).to_dict()
        await self._send(client, "docker start exec", "POST", f"/exec/{exec_id}/start", json=body)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _send(
        self,
        client: httpx.AsyncClient,
        step: str,
        method: str,
        url: str,
        json: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """Issue one request; transport errors and 4xx/5xx raise for *step*.

        The whole call, body included, is bounded by the client timeout.
        """
        try:
            async with asyncio.timeout(self._timeout):
                resp = await client.request(method, url, json=json)
        except TimeoutError as exc:
            raise ContainerRuntimeError(step, f"timed out after {self._timeout}s") from exc
        except httpx.TimeoutException as exc:
            raise ContainerRuntimeError(step, f"timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            raise ContainerRuntimeError(step, str(exc) or type(exc).__name__) from exc

        if resp.status_code >= 400:
            raise ContainerRuntimeError(step, resp.text[:500], status_code=resp.status_code)
        return resp

    @staticmethod
    def _decode(resp: httpx.Response, step: str) -> Any:
        try:
            return resp.json()
        except ValueError as exc:
            raise ContainerRuntimeError(step, str(exc)) from exc
