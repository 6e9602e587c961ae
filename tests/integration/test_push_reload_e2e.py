"""End-to-end: signed GitHub push → Caddyfile re-pinned → caddy reload exec.

Runs the real aiohttp app, router, orchestrator and runtime client in-process.
The Docker socket is an ``httpx.MockTransport`` fake daemon; the Caddyfile is
a temp file.
"""

from __future__ import annotations

import json
from pathlib import Path

import httpx
import pytest
from aiohttp.test_utils import TestClient, TestServer

from caddyhook.config import Settings
from caddyhook.orchestrator import ReloadOrchestrator
from caddyhook.runtime.client import DockerRuntimeClient
from caddyhook.webhook.router import WebhookRouter, compute_signature
from caddyhook.webhook.server import create_app

SECRET = "e2e-secret"
OLD = "0123456789abcdef0123456789abcdef01234567"
NEW = "abc123" + "0" * 34
CADDY_ID = "caddy0000000000"
EXEC_ID = "exec0000000000"

CADDYFILE = f"""\
assets.example.com {{
    @ver path_regexp VER ^/(\\d+\\.\\d+)/manifest\\.json$
    rewrite /manifest.json https://cdn.jsdelivr.net/gh/org/assets@{OLD}/10.11/manifest.json
    rewrite @ver https://cdn.jsdelivr.net/gh/org/assets@{OLD}/{{http.regexp.VER.1}}/manifest.json
}}
"""


class FakeDockerDaemon:
    """Docker API fake recording every request."""

    def __init__(self, container_names: list[str], create_status: int = 201) -> None:
        self.container_names = container_names
        self.create_status = create_status
        self.requests: list[tuple[str, str, bytes]] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append((request.method, request.url.path, request.content))
        path = request.url.path
        if path == "/containers/json":
            return httpx.Response(
                200,
                json=[
                    {"Id": "db0000000000", "Names": ["/postgres"]},
                    {"Id": CADDY_ID, "Names": self.container_names},
                ],
            )
        if path == f"/containers/{CADDY_ID}/exec":
            if self.create_status >= 400:
                return httpx.Response(self.create_status, json={"message": "boom"})
            return httpx.Response(self.create_status, json={"Id": EXEC_ID})
        if path == f"/exec/{EXEC_ID}/start":
            return httpx.Response(200)
        return httpx.Response(404, json={"message": "no such route"})


@pytest.fixture()
def caddyfile(tmp_path: Path) -> Path:
    path = tmp_path / "Caddyfile"
    path.write_text(CADDYFILE, encoding="utf-8")
    return path


async def _start(caddyfile: Path, daemon: FakeDockerDaemon) -> TestClient:
    settings = Settings(
        _env_file=None,
        caddyfile_path=str(caddyfile),
        caddy_container="caddy",
        github_secretkey=SECRET,
    )
    runtime = DockerRuntimeClient(
        settings.docker_sock,
        timeout=settings.docker_timeout,
        transport=httpx.MockTransport(daemon),
    )
    orchestrator = ReloadOrchestrator(settings, runtime)
    router = WebhookRouter(settings.github_secretkey.get_secret_value())
    router.on_push(orchestrator.push_callback)

    client = TestClient(TestServer(create_app(router, hook_path=settings.hook_path)))
    await client.start_server()
    return client


async def _deliver(client: TestClient, ref: str, secret: str = SECRET):
    body = json.dumps({"ref": ref, "before": OLD, "after": NEW}).encode()
    return await client.post(
        "/hook",
        data=body,
        headers={
            "Content-Type": "application/json",
            "X-GitHub-Event": "push",
            "X-GitHub-Delivery": "72d3162e-cc78-11e3-81ab-4c9367dc0958",
            "X-Hub-Signature-256": compute_signature(secret, body),
        },
    )


class TestPushReloadE2E:
    """Full pipeline through the HTTP endpoint."""

    async def test_main_push_patches_and_reloads(self, caddyfile: Path) -> None:
        daemon = FakeDockerDaemon(["/caddy"])
        client = await _start(caddyfile, daemon)
        try:
            resp = await _deliver(client, "refs/heads/main")

            assert resp.status == 200
            data = await resp.json()
            assert data["status"] == "processed"
            assert data["error"] is None
            assert data["result"]["status"] == "completed"
            assert data["result"]["replacements"] == 2
            assert data["result"]["exec_id"] == EXEC_ID
        finally:
            await client.close()

        assert caddyfile.read_text(encoding="utf-8") == CADDYFILE.replace(OLD, NEW)
        assert [(m, p) for m, p, _ in daemon.requests] == [
            ("GET", "/containers/json"),
            ("POST", f"/containers/{CADDY_ID}/exec"),
            ("POST", f"/exec/{EXEC_ID}/start"),
        ]
        assert json.loads(daemon.requests[1][2])["Cmd"] == [
            "caddy",
            "reload",
            "--config",
            "/etc/caddy/Caddyfile",
            "--adapter",
            "caddyfile",
        ]
        assert json.loads(daemon.requests[2][2]) == {"Detach": True, "Tty": False}

    async def test_develop_push_touches_nothing(self, caddyfile: Path) -> None:
        daemon = FakeDockerDaemon(["/caddy"])
        client = await _start(caddyfile, daemon)
        try:
            resp = await _deliver(client, "refs/heads/develop")

            assert resp.status == 200
            data = await resp.json()
            assert data["result"]["status"] == "skipped"
        finally:
            await client.close()

        assert caddyfile.read_text(encoding="utf-8") == CADDYFILE
        assert daemon.requests == []

    async def test_mixed_case_main_ref_processed(self, caddyfile: Path) -> None:
        daemon = FakeDockerDaemon(["/caddy"])
        client = await _start(caddyfile, daemon)
        try:
            resp = await _deliver(client, "Refs/Heads/MAIN")
            data = await resp.json()
            assert data["result"]["status"] == "completed"
        finally:
            await client.close()

        assert OLD not in caddyfile.read_text(encoding="utf-8")

    async def test_unknown_container_reports_error(self, caddyfile: Path) -> None:
        daemon = FakeDockerDaemon(["/not-caddy"])
        client = await _start(caddyfile, daemon)
        try:
            resp = await _deliver(client, "refs/heads/main")

            assert resp.status == 200
            data = await resp.json()
            assert data["status"] == "error"
            assert "not found" in data["error"]
        finally:
            await client.close()

        assert len(daemon.requests) == 1

    async def test_create_exec_failure_skips_start(self, caddyfile: Path) -> None:
        daemon = FakeDockerDaemon(["/caddy"], create_status=500)
        client = await _start(caddyfile, daemon)
        try:
            resp = await _deliver(client, "refs/heads/main")
            data = await resp.json()
            assert data["status"] == "error"
            assert "docker create exec" in data["error"]
        finally:
            await client.close()

        assert not any(p.endswith("/start") for _, p, _ in daemon.requests)

    async def test_bad_signature_rejected(self, caddyfile: Path) -> None:
        daemon = FakeDockerDaemon(["/caddy"])
        client = await _start(caddyfile, daemon)
        try:
            resp = await _deliver(client, "refs/heads/main", secret="wrong")
            assert resp.status == 401
        finally:
            await client.close()

        assert caddyfile.read_text(encoding="utf-8") == CADDYFILE
        assert daemon.requests == []
